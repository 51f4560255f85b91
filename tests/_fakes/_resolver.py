# Copyright 2026 Google LLC
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
#
# SPDX-License-Identifier: Apache-2.0

"""Fake artifact resolver with simulated propagation delay."""

from __future__ import annotations

from reactorkit.errors import E, ReactorKitError


class FakeResolver:
    """Resolver test double.

    An artifact becomes resolvable after a configurable number of
    lookups, which models a repository that is still propagating a
    fresh deploy.
    """

    def __init__(self, *, unreachable: bool = False) -> None:
        """Initialize with an empty repository.

        Args:
            unreachable: Raise on every lookup, like a repository that
                cannot be contacted.
        """
        self.unreachable = unreachable
        self._visible_after: dict[str, int] = {}
        self.lookups: list[str] = []

    def publish(self, group_id: str, artifact_id: str, version: str, *, visible_after: int = 0) -> None:
        """Publish an artifact that becomes visible after ``visible_after`` lookups."""
        self._visible_after[f'{group_id}:{artifact_id}:{version}'] = visible_after

    async def is_resolvable(
        self,
        group_id: str,
        artifact_id: str,
        version: str,
        packaging: str,
    ) -> bool:
        """Return whether the artifact is visible yet."""
        key = f'{group_id}:{artifact_id}:{version}'
        self.lookups.append(key)
        if self.unreachable:
            raise ReactorKitError(E.RESOLVER_UNAVAILABLE, f'Could not query the repository for {key}')
        if key not in self._visible_after:
            return False
        seen = self.lookups.count(key)
        return seen > self._visible_after[key]

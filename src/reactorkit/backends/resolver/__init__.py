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

"""Artifact resolver protocol for reactorkit.

The rollback coordinator asks one question of the artifact repository:
*did this exact artifact get published?* Implementation:

- :class:`~reactorkit.backends.resolver.maven_repo.MavenRepositoryResolver`:
  HTTP ``HEAD`` against a Maven 2 layout repository

Remote repositories are eventually consistent. A freshly deployed
artifact may not be visible yet, so "not resolvable" means "not seen",
never "definitely absent". Keeping this behind a protocol lets tests
simulate delayed propagation.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from reactorkit.backends.resolver.maven_repo import (
    MavenRepositoryResolver as MavenRepositoryResolver,
    artifact_path as artifact_path,
)

__all__ = [
    'MavenRepositoryResolver',
    'Resolver',
    'artifact_path',
]


@runtime_checkable
class Resolver(Protocol):
    """Protocol for artifact repository queries."""

    async def is_resolvable(
        self,
        group_id: str,
        artifact_id: str,
        version: str,
        packaging: str,
    ) -> bool:
        """Return ``True`` if the artifact can be fetched from the repository.

        Raises:
            ReactorKitError: If the repository could not be queried at
                all (as opposed to answering "not found").
        """
        ...

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

"""Workspace protocol for reactorkit.

The :class:`Workspace` protocol loads the reactor's module graph and
persists new versions into project descriptors. Implementation:

- :class:`~reactorkit.backends.workspace.maven.MavenWorkspace`: ``pom.xml``
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Protocol, runtime_checkable

from reactorkit.backends.workspace._types import (
    Dependency as Dependency,
    MavenModule as MavenModule,
    coordinates as coordinates,
)
from reactorkit.backends.workspace.maven import (
    DescriptorUpdate as DescriptorUpdate,
    MavenWorkspace as MavenWorkspace,
    is_snapshot as is_snapshot,
)

__all__ = [
    'Dependency',
    'DescriptorUpdate',
    'MavenModule',
    'MavenWorkspace',
    'Workspace',
    'coordinates',
    'is_snapshot',
]


@runtime_checkable
class Workspace(Protocol):
    """Protocol for reactor discovery and descriptor rewriting."""

    async def discover(self) -> list[MavenModule]:
        """Return every module of the reactor."""
        ...

    async def scm_remote(self) -> str:
        """Return the SCM connection declared by the root descriptor, or ``''``."""
        ...

    async def rewrite_descriptor(
        self,
        module: MavenModule,
        versions: Mapping[str, str],
        *,
        check_snapshots: bool = True,
        dry_run: bool = False,
    ) -> DescriptorUpdate:
        """Persist ``versions`` into ``module``'s descriptor.

        Args:
            module: The module to rewrite.
            versions: ``groupId:artifactId`` to new version for every
                module in the reactor.
            check_snapshots: Report references to snapshot versions
                outside the reactor.
            dry_run: Compute the result without writing.

        Returns:
            Whether the file changed, and any dependency errors found.
        """
        ...

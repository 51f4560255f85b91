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

"""Per-module release decision.

A :class:`ReleasableModule` pairs a discovered
:class:`~reactorkit.backends.workspace.MavenModule` with the decision the
planner made for it::

    core   1.2-SNAPSHOT  →  1.2   build 5   released
    api    3.0-SNAPSHOT  →  3.0   build 2   skipped (unchanged since api-3.0.1)

The build number only appears in the tag name. The published artifact
version is the release version, so re-tagging never changes what gets
deployed.
"""

from __future__ import annotations

import fnmatch
from collections.abc import Iterable
from dataclasses import dataclass

from reactorkit.backends.workspace import MavenModule

_SNAPSHOT_SUFFIX = '-SNAPSHOT'


def release_version(current_version: str, *, keep_qualifier: bool = False) -> str:
    """Return the release form of ``current_version``.

    Examples::

        >>> release_version('1.2-SNAPSHOT')
        '1.2'
        >>> release_version('1.2')
        '1.2'
        >>> release_version('1.2-SNAPSHOT', keep_qualifier=True)
        '1.2-SNAPSHOT'
    """
    if keep_qualifier:
        return current_version
    if current_version.endswith(_SNAPSHOT_SUFFIX):
        return current_version[: -len(_SNAPSHOT_SUFFIX)]
    return current_version


def keeps_qualifier(artifact_id: str, patterns: Iterable[str]) -> bool:
    """Return ``True`` if ``artifact_id`` matches any ``keep_qualifier`` glob."""
    return any(fnmatch.fnmatchcase(artifact_id, pattern) for pattern in patterns)


@dataclass(frozen=True)
class ReleasableModule:
    """A module together with its release decision.

    Attributes:
        module: The discovered module.
        release_version: Version written to descriptors and published.
        build_number: Number used in the tag name only.
        will_be_released: ``False`` means the module is skipped.
        dependencies: Coordinates of in-reactor modules this one needs.
        previous_tag: Most recent release tag for this version, if any.
        reason: Short human-readable explanation of the decision.
    """

    module: MavenModule
    release_version: str
    build_number: int
    will_be_released: bool
    dependencies: tuple[str, ...] = ()
    previous_tag: str | None = None
    reason: str = ''

    @property
    def group_id(self) -> str:
        """The module's groupId."""
        return self.module.group_id

    @property
    def artifact_id(self) -> str:
        """The module's artifactId."""
        return self.module.artifact_id

    @property
    def coordinates(self) -> str:
        """``groupId:artifactId``."""
        return self.module.coordinates

    @property
    def current_version(self) -> str:
        """Version found in the descriptor before the release."""
        return self.module.version

    @property
    def new_version(self) -> str:
        """Version the release publishes."""
        return self.release_version

    @property
    def packaging(self) -> str:
        """Descriptor packaging (``jar``, ``pom``, ...)."""
        return self.module.packaging


__all__ = [
    'ReleasableModule',
    'keeps_qualifier',
    'release_version',
]

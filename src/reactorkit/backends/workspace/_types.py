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

"""Shared data types for workspace backends."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path


def coordinates(group_id: str, artifact_id: str) -> str:
    """Return the ``groupId:artifactId`` key used to address a module."""
    return f'{group_id}:{artifact_id}'


@dataclass(frozen=True)
class Dependency:
    """A reference from one descriptor to another artifact.

    Attributes:
        group_id: Referenced groupId.
        artifact_id: Referenced artifactId.
        version: Literal version text, or ``''`` when the version is
            managed elsewhere (e.g. ``<dependencyManagement>``).
    """

    group_id: str
    artifact_id: str
    version: str = ''

    @property
    def coordinates(self) -> str:
        """``groupId:artifactId`` of the referenced artifact."""
        return coordinates(self.group_id, self.artifact_id)


@dataclass(frozen=True)
class MavenModule:
    """A single module of a Maven reactor.

    Attributes:
        group_id: Effective groupId (inherited from ``<parent>`` if absent).
        artifact_id: The module's artifactId.
        version: Effective version as written (e.g. ``1.2-SNAPSHOT``).
        path: Module directory.
        pom_path: Path to the module's ``pom.xml``.
        packaging: ``<packaging>`` value, ``jar`` when absent.
        parent: The ``<parent>`` reference, if any.
        dependencies: Dependency and plugin references.
        modules: Directories of child modules (aggregators only).
    """

    group_id: str
    artifact_id: str
    version: str
    path: Path
    pom_path: Path
    packaging: str = 'jar'
    parent: Dependency | None = None
    dependencies: list[Dependency] = field(default_factory=list)
    modules: list[Path] = field(default_factory=list)

    @property
    def coordinates(self) -> str:
        """``groupId:artifactId``, the module's stable identity."""
        return coordinates(self.group_id, self.artifact_id)


__all__ = [
    'Dependency',
    'MavenModule',
    'coordinates',
]

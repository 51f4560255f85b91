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

"""VCS protocol for reactorkit.

The :class:`VCS` protocol is everything the release workflow needs from
version control. Implementation:

- :class:`~reactorkit.backends.vcs.git.GitCLIBackend`: ``git`` CLI
"""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path
from typing import Protocol, runtime_checkable

from reactorkit.backends._run import CommandResult
from reactorkit.backends.vcs.git import GitCLIBackend as GitCLIBackend, scm_url_to_remote as scm_url_to_remote

__all__ = [
    'VCS',
    'GitCLIBackend',
    'scm_url_to_remote',
]


@runtime_checkable
class VCS(Protocol):
    """Protocol for version control operations.

    All methods are async to avoid blocking the event loop when
    shelling out to ``git``.
    """

    async def is_clean(self, *, dry_run: bool = False) -> bool:
        """Return ``True`` if the working tree has no uncommitted changes.

        Args:
            dry_run: Always return ``True`` without checking.
        """
        ...

    async def tag_exists(self, tag_name: str) -> bool:
        """Return ``True`` if ``tag_name`` exists in the local repository (exact match)."""
        ...

    async def list_tags(self, *, pattern: str = '') -> list[str]:
        """Return local tags, optionally filtered by a glob pattern."""
        ...

    async def remote_tags(self, tag_names: Sequence[str]) -> list[str]:
        """Return the subset of ``tag_names`` that exist on the remote.

        One round trip for the whole batch.
        """
        ...

    async def has_changes_since(
        self,
        tag_name: str,
        paths: Sequence[str],
        *,
        exclude: Sequence[str] = (),
    ) -> bool:
        """Return ``True`` if any commit after ``tag_name`` touches ``paths``.

        Args:
            tag_name: Tag marking the previous release.
            paths: Paths (relative to the repository root) to inspect.
            exclude: Sub-paths whose changes do not count, e.g. the
                directories of child modules under an aggregator.
        """
        ...

    async def tag(
        self,
        tag_name: str,
        *,
        message: str | None = None,
        dry_run: bool = False,
    ) -> CommandResult:
        """Create an annotated tag at ``HEAD``."""
        ...

    async def push_tag(self, tag_name: str, *, dry_run: bool = False) -> CommandResult:
        """Push a single tag to the remote."""
        ...

    async def delete_tag(
        self,
        tag_name: str,
        *,
        remote: bool = False,
        dry_run: bool = False,
    ) -> CommandResult:
        """Delete a tag locally and optionally on the remote."""
        ...

    async def revert_files(self, paths: Sequence[Path], *, dry_run: bool = False) -> bool:
        """Restore ``paths`` to their committed content.

        Returns:
            ``True`` on success, including when ``paths`` is empty.
        """
        ...

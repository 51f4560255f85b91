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

"""Git VCS backend for reactorkit.

The :class:`GitCLIBackend` implements the :class:`VCS` protocol by
delegating to ``git`` via :func:`run_command`.

All methods are async. Blocking subprocess calls are dispatched to
``asyncio.to_thread()`` to avoid blocking the event loop.

Remote tag queries use ``git ls-remote --tags <remote> <refs...>`` so
that the whole proposed tag set is checked in one network round trip.
"""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from pathlib import Path

from reactorkit.backends._run import CommandResult, run_command
from reactorkit.errors import E, ReactorKitError
from reactorkit.logging import get_logger

log = get_logger('reactorkit.backends.git')

_SCM_GIT_PREFIX = 'scm:git:'


def scm_url_to_remote(scm_url: str) -> str:
    """Convert a Maven ``<scm>`` connection string into a git remote URL.

    Examples::

        >>> scm_url_to_remote('scm:git:git@github.com:acme/widgets.git')
        'git@github.com:acme/widgets.git'
        >>> scm_url_to_remote('https://github.com/acme/widgets.git')
        'https://github.com/acme/widgets.git'
    """
    url = scm_url.strip()
    if url.startswith(_SCM_GIT_PREFIX):
        return url[len(_SCM_GIT_PREFIX) :]
    return url


class GitCLIBackend:
    """Default :class:`~reactorkit.backends.vcs.VCS` implementation using ``git``.

    Args:
        repo_root: Path to the git repository root.
        remote: Remote name or URL used for remote tag queries, tag
            pushes and remote tag deletion.
    """

    def __init__(self, repo_root: Path, *, remote: str = 'origin') -> None:
        """Initialize with the repository root and remote."""
        self._root = repo_root
        self._remote = remote or 'origin'

    @property
    def remote(self) -> str:
        """The remote used for pushes and remote queries."""
        return self._remote

    def _git(self, *args: str, dry_run: bool = False) -> CommandResult:
        """Run a git command synchronously (called via to_thread)."""
        return run_command(['git', *args], cwd=self._root, dry_run=dry_run)

    async def is_clean(self, *, dry_run: bool = False) -> bool:
        """Return ``True`` if the working tree is clean."""
        if dry_run:
            return True
        result = await asyncio.to_thread(self._git, 'status', '--porcelain')
        if not result.ok:
            raise ReactorKitError(
                E.VCS_ERROR,
                'Could not determine the working tree status',
                details=result.failure_details(),
            )
        return result.stdout.strip() == ''

    async def tag_exists(self, tag_name: str) -> bool:
        """Return ``True`` if the tag exists locally."""
        result = await asyncio.to_thread(self._git, 'tag', '-l', tag_name)
        return result.stdout.strip() == tag_name

    async def list_tags(self, *, pattern: str = '') -> list[str]:
        """Return all local tags, optionally filtered by a glob pattern."""
        cmd_parts = ['tag', '--list']
        if pattern:
            cmd_parts.append(pattern)
        result = await asyncio.to_thread(self._git, *cmd_parts)
        if not result.ok or not result.stdout.strip():
            return []
        return result.stdout.strip().splitlines()

    async def remote_tags(self, tag_names: Sequence[str]) -> list[str]:
        """Return the subset of ``tag_names`` present on the remote."""
        if not tag_names:
            return []
        refs = [f'refs/tags/{name}' for name in tag_names]
        result = await asyncio.to_thread(self._git, 'ls-remote', '--tags', self._remote, *refs)
        if not result.ok:
            raise ReactorKitError(
                E.VCS_ERROR,
                f'Could not list tags on remote {self._remote}',
                details=result.failure_details(),
            )
        found: set[str] = set()
        for line in result.stdout.splitlines():
            parts = line.split()
            if len(parts) != 2:
                continue
            ref = parts[1].removesuffix('^{}')
            found.add(ref.removeprefix('refs/tags/'))
        return [name for name in tag_names if name in found]

    async def has_changes_since(
        self,
        tag_name: str,
        paths: Sequence[str],
        *,
        exclude: Sequence[str] = (),
    ) -> bool:
        """Return ``True`` if commits after ``tag_name`` touch ``paths``."""
        cmd_parts = ['log', '--pretty=format:%H', f'{tag_name}..HEAD', '--', *paths]
        cmd_parts.extend(f':(exclude){p}' for p in exclude)
        result = await asyncio.to_thread(self._git, *cmd_parts)
        if not result.ok:
            raise ReactorKitError(
                E.VCS_ERROR,
                f'Could not inspect history since {tag_name}',
                details=result.failure_details(),
            )
        return bool(result.stdout.strip())

    async def tag(
        self,
        tag_name: str,
        *,
        message: str | None = None,
        dry_run: bool = False,
    ) -> CommandResult:
        """Create an annotated tag."""
        log.info('tag', tag=tag_name)
        return await asyncio.to_thread(
            self._git,
            'tag',
            '-a',
            tag_name,
            '-m',
            message or tag_name,
            dry_run=dry_run,
        )

    async def push_tag(self, tag_name: str, *, dry_run: bool = False) -> CommandResult:
        """Push one tag to the remote."""
        log.info('push_tag', tag=tag_name, remote=self._remote)
        return await asyncio.to_thread(
            self._git,
            'push',
            self._remote,
            f'refs/tags/{tag_name}',
            dry_run=dry_run,
        )

    async def delete_tag(
        self,
        tag_name: str,
        *,
        remote: bool = False,
        dry_run: bool = False,
    ) -> CommandResult:
        """Delete a tag locally and optionally on the remote."""
        result = await asyncio.to_thread(self._git, 'tag', '-d', tag_name, dry_run=dry_run)
        if remote and result.ok:
            remote_result = await asyncio.to_thread(
                self._git,
                'push',
                self._remote,
                f':refs/tags/{tag_name}',
                dry_run=dry_run,
            )
            if not remote_result.ok:
                return remote_result
        return result

    async def revert_files(self, paths: Sequence[Path], *, dry_run: bool = False) -> bool:
        """Check out the committed content of ``paths``."""
        if not paths:
            return True
        rel_paths = [str(p.relative_to(self._root)) if p.is_absolute() else str(p) for p in paths]
        log.info('revert_files', count=len(rel_paths))
        result = await asyncio.to_thread(self._git, 'checkout', '--', *rel_paths, dry_run=dry_run)
        if not result.ok:
            return False
        if dry_run:
            return True
        # A revert only counts if the tree is clean for those paths afterwards.
        status = await asyncio.to_thread(self._git, 'status', '--porcelain', '--', *rel_paths)
        return status.ok and not status.stdout.strip()


__all__ = [
    'GitCLIBackend',
    'scm_url_to_remote',
]

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

"""Tests for the Git VCS backend.

Mocks ``_git`` to avoid real git calls.
"""

from __future__ import annotations

from pathlib import Path
from unittest.mock import call, patch

import pytest
from reactorkit.backends._run import CommandResult
from reactorkit.backends.vcs import VCS
from reactorkit.backends.vcs.git import GitCLIBackend, scm_url_to_remote
from reactorkit.errors import E, ReactorKitError


def _ok(stdout: str = '') -> CommandResult:
    return CommandResult(command=['git'], return_code=0, stdout=stdout)


def _fail(stderr: str = '') -> CommandResult:
    return CommandResult(command=['git'], return_code=1, stderr=stderr)


@pytest.fixture()
def git() -> GitCLIBackend:
    """Git backend rooted at a fake repository."""
    return GitCLIBackend(repo_root=Path('/fake/repo'), remote='upstream')


class TestScmUrlToRemote:
    """Tests for scm_url_to_remote()."""

    def test_strips_scm_prefix(self) -> None:
        """The scm:git: prefix is removed."""
        assert scm_url_to_remote('scm:git:git@github.com:acme/widgets.git') == 'git@github.com:acme/widgets.git'

    def test_plain_url(self) -> None:
        """Plain URLs pass through."""
        assert scm_url_to_remote(' https://example.com/w.git ') == 'https://example.com/w.git'


class TestProtocol:
    """GitCLIBackend satisfies the VCS protocol."""

    def test_is_vcs(self, git: GitCLIBackend) -> None:
        """Runtime protocol check."""
        assert isinstance(git, VCS)

    def test_empty_remote_defaults_to_origin(self) -> None:
        """An empty remote falls back to origin."""
        assert GitCLIBackend(Path('/r'), remote='').remote == 'origin'


class TestIsClean:
    """Tests for is_clean()."""

    @pytest.mark.asyncio()
    async def test_clean(self, git: GitCLIBackend) -> None:
        """Empty porcelain output is clean."""
        with patch.object(git, '_git', return_value=_ok(stdout='')) as m:
            assert await git.is_clean() is True
            m.assert_called_once_with('status', '--porcelain')

    @pytest.mark.asyncio()
    async def test_dirty(self, git: GitCLIBackend) -> None:
        """Any porcelain output is dirty."""
        with patch.object(git, '_git', return_value=_ok(stdout=' M pom.xml\n')):
            assert await git.is_clean() is False

    @pytest.mark.asyncio()
    async def test_failure_raises(self, git: GitCLIBackend) -> None:
        """A failing status is an error, not a verdict."""
        with patch.object(git, '_git', return_value=_fail('fatal: not a git repository')):
            with pytest.raises(ReactorKitError) as exc_info:
                await git.is_clean()
        assert exc_info.value.code == E.VCS_ERROR


class TestTags:
    """Tests for local tag queries and creation."""

    @pytest.mark.asyncio()
    async def test_tag_exists(self, git: GitCLIBackend) -> None:
        """An exact match means the tag exists."""
        with patch.object(git, '_git', return_value=_ok(stdout='core-1.2.5\n')):
            assert await git.tag_exists('core-1.2.5') is True

    @pytest.mark.asyncio()
    async def test_tag_missing(self, git: GitCLIBackend) -> None:
        """No output means no tag."""
        with patch.object(git, '_git', return_value=_ok(stdout='')):
            assert await git.tag_exists('core-1.2.5') is False

    @pytest.mark.asyncio()
    async def test_list_tags_with_pattern(self, git: GitCLIBackend) -> None:
        """The glob is passed to git tag --list."""
        with patch.object(git, '_git', return_value=_ok(stdout='core-1.2.0\ncore-1.2.1\n')) as m:
            assert await git.list_tags(pattern='core-1.2.*') == ['core-1.2.0', 'core-1.2.1']
            m.assert_called_once_with('tag', '--list', 'core-1.2.*')

    @pytest.mark.asyncio()
    async def test_annotated_tag(self, git: GitCLIBackend) -> None:
        """Tags are annotated with the given message."""
        with patch.object(git, '_git', return_value=_ok()) as m:
            result = await git.tag('core-1.2.5', message='{"version": "1.2"}')
        assert result.ok
        m.assert_called_once_with('tag', '-a', 'core-1.2.5', '-m', '{"version": "1.2"}', dry_run=False)

    @pytest.mark.asyncio()
    async def test_push_tag(self, git: GitCLIBackend) -> None:
        """One tag is pushed to the configured remote."""
        with patch.object(git, '_git', return_value=_ok()) as m:
            await git.push_tag('core-1.2.5')
        m.assert_called_once_with('push', 'upstream', 'refs/tags/core-1.2.5', dry_run=False)


class TestRemoteTags:
    """Tests for the batched remote query."""

    @pytest.mark.asyncio()
    async def test_single_round_trip(self, git: GitCLIBackend) -> None:
        """All names go into one ls-remote; peeled refs are understood."""
        stdout = 'abc\trefs/tags/web-1.2.5\ndef\trefs/tags/web-1.2.5^{}\n'
        with patch.object(git, '_git', return_value=_ok(stdout=stdout)) as m:
            found = await git.remote_tags(['core-1.2.5', 'web-1.2.5'])
        assert found == ['web-1.2.5']
        m.assert_called_once_with(
            'ls-remote',
            '--tags',
            'upstream',
            'refs/tags/core-1.2.5',
            'refs/tags/web-1.2.5',
        )

    @pytest.mark.asyncio()
    async def test_empty_input(self, git: GitCLIBackend) -> None:
        """No names means no network call."""
        with patch.object(git, '_git') as m:
            assert await git.remote_tags([]) == []
        m.assert_not_called()

    @pytest.mark.asyncio()
    async def test_failure_raises(self, git: GitCLIBackend) -> None:
        """An unreachable remote is an error, never "no collisions"."""
        with patch.object(git, '_git', return_value=_fail('fatal: could not read from remote')):
            with pytest.raises(ReactorKitError) as exc_info:
                await git.remote_tags(['core-1.2.5'])
        assert exc_info.value.details == ('fatal: could not read from remote',)


class TestHistory:
    """Tests for has_changes_since()."""

    @pytest.mark.asyncio()
    async def test_changed(self, git: GitCLIBackend) -> None:
        """Commits in range mean changed; children are excluded."""
        with patch.object(git, '_git', return_value=_ok(stdout='abc123\n')) as m:
            assert await git.has_changes_since('parent-1.0.0', ['.'], exclude=['core']) is True
        m.assert_called_once_with('log', '--pretty=format:%H', 'parent-1.0.0..HEAD', '--', '.', ':(exclude)core')

    @pytest.mark.asyncio()
    async def test_unchanged(self, git: GitCLIBackend) -> None:
        """No commits means unchanged."""
        with patch.object(git, '_git', return_value=_ok(stdout='')):
            assert await git.has_changes_since('core-1.0.0', ['core']) is False


class TestDeleteTag:
    """Tests for delete_tag()."""

    @pytest.mark.asyncio()
    async def test_local_only(self, git: GitCLIBackend) -> None:
        """Without remote=True only the local tag goes."""
        with patch.object(git, '_git', return_value=_ok()) as m:
            await git.delete_tag('core-1.2.5')
        m.assert_called_once_with('tag', '-d', 'core-1.2.5', dry_run=False)

    @pytest.mark.asyncio()
    async def test_local_and_remote(self, git: GitCLIBackend) -> None:
        """remote=True also pushes a delete refspec."""
        with patch.object(git, '_git', return_value=_ok()) as m:
            result = await git.delete_tag('core-1.2.5', remote=True)
        assert result.ok
        assert m.call_args_list == [
            call('tag', '-d', 'core-1.2.5', dry_run=False),
            call('push', 'upstream', ':refs/tags/core-1.2.5', dry_run=False),
        ]

    @pytest.mark.asyncio()
    async def test_remote_failure_returned(self, git: GitCLIBackend) -> None:
        """A failed remote delete is reported."""
        with patch.object(git, '_git', side_effect=[_ok(), _fail('remote rejected')]):
            result = await git.delete_tag('core-1.2.5', remote=True)
        assert not result.ok


class TestRevertFiles:
    """Tests for revert_files()."""

    @pytest.mark.asyncio()
    async def test_revert_then_verify(self, git: GitCLIBackend) -> None:
        """Files are checked out, then verified clean."""
        paths = [Path('/fake/repo/pom.xml'), Path('/fake/repo/core/pom.xml')]
        with patch.object(git, '_git', side_effect=[_ok(), _ok(stdout='')]) as m:
            assert await git.revert_files(paths) is True
        assert m.call_args_list[0] == call('checkout', '--', 'pom.xml', 'core/pom.xml', dry_run=False)

    @pytest.mark.asyncio()
    async def test_still_dirty(self, git: GitCLIBackend) -> None:
        """A tree still dirty after checkout is a failed revert."""
        with patch.object(git, '_git', side_effect=[_ok(), _ok(stdout=' M pom.xml\n')]):
            assert await git.revert_files([Path('/fake/repo/pom.xml')]) is False

    @pytest.mark.asyncio()
    async def test_nothing_to_revert(self, git: GitCLIBackend) -> None:
        """No paths is trivially reverted."""
        with patch.object(git, '_git') as m:
            assert await git.revert_files([]) is True
        m.assert_not_called()

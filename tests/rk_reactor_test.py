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

"""Tests for reactorkit.reactor: release plan computation."""

from __future__ import annotations

import json
from typing import Any

import pytest
from reactorkit.backends.workspace import MavenModule
from reactorkit.config import ReleaseOptions
from reactorkit.errors import E, ValidationError
from reactorkit.graph import build_graph
from reactorkit.reactor import ReleasePlan, build_release_plan

from tests._fakes import ROOT, FakeVCS, make_module


async def _plan(modules: list[MavenModule], vcs: FakeVCS | None = None, **overrides: Any) -> ReleasePlan:
    return await build_release_plan(
        build_graph(modules),
        vcs or FakeVCS(),
        ReleaseOptions(**overrides),
        root=ROOT,
    )


def _released(plan: ReleasePlan) -> list[str]:
    return [m.artifact_id for m in plan.released]


class TestFirstRelease:
    """Modules with no previous tag."""

    @pytest.mark.asyncio()
    async def test_snapshot_becomes_release(self) -> None:
        """1.2-SNAPSHOT is released as 1.2 with build number 0."""
        plan = await _plan([make_module('core', '1.2-SNAPSHOT')])
        (core,) = plan.released
        assert core.new_version == '1.2'
        assert core.current_version == '1.2-SNAPSHOT'
        assert core.build_number == 0
        assert core.reason == 'first release'
        assert core.previous_tag is None

    @pytest.mark.asyncio()
    async def test_explicit_build_number(self) -> None:
        """An explicit build number is used as given."""
        plan = await _plan([make_module('core', '1.2-SNAPSHOT')], build_number=5)
        assert plan.released[0].build_number == 5

    @pytest.mark.asyncio()
    async def test_keep_qualifier(self) -> None:
        """Matching modules keep their qualifier."""
        plan = await _plan([make_module('core', '1.2-SNAPSHOT')], keep_qualifier=('co*',))
        assert plan.released[0].new_version == '1.2-SNAPSHOT'

    @pytest.mark.asyncio()
    async def test_topological_order(self) -> None:
        """Dependencies always come before their dependents."""
        modules = [
            make_module('web', deps=['api']),
            make_module('api', deps=['core']),
            make_module('core'),
        ]
        plan = await _plan(modules)
        assert [m.artifact_id for m in plan.modules] == ['core', 'api', 'web']
        assert plan.find('api') is not None
        assert plan.find('api').dependencies == ('com.acme:core',)  # type: ignore[union-attr]

    @pytest.mark.asyncio()
    async def test_cycle_rejected(self) -> None:
        """A dependency cycle stops planning."""
        with pytest.raises(ValidationError) as exc_info:
            await _plan([make_module('a', deps=['b']), make_module('b', deps=['a'])])
        assert exc_info.value.code == E.GRAPH_CYCLE_DETECTED


class TestIncremental:
    """Change detection against previous release tags."""

    @pytest.mark.asyncio()
    async def test_nothing_changed_is_empty(self) -> None:
        """B depends on A, neither changed: nothing is released."""
        vcs = FakeVCS(tags={'a-1.0.0', 'b-1.0.0'})
        plan = await _plan([make_module('a'), make_module('b', deps=['a'])], vcs)
        assert plan.is_empty
        assert [m.reason for m in plan.modules] == ['unchanged since a-1.0.0', 'unchanged since b-1.0.0']

    @pytest.mark.asyncio()
    async def test_change_propagates_to_dependents(self) -> None:
        """Releasing A releases B, which depends on it."""
        vcs = FakeVCS(tags={'a-1.0.0', 'b-1.0.0'}, changed_paths={'a'})
        plan = await _plan([make_module('a'), make_module('b', deps=['a'])], vcs)
        assert _released(plan) == ['a', 'b']
        assert plan.find('b').reason == 'dependency a released'  # type: ignore[union-attr]

    @pytest.mark.asyncio()
    async def test_change_does_not_propagate_upwards(self) -> None:
        """Releasing B leaves A alone; B's descriptor keeps A's release version."""
        vcs = FakeVCS(tags={'a-1.0.0', 'b-1.0.0'}, changed_paths={'b'})
        plan = await _plan([make_module('a'), make_module('b', deps=['a'])], vcs)
        assert _released(plan) == ['b']
        assert plan.versions() == {'com.acme:a': '1.0', 'com.acme:b': '1.0'}

    @pytest.mark.asyncio()
    async def test_next_build_number(self) -> None:
        """A changed module gets the number after its last release."""
        vcs = FakeVCS(tags={'a-1.0.0', 'a-1.0.1'}, changed_paths={'a'})
        plan = await _plan([make_module('a')], vcs)
        (a,) = plan.released
        assert (a.build_number, a.previous_tag) == (2, 'a-1.0.1')
        assert a.reason == 'changed since a-1.0.1'

    @pytest.mark.asyncio()
    async def test_skips_number_taken_on_remote(self) -> None:
        """A build number already used on the remote is skipped."""
        vcs = FakeVCS(tags={'a-1.0.0'}, remote_tags={'a-1.0.1'}, changed_paths={'a'})
        plan = await _plan([make_module('a')], vcs)
        assert plan.released[0].build_number == 2

    @pytest.mark.asyncio()
    async def test_unreleased_keeps_last_build_number(self) -> None:
        """A skipped module reports its last build number."""
        vcs = FakeVCS(tags={'a-1.0.3'})
        plan = await _plan([make_module('a')], vcs)
        assert plan.modules[0].build_number == 3

    @pytest.mark.asyncio()
    async def test_aggregator_excludes_children(self) -> None:
        """A parent at the root is checked without its child directories."""
        parent = make_module('parent', packaging='pom', path=ROOT, children=[ROOT / 'core'])
        core = make_module('core', parent='parent')
        vcs = FakeVCS(tags={'parent-1.0.0', 'core-1.0.0'})
        await _plan([parent, core], vcs)
        assert ('parent-1.0.0', ['.'], ['core']) in vcs.history_queries
        assert ('core-1.0.0', ['core'], []) in vcs.history_queries

    @pytest.mark.asyncio()
    async def test_full_release(self) -> None:
        """Disabling incremental releases every module."""
        vcs = FakeVCS(tags={'a-1.0.0'})
        plan = await _plan([make_module('a')], vcs, incremental=False)
        assert _released(plan) == ['a']
        assert plan.released[0].reason == 'full release'
        assert vcs.history_queries == []


class TestNoChangesAction:
    """What happens when incremental detection finds nothing."""

    @pytest.mark.asyncio()
    async def test_fail(self) -> None:
        """no_changes_action = fail raises."""
        vcs = FakeVCS(tags={'a-1.0.0'})
        with pytest.raises(ValidationError) as exc_info:
            await _plan([make_module('a')], vcs, no_changes_action='fail')
        assert exc_info.value.code == E.NO_CHANGES

    @pytest.mark.asyncio()
    async def test_release_all(self) -> None:
        """no_changes_action = release-all releases everything."""
        vcs = FakeVCS(tags={'a-1.0.0', 'b-1.0.0'})
        plan = await _plan([make_module('a'), make_module('b')], vcs, no_changes_action='release-all')
        assert _released(plan) == ['a', 'b']
        assert {m.build_number for m in plan.released} == {1}


class TestSelection:
    """Explicit module subsets and forced modules."""

    @pytest.mark.asyncio()
    async def test_subset(self) -> None:
        """Modules outside the subset are not requested."""
        vcs = FakeVCS(tags={'a-1.0.0'})
        plan = await _plan([make_module('a'), make_module('b')], vcs, modules_to_release=('b',))
        assert _released(plan) == ['b']
        assert plan.find('a').reason == 'not requested'  # type: ignore[union-attr]

    @pytest.mark.asyncio()
    async def test_forced(self) -> None:
        """A forced module is released even when unchanged."""
        vcs = FakeVCS(tags={'a-1.0.0', 'b-1.0.0'})
        plan = await _plan(
            [make_module('a'), make_module('b')],
            vcs,
            modules_to_force_release=('com.acme:a',),
        )
        assert _released(plan) == ['a']
        assert plan.released[0].reason == 'forced'

    @pytest.mark.asyncio()
    async def test_unknown_module(self) -> None:
        """Unknown names are reported together."""
        with pytest.raises(ValidationError) as exc_info:
            await _plan([make_module('a')], modules_to_release=('nope',), modules_to_force_release=('gone',))
        assert exc_info.value.code == E.UNKNOWN_MODULE
        assert exc_info.value.details == (' * nope', ' * gone')

    @pytest.mark.asyncio()
    async def test_unreleased_dependency(self) -> None:
        """Releasing B alone fails when A has never been released."""
        with pytest.raises(ValidationError) as exc_info:
            await _plan([make_module('a'), make_module('b', deps=['a'])], modules_to_release=('b',))
        err = exc_info.value
        assert err.code == E.UNRELEASED_DEPENDENCY
        assert err.details == (
            ' * b requires a 1.0, which is not being released and has never been released',
        )


class TestFormatting:
    """Table and JSON rendering of a plan."""

    @pytest.mark.asyncio()
    async def test_table(self) -> None:
        """The table lists each module and a totals line."""
        vcs = FakeVCS(tags={'a-1.0.0'})
        plan = await _plan([make_module('a'), make_module('b')], vcs)
        table = plan.format_table()
        assert 'b' in table
        assert table.splitlines()[-1] == 'Total: 2 modules (1 released, 1 skipped)'

    def test_empty_table(self) -> None:
        """An empty plan says so."""
        assert ReleasePlan().format_table() == 'No modules in the reactor.'

    @pytest.mark.asyncio()
    async def test_json(self) -> None:
        """JSON output carries the summary and per-module decisions."""
        plan = await _plan([make_module('a', '2.0-SNAPSHOT')], build_number=7)
        data = json.loads(plan.format_json())
        assert data['summary'] == {'released': 1, 'skipped': 0}
        (entry,) = data['modules']
        assert entry['new_version'] == '2.0'
        assert entry['build_number'] == 7
        assert entry['will_be_released'] is True

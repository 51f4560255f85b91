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

"""Release planning: which modules to release, in what order, at what version.

Key Concepts (ELI5)::

    ┌─────────────────────────┬─────────────────────────────────────────────┐
    │ Concept                 │ Plain-English                               │
    ├─────────────────────────┼─────────────────────────────────────────────┤
    │ ReleasePlan             │ Every reactor module in build order, each  │
    │                         │ marked "release" or "skip".                 │
    ├─────────────────────────┼─────────────────────────────────────────────┤
    │ Incremental             │ A module whose files have not changed since │
    │                         │ its last release tag is skipped.            │
    ├─────────────────────────┼─────────────────────────────────────────────┤
    │ Propagation             │ If core is released, everything that needs │
    │                         │ core is released too: its pom.xml will     │
    │                         │ point at the new core version.              │
    ├─────────────────────────┼─────────────────────────────────────────────┤
    │ Build number search     │ Start above the last release's number and  │
    │                         │ walk up until no tag exists anywhere.       │
    └─────────────────────────┴─────────────────────────────────────────────┘

Decision order for each module (first match wins)::

    not in modules_to_release (when given)   → skip     "not requested"
    in modules_to_force_release              → release  "forced"
    incremental disabled                     → release  "full release"
    no previous release tag                  → release  "first release"
    files changed since previous tag         → release  "changed since <tag>"
    an in-reactor dependency is released     → release  "dependency <x> released"
    otherwise                                → skip     "unchanged since <tag>"

Planning has no side effects: it only reads tags and history.
"""

from __future__ import annotations

import json
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path

from reactorkit.backends.vcs import VCS
from reactorkit.config import ReleaseOptions
from reactorkit.errors import E, ValidationError
from reactorkit.graph import ModuleGraph, build_order
from reactorkit.logging import get_logger
from reactorkit.module import ReleasableModule, keeps_qualifier, release_version
from reactorkit.tags import TagPlanner

logger = get_logger(__name__)


@dataclass(frozen=True)
class ReleasePlan:
    """The ordered, validated set of modules for one release run.

    Attributes:
        modules: Every reactor module in topological order. A module
            always precedes the modules that depend on it.
        edges: ``groupId:artifactId`` to the coordinates it depends on.
    """

    modules: tuple[ReleasableModule, ...] = ()
    edges: dict[str, tuple[str, ...]] = field(default_factory=dict)

    @property
    def released(self) -> list[ReleasableModule]:
        """Modules that will be released, in plan order."""
        return [m for m in self.modules if m.will_be_released]

    @property
    def skipped(self) -> list[ReleasableModule]:
        """Modules that will not be released."""
        return [m for m in self.modules if not m.will_be_released]

    @property
    def is_empty(self) -> bool:
        """``True`` when there is nothing to release."""
        return not self.released

    def find(self, name: str) -> ReleasableModule | None:
        """Look up a module by ``groupId:artifactId`` or artifactId."""
        for module in self.modules:
            if name in (module.coordinates, module.artifact_id):
                return module
        return None

    def versions(self) -> dict[str, str]:
        """Map every module's coordinates to the version written to descriptors."""
        return {m.coordinates: m.new_version for m in self.modules}

    def summary(self) -> dict[str, int]:
        """Return counts of released and skipped modules."""
        return {'released': len(self.released), 'skipped': len(self.skipped)}

    def format_table(self) -> str:
        """Format the plan as a human-readable table."""
        if not self.modules:
            return 'No modules in the reactor.'

        headers = ['', 'Module', 'Current', 'Release', 'Build', 'Reason']
        rows = [
            [
                '📦' if m.will_be_released else '⏭️',
                m.artifact_id,
                m.current_version,
                m.new_version,
                str(m.build_number) if m.will_be_released else '-',
                m.reason,
            ]
            for m in self.modules
        ]
        widths = [len(h) for h in headers]
        for row in rows:
            for i, cell in enumerate(row):
                widths[i] = max(widths[i], len(cell))

        fmt = '  '.join(f'{{:<{w}}}' for w in widths)
        lines = [fmt.format(*headers), fmt.format(*('─' * w for w in widths))]
        lines.extend(fmt.format(*row) for row in rows)
        lines.append('')
        summary = self.summary()
        lines.append(f'Total: {len(self.modules)} modules ({summary["released"]} released, {summary["skipped"]} skipped)')
        return '\n'.join(lines)

    def format_json(self) -> str:
        """Format the plan as machine-readable JSON."""
        data = {
            'summary': self.summary(),
            'modules': [
                {
                    'group_id': m.group_id,
                    'artifact_id': m.artifact_id,
                    'current_version': m.current_version,
                    'new_version': m.new_version,
                    'build_number': m.build_number,
                    'will_be_released': m.will_be_released,
                    'previous_tag': m.previous_tag,
                    'dependencies': list(m.dependencies),
                    'reason': m.reason,
                }
                for m in self.modules
            ],
        }
        return json.dumps(data, indent=2)


def _resolve_names(graph: ModuleGraph, names: Iterable[str]) -> tuple[set[str], list[str]]:
    """Map artifactIds or coordinates to coordinates, collecting unknowns."""
    found: set[str] = set()
    unknown: list[str] = []
    for name in names:
        module = graph.find(name)
        if module is None:
            unknown.append(name)
        else:
            found.add(module.coordinates)
    return found, unknown


def _relative(path: Path, root: Path) -> str:
    try:
        rel = path.resolve().relative_to(root.resolve())
    except ValueError:
        return str(path)
    return rel.as_posix() or '.'


@dataclass
class _Decision:
    release: bool
    reason: str
    version: str
    previous: dict[int, str]

    @property
    def previous_tag(self) -> str | None:
        return self.previous[max(self.previous)] if self.previous else None


async def build_release_plan(
    graph: ModuleGraph,
    vcs: VCS,
    options: ReleaseOptions,
    *,
    root: Path,
    tag_planner: TagPlanner | None = None,
) -> ReleasePlan:
    """Compute the release plan for ``graph``.

    Args:
        graph: The reactor's module graph.
        vcs: Version control backend, used read-only.
        options: Release options.
        root: Reactor root, used to express module paths for history queries.
        tag_planner: Tag planner used for previous-tag lookup and the
            build-number search. Built from ``options`` when omitted.

    Returns:
        A :class:`ReleasePlan` in topological order. It may have no
        released modules.

    Raises:
        ValidationError: On a dependency cycle, an unknown requested
            module, an unreleased dependency, an exhausted build-number
            search, or ``no_changes_action = "fail"`` with nothing changed.
    """
    planner = tag_planner or TagPlanner(vcs, tag_format=options.tag_format)
    order = build_order(graph)

    subset, unknown = _resolve_names(graph, options.modules_to_release)
    forced, unknown_forced = _resolve_names(graph, options.modules_to_force_release)
    unknown.extend(n for n in unknown_forced if n not in unknown)
    if unknown:
        raise ValidationError(
            E.UNKNOWN_MODULE,
            'Some of the requested modules are not part of this reactor.',
            hint=f'Known modules: {", ".join(sorted(m.artifact_id for m in graph.modules.values()))}',
            details=[f' * {name}' for name in unknown],
        )

    decisions: dict[str, _Decision] = {}
    for module in order:
        coords = module.coordinates
        version = release_version(
            module.version,
            keep_qualifier=keeps_qualifier(module.artifact_id, options.keep_qualifier),
        )
        previous = await planner.previous_build_numbers(
            artifact_id=module.artifact_id,
            group_id=module.group_id,
            version=version,
        )
        decision = _Decision(release=False, reason='', version=version, previous=previous)
        decisions[coords] = decision

        if subset and coords not in subset:
            decision.reason = 'not requested'
        elif coords in forced:
            decision.release, decision.reason = True, 'forced'
        elif not options.incremental:
            decision.release, decision.reason = True, 'full release'
        elif decision.previous_tag is None:
            decision.release, decision.reason = True, 'first release'
        elif await vcs.has_changes_since(
            decision.previous_tag,
            [_relative(module.path, root)],
            exclude=[_relative(child, root) for child in module.modules],
        ):
            decision.release, decision.reason = True, f'changed since {decision.previous_tag}'
        else:
            released_dep = next((d for d in graph.edges[coords] if decisions[d].release), None)
            if released_dep is not None:
                decision.release = True
                decision.reason = f'dependency {graph.modules[released_dep].artifact_id} released'
            else:
                decision.reason = f'unchanged since {decision.previous_tag}'

    if options.incremental and not any(d.release for d in decisions.values()):
        logger.info('no_changes_detected', action=options.no_changes_action)
        if options.no_changes_action == 'fail':
            raise ValidationError(
                E.NO_CHANGES,
                'No module has changed since its last release.',
                hint='Force a module with --force-module, or set no_changes_action.',
            )
        if options.no_changes_action == 'release-all':
            for coords, decision in decisions.items():
                if not subset or coords in subset:
                    decision.release, decision.reason = True, 'no changes; releasing all'

    _check_unreleased_dependencies(graph, decisions)

    modules: list[ReleasableModule] = []
    for module in order:
        decision = decisions[module.coordinates]
        if not decision.release:
            build_number = max(decision.previous) if decision.previous else 0
        elif options.build_number is not None:
            build_number = options.build_number
        else:
            start = max(decision.previous) + 1 if decision.previous else 0
            build_number = await planner.next_free_build_number(
                artifact_id=module.artifact_id,
                group_id=module.group_id,
                version=decision.version,
                start=start,
                max_attempts=options.max_build_number_attempts,
            )
        modules.append(
            ReleasableModule(
                module=module,
                release_version=decision.version,
                build_number=build_number,
                will_be_released=decision.release,
                dependencies=tuple(graph.edges[module.coordinates]),
                previous_tag=decision.previous_tag,
                reason=decision.reason,
            )
        )

    plan = ReleasePlan(
        modules=tuple(modules),
        edges={coords: tuple(deps) for coords, deps in graph.edges.items()},
    )
    logger.info('release_plan_built', **plan.summary())
    return plan


def _check_unreleased_dependencies(graph: ModuleGraph, decisions: dict[str, _Decision]) -> None:
    """Reject released modules that need an in-reactor module never published."""
    problems: list[str] = []
    for coords, decision in decisions.items():
        if not decision.release:
            continue
        for dep in graph.edges[coords]:
            dep_decision = decisions[dep]
            if dep_decision.release or dep_decision.previous_tag is not None:
                continue
            problems.append(
                f' * {graph.modules[coords].artifact_id} requires {graph.modules[dep].artifact_id} '
                f'{dep_decision.version}, which is not being released and has never been released'
            )
    if problems:
        raise ValidationError(
            E.UNRELEASED_DEPENDENCY,
            'Cannot release modules that depend on unreleased modules.',
            details=problems,
        )


__all__ = [
    'ReleasePlan',
    'build_release_plan',
]

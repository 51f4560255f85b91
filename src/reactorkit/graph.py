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

"""Module graph operations for a Maven reactor.

Key Concepts (ELI5)::

    ┌─────────────────────────┬─────────────────────────────────────────────┐
    │ Concept                 │ ELI5 Explanation                            │
    ├─────────────────────────┼─────────────────────────────────────────────┤
    │ Arena                   │ Modules live in one dict keyed by their    │
    │                         │ "groupId:artifactId". Edges are lists of   │
    │                         │ those keys, never object references.       │
    ├─────────────────────────┼─────────────────────────────────────────────┤
    │ Edge                    │ "core-http needs core": an arrow from the  │
    │                         │ dependent to the dependency. A <parent>    │
    │                         │ that is in the reactor is an edge too.     │
    ├─────────────────────────┼─────────────────────────────────────────────┤
    │ Build order             │ Every module after everything it needs.    │
    │                         │ Like baking the cake before frosting it.   │
    ├─────────────────────────┼─────────────────────────────────────────────┤
    │ Cycle                   │ A→B→A. No valid build order exists, so it  │
    │                         │ is reported before anything is changed.    │
    └─────────────────────────┴─────────────────────────────────────────────┘

Edge direction::

    edges["com.acme:plugin-http"]         = ["com.acme:core", "com.acme:parent"]
    reverse_edges["com.acme:core"]        = ["com.acme:plugin-http"]

Usage::

    from reactorkit.graph import build_graph, build_order

    graph = build_graph(await workspace.discover())
    for module in build_order(graph):
        print(module.artifact_id)
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field

from reactorkit.backends.workspace import MavenModule
from reactorkit.errors import E, ValidationError
from reactorkit.logging import get_logger

logger = get_logger(__name__)


@dataclass
class ModuleGraph:
    """A directed graph of in-reactor module references.

    Attributes:
        modules: Mapping from ``groupId:artifactId`` to :class:`MavenModule`.
        edges: Forward adjacency list (dependent → its dependencies).
        reverse_edges: Reverse adjacency list (dependency → its dependents).
    """

    modules: dict[str, MavenModule] = field(default_factory=dict)
    edges: dict[str, list[str]] = field(default_factory=dict)
    reverse_edges: dict[str, list[str]] = field(default_factory=dict)

    def __len__(self) -> int:
        """Return the number of modules in the graph."""
        return len(self.modules)

    def find(self, name: str) -> MavenModule | None:
        """Look up a module by ``groupId:artifactId`` or bare ``artifactId``."""
        if name in self.modules:
            return self.modules[name]
        matches = [m for m in self.modules.values() if m.artifact_id == name]
        return matches[0] if len(matches) == 1 else None


def build_graph(modules: list[MavenModule]) -> ModuleGraph:
    """Build the module graph.

    Only references to modules inside the reactor become edges;
    external dependencies are ignored.

    Args:
        modules: Modules from :meth:`Workspace.discover`.

    Returns:
        A :class:`ModuleGraph` with forward and reverse edges.
    """
    graph = ModuleGraph()
    for module in modules:
        graph.modules[module.coordinates] = module
        graph.edges[module.coordinates] = []
        graph.reverse_edges[module.coordinates] = []

    for module in modules:
        refs = ([module.parent] if module.parent else []) + module.dependencies
        for ref in refs:
            dep = ref.coordinates
            if dep not in graph.modules or dep == module.coordinates:
                continue
            if dep in graph.edges[module.coordinates]:
                continue
            graph.edges[module.coordinates].append(dep)
            graph.reverse_edges[dep].append(module.coordinates)

    # Sort for deterministic output.
    for deps in graph.edges.values():
        deps.sort()
    for dependents in graph.reverse_edges.values():
        dependents.sort()

    logger.debug(
        'built_module_graph',
        modules=len(modules),
        edges=sum(len(deps) for deps in graph.edges.values()),
    )
    return graph


def detect_cycles(graph: ModuleGraph) -> list[list[str]]:
    """Detect cycles in the module graph using DFS.

    Returns:
        Each cycle as a list of coordinates that starts and ends with
        the same module. Empty if the graph is acyclic.
    """
    _white, _gray, _black = 0, 1, 2
    color: dict[str, int] = dict.fromkeys(graph.modules, _white)
    parent: dict[str, str | None] = dict.fromkeys(graph.modules)
    cycles: list[list[str]] = []

    def _dfs(node: str) -> None:
        color[node] = _gray
        for neighbor in graph.edges.get(node, []):
            if color[neighbor] == _gray:
                cycle = [neighbor]
                current = node
                while current != neighbor:
                    cycle.append(current)
                    p = parent.get(current)
                    if p is None:
                        break
                    current = p
                cycle.append(neighbor)
                cycle.reverse()
                cycles.append(cycle)
            elif color[neighbor] == _white:
                parent[neighbor] = node
                _dfs(neighbor)
        color[node] = _black

    for name in sorted(graph.modules):
        if color[name] == _white:
            _dfs(name)

    if cycles:
        logger.warning('cycles_detected', count=len(cycles))
    return cycles


def topo_sort(graph: ModuleGraph) -> list[list[MavenModule]]:
    """Topological sort with level grouping (Kahn's algorithm).

    Level 0 holds modules with no in-reactor dependencies, level 1
    holds modules that depend only on level 0, and so on.

    Raises:
        ValidationError: If the graph contains a cycle. Every cycle is
            listed in the error details.
    """
    in_degree = {name: len(graph.edges[name]) for name in graph.modules}
    queue: deque[str] = deque(name for name in sorted(graph.modules) if in_degree[name] == 0)

    levels: list[list[MavenModule]] = []
    processed = 0

    while queue:
        level_names = sorted(queue)
        queue.clear()
        levels.append([graph.modules[name] for name in level_names])
        processed += len(level_names)

        for name in level_names:
            for dependent in graph.reverse_edges.get(name, []):
                in_degree[dependent] -= 1
                if in_degree[dependent] == 0:
                    queue.append(dependent)

    if processed != len(graph.modules):
        cycles = detect_cycles(graph)
        raise ValidationError(
            E.GRAPH_CYCLE_DETECTED,
            'Circular dependencies between reactor modules',
            hint='Remove the circular references between these modules.',
            details=[' * ' + ' → '.join(c) for c in cycles],
        )

    logger.debug('topo_sort_complete', levels=len(levels), modules=processed)
    return levels


def build_order(graph: ModuleGraph) -> list[MavenModule]:
    """Flatten :func:`topo_sort` levels into a single build order."""
    return [module for level in topo_sort(graph) for module in level]


__all__ = [
    'ModuleGraph',
    'build_graph',
    'build_order',
    'detect_cycles',
    'topo_sort',
]

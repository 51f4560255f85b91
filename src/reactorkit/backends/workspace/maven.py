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

"""Maven workspace backend for reactorkit.

The :class:`MavenWorkspace` implements the
:class:`~reactorkit.backends.workspace.Workspace` protocol for Maven
multi-module reactors::

    widgets/
    ├── pom.xml              ← aggregator (packaging pom, lists <modules>)
    ├── core/
    │   └── pom.xml          ← com.acme:core
    └── plugins/
        ├── pom.xml          ← nested aggregator
        └── http/
            └── pom.xml      ← com.acme:plugin-http (depends on core)

Loading uses :mod:`xml.etree.ElementTree`. Rewriting never round-trips
the XML through ElementTree, which would lose comments, namespace
prefixes and formatting. Instead a small tag scanner records the exact
character span of every ``<version>`` that belongs to the project, its
``<parent>``, or a ``<dependency>``/``<plugin>``/``<extension>`` block,
and only those spans are replaced::

    <dependency>
      <groupId>com.acme</groupId>
      <artifactId>core</artifactId>
      <version>1.2-SNAPSHOT</version>     ← span [start, end) replaced by 1.2
    </dependency>

A ``${property}`` version on an in-reactor reference is followed to the
``<properties>`` entry, which is rewritten instead.
"""

from __future__ import annotations

import re
import xml.etree.ElementTree as ET  # noqa: N817, S405
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

from reactorkit.backends.workspace._io import read_file, write_file
from reactorkit.backends.workspace._types import Dependency, MavenModule, coordinates
from reactorkit.errors import E, ReactorKitError
from reactorkit.logging import get_logger

log = get_logger('reactorkit.backends.workspace.maven')

# Maven POM namespace.
_POM_NS = '{http://maven.apache.org/POM/4.0.0}'

_SNAPSHOT_SUFFIX = '-SNAPSHOT'
_DEFAULT_PLUGIN_GROUP = 'org.apache.maven.plugins'
_MAX_PROPERTY_DEPTH = 10

_PROPERTY_RE = re.compile(r'\$\{([^}]+)\}')
_COMMENT_RE = re.compile(r'<!--.*?-->|<!\[CDATA\[.*?\]\]>', re.DOTALL)
_TAG_RE = re.compile(r'<(/?)([A-Za-z_][\w.:-]*)(?:\s[^>]*?)?(/?)>')

# Elements whose direct children the rewriter needs to see.
_BLOCK_TAGS = frozenset({'project', 'parent', 'properties', 'dependency', 'plugin', 'extension'})
_REFERENCE_TAGS = frozenset({'dependency', 'plugin', 'extension'})


def is_snapshot(version: str) -> bool:
    """Return ``True`` for Maven pre-release (``-SNAPSHOT``) versions."""
    return version.endswith(_SNAPSHOT_SUFFIX)


def _child(elem: ET.Element, tag: str) -> ET.Element | None:
    """Find a direct child with or without the POM namespace."""
    found = elem.find(f'{_POM_NS}{tag}')
    if found is None:
        found = elem.find(tag)
    return found


def _children(elem: ET.Element | None, tag: str) -> list[ET.Element]:
    if elem is None:
        return []
    return elem.findall(f'{_POM_NS}{tag}') + elem.findall(tag)


def _text(elem: ET.Element | None, tag: str) -> str:
    if elem is None:
        return ''
    child = _child(elem, tag)
    return child.text.strip() if child is not None and child.text else ''


def _local_name(tag: str) -> str:
    return tag.rsplit('}', 1)[-1]


def _resolve(value: str, props: Mapping[str, str]) -> str:
    """Expand ``${...}`` references, leaving unknown ones in place."""
    for _ in range(_MAX_PROPERTY_DEPTH):
        expanded = _PROPERTY_RE.sub(lambda m: props.get(m.group(1), m.group(0)), value)
        if expanded == value:
            break
        value = expanded
    return value


def parse_pom(text: str, pom_path: Path) -> MavenModule:
    """Parse a POM into a :class:`MavenModule`.

    ``groupId`` and ``version`` are inherited from ``<parent>`` when the
    project omits them. Dependency and plugin versions are expanded
    against ``<properties>`` and the usual ``project.*`` built-ins.

    Raises:
        ReactorKitError: If the file is not well-formed XML or has no
            ``artifactId``.
    """
    try:
        root = ET.fromstring(text)  # noqa: S314
    except ET.ParseError as exc:
        raise ReactorKitError(
            E.WORKSPACE_PARSE_ERROR,
            f'Failed to parse {pom_path}: {exc}',
        ) from exc

    parent_elem = _child(root, 'parent')
    parent: Dependency | None = None
    if parent_elem is not None:
        parent = Dependency(
            group_id=_text(parent_elem, 'groupId'),
            artifact_id=_text(parent_elem, 'artifactId'),
            version=_text(parent_elem, 'version'),
        )

    artifact_id = _text(root, 'artifactId')
    if not artifact_id:
        raise ReactorKitError(
            E.WORKSPACE_PARSE_ERROR,
            f'{pom_path} has no <artifactId>',
        )
    group_id = _text(root, 'groupId') or (parent.group_id if parent else '')
    version = _text(root, 'version') or (parent.version if parent else '')

    props: dict[str, str] = {}
    props_elem = _child(root, 'properties')
    if props_elem is not None:
        for prop in props_elem:
            if isinstance(prop.tag, str):
                props[_local_name(prop.tag)] = (prop.text or '').strip()
    builtins = {
        'project.groupId': group_id,
        'project.artifactId': artifact_id,
        'project.version': version,
        'pom.version': version,
        'version': version,
    }
    if parent is not None:
        builtins['project.parent.version'] = parent.version
        builtins['parent.version'] = parent.version
        builtins['project.parent.groupId'] = parent.group_id
    props.update(builtins)

    def _ref(elem: ET.Element, default_group: str = '') -> Dependency:
        return Dependency(
            group_id=_resolve(_text(elem, 'groupId') or default_group, props),
            artifact_id=_resolve(_text(elem, 'artifactId'), props),
            version=_resolve(_text(elem, 'version'), props),
        )

    dependencies: list[Dependency] = []
    dep_mgmt = _child(root, 'dependencyManagement')
    for deps_elem in (_child(root, 'dependencies'), _child(dep_mgmt, 'dependencies') if dep_mgmt is not None else None):
        dependencies.extend(_ref(dep) for dep in _children(deps_elem, 'dependency'))

    build = _child(root, 'build')
    if build is not None:
        plugin_mgmt = _child(build, 'pluginManagement')
        plugin_containers = [_child(build, 'plugins')]
        if plugin_mgmt is not None:
            plugin_containers.append(_child(plugin_mgmt, 'plugins'))
        for plugins_elem in plugin_containers:
            for plugin in _children(plugins_elem, 'plugin'):
                dependencies.append(_ref(plugin, _DEFAULT_PLUGIN_GROUP))
                dependencies.extend(_ref(dep) for dep in _children(_child(plugin, 'dependencies'), 'dependency'))
        dependencies.extend(_ref(ext) for ext in _children(_child(build, 'extensions'), 'extension'))

    module_dirs: list[Path] = []
    for mod in _children(_child(root, 'modules'), 'module'):
        if mod.text and mod.text.strip():
            target = (pom_path.parent / mod.text.strip()).resolve()
            module_dirs.append(target.parent if target.suffix == '.xml' else target)

    return MavenModule(
        group_id=group_id,
        artifact_id=artifact_id,
        version=version,
        path=pom_path.parent,
        pom_path=pom_path,
        packaging=_text(root, 'packaging') or 'jar',
        parent=parent,
        dependencies=dependencies,
        modules=module_dirs,
    )


def parse_scm_connection(text: str) -> str:
    """Return ``<scm><developerConnection>`` (else ``<connection>``), or ``''``."""
    try:
        root = ET.fromstring(text)  # noqa: S314
    except ET.ParseError:
        return ''
    scm = _child(root, 'scm')
    return _text(scm, 'developerConnection') or _text(scm, 'connection')


@dataclass
class _Field:
    """Raw text span of a leaf element's content."""

    text: str
    start: int
    end: int


@dataclass
class _Block:
    """A block element and the spans of its direct leaf children."""

    path: tuple[str, ...]
    fields: dict[str, _Field] = field(default_factory=dict)

    def value(self, name: str) -> str:
        f = self.fields.get(name)
        return f.text.strip() if f else ''


def _scan_blocks(text: str) -> list[_Block]:
    """Record every block element of interest with its children's spans."""
    # Blank out comments and CDATA so commented-out XML is never matched;
    # lengths are kept so offsets stay valid against the original text.
    masked = _COMMENT_RE.sub(lambda m: ' ' * len(m.group(0)), text)
    stack: list[tuple[str, int]] = []
    open_blocks: list[_Block] = []
    blocks: list[_Block] = []

    for m in _TAG_RE.finditer(masked):
        closing, name, self_closing = m.group(1) == '/', m.group(2), m.group(3) == '/'
        if self_closing:
            continue
        if not closing:
            stack.append((name, m.end()))
            if name in _BLOCK_TAGS:
                block = _Block(path=tuple(n for n, _ in stack))
                open_blocks.append(block)
                blocks.append(block)
            continue

        while stack and stack[-1][0] != name:
            stack.pop()
        if not stack:
            continue
        _, content_start = stack.pop()
        if open_blocks and open_blocks[-1].path == (*(n for n, _ in stack), name):
            open_blocks.pop()
        elif open_blocks and len(open_blocks[-1].path) == len(stack):
            open_blocks[-1].fields[name] = _Field(
                text=text[content_start : m.start()],
                start=content_start,
                end=m.start(),
            )
    return blocks


def _replacement(f: _Field, new_value: str) -> tuple[int, int, str]:
    """Return a splice that swaps ``f``'s value, keeping its padding."""
    stripped = f.text.strip()
    lead = len(f.text) - len(f.text.lstrip())
    start = f.start + lead
    return start, start + len(stripped), new_value


def rewrite_pom_text(text: str, module: MavenModule, versions: Mapping[str, str]) -> str:
    """Return ``text`` with reactor versions applied.

    Rewrites the project version, the parent version when the parent
    is in the reactor, and the version of every in-reactor dependency,
    plugin or extension reference. Everything else is left byte-for-byte
    untouched.

    Args:
        text: Original POM text.
        module: The parsed module (for groupId/version inheritance).
        versions: ``groupId:artifactId`` to new version, for every
            module of the reactor.
    """
    blocks = _scan_blocks(text)
    project = next((b for b in blocks if b.path == ('project',)), None)
    properties = next((b for b in blocks if b.path == ('project', 'properties')), None)
    splices: dict[int, tuple[int, int, str]] = {}

    def _set_version(f: _Field | None, new_version: str) -> None:
        if f is None or not f.text.strip():
            return
        current = f.text.strip()
        prop = _PROPERTY_RE.fullmatch(current)
        if prop is None:
            if current != new_version:
                start, end, value = _replacement(f, new_version)
                splices[start] = (start, end, value)
            return
        name = prop.group(1)
        target = properties.fields.get(name) if properties is not None else None
        if target is not None and not target.text.strip().startswith('${'):
            if target.text.strip() != new_version:
                start, end, value = _replacement(target, new_version)
                splices[start] = (start, end, value)
        else:
            log.debug('version_expression_kept', pom=str(module.pom_path), expression=current)

    if project is not None and module.coordinates in versions:
        _set_version(project.fields.get('version'), versions[module.coordinates])

    for block in blocks:
        tag = block.path[-1]
        if block.path == ('project', 'parent'):
            coords = coordinates(block.value('groupId'), block.value('artifactId'))
        elif tag in _REFERENCE_TAGS:
            default_group = _DEFAULT_PLUGIN_GROUP if tag == 'plugin' else ''
            group_id = block.value('groupId') or default_group
            group_id = group_id.replace('${project.groupId}', module.group_id)
            coords = coordinates(group_id, block.value('artifactId'))
        else:
            continue
        if coords in versions:
            _set_version(block.fields.get('version'), versions[coords])

    for start, end, value in sorted(splices.values(), reverse=True):
        text = text[:start] + value + text[end:]
    return text


def snapshot_errors(module: MavenModule, versions: Mapping[str, str]) -> list[str]:
    """List references from ``module`` to snapshots outside the reactor."""
    errors: list[str] = []
    refs = ([module.parent] if module.parent else []) + module.dependencies
    for ref in refs:
        if ref.coordinates in versions:
            continue
        if is_snapshot(ref.version):
            errors.append(f'{module.artifact_id} references dependency {ref.coordinates} {ref.version}')
    return errors


@dataclass(frozen=True)
class DescriptorUpdate:
    """Outcome of rewriting one ``pom.xml``.

    Attributes:
        path: The descriptor that was inspected.
        changed: Whether the file content was modified on disk.
        errors: Snapshot dependency problems found in the module.
    """

    path: Path
    changed: bool = False
    errors: list[str] = field(default_factory=list)


class MavenWorkspace:
    """Maven :class:`~reactorkit.backends.workspace.Workspace` implementation.

    Args:
        workspace_root: Directory containing the aggregator ``pom.xml``.
    """

    def __init__(self, workspace_root: Path) -> None:
        """Initialize with the reactor root."""
        self._root = workspace_root.resolve()

    @property
    def root(self) -> Path:
        """The resolved reactor root."""
        return self._root

    async def discover(self) -> list[MavenModule]:
        """Load the root POM and every module it aggregates, recursively.

        Returns:
            Modules in discovery order (root first).

        Raises:
            ReactorKitError: If the root POM is missing, a POM cannot be
                parsed, or two modules share coordinates.
        """
        root_pom = self._root / 'pom.xml'
        if not root_pom.is_file():
            raise ReactorKitError(
                E.WORKSPACE_NOT_FOUND,
                f'No pom.xml found in {self._root}',
                hint='Run reactorkit from the directory containing the aggregator POM.',
            )

        modules: list[MavenModule] = []
        seen: dict[str, Path] = {}
        visited: set[Path] = set()
        pending = [root_pom]
        while pending:
            pom_path = pending.pop(0)
            if pom_path in visited:
                continue
            visited.add(pom_path)
            if not pom_path.is_file():
                log.warning('module_pom_not_found', pom=str(pom_path))
                continue
            module = parse_pom(await read_file(pom_path), pom_path)
            if module.coordinates in seen:
                raise ReactorKitError(
                    E.WORKSPACE_DUPLICATE_MODULE,
                    f'Module {module.coordinates} is declared twice',
                    details=[str(seen[module.coordinates]), str(pom_path)],
                )
            seen[module.coordinates] = pom_path
            modules.append(module)
            pending.extend(mod_dir / 'pom.xml' for mod_dir in module.modules)

        log.info('discovered_maven', count=len(modules), modules=[m.artifact_id for m in modules])
        return modules

    async def scm_remote(self) -> str:
        """Return the root POM's SCM connection, or ``''`` if none is set."""
        root_pom = self._root / 'pom.xml'
        if not root_pom.is_file():
            return ''
        return parse_scm_connection(await read_file(root_pom))

    async def rewrite_descriptor(
        self,
        module: MavenModule,
        versions: Mapping[str, str],
        *,
        check_snapshots: bool = True,
        dry_run: bool = False,
    ) -> DescriptorUpdate:
        """Apply ``versions`` to ``module``'s ``pom.xml``.

        Args:
            module: The module whose descriptor to rewrite.
            versions: New version for every reactor module.
            check_snapshots: Report references to snapshots outside the
                reactor (only meaningful for modules being released).
            dry_run: Compute the result without writing.
        """
        errors = snapshot_errors(module, versions) if check_snapshots else []
        text = await read_file(module.pom_path)
        new_text = rewrite_pom_text(text, module, versions)
        changed = new_text != text
        if changed and not dry_run:
            await write_file(module.pom_path, new_text)
            log.info(
                'descriptor_rewritten',
                pom=str(module.pom_path),
                version=versions.get(module.coordinates, module.version),
            )
        return DescriptorUpdate(path=module.pom_path, changed=changed and not dry_run, errors=errors)


__all__ = [
    'DescriptorUpdate',
    'MavenWorkspace',
    'is_snapshot',
    'parse_pom',
    'parse_scm_connection',
    'rewrite_pom_text',
    'snapshot_errors',
]

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

"""Release tag naming and the tag uniqueness protocol.

Key Concepts (ELI5)::

    ┌─────────────────────────┬─────────────────────────────────────────────┐
    │ Concept                 │ Plain-English                               │
    ├─────────────────────────┼─────────────────────────────────────────────┤
    │ AnnotatedTag            │ One proposed tag per released module, e.g. │
    │                         │ ``core-1.2.5`` for core 1.2, build 5.      │
    ├─────────────────────────┼─────────────────────────────────────────────┤
    │ Build number            │ The ``.5`` part. Only in the tag name, so  │
    │                         │ retrying a release never changes what is   │
    │                         │ published.                                  │
    ├─────────────────────────┼─────────────────────────────────────────────┤
    │ Uniqueness check        │ Every proposed name must be new locally    │
    │                         │ AND on the remote before anything is       │
    │                         │ touched. A collision is a hard stop.       │
    └─────────────────────────┴─────────────────────────────────────────────┘

Validation flow::

    TagPlanner.validate(tags)
         │
         ├── for each tag, in plan order:
         │     └── vcs.tag_exists(name)? → ValidationError (first hit only)
         │
         └── vcs.remote_tags([all names])          ← one round trip
               └── any hits? → ValidationError listing every collision

Usage::

    from reactorkit.tags import TagPlanner

    planner = TagPlanner(vcs, tag_format='{artifact_id}-{version}.{build_number}')
    tags = planner.propose(plan)
    await planner.validate(tags)
"""

from __future__ import annotations

import json
import re
from collections.abc import Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING

from reactorkit.backends.vcs import VCS
from reactorkit.config import DEFAULT_MAX_BUILD_NUMBER_ATTEMPTS, DEFAULT_TAG_FORMAT
from reactorkit.errors import E, ValidationError
from reactorkit.logging import get_logger
from reactorkit.module import ReleasableModule

if TYPE_CHECKING:
    from reactorkit.reactor import ReleasePlan

logger = get_logger(__name__)

_BUILD_NUMBER_SENTINEL = '\x00BUILD\x00'


@dataclass(frozen=True)
class AnnotatedTag:
    """An immutable proposed or created release tag.

    Attributes:
        name: Tag name in the repository.
        version: Release version of the owning module.
        build_number: Build number embedded in the name.
        group_id: groupId of the owning module.
        artifact_id: artifactId of the owning module.
    """

    name: str
    version: str
    build_number: int
    group_id: str = ''
    artifact_id: str = ''

    @property
    def coordinates(self) -> str:
        """``groupId:artifactId`` of the owning module."""
        return f'{self.group_id}:{self.artifact_id}'

    @property
    def message(self) -> str:
        """Annotation message: a JSON object with the version and build number."""
        return json.dumps({'version': self.version, 'buildNumber': str(self.build_number)})


def format_tag(
    tag_format: str,
    *,
    artifact_id: str,
    version: str,
    build_number: int | str,
    group_id: str = '',
) -> str:
    """Format a tag name from a template.

    Examples::

        >>> format_tag('{artifact_id}-{version}.{build_number}', artifact_id='core', version='1.2', build_number=5)
        'core-1.2.5'
        >>> format_tag('{group_id}/{artifact_id}@{version}+{build_number}',
        ...            group_id='com.acme', artifact_id='core', version='1.2', build_number=0)
        'com.acme/core@1.2+0'
    """
    return tag_format.format(
        artifact_id=artifact_id,
        group_id=group_id,
        version=version,
        build_number=build_number,
    )


def parse_build_number(
    tag: str,
    tag_format: str,
    *,
    artifact_id: str,
    version: str,
    group_id: str = '',
) -> int | None:
    """Return the build number of ``tag`` if it was made by ``tag_format``.

    Examples::

        >>> parse_build_number('core-1.2.7', '{artifact_id}-{version}.{build_number}',
        ...                    artifact_id='core', version='1.2')
        7
        >>> parse_build_number('core-1.2.x', '{artifact_id}-{version}.{build_number}',
        ...                    artifact_id='core', version='1.2') is None
        True
    """
    template = format_tag(
        tag_format,
        artifact_id=artifact_id,
        group_id=group_id,
        version=version,
        build_number=_BUILD_NUMBER_SENTINEL,
    )
    prefix, _, suffix = template.partition(_BUILD_NUMBER_SENTINEL)
    m = re.fullmatch(re.escape(prefix) + r'(\d+)' + re.escape(suffix), tag)
    return int(m.group(1)) if m else None


def tag_glob(tag_format: str, *, artifact_id: str, version: str, group_id: str = '') -> str:
    """Return a ``git tag --list`` glob matching every build of one version."""
    return format_tag(tag_format, artifact_id=artifact_id, group_id=group_id, version=version, build_number='*')


def _matches(module: ReleasableModule, names: Sequence[str]) -> bool:
    return module.artifact_id in names or module.coordinates in names


class TagPlanner:
    """Derives tag names from a plan and proves they are unused.

    Args:
        vcs: Version control backend.
        tag_format: Template with ``{artifact_id}``, ``{group_id}``,
            ``{version}`` and ``{build_number}`` placeholders.
    """

    def __init__(self, vcs: VCS, *, tag_format: str = DEFAULT_TAG_FORMAT) -> None:
        """Initialize with a VCS backend and tag template."""
        self._vcs = vcs
        self._tag_format = tag_format

    @property
    def tag_format(self) -> str:
        """The tag name template."""
        return self._tag_format

    def tag_name(self, module: ReleasableModule) -> str:
        """Return the deterministic tag name for ``module``."""
        return format_tag(
            self._tag_format,
            artifact_id=module.artifact_id,
            group_id=module.group_id,
            version=module.new_version,
            build_number=module.build_number,
        )

    def tag_for(self, module: ReleasableModule) -> AnnotatedTag:
        """Return the :class:`AnnotatedTag` proposed for ``module``."""
        return AnnotatedTag(
            name=self.tag_name(module),
            version=module.new_version,
            build_number=module.build_number,
            group_id=module.group_id,
            artifact_id=module.artifact_id,
        )

    def propose(self, plan: ReleasePlan, modules_to_release: Sequence[str] = ()) -> list[AnnotatedTag]:
        """Return one tag per released module, in plan order.

        Args:
            plan: The computed release plan.
            modules_to_release: Optional artifactId or coordinate filter.

        Raises:
            ValidationError: If two modules would get the same tag name.
        """
        tags: list[AnnotatedTag] = []
        owners: dict[str, str] = {}
        clashes: list[str] = []
        for module in plan.released:
            if modules_to_release and not _matches(module, modules_to_release):
                continue
            tag = self.tag_for(module)
            if tag.name in owners:
                clashes.append(f' * {tag.name} is proposed for both {owners[tag.name]} and {module.coordinates}')
                continue
            owners[tag.name] = module.coordinates
            tags.append(tag)

        if clashes:
            raise ValidationError(
                E.TAG_NAME_DUPLICATE,
                'Two modules would be released under the same tag name.',
                hint='Add {group_id} to tag_format, or rename one of the artifacts.',
                details=clashes,
            )
        return tags

    async def validate(self, tags: Sequence[AnnotatedTag]) -> None:
        """Fail unless no proposed tag exists locally or on the remote.

        The local check stops at the first collision. The remote check is
        a single query covering every proposed tag and reports all hits.

        Raises:
            ValidationError: On any collision.
        """
        for tag in tags:
            if await self._vcs.tag_exists(tag.name):
                logger.warning('tag_exists_local', tag=tag.name)
                raise ValidationError(
                    E.TAG_EXISTS_LOCAL,
                    f'There is already a tag named {tag.name} in this repository.',
                    details=[
                        'It is likely that this version has been released before.',
                        'Please try incrementing the build number and trying again.',
                    ],
                )

        if not tags:
            return

        existing = set(await self._vcs.remote_tags([t.name for t in tags]))
        collisions = [t.name for t in tags if t.name in existing]
        if collisions:
            logger.warning('tag_exists_remote', tags=collisions)
            raise ValidationError(
                E.TAG_EXISTS_REMOTE,
                'Cannot release because there is already a tag with the same build number on the remote Git repo.',
                details=[
                    *(f' * There is already a tag named {name} in the remote repo.' for name in collisions),
                    'Please try releasing again with a new build number.',
                ],
            )
        logger.debug('tags_validated', count=len(tags))

    async def previous_build_numbers(self, *, artifact_id: str, version: str, group_id: str = '') -> dict[int, str]:
        """Return local release tags of one version, keyed by build number."""
        pattern = tag_glob(self._tag_format, artifact_id=artifact_id, group_id=group_id, version=version)
        found: dict[int, str] = {}
        for tag in await self._vcs.list_tags(pattern=pattern):
            number = parse_build_number(
                tag,
                self._tag_format,
                artifact_id=artifact_id,
                group_id=group_id,
                version=version,
            )
            if number is not None:
                found[number] = tag
        return found

    async def next_free_build_number(
        self,
        *,
        artifact_id: str,
        version: str,
        start: int,
        group_id: str = '',
        max_attempts: int = DEFAULT_MAX_BUILD_NUMBER_ATTEMPTS,
    ) -> int:
        """Return the first build number at or above ``start`` with no tag anywhere.

        Probes ``max_attempts`` consecutive numbers using one local tag
        listing and one batched remote query.

        Raises:
            ValidationError: If every candidate is taken.
        """
        local = await self.previous_build_numbers(artifact_id=artifact_id, group_id=group_id, version=version)
        candidates = {
            format_tag(
                self._tag_format,
                artifact_id=artifact_id,
                group_id=group_id,
                version=version,
                build_number=n,
            ): n
            for n in range(start, start + max_attempts)
            if n not in local
        }
        remote = set(await self._vcs.remote_tags(list(candidates))) if candidates else set()
        for name, number in candidates.items():
            if name not in remote:
                if number != start:
                    logger.info('build_number_skipped_taken', artifact=artifact_id, start=start, chosen=number)
                return number

        raise ValidationError(
            E.BUILD_NUMBER_EXHAUSTED,
            f'No free build number for {artifact_id} {version} in {start}..{start + max_attempts - 1}.',
            details=[f'Tried {max_attempts} build numbers; every tag already exists locally or on the remote.'],
        )


__all__ = [
    'AnnotatedTag',
    'TagPlanner',
    'format_tag',
    'parse_build_number',
    'tag_glob',
]

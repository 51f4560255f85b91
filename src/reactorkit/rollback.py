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

"""Compensation for a failed release: delete tags of unpublished modules.

After a failure some modules may be tagged (and pushed) without their
artifacts ever reaching the repository. Those tags claim a release that
never happened and are removed. Tags of modules that did publish stay.

Decision per released module::

    tag never created this run      → skipped
    resolver says published         → kept
    resolver says not published     → deleted (remote too if it was pushed)
    resolver or git failed          → kept, warning logged

Known limitation: resolvability is eventually consistent. A deploy that
is still propagating can look unpublished, and its tag would then be
deleted. ``resolver_attempts`` and ``resolver_interval`` widen the window.

Every failure inside rollback is logged and recorded, never raised, so
the error that triggered the rollback stays the one reported. The one
exception is :class:`~reactorkit.errors.InvariantError`: being asked to
roll back a real release without its tags is a bug.
"""

from __future__ import annotations

from collections.abc import Collection, Sequence
from dataclasses import dataclass, field

from reactorkit.backends.resolver import Resolver
from reactorkit.backends.vcs import VCS
from reactorkit.errors import E, InvariantError
from reactorkit.logging import get_logger
from reactorkit.reactor import ReleasePlan
from reactorkit.tags import AnnotatedTag

logger = get_logger(__name__)


@dataclass
class RollbackResult:
    """What a rollback did.

    Attributes:
        enabled: ``False`` when tag deletion was not opted into.
        deleted: Tags removed because their artifact is not resolvable.
        kept: Tags kept because their artifact is resolvable.
        skipped: Proposed tags that were never created.
        failed: Tag name to error message for tags that could not be
            checked or deleted. These tags are left in place.
    """

    enabled: bool = True
    deleted: list[str] = field(default_factory=list)
    kept: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        """Return True if no rollback step failed."""
        return not self.failed


class RollbackCoordinator:
    """Deletes release tags of modules whose artifacts were not published.

    Args:
        vcs: Version control backend.
        resolver: Artifact resolver used as the "was it published" signal.
        delete_tags_on_fail: Operator opt-in. When ``False``, tags are
            left for manual inspection.
        dry_run: Log deletions without executing them.
    """

    def __init__(
        self,
        vcs: VCS,
        resolver: Resolver,
        *,
        delete_tags_on_fail: bool = False,
        dry_run: bool = False,
    ) -> None:
        """Initialize with collaborators and the opt-in flag."""
        self._vcs = vcs
        self._resolver = resolver
        self._enabled = delete_tags_on_fail
        self._dry_run = dry_run

    async def rollback(
        self,
        plan: ReleasePlan | None,
        tags: Sequence[AnnotatedTag],
        *,
        created: Collection[str] = (),
        pushed: Collection[str] = (),
    ) -> RollbackResult:
        """Undo the tags of modules that did not publish.

        Args:
            plan: The plan that was being released, or ``None`` if the
                failure happened before planning finished.
            tags: Every tag proposed for the plan.
            created: Names of tags created locally in this run.
            pushed: Names of tags pushed to the remote in this run.

        Returns:
            A :class:`RollbackResult`.

        Raises:
            InvariantError: If a release was attempted but the tag set is
                empty or lacks a tag for a released module.
        """
        if not self._enabled:
            if created:
                logger.warning('rollback_disabled', tags=list(created))
            return RollbackResult(enabled=False)

        if plan is None or plan.is_empty:
            logger.info('nothing_to_rollback')
            return RollbackResult()

        if not tags:
            raise InvariantError(
                E.ROLLBACK_INVARIANT,
                'Rollback was invoked for a release attempt with no tags.',
                details=[f' * {m.coordinates} {m.new_version}' for m in plan.released],
            )

        by_module = {t.coordinates: t for t in tags}
        missing = [m.coordinates for m in plan.released if m.coordinates not in by_module]
        if missing:
            raise InvariantError(
                E.ROLLBACK_INVARIANT,
                'Rollback was invoked without a tag for every released module.',
                details=[f' * {coords}' for coords in missing],
            )

        result = RollbackResult()
        for module in plan.released:
            tag = by_module[module.coordinates]
            if tag.name not in created:
                result.skipped.append(tag.name)
                continue

            artifact = f'{module.group_id}:{module.artifact_id}:{module.new_version}'
            try:
                published = await self._resolver.is_resolvable(
                    module.group_id,
                    module.artifact_id,
                    module.new_version,
                    module.packaging,
                )
            except Exception as exc:
                result.failed[tag.name] = str(exc)
                logger.warning('rollback_failed', tag=tag.name, artifact=artifact, error=str(exc))
                continue

            if published:
                result.kept.append(tag.name)
                logger.info('tag_kept', tag=tag.name, artifact=artifact)
                continue

            remote = tag.name in pushed
            try:
                outcome = await self._vcs.delete_tag(tag.name, remote=remote, dry_run=self._dry_run)
            except Exception as exc:
                result.failed[tag.name] = str(exc)
                logger.warning('rollback_failed', tag=tag.name, artifact=artifact, error=str(exc))
                continue

            if not outcome.ok:
                error = '\n'.join(outcome.failure_details())
                result.failed[tag.name] = error
                logger.warning('rollback_failed', tag=tag.name, artifact=artifact, error=error)
                continue

            result.deleted.append(tag.name)
            logger.info('tag_deleted', tag=tag.name, remote=remote, unresolvable_artifact=artifact)

        logger.info(
            'rollback_complete',
            deleted=len(result.deleted),
            kept=len(result.kept),
            skipped=len(result.skipped),
            failed=len(result.failed),
        )
        return result


__all__ = [
    'RollbackCoordinator',
    'RollbackResult',
]

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

"""The release workflow: a small explicit state machine.

Key Concepts (ELI5)::

    ┌─────────────────────────┬─────────────────────────────────────────────┐
    │ Concept                 │ Plain-English                               │
    ├─────────────────────────┼─────────────────────────────────────────────┤
    │ Stage                   │ How far the release got. Each stage is the │
    │                         │ precondition for the next one.              │
    ├─────────────────────────┼─────────────────────────────────────────────┤
    │ Event                   │ What happened while running a stage's       │
    │                         │ work: OK, nothing to release, a validation │
    │                         │ error, or a failure.                        │
    ├─────────────────────────┼─────────────────────────────────────────────┤
    │ Effect                  │ Work to do next: plan, tag, build, revert, │
    │                         │ roll back.                                  │
    ├─────────────────────────┼─────────────────────────────────────────────┤
    │ transition()            │ Pure function (stage, event) → (next stage,│
    │                         │ effects). No I/O, so the compensation path │
    │                         │ is testable without git.                    │
    └─────────────────────────┴─────────────────────────────────────────────┘

Happy path::

    START ──check clean──▶ CLEAN ──plan──▶ PLANNED ──validate tags──▶ TAGS_VALIDATED
      ──rewrite poms──▶ DESCRIPTORS_UPDATED ──tag + push──▶ TAGGED
      ──build──▶ BUILT ──revert poms (strict)──▶ REVERTED

Failure handling::

    failed in stage            effects                       outcome
    ─────────────────────────  ────────────────────────────  ───────────────────
    any, ValidationError       none (nothing mutated)        VALIDATION_FAILED
    START / CLEAN / PLANNED    none                          FAILED
    TAGS_VALIDATED             rollback                      FAILED
    DESCRIPTORS_UPDATED        revert (warn-only), rollback  FAILED
    TAGGED (build failed)      revert (warn-only), rollback  FAILED
    BUILT (strict revert)      revert (warn-only), rollback  FAILED

Rollback is a no-op unless ``delete_tags_on_fail`` is set. An
:class:`~reactorkit.errors.InvariantError` is never folded into an
outcome; it propagates out of :meth:`ReleaseOrchestrator.run`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from reactorkit.backends._run import CommandResult
from reactorkit.backends.build import Builder
from reactorkit.backends.resolver import Resolver
from reactorkit.backends.vcs import VCS
from reactorkit.backends.workspace import Workspace
from reactorkit.config import ReleaseOptions
from reactorkit.errors import E, InvariantError, ReactorKitError, ValidationError
from reactorkit.graph import build_graph
from reactorkit.logging import get_logger
from reactorkit.reactor import ReleasePlan, build_release_plan
from reactorkit.rollback import RollbackCoordinator, RollbackResult
from reactorkit.tags import AnnotatedTag, TagPlanner

logger = get_logger(__name__)


class Stage(str, Enum):
    """How far a release run got."""

    START = 'start'
    CLEAN = 'clean'
    PLANNED = 'planned'
    TAGS_VALIDATED = 'tags_validated'
    DESCRIPTORS_UPDATED = 'descriptors_updated'
    TAGGED = 'tagged'
    BUILT = 'built'
    REVERTED = 'reverted'
    FAILED = 'failed'


class Event(str, Enum):
    """Result of running one stage's effects."""

    OK = 'ok'
    NOTHING_TO_RELEASE = 'nothing_to_release'
    VALIDATION_FAILED = 'validation_failed'
    FAILED = 'failed'


class Effect(str, Enum):
    """Work the orchestrator performs on entering a stage."""

    CHECK_CLEAN = 'check_clean'
    BUILD_PLAN = 'build_plan'
    VALIDATE_TAGS = 'validate_tags'
    UPDATE_DESCRIPTORS = 'update_descriptors'
    CREATE_TAGS = 'create_tags'
    RUN_BUILD = 'run_build'
    REVERT_STRICT = 'revert_strict'
    REVERT_BEST_EFFORT = 'revert_best_effort'
    ROLLBACK = 'rollback'


@dataclass(frozen=True)
class Transition:
    """Next stage and the effects to run on entering it."""

    next_stage: Stage
    effects: tuple[Effect, ...] = ()


INITIAL = Transition(Stage.START, (Effect.CHECK_CLEAN,))

_FORWARD: dict[Stage, Transition] = {
    Stage.START: Transition(Stage.CLEAN, (Effect.BUILD_PLAN,)),
    Stage.CLEAN: Transition(Stage.PLANNED, (Effect.VALIDATE_TAGS,)),
    Stage.PLANNED: Transition(Stage.TAGS_VALIDATED, (Effect.UPDATE_DESCRIPTORS,)),
    Stage.TAGS_VALIDATED: Transition(Stage.DESCRIPTORS_UPDATED, (Effect.CREATE_TAGS,)),
    Stage.DESCRIPTORS_UPDATED: Transition(Stage.TAGGED, (Effect.RUN_BUILD,)),
    Stage.TAGGED: Transition(Stage.BUILT, (Effect.REVERT_STRICT,)),
    Stage.BUILT: Transition(Stage.REVERTED),
}

_COMPENSATION: dict[Stage, tuple[Effect, ...]] = {
    Stage.TAGS_VALIDATED: (Effect.ROLLBACK,),
    Stage.DESCRIPTORS_UPDATED: (Effect.REVERT_BEST_EFFORT, Effect.ROLLBACK),
    Stage.TAGGED: (Effect.REVERT_BEST_EFFORT, Effect.ROLLBACK),
    Stage.BUILT: (Effect.REVERT_BEST_EFFORT, Effect.ROLLBACK),
}

TERMINAL_STAGES = frozenset({Stage.REVERTED, Stage.FAILED})


def transition(stage: Stage, event: Event) -> Transition:
    """Return the next stage and its effects for ``event`` in ``stage``.

    Raises:
        InvariantError: For events a stage cannot receive, including any
            event in a terminal stage.
    """
    if stage in TERMINAL_STAGES:
        raise InvariantError(E.WORKFLOW_INVARIANT, f'No transition out of terminal stage {stage.value}')
    if event is Event.OK:
        return _FORWARD[stage]
    if event is Event.NOTHING_TO_RELEASE:
        if stage is not Stage.CLEAN:
            raise InvariantError(
                E.WORKFLOW_INVARIANT,
                f'"nothing to release" can only follow planning, not stage {stage.value}',
            )
        return Transition(Stage.PLANNED)
    if event is Event.VALIDATION_FAILED:
        return Transition(Stage.FAILED)
    return Transition(Stage.FAILED, _COMPENSATION.get(stage, ()))


class OutcomeStatus(str, Enum):
    """Final verdict of a release run."""

    RELEASED = 'released'
    NOTHING_TO_RELEASE = 'nothing_to_release'
    VALIDATION_FAILED = 'validation_failed'
    FAILED = 'failed'


@dataclass(frozen=True)
class ReleaseOutcome:
    """What a release run did.

    Attributes:
        status: Final verdict.
        stage: Final stage of the state machine.
        failed_at: Last stage reached before the failure, if any. The
            work that failed was moving the run out of this stage, so a
            failed build reports ``TAGGED``.
        plan: The computed plan, if planning finished.
        error: The error that ended the run, if any.
        tags: Tags proposed for the plan.
        tags_created: Tags created locally during the run.
        tags_pushed: Tags pushed to the remote during the run.
        descriptors_restored: Whether rewritten descriptors were put back.
        rollback: Rollback result, if rollback ran.
    """

    status: OutcomeStatus
    stage: Stage
    failed_at: Stage | None = None
    plan: ReleasePlan | None = None
    error: ReactorKitError | None = None
    tags: tuple[AnnotatedTag, ...] = ()
    tags_created: tuple[str, ...] = ()
    tags_pushed: tuple[str, ...] = ()
    descriptors_restored: bool = True
    rollback: RollbackResult | None = None

    @property
    def ok(self) -> bool:
        """``True`` for a release or a "nothing to release" run."""
        return self.status in (OutcomeStatus.RELEASED, OutcomeStatus.NOTHING_TO_RELEASE)

    @property
    def mutated(self) -> bool:
        """``True`` if the run left tags behind or could not restore descriptors."""
        return bool(self.tags_created) or not self.descriptors_restored

    @property
    def rollback_attempted(self) -> bool:
        """``True`` if the rollback coordinator ran for this failure."""
        return self.rollback is not None


@dataclass
class _RunState:
    plan: ReleasePlan | None = None
    tags: list[AnnotatedTag] = field(default_factory=list)
    changed_files: list[Path] = field(default_factory=list)
    tags_created: list[str] = field(default_factory=list)
    tags_pushed: list[str] = field(default_factory=list)
    rollback: RollbackResult | None = None


def _git_error(result: CommandResult) -> ReactorKitError:
    return ReactorKitError(
        E.VCS_ERROR,
        'Could not release due to a Git error',
        details=[
            'There was an error while accessing the Git repository. The error returned from git was:',
            *result.failure_details(),
        ],
    )


def _require_plan(state: _RunState) -> ReleasePlan:
    if state.plan is None:
        raise InvariantError(E.WORKFLOW_INVARIANT, 'A stage after planning ran without a plan')
    return state.plan


class ReleaseOrchestrator:
    """Runs one release through the stages of :func:`transition`.

    Every collaborator call is awaited in turn; nothing runs concurrently.

    Args:
        vcs: Version control backend.
        workspace: Reactor loader and descriptor rewriter.
        resolver: Artifact resolver consulted by rollback.
        builder: Build invoker.
        options: Release options, threaded through every stage.
        root: Reactor root directory.
        dry_run: Log mutations without performing them.
    """

    def __init__(
        self,
        *,
        vcs: VCS,
        workspace: Workspace,
        resolver: Resolver,
        builder: Builder,
        options: ReleaseOptions,
        root: Path,
        dry_run: bool = False,
    ) -> None:
        """Initialize with collaborators and options."""
        self._vcs = vcs
        self._workspace = workspace
        self._builder = builder
        self._options = options
        self._root = root
        self._dry_run = dry_run
        self._tags = TagPlanner(vcs, tag_format=options.tag_format)
        self._rollback = RollbackCoordinator(
            vcs,
            resolver,
            delete_tags_on_fail=options.delete_tags_on_fail,
            dry_run=dry_run,
        )

    async def run(self) -> ReleaseOutcome:
        """Run the release.

        Returns:
            A :class:`ReleaseOutcome`. Validation failures and failures
            after mutation are told apart by ``status`` and
            ``rollback_attempted``.

        Raises:
            InvariantError: On an internal defect.
        """
        state = _RunState()
        stage, effects = INITIAL.next_stage, INITIAL.effects
        failed_at: Stage | None = None
        last_event = Event.OK
        error: ReactorKitError | None = None
        unexpected: Exception | None = None

        while effects:
            event = Event.OK
            try:
                for effect in effects:
                    await self._apply(effect, state)
            except InvariantError:
                raise
            except ValidationError as exc:
                event, error = Event.VALIDATION_FAILED, exc
            except ReactorKitError as exc:
                event, error = Event.FAILED, exc
            except Exception as exc:
                event, unexpected = Event.FAILED, exc

            if stage is Stage.FAILED:
                # Compensations are warn-only; they have run.
                break
            if event is Event.OK and stage is Stage.CLEAN and state.plan is not None and state.plan.is_empty:
                event = Event.NOTHING_TO_RELEASE
            if event in (Event.VALIDATION_FAILED, Event.FAILED):
                failed_at = stage
                logger.error(
                    'release_failed',
                    stage=stage.value,
                    code=error.code.value if error else None,
                    error=str(error or unexpected),
                )

            last_event = event
            step = transition(stage, event)
            stage, effects = step.next_stage, step.effects

        if unexpected is not None:
            raise unexpected

        outcome = ReleaseOutcome(
            status=self._status(stage, last_event),
            stage=stage,
            failed_at=failed_at,
            plan=state.plan,
            error=error,
            tags=tuple(state.tags),
            tags_created=tuple(state.tags_created),
            tags_pushed=tuple(state.tags_pushed),
            descriptors_restored=not state.changed_files,
            rollback=state.rollback,
        )
        logger.info('release_finished', status=outcome.status.value, stage=stage.value)
        return outcome

    @staticmethod
    def _status(stage: Stage, last_event: Event) -> OutcomeStatus:
        if stage is Stage.REVERTED:
            return OutcomeStatus.RELEASED
        if last_event is Event.NOTHING_TO_RELEASE:
            return OutcomeStatus.NOTHING_TO_RELEASE
        if last_event is Event.VALIDATION_FAILED:
            return OutcomeStatus.VALIDATION_FAILED
        return OutcomeStatus.FAILED

    async def _apply(self, effect: Effect, state: _RunState) -> None:
        if effect is Effect.CHECK_CLEAN:
            await self._check_clean()
        elif effect is Effect.BUILD_PLAN:
            state.plan = await self._build_plan()
        elif effect is Effect.VALIDATE_TAGS:
            await self._validate_tags(state)
        elif effect is Effect.UPDATE_DESCRIPTORS:
            await self._update_descriptors(state)
        elif effect is Effect.CREATE_TAGS:
            await self._create_tags(state)
        elif effect is Effect.RUN_BUILD:
            await self._run_build(state)
        elif effect is Effect.REVERT_STRICT:
            await self._revert_strict(state)
        elif effect is Effect.REVERT_BEST_EFFORT:
            await self._revert_best_effort(state)
        elif effect is Effect.ROLLBACK:
            state.rollback = await self._rollback.rollback(
                state.plan,
                state.tags,
                created=state.tags_created,
                pushed=state.tags_pushed,
            )

    async def _check_clean(self) -> None:
        if not await self._vcs.is_clean(dry_run=self._dry_run):
            raise ValidationError(
                E.PREFLIGHT_DIRTY_WORKTREE,
                'Cannot release with uncommitted changes.',
                hint='Commit or stash your changes before releasing.',
            )

    async def _build_plan(self) -> ReleasePlan:
        graph = build_graph(await self._workspace.discover())
        plan = await build_release_plan(
            graph,
            self._vcs,
            self._options,
            root=self._root,
            tag_planner=self._tags,
        )
        if plan.is_empty:
            logger.info('nothing_to_release', modules=len(plan.modules))
        return plan

    async def _validate_tags(self, state: _RunState) -> None:
        plan = _require_plan(state)
        state.tags = self._tags.propose(plan, self._options.modules_to_release)
        await self._tags.validate(state.tags)

    async def _update_descriptors(self, state: _RunState) -> None:
        plan = _require_plan(state)
        versions = plan.versions()
        errors: list[str] = []
        try:
            for module in plan.modules:
                update = await self._workspace.rewrite_descriptor(
                    module.module,
                    versions,
                    check_snapshots=module.will_be_released,
                    dry_run=self._dry_run,
                )
                if update.changed:
                    state.changed_files.append(update.path)
                errors.extend(update.errors)
        except Exception:
            await self._revert_best_effort(state)
            raise

        if errors:
            await self._revert_best_effort(state)
            raise ValidationError(
                E.SNAPSHOT_DEPENDENCY,
                'Cannot release with references to snapshot dependencies',
                details=['The following dependency errors were found:', *(f' * {e}' for e in errors)],
            )
        logger.info('descriptors_updated', changed=len(state.changed_files))

    async def _create_tags(self, state: _RunState) -> None:
        logger.info('about_to_tag', tags=[t.name for t in state.tags])
        for tag in state.tags:
            result = await self._vcs.tag(tag.name, message=tag.message, dry_run=self._dry_run)
            if not result.ok:
                raise _git_error(result)
            state.tags_created.append(tag.name)
            logger.info('tag_created', tag=tag.name)
            if self._options.push_tags:
                result = await self._vcs.push_tag(tag.name, dry_run=self._dry_run)
                if not result.ok:
                    raise _git_error(result)
                state.tags_pushed.append(tag.name)

    async def _run_build(self, state: _RunState) -> None:
        plan = _require_plan(state)
        result = await self._builder.run_build(
            plan,
            goals=self._options.goals,
            profiles=self._options.profiles,
            skip_tests=self._options.skip_tests,
            modules_to_release=self._options.modules_to_release,
            dry_run=self._dry_run,
        )
        if not result.ok:
            raise ReactorKitError(
                E.BUILD_FAILED,
                f'The build failed with exit code {result.return_code}',
                details=[result.command_str, *result.failure_details()],
            )

    async def _revert_strict(self, state: _RunState) -> None:
        if not await self._vcs.revert_files(state.changed_files, dry_run=self._dry_run):
            raise ReactorKitError(
                E.REVERT_FAILED,
                'Could not revert changes - working directory is no longer clean. Please revert changes manually',
                details=[str(p) for p in state.changed_files],
            )
        state.changed_files.clear()

    async def _revert_best_effort(self, state: _RunState) -> None:
        if not state.changed_files:
            return
        try:
            reverted = await self._vcs.revert_files(state.changed_files, dry_run=self._dry_run)
        except Exception as exc:
            logger.warning('revert_failed', files=[str(p) for p in state.changed_files], error=str(exc))
            return
        if not reverted:
            logger.warning('revert_failed', files=[str(p) for p in state.changed_files])
            return
        state.changed_files.clear()


__all__ = [
    'INITIAL',
    'Effect',
    'Event',
    'OutcomeStatus',
    'ReleaseOrchestrator',
    'ReleaseOutcome',
    'Stage',
    'Transition',
    'transition',
]

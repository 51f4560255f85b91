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

"""Structured error system for reactorkit.

Every error has a unique ``RK-NAMED-KEY`` code, a one-line summary, an
ordered list of detail lines, and an optional hint.

Key Concepts (ELI5)::

    ┌─────────────────────┬────────────────────────────────────────────────┐
    │ Concept             │ ELI5 Explanation                               │
    ├─────────────────────┼────────────────────────────────────────────────┤
    │ ErrorCode           │ A unique named ID like "RK-TAG-EXISTS-LOCAL"  │
    │                     │ for each failure. Readable at a glance.       │
    ├─────────────────────┼────────────────────────────────────────────────┤
    │ Summary + details   │ One headline plus every offending item        │
    │                     │ (every colliding tag, every bad dependency),  │
    │                     │ so one run shows all the problems at once.    │
    ├─────────────────────┼────────────────────────────────────────────────┤
    │ ValidationError     │ "You can fix this and retry." Raised before   │
    │                     │ anything was changed (or after self-revert).  │
    ├─────────────────────┼────────────────────────────────────────────────┤
    │ InvariantError      │ "This is a bug in reactorkit." Never retried, │
    │                     │ never folded into a normal failure report.    │
    ├─────────────────────┼────────────────────────────────────────────────┤
    │ explain()           │ Looks up an error code and prints details.    │
    └─────────────────────┴────────────────────────────────────────────────┘

Code categories::

    RK-CONFIG-*       Configuration errors
    RK-WORKSPACE-*    POM discovery and rewriting errors
    RK-GRAPH-*        Module graph errors
    RK-PLAN-*         Release planning errors
    RK-TAG-*          Tag naming and uniqueness errors
    RK-VCS-*          Git errors
    RK-BUILD-*        Build invoker errors
    RK-REVERT-*       Descriptor revert errors
    RK-RESOLVER-*     Artifact repository errors
    RK-INTERNAL-*     Internal invariant violations

Usage::

    from reactorkit.errors import E, ValidationError

    raise ValidationError(
        E.TAG_EXISTS_LOCAL,
        'There is already a tag named core-1.2.5 in this repository.',
        details=['It is likely that this version has been released before.'],
    )
"""

from __future__ import annotations

import sys
from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum
from typing import TextIO

from rich.console import Console
from rich.markup import escape as rich_escape


class ErrorCode(str, Enum):
    """Enumeration of all reactorkit diagnostic codes."""

    # Configuration
    CONFIG_INVALID_KEY = 'RK-CONFIG-INVALID-KEY'
    CONFIG_INVALID_VALUE = 'RK-CONFIG-INVALID-VALUE'
    CONFIG_PARSE_ERROR = 'RK-CONFIG-PARSE-ERROR'

    # Workspace
    WORKSPACE_NOT_FOUND = 'RK-WORKSPACE-NOT-FOUND'
    WORKSPACE_PARSE_ERROR = 'RK-WORKSPACE-PARSE-ERROR'
    WORKSPACE_DUPLICATE_MODULE = 'RK-WORKSPACE-DUPLICATE-MODULE'
    DESCRIPTOR_UPDATE_FAILED = 'RK-WORKSPACE-DESCRIPTOR-UPDATE-FAILED'
    SNAPSHOT_DEPENDENCY = 'RK-WORKSPACE-SNAPSHOT-DEPENDENCY'

    # Module graph
    GRAPH_CYCLE_DETECTED = 'RK-GRAPH-CYCLE-DETECTED'

    # Planning
    PREFLIGHT_DIRTY_WORKTREE = 'RK-PLAN-DIRTY-WORKTREE'
    UNKNOWN_MODULE = 'RK-PLAN-UNKNOWN-MODULE'
    UNRELEASED_DEPENDENCY = 'RK-PLAN-UNRELEASED-DEPENDENCY'
    NO_CHANGES = 'RK-PLAN-NO-CHANGES'
    BUILD_NUMBER_EXHAUSTED = 'RK-PLAN-BUILD-NUMBER-EXHAUSTED'

    # Tags
    TAG_EXISTS_LOCAL = 'RK-TAG-EXISTS-LOCAL'
    TAG_EXISTS_REMOTE = 'RK-TAG-EXISTS-REMOTE'
    TAG_NAME_DUPLICATE = 'RK-TAG-NAME-DUPLICATE'

    # Version control
    VCS_ERROR = 'RK-VCS-ERROR'

    # Build
    BUILD_FAILED = 'RK-BUILD-FAILED'

    # Revert
    REVERT_FAILED = 'RK-REVERT-FAILED'

    # Artifact repository
    RESOLVER_UNAVAILABLE = 'RK-RESOLVER-UNAVAILABLE'

    # Internal
    ROLLBACK_INVARIANT = 'RK-INTERNAL-ROLLBACK-INVARIANT'
    WORKFLOW_INVARIANT = 'RK-INTERNAL-WORKFLOW-INVARIANT'


# Convenience alias for shorter imports.
E = ErrorCode


@dataclass(frozen=True)
class ErrorInfo:
    """Metadata for a single error occurrence or catalog entry.

    Attributes:
        code: The ``RK-NAMED-KEY`` error code.
        message: One-line summary of what went wrong.
        hint: Optional suggestion for how to fix the error.
        details: Ordered detail lines, one per offending item.
    """

    code: ErrorCode
    message: str
    hint: str = ''
    details: tuple[str, ...] = ()


class ReactorKitError(Exception):
    """Base exception for all reactorkit errors.

    Args:
        code: The error code from :class:`ErrorCode`.
        message: One-line summary.
        hint: Optional suggestion for fixing the error.
        details: Ordered detail lines shown below the summary.
    """

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        hint: str = '',
        *,
        details: Sequence[str] = (),
    ) -> None:
        """Initialize with an error code, summary, hint and detail lines."""
        self.info = ErrorInfo(code=code, message=message, hint=hint, details=tuple(details))
        super().__init__(f'[{code.value}] {message}')

    @property
    def code(self) -> ErrorCode:
        """The error code."""
        return self.info.code

    @property
    def hint(self) -> str:
        """Suggestion for fixing this error, or empty string."""
        return self.info.hint

    @property
    def details(self) -> tuple[str, ...]:
        """Detail lines, in display order."""
        return self.info.details

    def report(self) -> str:
        """Return the summary and detail lines as one plain-text block."""
        return '\n'.join([self.info.message, *self.info.details])


class ValidationError(ReactorKitError):
    """A caller-correctable precondition failure.

    Raised before any mutation, or after the workflow has undone its own
    descriptor edits. Never triggers tag rollback.
    """


class InvariantError(ReactorKitError):
    """An internal invariant was violated. Fatal and not retryable."""


ERRORS: dict[ErrorCode, ErrorInfo] = {
    E.PREFLIGHT_DIRTY_WORKTREE: ErrorInfo(
        code=E.PREFLIGHT_DIRTY_WORKTREE,
        message='Working tree has uncommitted changes.',
        hint='Commit or stash your changes before releasing.',
    ),
    E.TAG_EXISTS_LOCAL: ErrorInfo(
        code=E.TAG_EXISTS_LOCAL,
        message='A proposed release tag already exists in the local repository.',
        hint='The version was probably released before. Retry with a higher --build-number.',
    ),
    E.TAG_EXISTS_REMOTE: ErrorInfo(
        code=E.TAG_EXISTS_REMOTE,
        message='A proposed release tag already exists on the remote.',
        hint='Fetch tags and retry with a new --build-number.',
    ),
    E.SNAPSHOT_DEPENDENCY: ErrorInfo(
        code=E.SNAPSHOT_DEPENDENCY,
        message='A released module references a snapshot dependency outside the reactor.',
        hint='Release the dependency first, or depend on a released version.',
    ),
    E.GRAPH_CYCLE_DETECTED: ErrorInfo(
        code=E.GRAPH_CYCLE_DETECTED,
        message='Circular dependency detected between reactor modules.',
        hint='Break the cycle; Maven cannot build it either.',
    ),
    E.UNRELEASED_DEPENDENCY: ErrorInfo(
        code=E.UNRELEASED_DEPENDENCY,
        message='A released module depends on a reactor module that has never been released.',
        hint='Add the dependency to --module, or drop the explicit module subset.',
    ),
    E.BUILD_NUMBER_EXHAUSTED: ErrorInfo(
        code=E.BUILD_NUMBER_EXHAUSTED,
        message='No free build number was found within the search bound.',
        hint='Pass an explicit --build-number or clean up stale tags.',
    ),
    E.REVERT_FAILED: ErrorInfo(
        code=E.REVERT_FAILED,
        message='Release succeeded but the pom.xml changes could not be reverted.',
        hint="Run 'git checkout -- .' to restore the working tree.",
    ),
    E.ROLLBACK_INVARIANT: ErrorInfo(
        code=E.ROLLBACK_INVARIANT,
        message='Rollback was invoked without a complete tag set.',
        hint='This is a bug in reactorkit. Please report it with the full log.',
    ),
    E.WORKFLOW_INVARIANT: ErrorInfo(
        code=E.WORKFLOW_INVARIANT,
        message='The release workflow received an event its current stage does not accept.',
        hint='This is a bug in reactorkit. Please report it with the full log.',
    ),
    E.VCS_ERROR: ErrorInfo(
        code=E.VCS_ERROR,
        message='A git command failed.',
        hint='The git output is shown above. Tags already created are handled by rollback.',
    ),
    E.BUILD_FAILED: ErrorInfo(
        code=E.BUILD_FAILED,
        message='The release build failed.',
        hint='Fix the build and release again with a new build number. '
        'Set delete_tags_on_fail to remove tags of modules that were not published.',
    ),
    E.UNKNOWN_MODULE: ErrorInfo(
        code=E.UNKNOWN_MODULE,
        message='A requested module is not part of the reactor.',
        hint='Use the artifactId or groupId:artifactId of a module listed by "reactorkit plan".',
    ),
    E.NO_CHANGES: ErrorInfo(
        code=E.NO_CHANGES,
        message='Nothing changed since the last release and no_changes_action is "fail".',
        hint='Force a module with --force-module or change no_changes_action.',
    ),
}


def explain(code: str) -> str | None:
    """Return a detailed explanation for an error code.

    Args:
        code: The error code string, e.g. ``"RK-TAG-EXISTS-LOCAL"``.

    Returns:
        A formatted explanation string, or ``None`` if the code is unknown.
    """
    try:
        error_code = ErrorCode(code)
    except ValueError:
        return None

    info = ERRORS.get(error_code)
    if info is None:
        return f'{code}: No detailed explanation available.'

    lines = [f'{code}: {info.message}']
    if info.hint:
        lines.append(f'  Hint: {info.hint}')
    return '\n'.join(lines)


def render_error(exc: ReactorKitError, *, file: TextIO | None = None) -> None:
    """Render an error in Rust-compiler style.

    Output format::

        error[RK-TAG-EXISTS-REMOTE]: Cannot release because there is ...
          |  * There is already a tag named core-1.2.5 in the remote repo.
          |  Please try releasing again with a new build number.
          = hint: Fetch tags and retry with a new --build-number.

    Args:
        exc: The error to render.
        file: Output stream (defaults to ``sys.stderr``).
    """
    out = file or sys.stderr

    if out.isatty():
        console = Console(file=out, highlight=False)
        msg = rich_escape(exc.info.message)
        console.print(
            f'[bold red]error[/bold red][bold red]\\[{exc.code.value}][/bold red][bold]: {msg}[/bold]',
        )
        for line in exc.details:
            console.print(f'  [dim]|[/dim] {rich_escape(line)}')
        if exc.hint:
            console.print(f'  [dim]=[/dim] [cyan]hint[/cyan]: {rich_escape(exc.hint)}')
        console.print()
    else:
        print(f'error[{exc.code.value}]: {exc.info.message}', file=out)  # noqa: T201 - CLI output
        for line in exc.details:
            print(f'  | {line}', file=out)  # noqa: T201 - CLI output
        if exc.hint:
            print(f'  = hint: {exc.hint}', file=out)  # noqa: T201 - CLI output
        print(file=out)  # noqa: T201 - CLI output


__all__ = [
    'E',
    'ERRORS',
    'ErrorCode',
    'ErrorInfo',
    'InvariantError',
    'ReactorKitError',
    'ValidationError',
    'explain',
    'render_error',
]

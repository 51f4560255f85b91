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

"""CLI entry point for reactorkit.

Constructs backend instances and injects them into the workflow.

Subcommands::

    reactorkit release    Tag, build and deploy every changed module
    reactorkit plan       Preview the release plan (no mutation)
    reactorkit explain    Explain an error code

Usage::

    # Preview what would be released:
    reactorkit plan

    # Release, deleting tags of unpublished modules if the build fails:
    reactorkit release --delete-tags-on-fail -P release

    # Release two modules with an explicit build number:
    reactorkit release --module core --module plugin-http --build-number 7

    # Explain an error:
    reactorkit explain RK-TAG-EXISTS-REMOTE

Exit codes: 0 released or nothing to release, 1 failure, 2 usage error,
130 interrupted.
"""

from __future__ import annotations

import argparse
import asyncio
import dataclasses
import sys
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from rich_argparse import RichHelpFormatter

from reactorkit import __version__
from reactorkit.backends.build import MavenBuilder
from reactorkit.backends.resolver import MavenRepositoryResolver
from reactorkit.backends.vcs import GitCLIBackend, scm_url_to_remote
from reactorkit.backends.workspace import MavenWorkspace
from reactorkit.config import CONFIG_FILENAME, ReleaseOptions, load_config, validate_options
from reactorkit.errors import ReactorKitError, explain, render_error
from reactorkit.graph import build_graph
from reactorkit.logging import configure_logging, get_logger
from reactorkit.reactor import build_release_plan
from reactorkit.workflow import OutcomeStatus, ReleaseOrchestrator, ReleaseOutcome

logger = get_logger(__name__)


def _find_workspace_root() -> Path:
    """Walk up from CWD looking for ``reactorkit.toml``.

    Falls back to CWD, which must then hold the aggregator ``pom.xml``.
    """
    cwd = Path.cwd().resolve()
    for candidate in (cwd, *cwd.parents):
        if (candidate / CONFIG_FILENAME).is_file():
            return candidate
    return cwd


def _split_csv(value: str) -> list[str]:
    return [part.strip() for part in value.split(',') if part.strip()]


def _apply_overrides(options: ReleaseOptions, args: argparse.Namespace) -> ReleaseOptions:
    """Return ``options`` with every CLI flag that was given applied."""
    overrides: dict[str, Any] = {}  # noqa: ANN401
    if getattr(args, 'goals', None):
        overrides['goals'] = tuple(args.goals)
    if getattr(args, 'profiles', None):
        overrides['profiles'] = tuple(args.profiles)
    if getattr(args, 'modules', None):
        overrides['modules_to_release'] = tuple(args.modules)
    if getattr(args, 'force_modules', None):
        overrides['modules_to_force_release'] = tuple(args.force_modules)
    for key in ('skip_tests', 'push_tags', 'delete_tags_on_fail', 'build_number', 'incremental', 'remote'):
        value = getattr(args, key, None)
        if value is not None:
            overrides[key] = value
    if not overrides:
        return options
    return validate_options(dataclasses.replace(options, **overrides))


async def _create_backends(
    root: Path,
    options: ReleaseOptions,
) -> tuple[GitCLIBackend, MavenWorkspace, MavenRepositoryResolver, MavenBuilder]:
    """Instantiate the default backends for a reactor at ``root``."""
    workspace = MavenWorkspace(root)
    remote = options.remote or scm_url_to_remote(await workspace.scm_remote()) or 'origin'
    logger.debug('using_remote', remote=remote)
    vcs = GitCLIBackend(root, remote=remote)
    resolver = MavenRepositoryResolver(
        base_url=options.resolver_url,
        attempts=options.resolver_attempts,
        interval=options.resolver_interval,
        pool_size=options.http_pool_size,
    )
    builder = MavenBuilder(root, timeout=options.build_timeout)
    return vcs, workspace, resolver, builder


def _load_options(args: argparse.Namespace) -> tuple[Path, ReleaseOptions]:
    root = Path(args.root).resolve() if getattr(args, 'root', None) else _find_workspace_root()
    return root, _apply_overrides(load_config(root), args)


def _print_outcome(outcome: ReleaseOutcome) -> None:
    if outcome.status is OutcomeStatus.NOTHING_TO_RELEASE:
        print('Nothing to release.')  # noqa: T201 - CLI output
        return
    if outcome.status is OutcomeStatus.RELEASED:
        print(f'Released {len(outcome.tags)} module(s):')  # noqa: T201 - CLI output
        for tag in outcome.tags:
            print(f'  {tag.coordinates} {tag.version}  [{tag.name}]')  # noqa: T201 - CLI output
        return

    if outcome.error is not None:
        render_error(outcome.error)
    if outcome.status is OutcomeStatus.VALIDATION_FAILED and not outcome.mutated:
        print('Nothing was changed.', file=sys.stderr)  # noqa: T201 - CLI output
        return
    if outcome.tags_created:
        print(f'Tags created before the failure: {", ".join(outcome.tags_created)}', file=sys.stderr)  # noqa: T201 - CLI output
    rollback = outcome.rollback
    if rollback is not None and rollback.enabled:
        for label, names in (('deleted', rollback.deleted), ('kept', rollback.kept), ('not created', rollback.skipped)):
            if names:
                print(f'Rollback {label}: {", ".join(names)}', file=sys.stderr)  # noqa: T201 - CLI output
        for name, error in rollback.failed.items():
            print(f'Rollback could not handle {name}: {error}', file=sys.stderr)  # noqa: T201 - CLI output
    elif outcome.tags_created:
        print(  # noqa: T201 - CLI output
            'Tags were left in place. Rerun with --delete-tags-on-fail to remove tags of unpublished modules.',
            file=sys.stderr,
        )
    if not outcome.descriptors_restored:
        print('pom.xml changes could not be reverted; restore them with git checkout.', file=sys.stderr)  # noqa: T201 - CLI output


async def _cmd_release(args: argparse.Namespace) -> int:
    """Handle the ``release`` subcommand."""
    root, options = _load_options(args)
    vcs, workspace, resolver, builder = await _create_backends(root, options)
    orchestrator = ReleaseOrchestrator(
        vcs=vcs,
        workspace=workspace,
        resolver=resolver,
        builder=builder,
        options=options,
        root=root,
        dry_run=args.dry_run,
    )
    outcome = await orchestrator.run()
    _print_outcome(outcome)
    return 0 if outcome.ok else 1


async def _cmd_plan(args: argparse.Namespace) -> int:
    """Handle the ``plan`` subcommand."""
    root, options = _load_options(args)
    vcs, workspace, _resolver, _builder = await _create_backends(root, options)
    graph = build_graph(await workspace.discover())
    plan = await build_release_plan(graph, vcs, options, root=root)

    if args.format == 'json':
        print(plan.format_json())  # noqa: T201 - CLI output
    else:
        print(plan.format_table())  # noqa: T201 - CLI output
    return 0


def _cmd_explain(args: argparse.Namespace) -> int:
    """Handle the ``explain`` subcommand."""
    result = explain(args.code)
    if result is None:
        print(f'Unknown error code: {args.code}')  # noqa: T201 - CLI output
        return 1
    print(result)  # noqa: T201 - CLI output
    return 0


def _add_selection_flags(parser: argparse.ArgumentParser) -> None:
    """Flags shared by ``release`` and ``plan``."""
    parser.add_argument(
        '--root',
        metavar='DIR',
        default=None,
        help=f'Reactor root. Defaults to the nearest directory with {CONFIG_FILENAME}, else CWD.',
    )
    parser.add_argument(
        '--module',
        dest='modules',
        action='append',
        metavar='ARTIFACT',
        help='Release only this module (artifactId or groupId:artifactId). Repeatable.',
    )
    parser.add_argument(
        '--force-module',
        dest='force_modules',
        action='append',
        metavar='ARTIFACT',
        help='Release this module even if it has not changed. Repeatable.',
    )
    parser.add_argument(
        '--build-number',
        type=int,
        default=None,
        help='Use this build number instead of searching for a free one.',
    )
    parser.add_argument(
        '--full',
        dest='incremental',
        action='store_false',
        default=None,
        help='Release every module, changed or not.',
    )


def build_parser() -> argparse.ArgumentParser:
    """Build the CLI argument parser.

    Returns:
        Configured :class:`argparse.ArgumentParser`.
    """
    RichHelpFormatter.styles['argparse.groups'] = 'bold yellow'
    parser = argparse.ArgumentParser(
        prog='reactorkit',
        description='Release automation for multi-module Maven reactors.',
        formatter_class=RichHelpFormatter,
    )
    parser.add_argument(
        '--version',
        action='version',
        version=f'%(prog)s {__version__}',
    )
    verbosity = parser.add_mutually_exclusive_group()
    verbosity.add_argument('-v', '--verbose', action='store_true', help='Log every git and mvn command.')
    verbosity.add_argument('-q', '--quiet', action='store_true', help='Only log warnings and errors.')
    parser.add_argument('--json-log', action='store_true', help='Emit logs as JSON lines.')

    subparsers = parser.add_subparsers(dest='command')

    release_parser = subparsers.add_parser(
        'release',
        help='Tag, build and deploy every changed module.',
        formatter_class=RichHelpFormatter,
    )
    _add_selection_flags(release_parser)
    release_parser.add_argument(
        '--dry-run',
        action='store_true',
        help='Preview mode: log git and mvn commands without executing.',
    )
    release_parser.add_argument(
        '--goals',
        type=_split_csv,
        default=None,
        metavar='GOAL[,GOAL]',
        help='Comma-separated build goals (default: deploy).',
    )
    release_parser.add_argument(
        '-P',
        '--profile',
        dest='profiles',
        action='append',
        metavar='PROFILE',
        help='Activate a build profile. Repeatable.',
    )
    release_parser.add_argument(
        '--skip-tests',
        action='store_const',
        const=True,
        default=None,
        help='Pass -DskipTests=true to the build.',
    )
    release_parser.add_argument(
        '--no-push-tags',
        dest='push_tags',
        action='store_false',
        default=None,
        help='Create tags locally without pushing them.',
    )
    release_parser.add_argument(
        '--delete-tags-on-fail',
        action='store_const',
        const=True,
        default=None,
        help='On failure, delete tags of modules whose artifacts were not published.',
    )
    release_parser.add_argument(
        '--remote',
        default=None,
        help='Git remote name or URL (default: <scm> of the root pom.xml, else origin).',
    )

    plan_parser = subparsers.add_parser(
        'plan',
        help='Preview the release plan without changing anything.',
        formatter_class=RichHelpFormatter,
    )
    _add_selection_flags(plan_parser)
    plan_parser.add_argument(
        '--format',
        choices=['table', 'json'],
        default='table',
        help='Output format (default: table).',
    )

    explain_parser = subparsers.add_parser(
        'explain',
        help='Explain an error code.',
        formatter_class=RichHelpFormatter,
    )
    explain_parser.add_argument('code', help='Error code, e.g. RK-TAG-EXISTS-LOCAL.')

    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """CLI entry point.

    Returns:
        Exit code (0 for success, non-zero for failure).
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(verbose=args.verbose, quiet=args.quiet, json_log=args.json_log)

    try:
        command = args.command
        if command == 'release':
            return asyncio.run(_cmd_release(args))
        if command == 'plan':
            return asyncio.run(_cmd_plan(args))
        if command == 'explain':
            return _cmd_explain(args)

        parser.print_help()  # noqa: T201 - CLI output
        print(  # noqa: T201 - CLI output
            f'\n{parser.prog}: error: please provide a command',
            file=sys.stderr,
        )
        return 2

    except ReactorKitError as exc:
        render_error(exc)
        return 1
    except KeyboardInterrupt:
        logger.info('interrupted')
        return 130


def _main() -> None:
    """Wrapper for pyproject.toml [project.scripts] entry point."""
    sys.exit(main())


__all__ = [
    'build_parser',
    'main',
]

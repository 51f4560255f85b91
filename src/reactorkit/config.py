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

"""Configuration reader for reactorkit.

Reads an optional ``reactorkit.toml`` next to the aggregator POM and
returns a frozen :class:`ReleaseOptions`. The same value is passed,
unchanged, to planning, tagging, the build and rollback; nothing reads
configuration from module-level state.

Validation Pipeline::

    reactorkit.toml
    ┌──────────────────────┐
    │ delete_tag_on_fail = │  ← typo!
    └──────────┬───────────┘
               │
               ▼
    ┌──────────────────┐     ┌──────────────────────────────┐
    │ 1. Unknown key   │────→│ RK-CONFIG-INVALID-KEY:       │
    │    detection     │     │ hint: "Did you mean          │
    └────────┬─────────┘     │  'delete_tags_on_fail'?"     │
             │               └──────────────────────────────┘
             ▼
    ┌──────────────────┐     ┌──────────────────────────────┐
    │ 2. Type check    │────→│ RK-CONFIG-INVALID-VALUE:     │
    │    each value    │     │ 'goals' must be list, got str│
    └────────┬─────────┘     └──────────────────────────────┘
             │
             ▼
    ┌──────────────────┐
    │ ReleaseOptions() │  ← frozen dataclass
    └──────────────────┘

Supported keys in ``reactorkit.toml``::

    goals                      = ["deploy"]
    profiles                   = ["release"]
    skip_tests                 = false
    push_tags                  = true
    delete_tags_on_fail        = false
    modules_to_release         = []          # artifactIds
    modules_to_force_release   = []          # artifactIds
    build_number               = 7           # omit to search for a free one
    tag_format                 = "{artifact_id}-{version}.{build_number}"
    incremental                = true
    no_changes_action          = "release-none"   # or "release-all", "fail"
    keep_qualifier             = ["*-bom"]   # artifactId globs
    remote                     = ""          # default: <scm> of the root POM
    resolver_url               = "https://repo1.maven.org/maven2"
    resolver_attempts          = 1
    resolver_interval          = 5.0
    max_build_number_attempts  = 100
    http_pool_size             = 10
    build_timeout              = 3600
"""

from __future__ import annotations

import difflib
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

import tomlkit
import tomlkit.exceptions

from reactorkit.errors import E, ReactorKitError
from reactorkit.logging import get_logger

logger = get_logger(__name__)

CONFIG_FILENAME = 'reactorkit.toml'

DEFAULT_TAG_FORMAT = '{artifact_id}-{version}.{build_number}'
DEFAULT_MAX_BUILD_NUMBER_ATTEMPTS = 100

ALLOWED_NO_CHANGES_ACTIONS: frozenset[str] = frozenset({'release-none', 'release-all', 'fail'})
_TAG_PLACEHOLDERS = ('{artifact_id}', '{version}', '{build_number}')


@dataclass(frozen=True)
class ReleaseOptions:
    """Validated, immutable options for one release run.

    Attributes:
        goals: Build goals to run.
        profiles: Build profiles to activate.
        skip_tests: Pass skip-tests to the build.
        push_tags: Push each tag to the remote right after creating it.
        delete_tags_on_fail: Let the rollback coordinator delete tags of
            modules whose artifacts were not published.
        modules_to_release: Explicit release subset (artifactIds or
            ``groupId:artifactId``). Empty means every module.
        modules_to_force_release: Modules released even when unchanged.
        build_number: Explicit build number. ``None`` searches for the
            next free one.
        tag_format: Tag name template with ``{artifact_id}``,
            ``{group_id}``, ``{version}`` and ``{build_number}``.
        incremental: Skip modules unchanged since their last release.
        no_changes_action: ``release-none``, ``release-all`` or ``fail``
            when incremental planning finds nothing changed.
        keep_qualifier: artifactId globs whose versions keep their
            ``-SNAPSHOT`` qualifier.
        remote: Git remote name or URL. Empty derives it from the root
            POM's ``<scm>`` and falls back to ``origin``.
        resolver_url: Maven repository probed during rollback.
        resolver_attempts: Probes before declaring an artifact unpublished.
        resolver_interval: Seconds between probes.
        max_build_number_attempts: Bound on the build-number search.
        http_pool_size: Max connections for the httpx pool.
        build_timeout: Seconds before the build process is killed.
        config_path: The ``reactorkit.toml`` that was loaded, if any.
    """

    goals: tuple[str, ...] = ('deploy',)
    profiles: tuple[str, ...] = ()
    skip_tests: bool = False
    push_tags: bool = True
    delete_tags_on_fail: bool = False
    modules_to_release: tuple[str, ...] = ()
    modules_to_force_release: tuple[str, ...] = ()
    build_number: int | None = None
    tag_format: str = DEFAULT_TAG_FORMAT
    incremental: bool = True
    no_changes_action: str = 'release-none'
    keep_qualifier: tuple[str, ...] = ()
    remote: str = ''
    resolver_url: str = 'https://repo1.maven.org/maven2'
    resolver_attempts: int = 1
    resolver_interval: float = 5.0
    max_build_number_attempts: int = DEFAULT_MAX_BUILD_NUMBER_ATTEMPTS
    http_pool_size: int = 10
    build_timeout: int = 3600
    config_path: Path | None = field(default=None, compare=False)


VALID_KEYS: frozenset[str] = frozenset(f.name for f in fields(ReleaseOptions) if f.name != 'config_path')

_LIST_KEYS = frozenset({'goals', 'profiles', 'modules_to_release', 'modules_to_force_release', 'keep_qualifier'})

_TYPE_MAP: dict[str, type | tuple[type, ...]] = {
    'goals': list,
    'profiles': list,
    'skip_tests': bool,
    'push_tags': bool,
    'delete_tags_on_fail': bool,
    'modules_to_release': list,
    'modules_to_force_release': list,
    'build_number': int,
    'tag_format': str,
    'incremental': bool,
    'no_changes_action': str,
    'keep_qualifier': list,
    'remote': str,
    'resolver_url': str,
    'resolver_attempts': int,
    'resolver_interval': (int, float),
    'max_build_number_attempts': int,
    'http_pool_size': int,
    'build_timeout': int,
}


def _validate_value_type(key: str, value: Any) -> None:  # noqa: ANN401 - dynamic config values
    """Raise if a config value has the wrong type."""
    expected = _TYPE_MAP[key]
    # bool is an int subclass; reject it where a number is expected.
    if isinstance(value, bool) and expected is not bool:
        ok = False
    else:
        ok = isinstance(value, expected)
    if not ok:
        type_name = expected.__name__ if isinstance(expected, type) else ' or '.join(t.__name__ for t in expected)
        raise ReactorKitError(
            code=E.CONFIG_INVALID_VALUE,
            message=f"'{key}' must be {type_name}, got {type(value).__name__}",
            hint=f'Check the value of {key} in {CONFIG_FILENAME}.',
        )
    if key in _LIST_KEYS:
        for item in value:
            if not isinstance(item, str):
                raise ReactorKitError(
                    code=E.CONFIG_INVALID_VALUE,
                    message=f"'{key}' items must be strings, got {type(item).__name__}: {item!r}",
                )


def validate_options(options: ReleaseOptions) -> ReleaseOptions:
    """Check cross-field constraints and return ``options`` unchanged.

    Also applied to options assembled from CLI flags.

    Raises:
        ReactorKitError: On any invalid value.
    """
    if options.no_changes_action not in ALLOWED_NO_CHANGES_ACTIONS:
        raise ReactorKitError(
            code=E.CONFIG_INVALID_VALUE,
            message=f'no_changes_action must be one of {sorted(ALLOWED_NO_CHANGES_ACTIONS)}, '
            f'got {options.no_changes_action!r}',
        )
    missing = [p for p in _TAG_PLACEHOLDERS if p not in options.tag_format]
    if missing:
        raise ReactorKitError(
            code=E.CONFIG_INVALID_VALUE,
            message=f'tag_format {options.tag_format!r} is missing {", ".join(missing)}',
            hint='Tag names must be unique per module, version and build number.',
        )
    if options.build_number is not None and options.build_number < 0:
        raise ReactorKitError(
            code=E.CONFIG_INVALID_VALUE,
            message=f'build_number must be non-negative, got {options.build_number}',
        )
    for key in ('max_build_number_attempts', 'resolver_attempts', 'http_pool_size', 'build_timeout'):
        if getattr(options, key) < 1:
            raise ReactorKitError(
                code=E.CONFIG_INVALID_VALUE,
                message=f'{key} must be at least 1, got {getattr(options, key)}',
            )
    if not options.goals:
        raise ReactorKitError(
            code=E.CONFIG_INVALID_VALUE,
            message='goals must name at least one build goal',
        )
    return options


def load_config(workspace_root: Path) -> ReleaseOptions:
    """Load and validate ``reactorkit.toml``.

    A missing file yields the defaults.

    Args:
        workspace_root: Directory containing ``reactorkit.toml``.

    Returns:
        A validated :class:`ReleaseOptions`.

    Raises:
        ReactorKitError: If the file cannot be parsed or holds invalid keys
            or values.
    """
    config_path = workspace_root / CONFIG_FILENAME

    if not config_path.is_file():
        logger.debug('no_reactorkit_config', path=str(config_path))
        return ReleaseOptions()

    try:
        text = config_path.read_text(encoding='utf-8')
    except OSError as exc:
        raise ReactorKitError(
            code=E.CONFIG_PARSE_ERROR,
            message=f'Failed to read {config_path}: {exc}',
        ) from exc

    try:
        doc = tomlkit.parse(text)
    except tomlkit.exceptions.TOMLKitError as exc:
        raise ReactorKitError(
            code=E.CONFIG_PARSE_ERROR,
            message=f'Failed to parse {config_path}: {exc}',
        ) from exc

    raw: dict[str, Any] = doc.unwrap()  # noqa: ANN401

    for key in raw:
        if key not in VALID_KEYS:
            suggestion = difflib.get_close_matches(key, VALID_KEYS, n=1, cutoff=0.6)
            hint = f"Did you mean '{suggestion[0]}'?" if suggestion else f'Valid keys: {", ".join(sorted(VALID_KEYS))}.'
            raise ReactorKitError(
                code=E.CONFIG_INVALID_KEY,
                message=f"Unknown key '{key}' in {CONFIG_FILENAME}",
                hint=hint,
            )

    kwargs: dict[str, Any] = {}  # noqa: ANN401
    for key, value in raw.items():
        _validate_value_type(key, value)
        if key in _LIST_KEYS:
            value = tuple(value)
        elif key == 'resolver_interval':
            value = float(value)
        kwargs[key] = value

    logger.debug('loaded_reactorkit_config', path=str(config_path), keys=sorted(kwargs))
    return validate_options(ReleaseOptions(**kwargs, config_path=config_path))


__all__ = [
    'ALLOWED_NO_CHANGES_ACTIONS',
    'CONFIG_FILENAME',
    'DEFAULT_MAX_BUILD_NUMBER_ATTEMPTS',
    'DEFAULT_TAG_FORMAT',
    'VALID_KEYS',
    'ReleaseOptions',
    'load_config',
    'validate_options',
]

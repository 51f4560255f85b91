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

"""Tests for reactorkit.config module."""

from __future__ import annotations

from pathlib import Path

import pytest
from reactorkit.config import (
    CONFIG_FILENAME,
    DEFAULT_TAG_FORMAT,
    VALID_KEYS,
    ReleaseOptions,
    load_config,
    validate_options,
)
from reactorkit.errors import E, ReactorKitError


def _write(tmp_path: Path, text: str) -> Path:
    (tmp_path / CONFIG_FILENAME).write_text(text, encoding='utf-8')
    return tmp_path


class TestReleaseOptionsDefaults:
    """ReleaseOptions has safe defaults."""

    def test_defaults(self) -> None:
        """Deploy, push tags, never delete tags unless asked."""
        opts = ReleaseOptions()
        assert opts.goals == ('deploy',)
        assert opts.push_tags is True
        assert opts.delete_tags_on_fail is False
        assert opts.build_number is None
        assert opts.tag_format == DEFAULT_TAG_FORMAT
        assert opts.incremental is True
        assert opts.no_changes_action == 'release-none'

    def test_frozen(self) -> None:
        """Options are immutable once loaded."""
        opts = ReleaseOptions()
        with pytest.raises(AttributeError):
            opts.push_tags = False  # type: ignore[misc]

    def test_config_path_is_not_compared(self) -> None:
        """Where options came from does not affect equality."""
        assert ReleaseOptions(config_path=Path('/a')) == ReleaseOptions()

    def test_valid_keys_exclude_config_path(self) -> None:
        """config_path is set by the loader, not by users."""
        assert 'config_path' not in VALID_KEYS
        assert 'tag_format' in VALID_KEYS


class TestLoadConfig:
    """Tests for load_config()."""

    def test_missing_file_yields_defaults(self, tmp_path: Path) -> None:
        """No reactorkit.toml means default options."""
        assert load_config(tmp_path) == ReleaseOptions()

    def test_full_file(self, tmp_path: Path) -> None:
        """Every supported key is read and normalized."""
        root = _write(
            tmp_path,
            '\n'.join([
                'goals = ["clean", "deploy"]',
                'profiles = ["release"]',
                'skip_tests = true',
                'push_tags = false',
                'delete_tags_on_fail = true',
                'modules_to_release = ["core"]',
                'build_number = 4',
                'tag_format = "{group_id}/{artifact_id}-{version}.{build_number}"',
                'no_changes_action = "fail"',
                'keep_qualifier = ["*-bom"]',
                'resolver_interval = 2',
            ]),
        )
        opts = load_config(root)
        assert opts.goals == ('clean', 'deploy')
        assert opts.profiles == ('release',)
        assert opts.skip_tests is True
        assert opts.push_tags is False
        assert opts.delete_tags_on_fail is True
        assert opts.modules_to_release == ('core',)
        assert opts.build_number == 4
        assert opts.tag_format.startswith('{group_id}/')
        assert opts.no_changes_action == 'fail'
        assert opts.keep_qualifier == ('*-bom',)
        assert opts.resolver_interval == 2.0
        assert isinstance(opts.resolver_interval, float)
        assert opts.config_path == root / CONFIG_FILENAME

    def test_unknown_key_suggests(self, tmp_path: Path) -> None:
        """A typo gets a did-you-mean hint."""
        root = _write(tmp_path, 'push_tag = true\n')
        with pytest.raises(ReactorKitError) as exc_info:
            load_config(root)
        assert exc_info.value.code == E.CONFIG_INVALID_KEY
        assert exc_info.value.hint == "Did you mean 'push_tags'?"

    def test_parse_error(self, tmp_path: Path) -> None:
        """Malformed TOML is reported as a parse error."""
        root = _write(tmp_path, 'goals = [\n')
        with pytest.raises(ReactorKitError) as exc_info:
            load_config(root)
        assert exc_info.value.code == E.CONFIG_PARSE_ERROR

    def test_wrong_type(self, tmp_path: Path) -> None:
        """A string where a bool is expected is rejected."""
        root = _write(tmp_path, 'push_tags = "yes"\n')
        with pytest.raises(ReactorKitError) as exc_info:
            load_config(root)
        assert exc_info.value.code == E.CONFIG_INVALID_VALUE

    def test_bool_is_not_a_number(self, tmp_path: Path) -> None:
        """true is not accepted as a build number."""
        root = _write(tmp_path, 'build_number = true\n')
        with pytest.raises(ReactorKitError) as exc_info:
            load_config(root)
        assert exc_info.value.code == E.CONFIG_INVALID_VALUE

    def test_list_items_must_be_strings(self, tmp_path: Path) -> None:
        """Module lists hold names only."""
        root = _write(tmp_path, 'modules_to_release = ["core", 3]\n')
        with pytest.raises(ReactorKitError) as exc_info:
            load_config(root)
        assert exc_info.value.code == E.CONFIG_INVALID_VALUE


class TestValidateOptions:
    """Cross-field checks shared by the file loader and CLI flags."""

    @pytest.mark.parametrize(
        'overrides',
        [
            {'no_changes_action': 'maybe'},
            {'tag_format': '{artifact_id}-{version}'},
            {'build_number': -1},
            {'max_build_number_attempts': 0},
            {'resolver_attempts': 0},
            {'goals': ()},
        ],
    )
    def test_rejected(self, overrides: dict[str, object]) -> None:
        """Invalid values raise CONFIG_INVALID_VALUE."""
        with pytest.raises(ReactorKitError) as exc_info:
            validate_options(ReleaseOptions(**overrides))  # type: ignore[arg-type]
        assert exc_info.value.code == E.CONFIG_INVALID_VALUE

    def test_valid_returned_unchanged(self) -> None:
        """Valid options pass through."""
        opts = ReleaseOptions(build_number=0)
        assert validate_options(opts) is opts

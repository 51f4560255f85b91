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

"""Tests for the Maven build invoker and the subprocess runner."""

from __future__ import annotations

import subprocess  # noqa: S404
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
from reactorkit.backends._run import CommandResult, run_command
from reactorkit.backends.build import Builder
from reactorkit.backends.build.maven import MavenBuilder, build_command
from reactorkit.errors import E, ReactorKitError
from reactorkit.module import ReleasableModule
from reactorkit.reactor import ReleasePlan

from tests._fakes import make_module


def _plan() -> ReleasePlan:
    return ReleasePlan(
        modules=(
            ReleasableModule(module=make_module('core'), release_version='1.0', build_number=1, will_be_released=True),
            ReleasableModule(module=make_module('api'), release_version='1.0', build_number=1, will_be_released=False),
            ReleasableModule(module=make_module('web'), release_version='1.0', build_number=1, will_be_released=True),
        ),
    )


class TestBuildCommand:
    """Tests for build_command()."""

    def test_released_modules_selected(self) -> None:
        """Only released modules are built."""
        cmd = build_command(_plan(), goals=['deploy'])
        assert cmd == ['mvn', '-B', 'deploy', '-DperformRelease=true', '--projects', 'com.acme:core,com.acme:web']

    def test_profiles_and_skip_tests(self) -> None:
        """Profiles are comma-joined; skip-tests is a property."""
        cmd = build_command(_plan(), goals=['clean', 'deploy'], profiles=['release', 'sign'], skip_tests=True)
        assert cmd[:7] == ['mvn', '-B', 'clean', 'deploy', '-P', 'release,sign', '-DskipTests=true']

    def test_explicit_subset(self) -> None:
        """An explicit subset becomes artifactId selectors."""
        cmd = build_command(_plan(), goals=['deploy'], modules_to_release=['web', 'com.acme:core'])
        assert cmd[-2:] == ['--projects', ':web,com.acme:core']

    def test_no_also_make(self) -> None:
        """Unreleased dependencies are not rebuilt."""
        assert '--also-make' not in build_command(_plan(), goals=['deploy'])

    def test_wrapper_executable(self) -> None:
        """A Maven wrapper can replace mvn."""
        assert build_command(_plan(), goals=['deploy'], executable='./mvnw')[0] == './mvnw'


class TestMavenBuilder:
    """Tests for MavenBuilder.run_build()."""

    def test_is_builder(self) -> None:
        """Runtime protocol check."""
        assert isinstance(MavenBuilder(Path('/repo')), Builder)

    @pytest.mark.asyncio()
    async def test_runs_from_root_streaming(self) -> None:
        """Maven runs in the reactor root and streams its output."""
        result = CommandResult(command=['mvn'], return_code=0)
        with patch('reactorkit.backends.build.maven.run_command', return_value=result) as m:
            got = await MavenBuilder(Path('/repo'), timeout=60).run_build(_plan(), goals=['deploy'])
        assert got is result
        kwargs = m.call_args.kwargs
        assert kwargs['cwd'] == Path('/repo')
        assert kwargs['timeout'] == 60
        assert kwargs['stream'] is True

    @pytest.mark.asyncio()
    async def test_timeout(self) -> None:
        """A build past its timeout is a build failure."""
        with patch(
            'reactorkit.backends.build.maven.run_command',
            side_effect=subprocess.TimeoutExpired(cmd='mvn', timeout=1, output='[INFO] a\n[INFO] b'),
        ):
            with pytest.raises(ReactorKitError) as exc_info:
                await MavenBuilder(Path('/repo'), timeout=1).run_build(_plan(), goals=['deploy'])
        assert exc_info.value.code == E.BUILD_FAILED
        assert exc_info.value.details[-2:] == ('[INFO] a', '[INFO] b')

    @pytest.mark.asyncio()
    async def test_missing_executable(self) -> None:
        """A missing mvn is reported with a hint."""
        with patch('reactorkit.backends.build.maven.run_command', side_effect=FileNotFoundError('mvn')):
            with pytest.raises(ReactorKitError) as exc_info:
                await MavenBuilder(Path('/repo')).run_build(_plan(), goals=['deploy'])
        assert exc_info.value.code == E.BUILD_FAILED
        assert exc_info.value.hint


class TestRunCommand:
    """Tests for run_command()."""

    def test_dry_run_does_not_execute(self) -> None:
        """Dry runs succeed without spawning anything."""
        with patch('reactorkit.backends._run.subprocess.run') as m:
            result = run_command(['git', 'tag', 'x'], dry_run=True)
        m.assert_not_called()
        assert result.ok
        assert result.dry_run

    def test_captures_output(self) -> None:
        """stdout and stderr are recorded."""
        completed = MagicMock(returncode=2, stdout='out', stderr='line one\nline two\n')
        with patch('reactorkit.backends._run.subprocess.run', return_value=completed):
            result = run_command(['git', 'status'])
        assert not result.ok
        assert result.return_code == 2
        assert result.output_lines == ['line one', 'line two']
        assert result.command_str == 'git status'
    def test_streams_and_keeps_tail(self, capsys: pytest.CaptureFixture[str]) -> None:
        """Streamed output reaches the terminal; only the tail is kept."""
        proc = MagicMock()
        proc.__enter__.return_value = proc
        proc.stdout = iter(['[INFO] one\n', '[INFO] two\n', '[ERROR] three\n'])
        proc.wait.return_value = 1
        with patch('reactorkit.backends._run.subprocess.Popen', return_value=proc) as m:
            result = run_command(['mvn', '-B', 'deploy'], stream=True, tail_lines=2)
        assert capsys.readouterr().out == '[INFO] one\n[INFO] two\n[ERROR] three\n'
        assert m.call_args.kwargs['stderr'] == subprocess.STDOUT
        assert not result.ok
        assert result.stdout == '[INFO] two\n[ERROR] three'
        assert result.stderr == ''


class TestFailureDetails:
    """Tests for CommandResult.failure_details()."""

    def test_maven_errors_preferred(self) -> None:
        """[ERROR] lines are picked over the rest of the log."""
        result = CommandResult(
            command=['mvn'],
            return_code=1,
            stdout='[INFO] Building core\n[ERROR] Failed to deploy core\n[INFO] BUILD FAILURE\n',
        )
        assert result.failure_details() == ['[ERROR] Failed to deploy core']

    def test_plain_output_is_tailed(self) -> None:
        """Without [ERROR] lines the last lines are used."""
        result = CommandResult(command=['git', 'push'], return_code=1, stderr='a\nb\nc\n')
        assert result.failure_details(limit=2) == ['b', 'c']

    def test_no_output_reports_exit_code(self) -> None:
        """An empty log still explains the failure."""
        result = CommandResult(command=['git', 'tag', '-d', 'x'], return_code=128)
        assert result.failure_details() == ['git tag -d x exited with code 128']

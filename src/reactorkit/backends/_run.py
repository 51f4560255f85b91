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

"""Subprocess plumbing for the ``git`` and ``mvn`` backends.

Two ways to run a command::

    capture (git)    output is collected, nothing reaches the terminal.
                     Short calls whose stderr becomes error details.

    stream (mvn)     output is echoed line by line as Maven prints it,
                     and only the last ``tail_lines`` lines are kept.
                     A release build can print for an hour; the operator
                     watches it live and the failure report still gets
                     the ``[ERROR]`` lines from the end of the log.

Both return a :class:`CommandResult`. Its :meth:`~CommandResult.failure_details`
is what the workflow puts under a git or build error, and what rollback
records when a tag cannot be deleted.
"""

from __future__ import annotations

import os
import subprocess  # noqa: S404 - subprocess is the core purpose of this module
import sys
import threading
import time
from collections import deque
from dataclasses import dataclass
from pathlib import Path

from reactorkit.logging import get_logger

log = get_logger('reactorkit.backends.run')

# Short-lived git calls; the build passes its own timeout.
DEFAULT_TIMEOUT_SECONDS = 300

# Lines of streamed output kept for the failure report.
DEFAULT_TAIL_LINES = 200

_MAVEN_ERROR_PREFIX = '[ERROR]'


@dataclass(frozen=True)
class CommandResult:
    """Result of a subprocess invocation.

    Attributes:
        command: The command that was executed.
        return_code: Process exit code (0 = success).
        stdout: Captured standard output. For a streamed command, the
            tail of the combined output.
        stderr: Captured standard error. Always empty when streamed.
        duration: Wall-clock duration in milliseconds.
        dry_run: Whether the command was only logged.
    """

    command: list[str]
    return_code: int
    stdout: str = ''
    stderr: str = ''
    duration: float = 0.0
    dry_run: bool = False

    @property
    def ok(self) -> bool:
        """Whether the command exited with status 0."""
        return self.return_code == 0

    @property
    def command_str(self) -> str:
        """The command as a single shell-style string."""
        return ' '.join(self.command)

    @property
    def output_lines(self) -> list[str]:
        """Non-empty stderr lines, falling back to stdout."""
        text = self.stderr.strip() or self.stdout.strip()
        return [line for line in text.splitlines() if line.strip()]

    def failure_details(self, limit: int = 20) -> list[str]:
        """Return the lines that explain a failure, at most ``limit`` of them.

        Maven ``[ERROR]`` lines win over the rest of the output. With no
        output at all, the exit status is reported instead.
        """
        lines = self.output_lines
        errors = [line for line in lines if line.startswith(_MAVEN_ERROR_PREFIX)]
        picked = errors or lines
        if not picked:
            return [f'{self.command_str} exited with code {self.return_code}']
        return picked[-limit:]


def _stream(
    cmd: list[str],
    *,
    cwd: Path | str | None,
    env: dict[str, str] | None,
    timeout: int,
    tail_lines: int,
) -> tuple[int, str]:
    """Run ``cmd`` echoing its output, and return (exit code, output tail)."""
    tail: deque[str] = deque(maxlen=tail_lines)
    expired = threading.Event()

    with subprocess.Popen(  # noqa: S603 -- argv built by the backends
        cmd,
        cwd=cwd,
        env=env,
        stdout=subprocess.PIPE,
        stderr=subprocess.STDOUT,
        text=True,
        bufsize=1,
    ) as proc:

        def _kill() -> None:
            expired.set()
            proc.kill()

        timer = threading.Timer(timeout, _kill)
        timer.start()
        try:
            for line in proc.stdout or ():
                sys.stdout.write(line)
                tail.append(line.rstrip('\n'))
            return_code = proc.wait()
        finally:
            timer.cancel()

    output = '\n'.join(tail)
    if expired.is_set():
        raise subprocess.TimeoutExpired(cmd, timeout, output=output)
    return return_code, output


def run_command(
    cmd: list[str],
    *,
    cwd: Path | str | None = None,
    env: dict[str, str] | None = None,
    timeout: int = DEFAULT_TIMEOUT_SECONDS,
    dry_run: bool = False,
    stream: bool = False,
    tail_lines: int = DEFAULT_TAIL_LINES,
) -> CommandResult:
    """Execute a subprocess command with logging and dry-run support.

    Args:
        cmd: Command and arguments.
        cwd: Working directory for the command.
        env: Extra environment variables (merged with the current env).
        timeout: Maximum seconds before the process is killed.
        dry_run: Log the command but do not execute it.
        stream: Echo output to the terminal as it arrives and keep only
            the last ``tail_lines`` lines. Used for the Maven build.
        tail_lines: Lines kept when streaming.

    Returns:
        A :class:`CommandResult`.

    Raises:
        subprocess.TimeoutExpired: If the command exceeds ``timeout``.
        FileNotFoundError: If the executable does not exist.
    """
    cmd_str = ' '.join(cmd)
    log.debug('run_command', cmd=cmd_str, cwd=str(cwd or '.'), dry_run=dry_run, stream=stream)

    if dry_run:
        log.info('dry_run', cmd=cmd_str)
        return CommandResult(command=cmd, return_code=0, dry_run=True)

    full_env = {**os.environ, **env} if env else None

    start = time.monotonic()
    try:
        if stream:
            return_code, stdout = _stream(cmd, cwd=cwd, env=full_env, timeout=timeout, tail_lines=tail_lines)
            stderr = ''
        else:
            completed = subprocess.run(  # noqa: S603 -- argv built by the backends
                cmd,
                cwd=cwd,
                env=full_env,
                capture_output=True,
                text=True,
                timeout=timeout,
            )
            return_code, stdout, stderr = completed.returncode, completed.stdout or '', completed.stderr or ''
    except subprocess.TimeoutExpired:
        log.error('command_timeout', cmd=cmd_str, timeout=timeout, duration=(time.monotonic() - start) * 1000)
        raise

    result = CommandResult(
        command=cmd,
        return_code=return_code,
        stdout=stdout,
        stderr=stderr,
        duration=(time.monotonic() - start) * 1000,
    )
    if result.ok:
        log.debug('command_ok', cmd=cmd_str, duration=result.duration)
    else:
        log.warning(
            'command_failed',
            cmd=cmd_str,
            return_code=return_code,
            details=result.failure_details(limit=5),
            duration=result.duration,
        )
    return result


__all__ = [
    'DEFAULT_TAIL_LINES',
    'DEFAULT_TIMEOUT_SECONDS',
    'CommandResult',
    'run_command',
]

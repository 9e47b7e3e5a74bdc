"""Shell and git utilities.

Provides asyncio wrappers around subprocess calls for running shell commands
and git operations, plus output formatting helpers.
"""

from __future__ import annotations

import asyncio
import os
from collections.abc import Mapping


class CommandError(RuntimeError):
    """A command exited with a non-zero status.

    Attributes:
        cmd: The command line that was run.
        cwd: Working directory it was run in.
        returncode: Exit status.
        stderr: Captured standard error, stripped.
    """

    def __init__(self, cmd: str, cwd: str | None, returncode: int, stderr: str) -> None:
        self.cmd = cmd
        self.cwd = cwd
        self.returncode = returncode
        self.stderr = stderr
        detail = f": {stderr}" if stderr else ""
        super().__init__(f"Command '{cmd}' failed with exit code {returncode}{detail}")


def _merge_env(env: Mapping[str, str] | None) -> dict[str, str]:
    return {**os.environ, **(env or {})}


async def _communicate(
    proc: asyncio.subprocess.Process, cmd: str, cwd: str | None, check: bool
) -> str:
    stdout, stderr = await proc.communicate()
    out = stdout.decode(errors="replace").strip()
    if check and proc.returncode != 0:
        raise CommandError(cmd, cwd, proc.returncode or 0, stderr.decode(errors="replace").strip())
    return out


async def exec_cmd(
    cmd: str,
    *,
    cwd: str | None = None,
    env: Mapping[str, str] | None = None,
    check: bool = True,
) -> str:
    """Run a shell command line to completion.

    Args:
        cmd: Command line, interpreted by the system shell.
        cwd: Working directory.
        env: Variables layered over the current process environment.
        check: If True (default), raise CommandError on non-zero exit.

    Returns:
        Stripped stdout of the command.
    """
    proc = await asyncio.create_subprocess_shell(
        cmd,
        cwd=cwd,
        env=_merge_env(env),
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )
    return await _communicate(proc, cmd, cwd, check)


async def git(
    *args: str,
    cwd: str | None = None,
    env: Mapping[str, str] | None = None,
    check: bool = True,
) -> str:
    """Run a git command and return stdout.

    Args:
        *args: Arguments to pass to git (e.g., "status", "--short").
        cwd: Repository (or worktree) directory.
        env: Variables layered over the current process environment.
        check: If True (default), raise on non-zero exit. Set to False
               for commands that may legitimately fail (e.g., tag lookup).

    Returns:
        Stripped stdout from the git command.
    """
    proc = await asyncio.create_subprocess_exec(
        "git",
        *args,
        cwd=cwd,
        env=_merge_env(env),
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )
    return await _communicate(proc, " ".join(("git", *args)), cwd, check)


def cpu_count() -> int:
    """Number of logical processors, the default command concurrency."""
    return os.cpu_count() or 1


def step(msg: str) -> None:
    """Print a visually distinct step header.

    Used to separate major phases of the release pipeline in terminal output.
    """
    print(f"\n{'─' * 60}\n{msg}\n{'─' * 60}")


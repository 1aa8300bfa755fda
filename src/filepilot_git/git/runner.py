"""Run git subcommands as child processes.

The runner is the only place that spawns processes. It never retries and
never raises for git failures: every outcome comes back as a Result so the
caller decides what a failure means.
"""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

from filepilot_git.core.console import get_logger
from filepilot_git.core.result import (
    CommandError,
    CommandTimeoutError,
    Err,
    NonZeroExitError,
    Ok,
    Result,
    SpawnFailedError,
)

logger = get_logger(__name__)

# Every subcommand the engine is allowed to issue.
GIT_SUBCOMMANDS = frozenset({"status", "branch", "remote", "add", "reset", "commit"})


@dataclass(frozen=True)
class CommandOutput:
    exit_code: int
    stdout: str
    stderr: str


def _decode(data: bytes | None) -> str:
    return (data or b"").decode("utf-8", errors="replace")


class CommandRunner:
    """Spawn ``git`` with asyncio and capture its output in full.

    Args:
        binary: Executable name or path, resolved through PATH by the OS.
        timeout: Default seconds before the child is killed; None waits forever.
    """

    def __init__(self, binary: str = "git", timeout: float | None = None) -> None:
        self._binary = binary
        self._timeout = timeout

    async def run(
        self,
        args: Sequence[str],
        cwd: Path,
        timeout: float | None = None,
    ) -> Result[CommandOutput, CommandError]:
        argv = list(args)
        limit = timeout if timeout is not None else self._timeout

        if not argv or argv[0] not in GIT_SUBCOMMANDS:
            return Err(
                SpawnFailedError(
                    f"Refusing to run unsupported git subcommand: {argv[0] if argv else '(none)'}",
                    args=argv,
                    cwd=cwd,
                )
            )
        if not cwd.is_dir():
            return Err(
                SpawnFailedError("Working directory does not exist", args=argv, cwd=cwd)
            )

        try:
            process = await asyncio.create_subprocess_exec(
                self._binary,
                *argv,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                stdin=asyncio.subprocess.DEVNULL,
                cwd=cwd,
            )
        except FileNotFoundError:
            return Err(
                SpawnFailedError(f"{self._binary} executable not found", args=argv, cwd=cwd)
            )
        except OSError as exc:
            return Err(SpawnFailedError(f"Failed to start git: {exc}", args=argv, cwd=cwd))

        try:
            stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=limit)
        except TimeoutError:
            process.kill()
            await process.communicate()
            logger.warning("git %s timed out in %s", " ".join(argv), cwd)
            return Err(CommandTimeoutError(limit or 0.0, args=argv, cwd=cwd))

        output = CommandOutput(
            exit_code=process.returncode if process.returncode is not None else -1,
            stdout=_decode(stdout),
            stderr=_decode(stderr),
        )
        if output.exit_code != 0:
            logger.debug("git %s exited %s in %s", " ".join(argv), output.exit_code, cwd)
            return Err(
                NonZeroExitError(
                    output.exit_code,
                    output.stderr,
                    stdout=output.stdout,
                    args=argv,
                    cwd=cwd,
                )
            )
        return Ok(output)

"""Tests for CommandRunner subprocess handling."""

from __future__ import annotations

import asyncio
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from filepilot_git.core.result import (
    CommandTimeoutError,
    Err,
    NonZeroExitError,
    Ok,
    SpawnFailedError,
)
from filepilot_git.git import CommandRunner

_SPAWN = "filepilot_git.git.runner.asyncio.create_subprocess_exec"


def _process(stdout: bytes = b"", stderr: bytes = b"", returncode: int = 0) -> AsyncMock:
    process = AsyncMock()
    process.communicate = AsyncMock(return_value=(stdout, stderr))
    process.returncode = returncode
    process.kill = MagicMock()
    return process


@pytest.mark.asyncio
async def test_success_captures_output(tmp_path: Path) -> None:
    process = _process(stdout=b"main\n")

    with patch(_SPAWN, return_value=process) as spawn:
        result = await CommandRunner().run(["branch", "--show-current"], cwd=tmp_path)

    match result:
        case Ok(output):
            assert output.exit_code == 0
            assert output.stdout == "main\n"
        case Err(err):
            pytest.fail(f"Unexpected error: {err}")

    spawn.assert_awaited_once()
    args, kwargs = spawn.call_args
    assert args == ("git", "branch", "--show-current")
    assert kwargs["cwd"] == tmp_path


@pytest.mark.asyncio
async def test_custom_binary_is_spawned(tmp_path: Path) -> None:
    with patch(_SPAWN, return_value=_process()) as spawn:
        await CommandRunner(binary="/opt/git/bin/git").run(["status", "--porcelain"], cwd=tmp_path)

    assert spawn.call_args.args[0] == "/opt/git/bin/git"


@pytest.mark.asyncio
async def test_nonzero_exit_keeps_stderr(tmp_path: Path) -> None:
    stderr = b"fatal: pathspec 'nope' did not match any files\n"

    with patch(_SPAWN, return_value=_process(stderr=stderr, returncode=128)):
        result = await CommandRunner().run(["add", "--", "nope"], cwd=tmp_path)

    match result:
        case Err(NonZeroExitError() as err):
            assert err.exit_code == 128
            assert err.stderr == stderr.decode()
            assert err.message == "fatal: pathspec 'nope' did not match any files"
            assert err.command_args == ["add", "--", "nope"]
        case _:
            pytest.fail(f"Expected NonZeroExitError, got {result}")


@pytest.mark.asyncio
async def test_nonzero_exit_without_stderr_uses_stdout(tmp_path: Path) -> None:
    with patch(_SPAWN, return_value=_process(stdout=b"nothing to commit\n", returncode=1)):
        result = await CommandRunner().run(["commit", "-m", "msg"], cwd=tmp_path)

    match result:
        case Err(NonZeroExitError() as err):
            assert err.message == "nothing to commit"
        case _:
            pytest.fail(f"Expected NonZeroExitError, got {result}")


@pytest.mark.asyncio
async def test_missing_binary_is_spawn_failure(tmp_path: Path) -> None:
    with patch(_SPAWN, side_effect=FileNotFoundError()):
        result = await CommandRunner(binary="git-missing").run(["status"], cwd=tmp_path)

    match result:
        case Err(SpawnFailedError() as err):
            assert "git-missing" in err.reason
        case _:
            pytest.fail(f"Expected SpawnFailedError, got {result}")


@pytest.mark.asyncio
async def test_missing_directory_is_spawn_failure(tmp_path: Path) -> None:
    with patch(_SPAWN) as spawn:
        result = await CommandRunner().run(["status"], cwd=tmp_path / "gone")

    assert isinstance(result, Err)
    assert isinstance(result.error, SpawnFailedError)
    spawn.assert_not_called()


@pytest.mark.asyncio
async def test_unsupported_subcommand_is_refused(tmp_path: Path) -> None:
    with patch(_SPAWN) as spawn:
        result = await CommandRunner().run(["push", "--force"], cwd=tmp_path)

    assert isinstance(result, Err)
    assert isinstance(result.error, SpawnFailedError)
    spawn.assert_not_called()


@pytest.mark.asyncio
async def test_timeout_kills_process(tmp_path: Path) -> None:
    release = asyncio.Event()
    calls = 0

    async def communicate() -> tuple[bytes, bytes]:
        nonlocal calls
        calls += 1
        if calls == 1:
            await release.wait()
        return b"", b""

    process = _process()
    process.communicate = communicate

    with patch(_SPAWN, return_value=process):
        result = await CommandRunner(timeout=0.05).run(["status"], cwd=tmp_path)

    match result:
        case Err(CommandTimeoutError() as err):
            assert err.timeout == 0.05
        case _:
            pytest.fail(f"Expected CommandTimeoutError, got {result}")
    process.kill.assert_called_once()


@pytest.mark.asyncio
async def test_real_git_reports_not_a_repository(tmp_path: Path, git_available: None) -> None:
    result = await CommandRunner().run(["status", "--porcelain"], cwd=tmp_path)

    match result:
        case Err(NonZeroExitError() as err):
            assert err.exit_code != 0
            assert "not a git repository" in err.stderr.lower()
        case _:
            pytest.fail(f"Expected NonZeroExitError, got {result}")

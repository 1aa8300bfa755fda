from __future__ import annotations

import os
import shutil
import subprocess
import sys
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest
from rich.console import Console
from typer.testing import CliRunner

ROOT = Path(__file__).resolve().parent.parent
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))


def git(path: Path, *args: str) -> str:
    """Run git for test setup (not part of the code under test)."""
    completed = subprocess.run(
        ["git", *args], cwd=path, check=True, capture_output=True, text=True
    )
    return completed.stdout


def init_repo(path: Path, *, commit: bool = True, remote: str | None = None) -> Path:
    """Initialize a repository on branch ``main`` with an optional first commit."""
    path.mkdir(parents=True, exist_ok=True)
    git(path, "init", "-q")
    git(path, "symbolic-ref", "HEAD", "refs/heads/main")
    git(path, "config", "user.email", "test@test.com")
    git(path, "config", "user.name", "Test User")
    git(path, "config", "commit.gpgsign", "false")
    if remote is not None:
        git(path, "remote", "add", "origin", remote)
    if commit:
        (path / "README.md").write_text("# Test Repo\n")
        git(path, "add", ".")
        git(path, "commit", "-q", "-m", "Initial commit")
    return path


@pytest.fixture
def git_available() -> None:
    if shutil.which("git") is None:
        pytest.skip("git executable not available")


@pytest.fixture
def git_repo(tmp_path: Path, git_available: None) -> Callable[..., Path]:
    """Factory creating real repositories below ``tmp_path``."""

    def factory(name: str = "repo", **kwargs: Any) -> Path:
        return init_repo(tmp_path / name, **kwargs)

    return factory


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture(autouse=True)
def isolate_config(tmp_path: Path, monkeypatch: Any) -> Path:
    """Point config to a temp path so tests don't touch user state."""
    for key in list(os.environ):
        if key.startswith("FILEPILOT_GIT_"):
            monkeypatch.delenv(key, raising=False)
    cfg_path = tmp_path / "config.toml"
    monkeypatch.setenv("FILEPILOT_GIT_CONFIG", str(cfg_path))
    return cfg_path


@pytest.fixture(autouse=True)
def capture_console(monkeypatch: Any) -> Console:
    """Use an in-memory Rich console during tests."""
    test_console = Console(record=True, width=200)
    import filepilot_git.commands.repos as repos_cmd
    import filepilot_git.core.console as core_console
    import filepilot_git.main as fp_main

    monkeypatch.setattr(core_console, "console", test_console)
    monkeypatch.setattr(fp_main, "console", test_console)
    monkeypatch.setattr(repos_cmd, "console", test_console)
    return test_console

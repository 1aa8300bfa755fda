from __future__ import annotations

import functools
from collections.abc import Callable
from typing import Any, NoReturn, TypeVar

import typer
from rich.markup import escape

from filepilot_git.core.config import ConfigError
from filepilot_git.core.console import get_console
from filepilot_git.core.result import FilePilotGitError

F = TypeVar("F", bound=Callable[..., Any])


def _handle_exception(exc: Exception) -> NoReturn:
    get_console(stderr=True).print(f"[red]{escape(str(exc))}[/red]")
    raise typer.Exit(code=1)


def handle_exceptions(func: F) -> F:
    """Decorate CLI entrypoints to present friendly errors and exit cleanly."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except (FilePilotGitError, ConfigError, PermissionError) as exc:
            _handle_exception(exc)

    return wrapper  # type: ignore[return-value]


__all__ = ["handle_exceptions"]

"""
Unified Result types and error hierarchy for filepilot-git.

This module provides:
1. Result[T, E] type for explicit error handling
2. The git engine's exception taxonomy

Usage:
    from filepilot_git.core.result import Ok, Err, Result, NonZeroExitError

    async def stage(path: str) -> Result[None, CommandError]:
        match await runner.run(["add", "--", path], cwd=root):
            case Err(err):
                return Err(err)
            case Ok(_):
                return Ok(None)
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Generic, Sequence, TypeVar

T = TypeVar("T")
U = TypeVar("U")
E = TypeVar("E", bound=Exception)
F = TypeVar("F", bound=Exception)


@dataclass(frozen=True, slots=True)
class Ok(Generic[T]):
    """Represents a successful result containing a value."""

    value: T

    def is_ok(self) -> bool:
        return True

    def is_err(self) -> bool:
        return False

    def unwrap(self) -> T:
        """Return the contained value."""
        return self.value

    def unwrap_or(self, default: T) -> T:
        """Return the contained value (ignores default for Ok)."""
        return self.value

    def map(self, fn: Callable[[T], U]) -> Ok[U]:
        """Apply a function to the contained value."""
        return Ok(fn(self.value))

    def map_err(self, fn: Callable[[E], F]) -> Ok[T]:
        """No-op for Ok - returns self unchanged."""
        return self

    def and_then(self, fn: Callable[[T], Result[U, E]]) -> Result[U, E]:
        """Chain operations that may fail."""
        return fn(self.value)


@dataclass(frozen=True, slots=True)
class Err(Generic[E]):
    """Represents a failed result containing an error."""

    error: E

    def is_ok(self) -> bool:
        return False

    def is_err(self) -> bool:
        return True

    def unwrap(self) -> T:
        """Raise the contained error."""
        raise self.error

    def unwrap_or(self, default: T) -> T:
        """Return the default value."""
        return default

    def map(self, fn: Callable[[T], U]) -> Err[E]:
        """No-op for Err - returns self unchanged."""
        return self

    def map_err(self, fn: Callable[[E], F]) -> Err[F]:
        """Apply a function to the contained error."""
        return Err(fn(self.error))

    def and_then(self, fn: Callable[[T], Result[U, E]]) -> Err[E]:
        """Short-circuit for Err - returns self unchanged."""
        return self


# Type alias for Result
Result = Ok[T] | Err[E]


# ---------------------------------------------------------------------------
# Domain-specific error hierarchy
# ---------------------------------------------------------------------------


class FilePilotGitError(Exception):
    """Base exception for all filepilot-git errors.

    Carries a human message plus a free-form context mapping that is
    rendered as ``key=value`` pairs by ``str()``.
    """

    def __init__(self, message: str, *, context: dict | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self) -> str:
        if self.context:
            ctx_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{self.message} [{ctx_str}]"
        return self.message


class CommandError(FilePilotGitError):
    """Raised (or returned) when a git invocation does not succeed.

    Subclasses distinguish the failure modes callers care about:
    the process never started, it exited non-zero, or it timed out.
    """

    def __init__(
        self,
        message: str,
        *,
        args: Sequence[str] = (),
        cwd: Path | None = None,
        context: dict | None = None,
    ) -> None:
        merged = {"cwd": str(cwd)} if cwd is not None else {}
        if args:
            merged["args"] = " ".join(args)
        merged.update(context or {})
        super().__init__(message, context=merged)
        self.command_args = list(args)
        self.cwd = cwd


class SpawnFailedError(CommandError):
    """The git process could not be started at all.

    Examples:
    - git binary missing from PATH
    - working directory missing or not a directory
    - OS refused to create the process
    """

    def __init__(
        self,
        reason: str,
        *,
        args: Sequence[str] = (),
        cwd: Path | None = None,
    ) -> None:
        super().__init__(reason, args=args, cwd=cwd)
        self.reason = reason


class NonZeroExitError(CommandError):
    """git ran and exited with a non-zero status.

    ``stderr`` is kept verbatim because it is the only explanation git
    gives for the failure.
    """

    def __init__(
        self,
        exit_code: int,
        stderr: str,
        *,
        stdout: str = "",
        args: Sequence[str] = (),
        cwd: Path | None = None,
    ) -> None:
        detail = stderr.strip() or stdout.strip() or f"git {' '.join(args)} failed".strip()
        super().__init__(detail, args=args, cwd=cwd, context={"exit_code": exit_code})
        self.exit_code = exit_code
        self.stderr = stderr
        self.stdout = stdout


class CommandTimeoutError(CommandError):
    """git did not finish within the configured timeout and was killed."""

    def __init__(
        self,
        timeout: float,
        *,
        args: Sequence[str] = (),
        cwd: Path | None = None,
    ) -> None:
        super().__init__(
            f"git timed out after {timeout:g}s", args=args, cwd=cwd, context={"timeout": timeout}
        )
        self.timeout = timeout


class DiscoveryError(FilePilotGitError):
    """Filesystem problem met while scanning for repositories.

    Never surfaced to callers of ``discover``; only logged.
    """


class NoActiveRepositoryError(FilePilotGitError):
    """An operation needs an active repository and none is selected."""


class StaleLoadError(FilePilotGitError):
    """A status load finished after the active repository changed.

    Its result was discarded without touching the published state.
    """


__all__ = [
    # Result types
    "Ok",
    "Err",
    "Result",
    # Error hierarchy
    "FilePilotGitError",
    "CommandError",
    "SpawnFailedError",
    "NonZeroExitError",
    "CommandTimeoutError",
    "DiscoveryError",
    "NoActiveRepositoryError",
    "StaleLoadError",
]

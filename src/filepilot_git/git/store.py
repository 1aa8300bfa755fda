"""Active repository state and the operations that change it.

The store owns the file-change list for exactly one active repository and
publishes every change as an immutable snapshot. State machine::

    idle -> loading -> ready
               |  ^      |
               v  |      v
              error <- loading (retry)

A failed load keeps the previous file list. Interactive operations
(stage, unstage, commit) report their own outcome to the caller; only
passive loads and stage/unstage failures move the store into ``error``.
"""

from __future__ import annotations

import asyncio
import threading
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field, replace
from enum import Enum
from pathlib import Path
from typing import Any

from filepilot_git.core.config import AppConfig
from filepilot_git.core.console import get_logger
from filepilot_git.core.result import (
    Err,
    FilePilotGitError,
    NoActiveRepositoryError,
    Ok,
    Result,
    StaleLoadError,
)
from filepilot_git.telemetry import (
    LoggingTelemetrySink,
    NullTelemetrySink,
    TelemetrySink,
    emit,
)

from .locator import DEFAULT_MAX_DEPTH, RepositoryLocator
from .models import RepositoryDescriptor
from .remote import RemoteResolver
from .runner import CommandRunner
from .status import FileChange, parse_status

logger = get_logger(__name__)

LoadResult = Result[list[FileChange], FilePilotGitError]


class StoreState(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    ERROR = "error"


@dataclass(frozen=True)
class StoreSnapshot:
    state: StoreState = StoreState.IDLE
    current_repository: RepositoryDescriptor | None = None
    files: tuple[FileChange, ...] = ()
    error: FilePilotGitError | None = None
    repositories: tuple[RepositoryDescriptor, ...] = ()


@dataclass
class _InFlight:
    """The single status fetch running for one repository root."""

    rerun: bool = False
    task: asyncio.Task[LoadResult] | None = field(default=None, repr=False)


Listener = Callable[[StoreSnapshot], None]


class RepositoryStatusStore:
    """Observable git status for the repository the user is looking at.

    All mutating methods must be called on the event loop that owns the
    store. ``snapshot()`` may be read from any thread.

    Every load is tagged with the selection generation it was issued for.
    When it completes after another repository has been selected, its
    result is dropped and the git process is simply allowed to finish.
    """

    def __init__(
        self,
        runner: CommandRunner,
        *,
        locator: RepositoryLocator | None = None,
        telemetry: TelemetrySink | None = None,
        roots: Sequence[Path] = (),
        max_depth: int = DEFAULT_MAX_DEPTH,
    ) -> None:
        self._runner = runner
        self._locator = locator or RepositoryLocator(RemoteResolver(runner))
        self._telemetry = telemetry or NullTelemetrySink()
        self._roots = list(roots)
        self._max_depth = max_depth

        self._lock = threading.Lock()
        self._snapshot = StoreSnapshot()
        self._listeners: list[Listener] = []
        self._generation = 0
        self._navigation = 0
        self._inflight: dict[Path, _InFlight] = {}

    @classmethod
    def from_config(
        cls, config: AppConfig, telemetry: TelemetrySink | None = None
    ) -> RepositoryStatusStore:
        if telemetry is None:
            telemetry = LoggingTelemetrySink() if config.telemetry_enabled else NullTelemetrySink()
        return cls(
            CommandRunner(binary=config.git.binary, timeout=config.git.timeout),
            telemetry=telemetry,
            roots=config.discovery.roots,
            max_depth=config.discovery.max_depth,
        )

    # ------------------------------------------------------------------
    # Published state
    # ------------------------------------------------------------------

    def snapshot(self) -> StoreSnapshot:
        with self._lock:
            return self._snapshot

    @property
    def state(self) -> StoreState:
        return self.snapshot().state

    @property
    def current_repository(self) -> RepositoryDescriptor | None:
        return self.snapshot().current_repository

    @property
    def files(self) -> list[FileChange]:
        return list(self.snapshot().files)

    @property
    def error(self) -> FilePilotGitError | None:
        return self.snapshot().error

    @property
    def repositories(self) -> list[RepositoryDescriptor]:
        return list(self.snapshot().repositories)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call ``listener`` after every published change. Returns an unsubscribe hook."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _publish(self, **changes: Any) -> StoreSnapshot:
        with self._lock:
            self._snapshot = replace(self._snapshot, **changes)
            snapshot = self._snapshot
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                logger.exception("Store listener failed")
        return snapshot

    def _is_active(self, repository: RepositoryDescriptor) -> bool:
        current = self._snapshot.current_repository
        return current is not None and current.root_path == repository.root_path

    # ------------------------------------------------------------------
    # Discovery and navigation
    # ------------------------------------------------------------------

    async def discover_repositories(
        self, roots: Iterable[Path] | None = None, max_depth: int | None = None
    ) -> list[RepositoryDescriptor]:
        found = await self._locator.discover(
            self._roots if roots is None else roots,
            self._max_depth if max_depth is None else max_depth,
        )
        self._publish(repositories=tuple(found))
        emit(self._telemetry, "git_repos_discovered", count=len(found))
        return found

    async def track_navigation(self, path: Path) -> RepositoryDescriptor | None:
        """Follow the user's current directory.

        Selects the owning repository when it differs from the active one,
        and drops back to ``idle`` when ``path`` is outside every repository.
        A navigation superseded by a later one while resolving is ignored.
        """
        self._navigation += 1
        ticket = self._navigation
        emit(self._telemetry, "navigation", path=str(path))

        repository = await self._locator.find_owning(path)
        if ticket != self._navigation:
            return None

        if repository is None:
            if self._snapshot.current_repository is not None:
                self._generation += 1
                self._publish(
                    current_repository=None, files=(), error=None, state=StoreState.IDLE
                )
            return None

        if self._is_active(repository):
            return self._snapshot.current_repository
        await self.select_repository(repository)
        return repository

    # ------------------------------------------------------------------
    # Status loading
    # ------------------------------------------------------------------

    def select_repository(self, repository: RepositoryDescriptor) -> asyncio.Task[LoadResult]:
        """Make ``repository`` active and start loading its status.

        State changes immediately; the returned task resolves with the load
        outcome. Switching to a different root clears the old file list.
        """
        loop = asyncio.get_running_loop()
        changes: dict[str, Any] = {
            "current_repository": repository,
            "state": StoreState.LOADING,
            "error": None,
        }
        if not self._is_active(repository):
            changes["files"] = ()
        self._generation += 1
        self._publish(**changes)
        return loop.create_task(self._load(repository))

    async def refresh(self) -> LoadResult:
        repository = self._snapshot.current_repository
        if repository is None:
            return Err(NoActiveRepositoryError("No repository selected"))
        self._publish(state=StoreState.LOADING, error=None)
        return await self._load(repository)

    async def _load(self, repository: RepositoryDescriptor) -> LoadResult:
        root = repository.root_path
        inflight = self._inflight.get(root)
        if inflight is not None and inflight.task is not None and not inflight.task.done():
            inflight.rerun = True
            return await asyncio.shield(inflight.task)

        entry = _InFlight()
        entry.task = asyncio.get_running_loop().create_task(self._fetch_until_settled(root, entry))
        self._inflight[root] = entry
        entry.task.add_done_callback(lambda _task: self._release(root, entry))
        return await asyncio.shield(entry.task)

    def _release(self, root: Path, entry: _InFlight) -> None:
        if self._inflight.get(root) is entry:
            del self._inflight[root]

    async def _fetch_until_settled(self, root: Path, entry: _InFlight) -> LoadResult:
        while True:
            entry.rerun = False
            generation = self._generation
            result = await self._fetch_status(root)
            if not entry.rerun:
                break
        return self._apply(root, generation, result)

    async def _fetch_status(self, root: Path) -> LoadResult:
        match await self._runner.run(["status", "--porcelain"], cwd=root):
            case Ok(output):
                return Ok(parse_status(output.stdout))
            case Err(err):
                return Err(err)

    def _apply(self, root: Path, generation: int, result: LoadResult) -> LoadResult:
        current = self._snapshot.current_repository
        if generation != self._generation or current is None or current.root_path != root:
            logger.debug("Discarding status for %s; active repository changed", root)
            return Err(
                StaleLoadError("Repository changed while loading", context={"repo": str(root)})
            )

        match result:
            case Ok(files):
                self._publish(files=tuple(files), state=StoreState.READY, error=None)
                emit(
                    self._telemetry,
                    "git_status_loaded",
                    repo=current.display_name,
                    file_count=len(files),
                )
            case Err(err):
                logger.warning("git status failed in %s: %s", root, err.message)
                self._publish(state=StoreState.ERROR, error=err)
                emit(
                    self._telemetry,
                    "git_status_failed",
                    repo=current.display_name,
                    error=err.message,
                )
        return result

    def clear_error(self) -> None:
        """Dismiss the current error without touching the file list."""
        snapshot = self._snapshot
        if snapshot.state is not StoreState.ERROR:
            return
        state = StoreState.READY if snapshot.current_repository is not None else StoreState.IDLE
        self._publish(error=None, state=state)

    # ------------------------------------------------------------------
    # Index operations
    # ------------------------------------------------------------------

    async def stage(self, change: FileChange) -> Result[None, FilePilotGitError]:
        return await self._update_index(
            ["add", "--", change.path], change, "git_file_staged", "git_stage_failed"
        )

    async def unstage(self, change: FileChange) -> Result[None, FilePilotGitError]:
        return await self._update_index(
            ["reset", "HEAD", "--", change.path], change, "git_file_unstaged", "git_unstage_failed"
        )

    async def _update_index(
        self,
        args: list[str],
        change: FileChange,
        success_action: str,
        failure_action: str,
    ) -> Result[None, FilePilotGitError]:
        repository = self._snapshot.current_repository
        if repository is None:
            return Err(NoActiveRepositoryError("No repository selected"))

        match await self._runner.run(args, cwd=repository.root_path):
            case Err(err):
                logger.warning("git %s failed for %s: %s", args[0], change.path, err.message)
                if self._is_active(repository):
                    self._publish(state=StoreState.ERROR, error=err)
                emit(self._telemetry, failure_action, file=change.path, error=err.message)
                return Err(err)
            case Ok(_):
                emit(self._telemetry, success_action, file=change.path)

        if self._is_active(repository):
            await self.refresh()
        return Ok(None)

    async def commit(self, message: str, files: Sequence[FileChange]) -> bool:
        """Stage ``files`` one by one, then commit them.

        Returns False on the first failure. Failures are reported only
        through the return value and the log; the store's ``error`` is left
        alone.
        """
        repository = self._snapshot.current_repository
        if repository is None:
            return False
        if not message.strip():
            logger.warning("Refusing to commit with an empty message")
            return False

        root = repository.root_path
        for change in files:
            match await self._runner.run(["add", "--", change.path], cwd=root):
                case Err(err):
                    logger.warning(
                        "Commit aborted; could not stage %s: %s", change.path, err.message
                    )
                    emit(
                        self._telemetry,
                        "git_commit_failed",
                        repo=repository.display_name,
                        error=err.message,
                    )
                    return False
                case Ok(_):
                    pass

        match await self._runner.run(["commit", "-m", message], cwd=root):
            case Err(err):
                logger.warning("git commit failed in %s: %s", root, err.message)
                emit(
                    self._telemetry,
                    "git_commit_failed",
                    repo=repository.display_name,
                    error=err.message,
                )
                return False
            case Ok(_):
                emit(
                    self._telemetry,
                    "git_commit_created",
                    repo=repository.display_name,
                    file_count=len(files),
                )

        if self._is_active(repository):
            await self.refresh()
        return True

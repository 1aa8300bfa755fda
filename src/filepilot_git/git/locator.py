"""Find git repositories on disk.

Two independent lookups:
    - discover(): bounded scan below a set of root directories
    - find_owning(): unbounded walk upwards from a single path
"""

from __future__ import annotations

import asyncio
import os
from collections.abc import Iterable
from pathlib import Path

from filepilot_git.core.console import get_logger
from filepilot_git.core.result import DiscoveryError

from .models import RepositoryDescriptor
from .remote import RemoteResolver

logger = get_logger(__name__)

DEFAULT_MAX_DEPTH = 2
_DESCRIBE_CONCURRENCY = 8


def has_git_entry(path: Path) -> bool:
    """True when ``path/.git`` exists as a directory or a gitdir file."""
    return os.path.exists(path / ".git")


def _normalize(path: Path) -> Path:
    return Path(os.path.abspath(path.expanduser()))


def _walk(
    directory: Path,
    depth: int,
    max_depth: int,
    found: list[Path],
    seen: set[Path],
) -> None:
    try:
        with os.scandir(directory) as it:
            entries = list(it)
    except OSError as exc:
        skipped = DiscoveryError(
            "Skipping unreadable directory", context={"path": directory, "error": exc}
        )
        logger.debug("%s", skipped)
        return

    for entry in entries:
        if entry.name.startswith("."):
            continue
        candidate = Path(entry.path)
        if has_git_entry(candidate):
            if candidate not in seen:
                seen.add(candidate)
                found.append(candidate)
            continue
        if depth >= max_depth:
            continue
        try:
            is_dir = entry.is_dir(follow_symlinks=False)
        except OSError:
            continue
        if is_dir:
            _walk(candidate, depth + 1, max_depth, found, seen)


def scan_for_repositories(roots: Iterable[Path], max_depth: int = DEFAULT_MAX_DEPTH) -> list[Path]:
    """Return repository roots below ``roots`` in discovery order.

    Entries directly inside a root are depth 1. A directory holding ``.git``
    is recorded and not descended into; other directories are descended
    into until ``max_depth``. Hidden entries are ignored, missing roots and
    unreadable directories are skipped, and duplicates from overlapping
    roots are dropped.
    """
    found: list[Path] = []
    seen: set[Path] = set()
    for root in roots:
        base = _normalize(root)
        if not os.path.isdir(base):
            logger.debug("Discovery root %s does not exist, skipping", base)
            continue
        _walk(base, 1, max_depth, found, seen)
    return found


def find_owning_root(path: Path) -> Path | None:
    """Closest directory at or above ``path`` that holds ``.git``.

    The filesystem root itself is not inspected.
    """
    current = _normalize(path)
    while current != current.parent:
        if has_git_entry(current):
            return current
        current = current.parent
    return None


class RepositoryLocator:
    """Turn repository roots on disk into resolved descriptors."""

    def __init__(self, resolver: RemoteResolver) -> None:
        self._resolver = resolver

    async def describe(self, root: Path) -> RepositoryDescriptor:
        branch, remote = await asyncio.gather(
            self._resolver.branch(root), self._resolver.remote_url(root)
        )
        return RepositoryDescriptor(root_path=root, branch=branch, remote_url=remote)

    async def discover(
        self, roots: Iterable[Path], max_depth: int = DEFAULT_MAX_DEPTH
    ) -> list[RepositoryDescriptor]:
        repo_roots = await asyncio.to_thread(scan_for_repositories, list(roots), max_depth)
        limiter = asyncio.Semaphore(_DESCRIBE_CONCURRENCY)

        async def describe_bounded(root: Path) -> RepositoryDescriptor:
            async with limiter:
                return await self.describe(root)

        logger.debug("Discovered %s repositories", len(repo_roots))
        return list(await asyncio.gather(*(describe_bounded(root) for root in repo_roots)))

    async def find_owning(self, path: Path) -> RepositoryDescriptor | None:
        root = await asyncio.to_thread(find_owning_root, path)
        if root is None:
            return None
        return await self.describe(root)

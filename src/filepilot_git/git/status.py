"""Parse ``git status --porcelain`` (v1) output into file-change records."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class FileStatus(str, Enum):
    UNMODIFIED = "unmodified"
    MODIFIED = "modified"
    ADDED = "added"
    DELETED = "deleted"
    RENAMED = "renamed"
    UNTRACKED = "untracked"

    @property
    def display_name(self) -> str:
        return self.value.capitalize()


# Column codes the engine understands. Anything else reads as blank.
_INDEX_CODES = {
    "M": FileStatus.MODIFIED,
    "A": FileStatus.ADDED,
    "D": FileStatus.DELETED,
    "R": FileStatus.RENAMED,
}
_WORKTREE_CODES = {
    "M": FileStatus.MODIFIED,
    "D": FileStatus.DELETED,
    "?": FileStatus.UNTRACKED,
}


@dataclass(frozen=True)
class FileChange:
    """One line of porcelain status.

    ``path`` is the literal path field. Rename lines keep git's
    ``old -> new`` text as a single path.
    """

    path: str
    index_status: FileStatus
    worktree_status: FileStatus
    effective_status: FileStatus

    @property
    def is_staged(self) -> bool:
        return self.index_status is not FileStatus.UNMODIFIED

    @property
    def display_path(self) -> str:
        return self.path.replace("\\", "/")


def _resolve_effective(index: FileStatus, worktree: FileStatus) -> FileStatus:
    if worktree is not FileStatus.UNMODIFIED:
        return worktree
    if index is not FileStatus.UNMODIFIED:
        return index
    return FileStatus.MODIFIED


def parse_status_line(line: str) -> FileChange | None:
    """Parse a single porcelain line, or return None when it is malformed."""
    if len(line) < 4:
        return None
    index = _INDEX_CODES.get(line[0], FileStatus.UNMODIFIED)
    worktree = _WORKTREE_CODES.get(line[1], FileStatus.UNMODIFIED)
    return FileChange(
        path=line[3:],
        index_status=index,
        worktree_status=worktree,
        effective_status=_resolve_effective(index, worktree),
    )


def parse_status(porcelain: str) -> list[FileChange]:
    changes: list[FileChange] = []
    for line in porcelain.splitlines():
        if not line:
            continue
        change = parse_status_line(line)
        if change is not None:
            changes.append(change)
    return changes

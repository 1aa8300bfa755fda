"""Git repository discovery and status.

This package provides the engine behind the file browser's git panel:
    - CommandRunner: async git subprocess execution
    - parse_status: porcelain v1 status parsing
    - RemoteResolver: branch and origin lookups, GitHub URL rewriting
    - RepositoryLocator: bounded discovery and owning-repository lookup
    - RepositoryStatusStore: active repository state and index operations
"""

from __future__ import annotations

from .locator import (
    DEFAULT_MAX_DEPTH,
    RepositoryLocator,
    find_owning_root,
    has_git_entry,
    scan_for_repositories,
)
from .models import RepositoryDescriptor
from .remote import RemoteResolver, canonical_web_url, is_github_host
from .runner import GIT_SUBCOMMANDS, CommandOutput, CommandRunner
from .status import FileChange, FileStatus, parse_status
from .store import RepositoryStatusStore, StoreSnapshot, StoreState

__all__ = [
    "DEFAULT_MAX_DEPTH",
    "GIT_SUBCOMMANDS",
    "CommandOutput",
    "CommandRunner",
    "FileChange",
    "FileStatus",
    "RemoteResolver",
    "RepositoryDescriptor",
    "RepositoryLocator",
    "RepositoryStatusStore",
    "StoreSnapshot",
    "StoreState",
    "canonical_web_url",
    "find_owning_root",
    "has_git_entry",
    "is_github_host",
    "parse_status",
    "scan_for_repositories",
]

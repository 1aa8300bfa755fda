from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from .remote import canonical_web_url, is_github_host


@dataclass(frozen=True)
class RepositoryDescriptor:
    """A repository root plus the metadata resolved when it was found.

    ``root_path`` always holds a ``.git`` entry (a directory, or a file for
    worktrees and submodules). Descriptors are never updated in place; a
    branch switch is picked up by resolving a new descriptor.
    """

    root_path: Path
    branch: str | None = None
    remote_url: str | None = None

    @property
    def is_github_host(self) -> bool:
        return is_github_host(self.remote_url)

    @property
    def web_url(self) -> str | None:
        return canonical_web_url(self.remote_url)

    @property
    def display_name(self) -> str:
        return self.root_path.name or str(self.root_path)

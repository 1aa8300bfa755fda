"""Branch and remote metadata for a repository.

Both lookups are optional by nature: a detached HEAD has no branch and a
local-only repository has no ``origin``. Neither case is an error.
"""

from __future__ import annotations

from pathlib import Path

from filepilot_git.core.console import get_logger
from filepilot_git.core.result import Err, NonZeroExitError, Ok

from .runner import CommandRunner

logger = get_logger(__name__)

GITHUB_HOST = "github.com"
_GITHUB_SSH_PREFIX = "git@github.com:"
_GITHUB_WEB_PREFIX = "https://github.com/"


def is_github_host(url: str | None) -> bool:
    return url is not None and GITHUB_HOST in url


def canonical_web_url(url: str | None) -> str | None:
    """Rewrite a GitHub remote to its browsable https form.

    ``git@github.com:org/repo.git`` and ``https://github.com/org/repo.git``
    both become ``https://github.com/org/repo``. Other hosts and other
    GitHub spellings (``ssh://``, ``http://``) yield None.
    """
    if not url:
        return None
    candidate = url.strip()
    if candidate.startswith(_GITHUB_SSH_PREFIX):
        candidate = _GITHUB_WEB_PREFIX + candidate[len(_GITHUB_SSH_PREFIX) :]
    if candidate.endswith(".git"):
        candidate = candidate[: -len(".git")]
    if not candidate.startswith(_GITHUB_WEB_PREFIX) or candidate == _GITHUB_WEB_PREFIX:
        return None
    return candidate


class RemoteResolver:
    """Ask git for the current branch and the ``origin`` URL."""

    def __init__(self, runner: CommandRunner) -> None:
        self._runner = runner

    async def branch(self, cwd: Path) -> str | None:
        match await self._runner.run(["branch", "--show-current"], cwd=cwd):
            case Ok(output):
                return output.stdout.strip() or None
            case Err(err):
                logger.debug("Could not read branch in %s: %s", cwd, err.message)
                return None

    async def remote_url(self, cwd: Path) -> str | None:
        match await self._runner.run(["remote", "get-url", "origin"], cwd=cwd):
            case Ok(output):
                return output.stdout.strip() or None
            case Err(NonZeroExitError()):
                return None
            case Err(err):
                logger.warning("Could not read remote in %s: %s", cwd, err.message)
                return None

"""Repository commands.

Provides CLI commands over the status engine:
    - discover: list repositories under the configured roots
    - status: show the working tree of the repository owning a path
    - stage / unstage: move pending changes in and out of the index
    - commit: stage the given changes and commit them
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import Sequence
from pathlib import Path

import typer
from rich import box
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from filepilot_git.core.console import console
from filepilot_git.core.decorators import handle_exceptions
from filepilot_git.core.result import (
    Err,
    FilePilotGitError,
    NoActiveRepositoryError,
    Ok,
    Result,
)
from filepilot_git.git import (
    FileChange,
    FileStatus,
    RepositoryDescriptor,
    RepositoryStatusStore,
    StoreState,
)

_STATUS_STYLES = {
    FileStatus.MODIFIED: "yellow",
    FileStatus.ADDED: "green",
    FileStatus.DELETED: "red",
    FileStatus.RENAMED: "blue",
    FileStatus.UNTRACKED: "dim",
}


def _build_store(ctx: typer.Context) -> RepositoryStatusStore:
    return RepositoryStatusStore.from_config(ctx.obj.config)


async def _open_repository(
    store: RepositoryStatusStore, path: Path
) -> Result[RepositoryDescriptor, FilePilotGitError]:
    repository = await store.track_navigation(path.expanduser())
    if repository is None:
        return Err(
            NoActiveRepositoryError(
                "Path is not inside a git repository", context={"path": str(path)}
            )
        )
    if store.state is StoreState.ERROR and store.error is not None:
        return Err(store.error)
    return Ok(repository)


def _pick_changes(
    store: RepositoryStatusStore, names: Sequence[str]
) -> Result[list[FileChange], FilePilotGitError]:
    by_path = {change.path: change for change in store.files}
    picked: list[FileChange] = []
    for name in names:
        change = by_path.get(name)
        if change is None:
            return Err(FilePilotGitError("No pending change for path", context={"path": name}))
        picked.append(change)
    return Ok(picked)


def _repo_panel(repository: RepositoryDescriptor) -> Panel:
    lines = [
        f"[bold]{escape(repository.display_name)}[/bold]",
        f"Path: {escape(str(repository.root_path))}",
        f"Branch: {escape(repository.branch or '(detached)')}",
    ]
    if repository.web_url:
        lines.append(f"Web: {escape(repository.web_url)}")
    elif repository.remote_url:
        lines.append(f"Remote: {escape(repository.remote_url)}")
    return Panel("\n".join(lines), box=box.SIMPLE)


def _render_changes(files: Sequence[FileChange]) -> Table:
    table = Table(title=f"{len(files)} changes", box=box.SIMPLE_HEAVY, expand=True)
    table.add_column("Status", no_wrap=True)
    table.add_column("Staged", no_wrap=True)
    table.add_column("Path", style="white")
    for change in files:
        style = _STATUS_STYLES.get(change.effective_status, "white")
        table.add_row(
            f"[{style}]{change.effective_status.display_name}[/{style}]",
            "[green]yes[/]" if change.is_staged else "no",
            escape(change.display_path),
        )
    return table


def _change_payload(change: FileChange) -> dict[str, object]:
    return {
        "path": change.path,
        "index_status": change.index_status.value,
        "worktree_status": change.worktree_status.value,
        "effective_status": change.effective_status.value,
        "is_staged": change.is_staged,
    }


@handle_exceptions
def discover(
    ctx: typer.Context,
    root: list[Path] | None = typer.Option(
        None,
        "--root",
        "-r",
        help="Directory to scan; repeat for several (defaults to the configured roots).",
    ),
    max_depth: int | None = typer.Option(
        None, "--max-depth", min=1, help="Nesting levels inspected below each root."
    ),
    as_json: bool = typer.Option(False, "--json", help="Output JSON for scripting."),
) -> None:
    """List git repositories found under the discovery roots."""
    state = ctx.obj
    store = _build_store(ctx)
    roots = root or state.config.discovery.roots
    state.logger.debug("Discovering repositories under %s", [str(r) for r in roots])

    repositories = asyncio.run(store.discover_repositories(roots, max_depth))

    if as_json:
        data = [
            {
                "name": repo.display_name,
                "path": str(repo.root_path),
                "branch": repo.branch,
                "remote_url": repo.remote_url,
                "web_url": repo.web_url,
            }
            for repo in repositories
        ]
        typer.echo(json.dumps(data, indent=2))
        return

    if not repositories:
        console.print("[yellow]No git repositories found.[/yellow]")
        return

    table = Table(title="Repositories", box=box.SIMPLE_HEAVY, expand=True)
    table.add_column("Name", style="cyan", no_wrap=True)
    table.add_column("Branch", style="white", no_wrap=True)
    table.add_column("Remote", style="white")
    table.add_column("Path", style="white")
    for repo in repositories:
        table.add_row(
            escape(repo.display_name),
            escape(repo.branch or "(detached)"),
            escape(repo.web_url or repo.remote_url or "-"),
            escape(str(repo.root_path)),
        )
    console.print(table)


@handle_exceptions
def status(
    ctx: typer.Context,
    path: Path = typer.Argument(Path("."), help="Any path inside the repository."),
    as_json: bool = typer.Option(False, "--json", help="Output JSON for scripting."),
) -> None:
    """Show pending changes for the repository that owns PATH."""
    store = _build_store(ctx)

    match asyncio.run(_open_repository(store, path)):
        case Err(err):
            raise err
        case Ok(repository):
            pass

    if as_json:
        typer.echo(json.dumps([_change_payload(change) for change in store.files], indent=2))
        return

    console.print(_repo_panel(repository))
    if not store.files:
        console.print("[green]Working tree clean.[/green]")
        return
    console.print(_render_changes(store.files))


def _run_index_command(ctx: typer.Context, repo: Path, files: Sequence[str], unstage: bool) -> None:
    store = _build_store(ctx)

    async def _apply() -> Result[list[FileChange], FilePilotGitError]:
        match await _open_repository(store, repo):
            case Err(err):
                return Err(err)
            case Ok(_):
                pass
        match _pick_changes(store, files):
            case Err(err):
                return Err(err)
            case Ok(changes):
                pass
        for change in changes:
            operation = store.unstage if unstage else store.stage
            match await operation(change):
                case Err(err):
                    return Err(err)
                case Ok(_):
                    pass
        return Ok(store.files)

    match asyncio.run(_apply()):
        case Err(err):
            raise err
        case Ok(remaining):
            verb = "Unstaged" if unstage else "Staged"
            console.print(f"[green]{verb} {len(files)} file(s).[/green]")
            if remaining:
                console.print(_render_changes(remaining))


@handle_exceptions
def stage(
    ctx: typer.Context,
    files: list[str] = typer.Argument(..., help="Paths as shown by `status`."),
    repo: Path = typer.Option(Path("."), "--repo", "-r", help="Path inside the repository."),
) -> None:
    """Stage pending changes."""
    _run_index_command(ctx, repo, files, unstage=False)


@handle_exceptions
def unstage(
    ctx: typer.Context,
    files: list[str] = typer.Argument(..., help="Paths as shown by `status`."),
    repo: Path = typer.Option(Path("."), "--repo", "-r", help="Path inside the repository."),
) -> None:
    """Move staged changes back out of the index."""
    _run_index_command(ctx, repo, files, unstage=True)


@handle_exceptions
def commit(
    ctx: typer.Context,
    message: str = typer.Option(..., "--message", "-m", help="Commit message."),
    files: list[str] | None = typer.Argument(
        None, help="Paths to include (defaults to everything already staged)."
    ),
    repo: Path = typer.Option(Path("."), "--repo", "-r", help="Path inside the repository."),
) -> None:
    """Stage the given changes and commit them."""
    store = _build_store(ctx)

    async def _commit() -> Result[int, FilePilotGitError]:
        match await _open_repository(store, repo):
            case Err(err):
                return Err(err)
            case Ok(_):
                pass
        if files:
            match _pick_changes(store, files):
                case Err(err):
                    return Err(err)
                case Ok(changes):
                    pass
        else:
            changes = [change for change in store.files if change.is_staged]
        if not changes:
            return Err(FilePilotGitError("Nothing to commit"))
        if not await store.commit(message, changes):
            return Err(FilePilotGitError("Commit failed; see log for git's explanation"))
        return Ok(len(changes))

    match asyncio.run(_commit()):
        case Err(err):
            raise err
        case Ok(count):
            console.print(f"[green]Committed {count} file(s).[/green]")

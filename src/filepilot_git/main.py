from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

import typer
from rich import box
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from . import __version__
from .commands import repos
from .core.config import AppConfig, ConfigLoadResult, load_config
from .core.console import console, setup_logging

app = typer.Typer(help="filepilot-git: find git repositories and manage their working tree.")

_FUNCTION_COMMANDS = {
    "discover": repos.discover,
    "status": repos.status,
    "stage": repos.stage,
    "unstage": repos.unstage,
    "commit": repos.commit,
}


@dataclass
class AppState:
    config: AppConfig
    config_meta: ConfigLoadResult
    logger: logging.Logger


@app.callback()
def main(
    ctx: typer.Context,
    config: Path | None = typer.Option(
        None, "--config", "-c", help="Path to a config file (TOML or JSON)."
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    loaded_config, meta = load_config(config_path=config)
    logger = setup_logging(level=loaded_config.log_level, verbose=verbose)

    ctx.obj = AppState(config=loaded_config, config_meta=meta, logger=logger)

    if meta.error:
        # Display "Safe Mode" Warning
        console.print(
            Panel(
                f"[bold red]Configuration Error - Safe Mode Active[/bold red]\n\n"
                f"Failed to load {escape(str(meta.path))}:\n{escape(meta.error)}\n\n"
                f"[yellow]Using default settings.[/yellow]",
                border_style="red",
            )
        )
    else:
        logger.debug(
            "Loaded configuration from %s (env overrides: %s)",
            meta.path,
            sorted(meta.env_overrides),
        )


@app.command("config")
def show_config(ctx: typer.Context) -> None:
    """Show the active configuration and where it came from."""
    state: AppState = ctx.obj
    config = state.config
    meta = state.config_meta

    table = Table(title="Config", box=box.SIMPLE, expand=True)
    table.add_column("Key", style="cyan", no_wrap=True)
    table.add_column("Value", style="white")

    for key, value in config.model_dump().items():
        table.add_row(key, escape(str(value)))

    console.print(table)

    meta_lines = [
        f"Path: {escape(str(meta.path))}",
        "File loaded: yes" if meta.file_loaded else "File loaded: no (using defaults + env)",
    ]

    if meta.env_overrides:
        meta_lines.append("Env overrides: " + ", ".join(sorted(meta.env_overrides)))

    console.print(Panel("\n".join(meta_lines), title="Config source", box=box.SIMPLE))


@app.command("version")
def show_version() -> None:
    """Print the filepilot-git version."""
    console.print(__version__)


def _register_commands() -> None:
    for name, handler in _FUNCTION_COMMANDS.items():
        app.command(name)(handler)


_register_commands()


def cli() -> None:
    app()


if __name__ == "__main__":
    cli()

"""
Main CLI entry point for kickwatch.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.panel import Panel

from kickwatch import __version__
from kickwatch.cli.auth_commands import auth_app
from kickwatch.cli.logging_setup import configure_logging
from kickwatch.cli.watch_commands import status, watch
from kickwatch.container import container

console = Console()

app = typer.Typer(
    name="kickwatch",
    help="Kick channel live-status monitor",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

# Add subcommands
app.add_typer(auth_app, name="auth", help="Authentication commands")
app.command()(status)
app.command()(watch)


@app.command()
def version() -> None:
    """Show version information."""
    console.print(
        Panel(
            f"[bold green]kickwatch[/bold green] v{__version__}",
            title="Version",
            border_style="green",
        )
    )


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    version: bool = typer.Option(
        False, "--version", "-v", help="Show version and exit"
    ),
    log_level: Optional[str] = typer.Option(
        None, "--log-level", help="Log level (default: from settings)"
    ),
    log_file: Optional[Path] = typer.Option(
        None, "--log-file", help="Also write logs to this file"
    ),
) -> None:
    """
    kickwatch - Kick channel live-status monitor.

    Polls Kick channels, renders status thumbnails and flashes when a
    watched channel goes live.
    """
    if version:
        console.print(f"kickwatch v{__version__}")
        raise typer.Exit(code=0)

    if ctx.invoked_subcommand is None:
        console.print("[yellow]Use 'kickwatch --help' for available commands[/yellow]")
        raise typer.Exit(code=1)

    configure_logging(log_level or container.settings.log_level, log_file)


if __name__ == "__main__":
    app()

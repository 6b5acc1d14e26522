"""
Status and watch CLI commands for kickwatch.
"""

from __future__ import annotations

import asyncio
import base64
import logging
import webbrowser
from pathlib import Path
from typing import List

import typer
from rich.console import Console
from rich.table import Table

from kickwatch.container import container
from kickwatch.models.status import StatusKind, StatusResult
from kickwatch.services.interfaces.button_host import ButtonHost

console = Console()
logger = logging.getLogger(__name__)

_SVG_DATA_URI_PREFIX = "data:image/svg+xml;base64,"

STATUS_STYLES = {
    StatusKind.LIVE: "bold green",
    StatusKind.OFFLINE: "red",
    StatusKind.ERROR: "bold red",
    StatusKind.NOT_FOUND: "yellow",
    StatusKind.UNKNOWN: "dim",
}


class ConsoleButtonHost(ButtonHost):
    """
    Button host that prints titles and writes images to a directory.

    SVG data URIs are decoded to ``<name>.svg``; any other image reference
    (the static indicators) is written as text to ``<name>.txt``.
    """

    def __init__(
        self, name: str, output_dir: Path, open_browser: bool = True
    ) -> None:
        self.name = name
        self.output_dir = output_dir
        self.open_browser = open_browser
        self.title: str | None = None
        self.image: str | None = None
        self.opened_urls: list[str] = []

    @property
    def svg_path(self) -> Path:
        return self.output_dir / f"{self.name}.svg"

    @property
    def ref_path(self) -> Path:
        return self.output_dir / f"{self.name}.txt"

    async def set_title(self, title: str) -> None:
        if title == self.title:
            return
        self.title = title
        if title:
            line = title.replace("\n", " | ")
            console.print(f"[cyan]{self.name}[/cyan] {line}")

    async def set_image(self, image: str) -> None:
        self.image = image
        self.output_dir.mkdir(parents=True, exist_ok=True)

        if image.startswith(_SVG_DATA_URI_PREFIX):
            svg = base64.b64decode(image[len(_SVG_DATA_URI_PREFIX):])
            self.svg_path.write_bytes(svg)
            self.ref_path.unlink(missing_ok=True)
        else:
            self.ref_path.write_text(image, encoding="utf-8")
            self.svg_path.unlink(missing_ok=True)

    async def open_url(self, url: str) -> None:
        self.opened_urls.append(url)
        console.print(f"[blue]Opening[/blue] {url}")
        if self.open_browser:
            webbrowser.open(url)


def _status_table(results: List[StatusResult]) -> Table:
    table = Table(title="Kick Channel Status")
    table.add_column("Channel", style="cyan")
    table.add_column("Status")
    table.add_column("Name")
    table.add_column("Viewers", justify="right")
    table.add_column("Category")
    table.add_column("Title")

    for result in results:
        style = STATUS_STYLES.get(result.status, "")
        table.add_row(
            result.slug or "-",
            f"[{style}]{result.status.value}[/{style}]",
            result.display_name or "-",
            str(result.viewer_count) if result.viewer_count is not None else "-",
            result.category or "-",
            result.title or "-",
        )
    return table


def status(
    channels: List[str] = typer.Argument(..., help="Channel slugs to check"),
) -> None:
    """Check the current status of one or more channels."""

    async def run_status() -> List[StatusResult]:
        service = container.status_service
        return list(
            await asyncio.gather(*(service.check_streamer_status(c) for c in channels))
        )

    results = asyncio.run(run_status())
    console.print(_status_table(results))

    if any(r.status is StatusKind.ERROR for r in results):
        console.print(
            "[yellow]Some checks failed. Use [bold]kickwatch auth status[/bold] "
            "to check your credentials.[/yellow]"
        )
        raise typer.Exit(code=1)


def watch(
    channels: List[str] = typer.Argument(
        ..., help="Up to four channel slugs for one button"
    ),
    output_dir: Path = typer.Option(
        Path("./button"), "--output-dir", "-o", help="Where button images are written"
    ),
    duration: float = typer.Option(
        0.0, "--duration", "-d", help="Stop after this many seconds (0: run until Ctrl+C)"
    ),
) -> None:
    """Watch channels like a single button would, writing its images to disk."""
    channel_spec = ",".join(channels)
    host = ConsoleButtonHost("button", output_dir)
    action = container.live_status_action

    async def run_watch() -> None:
        await action.on_will_appear(host.name, {"channel": channel_spec}, host)
        try:
            if duration > 0:
                await asyncio.sleep(duration)
            else:
                await asyncio.Event().wait()
        finally:
            await action.shutdown()

    console.print(f"[green]Watching[/green] {channel_spec} -> {output_dir}")
    try:
        asyncio.run(run_watch())
    except KeyboardInterrupt:
        console.print("[yellow]Stopped.[/yellow]")

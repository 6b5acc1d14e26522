"""
Authentication CLI commands for kickwatch.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from kickwatch.container import container
from kickwatch.exceptions import CredentialsNotFoundError
from kickwatch.models.credentials import CredentialSet

console = Console()

auth_app = typer.Typer(
    name="auth",
    help="Authentication commands",
    no_args_is_help=True,
)


async def _load_credentials() -> CredentialSet | None:
    try:
        return await container.storage_provider.get().load()
    except CredentialsNotFoundError:
        return None


def _format_expiry(expires_at: int | None) -> str:
    if not expires_at:
        return "Unknown"
    return datetime.fromtimestamp(expires_at, tz=timezone.utc).strftime(
        "%Y-%m-%d %H:%M:%S UTC"
    )


@auth_app.command()
def login() -> None:
    """Login to your Kick account."""
    try:
        console.print(
            Panel(
                "[blue]🔐 Starting Kick OAuth authentication...[/blue]\n"
                "You will be redirected to Kick to authorize kickwatch.",
                title="Kick Login",
                border_style="blue",
            )
        )

        credentials = asyncio.run(container.oauth_flow.authorize_interactive())
        container.token_manager.invalidate()

        console.print(
            Panel(
                "[green]✅ Authentication successful![/green]\n"
                f"Access token expires: {_format_expiry(credentials.tokens.expires_at)}\n"
                f"Scopes: {credentials.tokens.scope or 'Unknown'}",
                title="Login Complete",
                border_style="green",
            )
        )

    except Exception as e:
        console.print(
            Panel(
                f"[red]❌ Authentication failed:[/red]\n{str(e)}",
                title="Login Error",
                border_style="red",
            )
        )
        raise typer.Exit(code=1)


@auth_app.command()
def logout(
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
) -> None:
    """Logout and clear stored credentials."""
    try:
        if asyncio.run(_load_credentials()) is None:
            console.print(
                Panel(
                    "[yellow]ℹ️ Not currently authenticated[/yellow]\n"
                    "Use [bold]kickwatch auth login[/bold] to sign in.",
                    title="Logout",
                    border_style="yellow",
                )
            )
            return

        if not yes and not typer.confirm(
            "Are you sure you want to logout and delete stored credentials?"
        ):
            console.print("[yellow]Logout cancelled.[/yellow]")
            return

        asyncio.run(container.token_manager.logout())

        console.print(
            Panel(
                "[green]✅ Successfully logged out![/green]\n"
                "All stored credentials have been removed.\n"
                "Use [bold]kickwatch auth login[/bold] to sign in again.",
                title="Logout Complete",
                border_style="green",
            )
        )

    except Exception as e:
        console.print(
            Panel(
                f"[red]❌ Logout failed:[/red]\n{str(e)}",
                title="Logout Error",
                border_style="red",
            )
        )
        raise typer.Exit(code=1)


@auth_app.command()
def status() -> None:
    """Check authentication status."""
    credentials = asyncio.run(_load_credentials())
    if credentials is None:
        console.print(
            Panel(
                "[red]❌ Not authenticated[/red]\n"
                "Use [bold]kickwatch auth login[/bold] to sign in.",
                title="Authentication Status",
                border_style="red",
            )
        )
        return

    tokens = credentials.tokens
    settings = container.settings
    expired = tokens.is_due_for_refresh(settings.token_expiry_skew_seconds)

    table = Table(title="Authentication Details")
    table.add_column("Property", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("Status", "⚠️ Token Expired" if expired else "✅ Authenticated")
    table.add_row("Has Access Token", "Yes" if tokens.access_token else "No")
    table.add_row("Has Refresh Token", "Yes" if tokens.refresh_token else "No")
    table.add_row("Expires At", _format_expiry(tokens.expires_at))
    table.add_row("Scopes", tokens.scope or "Unknown")
    table.add_row("Issuer", credentials.server_metadata.issuer or "Unknown")

    console.print(table)

    if expired and tokens.refresh_token:
        console.print(
            Panel(
                "[yellow]⚠️ Token expired but refreshable[/yellow]\n"
                "It will be refreshed on the next status check.",
                border_style="yellow",
            )
        )
    elif expired:
        console.print(
            Panel(
                "[red]❌ Token expired and cannot be refreshed[/red]\n"
                "Use [bold]kickwatch auth login[/bold] to authenticate again.",
                border_style="red",
            )
        )

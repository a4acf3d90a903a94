"""Command-line interface for TAUMine."""

from typing import Annotated

import typer
from rich.console import Console
from rich.table import Table

from taumine.logging_config import configure_logging, get_logger
from taumine.pioneers.service import PioneerStatsService
from taumine.profiles.service import ProfileService
from taumine.referral.service import ReferralService
from taumine.storage.db import Database

# Configure logging
configure_logging()
logger = get_logger(__name__)

# Create Typer app
app = typer.Typer(
    name="taumine",
    help="TAUMine - pioneer registration and referral rewards",
    no_args_is_help=True,
)

# Rich console for pretty output
console = Console()

_state: dict[str, str | None] = {"database_url": None}


def _get_db() -> Database:
    return Database(_state["database_url"])


@app.callback()
def main(
    database_url: Annotated[
        str | None,
        typer.Option("--database-url", envvar="DATABASE_URL", help="Database URL (defaults to settings)"),
    ] = None,
) -> None:
    _state["database_url"] = database_url


@app.command("init")
def init_database() -> None:
    """Initialize the database and create tables."""
    console.print("[bold blue]Initializing database...[/bold blue]")
    _get_db().create_tables()
    console.print("[bold green]✓[/bold green] Database initialized successfully")


@app.command("sync-referrals")
def sync_referrals() -> None:
    """Recompute referral stats for every user and re-rank the leaderboard."""
    console.print("[bold blue]Syncing referral stats...[/bold blue]")

    with _get_db().session() as session:
        result = ReferralService(session).sync_all()

    for error in result.errors:
        console.print(f"[red]✗ user {error.user_id}:[/red] {error.error}")

    style = "green" if not result.errors else "yellow"
    console.print(f"[bold {style}]{result.message}[/bold {style}]")
    if result.errors:
        raise typer.Exit(1)


@app.command("sync-profiles")
def sync_profiles() -> None:
    """Create profiles for accounts that have none."""
    console.print("[bold blue]Syncing profiles...[/bold blue]")

    with _get_db().session() as session:
        service = ProfileService(session)
        result = service.sync_profiles()
        service.pioneers.refresh_pioneer_stats()

    for error in result.errors:
        console.print(f"[red]✗ user {error.user_id}:[/red] {error.error}")

    style = "green" if not result.errors else "yellow"
    console.print(f"[bold {style}]{result.message}[/bold {style}]")
    if result.errors:
        raise typer.Exit(1)


@app.command("leaderboard")
def show_leaderboard(
    limit: Annotated[int, typer.Option("--limit", "-l", help="Number of entries")] = 10,
) -> None:
    """Show the top referrers."""
    with _get_db().session() as session:
        rows = ReferralService(session).get_leaderboard(limit)

    if not rows:
        console.print("[yellow]Leaderboard is empty[/yellow]")
        return

    table = Table(title="Top Referrers")
    table.add_column("Rank", style="cyan", justify="right")
    table.add_column("Username", style="green")
    table.add_column("Referrals", justify="right")
    table.add_column("Verified", justify="right")
    table.add_column("Earnings (TAU)", justify="right")

    for row in rows:
        table.add_row(
            str(row.rank),
            row.username,
            str(row.total_referrals),
            str(row.verified_referrals),
            f"{row.earnings:,}",
        )

    console.print(table)


@app.command("pioneer-stats")
def show_pioneer_stats(
    refresh: Annotated[bool, typer.Option("--refresh", help="Recount from profiles first")] = False,
) -> None:
    """Show the pioneer counter."""
    with _get_db().session() as session:
        service = PioneerStatsService(session)
        if refresh:
            service.refresh_pioneer_stats()
        stats = service.get_extended_pioneer_stats()

    console.print(f"[bold]Total pioneers:[/bold] {stats.total_pioneers:,}")
    console.print(f"[bold]Genesis pioneers:[/bold] {stats.genesis_pioneers:,} / {stats.genesis_limit:,}")
    console.print(f"[bold]Genesis spots remaining:[/bold] {stats.genesis_remaining:,} ({stats.genesis_percentage}% claimed)")


if __name__ == "__main__":
    app()

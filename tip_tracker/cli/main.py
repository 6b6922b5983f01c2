"""
CLI interface for Tip Tracker.

Provides command-line access to logging tips and reviewing earnings.
"""

import asyncio
import logging
import sys
from decimal import Decimal
from typing import Awaitable, Callable, Optional, TypeVar

import typer
from rich.console import Console
from rich.table import Table

from tip_tracker.config.loader import TrackerConfig, load_config
from tip_tracker.core.errors import (
    AuthenticationError,
    ConfigurationError,
    SyncError,
    WriteError
)
from tip_tracker.core.session import open_session
from tip_tracker.core.tracker import ActionInProgress, TipTracker
from tip_tracker.storage.models import round_money
from tip_tracker.storage.repository import TipRepository

app = typer.Typer()
console = Console()

EXIT_CODE_PASS = 0
EXIT_CODE_FAIL = 1

T = TypeVar("T")


class _State:
    config_path: Optional[str] = None


state = _State()


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    config: Optional[str] = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to YAML configuration file"
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Show debug logging"
    )
):
    """Tip Tracker CLI."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s"
    )
    state.config_path = config
    if ctx.invoked_subcommand is None:
        console.print("Tip Tracker - Use --help to see available commands")


def _load_config() -> TrackerConfig:
    try:
        return load_config(state.config_path)
    except ConfigurationError as e:
        console.print(f"[red]Configuration error:[/] {e}")
        sys.exit(EXIT_CODE_FAIL)


def _run(action: Callable[[TipTracker], Awaitable[T]]) -> T:
    """Open a session, run one action against it, and map fatal errors to exit codes."""
    config = _load_config()

    async def _session() -> T:
        async with open_session(config) as tracker:
            if tracker.sync_error is not None:
                console.print(f"[yellow]Warning:[/] {tracker.sync_error} (showing last known data)")
            return await action(tracker)

    try:
        return asyncio.run(_session())
    except (ConfigurationError, AuthenticationError) as e:
        console.print(f"[red]Error:[/] {e}")
        sys.exit(EXIT_CODE_FAIL)
    except SyncError as e:
        console.print(f"[red]Failed to load tips:[/] {e}")
        sys.exit(EXIT_CODE_FAIL)


def _format_currency(amount: Decimal) -> str:
    """Format currency with proper symbols and formatting."""
    return f"${round_money(amount):,.2f}"


@app.command()
def init():
    """Initialize the tip database."""
    config = _load_config()
    try:
        TipRepository(config.store.path).initialize_schema()
        console.print("[green]✓[/] Database initialized successfully")
        sys.exit(EXIT_CODE_PASS)
    except Exception as e:
        console.print(f"[red]Error initializing database:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)


@app.command()
def log(amount: str = typer.Argument(..., help="Tip amount, e.g. 5.50")):
    """Log one tip."""
    async def _log(tracker: TipTracker):
        return await tracker.log_tip(amount)

    try:
        event = _run(_log)
    except ValueError as e:
        console.print(f"[red]Invalid amount:[/] {e}")
        sys.exit(EXIT_CODE_FAIL)
    except (WriteError, ActionInProgress) as e:
        console.print(f"[red]Error adding tip:[/] {e}")
        sys.exit(EXIT_CODE_FAIL)

    console.print(f"[green]✓[/] Logged {_format_currency(event.amount)}")


@app.command()
def today():
    """Show today's total, count, average and logged tips."""
    async def _today(tracker: TipTracker):
        return tracker.get_today_metrics(), tracker.tz

    metrics, tz = _run(_today)

    console.print("\n[bold]Today[/bold]")
    console.print("-" * 40)
    console.print(f"Today's Total: {_format_currency(metrics.total)}")
    console.print(f"Tips Today: {metrics.count}")
    console.print(f"Average Tip: {_format_currency(metrics.average)}")

    if not metrics.events:
        console.print("\n[dim]No tips logged for today yet.[/]")
        return

    table = Table(title="Today's Logged Tips")
    table.add_column("Time")
    table.add_column("Amount", justify="right")
    for event in metrics.events:
        table.add_row(
            event.timestamp.astimezone(tz).strftime("%H:%M"),
            _format_currency(event.amount)
        )
    console.print(table)


def _series_table(title: str, key_header: str, points) -> Table:
    table = Table(title=title)
    table.add_column(key_header)
    table.add_column("Total", justify="right")
    for point in points:
        table.add_row(point.label, _format_currency(point.total))
    return table


@app.command()
def stats():
    """Show all-time metrics and day, hour and week breakdowns."""
    async def _stats(tracker: TipTracker):
        return (
            tracker.get_all_time_metrics(),
            tracker.get_day_of_week_series(),
            tracker.get_hour_of_day_series(),
            tracker.get_weekly_series()
        )

    all_time, by_day, by_hour, by_week = _run(_stats)

    if all_time.count == 0:
        console.print("\n[bold yellow]No Statistics Yet[/]")
        console.print("Start logging tips to see your stats here!\n")
        return

    console.print("\n[bold]All-Time[/bold]")
    console.print("-" * 40)
    console.print(f"All-Time Total: {_format_currency(all_time.total)}")
    console.print(f"All-Time Average: {_format_currency(all_time.average)}")
    console.print(f"Best Tip Ever: {_format_currency(all_time.best_tip)}")

    console.print(_series_table("Tips by Day of Week", "Day", by_day))
    console.print(_series_table(
        "Tips by Hour of Day", "Hour",
        [point for point in by_hour if point.count > 0]
    ))
    console.print(_series_table("Weekly Tip Totals", "Week starting", by_week))


@app.command("pep-talk")
def pep_talk():
    """Get a short motivational message based on today's tips."""
    async def _pep_talk(tracker: TipTracker):
        return await tracker.pep_talk()

    console.print(_run(_pep_talk))


@app.command()
def insights():
    """Get a coaching analysis of the latest week."""
    async def _insights(tracker: TipTracker):
        return await tracker.weekly_insight()

    console.print(_run(_insights))


if __name__ == "__main__":
    app()

"""Command-line interface for the usage ledger."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from pathlib import Path
from typing import List, Optional

import typer

from .config import TrackerSettings
from .paths import get_db_path

app = typer.Typer(help="Per-application focus time ledger.")


@app.callback(no_args_is_help=True)
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logs.")) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )


@app.command()
def serve(
    host: str = typer.Option("127.0.0.1", "--host", help="Interface to bind the API."),
    port: int = typer.Option(
        8766, "--port", min=1, max=65535, help="TCP port for the API."
    ),
    db_path: Optional[Path] = typer.Option(
        None, "--db", path_type=Path, help="Location of the usage SQLite database."
    ),
    ignore: Optional[List[str]] = typer.Option(
        None, "--ignore", help="Extra application identifiers to leave out of reports."
    ),
    log_level: str = typer.Option("info", "--log-level", help="Uvicorn log level."),
) -> None:
    """Accept focus signals over HTTP and answer usage queries."""
    from .server_runner import run_server

    run_server(
        host=host,
        port=port,
        db_path=db_path or get_db_path(),
        settings=TrackerSettings.from_options(ignore=ignore),
        log_level=log_level,
    )


@app.command()
def summary(
    date: Optional[str] = typer.Option(
        None,
        "--date",
        help="Date (YYYY-MM-DD) to summarize. Defaults to today.",
    ),
    hours: Optional[float] = typer.Option(
        None,
        "--hours",
        min=0.0,
        help="Summarize the last N hours instead of a calendar day.",
    ),
    db_path: Optional[Path] = typer.Option(
        None,
        "--db",
        path_type=Path,
        help="Location of the usage SQLite database.",
    ),
    ignore: Optional[List[str]] = typer.Option(
        None, "--ignore", help="Extra application identifiers to leave out."
    ),
) -> None:
    """Print per-application totals for a day or a recent window."""
    from .reporting import SummaryPrinter

    if date and hours is not None:
        raise typer.BadParameter("--date and --hours are mutually exclusive")
    now = datetime.now()
    if hours is not None:
        since, to = now - timedelta(hours=hours), now
    else:
        try:
            day = datetime.strptime(date, "%Y-%m-%d") if date else now
        except ValueError as exc:
            raise typer.BadParameter("expected YYYY-MM-DD", param_hint="--date") from exc
        since = day.replace(hour=0, minute=0, second=0, microsecond=0)
        to = since + timedelta(days=1)

    printer = SummaryPrinter(
        db_path=db_path or get_db_path(),
        settings=TrackerSettings.from_options(ignore=ignore),
    )
    printer.print_summary(since, to)


@app.command()
def daily(
    days: int = typer.Option(7, "--days", min=1, max=366, help="Number of days to show."),
    db_path: Optional[Path] = typer.Option(
        None,
        "--db",
        path_type=Path,
        help="Location of the usage SQLite database.",
    ),
    ignore: Optional[List[str]] = typer.Option(
        None, "--ignore", help="Extra application identifiers to leave out."
    ),
) -> None:
    """Print per-day totals for the last N days, today included."""
    from .reporting import SummaryPrinter

    start_day = datetime.now().date() - timedelta(days=days - 1)
    printer = SummaryPrinter(
        db_path=db_path or get_db_path(),
        settings=TrackerSettings.from_options(ignore=ignore),
    )
    printer.print_daily_breakdown(start_day, days)

"""Reporting utilities for CLI output, read straight from the store."""

from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone
from pathlib import Path
from typing import Iterable, Optional

from .aggregator import summarize_usage
from .config import TrackerSettings
from .db import database_connection, fetch_intervals_between, fetch_names, row_to_interval
from .models import UsageEntry, UsageInterval
from .names import NameDirectory


class SummaryPrinter:
    """Render human-readable usage summaries in the console."""

    def __init__(self, db_path: Path, settings: Optional[TrackerSettings] = None) -> None:
        self.db_path = Path(db_path)
        self.settings = settings or TrackerSettings()

    def load(self, since: datetime, to: datetime) -> tuple[list[UsageInterval], NameDirectory]:
        names = NameDirectory()
        with database_connection(self.db_path) as conn:
            rows = fetch_intervals_between(conn, since, to)
            names.load(
                (row["application_identifier"], row["display_name"])
                for row in fetch_names(conn)
            )
        return [row_to_interval(row) for row in rows], names

    def usage_between(self, since: datetime, to: datetime) -> list[UsageEntry]:
        intervals, names = self.load(since, to)
        return summarize_usage(
            intervals, since, to, names, ignored=self.settings.ignored_identifiers
        )

    def print_summary(self, since: datetime, to: datetime) -> None:
        entries = self.usage_between(since, to)
        if not entries:
            print("No usage recorded for the selected period.")
            return

        local_since, local_to = since.astimezone(), to.astimezone()
        print(f"Usage from {local_since:%Y-%m-%d %H:%M} to {local_to:%Y-%m-%d %H:%M}")
        print("-" * 40)
        for entry in entries:
            print(f"  {entry.display_name[:28]:<30} {format_duration(entry.duration_seconds)}")
        print()
        print(f"Total tracked: {format_duration(total_seconds(entries))}")

    def print_daily_breakdown(self, start_day: date, days: int) -> None:
        since = start_of_local_day(start_day)
        to = start_of_local_day(start_day + timedelta(days=days))
        intervals, names = self.load(since, to)
        breakdown = daily_usage(
            intervals, start_day, days, names, ignored=self.settings.ignored_identifiers
        )
        for day, entries in breakdown:
            print(f"{day:%Y-%m-%d}  {format_duration(total_seconds(entries))}")
            for entry in entries[:5]:
                print(f"    {entry.display_name[:26]:<28} {format_duration(entry.duration_seconds)}")


def daily_usage(
    intervals: Iterable[UsageInterval],
    start_day: date,
    days: int,
    names: NameDirectory,
    *,
    ignored: Iterable[str] = (),
) -> list[tuple[date, list[UsageEntry]]]:
    """Split ``days`` calendar days from ``start_day`` and total each one."""
    materialized = list(intervals)
    ignored_set = frozenset(ignored)
    result: list[tuple[date, list[UsageEntry]]] = []
    for offset in range(days):
        day = start_day + timedelta(days=offset)
        since = start_of_local_day(day)
        to = start_of_local_day(day + timedelta(days=1))
        result.append(
            (day, summarize_usage(materialized, since, to, names, ignored=ignored_set))
        )
    return result


def start_of_local_day(day: date) -> datetime:
    """Local midnight of ``day`` as a UTC instant; days may be 23 or 25 hours."""
    return datetime.combine(day, time()).astimezone(timezone.utc)


def total_seconds(entries: Iterable[UsageEntry]) -> float:
    return sum(entry.duration_seconds for entry in entries)


def format_duration(seconds: float) -> str:
    total = int(round(seconds))
    hours, remainder = divmod(total, 3600)
    minutes, secs = divmod(remainder, 60)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"

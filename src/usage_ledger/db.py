"""SQLite database layer for usage intervals and application names."""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator

from .models import UsageInterval, as_utc


DATETIME_FMT = "%Y-%m-%d %H:%M:%S.%f"


def open_database(path: Path, *, check_same_thread: bool = True) -> sqlite3.Connection:
    """Open (and initialize) the SQLite database."""
    conn = sqlite3.connect(
        path,
        isolation_level=None,
        check_same_thread=check_same_thread,
    )
    conn.row_factory = sqlite3.Row
    initialize_schema(conn)
    return conn


@contextmanager
def database_connection(
    path: Path, *, check_same_thread: bool = True
) -> Iterator[sqlite3.Connection]:
    conn = open_database(path, check_same_thread=check_same_thread)
    try:
        yield conn
    finally:
        conn.close()


@contextmanager
def transaction(conn: sqlite3.Connection) -> Iterator[sqlite3.Connection]:
    """Run the enclosed statements in one transaction, rolling back on error."""
    conn.execute("BEGIN")
    try:
        yield conn
    except BaseException:
        conn.execute("ROLLBACK")
        raise
    else:
        conn.execute("COMMIT")


def initialize_schema(conn: sqlite3.Connection) -> None:
    conn.executescript(
        """
        CREATE TABLE IF NOT EXISTS usage_intervals (
            id INTEGER PRIMARY KEY,
            application_identifier TEXT NOT NULL,
            start_time TEXT NOT NULL,
            end_time TEXT NOT NULL
        );

        CREATE INDEX IF NOT EXISTS idx_intervals_start_time
            ON usage_intervals(start_time);

        CREATE TABLE IF NOT EXISTS application_names (
            application_identifier TEXT PRIMARY KEY,
            display_name TEXT NOT NULL,
            updated_at TEXT NOT NULL
        );
        """
    )


def format_timestamp(value: datetime) -> str:
    """Render an instant as UTC text; text order matches time order."""
    return as_utc(value).strftime(DATETIME_FMT)


def parse_timestamp(value: str) -> datetime:
    return datetime.strptime(value, DATETIME_FMT).replace(tzinfo=timezone.utc)


def insert_interval(conn: sqlite3.Connection, interval: UsageInterval) -> None:
    conn.execute(
        """
        INSERT INTO usage_intervals (
            application_identifier,
            start_time,
            end_time
        ) VALUES (?, ?, ?)
        """,
        (
            interval.application_identifier,
            format_timestamp(interval.start_time),
            format_timestamp(interval.end_time),
        ),
    )


def upsert_name(
    conn: sqlite3.Connection, application_identifier: str, display_name: str
) -> None:
    conn.execute(
        """
        INSERT INTO application_names (
            application_identifier,
            display_name,
            updated_at
        ) VALUES (?, ?, ?)
        ON CONFLICT(application_identifier) DO UPDATE SET
            display_name = excluded.display_name,
            updated_at = excluded.updated_at
        """,
        (application_identifier, display_name, format_timestamp(datetime.now(timezone.utc))),
    )


def fetch_intervals(conn: sqlite3.Connection) -> list[sqlite3.Row]:
    """Return every stored interval in insertion order."""
    return list(
        conn.execute(
            """
            SELECT id, application_identifier, start_time, end_time
            FROM usage_intervals
            ORDER BY id;
            """
        )
    )


def fetch_intervals_between(
    conn: sqlite3.Connection, since: datetime, to: datetime
) -> list[sqlite3.Row]:
    """Return intervals that overlap ``[since, to)``."""
    return list(
        conn.execute(
            """
            SELECT id, application_identifier, start_time, end_time
            FROM usage_intervals
            WHERE start_time < ? AND end_time > ?
            ORDER BY start_time;
            """,
            (format_timestamp(to), format_timestamp(since)),
        )
    )


def fetch_names(conn: sqlite3.Connection) -> list[sqlite3.Row]:
    return list(
        conn.execute(
            """
            SELECT application_identifier, display_name, updated_at
            FROM application_names
            ORDER BY application_identifier;
            """
        )
    )


def row_to_interval(row: sqlite3.Row) -> UsageInterval:
    start = parse_timestamp(row["start_time"])
    end = parse_timestamp(row["end_time"])
    return UsageInterval(
        application_identifier=row["application_identifier"],
        start_time=start,
        duration_seconds=max((end - start).total_seconds(), 0.0),
    )

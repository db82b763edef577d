"""Durable record store for closed intervals and application names."""

from __future__ import annotations

import logging
import sqlite3
from pathlib import Path
from typing import Iterator, Protocol

from .db import (
    fetch_intervals,
    fetch_names,
    insert_interval,
    open_database,
    row_to_interval,
    transaction,
    upsert_name,
)
from .models import UsageInterval

logger = logging.getLogger(__name__)


class PersistenceError(RuntimeError):
    """Raised when the store cannot commit a write."""


class RecordStore(Protocol):
    def record_close(self, interval: UsageInterval, display_name: str) -> None:
        ...

    def upsert_name(self, application_identifier: str, display_name: str) -> None:
        ...

    def scan_intervals(self) -> Iterator[UsageInterval]:
        ...

    def scan_names(self) -> Iterator[tuple[str, str]]:
        ...

    def close(self) -> None:
        ...


class SQLiteRecordStore:
    """``RecordStore`` backed by the SQLite schema in :mod:`usage_ledger.db`."""

    def __init__(self, db_path: Path) -> None:
        self.db_path = Path(db_path)
        self._conn = open_database(self.db_path, check_same_thread=False)

    def record_close(self, interval: UsageInterval, display_name: str) -> None:
        """Append ``interval`` and upsert its name in a single transaction."""
        try:
            with transaction(self._conn) as conn:
                insert_interval(conn, interval)
                upsert_name(conn, interval.application_identifier, display_name)
        except sqlite3.Error as exc:
            raise PersistenceError(
                f"Failed to record interval for {interval.application_identifier}"
            ) from exc

    def upsert_name(self, application_identifier: str, display_name: str) -> None:
        try:
            upsert_name(self._conn, application_identifier, display_name)
        except sqlite3.Error as exc:
            raise PersistenceError(
                f"Failed to store name for {application_identifier}"
            ) from exc

    def scan_intervals(self) -> Iterator[UsageInterval]:
        for row in fetch_intervals(self._conn):
            yield row_to_interval(row)

    def scan_names(self) -> Iterator[tuple[str, str]]:
        for row in fetch_names(self._conn):
            yield row["application_identifier"], row["display_name"]

    def close(self) -> None:
        self._conn.close()
        logger.debug("Closed record store at %s", self.db_path)

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from usage_ledger.config import TrackerSettings
from usage_ledger.service import UsageService
from usage_ledger.store import SQLiteRecordStore

T0 = datetime(2024, 3, 4, 9, 0, 0, tzinfo=timezone.utc)


def at(seconds: float) -> datetime:
    return T0 + timedelta(seconds=seconds)


class SteppingClock:
    """Clock whose current time is set explicitly by the test."""

    def __init__(self, start: datetime = T0) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def set(self, seconds: float) -> datetime:
        self.now = at(seconds)
        return self.now


@pytest.fixture
def clock() -> SteppingClock:
    return SteppingClock()


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "usage.sqlite3"


@pytest.fixture
def store(db_path):
    record_store = SQLiteRecordStore(db_path)
    yield record_store
    record_store.close()


@pytest.fixture
def service(store, clock):
    usage = UsageService(store, TrackerSettings(strict_names=True), clock=clock)
    usage.start()
    return usage

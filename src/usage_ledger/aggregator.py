"""Aggregation of closed focus intervals into per-application totals."""

from __future__ import annotations

import logging
import threading
from collections import defaultdict
from datetime import datetime, timezone
from typing import Iterable, Optional

from .config import TrackerSettings
from .models import OpenFocus, UsageEntry, UsageInterval, as_utc
from .names import MissingNameError, NameDirectory
from .store import RecordStore

logger = logging.getLogger(__name__)


class UsageAggregator:
    """Holds this session's closed intervals and answers range queries.

    ``lock`` is shared with :class:`~usage_ledger.tracker.FocusTracker` so
    that a query never sees an interval that is closed but not yet appended.
    """

    def __init__(
        self,
        store: RecordStore,
        names: NameDirectory,
        settings: Optional[TrackerSettings] = None,
    ) -> None:
        self._store = store
        self._names = names
        self._settings = settings or TrackerSettings()
        self._intervals: list[UsageInterval] = []
        self.lock = threading.RLock()

    @property
    def intervals(self) -> tuple[UsageInterval, ...]:
        with self.lock:
            return tuple(self._intervals)

    def load(self, intervals: Iterable[UsageInterval]) -> int:
        with self.lock:
            before = len(self._intervals)
            self._intervals.extend(intervals)
            return len(self._intervals) - before

    def close(self, open_focus: OpenFocus, duration_seconds: float) -> UsageInterval:
        """Persist the finished span, then make it visible to queries.

        Raises :class:`~usage_ledger.store.PersistenceError` if the store
        rejects the write; the in-memory list is left untouched in that case.
        """
        interval = UsageInterval(
            application_identifier=open_focus.application_identifier,
            start_time=open_focus.since,
            duration_seconds=duration_seconds,
        )
        with self.lock:
            self._store.record_close(interval, open_focus.display_name)
            self._intervals.append(interval)
        logger.debug(
            "Closed interval: app=%s start=%s seconds=%.3f",
            interval.application_identifier,
            interval.start_time,
            interval.duration_seconds,
        )
        return interval

    def query(
        self,
        since: datetime,
        to: datetime,
        *,
        open_focus: Optional[OpenFocus] = None,
        now: Optional[datetime] = None,
    ) -> list[UsageEntry]:
        with self.lock:
            intervals = list(self._intervals)
            if open_focus is not None:
                intervals.append(open_focus.as_interval(now or datetime.now(timezone.utc)))
            return summarize_usage(
                intervals,
                since,
                to,
                self._names,
                ignored=self._settings.ignored_identifiers,
                strict=self._settings.strict_names,
            )


def overlap_seconds(interval: UsageInterval, since: datetime, to: datetime) -> float:
    latest_start = max(interval.start_time, as_utc(since))
    earliest_end = min(interval.end_time, as_utc(to))
    return (earliest_end - latest_start).total_seconds()


def summarize_usage(
    intervals: Iterable[UsageInterval],
    since: datetime,
    to: datetime,
    names: NameDirectory,
    *,
    ignored: Iterable[str] = (),
    strict: bool = False,
) -> list[UsageEntry]:
    """Sum the overlap of each interval with ``[since, to)`` per application.

    Results are ordered by total time descending; equal totals are ordered by
    identifier.
    """
    since, to = as_utc(since), as_utc(to)
    ignored_set = frozenset(ignored)
    totals: defaultdict[str, float] = defaultdict(float)
    for interval in intervals:
        if interval.application_identifier in ignored_set:
            continue
        seconds = overlap_seconds(interval, since, to)
        if seconds > 0:
            totals[interval.application_identifier] += seconds

    ranked = sorted(totals.items(), key=lambda item: (-item[1], item[0]))
    return [
        UsageEntry(
            display_name=_display_name(names, identifier, strict),
            duration_seconds=seconds,
        )
        for identifier, seconds in ranked
    ]


def _display_name(names: NameDirectory, identifier: str, strict: bool) -> str:
    display_name = names.lookup(identifier)
    if display_name is not None:
        return display_name
    if strict:
        raise MissingNameError(f"No display name recorded for {identifier!r}")
    logger.warning("No display name recorded for %s; using identifier.", identifier)
    return identifier

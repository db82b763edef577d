"""Explicitly constructed usage service wiring tracker, aggregator and store."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Callable, Optional

from .aggregator import UsageAggregator
from .config import TrackerSettings
from .models import (
    ApplicationRef,
    OpenFocus,
    ProcessTerminating,
    Signal,
    UsageEntry,
    UsageInterval,
)
from .names import NameDirectory
from .store import RecordStore
from .tracker import FocusTracker

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class UsageService:
    """Owns one tracking session from ``start()`` to ``shutdown()``."""

    def __init__(
        self,
        store: RecordStore,
        settings: Optional[TrackerSettings] = None,
        clock: Optional[Clock] = None,
    ) -> None:
        self.settings = settings or TrackerSettings()
        self.clock: Clock = clock or _utc_now
        self._store = store
        self.names = NameDirectory()
        self.aggregator = UsageAggregator(store, self.names, self.settings)
        self.tracker = FocusTracker(self.aggregator, self.names)
        self._started = False
        self._stopped = False

    def __enter__(self) -> "UsageService":
        self.start()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.shutdown()

    @property
    def started(self) -> bool:
        return self._started

    def start(self) -> None:
        """Load names and intervals from the store. Idempotent until shutdown."""
        if self._stopped:
            raise RuntimeError("Usage service has been shut down; create a new one.")
        if self._started:
            return
        self.names.load(self._store.scan_names())
        intervals = list(self._store.scan_intervals())
        loaded = self.aggregator.load(intervals)
        if intervals:
            self.tracker.resume_after(max(interval.end_time for interval in intervals))
        self._started = True
        logger.info(
            "Usage service started with %d intervals and %d names.",
            loaded,
            len(self.names),
        )

    def shutdown(self, now: Optional[datetime] = None) -> None:
        """Close any open focus, then release the store."""
        if not self._started:
            return
        try:
            self.handle(ProcessTerminating(at=now or self.clock()))
        finally:
            self._started = False
            self._stopped = True
            self._store.close()
            logger.info("Usage service stopped.")

    def handle(self, signal: Signal) -> Optional[UsageInterval]:
        return self.tracker.handle(signal)

    def application_changed(
        self, application: Optional[ApplicationRef], now: Optional[datetime] = None
    ) -> Optional[UsageInterval]:
        return self.tracker.application_changed(application, now or self.clock())

    def current_focus(self) -> Optional[OpenFocus]:
        with self.aggregator.lock:
            return self.tracker.open_focus

    def query(self, since: datetime, to: datetime) -> list[UsageEntry]:
        """Per-application focused seconds in ``[since, to)``, largest first."""
        with self.aggregator.lock:
            return self.aggregator.query(
                since,
                to,
                open_focus=self.tracker.open_focus,
                now=self.clock(),
            )

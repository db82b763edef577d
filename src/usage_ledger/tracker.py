"""Focus tracking state machine."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from .aggregator import UsageAggregator
from .models import (
    ApplicationRef,
    FocusGained,
    OpenFocus,
    ProcessTerminating,
    Signal,
    SystemResumed,
    SystemSuspending,
    UsageInterval,
    as_utc,
)
from .names import NameDirectory
from .normalization import resolve_application

logger = logging.getLogger(__name__)


class FocusTracker:
    """Turns focus-change signals into closed usage intervals.

    The tracker is either idle (``open_focus is None``) or focused on one
    application since some instant. Every transition closes at most one
    interval and opens at most one new focus.
    """

    def __init__(self, aggregator: UsageAggregator, names: NameDirectory) -> None:
        self._aggregator = aggregator
        self._names = names
        self._open_focus: Optional[OpenFocus] = None
        self._high_water: Optional[datetime] = None

    @property
    def open_focus(self) -> Optional[OpenFocus]:
        return self._open_focus

    def handle(self, signal: Signal) -> Optional[UsageInterval]:
        if isinstance(signal, FocusGained):
            application = resolve_application(signal.identifier, signal.display_name)
            if application is None:
                logger.debug(
                    "Unresolvable focus: identifier=%r name=%r",
                    signal.identifier,
                    signal.display_name,
                )
            return self.application_changed(application, signal.at)
        if isinstance(signal, SystemResumed):
            return self.application_changed(signal.focused_application, signal.at)
        if isinstance(signal, (SystemSuspending, ProcessTerminating)):
            logger.debug("%s at %s", type(signal).__name__, signal.at)
            return self.application_changed(None, signal.at)
        raise TypeError(f"Unsupported signal: {signal!r}")

    def application_changed(
        self, application: Optional[ApplicationRef], now: datetime
    ) -> Optional[UsageInterval]:
        """Close the current focus (if any) and start tracking ``application``.

        Returns the interval that was closed, or ``None`` if the tracker was
        idle. If persisting the closed interval fails the transition still
        completes before the error propagates.
        """
        resolved: Optional[ApplicationRef] = None
        if application is not None:
            resolved = resolve_application(application.identifier, application.display_name)
            if resolved is None:
                logger.debug("Ignoring unresolvable application %r", application)

        with self._aggregator.lock:
            previous = self._open_focus
            instant = self._advance(as_utc(now))
            try:
                if previous is None:
                    return None
                return self._aggregator.close(
                    previous, (instant - previous.since).total_seconds()
                )
            finally:
                if resolved is None:
                    self._open_focus = None
                else:
                    self._open_focus = OpenFocus(
                        application_identifier=resolved.identifier,
                        display_name=resolved.display_name,
                        since=instant,
                    )
                    self._names.upsert(resolved.identifier, resolved.display_name)
                    logger.debug(
                        "Focus: app=%s name=%s since=%s",
                        resolved.identifier,
                        resolved.display_name,
                        instant,
                    )

    def resume_after(self, instant: datetime) -> None:
        """Never open or close focus earlier than ``instant``."""
        with self._aggregator.lock:
            self._advance(as_utc(instant))

    def _advance(self, now: datetime) -> datetime:
        # Transitions never move behind time that is already accounted for.
        if self._high_water is not None and now < self._high_water:
            logger.warning(
                "Clock moved backwards by %.3fs; using %s instead of %s.",
                (self._high_water - now).total_seconds(),
                self._high_water,
                now,
            )
            return self._high_water
        self._high_water = now
        return now

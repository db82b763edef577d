"""Domain models for focus tracking."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional, Union


def as_utc(value: datetime) -> datetime:
    """Return ``value`` as an aware UTC instant; naive values are local time."""
    return value.astimezone(timezone.utc)


@dataclass(frozen=True, slots=True)
class ApplicationRef:
    """An application that has both a stable identifier and a display name."""

    identifier: str
    display_name: str


@dataclass(frozen=True, slots=True)
class UsageInterval:
    """A closed span of time during which one application held focus."""

    application_identifier: str
    start_time: datetime
    duration_seconds: float

    def __post_init__(self) -> None:
        object.__setattr__(self, "start_time", as_utc(self.start_time))
        if self.duration_seconds < 0:
            raise ValueError(
                f"duration must not be negative (got {self.duration_seconds})"
            )

    @property
    def end_time(self) -> datetime:
        return self.start_time + timedelta(seconds=self.duration_seconds)


@dataclass(frozen=True, slots=True)
class OpenFocus:
    """The application currently holding focus and when it gained it."""

    application_identifier: str
    display_name: str
    since: datetime

    def __post_init__(self) -> None:
        object.__setattr__(self, "since", as_utc(self.since))

    def elapsed_seconds(self, now: datetime) -> float:
        return max((as_utc(now) - self.since).total_seconds(), 0.0)

    def as_interval(self, now: datetime) -> UsageInterval:
        return UsageInterval(
            application_identifier=self.application_identifier,
            start_time=self.since,
            duration_seconds=self.elapsed_seconds(now),
        )


@dataclass(frozen=True, slots=True)
class UsageEntry:
    display_name: str
    duration_seconds: float


@dataclass(frozen=True, slots=True)
class FocusGained:
    identifier: Optional[str]
    display_name: Optional[str]
    at: datetime


@dataclass(frozen=True, slots=True)
class SystemSuspending:
    at: datetime


@dataclass(frozen=True, slots=True)
class SystemResumed:
    focused_application: Optional[ApplicationRef]
    at: datetime


@dataclass(frozen=True, slots=True)
class ProcessTerminating:
    at: datetime


Signal = Union[FocusGained, SystemSuspending, SystemResumed, ProcessTerminating]

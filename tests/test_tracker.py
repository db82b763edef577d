from datetime import datetime, timedelta, timezone

import pytest

from usage_ledger.aggregator import UsageAggregator
from usage_ledger.models import (
    ApplicationRef,
    FocusGained,
    ProcessTerminating,
    SystemResumed,
    SystemSuspending,
    UsageInterval,
)
from usage_ledger.names import NameDirectory
from usage_ledger.store import PersistenceError
from usage_ledger.tracker import FocusTracker

T0 = datetime(2024, 3, 4, 9, 0, 0, tzinfo=timezone.utc)


def at(seconds: float) -> datetime:
    return T0 + timedelta(seconds=seconds)


class RecordingStore:
    """In-memory store that records every committed close."""

    def __init__(self) -> None:
        self.closed: list[tuple[UsageInterval, str]] = []
        self.fail_next = False

    def record_close(self, interval, display_name):
        if self.fail_next:
            self.fail_next = False
            raise PersistenceError("disk full")
        self.closed.append((interval, display_name))

    def upsert_name(self, application_identifier, display_name):
        pass

    def scan_intervals(self):
        return iter(())

    def scan_names(self):
        return iter(())

    def close(self):
        pass


@pytest.fixture
def recording_store():
    return RecordingStore()


@pytest.fixture
def names():
    return NameDirectory()


@pytest.fixture
def tracker(recording_store, names):
    return FocusTracker(UsageAggregator(recording_store, names), names)


def test_idle_to_focused_closes_nothing(tracker, recording_store, names):
    assert tracker.application_changed(ApplicationRef("com.a", "A"), at(0)) is None
    assert tracker.open_focus.application_identifier == "com.a"
    assert tracker.open_focus.since == at(0)
    assert names.lookup("com.a") == "A"
    assert recording_store.closed == []


def test_switch_closes_exactly_one_interval(tracker, recording_store):
    tracker.application_changed(ApplicationRef("com.a", "A"), at(0))
    closed = tracker.application_changed(ApplicationRef("com.b", "B"), at(12))

    assert closed == UsageInterval("com.a", at(0), 12.0)
    assert recording_store.closed == [(closed, "A")]
    assert tracker.open_focus.application_identifier == "com.b"
    assert tracker.open_focus.since == closed.end_time


def test_each_signal_closes_at_most_one_interval(tracker, recording_store):
    signals = [
        FocusGained("com.a", "A", at(0)),
        FocusGained("com.b", "B", at(1)),
        SystemSuspending(at(2)),
        SystemSuspending(at(3)),
        SystemResumed(None, at(4)),
        SystemResumed(ApplicationRef("com.c", "C"), at(5)),
        FocusGained("com.c", "C", at(6)),
        ProcessTerminating(at(9)),
    ]
    counts = []
    for signal in signals:
        before = len(recording_store.closed)
        tracker.handle(signal)
        counts.append(len(recording_store.closed) - before)

    assert counts == [0, 1, 1, 0, 0, 0, 1, 1]
    assert tracker.open_focus is None
    spans = [(i.application_identifier, i.start_time, i.end_time) for i, _ in recording_store.closed]
    assert spans == [
        ("com.a", at(0), at(1)),
        ("com.b", at(1), at(2)),
        ("com.c", at(5), at(6)),
        ("com.c", at(6), at(9)),
    ]


def test_zero_length_interval_is_recorded(tracker, recording_store):
    tracker.application_changed(ApplicationRef("com.a", "A"), at(5))
    closed = tracker.application_changed(ApplicationRef("com.b", "B"), at(5))
    assert closed.duration_seconds == 0.0
    assert len(recording_store.closed) == 1


def test_backwards_clock_clamps_to_zero(tracker, recording_store, caplog):
    tracker.application_changed(ApplicationRef("com.a", "A"), at(10))
    with caplog.at_level("WARNING"):
        closed = tracker.application_changed(None, at(4))
    assert closed.duration_seconds == 0.0
    assert "Clock moved backwards" in caplog.text


def test_blank_application_is_treated_as_idle(tracker, names):
    tracker.application_changed(ApplicationRef("com.a", "A"), at(0))
    tracker.application_changed(ApplicationRef("", "Nothing"), at(1))
    assert tracker.open_focus is None
    assert "" not in names


def test_names_are_normalized(tracker, names):
    tracker.handle(FocusGained("  com.a ", "Text\n  Edit", at(0)))
    assert tracker.open_focus.application_identifier == "com.a"
    assert names.lookup("com.a") == "Text Edit"


def test_persistence_failure_still_transitions(tracker, recording_store):
    aggregator = tracker._aggregator
    tracker.application_changed(ApplicationRef("com.a", "A"), at(0))
    recording_store.fail_next = True

    with pytest.raises(PersistenceError):
        tracker.application_changed(ApplicationRef("com.b", "B"), at(10))

    assert aggregator.intervals == ()
    assert tracker.open_focus.application_identifier == "com.b"
    closed = tracker.application_changed(None, at(15))
    assert closed == UsageInterval("com.b", at(10), 5.0)
    assert aggregator.intervals == (closed,)


def test_unknown_signal_is_rejected(tracker):
    with pytest.raises(TypeError):
        tracker.handle("focus")


def test_late_signal_never_overlaps_closed_time(tracker, recording_store):
    tracker.handle(FocusGained("com.x", "X", at(0)))
    tracker.handle(FocusGained("com.a", "A", at(10)))
    late = tracker.handle(FocusGained("com.b", "B", at(4)))
    tracker.handle(FocusGained("com.c", "C", at(20)))

    assert late == UsageInterval("com.a", at(10), 0.0)
    assert tracker.open_focus.since == at(20)
    spans = [(i.application_identifier, i.start_time, i.end_time) for i, _ in recording_store.closed]
    assert spans == [
        ("com.x", at(0), at(10)),
        ("com.a", at(10), at(10)),
        ("com.b", at(10), at(20)),
    ]
    assert sum(i.duration_seconds for i, _ in recording_store.closed) == 20.0


def test_reopening_after_idle_cannot_go_back_in_time(tracker, recording_store):
    tracker.handle(FocusGained("com.a", "A", at(0)))
    tracker.handle(SystemSuspending(at(30)))
    tracker.handle(SystemResumed(ApplicationRef("com.b", "B"), at(12)))

    assert tracker.open_focus.since == at(30)
    closed = tracker.handle(ProcessTerminating(at(40)))
    assert closed == UsageInterval("com.b", at(30), 10.0)


def test_resume_after_bounds_the_next_focus(tracker):
    tracker.resume_after(at(100))
    tracker.handle(FocusGained("com.a", "A", at(50)))
    assert tracker.open_focus.since == at(100)


def test_durations_use_absolute_instants_across_dst_change(tracker):
    eastern_daylight = timezone(timedelta(hours=-4))
    eastern_standard = timezone(timedelta(hours=-5))
    tracker.handle(
        FocusGained("com.a", "A", datetime(2024, 11, 3, 1, 30, tzinfo=eastern_daylight))
    )
    closed = tracker.handle(
        SystemSuspending(datetime(2024, 11, 3, 1, 10, tzinfo=eastern_standard))
    )
    assert closed.duration_seconds == 2400.0
    assert closed.start_time == datetime(2024, 11, 3, 5, 30, tzinfo=timezone.utc)

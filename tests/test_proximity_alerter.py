"""Tests for the smart-alert cycle: reminders and movement-gated proximity alerts."""

import threading
from datetime import timedelta

import pytest

from conftest import ManualExecutor, SequencePositionSource, utc
from src.alerts.geo import haversine_distance
from src.alerts.position_source import Position
from src.alerts.proximity_alerter import ProximityAlerter, select_alertable_events
from src.events.models import Priority

NOW = utc(2024, 6, 3, 8, 50)
HOME = Position(52.5200, 13.4050)
NEARBY = Position(52.5200 + 0.00036, 13.4050)   # about 40 m north
FAR = Position(52.5200 + 0.0045, 13.4050)       # about 500 m north


@pytest.fixture
def alert_event(make_event):
    def _make(event_id="e1", minutes_ahead=10, location=None, **kwargs):
        start = NOW + timedelta(minutes=minutes_ahead)
        kwargs.setdefault("priority", Priority.HIGH)
        kwargs.setdefault("proximity_alert_enabled", True)
        return make_event(event_id, start, start + timedelta(hours=1), location=location, **kwargs)
    return _make


def build_alerter(events, position_source=None, executor=None, **kwargs):
    fired = []
    alerter = ProximityAlerter(
        event_source=lambda: list(events),
        on_alert=fired.append,
        position_source=position_source,
        executor=executor,
        clock=lambda: NOW,
        **kwargs,
    )
    return alerter, fired


def test_test_positions_are_where_we_expect():
    assert haversine_distance(*HOME, *NEARBY) == pytest.approx(0.040, abs=0.002)
    assert haversine_distance(*FAR, *HOME) == pytest.approx(0.500, abs=0.005)
    assert haversine_distance(*HOME, *HOME) == 0


def test_selection_covers_only_the_upcoming_window(alert_event):
    events = [
        alert_event("inside", minutes_ahead=10),
        alert_event("edge", minutes_ahead=15),
        alert_event("too-late", minutes_ahead=16),
        alert_event("now", minutes_ahead=0),
        alert_event("past", minutes_ahead=-5),
    ]

    selected = select_alertable_events(events, NOW, 15)

    assert [e.id for e in selected] == ["inside", "edge"]


def test_selection_skips_low_priority_disabled_and_notified_events(alert_event):
    events = [
        alert_event("medium", priority=Priority.MEDIUM),
        alert_event("low", priority=Priority.LOW),
        alert_event("none", priority=Priority.NONE),
        alert_event("disabled", proximity_alert_enabled=False),
        alert_event("notified", auto_notified=True),
    ]

    assert [e.id for e in select_alertable_events(events, NOW, 15)] == ["medium"]


def test_event_without_location_fires_as_reminder(alert_event):
    events = [alert_event("remind", location="  ")]
    alerter, fired = build_alerter(events)

    returned = alerter.check_smart_alerts()

    assert [e.id for e in returned] == ["remind"]
    assert [e.id for e in fired] == ["remind"]


def test_first_position_sample_only_records(alert_event, immediate_executor):
    source = SequencePositionSource([HOME])
    alerter, fired = build_alerter([alert_event(location="Office")], source, immediate_executor)

    alerter.check_smart_alerts()

    assert fired == []
    assert alerter.last_position == HOME


def test_staying_put_fires_the_proximity_alert(alert_event, immediate_executor):
    source = SequencePositionSource([HOME, NEARBY])
    alerter, fired = build_alerter([alert_event(location="Office")], source, immediate_executor)

    alerter.check_smart_alerts()
    alerter.check_smart_alerts()

    assert [e.id for e in fired] == ["e1"]
    assert alerter.last_position == NEARBY


def test_moving_away_suppresses_the_proximity_alert(alert_event, immediate_executor):
    source = SequencePositionSource([HOME, FAR])
    alerter, fired = build_alerter([alert_event(location="Office")], source, immediate_executor)

    alerter.check_smart_alerts()
    alerter.check_smart_alerts()

    assert fired == []
    assert alerter.last_position == FAR


def test_notified_event_never_fires(alert_event, immediate_executor):
    events = [alert_event("loc", location="Office", auto_notified=True),
              alert_event("plain", auto_notified=True)]
    source = SequencePositionSource([HOME, HOME])
    alerter, fired = build_alerter(events, source, immediate_executor)

    alerter.check_smart_alerts()
    alerter.check_smart_alerts()

    assert fired == []
    assert source.calls == 0


def test_position_failure_keeps_the_previous_sample(alert_event, immediate_executor, unavailable):
    source = SequencePositionSource([HOME, unavailable, NEARBY])
    alerter, fired = build_alerter([alert_event(location="Office")], source, immediate_executor)

    alerter.check_smart_alerts()
    alerter.check_smart_alerts()

    assert fired == []
    assert alerter.last_position == HOME

    alerter.check_smart_alerts()

    assert [e.id for e in fired] == ["e1"]


def test_no_position_request_when_nothing_needs_one(alert_event, immediate_executor):
    source = SequencePositionSource([HOME])
    alerter, fired = build_alerter([alert_event(location=None)], source, immediate_executor)

    alerter.check_smart_alerts()

    assert source.calls == 0
    assert len(fired) == 1


def test_missing_position_source_skips_proximity_events(alert_event):
    alerter, fired = build_alerter([alert_event(location="Office")])

    assert alerter.check_smart_alerts() == []
    assert fired == []


def test_in_flight_request_is_not_duplicated(alert_event, manual_executor):
    source = SequencePositionSource([HOME, NEARBY])
    alerter, fired = build_alerter([alert_event(location="Office")], source, manual_executor)

    alerter.check_smart_alerts()
    alerter.check_smart_alerts()

    assert len(manual_executor.jobs) == 1


def test_stale_position_result_is_discarded(alert_event, manual_executor):
    source = SequencePositionSource([HOME, NEARBY])
    alerter, fired = build_alerter([alert_event(location="Office")], source, manual_executor,
                                   position_timeout_seconds=0)

    alerter.check_smart_alerts()
    alerter.check_smart_alerts()
    assert len(manual_executor.jobs) == 2

    # The newer request completes first and takes HOME; the older one then reads
    # NEARBY but must not overwrite the newer sample.
    manual_executor.complete(1)
    manual_executor.complete(0)

    assert source.calls == 2
    assert fired == []
    assert alerter.last_position == HOME


def test_stop_blocks_a_late_position_result(alert_event, manual_executor):
    source = SequencePositionSource([HOME, NEARBY])
    alerter, fired = build_alerter([alert_event(location="Office")], source, manual_executor)

    alerter.check_smart_alerts()
    manual_executor.complete(0)
    alerter.check_smart_alerts()

    alerter.stop()
    manual_executor.complete(1)

    assert fired == []
    assert alerter.check_smart_alerts() == []


def test_callback_errors_do_not_break_the_cycle(alert_event):
    calls = []

    def on_alert(event):
        calls.append(event.id)
        raise RuntimeError("notification channel down")

    alerter = ProximityAlerter(
        event_source=lambda: [alert_event("a"), alert_event("b")],
        on_alert=on_alert,
        clock=lambda: NOW,
    )

    assert alerter.check_smart_alerts() == []
    assert calls == ["a", "b"]


def test_timer_runs_a_cycle_immediately_and_stops(alert_event):
    fired = threading.Event()
    alerter = ProximityAlerter(
        event_source=lambda: [alert_event("tick")],
        on_alert=lambda event: fired.set(),
        interval_seconds=60,
        clock=lambda: NOW,
    )

    alerter.start()
    try:
        assert fired.wait(timeout=5)
        assert alerter.is_running
    finally:
        alerter.stop()

    assert not alerter.is_running

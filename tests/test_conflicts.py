"""Tests for conflict detection, resolution and suggestion validation."""

from datetime import datetime
from unittest.mock import MagicMock

from conftest import utc
from src.events.models import Priority
from src.scheduler.conflict_detector import find_conflict
from src.scheduler.conflict_resolver import ConflictResolver, ResolutionSource, rank_events
from src.scheduler.interval_math import overlaps
from src.scheduler.scheduling_validator import SchedulingValidator


def test_find_conflict_returns_first_overlap_in_order(make_event):
    candidate = make_event("c", utc(2024, 6, 3, 9, 30), utc(2024, 6, 3, 10, 30))
    existing = [
        make_event("early", utc(2024, 6, 3, 7), utc(2024, 6, 3, 8)),
        make_event("first", utc(2024, 6, 3, 9), utc(2024, 6, 3, 10)),
        make_event("second", utc(2024, 6, 3, 10), utc(2024, 6, 3, 11)),
    ]

    assert find_conflict(candidate, existing).id == "first"
    assert find_conflict(candidate, existing[2:]).id == "second"


def test_find_conflict_ignores_the_candidate_itself(make_event):
    candidate = make_event("same")
    assert find_conflict(candidate, [make_event("same")]) is None
    assert find_conflict(candidate, []) is None


def test_find_conflict_ignores_back_to_back_events(make_event):
    candidate = make_event("c", utc(2024, 6, 3, 10), utc(2024, 6, 3, 11))
    assert find_conflict(candidate, [make_event("a")]) is None


def test_find_conflict_handles_naive_and_aware_events_together(make_event):
    stored = make_event("aware", datetime(2024, 6, 3, 9).astimezone(), datetime(2024, 6, 3, 10).astimezone())

    clash = make_event("naive", datetime(2024, 6, 3, 9, 30), datetime(2024, 6, 3, 10, 30))
    later = make_event("later", datetime(2024, 6, 3, 12), datetime(2024, 6, 3, 13))

    assert find_conflict(clash, [stored]).id == "aware"
    assert find_conflict(later, [stored]) is None


def test_naive_displaced_event_stays_naive(make_event):
    kept = make_event("K", datetime(2024, 6, 3, 9).astimezone(), datetime(2024, 6, 3, 10).astimezone(),
                      priority=Priority.HIGH)
    moved = make_event("M", datetime(2024, 6, 3, 9, 30), datetime(2024, 6, 3, 10))

    resolution = ConflictResolver().resolve(moved, kept)

    assert resolution.new_start == datetime(2024, 6, 3, 10)
    assert resolution.new_end == datetime(2024, 6, 3, 10, 30)
    assert resolution.new_start.tzinfo is None


def test_higher_priority_event_stays_and_lower_moves_after_it(make_event):
    a = make_event("A", utc(2024, 6, 3, 9), utc(2024, 6, 3, 10), priority=Priority.HIGH)
    b = make_event("B", utc(2024, 6, 3, 9, 30), utc(2024, 6, 3, 10, 30), priority=Priority.LOW)

    resolution = ConflictResolver().resolve(a, b)

    assert resolution.kept_event.id == "A"
    assert resolution.event_to_displace.id == "B"
    assert resolution.new_start == utc(2024, 6, 3, 10)
    assert resolution.new_end == utc(2024, 6, 3, 11)
    assert resolution.source == ResolutionSource.LOCAL


def test_argument_order_does_not_change_the_winner(make_event):
    a = make_event("A", priority=Priority.HIGH)
    b = make_event("B", utc(2024, 6, 3, 9, 30), utc(2024, 6, 3, 10, 30), priority=Priority.MEDIUM)

    resolution = ConflictResolver().resolve(b, a)

    assert resolution.kept_event.id == "A"
    assert resolution.event_to_displace.id == "B"


def test_equal_priority_keeps_the_first_argument(make_event):
    first = make_event("first", priority=Priority.LOW)
    second = make_event("second", utc(2024, 6, 3, 9, 15), utc(2024, 6, 3, 9, 45), priority="low")

    kept, displaced = rank_events(first, second)

    assert kept is first
    assert displaced is second


def test_none_priority_loses_to_low(make_event):
    kept, displaced = rank_events(make_event("n"), make_event("l", priority=Priority.LOW))
    assert kept.id == "l"
    assert displaced.id == "n"


def test_displaced_event_keeps_duration_and_clears_kept_event(make_event):
    kept = make_event("K", utc(2024, 6, 3, 9), utc(2024, 6, 3, 12), priority=Priority.HIGH)
    moved = make_event("M", utc(2024, 6, 3, 11, 15), utc(2024, 6, 3, 11, 40))

    resolution = ConflictResolver().resolve(moved, kept)
    displaced = resolution.displaced_event

    assert displaced.duration == moved.duration
    assert displaced.start == kept.end
    assert not overlaps(displaced, kept)
    assert moved.start == utc(2024, 6, 3, 11, 15)


def test_resolution_to_dict_uses_wire_names(make_event):
    a = make_event("A", priority=Priority.HIGH)
    b = make_event("B", utc(2024, 6, 3, 9, 30), utc(2024, 6, 3, 10, 30))

    data = ConflictResolver().resolve(a, b).to_dict()

    assert data == {
        "eventToUpdateId": "B",
        "keptEventId": "A",
        "new_start_time": "2024-06-03T10:00:00+00:00",
        "new_end_time": "2024-06-03T11:00:00+00:00",
        "source": "local",
    }


class TestSuggestions:

    def setup_method(self):
        self.resolver = ConflictResolver()

    def _pair(self, make_event):
        a = make_event("A", utc(2024, 6, 3, 9), utc(2024, 6, 3, 10), priority=Priority.HIGH)
        b = make_event("B", utc(2024, 6, 3, 9, 30), utc(2024, 6, 3, 10, 30), priority=Priority.LOW)
        return a, b

    def test_valid_suggestion_is_used(self, make_event):
        a, b = self._pair(make_event)
        suggestion = {
            "eventToUpdateId": "B",
            "new_start_time": "2024-06-03T14:00:00Z",
            "new_end_time": "2024-06-03T15:00:00Z",
        }

        resolution = self.resolver.resolve_with_suggestion(a, b, suggestion)

        assert resolution.source == ResolutionSource.SUGGESTION
        assert resolution.new_start == utc(2024, 6, 3, 14)
        assert resolution.new_end == utc(2024, 6, 3, 15)

    def test_suggestion_moving_the_wrong_event_falls_back(self, make_event):
        a, b = self._pair(make_event)
        suggestion = {
            "eventToUpdateId": "A",
            "new_start_time": "2024-06-03T14:00:00Z",
            "new_end_time": "2024-06-03T15:00:00Z",
        }

        resolution = self.resolver.resolve_with_suggestion(a, b, suggestion)

        assert resolution.source == ResolutionSource.LOCAL
        assert resolution.new_start == utc(2024, 6, 3, 10)

    def test_suggestion_changing_duration_falls_back(self, make_event):
        a, b = self._pair(make_event)
        suggestion = {
            "eventToUpdateId": "B",
            "new_start_time": "2024-06-03T14:00:00Z",
            "new_end_time": "2024-06-03T14:30:00Z",
        }

        resolution = self.resolver.resolve_with_suggestion(a, b, suggestion)

        assert resolution.source == ResolutionSource.LOCAL
        assert resolution.new_end == utc(2024, 6, 3, 11)

    def test_suggestion_still_overlapping_falls_back(self, make_event):
        a, b = self._pair(make_event)
        suggestion = {
            "eventToUpdateId": "B",
            "new_start_time": "2024-06-03T09:45:00Z",
            "new_end_time": "2024-06-03T10:45:00Z",
        }

        assert self.resolver.resolve_with_suggestion(a, b, suggestion).source == ResolutionSource.LOCAL

    def test_garbage_suggestion_falls_back(self, make_event):
        a, b = self._pair(make_event)

        for suggestion in (None, "nonsense", {"eventToUpdateId": "B", "new_start_time": "soon"}):
            resolution = self.resolver.resolve_with_suggestion(a, b, suggestion)
            assert resolution.source == ResolutionSource.LOCAL

    def test_naive_suggestion_for_aware_event_is_rejected(self, make_event):
        a, b = self._pair(make_event)
        report = SchedulingValidator().validate_suggestion({
            "eventToUpdateId": "B",
            "new_start_time": "2024-06-03T14:00:00",
            "new_end_time": "2024-06-03T15:00:00",
        }, a, b)

        assert not report["valid"]
        assert report["errors"][0]["check"] == "time_format"

    def test_propose_uses_the_client(self, make_event):
        a, b = self._pair(make_event)
        client = MagicMock()
        client.suggest_conflict_resolution.return_value = {
            "eventToUpdateId": "B",
            "new_start_time": "2024-06-03T16:00:00Z",
            "new_end_time": "2024-06-03T17:00:00Z",
        }

        resolution = ConflictResolver(suggestion_client=client).propose(b, a)

        client.suggest_conflict_resolution.assert_called_once_with(a, b)
        assert resolution.source == ResolutionSource.SUGGESTION
        assert not resolution.suggestion_failed

    def test_failing_client_marks_the_suggestion_as_failed(self, make_event):
        a, b = self._pair(make_event)
        client = MagicMock()
        client.suggest_conflict_resolution.side_effect = RuntimeError("model offline")

        resolution = ConflictResolver(suggestion_client=client).propose(a, b)

        assert resolution.suggestion_failed
        assert resolution.source == ResolutionSource.LOCAL
        assert resolution.new_start == utc(2024, 6, 3, 10)

    def test_client_returning_nothing_marks_the_suggestion_as_failed(self, make_event):
        a, b = self._pair(make_event)
        client = MagicMock()
        client.suggest_conflict_resolution.return_value = None

        assert ConflictResolver(suggestion_client=client).propose(a, b).suggestion_failed

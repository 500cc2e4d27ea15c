"""
Scheduling Validator - checks externally proposed reschedules before they are trusted
"""
import logging
from datetime import datetime
from typing import Dict, Any, Optional

from src.events.models import CalendarEvent, parse_datetime
from src.scheduler.interval_math import TimeSlot, overlaps

logger = logging.getLogger(__name__)


class SchedulingValidator:
    """
    Validates a reschedule proposal for two conflicting events.

    A proposal names the event to move and its new start/end as ISO-8601
    strings. It is accepted only if it moves the event the local ranking
    chose, keeps that event's duration and no longer overlaps the event
    staying in place.
    """

    def validate_suggestion(self, suggestion: Optional[Dict[str, Any]],
                            kept: CalendarEvent,
                            displaced: CalendarEvent) -> Dict[str, Any]:
        """Run every check and return a report with per-check results"""
        report = {
            "timestamp": datetime.now().isoformat(),
            "valid": False,
            "checks": {},
            "errors": [],
            "new_start": None,
            "new_end": None,
        }

        if not isinstance(suggestion, dict):
            report["checks"]["structure"] = self._check(False, "Suggestion is not a JSON object")
            return self._finish(report)

        report["checks"]["target_event"] = self._validate_target(suggestion, displaced)

        try:
            new_start = parse_datetime(suggestion.get("new_start_time"))
            new_end = parse_datetime(suggestion.get("new_end_time"))
        except (TypeError, ValueError) as e:
            report["checks"]["time_format"] = self._check(False, f"Unparseable times: {e}")
            return self._finish(report)

        if (new_start.tzinfo is None) != (displaced.start.tzinfo is None):
            report["checks"]["time_format"] = self._check(
                False, "Suggested times do not match the event's timezone awareness"
            )
            return self._finish(report)

        report["checks"]["time_format"] = self._check(True, "Times parsed")
        report["checks"]["duration_accuracy"] = self._validate_duration_accuracy(
            new_start, new_end, displaced
        )
        report["checks"]["no_conflicts"] = self._validate_no_conflicts(new_start, new_end, kept)

        report["new_start"] = new_start
        report["new_end"] = new_end
        return self._finish(report)

    def _validate_target(self, suggestion: Dict[str, Any], displaced: CalendarEvent) -> Dict[str, Any]:
        target_id = suggestion.get("eventToUpdateId")
        if target_id != displaced.id:
            return self._check(False, f"Suggestion moves {target_id!r}, expected {displaced.id!r}")
        return self._check(True, "Suggestion targets the lower-priority event")

    def _validate_duration_accuracy(self, new_start: datetime, new_end: datetime,
                                    displaced: CalendarEvent) -> Dict[str, Any]:
        expected = displaced.duration
        actual = new_end - new_start
        if actual != expected:
            return self._check(False, f"Duration changed from {expected} to {actual}")
        return self._check(True, f"Duration preserved ({expected})")

    def _validate_no_conflicts(self, new_start: datetime, new_end: datetime,
                               kept: CalendarEvent) -> Dict[str, Any]:
        moved = TimeSlot(new_start, new_end)
        if overlaps(moved, kept):
            return self._check(False, f"New slot still overlaps '{kept.title}'")
        return self._check(True, "New slot is clear of the kept event")

    @staticmethod
    def _check(passed: bool, message: str) -> Dict[str, Any]:
        return {"passed": passed, "message": message}

    @staticmethod
    def _finish(report: Dict[str, Any]) -> Dict[str, Any]:
        for name, check in report["checks"].items():
            if not check["passed"]:
                report["errors"].append({"check": name, "message": check["message"]})

        report["valid"] = bool(report["checks"]) and not report["errors"]

        if not report["valid"]:
            report["new_start"] = None
            report["new_end"] = None
            for error in report["errors"]:
                logger.warning(f"   ❌ Suggestion rejected by {error['check']}: {error['message']}")

        return report


"""
Conflict resolver - keeps the higher-priority event and moves the other one
"""
import logging
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from src.events.models import CalendarEvent
from src.scheduler.interval_math import align_awareness
from src.scheduler.scheduling_validator import SchedulingValidator

logger = logging.getLogger(__name__)


class ResolutionSource(str, Enum):
    LOCAL = "local"
    SUGGESTION = "suggestion"


class Resolution:
    """Which event moves, and where to"""

    def __init__(self, event_to_displace: CalendarEvent, kept_event: CalendarEvent,
                 new_start: datetime, new_end: datetime,
                 source: ResolutionSource = ResolutionSource.LOCAL,
                 suggestion_failed: bool = False):
        self.event_to_displace = event_to_displace
        self.kept_event = kept_event
        self.new_start = new_start
        self.new_end = new_end
        self.source = source
        self.suggestion_failed = suggestion_failed

    @property
    def displaced_event(self) -> CalendarEvent:
        """The displaced event at its new slot"""
        return self.event_to_displace.copy(start=self.new_start, end=self.new_end)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "eventToUpdateId": self.event_to_displace.id,
            "keptEventId": self.kept_event.id,
            "new_start_time": self.new_start.isoformat(),
            "new_end_time": self.new_end.isoformat(),
            "source": self.source.value,
        }


def rank_events(event_a: CalendarEvent, event_b: CalendarEvent) -> Tuple[CalendarEvent, CalendarEvent]:
    """Return (kept, displaced). Ties keep event_a, the event being saved."""
    if event_b.priority.rank > event_a.priority.rank:
        return event_b, event_a
    return event_a, event_b


class ConflictResolver:
    """
    Computes a back-to-back slot for the lower-priority event.

    An optional suggestion client (the LLM collaborator) may propose the
    slot instead; its proposal is only used after SchedulingValidator
    accepts it, otherwise the local computation wins.
    """

    def __init__(self, suggestion_client=None, validator: Optional[SchedulingValidator] = None):
        self.suggestion_client = suggestion_client
        self.validator = validator or SchedulingValidator()

    def resolve(self, event_a: CalendarEvent, event_b: CalendarEvent) -> Resolution:
        """Local deterministic resolution: the displaced event starts when the kept one ends"""
        kept, displaced = rank_events(event_a, event_b)
        new_start = align_awareness(kept.end, displaced.start)
        new_end = new_start + displaced.duration

        logger.info(f"🎯 Keeping '{kept.title}' ({kept.priority.value}), moving "
                    f"'{displaced.title}' ({displaced.priority.value}) to "
                    f"{new_start.isoformat()} - {new_end.isoformat()}")

        return Resolution(displaced, kept, new_start, new_end)

    def resolve_with_suggestion(self, event_a: CalendarEvent, event_b: CalendarEvent,
                                suggestion: Optional[Dict[str, Any]]) -> Resolution:
        """Use an external proposal if it passes validation, else resolve locally"""
        local = self.resolve(event_a, event_b)

        report = self.validator.validate_suggestion(
            suggestion, local.kept_event, local.event_to_displace
        )
        if not report["valid"]:
            logger.info("🔄 Discarding external suggestion, using local resolution")
            return local

        logger.info("🤖 Using validated external suggestion")
        return Resolution(
            local.event_to_displace, local.kept_event,
            report["new_start"], report["new_end"],
            source=ResolutionSource.SUGGESTION,
        )

    def propose(self, event_a: CalendarEvent, event_b: CalendarEvent) -> Resolution:
        """Ask the suggestion client when one is configured, falling back to local"""
        if self.suggestion_client is None:
            return self.resolve(event_a, event_b)

        kept, displaced = rank_events(event_a, event_b)
        try:
            suggestion = self.suggestion_client.suggest_conflict_resolution(kept, displaced)
        except Exception as e:
            logger.error(f"❌ Conflict suggestion request failed: {e}")
            suggestion = None

        if suggestion is None:
            resolution = self.resolve(event_a, event_b)
            resolution.suggestion_failed = True
            return resolution

        return self.resolve_with_suggestion(event_a, event_b, suggestion)

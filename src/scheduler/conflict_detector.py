"""
Conflict detector - finds the first existing event overlapping a candidate
"""
import logging
from typing import Iterable, Optional

from src.events.models import CalendarEvent

logger = logging.getLogger(__name__)


def find_conflict(candidate: CalendarEvent,
                  existing_events: Iterable[CalendarEvent]) -> Optional[CalendarEvent]:
    """Return the first event overlapping the candidate, skipping the candidate itself"""
    for event in existing_events:
        if candidate.id and event.id == candidate.id:
            continue
        if event.overlaps_with(candidate):
            logger.info(f"⚠️  Conflict detected: '{candidate.title}' overlaps '{event.title}' "
                        f"({event.start.isoformat()} - {event.end.isoformat()})")
            return event
    return None

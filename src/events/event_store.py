"""
Single-owner event store with optional JSON persistence
"""
import json
import logging
import os
import threading
from enum import Enum
from pathlib import Path
from typing import Iterable, List, Optional

from src.events.models import CalendarEvent, new_event_id
from src.scheduler.interval_math import as_instant

logger = logging.getLogger(__name__)


class EventNotFoundError(KeyError):
    """Raised when an event id is not present in the store"""


class DeleteScope(str, Enum):
    SINGLE = "single"
    FOLLOWING = "following"


class EventStore:
    """
    Owns the event collection.

    Every read hands out copies, so callers (the alert evaluator in
    particular) work on a snapshot and never see a mutation mid-iteration.
    """

    def __init__(self, events: Optional[Iterable[CalendarEvent]] = None):
        self._lock = threading.RLock()
        self._events: List[CalendarEvent] = [event.copy() for event in events or []]

    def __len__(self) -> int:
        with self._lock:
            return len(self._events)

    def snapshot(self) -> List[CalendarEvent]:
        with self._lock:
            return [event.copy() for event in self._events]

    def get(self, event_id: str) -> CalendarEvent:
        with self._lock:
            index = self._index_of(event_id)
            return self._events[index].copy()

    def series(self, series_id: str) -> List[CalendarEvent]:
        with self._lock:
            return [e.copy() for e in self._events if e.recurring_event_id == series_id]

    def upsert(self, event: CalendarEvent) -> CalendarEvent:
        """Insert a new event or replace the stored one with the same id"""
        with self._lock:
            stored = self._upsert(event)
            self._persist()
            return stored.copy()

    def upsert_many(self, events: Iterable[CalendarEvent]) -> List[CalendarEvent]:
        with self._lock:
            stored = [self._upsert(event) for event in events]
            self._persist()
            return [event.copy() for event in stored]

    def replace_series(self, series_id: str, instances: List[CalendarEvent],
                       extra_ids: Iterable[str] = ()) -> int:
        """Drop every stored instance of a series (and any ``extra_ids``),
        then insert the new set.

        Returns the number of events removed.
        """
        extra = set(extra_ids)
        with self._lock:
            before = len(self._events)
            self._events = [
                e for e in self._events
                if e.recurring_event_id != series_id and e.id not in extra
            ]
            removed = before - len(self._events)
            for instance in instances:
                self._upsert(instance)
            self._persist()

        logger.info(f"🔁 Replaced series {series_id}: removed {removed}, inserted {len(instances)}")
        return removed

    def delete(self, event_id: str, scope: DeleteScope = DeleteScope.SINGLE) -> List[str]:
        """Delete an event. With FOLLOWING scope, later instances of its series go too.

        Returns the ids that were removed.
        """
        scope = DeleteScope(scope)
        with self._lock:
            target = self._events[self._index_of(event_id)]

            if scope == DeleteScope.FOLLOWING and target.recurring_event_id:
                removed = [
                    e.id for e in self._events
                    if e.recurring_event_id == target.recurring_event_id
                    and as_instant(e.start) >= as_instant(target.start)
                ]
            else:
                removed = [target.id]

            removed_set = set(removed)
            self._events = [e for e in self._events if e.id not in removed_set]
            self._persist()

        logger.info(f"🗑️  Deleted {len(removed)} event(s) starting from {event_id} (scope={scope.value})")
        return removed

    def mark_notified(self, event_id: str) -> bool:
        """Set auto_notified on an event; returns False if it was already set"""
        with self._lock:
            event = self._events[self._index_of(event_id)]
            if event.auto_notified:
                return False
            event.auto_notified = True
            self._persist()
            return True

    def update_times(self, event_id: str, start, end) -> CalendarEvent:
        with self._lock:
            event = self._events[self._index_of(event_id)]
            event.start = start
            event.end = end
            self._persist()
            return event.copy()

    def _upsert(self, event: CalendarEvent) -> CalendarEvent:
        stored = event.copy()
        if not stored.id:
            stored.id = new_event_id()

        for i, existing in enumerate(self._events):
            if existing.id == stored.id:
                self._events[i] = stored
                return stored

        self._events.append(stored)
        return stored

    def _index_of(self, event_id: str) -> int:
        for i, event in enumerate(self._events):
            if event.id == event_id:
                return i
        raise EventNotFoundError(event_id)

    def _persist(self):
        """Hook for durable stores; the in-memory store keeps nothing"""


class JsonEventStore(EventStore):
    """Event store persisted to a JSON file after every mutation"""

    def __init__(self, path):
        self.path = Path(path)
        super().__init__(self._load())
        logger.info(f"📂 Loaded {len(self)} events from {self.path}")

    def _load(self) -> List[CalendarEvent]:
        if not self.path.exists():
            return []

        with open(self.path, "r", encoding="utf-8") as f:
            payload = json.load(f)

        return [CalendarEvent.from_dict(item) for item in payload.get("events", [])]

    def _persist(self):
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")

        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump({"events": [e.to_dict() for e in self._events]}, f, indent=2)

        os.replace(tmp_path, self.path)

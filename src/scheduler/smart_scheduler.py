"""
Smart Scheduler - Main orchestrator for saving, deleting and alerting on events
"""
import logging
import threading
import uuid
from collections import OrderedDict, deque
from datetime import datetime
from enum import Enum
from typing import Dict, List, Any, Optional

from config.settings import Config
from src.alerts.proximity_alerter import ProximityAlerter
from src.events.event_store import DeleteScope, EventNotFoundError, EventStore
from src.events.models import CalendarEvent, new_event_id
from src.scheduler.conflict_detector import find_conflict
from src.scheduler.conflict_resolver import ConflictResolver, Resolution
from src.scheduler.recurrence import expand_series, new_series_id
from utils.schedule_logger import ScheduleLogger
from utils.validators import DataSanitizer, EventValidationError, EventValidator

logger = logging.getLogger(__name__)


class ConflictAction(str, Enum):
    ACCEPT = "accept"
    IGNORE = "ignore"
    CANCEL = "cancel"


class ConflictNotFoundError(KeyError):
    """Raised when resolving a conflict that is unknown or already resolved"""


class Notice:
    """A user-visible, non-fatal message"""

    def __init__(self, level: str, message: str, event_id: str = None, action: str = None):
        self.level = level
        self.message = message
        self.event_id = event_id
        self.action = action
        self.timestamp = datetime.now().isoformat()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "level": self.level,
            "message": self.message,
            "eventId": self.event_id,
            "action": self.action,
            "timestamp": self.timestamp,
        }


class PendingConflict:
    """A save held back until the user accepts, ignores or cancels"""

    def __init__(self, candidate: CalendarEvent, conflicting_event: CalendarEvent,
                 resolution: Resolution):
        self.id = uuid.uuid4().hex
        self.candidate = candidate
        self.conflicting_event = conflicting_event
        self.resolution = resolution

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "eventToSave": self.candidate.to_dict(),
            "conflictingEvent": self.conflicting_event.to_dict(),
            "proposal": self.resolution.to_dict(),
        }


class SaveResult:
    """Outcome of a save or a conflict resolution"""

    def __init__(self, status: str, events: List[CalendarEvent] = None,
                 conflict: Optional[PendingConflict] = None):
        self.status = status
        self.events = events or []
        self.conflict = conflict

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status,
            "events": [e.to_dict() for e in self.events],
            "conflict": self.conflict.to_dict() if self.conflict else None,
        }


class SmartScheduler:
    """
    Main scheduling coordinator used by the host application.

    Standalone saves go through conflict detection; recurring templates are
    expanded and replace their whole series without conflict prompts.
    """

    def __init__(self, store: EventStore = None, ai_client=None,
                 resolver: ConflictResolver = None, max_notices: int = 100,
                 max_pending_conflicts: int = Config.MAX_PENDING_CONFLICTS):
        self.config = Config()
        self.store = store if store is not None else EventStore()
        self.ai_client = ai_client
        self.resolver = resolver or ConflictResolver(suggestion_client=ai_client)

        self.pending_conflicts: Dict[str, PendingConflict] = OrderedDict()
        self.max_pending_conflicts = max_pending_conflicts
        self.notices = deque(maxlen=max_notices)
        self._lock = threading.Lock()

        logger.info(f"SmartScheduler initialized "
                    f"(AI suggestions {'on' if ai_client is not None else 'off'})")

    def save_event(self, event: CalendarEvent) -> SaveResult:
        """Save an event, or hold it back as a pending conflict"""
        event = DataSanitizer.sanitize_event(event)

        errors = EventValidator.validate_event(event)
        if errors:
            logger.warning(f"❌ Rejected event '{event.title}': {errors}")
            raise EventValidationError(errors)

        if event.is_recurring_template:
            return self._save_series(event)

        if event.recurrence_rule is not None:
            event = event.copy(recurrence_rule=None)
        if not event.id:
            event.id = new_event_id()

        conflicting = find_conflict(event, self.store.snapshot())
        if conflicting is None:
            stored = self.store.upsert(event)
            self._notify("success", f"Event '{stored.title}' saved", stored.id)
            return SaveResult("saved", [stored])

        resolution = self.resolver.propose(event, conflicting)
        if resolution.suggestion_failed:
            self._notify("error", "The AI failed to suggest a resolution for the conflict; "
                                  "proposing the next free slot instead", event.id)

        pending = PendingConflict(event, conflicting, resolution)
        with self._lock:
            self.pending_conflicts[pending.id] = pending
            while len(self.pending_conflicts) > self.max_pending_conflicts:
                expired_id, expired = self.pending_conflicts.popitem(last=False)
                logger.warning(f"⌛ Dropping unresolved conflict {expired_id} for '{expired.candidate.title}'")

        ScheduleLogger.log_conflict_decision(event, conflicting, resolution)
        return SaveResult("conflict", conflict=pending)

    def _save_series(self, template: CalendarEvent) -> SaveResult:
        series_id = template.recurring_event_id or new_series_id()
        template = template.copy(recurring_event_id=series_id)

        instances = expand_series(
            template, series_id,
            max_instances=self.config.MAX_SERIES_INSTANCES,
            horizon_days=self.config.DEFAULT_RECURRENCE_HORIZON_DAYS,
        )

        # A standalone event turned into a series is replaced by its instances
        extra_ids = []
        if template.id and not template.id.startswith(f"{series_id}-"):
            extra_ids.append(template.id)

        removed = self.store.replace_series(series_id, instances, extra_ids=extra_ids)
        ScheduleLogger.log_series_expansion(template, instances, removed)

        self._notify("success", f"Saved {len(instances)} occurrence(s) of '{template.title}'")
        return SaveResult("saved", instances)

    def add_reviewed_events(self, events: List[CalendarEvent]) -> SaveResult:
        """Add events the user confirmed after extraction, without conflict prompts"""
        cleaned = []
        for event in events:
            event = DataSanitizer.sanitize_event(event)
            errors = EventValidator.validate_event(event)
            if errors:
                raise EventValidationError(errors)
            cleaned.append(event)

        if not cleaned:
            self._notify("info", "No events were selected to be added.")
            return SaveResult("saved", [])

        stored = self.store.upsert_many(cleaned)
        self._notify("success", f"Successfully added {len(stored)} new event(s)!")
        return SaveResult("saved", stored)

    def extract_events(self, document: str) -> List[CalendarEvent]:
        """Turn a document into unsaved event drafts for the user to review"""
        if self.ai_client is None:
            self._notify("error", "AI features are disabled.")
            return []

        try:
            drafts = self.ai_client.extract_event_drafts(document)
        except Exception as e:
            logger.error(f"❌ Event extraction failed: {e}")
            self._notify("error", "The AI failed to extract events from the document.")
            return []

        events = []
        for draft in drafts:
            try:
                events.append(CalendarEvent.from_draft(draft))
            except (KeyError, ValueError) as e:
                logger.warning(f"Skipping malformed draft {draft!r}: {e}")

        if not events:
            self._notify("info", "No events were found in the document.")
        return events

    def resolve_conflict(self, conflict_id: str, action) -> SaveResult:
        """Apply the user's choice for a pending conflict"""
        action = ConflictAction(action)

        with self._lock:
            pending = self.pending_conflicts.pop(conflict_id, None)
        if pending is None:
            raise ConflictNotFoundError(conflict_id)

        candidate = pending.candidate
        logger.info(f"🧭 Conflict {conflict_id}: user chose {action.value}")

        if action == ConflictAction.CANCEL:
            self._notify("info", f"Changes to '{candidate.title}' were discarded", candidate.id)
            return SaveResult("cancelled")

        if action == ConflictAction.IGNORE:
            stored = self.store.upsert(candidate)
            self._notify("info", "Overlapping event was saved.", stored.id)
            return SaveResult("saved", [stored])

        return self._accept_resolution(pending)

    def _accept_resolution(self, pending: PendingConflict) -> SaveResult:
        resolution = pending.resolution
        candidate = pending.candidate
        displaced = resolution.event_to_displace

        if displaced.id == candidate.id:
            moved = candidate.copy(start=resolution.new_start, end=resolution.new_end)
            saved = [self.store.upsert(moved)]
        else:
            try:
                moved = self.store.update_times(displaced.id, resolution.new_start, resolution.new_end)
                saved = [moved]
            except EventNotFoundError:
                logger.warning(f"⚠️  Event {displaced.id} vanished before the reschedule was applied")
                saved = []
            saved.append(self.store.upsert(candidate))

        self._notify("success", "Schedule updated successfully!", candidate.id)
        return SaveResult("saved", saved)

    def delete_event(self, event_id: str, scope=DeleteScope.SINGLE) -> List[str]:
        """Delete one event, or one occurrence and every later one in its series"""
        removed = self.store.delete(event_id, DeleteScope(scope))
        self._notify("info", "Event deleted." if len(removed) == 1
                     else f"Deleted {len(removed)} occurrences.")
        return removed

    def handle_potential_late(self, event: CalendarEvent) -> Optional[Notice]:
        """Alert sink: mark the event notified and raise a 'running late?' notice"""
        try:
            first_time = self.store.mark_notified(event.id)
        except EventNotFoundError:
            logger.warning(f"Alert for unknown event {event.id} ignored")
            return None

        if not first_time:
            return None

        action = "notify_contact" if event.has_contact else None
        return self._notify("info", f'Are you running late for "{event.title}"?', event.id, action)

    def build_alerter(self, position_source=None, **kwargs) -> ProximityAlerter:
        """Create an alerter reading snapshots of this scheduler's store"""
        return ProximityAlerter(
            event_source=self.store.snapshot,
            on_alert=self.handle_potential_late,
            position_source=position_source,
            **kwargs
        )

    def get_notices(self) -> List[Notice]:
        with self._lock:
            return list(self.notices)

    def _notify(self, level: str, message: str, event_id: str = None, action: str = None) -> Notice:
        notice = Notice(level, message, event_id, action)
        with self._lock:
            self.notices.append(notice)

        log = logger.error if level == "error" else logger.info
        log(f"🔔 [{level}] {message}")
        return notice

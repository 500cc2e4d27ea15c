"""
Event data model for the Smart Calendar engine
"""
import uuid
from copy import deepcopy
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Any, Dict, Optional

from config.settings import Config
from src.scheduler.interval_math import overlaps


class Priority(str, Enum):
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"
    NONE = "None"

    @property
    def rank(self) -> int:
        """Ranking used to decide which event stays in place"""
        return PRIORITY_RANK[self]

    @classmethod
    def parse(cls, value) -> "Priority":
        if isinstance(value, cls):
            return value
        if value is None or value == "":
            return cls.NONE
        for member in cls:
            if member.value.lower() == str(value).strip().lower():
                return member
        raise ValueError(f"Unknown priority: {value!r}")


PRIORITY_RANK = {
    Priority.HIGH: 3,
    Priority.MEDIUM: 2,
    Priority.LOW: 1,
    Priority.NONE: 0,
}


class Frequency(str, Enum):
    NONE = "none"
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"

    @classmethod
    def parse(cls, value) -> "Frequency":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value or "none").strip().lower())
        except ValueError:
            raise ValueError(f"Unknown recurrence frequency: {value!r}")


def parse_datetime(value) -> datetime:
    """Parse an ISO-8601 instant, accepting a trailing 'Z' for UTC"""
    if isinstance(value, datetime):
        return value
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"Invalid datetime: {value!r}")
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return datetime.fromisoformat(text)


def parse_date(value) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value).strip())


class RecurrenceRule:
    """Recurrence rule carried by the template event of a series"""

    def __init__(self, freq=Frequency.NONE, until: Optional[date] = None):
        self.freq = Frequency.parse(freq)
        self.until = parse_date(until) if until else None

    @property
    def is_recurring(self) -> bool:
        return self.freq != Frequency.NONE

    def to_dict(self) -> Dict[str, Any]:
        data = {"freq": self.freq.value}
        if self.until:
            data["until"] = self.until.isoformat()
        return data

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional["RecurrenceRule"]:
        if not data:
            return None
        return cls(freq=data.get("freq", "none"), until=data.get("until"))

    def __eq__(self, other):
        if not isinstance(other, RecurrenceRule):
            return NotImplemented
        return self.freq == other.freq and self.until == other.until

    def __repr__(self):
        return f"RecurrenceRule(freq={self.freq.value!r}, until={self.until!r})"


class CalendarEvent:
    """Represents a calendar event, a recurring template or one of its instances"""

    def __init__(self, start: datetime, end: datetime, title: str = "",
                 event_id: str = "", priority=Priority.NONE,
                 category: str = Config.DEFAULT_CATEGORY,
                 description: Optional[str] = None, location: Optional[str] = None,
                 link: Optional[str] = None, contact_email: Optional[str] = None,
                 contact_phone: Optional[str] = None, auto_notified: bool = False,
                 proximity_alert_enabled: bool = False,
                 recurrence_rule: Optional[RecurrenceRule] = None,
                 recurring_event_id: Optional[str] = None):
        self.id = event_id or ""
        self.title = title
        self.start = parse_datetime(start)
        self.end = parse_datetime(end)
        self.priority = Priority.parse(priority)
        self.category = category or Config.DEFAULT_CATEGORY
        self.description = description
        self.location = location
        self.link = link
        self.contact_email = contact_email
        self.contact_phone = contact_phone
        self.auto_notified = bool(auto_notified)
        self.proximity_alert_enabled = bool(proximity_alert_enabled)
        self.recurrence_rule = recurrence_rule
        self.recurring_event_id = recurring_event_id

    @property
    def duration(self) -> timedelta:
        return self.end - self.start

    @property
    def is_recurring_template(self) -> bool:
        return self.recurrence_rule is not None and self.recurrence_rule.is_recurring

    @property
    def has_location(self) -> bool:
        return bool(self.location and self.location.strip())

    @property
    def has_contact(self) -> bool:
        return bool(self.contact_email or self.contact_phone)

    def overlaps_with(self, other: "CalendarEvent") -> bool:
        """Check if this event overlaps with another event"""
        return overlaps(self, other)

    def copy(self, **changes) -> "CalendarEvent":
        """Return a deep copy with the given attributes replaced"""
        clone = deepcopy(self)
        for name, value in changes.items():
            if not hasattr(clone, name):
                raise AttributeError(f"CalendarEvent has no field {name!r}")
            setattr(clone, name, value)
        return clone

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary format for JSON serialization"""
        return {
            "id": self.id,
            "title": self.title,
            "start": self.start.isoformat(),
            "end": self.end.isoformat(),
            "priority": self.priority.value,
            "category": self.category,
            "description": self.description,
            "location": self.location,
            "link": self.link,
            "contactEmail": self.contact_email,
            "contactPhone": self.contact_phone,
            "autoNotified": self.auto_notified,
            "proximityAlertEnabled": self.proximity_alert_enabled,
            "recurrenceRule": self.recurrence_rule.to_dict() if self.recurrence_rule else None,
            "recurringEventId": self.recurring_event_id,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CalendarEvent":
        return cls(
            start=data["start"],
            end=data["end"],
            title=data.get("title", ""),
            event_id=data.get("id", ""),
            priority=data.get("priority", Priority.NONE),
            category=data.get("category", Config.DEFAULT_CATEGORY),
            description=data.get("description"),
            location=data.get("location"),
            link=data.get("link"),
            contact_email=data.get("contactEmail"),
            contact_phone=data.get("contactPhone"),
            auto_notified=data.get("autoNotified", False),
            proximity_alert_enabled=data.get("proximityAlertEnabled", False),
            recurrence_rule=RecurrenceRule.from_dict(data.get("recurrenceRule")),
            recurring_event_id=data.get("recurringEventId"),
        )

    @classmethod
    def from_draft(cls, draft: Dict[str, Any]) -> "CalendarEvent":
        """Turn an AI-extracted draft into a new event.

        Drafts carry separate date and time strings. Extracted events start
        with no priority and alerts disabled; the user reviews them first.
        """
        start = datetime.fromisoformat(f"{draft['start_date']}T{draft['start_time']}")
        end = datetime.fromisoformat(f"{draft['end_date']}T{draft['end_time']}")
        return cls(
            start=start,
            end=end,
            title=draft.get("title", ""),
            category=draft.get("category") or Config.DEFAULT_CATEGORY,
            description=draft.get("description"),
            location=draft.get("location") or None,
            link=draft.get("link") or None,
            contact_email=draft.get("contact_email") or None,
            contact_phone=draft.get("contact_phone") or None,
        )

    def __eq__(self, other):
        if not isinstance(other, CalendarEvent):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __repr__(self):
        return (f"CalendarEvent(id={self.id!r}, title={self.title!r}, "
                f"start={self.start.isoformat()}, end={self.end.isoformat()}, "
                f"priority={self.priority.value})")


def new_event_id() -> str:
    return uuid.uuid4().hex

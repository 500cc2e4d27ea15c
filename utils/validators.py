"""
Validation utilities for the Smart Calendar engine
"""
import re
from datetime import datetime
from typing import Dict, Any, List


class EventValidationError(ValueError):
    """Raised when an event cannot be saved; carries every validation message"""

    def __init__(self, errors: List[str]):
        self.errors = list(errors)
        super().__init__("; ".join(self.errors) or "Invalid event")


class EventValidator:
    """Validator for events before they reach the store"""

    @staticmethod
    def validate_email(email: str) -> bool:
        """Validate email format"""
        email_pattern = r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$'
        return bool(re.match(email_pattern, email))

    @staticmethod
    def validate_event(event) -> List[str]:
        """Validate an event and return list of errors"""
        errors = []

        if not (event.title or "").strip():
            errors.append("Event title is required")

        if (event.start.tzinfo is None) != (event.end.tzinfo is None):
            errors.append("Event start and end must both be timezone-aware or both naive")
        elif event.end < event.start:
            errors.append(
                f"Event end {event.end.isoformat()} is before its start {event.start.isoformat()}"
            )

        if event.contact_email and not EventValidator.validate_email(event.contact_email):
            errors.append(f"Invalid contact email: {event.contact_email}")

        rule = event.recurrence_rule
        if rule is not None and rule.is_recurring:
            if event.start == event.end:
                errors.append("Recurring events must have a non-zero duration")
            if rule.until is not None and rule.until < event.start.date():
                errors.append(
                    f"Recurrence end date {rule.until.isoformat()} is before the event start "
                    f"{event.start.date().isoformat()}"
                )

        return errors

    @staticmethod
    def validate_event_payload(payload: Dict[str, Any]) -> List[str]:
        """Validate a JSON event payload before it is turned into an event"""
        errors = []

        if not isinstance(payload, dict):
            return ["Event payload must be a JSON object"]

        for field in ("title", "start", "end"):
            if field not in payload:
                errors.append(f"Missing required field: {field}")

        for field in ("title", "category", "description", "location", "link",
                      "contactEmail", "contactPhone"):
            value = payload.get(field)
            if value is not None and not isinstance(value, str):
                errors.append(f"Invalid {field}: expected a string")

        for field in ("start", "end"):
            value = payload.get(field)
            if value is None:
                continue
            if not isinstance(value, str):
                errors.append(f"Invalid {field}: expected an ISO-8601 string")
                continue
            try:
                datetime.fromisoformat(value[:-1] + "+00:00" if value.endswith("Z") else value)
            except ValueError:
                errors.append(f"Invalid {field} format: {value}. Expected ISO-8601")

        rule = payload.get("recurrenceRule")
        if rule is not None:
            if not isinstance(rule, dict):
                errors.append("'recurrenceRule' must be an object")
            elif str(rule.get("freq", "none")).lower() not in ("none", "daily", "weekly", "monthly"):
                errors.append(f"Invalid recurrence frequency: {rule.get('freq')}")

        return errors


class DataSanitizer:
    """Sanitize and clean input data"""

    @staticmethod
    def sanitize_email(email: str) -> str:
        """Sanitize email address"""
        return email.strip().lower()

    @staticmethod
    def sanitize_text(text: str) -> str:
        """Sanitize text content"""
        # Collapse whitespace
        text = re.sub(r'\s+', ' ', text.strip())
        # Remove markup characters
        text = re.sub(r'[<>]', '', text)
        return text

    @staticmethod
    def sanitize_event(event):
        """Return a sanitized copy of an event"""
        changes = {}

        for field in ("title", "location", "category"):
            value = getattr(event, field)
            if value:
                changes[field] = DataSanitizer.sanitize_text(value)

        if event.location is not None and not event.location.strip():
            changes["location"] = None

        if event.contact_email:
            changes["contact_email"] = DataSanitizer.sanitize_email(event.contact_email)

        return event.copy(**changes)

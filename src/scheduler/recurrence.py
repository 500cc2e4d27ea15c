"""
Recurrence expander - turns a recurring template into concrete instances
"""
import logging
import uuid
from datetime import datetime, time, timedelta, timezone
from typing import List, Optional

from dateutil.relativedelta import relativedelta

from config.settings import Config
from src.events.models import CalendarEvent, Frequency
from utils.validators import EventValidationError

logger = logging.getLogger(__name__)

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def new_series_id() -> str:
    return f"series-{uuid.uuid4().hex}"


def epoch_millis(instant: datetime) -> int:
    """Milliseconds since the Unix epoch; naive instants are read as local time"""
    if instant.tzinfo is None:
        return int(round(instant.timestamp() * 1000))
    return (instant - _EPOCH) // timedelta(milliseconds=1)


def instance_id(series_id: str, instant: datetime) -> str:
    return f"{series_id}-{epoch_millis(instant)}"


def series_boundary(template: CalendarEvent,
                    horizon_days: int = Config.DEFAULT_RECURRENCE_HORIZON_DAYS) -> datetime:
    """Last instant (inclusive) at which an occurrence may start.

    ``until`` is a date read as 23:59:59 of that day in the template's own
    timezone. Without ``until`` the series runs for ``horizon_days``.
    """
    rule = template.recurrence_rule
    if rule is not None and rule.until is not None:
        return datetime.combine(rule.until, time(23, 59, 59), tzinfo=template.start.tzinfo)
    return template.start + timedelta(days=horizon_days)


def occurrence_start(start: datetime, freq: Frequency, index: int) -> datetime:
    """Start of the index-th occurrence, always computed from the template start.

    Monthly steps clamp to the last valid day of the target month, so a
    series anchored on the 31st lands on Feb 28/29 and returns to the 31st
    in March.
    """
    if freq == Frequency.DAILY:
        return start + timedelta(days=index)
    if freq == Frequency.WEEKLY:
        return start + timedelta(days=7 * index)
    if freq == Frequency.MONTHLY:
        return start + relativedelta(months=index)
    raise ValueError(f"Frequency {freq.value!r} does not recur")


def expand_series(template: CalendarEvent, series_id: Optional[str] = None,
                  max_instances: int = Config.MAX_SERIES_INSTANCES,
                  horizon_days: int = Config.DEFAULT_RECURRENCE_HORIZON_DAYS) -> List[CalendarEvent]:
    """
    Expand a recurring template into its instances.

    Every instance inherits the template's fields, gets the template's
    duration, the shared series id and an id derived from the series id and
    its own start, so expanding the same template twice gives the same ids.
    """
    rule = template.recurrence_rule
    if rule is None or not rule.is_recurring:
        raise ValueError("Template has no recurring rule to expand")

    if rule.until is not None and rule.until < template.start.date():
        raise EventValidationError([
            f"Recurrence end date {rule.until.isoformat()} is before the event start "
            f"{template.start.date().isoformat()}"
        ])

    series_id = series_id or template.recurring_event_id or new_series_id()
    boundary = series_boundary(template, horizon_days)
    duration = template.duration

    instances = []
    index = 0
    while True:
        instant = occurrence_start(template.start, rule.freq, index)
        if instant > boundary:
            break

        if len(instances) >= max_instances:
            raise EventValidationError([
                f"Recurrence produces more than {max_instances} occurrences"
            ])

        instances.append(template.copy(
            id=instance_id(series_id, instant),
            start=instant,
            end=instant + duration,
            recurring_event_id=series_id,
        ))
        index += 1

    logger.debug(f"Expanded {rule.freq.value} series {series_id} into {len(instances)} instances")
    return instances

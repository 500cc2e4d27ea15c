"""
Interval math for calendar events
"""
from collections import namedtuple
from datetime import datetime


def as_instant(value: datetime) -> datetime:
    """Timezone-aware form of a datetime; naive values are read as local time"""
    if value.tzinfo is None:
        return value.astimezone()
    return value


def align_awareness(value: datetime, reference: datetime) -> datetime:
    """Express ``value`` with the same timezone awareness as ``reference``"""
    if reference.tzinfo is None and value.tzinfo is not None:
        return value.astimezone().replace(tzinfo=None)
    if reference.tzinfo is not None and value.tzinfo is None:
        return value.astimezone()
    return value


def overlaps(a, b) -> bool:
    """Check if two time ranges overlap.

    Ranges are half-open: an event ending exactly when another starts does
    not overlap it. Works on anything exposing ``start`` and ``end``; naive
    and aware times may be mixed.
    """
    return as_instant(a.start) < as_instant(b.end) and as_instant(a.end) > as_instant(b.start)


TimeSlot = namedtuple("TimeSlot", ["start", "end"])

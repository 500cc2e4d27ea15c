"""
Event model and storage
"""

from .models import CalendarEvent, Priority, Frequency, RecurrenceRule
from .event_store import EventStore, JsonEventStore, DeleteScope, EventNotFoundError

__all__ = ['CalendarEvent', 'Priority', 'Frequency', 'RecurrenceRule',
           'EventStore', 'JsonEventStore', 'DeleteScope', 'EventNotFoundError']

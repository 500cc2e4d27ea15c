"""
Utility modules for the Smart Calendar engine
"""

from .logger import SmartCalendarLogger
from .validators import EventValidator, DataSanitizer, EventValidationError
from .schedule_logger import ScheduleLogger

__all__ = ['SmartCalendarLogger', 'EventValidator', 'DataSanitizer',
           'EventValidationError', 'ScheduleLogger']

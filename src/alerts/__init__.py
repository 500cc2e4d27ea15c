"""
Smart alerts: time-based reminders and movement-gated proximity alerts
"""

from .position_source import Position, PositionSource, HttpPositionSource, StaticPositionSource, PositionUnavailableError
from .proximity_alerter import ProximityAlerter, select_alertable_events

__all__ = ['Position', 'PositionSource', 'HttpPositionSource', 'StaticPositionSource',
           'PositionUnavailableError', 'ProximityAlerter', 'select_alertable_events']

"""
Specialized logging utilities for series expansion, conflicts and smart alerts
"""
import logging
from datetime import datetime
from typing import List

logger = logging.getLogger(__name__)


class ScheduleLogger:
    """Specialized logger for scheduling events"""

    @staticmethod
    def log_series_expansion(template, instances: List, removed_count: int):
        """Log the result of saving a recurring template"""
        rule = template.recurrence_rule

        logger.info(f"🔁 SERIES SAVED - {template.title}")
        logger.info(f"   🆔 Series: {template.recurring_event_id}")
        logger.info(f"   📆 Rule: {rule.freq.value} until {rule.until.isoformat() if rule.until else 'horizon'}")
        logger.info(f"   ⏱️  Duration: {template.duration}")
        logger.info(f"   🗑️  Replaced instances: {removed_count}")
        logger.info(f"   ➕ New instances: {len(instances)}")

        if instances:
            logger.info(f"   📅 First: {instances[0].start.isoformat()}")
            logger.info(f"   📅 Last: {instances[-1].start.isoformat()}")

    @staticmethod
    def log_conflict_decision(candidate, conflicting, resolution):
        """Log a detected conflict and the proposed displacement"""
        logger.info(f"⚠️  SCHEDULE CONFLICT:")
        logger.info(f"   🆕 Saving: {candidate.title} ({candidate.priority.value}) "
                    f"{candidate.start.isoformat()} - {candidate.end.isoformat()}")
        logger.info(f"   📌 Existing: {conflicting.title} ({conflicting.priority.value}) "
                    f"{conflicting.start.isoformat()} - {conflicting.end.isoformat()}")
        logger.info(f"   ✅ Keep: {resolution.kept_event.title}")
        logger.info(f"   ➡️  Move: {resolution.event_to_displace.title} to "
                    f"{resolution.new_start.isoformat()} - {resolution.new_end.isoformat()}")
        logger.info(f"   🔧 Method: {resolution.source.value}")

    @staticmethod
    def log_alert_cycle(now: datetime, reminder_events: List, proximity_events: List):
        """Log the alertable events found in one smart-alert cycle"""
        logger.info(f"⏰ SMART ALERT CYCLE at {now.isoformat()}")
        logger.info(f"   🔔 Time-based reminders: {len(reminder_events)}")
        for event in reminder_events:
            logger.info(f"      - {event.title} at {event.start.isoformat()}")

        logger.info(f"   📍 Location-gated alerts: {len(proximity_events)}")
        for event in proximity_events:
            logger.info(f"      - {event.title} at {event.location} ({event.start.isoformat()})")

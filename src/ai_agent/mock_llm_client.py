"""
Mock LLM Client for running without a model endpoint
"""
import logging
from typing import Dict, Any, List

from src.events.models import CalendarEvent

logger = logging.getLogger(__name__)


class MockLLMClient:
    """Mock LLM client that answers like a well-behaved model"""

    def __init__(self, model_name: str = None):
        self.model_name = model_name or "mock-llm"
        logger.info(f"Initialized Mock LLM client: {self.model_name}")

    def suggest_conflict_resolution(self, kept: CalendarEvent,
                                    displaced: CalendarEvent) -> Dict[str, Any]:
        """Propose the slot right after the kept event"""
        logger.info(f"🤖 MOCK: Suggesting new slot for '{displaced.title}'")

        new_start = kept.end
        new_end = new_start + displaced.duration
        return {
            "eventToUpdateId": displaced.id,
            "new_start_time": new_start.isoformat(),
            "new_end_time": new_end.isoformat(),
        }

    def extract_event_drafts(self, document: str) -> List[Dict[str, Any]]:
        logger.info("🤖 MOCK: No extraction model available, returning no drafts")
        return []

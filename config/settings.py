"""
Configuration settings for the Smart Calendar engine
"""
import os
from typing import Dict, Any


def _env_bool(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


class Config:
    # Smart alert (proximity/reminder) configuration
    ALERT_WINDOW_MINUTES = int(os.environ.get("SMART_CALENDAR_ALERT_WINDOW", "15"))
    MOVEMENT_THRESHOLD_KM = float(os.environ.get("SMART_CALENDAR_MOVEMENT_KM", "0.1"))
    POLLING_INTERVAL_SECONDS = 30  # Check every 30 seconds
    POSITION_TIMEOUT_SECONDS = 10
    POSITION_SOURCE_URL = os.environ.get("SMART_CALENDAR_POSITION_URL")

    # Recurrence configuration
    DEFAULT_RECURRENCE_HORIZON_DAYS = 365  # Used when a rule has no "until"
    MAX_SERIES_INSTANCES = 1000

    # Conflicts awaiting accept/ignore/cancel; the oldest is dropped past this
    MAX_PENDING_CONFLICTS = 100

    # Storage
    EVENTS_FILE = os.environ.get("SMART_CALENDAR_EVENTS_FILE", os.path.join("data", "events.json"))
    DEFAULT_CATEGORY = "Personal"

    # LLM configuration (OpenAI-compatible endpoint)
    LLM_BASE_URL = os.environ.get("SMART_CALENDAR_LLM_BASE_URL", "http://localhost:4000/v1")
    LLM_API_KEY = os.environ.get("SMART_CALENDAR_LLM_API_KEY", "NULL")
    DEFAULT_MODEL = os.environ.get("SMART_CALENDAR_LLM_MODEL", "llama-3.2-3b")
    LLM_TIMEOUT = 15
    LLM_MAX_RETRIES = 2
    MAX_TOKENS = 512
    TEMPERATURE = 0.1
    AI_SUGGESTIONS_ENABLED = _env_bool("SMART_CALENDAR_AI_ENABLED", False)

    # API Configuration
    API_HOST = "0.0.0.0"
    API_PORT = 5000

    CONFLICT_RESOLUTION_PROMPT = """You are an intelligent scheduling assistant. Two events are conflicting.
Event A (the more important one): "{kept_title}" from {kept_start} to {kept_end}. Priority: {kept_priority}.
Event B (the less important one): "{displaced_title}" from {displaced_start} to {displaced_end}. Priority: {displaced_priority}.

Your task is to reschedule Event B. Find the next available time slot for Event B immediately after Event A concludes.
The duration of Event B must remain the same.

REQUIRED JSON FORMAT:
{{"eventToUpdateId": "{displaced_id}", "new_start_time": "ISO-8601 start", "new_end_time": "ISO-8601 end"}}

Return ONLY the JSON object (no explanations):"""

    EVENT_EXTRACTION_PROMPT = """Extract every calendar event from the document below and return ONLY a valid JSON response.

REQUIRED JSON FORMAT:
{{"events": [{{"title": "...", "start_date": "YYYY-MM-DD", "start_time": "HH:MM", "end_date": "YYYY-MM-DD", "end_time": "HH:MM", "category": "...", "description": "...", "location": "...", "link": "...", "contact_email": "...", "contact_phone": "..."}}]}}

Use an empty list when no events are present.

DOCUMENT: {document}

Return ONLY the JSON object (no explanations):"""

    @classmethod
    def get_model_config(cls, model_name: str = None) -> Dict[str, Any]:
        """Get model configuration for the suggestion collaborator"""
        return {
            "base_url": cls.LLM_BASE_URL,
            "api_key": cls.LLM_API_KEY,
            "model": model_name or cls.DEFAULT_MODEL,
            "max_tokens": cls.MAX_TOKENS,
            "temperature": cls.TEMPERATURE,
            "timeout": cls.LLM_TIMEOUT,
            "max_retries": cls.LLM_MAX_RETRIES,
        }

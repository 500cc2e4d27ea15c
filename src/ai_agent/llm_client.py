"""
LLM client for the Smart Calendar - conflict suggestions and event extraction
"""
import json
import logging
import time
from typing import Dict, Any, List, Optional

from openai import OpenAI

from config.settings import Config
from src.events.models import CalendarEvent

logger = logging.getLogger(__name__)


class LLMClient:
    """
    Thin client around an OpenAI-compatible chat endpoint.

    Every public method returns None (or an empty list) when the model is
    unreachable or answers with something that is not the expected JSON;
    callers treat the result as an untrusted proposal.
    """

    def __init__(self, model_name: str = None, client: OpenAI = None):
        self.config = Config()
        self.model_config = self.config.get_model_config(model_name)
        self.model_name = self.model_config["model"]

        self.client = client or OpenAI(
            api_key=self.model_config["api_key"],
            base_url=self.model_config["base_url"],
            timeout=self.model_config["timeout"],
            max_retries=self.model_config["max_retries"],
        )

        self.max_tokens = self.model_config["max_tokens"]
        self.temperature = self.model_config["temperature"]

        logger.info(f"Initialized LLM client: {self.model_name} @ {self.model_config['base_url']}")

    def _make_completion_request(self, prompt: str) -> Optional[str]:
        """Send one prompt and return the raw text answer"""
        try:
            start_time = time.time()
            response = self.client.chat.completions.create(
                model=self.model_name,
                messages=[{"role": "user", "content": prompt}],
                max_tokens=self.max_tokens,
                temperature=self.temperature,
            )
            content = (response.choices[0].message.content or "").strip()
            logger.info(f"LLM response in {time.time() - start_time:.2f}s")
            return content

        except Exception as e:
            logger.error(f"LLM completion request failed: {e}")
            return None

    def suggest_conflict_resolution(self, kept: CalendarEvent,
                                    displaced: CalendarEvent) -> Optional[Dict[str, Any]]:
        """Ask the model where to move the displaced event.

        Returns ``{eventToUpdateId, new_start_time, new_end_time}`` or None.
        """
        prompt = self.config.CONFLICT_RESOLUTION_PROMPT.format(
            kept_title=kept.title,
            kept_start=kept.start.isoformat(),
            kept_end=kept.end.isoformat(),
            kept_priority=kept.priority.value,
            displaced_title=displaced.title,
            displaced_start=displaced.start.isoformat(),
            displaced_end=displaced.end.isoformat(),
            displaced_priority=displaced.priority.value,
            displaced_id=displaced.id,
        )

        response = self._make_completion_request(prompt)
        if not response:
            return None

        data = self._extract_json(response)
        required_fields = ["eventToUpdateId", "new_start_time", "new_end_time"]
        if not data or not all(field in data for field in required_fields):
            logger.warning(f"LLM conflict suggestion missing fields: {response[:200]}")
            return None

        return {field: data[field] for field in required_fields}

    def extract_event_drafts(self, document: str) -> List[Dict[str, Any]]:
        """Extract candidate event drafts from a text document"""
        prompt = self.config.EVENT_EXTRACTION_PROMPT.format(document=document[:4000])

        response = self._make_completion_request(prompt)
        if not response:
            return []

        data = self._extract_json(response)
        if not data or not isinstance(data.get("events"), list):
            logger.warning("LLM extraction returned no events list")
            return []

        required_fields = ["title", "start_date", "start_time", "end_date", "end_time"]
        drafts = [
            item for item in data["events"]
            if isinstance(item, dict) and all(item.get(field) for field in required_fields)
        ]

        logger.info(f"📄 Extracted {len(drafts)} event draft(s)")
        return drafts

    def _extract_json(self, response: str) -> Optional[Dict[str, Any]]:
        """Extract JSON from a model response with multiple strategies"""
        strategies = [
            lambda r: json.loads(r),
            lambda r: self._extract_json_by_braces(r),
            lambda r: self._extract_json_from_end(r),
        ]

        for strategy in strategies:
            try:
                result = strategy(response)
                if isinstance(result, dict):
                    return result
            except (ValueError, IndexError) as e:
                logger.debug(f"JSON extraction strategy failed: {e}")
                continue

        return None

    def _extract_json_by_braces(self, response: str) -> Optional[Dict[str, Any]]:
        """Extract JSON by finding balanced braces"""
        start = response.find('{')
        if start == -1:
            return None

        brace_count = 0
        for i, char in enumerate(response[start:], start):
            if char == '{':
                brace_count += 1
            elif char == '}':
                brace_count -= 1
                if brace_count == 0:
                    return json.loads(response[start:i + 1])
        return None

    def _extract_json_from_end(self, response: str) -> Optional[Dict[str, Any]]:
        """Extract JSON from the last line that looks like an object"""
        for line in reversed(response.strip().split('\n')):
            line = line.strip()
            if line.startswith('{') and line.endswith('}'):
                try:
                    return json.loads(line)
                except json.JSONDecodeError:
                    continue
        return None

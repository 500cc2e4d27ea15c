#!/usr/bin/env python3
"""
Main entry point for the Smart Calendar engine

Runs the HTTP API with a JSON-backed event store and, unless disabled, the
smart-alert evaluator.
"""

import argparse
import logging

from config.settings import Config
from src.ai_agent.llm_client import LLMClient
from src.ai_agent.mock_llm_client import MockLLMClient
from src.alerts.position_source import HttpPositionSource
from src.api.flask_server import SmartCalendarAPI
from src.events.event_store import JsonEventStore
from src.scheduler.smart_scheduler import SmartScheduler
from utils.logger import SmartCalendarLogger

logger = logging.getLogger(__name__)


def build_ai_client(mode: str, model_name: str = None):
    """Pick the suggestion/extraction collaborator"""
    if mode == "mock":
        return MockLLMClient(model_name)
    if mode == "llm":
        return LLMClient(model_name)
    return None


def build_application(events_file: str, ai_mode: str = "off", model_name: str = None,
                      position_url: str = None, alerts: bool = True) -> SmartCalendarAPI:
    store = JsonEventStore(events_file)
    scheduler = SmartScheduler(store=store, ai_client=build_ai_client(ai_mode, model_name))

    alerter = None
    if alerts:
        position_source = HttpPositionSource(position_url) if position_url else None
        if position_source is None:
            logger.warning("No position URL configured; location-based alerts will not fire")
        alerter = scheduler.build_alerter(position_source=position_source)

    return SmartCalendarAPI(scheduler, alerter)


def main():
    parser = argparse.ArgumentParser(description='Smart Calendar API Server')
    parser.add_argument('--host', default=Config.API_HOST, help='Host to bind to')
    parser.add_argument('--port', type=int, default=Config.API_PORT, help='Port to bind to')
    parser.add_argument('--events-file', default=Config.EVENTS_FILE, help='JSON file holding the events')
    parser.add_argument('--ai', choices=['off', 'mock', 'llm'],
                        default='llm' if Config.AI_SUGGESTIONS_ENABLED else 'off',
                        help='Conflict suggestion / extraction collaborator')
    parser.add_argument('--model', default=None, help='Model name for the LLM collaborator')
    parser.add_argument('--position-url', default=Config.POSITION_SOURCE_URL,
                        help='Endpoint returning {"latitude": .., "longitude": ..}')
    parser.add_argument('--no-alerts', action='store_true', help='Do not start smart alerts')
    parser.add_argument('--log-level', default='INFO', help='Logging level')
    parser.add_argument('--log-file', default=None, help='Optional log file')
    parser.add_argument('--debug', action='store_true', help='Enable Flask debug mode')

    args = parser.parse_args()

    SmartCalendarLogger.setup_logging(log_level=args.log_level, log_file=args.log_file)

    api = build_application(
        events_file=args.events_file,
        ai_mode=args.ai,
        model_name=args.model,
        position_url=args.position_url,
        alerts=not args.no_alerts,
    )

    if api.alerter is not None:
        api.alerter.start()

    api.run(host=args.host, port=args.port, debug=args.debug)


if __name__ == "__main__":
    main()

"""
Flask API server for the Smart Calendar engine
"""
import logging
import signal
import sys
import time
from datetime import datetime

from flask import Flask, request, jsonify
from flask_cors import CORS

from config.settings import Config
from src.events.event_store import DeleteScope, EventNotFoundError
from src.events.models import CalendarEvent
from src.scheduler.interval_math import as_instant
from src.scheduler.smart_scheduler import ConflictAction, ConflictNotFoundError, SmartScheduler
from utils.logger import SmartCalendarLogger
from utils.validators import EventValidationError, EventValidator

logger = logging.getLogger(__name__)


class SmartCalendarAPI:
    """
    Flask API exposing the scheduler's save/delete/conflict operations and
    the smart-alert toggle to a host UI
    """

    def __init__(self, scheduler: SmartScheduler = None, alerter=None):
        self.config = Config()
        self.app = Flask(__name__)
        CORS(self.app)  # Enable CORS for browser hosts

        self.scheduler = scheduler or SmartScheduler()
        self.alerter = alerter
        self.start_time = time.time()

        self._setup_routes()

    def _setup_routes(self):
        """Setup Flask routes"""

        @self.app.route('/health', methods=['GET'])
        def health_check():
            """Health check endpoint"""
            return jsonify({
                "status": "healthy",
                "timestamp": datetime.now().isoformat(),
                "events": len(self.scheduler.store),
                "alerts_running": bool(self.alerter and self.alerter.is_running),
                "uptime": time.time() - self.start_time,
            })

        @self.app.route('/events', methods=['GET'])
        def list_events():
            events = sorted(self.scheduler.store.snapshot(), key=lambda e: as_instant(e.start))
            return jsonify({"events": [e.to_dict() for e in events]})

        @self.app.route('/events', methods=['POST'])
        def save_event():
            """Save an event; answers 409 with a proposal when it conflicts"""
            start_time = time.time()
            data = request.get_json(silent=True)

            if data is None:
                logger.error("No JSON data received")
                return jsonify({"error": "No JSON data provided"}), 400

            errors = EventValidator.validate_event_payload(data)
            if errors:
                return jsonify({"error": "Invalid event", "errors": errors}), 400

            try:
                event = CalendarEvent.from_dict(data)
                result = self.scheduler.save_event(event)
            except EventValidationError as e:
                return jsonify({"error": "Invalid event", "errors": e.errors}), 400
            except ValueError as e:
                return jsonify({"error": "Invalid event", "errors": [str(e)]}), 400

            body = result.to_dict()
            SmartCalendarLogger.log_save_request(data, body, time.time() - start_time)

            if result.status == "conflict":
                return jsonify(body), 409
            return jsonify(body), 201

        @self.app.route('/events/extract', methods=['POST'])
        def extract_events():
            """Turn a document into unsaved drafts for the user to review"""
            data = request.get_json(silent=True) or {}
            document = data.get('document')

            if not isinstance(document, str) or not document.strip():
                return jsonify({"error": "Field 'document' must be a non-empty string"}), 400

            events = self.scheduler.extract_events(document)
            return jsonify({"events": [e.to_dict() for e in events]})

        @self.app.route('/events/reviewed', methods=['POST'])
        def add_reviewed_events():
            """Save the drafts the user kept after review, without conflict prompts"""
            data = request.get_json(silent=True) or {}
            items = data.get('events')

            if not isinstance(items, list):
                return jsonify({"error": "Field 'events' must be a list"}), 400

            errors = []
            for index, item in enumerate(items):
                errors.extend(f"events[{index}]: {e}" for e in EventValidator.validate_event_payload(item))
            if errors:
                return jsonify({"error": "Invalid events", "errors": errors}), 400

            try:
                result = self.scheduler.add_reviewed_events([CalendarEvent.from_dict(i) for i in items])
            except EventValidationError as e:
                return jsonify({"error": "Invalid events", "errors": e.errors}), 400
            except ValueError as e:
                return jsonify({"error": "Invalid events", "errors": [str(e)]}), 400

            return jsonify(result.to_dict()), 201

        @self.app.route('/events/<event_id>', methods=['DELETE'])
        def delete_event(event_id):
            scope = request.args.get('scope', DeleteScope.SINGLE.value)
            try:
                removed = self.scheduler.delete_event(event_id, DeleteScope(scope))
            except ValueError:
                return jsonify({"error": f"Invalid scope: {scope}"}), 400
            except EventNotFoundError:
                return jsonify({"error": f"Event not found: {event_id}"}), 404

            return jsonify({"deleted": removed})

        @self.app.route('/conflicts/<conflict_id>/resolve', methods=['POST'])
        def resolve_conflict(conflict_id):
            data = request.get_json(silent=True) or {}
            action = data.get('action')

            try:
                action = ConflictAction(action)
            except ValueError:
                return jsonify({"error": f"Invalid action: {action}",
                                "allowed": [a.value for a in ConflictAction]}), 400

            try:
                result = self.scheduler.resolve_conflict(conflict_id, action)
            except ConflictNotFoundError:
                return jsonify({"error": f"Conflict not found: {conflict_id}"}), 404

            return jsonify(result.to_dict())

        @self.app.route('/notices', methods=['GET'])
        def get_notices():
            return jsonify({"notices": [n.to_dict() for n in self.scheduler.get_notices()]})

        @self.app.route('/alerts/start', methods=['POST'])
        def start_alerts():
            if self.alerter is None:
                return jsonify({"error": "Smart alerts are not configured"}), 400
            self.alerter.start()
            return jsonify({"alerts_running": True})

        @self.app.route('/alerts/stop', methods=['POST'])
        def stop_alerts():
            if self.alerter is not None:
                self.alerter.stop()
            return jsonify({"alerts_running": False})

        @self.app.errorhandler(404)
        def not_found(error):
            return jsonify({"error": "Endpoint not found"}), 404

        @self.app.errorhandler(500)
        def internal_error(error):
            return jsonify({"error": "Internal server error"}), 500

    def _setup_signal_handlers(self):
        """Setup graceful shutdown handlers"""
        def signal_handler(signum, frame):
            logger.info(f"Received signal {signum}, shutting down gracefully...")
            self.shutdown()
            sys.exit(0)

        signal.signal(signal.SIGINT, signal_handler)
        signal.signal(signal.SIGTERM, signal_handler)

    def run(self, host=None, port=None, debug=False):
        """Run the Flask server"""
        host = host or self.config.API_HOST
        port = port or self.config.API_PORT

        self.start_time = time.time()
        self._setup_signal_handlers()

        logger.info(f"Starting Smart Calendar API server on {host}:{port}")

        try:
            self.app.run(
                host=host,
                port=port,
                debug=debug,
                threaded=True,
                use_reloader=False
            )
        except Exception as e:
            logger.error(f"Failed to start server: {e}")
            raise

    def shutdown(self):
        """Graceful shutdown"""
        logger.info("Shutting down Smart Calendar API server...")
        if self.alerter is not None:
            self.alerter.stop()


def create_app(scheduler: SmartScheduler = None, alerter=None) -> Flask:
    """Factory function to create Flask app"""
    api = SmartCalendarAPI(scheduler, alerter)
    return api.app

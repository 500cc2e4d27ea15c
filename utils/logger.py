"""
Logging utilities for the Smart Calendar engine
"""
import logging
import sys
from datetime import datetime
import json


class SmartCalendarLogger:
    """Custom logger for the Smart Calendar engine"""

    @staticmethod
    def setup_logging(log_level: str = "INFO", log_file: str = None):
        """Setup logging configuration"""

        # Create formatter
        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )

        # Setup root logger
        root_logger = logging.getLogger()
        root_logger.setLevel(getattr(logging, log_level.upper()))

        # Clear existing handlers
        root_logger.handlers.clear()

        # Console handler
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(formatter)
        root_logger.addHandler(console_handler)

        # File handler (if specified)
        if log_file:
            file_handler = logging.FileHandler(log_file)
            file_handler.setFormatter(formatter)
            root_logger.addHandler(file_handler)

        # Suppress some noisy loggers
        for name in ('urllib3', 'openai', 'httpx', 'werkzeug'):
            logging.getLogger(name).setLevel(logging.WARNING)

        return root_logger

    @staticmethod
    def log_save_request(request_data: dict, response_data: dict, processing_time: float):
        """Log an event save request and its outcome for debugging"""
        logger = logging.getLogger(__name__)

        log_entry = {
            "timestamp": datetime.now().isoformat(),
            "processing_time_seconds": round(processing_time, 4),
            "request_summary": {
                "title": request_data.get("title"),
                "start": request_data.get("start"),
                "end": request_data.get("end"),
                "recurrence": (request_data.get("recurrenceRule") or {}).get("freq", "none"),
            },
            "response_summary": {
                "status": response_data.get("status"),
                "saved_count": len(response_data.get("events", [])),
                "conflict_id": (response_data.get("conflict") or {}).get("id"),
            },
        }

        logger.info(f"Save processed: {json.dumps(log_entry, indent=2)}")

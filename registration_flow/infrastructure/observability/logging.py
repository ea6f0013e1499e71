"""Structured JSON logging for the registration flow"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pythonjsonlogger.json import JsonFormatter

from registration_flow.config import settings


class CustomJsonFormatter(JsonFormatter):
    """Custom JSON formatter with timestamp and service metadata"""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["service"] = settings.service_name


def setup_logging(level: str = "INFO") -> None:
    """Configure structured JSON logging"""
    logger = logging.getLogger()
    logger.setLevel(level)

    # Remove existing handlers
    logger.handlers.clear()

    # JSON handler for stdout
    handler = logging.StreamHandler(sys.stdout)
    formatter = CustomJsonFormatter(
        "%(timestamp)s %(level)s %(name)s %(message)s"
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)


def log_transition(
    transition: str,
    from_step: str,
    to_step: str,
    registration_id: Optional[str],
    completed_steps: list[str],
) -> None:
    """Log a flow state transition for funnel analysis"""
    logging.getLogger("registration_flow.transitions").info(
        "Flow transition",
        extra={
            "transition": transition,
            "from_step": from_step,
            "to_step": to_step,
            "registration_id": registration_id,
            "completed_steps": completed_steps,
        },
    )

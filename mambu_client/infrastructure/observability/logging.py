"""Structured JSON logging for SDK hosts"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict

from pythonjsonlogger import jsonlogger

from mambu_client.config import settings


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """Custom JSON formatter with timestamp and service metadata"""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["service"] = settings.service_name


def setup_logging(level: str = "INFO") -> None:
    """Configure structured JSON logging on the root logger"""
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

    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)


def log_api_call(
    operation: str,
    method: str,
    url: str,
    outcome: str,
    duration_ms: float,
) -> None:
    """Log structured outcome of one platform call"""
    level = logging.INFO
    if outcome == "api_error":
        level = logging.WARNING
    elif outcome != "success":
        level = logging.ERROR

    logging.getLogger("mambu_client.api").log(
        level,
        "API call completed",
        extra={
            "step": "api_call",
            "operation": operation,
            "method": method,
            "url": url,
            "outcome": outcome,
            "duration_ms": round(duration_ms, 2),
        },
    )

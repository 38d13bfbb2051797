"""Structured JSON logging for production observability"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict

from pythonjsonlogger import jsonlogger

from invoice_gateway.config import settings


class CustomJsonFormatter(jsonlogger.JsonFormatter):
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

    logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(CustomJsonFormatter("%(timestamp)s %(level)s %(name)s %(message)s"))
    logger.addHandler(handler)


def log_invoice_build(
    request_id: str,
    card_id: str,
    closed_total_cents: int,
    current_total_cents: int,
    excluded_count: int,
    duration_ms: float,
) -> None:
    """Log structured invoice build outcome for analysis"""
    logging.info(
        "Invoice build completed",
        extra={
            "request_id": request_id,
            "card_id": card_id,
            "step": "invoice_build_complete",
            "closed_total_cents": closed_total_cents,
            "current_total_cents": current_total_cents,
            "excluded_count": excluded_count,
            "duration_ms": duration_ms,
        },
    )

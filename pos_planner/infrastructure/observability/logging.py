"""Structured JSON logging for production observability"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pythonjsonlogger.json import JsonFormatter

from pos_planner.domain.exceptions import ValidationIssue


class CustomJsonFormatter(JsonFormatter):
    """Custom JSON formatter with timestamp and service metadata"""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["service"] = "pos-planner"


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


def log_submission(
    request_id: str,
    session_id: str,
    sale_structure: str,
    outcome: str,
    order_id: Optional[int],
    duration_ms: float,
) -> None:
    """Log structured settlement outcome for analysis"""
    logging.info(
        "Submission completed",
        extra={
            "request_id": request_id,
            "session_id": session_id,
            "step": "submission_complete",
            "sale_structure": sale_structure,
            "outcome": outcome,
            "order_id": order_id,
            "duration_ms": duration_ms,
        },
    )


def log_blocked_submission(request_id: str, session_id: str, issues: List[ValidationIssue]) -> None:
    """Log a submission refused locally, before any network call"""
    logging.info(
        "Submission blocked",
        extra={
            "request_id": request_id,
            "session_id": session_id,
            "step": "submission_blocked",
            "issues": [{"step": issue.step.name, "message": issue.message} for issue in issues],
        },
    )

"""Structured JSON logging for production observability"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from pythonjsonlogger import jsonlogger


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """Custom JSON formatter with timestamp and service metadata"""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["service"] = "payflow-deductions"


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
    draft_id: str,
    institution_id: str,
    from_state: str,
    to_state: str,
    trigger: str,
) -> None:
    """Log a draft state change for audit"""
    logging.getLogger("payflow_deductions.draft").info(
        "Draft transition",
        extra={
            "draft_id": draft_id,
            "institution_id": institution_id,
            "step": trigger,
            "from_state": from_state,
            "to_state": to_state,
        },
    )


def log_submission(
    draft_id: str,
    employee_id: str,
    outcome: str,
    duration_ms: float,
    request_id: Optional[str] = None,
    error: Optional[str] = None,
) -> None:
    """Log structured submission outcome for analysis"""
    level = logging.INFO if outcome == "created" else logging.WARNING
    logging.getLogger("payflow_deductions.draft").log(
        level,
        "Submission completed",
        extra={
            "draft_id": draft_id,
            "employee_id": employee_id,
            "step": "submission_complete",
            "submission_outcome": outcome,
            "deduction_request_id": request_id,
            "error": error,
            "duration_ms": duration_ms,
        },
    )

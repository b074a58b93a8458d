"""Structured JSON logging for production observability"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict
from pythonjsonlogger import jsonlogger

from dues_service.config import settings
from dues_service.domain.models import ReconciliationReport


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

    # Remove existing handlers
    logger.handlers.clear()

    # JSON handler for stdout
    handler = logging.StreamHandler(sys.stdout)
    formatter = CustomJsonFormatter(
        "%(timestamp)s %(level)s %(name)s %(message)s"
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)


def log_reconciliation(request_id: str, association_id: str, report: ReconciliationReport) -> None:
    """Log one reconciliation pass with its per-member outcome counts"""
    logging.info(
        "Dues reconciled",
        extra={
            "request_id": request_id,
            "association_id": association_id,
            "step": "dues_reconciled",
            "due_date": report.due_date.isoformat(),
            "period_start": report.period.start.isoformat(),
            "period_end": report.period.end.isoformat(),
            "generated": len(report.generated),
            "existing": len(report.existing),
            "failed": len(report.failures),
        },
    )


def log_payment(request_id: str, due_id: str, paid_amount: str, payment_method: str) -> None:
    """Log a recorded dues payment"""
    logging.info(
        "Due marked as paid",
        extra={
            "request_id": request_id,
            "due_id": due_id,
            "step": "due_paid",
            "paid_amount": paid_amount,
            "payment_method": payment_method,
        },
    )

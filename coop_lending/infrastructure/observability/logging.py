"""Structured JSON logging for production observability"""

import logging
import sys
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict
from pythonjsonlogger import jsonlogger

from coop_lending.config import settings


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


def log_loan_event(step: str, loan_id: str, loan_code: str, actor_id: str, **fields: Any) -> None:
    """Log a loan lifecycle event (created, decided, schedule_edited)"""
    logging.info(
        f"Loan {step}",
        extra={
            "step": step,
            "loan_id": loan_id,
            "loan_code": loan_code,
            "actor_id": actor_id,
            **{k: str(v) if isinstance(v, Decimal) else v for k, v in fields.items()},
        },
    )


def log_payment_event(step: str, payment_id: str, loan_id: str, amount: Decimal, status: str, actor: str) -> None:
    """Log a ledger event (recorded, approved)"""
    logging.info(
        f"Payment {step}",
        extra={
            "step": step,
            "payment_id": payment_id,
            "loan_id": loan_id,
            "amount": str(amount),
            "payment_status": status,
            "actor": actor,
        },
    )

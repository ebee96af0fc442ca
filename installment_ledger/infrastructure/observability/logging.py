"""Structured JSON logging for production observability"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict
from pythonjsonlogger import jsonlogger


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """Custom JSON formatter with timestamp and service metadata"""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["service"] = "installment-ledger"


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


def log_invoice_created(
    request_id: str,
    customer_id: str,
    invoice_id: str,
    payment_method: str,
    total_cents: int,
    duration_ms: float,
) -> None:
    """Log structured invoice creation outcome"""
    logging.info(
        "Invoice created",
        extra={
            "request_id": request_id,
            "customer_id": customer_id,
            "invoice_id": invoice_id,
            "step": "invoice_created",
            "payment_method": payment_method,
            "total_cents": total_cents,
            "duration_ms": duration_ms,
        },
    )


def log_payment_applied(
    request_id: str,
    invoice_id: str,
    amount_cents: int,
    remaining_cents: int,
    status: str,
) -> None:
    """Log structured payment outcome"""
    logging.info(
        "Payment applied",
        extra={
            "request_id": request_id,
            "invoice_id": invoice_id,
            "step": "payment_applied",
            "amount_cents": amount_cents,
            "remaining_cents": remaining_cents,
            "invoice_status": status,
        },
    )

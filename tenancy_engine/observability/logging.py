"""Structured JSON logging for compliance audit trails"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict

from pythonjsonlogger import jsonlogger

from tenancy_engine.config import settings
from tenancy_engine.domain.models import TenantStatus


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """Custom JSON formatter with timestamp and service metadata"""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["service"] = settings.service_name


def setup_logging(level: str | None = None) -> None:
    """Configure structured JSON logging"""
    logger = logging.getLogger()
    logger.setLevel(level or settings.log_level)

    # Remove existing handlers
    logger.handlers.clear()

    # JSON handler for stdout
    handler = logging.StreamHandler(sys.stdout)
    formatter = CustomJsonFormatter(
        "%(timestamp)s %(level)s %(name)s %(message)s"
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)


def log_status_evaluation(tenant_id: str, status: TenantStatus, duration_ms: float | None = None) -> None:
    """Log structured status outcome for the compliance audit trail"""
    logging.info(
        "Status evaluated",
        extra={
            "tenant_id": tenant_id,
            "step": "status_evaluated",
            "as_of": status.as_of.isoformat(),
            "severity_tier": status.severity_tier,
            "severity_name": status.severity_name,
            "balance_cents": status.current_balance_cents,
            "working_days_overdue": status.working_days_overdue,
            "active_strikes": status.active_strike_count,
            "termination_routes": [route.kind.value for route in status.termination_routes],
            "eligible_actions": [action.kind.value for action in status.eligible_actions],
            "is_estimate": status.is_estimate,
            "diagnostics": [d.code for d in status.diagnostics],
            "duration_ms": duration_ms,
        },
    )

"""
Structured logging configuration for production use.

Provides JSON-formatted logs for better parsing and aggregation. Records
about a particular fighter or group carry ``user_id``/``group_id`` so the
leaderboard and shoutbox trails can be filtered per user.
"""
import logging
import sys
import json
from datetime import datetime, timezone
from typing import Any, Dict
from core.config import settings

SERVICE_NAME = "fightmate-api"

# Passed as logging ``extra=`` keys and lifted to the top level of the JSON line
CONTEXT_FIELDS = ("user_id", "group_id", "session_id")


class JSONFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "service": SERVICE_NAME,
            "environment": settings.ENVIRONMENT,
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        for name in CONTEXT_FIELDS:
            value = getattr(record, name, None)
            if value is not None:
                log_data[name] = str(value)

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        # Request middleware passes a whole dict
        if hasattr(record, "extra_fields"):
            log_data.update(record.extra_fields)

        return json.dumps(log_data, default=str)


def log_context(user_id=None, group_id=None, **fields) -> Dict[str, Any]:
    """Build an ``extra=`` mapping, e.g. ``logger.info(msg, extra=log_context(user_id=uid))``."""
    context = {"user_id": user_id, "group_id": group_id, **fields}
    return {key: value for key, value in context.items() if value is not None}


def setup_logging():
    """
    Configure application-wide logging.

    Uses JSON format in production or when LOG_FORMAT=json, text otherwise.
    """
    log_level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)

    if settings.LOG_FORMAT == "json" or settings.ENVIRONMENT == "production":
        formatter = JSONFormatter()
    else:
        formatter = logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        )

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    # Set levels for noisy libraries
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.pool").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)

    return root_logger

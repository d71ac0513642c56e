"""Structured JSON logging configuration.

One setup shared by the API process, the Celery worker and the sync CLI.
Every record carries the current correlation ID (see ``request_id``).
"""

import logging
import json
import sys
from datetime import datetime, timezone
from typing import Optional

from .request_id import get_request_id

# Extra attributes promoted to top-level JSON keys when present on a record
_EXTRA_FIELDS = (
    "search_type",
    "stage",
    "reason",
    "product_id",
    "query",
    "duration_ms",
    "status_code",
    "processed",
    "failed",
)

_NOISY_LOGGERS = (
    "uvicorn.access",
    "sqlalchemy.engine",
    "sentence_transformers",
    "httpx",
    "urllib3",
    "filelock",
)


class RequestIDFilter(logging.Filter):
    """Stamp the current correlation ID onto every record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = get_request_id()
        return True


class JSONFormatter(logging.Formatter):
    """Render log records as single-line JSON documents."""

    def __init__(self, service: str = "product-search", environment: Optional[str] = None):
        super().__init__()
        self.service = service
        self.environment = environment

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "service": self.service,
            "request_id": getattr(record, "request_id", "no-request-id"),
            "logger": record.name,
            "module": record.module,
            "function": record.funcName,
            "message": record.getMessage(),
        }
        if self.environment:
            log_data["environment"] = self.environment

        if record.exc_info:
            log_data["error"] = str(record.exc_info[1])
            log_data["traceback"] = self.formatException(record.exc_info)

        for key in _EXTRA_FIELDS:
            if hasattr(record, key):
                value = getattr(record, key)
                if not (isinstance(value, (int, float, bool)) or value is None):
                    value = str(value)
                log_data[key] = value

        return json.dumps(log_data)


def configure_logging(
    level: str = "INFO",
    json_format: bool = True,
    service: str = "product-search",
    environment: Optional[str] = None,
) -> None:
    """Configure root logging.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR)
        json_format: JSON output when True, a human readable line otherwise
        service: Value of the ``service`` key in JSON output
        environment: Optional deployment environment tag
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)
    root_logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(numeric_level)
    if json_format:
        handler.setFormatter(JSONFormatter(service=service, environment=environment))
    else:
        handler.setFormatter(logging.Formatter(
            '%(asctime)s %(levelname)-7s [%(request_id)s] %(name)s: %(message)s'
        ))
    handler.addFilter(RequestIDFilter())
    root_logger.addHandler(handler)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def configure_logging_from_settings(settings, service: str = "product-search") -> None:
    """Configure logging from a ``Settings`` instance."""
    configure_logging(
        level=settings.LOG_LEVEL,
        json_format=settings.LOG_JSON,
        service=service,
        environment=settings.ENVIRONMENT,
    )


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)

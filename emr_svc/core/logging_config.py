"""
Structured JSON logging for the EMR service and its Celery worker.

This module provides:
- Single-line JSON log records suitable for Loki/ELK ingestion
- Request ID propagation via contextvars
- One setup function shared by the API process and the worker

Log Structure (JSON):
{
    "timestamp": "2024-01-15T10:30:00.123Z",
    "level": "INFO",
    "logger": "services.appointment_service",
    "message": "Appointment created",
    "request_id": "1a2b3c4d",
    "extra": {"appointment_id": 12, "doctor_id": 3}
}

Usage:
    from core.logging_config import setup_logging

    setup_logging()
    logger.info("Task status changed", extra={"task_id": 4, "status": "completed"})
"""

import json
import logging
import os
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict, Optional

# =============================================================================
# REQUEST ID CONTEXT
# =============================================================================

request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)


def get_request_id() -> Optional[str]:
    """Return the request ID bound to the current context, if any."""
    return request_id_var.get()


def set_request_id(request_id: str) -> None:
    """Bind a request ID to the current context."""
    request_id_var.set(request_id)


def clear_request_id() -> None:
    """Unbind the request ID at the end of a request."""
    request_id_var.set(None)


# =============================================================================
# JSON FORMATTER
# =============================================================================

# Attributes every LogRecord carries; anything else came in through `extra=`.
_STANDARD_ATTRS = frozenset({
    "name", "msg", "args", "created", "filename", "funcName",
    "levelname", "levelno", "lineno", "module", "msecs",
    "pathname", "process", "processName", "relativeCreated",
    "stack_info", "exc_info", "exc_text", "thread", "threadName",
    "taskName", "message",
})

APP_LOGGERS = (
    "emr_svc", "core", "api", "services", "repositories", "tasks", "celery_app",
)


class JSONFormatter(logging.Formatter):
    """
    Render a LogRecord as one compact JSON object.

    Timestamps are UTC with millisecond precision. Fields passed through
    ``extra=`` are grouped under the ``extra`` key.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_entry: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z",
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        request_id = get_request_id()
        if request_id:
            log_entry["request_id"] = request_id

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        extra = {
            key: value
            for key, value in record.__dict__.items()
            if key not in _STANDARD_ATTRS and not key.startswith("_")
        }
        if extra:
            log_entry["extra"] = extra

        return json.dumps(log_entry, default=str, ensure_ascii=False)


# =============================================================================
# LOGGING SETUP
# =============================================================================

def setup_logging(
    level: str = "INFO",
    json_format: bool = True,
    include_uvicorn: bool = True
) -> None:
    """
    Configure logging for the application.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_format: If True, use JSON format; if False, use human-readable format
        include_uvicorn: If True, route uvicorn loggers through the same handler

    Environment Variables:
        LOG_LEVEL: Override the log level
        LOG_FORMAT: Override format ("json" or "text")
    """
    level = os.environ.get("LOG_LEVEL", level).upper()
    json_format = os.environ.get("LOG_FORMAT", "json" if json_format else "text").lower() == "json"

    handler = logging.StreamHandler(sys.stdout)
    if json_format:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(
            "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S"
        ))

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers = [handler]

    for logger_name in APP_LOGGERS:
        app_logger = logging.getLogger(logger_name)
        app_logger.setLevel(level)
        app_logger.handlers = []
        app_logger.propagate = True

    if include_uvicorn:
        for logger_name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
            uv_logger = logging.getLogger(logger_name)
            uv_logger.handlers = []
            uv_logger.propagate = True

    logging.getLogger(__name__).info(
        "Logging configured",
        extra={"level": level, "format": "json" if json_format else "text"}
    )


def get_logger(name: str) -> logging.Logger:
    """Return the logger for ``name`` (normally the caller's ``__name__``)."""
    return logging.getLogger(name)

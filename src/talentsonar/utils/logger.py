"""
Structured JSON Logging.

All logs are emitted as single-line JSON objects so they can be filtered by
field in any log aggregator (CloudWatch Logs Insights, Loki, ...).

Features:
- Correlation IDs (request_id, candidate_id, job_id) attached to every record
- Arbitrary structured fields via extra={"extra_fields": {...}}
- Operation timing via the log_performance context manager
- Log level from the LOG_LEVEL environment variable

Usage:
    from talentsonar.utils.logger import get_logger

    logger = get_logger(__name__)
    logger.info("Scored candidate", extra={"extra_fields": {"score": 82}})
"""

import json
import logging
import os
import time
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any, Dict, Optional

LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()
LOG_LEVEL = getattr(logging, LOG_LEVEL, logging.INFO)

# Correlation IDs of the current request. Each request task (and the
# threadpool worker running its route) sees its own copy.
_log_context: ContextVar[Dict[str, Any]] = ContextVar("log_context", default={})

_CORRELATION_KEYS = ("request_id", "candidate_id", "job_id")


class JSONLogFormatter(logging.Formatter):
    """Format log records as JSON with correlation IDs and custom fields."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        context = _log_context.get()
        for key in _CORRELATION_KEYS:
            if key in context:
                log_data[key] = context[key]

        extra_fields = getattr(record, "extra_fields", None)
        if isinstance(extra_fields, dict):
            log_data.update(extra_fields)

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)
            log_data["exception_type"] = (
                record.exc_info[0].__name__ if record.exc_info[0] else None
            )

        return json.dumps(log_data, default=str)


def configure_logging(level: Optional[int] = None) -> None:
    """Install the JSON formatter on the root logger.

    Existing root handlers are removed to avoid duplicate lines when the
    app is reloaded.
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(level or LOG_LEVEL)
    root_logger.handlers = []

    handler = logging.StreamHandler()
    handler.setLevel(level or LOG_LEVEL)
    handler.setFormatter(JSONLogFormatter())
    root_logger.addHandler(handler)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def set_correlation_id(
    request_id: Optional[str] = None,
    candidate_id: Optional[str] = None,
    job_id: Optional[str] = None,
) -> None:
    """Attach correlation IDs to all subsequent log records of this context."""
    # Copy on write: the default dict and other contexts' dicts stay untouched
    context = dict(_log_context.get())
    if request_id:
        context["request_id"] = request_id
    if candidate_id:
        context["candidate_id"] = candidate_id
    if job_id:
        context["job_id"] = job_id
    _log_context.set(context)


def clear_correlation_ids() -> None:
    _log_context.set({})


@contextmanager
def log_performance(operation: str, **extra_fields):
    """Log start, completion and duration of an operation.

    Example:
        with log_performance("fit_analysis", job_id=job.id):
            result = service.analyze(job, candidate)
    """
    logger = get_logger(__name__)
    start_time = time.time()
    logger.debug(
        f"Starting {operation}",
        extra={"extra_fields": {"operation": operation, **extra_fields}},
    )

    try:
        yield
    except Exception as e:
        duration_ms = (time.time() - start_time) * 1000
        logger.error(
            f"Failed {operation}",
            extra={
                "extra_fields": {
                    "operation": operation,
                    "duration_ms": round(duration_ms, 2),
                    "status": "error",
                    "error": str(e),
                    **extra_fields,
                }
            },
        )
        raise

    duration_ms = (time.time() - start_time) * 1000
    logger.info(
        f"Completed {operation}",
        extra={
            "extra_fields": {
                "operation": operation,
                "duration_ms": round(duration_ms, 2),
                "status": "success",
                **extra_fields,
            }
        },
    )

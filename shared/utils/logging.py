"""
BugSage - Structured Logging
============================

JSON logging for the BugSage services with request-scoped context.

Every record emitted while a request is being handled carries the
request's correlation ID and, once the caller is authenticated, the
user ID. Log content submitted by users is never written to the logs;
callers log sizes and detected fields instead.

Usage:
    from shared.utils.logging import get_logger, setup_logging

    setup_logging(service_name="log-analysis", log_level="INFO")
    logger = get_logger(__name__)

    logger.info("Analysis completed", extra={"provider": "mock"})
"""

import logging
import json
import sys
from datetime import datetime, timezone
from typing import Any, Optional
from contextvars import ContextVar

correlation_id_var: ContextVar[Optional[str]] = ContextVar("correlation_id", default=None)
user_id_var: ContextVar[Optional[str]] = ContextVar("user_id", default=None)

# Attributes every LogRecord has; anything else came in through ``extra``
_RESERVED_ATTRS = frozenset({
    "name", "msg", "args", "created", "filename", "funcName",
    "levelname", "levelno", "lineno", "module", "msecs",
    "pathname", "process", "processName", "relativeCreated",
    "stack_info", "exc_info", "exc_text", "thread", "threadName",
    "taskName", "message",
})

_NOISY_LOGGERS = ("httpx", "httpcore", "openai", "urllib3")


class StructuredFormatter(logging.Formatter):
    """
    Render log records as single-line JSON documents.

    Fields: timestamp (UTC, ISO 8601), level, service, logger, message,
    correlation_id and user_id when bound, exception when present, and
    any extra fields passed by the caller.
    """

    def __init__(self, service_name: str):
        super().__init__()
        self.service_name = service_name

    def format(self, record: logging.LogRecord) -> str:
        log_entry: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "service": self.service_name,
            "logger": record.name,
            "message": record.getMessage(),
        }

        correlation_id = correlation_id_var.get()
        if correlation_id:
            log_entry["correlation_id"] = correlation_id

        user_id = user_id_var.get()
        if user_id:
            log_entry["user_id"] = user_id

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS and not key.startswith("_"):
                log_entry.setdefault(key, value)

        return json.dumps(log_entry, default=str)


class ContextualLogger(logging.LoggerAdapter):
    """
    Logger adapter that copies the bound request context into ``extra``.

    Keeps the context visible to non-JSON handlers too, which read it
    from the record attributes.
    """

    def process(self, msg: str, kwargs: dict) -> tuple[str, dict]:
        extra = dict(kwargs.get("extra") or {})

        correlation_id = correlation_id_var.get()
        if correlation_id and "correlation_id" not in extra:
            extra["correlation_id"] = correlation_id

        user_id = user_id_var.get()
        if user_id and "user_id" not in extra:
            extra["user_id"] = user_id

        kwargs["extra"] = extra
        return msg, kwargs


_loggers: dict[str, ContextualLogger] = {}


def setup_logging(
    service_name: str,
    log_level: str = "INFO",
    json_output: bool = True
) -> None:
    """
    Configure the root logger for a service.

    Call once at startup, before the application object is created.

    Args:
        service_name: Name stamped on every record (e.g., "log-analysis")
        log_level: Minimum log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_output: Emit JSON lines; otherwise a human-readable format
    """
    root_logger = logging.getLogger()
    root_logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)

    if json_output:
        handler.setFormatter(StructuredFormatter(service_name))
    else:
        handler.setFormatter(logging.Formatter(
            f"%(asctime)s | {service_name} | %(levelname)s | %(name)s | %(message)s"
        ))

    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> ContextualLogger:
    """
    Get the contextual logger for a module.

    Args:
        name: Logger name, typically __name__

    Returns:
        ContextualLogger instance (cached per name)
    """
    if name not in _loggers:
        _loggers[name] = ContextualLogger(logging.getLogger(name), {})
    return _loggers[name]


def set_correlation_id(correlation_id: str) -> None:
    """Bind the correlation ID for the current async context."""
    correlation_id_var.set(correlation_id)


def get_correlation_id() -> Optional[str]:
    """Return the correlation ID bound to the current context, if any."""
    return correlation_id_var.get()


def set_user_id(user_id: Optional[str]) -> None:
    """Bind the authenticated user's ID for the current async context."""
    user_id_var.set(user_id)

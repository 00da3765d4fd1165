"""
Structured logging for the Tubely service.

Provides a JSON formatter for log shipping, a plain-text formatter for local
development, one-shot root logger configuration that also takes over
Uvicorn's loggers, and a LoggerAdapter that stamps every record of an upload
with its video and user identifiers.

Usage:
    from tubely.utils.logger import setup_logging, add_log_context

    setup_logging(log_level="INFO", json_logs=True)

    logger = logging.getLogger(__name__)
    upload_logger = add_log_context(logger, video_id=video_id, user_id=user_id)
    upload_logger.info("Video staged", extra={"bytes": 1024})
"""

import json
import logging
import sys
import traceback
from datetime import datetime, timezone
from typing import Any


# =============================================================================
# Constants
# =============================================================================

LOG_LEVEL_MAP: dict[str, int] = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "WARN": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}

# Libraries that log chattily at INFO/DEBUG
THIRD_PARTY_LOGGERS: list[str] = [
    "fastapi",
    "motor",
    "pymongo",
    "boto3",
    "botocore",
    "s3transfer",
    "urllib3",
    "httpx",
    "httpcore",
    "multipart",
    "asyncio",
]

UVICORN_LOGGERS: tuple[str, ...] = ("uvicorn", "uvicorn.access", "uvicorn.error")


# =============================================================================
# JSON Formatter
# =============================================================================


def _json_default(obj: Any) -> str:
    if isinstance(obj, datetime):
        return obj.isoformat()
    if isinstance(obj, bytes):
        return obj.decode("utf-8", errors="replace")
    return str(obj)


class JSONFormatter(logging.Formatter):
    """
    Render log records as single-line JSON documents.

    Every field passed through ``extra=`` (or injected by
    ContextLoggerAdapter) is collected under an ``extra`` key so that
    aggregators can index upload identifiers and pipeline stages.

    Example output:
        {"timestamp":"2025-01-15T10:30:45.123456+00:00","level":"INFO",
         "logger":"tubely.services.upload_service","message":"Video uploaded",
         "extra":{"video_id":"...","object_key":"landscape/abc.mp4"}}
    """

    RESERVED_ATTRS: frozenset[str] = frozenset(
        {
            "args",
            "asctime",
            "created",
            "exc_info",
            "exc_text",
            "filename",
            "funcName",
            "levelname",
            "levelno",
            "lineno",
            "message",
            "module",
            "msecs",
            "msg",
            "name",
            "pathname",
            "process",
            "processName",
            "relativeCreated",
            "stack_info",
            "thread",
            "threadName",
            "taskName",
        }
    )

    def __init__(self, include_source_location: bool = False) -> None:
        super().__init__()
        self.include_source_location = include_source_location

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(
                timespec="microseconds"
            ),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if self.include_source_location:
            entry["source"] = {
                "filename": record.filename,
                "lineno": record.lineno,
                "function": record.funcName,
            }

        if record.exc_info:
            exc_type, exc_value, _ = record.exc_info
            entry["exception"] = {
                "type": exc_type.__name__ if exc_type else "Unknown",
                "message": str(exc_value) if exc_value else "",
                "traceback": "".join(traceback.format_exception(*record.exc_info)),
            }

        extra = {
            key: value
            for key, value in record.__dict__.items()
            if not key.startswith("_") and key not in self.RESERVED_ATTRS
        }
        if extra:
            entry["extra"] = extra

        return json.dumps(entry, default=_json_default, ensure_ascii=False, separators=(",", ":"))


class StandardFormatter(logging.Formatter):
    """Human-readable formatter: ``[TIMESTAMP] LEVEL logger: message``."""

    DEFAULT_FORMAT: str = "[%(asctime)s] %(levelname)-8s %(name)s: %(message)s"
    DEFAULT_DATE_FORMAT: str = "%Y-%m-%d %H:%M:%S"

    def __init__(self, fmt: str | None = None, datefmt: str | None = None) -> None:
        super().__init__(
            fmt=fmt or self.DEFAULT_FORMAT,
            datefmt=datefmt or self.DEFAULT_DATE_FORMAT,
        )


# =============================================================================
# Application Logging Setup
# =============================================================================


def setup_logging(
    log_level: str = "INFO",
    json_logs: bool = True,
    third_party_level: str = "WARNING",
) -> None:
    """
    Configure application-wide logging.

    Called once from the FastAPI lifespan. Replaces any handlers on the root
    logger, routes Uvicorn's loggers through the same formatter and turns
    down third-party libraries.

    Args:
        log_level: Application log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_logs: Emit JSON when True, plain text otherwise
        third_party_level: Level applied to THIRD_PARTY_LOGGERS
    """
    level = get_log_level_from_string(log_level)

    formatter: logging.Formatter
    if json_logs:
        formatter = JSONFormatter(include_source_location=level <= logging.DEBUG)
    else:
        formatter = StandardFormatter()

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()
    root_logger.addHandler(_stream_handler(sys.stdout, formatter))

    for name in UVICORN_LOGGERS:
        uvicorn_logger = logging.getLogger(name)
        uvicorn_logger.setLevel(level)
        uvicorn_logger.propagate = False
        uvicorn_logger.handlers.clear()
        stream = sys.stderr if name == "uvicorn.error" else sys.stdout
        uvicorn_logger.addHandler(_stream_handler(stream, formatter))

    third_party = get_log_level_from_string(third_party_level)
    for name in THIRD_PARTY_LOGGERS:
        logging.getLogger(name).setLevel(third_party)

    logging.getLogger(__name__).info(
        "Logging configured", extra={"level": log_level.upper(), "json_logs": json_logs}
    )


def _stream_handler(stream: Any, formatter: logging.Formatter) -> logging.StreamHandler:
    handler = logging.StreamHandler(stream)
    handler.setFormatter(formatter)
    return handler


def get_log_level_from_string(level_str: str) -> int:
    """Map a level name to its logging constant, defaulting to INFO."""
    return LOG_LEVEL_MAP.get(level_str.upper(), logging.INFO)


# =============================================================================
# Context Enrichment
# =============================================================================


class ContextLoggerAdapter(logging.LoggerAdapter):
    """
    LoggerAdapter that merges its context into per-call ``extra`` fields.

    The stock adapter replaces ``extra`` outright; this one keeps call-site
    fields and only fills in context keys that are not already present.
    """

    def process(self, msg: Any, kwargs: Any) -> tuple[Any, Any]:
        extra = dict(kwargs.get("extra") or {})
        for key, value in (self.extra or {}).items():
            extra.setdefault(key, value)
        kwargs["extra"] = extra
        return msg, kwargs


def add_log_context(logger: logging.Logger, **context: Any) -> ContextLoggerAdapter:
    """
    Wrap a logger so every record carries the given context fields.

    Args:
        logger: Base logger, usually ``logging.getLogger(__name__)``
        **context: Fields to attach, e.g. ``video_id`` and ``user_id``

    Returns:
        ContextLoggerAdapter bound to the context
    """
    return ContextLoggerAdapter(logger, context)


__all__ = [
    "LOG_LEVEL_MAP",
    "ContextLoggerAdapter",
    "JSONFormatter",
    "StandardFormatter",
    "add_log_context",
    "get_log_level_from_string",
    "setup_logging",
]

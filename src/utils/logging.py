"""
Logging for Scout.

Plain-text or single-line JSON output, chosen by ``SCOUT_LOGGING_JSON_FORMAT``.
Per-request fields (session id, query, operation) are carried in a context
variable, so concurrent sessions on one event loop never tag each other's
records.
"""

import contextvars
import json
import logging
import sys
import traceback
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

from src.config import get_settings


CONTEXT_FIELDS = ("session_id", "query", "operation", "request_id")

QUIET_LOGGERS = ("httpx", "httpcore", "asyncio", "aiosqlite")

_log_context: contextvars.ContextVar[dict[str, Any]] = contextvars.ContextVar(
    "scout_log_context", default={}
)
_base_factory = logging.getLogRecordFactory()


def _context_record_factory(*args, **kwargs) -> logging.LogRecord:
    record = _base_factory(*args, **kwargs)
    for key, value in _log_context.get().items():
        setattr(record, key, value)
    return record


logging.setLogRecordFactory(_context_record_factory)


class JSONFormatter(logging.Formatter):
    """One JSON object per record, with any :data:`CONTEXT_FIELDS` that are set."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if record.exc_info and record.exc_info[0] is not None:
            exc_type, exc, tb = record.exc_info
            entry["exception"] = {
                "type": exc_type.__name__,
                "message": str(exc),
                "traceback": traceback.format_exception(exc_type, exc, tb),
            }

        entry.update(
            (field, getattr(record, field))
            for field in CONTEXT_FIELDS
            if getattr(record, field, None) is not None
        )
        return json.dumps(entry, default=str)


def _build_handlers(formatter: logging.Formatter, log_file: Optional[str]) -> list[logging.Handler]:
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(path))

    for handler in handlers:
        handler.setFormatter(formatter)
    return handlers


def setup_logging(
    level: Optional[str] = None,
    format_string: Optional[str] = None,
    log_file: Optional[str] = None,
) -> None:
    """
    Configure the root logger from ``settings.logging``.

    Explicit arguments override the configured level, text format and log file.
    """
    config = get_settings().logging

    if config.json_format:
        formatter: logging.Formatter = JSONFormatter()
    else:
        formatter = logging.Formatter(format_string or config.format)

    logging.basicConfig(
        level=getattr(logging, (level or config.level).upper()),
        handlers=_build_handlers(formatter, log_file or config.file),
        force=True,
    )

    # httpx logs every request line at INFO
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


class LogContext:
    """
    Attach fields to every record logged inside the block.

    Nested blocks add to the outer fields. The ``logger`` argument is kept for
    readability at call sites; the fields apply to every logger in the current
    task.

    Usage:
        with LogContext(logger, session_id="abc123", operation="optimized_search"):
            logger.info("Merging results")
    """

    def __init__(self, logger: logging.Logger, **context):
        self.logger = logger
        self.context = context
        self._token: Optional[contextvars.Token] = None

    def __enter__(self):
        self._token = _log_context.set({**_log_context.get(), **self.context})
        return self

    def __exit__(self, *args):
        if self._token is not None:
            _log_context.reset(self._token)
            self._token = None

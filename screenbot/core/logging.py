"""
screenbot/core/logging.py

Purpose: Logging configuration

- JSON lines in production, colored single lines in development
- Conversation context (user_id, step, message_id) attached to every
  record through a contextvar, so concurrent background tasks never
  mix up whose message is being logged
"""

import json
import logging
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from screenbot.core.config import Settings, settings


ROOT_LOGGER = "screenbot"

# Field name -> short label used by the development formatter
CONTEXT_FIELDS = {
    "user_id": "user",
    "step": "step",
    "message_id": "msg",
}

NOISY_LOGGERS = ("httpx", "httpcore", "motor", "pymongo", "uvicorn.access")

_log_context: ContextVar[Dict[str, Any]] = ContextVar("screenbot_log_context", default={})


def _context_of(record: logging.LogRecord) -> Dict[str, Any]:
    return {
        field: getattr(record, field)
        for field in CONTEXT_FIELDS
        if getattr(record, field, None) is not None
    }


class ContextFilter(logging.Filter):
    """Copies LogContext fields onto each record; explicit `extra=` wins."""

    def filter(self, record: logging.LogRecord) -> bool:
        for key, value in _log_context.get().items():
            if not hasattr(record, key):
                setattr(record, key, value)
        return True


class StructuredFormatter(logging.Formatter):

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "location": f"{record.module}.{record.funcName}:{record.lineno}",
        }
        entry.update(_context_of(record))

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str, ensure_ascii=False)


class DevelopmentFormatter(logging.Formatter):

    COLORS = {
        "DEBUG": "\033[36m",      # Cyan
        "INFO": "\033[32m",       # Green
        "WARNING": "\033[33m",    # Yellow
        "ERROR": "\033[31m",      # Red
        "CRITICAL": "\033[35m",   # Magenta
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, self.RESET)
        clock = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")
        line = f"{color}[{clock}] {record.levelname:<8}{self.RESET} {record.name}: {record.getMessage()}"

        context = _context_of(record)
        if context:
            tags = ", ".join(f"{CONTEXT_FIELDS[key]}={value}" for key, value in context.items())
            line += f" [{tags}]"

        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)

        return line


def setup_logging(config: Optional[Settings] = None) -> logging.Logger:
    """
    Installs a single stdout handler on the root logger.
    Safe to call more than once; earlier handlers are replaced.
    """
    config = config or settings

    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(ContextFilter())
    handler.setFormatter(StructuredFormatter() if config.is_production else DevelopmentFormatter())

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, config.LOG_LEVEL, logging.INFO))
    root_logger.handlers.clear()
    root_logger.addHandler(handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logger = logging.getLogger(ROOT_LOGGER)
    logger.info(f"Logging configured (environment={config.ENVIRONMENT}, level={config.LOG_LEVEL})")
    return logger


def get_logger(name: str) -> logging.Logger:
    """Logger under the `screenbot` namespace (pass __name__)."""
    if name == ROOT_LOGGER or name.startswith(f"{ROOT_LOGGER}."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")


class LogContext:
    """
    Adds fields to every record logged inside the block.

    Usage:
        with LogContext(user_id="573001234567", step="Q3"):
            logger.info("Processing answer")
    """

    def __init__(self, **fields):
        self.fields = fields
        self._token = None

    def __enter__(self):
        self._token = _log_context.set({**_log_context.get(), **self.fields})
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        _log_context.reset(self._token)


def current_log_context() -> Dict[str, Any]:
    """Copy of the fields currently attached to log records."""
    return dict(_log_context.get())

"""Logging configuration for meigen.

Provides a JSON formatted logger named ``meigen``. Modules log through
``logging.getLogger(__name__)`` and propagate into it.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

LOG_NAME = "meigen"
LOG_FILE = Path("logs/meigen.log")
MAX_BYTES = 5 * 1024 * 1024
BACKUP_COUNT = 5

# Attributes present on every LogRecord. Anything else is considered an extra field.
DEFAULT_LOG_RECORD_ATTRS = {
    "name",
    "msg",
    "args",
    "levelname",
    "levelno",
    "pathname",
    "filename",
    "module",
    "exc_info",
    "exc_text",
    "stack_info",
    "lineno",
    "funcName",
    "created",
    "msecs",
    "relativeCreated",
    "thread",
    "threadName",
    "processName",
    "process",
    "message",
    "asctime",
    "taskName",
}


class JsonFormatter(logging.Formatter):
    """Formatter returning log records as JSON strings."""

    def format(self, record: logging.LogRecord) -> str:  # noqa: D401 - short description
        base: dict[str, Any] = {
            "time": datetime.now(timezone.utc).isoformat(timespec="seconds"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        extras = {
            key: value
            for key, value in record.__dict__.items()
            if key not in DEFAULT_LOG_RECORD_ATTRS
        }
        operation = extras.pop("operation", None)
        if operation is not None:
            base["operation"] = operation
        if extras:
            base["extra"] = extras
        if record.exc_info:
            base["exc"] = self.formatException(record.exc_info)
        return json.dumps(base, ensure_ascii=False, default=str)


def get_logger(log_file: Path | None = None) -> logging.Logger:
    """Return the configured ``meigen`` logger, setting it up on first use."""
    logger = logging.getLogger(LOG_NAME)
    if logger.handlers:
        return logger

    logger.setLevel(logging.DEBUG)

    formatter = JsonFormatter()

    stream_handler = logging.StreamHandler()
    stream_handler.setLevel(logging.WARNING)
    stream_handler.setFormatter(formatter)

    target = log_file or LOG_FILE
    target.parent.mkdir(parents=True, exist_ok=True)
    file_handler = RotatingFileHandler(
        target,
        maxBytes=MAX_BYTES,
        backupCount=BACKUP_COUNT,
        encoding="utf-8",
    )
    file_handler.setLevel(logging.INFO)
    file_handler.setFormatter(formatter)

    logger.addHandler(stream_handler)
    logger.addHandler(file_handler)
    logger.propagate = False
    return logger

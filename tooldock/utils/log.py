"""Logging utilities for tooldock."""

import json
import logging
import os
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional


LOG_LEVEL_ENV_VAR = "TOOLDOCK_LOG_LEVEL"

_LOG_RECORD_FIELDS = {
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
    "stacklevel",
    "taskName",
}


class StructuredFormatter(logging.Formatter):
    """Formatter with ISO timestamps and trailing ``extra`` context."""

    def formatTime(self, record: logging.LogRecord, datefmt: Optional[str] = None) -> str:
        timestamp = datetime.fromtimestamp(record.created, tz=timezone.utc)
        return timestamp.strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z"

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        extras = {
            key: value
            for key, value in record.__dict__.items()
            if key not in _LOG_RECORD_FIELDS and not key.startswith("_")
        }
        if extras:
            try:
                serialized = json.dumps(extras, sort_keys=True, ensure_ascii=True, default=str)
            except (TypeError, ValueError):
                serialized = str(extras)
            return f"{message} | {serialized}"
        return message


class ToolDockLogger:
    """Logger for tooldock."""

    def __init__(self, name: str = "tooldock", log_dir: Optional[Path] = None):
        self.logger = logging.getLogger(name)
        level_name = os.getenv(LOG_LEVEL_ENV_VAR, "WARNING").upper()
        level = getattr(logging, level_name, logging.WARNING)
        # File handlers see everything; the console honours the configured level.
        self.logger.setLevel(logging.DEBUG)
        self.logger.propagate = False

        if not self.logger.handlers:
            console_handler = logging.StreamHandler(sys.stderr)
            console_handler.setLevel(level)
            console_handler.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))
            self.logger.addHandler(console_handler)

        self._file_handler: Optional[logging.Handler] = None
        self._file_handler_path: Optional[Path] = None

        if log_dir:
            self.attach_file_handler(log_file_path(log_dir))

    def attach_file_handler(self, log_file: Path) -> Path:
        """Attach or replace a file handler for logging to disk."""
        log_file.parent.mkdir(parents=True, exist_ok=True)
        if self._file_handler and self._file_handler_path == log_file:
            return log_file

        if self._file_handler:
            self.logger.removeHandler(self._file_handler)
            self._file_handler.close()

        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(StructuredFormatter("%(asctime)s [%(levelname)s] %(message)s"))
        self.logger.addHandler(file_handler)
        self._file_handler = file_handler
        self._file_handler_path = log_file
        return log_file

    def debug(self, message: str, *args: Any, **kwargs: Any) -> None:
        """Log debug message."""
        self.logger.debug(message, *args, **kwargs)

    def info(self, message: str, *args: Any, **kwargs: Any) -> None:
        """Log info message."""
        self.logger.info(message, *args, **kwargs)

    def warning(self, message: str, *args: Any, **kwargs: Any) -> None:
        """Log warning message."""
        self.logger.warning(message, *args, **kwargs)


_logger: Optional[ToolDockLogger] = None


def get_logger() -> ToolDockLogger:
    """Get the process-wide logger instance."""
    global _logger
    if _logger is None:
        _logger = ToolDockLogger()
    return _logger


def log_file_path(log_dir: Path, when: Optional[datetime] = None) -> Path:
    """Build the daily log file path inside ``log_dir``."""
    stamp = (when or datetime.now()).strftime("%Y%m%d")
    return log_dir / f"tooldock_{stamp}.log"


def enable_file_logging(log_dir: Path) -> Path:
    """Ensure the logger also writes to the daily log file under ``log_dir``."""
    logger = get_logger()
    log_file = logger.attach_file_handler(log_file_path(log_dir))
    logger.debug(f"[logging] File logging enabled at {log_file}")
    return log_file

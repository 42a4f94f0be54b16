"""
Logging setup for the Lean Coffee engine.

Services log through ``get_logger(__name__)`` and attach structured
fields as ``extra={"context": {...}}``. Both formatters render that
context: the JSON one as a nested object, the text one as ``key=value``
pairs after the message.
"""

import json
import logging
import sys
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

SERVICE_NAME = "lean-coffee"

# Chatty third-party loggers kept at WARNING unless asked otherwise
LIBRARY_LOGGERS = ("sqlalchemy.engine", "aiosqlite", "asyncio")


def _timestamp(record: logging.LogRecord) -> datetime:
    return datetime.fromtimestamp(record.created, tz=UTC)


class StructuredFormatter(logging.Formatter):
    """One JSON object per record, for log aggregation in production."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": _timestamp(record).isoformat(),
            "service": SERVICE_NAME,
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        context = getattr(record, "context", None)
        if context:
            entry["context"] = context

        if record.levelno >= logging.WARNING:
            entry["location"] = f"{record.module}:{record.funcName}:{record.lineno}"

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


class TextFormatter(logging.Formatter):
    """Single-line colored output for local development."""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, "")
        stamp = _timestamp(record).strftime("%H:%M:%S.%f")[:-3]

        line = f"{stamp} {color}{record.levelname:<8}{self.RESET} {record.name}: {record.getMessage()}"
        context = getattr(record, "context", None)
        if context:
            line += " " + " ".join(f"{key}={value}" for key, value in context.items())
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


def setup_logging(
    level: str = "INFO",
    format_type: str = "json",
    log_file: Path | str | None = None,
    library_level: str = "WARNING",
) -> None:
    """Configure root logging for the server process.

    Args:
        level: Level for the application's own loggers
        format_type: 'json' or 'text'
        log_file: Also write records to this file
        library_level: Level for SQLAlchemy and driver loggers

    Example:
        >>> setup_logging(level="DEBUG", format_type="text")
    """
    formatter: logging.Formatter = (
        StructuredFormatter() if format_type == "json" else TextFormatter()
    )

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(path))

    root_logger = logging.getLogger()
    for old in root_logger.handlers:
        old.close()
    root_logger.handlers.clear()
    root_logger.setLevel(level.upper())
    for handler in handlers:
        handler.setFormatter(formatter)
        root_logger.addHandler(handler)

    for name in LIBRARY_LOGGERS:
        logging.getLogger(name).setLevel(library_level.upper())


def get_logger(name: str) -> logging.Logger:
    """Return the logger for a module (pass ``__name__``)."""
    return logging.getLogger(name)


__all__ = [
    "StructuredFormatter",
    "TextFormatter",
    "setup_logging",
    "get_logger",
]

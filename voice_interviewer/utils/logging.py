"""Logging utilities for the Voice Interviewer."""

import json
import logging
import logging.handlers
import sys
from contextvars import ContextVar
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

# Session id of the interview currently being driven, stamped on every record
session_context: ContextVar[str] = ContextVar("session_context", default="")

_RESERVED_ATTRS = {
    "name", "msg", "args", "levelname", "levelno", "pathname", "filename",
    "module", "lineno", "funcName", "created", "msecs", "relativeCreated",
    "thread", "threadName", "processName", "process", "exc_info", "exc_text",
    "stack_info", "session_id", "taskName", "message",
}


class SessionIdFilter(logging.Filter):
    """Log filter to add the interview session id to log records."""

    def filter(self, record):
        record.session_id = session_context.get()
        return True


class StructuredFormatter(logging.Formatter):
    """JSON formatter for machine-readable logs."""

    def format(self, record):
        log_entry = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "session_id": getattr(record, "session_id", ""),
        }

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS:
                log_entry[key] = value

        return json.dumps(log_entry, ensure_ascii=False, default=str)


class HumanReadableFormatter(logging.Formatter):
    """Human-readable log formatter for console output."""

    def format(self, record):
        timestamp = datetime.fromtimestamp(record.created).strftime("%Y-%m-%d %H:%M:%S")
        level = record.levelname.ljust(8)
        logger_name = record.name.ljust(25)
        session_id = getattr(record, "session_id", "")
        session_str = f"[{session_id}] " if session_id else ""

        message = record.getMessage()
        if record.exc_info:
            message += f"\n{self.formatException(record.exc_info)}"

        return f"{timestamp} | {level} | {logger_name} | {session_str}{message}"


def setup_logging(
    level: str = "INFO",
    log_file: Optional[str] = None,
    enable_console: bool = True,
    enable_file: bool = False,
    structured: bool = False,
    max_file_size: int = 10 * 1024 * 1024,  # 10MB
    backup_count: int = 5
) -> None:
    """Setup logging configuration for the Voice Interviewer.

    Console output goes to stderr so it never interleaves with the
    interviewer's own lines on stdout.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Path to log file
        enable_console: Enable console logging
        enable_file: Enable file logging
        structured: Use structured JSON logging
        max_file_size: Maximum log file size in bytes
        backup_count: Number of backup log files to keep
    """
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    root_logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    formatter = StructuredFormatter() if structured else HumanReadableFormatter()
    session_filter = SessionIdFilter()

    if enable_console:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setFormatter(formatter)
        console_handler.addFilter(session_filter)
        root_logger.addHandler(console_handler)

    if enable_file and log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=max_file_size,
            backupCount=backup_count,
            encoding="utf-8"
        )
        file_handler.setFormatter(formatter)
        file_handler.addFilter(session_filter)
        root_logger.addHandler(file_handler)

    logging.getLogger("asyncio").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)

    logging.getLogger("startup").info("Logging system initialized", extra={
        "level": level,
        "console_enabled": enable_console,
        "file_enabled": enable_file,
        "structured": structured
    })


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance for a component.

    Args:
        name: Logger name

    Returns:
        Logger instance
    """
    return logging.getLogger(name)


def set_session_id(session_id: str) -> None:
    """Set the interview session id for the current context."""
    session_context.set(session_id)


def get_session_id() -> str:
    """Get the interview session id of the current context."""
    return session_context.get()


def log_performance(operation: str, duration: float, details: Optional[Dict[str, Any]] = None) -> None:
    """Log how long an operation took.

    Args:
        operation: Name of the operation
        duration: Duration in seconds
        details: Additional performance details
    """
    extra = {
        "operation": operation,
        "duration_seconds": duration,
    }
    if details:
        extra.update(details)

    get_logger("performance").info(f"Performance: {operation} took {duration:.3f}s", extra=extra)

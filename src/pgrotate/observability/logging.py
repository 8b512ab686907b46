"""
Structured logging configuration for pgrotate.

Provides consistent, structured logging across all modules
with support for different output formats and log levels.
"""

from __future__ import annotations

import json
import logging
import os
import sys
from datetime import datetime, timezone
from typing import Any

# LogRecord attributes that are not user supplied extra fields
_RESERVED_ATTRS = frozenset(
    (
        "name",
        "msg",
        "args",
        "created",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "module",
        "msecs",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "stack_info",
        "exc_info",
        "exc_text",
        "thread",
        "threadName",
        "taskName",
        "message",
    )
)


class StructuredFormatter(logging.Formatter):
    """
    Formatter that outputs structured JSON logs.

    One JSON object per line, which CloudWatch Logs Insights can
    query field by field.
    """

    def __init__(
        self,
        include_timestamp: bool = True,
        include_level: bool = True,
        include_logger: bool = True,
        include_location: bool = False,
        extra_fields: dict[str, Any] | None = None,
    ):
        """
        Initialize structured formatter.

        Args:
            include_timestamp: Include timestamp in output
            include_level: Include log level in output
            include_logger: Include logger name in output
            include_location: Include file/line location
            extra_fields: Additional fields to include in every log
        """
        super().__init__()
        self.include_timestamp = include_timestamp
        self.include_level = include_level
        self.include_logger = include_logger
        self.include_location = include_location
        self.extra_fields = extra_fields or {}

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data: dict[str, Any] = {}

        if self.include_timestamp:
            log_data["timestamp"] = (
                datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")
            )

        if self.include_level:
            log_data["level"] = record.levelname.lower()

        if self.include_logger:
            log_data["logger"] = record.name

        log_data["message"] = record.getMessage()

        if self.include_location:
            log_data["location"] = {
                "file": record.pathname,
                "line": record.lineno,
                "function": record.funcName,
            }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS:
                log_data[key] = value

        log_data.update(self.extra_fields)

        return json.dumps(log_data, default=str)


class HumanReadableFormatter(logging.Formatter):
    """
    Formatter that outputs human-readable logs.

    Used by the CLI and for local runs.
    """

    COLORS = {
        "DEBUG": "\033[36m",  # Cyan
        "INFO": "\033[32m",  # Green
        "WARNING": "\033[33m",  # Yellow
        "ERROR": "\033[31m",  # Red
        "CRITICAL": "\033[35m",  # Magenta
    }
    RESET = "\033[0m"

    def __init__(
        self,
        use_colors: bool = True,
        include_timestamp: bool = True,
        include_level: bool = True,
    ):
        super().__init__()
        self.use_colors = use_colors and sys.stdout.isatty()
        self.include_timestamp = include_timestamp
        self.include_level = include_level

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as human-readable text."""
        parts = []

        if self.include_timestamp:
            timestamp = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")
            parts.append(f"[{timestamp}]")

        if self.include_level:
            level = record.levelname
            if self.use_colors and level in self.COLORS:
                level = f"{self.COLORS[level]}{level}{self.RESET}"
            parts.append(f"{level:>8}")

        parts.append(f"{record.name}:")
        parts.append(record.getMessage())

        output = " ".join(parts)

        if record.exc_info:
            output += "\n" + self.formatException(record.exc_info)

        return output


class RotationLogger:
    """
    Wrapper around Python logging for rotation events.

    Holds context fields (secret id, token, step) that are attached to
    every line, and provides one helper per phase lifecycle event.
    """

    def __init__(self, name: str, level: int = logging.NOTSET):
        """
        Initialize rotation logger.

        Args:
            name: Logger name
            level: Log level; NOTSET defers to the package logger
        """
        self.logger = logging.getLogger(name)
        self.logger.setLevel(level)
        self._context: dict[str, Any] = {}

    def set_context(self, **kwargs: Any) -> None:
        """Set persistent context fields for all logs."""
        self._context.update(kwargs)

    def clear_context(self) -> None:
        """Clear context fields."""
        self._context.clear()

    def _log(
        self,
        level: int,
        message: str,
        exc_info: bool = False,
        **kwargs: Any,
    ) -> None:
        extra = {**self._context, **kwargs}
        self.logger.log(level, message, exc_info=exc_info, extra=extra)

    def debug(self, message: str, **kwargs: Any) -> None:
        """Log debug message."""
        self._log(logging.DEBUG, message, **kwargs)

    def info(self, message: str, **kwargs: Any) -> None:
        """Log info message."""
        self._log(logging.INFO, message, **kwargs)

    def warning(self, message: str, **kwargs: Any) -> None:
        """Log warning message."""
        self._log(logging.WARNING, message, **kwargs)

    def error(self, message: str, exc_info: bool = False, **kwargs: Any) -> None:
        """Log error message."""
        self._log(logging.ERROR, message, exc_info=exc_info, **kwargs)

    def phase_started(self, secret_id: str, token: str, step: str) -> None:
        """Log phase start event."""
        self.info(
            f"{step}: started",
            event_type="rotation.phase.started",
            secret_id=secret_id,
            token=token,
            step=step,
        )

    def phase_completed(
        self,
        secret_id: str,
        token: str,
        step: str,
        duration_seconds: float,
    ) -> None:
        """Log phase completion event."""
        self.info(
            f"{step}: completed",
            event_type="rotation.phase.completed",
            secret_id=secret_id,
            token=token,
            step=step,
            duration_seconds=round(duration_seconds, 3),
        )

    def phase_failed(
        self,
        secret_id: str,
        token: str,
        step: str,
        error: BaseException,
        duration_seconds: float,
    ) -> None:
        """Log phase failure event."""
        self.error(
            f"{step}: failed: {error}",
            event_type="rotation.phase.failed",
            secret_id=secret_id,
            token=token,
            step=step,
            error_type=type(error).__name__,
            duration_seconds=round(duration_seconds, 3),
        )


def configure_logging(
    level: str = "INFO",
    format: str = "json",
    output: str = "stderr",
    extra_fields: dict[str, Any] | None = None,
) -> None:
    """
    Configure logging for pgrotate.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        format: Output format (human, json)
        output: Output destination (stderr, stdout)
        extra_fields: Extra fields to include in structured logs
    """
    root_logger = logging.getLogger("pgrotate")
    root_logger.setLevel(getattr(logging, level.upper()))

    # The Lambda runtime installs its own handler on the root logger
    root_logger.propagate = False
    root_logger.handlers.clear()

    if output == "stdout":
        handler = logging.StreamHandler(sys.stdout)
    else:
        handler = logging.StreamHandler(sys.stderr)

    if format == "json":
        formatter: logging.Formatter = StructuredFormatter(extra_fields=extra_fields)
    else:
        formatter = HumanReadableFormatter()

    handler.setFormatter(formatter)
    root_logger.addHandler(handler)


def get_logger(name: str) -> RotationLogger:
    """
    Get a pgrotate logger instance.

    Args:
        name: Logger name (typically module name)

    Returns:
        RotationLogger instance
    """
    if not name.startswith("pgrotate"):
        name = f"pgrotate.{name}"
    return RotationLogger(name)


# Configure logging from environment on import
_log_level = os.getenv("PGROTATE_LOG_LEVEL", "INFO")
_log_format = os.getenv("PGROTATE_LOG_FORMAT", "json")
configure_logging(level=_log_level, format=_log_format)

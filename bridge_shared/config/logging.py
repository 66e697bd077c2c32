"""
Centralized structured logging for the bridge.
Uses Python's standard logging with JSON formatting for production.

Loggers obtained through get_logger() accept keyword arguments that are
rendered as structured data:

    logger.info("Broadcast delivered", sent=3, failed=0)
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

from bridge_shared.config.settings import settings


class StructuredFormatter(logging.Formatter):
    """
    JSON formatter for structured logging.
    Outputs logs in a format easily parseable by log aggregation tools.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        # Add extra fields if present
        if getattr(record, "extra_data", None):
            log_data["data"] = record.extra_data

        # Add exception info if present
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        # Add source location in debug mode
        if settings.debug:
            log_data["source"] = {
                "file": record.filename,
                "line": record.lineno,
                "function": record.funcName,
            }

        return json.dumps(log_data, default=str)


class DevelopmentFormatter(logging.Formatter):
    """Human-readable, colored formatter for development."""

    COLORS = {
        "DEBUG": "\033[36m",     # Cyan
        "INFO": "\033[32m",      # Green
        "WARNING": "\033[33m",   # Yellow
        "ERROR": "\033[31m",     # Red
        "CRITICAL": "\033[35m",  # Magenta
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, self.RESET)
        timestamp = datetime.now().strftime("%H:%M:%S")

        message = f"{color}[{timestamp}] {record.levelname:8}{self.RESET} {record.name}: {record.getMessage()}"

        extra_data = getattr(record, "extra_data", None)
        if extra_data:
            data_str = " | ".join(f"{k}={v}" for k, v in extra_data.items())
            message += f" ({data_str})"

        if record.exc_info:
            message += f"\n{self.formatException(record.exc_info)}"

        return message


class StructuredLogger(logging.Logger):
    """
    Custom logger that supports structured data.
    """

    def _log_with_data(
        self,
        level: int,
        msg: str,
        args: tuple,
        exc_info: Any = None,
        extra: dict | None = None,
        stacklevel: int = 1,
        **kwargs: Any,
    ) -> None:
        """Log with optional structured data."""
        if not self.isEnabledFor(level):
            return
        if extra is None:
            extra = {}
        extra["extra_data"] = kwargs if kwargs else None
        # +2 skips this helper and the level method so records point at the caller
        super()._log(level, msg, args, exc_info=exc_info, extra=extra, stacklevel=stacklevel + 2)

    def debug(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._log_with_data(logging.DEBUG, msg, args, **kwargs)

    def info(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._log_with_data(logging.INFO, msg, args, **kwargs)

    def warning(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._log_with_data(logging.WARNING, msg, args, **kwargs)

    def error(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._log_with_data(logging.ERROR, msg, args, **kwargs)

    def critical(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._log_with_data(logging.CRITICAL, msg, args, **kwargs)


# Set custom logger class
logging.setLoggerClass(StructuredLogger)


def _resolve_level() -> int:
    if settings.log_level:
        level = logging.getLevelName(settings.log_level.upper())
        if isinstance(level, int):
            return level
    return logging.DEBUG if settings.debug else logging.INFO


def setup_logging() -> None:
    """
    Configure logging for the application.
    Call this once at application startup.
    """
    log_level = _resolve_level()

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(log_level)

    # Use appropriate formatter based on environment
    if settings.environment == "production":
        formatter = StructuredFormatter()
    else:
        formatter = DevelopmentFormatter()

    handler.setFormatter(formatter)

    # Configure root logger
    root = logging.getLogger()
    root.setLevel(log_level)
    root.handlers.clear()
    root.addHandler(handler)

    # Reduce noise from third-party libraries
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.error").setLevel(logging.INFO)
    logging.getLogger("paho").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


def get_logger(name: str) -> StructuredLogger:
    """
    Get a logger instance with the given name.

    Usage:
        from bridge_shared.config.logging import get_logger
        logger = get_logger(__name__)

        logger.info("Client connected", connection_id=conn.id, total=3)
        logger.error("Relay failure", topic=topic, exc_info=True)
    """
    return logging.getLogger(name)  # type: ignore


# Pre-configured logger for the service
bridge_logger = get_logger("telemetry_bridge")

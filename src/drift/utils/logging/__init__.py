"""
Drift Logging Package.

Structured logging with rich console rendering. Modules log through the
shared ``logger``, passing the component and operation so output can be
filtered and styled.
"""

import logging
from typing import Dict, Any, Optional, List

from drift.utils.logging.console import console
from drift.utils.logging.logger import Logger
from drift.utils.logging.formatter import (
    DriftLogRecord,
    DriftLogFormatter,
    SimpleLogFormatter,
    DetailedLogFormatter,
    RichLoggingHandler,
)
from drift.utils.logging.themes import get_status_style

# Global logger instance for importing
logger = Logger("drift")
logger.add_console_handler()


def capture_logs(level: Optional[str] = None) -> "LogCapture":
    """Create a context manager to capture logs.

    Args:
        level: Minimum log level to capture

    Returns:
        Log capture context manager
    """
    return LogCapture(level)


class LogCapture:
    """Context manager collecting Drift log records as dictionaries."""

    def __init__(self, level: Optional[str] = None):
        self.level = level
        self.level_num = logging.getLevelName(self.level.upper()) if self.level else 0
        self.logs: List[Dict[str, Any]] = []
        self.handler = _CaptureHandler(self)
        self._previous_level: Optional[int] = None

    def __enter__(self) -> "LogCapture":
        drift_logger = logging.getLogger("drift")
        self._previous_level = drift_logger.level
        if self.level_num:
            drift_logger.setLevel(min(self.level_num, drift_logger.level or self.level_num))
        drift_logger.addHandler(self.handler)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        drift_logger = logging.getLogger("drift")
        drift_logger.removeHandler(self.handler)
        if self._previous_level is not None:
            drift_logger.setLevel(self._previous_level)

    def get_logs(self, level: Optional[str] = None) -> List[Dict[str, Any]]:
        if not level:
            return self.logs
        level_num = logging.getLevelName(level.upper())
        return [log for log in self.logs if log["levelno"] >= level_num]

    def get_messages(self, level: Optional[str] = None) -> List[str]:
        return [log["message"] for log in self.get_logs(level)]

    def contains(self, text: str, level: Optional[str] = None) -> bool:
        """Check if captured logs contain a specific text."""
        return any(text in message for message in self.get_messages(level))


class _CaptureHandler(logging.Handler):
    def __init__(self, capture: LogCapture):
        super().__init__(level=logging.DEBUG)
        self.capture = capture

    def emit(self, record: logging.LogRecord) -> None:
        if record.levelno < self.capture.level_num:
            return
        self.capture.logs.append({
            "level": record.levelname.lower(),
            "levelno": record.levelno,
            "message": record.getMessage(),
            "component": getattr(record, "component", None),
            "operation": getattr(record, "operation", None),
            "context": getattr(record, "context", None),
        })


__all__ = [
    "console",
    "logger",
    "Logger",
    "capture_logs",
    "LogCapture",
    "get_status_style",
    "DriftLogRecord",
    "DriftLogFormatter",
    "SimpleLogFormatter",
    "DetailedLogFormatter",
    "RichLoggingHandler",
]

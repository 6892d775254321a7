"""
Main Logger class for Drift.

The Logger wraps a standard library logger and forwards Drift-specific
fields (component, operation, context) as ``extra`` so that the Rich handler
can render them.
"""
import logging
from typing import Any, Dict, Optional, Tuple

from .console import console as default_console
from .formatter import DriftLogFormatter, RichLoggingHandler

LEVEL_MAP = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "critical": logging.CRITICAL,
}

# "success" is an info record rendered with its own emoji and style
SUCCESS = logging.INFO + 5
logging.addLevelName(SUCCESS, "SUCCESS")


class Logger:
    """Structured logger for Drift with rich console output."""

    def __init__(self, name: str = "drift", level: str = "info", component: Optional[str] = None):
        """Initialize the Drift logger.

        Args:
            name: Logger name
            level: Initial log level
            component: Default component name
        """
        self.name = name
        self.component = component
        self.python_logger = logging.getLogger(name)
        self.set_level(level)

    def set_level(self, level: str) -> None:
        """Set the log level (debug, info, warning, error, critical)."""
        self.level = level.lower()
        self.python_logger.setLevel(LEVEL_MAP.get(self.level, logging.INFO))

    def get_level(self) -> str:
        return self.level

    def add_console_handler(self, formatter: Optional[DriftLogFormatter] = None) -> RichLoggingHandler:
        """Attach the Rich console handler, or swap the formatter of the one attached.

        Args:
            formatter: Formatter for console records (detailed by default)

        Returns:
            The handler in use
        """
        for handler in self.python_logger.handlers:
            if isinstance(handler, RichLoggingHandler):
                if formatter is not None:
                    handler.drift_formatter = formatter
                return handler
        handler = RichLoggingHandler(
            console=default_console,
            formatter=formatter,
            show_path=False,
            rich_tracebacks=True,
        )
        self.python_logger.addHandler(handler)
        self.python_logger.propagate = False
        return handler

    def _log(
        self,
        level: int,
        message: str,
        component: Optional[str],
        operation: Optional[str],
        context: Optional[Dict[str, Any]],
        exc_info: Optional[Tuple] = None,
    ) -> None:
        extras = {
            "component": component or self.component,
            "operation": operation,
            "context": context,
        }
        self.python_logger.log(level, message, exc_info=exc_info, extra=extras)

    def debug(self, message: str, component: Optional[str] = None, operation: Optional[str] = None,
              context: Optional[Dict[str, Any]] = None) -> None:
        self._log(logging.DEBUG, message, component, operation, context)

    def info(self, message: str, component: Optional[str] = None, operation: Optional[str] = None,
             context: Optional[Dict[str, Any]] = None) -> None:
        self._log(logging.INFO, message, component, operation, context)

    def success(self, message: str, component: Optional[str] = None, operation: Optional[str] = None,
                context: Optional[Dict[str, Any]] = None) -> None:
        self._log(SUCCESS, message, component, operation, context)

    def warning(self, message: str, component: Optional[str] = None, operation: Optional[str] = None,
                context: Optional[Dict[str, Any]] = None) -> None:
        self._log(logging.WARNING, message, component, operation, context)

    def error(
        self,
        message: str,
        component: Optional[str] = None,
        operation: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        exception: Optional[BaseException] = None,
    ) -> None:
        """Log an error message.

        Args:
            message: Log message
            component: Drift component (storage, cache, service, ...)
            operation: Operation being performed
            context: Additional contextual data
            exception: Optional exception that caused the error; its
                traceback is rendered by the console handler
        """
        exc_info = (type(exception), exception, exception.__traceback__) if exception else None
        self._log(logging.ERROR, message, component, operation, context, exc_info)

    def critical(
        self,
        message: str,
        component: Optional[str] = None,
        operation: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        exception: Optional[BaseException] = None,
    ) -> None:
        exc_info = (type(exception), exception, exception.__traceback__) if exception else None
        self._log(logging.CRITICAL, message, component, operation, context, exc_info)

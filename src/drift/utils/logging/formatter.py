"""
Log formatters for the Drift logging system.

A ``logging.LogRecord`` is first lifted into a :class:`DriftLogRecord`, which
carries the component/operation/context fields passed to the Drift logger.
Formatters turn that record into a Rich renderable, and
:class:`RichLoggingHandler` hands the renderable to the console.
"""
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from rich.console import Console, ConsoleRenderable, Group
from rich.logging import RichHandler
from rich.panel import Panel
from rich.style import Style
from rich.table import Table
from rich.text import Text
from rich.traceback import Traceback

from .emojis import LEVEL_EMOJIS, UNKNOWN, get_emoji
from .themes import get_component_style, get_level_style

# Collections longer than this are summarized in the context table
MAX_INLINE_ITEMS = 5


@dataclass
class DriftLogRecord:
    """A log entry with Drift's structured fields."""

    level: str
    message: str
    component: Optional[str] = None
    operation: Optional[str] = None
    context: Dict[str, Any] = field(default_factory=dict)
    exception_info: Optional[Tuple] = None
    timestamp: float = field(default_factory=time.time)
    custom_emoji: Optional[str] = None

    def __post_init__(self) -> None:
        self.level = self.level.lower()
        if self.component:
            self.component = self.component.lower()
        if self.operation:
            self.operation = self.operation.lower()
        if self.context is None:
            self.context = {}

    @classmethod
    def from_logging_record(cls, record: logging.LogRecord) -> "DriftLogRecord":
        """Build a Drift record from a standard library record and its ``extra`` fields."""
        return cls(
            level=record.levelname,
            message=record.getMessage(),
            component=getattr(record, "component", None),
            operation=getattr(record, "operation", None),
            context=getattr(record, "context", None) or {},
            exception_info=record.exc_info or None,
            timestamp=record.created,
            custom_emoji=getattr(record, "emoji", None),
        )

    @property
    def emoji(self) -> str:
        """Operation emoji when one is registered, else the level emoji."""
        if self.custom_emoji:
            return self.custom_emoji
        if self.operation:
            found = get_emoji("operation", self.operation)
            if found != UNKNOWN:
                return found
        return LEVEL_EMOJIS.get(self.level, UNKNOWN)

    @property
    def style(self) -> Style:
        return get_level_style(self.level)

    @property
    def is_failure(self) -> bool:
        return self.level in ("error", "critical")

    def clock(self) -> str:
        return datetime.fromtimestamp(self.timestamp).strftime("%H:%M:%S.%f")[:-3]


class DriftLogFormatter:
    """Base formatter producing a one-line header for a record."""

    def __init__(self, show_time: bool = True, show_level: bool = True, show_component: bool = True):
        self.show_time = show_time
        self.show_level = show_level
        self.show_component = show_component

    def format_header(self, record: DriftLogRecord) -> Text:
        parts: List[Tuple[str, Any]] = []
        if self.show_time:
            parts.append((f"[{record.clock()}] ", "timestamp"))
        parts.append((f"{record.emoji} ", record.style))
        if self.show_level:
            parts.append((f"[{record.level.upper()}] ", record.style))
        if self.show_component and record.component:
            parts.append((f"[{record.component}] ", get_component_style(record.component)))
        if record.operation:
            parts.append((f"{record.operation}: ", "operation"))
        parts.append((record.message, ""))
        return Text.assemble(*parts)

    def format_record(self, record: DriftLogRecord) -> ConsoleRenderable:
        raise NotImplementedError


class SimpleLogFormatter(DriftLogFormatter):
    """Single-line output used by the CLI by default."""

    def format_record(self, record: DriftLogRecord) -> Text:
        return self.format_header(record)


def _context_table(context: Dict[str, Any]) -> Table:
    table = Table.grid(padding=(0, 1))
    table.add_column(style="muted")
    table.add_column()
    for key, value in context.items():
        if isinstance(value, (dict, list, tuple, set)) and len(value) > MAX_INLINE_ITEMS:
            value = f"<{len(value)} {type(value).__name__} items>"
        table.add_row(f"  {key}", str(value))
    return table


class DetailedLogFormatter(DriftLogFormatter):
    """Header plus context table and traceback; failures are boxed in a panel."""

    def __init__(
        self,
        show_time: bool = True,
        show_level: bool = True,
        show_component: bool = True,
        show_context: bool = True,
    ):
        super().__init__(show_time, show_level, show_component)
        self.show_context = show_context

    def format_record(self, record: DriftLogRecord) -> ConsoleRenderable:
        """Render a record with whatever detail it carries.

        Args:
            record: The record to render

        Returns:
            A Panel for errors with detail, a Group for other records with
            detail, or the bare header Text
        """
        body: List[ConsoleRenderable] = [self.format_header(record)]
        if self.show_context and record.context:
            body.append(_context_table(record.context))
        if record.exception_info is not None:
            body.append(Traceback.from_exception(*record.exception_info))

        if len(body) == 1:
            return body[0]
        if record.is_failure:
            return Panel(
                Group(*body),
                title=f"{record.level.upper()} in {record.component or 'drift'}",
                border_style=record.style,
            )
        return Group(*body)


class RichLoggingHandler(RichHandler):
    """RichHandler that renders through a Drift formatter."""

    def __init__(
        self,
        level: int = logging.NOTSET,
        console: Optional[Console] = None,
        formatter: Optional[DriftLogFormatter] = None,
        **kwargs
    ):
        super().__init__(level=level, console=console, **kwargs)
        self.drift_formatter = formatter or DetailedLogFormatter(show_time=False)

    def render(
        self,
        *,
        record: logging.LogRecord,
        traceback: Optional[Traceback],
        message_renderable: ConsoleRenderable,
    ) -> ConsoleRenderable:
        return self.drift_formatter.format_record(DriftLogRecord.from_logging_record(record))

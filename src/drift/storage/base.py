"""
Pattern repository contract for Drift.

This module defines the storage abstraction every backend implements
(in-memory, legacy per-status files, unified per-category files and the
caching decorator), the query types accepted by ``query()``, the pure
filter/sort/paginate functions all backends share, and the synchronous
event emitter used to notify consumers of mutations.
"""
from abc import ABC, abstractmethod
from collections import defaultdict
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Literal, Optional, Union

from pydantic import BaseModel, Field

from drift.patterns.models import (
    ConfidenceLevel,
    Pattern,
    PatternStatus,
    PatternSummary,
    PatchLike,
    Severity,
    SEVERITY_ORDER,
    parse_timestamp,
    to_pattern_summary,
)
from drift.utils.logging import logger


# ==================== Query Types ====================

SortField = Literal["name", "confidence", "severity", "firstSeen", "lastSeen", "locationCount"]


class PatternFilter(BaseModel):
    """Conjunctive filter over patterns; unset criteria match everything."""

    ids: Optional[List[str]] = Field(None, description="Pattern ids to include")
    categories: Optional[List[str]] = Field(None, description="Categories to include")
    statuses: Optional[List[PatternStatus]] = Field(None, description="Statuses to include")
    min_confidence: Optional[float] = Field(None, description="Minimum confidence (inclusive)")
    max_confidence: Optional[float] = Field(None, description="Maximum confidence (inclusive)")
    confidence_levels: Optional[List[ConfidenceLevel]] = Field(None, description="Confidence levels to include")
    severities: Optional[List[Severity]] = Field(None, description="Severities to include")
    files: Optional[List[str]] = Field(None, description="Patterns with a location in any of these files")
    has_outliers: Optional[bool] = Field(None, description="Whether the pattern has outliers")
    tags: Optional[List[str]] = Field(None, description="Patterns carrying any of these tags")
    search: Optional[str] = Field(None, description="Case-insensitive substring of name or description")
    created_after: Optional[datetime] = Field(None, description="firstSeen at or after this time")
    created_before: Optional[datetime] = Field(None, description="firstSeen at or before this time")


class PatternSort(BaseModel):
    """Sort by a single field."""

    field: SortField = "name"
    direction: Literal["asc", "desc"] = "asc"


class PatternPagination(BaseModel):
    """Offset/limit pagination."""

    offset: int = Field(0, ge=0)
    limit: int = Field(50, ge=0)


class PatternQueryOptions(BaseModel):
    """Complete query: filter, sort and pagination, all optional."""

    filter: Optional[PatternFilter] = None
    sort: Optional[PatternSort] = None
    pagination: Optional[PatternPagination] = None

    def cache_key(self) -> str:
        """Stable string describing the query shape."""
        return self.model_dump_json(exclude_none=True)


class PatternQueryResult(BaseModel):
    """Result of a pattern query."""

    patterns: List[Pattern] = Field(default_factory=list)
    total: int = 0
    has_more: bool = False


QueryLike = Union[PatternQueryOptions, Dict[str, Any], None]
FilterLike = Union[PatternFilter, Dict[str, Any], None]


def coerce_query(options: QueryLike) -> PatternQueryOptions:
    if options is None:
        return PatternQueryOptions()
    if isinstance(options, PatternQueryOptions):
        return options
    return PatternQueryOptions.model_validate(options)


def coerce_filter(filter: FilterLike) -> Optional[PatternFilter]:
    if filter is None or isinstance(filter, PatternFilter):
        return filter
    return PatternFilter.model_validate(filter)


# ==================== Query Evaluation ====================

def matches_filter(pattern: Pattern, filter: Optional[PatternFilter]) -> bool:
    """Check whether a pattern satisfies every criterion of a filter."""
    if filter is None:
        return True
    if filter.ids is not None and pattern.id not in filter.ids:
        return False
    if filter.categories is not None and pattern.category not in filter.categories:
        return False
    if filter.statuses is not None and pattern.status not in filter.statuses:
        return False
    if filter.min_confidence is not None and pattern.confidence < filter.min_confidence:
        return False
    if filter.max_confidence is not None and pattern.confidence > filter.max_confidence:
        return False
    if filter.confidence_levels is not None and pattern.confidence_level not in filter.confidence_levels:
        return False
    if filter.severities is not None and pattern.severity not in filter.severities:
        return False
    if filter.files is not None and not pattern.has_location_in(filter.files):
        return False
    if filter.has_outliers is not None and bool(pattern.outliers) != filter.has_outliers:
        return False
    if filter.tags is not None and not set(filter.tags) & set(pattern.tags):
        return False
    if filter.search:
        needle = filter.search.lower()
        if needle not in pattern.name.lower() and needle not in pattern.description.lower():
            return False
    if filter.created_after is not None or filter.created_before is not None:
        first_seen = parse_timestamp(pattern.first_seen)
        if filter.created_after is not None and first_seen < parse_timestamp(filter.created_after):
            return False
        if filter.created_before is not None and first_seen > parse_timestamp(filter.created_before):
            return False
    return True


_SORT_KEYS: Dict[str, Callable[[Pattern], Any]] = {
    "name": lambda p: p.name.casefold(),
    "confidence": lambda p: p.confidence,
    "severity": lambda p: SEVERITY_ORDER[p.severity],
    "firstSeen": lambda p: parse_timestamp(p.first_seen),
    "lastSeen": lambda p: parse_timestamp(p.last_seen),
    "locationCount": lambda p: len(p.locations),
}


def sort_patterns(patterns: List[Pattern], sort: Optional[PatternSort]) -> List[Pattern]:
    """Stable sort by a single field; no sort keeps insertion order."""
    if sort is None:
        return list(patterns)
    return sorted(patterns, key=_SORT_KEYS[sort.field], reverse=sort.direction == "desc")


def execute_query(patterns: Iterable[Pattern], options: PatternQueryOptions) -> PatternQueryResult:
    """Filter, sort and paginate a collection of patterns.

    ``total`` counts matches before pagination.
    """
    matched = [p for p in patterns if matches_filter(p, options.filter)]
    ordered = sort_patterns(matched, options.sort)
    total = len(ordered)

    if options.pagination is not None:
        start = options.pagination.offset
        end = start + options.pagination.limit
        page = ordered[start:end]
        has_more = end < total
    else:
        page = ordered
        has_more = False

    return PatternQueryResult(patterns=page, total=total, has_more=has_more)


# ==================== Events ====================

class RepositoryEvent(str, Enum):
    """Events emitted by pattern repositories."""

    PATTERN_ADDED = "pattern:added"
    PATTERN_UPDATED = "pattern:updated"
    PATTERN_DELETED = "pattern:deleted"
    PATTERN_APPROVED = "pattern:approved"
    PATTERN_IGNORED = "pattern:ignored"
    PATTERNS_LOADED = "patterns:loaded"
    PATTERNS_SAVED = "patterns:saved"


EventHandler = Callable[[Optional[Pattern], Dict[str, Any]], None]
EventLike = Union[RepositoryEvent, str]


class PatternEventEmitter:
    """Synchronous, ordered observer registry.

    Handlers run in subscription order before the triggering call returns.
    A handler that raises is logged and does not stop later handlers.
    """

    def __init__(self):
        self._handlers: Dict[RepositoryEvent, List[EventHandler]] = defaultdict(list)

    def on(self, event: EventLike, handler: EventHandler) -> None:
        self._handlers[RepositoryEvent(event)].append(handler)

    def off(self, event: EventLike, handler: EventHandler) -> bool:
        """Remove a handler; returns False if it was not subscribed."""
        handlers = self._handlers.get(RepositoryEvent(event), [])
        if handler in handlers:
            handlers.remove(handler)
            return True
        return False

    def listener_count(self, event: EventLike) -> int:
        return len(self._handlers.get(RepositoryEvent(event), []))

    def emit(
        self,
        event: EventLike,
        pattern: Optional[Pattern] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> None:
        event = RepositoryEvent(event)
        for handler in list(self._handlers.get(event, [])):
            try:
                handler(pattern, metadata or {})
            except Exception as e:
                logger.error(
                    f"Event handler for {event.value} failed: {e}",
                    component="storage",
                    operation="emit",
                    context={"event": event.value, "pattern_id": pattern.id if pattern else None},
                    exception=e,
                )


# ==================== Repository Interface ====================

class PatternRepository(ABC):
    """Storage abstraction for patterns.

    All backends (memory, legacy files, unified files, cached) satisfy this
    contract identically. Operations are coroutines; those that only touch
    the in-memory working set do not suspend.
    """

    # Lifecycle

    @abstractmethod
    async def initialize(self) -> None:
        """Create storage and load existing data. Safe to call twice."""

    @abstractmethod
    async def close(self) -> None:
        """Release resources, flushing pending writes if needed."""

    # CRUD

    @abstractmethod
    async def add(self, pattern: Pattern) -> None:
        """Insert a pattern; raises PatternAlreadyExistsError on duplicate id."""

    @abstractmethod
    async def add_many(self, patterns: List[Pattern]) -> None:
        """Insert several patterns atomically."""

    @abstractmethod
    async def get(self, pattern_id: str) -> Optional[Pattern]:
        """Return the pattern or None."""

    @abstractmethod
    async def update(self, pattern_id: str, updates: PatchLike) -> Pattern:
        """Merge a patch; raises PatternNotFoundError if absent."""

    @abstractmethod
    async def delete(self, pattern_id: str) -> bool:
        """Remove a pattern; returns whether anything was removed."""

    # Querying

    @abstractmethod
    async def query(self, options: QueryLike = None) -> PatternQueryResult:
        """Filter, sort and paginate patterns."""

    async def get_by_category(self, category: str) -> List[Pattern]:
        return (await self.query({"filter": {"categories": [category]}})).patterns

    async def get_by_status(self, status: Union[PatternStatus, str]) -> List[Pattern]:
        return (await self.query({"filter": {"statuses": [PatternStatus(status)]}})).patterns

    async def get_by_file(self, file: str) -> List[Pattern]:
        return (await self.query({"filter": {"files": [file]}})).patterns

    async def get_all(self) -> List[Pattern]:
        return (await self.query()).patterns

    async def count(self, filter: FilterLike = None) -> int:
        return (await self.query(PatternQueryOptions(filter=coerce_filter(filter)))).total

    # Status transitions

    @abstractmethod
    async def approve(self, pattern_id: str, approved_by: Optional[str] = None) -> Pattern:
        """Move a pattern to approved."""

    @abstractmethod
    async def ignore(self, pattern_id: str) -> Pattern:
        """Move a pattern to ignored."""

    # Persistence

    @abstractmethod
    async def save_all(self) -> None:
        """Flush the working set to durable storage."""

    @abstractmethod
    async def clear(self) -> None:
        """Remove every pattern, in memory and on disk."""

    # Events

    @abstractmethod
    def on(self, event: EventLike, handler: EventHandler) -> None:
        """Subscribe to a repository event."""

    @abstractmethod
    def off(self, event: EventLike, handler: EventHandler) -> bool:
        """Unsubscribe from a repository event; returns False if the handler was not subscribed."""

    # Utilities

    async def exists(self, pattern_id: str) -> bool:
        return await self.get(pattern_id) is not None

    async def get_summaries(self, options: QueryLike = None) -> List[PatternSummary]:
        """Lightweight projections of the patterns matching a query."""
        result = await self.query(options)
        return [to_pattern_summary(p) for p in result.patterns]

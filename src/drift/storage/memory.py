"""
In-memory pattern repository.

The reference implementation of the repository contract: a single mapping
from id to Pattern with no I/O. The file-backed repositories extend it with
loading and persistence, and it backs the caching decorator in tests.
"""
from typing import Dict, List, Optional, Set

from drift.patterns.models import (
    Pattern,
    PatternStatus,
    PatchLike,
    apply_patch,
    is_valid_transition,
    revalidate_pattern,
    utc_now_iso,
)
from drift.storage.base import (
    EventHandler,
    EventLike,
    PatternEventEmitter,
    PatternQueryResult,
    PatternRepository,
    QueryLike,
    RepositoryEvent,
    coerce_query,
    execute_query,
)
from drift.utils.errors import (
    InvalidStatusTransitionError,
    PatternAlreadyExistsError,
    PatternNotFoundError,
)
from drift.utils.logging import logger


class InMemoryPatternRepository(PatternRepository):
    """Pattern repository holding everything in a dictionary.

    Patterns are copied on the way in and on the way out, so callers can
    never mutate repository state through a returned object.
    """

    def __init__(self):
        self._patterns: Dict[str, Pattern] = {}
        self._events = PatternEventEmitter()
        self._initialized = False

    # Hooks for persistent subclasses

    def _mark_dirty(self, previous: Optional[Pattern], current: Optional[Pattern]) -> None:
        """Called after every mutation with the before/after records."""

    def _after_mutation(self) -> None:
        """Called once per mutating call, after events have been emitted."""

    # Lifecycle

    async def initialize(self) -> None:
        if self._initialized:
            return
        self._initialized = True
        self._events.emit(RepositoryEvent.PATTERNS_LOADED, None, {"count": len(self._patterns)})

    async def close(self) -> None:
        self._initialized = False

    # CRUD

    async def add(self, pattern: Pattern) -> None:
        if pattern.id in self._patterns:
            raise PatternAlreadyExistsError(pattern.id)
        stored = revalidate_pattern(pattern)
        self._patterns[stored.id] = stored
        self._mark_dirty(None, stored)
        self._events.emit(RepositoryEvent.PATTERN_ADDED, stored.model_copy(deep=True))
        self._after_mutation()

    async def add_many(self, patterns: List[Pattern]) -> None:
        # Validate the whole batch before inserting anything.
        seen: Set[str] = set()
        for pattern in patterns:
            if pattern.id in self._patterns or pattern.id in seen:
                raise PatternAlreadyExistsError(pattern.id)
            seen.add(pattern.id)

        stored_batch = [revalidate_pattern(p) for p in patterns]
        for stored in stored_batch:
            self._patterns[stored.id] = stored
            self._mark_dirty(None, stored)
        for stored in stored_batch:
            self._events.emit(
                RepositoryEvent.PATTERN_ADDED,
                stored.model_copy(deep=True),
                {"batch_size": len(stored_batch)},
            )
        if stored_batch:
            self._after_mutation()

    async def get(self, pattern_id: str) -> Optional[Pattern]:
        pattern = self._patterns.get(pattern_id)
        return pattern.model_copy(deep=True) if pattern is not None else None

    async def update(self, pattern_id: str, updates: PatchLike) -> Pattern:
        existing = self._require(pattern_id)
        updated = apply_patch(existing, updates)
        self._patterns[pattern_id] = updated
        self._mark_dirty(existing, updated)
        self._events.emit(RepositoryEvent.PATTERN_UPDATED, updated.model_copy(deep=True))
        self._after_mutation()
        return updated.model_copy(deep=True)

    async def delete(self, pattern_id: str) -> bool:
        existing = self._patterns.pop(pattern_id, None)
        if existing is None:
            return False
        self._mark_dirty(existing, None)
        self._events.emit(RepositoryEvent.PATTERN_DELETED, existing.model_copy(deep=True))
        self._after_mutation()
        return True

    # Querying

    async def query(self, options: QueryLike = None) -> PatternQueryResult:
        result = execute_query(self._patterns.values(), coerce_query(options))
        result.patterns = [p.model_copy(deep=True) for p in result.patterns]
        return result

    async def exists(self, pattern_id: str) -> bool:
        return pattern_id in self._patterns

    # Status transitions

    async def approve(self, pattern_id: str, approved_by: Optional[str] = None) -> Pattern:
        return self._transition(
            pattern_id,
            PatternStatus.APPROVED,
            {"approved_at": utc_now_iso(), "approved_by": approved_by},
            RepositoryEvent.PATTERN_APPROVED,
        )

    async def ignore(self, pattern_id: str) -> Pattern:
        return self._transition(pattern_id, PatternStatus.IGNORED, {}, RepositoryEvent.PATTERN_IGNORED)

    def _transition(
        self,
        pattern_id: str,
        to_status: PatternStatus,
        extra_fields: Dict[str, Optional[str]],
        event: RepositoryEvent,
    ) -> Pattern:
        existing = self._require(pattern_id)
        if not is_valid_transition(existing.status, to_status):
            logger.warning(
                f"Rejected status transition for {pattern_id}",
                component="storage",
                operation=to_status.value,
                context={"pattern_id": pattern_id, "from": existing.status.value, "to": to_status.value},
            )
            raise InvalidStatusTransitionError(pattern_id, existing.status.value, to_status.value)

        updated = existing.model_copy(update={"status": to_status, **extra_fields}, deep=True)
        self._patterns[pattern_id] = updated
        self._mark_dirty(existing, updated)
        self._events.emit(event, updated.model_copy(deep=True), {"previous_status": existing.status.value})
        self._after_mutation()
        return updated.model_copy(deep=True)

    # Persistence

    async def save_all(self) -> None:
        self._events.emit(RepositoryEvent.PATTERNS_SAVED, None, {"count": len(self._patterns)})

    async def clear(self) -> None:
        for pattern in list(self._patterns.values()):
            self._mark_dirty(pattern, None)
        self._patterns.clear()
        self._after_mutation()

    # Events

    def on(self, event: EventLike, handler: EventHandler) -> None:
        self._events.on(event, handler)

    def off(self, event: EventLike, handler: EventHandler) -> bool:
        return self._events.off(event, handler)

    # Helpers

    def _require(self, pattern_id: str) -> Pattern:
        pattern = self._patterns.get(pattern_id)
        if pattern is None:
            raise PatternNotFoundError(pattern_id)
        return pattern

    def __len__(self) -> int:
        return len(self._patterns)

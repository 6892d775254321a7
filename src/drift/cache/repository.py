"""
Caching decorator for pattern repositories.

``CachedPatternRepository`` wraps any repository with two independent TTL
caches: one for ``get`` by id and one for ``query`` results keyed by query
shape. Writes made through the decorator invalidate the affected entries
before returning. Writes made directly on the wrapped repository are not
seen until the entries expire or ``clear_cache`` is called.
"""
from typing import List, Optional

from pydantic import BaseModel

from drift.cache.memory import MemoryCache
from drift.constants import DEFAULT_CACHE_MAX_ENTRIES, DEFAULT_PATTERN_TTL_MS, DEFAULT_QUERY_TTL_MS
from drift.patterns.models import Pattern, PatchLike
from drift.storage.base import (
    EventHandler,
    EventLike,
    PatternQueryResult,
    PatternRepository,
    QueryLike,
    coerce_query,
)
from drift.utils.logging import logger


class CacheStats(BaseModel):
    """Current cache occupancy and hit counters."""

    pattern_cache_size: int
    query_cache_size: int
    pattern_hits: int
    pattern_misses: int
    query_hits: int
    query_misses: int


class CachedPatternRepository(PatternRepository):
    """Pattern repository decorator adding per-id and per-query caches."""

    def __init__(
        self,
        inner: PatternRepository,
        pattern_ttl_ms: int = DEFAULT_PATTERN_TTL_MS,
        query_ttl_ms: int = DEFAULT_QUERY_TTL_MS,
        max_entries: int = DEFAULT_CACHE_MAX_ENTRIES,
    ):
        """
        Wrap a repository.

        Args:
            inner: Repository to delegate to
            pattern_ttl_ms: Lifetime of cached ``get`` results
            query_ttl_ms: Lifetime of cached ``query`` results
            max_entries: Size bound of each cache
        """
        self.inner = inner
        self._patterns = MemoryCache(max_size=max_entries, default_ttl=pattern_ttl_ms / 1000)
        self._queries = MemoryCache(max_size=max_entries, default_ttl=query_ttl_ms / 1000)

    # Lifecycle

    async def initialize(self) -> None:
        await self.inner.initialize()

    async def close(self) -> None:
        self.clear_cache()
        await self.inner.close()

    # Reads

    async def get(self, pattern_id: str) -> Optional[Pattern]:
        cached = self._patterns.get(pattern_id)
        if cached is not None:
            return cached.model_copy(deep=True)
        pattern = await self.inner.get(pattern_id)
        if pattern is not None:
            self._patterns.set(pattern_id, pattern.model_copy(deep=True))
        return pattern

    async def query(self, options: QueryLike = None) -> PatternQueryResult:
        key = coerce_query(options).cache_key()
        cached = self._queries.get(key)
        if cached is not None:
            return cached.model_copy(deep=True)
        result = await self.inner.query(options)
        self._queries.set(key, result.model_copy(deep=True))
        return result

    # Writes

    async def add(self, pattern: Pattern) -> None:
        await self.inner.add(pattern)
        self._invalidate([pattern.id])

    async def add_many(self, patterns: List[Pattern]) -> None:
        try:
            await self.inner.add_many(patterns)
        finally:
            self._invalidate([p.id for p in patterns])

    async def update(self, pattern_id: str, updates: PatchLike) -> Pattern:
        updated = await self.inner.update(pattern_id, updates)
        self._invalidate([pattern_id])
        return updated

    async def delete(self, pattern_id: str) -> bool:
        deleted = await self.inner.delete(pattern_id)
        self._invalidate([pattern_id])
        return deleted

    async def approve(self, pattern_id: str, approved_by: Optional[str] = None) -> Pattern:
        approved = await self.inner.approve(pattern_id, approved_by)
        self._invalidate([pattern_id])
        return approved

    async def ignore(self, pattern_id: str) -> Pattern:
        ignored = await self.inner.ignore(pattern_id)
        self._invalidate([pattern_id])
        return ignored

    async def save_all(self) -> None:
        await self.inner.save_all()

    async def clear(self) -> None:
        await self.inner.clear()
        self.clear_cache()

    # Events

    def on(self, event: EventLike, handler: EventHandler) -> None:
        self.inner.on(event, handler)

    def off(self, event: EventLike, handler: EventHandler) -> bool:
        return self.inner.off(event, handler)

    # Cache control

    def _invalidate(self, pattern_ids: List[str]) -> None:
        for pattern_id in pattern_ids:
            self._patterns.delete(pattern_id)
        dropped = self._queries.clear()
        logger.debug(
            f"Invalidated {len(pattern_ids)} pattern entries and {dropped} query entries",
            component="cache",
            operation="invalidate",
        )

    def clear_cache(self) -> None:
        """Drop every cached pattern and query result."""
        self._patterns.clear()
        self._queries.clear()

    def get_cache_stats(self) -> CacheStats:
        self._patterns.cleanup()
        self._queries.cleanup()
        return CacheStats(
            pattern_cache_size=len(self._patterns),
            query_cache_size=len(self._queries),
            pattern_hits=self._patterns.hits,
            pattern_misses=self._patterns.misses,
            query_hits=self._queries.hits,
            query_misses=self._queries.misses,
        )

"""
Drift Cache Package.

TTL caches and the caching repository decorator.
"""

from drift.cache.memory import CacheEntry, MemoryCache
from drift.cache.repository import CacheStats, CachedPatternRepository

__all__ = [
    "CacheEntry",
    "MemoryCache",
    "CacheStats",
    "CachedPatternRepository",
]

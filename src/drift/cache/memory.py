"""
TTL memory cache primitives used by the repository cache.
"""
import time
from dataclasses import dataclass, field
from threading import RLock
from typing import Any, Callable, Dict, List, Optional


@dataclass
class CacheEntry:
    """A cached value with its insertion time and time-to-live."""

    key: str
    value: Any
    timestamp: float
    ttl: Optional[float] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def age(self) -> float:
        """Age of the entry in seconds."""
        return time.monotonic() - self.timestamp

    @property
    def is_expired(self) -> bool:
        if self.ttl is None:
            return False
        return self.age >= self.ttl


class MemoryCache:
    """In-memory cache with per-entry TTL and a size bound."""

    def __init__(self, max_size: int = 1000, default_ttl: Optional[float] = None):
        """Initialize the memory cache.

        Args:
            max_size: Maximum number of entries to keep
            default_ttl: Default time-to-live in seconds (None for no expiration)
        """
        self._cache: Dict[str, CacheEntry] = {}
        self._lock = RLock()
        self.max_size = max_size
        self.default_ttl = default_ttl
        self.hits = 0
        self.misses = 0

    def get(self, key: str) -> Optional[Any]:
        """Get a value, or None if missing or expired."""
        with self._lock:
            entry = self._cache.get(key)

            if entry is None:
                self.misses += 1
                return None

            if entry.is_expired:
                self._cache.pop(key)
                self.misses += 1
                return None

            self.hits += 1
            return entry.value

    def set(
        self,
        key: str,
        value: Any,
        ttl: Optional[float] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Store a value.

        Args:
            key: Cache key
            value: Value to cache
            ttl: Time-to-live in seconds (None for default TTL)
            metadata: Additional metadata to store with the value
        """
        if self.max_size <= 0:
            return
        with self._lock:
            if len(self._cache) >= self.max_size and key not in self._cache:
                self._evict()

            self._cache[key] = CacheEntry(
                key=key,
                value=value,
                timestamp=time.monotonic(),
                ttl=ttl if ttl is not None else self.default_ttl,
                metadata=metadata or {},
            )

    def delete(self, key: str) -> bool:
        """Delete an entry; returns whether it was present."""
        with self._lock:
            return self._cache.pop(key, None) is not None

    def delete_where(self, predicate: Callable[[CacheEntry], bool]) -> int:
        """Delete every entry matching a predicate; returns how many."""
        with self._lock:
            doomed = [key for key, entry in self._cache.items() if predicate(entry)]
            for key in doomed:
                del self._cache[key]
            return len(doomed)

    def clear(self) -> int:
        """Clear all entries; returns how many were removed."""
        with self._lock:
            count = len(self._cache)
            self._cache.clear()
            return count

    def _evict(self) -> None:
        # Expired entries first, then the oldest.
        self.cleanup()
        if len(self._cache) >= self.max_size:
            oldest = sorted(self._cache, key=lambda k: self._cache[k].timestamp)
            for key in oldest[: len(self._cache) - self.max_size + 1]:
                del self._cache[key]

    def cleanup(self) -> int:
        """Remove expired entries; returns how many were removed."""
        return self.delete_where(lambda entry: entry.is_expired)

    def __len__(self) -> int:
        return len(self._cache)

    def get_stats(self) -> Dict[str, Any]:
        with self._lock:
            lookups = self.hits + self.misses
            return {
                "size": len(self._cache),
                "max_size": self.max_size,
                "hits": self.hits,
                "misses": self.misses,
                "hit_ratio": self.hits / lookups if lookups else 0,
            }

    def get_keys(self) -> List[str]:
        with self._lock:
            return list(self._cache.keys())

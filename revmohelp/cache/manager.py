"""
In-memory TTL cache with glob-pattern invalidation.
"""
import fnmatch
import logging
import threading
import time
from typing import Any, Callable, Dict, List

from .core import CacheEntry, CacheStats

logger = logging.getLogger("cache.manager")

# Returned by get() when no default is supplied and the key is absent
MISSING = object()


class CacheManager:
    """
    Process-wide key/value store with per-entry expiry.

    - get() never returns an expired value; expired entries are evicted lazily
    - set() overwrites any previous entry for the key
    - delete() and invalidate_pattern() never fail on unknown keys
    - Thread-safe: FastAPI runs sync endpoints on a worker pool

    One instance is built at application start and handed to every
    repository, so tests can build their own isolated instances.
    """

    def __init__(
        self,
        clock: Callable[[], float] = time.monotonic,
        enabled: bool = True,
    ):
        """
        Initialize the cache manager.

        Args:
            clock: Returns the current time in seconds
            enabled: When False, set() is a no-op and every get() misses
        """
        self._cache: Dict[str, CacheEntry] = {}
        self._cache_lock = threading.RLock()
        self._clock = clock
        self.enabled = enabled
        self._stats = CacheStats()

    def get(self, key: str, default: Any = MISSING) -> Any:
        """
        Return the cached value for key, or default if absent or expired.
        """
        with self._cache_lock:
            entry = self._cache.get(key)

            if entry is None:
                self._stats.misses += 1
                return default

            now = self._clock()
            if entry.is_expired(now):
                del self._cache[key]
                self._stats.expirations += 1
                self._stats.misses += 1
                logger.debug(f"CACHE EXPIRED: {key} [age={entry.age_seconds(now):.1f}s]")
                return default

            self._stats.hits += 1
            logger.debug(f"CACHE HIT: {key} [age={entry.age_seconds(now):.1f}s]")
            return entry.value

    def set(self, key: str, value: Any, ttl_seconds: float) -> None:
        """Store value under key for ttl_seconds."""
        if not self.enabled:
            return
        now = self._clock()
        entry = CacheEntry(
            key=key,
            value=value,
            stored_at=now,
            expires_at=now + ttl_seconds,
        )
        with self._cache_lock:
            self._cache[key] = entry

    def delete(self, key: str) -> bool:
        """
        Remove a single entry.

        Returns:
            True if the entry existed
        """
        with self._cache_lock:
            if key in self._cache:
                del self._cache[key]
                self._stats.invalidations += 1
                logger.info(f"Invalidated cache: {key}")
                return True
            return False

    def invalidate_pattern(self, pattern: str) -> int:
        """
        Remove every entry whose key matches a glob pattern.

        Args:
            pattern: fnmatch-style pattern, e.g. "doctor_reviews.D1.*"

        Returns:
            Number of entries invalidated
        """
        with self._cache_lock:
            to_delete = [k for k in self._cache if fnmatch.fnmatchcase(k, pattern)]
            for key in to_delete:
                del self._cache[key]
            self._stats.invalidations += len(to_delete)
            if to_delete:
                logger.info(f"Invalidated {len(to_delete)} entries matching '{pattern}'")
            return len(to_delete)

    def __contains__(self, key: str) -> bool:
        with self._cache_lock:
            entry = self._cache.get(key)
            return entry is not None and not entry.is_expired(self._clock())

    def keys(self) -> List[str]:
        """Keys of entries that have not expired yet."""
        with self._cache_lock:
            now = self._clock()
            return [k for k, e in self._cache.items() if not e.is_expired(now)]

    def clear(self) -> int:
        """
        Clear all cache entries.

        Returns:
            Number of entries cleared
        """
        with self._cache_lock:
            count = len(self._cache)
            self._cache.clear()
            logger.info(f"Cleared {count} cache entries")
            return count

    def get_stats(self) -> Dict[str, Any]:
        """Get cache statistics."""
        with self._cache_lock:
            stats = self._stats.to_dict()
            stats["entries"] = len(self._cache)
            stats["enabled"] = self.enabled
            return stats

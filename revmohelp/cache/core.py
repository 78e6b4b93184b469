"""
Core cache data structures.
"""
from dataclasses import dataclass
from typing import Any


@dataclass
class CacheEntry:
    """
    Represents a cached item with its absolute expiry time.

    Times are seconds on the owning cache's clock (monotonic by default).
    """
    key: str
    value: Any
    stored_at: float
    expires_at: float

    @property
    def ttl_seconds(self) -> float:
        """Lifetime the entry was stored with."""
        return self.expires_at - self.stored_at

    def age_seconds(self, now: float) -> float:
        """Seconds since the value was stored."""
        return now - self.stored_at

    def is_expired(self, now: float) -> bool:
        """An entry is usable only while now < expires_at."""
        return now >= self.expires_at


@dataclass
class CacheStats:
    """
    Counters about cache usage, exposed through the cache stats endpoint.
    """
    hits: int = 0
    misses: int = 0
    expirations: int = 0
    invalidations: int = 0

    @property
    def hit_rate_percent(self) -> float:
        total = self.hits + self.misses
        return round(self.hits / total * 100, 1) if total > 0 else 0.0

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON response."""
        return {
            "hits": self.hits,
            "misses": self.misses,
            "expirations": self.expirations,
            "invalidations": self.invalidations,
            "hit_rate_percent": self.hit_rate_percent,
        }

"""
Caching module with per-resource TTL, deterministic keys and pattern invalidation.
"""
from .core import CacheEntry, CacheStats
from .manager import MISSING, CacheManager
from .ttl_policies import TTL_CONFIG, DEFAULT_TTL_SECONDS, get_ttl_for_resource
from .keys import CacheKeys, build_key, cache_keys, canonical_options, serialize_options
from .decorators import cached, with_cache
from .invalidation import INVALIDATION_RULES, invalidate_related_cache, patterns_for

__all__ = [
    # Core types
    "CacheEntry",
    "CacheStats",
    # Store
    "MISSING",
    "CacheManager",
    # TTL policies
    "TTL_CONFIG",
    "DEFAULT_TTL_SECONDS",
    "get_ttl_for_resource",
    # Keys
    "CacheKeys",
    "build_key",
    "cache_keys",
    "canonical_options",
    "serialize_options",
    # Read-through wrapping
    "cached",
    "with_cache",
    # Invalidation
    "invalidate_related_cache",
    "INVALIDATION_RULES",
    "patterns_for",
]

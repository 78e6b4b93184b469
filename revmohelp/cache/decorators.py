"""
Read-through caching for fetch functions.
"""
import functools
import logging
from typing import Any, Callable, Optional, TypeVar

from .keys import resource_of
from .manager import MISSING, CacheManager
from .ttl_policies import get_ttl_for_resource

logger = logging.getLogger("cache.decorators")

T = TypeVar("T")


def with_cache(
    cache: CacheManager,
    fetch_fn: Callable[..., T],
    key_fn: Callable[..., str],
    ttl_seconds: Optional[float] = None,
    cache_if: Optional[Callable[[T], bool]] = None,
) -> Callable[..., T]:
    """
    Wrap fetch_fn so repeated calls with equal arguments are served from cache.

    Pattern:
    - key = key_fn(*args, **kwargs)
    - fresh cached value -> returned without calling fetch_fn
    - otherwise fetch_fn is called and its result stored for ttl_seconds

    Concurrent misses on the same key may both call fetch_fn; the wrapped
    reads are idempotent so the last writer simply wins.

    Args:
        cache: Cache the results are stored in
        fetch_fn: The uncached function
        key_fn: Builds the cache key from the same arguments as fetch_fn
        ttl_seconds: Lifetime of stored results; None looks it up from
            the TTL policy of the key's resource
        cache_if: Predicate on the result; results it rejects are returned
            but not stored

    Returns:
        A function with fetch_fn's signature. The uncached function stays
        reachable as `.uncached`.

    Exceptions raised by fetch_fn propagate and nothing is stored.
    """

    @functools.wraps(fetch_fn)
    def wrapper(*args: Any, **kwargs: Any) -> T:
        key = key_fn(*args, **kwargs)

        cached = cache.get(key)
        if cached is not MISSING:
            return cached

        logger.info(f"CACHE MISS: {key}")
        result = fetch_fn(*args, **kwargs)

        if cache_if is not None and not cache_if(result):
            logger.debug(f"Not caching rejected result for {key}")
            return result

        ttl = ttl_seconds if ttl_seconds is not None else get_ttl_for_resource(resource_of(key))
        cache.set(key, result, ttl)
        return result

    wrapper.uncached = fetch_fn
    return wrapper


def cached(
    cache: CacheManager,
    key_fn: Callable[..., str],
    ttl_seconds: Optional[float] = None,
    cache_if: Optional[Callable[[Any], bool]] = None,
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """Decorator form of with_cache()."""

    def decorator(fetch_fn: Callable[..., T]) -> Callable[..., T]:
        return with_cache(cache, fetch_fn, key_fn, ttl_seconds, cache_if)

    return decorator

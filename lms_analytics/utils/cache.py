import logging
from typing import Any, Awaitable, Callable, Optional, TypeVar

from lms_analytics.core.cache import CacheManager, NamespaceLike
from lms_analytics.core.config import settings

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def cached_query(
    cache: CacheManager,
    namespace: NamespaceLike,
    key: str,
    compute_fn: Callable[[], Awaitable[T]],
    ttl: Optional[float] = None,
) -> T:
    """Return the cached value for ``(namespace, key)`` or compute and store it.

    ``compute_fn`` runs at most once per call and only on a miss. Failures
    propagate unchanged and nothing is cached, so the next call retries.
    Concurrent misses on the same key are not merged; each caller computes
    and the last one to finish owns the slot.
    """
    if not settings.CACHE_ENABLED:
        return await compute_fn()

    cached_value = cache.get(namespace, key)
    if cached_value is not None:
        logger.debug(f"Cache HIT for key: {namespace}/{key}")
        return cached_value

    logger.debug(f"Cache MISS for key: {namespace}/{key}")
    result = await compute_fn()
    if result is not None:
        cache.set(namespace, key, result, ttl)
    return result

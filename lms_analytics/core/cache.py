import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Union

from cachetools import TLRUCache

from lms_analytics.core.cache_config import CACHE_TTL
from lms_analytics.core.config import settings
from lms_analytics.core.constants import CacheNamespace, EntityType

logger = logging.getLogger(__name__)

NamespaceLike = Union[CacheNamespace, str]


@dataclass(frozen=True)
class CacheEntry:
    key: str
    value: Any
    namespace: CacheNamespace
    inserted_at: float
    ttl: float


def _entry_expiry(key: str, entry: CacheEntry, now: float) -> float:
    return now + entry.ttl


class NamespacedCacheStore:
    """Least-recently-used caches partitioned by namespace.

    Every namespace owns a ``TLRUCache`` with its own capacity and default
    TTL. Expired entries are never returned, even while still physically
    present, and eviction for capacity only touches the namespace being
    written to.

    The store is not thread-safe. All calls are synchronous, so under a
    single event loop no mutation can interleave with another.
    """

    def __init__(
        self,
        max_entries: Optional[Dict[NamespaceLike, int]] = None,
        ttl: Optional[Dict[NamespaceLike, float]] = None,
        timer: Callable[[], float] = time.monotonic,
    ):
        max_entries = {CacheNamespace(ns): size for ns, size in (max_entries or {}).items()}
        ttl = {CacheNamespace(ns): seconds for ns, seconds in (ttl or {}).items()}

        self._timer = timer
        self._ttl: Dict[CacheNamespace, float] = {}
        self._caches: Dict[CacheNamespace, TLRUCache] = {}
        for namespace in CacheNamespace:
            self._ttl[namespace] = ttl.get(namespace, CACHE_TTL[namespace])
            self._caches[namespace] = TLRUCache(
                maxsize=max_entries.get(namespace, settings.CACHE_MAX_ENTRIES),
                ttu=_entry_expiry,
                timer=timer,
            )

    def _cache(self, namespace: NamespaceLike) -> TLRUCache:
        return self._caches[CacheNamespace(namespace)]

    def get_entry(self, namespace: NamespaceLike, key: str) -> Optional[CacheEntry]:
        return self._cache(namespace).get(key)

    def get(self, namespace: NamespaceLike, key: str) -> Optional[Any]:
        entry = self.get_entry(namespace, key)
        return entry.value if entry is not None else None

    def set(self, namespace: NamespaceLike, key: str, value: Any, ttl: Optional[float] = None) -> None:
        namespace = CacheNamespace(namespace)
        if ttl is None:
            ttl = self._ttl[namespace]
        if ttl <= 0:
            raise ValueError(f"ttl must be positive, got {ttl}")
        self._caches[namespace][key] = CacheEntry(
            key=key,
            value=value,
            namespace=namespace,
            inserted_at=self._timer(),
            ttl=ttl,
        )

    def delete(self, namespace: NamespaceLike, key: str) -> bool:
        return self._cache(namespace).pop(key, None) is not None

    def clear(self, namespace: NamespaceLike) -> None:
        self._cache(namespace).clear()

    def keys(self, namespace: NamespaceLike) -> List[str]:
        cache = self._cache(namespace)
        cache.expire()
        return list(cache.keys())

    def stats(self) -> Dict[str, Dict[str, Any]]:
        stats = {}
        for namespace, cache in self._caches.items():
            cache.expire()
            stats[namespace.value] = {
                "size": cache.currsize,
                "max": cache.maxsize,
                "ttl": self._ttl[namespace],
            }
        return stats


def _references(key: str, segment: str, entity_id: str) -> bool:
    parts = key.split(":")
    return any(
        parts[i] == segment and parts[i + 1] == entity_id
        for i in range(len(parts) - 1)
    )


class CacheManager:
    """Mutation-aware facade over a NamespacedCacheStore.

    Cache operations never fail the caller: store errors are logged and
    reported as a miss (``get``) or ignored (``set``/``delete``/``clear``).
    """

    def __init__(self, store: NamespacedCacheStore):
        self.store = store

    def get(self, namespace: NamespaceLike, key: str) -> Optional[Any]:
        try:
            return self.store.get(namespace, key)
        except Exception as e:
            logger.error(f"Cache GET error for key {namespace}/{key}: {e}")
            return None

    def set(self, namespace: NamespaceLike, key: str, value: Any, ttl: Optional[float] = None) -> bool:
        try:
            self.store.set(namespace, key, value, ttl)
            return True
        except Exception as e:
            logger.error(f"Cache SET error for key {namespace}/{key}: {e}")
            return False

    def delete(self, namespace: NamespaceLike, key: str) -> bool:
        try:
            return self.store.delete(namespace, key)
        except Exception as e:
            logger.error(f"Cache DELETE error for key {namespace}/{key}: {e}")
            return False

    def clear(self, namespace: NamespaceLike) -> bool:
        try:
            self.store.clear(namespace)
            return True
        except Exception as e:
            logger.error(f"Cache CLEAR error for namespace {namespace}: {e}")
            return False

    def invalidate_related(self, entity_type: Union[EntityType, str], entity_id: Any) -> int:
        """Drop cache entries made stale by a write to ``entity_type``.

        Course writes also scan the lessons namespace for course-scoped keys.
        Aggregate snapshots are left to expire by TTL.
        """
        entity_id = str(entity_id)
        try:
            entity_type = EntityType(entity_type)
        except ValueError:
            logger.warning(f"Unknown entity type for cache invalidation: {entity_type}")
            return 0

        removed = 0
        if entity_type == EntityType.COURSE:
            removed += self.delete(CacheNamespace.COURSES, entity_id)
            try:
                lesson_keys = self.store.keys(CacheNamespace.LESSONS)
            except Exception as e:
                logger.error(f"Cache KEYS error for namespace {CacheNamespace.LESSONS.value}: {e}")
                lesson_keys = []
            for key in lesson_keys:
                if _references(key, "course", entity_id):
                    removed += self.delete(CacheNamespace.LESSONS, key)
        elif entity_type == EntityType.USER:
            removed += self.delete(CacheNamespace.USERS, entity_id)
        elif entity_type == EntityType.LESSON:
            removed += self.delete(CacheNamespace.LESSONS, entity_id)

        logger.info(f"Invalidated {removed} cache entries for {entity_type.value} {entity_id}")
        return removed

    def register_invalidation_handlers(self, bus) -> None:
        """Subscribe invalidation to ``<entity>_updated`` events on ``bus``."""
        for entity_type in EntityType:
            bus.subscribe(f"{entity_type.value}_updated", self._invalidation_handler(entity_type))

    def _invalidation_handler(self, entity_type: EntityType):
        async def handle_entity_updated(data: dict):
            entity_id = data.get("entity_id")
            if entity_id is None:
                return
            self.invalidate_related(entity_type, entity_id)
        return handle_entity_updated

    def get_stats(self) -> Dict[str, Any]:
        try:
            return self.store.stats()
        except Exception as e:
            logger.error(f"Failed to get cache stats: {e}")
            return {"error": str(e)}


def create_cache_manager() -> CacheManager:
    logger.info("Using in-memory namespaced cache")
    return CacheManager(NamespacedCacheStore())

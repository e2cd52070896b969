"""Client-side cache: versioned entries over a capacity-bounded key/value store."""

from __future__ import annotations

from typing import Optional

from ..config import Settings, get_settings
from .advanced_cache import AdvancedCache, CacheStats
from .entry import CacheEntry
from .keys import (
    build_cache_key,
    courses_cache_key,
    goal_tag,
    quiz_cache_key,
    roadmap_cache_key,
    weekly_quiz_cache_key,
)
from .store import KeyValueStore, MemoryKeyValueStore


def build_store(settings: Settings) -> KeyValueStore:
    if settings.cache_backend == "database":
        from ..db.session import get_session_factory
        from .sql_store import SqlKeyValueStore

        return SqlKeyValueStore(get_session_factory(), capacity_bytes=settings.cache_capacity_bytes)
    return MemoryKeyValueStore(capacity_bytes=settings.cache_capacity_bytes)


def build_cache(settings: Optional[Settings] = None, store: Optional[KeyValueStore] = None) -> AdvancedCache:
    settings = settings or get_settings()
    return AdvancedCache(
        store if store is not None else build_store(settings),
        version=settings.cache_version,
        expiry_ms=settings.cache_expiry_ms,
        capacity_bytes=settings.cache_capacity_bytes,
        namespace=settings.cache_namespace,
    )


__all__ = [
    "AdvancedCache",
    "CacheEntry",
    "CacheStats",
    "KeyValueStore",
    "MemoryKeyValueStore",
    "build_cache",
    "build_cache_key",
    "build_store",
    "courses_cache_key",
    "goal_tag",
    "quiz_cache_key",
    "roadmap_cache_key",
    "weekly_quiz_cache_key",
]

"""Capacity-bounded, versioned, tagged cache over a shared key/value store.

Every entry is written under the cache's own namespace prefix, so bulk
operations (eviction, tag clears, full clears) never touch keys that belong to
other users of the same store. Foreign keys still count towards the store's
capacity, which is why writes can fail even after every owned entry has been
evicted.

No public method raises: failures are logged and degrade to a cache miss or a
lost write, because generated content never depends on the cache being warm.
"""

from __future__ import annotations

import logging
import time
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional, Tuple

from ..errors import CacheError, StoreQuotaExceeded
from ..telemetry import emit_event
from .entry import CacheEntry
from .store import KeyValueStore, item_size

logger = logging.getLogger(__name__)

DEFAULT_VERSION = "1.0.0"
DEFAULT_EXPIRY_MS = 24 * 60 * 60 * 1000
DEFAULT_NAMESPACE = "learnpath:"

Clock = Callable[[], int]


def _now_ms() -> int:
    return int(time.time() * 1000)


@dataclass
class CacheStats:
    total_items: int = 0
    total_size: int = 0
    oldest_item: Optional[int] = None
    newest_item: Optional[int] = None
    items_by_tag: Dict[str, int] = field(default_factory=dict)
    average_item_size: float = 0.0


class AdvancedCache:
    """Versioned cache with age expiry, tag invalidation and oldest-first eviction."""

    def __init__(
        self,
        store: KeyValueStore,
        *,
        version: str = DEFAULT_VERSION,
        expiry_ms: int = DEFAULT_EXPIRY_MS,
        capacity_bytes: Optional[int] = None,
        namespace: str = DEFAULT_NAMESPACE,
        clock: Clock = _now_ms,
    ) -> None:
        self.store = store
        self.version = version
        self.expiry_ms = expiry_ms
        self.capacity_bytes = capacity_bytes if capacity_bytes is not None else store.capacity_bytes
        self.namespace = namespace
        self._clock = clock

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    def get(self, key: str) -> Optional[Any]:
        storage_key = self._storage_key(key)
        try:
            raw = self.store.get_item(storage_key)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Cache read failed for %s: %s", key, exc)
            return None
        if raw is None:
            return None

        try:
            entry = CacheEntry.deserialize(raw)
        except CacheError as exc:
            logger.warning("Ignoring unreadable cache entry %s: %s", key, exc)
            return None

        if entry.version != self.version:
            logger.debug("Cache entry %s has version %s (current %s); removing", key, entry.version, self.version)
            self._remove(storage_key)
            return None
        if entry.is_expired(self._clock(), self.expiry_ms):
            logger.debug("Cache entry %s expired; removing", key)
            self._remove(storage_key)
            return None
        return entry.value

    def has(self, key: str) -> bool:
        return self.get(key) is not None

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------
    def set(
        self,
        key: str,
        value: Any,
        *,
        version: Optional[str] = None,
        tags: Iterable[str] = (),
    ) -> bool:
        """Store ``value`` under ``key``. Returns ``False`` when the write was dropped."""
        storage_key = self._storage_key(key)
        entry = CacheEntry.wrap(
            value,
            timestamp=self._clock(),
            version=version or self.version,
            tags=tags,
        )
        try:
            serialized = entry.serialize()
        except CacheError as exc:
            logger.warning("Cache write skipped for %s: %s", key, exc)
            self._report_write_failure(key, "serialization")
            return False

        size = item_size(storage_key, serialized)
        if size > self.capacity_bytes:
            logger.warning(
                "Cache entry %s is %s bytes which exceeds the %s byte capacity; not cached",
                key,
                size,
                self.capacity_bytes,
            )
            self._report_write_failure(key, "oversized")
            return False

        try:
            self._ensure_space(storage_key, size)
            self.store.set_item(storage_key, serialized)
            return True
        except StoreQuotaExceeded as exc:
            logger.warning("Cache quota hit while writing %s (%s); evicting and retrying once", key, exc)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Cache write failed for %s: %s", key, exc)
            self._report_write_failure(key, "store_error")
            return False

        try:
            self._evict_oldest(exclude=storage_key)
            self.store.set_item(storage_key, serialized)
            return True
        except Exception as exc:  # noqa: BLE001
            logger.warning("Cache write for %s dropped after retry: %s", key, exc)
            self._report_write_failure(key, "quota")
            return False

    def invalidate(self, key: str) -> None:
        self._remove(self._storage_key(key))

    # ------------------------------------------------------------------
    # Bulk operations
    # ------------------------------------------------------------------
    def clear_by_tags(self, tags: Iterable[str]) -> int:
        wanted = set(tags)
        if not wanted:
            return 0
        removed = 0
        for storage_key, entry in self._scan():
            if entry is None:
                continue
            if entry.tags & wanted:
                self._remove(storage_key)
                removed += 1
        logger.info("Cleared %s cache entries tagged %s", removed, sorted(wanted))
        return removed

    def clear(self) -> int:
        removed = 0
        for storage_key in self._owned_keys():
            self._remove(storage_key)
            removed += 1
        logger.info("Cleared %s cache entries", removed)
        return removed

    def prune(self) -> int:
        """Remove every expired, outdated or unreadable entry. Returns the count."""
        now = self._clock()
        removed = 0
        for storage_key, entry in self._scan():
            stale = (
                entry is None
                or entry.version != self.version
                or entry.is_expired(now, self.expiry_ms)
            )
            if stale:
                self._remove(storage_key)
                removed += 1
        return removed

    def get_stats(self) -> CacheStats:
        stats = CacheStats()
        tag_counts: Counter[str] = Counter()
        for storage_key, raw in self._scan_raw():
            stats.total_items += 1
            stats.total_size += item_size(storage_key, raw)
            try:
                entry = CacheEntry.deserialize(raw)
            except CacheError:
                continue
            if stats.oldest_item is None or entry.timestamp < stats.oldest_item:
                stats.oldest_item = entry.timestamp
            if stats.newest_item is None or entry.timestamp > stats.newest_item:
                stats.newest_item = entry.timestamp
            tag_counts.update(entry.tags)
        stats.items_by_tag = dict(sorted(tag_counts.items()))
        if stats.total_items:
            stats.average_item_size = stats.total_size / stats.total_items
        return stats

    # ------------------------------------------------------------------
    # Capacity management
    # ------------------------------------------------------------------
    def _ensure_space(self, storage_key: str, size: int) -> None:
        current = self.store.get_item(storage_key)
        released = item_size(storage_key, current) if current is not None else 0
        while self.store.usage_bytes() - released + size > self.capacity_bytes:
            if not self._evict_oldest(exclude=storage_key):
                raise StoreQuotaExceeded(
                    f"No evictable cache entries left to make room for {size} bytes."
                )

    def _evict_oldest(self, *, exclude: Optional[str] = None) -> bool:
        oldest: Optional[Tuple[float, str]] = None
        for storage_key, entry in self._scan():
            if storage_key == exclude:
                continue
            # Unreadable entries sort before every real timestamp.
            timestamp = entry.timestamp if entry is not None else float("-inf")
            if oldest is None or timestamp < oldest[0]:
                oldest = (timestamp, storage_key)
        if oldest is None:
            return False
        self._remove(oldest[1])
        emit_event("cache_evicted", key=self._public_key(oldest[1]))
        logger.debug("Evicted cache entry %s", oldest[1])
        return True

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _storage_key(self, key: str) -> str:
        return f"{self.namespace}{key}"

    def _public_key(self, storage_key: str) -> str:
        return storage_key[len(self.namespace):]

    def _owned_keys(self) -> List[str]:
        try:
            return [key for key in self.store.keys() if key.startswith(self.namespace)]
        except Exception as exc:  # noqa: BLE001
            logger.warning("Listing cache keys failed: %s", exc)
            return []

    def _scan_raw(self) -> Iterator[Tuple[str, str]]:
        for storage_key in self._owned_keys():
            try:
                raw = self.store.get_item(storage_key)
            except Exception as exc:  # noqa: BLE001
                logger.warning("Cache read failed for %s: %s", storage_key, exc)
                continue
            if raw is not None:
                yield storage_key, raw

    def _scan(self) -> Iterator[Tuple[str, Optional[CacheEntry]]]:
        for storage_key, raw in self._scan_raw():
            try:
                yield storage_key, CacheEntry.deserialize(raw)
            except CacheError as exc:
                logger.debug("Skipping unreadable cache entry %s: %s", storage_key, exc)
                yield storage_key, None

    def _remove(self, storage_key: str) -> None:
        try:
            self.store.remove_item(storage_key)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Removing cache entry %s failed: %s", storage_key, exc)

    def _report_write_failure(self, key: str, reason: str) -> None:
        emit_event("cache_write_failed", key=key, reason=reason)


__all__ = [
    "AdvancedCache",
    "CacheStats",
    "DEFAULT_EXPIRY_MS",
    "DEFAULT_NAMESPACE",
    "DEFAULT_VERSION",
]

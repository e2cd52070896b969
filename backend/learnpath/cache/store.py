"""Key/value stores backing the cache."""

from __future__ import annotations

from typing import Dict, List, Optional, Protocol

from ..errors import StoreQuotaExceeded
from .entry import serialized_size

DEFAULT_CAPACITY_BYTES = 5 * 1024 * 1024


class KeyValueStore(Protocol):
    """Synchronous string store with a fixed capacity, shared by many callers."""

    capacity_bytes: int

    def get_item(self, key: str) -> Optional[str]:  # pragma: no cover - protocol definition
        ...

    def set_item(self, key: str, value: str) -> None:  # pragma: no cover - protocol definition
        ...

    def remove_item(self, key: str) -> None:  # pragma: no cover - protocol definition
        ...

    def keys(self) -> List[str]:  # pragma: no cover - protocol definition
        ...

    def usage_bytes(self) -> int:  # pragma: no cover - protocol definition
        ...


def item_size(key: str, value: str) -> int:
    return serialized_size(key) + serialized_size(value)


class MemoryKeyValueStore:
    """Process-local store that enforces a byte quota like a browser origin store."""

    def __init__(self, capacity_bytes: int = DEFAULT_CAPACITY_BYTES) -> None:
        self.capacity_bytes = capacity_bytes
        self._items: Dict[str, str] = {}
        self._usage = 0

    def get_item(self, key: str) -> Optional[str]:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        previous = self._items.get(key)
        released = item_size(key, previous) if previous is not None else 0
        projected = self._usage - released + item_size(key, value)
        if projected > self.capacity_bytes:
            raise StoreQuotaExceeded(
                f"Writing {key!r} needs {projected} bytes; capacity is {self.capacity_bytes}."
            )
        self._items[key] = value
        self._usage = projected

    def remove_item(self, key: str) -> None:
        previous = self._items.pop(key, None)
        if previous is not None:
            self._usage -= item_size(key, previous)

    def keys(self) -> List[str]:
        return list(self._items)

    def usage_bytes(self) -> int:
        return self._usage

    def clear(self) -> None:
        self._items.clear()
        self._usage = 0


__all__ = ["DEFAULT_CAPACITY_BYTES", "KeyValueStore", "MemoryKeyValueStore", "item_size"]

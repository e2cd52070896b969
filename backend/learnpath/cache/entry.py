"""Versioned cache entry codec."""

from __future__ import annotations

import json
from typing import Any, Iterable, Set

from pydantic import BaseModel, Field, ValidationError

from ..errors import CacheEntryDecodeError, CacheSerializationError


class CacheEntry(BaseModel):
    """A stored value plus the metadata needed for expiry and invalidation."""

    value: Any
    timestamp: int
    version: str
    tags: Set[str] = Field(default_factory=set)

    @classmethod
    def wrap(cls, value: Any, *, timestamp: int, version: str, tags: Iterable[str] = ()) -> "CacheEntry":
        return cls(value=value, timestamp=timestamp, version=version, tags=set(tags))

    def serialize(self) -> str:
        payload = {
            "value": self.value,
            "timestamp": self.timestamp,
            "version": self.version,
            "tags": sorted(self.tags),
        }
        try:
            return json.dumps(payload, ensure_ascii=False, separators=(",", ":"), allow_nan=False)
        except (TypeError, ValueError) as exc:
            raise CacheSerializationError(f"Cache value is not JSON serialisable: {exc}") from exc

    @classmethod
    def deserialize(cls, raw: str) -> "CacheEntry":
        try:
            data = json.loads(raw)
        except (TypeError, json.JSONDecodeError) as exc:
            raise CacheEntryDecodeError(f"Cache entry is not valid JSON: {exc}") from exc
        if not isinstance(data, dict):
            raise CacheEntryDecodeError("Cache entry must be a JSON object.")
        try:
            return cls.model_validate(data)
        except ValidationError as exc:
            raise CacheEntryDecodeError(f"Cache entry has an invalid shape: {exc}") from exc

    def is_expired(self, now: int, expiry_ms: int) -> bool:
        return now - self.timestamp > expiry_ms


def serialized_size(text: str) -> int:
    return len(text.encode("utf-8"))


__all__ = ["CacheEntry", "serialized_size"]

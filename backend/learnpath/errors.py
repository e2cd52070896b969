"""Exception hierarchy shared by the cache, validators and generation facade."""

from __future__ import annotations


class LearnpathError(RuntimeError):
    """Base class for learnpath failures."""


class ProviderError(LearnpathError):
    """Raised when the text-generation provider fails or returns nothing usable."""


class GenerationError(LearnpathError):
    """Raised when content generation fails after retries and fallbacks."""


class ResponseParseError(GenerationError):
    """Raised when provider text does not contain parseable JSON."""


class QuizValidationError(GenerationError):
    """Raised when a parsed quiz fails structural validation."""


class RoadmapValidationError(GenerationError):
    """Raised when a parsed roadmap fails structural validation."""


class CacheError(LearnpathError):
    """Base class for cache failures. Never escapes the public cache API."""


class CacheEntryDecodeError(CacheError):
    """Raised when a stored string is not a readable cache entry."""


class CacheSerializationError(CacheError):
    """Raised when a value cannot be serialized for storage."""


class StoreQuotaExceeded(CacheError):
    """Raised by a key/value store when a write would exceed its capacity."""


__all__ = [
    "CacheEntryDecodeError",
    "CacheError",
    "CacheSerializationError",
    "GenerationError",
    "LearnpathError",
    "ProviderError",
    "QuizValidationError",
    "ResponseParseError",
    "RoadmapValidationError",
    "StoreQuotaExceeded",
]

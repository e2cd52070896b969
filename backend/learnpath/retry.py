"""Bounded retry with exponential backoff for provider calls."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Awaitable, Callable, Optional, Tuple, Type, TypeVar

if TYPE_CHECKING:  # pragma: no cover
    from .config import Settings

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryOptions:
    max_attempts: int = 3
    delay_ms: int = 1000
    backoff: float = 2.0

    @classmethod
    def from_settings(cls, settings: "Settings") -> "RetryOptions":
        return cls(
            max_attempts=settings.generation_max_attempts,
            delay_ms=settings.generation_retry_delay_ms,
            backoff=settings.generation_retry_backoff,
        )


async def retry_async(
    fn: Callable[[], Awaitable[T]],
    options: RetryOptions,
    *,
    retry_on: Tuple[Type[BaseException], ...] = (Exception,),
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """Await ``fn`` up to ``options.max_attempts`` times, re-raising the last error."""
    delay = options.delay_ms
    last_error: Optional[BaseException] = None
    for attempt in range(1, options.max_attempts + 1):
        try:
            return await fn()
        except retry_on as exc:
            last_error = exc
            if attempt == options.max_attempts:
                break
            logger.warning(
                "Attempt %s/%s failed (%s); retrying in %sms",
                attempt,
                options.max_attempts,
                exc,
                delay,
            )
            await sleep(delay / 1000)
            delay = int(delay * options.backoff)
    assert last_error is not None
    raise last_error


__all__ = ["RetryOptions", "retry_async"]

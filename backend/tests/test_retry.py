from __future__ import annotations

import asyncio
from typing import List

import pytest

from learnpath.errors import ProviderError
from learnpath.retry import RetryOptions, retry_async


class Recorder:
    def __init__(self) -> None:
        self.delays: List[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


def test_retries_with_exponential_backoff() -> None:
    sleep = Recorder()
    attempts = {"count": 0}

    async def flaky() -> str:
        attempts["count"] += 1
        if attempts["count"] < 3:
            raise ProviderError("temporary")
        return "ok"

    result = asyncio.run(retry_async(flaky, RetryOptions(max_attempts=3, delay_ms=100, backoff=2), sleep=sleep))

    assert result == "ok"
    assert attempts["count"] == 3
    assert sleep.delays == [0.1, 0.2]


def test_reraises_last_error_after_final_attempt() -> None:
    sleep = Recorder()
    calls: List[int] = []

    async def failing() -> None:
        calls.append(len(calls))
        raise ProviderError(f"failure {len(calls)}")

    with pytest.raises(ProviderError, match="failure 2"):
        asyncio.run(retry_async(failing, RetryOptions(max_attempts=2, delay_ms=10), sleep=sleep))
    assert len(calls) == 2
    assert sleep.delays == [0.01]


def test_errors_outside_retry_on_propagate_immediately() -> None:
    sleep = Recorder()
    calls: List[int] = []

    async def broken() -> None:
        calls.append(1)
        raise KeyError("missing")

    with pytest.raises(KeyError):
        asyncio.run(retry_async(broken, RetryOptions(), retry_on=(ProviderError,), sleep=sleep))
    assert calls == [1]
    assert sleep.delays == []

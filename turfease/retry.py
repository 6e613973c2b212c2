from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TypeVar

import httpx
from loguru import logger

from turfease.exceptions import ApiError

T = TypeVar("T")


def is_retryable_error(exc: BaseException) -> bool:
    """Network failures, timeouts and 5xx replies are worth another attempt."""
    if isinstance(exc, httpx.TransportError):
        return True
    if isinstance(exc, ApiError):
        return exc.status_code >= 500
    return False


def fixed_backoff(seconds: float) -> Callable[[int], float]:
    def _backoff(attempt: int) -> float:
        return seconds

    return _backoff


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = 1
    backoff: Callable[[int], float] = fixed_backoff(0)
    retryable: Callable[[BaseException], bool] = is_retryable_error

    async def run(self, call: Callable[[], Awaitable[T]]) -> T:
        """Await ``call()`` until it succeeds, is not retryable, or attempts run out."""
        attempt = 1
        while True:
            try:
                return await call()
            except Exception as exc:
                if attempt >= self.max_attempts or not self.retryable(exc):
                    raise
                delay = self.backoff(attempt)
                logger.info(
                    "Attempt {}/{} failed ({}), retrying in {}s",
                    attempt,
                    self.max_attempts,
                    exc,
                    delay,
                )
                await asyncio.sleep(delay)
                attempt += 1


NO_RETRY = RetryPolicy(max_attempts=1)
CHAT_RETRY = RetryPolicy(max_attempts=3, backoff=fixed_backoff(1.0))

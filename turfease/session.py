"""
Client-side session expiry tracking.

The signature is not checked here (the backend does that on every request);
only the ``exp`` claim of the stored token is read.
"""

from __future__ import annotations

import asyncio
import inspect
import time
from collections.abc import Awaitable, Callable
from enum import StrEnum
from typing import Any

from jose import JWTError, jwt
from loguru import logger

from turfease.settings import SESSION_WARNING_SECONDS
from turfease.storage import KeyValueStore, StorageKey

ExpiredCallback = Callable[[], Awaitable[None] | None]
WarningCallback = Callable[[int], Awaitable[None] | None]


class SessionState(StrEnum):
    ACTIVE = "active"
    WARNING = "warning"  # expires within SESSION_WARNING_SECONDS
    EXPIRED = "expired"


async def _call(callback: Callable[..., Any] | None, *args: Any) -> None:
    if callback is None:
        return
    result = callback(*args)
    if inspect.isawaitable(result):
        await result


class SessionManager:
    def __init__(
        self,
        store: KeyValueStore,
        warning_seconds: int = SESSION_WARNING_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.store = store
        self.warning_seconds = warning_seconds
        self.clock = clock
        self.warning_shown = False
        self.on_expired: ExpiredCallback | None = None
        self.on_warning: WarningCallback | None = None
        self._task: asyncio.Task | None = None

    async def _seconds_left(self) -> float | None:
        """None when there is no token or it cannot be decoded."""
        token = await self.store.get(StorageKey.TOKEN)
        if not token:
            return None
        try:
            claims = jwt.get_unverified_claims(token)
        except JWTError:
            logger.warning("Stored token could not be decoded")
            return None
        exp = claims.get("exp")
        if not isinstance(exp, (int, float)):
            return None
        return exp - self.clock()

    async def check(self) -> SessionState:
        remaining = await self._seconds_left()
        if remaining is None or remaining <= 0:
            await self._expire()
            return SessionState.EXPIRED

        if remaining > self.warning_seconds:
            self.warning_shown = False
            return SessionState.ACTIVE

        if not self.warning_shown:
            self.warning_shown = True
            logger.info("Session expires in {}s", int(remaining))
            await _call(self.on_warning, int(remaining // 60))
            return SessionState.WARNING
        return SessionState.ACTIVE

    async def _expire(self) -> None:
        logger.info("Session expired")
        self.stop()
        await self.store.delete(StorageKey.TOKEN)
        await _call(self.on_expired)

    async def time_until_expiry(self) -> float:
        remaining = await self._seconds_left()
        return max(0.0, remaining or 0.0)

    async def is_token_valid(self) -> bool:
        return await self.time_until_expiry() > 0

    def refresh(self) -> None:
        self.warning_shown = False

    def monitor(
        self,
        interval: float = 60,
        on_expired: ExpiredCallback | None = None,
        on_warning: WarningCallback | None = None,
    ) -> asyncio.Task:
        """Check now and then every ``interval`` seconds until expiry or ``stop()``."""
        self.stop()
        self.on_expired = on_expired
        self.on_warning = on_warning
        self._task = asyncio.create_task(self._monitor(interval))
        return self._task

    async def _monitor(self, interval: float) -> None:
        while True:
            if await self.check() is SessionState.EXPIRED:
                return
            await asyncio.sleep(interval)

    def stop(self) -> None:
        task, self._task = self._task, None
        if task is not None and task is not asyncio.current_task() and not task.done():
            task.cancel()
        self.warning_shown = False

    async def logout(self) -> None:
        self.stop()
        await self.store.delete(StorageKey.TOKEN)

"""
Key-value persistence for client state that outlives a single call:
the auth token, chat widget state and in-flight booking drafts.

Every key has a declared lifecycle (TTL and whether logout clears it), see
``STORAGE_KEYS``. Two stores are provided: ``MemoryStore`` for
process-local/session state and ``RedisStore`` for state shared between
processes. Store failures never propagate; a broken store behaves like an
empty one.
"""

from __future__ import annotations

import json
import time
from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum
from typing import Any, Protocol

from loguru import logger
from redis.asyncio import Redis

from turfease.settings import REDIS_URL


class StorageKey(StrEnum):
    TOKEN = "token"
    CHAT_MESSAGES = "chat:messages"
    CHAT_IS_OPEN = "chat:isOpen"
    CHAT_CONTEXT = "chat:context"
    BOOKING_DRAFT = "bookingData"


@dataclass(frozen=True)
class KeyLifecycle:
    ttl: int | None  # seconds, None = until deleted
    clear_on_logout: bool


CHAT_TTL = 7 * 24 * 3600  # 1 week
DRAFT_TTL = 30 * 60  # 30 minutes

STORAGE_KEYS: dict[StorageKey, KeyLifecycle] = {
    StorageKey.TOKEN: KeyLifecycle(ttl=None, clear_on_logout=True),
    StorageKey.CHAT_MESSAGES: KeyLifecycle(ttl=CHAT_TTL, clear_on_logout=True),
    StorageKey.CHAT_IS_OPEN: KeyLifecycle(ttl=CHAT_TTL, clear_on_logout=True),
    StorageKey.CHAT_CONTEXT: KeyLifecycle(ttl=CHAT_TTL, clear_on_logout=True),
    StorageKey.BOOKING_DRAFT: KeyLifecycle(ttl=DRAFT_TTL, clear_on_logout=True),
}

CHAT_KEYS = (StorageKey.CHAT_MESSAGES, StorageKey.CHAT_IS_OPEN, StorageKey.CHAT_CONTEXT)


def default_ttl(key: str) -> int | None:
    lifecycle = STORAGE_KEYS.get(key)  # type: ignore[call-overload]
    return lifecycle.ttl if lifecycle else None


class KeyValueStore(Protocol):
    """Async JSON key-value store."""

    async def get(self, key: str) -> Any | None: ...

    async def set(self, key: str, value: Any, ttl: int | None = None) -> None: ...

    async def delete(self, *keys: str) -> None: ...


class MemoryStore:
    """In-process store. Expired entries are dropped lazily on read."""

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self.clock = clock
        self._data: dict[str, tuple[str, float | None]] = {}

    async def get(self, key: str) -> Any | None:
        entry = self._data.get(key)
        if entry is None:
            return None
        raw, expires_at = entry
        if expires_at is not None and self.clock() >= expires_at:
            del self._data[key]
            return None
        return json.loads(raw)

    async def set(self, key: str, value: Any, ttl: int | None = None) -> None:
        if ttl is None:
            ttl = default_ttl(key)
        expires_at = self.clock() + ttl if ttl else None
        self._data[key] = (json.dumps(value), expires_at)

    async def delete(self, *keys: str) -> None:
        for key in keys:
            self._data.pop(key, None)


_redis: Redis | None = None


def get_redis() -> Redis:
    global _redis
    if _redis is None:
        _redis = Redis.from_url(REDIS_URL, decode_responses=True)
    return _redis


class RedisStore:
    """Redis-backed store. Keys are namespaced per client (e.g. per user)."""

    def __init__(self, namespace: str = "turfease", redis: Redis | None = None) -> None:
        self.namespace = namespace
        self._redis = redis

    @property
    def redis(self) -> Redis:
        return self._redis if self._redis is not None else get_redis()

    def _key(self, key: str) -> str:
        return f"{self.namespace}:{key}"

    async def get(self, key: str) -> Any | None:
        try:
            data = await self.redis.get(self._key(key))
            return json.loads(data) if data else None
        except Exception:
            logger.opt(exception=True).warning("Redis get failed for {}, treating as miss", key)
            return None

    async def set(self, key: str, value: Any, ttl: int | None = None) -> None:
        if ttl is None:
            ttl = default_ttl(key)
        try:
            if ttl:
                await self.redis.setex(self._key(key), ttl, json.dumps(value))
            else:
                await self.redis.set(self._key(key), json.dumps(value))
        except Exception:
            logger.opt(exception=True).warning("Redis set failed for {}, value not stored", key)

    async def delete(self, *keys: str) -> None:
        if not keys:
            return
        try:
            await self.redis.delete(*(self._key(k) for k in keys))
        except Exception:
            logger.opt(exception=True).warning("Redis delete failed for {}", keys)


async def clear_on_logout(store: KeyValueStore) -> None:
    """Drop every key whose lifecycle says it must not survive a logout."""
    keys = [k.value for k, life in STORAGE_KEYS.items() if life.clear_on_logout]
    await store.delete(*keys)

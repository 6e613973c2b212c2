from __future__ import annotations

import json
from unittest.mock import AsyncMock, MagicMock, patch

from turfease.storage import (
    CHAT_TTL,
    DRAFT_TTL,
    STORAGE_KEYS,
    MemoryStore,
    RedisStore,
    StorageKey,
    clear_on_logout,
    default_ttl,
)


def mock_redis(**methods) -> MagicMock:
    redis = MagicMock()
    for name in ("get", "set", "setex", "delete"):
        setattr(redis, name, methods.get(name, AsyncMock(return_value=None)))
    return redis


class TestKeyLifecycle:
    def test_every_key_declared(self):
        assert set(STORAGE_KEYS) == set(StorageKey)

    def test_ttls(self):
        assert default_ttl(StorageKey.TOKEN) is None
        assert default_ttl(StorageKey.CHAT_MESSAGES) == CHAT_TTL
        assert default_ttl(StorageKey.BOOKING_DRAFT) == DRAFT_TTL
        assert default_ttl("something-else") is None

    def test_everything_cleared_on_logout(self):
        assert all(life.clear_on_logout for life in STORAGE_KEYS.values())


class TestMemoryStore:
    async def test_roundtrip_json(self):
        store = MemoryStore()
        await store.set("k", {"a": [1, 2]})
        assert await store.get("k") == {"a": [1, 2]}

    async def test_missing_is_none(self):
        assert await MemoryStore().get("nope") is None

    async def test_expired_entry_dropped(self):
        clock = MagicMock(return_value=1000.0)
        store = MemoryStore(clock=clock)
        await store.set(StorageKey.BOOKING_DRAFT, {"bookingId": "b1"})
        clock.return_value = 1000.0 + DRAFT_TTL - 1
        assert await store.get(StorageKey.BOOKING_DRAFT) == {"bookingId": "b1"}
        clock.return_value = 1000.0 + DRAFT_TTL
        assert await store.get(StorageKey.BOOKING_DRAFT) is None

    async def test_token_never_expires(self):
        clock = MagicMock(return_value=0.0)
        store = MemoryStore(clock=clock)
        await store.set(StorageKey.TOKEN, "t")
        clock.return_value = 10.0**9
        assert await store.get(StorageKey.TOKEN) == "t"

    async def test_clear_on_logout(self):
        store = MemoryStore()
        for key in StorageKey:
            await store.set(key, "x")
        await store.set("unrelated", "keep")
        await clear_on_logout(store)
        for key in StorageKey:
            assert await store.get(key) is None
        assert await store.get("unrelated") == "keep"


class TestRedisStore:
    async def test_get_namespaced_and_decoded(self):
        redis = mock_redis(get=AsyncMock(return_value=json.dumps({"x": 1})))
        store = RedisStore(namespace="user:42", redis=redis)
        assert await store.get("chat:context") == {"x": 1}
        redis.get.assert_awaited_once_with("user:42:chat:context")

    async def test_set_uses_setex_for_ttl_keys(self):
        redis = mock_redis()
        store = RedisStore(redis=redis)
        await store.set(StorageKey.CHAT_MESSAGES, [])
        redis.setex.assert_awaited_once_with("turfease:chat:messages", CHAT_TTL, "[]")
        redis.set.assert_not_awaited()

    async def test_set_without_ttl(self):
        redis = mock_redis()
        store = RedisStore(redis=redis)
        await store.set(StorageKey.TOKEN, "tok")
        redis.set.assert_awaited_once_with("turfease:token", '"tok"')

    async def test_get_failure_is_a_miss(self):
        redis = mock_redis(get=AsyncMock(side_effect=ConnectionError("down")))
        assert await RedisStore(redis=redis).get("token") is None

    async def test_failure_logged_with_traceback(self):
        redis = mock_redis(get=AsyncMock(side_effect=ConnectionError("down")))
        with patch("turfease.storage.logger") as mock_logger:
            await RedisStore(redis=redis).get("token")
        mock_logger.opt.assert_called_once_with(exception=True)
        mock_logger.opt.return_value.warning.assert_called_once()

    async def test_set_failure_swallowed(self):
        redis = mock_redis(setex=AsyncMock(side_effect=ConnectionError("down")))
        await RedisStore(redis=redis).set(StorageKey.BOOKING_DRAFT, {})

    async def test_delete_many(self):
        redis = mock_redis()
        await RedisStore(redis=redis).delete("a", "b")
        redis.delete.assert_awaited_once_with("turfease:a", "turfease:b")

    async def test_delete_nothing_skips_redis(self):
        redis = mock_redis()
        await RedisStore(redis=redis).delete()
        redis.delete.assert_not_awaited()

    async def test_shared_client_by_default(self):
        redis = mock_redis()
        with patch("turfease.storage.get_redis", return_value=redis):
            await RedisStore().get("token")
        redis.get.assert_awaited_once_with("turfease:token")

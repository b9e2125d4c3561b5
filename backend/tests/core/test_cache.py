"""
Tests for the cache-aside client.

The client must never fail a request: disabled, unreachable and erroring Redis
all degrade to misses and no-op writes.
"""
import asyncio
import json
import socket
from unittest.mock import AsyncMock

from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import RedisError

from core.cache import CacheClient
from tests.fakes import FakeRedis


def closed_port() -> int:
    """Return a local port with nothing listening on it."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


class TestCacheClientDisabled:
    """Tests for a cache disabled by configuration."""

    async def test__disabled_client__reports_miss_and_ignores_writes(self) -> None:
        client = CacheClient("redis://localhost:6379", enabled=False)
        await client.connect()

        assert client.is_enabled is False
        assert await client.ping() is False
        await client.set("user:1", {"id": "1"})
        await client.set_with_ttl("user:1", {"id": "1"}, 60)
        await client.delete("user:1")
        await client.delete_by_pattern("user:*")
        assert await client.get("user:1") == (False, None)

        await client.close()


class TestCacheClientUnreachable:
    """Tests for a cache whose server cannot be reached."""

    async def test__connect__unreachable_server_does_not_raise(self) -> None:
        client = CacheClient(f"redis://127.0.0.1:{closed_port()}", op_timeout=2)

        await client.connect()

        assert client.is_enabled is False

    async def test__unreachable_server__get_misses_and_writes_succeed(self) -> None:
        client = CacheClient(f"redis://127.0.0.1:{closed_port()}", op_timeout=2)
        await client.connect()

        await client.set("role:1", {"name": "admin"})
        await client.delete("role:1")
        await client.delete_by_pattern("role:*")
        assert await client.get("role:1") == (False, None)

        await client.close()

    async def test__connect__failed_ping_closes_client(self) -> None:
        fake = FakeRedis()
        fake.ping = AsyncMock(side_effect=RedisConnectionError("refused"))
        client = CacheClient("redis://fake:6379")

        await client.connect(client=fake)

        assert client.is_enabled is False
        assert fake.closed is True


class TestCacheClientOperations:
    """Tests for get/set/delete against a working Redis."""

    async def test__set_then_get__returns_json_structure(
        self, cache: CacheClient,
    ) -> None:
        value = {"id": "42", "username": "alice", "is_active": True}

        await cache.set("user:42", value)

        assert await cache.get("user:42") == (True, value)

    async def test__get__missing_key_is_miss(self, cache: CacheClient) -> None:
        assert await cache.get("user:missing") == (False, None)

    async def test__set__applies_default_ttl(
        self, cache: CacheClient, fake_redis: FakeRedis,
    ) -> None:
        await cache.set("users:count", 3)

        assert fake_redis.ttls["users:count"] == 3600

    async def test__set_with_ttl__zero_means_no_expiry(
        self, cache: CacheClient, fake_redis: FakeRedis,
    ) -> None:
        await cache.set_with_ttl("roles:all", [], 0)
        await cache.set_with_ttl("role:1", {"name": "x"}, 30)

        assert fake_redis.ttls["roles:all"] is None
        assert fake_redis.ttls["role:1"] == 30

    async def test__get__undecodable_value_is_miss(
        self, cache: CacheClient, fake_redis: FakeRedis,
    ) -> None:
        fake_redis.store["user:1"] = "{not json"

        assert await cache.get("user:1") == (False, None)

    async def test__set__unserializable_value_is_skipped(
        self, cache: CacheClient, fake_redis: FakeRedis,
    ) -> None:
        await cache.set("user:1", {"when": object()})

        assert "user:1" not in fake_redis.store

    async def test__delete__removes_exact_keys(
        self, cache: CacheClient, fake_redis: FakeRedis,
    ) -> None:
        await cache.set("user:1", 1)
        await cache.set("user:2", 2)

        await cache.delete("user:1")

        assert list(fake_redis.store) == ["user:2"]

    async def test__delete_by_pattern__removes_only_matching_keys(
        self, cache: CacheClient, fake_redis: FakeRedis,
    ) -> None:
        for key in ["user:1", "user:username:alice", "user:permissions:1", "users:count",
                    "role:1"]:
            await cache.set(key, 1)

        await cache.delete_by_pattern("user:*")

        assert sorted(fake_redis.store) == ["role:1", "users:count"]

    async def test__delete_by_pattern__deletes_in_one_batch(
        self, cache: CacheClient, fake_redis: FakeRedis,
    ) -> None:
        for i in range(5):
            await cache.set(f"permission:{i}", i)
        fake_redis.delete = AsyncMock(wraps=fake_redis.delete)

        await cache.delete_by_pattern("permission:*")

        fake_redis.delete.assert_awaited_once()
        assert len(fake_redis.delete.await_args.args) == 5

    async def test__flushdb__clears_everything(
        self, cache: CacheClient, fake_redis: FakeRedis,
    ) -> None:
        await cache.set("a", 1)

        await cache.flushdb()

        assert fake_redis.store == {}


class TestCacheClientFailures:
    """Redis errors and deadlines are recovered locally."""

    async def test__get__redis_error_is_miss(
        self, cache: CacheClient, fake_redis: FakeRedis,
    ) -> None:
        fake_redis.store["user:1"] = json.dumps({"id": "1"})
        fake_redis.get = AsyncMock(side_effect=RedisError("READONLY"))

        assert await cache.get("user:1") == (False, None)

    async def test__writes__redis_error_is_swallowed(
        self, cache: CacheClient, fake_redis: FakeRedis,
    ) -> None:
        fake_redis.set = AsyncMock(side_effect=RedisError("OOM"))
        fake_redis.delete = AsyncMock(side_effect=OSError("broken pipe"))

        await cache.set("user:1", {"id": "1"})
        await cache.delete("user:1")
        await cache.delete_by_pattern("user:*")

    async def test__get__deadline_exceeded_is_miss(self, fake_redis: FakeRedis) -> None:
        async def hang(_key: str) -> None:
            await asyncio.sleep(5)

        client = CacheClient("redis://fake:6379", op_timeout=0.05)
        await client.connect(client=fake_redis)
        fake_redis.get = hang

        assert await client.get("user:1") == (False, None)

"""Cache-aside Redis client with connection pooling and graceful fallback."""
import asyncio
import json
import logging
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from redis.asyncio import ConnectionPool, Redis
from redis.exceptions import RedisError

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Errors that mean "cache unavailable right now" - never surfaced to callers
CACHE_ERRORS = (RedisError, OSError, TimeoutError)

SCAN_COUNT = 500


class CacheClient:
    """
    Async cache-aside client backed by Redis.

    Construction and connect() never fail. If Redis is disabled or unreachable the
    client stays disabled: get() always reports a miss and writes are silent no-ops,
    so a down cache only removes the speed-up and never blocks a request.

    Values are JSON-encoded, so callers pass plain JSON-compatible structures
    (e.g. ``model.model_dump(mode="json")``).
    """

    def __init__(
        self,
        url: str,
        enabled: bool = True,
        pool_size: int = 20,
        default_ttl: int = 3600,
        op_timeout: float | None = None,
    ) -> None:
        self._url = url
        self._enabled = enabled
        self._pool_size = pool_size
        self._default_ttl = default_ttl
        self._op_timeout = op_timeout
        self._pool: ConnectionPool | None = None
        self._client: Redis | None = None

    async def connect(self, client: Redis | None = None) -> None:
        """
        Initialize the connection pool and verify connectivity.

        Args:
            client: Optional pre-built Redis client to use instead of building a pool
                from the configured URL.
        """
        if not self._enabled:
            logger.info("Redis cache disabled by configuration")
            return
        try:
            if client is None:
                self._pool = ConnectionPool.from_url(self._url, max_connections=self._pool_size)
                client = Redis(connection_pool=self._pool)
            self._client = client
            async with asyncio.timeout(self._op_timeout):
                await self._client.ping()
            logger.info("Redis cache connected successfully")
        except CACHE_ERRORS as e:
            logger.warning("Redis connection failed, continuing without caching: %s", e)
            await self._discard_client()

    async def _discard_client(self) -> None:
        """Drop the client after a failed connect so the cache runs disabled."""
        client = self._client
        self._client = None
        self._pool = None
        if client is not None:
            try:
                await client.aclose()
            except CACHE_ERRORS as e:
                logger.debug("Redis close after failed connect raised: %s", e)

    async def close(self) -> None:
        """Close connection pool."""
        if self._client:
            await self._client.aclose()
            self._client = None
            self._pool = None
            logger.info("Redis connection closed")

    @property
    def is_enabled(self) -> bool:
        """Check if the cache is connected and serving requests."""
        return self._client is not None

    @property
    def default_ttl(self) -> int:
        """Default expiry in seconds applied by set()."""
        return self._default_ttl

    async def _call(self, operation: str, func: Callable[[], Awaitable[T]]) -> T | None:
        """Run one Redis command, converting any cache failure into None."""
        try:
            async with asyncio.timeout(self._op_timeout):
                return await func()
        except CACHE_ERRORS as e:
            logger.warning("Redis %s failed: %s", operation, e)
            return None

    async def ping(self) -> bool:
        """Check Redis connectivity."""
        if not self._client:
            return False
        client = self._client
        return bool(await self._call("PING", client.ping))

    async def get(self, key: str) -> tuple[bool, Any]:
        """
        Get a cached value.

        Returns:
            (True, value) on a hit, (False, None) on a miss, when disabled, or when
            Redis fails or returns undecodable data.
        """
        if not self._client:
            return False, None
        client = self._client
        raw = await self._call("GET", lambda: client.get(key))
        if raw is None:
            logger.debug("cache_miss key=%s", key)
            return False, None
        try:
            value = json.loads(raw)
        except ValueError as e:
            logger.warning("Cache value for key=%s could not be decoded: %s", key, e)
            return False, None
        logger.debug("cache_hit key=%s", key)
        return True, value

    async def set(self, key: str, value: Any) -> None:
        """Cache a value with the default TTL."""
        await self.set_with_ttl(key, value, self._default_ttl)

    async def set_with_ttl(self, key: str, value: Any, ttl: int) -> None:
        """Cache a value with an explicit TTL in seconds (ttl <= 0 means no expiry)."""
        if not self._client:
            return
        try:
            data = json.dumps(value)
        except (TypeError, ValueError) as e:
            logger.warning("Cache value for key=%s could not be encoded: %s", key, e)
            return
        client = self._client
        expiry = ttl if ttl > 0 else None
        await self._call("SET", lambda: client.set(key, data, ex=expiry))

    async def delete(self, *keys: str) -> None:
        """Delete exact key(s)."""
        if not self._client or not keys:
            return
        client = self._client
        await self._call("DELETE", lambda: client.delete(*keys))

    async def delete_by_pattern(self, pattern: str) -> None:
        """
        Delete every key matching a glob-style pattern.

        Keys are enumerated with SCAN (non-blocking on the server) and removed in a
        single DEL. This is what invalidation relies on: one entity may be cached under
        several keys (by id, by lookup key, by query shape) that the writer cannot list.
        """
        if not self._client:
            return
        client = self._client

        async def _scan_and_delete() -> int:
            keys = [key async for key in client.scan_iter(match=pattern, count=SCAN_COUNT)]
            if keys:
                await client.delete(*keys)
            return len(keys)

        deleted = await self._call("DELETE BY PATTERN", _scan_and_delete)
        if deleted:
            logger.debug("cache_invalidate pattern=%s keys=%s", pattern, deleted)

    async def flushdb(self) -> None:
        """Flush current database (for testing)."""
        if not self._client:
            return
        client = self._client
        await self._call("FLUSHDB", client.flushdb)


# Global cache client state using a container to avoid global statement
class _CacheState:
    """Container for global cache client state."""

    client: CacheClient | None = None


_state = _CacheState()


def get_cache_client() -> CacheClient | None:
    """Get the global cache client instance."""
    return _state.client


def set_cache_client(client: CacheClient | None) -> None:
    """Set the global cache client instance."""
    _state.client = client

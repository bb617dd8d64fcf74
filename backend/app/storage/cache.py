"""Key-value stores backing models, prediction logs and training data.

Two backends satisfy ``core.protocols.KeyValueStore``:
- MemoryStore: process-local dict (default, and the Redis fallback)
- RedisStore: redis.asyncio client, every key namespaced by a prefix

Values are strings; callers serialize with orjson.
"""

from __future__ import annotations

import logging

import redis.asyncio as redis
from redis.asyncio.connection import ConnectionPool

from app.config import Settings

logger = logging.getLogger(__name__)


# =============================================================================
# In-memory backend
# =============================================================================

class MemoryStore:
    """Dict-backed store. Never raises."""

    def __init__(self):
        self._data: dict[str, str] = {}

    async def get(self, key: str) -> str | None:
        return self._data.get(key)

    async def set(self, key: str, value: str) -> None:
        self._data[key] = value

    async def remove(self, key: str) -> None:
        self._data.pop(key, None)

    async def clear(self) -> None:
        self._data.clear()

    async def close(self) -> None:
        pass

    def __len__(self) -> int:
        return len(self._data)


# =============================================================================
# Redis backend
# =============================================================================

class RedisStore:
    """
    Redis-backed store.

    All keys are stored as ``{key_prefix}{key}``; ``clear`` only deletes keys
    under the prefix. Redis errors propagate to the caller.
    """

    def __init__(self, client: redis.Redis, key_prefix: str = ""):
        self._client = client
        self.key_prefix = key_prefix

    @classmethod
    def from_url(cls, url: str, key_prefix: str = "") -> "RedisStore":
        pool = ConnectionPool.from_url(
            url,
            max_connections=20,
            decode_responses=True,
        )
        return cls(redis.Redis(connection_pool=pool), key_prefix)

    def _key(self, key: str) -> str:
        return f"{self.key_prefix}{key}"

    async def ping(self) -> bool:
        return await self._client.ping()

    async def get(self, key: str) -> str | None:
        value = await self._client.get(self._key(key))
        if isinstance(value, bytes):
            return value.decode()
        return value

    async def set(self, key: str, value: str) -> None:
        await self._client.set(self._key(key), value)

    async def remove(self, key: str) -> None:
        await self._client.delete(self._key(key))

    async def clear(self) -> None:
        keys = []
        async for key in self._client.scan_iter(match=f"{self.key_prefix}*"):
            keys.append(key)

        if keys:
            await self._client.delete(*keys)
        logger.info(f"Cleared {len(keys)} keys under prefix '{self.key_prefix}'")

    async def close(self) -> None:
        await self._client.aclose()
        logger.info("Redis connection closed")


# =============================================================================
# Factory
# =============================================================================

async def create_store(settings: Settings) -> MemoryStore | RedisStore:
    """Build the configured store.

    A Redis backend that does not answer PING is replaced by a MemoryStore.
    """
    if settings.storage_backend != "redis":
        logger.info("Using in-memory store")
        return MemoryStore()

    store = RedisStore.from_url(settings.redis_url, settings.key_prefix)
    try:
        await store.ping()
        logger.info(f"Redis connected: {settings.redis_url}")
        return store
    except (redis.ConnectionError, OSError) as e:
        logger.warning(f"Redis connection failed: {e}. Falling back to in-memory store.")
        await store.close()
        return MemoryStore()

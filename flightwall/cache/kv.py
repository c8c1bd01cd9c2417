"""Shared key-value tier: Redis in deployment, an in-process store otherwise."""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from typing import Callable, Optional

import redis.asyncio as redis

from flightwall.cache.edge import EdgeCache

logger = logging.getLogger("flightwall.cache.kv")


class KVStore(ABC):
    """Async string key-value store with per-key TTLs (seconds)."""

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        raise NotImplementedError

    @abstractmethod
    async def set(self, key: str, value: str, ttl: int) -> None:
        raise NotImplementedError

    @abstractmethod
    async def add(self, key: str, value: str, ttl: int) -> bool:
        """Store ``key`` only when it does not exist; True when stored."""
        raise NotImplementedError

    @abstractmethod
    async def delete(self, key: str) -> None:
        raise NotImplementedError

    @abstractmethod
    async def purge_prefix(self, prefix: str) -> int:
        raise NotImplementedError

    async def close(self) -> None:
        return None


class MemoryKVStore(KVStore):
    """Process-local KV store used for development and tests.

    None of the methods suspend, so a check followed by a set inside one
    coroutine cannot interleave with another request on the same loop.
    """

    def __init__(self, maxsize: int = 65536, timer: Callable[[], float] = time.monotonic) -> None:
        self._data: EdgeCache[str] = EdgeCache(maxsize=maxsize, timer=timer)

    async def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    async def set(self, key: str, value: str, ttl: int) -> None:
        self._data.set(key, value, ttl)

    async def add(self, key: str, value: str, ttl: int) -> bool:
        return self._data.add(key, value, ttl)

    async def delete(self, key: str) -> None:
        self._data.delete(key)

    async def purge_prefix(self, prefix: str) -> int:
        return self._data.purge_prefix(prefix)


class RedisKVStore(KVStore):
    """KV tier backed by Redis (shared across gateway instances)."""

    def __init__(self, redis_url: str, client: Optional[redis.Redis] = None) -> None:
        self.redis_url = redis_url
        self._redis: Optional[redis.Redis] = client

    async def _get_redis(self) -> redis.Redis:
        """Get Redis connection."""
        if self._redis is None:
            self._redis = redis.from_url(self.redis_url, decode_responses=True)
        return self._redis

    async def get(self, key: str) -> Optional[str]:
        client = await self._get_redis()
        value = await client.get(key)
        if isinstance(value, bytes):
            value = value.decode("utf-8")
        return value

    async def set(self, key: str, value: str, ttl: int) -> None:
        client = await self._get_redis()
        await client.set(key, value, ex=max(1, int(ttl)))

    async def add(self, key: str, value: str, ttl: int) -> bool:
        client = await self._get_redis()
        return bool(await client.set(key, value, ex=max(1, int(ttl)), nx=True))

    async def delete(self, key: str) -> None:
        client = await self._get_redis()
        await client.delete(key)

    async def purge_prefix(self, prefix: str) -> int:
        client = await self._get_redis()
        removed = 0
        async for key in client.scan_iter(match=f"{prefix}*", count=500):
            removed += await client.delete(key)
        return removed

    async def close(self) -> None:
        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None


def build_kv_store(redis_url: Optional[str]) -> KVStore:
    if redis_url:
        logger.info("Using Redis KV tier at %s", redis_url.split("@")[-1])
        return RedisKVStore(redis_url)
    logger.info("FLIGHTWALL_REDIS_URL not set; using in-process KV tier")
    return MemoryKVStore()


__all__ = ["KVStore", "MemoryKVStore", "RedisKVStore", "build_kv_store"]

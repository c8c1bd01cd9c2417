"""Instance-local response cache with per-entry TTLs."""

from __future__ import annotations

import time
from typing import Callable, Generic, TypeVar

from cachetools import TLRUCache

V = TypeVar("V")


def _expires(_key, item, now):
    return now + item[0]


class EdgeCache(Generic[V]):
    """Bounded in-memory cache; each ``set`` carries its own TTL in seconds."""

    def __init__(self, maxsize: int = 4096, timer: Callable[[], float] = time.monotonic) -> None:
        self._cache: TLRUCache = TLRUCache(maxsize=maxsize, ttu=_expires, timer=timer)

    def get(self, key: str) -> V | None:
        item = self._cache.get(key)
        return item[1] if item is not None else None

    def set(self, key: str, value: V, ttl: float) -> None:
        if ttl <= 0:
            self._cache.pop(key, None)
            return
        self._cache[key] = (ttl, value)

    def add(self, key: str, value: V, ttl: float) -> bool:
        """Set ``key`` only if it is absent; True when this call stored it."""

        if self.get(key) is not None:
            return False
        self.set(key, value, ttl)
        return True

    def delete(self, key: str) -> None:
        self._cache.pop(key, None)

    def purge_prefix(self, prefix: str) -> int:
        self._cache.expire()
        doomed = [key for key in list(self._cache.keys()) if key.startswith(prefix)]
        for key in doomed:
            self._cache.pop(key, None)
        return len(doomed)

    def __len__(self) -> int:
        self._cache.expire()
        return len(self._cache)


__all__ = ["EdgeCache"]

"""Read/write wrapper over the three cache tiers."""

from __future__ import annotations

import logging
from typing import Optional

from starlette.background import BackgroundTasks

from flightwall.cache.edge import EdgeCache
from flightwall.cache.entries import CacheEntry
from flightwall.cache.kv import KVStore
from flightwall.cache.rows import RowStore
from flightwall.tasks import defer

logger = logging.getLogger("flightwall.cache")

TIER_KV = "kv"
TIER_ROWS = "rows"
TIER_EDGE = "edge"

# Lookup priority.
TIERS = (TIER_KV, TIER_ROWS, TIER_EDGE)

KV_MAX_TTL = 30 * 86400
CACHE_NAME_KEY = "flightwall:cache-name"


class CacheTierManager:
    """Best-effort access to the KV, row and edge tiers.

    Keys in the KV and edge tiers are namespaced by the cache name so a name
    rotation can purge them; rows are permanent and keyed without it. Any
    tier failure is logged and treated as a miss (reads) or skipped (writes).
    """

    def __init__(
        self,
        *,
        edge: EdgeCache[CacheEntry],
        kv: KVStore,
        rows: Optional[RowStore],
        cache_name: str,
    ) -> None:
        self.edge = edge
        self.kv = kv
        self.rows = rows
        self.cache_name = cache_name

    def _ns(self, key: str) -> str:
        return f"{self.cache_name}:{key}"

    async def get(self, tier: str, key: str) -> Optional[CacheEntry]:
        try:
            if tier == TIER_KV:
                raw = await self.kv.get(self._ns(key))
                return CacheEntry.from_json(raw) if raw else None
            if tier == TIER_ROWS:
                return await self.rows.get(key) if self.rows is not None else None
            if tier == TIER_EDGE:
                return self.edge.get(self._ns(key))
        except Exception as exc:
            logger.warning("Cache tier %s read failed for %s: %s", tier, key, exc)
            return None
        raise ValueError(f"unknown cache tier {tier!r}")

    async def put(self, tier: str, key: str, entry: CacheEntry, ttl: int) -> bool:
        try:
            if tier == TIER_KV:
                await self.kv.set(self._ns(key), entry.to_json(), min(int(ttl), KV_MAX_TTL))
                return True
            if tier == TIER_ROWS:
                if self.rows is None:
                    return False
                await self.rows.put(key, entry, kind=key.split(":", 1)[0])
                return True
            if tier == TIER_EDGE:
                self.edge.set(self._ns(key), entry, ttl)
                return True
        except Exception as exc:
            logger.warning("Cache tier %s write failed for %s: %s", tier, key, exc)
            return False
        raise ValueError(f"unknown cache tier {tier!r}")

    async def lookup(
        self, key: str, background: BackgroundTasks | None = None
    ) -> tuple[Optional[CacheEntry], Optional[str]]:
        """Probe tiers in priority order; a row hit repopulates the KV tier later."""

        for tier in TIERS:
            entry = await self.get(tier, key)
            if entry is None:
                continue
            if tier == TIER_ROWS:
                logger.debug("Row hit for %s; repopulating KV tier", key)
                defer(background, self.put, TIER_KV, key, entry, entry.ttl or KV_MAX_TTL)
            return entry, tier
        return None, None

    async def store(
        self, key: str, entry: CacheEntry, background: BackgroundTasks | None = None
    ) -> None:
        """Write-through. Positive entries reach every tier; others only the fast tiers."""

        await self.put(TIER_EDGE, key, entry, entry.ttl)
        await self.put(TIER_KV, key, entry, entry.ttl)
        if not entry.positive:
            return
        if not defer(background, self.put, TIER_ROWS, key, entry, entry.ttl):
            await self.put(TIER_ROWS, key, entry, entry.ttl)

    async def rotate(self, cache_name: str) -> int:
        """Switch to ``cache_name`` and purge keys written under the previous name."""

        removed = 0
        try:
            previous = await self.kv.get(CACHE_NAME_KEY)
            if previous and previous != cache_name:
                removed += await self.kv.purge_prefix(f"{previous}:")
                removed += self.edge.purge_prefix(f"{previous}:")
                logger.info("Cache name rotated %s -> %s; purged %s keys", previous, cache_name, removed)
            await self.kv.set(CACHE_NAME_KEY, cache_name, KV_MAX_TTL)
        except Exception as exc:
            logger.warning("Cache rotation to %s failed: %s", cache_name, exc)
        self.cache_name = cache_name
        return removed


__all__ = ["CacheTierManager", "TIERS", "TIER_EDGE", "TIER_KV", "TIER_ROWS"]

"""Stale-while-revalidate serving of aircraft-state responses."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional

from starlette.background import BackgroundTasks

from flightwall.cache.entries import CacheEntry
from flightwall.cache.kv import KVStore
from flightwall.cache.manager import TIER_EDGE, TIER_KV, CacheTierManager
from flightwall.config import Settings, settings as default_settings
from flightwall.domain.geo import quantize
from flightwall.errors import UpstreamError
from flightwall.models.states import BoundingBox
from flightwall.providers.opensky import StatesPage
from flightwall.services.states import StateFetcher
from flightwall.tasks import defer

logger = logging.getLogger("flightwall.revalidate")

# Grid step (degrees) for bbox cache keys; about 1 km.
BBOX_STEP = 0.01

CACHE_HIT = "HIT"
CACHE_MISS = "MISS"
CACHE_STALE = "STALE"


def states_cache_key(bbox: BoundingBox, auth_mode: str) -> str:
    """Synthetic key: route, quantized bbox in fixed order, and auth mode."""

    corners = (bbox.lamin, bbox.lomin, bbox.lamax, bbox.lomax)
    return "states:" + auth_mode + ":" + ":".join(quantize(value, BBOX_STEP) for value in corners)


@dataclass
class StatesResponse:
    body: dict[str, Any]
    provider: str
    cache_status: str


class RevalidatingStatesCache:
    """Serve states from cache and refresh at most once per key at a time."""

    def __init__(
        self,
        fetcher: StateFetcher,
        cache: CacheTierManager,
        kv: KVStore,
        *,
        settings: Settings = default_settings,
    ) -> None:
        self.fetcher = fetcher
        self.cache = cache
        self.kv = kv
        self.settings = settings

    @property
    def entry_ttl(self) -> int:
        return self.settings.states_ttl + self.settings.states_swr_grace

    def refresh_lock_key(self, key: str) -> str:
        return f"swr:{key}"

    async def serve(
        self, bbox: BoundingBox, auth_mode: str, background: BackgroundTasks | None = None
    ) -> StatesResponse:
        key = states_cache_key(bbox, auth_mode)

        entry = await self.cache.get(TIER_EDGE, key)
        shared: Optional[CacheEntry] = None
        if entry is None:
            shared = await self.cache.get(TIER_KV, key)
            if shared is not None and shared.age() < self.entry_ttl:
                entry = shared
                await self.cache.put(TIER_EDGE, key, entry, int(self.entry_ttl - entry.age()) or 1)

        if entry is not None:
            if entry.age() >= self.settings.states_ttl:
                defer(background, self.refresh, bbox, auth_mode)
            return StatesResponse(entry.payload, entry.provider or "opensky", CACHE_HIT)

        try:
            page = await self.fetcher.fetch_states(bbox, auth_mode)
        except UpstreamError:
            if shared is None:
                shared = await self.cache.get(TIER_KV, key)
            if shared is not None:
                logger.warning("Serving stale states for %s after upstream failure", key)
                return StatesResponse(shared.payload, shared.provider or "opensky", CACHE_STALE)
            raise

        written = await self._write(key, page)
        return StatesResponse(written.payload, page.provider, CACHE_MISS)

    async def refresh(self, bbox: BoundingBox, auth_mode: str) -> bool:
        """Refetch one key unless another refresh holds its lock."""

        key = states_cache_key(bbox, auth_mode)
        if not await self.kv.add(self.refresh_lock_key(key), "1", self.settings.refresh_lock_ttl):
            logger.debug("Refresh already in flight for %s", key)
            return False
        try:
            page = await self.fetcher.fetch_states(bbox, auth_mode)
        except UpstreamError as exc:
            logger.warning("Background refresh of %s failed: %s", key, exc)
            return False
        await self._write(key, page)
        logger.debug("Refreshed %s from %s", key, page.provider)
        return True

    async def _write(self, key: str, page: StatesPage) -> CacheEntry:
        entry = CacheEntry(
            payload={"time": page.time, "states": page.rows()},
            ttl=self.entry_ttl,
            provider=page.provider,
        )
        await self.cache.put(TIER_EDGE, key, entry, self.entry_ttl)
        await self.cache.put(TIER_KV, key, entry, self.entry_ttl + self.settings.states_stale_ttl)
        return entry


__all__ = [
    "BBOX_STEP",
    "CACHE_HIT",
    "CACHE_MISS",
    "CACHE_STALE",
    "RevalidatingStatesCache",
    "StatesResponse",
    "states_cache_key",
]

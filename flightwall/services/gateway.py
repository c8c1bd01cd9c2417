"""Wiring of the long-lived gateway components."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

import httpx
from sqlalchemy.orm import sessionmaker

from flightwall.cache.edge import EdgeCache
from flightwall.cache.entries import CacheEntry
from flightwall.cache.kv import KVStore, build_kv_store
from flightwall.cache.manager import CacheTierManager
from flightwall.cache.rows import RowStore
from flightwall.config import Settings, settings as default_settings
from flightwall.db import SessionLocal
from flightwall.providers.adsblol import AdsbLolClient
from flightwall.providers.aerodatabox import AeroDataBoxClient
from flightwall.providers.opensky import OpenSkyClient
from flightwall.services.enrichment import EnrichmentOrchestrator
from flightwall.services.revalidate import RevalidatingStatesCache
from flightwall.services.states import StateFetcher
from flightwall.services.throttle import HardBudget, ThrottleGate
from flightwall.services.tokens import TokenManager, TokenStore

logger = logging.getLogger("flightwall.gateway")

EDGE_MAXSIZE = 4096


@dataclass
class Gateway:
    settings: Settings
    http: httpx.AsyncClient
    kv: KVStore
    tokens: TokenManager
    cache: CacheTierManager
    fetcher: StateFetcher
    states: RevalidatingStatesCache
    gate: ThrottleGate
    budget: HardBudget
    enrichment: EnrichmentOrchestrator

    async def aclose(self) -> None:
        await self.http.aclose()
        await self.kv.close()
        logger.info("Gateway clients closed")


def build_gateway(
    settings: Settings = default_settings,
    *,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    kv: Optional[KVStore] = None,
    session_factory: Optional[sessionmaker] = SessionLocal,
    token_store: Optional[TokenStore] = None,
) -> Gateway:
    """Build every component around one shared HTTP client.

    ``transport`` lets tests route all upstream traffic to an
    ``httpx.MockTransport``; ``session_factory=None`` disables the row tier.
    """

    http = httpx.AsyncClient(transport=transport, follow_redirects=True)
    kv = kv or build_kv_store(settings.redis_url)
    rows = RowStore(session_factory) if session_factory is not None else None
    cache = CacheTierManager(
        edge=EdgeCache[CacheEntry](maxsize=EDGE_MAXSIZE),
        kv=kv,
        rows=rows,
        cache_name=settings.cache_name,
    )

    tokens = TokenManager(http, store=token_store or TokenStore(), settings=settings)
    fetcher = StateFetcher(
        tokens,
        OpenSkyClient(http, settings=settings),
        AdsbLolClient(http, settings=settings),
    )
    gate = ThrottleGate(kv, settings=settings)
    budget = HardBudget(kv, settings=settings)

    return Gateway(
        settings=settings,
        http=http,
        kv=kv,
        tokens=tokens,
        cache=cache,
        fetcher=fetcher,
        states=RevalidatingStatesCache(fetcher, cache, kv, settings=settings),
        gate=gate,
        budget=budget,
        enrichment=EnrichmentOrchestrator(
            AeroDataBoxClient(http, settings=settings),
            cache,
            gate,
            budget,
            settings=settings,
        ),
    )


__all__ = ["Gateway", "build_gateway"]

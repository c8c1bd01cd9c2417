"""On-demand flight and aircraft enrichment against the metered provider."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Optional

from pydantic import ValidationError
from starlette.background import BackgroundTasks

from flightwall.cache.entries import CacheEntry
from flightwall.cache.manager import CacheTierManager
from flightwall.config import Settings, settings as default_settings
from flightwall.domain.geo import haversine_km, is_approaching
from flightwall.errors import ConfigurationError, UpstreamError
from flightwall.models.enrichment import AeroAircraft, AeroFlight, FlightInfo
from flightwall.providers.aerodatabox import PROVIDER, AeroDataBoxClient
from flightwall.services.throttle import (
    KIND_AIRCRAFT,
    KIND_FLIGHT,
    SKIP_UNAVAILABLE,
    GateDecision,
    HardBudget,
    ThrottleGate,
)

logger = logging.getLogger("flightwall.enrichment")

# Passenger airline callsigns: three-letter ICAO prefix, flight number, optional suffix.
CALLSIGN_PATTERN = re.compile(r"^[A-Z]{3}\d{1,5}[A-Z]?$")

CACHE_CONTROL = {
    KIND_FLIGHT: "public, max-age=30, s-maxage=300",
    KIND_AIRCRAFT: "public, max-age=3600, s-maxage=21600",
}
NEGATIVE_CACHE_CONTROL = "public, max-age=30, s-maxage=600"
NO_STORE = "no-store"

ID_FIELDS = {KIND_FLIGHT: "callsign", KIND_AIRCRAFT: "icao24"}


@dataclass
class EnrichmentOutcome:
    """What the route should send back; ``body`` None means an empty body."""

    status_code: int
    body: Optional[dict[str, Any]]
    cache_control: str = NO_STORE
    cached: bool = False


@dataclass
class Proximity:
    """Observer and aircraft positions supplied by the caller."""

    lat: float
    lon: float
    aircraft_lat: float
    aircraft_lon: float
    track: Optional[float] = None


def normalize_id(kind: str, raw: str) -> str:
    if kind == KIND_FLIGHT:
        return re.sub(r"\s+", "", raw or "").upper()
    return (raw or "").strip().lower()


class EnrichmentOrchestrator:
    """Cache → gate → metered fetch → multi-tier persist."""

    def __init__(
        self,
        client: AeroDataBoxClient,
        cache: CacheTierManager,
        gate: ThrottleGate,
        budget: HardBudget,
        *,
        settings: Settings = default_settings,
    ) -> None:
        self.client = client
        self.cache = cache
        self.gate = gate
        self.budget = budget
        self.settings = settings

    @staticmethod
    def cache_key(kind: str, entity_id: str) -> str:
        return f"{kind}:{entity_id}"

    def positive_ttl(self, kind: str, verified: bool) -> int:
        s = self.settings
        if kind == KIND_AIRCRAFT:
            return s.aircraft_verified_ttl if verified else s.aircraft_ttl
        return s.flight_verified_ttl if verified else s.flight_ttl

    # Pre-filters ------------------------------------------------------------

    def callsign_supported(self, callsign: str) -> bool:
        if self.settings.block_cargo_callsigns and callsign.startswith(
            tuple(self.settings.blocked_callsign_prefixes)
        ):
            return False
        # Also rejects well-formed but non-airline callsigns (e.g. N-numbers).
        if self.settings.callsign_pattern_gate and not CALLSIGN_PATTERN.match(callsign):
            return False
        return True

    def in_range(self, proximity: Optional[Proximity]) -> bool:
        limit = self.settings.enrich_max_distance_km
        if limit <= 0 or proximity is None:
            return True
        distance = haversine_km(
            proximity.lat, proximity.lon, proximity.aircraft_lat, proximity.aircraft_lon
        )
        if distance > limit:
            return False
        return is_approaching(
            (proximity.lat, proximity.lon),
            (proximity.aircraft_lat, proximity.aircraft_lon),
            proximity.track,
        )

    # Main flow ------------------------------------------------------------

    async def enrich(
        self,
        kind: str,
        raw_id: str,
        *,
        background: BackgroundTasks | None = None,
        proximity: Optional[Proximity] = None,
    ) -> EnrichmentOutcome:
        field = ID_FIELDS[kind]
        entity_id = normalize_id(kind, raw_id)
        if not entity_id:
            return EnrichmentOutcome(400, {"ok": False, "error": f"missing {field}"})

        if kind == KIND_FLIGHT and not self.callsign_supported(entity_id):
            return EnrichmentOutcome(
                200, {"ok": False, field: entity_id, "error": "unsupported_callsign"}
            )
        if not self.in_range(proximity):
            return EnrichmentOutcome(200, {"ok": False, field: entity_id, "error": "out_of_range"})

        try:
            self.client.ensure_configured()
        except ConfigurationError as exc:
            logger.error("%s", exc)
            return EnrichmentOutcome(500, {"ok": False, "error": exc.code, "hint": exc.hint})

        key = self.cache_key(kind, entity_id)
        entry, tier = await self.cache.lookup(key, background)
        if entry is not None:
            logger.debug("Enrichment cache hit for %s in %s tier", key, tier)
            return self._from_entry(kind, entity_id, entry)

        try:
            decision = await self.gate.evaluate(kind, entity_id)
        except Exception as exc:
            logger.warning("Throttle gate unavailable for %s: %s", key, exc)
            decision = GateDecision(False, SKIP_UNAVAILABLE)
        if not decision.allowed:
            return EnrichmentOutcome(
                200,
                {"ok": False, field: entity_id, "error": "aerodata_throttled", "reason": decision.reason},
            )

        try:
            within_budget = await self.budget.consume()
        except Exception as exc:
            logger.warning("Hard budget check failed for %s: %s", key, exc)
            within_budget = False
        if not within_budget:
            return EnrichmentOutcome(204, None)

        return await self._fetch(kind, entity_id, background)

    async def _fetch(
        self, kind: str, entity_id: str, background: BackgroundTasks | None
    ) -> EnrichmentOutcome:
        key = self.cache_key(kind, entity_id)
        try:
            if kind == KIND_FLIGHT:
                data = await self.client.get_flight(entity_id)
            else:
                data = await self.client.get_aircraft(entity_id)
            body, verified = self._parse(kind, entity_id, data)
        except UpstreamError as exc:
            return await self._upstream_failure(kind, entity_id, exc, background)

        if body is None:
            return await self._store_negative(kind, entity_id, background)

        ttl = self.positive_ttl(kind, verified)
        entry = CacheEntry(payload=body, ttl=ttl, verified=verified, provider=PROVIDER)
        await self.cache.store(key, entry, background)
        logger.info("Enriched %s (verified=%s, ttl=%ss)", key, verified, ttl)
        return EnrichmentOutcome(200, body, CACHE_CONTROL[kind])

    def _parse(self, kind: str, entity_id: str, data: Any) -> tuple[Optional[dict[str, Any]], bool]:
        """Return the response body and verified flag, or (None, False) for no match."""

        if isinstance(data, list):
            if not data:
                return None, False
            data = data[0]
        record = data
        if not isinstance(record, dict):
            raise UpstreamError(
                "malformed", "AeroDataBox body is not an object", status=200, provider=PROVIDER
            )
        try:
            if kind == KIND_FLIGHT:
                flight = AeroFlight.model_validate(record)
                return FlightInfo.from_provider(entity_id, flight).to_body(), flight.verified
            aircraft = AeroAircraft.model_validate(record)
        except ValidationError as exc:
            raise UpstreamError(
                "malformed", "AeroDataBox body has an unexpected shape", status=200, provider=PROVIDER
            ) from exc
        return {**record, "ok": True, ID_FIELDS[kind]: entity_id}, aircraft.verified

    async def _store_negative(
        self, kind: str, entity_id: str, background: BackgroundTasks | None
    ) -> EnrichmentOutcome:
        body = {"ok": True, "found": False, ID_FIELDS[kind]: entity_id}
        entry = CacheEntry(
            payload=body, ttl=self.settings.negative_ttl, found=False, provider=PROVIDER
        )
        await self.cache.store(self.cache_key(kind, entity_id), entry, background)
        logger.info("No %s match for %s; cached negative", kind, entity_id)
        return EnrichmentOutcome(200, body, NEGATIVE_CACHE_CONTROL)

    async def _upstream_failure(
        self,
        kind: str,
        entity_id: str,
        exc: UpstreamError,
        background: BackgroundTasks | None,
    ) -> EnrichmentOutcome:
        field = ID_FIELDS[kind]
        if exc.kind == "not_found":
            return await self._store_negative(kind, entity_id, background)

        if exc.status == 429:
            body = {"ok": False, field: entity_id, "error": "rate_limited", "status": 429}
            entry = CacheEntry(
                payload=body,
                ttl=self.settings.rate_limited_ttl,
                status=429,
                found=False,
                provider=PROVIDER,
            )
            await self.cache.store(self.cache_key(kind, entity_id), entry, background)
            await self.gate.trip_cooldown()
            return EnrichmentOutcome(429, body)

        if exc.kind == "malformed":
            return EnrichmentOutcome(502, {"ok": False, field: entity_id, "error": "aerodata_non_json"})

        if exc.status is None:
            return EnrichmentOutcome(
                502,
                {"ok": False, field: entity_id, "error": "aerodata_fetch_failed", "detail": str(exc)},
            )

        return EnrichmentOutcome(
            502,
            {
                "ok": False,
                field: entity_id,
                "error": "aerodata_upstream_error",
                "status": exc.status,
                "detail": exc.detail or "",
            },
        )

    def _from_entry(self, kind: str, entity_id: str, entry: CacheEntry) -> EnrichmentOutcome:
        if entry.status == 429:
            return EnrichmentOutcome(429, entry.payload, cached=True)
        if not entry.found:
            return EnrichmentOutcome(200, entry.payload, NEGATIVE_CACHE_CONTROL, cached=True)
        return EnrichmentOutcome(200, entry.payload, CACHE_CONTROL[kind], cached=True)


__all__ = [
    "CALLSIGN_PATTERN",
    "EnrichmentOrchestrator",
    "EnrichmentOutcome",
    "Proximity",
    "normalize_id",
]

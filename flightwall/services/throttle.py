"""Budget, cooldown and stampede gate in front of the metered provider.

Counters are read-modify-write over the KV tier and are not atomic: two
gateway instances can both read ``n`` and write ``n + 1``. That inexactness
is accepted; the gate exists to contain cost, not to meter it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Optional

from flightwall.cache.kv import KVStore
from flightwall.config import Settings, settings as default_settings
from flightwall.domain.windows import day_key, hour_key, is_night_window

logger = logging.getLogger("flightwall.throttle")

KIND_FLIGHT = "flight"
KIND_AIRCRAFT = "aircraft"

SKIP_DISABLED = "disabled"
SKIP_COOLDOWN_429 = "cooldown_429"
SKIP_LOCKED = "locked"
SKIP_GLOBAL_COOLDOWN = "global_cooldown"
SKIP_ENTITY_COOLDOWN = "entity_cooldown"
SKIP_DAY_CAP = "day_cap"
SKIP_HOUR_CAP = "hour_cap"
SKIP_UNAVAILABLE = "unavailable"

DAY_COUNTER_TTL = 2 * 86400
HOUR_COUNTER_TTL = 2 * 3600


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class GateDecision:
    allowed: bool
    reason: Optional[str] = None


PASSED = GateDecision(True)


@dataclass(frozen=True)
class GateLimits:
    """Effective limits for one evaluation (day or night)."""

    night: bool
    global_spacing: int
    entity_cooldown: int
    day_limit: int
    hour_limit: int


def check_night_limits(settings: Settings) -> list[str]:
    """Return the names of night limits that are not larger than their day value."""

    pairs = {
        "enrich_day_limit": (settings.enrich_day_limit_day, settings.enrich_day_limit_night),
        "enrich_hour_limit": (settings.enrich_hour_limit_day, settings.enrich_hour_limit_night),
    }
    problems = [name for name, (day, night) in pairs.items() if night <= day]
    for name in problems:
        logger.warning("%s: night limit should be larger than the day limit", name)
    return problems


class ThrottleGate:
    """Decide whether one enrichment call may reach the metered provider."""

    def __init__(
        self,
        kv: KVStore,
        *,
        settings: Settings = default_settings,
        now: Callable[[], datetime] = _utcnow,
        is_night: Callable[[datetime, str], bool] = is_night_window,
        prefix: str = "gate",
    ) -> None:
        self.kv = kv
        self.settings = settings
        self.now = now
        self.is_night = is_night
        self.prefix = prefix

    # Keys -----------------------------------------------------------------

    @property
    def cooldown_key(self) -> str:
        return f"{self.prefix}:cooldown429"

    @property
    def global_key(self) -> str:
        return f"{self.prefix}:global"

    def lock_key(self, kind: str, entity_id: str) -> str:
        return f"{self.prefix}:lock:{kind}:{entity_id}"

    def entity_key(self, kind: str, entity_id: str) -> str:
        return f"{self.prefix}:cd:{kind}:{entity_id}"

    def day_counter_key(self, now: datetime) -> str:
        return f"{self.prefix}:budget:day:{day_key(now, self.settings.timezone)}"

    def hour_counter_key(self, now: datetime) -> str:
        return f"{self.prefix}:budget:hour:{hour_key(now, self.settings.timezone)}"

    # Limits ---------------------------------------------------------------

    def limits(self, kind: str, now: datetime) -> GateLimits:
        s = self.settings
        night = self.is_night(now, s.timezone)
        if kind == KIND_AIRCRAFT:
            cooldown = s.aircraft_cooldown_night if night else s.aircraft_cooldown_day
        else:
            cooldown = s.flight_cooldown_night if night else s.flight_cooldown_day
        return GateLimits(
            night=night,
            global_spacing=s.enrich_global_spacing_night if night else s.enrich_global_spacing_day,
            entity_cooldown=cooldown,
            day_limit=s.enrich_day_limit_night if night else s.enrich_day_limit_day,
            hour_limit=s.enrich_hour_limit_night if night else s.enrich_hour_limit_day,
        )

    async def _count(self, key: str) -> int:
        raw = await self.kv.get(key)
        try:
            return int(raw) if raw is not None else 0
        except ValueError:
            return 0

    # Gate -----------------------------------------------------------------

    async def evaluate(self, kind: str, entity_id: str) -> GateDecision:
        """Run the checks in order; the first failing one names the skip reason.

        On success the counters and markers are written before returning, so
        the caller may issue the upstream call immediately.
        """

        if not self.settings.enrich_enabled:
            return self._skip(SKIP_DISABLED, kind, entity_id)

        now = self.now()
        limits = self.limits(kind, now)
        lock_key = self.lock_key(kind, entity_id)
        entity_key = self.entity_key(kind, entity_id)

        if await self.kv.get(self.cooldown_key):
            return self._skip(SKIP_COOLDOWN_429, kind, entity_id)
        if await self.kv.get(lock_key):
            return self._skip(SKIP_LOCKED, kind, entity_id)
        if await self.kv.get(self.global_key):
            return self._skip(SKIP_GLOBAL_COOLDOWN, kind, entity_id)
        if await self.kv.get(entity_key):
            return self._skip(SKIP_ENTITY_COOLDOWN, kind, entity_id)

        day_counter = self.day_counter_key(now)
        hour_counter = self.hour_counter_key(now)
        day_count = await self._count(day_counter)
        if day_count >= limits.day_limit:
            return self._skip(SKIP_DAY_CAP, kind, entity_id)
        hour_count = await self._count(hour_counter)
        if hour_count >= limits.hour_limit:
            return self._skip(SKIP_HOUR_CAP, kind, entity_id)

        await self.kv.set(day_counter, str(day_count + 1), DAY_COUNTER_TTL)
        await self.kv.set(hour_counter, str(hour_count + 1), HOUR_COUNTER_TTL)
        if not await self.kv.add(lock_key, "1", self.settings.enrich_lock_ttl):
            return self._skip(SKIP_LOCKED, kind, entity_id)
        if limits.global_spacing > 0:
            await self.kv.set(self.global_key, "1", limits.global_spacing)
        if limits.entity_cooldown > 0:
            await self.kv.set(entity_key, "1", limits.entity_cooldown)

        logger.debug(
            "Gate passed for %s %s (day=%s/%s hour=%s/%s night=%s)",
            kind,
            entity_id,
            day_count + 1,
            limits.day_limit,
            hour_count + 1,
            limits.hour_limit,
            limits.night,
        )
        return PASSED

    async def trip_cooldown(self) -> None:
        """Block all enrichment after the provider answered 429."""

        await self.kv.set(self.cooldown_key, "1", self.settings.cooldown_429_ttl)
        logger.warning(
            "Metered provider rate limited; enrichment paused for %ss",
            self.settings.cooldown_429_ttl,
        )

    def _skip(self, reason: str, kind: str, entity_id: str) -> GateDecision:
        logger.info("Enrichment skipped for %s %s: %s", kind, entity_id, reason)
        return GateDecision(False, reason)


class HardBudget:
    """Coarse daily cap on metered calls; disabled when the limit is 0."""

    def __init__(
        self,
        kv: KVStore,
        *,
        settings: Settings = default_settings,
        now: Callable[[], datetime] = _utcnow,
        prefix: str = "gate",
    ) -> None:
        self.kv = kv
        self.settings = settings
        self.now = now
        self.prefix = prefix

    @property
    def limit(self) -> int:
        return max(0, self.settings.aerodata_hard_daily_budget)

    @property
    def enabled(self) -> bool:
        return self.limit > 0

    def counter_key(self) -> str:
        return f"{self.prefix}:hard:{day_key(self.now(), self.settings.timezone)}"

    async def consume(self) -> bool:
        """Count one metered call; False (and nothing counted) once the cap is hit."""

        if not self.enabled:
            return True
        key = self.counter_key()
        raw = await self.kv.get(key)
        used = int(raw) if raw and raw.isdigit() else 0
        if used >= self.limit:
            logger.warning("Hard daily budget of %s metered calls exhausted", self.limit)
            return False
        await self.kv.set(key, str(used + 1), DAY_COUNTER_TTL)
        return True


__all__ = [
    "GateDecision",
    "GateLimits",
    "HardBudget",
    "KIND_AIRCRAFT",
    "KIND_FLIGHT",
    "SKIP_COOLDOWN_429",
    "SKIP_DAY_CAP",
    "SKIP_DISABLED",
    "SKIP_ENTITY_COOLDOWN",
    "SKIP_GLOBAL_COOLDOWN",
    "SKIP_HOUR_CAP",
    "SKIP_LOCKED",
    "SKIP_UNAVAILABLE",
    "ThrottleGate",
    "check_night_limits",
]

from dataclasses import replace
from datetime import datetime, timezone

import pytest

from flightwall.cache.kv import MemoryKVStore
from flightwall.services.throttle import (
    KIND_AIRCRAFT,
    KIND_FLIGHT,
    HardBudget,
    ThrottleGate,
    check_night_limits,
)

NOON = datetime(2024, 5, 3, 18, 0, tzinfo=timezone.utc)


class LosingKV(MemoryKVStore):
    """Every set-if-absent loses the race to another instance."""

    async def add(self, key, value, ttl):
        return False


def _gate(settings, kv=None, night=False):
    return ThrottleGate(
        kv or MemoryKVStore(),
        settings=settings,
        now=lambda: NOON,
        is_night=lambda now, tz: night,
    )


@pytest.fixture
def gate_settings(test_settings):
    return replace(
        test_settings,
        enrich_global_spacing_day=8,
        enrich_global_spacing_night=3,
        flight_cooldown_day=600,
        aircraft_cooldown_day=3600,
        enrich_day_limit_day=300,
        enrich_day_limit_night=450,
        enrich_hour_limit_day=30,
        enrich_hour_limit_night=60,
    )


@pytest.mark.anyio
async def test_disabled_gate_skips_everything(gate_settings):
    gate = _gate(replace(gate_settings, enrich_enabled=False))

    decision = await gate.evaluate(KIND_FLIGHT, "DAL123")

    assert not decision.allowed
    assert decision.reason == "disabled"


@pytest.mark.anyio
async def test_same_entity_is_locked_after_pass(gate_settings):
    gate = _gate(gate_settings)

    assert (await gate.evaluate(KIND_FLIGHT, "DAL123")).allowed
    second = await gate.evaluate(KIND_FLIGHT, "DAL123")

    assert second.reason == "locked"


@pytest.mark.anyio
async def test_other_entity_waits_for_global_spacing(gate_settings):
    gate = _gate(gate_settings)

    assert (await gate.evaluate(KIND_FLIGHT, "DAL123")).allowed
    other = await gate.evaluate(KIND_AIRCRAFT, "a1b2c3")

    assert other.reason == "global_cooldown"


@pytest.mark.anyio
async def test_entity_cooldown_outlives_the_lock(gate_settings):
    kv = MemoryKVStore()
    gate = _gate(replace(gate_settings, enrich_global_spacing_day=0), kv)

    assert (await gate.evaluate(KIND_FLIGHT, "DAL123")).allowed
    await kv.delete(gate.lock_key(KIND_FLIGHT, "DAL123"))

    assert (await gate.evaluate(KIND_FLIGHT, "DAL123")).reason == "entity_cooldown"
    assert (await gate.evaluate(KIND_FLIGHT, "UAL456")).allowed


@pytest.mark.anyio
async def test_rate_limit_cooldown_blocks_every_entity(gate_settings):
    gate = _gate(gate_settings)

    await gate.trip_cooldown()

    assert (await gate.evaluate(KIND_FLIGHT, "DAL123")).reason == "cooldown_429"
    assert (await gate.evaluate(KIND_AIRCRAFT, "a1b2c3")).reason == "cooldown_429"


@pytest.mark.anyio
async def test_day_cap(gate_settings):
    kv = MemoryKVStore()
    gate = _gate(replace(gate_settings, enrich_global_spacing_day=0, enrich_day_limit_day=2), kv)

    assert (await gate.evaluate(KIND_FLIGHT, "DAL1")).allowed
    assert (await gate.evaluate(KIND_FLIGHT, "DAL2")).allowed
    assert (await gate.evaluate(KIND_FLIGHT, "DAL3")).reason == "day_cap"
    assert await kv.get(gate.day_counter_key(NOON)) == "2"


@pytest.mark.anyio
async def test_hour_cap_uses_night_limits_at_night(gate_settings):
    settings = replace(
        gate_settings,
        enrich_global_spacing_day=0,
        enrich_global_spacing_night=0,
        enrich_hour_limit_day=1,
        enrich_hour_limit_night=2,
    )

    day_gate = _gate(settings)
    assert (await day_gate.evaluate(KIND_FLIGHT, "DAL1")).allowed
    assert (await day_gate.evaluate(KIND_FLIGHT, "DAL2")).reason == "hour_cap"

    night_gate = _gate(settings, night=True)
    assert (await night_gate.evaluate(KIND_FLIGHT, "DAL1")).allowed
    assert (await night_gate.evaluate(KIND_FLIGHT, "DAL2")).allowed
    assert (await night_gate.evaluate(KIND_FLIGHT, "DAL3")).reason == "hour_cap"


@pytest.mark.anyio
async def test_losing_the_lock_race_reports_locked(gate_settings):
    gate = _gate(gate_settings, LosingKV())

    decision = await gate.evaluate(KIND_FLIGHT, "DAL123")

    assert not decision.allowed
    assert decision.reason == "locked"


def test_limits_switch_with_night(gate_settings):
    day = _gate(gate_settings).limits(KIND_AIRCRAFT, NOON)
    night = _gate(gate_settings, night=True).limits(KIND_AIRCRAFT, NOON)

    assert (day.global_spacing, day.entity_cooldown, day.day_limit) == (8, 3600, 300)
    assert night.night is True
    assert night.global_spacing == 3
    assert night.day_limit == 450
    assert night.hour_limit == 60


def test_check_night_limits_flags_inverted_pairs(gate_settings):
    assert check_night_limits(gate_settings) == []
    inverted = replace(gate_settings, enrich_hour_limit_night=10)
    assert check_night_limits(inverted) == ["enrich_hour_limit"]


@pytest.mark.anyio
async def test_hard_budget_vetoes_after_limit(test_settings):
    kv = MemoryKVStore()
    budget = HardBudget(kv, settings=replace(test_settings, aerodata_hard_daily_budget=2), now=lambda: NOON)

    assert await budget.consume()
    assert await budget.consume()
    assert not await budget.consume()
    assert await kv.get(budget.counter_key()) == "2"


@pytest.mark.anyio
async def test_hard_budget_disabled_by_default(test_settings):
    budget = HardBudget(MemoryKVStore(), settings=test_settings, now=lambda: NOON)

    assert not budget.enabled
    for _ in range(5):
        assert await budget.consume()

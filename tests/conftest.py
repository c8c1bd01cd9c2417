import inspect
from dataclasses import replace

import httpx
import pytest
from sqlalchemy.orm import sessionmaker

from flightwall.cache.kv import MemoryKVStore
from flightwall.config import settings
from flightwall.db import build_engine, init_db
from flightwall.services.gateway import build_gateway

AERODATA_HOST = "aerodatabox.p.rapidapi.com"
OPENSKY_HOST = "opensky-network.org"
TOKEN_HOST = "auth.opensky-network.org"
ADSBLOL_HOST = "api.adsb.lol"


class FakeUpstream:
    """Routes MockTransport traffic by host and records every request."""

    def __init__(self) -> None:
        self.routes = {}
        self.requests: list[httpx.Request] = []

    def on(self, host, handler) -> None:
        self.routes[host] = handler

    def calls(self, host) -> list[httpx.Request]:
        return [request for request in self.requests if request.url.host == host]

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        handler = self.routes.get(request.url.host)
        if handler is None:
            return httpx.Response(404, text=f"no route for {request.url.host}")
        response = handler(request)
        if inspect.isawaitable(response):
            response = await response
        return response

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def test_settings():
    """Settings with every provider configured and nothing read from the host."""

    return replace(
        settings,
        flightwall_env="test",
        redis_url=None,
        ssm_prefix=None,
        opensky_client_id="client-id",
        opensky_client_secret="client-secret",
        opensky_user=None,
        opensky_pass=None,
        opensky_auth_mode="auto",
        opensky_states_url=f"https://{OPENSKY_HOST}/api/states/all",
        opensky_token_url=f"https://{TOKEN_HOST}/auth/realms/opensky-network/protocol/openid-connect/token",
        adsblol_base_url=f"https://{ADSBLOL_HOST}",
        aerodata_key="test-key",
        aerodata_host=AERODATA_HOST,
        states_ttl=5,
        states_swr_grace=25,
        states_stale_ttl=300,
        flight_ttl=6 * 3600,
        flight_verified_ttl=24 * 3600,
        aircraft_ttl=7 * 86400,
        aircraft_verified_ttl=30 * 86400,
        negative_ttl=2 * 3600,
        rate_limited_ttl=60,
        cooldown_429_ttl=300,
        enrich_enabled=True,
        enrich_lock_ttl=12,
        enrich_global_spacing_day=8,
        enrich_global_spacing_night=3,
        enrich_day_limit_day=300,
        enrich_day_limit_night=450,
        enrich_hour_limit_day=30,
        enrich_hour_limit_night=60,
        callsign_pattern_gate=True,
        block_cargo_callsigns=True,
        blocked_callsign_prefixes=("UPS", "FDX", "GTI", "ABX", "ATN"),
        aerodata_hard_daily_budget=0,
        enrich_max_distance_km=0.0,
    )


@pytest.fixture
def session_factory(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'rows.db'}")
    init_db(engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    engine.dispose()


@pytest.fixture
def upstream():
    fake = FakeUpstream()
    fake.on(TOKEN_HOST, lambda request: httpx.Response(200, json={"access_token": "tok", "expires_in": 1800}))
    return fake


@pytest.fixture
def make_gateway(test_settings, upstream, session_factory):
    """Build a gateway wired to the fake upstream; keyword overrides patch settings."""

    def factory(**overrides):
        return build_gateway(
            replace(test_settings, **overrides),
            transport=upstream.transport,
            kv=MemoryKVStore(),
            session_factory=session_factory,
        )

    return factory

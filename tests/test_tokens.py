import asyncio
import base64
from dataclasses import replace

import httpx
import pytest

from flightwall.errors import ConfigurationError
from flightwall.services.tokens import AUTH_BASIC, AUTH_NONE, AUTH_OAUTH, TokenManager, TokenStore


class FakeClock:
    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


def _manager(test_settings, handler, clock=None):
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return TokenManager(client, store=TokenStore(), settings=test_settings, clock=clock or FakeClock())


@pytest.mark.anyio
async def test_concurrent_callers_share_one_token_fetch(test_settings):
    calls = []

    async def handler(request: httpx.Request):
        calls.append(request)
        await asyncio.sleep(0.02)
        return httpx.Response(200, json={"access_token": "tok-1", "expires_in": 1800})

    manager = _manager(test_settings, handler)

    tokens = await asyncio.gather(*(manager.get_token() for _ in range(5)))

    assert tokens == ["tok-1"] * 5
    assert len(calls) == 1
    body = calls[0].content.decode()
    assert "grant_type=client_credentials" in body
    assert "client_id=client-id" in body


@pytest.mark.anyio
async def test_token_is_reused_until_expiry_margin(test_settings):
    issued = []

    def handler(request: httpx.Request):
        issued.append(f"tok-{len(issued) + 1}")
        return httpx.Response(200, json={"access_token": issued[-1], "expires_in": 60})

    clock = FakeClock(0.0)
    manager = _manager(test_settings, handler, clock)

    assert await manager.get_token() == "tok-1"
    clock.now = 44.0
    assert await manager.get_token() == "tok-1"
    clock.now = 46.0
    assert await manager.get_token() == "tok-2"
    assert len(issued) == 2


@pytest.mark.anyio
async def test_token_without_expiry_is_returned_but_not_cached(test_settings):
    calls = []

    def handler(request: httpx.Request):
        calls.append(request)
        return httpx.Response(200, json={"access_token": "tok"})

    manager = _manager(test_settings, handler)

    assert await manager.get_token() == "tok"
    assert await manager.get_token() == "tok"
    assert len(calls) == 2
    assert manager.store.get(0) is None


@pytest.mark.anyio
async def test_token_failures_return_empty_string(test_settings):
    def rejecting(request: httpx.Request):
        return httpx.Response(401, text="invalid_client")

    def timing_out(request: httpx.Request):
        raise httpx.ConnectTimeout("timed out", request=request)

    def bad_url(request: httpx.Request):
        raise httpx.InvalidURL("Invalid port: 'abc'")

    assert await _manager(test_settings, rejecting).get_token() == ""
    assert await _manager(test_settings, timing_out).get_token() == ""
    assert await _manager(test_settings, bad_url).get_token() == ""


@pytest.mark.anyio
async def test_clear_token_forces_refetch(test_settings):
    calls = []

    def handler(request: httpx.Request):
        calls.append(request)
        return httpx.Response(200, json={"access_token": "tok", "expires_in": 1800})

    manager = _manager(test_settings, handler)
    await manager.get_token()
    manager.clear_token()
    await manager.get_token()

    assert len(calls) == 2


def test_resolve_mode_prefers_oauth_then_basic(test_settings):
    def handler(request):  # pragma: no cover - never called
        raise AssertionError

    assert _manager(test_settings, handler).resolve_mode() == AUTH_OAUTH

    basic_only = replace(
        test_settings, opensky_client_id=None, opensky_client_secret=None, opensky_user="u", opensky_pass="p"
    )
    assert _manager(basic_only, handler).resolve_mode() == AUTH_BASIC

    anonymous = replace(basic_only, opensky_user=None, opensky_pass=None)
    assert _manager(anonymous, handler).resolve_mode() == AUTH_NONE
    assert _manager(anonymous, handler).resolve_mode("none") == AUTH_NONE


def test_resolve_mode_rejects_unconfigured_or_unknown_modes(test_settings):
    def handler(request):  # pragma: no cover - never called
        raise AssertionError

    manager = _manager(test_settings, handler)

    with pytest.raises(ConfigurationError) as excinfo:
        manager.resolve_mode("basic")
    assert excinfo.value.code == "opensky_not_configured"

    with pytest.raises(ValueError):
        manager.resolve_mode("kerberos")


@pytest.mark.anyio
async def test_auth_headers_per_mode(test_settings):
    def handler(request: httpx.Request):
        return httpx.Response(200, json={"access_token": "tok", "expires_in": 1800})

    settings = replace(test_settings, opensky_user="user", opensky_pass="pass")
    manager = _manager(settings, handler)

    assert await manager.auth_headers(AUTH_OAUTH) == {"Authorization": "Bearer tok"}
    expected = base64.b64encode(b"user:pass").decode()
    assert await manager.auth_headers(AUTH_BASIC) == {"Authorization": f"Basic {expected}"}
    assert await manager.auth_headers(AUTH_NONE) == {}

"""OAuth2 client-credentials token handling for the OpenSky API."""

from __future__ import annotations

import asyncio
import base64
import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional

import httpx

from flightwall.config import Settings, settings as default_settings
from flightwall.errors import ConfigurationError

logger = logging.getLogger("flightwall.tokens")

AUTH_OAUTH = "oauth"
AUTH_BASIC = "basic"
AUTH_NONE = "none"
AUTH_MODES = (AUTH_OAUTH, AUTH_BASIC, AUTH_NONE)

# Tokens are treated as expired this many seconds early.
EXPIRY_MARGIN = 15.0


@dataclass
class Token:
    """A cached bearer credential."""

    access_token: str
    expires_at: float
    mode: str = AUTH_OAUTH

    def usable(self, now: float) -> bool:
        return bool(self.access_token) and now < self.expires_at - EXPIRY_MARGIN


class TokenStore:
    """Holds at most one token; owned by the gateway and shared by fetch paths."""

    def __init__(self) -> None:
        self._token: Optional[Token] = None

    def get(self, now: float) -> Optional[Token]:
        token = self._token
        if token is not None and token.usable(now):
            return token
        return None

    def set(self, token: Token) -> None:
        self._token = token

    def clear(self) -> None:
        self._token = None


class TokenManager:
    """Acquire, cache and coalesce OpenSky access tokens."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        store: Optional[TokenStore] = None,
        settings: Settings = default_settings,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.client = client
        self.store = store or TokenStore()
        self.settings = settings
        self.clock = clock
        self._inflight: Optional[asyncio.Task] = None

    @property
    def has_oauth_credentials(self) -> bool:
        return bool(self.settings.opensky_client_id and self.settings.opensky_client_secret)

    @property
    def has_basic_credentials(self) -> bool:
        return bool(self.settings.opensky_user and self.settings.opensky_pass)

    def resolve_mode(self, requested: Optional[str] = None) -> str:
        """Pick the auth mode for a request.

        ``auto`` prefers OAuth, then Basic, then anonymous access. An explicit
        mode without matching credentials is an operator error.
        """

        mode = (requested or self.settings.opensky_auth_mode or "auto").lower()
        if mode == "auto":
            if self.has_oauth_credentials:
                return AUTH_OAUTH
            if self.has_basic_credentials:
                return AUTH_BASIC
            return AUTH_NONE
        if mode not in AUTH_MODES:
            raise ValueError(f"unsupported auth mode {mode!r}")
        if mode == AUTH_OAUTH and not self.has_oauth_credentials:
            raise ConfigurationError(
                "OpenSky OAuth credentials are not configured",
                code="opensky_not_configured",
                hint="Set OPENSKY_CLIENT_ID and OPENSKY_CLIENT_SECRET",
            )
        if mode == AUTH_BASIC and not self.has_basic_credentials:
            raise ConfigurationError(
                "OpenSky basic credentials are not configured",
                code="opensky_not_configured",
                hint="Set OPENSKY_USER and OPENSKY_PASS",
            )
        return mode

    async def get_token(self) -> str:
        """Return a usable bearer token, or "" when none could be obtained."""

        cached = self.store.get(self.clock())
        if cached is not None:
            return cached.access_token

        if self._inflight is None or self._inflight.done():
            self._inflight = asyncio.ensure_future(self._fetch_token())
        # Shield so one cancelled caller does not abort the shared fetch.
        return await asyncio.shield(self._inflight)

    def clear_token(self) -> None:
        self.store.clear()

    async def auth_headers(self, mode: str) -> dict[str, str]:
        if mode == AUTH_OAUTH:
            token = await self.get_token()
            return {"Authorization": f"Bearer {token}"} if token else {}
        if mode == AUTH_BASIC and self.has_basic_credentials:
            raw = f"{self.settings.opensky_user}:{self.settings.opensky_pass}".encode()
            return {"Authorization": f"Basic {base64.b64encode(raw).decode()}"}
        return {}

    async def _fetch_token(self) -> str:
        if not self.has_oauth_credentials:
            logger.warning("OpenSky token requested without client credentials")
            return ""

        data = {
            "grant_type": "client_credentials",
            "client_id": self.settings.opensky_client_id,
            "client_secret": self.settings.opensky_client_secret,
        }
        try:
            response = await self.client.post(
                self.settings.opensky_token_url,
                data=data,
                headers={"Content-Type": "application/x-www-form-urlencoded"},
                timeout=self.settings.opensky_token_timeout,
            )
        except httpx.TimeoutException as exc:
            logger.warning("OpenSky token request timed out: %s", exc)
            return ""
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            logger.warning("OpenSky token request failed: %s", exc)
            return ""

        if response.status_code != 200:
            logger.warning(
                "OpenSky token endpoint returned HTTP %s: %s",
                response.status_code,
                response.text[:200],
            )
            return ""

        try:
            payload = response.json()
        except ValueError as exc:
            logger.warning("Failed to parse OpenSky token response: %s", exc)
            return ""

        access_token = str(payload.get("access_token") or "") if isinstance(payload, dict) else ""
        try:
            expires_in = float(payload.get("expires_in") or 0) if isinstance(payload, dict) else 0.0
        except (TypeError, ValueError):
            expires_in = 0.0

        if not access_token or expires_in <= 0:
            logger.warning("OpenSky token response missing token or expiry; not caching")
            return access_token

        self.store.set(Token(access_token=access_token, expires_at=self.clock() + expires_in))
        logger.info("Fetched OpenSky token valid for %.0fs", expires_in)
        return access_token


__all__ = [
    "AUTH_BASIC",
    "AUTH_MODES",
    "AUTH_NONE",
    "AUTH_OAUTH",
    "EXPIRY_MARGIN",
    "Token",
    "TokenManager",
    "TokenStore",
]

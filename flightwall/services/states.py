"""Aircraft-state fetching with OpenSky → adsb.lol failover."""

from __future__ import annotations

import logging

from flightwall.errors import UpstreamError
from flightwall.models.states import BoundingBox
from flightwall.providers.adsblol import AdsbLolClient
from flightwall.providers.opensky import OpenSkyClient, StatesPage
from flightwall.services.tokens import AUTH_OAUTH, TokenManager

logger = logging.getLogger("flightwall.states")


class StateFetcher:
    """Fetch normalized states, failing over when OpenSky is unavailable."""

    def __init__(
        self,
        tokens: TokenManager,
        primary: OpenSkyClient,
        secondary: AdsbLolClient | None,
    ) -> None:
        self.tokens = tokens
        self.primary = primary
        self.secondary = secondary

    async def fetch_primary(self, bbox: BoundingBox, auth_mode: str) -> StatesPage:
        """Call OpenSky, retrying once with a fresh token after a 401 in OAuth mode."""

        headers = await self.tokens.auth_headers(auth_mode)
        try:
            return await self.primary.get_states(bbox, headers)
        except UpstreamError as exc:
            if exc.kind != "auth" or auth_mode != AUTH_OAUTH:
                raise
            logger.info("OpenSky rejected the bearer token; refreshing and retrying once")

        self.tokens.clear_token()
        headers = await self.tokens.auth_headers(auth_mode)
        return await self.primary.get_states(bbox, headers)

    async def fetch_states(self, bbox: BoundingBox, auth_mode: str) -> StatesPage:
        try:
            return await self.fetch_primary(bbox, auth_mode)
        except UpstreamError as primary_error:
            if not primary_error.retryable or self.secondary is None:
                raise
            logger.warning(
                "OpenSky unavailable (status=%s); failing over to adsb.lol",
                primary_error.status,
            )
            try:
                return await self.secondary.get_states(bbox)
            except UpstreamError as secondary_error:
                logger.warning(
                    "adsb.lol failover failed (kind=%s status=%s)",
                    secondary_error.kind,
                    secondary_error.status,
                )
                raise UpstreamError(
                    "transient",
                    "All state providers failed",
                    status=primary_error.status,
                    provider=primary_error.provider,
                    detail=primary_error.detail,
                ) from secondary_error


__all__ = ["StateFetcher"]

"""AeroDataBox (RapidAPI) client for metered flight and aircraft lookups."""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import quote

import httpx

from flightwall.config import Settings, settings as default_settings
from flightwall.errors import ConfigurationError, UpstreamError, classify_status

logger = logging.getLogger("flightwall.providers.aerodatabox")

PROVIDER = "aerodatabox"


class AeroDataBoxClient:
    """Thin wrapper returning decoded JSON or raising :class:`UpstreamError`."""

    def __init__(self, client: httpx.AsyncClient, *, settings: Settings = default_settings) -> None:
        self.client = client
        self.settings = settings

    def ensure_configured(self) -> None:
        if not self.settings.aerodata_key or not self.settings.aerodata_host:
            raise ConfigurationError(
                "AeroDataBox credentials are not configured",
                code="aerodata_not_configured",
                hint="Set AERODATA_KEY (Secret) and AERODATA_HOST (Text)",
            )

    async def get_flight(self, callsign: str) -> Any:
        return await self._get(f"/flights/callsign/{quote(callsign, safe='')}")

    async def get_aircraft(self, icao24: str) -> Any:
        return await self._get(f"/aircrafts/icao24/{quote(icao24, safe='')}")

    async def _get(self, path: str) -> Any:
        self.ensure_configured()
        host = str(self.settings.aerodata_host)
        url = f"https://{host}{path}"
        try:
            response = await self.client.get(
                url,
                headers={
                    "Accept": "application/json",
                    "X-RapidAPI-Key": str(self.settings.aerodata_key),
                    "X-RapidAPI-Host": host,
                },
                timeout=self.settings.aerodata_timeout,
            )
        except httpx.TimeoutException as exc:
            logger.warning("AeroDataBox request timed out: %s", exc)
            raise UpstreamError("transient", "AeroDataBox request timed out", provider=PROVIDER) from exc
        except httpx.RequestError as exc:
            logger.warning("AeroDataBox request failed: %s", exc)
            raise UpstreamError("transient", "AeroDataBox request failed", provider=PROVIDER) from exc

        logger.info("AeroDataBox GET %s status=%s", path, response.status_code)
        status = response.status_code
        if status == 200 and not response.content:
            # An empty 200 means the same as 204.
            status = 204
        if status != 200:
            raise UpstreamError(
                classify_status(status),
                f"AeroDataBox returned HTTP {status}",
                status=status,
                provider=PROVIDER,
                detail=response.text[:220],
            )

        try:
            return response.json()
        except ValueError as exc:
            logger.warning("AeroDataBox returned non-JSON body for %s", path)
            raise UpstreamError(
                "malformed", "AeroDataBox returned a non-JSON body", status=200, provider=PROVIDER
            ) from exc


__all__ = ["AeroDataBoxClient", "PROVIDER"]

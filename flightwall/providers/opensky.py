"""OpenSky Network REST client (primary aircraft-state provider)."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional

import httpx
from pydantic import ValidationError

from flightwall.config import Settings, settings as default_settings
from flightwall.errors import UpstreamError, classify_status
from flightwall.models.states import BoundingBox, OpenSkyStatesPayload, StateRecord

logger = logging.getLogger("flightwall.providers.opensky")

PROVIDER = "opensky"


@dataclass
class StatesPage:
    """Normalized states from one provider call."""

    time: Optional[int]
    records: list[StateRecord] = field(default_factory=list)
    provider: str = PROVIDER
    status: int = 200

    def rows(self) -> list[list]:
        return [record.to_row() for record in self.records]


def normalize_rows(raw_rows: list[list]) -> list[StateRecord]:
    records: list[StateRecord] = []
    for row in raw_rows:
        try:
            record = StateRecord.from_opensky_row(row)
        except ValidationError as exc:
            logger.debug("Dropping malformed OpenSky row %r: %s", row[:2], exc)
            continue
        if record is not None:
            records.append(record)
    return records


class OpenSkyClient:
    """Fetch ``/states/all`` for a bounding box."""

    def __init__(self, client: httpx.AsyncClient, *, settings: Settings = default_settings) -> None:
        self.client = client
        self.settings = settings

    async def get_states(self, bbox: BoundingBox, headers: dict[str, str]) -> StatesPage:
        try:
            response = await self.client.get(
                self.settings.opensky_states_url,
                params=bbox.as_params(),
                headers={"Accept": "application/json", **headers},
                timeout=self.settings.opensky_states_timeout,
            )
        except httpx.TimeoutException as exc:
            logger.warning("OpenSky request timed out: %s", exc)
            raise UpstreamError("transient", "OpenSky request timed out", provider=PROVIDER) from exc
        except httpx.RequestError as exc:
            logger.warning("OpenSky request failed: %s", exc)
            raise UpstreamError("transient", "OpenSky request failed", provider=PROVIDER) from exc

        if response.status_code != 200:
            logger.warning("OpenSky returned HTTP %s", response.status_code)
            raise UpstreamError(
                classify_status(response.status_code),
                f"OpenSky returned HTTP {response.status_code}",
                status=response.status_code,
                provider=PROVIDER,
                detail=response.text[:220],
            )

        try:
            payload = OpenSkyStatesPayload.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            logger.warning("Failed to parse OpenSky JSON response: %s", exc)
            raise UpstreamError(
                "malformed", "OpenSky returned an unexpected body", status=200, provider=PROVIDER
            ) from exc

        records = normalize_rows(payload.states or [])
        logger.debug("OpenSky returned %s usable states", len(records))
        return StatesPage(time=payload.time, records=records)


__all__ = ["OpenSkyClient", "PROVIDER", "StatesPage", "normalize_rows"]

"""adsb.lol client and the adapter onto the OpenSky state layout."""

from __future__ import annotations

import logging
import time
from typing import Any, Optional

import httpx
from pydantic import ValidationError

from flightwall.config import Settings, settings as default_settings
from flightwall.domain.geo import bbox_radius_nm
from flightwall.errors import UpstreamError, classify_status
from flightwall.models.states import AdsbLolAircraft, AdsbLolPayload, BoundingBox, StateRecord
from flightwall.providers.opensky import StatesPage

logger = logging.getLogger("flightwall.providers.adsblol")

PROVIDER = "adsb.lol"

FEET_TO_M = 0.3048
KNOTS_TO_MPS = 0.514444
FPM_TO_MPS = 0.00508


def _scale(value: Any, factor: float) -> Optional[float]:
    if value is None or isinstance(value, str):
        return None
    return float(value) * factor


def _age_to_epoch(now_s: float, seen: Optional[float]) -> Optional[int]:
    if seen is None:
        return None
    return int(round(now_s - seen))


def adapt_aircraft(aircraft: AdsbLolAircraft, now_s: float) -> Optional[StateRecord]:
    """Map one adsb.lol aircraft onto a :class:`StateRecord`.

    Returns None when the aircraft has no identifier or no position.
    """

    icao24 = (aircraft.hex or "").strip().lower().lstrip("~")
    if not icao24 or aircraft.lat is None or aircraft.lon is None:
        return None

    on_ground = aircraft.alt_baro == "ground"
    return StateRecord(
        icao24=icao24,
        callsign=aircraft.flight,
        origin_country="",
        time_position=_age_to_epoch(now_s, aircraft.seen_pos),
        last_contact=_age_to_epoch(now_s, aircraft.seen),
        longitude=aircraft.lon,
        latitude=aircraft.lat,
        baro_altitude=_scale(aircraft.alt_baro, FEET_TO_M),
        on_ground=on_ground,
        velocity=_scale(aircraft.gs, KNOTS_TO_MPS),
        true_track=aircraft.track,
        vertical_rate=_scale(
            aircraft.baro_rate if aircraft.baro_rate is not None else aircraft.geom_rate,
            FPM_TO_MPS,
        ),
        geo_altitude=_scale(aircraft.alt_geom, FEET_TO_M),
        squawk=aircraft.squawk,
        spi=False,
        position_source=0,
        type_hint=aircraft.t,
    )


def adapt_payload(payload: AdsbLolPayload, bbox: BoundingBox) -> StatesPage:
    """Adapt a whole adsb.lol response, keeping only aircraft inside ``bbox``."""

    now_s = payload.now / 1000.0 if payload.now else time.time()
    records: list[StateRecord] = []
    for aircraft in payload.ac:
        try:
            record = adapt_aircraft(aircraft, now_s)
        except ValidationError as exc:
            logger.debug("Dropping adsb.lol aircraft %s: %s", aircraft.hex, exc)
            continue
        if record is not None and bbox.contains(record.latitude, record.longitude):
            records.append(record)
    return StatesPage(time=int(now_s), records=records, provider=PROVIDER)


class AdsbLolClient:
    """Query adsb.lol around the centre of a bounding box."""

    def __init__(self, client: httpx.AsyncClient, *, settings: Settings = default_settings) -> None:
        self.client = client
        self.settings = settings

    def point_url(self, bbox: BoundingBox) -> str:
        lat, lon = bbox.center
        radius = bbox_radius_nm(bbox.lamin, bbox.lomin, bbox.lamax, bbox.lomax)
        base = self.settings.adsblol_base_url.rstrip("/")
        return f"{base}/v2/point/{lat:.4f}/{lon:.4f}/{radius}"

    async def get_states(self, bbox: BoundingBox) -> StatesPage:
        url = self.point_url(bbox)
        try:
            response = await self.client.get(
                url,
                headers={"Accept": "application/json"},
                timeout=self.settings.adsblol_timeout,
            )
        except httpx.TimeoutException as exc:
            logger.warning("adsb.lol request timed out: %s", exc)
            raise UpstreamError("transient", "adsb.lol request timed out", provider=PROVIDER) from exc
        except httpx.RequestError as exc:
            logger.warning("adsb.lol request failed: %s", exc)
            raise UpstreamError("transient", "adsb.lol request failed", provider=PROVIDER) from exc

        if response.status_code != 200:
            logger.warning("adsb.lol returned HTTP %s", response.status_code)
            raise UpstreamError(
                classify_status(response.status_code),
                f"adsb.lol returned HTTP {response.status_code}",
                status=response.status_code,
                provider=PROVIDER,
            )

        try:
            payload = AdsbLolPayload.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            logger.warning("Failed to parse adsb.lol JSON response: %s", exc)
            raise UpstreamError(
                "malformed", "adsb.lol returned an unexpected body", status=200, provider=PROVIDER
            ) from exc

        page = adapt_payload(payload, bbox)
        logger.debug("adsb.lol returned %s aircraft inside bbox", len(page.records))
        return page


__all__ = [
    "AdsbLolClient",
    "FEET_TO_M",
    "FPM_TO_MPS",
    "KNOTS_TO_MPS",
    "PROVIDER",
    "adapt_aircraft",
    "adapt_payload",
]

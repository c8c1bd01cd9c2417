"""Flight and aircraft enrichment endpoints."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends
from fastapi.responses import JSONResponse, Response

from flightwall.api.dependencies import empty, get_gateway
from flightwall.services.enrichment import EnrichmentOutcome, Proximity
from flightwall.services.gateway import Gateway
from flightwall.services.throttle import KIND_AIRCRAFT, KIND_FLIGHT

router = APIRouter(tags=["enrichment"])


def _proximity(
    lat: Optional[float],
    lon: Optional[float],
    alat: Optional[float],
    alon: Optional[float],
    track: Optional[float],
) -> Optional[Proximity]:
    if None in (lat, lon, alat, alon):
        return None
    return Proximity(lat=lat, lon=lon, aircraft_lat=alat, aircraft_lon=alon, track=track)


def to_response(outcome: EnrichmentOutcome) -> Response:
    if outcome.body is None:
        return empty(outcome.status_code)
    return JSONResponse(
        outcome.body,
        status_code=outcome.status_code,
        headers={
            "Cache-Control": outcome.cache_control,
            "X-Cache": "HIT" if outcome.cached else "MISS",
        },
    )


@router.api_route(
    "/flight/{callsign}",
    methods=["GET", "HEAD"],
    summary="Route and airline for a callsign",
)
async def flight(
    callsign: str,
    background_tasks: BackgroundTasks,
    lat: Optional[float] = None,
    lon: Optional[float] = None,
    alat: Optional[float] = None,
    alon: Optional[float] = None,
    track: Optional[float] = None,
    gateway: Gateway = Depends(get_gateway),
) -> Response:
    outcome = await gateway.enrichment.enrich(
        KIND_FLIGHT,
        callsign,
        background=background_tasks,
        proximity=_proximity(lat, lon, alat, alon, track),
    )
    return to_response(outcome)


@router.api_route(
    "/aircraft/icao24/{icao24}",
    methods=["GET", "HEAD"],
    summary="Airframe details for a transponder hex",
)
async def aircraft(
    icao24: str,
    background_tasks: BackgroundTasks,
    lat: Optional[float] = None,
    lon: Optional[float] = None,
    alat: Optional[float] = None,
    alon: Optional[float] = None,
    track: Optional[float] = None,
    gateway: Gateway = Depends(get_gateway),
) -> Response:
    outcome = await gateway.enrichment.enrich(
        KIND_AIRCRAFT,
        icao24,
        background=background_tasks,
        proximity=_proximity(lat, lon, alat, alon, track),
    )
    return to_response(outcome)

"""Aircraft states over a bounding box, served through the tiered cache."""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from flightwall.api.dependencies import get_gateway, json_error
from flightwall.errors import ConfigurationError, UpstreamError
from flightwall.models.states import BoundingBox
from flightwall.services.gateway import Gateway

router = APIRouter(tags=["states"])

logger = logging.getLogger("flightwall.api.states")

BBOX_HINT = "lamin,lomin,lamax,lomax required"


def parse_bbox(
    lamin: Optional[str], lomin: Optional[str], lamax: Optional[str], lomax: Optional[str]
) -> BoundingBox | JSONResponse:
    """Build a bbox from raw query strings, or the 400 response to send instead."""

    raw = {"lamin": lamin, "lomin": lomin, "lamax": lamax, "lomax": lomax}
    if any(value is None or not value.strip() for value in raw.values()):
        return json_error(400, {"ok": False, "error": "missing bbox params", "hint": BBOX_HINT})
    try:
        return BoundingBox.model_validate({name: float(value) for name, value in raw.items()})
    except (ValueError, ValidationError):
        return json_error(400, {"ok": False, "error": "invalid bbox params", "hint": BBOX_HINT})


@router.api_route(
    "/opensky/states",
    methods=["GET", "HEAD"],
    summary="Aircraft states in a bounding box",
)
async def opensky_states(
    background_tasks: BackgroundTasks,
    lamin: Optional[str] = None,
    lomin: Optional[str] = None,
    lamax: Optional[str] = None,
    lomax: Optional[str] = None,
    auth: Optional[str] = None,
    gateway: Gateway = Depends(get_gateway),
) -> JSONResponse:
    bbox = parse_bbox(lamin, lomin, lamax, lomax)
    if isinstance(bbox, JSONResponse):
        return bbox

    try:
        mode = gateway.tokens.resolve_mode(auth)
    except ConfigurationError as exc:
        logger.error("%s", exc)
        return json_error(500, {"ok": False, "error": exc.code, "hint": exc.hint})
    except ValueError:
        return json_error(
            400, {"ok": False, "error": "invalid auth mode", "hint": "auth=oauth|basic|none"}
        )

    try:
        result = await gateway.states.serve(bbox, mode, background_tasks)
    except UpstreamError as exc:
        logger.warning("No states available for %s: %s", bbox.as_params(), exc)
        return json_error(
            429 if exc.status == 429 else 502,
            {
                "ok": False,
                "error": "upstream_unavailable",
                "provider": exc.provider,
                "status": exc.status,
                "detail": exc.detail or "",
            },
        )

    grace = gateway.settings.states_swr_grace
    return JSONResponse(
        result.body,
        headers={
            "X-Provider": result.provider,
            "X-Cache": result.cache_status,
            "Cache-Control": f"public, max-age=2, s-maxage=5, stale-while-revalidate={grace}",
        },
    )

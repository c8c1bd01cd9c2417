"""Health check endpoints, including live probes of the primary provider."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from flightwall.api.dependencies import NO_STORE, get_gateway, json_error
from flightwall.errors import ConfigurationError, UpstreamError
from flightwall.models.states import BoundingBox
from flightwall.services.gateway import Gateway
from flightwall.services.tokens import AUTH_OAUTH

router = APIRouter(prefix="/health", tags=["health"])

logger = logging.getLogger("flightwall.api.health")

SAMPLE_ROWS = 3


def _sample_bbox(raw: str) -> BoundingBox:
    lamin, lomin, lamax, lomax = (float(part) for part in raw.split(","))
    return BoundingBox(lamin=lamin, lomin=lomin, lamax=lamax, lomax=lomax)


@router.api_route("", methods=["GET", "HEAD"], summary="Health check")
def health_check(gateway: Gateway = Depends(get_gateway)) -> JSONResponse:
    """Simple liveness endpoint."""
    return JSONResponse(
        {
            "ok": True,
            "ts": datetime.now(timezone.utc).isoformat(),
            "version": gateway.settings.version,
        },
        headers=NO_STORE,
    )


@router.api_route("/opensky-token", methods=["GET", "HEAD"], summary="OpenSky token probe")
async def opensky_token(gateway: Gateway = Depends(get_gateway)) -> JSONResponse:
    """Check that a bearer token can be obtained; the token itself is never returned."""

    try:
        mode = gateway.tokens.resolve_mode()
    except ConfigurationError as exc:
        logger.error("%s", exc)
        return json_error(500, {"ok": False, "error": exc.code, "hint": exc.hint})

    if mode == AUTH_OAUTH and not await gateway.tokens.get_token():
        return json_error(502, {"ok": False, "mode": mode, "error": "token_fetch_failed"})
    return JSONResponse({"ok": True, "mode": mode}, headers=NO_STORE)


@router.api_route("/opensky-states", methods=["GET", "HEAD"], summary="OpenSky states probe")
async def opensky_states_probe(gateway: Gateway = Depends(get_gateway)) -> JSONResponse:
    """Fetch a small sample straight from OpenSky, bypassing cache and failover."""

    try:
        mode = gateway.tokens.resolve_mode()
    except ConfigurationError as exc:
        logger.error("%s", exc)
        return json_error(500, {"ok": False, "error": exc.code, "hint": exc.hint})

    bbox = _sample_bbox(gateway.settings.health_sample_bbox)
    try:
        page = await gateway.fetcher.fetch_primary(bbox, mode)
    except UpstreamError as exc:
        return json_error(
            502,
            {
                "ok": False,
                "authMode": mode,
                "status": exc.status,
                "error": str(exc),
                "detail": exc.detail or "",
            },
        )

    return JSONResponse(
        {
            "ok": True,
            "authMode": mode,
            "status": page.status,
            "count": len(page.records),
            "sample": page.rows()[:SAMPLE_ROWS],
        },
        headers=NO_STORE,
    )

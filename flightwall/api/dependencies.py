"""FastAPI dependencies and response helpers shared by the routers."""

from __future__ import annotations

import logging
from typing import Any, Optional

from fastapi import HTTPException, Request, status
from fastapi.responses import JSONResponse, Response

from flightwall.services.gateway import Gateway

logger = logging.getLogger("flightwall.api")

NO_STORE = {"Cache-Control": "no-store"}


def get_gateway(request: Request) -> Gateway:
    """Return the gateway built by the application lifespan."""

    gateway: Optional[Gateway] = getattr(request.app.state, "gateway", None)
    if gateway is None:
        logger.error("Gateway requested before startup completed")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={"code": "gateway_unavailable", "message": "Gateway is not initialised"},
        )
    return gateway


def json_error(status_code: int, body: dict[str, Any]) -> JSONResponse:
    return JSONResponse(body, status_code=status_code, headers=NO_STORE)


def empty(status_code: int = status.HTTP_204_NO_CONTENT) -> Response:
    return Response(status_code=status_code, headers=NO_STORE)


__all__ = ["get_gateway", "json_error", "empty", "NO_STORE"]

from __future__ import annotations

import contextlib
import logging
import time

from fastapi import FastAPI, Request
from fastapi.responses import PlainTextResponse, Response

from flightwall.api import api_router
from flightwall.config import settings
from flightwall.db import init_db
from flightwall.services.gateway import build_gateway
from flightwall.services.throttle import check_night_limits

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s - %(message)s",
)
logger = logging.getLogger("flightwall")

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET,HEAD,OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Authorization",
    "Access-Control-Max-Age": "86400",
}


@contextlib.asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application startup and shutdown lifecycle."""

    # A gateway placed on app.state beforehand (tests) is used as-is and not closed here.
    gateway = getattr(app.state, "gateway", None)
    owned = gateway is None
    if owned:
        settings.load_secrets()
        init_db()
        logger.info("Database initialized")
        gateway = build_gateway(settings)
        app.state.gateway = gateway

    check_night_limits(gateway.settings)
    await gateway.cache.rotate(gateway.settings.cache_name)
    logger.info(
        "FlightWall gateway %s started (env=%s, cache=%s)",
        gateway.settings.version,
        gateway.settings.flightwall_env,
        gateway.settings.cache_name,
    )

    try:
        yield
    finally:
        if owned:
            await gateway.aclose()
            app.state.gateway = None


app = FastAPI(title="FlightWall API Gateway", lifespan=lifespan)


@app.middleware("http")
async def cors(request: Request, call_next):
    """Answer preflights directly and stamp CORS headers on every response."""

    if request.method == "OPTIONS":
        return Response(status_code=204, headers=CORS_HEADERS)
    response = await call_next(request)
    response.headers.update(CORS_HEADERS)
    return response


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log basic request information for observability."""

    start_time = time.time()
    response = await call_next(request)
    duration_ms = (time.time() - start_time) * 1000
    logger.info(
        "HTTP %s %s -> %s (%.2f ms)",
        request.method,
        request.url.path,
        response.status_code,
        duration_ms,
    )
    return response


app.include_router(api_router)


@app.api_route("/{path:path}", methods=["GET", "HEAD"], include_in_schema=False)
def banner(path: str) -> PlainTextResponse:
    """Any unknown path answers with a plain banner."""

    return PlainTextResponse("FlightWall API gateway")

"""API routers for the FlightWall gateway."""

from fastapi import APIRouter

from .enrichment import router as enrichment_router
from .health import router as health_router
from .states import router as states_router
from .static import router as static_router

api_router = APIRouter()
api_router.include_router(health_router)
api_router.include_router(states_router)
api_router.include_router(enrichment_router)
api_router.include_router(static_router)

__all__ = ["api_router"]

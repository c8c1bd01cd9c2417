"""Service layer for the FlightWall gateway."""

from .enrichment import EnrichmentOrchestrator, EnrichmentOutcome, Proximity
from .gateway import Gateway, build_gateway
from .revalidate import RevalidatingStatesCache, StatesResponse
from .states import StateFetcher
from .throttle import GateDecision, HardBudget, ThrottleGate
from .tokens import TokenManager, TokenStore

__all__ = [
    "EnrichmentOrchestrator",
    "EnrichmentOutcome",
    "Gateway",
    "GateDecision",
    "HardBudget",
    "Proximity",
    "RevalidatingStatesCache",
    "StateFetcher",
    "StatesResponse",
    "ThrottleGate",
    "TokenManager",
    "TokenStore",
    "build_gateway",
]

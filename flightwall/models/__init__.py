"""Pydantic models for the FlightWall gateway."""

from .enrichment import AeroAircraft, AeroFlight, FlightInfo
from .states import (
    AdsbLolAircraft,
    AdsbLolPayload,
    BoundingBox,
    OpenSkyStatesPayload,
    StateRecord,
)

__all__ = [
    "AdsbLolAircraft",
    "AdsbLolPayload",
    "AeroAircraft",
    "AeroFlight",
    "BoundingBox",
    "FlightInfo",
    "OpenSkyStatesPayload",
    "StateRecord",
]

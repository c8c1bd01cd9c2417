"""Upstream provider clients."""

from .adsblol import AdsbLolClient, adapt_aircraft, adapt_payload
from .aerodatabox import AeroDataBoxClient
from .opensky import OpenSkyClient, StatesPage

__all__ = [
    "AdsbLolClient",
    "AeroDataBoxClient",
    "OpenSkyClient",
    "StatesPage",
    "adapt_aircraft",
    "adapt_payload",
]

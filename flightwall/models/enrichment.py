"""Models for metered flight/aircraft enrichment."""

from __future__ import annotations

import re
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

ROUTE_UNAVAILABLE = "unavailable"


class AeroAirport(BaseModel):
    """Airport object embedded in AeroDataBox flight legs."""

    icao: Optional[str] = None
    iata: Optional[str] = None
    name: Optional[str] = None
    short_name: Optional[str] = None
    municipality_name: Optional[str] = None
    city: Optional[str] = None
    country_code: Optional[str] = None

    model_config = ConfigDict(extra="allow", alias_generator=to_camel, populate_by_name=True)

    @property
    def code(self) -> str:
        return (self.iata or self.icao or "").strip()

    def label(self) -> str:
        """``City (CODE)``, falling back to whichever half is known."""

        city = (self.municipality_name or self.city or "").strip()
        city = re.sub(r"/+\s*$", "", city)
        name = (self.name or "").strip()
        best_city = city or (name.split(" ")[0] if name else "")
        if best_city and self.code:
            return f"{best_city} ({self.code})"
        return best_city or self.code


class AeroLeg(BaseModel):
    airport: Optional[AeroAirport] = None

    model_config = ConfigDict(extra="ignore")


class AeroAirline(BaseModel):
    name: Optional[str] = None
    short_name: Optional[str] = None
    icao: Optional[str] = None
    iata: Optional[str] = None

    model_config = ConfigDict(extra="ignore", alias_generator=to_camel, populate_by_name=True)


class AeroAircraftRef(BaseModel):
    model: Optional[str] = None
    model_code: Optional[str] = None
    type_name: Optional[str] = None
    iata_code_short: Optional[str] = None
    icao_code: Optional[str] = None
    reg: Optional[str] = None

    model_config = ConfigDict(extra="ignore", alias_generator=to_camel, populate_by_name=True)


class AeroFlight(BaseModel):
    """One element of ``GET /flights/callsign/{callsign}``."""

    departure: Optional[AeroLeg] = None
    arrival: Optional[AeroLeg] = None
    airline: Optional[AeroAirline] = None
    aircraft: Optional[AeroAircraftRef] = None

    model_config = ConfigDict(extra="ignore")

    @property
    def origin(self) -> Optional[AeroAirport]:
        return self.departure.airport if self.departure else None

    @property
    def destination(self) -> Optional[AeroAirport]:
        return self.arrival.airport if self.arrival else None

    @property
    def verified(self) -> bool:
        """Both ends of the route resolved to a coded airport."""

        return bool(self.origin and self.origin.code and self.destination and self.destination.code)


class AeroAircraft(BaseModel):
    """``GET /aircrafts/icao24/{hex}`` body; unknown fields are kept verbatim."""

    verified: bool = False

    model_config = ConfigDict(extra="allow")


class AirportSummary(BaseModel):
    """Airport as returned to clients; provider fields beyond these pass through."""

    iata: Optional[str] = None
    icao: Optional[str] = None
    name: Optional[str] = None
    city: Optional[str] = None

    model_config = ConfigDict(extra="allow")

    @classmethod
    def from_provider(cls, airport: Optional[AeroAirport]) -> Optional["AirportSummary"]:
        if airport is None:
            return None
        fields = airport.model_dump(by_alias=True, exclude_none=True)
        fields["name"] = airport.name or airport.short_name
        fields["city"] = airport.municipality_name or airport.city
        return cls(**fields)


class FlightInfo(BaseModel):
    """Positive ``/flight/<callsign>`` response body."""

    ok: bool = True
    callsign: str
    origin: Optional[AirportSummary] = None
    destination: Optional[AirportSummary] = None
    airline_name: Optional[str] = None
    airline_icao: Optional[str] = None
    airline_iata: Optional[str] = None
    aircraft_model: Optional[str] = None
    aircraft_type: Optional[str] = None
    route: str = ROUTE_UNAVAILABLE
    source: str = "aerodatabox"

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    @classmethod
    def from_provider(cls, callsign: str, flight: AeroFlight) -> "FlightInfo":
        origin, destination = flight.origin, flight.destination
        route = ROUTE_UNAVAILABLE
        if origin and destination:
            route = f"{origin.label()} → {destination.label()}"
        airline = flight.airline or AeroAirline()
        aircraft = flight.aircraft or AeroAircraftRef()
        return cls(
            callsign=callsign,
            origin=AirportSummary.from_provider(origin),
            destination=AirportSummary.from_provider(destination),
            airline_name=airline.name or airline.short_name,
            airline_icao=airline.icao,
            airline_iata=airline.iata,
            aircraft_model=aircraft.model or aircraft.model_code,
            aircraft_type=aircraft.type_name or aircraft.iata_code_short or aircraft.icao_code,
            route=route,
        )

    def to_body(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)


__all__ = [
    "AeroAircraft",
    "AeroAirline",
    "AeroAirport",
    "AeroFlight",
    "AirportSummary",
    "FlightInfo",
    "ROUTE_UNAVAILABLE",
]

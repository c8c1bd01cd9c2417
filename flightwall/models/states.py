"""Models for aircraft state queries and the two state providers."""

from __future__ import annotations

import math
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

# Number of slots in a normalized state row.
ROW_WIDTH = 18


def finite_or_none(value: Any) -> Optional[float]:
    """Coerce a provider number to float, mapping missing/NaN/inf to None."""

    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


class BoundingBox(BaseModel):
    """Rectangular lat/lon query region."""

    lamin: float = Field(..., ge=-90, le=90)
    lomin: float = Field(..., ge=-180, le=180)
    lamax: float = Field(..., ge=-90, le=90)
    lomax: float = Field(..., ge=-180, le=180)

    model_config = ConfigDict(frozen=True)

    @field_validator("lamin", "lomin", "lamax", "lomax")
    @classmethod
    def _finite(cls, value: float) -> float:
        if not math.isfinite(value):
            raise ValueError("bbox coordinates must be finite")
        return value

    @model_validator(mode="after")
    def _ordered(self) -> "BoundingBox":
        if self.lamin > self.lamax or self.lomin > self.lomax:
            raise ValueError("bbox minimums must not exceed maximums")
        return self

    @property
    def center(self) -> tuple[float, float]:
        return (self.lamin + self.lamax) / 2.0, (self.lomin + self.lomax) / 2.0

    def contains(self, lat: float, lon: float) -> bool:
        return self.lamin <= lat <= self.lamax and self.lomin <= lon <= self.lomax

    def as_params(self) -> dict[str, float]:
        return {
            "lamin": self.lamin,
            "lomin": self.lomin,
            "lamax": self.lamax,
            "lomax": self.lomax,
        }


class StateRecord(BaseModel):
    """One aircraft's normalized position/velocity snapshot (SI units)."""

    icao24: str = Field(..., min_length=1, description="ICAO 24-bit hex identifier")
    callsign: Optional[str] = Field(default=None, description="Callsign, stripped")
    origin_country: str = ""
    time_position: Optional[int] = None
    last_contact: Optional[int] = None
    longitude: float
    latitude: float
    baro_altitude: Optional[float] = Field(default=None, description="Metres")
    on_ground: bool = False
    velocity: Optional[float] = Field(default=None, description="Ground speed, m/s")
    true_track: Optional[float] = Field(default=None, description="Degrees")
    vertical_rate: Optional[float] = Field(default=None, description="m/s")
    geo_altitude: Optional[float] = Field(default=None, description="Metres")
    squawk: Optional[str] = None
    spi: bool = False
    position_source: Optional[int] = 0
    type_hint: Optional[str] = None

    model_config = ConfigDict(extra="ignore")

    @field_validator(
        "baro_altitude", "velocity", "true_track", "vertical_rate", "geo_altitude", mode="before"
    )
    @classmethod
    def _nan_to_none(cls, value: Any) -> Optional[float]:
        return finite_or_none(value)

    @field_validator("latitude", "longitude", mode="before")
    @classmethod
    def _require_finite(cls, value: Any) -> float:
        number = finite_or_none(value)
        if number is None:
            raise ValueError("position must be finite")
        return number

    @field_validator("callsign", "squawk", mode="before")
    @classmethod
    def _strip(cls, value: Any) -> Optional[str]:
        if value is None:
            return None
        text = str(value).strip()
        return text or None

    @classmethod
    def from_opensky_row(cls, row: list[Any]) -> Optional["StateRecord"]:
        """Build a record from an OpenSky ``states/all`` row, or None if unusable."""

        if len(row) < 17 or not row[0]:
            return None
        if finite_or_none(row[5]) is None or finite_or_none(row[6]) is None:
            return None
        return cls(
            icao24=str(row[0]).strip().lower(),
            callsign=row[1],
            origin_country=row[2] or "",
            time_position=row[3],
            last_contact=row[4],
            longitude=row[5],
            latitude=row[6],
            baro_altitude=row[7],
            on_ground=bool(row[8]),
            velocity=row[9],
            true_track=row[10],
            vertical_rate=row[11],
            geo_altitude=row[13],
            squawk=row[14],
            spi=bool(row[15]),
            position_source=row[16],
            type_hint=None,
        )

    def to_row(self) -> list[Any]:
        """Positional row in the OpenSky ``states`` layout plus a type hint slot."""

        return [
            self.icao24,
            self.callsign,
            self.origin_country,
            self.time_position,
            self.last_contact,
            self.longitude,
            self.latitude,
            self.baro_altitude,
            self.on_ground,
            self.velocity,
            self.true_track,
            self.vertical_rate,
            None,
            self.geo_altitude,
            self.squawk,
            self.spi,
            self.position_source,
            self.type_hint,
        ]


class OpenSkyStatesPayload(BaseModel):
    """``GET /api/states/all`` response body."""

    time: Optional[int] = None
    states: Optional[list[list[Any]]] = None

    model_config = ConfigDict(extra="ignore")


class AdsbLolAircraft(BaseModel):
    """One entry of the adsb.lol ``ac`` list (readsb JSON field names)."""

    hex: Optional[str] = None
    flight: Optional[str] = None
    t: Optional[str] = None
    lat: Optional[float] = None
    lon: Optional[float] = None
    alt_baro: Optional[Union[float, str]] = None
    alt_geom: Optional[float] = None
    gs: Optional[float] = None
    track: Optional[float] = None
    baro_rate: Optional[float] = None
    geom_rate: Optional[float] = None
    squawk: Optional[str] = None
    seen: Optional[float] = None
    seen_pos: Optional[float] = None

    model_config = ConfigDict(extra="ignore")

    @field_validator(
        "lat", "lon", "alt_geom", "gs", "track", "baro_rate", "geom_rate", "seen", "seen_pos",
        mode="before",
    )
    @classmethod
    def _numeric(cls, value: Any) -> Optional[float]:
        return finite_or_none(value)

    @field_validator("alt_baro", mode="before")
    @classmethod
    def _altitude(cls, value: Any) -> Optional[Union[float, str]]:
        if isinstance(value, str) and value.strip().lower() == "ground":
            return "ground"
        return finite_or_none(value)


class AdsbLolPayload(BaseModel):
    """``GET /v2/point/{lat}/{lon}/{radius}`` response body."""

    ac: list[AdsbLolAircraft] = Field(default_factory=list)
    now: Optional[float] = Field(default=None, description="Epoch milliseconds")

    model_config = ConfigDict(extra="ignore")


__all__ = [
    "AdsbLolAircraft",
    "AdsbLolPayload",
    "BoundingBox",
    "OpenSkyStatesPayload",
    "ROW_WIDTH",
    "StateRecord",
    "finite_or_none",
]

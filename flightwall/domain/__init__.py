"""Pure helpers with no I/O: geometry and time windows."""

from .geo import (
    angle_delta,
    bbox_radius_nm,
    bearing_deg,
    haversine_km,
    is_approaching,
    quantize,
)
from .windows import day_key, hour_key, is_night_window

__all__ = [
    "angle_delta",
    "bbox_radius_nm",
    "bearing_deg",
    "day_key",
    "haversine_km",
    "hour_key",
    "is_approaching",
    "is_night_window",
    "quantize",
]

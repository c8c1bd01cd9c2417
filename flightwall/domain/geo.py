"""Great-circle geometry used for failover radius, cache keys and gating."""

from __future__ import annotations

import math
from decimal import ROUND_HALF_UP, Decimal

EARTH_RADIUS_KM = 6371.0088
KM_PER_NM = 1.852

# adsb.lol rejects point queries wider than this.
MAX_RADIUS_NM = 250


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Return the great-circle distance between two points in kilometres."""

    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = phi2 - phi1
    d_lambda = math.radians(lon2 - lon1)
    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    return 2 * EARTH_RADIUS_KM * math.asin(min(1.0, math.sqrt(a)))


def bearing_deg(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Initial bearing from point 1 to point 2, in degrees clockwise from north."""

    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_lambda = math.radians(lon2 - lon1)
    x = math.sin(d_lambda) * math.cos(phi2)
    y = math.cos(phi1) * math.sin(phi2) - math.sin(phi1) * math.cos(phi2) * math.cos(d_lambda)
    return (math.degrees(math.atan2(x, y)) + 360.0) % 360.0


def angle_delta(a: float, b: float) -> float:
    """Smallest absolute difference between two headings (0..180)."""

    delta = abs((a - b) % 360.0)
    return 360.0 - delta if delta > 180.0 else delta


def quantize(coordinate: float, step: float) -> str:
    """Snap a coordinate onto a grid of ``step`` degrees and return a bucket key.

    Equal buckets always produce identical strings, so the result can be
    embedded directly into cache and lock keys.
    """

    if step <= 0:
        raise ValueError("step must be positive")
    step_dec = Decimal(str(step))
    buckets = (Decimal(str(coordinate)) / step_dec).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    value = buckets * step_dec
    if value == 0:
        # -0 and +0 must share a bucket.
        value = Decimal(0)
    exponent = step_dec.normalize().as_tuple().exponent
    places = max(0, -exponent) if isinstance(exponent, int) else 0
    return f"{value:.{places}f}"


def bbox_radius_nm(lamin: float, lomin: float, lamax: float, lomax: float) -> int:
    """Half the corner-to-corner diagonal of a bounding box, in whole nautical miles."""

    diagonal_km = haversine_km(lamin, lomin, lamax, lomax)
    radius_nm = math.ceil((diagonal_km / 2.0) / KM_PER_NM)
    return max(1, min(MAX_RADIUS_NM, radius_nm))


def is_approaching(
    observer: tuple[float, float],
    aircraft: tuple[float, float],
    track: float | None,
    tolerance: float = 90.0,
) -> bool:
    """Return True when an aircraft's track points towards the observer.

    A missing track is treated as approaching so the caller does not reject
    aircraft the provider has no heading for.
    """

    if track is None:
        return True
    to_observer = bearing_deg(aircraft[0], aircraft[1], observer[0], observer[1])
    return angle_delta(track, to_observer) <= tolerance


__all__ = [
    "angle_delta",
    "bbox_radius_nm",
    "bearing_deg",
    "haversine_km",
    "is_approaching",
    "quantize",
]

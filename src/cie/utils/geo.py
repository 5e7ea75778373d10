"""Great-circle distance helpers."""

from __future__ import annotations

import math

from cie.models import Coordinate


EARTH_RADIUS_METERS = 6_371_000.0


def validate_coordinates(lat: float, lon: float) -> bool:
    """Return True if lat/lon are finite and inside the valid degree range."""
    try:
        if not (math.isfinite(lat) and math.isfinite(lon)):
            return False
    except TypeError:
        return False
    return -90 <= lat <= 90 and -180 <= lon <= 180


def distance_meters(a: Coordinate, b: Coordinate) -> float:
    """Haversine distance between two coordinates in meters.

    Callers pass validated coordinates only; out-of-range input is not checked
    here.
    """
    lat1 = math.radians(a.lat)
    lat2 = math.radians(b.lat)
    dlat = lat2 - lat1
    dlon = math.radians(b.lon - a.lon)

    h = math.sin(dlat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlon / 2) ** 2
    # Rounding can push h slightly past 1 for antipodal points.
    h = min(1.0, max(0.0, h))

    return 2 * EARTH_RADIUS_METERS * math.asin(math.sqrt(h))

"""Great-circle helpers for start-point comparisons."""

import math
from typing import Any, Sequence

EARTH_RADIUS_KM = 6371.0


def is_valid_latlng(coords: Any) -> bool:
    """True for a 2-element numeric [lat, lng] pair."""
    return (
        isinstance(coords, (list, tuple))
        and len(coords) == 2
        and all(isinstance(c, (int, float)) for c in coords)
    )


def haversine_km(a: Sequence[float], b: Sequence[float]) -> float:
    """Distance in kilometres between two [lat, lng] points.

    Args:
        a: First point as [lat, lng] in degrees
        b: Second point as [lat, lng] in degrees

    Returns:
        Great-circle distance on a sphere of radius 6371 km
    """
    lat1, lon1 = a
    lat2, lon2 = b
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)
    h = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lon / 2) ** 2
    )
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))

"""
Distance calculation using the Haversine formula.

Used only to rank available vehicles by how close their last reported
position is to a pickup point.  This is a straight-line estimate, not a
route; no road network is consulted.
"""

from __future__ import annotations

import math
from typing import Optional

from .entities import Location

EARTH_RADIUS_KM = 6_371.0


def haversine_km(
    lat1: float, lng1: float, lat2: float, lng2: float
) -> float:
    """Return the great-circle distance in **km** between two points."""
    lat1_r, lat2_r = math.radians(lat1), math.radians(lat2)
    dlat = math.radians(lat2 - lat1)
    dlng = math.radians(lng2 - lng1)

    a = (
        math.sin(dlat / 2) ** 2
        + math.cos(lat1_r) * math.cos(lat2_r) * math.sin(dlng / 2) ** 2
    )
    return 2 * EARTH_RADIUS_KM * math.asin(math.sqrt(a))


def distance_to(origin: Location, target: Optional[Location]) -> float:
    """Distance from *origin* to *target*; ``inf`` when *target* is unknown."""
    if target is None:
        return math.inf
    return haversine_km(origin.lat, origin.lng, target.lat, target.lng)

"""
Great-circle distance helpers.
"""

from __future__ import annotations

import math

EARTH_RADIUS_METERS = 6_371_000


def haversine_distance_m(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """
    Distance in meters between two (lat, lng) points given in degrees.
    """
    d_lat = math.radians(lat2 - lat1)
    d_lng = math.radians(lng2 - lng1)

    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lng / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_METERS * c


def within_radius(
    center_lat: float,
    center_lng: float,
    lat: float,
    lng: float,
    radius_m: float,
) -> bool:
    # Boundary is inclusive.
    return haversine_distance_m(center_lat, center_lng, lat, lng) <= radius_m

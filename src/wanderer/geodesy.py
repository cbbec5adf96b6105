"""
Bearing and distance helpers.

Bearings are computed locally on a sphere. Distances are always asked of the
geometry service (geodesic, kilometers) so every displayed distance comes from
the same authority.
"""
from __future__ import annotations
import math

from .models import City


def normalize_bearing(bearing: float) -> float:
    """Map any bearing into [0, 360) by whole turns: -10 -> 350, 370 -> 10, 360 -> 0."""
    while bearing >= 360.0:
        bearing -= 360.0
    while bearing < 0.0:
        bearing += 360.0
    return bearing


def initial_bearing(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Raw forward azimuth in degrees, in (-180, 180]."""
    rlat1, rlat2 = math.radians(lat1), math.radians(lat2)
    d_lng = math.radians(lng2 - lng1)
    y = math.sin(d_lng) * math.cos(rlat2)
    x = math.cos(rlat1) * math.sin(rlat2) - math.sin(rlat1) * math.cos(rlat2) * math.cos(d_lng)
    return math.degrees(math.atan2(y, x))


def bearing_degrees(from_city: City, to_city: City) -> float:
    return normalize_bearing(initial_bearing(from_city.lat, from_city.lng, to_city.lat, to_city.lng))


def classify_direction(bearing: float, direction: str) -> bool:
    """True if `bearing` lies in the quadrant for `direction`.

    Quadrant edges are inclusive on both sides, so 45 is both north and east.
    """
    if direction == "n":
        return bearing <= 45.0 or bearing >= 315.0
    if direction == "e":
        return 45.0 <= bearing <= 135.0
    if direction == "s":
        return 135.0 <= bearing <= 225.0
    if direction == "w":
        return 225.0 <= bearing <= 315.0
    return False


def distance_km(geometry_client, city_a: City, city_b: City) -> float:
    return geometry_client.distance((city_a.lng, city_a.lat), (city_b.lng, city_b.lat), unit="kilometers", geodesic=True)

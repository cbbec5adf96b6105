"""Directional search extents relative to a city."""
from __future__ import annotations
from typing import Optional

from .models import City, DirectionalExtent

# Just inside the valid WGS84 range; the analysis service rejects the exact poles/antimeridian.
MAX_LNG = 179.99999
MAX_LAT = 89.99999

DIRECTIONS = ("n", "s", "e", "w")


def build_extent(city: City, direction: str) -> Optional[DirectionalExtent]:
    """Half-world envelope on the `direction` side of `city`, or None for an unknown direction.

    East spans wrap across the antimeridian at most once, so xmin > xmax is
    possible and means "crossing 180". West applies the same subtraction of 360,
    so xmin drops below -180 for any city west of the prime meridian.
    """
    if direction == "n":
        return DirectionalExtent(xmin=-MAX_LNG, ymin=city.lat, xmax=MAX_LNG, ymax=MAX_LAT)
    if direction == "s":
        return DirectionalExtent(xmin=-MAX_LNG, ymin=-MAX_LAT, xmax=MAX_LNG, ymax=city.lat)
    if direction == "e":
        xmax = city.lng + 180.0
        if xmax > 180.0:
            xmax -= 360.0
        return DirectionalExtent(xmin=city.lng, ymin=-MAX_LAT, xmax=xmax, ymax=MAX_LAT)
    if direction == "w":
        xmin = city.lng - 180.0
        if xmin < -180.0:
            xmin -= 360.0
        return DirectionalExtent(xmin=xmin, ymin=-MAX_LAT, xmax=city.lng, ymax=MAX_LAT)
    return None

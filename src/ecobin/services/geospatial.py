"""Geospatial helper functions."""

from __future__ import annotations

import math
from typing import Sequence

from ..models.domain import Coordinate

EARTH_RADIUS_KM = 6371.0


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Compute distance between two coordinates using the Haversine formula."""

    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)

    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def distance_km(origin: Coordinate, destination: Coordinate) -> float:
    """Great-circle distance between two (lon, lat) pairs."""

    lon1, lat1 = origin
    lon2, lat2 = destination
    return haversine_km(lat1, lon1, lat2, lon2)


def route_distance_km(locations: Sequence[Coordinate]) -> float:
    """Sum of great-circle legs along an ordered sequence of (lon, lat) pairs."""

    return sum(distance_km(locations[i], locations[i + 1]) for i in range(len(locations) - 1))

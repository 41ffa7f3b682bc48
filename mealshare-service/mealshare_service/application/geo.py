"""
Great-circle distance helpers
"""
import math

from ..domain.models import Coordinate

EARTH_RADIUS_KM = 6371.0
DEFAULT_RADIUS_KM = 5.0


def distance_km(a: Coordinate, b: Coordinate) -> float:
    """
    Haversine distance between two coordinates in kilometers

    Args:
        a: First coordinate in degrees
        b: Second coordinate in degrees

    Returns:
        Distance in kilometers, symmetric and zero for identical points
    """
    lat1, lon1 = math.radians(a.latitude), math.radians(a.longitude)
    lat2, lon2 = math.radians(b.latitude), math.radians(b.longitude)
    dlat = lat2 - lat1
    dlon = lon2 - lon1

    h = math.sin(dlat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlon / 2) ** 2
    # rounding can push h slightly outside [0, 1] near antipodes
    h = min(1.0, max(0.0, h))
    return 2 * EARTH_RADIUS_KM * math.atan2(math.sqrt(h), math.sqrt(1 - h))


def within(center: Coordinate, point: Coordinate, radius_km: float = DEFAULT_RADIUS_KM) -> bool:
    """Check if point lies within radius_km of center (inclusive)"""
    return distance_km(center, point) <= radius_km

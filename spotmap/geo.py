"""
Great-circle helpers on a spherical earth.

Spots span city-to-country distances, so flat (Euclidean) distance on
lat/lng degrees is not good enough anywhere in this codebase.
"""
import math
from typing import Optional, Tuple

EARTH_RADIUS_M: float = 6_371_000.0


def haversine_m(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """
    Great-circle distance between two points.

    Args:
        lat1, lng1: First point in decimal degrees
        lat2, lng2: Second point in decimal degrees

    Returns:
        Distance in meters
    """
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    dphi = math.radians(lat2 - lat1)
    dlmb = math.radians(lng2 - lng1)
    a = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlmb / 2) ** 2
    a = min(1.0, max(0.0, a))
    return 2 * EARTH_RADIUS_M * math.asin(math.sqrt(a))


def latitude_band(lat: float, radius_m: float) -> Optional[Tuple[float, float]]:
    """
    Latitude range that contains every point within ``radius_m`` of ``lat``.

    A meridian arc is the shortest path for a given latitude difference, so
    the band never excludes a point that is actually in range. Returns None
    when the band covers the whole globe.
    """
    delta = math.degrees(radius_m / EARTH_RADIUS_M)
    if delta >= 180:
        return None
    # small pad against rounding at the band edges
    pad = 1e-9
    return max(-90.0, lat - delta - pad), min(90.0, lat + delta + pad)


def format_distance(meters: float) -> str:
    if meters < 1000:
        return f"{round(meters)}m"
    if meters < 10000:
        return f"{meters / 1000:.1f}km"
    return f"{round(meters / 1000)}km"

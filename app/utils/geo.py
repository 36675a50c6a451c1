"""Shared geospatial utilities."""

from math import radians, degrees, cos, sin, asin, sqrt
from typing import Tuple

# Equatorial radius used to turn a km radius into an angle on the sphere.
EARTH_RADIUS_KM = 6378.1


def radius_to_radians(radius_km: float) -> float:
    """Angular radius (radians) for a distance in kilometres."""
    return radius_km / EARTH_RADIUS_KM


def central_angle(lon1: float, lat1: float, lon2: float, lat2: float) -> float:
    """Great-circle angle in radians between two points (haversine).

    Args:
        lon1: Longitude of point 1 (decimal degrees)
        lat1: Latitude of point 1 (decimal degrees)
        lon2: Longitude of point 2 (decimal degrees)
        lat2: Latitude of point 2 (decimal degrees)
    """
    lon1, lat1, lon2, lat2 = map(radians, [lon1, lat1, lon2, lat2])
    dlon = lon2 - lon1
    dlat = lat2 - lat1
    a = sin(dlat / 2) ** 2 + cos(lat1) * cos(lat2) * sin(dlon / 2) ** 2
    return 2 * asin(min(1.0, sqrt(a)))


def haversine_km(lon1: float, lat1: float, lon2: float, lat2: float) -> float:
    """Great-circle distance in kilometres."""
    return central_angle(lon1, lat1, lon2, lat2) * EARTH_RADIUS_KM


def within_radius(center: Tuple[float, float], point: Tuple[float, float], radius_km: float) -> bool:
    """True if point ([lon, lat]) lies inside the spherical cap around center."""
    return central_angle(center[0], center[1], point[0], point[1]) <= radius_to_radians(radius_km)


def bounding_box(lon: float, lat: float, radius_km: float) -> Tuple[float, float, float, float]:
    """
    (min_lon, min_lat, max_lon, max_lat) enclosing the circle of radius_km.

    Used as an indexed pre-filter; the exact check is within_radius(). Near the
    poles or across the antimeridian the longitude span is widened to the full
    range rather than split.
    """
    angular = radius_to_radians(radius_km)
    d_lat = degrees(angular)
    min_lat = max(-90.0, lat - d_lat)
    max_lat = min(90.0, lat + d_lat)

    cos_lat = cos(radians(lat))
    if max_lat >= 90.0 or min_lat <= -90.0 or cos_lat <= 1e-12:
        return -180.0, min_lat, 180.0, max_lat

    ratio = sin(angular) / cos_lat
    if ratio >= 1.0:
        return -180.0, min_lat, 180.0, max_lat
    d_lon = degrees(asin(ratio))
    min_lon = lon - d_lon
    max_lon = lon + d_lon
    if min_lon < -180.0 or max_lon > 180.0:
        return -180.0, min_lat, 180.0, max_lat
    return min_lon, min_lat, max_lon, max_lat

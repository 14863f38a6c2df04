"""Distance helpers for radius searches"""

import math
from typing import NamedTuple

EARTH_RADIUS_MILES = 3958.8


class BoundingBox(NamedTuple):
    min_lat: float
    max_lat: float
    min_lng: float
    max_lng: float
    # True when the box wraps past +/-180 and a longitude prefilter is unsafe
    crosses_antimeridian: bool


def haversine_miles(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Great-circle distance between two points in miles"""
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lng2 - lng1)

    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    return 2 * EARTH_RADIUS_MILES * math.asin(min(1.0, math.sqrt(a)))


def bounding_box(lat: float, lng: float, radius_miles: float) -> BoundingBox:
    """Coarse lat/lng box containing every point within radius_miles of the center"""
    lat_delta = math.degrees(radius_miles / EARTH_RADIUS_MILES)
    min_lat = max(-90.0, lat - lat_delta)
    max_lat = min(90.0, lat + lat_delta)

    # Near the poles every longitude is in range
    if min_lat <= -90.0 or max_lat >= 90.0:
        return BoundingBox(min_lat, max_lat, -180.0, 180.0, False)

    # Widest longitude reached on the circle is asin(sin(d) / cos(lat)), not d / cos(lat)
    ratio = math.sin(radius_miles / EARTH_RADIUS_MILES) / math.cos(math.radians(lat))
    if ratio >= 1.0:
        return BoundingBox(min_lat, max_lat, -180.0, 180.0, False)
    lng_delta = math.degrees(math.asin(ratio))

    min_lng = lng - lng_delta
    max_lng = lng + lng_delta
    crosses = min_lng < -180.0 or max_lng > 180.0
    return BoundingBox(min_lat, max_lat, min_lng, max_lng, crosses)


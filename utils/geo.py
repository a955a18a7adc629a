"""
utils/geo.py
------------
Great-circle distance helpers (spherical law of cosines, kilometers).

`haversine_sql` renders the same formula as a SQL expression so
repositories can compute, filter, and sort by distance inside the query.
"""

import math

EARTH_RADIUS_KM = 6371.0


def haversine_sql(lat_column: str, lng_column: str) -> str:
    """
    SQL expression for the distance between a bound center and a row.

    The expression contains three placeholders, bound by
    `haversine_params(lat, lng)`. The cosine argument is clamped to
    [-1, 1] because rounding can push it just past 1 for identical points.
    """
    return (
        f"({EARTH_RADIUS_KM} * acos(LEAST(1.0, GREATEST(-1.0, "
        f"cos(radians(%s)) * cos(radians({lat_column})) * "
        f"cos(radians({lng_column}) - radians(%s)) + "
        f"sin(radians(%s)) * sin(radians({lat_column}))))))"
    )


def haversine_params(lat: float, lng: float) -> list:
    return [lat, lng, lat]


def distance_km(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Distance between two points, same formula as `haversine_sql`."""
    cos_angle = (
        math.cos(math.radians(lat1)) * math.cos(math.radians(lat2))
        * math.cos(math.radians(lng2) - math.radians(lng1))
        + math.sin(math.radians(lat1)) * math.sin(math.radians(lat2))
    )
    return EARTH_RADIUS_KM * math.acos(max(-1.0, min(1.0, cos_angle)))

"""Coordinate system conversion and polygon membership.

GPS hardware reports WGS-84 coordinates, while maps rendered for mainland
China expect GCJ-02, a deliberately offset datum. Drawing a raw track on such
a map shifts it by 100-500 m, so every point shown to the map layer goes
through ``to_regional_display`` first. Geometry math (area, closure,
placement) always runs on the raw WGS-84 values.
"""

import math
from collections.abc import Iterable, Sequence

from earthlord_shared.geometry import GeoPoint

# Krasovsky 1940 ellipsoid used by the GCJ-02 offset
SEMI_MAJOR_AXIS = 6378245.0
ECCENTRICITY_SQUARED = 0.00669342162296594323

# Rough bounding region where the offset applies
REGION_MIN_LON = 72.004
REGION_MAX_LON = 137.8347
REGION_MIN_LAT = 0.8293
REGION_MAX_LAT = 55.8271

MAX_INVERSE_ITERATIONS = 10
INVERSE_THRESHOLD = 1e-9

MEAN_EARTH_RADIUS_M = 6371008.8


def is_outside_region(point: GeoPoint) -> bool:
    """Return True when no GCJ-02 offset applies to ``point``."""
    if point.longitude < REGION_MIN_LON or point.longitude > REGION_MAX_LON:
        return True
    if point.latitude < REGION_MIN_LAT or point.latitude > REGION_MAX_LAT:
        return True
    return False


def _transform_lat(x: float, y: float) -> float:
    ret = -100.0 + 2.0 * x + 3.0 * y + 0.2 * y * y + 0.1 * x * y + 0.2 * math.sqrt(abs(x))
    ret += (20.0 * math.sin(6.0 * x * math.pi) + 20.0 * math.sin(2.0 * x * math.pi)) * 2.0 / 3.0
    ret += (20.0 * math.sin(y * math.pi) + 40.0 * math.sin(y / 3.0 * math.pi)) * 2.0 / 3.0
    ret += (160.0 * math.sin(y / 12.0 * math.pi) + 320.0 * math.sin(y * math.pi / 30.0)) * 2.0 / 3.0
    return ret


def _transform_lon(x: float, y: float) -> float:
    ret = 300.0 + x + 2.0 * y + 0.1 * x * x + 0.1 * x * y + 0.1 * math.sqrt(abs(x))
    ret += (20.0 * math.sin(6.0 * x * math.pi) + 20.0 * math.sin(2.0 * x * math.pi)) * 2.0 / 3.0
    ret += (20.0 * math.sin(x * math.pi) + 40.0 * math.sin(x / 3.0 * math.pi)) * 2.0 / 3.0
    ret += (150.0 * math.sin(x / 12.0 * math.pi) + 300.0 * math.sin(x / 30.0 * math.pi)) * 2.0 / 3.0
    return ret


def _offset(lat: float, lon: float) -> tuple[float, float]:
    """Compute the (d_lat, d_lon) GCJ-02 offset for a WGS-84 coordinate."""
    d_lat = _transform_lat(lon - 105.0, lat - 35.0)
    d_lon = _transform_lon(lon - 105.0, lat - 35.0)

    rad_lat = lat / 180.0 * math.pi
    magic = math.sin(rad_lat)
    magic = 1 - ECCENTRICITY_SQUARED * magic * magic
    sqrt_magic = math.sqrt(magic)

    d_lat = (d_lat * 180.0) / (
        (SEMI_MAJOR_AXIS * (1 - ECCENTRICITY_SQUARED)) / (magic * sqrt_magic) * math.pi
    )
    d_lon = (d_lon * 180.0) / (SEMI_MAJOR_AXIS / sqrt_magic * math.cos(rad_lat) * math.pi)
    return d_lat, d_lon


def to_regional_display(point: GeoPoint) -> GeoPoint:
    """Convert a raw WGS-84 point to GCJ-02 for display.

    Points outside the offset region are returned unchanged.
    """
    if is_outside_region(point):
        return point

    d_lat, d_lon = _offset(point.latitude, point.longitude)
    return GeoPoint(latitude=point.latitude + d_lat, longitude=point.longitude + d_lon)


def to_raw_gps(point: GeoPoint) -> GeoPoint:
    """Convert a GCJ-02 point back to WGS-84.

    The forward transform has no closed-form inverse. Starting from the
    display point, repeatedly push the estimate through the forward transform
    and correct it by the residual. The Jacobian is close to identity, so the
    iteration converges to sub-millimetre precision in a few steps.
    """
    if is_outside_region(point):
        return point

    lat, lon = point.latitude, point.longitude
    for _ in range(MAX_INVERSE_ITERATIONS):
        converted = to_regional_display(GeoPoint(latitude=lat, longitude=lon))
        delta_lat = point.latitude - converted.latitude
        delta_lon = point.longitude - converted.longitude
        lat += delta_lat
        lon += delta_lon

        if abs(delta_lat) < INVERSE_THRESHOLD and abs(delta_lon) < INVERSE_THRESHOLD:
            break

    return GeoPoint(latitude=lat, longitude=lon)


def to_regional_display_many(points: Iterable[GeoPoint]) -> list[GeoPoint]:
    """Batch version of ``to_regional_display`` for map layers."""
    return [to_regional_display(p) for p in points]


def is_inside_polygon(point: GeoPoint, polygon: Sequence[GeoPoint]) -> bool:
    """Ray-casting point-in-polygon test.

    A ray is cast from ``point`` toward +longitude and edge crossings are
    counted (the closing edge from the last vertex back to the first
    included). An odd count means inside.

    Points lying exactly on the boundary are undefined: the half-open crossing
    rule happens to count a point on a min-longitude edge as inside and one on
    a max-longitude edge as outside, but callers must not rely on either.
    Polygons with fewer than 3 vertices contain nothing.
    """
    if len(polygon) < 3:
        return False

    inside = False
    j = len(polygon) - 1
    for i in range(len(polygon)):
        xi, yi = polygon[i].longitude, polygon[i].latitude
        xj, yj = polygon[j].longitude, polygon[j].latitude

        if (yi > point.latitude) != (yj > point.latitude):
            crossing_lon = (xj - xi) * (point.latitude - yi) / (yj - yi) + xi
            if point.longitude < crossing_lon:
                inside = not inside
        j = i

    return inside


def haversine_distance(a: GeoPoint, b: GeoPoint) -> float:
    """Great-circle distance between two points in metres."""
    lat1 = math.radians(a.latitude)
    lat2 = math.radians(b.latitude)
    d_lat = lat2 - lat1
    d_lon = math.radians(b.longitude - a.longitude)

    h = math.sin(d_lat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(d_lon / 2) ** 2
    return 2 * MEAN_EARTH_RADIUS_M * math.asin(min(1.0, math.sqrt(h)))

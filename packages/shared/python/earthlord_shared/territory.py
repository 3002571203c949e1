"""Territory geometry builder.

Turns a recorded GPS path into the artifacts stored with a territory: the
area in square metres, the bounding box, the PostGIS WKT polygon and the
JSON path used for display. All math runs on raw WGS-84 coordinates.
"""

import logging
import math
import re
from collections.abc import Sequence
from typing import Any

from pydantic import BaseModel
from shapely.geometry import Polygon

from earthlord_shared.errors import InsufficientPoints, InvalidGeometry
from earthlord_shared.geodesy import MEAN_EARTH_RADIUS_M, haversine_distance
from earthlord_shared.geometry import BoundingBox, GeoPoint

logger = logging.getLogger(__name__)

SRID = 4326
MIN_POLYGON_POINTS = 3
DEFAULT_MIN_CLOSURE_POINTS = 4

_SRID_PREFIX_RE = re.compile(r"^\s*SRID=(\d+)\s*;\s*", re.IGNORECASE)
_POLYGON_RE = re.compile(r"^\s*POLYGON\s*\(\((?P<ring>[^()]*)\)\)\s*$", re.IGNORECASE)


class TerritoryGeometry(BaseModel):
    """Everything derived from a closed boundary."""

    boundary: list[GeoPoint]
    area: float
    bounding_box: BoundingBox
    point_count: int
    polygon_wkt: str
    path: list[dict[str, float]]


def detect_closure(
    path: Sequence[GeoPoint],
    closure_tolerance_meters: float,
    min_points: int = DEFAULT_MIN_CLOSURE_POINTS,
) -> bool:
    """Return True when the path has returned close enough to its start.

    Three distinct vertices plus the return leg are needed for a polygon,
    hence the default minimum of 4 recorded points.
    """
    if len(path) < min_points:
        return False
    return haversine_distance(path[0], path[-1]) <= closure_tolerance_meters


def count_distinct_points(points: Sequence[GeoPoint]) -> int:
    return len({(p.latitude, p.longitude) for p in points})


def _require_polygon(boundary: Sequence[GeoPoint]) -> None:
    distinct = count_distinct_points(boundary)
    if distinct < MIN_POLYGON_POINTS:
        raise InsufficientPoints(distinct, MIN_POLYGON_POINTS)


def _project_local(boundary: Sequence[GeoPoint]) -> list[tuple[float, float]]:
    """Equirectangular projection onto a tangent plane at the centroid.

    Good to well under 1% for territories up to a few square kilometres,
    which is plenty for gameplay; this is not a surveying tool.
    """
    lat0 = sum(p.latitude for p in boundary) / len(boundary)
    lon0 = sum(p.longitude for p in boundary) / len(boundary)
    cos_lat0 = math.cos(math.radians(lat0))
    return [
        (
            MEAN_EARTH_RADIUS_M * math.radians(p.longitude - lon0) * cos_lat0,
            MEAN_EARTH_RADIUS_M * math.radians(p.latitude - lat0),
        )
        for p in boundary
    ]


def compute_area(boundary: Sequence[GeoPoint]) -> float:
    """Area enclosed by the boundary in square metres."""
    _require_polygon(boundary)
    return Polygon(_project_local(boundary)).area


def compute_bounding_box(boundary: Sequence[GeoPoint]) -> BoundingBox:
    if not boundary:
        raise InvalidGeometry("Cannot compute a bounding box of an empty boundary")

    lats = [p.latitude for p in boundary]
    lons = [p.longitude for p in boundary]
    return BoundingBox(min_lat=min(lats), max_lat=max(lats), min_lon=min(lons), max_lon=max(lons))


def _closed_ring(boundary: Sequence[GeoPoint]) -> list[GeoPoint]:
    ring = list(boundary)
    if ring[0] != ring[-1]:
        ring.append(ring[0])
    return ring


def to_closed_wkt_polygon(boundary: Sequence[GeoPoint]) -> str:
    """Format the boundary as ``POLYGON((lon lat, ...))``.

    WKT is longitude first. The ring is closed exactly once, whether or not
    the input already repeats its first point.
    """
    _require_polygon(boundary)
    coords = ", ".join(f"{p.longitude!r} {p.latitude!r}" for p in _closed_ring(boundary))
    return f"POLYGON(({coords}))"


def to_srid_wkt(boundary: Sequence[GeoPoint], srid: int = SRID) -> str:
    """Storage format: ``SRID=4326;POLYGON((...))``."""
    return f"SRID={srid};{to_closed_wkt_polygon(boundary)}"


def parse_srid_wkt(text: str) -> list[GeoPoint]:
    """Parse ``[SRID=n;]POLYGON((lon lat, ...))`` back into a boundary.

    The closing point is dropped, so a boundary written by ``to_srid_wkt``
    comes back as the same ordered sequence.
    """
    body = _SRID_PREFIX_RE.sub("", text, count=1)
    match = _POLYGON_RE.match(body)
    if match is None:
        raise InvalidGeometry(f"Not a single-ring WKT polygon: {text[:80]!r}")

    points = []
    for pair in match.group("ring").split(","):
        parts = pair.split()
        if len(parts) != 2:
            raise InvalidGeometry(f"Malformed WKT coordinate: {pair.strip()!r}")
        try:
            lon, lat = float(parts[0]), float(parts[1])
        except ValueError as e:
            raise InvalidGeometry(f"Malformed WKT coordinate: {pair.strip()!r}") from e
        points.append(GeoPoint(latitude=lat, longitude=lon))

    if len(points) > 1 and points[0] == points[-1]:
        points.pop()
    return points


def to_path_json(points: Sequence[GeoPoint]) -> list[dict[str, float]]:
    """Display format: ``[{"lat": ..., "lon": ...}, ...]`` with no extra keys."""
    return [{"lat": p.latitude, "lon": p.longitude} for p in points]


def parse_path_json(items: Sequence[dict[str, Any]]) -> list[GeoPoint]:
    try:
        return [GeoPoint(latitude=item["lat"], longitude=item["lon"]) for item in items]
    except (KeyError, TypeError) as e:
        raise InvalidGeometry(f"Malformed path entry: {e}") from e


def _open_ring(boundary: Sequence[GeoPoint]) -> list[GeoPoint]:
    ring = list(boundary)
    if len(ring) > 1 and ring[0] == ring[-1]:
        ring.pop()
    return ring


def build_territory_geometry(boundary: Sequence[GeoPoint]) -> TerritoryGeometry:
    """Validate a boundary and derive all stored geometry from it.

    A boundary that already repeats its first point is stored open, so the
    WKT and path JSON parse back to the same sequence.
    """
    boundary = _open_ring(boundary)
    _require_polygon(boundary)

    polygon = Polygon(_project_local(boundary))
    if not polygon.is_valid:
        # Figure-eight walks are accepted; the shoelace area nets the lobes.
        logger.info("Boundary with %d points self-intersects", len(boundary))

    return TerritoryGeometry(
        boundary=list(boundary),
        area=polygon.area,
        bounding_box=compute_bounding_box(boundary),
        point_count=len(boundary),
        polygon_wkt=to_srid_wkt(boundary),
        path=to_path_json(boundary),
    )


def format_area(area_m2: float) -> str:
    if area_m2 >= 1_000_000:
        return f"{area_m2 / 1_000_000:.2f} km²"
    return f"{area_m2:.0f} m²"

"""Tests for the territory geometry builder."""

import math

import pytest

from earthlord_shared import GeoPoint, InsufficientPoints, InvalidGeometry
from earthlord_shared.territory import (
    build_territory_geometry,
    compute_area,
    compute_bounding_box,
    detect_closure,
    format_area,
    parse_path_json,
    parse_srid_wkt,
    to_closed_wkt_polygon,
    to_path_json,
    to_srid_wkt,
)

METERS_PER_DEGREE_LAT = 111_195.0


def square(lat: float, lon: float, side_m: float) -> list[GeoPoint]:
    d_lat = side_m / METERS_PER_DEGREE_LAT
    d_lon = side_m / (METERS_PER_DEGREE_LAT * math.cos(math.radians(lat)))
    return [
        GeoPoint(latitude=lat, longitude=lon),
        GeoPoint(latitude=lat, longitude=lon + d_lon),
        GeoPoint(latitude=lat + d_lat, longitude=lon + d_lon),
        GeoPoint(latitude=lat + d_lat, longitude=lon),
    ]


def offset(point: GeoPoint, north_m: float = 0.0, east_m: float = 0.0) -> GeoPoint:
    return GeoPoint(
        latitude=point.latitude + north_m / METERS_PER_DEGREE_LAT,
        longitude=point.longitude
        + east_m / (METERS_PER_DEGREE_LAT * math.cos(math.radians(point.latitude))),
    )


class TestArea:
    @pytest.mark.parametrize("lat,lon", [(31.23, 121.47), (0.0, 0.0), (59.9, 10.75)])
    def test_100m_square(self, lat, lon):
        assert compute_area(square(lat, lon, 100)) == pytest.approx(10_000, rel=0.05)

    def test_orientation_independent(self):
        boundary = square(31.23, 121.47, 100)
        assert compute_area(boundary) == pytest.approx(compute_area(boundary[::-1]))

    def test_needs_three_distinct_points(self):
        a = GeoPoint(latitude=31.0, longitude=121.0)
        b = GeoPoint(latitude=31.001, longitude=121.0)
        with pytest.raises(InsufficientPoints) as exc_info:
            compute_area([a, b, a, b])
        assert exc_info.value.count == 2


class TestClosure:
    def test_closes_within_tolerance(self):
        start = GeoPoint(latitude=31.23, longitude=121.47)
        path = [*square(31.23, 121.47, 100), offset(start, north_m=5, east_m=5)]
        assert detect_closure(path, closure_tolerance_meters=30)

    def test_does_not_close_50m_away(self):
        start = GeoPoint(latitude=31.23, longitude=121.47)
        path = [*square(31.23, 121.47, 100), offset(start, north_m=50)]
        assert not detect_closure(path, closure_tolerance_meters=30)

    def test_too_few_points(self):
        start = GeoPoint(latitude=31.23, longitude=121.47)
        path = [start, offset(start, east_m=100), offset(start, north_m=2)]
        assert not detect_closure(path, closure_tolerance_meters=30)
        assert detect_closure(path, closure_tolerance_meters=30, min_points=3)


class TestBoundingBox:
    def test_fold(self):
        bbox = compute_bounding_box(square(31.0, 121.0, 100))
        assert bbox.min_lat == 31.0
        assert bbox.min_lon == 121.0
        assert bbox.max_lat > 31.0
        assert bbox.max_lon > 121.0
        assert bbox.contains(GeoPoint(latitude=31.0004, longitude=121.0004))

    def test_empty(self):
        with pytest.raises(InvalidGeometry):
            compute_bounding_box([])


class TestWkt:
    def test_ring_is_closed_once(self):
        boundary = [
            GeoPoint(latitude=0.0, longitude=0.0),
            GeoPoint(latitude=0.0, longitude=1.0),
            GeoPoint(latitude=1.0, longitude=1.0),
        ]
        expected = "POLYGON((0.0 0.0, 1.0 0.0, 1.0 1.0, 0.0 0.0))"
        assert to_closed_wkt_polygon(boundary) == expected
        assert to_closed_wkt_polygon([*boundary, boundary[0]]) == expected

    def test_longitude_first(self):
        boundary = square(31.23, 121.47, 100)
        assert to_closed_wkt_polygon(boundary).startswith("POLYGON((121.47 31.23,")

    def test_srid_round_trip(self):
        boundary = square(31.23, 121.47, 100)
        text = to_srid_wkt(boundary)
        assert text.startswith("SRID=4326;POLYGON((")
        assert parse_srid_wkt(text) == boundary

    def test_parse_without_srid(self):
        points = parse_srid_wkt("POLYGON((1 2, 3 4, 5 6, 1 2))")
        assert points == [
            GeoPoint(latitude=2, longitude=1),
            GeoPoint(latitude=4, longitude=3),
            GeoPoint(latitude=6, longitude=5),
        ]

    @pytest.mark.parametrize(
        "text",
        ["", "POINT(1 2)", "POLYGON((1 2, 3))", "POLYGON((a b, 1 2, 3 4))", "SRID=4326;"],
    )
    def test_malformed(self, text):
        with pytest.raises(InvalidGeometry):
            parse_srid_wkt(text)


class TestPathJson:
    def test_format(self):
        point = GeoPoint(latitude=31.23, longitude=121.47)
        assert to_path_json([point]) == [{"lat": 31.23, "lon": 121.47}]

    def test_round_trip(self):
        boundary = square(31.23, 121.47, 100)
        assert parse_path_json(to_path_json(boundary)) == boundary

    def test_malformed(self):
        with pytest.raises(InvalidGeometry):
            parse_path_json([{"latitude": 1.0, "longitude": 2.0}])


class TestBuildTerritoryGeometry:
    def test_builds_everything(self):
        boundary = square(31.23, 121.47, 100)
        geometry = build_territory_geometry(boundary)

        assert geometry.point_count == 4
        assert geometry.area == pytest.approx(10_000, rel=0.05)
        assert geometry.bounding_box == compute_bounding_box(boundary)
        assert geometry.polygon_wkt == to_srid_wkt(boundary)
        assert parse_path_json(geometry.path) == boundary

    def test_pre_closed_ring_is_stored_open(self):
        boundary = [
            GeoPoint(latitude=0.0, longitude=0.0),
            GeoPoint(latitude=0.0, longitude=1.0),
            GeoPoint(latitude=1.0, longitude=1.0),
        ]
        geometry = build_territory_geometry([*boundary, boundary[0]])

        assert geometry.boundary == boundary
        assert geometry.point_count == 3
        assert parse_srid_wkt(geometry.polygon_wkt) == boundary
        assert parse_path_json(geometry.path) == boundary

    def test_ring_closed_on_a_duplicate_pair_still_needs_three_points(self):
        a, b = square(31.23, 121.47, 100)[:2]
        with pytest.raises(InsufficientPoints):
            build_territory_geometry([a, b, a])

    def test_rejects_two_points(self):
        boundary = square(31.23, 121.47, 100)[:2]
        with pytest.raises(InsufficientPoints):
            build_territory_geometry(boundary)

    def test_self_intersecting_is_accepted(self):
        a, b, c, d = square(31.23, 121.47, 100)
        geometry = build_territory_geometry([a, c, b, d])
        assert geometry.point_count == 4


def test_format_area():
    assert format_area(950.4) == "950 m²"
    assert format_area(2_500_000) == "2.50 km²"

"""Tests for coordinate conversion and point-in-polygon."""

import pytest

from earthlord_shared import GeoPoint
from earthlord_shared.geodesy import (
    haversine_distance,
    is_inside_polygon,
    is_outside_region,
    to_raw_gps,
    to_regional_display,
    to_regional_display_many,
)

IN_REGION = [
    GeoPoint(latitude=31.2304, longitude=121.4737),  # Shanghai
    GeoPoint(latitude=39.9042, longitude=116.4074),  # Beijing
    GeoPoint(latitude=22.5431, longitude=114.0579),  # Shenzhen
    GeoPoint(latitude=43.8256, longitude=87.6168),  # Urumqi
]

OUT_OF_REGION = [
    GeoPoint(latitude=51.5074, longitude=-0.1278),  # London
    GeoPoint(latitude=-33.8688, longitude=151.2093),  # Sydney
    GeoPoint(latitude=60.0, longitude=100.0),
    GeoPoint(latitude=30.0, longitude=70.0),
    GeoPoint(latitude=0.5, longitude=110.0),
]

# Unit square as (lat, lon) corners
UNIT_SQUARE = [
    GeoPoint(latitude=0.0, longitude=0.0),
    GeoPoint(latitude=1.0, longitude=0.0),
    GeoPoint(latitude=1.0, longitude=1.0),
    GeoPoint(latitude=0.0, longitude=1.0),
]


class TestRegionalTransform:
    @pytest.mark.parametrize("point", IN_REGION)
    def test_offset_applies_in_region(self, point):
        shifted = to_regional_display(point)
        assert shifted != point
        # Offsets are a few hundred metres at most
        assert haversine_distance(point, shifted) < 1000

    @pytest.mark.parametrize("point", IN_REGION)
    def test_round_trip(self, point):
        restored = to_raw_gps(to_regional_display(point))
        assert restored.latitude == pytest.approx(point.latitude, abs=1e-6)
        assert restored.longitude == pytest.approx(point.longitude, abs=1e-6)

    @pytest.mark.parametrize("point", OUT_OF_REGION)
    def test_identity_outside_region(self, point):
        assert is_outside_region(point)
        assert to_regional_display(point) == point
        assert to_raw_gps(point) == point

    def test_known_offset_shanghai(self):
        shifted = to_regional_display(GeoPoint(latitude=31.2304, longitude=121.4737))
        # GCJ-02 moves Shanghai south-east by roughly 0.002 lat and 0.0044 lon
        assert shifted.latitude - 31.2304 == pytest.approx(-0.0019, abs=0.0005)
        assert shifted.longitude - 121.4737 == pytest.approx(0.0044, abs=0.0005)

    def test_batch(self):
        points = IN_REGION[:2] + OUT_OF_REGION[:1]
        assert to_regional_display_many(points) == [to_regional_display(p) for p in points]


class TestPointInPolygon:
    def test_center_inside(self):
        assert is_inside_polygon(GeoPoint(latitude=0.5, longitude=0.5), UNIT_SQUARE)

    def test_far_point_outside(self):
        assert not is_inside_polygon(GeoPoint(latitude=2.0, longitude=2.0), UNIT_SQUARE)

    def test_edge_convention(self):
        """Boundary points are undefined in general; the half-open crossing rule
        puts the min-longitude edge inside and the max-longitude edge outside."""
        assert is_inside_polygon(GeoPoint(latitude=0.5, longitude=0.0), UNIT_SQUARE)
        assert not is_inside_polygon(GeoPoint(latitude=0.5, longitude=1.0), UNIT_SQUARE)

    def test_winding_order_does_not_matter(self):
        reversed_square = list(reversed(UNIT_SQUARE))
        assert is_inside_polygon(GeoPoint(latitude=0.5, longitude=0.5), reversed_square)

    def test_concave(self):
        # An L shape: the notch at the top right is outside
        l_shape = [
            GeoPoint(latitude=0.0, longitude=0.0),
            GeoPoint(latitude=2.0, longitude=0.0),
            GeoPoint(latitude=2.0, longitude=1.0),
            GeoPoint(latitude=1.0, longitude=1.0),
            GeoPoint(latitude=1.0, longitude=2.0),
            GeoPoint(latitude=0.0, longitude=2.0),
        ]
        assert is_inside_polygon(GeoPoint(latitude=0.5, longitude=1.5), l_shape)
        assert not is_inside_polygon(GeoPoint(latitude=1.5, longitude=1.5), l_shape)

    def test_degenerate_polygons_contain_nothing(self):
        point = GeoPoint(latitude=0.0, longitude=0.0)
        assert not is_inside_polygon(point, [])
        assert not is_inside_polygon(point, UNIT_SQUARE[:2])


class TestHaversine:
    def test_zero(self):
        p = GeoPoint(latitude=31.0, longitude=121.0)
        assert haversine_distance(p, p) == 0.0

    def test_one_degree_of_latitude(self):
        a = GeoPoint(latitude=0.0, longitude=0.0)
        b = GeoPoint(latitude=1.0, longitude=0.0)
        assert haversine_distance(a, b) == pytest.approx(111_195, rel=1e-3)

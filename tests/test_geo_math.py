"""Tests for the lat/lon geometry helpers."""
import math
import pytest
from core.errors import EmptyInputError, GeoBoundaryError
from tools.geo_math import bounding_box, centroid, degree_offset_for_radius, normalize_longitude, planar_distance_meters


def test_centroid_is_mean_of_coordinates():
    lat, lon = centroid([(26.0, 73.0), (27.0, 74.0), (28.0, 72.0)])
    assert lat == pytest.approx(27.0)
    assert lon == pytest.approx(73.0)


def test_centroid_of_single_point():
    assert centroid([(26.27, 73.03)]) == (26.27, 73.03)


def test_centroid_rejects_empty_input():
    with pytest.raises(EmptyInputError):
        centroid([])


def test_distance_to_self_is_zero():
    assert planar_distance_meters((26.27, 73.03), (26.27, 73.03)) == 0


def test_distance_is_symmetric():
    a, b = (26.27, 73.03), (26.30, 73.07)
    assert planar_distance_meters(a, b) == pytest.approx(planar_distance_meters(b, a))


def test_one_degree_of_latitude():
    # 2 * pi * 6371000 / 360
    assert planar_distance_meters((0.0, 0.0), (1.0, 0.0)) == pytest.approx(111194.93, rel=1e-6)


def test_longitude_degree_shrinks_with_latitude():
    at_equator = planar_distance_meters((0.0, 0.0), (0.0, 0.01))
    at_sixty = planar_distance_meters((60.0, 0.0), (60.0, 0.01))
    assert at_sixty == pytest.approx(at_equator * 0.5, rel=1e-4)


class TestDegreeOffset:
    def test_zero_radius(self):
        assert degree_offset_for_radius(0, 26.0) == (0.0, 0.0)

    def test_equator_offsets_match(self):
        lat_offset, lon_offset = degree_offset_for_radius(2000, 0.0)
        assert lat_offset == pytest.approx(lon_offset)

    def test_longitude_scaled_by_inverse_cosine(self):
        lat_offset, lon_offset = degree_offset_for_radius(2000, 60.0)
        assert lon_offset == pytest.approx(lat_offset / math.cos(math.radians(60.0)), rel=1e-6)

    def test_negative_radius_rejected(self):
        with pytest.raises(ValueError):
            degree_offset_for_radius(-1, 10.0)

    @pytest.mark.parametrize("latitude", [90.0, -90.0, 91.0])
    def test_pole_is_a_boundary(self, latitude):
        with pytest.raises(GeoBoundaryError):
            degree_offset_for_radius(1000, latitude)

    def test_near_pole_offset_is_clamped(self):
        _, lon_offset = degree_offset_for_radius(50000, 89.9999)
        assert lon_offset == 180.0
        assert math.isfinite(lon_offset)


def test_bounding_box_contains_circle_extremes():
    center = (26.27, 73.03)
    radius = 5000
    box = bounding_box(center, radius)

    # Points on the circle in the four cardinal directions
    lat_step = math.degrees(radius / 6371000)
    lon_step = lat_step / math.cos(math.radians(center[0]))
    for lat, lon in [(center[0] + lat_step * 0.999, center[1]), (center[0] - lat_step * 0.999, center[1]),
                     (center[0], center[1] + lon_step * 0.999), (center[0], center[1] - lon_step * 0.999)]:
        assert box.contains(lat, lon)

    assert planar_distance_meters(center, (box.max_lat, center[1])) >= radius - 1e-6
    assert planar_distance_meters(center, (center[0], box.max_lon)) >= radius - 1e-6


@pytest.mark.parametrize("lon, expected", [
    (73.03, 73.03),
    (180.0, -180.0),
    (180.5, -179.5),
    (-180.5, 179.5),
    (-180.0, -180.0),
])
def test_normalize_longitude(lon, expected):
    assert normalize_longitude(lon) == pytest.approx(expected)

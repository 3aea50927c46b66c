"""
Test geometry helpers: bounding box center/radius, radius cap, polygon containment.
"""

import os
import sys

_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, _root)

from leadgen.geo import (
    MAX_SEARCH_RADIUS_M,
    approximate_area_sq_km,
    bounding_box_center,
    bounding_box_radius,
    capped_radius,
    is_within_boundary,
)


def _square(west, south, east, north):
    return [[west, south], [east, south], [east, north], [west, north], [west, south]]


def test_center_accepts_nominatim_strings():
    center = bounding_box_center(["51.50", "51.52", "-0.14", "-0.10"])
    assert abs(center["lat"] - 51.51) < 1e-9
    assert abs(center["lng"] - (-0.12)) < 1e-9


def test_radius_at_equator_is_half_diagonal():
    # 0.1 x 0.1 degrees at the equator: diagonal ~ 15698 m
    radius = bounding_box_radius([0, 0.1, 0, 0.1])
    assert 7800 <= radius <= 7900


def test_radius_shrinks_longitude_away_from_equator():
    at_equator = bounding_box_radius([-0.05, 0.05, 0, 0.2])
    at_sixty = bounding_box_radius([59.95, 60.05, 0, 0.2])
    assert at_sixty < at_equator


def test_large_box_radius_is_capped():
    radius = bounding_box_radius([40.0, 42.0, -75.0, -72.0])
    assert radius > MAX_SEARCH_RADIUS_M
    assert capped_radius(radius) == MAX_SEARCH_RADIUS_M
    assert capped_radius(1234) == 1234


def test_point_in_polygon():
    polygon = {"type": "Polygon", "coordinates": [_square(-1, -1, 1, 1)]}
    assert is_within_boundary(0, 0, polygon) is True
    assert is_within_boundary(2, 0, polygon) is False
    assert is_within_boundary(0, 2, polygon) is False


def test_point_in_multipolygon_any_part():
    multi = {
        "type": "MultiPolygon",
        "coordinates": [
            [_square(0, 0, 1, 1)],
            [_square(10, 10, 11, 11)],
        ],
    }
    assert is_within_boundary(10.5, 10.5, multi) is True
    assert is_within_boundary(0.5, 0.5, multi) is True
    assert is_within_boundary(5, 5, multi) is False


def test_holes_are_ignored():
    polygon = {
        "type": "Polygon",
        "coordinates": [_square(0, 0, 10, 10), _square(4, 4, 6, 6)],
    }
    # Inside the hole but still counted as inside: outer ring only
    assert is_within_boundary(5, 5, polygon) is True


def test_missing_or_unsupported_geometry_allows_point():
    assert is_within_boundary(5, 5, None) is True
    assert is_within_boundary(5, 5, {"type": "Point", "coordinates": [0, 0]}) is True
    assert is_within_boundary(5, 5, {"type": "Polygon", "coordinates": []}) is True
    assert is_within_boundary(5, 5, {"type": "MultiPolygon", "coordinates": []}) is True


def test_approximate_area():
    assert approximate_area_sq_km(None) == 0.0
    area = approximate_area_sq_km({"minlat": 0, "minlon": 0, "maxlat": 0.1, "maxlon": 0.1})
    assert 123 < area < 124

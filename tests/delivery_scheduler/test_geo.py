"""Tests for geometric primitives."""

import math

import pytest

from delivery_scheduler.exceptions import InvalidInputError
from delivery_scheduler.geo import ensure_coordinate, haversine_km, to_degrees, to_radians
from delivery_scheduler.models import Coordinate

# --- Tests for haversine_km ---

def test_haversine_one_degree_longitude_on_equator():
    dist = haversine_km(Coordinate(lat=0, lng=0), Coordinate(lat=0, lng=1))
    assert math.isclose(dist, 111.195, rel_tol=1e-4)

def test_haversine_one_by_one_degree_near_equator():
    """1° x 1° near the equator is about 157.2 km."""
    dist = haversine_km(Coordinate(lat=0, lng=0), Coordinate(lat=1, lng=1))
    assert dist == pytest.approx(157.25, abs=0.05)

def test_haversine_same_point_is_zero(sydney_locations):
    depot = sydney_locations['depot']
    assert haversine_km(depot, depot) == 0.0

def test_haversine_symmetry(sydney_locations):
    there = haversine_km(sydney_locations['depot'], sydney_locations['parramatta'])
    back = haversine_km(sydney_locations['parramatta'], sydney_locations['depot'])
    assert there == pytest.approx(back)

def test_haversine_triangle_inequality(sydney_locations):
    direct = haversine_km(sydney_locations['parramatta'], sydney_locations['bondi'])
    via_cbd = (haversine_km(sydney_locations['parramatta'], sydney_locations['depot'])
               + haversine_km(sydney_locations['depot'], sydney_locations['bondi']))
    assert direct <= via_cbd

def test_degree_radian_conversion():
    assert to_radians(180) == pytest.approx(math.pi)
    assert to_degrees(math.pi / 2) == pytest.approx(90)
    assert to_degrees(to_radians(33.8688)) == pytest.approx(33.8688)

# --- Tests for ensure_coordinate ---

def test_ensure_coordinate_accepts_model_mapping_and_pair():
    expected = Coordinate(lat=-33.8688, lng=151.2093)
    assert ensure_coordinate(expected) == expected
    assert ensure_coordinate({"lat": -33.8688, "lng": 151.2093}) == expected
    assert ensure_coordinate((-33.8688, 151.2093)) == expected

def test_ensure_coordinate_keeps_address():
    coord = ensure_coordinate({"lat": 1, "lng": 2, "address": "1 George St"})
    assert coord.address == "1 George St"

@pytest.mark.parametrize("value", [
    {"lat": float("nan"), "lng": 0},
    {"lat": 0, "lng": float("inf")},
    {"lat": 91, "lng": 0},
    {"lat": 0, "lng": -180.5},
    {"lat": 0},
    (1, 2, 3),
    "0,0",
    None,
])
def test_ensure_coordinate_rejects_invalid(value):
    with pytest.raises(InvalidInputError):
        ensure_coordinate(value)

def test_ensure_coordinate_revalidates_unvalidated_model():
    """model_construct skips validation; the value must still be rejected."""
    bogus = Coordinate.model_construct(lat=float("nan"), lng=0.0, address=None)
    with pytest.raises(InvalidInputError):
        ensure_coordinate(bogus, "origin")

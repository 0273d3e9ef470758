"""Shared fixtures for delivery_scheduler tests."""

import math

import pytest

from delivery_scheduler.geo import EARTH_RADIUS_KM
from delivery_scheduler.models import Coordinate, DeliveryStop

KM_PER_DEGREE = EARTH_RADIUS_KM * math.pi / 180


@pytest.fixture
def east_of_origin():
    """Factory for points on the equator a given number of km east of (0, 0)."""
    def make(distance_km: float) -> Coordinate:
        return Coordinate(lat=0.0, lng=distance_km / KM_PER_DEGREE)
    return make


@pytest.fixture
def origin() -> Coordinate:
    return Coordinate(lat=0.0, lng=0.0, address="Depot")


@pytest.fixture
def sydney_locations():
    """A handful of real Sydney locations."""
    return {
        'depot': Coordinate(lat=-33.8688, lng=151.2093, address="Sydney CBD"),
        'parramatta': Coordinate(lat=-33.8150, lng=151.0011, address="Parramatta"),
        'bondi': Coordinate(lat=-33.8915, lng=151.2767, address="Bondi Beach"),
        'chatswood': Coordinate(lat=-33.7969, lng=151.1803, address="Chatswood"),
        'hurstville': Coordinate(lat=-33.9670, lng=151.1020, address="Hurstville"),
    }


@pytest.fixture
def sydney_stops(sydney_locations):
    return [
        DeliveryStop(location=sydney_locations['parramatta'], unloading_time_minutes=45),
        DeliveryStop(location=sydney_locations['bondi'], unloading_time_minutes=20),
        DeliveryStop(location=sydney_locations['chatswood'], unloading_time_minutes=30, priority=1),
        DeliveryStop(location=sydney_locations['hurstville'], unloading_time_minutes=25),
    ]

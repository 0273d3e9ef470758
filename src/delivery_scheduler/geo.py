"""
Geometric primitives used by the local estimator and the vehicle assigner.
"""

import math
from typing import Any, Mapping, Sequence

from pydantic import ValidationError

from .exceptions import InvalidInputError
from .models import Coordinate

EARTH_RADIUS_KM = 6371.0


def to_radians(degrees: float) -> float:
    return degrees * (math.pi / 180.0)


def to_degrees(radians: float) -> float:
    return radians * (180.0 / math.pi)


def haversine_km(start: Coordinate, end: Coordinate) -> float:
    """
    Great-circle distance between two coordinates in kilometres.

    Args:
        start: First point.
        end: Second point.

    Returns:
        Distance in km on a sphere of radius EARTH_RADIUS_KM.
    """
    d_lat = to_radians(end.lat - start.lat)
    d_lng = to_radians(end.lng - start.lng)

    a = (math.sin(d_lat / 2) ** 2
         + math.cos(to_radians(start.lat)) * math.cos(to_radians(end.lat)) * math.sin(d_lng / 2) ** 2)
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def ensure_coordinate(value: Any, label: str = "coordinate") -> Coordinate:
    """
    Normalizes caller input into a validated Coordinate.

    Accepts a Coordinate, a mapping with lat/lng (and optional address) or a
    (lat, lng) pair. Coordinates built with `model_construct` bypass pydantic
    validation, so they are re-checked here as well.

    Raises:
        InvalidInputError: If the value is not a usable coordinate.
    """
    try:
        if isinstance(value, Coordinate):
            return Coordinate(lat=value.lat, lng=value.lng, address=value.address)
        if isinstance(value, Mapping):
            return Coordinate(**value)
        if isinstance(value, Sequence) and not isinstance(value, str) and len(value) == 2:
            return Coordinate(lat=value[0], lng=value[1])
    except (ValidationError, TypeError) as exc:
        raise InvalidInputError(f"Invalid {label}: {exc}") from exc
    raise InvalidInputError(f"Invalid {label}: expected a coordinate, got {value!r}")

"""
Distance/duration providers.

Two variants share the DistanceProvider interface:

- HaversineEstimator: straight-line distance with a fixed urban speed
  (2 minutes per km, about 30 km/h) and a flat 20% traffic penalty. Pure
  function of its inputs.
- ExternalMappingProvider: Google Routes API. Any failure is logged and
  answered by the local estimator instead, tagged with
  EstimateSource.LOCAL_ESTIMATE so callers can tell.

The variant is chosen once by `create_distance_provider`.
"""

import logging
import math
from abc import ABC, abstractmethod
from typing import Optional, Sequence

import httpx

from .config import RoutingConfig
from .exceptions import ProviderUnavailableError
from .geo import haversine_km
from .google_routes import GoogleRoutesClient
from .models import Coordinate, DeliveryStop, EstimateSource, OptimizedRoute, TravelEstimate

logger = logging.getLogger(__name__)

MINUTES_PER_KM = 2.0 # ~30 km/h effective urban speed
TRAFFIC_MULTIPLIER = 1.2 # Flat 20% traffic penalty

# Development geocoding stand-in: points scattered around central Sydney
DEV_BASE_LAT = -33.8688
DEV_BASE_LNG = 151.2093
DEV_VARIANCE_DEGREES = 0.1


class DistanceProvider(ABC):
    """Answers "how far and how long between two points"."""

    #: Whether `optimized_route` can order a whole set of stops in one call.
    supports_route_optimization = False

    @abstractmethod
    def get_distance_and_duration(self, origin: Coordinate, destination: Coordinate) -> TravelEstimate:
        ...

    def optimized_route(self, origin: Coordinate, stops: Sequence[DeliveryStop]) -> OptimizedRoute:
        """
        Orders `stops` as a round trip from `origin`.

        Raises:
            ProviderUnavailableError: When the provider cannot answer.
        """
        raise ProviderUnavailableError(f"{type(self).__name__} cannot optimize waypoint order")

    @abstractmethod
    def geocode(self, address: str) -> Optional[Coordinate]:
        ...


class HaversineEstimator(DistanceProvider):
    """Deterministic local estimator used without a mapping provider and as its fallback."""

    def get_distance_and_duration(self, origin: Coordinate, destination: Coordinate) -> TravelEstimate:
        distance = haversine_km(origin, destination)
        duration = distance * MINUTES_PER_KM
        return TravelEstimate(
            distance_km=distance,
            duration_minutes=duration,
            traffic_duration_minutes=duration * TRAFFIC_MULTIPLIER,
            source=EstimateSource.LOCAL_ESTIMATE,
        )

    def geocode(self, address: str) -> Optional[Coordinate]:
        """
        Returns a stable development coordinate for `address`.

        The same string always maps to the same point near Sydney so that
        planning can be exercised without geocoding access.
        """
        code = _string_hash32(address)
        lat_offset = (math.fmod(code, 1000) / 1000 - 0.5) * DEV_VARIANCE_DEGREES
        lng_offset = (math.fmod(code / 1000, 1000) / 1000 - 0.5) * DEV_VARIANCE_DEGREES
        return Coordinate(lat=DEV_BASE_LAT + lat_offset, lng=DEV_BASE_LNG + lng_offset, address=address)


def _string_hash32(text: str) -> int:
    """Signed 32-bit rolling hash (h * 31 + c) over the string's characters."""
    value = 0
    for char in text:
        value = (value << 5) - value + ord(char)
        value = ((value + 2**31) % 2**32) - 2**31
    return value


class ExternalMappingProvider(DistanceProvider):
    """Google Routes backed provider that degrades to the Haversine estimator on failure."""

    supports_route_optimization = True

    def __init__(self, client: GoogleRoutesClient, fallback: Optional[HaversineEstimator] = None):
        self.client = client
        self.fallback = fallback or HaversineEstimator()

    def get_distance_and_duration(self, origin: Coordinate, destination: Coordinate) -> TravelEstimate:
        try:
            return self.client.travel_estimate(origin, destination)
        except ProviderUnavailableError as exc:
            logger.warning("Routes API unavailable, using local distance estimate: %s", exc)
            return self.fallback.get_distance_and_duration(origin, destination)

    def optimized_route(self, origin: Coordinate, stops: Sequence[DeliveryStop]) -> OptimizedRoute:
        return self.client.optimized_route(origin, stops)

    def geocode(self, address: str) -> Optional[Coordinate]:
        try:
            return self.client.geocode(address)
        except ProviderUnavailableError as exc:
            logger.warning("Geocoding unavailable for %r: %s", address, exc)
            return None


def create_distance_provider(
    config: RoutingConfig,
    transport: Optional[httpx.BaseTransport] = None,
) -> DistanceProvider:
    """
    Picks the provider variant for the lifetime of the process.

    Args:
        config: Routing settings. An API key selects the external provider.
        transport: Optional httpx transport, mainly for tests.
    """
    if not config.has_mapping_provider:
        logger.warning("Google Maps API key not configured - using local Haversine estimates")
        return HaversineEstimator()
    return ExternalMappingProvider(GoogleRoutesClient(config, transport=transport))

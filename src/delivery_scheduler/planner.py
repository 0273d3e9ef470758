"""
Public entry point for delivery planning.

`create_planner` wires the provider, optimizer, assigner and calculators from
a RoutingConfig once at startup. The resulting DeliveryPlanner holds no
per-request state and can be shared.
"""

import logging
from datetime import datetime
from typing import Any, List, Optional, Sequence

import httpx

from .assignment import VehicleAssigner
from .config import RoutingConfig
from .departure import DepartureTimeCalculator
from .models import (
    AssignmentResult, Coordinate, DeliveryTimeSlot, DepartureRecommendation,
    OptimizedRoute, VehicleType
)
from .providers import DistanceProvider, create_distance_provider
from .routing import RouteOptimizer
from .scheduling import build_delivery_schedule

logger = logging.getLogger(__name__)


class DeliveryPlanner:

    def __init__(self, config: RoutingConfig, provider: DistanceProvider):
        self.config = config
        self.provider = provider
        self.optimizer = RouteOptimizer(provider, local_ordering=config.local_ordering)
        self.assigner = VehicleAssigner()
        self.departures = DepartureTimeCalculator(provider)

    def optimize_route(
        self,
        origin: Any,
        stops: Sequence[Any],
        vehicle_type: Any = VehicleType.TRUCK,
        return_to_origin: bool = False,
    ) -> OptimizedRoute:
        return self.optimizer.optimize(origin, stops, vehicle_type, return_to_origin=return_to_origin)

    def build_delivery_schedule(
        self,
        route: OptimizedRoute,
        start_time: datetime,
        buffer_minutes: Optional[float] = None,
    ) -> List[DeliveryTimeSlot]:
        if buffer_minutes is None:
            buffer_minutes = self.config.default_schedule_buffer_minutes
        return build_delivery_schedule(
            route, start_time, buffer_minutes,
            default_unloading_minutes=self.config.default_unloading_minutes,
        )

    def suggest_vehicle_assignment(
        self,
        items: Sequence[Any],
        vehicles: Sequence[Any],
        start_location: Any,
    ) -> AssignmentResult:
        return self.assigner.suggest_assignment(items, vehicles, start_location)

    def recommend_departure_time(
        self,
        origin: Any,
        destination: Any,
        target_arrival: datetime,
        buffer_minutes: Optional[float] = None,
    ) -> DepartureRecommendation:
        if buffer_minutes is None:
            buffer_minutes = self.config.default_departure_buffer_minutes
        return self.departures.recommend_departure(origin, destination, target_arrival, buffer_minutes)

    def geocode_address(self, address: str) -> Optional[Coordinate]:
        """Resolves free text to a coordinate; None means "not found"."""
        if not address or not address.strip():
            return None
        return self.provider.geocode(address.strip())


def create_planner(
    config: Optional[RoutingConfig] = None,
    transport: Optional[httpx.BaseTransport] = None,
) -> DeliveryPlanner:
    """
    Builds a DeliveryPlanner.

    Args:
        config: Routing settings; defaults to RoutingConfig() (no mapping
            provider). Use RoutingConfig.from_env() to read the environment.
        transport: Optional httpx transport passed to the mapping client.
    """
    config = config or RoutingConfig()
    return DeliveryPlanner(config, create_distance_provider(config, transport=transport))

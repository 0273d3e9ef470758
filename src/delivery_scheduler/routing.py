"""
Route ordering for multi-stop delivery runs.

With a mapping provider the provider orders the stops (round trip from the
depot). Without one, or when it fails, stops are ordered locally:

- NEAREST_FROM_ORIGIN (default): stops sorted by straight-line distance from
  the depot. This ignores distances between stops once en route, so it is a
  heuristic for environments without mapping access and is never optimal
  except for stops laid out radially around the depot.
- ORTOOLS_TOUR (opt-in): single-vehicle TSP over Haversine distances solved
  with OR-Tools.

Local leg metrics always come from the Haversine estimator.
"""

import logging
from typing import Any, List, Optional, Sequence

from ortools.constraint_solver import pywrapcp
from ortools.constraint_solver import routing_enums_pb2
from pydantic import ValidationError

from .exceptions import InvalidInputError, ProviderUnavailableError
from .geo import ensure_coordinate, haversine_km
from .models import (
    Coordinate, DeliveryStop, EstimateSource, LocalOrdering, OptimizedRoute,
    RouteLeg, TravelEstimate, VehicleType, Waypoint
)
from .providers import DistanceProvider, HaversineEstimator

logger = logging.getLogger(__name__)


def _leg_from_estimate(start: Coordinate, end: Coordinate, estimate: TravelEstimate) -> RouteLeg:
    return RouteLeg(
        start_location=start,
        end_location=end,
        distance_km=estimate.distance_km,
        duration_minutes=estimate.duration_minutes,
        traffic_duration_minutes=estimate.traffic_duration_minutes,
    )


def nearest_from_origin_order(origin: Coordinate, stops: Sequence[DeliveryStop]) -> List[int]:
    """Stop indices sorted by straight-line distance from `origin` (ties keep input order)."""
    return sorted(range(len(stops)), key=lambda i: haversine_km(origin, stops[i].location))


def ortools_tour_order(
    origin: Coordinate,
    stops: Sequence[DeliveryStop],
    return_to_origin: bool = False,
) -> Optional[List[int]]:
    """
    Solves a single-vehicle tour from `origin` through every stop with OR-Tools.

    Arc costs are Haversine distances in metres. For an open route (no
    return leg) the vehicle ends at a dummy node that is free to reach.

    Returns:
        The visiting order as stop indices, or None if the solver found no solution.
    """
    locations = [origin] + [stop.location for stop in stops]
    num_nodes = len(locations)
    depot_index = 0
    if return_to_origin:
        manager = pywrapcp.RoutingIndexManager(num_nodes, 1, depot_index)
    else:
        dummy_end = num_nodes # One extra node past the real locations
        num_nodes += 1
        manager = pywrapcp.RoutingIndexManager(num_nodes, 1, [depot_index], [dummy_end])

    routing = pywrapcp.RoutingModel(manager)

    def distance_callback(from_index_int, to_index_int):
        """Returns the straight-line distance between two nodes in metres."""
        from_node = manager.IndexToNode(from_index_int)
        to_node = manager.IndexToNode(to_index_int)
        if from_node >= len(locations) or to_node >= len(locations):
            return 0 # Dummy end node
        return int(haversine_km(locations[from_node], locations[to_node]) * 1000)

    transit_callback_index = routing.RegisterTransitCallback(distance_callback)
    routing.SetArcCostEvaluatorOfAllVehicles(transit_callback_index)

    search_parameters = pywrapcp.DefaultRoutingSearchParameters()
    search_parameters.first_solution_strategy = (
        routing_enums_pb2.FirstSolutionStrategy.PATH_CHEAPEST_ARC)

    solution = routing.SolveWithParameters(search_parameters)
    if not solution:
        return None

    order = []
    index = routing.Start(0)
    while not routing.IsEnd(index):
        node = manager.IndexToNode(index)
        if node != depot_index:
            order.append(node - 1) # Node 1 is stop 0
        index = solution.Value(routing.NextVar(index))
    return order


class RouteOptimizer:
    """
    Produces an OptimizedRoute for a depot and a set of delivery stops.

    Provider failures never reach the caller: the route is rebuilt with the
    local estimator and marked with `source=LOCAL_ESTIMATE` plus a warning.
    """

    def __init__(
        self,
        provider: DistanceProvider,
        local_ordering: LocalOrdering = LocalOrdering.NEAREST_FROM_ORIGIN,
    ):
        self.provider = provider
        self.local_ordering = local_ordering
        self.estimator = HaversineEstimator()

    def optimize(
        self,
        origin: Any,
        stops: Sequence[Any],
        vehicle_type: Any = VehicleType.TRUCK,
        return_to_origin: bool = False,
    ) -> OptimizedRoute:
        """
        Orders `stops` and computes per-leg metrics.

        Args:
            origin: Depot coordinate (Coordinate, mapping or (lat, lng) pair).
            stops: DeliveryStop objects or mappings accepted by DeliveryStop.
            vehicle_type: TRUCK, VAN or UTE.
            return_to_origin: Add a return leg to the depot when ordering
                locally. Provider routes are always round trips.

        Returns:
            OptimizedRoute whose `order` is a permutation of range(len(stops)).

        Raises:
            InvalidInputError: On an empty stop list or invalid coordinates.
        """
        origin = ensure_coordinate(origin, "origin")
        stops = self._validate_stops(stops)
        try:
            vehicle_type = VehicleType(vehicle_type)
        except ValueError as exc:
            raise InvalidInputError(f"Unknown vehicle type: {vehicle_type!r}") from exc

        if len(stops) == 1:
            return self._single_stop_route(origin, stops[0], return_to_origin)

        warnings = []
        if self.provider.supports_route_optimization:
            try:
                route = self.provider.optimized_route(origin, stops)
                logger.info(
                    "Optimized %d stops for %s via mapping provider: %.1f km, %.1f min",
                    len(stops), vehicle_type.value, route.total_distance_km, route.total_duration_minutes,
                )
                return route
            except ProviderUnavailableError as exc:
                logger.warning("Route optimization provider failed, ordering stops locally: %s", exc)
                warnings.append(f"Mapping provider unavailable ({exc}); route estimated locally")
        else:
            warnings.append("No mapping provider configured; route estimated locally")

        return self._local_route(origin, stops, return_to_origin, warnings)

    def _validate_stops(self, stops: Sequence[Any]) -> List[DeliveryStop]:
        if not stops:
            raise InvalidInputError("At least one delivery stop is required.")
        validated = []
        for i, stop in enumerate(stops):
            try:
                if not isinstance(stop, DeliveryStop):
                    stop = DeliveryStop(**stop)
            except (ValidationError, TypeError) as exc:
                raise InvalidInputError(f"Invalid delivery stop {i}: {exc}") from exc
            location = ensure_coordinate(stop.location, f"location of stop {i}")
            validated.append(stop.model_copy(update={"location": location}))
        return validated

    def _single_stop_route(self, origin: Coordinate, stop: DeliveryStop, return_to_origin: bool) -> OptimizedRoute:
        """One stop needs no ordering; leg metrics still come from the provider when possible."""
        outbound = self.provider.get_distance_and_duration(origin, stop.location)
        legs = [_leg_from_estimate(origin, stop.location, outbound)]
        sources = {outbound.source}
        if return_to_origin:
            inbound = self.provider.get_distance_and_duration(stop.location, origin)
            legs.append(_leg_from_estimate(stop.location, origin, inbound))
            sources.add(inbound.source)

        source = EstimateSource.PROVIDER if sources == {EstimateSource.PROVIDER} else EstimateSource.LOCAL_ESTIMATE
        warnings = [] if source == EstimateSource.PROVIDER else ["Leg metrics estimated locally"]
        return self._assemble([stop], [0], legs, return_to_origin, source, warnings)

    def _local_route(
        self,
        origin: Coordinate,
        stops: List[DeliveryStop],
        return_to_origin: bool,
        warnings: List[str],
    ) -> OptimizedRoute:
        order = None
        if self.local_ordering == LocalOrdering.ORTOOLS_TOUR:
            order = ortools_tour_order(origin, stops, return_to_origin)
            if order is None:
                logger.warning("OR-Tools found no tour for %d stops; using nearest-from-origin order", len(stops))
        if order is None:
            order = nearest_from_origin_order(origin, stops)

        points = [origin] + [stops[i].location for i in order]
        if return_to_origin:
            points.append(origin)

        legs = []
        for start, end in zip(points, points[1:]):
            leg = _leg_from_estimate(start, end, self.estimator.get_distance_and_duration(start, end))
            logger.debug("Local leg %s -> %s: %.2f km", start, end, leg.distance_km)
            legs.append(leg)

        route = self._assemble(stops, order, legs, return_to_origin, EstimateSource.LOCAL_ESTIMATE, warnings)
        logger.info(
            "Ordered %d stops locally (%s): %.1f km, %.1f min",
            len(stops), self.local_ordering.value, route.total_distance_km, route.total_duration_minutes,
        )
        return route

    @staticmethod
    def _assemble(
        stops: Sequence[DeliveryStop],
        order: List[int],
        legs: List[RouteLeg],
        return_to_origin: bool,
        source: EstimateSource,
        warnings: List[str],
    ) -> OptimizedRoute:
        waypoints = [
            Waypoint(location=stops[i].location, stopover=True, unloading_time_minutes=stops[i].unloading_time_minutes)
            for i in order
        ]
        return OptimizedRoute(
            waypoints=waypoints,
            total_distance_km=sum(leg.distance_km for leg in legs),
            total_duration_minutes=sum(leg.duration_minutes for leg in legs),
            legs=legs,
            order=list(order),
            return_to_origin=return_to_origin,
            source=source,
            warnings=warnings,
        )

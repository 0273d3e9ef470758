"""
Vehicle selection for a delivery run.

Vehicles are scored on how well the load fits (weight or volume, whichever is
tighter) and how close they are to the start of the run. Any vehicle whose
load would exceed capacity is discarded; if nothing is left the caller gets
NoViableVehicleError, since there is no safe default vehicle.
"""

import logging
import math
from typing import Any, List, Sequence

from pydantic import ValidationError

from .exceptions import InvalidInputError, NoViableVehicleError
from .geo import ensure_coordinate, haversine_km
from .models import AssignmentResult, Coordinate, DeliveryItem, VehicleCandidate, VehicleScore

logger = logging.getLogger(__name__)

INFEASIBLE_SCORE = -1.0
PROXIMITY_RANGE_KM = 50.0 # Location score reaches its floor at this distance
MIN_LOCATION_SCORE = 0.1
UTILIZATION_WEIGHT = 0.7
LOCATION_WEIGHT = 0.3
MAX_ALTERNATIVES = 3


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def utilization_score(utilization: float) -> float:
    """
    Rewards loads in the 50-90% band and penalizes near-full vehicles.

    Below 50% the score equals the utilization, 50-90% maps onto 0.8-1.0 and
    above 90% it falls by 2 points per unit of utilization.
    """
    if utilization < 0.5:
        return utilization
    if utilization < 0.9:
        return 0.8 + (utilization - 0.5) * 0.5
    return 1 - (utilization - 0.9) * 2


def location_score(vehicle: VehicleCandidate, start_location: Coordinate) -> float:
    if vehicle.current_location is None:
        return 1.0
    distance = haversine_km(vehicle.current_location, start_location)
    return max(MIN_LOCATION_SCORE, 1 - distance / PROXIMITY_RANGE_KM)


class VehicleAssigner:
    """Ranks candidate vehicles for a delivery by capacity fit and proximity."""

    def score_vehicle(
        self,
        vehicle: VehicleCandidate,
        total_weight: float,
        total_volume: float,
        start_location: Coordinate,
    ) -> VehicleScore:
        weight_utilization = total_weight / vehicle.max_weight
        volume_utilization = total_volume / vehicle.max_volume
        utilization = max(weight_utilization, volume_utilization)

        if utilization > 1:
            return VehicleScore(vehicle=vehicle, score=INFEASIBLE_SCORE, utilization=utilization,
                                reasoning="Exceeds capacity")

        final_score = (utilization_score(utilization) * UTILIZATION_WEIGHT
                       + location_score(vehicle, start_location) * LOCATION_WEIGHT)
        location_label = "good" if vehicle.current_location else "unknown"
        return VehicleScore(
            vehicle=vehicle,
            score=final_score,
            utilization=utilization,
            reasoning=f"{_round_half_up(utilization * 100)}% capacity utilization, {location_label} location",
        )

    def suggest_assignment(
        self,
        items: Sequence[Any],
        vehicles: Sequence[Any],
        start_location: Any,
    ) -> AssignmentResult:
        """
        Picks the best vehicle for the items and up to three alternatives.

        Args:
            items: DeliveryItem objects or mappings with weight, volume, quantity.
            vehicles: VehicleCandidate objects or equivalent mappings.
            start_location: Where the run begins.

        Returns:
            AssignmentResult with the highest-scoring viable vehicle.

        Raises:
            InvalidInputError: If an item, vehicle or the start location is malformed.
            NoViableVehicleError: If the list is empty or every vehicle is over capacity.
        """
        start_location = ensure_coordinate(start_location, "start location")
        items = [self._coerce(DeliveryItem, item, "delivery item") for item in items]
        vehicles = [self._coerce(VehicleCandidate, vehicle, "vehicle") for vehicle in vehicles]

        total_weight = sum(item.weight * item.quantity for item in items)
        total_volume = sum(item.volume * item.quantity for item in items)

        scores = [self.score_vehicle(v, total_weight, total_volume, start_location) for v in vehicles]
        for vs in scores:
            logger.debug("Vehicle %s (%s): score=%.3f, %s", vs.vehicle.id, vs.vehicle.registration, vs.score, vs.reasoning)

        viable: List[VehicleScore] = sorted((vs for vs in scores if vs.is_viable), key=lambda vs: vs.score, reverse=True)
        if not viable:
            raise NoViableVehicleError()

        recommended = viable[0]
        percent = _round_half_up(recommended.utilization * 100)
        logger.info("Recommended vehicle %s at %d%% utilization", recommended.vehicle.registration, percent)

        return AssignmentResult(
            recommended_vehicle=recommended.vehicle,
            utilization_percent=percent,
            alternatives=[vs.vehicle for vs in viable[1:1 + MAX_ALTERNATIVES]],
            reasoning=(f"Best option: {recommended.reasoning}. "
                       f"Distance optimized route with {percent}% capacity utilization."),
        )

    @staticmethod
    def _coerce(model, value, label):
        if isinstance(value, model):
            return value
        try:
            return model(**value)
        except (ValidationError, TypeError) as exc:
            raise InvalidInputError(f"Invalid {label}: {exc}") from exc

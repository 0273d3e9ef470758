import logging
from datetime import datetime, timedelta
from typing import Any, Optional

from .exceptions import InvalidInputError, ProviderUnavailableError
from .geo import ensure_coordinate
from .models import Confidence, DepartureRecommendation, EstimateSource, TravelEstimate
from .providers import DistanceProvider, HaversineEstimator

logger = logging.getLogger(__name__)

DEFAULT_BUFFER_MINUTES = 10.0


def confidence_for(estimate: TravelEstimate) -> Confidence:
    """
    HIGH when the provider supplied a traffic-aware duration, MEDIUM for a
    provider estimate without traffic data, LOW for the local estimator.
    """
    if estimate.source == EstimateSource.LOCAL_ESTIMATE:
        return Confidence.LOW
    if estimate.traffic_duration_minutes is not None:
        return Confidence.HIGH
    return Confidence.MEDIUM


class DepartureTimeCalculator:
    """Works back from a target arrival time to when the driver should leave."""

    def __init__(self, provider: DistanceProvider, fallback: Optional[HaversineEstimator] = None):
        self.provider = provider
        self.fallback = fallback or HaversineEstimator()

    def recommend_departure(
        self,
        origin: Any,
        destination: Any,
        target_arrival: datetime,
        buffer_minutes: float = DEFAULT_BUFFER_MINUTES,
    ) -> DepartureRecommendation:
        """
        Computes the latest departure that still arrives by `target_arrival`.

        departure = target_arrival - (travel time + buffer), where travel time
        is the traffic-adjusted duration when known. Best effort: if the
        provider cannot answer, the local estimate is used and the result is
        marked LOW confidence.

        Raises:
            InvalidInputError: On invalid coordinates or a negative buffer.
        """
        origin = ensure_coordinate(origin, "origin")
        destination = ensure_coordinate(destination, "destination")
        if buffer_minutes < 0:
            raise InvalidInputError("buffer_minutes must not be negative.")

        try:
            estimate = self.provider.get_distance_and_duration(origin, destination)
        except ProviderUnavailableError as exc:
            logger.warning("Travel estimate unavailable, using local estimate for departure time: %s", exc)
            estimate = self.fallback.get_distance_and_duration(origin, destination)

        travel_minutes = (estimate.traffic_duration_minutes
                          if estimate.traffic_duration_minutes is not None
                          else estimate.duration_minutes)
        departure_time = target_arrival - timedelta(minutes=travel_minutes + buffer_minutes)

        return DepartureRecommendation(
            departure_time=departure_time,
            estimated_travel_minutes=travel_minutes,
            buffer_minutes=buffer_minutes,
            confidence=confidence_for(estimate),
            source=estimate.source,
        )

from datetime import datetime, timedelta
from typing import List

from .exceptions import InvalidInputError
from .models import DeliveryTimeSlot, OptimizedRoute

DEFAULT_BUFFER_MINUTES = 15.0
DEFAULT_UNLOADING_MINUTES = 30


def build_delivery_schedule(
    route: OptimizedRoute,
    start_time: datetime,
    buffer_minutes: float = DEFAULT_BUFFER_MINUTES,
    default_unloading_minutes: int = DEFAULT_UNLOADING_MINUTES,
) -> List[DeliveryTimeSlot]:
    """
    Turns an ordered route into wall-clock times for a single vehicle.

    Walks the legs in order with a running clock. Each slot departs at the
    clock, arrives after the leg's travel time (traffic-adjusted when known),
    unloads for the waypoint's unloading time and, except for the last leg,
    leaves again after `buffer_minutes`.

    Args:
        route: Route whose legs are already in visiting order.
        start_time: Departure from the depot.
        buffer_minutes: Gap between finishing unloading and the next departure.
        default_unloading_minutes: Used for legs without a waypoint unloading
            time (e.g. the return leg of a round trip).

    Returns:
        One DeliveryTimeSlot per leg. An empty route gives an empty schedule.

    Raises:
        InvalidInputError: If buffer_minutes is negative.
    """
    if buffer_minutes < 0:
        raise InvalidInputError("buffer_minutes must not be negative.")

    schedule: List[DeliveryTimeSlot] = []
    current_time = start_time
    last_index = len(route.legs) - 1

    for i, leg in enumerate(route.legs):
        travel_minutes = leg.traffic_duration_minutes if leg.traffic_duration_minutes is not None else leg.duration_minutes
        arrival_time = current_time + timedelta(minutes=travel_minutes)

        unloading_minutes = None
        if i < len(route.waypoints):
            unloading_minutes = route.waypoints[i].unloading_time_minutes
        if unloading_minutes is None:
            unloading_minutes = default_unloading_minutes
        unloading_end_time = arrival_time + timedelta(minutes=unloading_minutes)

        next_departure_time = None
        if i < last_index:
            next_departure_time = unloading_end_time + timedelta(minutes=buffer_minutes)

        schedule.append(DeliveryTimeSlot(
            departure_time=current_time,
            arrival_time=arrival_time,
            unloading_end_time=unloading_end_time,
            next_departure_time=next_departure_time,
        ))

        if next_departure_time is not None:
            current_time = next_departure_time

    return schedule

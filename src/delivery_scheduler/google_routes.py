"""
Google Routes and Geocoding API client.

Builds request bodies, performs the HTTP calls and converts responses into
internal models. Every transport or payload problem is reported as
ProviderUnavailableError; deciding what to do about it is left to the
provider adapter in `providers.py`.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence

import httpx

from .config import RoutingConfig
from .exceptions import ProviderUnavailableError
from .models import (
    Coordinate, DeliveryStop, EstimateSource, OptimizedRoute, RouteLeg,
    TravelEstimate, Waypoint
)

logger = logging.getLogger(__name__)

OPTIMIZE_FIELD_MASK = (
    "routes.duration,routes.distanceMeters,"
    "routes.optimizedIntermediateWaypointIndex,routes.legs"
)
PAIR_FIELD_MASK = (
    "routes.duration,routes.distanceMeters,"
    "routes.legs.duration,routes.legs.staticDuration"
)


# --- Payload helpers ---

def parse_duration_minutes(value: Any) -> float:
    """
    Converts a Routes API duration into minutes.

    The API encodes durations as strings of seconds with an "s" suffix
    (e.g. "1234s" or "12.5s"). Plain numbers are taken as seconds.

    Raises:
        ProviderUnavailableError: If the value cannot be parsed.
    """
    if isinstance(value, bool):
        raise ProviderUnavailableError(f"Unparseable duration: {value!r}")
    if isinstance(value, (int, float)):
        seconds = float(value)
    elif isinstance(value, str):
        text = value.strip()
        if text.endswith("s"):
            text = text[:-1]
        try:
            seconds = float(text)
        except ValueError as exc:
            raise ProviderUnavailableError(f"Unparseable duration: {value!r}") from exc
    else:
        raise ProviderUnavailableError(f"Unparseable duration: {value!r}")
    if seconds < 0:
        raise ProviderUnavailableError(f"Negative duration: {value!r}")
    return seconds / 60.0


def _location(coord: Coordinate) -> Dict[str, Any]:
    return {"location": {"latLng": {"latitude": coord.lat, "longitude": coord.lng}}}


def _reference_time(now: Optional[datetime] = None) -> str:
    now = now or datetime.now(timezone.utc)
    return now.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def build_optimize_request(
    origin: Coordinate,
    stops: Sequence[DeliveryStop],
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """Round-trip request from the depot through every stop, letting the API pick the order."""
    intermediates = []
    for stop in stops:
        waypoint = _location(stop.location)
        waypoint["via"] = False # Real stops, not pass-through points
        waypoint["vehicleStopover"] = True
        intermediates.append(waypoint)

    return {
        "origin": _location(origin),
        "destination": _location(origin),
        "intermediates": intermediates,
        "travelMode": "DRIVE",
        "routingPreference": "TRAFFIC_AWARE",
        "optimizeWaypointOrder": True,
        "units": "METRIC",
        "requestedReferenceTime": _reference_time(now),
        "computeAlternativeRoutes": False,
    }


def build_pair_request(
    origin: Coordinate,
    destination: Coordinate,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    return {
        "origin": _location(origin),
        "destination": _location(destination),
        "travelMode": "DRIVE",
        "routingPreference": "TRAFFIC_AWARE",
        "requestedReferenceTime": _reference_time(now),
    }


def _first_route(data: Any) -> Dict[str, Any]:
    if not isinstance(data, dict):
        raise ProviderUnavailableError("Routes API returned a non-object payload")
    routes = data.get("routes") or []
    if not routes:
        raise ProviderUnavailableError("No routes found in Routes API response")
    route = routes[0]
    if not isinstance(route, dict):
        raise ProviderUnavailableError("Malformed route entry in Routes API response")
    return route


def _leg_durations(leg: Dict[str, Any]) -> tuple:
    """
    Returns (duration_minutes, traffic_duration_minutes) for a leg.

    With TRAFFIC_AWARE routing `duration` includes current traffic and
    `staticDuration` does not. Without a static figure there is nothing to
    compare against, so the leg carries no traffic duration.
    """
    if "duration" not in leg:
        raise ProviderUnavailableError("Route leg is missing its duration")
    live = parse_duration_minutes(leg["duration"])
    if leg.get("staticDuration") is not None:
        return parse_duration_minutes(leg["staticDuration"]), live
    return live, None


def parse_optimized_route(
    data: Any,
    origin: Coordinate,
    stops: Sequence[DeliveryStop],
) -> OptimizedRoute:
    """
    Converts a round-trip computeRoutes response into an OptimizedRoute.

    Waypoints and leg endpoints are rebuilt from the caller's own coordinates
    in the visiting order returned by the API, so legs stay contiguous and
    keep their addresses.

    Raises:
        ProviderUnavailableError: On an empty or malformed response.
    """
    route = _first_route(data)
    n = len(stops)

    order = route.get("optimizedIntermediateWaypointIndex") or list(range(n))
    try:
        order = [int(i) for i in order]
    except (TypeError, ValueError) as exc:
        raise ProviderUnavailableError(f"Malformed waypoint order: {order!r}") from exc
    if sorted(order) != list(range(n)):
        raise ProviderUnavailableError(f"Waypoint order {order} is not a permutation of {n} stops")

    raw_legs = route.get("legs") or []
    if len(raw_legs) != n + 1:
        raise ProviderUnavailableError(
            f"Expected {n + 1} legs for a round trip through {n} stops, got {len(raw_legs)}"
        )

    points = [origin] + [stops[i].location for i in order] + [origin]
    legs: List[RouteLeg] = []
    try:
        for i, raw_leg in enumerate(raw_legs):
            duration, traffic = _leg_durations(raw_leg)
            legs.append(RouteLeg(
                start_location=points[i],
                end_location=points[i + 1],
                distance_km=float(raw_leg.get("distanceMeters", 0)) / 1000.0,
                duration_minutes=duration,
                traffic_duration_minutes=traffic,
            ))
    except (AttributeError, TypeError, ValueError) as exc:
        raise ProviderUnavailableError(f"Malformed route leg: {exc}") from exc

    waypoints = [
        Waypoint(location=stops[i].location, stopover=True, unloading_time_minutes=stops[i].unloading_time_minutes)
        for i in order
    ]

    return OptimizedRoute(
        waypoints=waypoints,
        total_distance_km=sum(leg.distance_km for leg in legs),
        total_duration_minutes=sum(leg.duration_minutes for leg in legs),
        legs=legs,
        order=order,
        return_to_origin=True,
        source=EstimateSource.PROVIDER,
    )


def parse_travel_estimate(data: Any) -> TravelEstimate:
    """
    Converts a two-point computeRoutes response into a TravelEstimate.

    The first leg's `duration` is the traffic-aware figure. The plain
    duration is the leg's `staticDuration` when present, else the route's
    `duration`.

    Raises:
        ProviderUnavailableError: On an empty or malformed response.
    """
    route = _first_route(data)
    if "duration" not in route:
        raise ProviderUnavailableError("Route is missing its duration")

    legs = route.get("legs") or []
    first_leg = legs[0] if isinstance(legs, list) and legs and isinstance(legs[0], dict) else {}

    duration = parse_duration_minutes(route["duration"])
    if first_leg.get("staticDuration") is not None:
        duration = parse_duration_minutes(first_leg["staticDuration"])
    traffic = None
    if first_leg.get("duration") is not None:
        traffic = parse_duration_minutes(first_leg["duration"])

    try:
        return TravelEstimate(
            distance_km=float(route.get("distanceMeters", 0)) / 1000.0,
            duration_minutes=duration,
            traffic_duration_minutes=traffic,
            source=EstimateSource.PROVIDER,
        )
    except (TypeError, ValueError) as exc:
        raise ProviderUnavailableError(f"Malformed route estimate: {exc}") from exc


# --- HTTP client ---

class GoogleRoutesClient:
    """
    Thin synchronous client for computeRoutes and the Geocoding API.

    Each call opens its own httpx.Client so the connection is released on
    every exit path. There are no retries; a timeout is reported like any
    other failure.
    """

    def __init__(self, config: RoutingConfig, transport: Optional[httpx.BaseTransport] = None):
        if not config.google_maps_api_key:
            raise ValueError("GoogleRoutesClient requires google_maps_api_key to be configured.")
        self.api_key = config.google_maps_api_key
        self.routes_url = config.routes_base_url
        self.geocode_url = config.geocode_base_url
        self.region = config.geocode_region
        self.timeout = httpx.Timeout(config.request_timeout_seconds, connect=config.connect_timeout_seconds)
        self._transport = transport

    def _client(self) -> httpx.Client:
        return httpx.Client(timeout=self.timeout, transport=self._transport)

    def compute_routes(self, body: Dict[str, Any], field_mask: str) -> Dict[str, Any]:
        """POSTs a computeRoutes request and returns the decoded JSON body."""
        headers = {
            "Content-Type": "application/json",
            "X-Goog-Api-Key": self.api_key,
            "X-Goog-FieldMask": field_mask,
        }
        try:
            with self._client() as client:
                response = client.post(self.routes_url, json=body, headers=headers)
                response.raise_for_status()
                return response.json()
        except httpx.HTTPStatusError as exc:
            raise ProviderUnavailableError(
                f"Routes API returned {exc.response.status_code}: {exc.response.text[:200]}"
            ) from exc
        except httpx.HTTPError as exc:
            raise ProviderUnavailableError(f"Routes API request failed: {exc}") from exc
        except ValueError as exc: # Body was not JSON
            raise ProviderUnavailableError(f"Routes API returned invalid JSON: {exc}") from exc

    def optimized_route(self, origin: Coordinate, stops: Sequence[DeliveryStop]) -> OptimizedRoute:
        data = self.compute_routes(build_optimize_request(origin, stops), OPTIMIZE_FIELD_MASK)
        return parse_optimized_route(data, origin, stops)

    def travel_estimate(self, origin: Coordinate, destination: Coordinate) -> TravelEstimate:
        data = self.compute_routes(build_pair_request(origin, destination), PAIR_FIELD_MASK)
        return parse_travel_estimate(data)

    def geocode(self, address: str) -> Optional[Coordinate]:
        """
        Resolves free text to the best-matching coordinate.

        Returns None when the address is not found. Transport failures raise
        ProviderUnavailableError.
        """
        params = {"address": address, "key": self.api_key, "region": self.region}
        try:
            with self._client() as client:
                response = client.get(self.geocode_url, params=params)
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPError as exc:
            raise ProviderUnavailableError(f"Geocoding request failed: {exc}") from exc
        except ValueError as exc:
            raise ProviderUnavailableError(f"Geocoding returned invalid JSON: {exc}") from exc

        if not isinstance(data, dict):
            raise ProviderUnavailableError("Geocoding returned a non-object payload")
        results = data.get("results") or []
        if data.get("status") != "OK" or not results:
            logger.debug("Geocoding found no match for %r (status=%s)", address, data.get("status"))
            return None

        try:
            location = results[0]["geometry"]["location"]
            return Coordinate(
                lat=location["lat"],
                lng=location["lng"],
                address=results[0].get("formatted_address", address),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise ProviderUnavailableError(f"Malformed geocoding result: {exc}") from exc

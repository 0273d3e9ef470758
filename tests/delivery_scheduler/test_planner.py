"""End-to-end planning tests through DeliveryPlanner."""

import json
from datetime import datetime, timedelta, timezone

import httpx
import pytest

from delivery_scheduler import create_planner
from delivery_scheduler.config import RoutingConfig
from delivery_scheduler.models import Confidence, DeliveryItem, EstimateSource, VehicleCandidate
from delivery_scheduler.providers import DEV_BASE_LAT, DEV_BASE_LNG, ExternalMappingProvider, HaversineEstimator

START = datetime(2024, 5, 20, 6, 30, tzinfo=timezone.utc)

# --- Test Data ---

@pytest.fixture
def fleet(sydney_locations):
    return [
        VehicleCandidate(id="1", registration="TRK-001", type="TRUCK", max_weight=8000, max_volume=40,
                         current_location=sydney_locations['parramatta']),
        VehicleCandidate(id="2", registration="VAN-002", type="VAN", max_weight=1200, max_volume=8,
                         current_location=sydney_locations['depot']),
        VehicleCandidate(id="3", registration="UTE-003", type="UTE", max_weight=700, max_volume=3),
    ]

def google_handler(request: httpx.Request) -> httpx.Response:
    """Fake Routes and Geocoding endpoints: every leg is 5 km, 10 min static, 12 min with traffic."""
    if request.url.host == "maps.googleapis.com":
        return httpx.Response(200, json={
            "status": "OK",
            "results": [{
                "formatted_address": "1 George St, Sydney NSW 2000, Australia",
                "geometry": {"location": {"lat": -33.861, "lng": 151.208}},
            }],
        })

    body = json.loads(request.content)
    leg = {"distanceMeters": 5000, "duration": "720s", "staticDuration": "600s"}
    if "intermediates" in body:
        n = len(body["intermediates"])
        return httpx.Response(200, json={"routes": [{
            "distanceMeters": 5000 * (n + 1),
            "duration": f"{720 * (n + 1)}s",
            "optimizedIntermediateWaypointIndex": list(reversed(range(n))),
            "legs": [dict(leg) for _ in range(n + 1)],
        }]})
    return httpx.Response(200, json={"routes": [{"distanceMeters": 5000, "duration": "720s", "legs": [leg]}]})

# --- Tests ---

def test_planning_without_mapping_provider(sydney_locations, sydney_stops, fleet):
    planner = create_planner(RoutingConfig())
    assert isinstance(planner.provider, HaversineEstimator)

    route = planner.optimize_route(sydney_locations['depot'], sydney_stops, "VAN")
    assert sorted(route.order) == [0, 1, 2, 3]
    assert route.is_estimated
    assert route.warnings

    schedule = planner.build_delivery_schedule(route, START)
    assert len(schedule) == 4
    first = schedule[0]
    assert first.next_departure_time == first.unloading_end_time + timedelta(minutes=15)

    assignment = planner.suggest_vehicle_assignment(
        [DeliveryItem(weight=150, volume=1.2, quantity=4)], fleet, sydney_locations['depot'])
    assert assignment.recommended_vehicle.registration == "VAN-002"
    assert assignment.utilization_percent == 60
    assert [v.registration for v in assignment.alternatives] == ["TRK-001"]

    target = START + timedelta(hours=2)
    departure = planner.recommend_departure_time(sydney_locations['depot'], sydney_locations['bondi'], target)
    assert departure.confidence == Confidence.LOW
    assert departure.buffer_minutes == 10
    assert departure.departure_time < target

def test_geocode_without_provider_is_stable():
    planner = create_planner()
    first = planner.geocode_address("12 Pitt St, Sydney")
    again = planner.geocode_address("  12 Pitt St, Sydney ")

    assert first == again
    assert abs(first.lat - DEV_BASE_LAT) < 0.2
    assert abs(first.lng - DEV_BASE_LNG) < 0.2
    assert planner.geocode_address("   ") is None

def test_planning_with_mapping_provider(sydney_locations, sydney_stops):
    config = RoutingConfig(google_maps_api_key="test-key", default_schedule_buffer_minutes=5)
    planner = create_planner(config, transport=httpx.MockTransport(google_handler))
    assert isinstance(planner.provider, ExternalMappingProvider)

    route = planner.optimize_route(sydney_locations['depot'], sydney_stops)
    assert route.source == EstimateSource.PROVIDER
    assert route.order == [3, 2, 1, 0]
    assert route.return_to_origin
    assert len(route.legs) == 5
    assert route.total_distance_km == pytest.approx(25.0)
    assert route.total_duration_minutes == pytest.approx(50.0)
    assert route.waypoints[0].unloading_time_minutes == 25

    schedule = planner.build_delivery_schedule(route, START)
    assert schedule[0].arrival_time == START + timedelta(minutes=12)
    assert schedule[0].unloading_end_time == START + timedelta(minutes=37)
    assert schedule[1].departure_time == START + timedelta(minutes=42)

    target = START + timedelta(hours=1)
    departure = planner.recommend_departure_time(sydney_locations['depot'], sydney_locations['bondi'], target)
    assert departure.confidence == Confidence.HIGH
    assert departure.estimated_travel_minutes == pytest.approx(12.0)
    assert departure.departure_time == target - timedelta(minutes=22)

    place = planner.geocode_address("1 George St")
    assert place.address.startswith("1 George St")
    assert place.lat == pytest.approx(-33.861)

def test_provider_outage_still_produces_a_plan(sydney_locations, sydney_stops):
    def handler(request):
        return httpx.Response(503, text="backend unavailable")

    planner = create_planner(RoutingConfig(google_maps_api_key="test-key"), transport=httpx.MockTransport(handler))

    route = planner.optimize_route(sydney_locations['depot'], sydney_stops)
    assert route.source == EstimateSource.LOCAL_ESTIMATE
    assert any("unavailable" in w for w in route.warnings)

    departure = planner.recommend_departure_time(
        sydney_locations['depot'], sydney_locations['bondi'], START + timedelta(hours=1))
    assert departure.confidence == Confidence.LOW
    assert planner.geocode_address("1 George St") is None

from delivery_scheduler.assignment import VehicleAssigner
from delivery_scheduler.config import RoutingConfig
from delivery_scheduler.departure import DepartureTimeCalculator
from delivery_scheduler.exceptions import (
    DeliverySchedulerError, InvalidInputError, NoViableVehicleError, ProviderUnavailableError
)
from delivery_scheduler.models import (
    AssignmentResult, Confidence, Coordinate, DeliveryItem, DeliveryStop, DeliveryTimeSlot,
    DepartureRecommendation, EstimateSource, LocalOrdering, OptimizedRoute, RouteLeg,
    TimeWindow, TravelEstimate, VehicleCandidate, VehicleType, Waypoint
)
from delivery_scheduler.planner import DeliveryPlanner, create_planner
from delivery_scheduler.providers import (
    DistanceProvider, ExternalMappingProvider, HaversineEstimator, create_distance_provider
)
from delivery_scheduler.routing import RouteOptimizer
from delivery_scheduler.scheduling import build_delivery_schedule

__all__ = [
    'AssignmentResult',
    'Confidence',
    'Coordinate',
    'DeliveryItem',
    'DeliveryPlanner',
    'DeliverySchedulerError',
    'DeliveryStop',
    'DeliveryTimeSlot',
    'DepartureRecommendation',
    'DepartureTimeCalculator',
    'DistanceProvider',
    'EstimateSource',
    'ExternalMappingProvider',
    'HaversineEstimator',
    'InvalidInputError',
    'LocalOrdering',
    'NoViableVehicleError',
    'OptimizedRoute',
    'ProviderUnavailableError',
    'RouteLeg',
    'RouteOptimizer',
    'RoutingConfig',
    'TimeWindow',
    'TravelEstimate',
    'VehicleAssigner',
    'VehicleCandidate',
    'VehicleType',
    'Waypoint',
    'build_delivery_schedule',
    'create_distance_provider',
    'create_planner',
]

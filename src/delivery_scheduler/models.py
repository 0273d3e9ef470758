import math
from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, validator


# --- Enums ---

class VehicleType(str, Enum):
    TRUCK = 'TRUCK'
    VAN = 'VAN'
    UTE = 'UTE'

class Confidence(str, Enum):
    HIGH = 'HIGH'
    MEDIUM = 'MEDIUM'
    LOW = 'LOW'

class EstimateSource(str, Enum):
    """Where a distance/duration figure came from."""
    PROVIDER = 'provider'
    LOCAL_ESTIMATE = 'local_estimate'

class LocalOrdering(str, Enum):
    """Stop ordering used when no mapping provider answers."""
    NEAREST_FROM_ORIGIN = 'nearest_from_origin'
    ORTOOLS_TOUR = 'ortools_tour'


# --- Core Models ---

class Coordinate(BaseModel):
    """A latitude/longitude point, optionally carrying a formatted address."""
    lat: float
    lng: float
    address: Optional[str] = None

    class Config:
        frozen = True

    @validator('lat')
    def check_lat(cls, v):
        if not math.isfinite(v) or not -90.0 <= v <= 90.0:
            raise ValueError(f"latitude must be a finite value in [-90, 90], got {v}")
        return v

    @validator('lng')
    def check_lng(cls, v):
        if not math.isfinite(v) or not -180.0 <= v <= 180.0:
            raise ValueError(f"longitude must be a finite value in [-180, 180], got {v}")
        return v

class TimeWindow(BaseModel):
    start: datetime
    end: datetime

    class Config:
        frozen = True

    @validator('end')
    def end_after_start(cls, v, values):
        start = values.get('start')
        if start is not None and v < start:
            raise ValueError("time window end must not be before its start")
        return v

class DeliveryStop(BaseModel):
    """A single delivery location supplied by the caller for one optimization request."""
    location: Coordinate
    time_window: Optional[TimeWindow] = None
    unloading_time_minutes: int = Field(default=30, ge=0)
    priority: Optional[int] = None

    class Config:
        frozen = True

class Waypoint(BaseModel):
    """A stop as it appears inside an optimized route."""
    location: Coordinate
    stopover: bool = True
    unloading_time_minutes: Optional[int] = Field(default=None, ge=0)

    class Config:
        frozen = True

class RouteLeg(BaseModel):
    """Travel segment between two consecutive points of a route."""
    start_location: Coordinate
    end_location: Coordinate
    distance_km: float = Field(ge=0)
    duration_minutes: float = Field(ge=0)
    traffic_duration_minutes: Optional[float] = Field(default=None, ge=0)

    class Config:
        frozen = True

class OptimizedRoute(BaseModel):
    """
    Visiting order and per-leg metrics for a set of stops.

    `order` is a permutation of the input stop indices. `waypoints` follow
    that order. `legs` hold one entry per stop plus the return leg when
    `return_to_origin` is set. Totals are the sums over `legs`.
    """
    waypoints: List[Waypoint]
    total_distance_km: float = Field(ge=0)
    total_duration_minutes: float = Field(ge=0)
    legs: List[RouteLeg]
    order: List[int]
    return_to_origin: bool = False
    source: EstimateSource = EstimateSource.LOCAL_ESTIMATE
    warnings: List[str] = Field(default_factory=list)

    class Config:
        frozen = True

    @property
    def is_estimated(self) -> bool:
        """True when the route was built by the local estimator rather than the provider."""
        return self.source == EstimateSource.LOCAL_ESTIMATE

class TravelEstimate(BaseModel):
    """Distance and duration between two points."""
    distance_km: float = Field(ge=0)
    duration_minutes: float = Field(ge=0)
    traffic_duration_minutes: Optional[float] = Field(default=None, ge=0)
    source: EstimateSource

    class Config:
        frozen = True

class DeliveryTimeSlot(BaseModel):
    departure_time: datetime
    arrival_time: datetime
    unloading_end_time: datetime
    next_departure_time: Optional[datetime] = None # None for the final stop

    class Config:
        frozen = True


# --- Vehicle Assignment Models ---

class DeliveryItem(BaseModel):
    weight: float = Field(ge=0)
    volume: float = Field(ge=0)
    quantity: float = Field(default=1, ge=0)

    class Config:
        frozen = True

class VehicleCandidate(BaseModel):
    """A vehicle that could be assigned to a delivery run."""
    id: str
    registration: str
    type: str
    max_weight: float = Field(gt=0)
    max_volume: float = Field(gt=0)
    current_location: Optional[Coordinate] = None

    class Config:
        frozen = True

class VehicleScore(BaseModel):
    """Internal ranking record. A score of -1 marks a vehicle that exceeds capacity."""
    vehicle: VehicleCandidate
    score: float
    utilization: float
    reasoning: str

    class Config:
        frozen = True

    @property
    def is_viable(self) -> bool:
        return self.score >= 0

class AssignmentResult(BaseModel):
    recommended_vehicle: VehicleCandidate
    utilization_percent: int = Field(ge=0, le=100)
    alternatives: List[VehicleCandidate] = Field(default_factory=list, max_length=3)
    reasoning: str

    class Config:
        frozen = True


# --- Departure Models ---

class DepartureRecommendation(BaseModel):
    departure_time: datetime
    estimated_travel_minutes: float = Field(ge=0)
    buffer_minutes: float
    confidence: Confidence
    source: EstimateSource

    class Config:
        frozen = True

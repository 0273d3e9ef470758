import os
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field

from .models import LocalOrdering

DEFAULT_ROUTES_URL = "https://routes.googleapis.com/directions/v2:computeRoutes"
DEFAULT_GEOCODE_URL = "https://maps.googleapis.com/maps/api/geocode/json"

ENV_PREFIX = "DELIVERY_SCHEDULER_"


class RoutingConfig(BaseModel):
    """
    Process-wide settings for route planning.

    Built once at startup (usually with `from_env`) and passed to
    `create_planner`. Nothing in the package reads the environment on its own.
    """
    google_maps_api_key: Optional[str] = None
    routes_base_url: str = DEFAULT_ROUTES_URL
    geocode_base_url: str = DEFAULT_GEOCODE_URL
    geocode_region: str = "au" # Bias geocoding towards Australian addresses
    request_timeout_seconds: float = Field(default=10.0, gt=0)
    connect_timeout_seconds: float = Field(default=5.0, gt=0)
    default_schedule_buffer_minutes: float = Field(default=15.0, ge=0)
    default_departure_buffer_minutes: float = Field(default=10.0, ge=0)
    default_unloading_minutes: int = Field(default=30, ge=0)
    local_ordering: LocalOrdering = LocalOrdering.NEAREST_FROM_ORIGIN

    class Config:
        frozen = True

    @property
    def has_mapping_provider(self) -> bool:
        return bool(self.google_maps_api_key)

    @classmethod
    def from_env(cls, dotenv_path: Optional[str] = None) -> "RoutingConfig":
        """
        Builds a config from environment variables, loading a .env file first.

        Reads GOOGLE_MAPS_API_KEY plus optional DELIVERY_SCHEDULER_* overrides,
        e.g. DELIVERY_SCHEDULER_REQUEST_TIMEOUT_SECONDS=3.
        """
        load_dotenv(dotenv_path)
        values = {}
        api_key = os.getenv("GOOGLE_MAPS_API_KEY")
        if api_key:
            values["google_maps_api_key"] = api_key
        for field_name in cls.model_fields:
            raw = os.getenv(ENV_PREFIX + field_name.upper())
            if raw is not None and raw != "":
                values[field_name] = raw
        return cls(**values)

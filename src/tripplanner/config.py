"""Application configuration and settings management."""

from pathlib import Path
from typing import Any, Literal, Optional

import json
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration loaded from environment variables or defaults."""

    model_config = SettingsConfigDict(
        env_prefix="TRIP_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
    )

    app_name: str = "Trip Planner Engine API"
    api_prefix: str = "/api"
    data_root: Path = Field(default=Path("data"), description="Root directory for static data and run outputs.")
    assignments_file: Path = Field(
        default=Path("data/assignments.json"),
        description="Vehicles and their assigned stops, as exported by the dispatch system.",
    )
    osrm_base_url: Optional[str] = Field(
        default="https://router.project-osrm.org",
        description="Base URL for the OSRM routing service (e.g., http://localhost:5000).",
    )
    osrm_profile: Literal["driving", "driving-hgv"] = Field(
        default="driving",
        description="OSRM profile to use when computing travel times.",
    )
    osrm_timeout_seconds: float = Field(default=10.0, gt=0.0)
    traffic_factor: float = Field(
        default=1.5,
        gt=0.0,
        description="Congestion multiplier applied to backend durations when computing ETAs.",
    )
    average_speed_kmh: float = Field(
        default=30.0,
        gt=0.0,
        description="City speed used to estimate durations when only great-circle distances are known.",
    )
    divide_longitude: float = Field(
        default=29.0,
        ge=-180.0,
        le=180.0,
        description="Longitude of the divide that the configured crossings span.",
    )
    local_solver_max_workers: int = Field(default=8, ge=1)
    tour_max_workers: int = Field(default=4, ge=1)
    depot_lat: Optional[float] = Field(default=None, ge=-90.0, le=90.0)
    depot_lng: Optional[float] = Field(default=None, ge=-180.0, le=180.0)
    return_to_depot: bool = Field(
        default=False,
        description="If True, tours planned for a vehicle end at the configured depot.",
    )
    default_origin_lat: float = Field(default=41.0082, ge=-90.0, le=90.0)
    default_origin_lng: float = Field(default=28.9784, ge=-180.0, le=180.0)
    frontend_allowed_origins: tuple[str, ...] = Field(
        default=(
            "http://localhost:3000",
            "http://127.0.0.1:3000",
            "http://localhost:5173",
            "http://127.0.0.1:5173",
        ),
        description="Permitted web origins for browser clients (CORS).",
    )

    @field_validator("data_root", "assignments_file", mode="before")
    @classmethod
    def _expand_path(cls, value: Any) -> Path:
        path_value = value if isinstance(value, Path) else Path(str(value))
        return path_value.expanduser().resolve()

    @field_validator("frontend_allowed_origins", mode="before")
    @classmethod
    def _parse_str_tuple_from_env(cls, value: Any) -> tuple[str, ...]:
        """Parse string tuple from environment variable (comma-separated or JSON array)."""
        if isinstance(value, tuple):
            return value
        if isinstance(value, list):
            return tuple(str(item) for item in value)
        if isinstance(value, str):
            # Try JSON first
            try:
                parsed = json.loads(value)
                if isinstance(parsed, list):
                    return tuple(str(item) for item in parsed)
            except (json.JSONDecodeError, TypeError):
                pass
            if "," in value:
                return tuple(item.strip() for item in value.split(",") if item.strip())
            if value.strip():
                return (value.strip(),)
        return tuple()

    @property
    def depot(self) -> Optional[tuple[float, float]]:
        """Configured base address as (lat, lng), or None when unset."""
        if self.depot_lat is None or self.depot_lng is None:
            return None
        return (self.depot_lat, self.depot_lng)


settings = Settings()

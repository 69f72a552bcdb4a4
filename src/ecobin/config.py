"""Application configuration and settings management."""

from pathlib import Path
from typing import Any, Literal, Optional

import json
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration loaded from environment variables or defaults."""

    model_config = SettingsConfigDict(
        env_prefix="ECOBIN_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
    )

    app_name: str = "EcoBin Dispatch API"
    api_prefix: str = "/api"
    data_root: Path = Field(default=Path("data"), description="Root directory for state snapshots and seed files.")
    dustbin_file: Path = Field(
        default=Path("data/dustbins.xlsx"),
        description="Optional seed workbook with collection points.",
    )

    # OpenRouteService optimization endpoint
    ors_base_url: str = Field(
        default="https://api.openrouteservice.org",
        description="Base URL of the OpenRouteService API (the /optimization path is appended).",
    )
    ors_api_key: Optional[str] = Field(default=None, description="OpenRouteService API key.")
    ors_profile: Literal["driving-car", "driving-hgv"] = Field(
        default="driving-hgv",
        description="Routing profile sent with every vehicle.",
    )
    ors_timeout_seconds: float = Field(default=15.0, gt=0.0)
    ors_max_retries: int = Field(default=1, ge=0)
    ors_backoff_seconds: float = Field(default=0.5, ge=0.0)
    solver_backend: Literal["ors", "local"] = Field(
        default="ors",
        description="'ors' calls OpenRouteService, 'local' sequences stops with OR-Tools offline.",
    )
    solver_time_limit_seconds: int = Field(default=2, ge=1)

    # Dispatch constants
    depot_location: tuple[float, float] = Field(
        default=(75.7871, 26.9124),
        description="Depot coordinate as (longitude, latitude).",
    )
    treatment_plant_location: tuple[float, float] = Field(
        default=(75.9330, 26.9660),
        description="Waste treatment plant coordinate as (longitude, latitude).",
    )
    max_capacity: int = Field(default=1000, ge=1)
    load_per_stop: int = Field(default=100, ge=1)
    max_detour_km: float = Field(default=5.0, ge=0.0)
    service_seconds: int = Field(default=300, ge=0)
    max_parallel_candidates: int = Field(default=1, ge=1)
    priority_fill_threshold: float = Field(default=50.0, ge=0.0, le=100.0)
    batch_fleet_size: int = Field(default=2, ge=1)

    # Live dispatch driver
    live_dispatch_enabled: bool = False
    polling_interval_seconds: float = Field(default=5.0, gt=0.0)
    state_backend: Literal["memory", "file", "supabase"] = "memory"
    state_key: str = Field(default="default", description="Row key used by the Supabase state store.")

    frontend_allowed_origins: tuple[str, ...] = Field(
        default=(
            "http://localhost:3000",
            "http://127.0.0.1:3000",
        ),
        description="Permitted web origins for browser clients (CORS).",
    )

    # Supabase configuration
    supabase_url: Optional[str] = Field(
        default=None,
        description="Supabase project URL (e.g., https://xxx.supabase.co).",
    )
    supabase_key: Optional[str] = Field(
        default=None,
        description="Supabase service role key for backend operations.",
    )

    @field_validator("data_root", "dustbin_file", mode="before")
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

    @field_validator("depot_location", "treatment_plant_location", mode="before")
    @classmethod
    def _parse_coordinate_from_env(cls, value: Any) -> tuple[float, float]:
        """Parse a (lon, lat) pair from a JSON array or a comma-separated string."""
        if isinstance(value, str):
            try:
                parsed = json.loads(value)
            except (json.JSONDecodeError, TypeError):
                parsed = [item.strip() for item in value.split(",") if item.strip()]
            value = parsed
        if isinstance(value, (list, tuple)):
            if len(value) != 2:
                raise ValueError("Coordinates must be a (longitude, latitude) pair.")
            return (float(value[0]), float(value[1]))
        return value


settings = Settings()

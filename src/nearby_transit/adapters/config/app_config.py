"""12-factor configuration adapter using environment variables and TOML config."""

import tomllib
from pathlib import Path
from typing import Any

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from nearby_transit.adapters.tranzy_api.constants import TRANZY_BASE_URL


class AppConfig(BaseSettings):
    """Application configuration following 12-factor principles."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Tranzy API configuration
    agency_id: str = Field(default="2", description="Tranzy agency ID (2 is CTP Cluj)")
    tranzy_api_key: str = Field(default="", description="Tranzy open-data API key")
    tranzy_base_url: str = Field(default=TRANZY_BASE_URL, description="Tranzy API base URL")
    api_timeout_seconds: int = Field(default=10, description="Timeout for API requests in seconds")

    # Rider location
    latitude: float | None = Field(default=None, description="Rider latitude (WGS84)")
    longitude: float | None = Field(default=None, description="Rider longitude (WGS84)")

    refresh_interval_seconds: int = Field(
        default=30, description="Interval between pipeline runs in seconds"
    )

    # Display configuration
    filter_by_favorites: bool = Field(default=False, description="Show favorite routes only")
    max_stations: int = Field(default=2, description="Maximum stations in the output")
    max_vehicles_per_station: int = Field(default=5, description="Vehicle cap per station")
    show_all_vehicles_per_route: bool = Field(
        default=False, description="Show every vehicle instead of the best per route"
    )
    max_search_radius: float = Field(default=5000, description="Search radius in meters")
    max_stations_to_check: int = Field(
        default=20, description="Maximum candidate stations considered"
    )
    proximity_threshold: float = Field(
        default=200, description="Maximum distance in meters between the two shown stations"
    )
    favorite_routes: list[str | dict[str, Any]] = Field(
        default_factory=list,
        description="Favorite route names or {\"routeName\": ...} tables (JSON list in env)",
    )

    # Resilience configuration
    circuit_failure_threshold: int = Field(
        default=5, description="Failures before a circuit breaker opens"
    )
    circuit_success_threshold: int = Field(
        default=3, description="Successes in half-open state before a breaker closes"
    )
    circuit_timeout_seconds: float = Field(
        default=60, description="Seconds an open breaker waits before probing"
    )
    cache_ttl_seconds: float = Field(default=600, description="Fallback cache TTL in seconds")
    performance_budget_ms: float = Field(
        default=1000,
        description="Pipeline response time in ms above which a run is reported as slow",
    )

    # TOML config file path
    config_file: str | None = Field(
        default=None,
        description="Path to TOML configuration file with location, display and favorites",
    )

    # Raw [filtering] table, sanitized by the degradation controller
    filtering: dict[str, Any] = Field(default_factory=dict)

    @field_validator("max_stations", "max_vehicles_per_station", "max_stations_to_check")
    @classmethod
    def validate_positive_int(cls, v: int) -> int:
        """Validate counts are at least 1."""
        if v < 1:
            raise ValueError("must be at least 1")
        return v

    @field_validator("max_search_radius")
    @classmethod
    def validate_radius(cls, v: float) -> float:
        """Validate the search radius is positive."""
        if v <= 0:
            raise ValueError("max_search_radius must be positive")
        return v

    @field_validator("proximity_threshold")
    @classmethod
    def validate_proximity(cls, v: float) -> float:
        """Validate the proximity threshold is not negative."""
        if v < 0:
            raise ValueError("proximity_threshold must not be negative")
        return v

    @field_validator("latitude")
    @classmethod
    def validate_latitude(cls, v: float | None) -> float | None:
        if v is not None and not -90 <= v <= 90:
            raise ValueError("latitude must be within [-90, 90]")
        return v

    @field_validator("longitude")
    @classmethod
    def validate_longitude(cls, v: float | None) -> float | None:
        if v is not None and not -180 <= v <= 180:
            raise ValueError("longitude must be within [-180, 180]")
        return v

    def load_toml(self) -> "AppConfig":
        """Return a copy with values from the TOML config file applied.

        Sections ``[location]``, ``[display]``, ``[filtering]`` and
        ``[resilience]`` override environment values; favorites come from
        ``favorites = [...]`` or ``[[favorites]]`` tables with ``routeName``.

        Raises:
            FileNotFoundError: If ``config_file`` does not exist.
            ValueError: If an overridden value fails validation.
        """
        if not self.config_file:
            return self

        config_path = Path(self.config_file)
        if not config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        with open(config_path, "rb") as f:
            toml_data = tomllib.load(f)

        return self.model_validate({**self.model_dump(), **self._overrides(toml_data)})

    @staticmethod
    def _overrides(toml_data: dict[str, Any]) -> dict[str, Any]:
        overrides: dict[str, Any] = {}

        location = toml_data.get("location", {})
        for key in ("latitude", "longitude", "agency_id"):
            if key in location:
                overrides[key] = location[key]

        display = toml_data.get("display", {})
        for key in (
            "filter_by_favorites",
            "max_stations",
            "max_vehicles_per_station",
            "show_all_vehicles_per_route",
            "max_search_radius",
            "max_stations_to_check",
            "proximity_threshold",
            "refresh_interval_seconds",
        ):
            if key in display:
                overrides[key] = display[key]

        if "favorites" in toml_data:
            favorites = toml_data["favorites"]
            overrides["favorite_routes"] = favorites if isinstance(favorites, list) else []

        if "filtering" in toml_data:
            overrides["filtering"] = dict(toml_data["filtering"])

        resilience = toml_data.get("resilience", {})
        for key in (
            "circuit_failure_threshold",
            "circuit_success_threshold",
            "circuit_timeout_seconds",
            "cache_ttl_seconds",
            "performance_budget_ms",
        ):
            if key in resilience:
                overrides[key] = resilience[key]

        return overrides

"""Builds pipeline settings from the application configuration."""

import logging
from datetime import timedelta

from nearby_transit.adapters.config.app_config import AppConfig
from nearby_transit.domain.models.coordinates import Coordinates
from nearby_transit.domain.models.degradation import CircuitBreakerConfig, DegradationSettings
from nearby_transit.domain.models.display_settings import DisplaySettings
from nearby_transit.domain.models.favorite_route import normalize_favorite_routes

logger = logging.getLogger(__name__)


class SettingsLoader:
    """Translates ``AppConfig`` into the domain settings objects."""

    @staticmethod
    def display_settings(config: AppConfig) -> DisplaySettings:
        return DisplaySettings(
            filter_by_favorites=config.filter_by_favorites,
            max_stations=config.max_stations,
            max_vehicles_per_station=config.max_vehicles_per_station,
            show_all_vehicles_per_route=config.show_all_vehicles_per_route,
            max_search_radius=config.max_search_radius,
            max_stations_to_check=config.max_stations_to_check,
            proximity_threshold=config.proximity_threshold,
        )

    @staticmethod
    def degradation_settings(config: AppConfig) -> DegradationSettings:
        return DegradationSettings(
            cache_ttl=timedelta(seconds=config.cache_ttl_seconds),
            breaker_defaults=CircuitBreakerConfig(
                failure_threshold=config.circuit_failure_threshold,
                success_threshold=config.circuit_success_threshold,
                timeout=timedelta(seconds=config.circuit_timeout_seconds),
            ),
        )

    @staticmethod
    def favorite_routes(config: AppConfig) -> list[str]:
        return normalize_favorite_routes(config.favorite_routes)

    @staticmethod
    def origin(config: AppConfig) -> Coordinates:
        """Rider location from the configuration.

        Raises:
            ValueError: If latitude or longitude is not configured.
        """
        if config.latitude is None or config.longitude is None:
            raise ValueError(
                "Rider location is not configured. Set LATITUDE and LONGITUDE "
                "or a [location] section in the config file."
            )
        return Coordinates(latitude=config.latitude, longitude=config.longitude)

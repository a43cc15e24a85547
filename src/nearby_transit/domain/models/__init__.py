"""Domain models for nearby transit."""

from nearby_transit.domain.models.coordinates import Coordinates
from nearby_transit.domain.models.degradation import (
    CircuitBreakerConfig,
    CircuitBreakerInfo,
    CircuitBreakerState,
    DegradationContext,
    DegradationLevel,
    DegradationSettings,
    FallbackRouteActivity,
    FallbackStrategy,
    FallbackVehicleData,
    PerformanceIssue,
    PerformanceMetrics,
)
from nearby_transit.domain.models.direction import (
    DirectionError,
    DirectionEstimate,
    DirectionOutcome,
    VehicleDirection,
)
from nearby_transit.domain.models.display_settings import DisplaySettings
from nearby_transit.domain.models.favorite_route import (
    FavoriteRoute,
    RouteNameFavorite,
    RouteRefFavorite,
    normalize_favorite_routes,
)
from nearby_transit.domain.models.filtering_config import FilteringConfig
from nearby_transit.domain.models.live_vehicle import LiveVehicle
from nearby_transit.domain.models.matched_vehicle import MatchedVehicle, StopSequenceEntry
from nearby_transit.domain.models.route import Route, RouteActivity, RouteSummary
from nearby_transit.domain.models.station import Station, StationDistance
from nearby_transit.domain.models.station_vehicle_group import StationVehicleGroup
from nearby_transit.domain.models.station_vehicle_result import StationVehicleResult
from nearby_transit.domain.models.trip import StopTime, Trip, TripStop

__all__ = [
    "CircuitBreakerConfig",
    "CircuitBreakerInfo",
    "CircuitBreakerState",
    "Coordinates",
    "DegradationContext",
    "DegradationLevel",
    "DegradationSettings",
    "DirectionError",
    "DirectionEstimate",
    "DirectionOutcome",
    "DisplaySettings",
    "FallbackRouteActivity",
    "FallbackStrategy",
    "FallbackVehicleData",
    "FavoriteRoute",
    "FilteringConfig",
    "LiveVehicle",
    "MatchedVehicle",
    "PerformanceIssue",
    "PerformanceMetrics",
    "Route",
    "RouteActivity",
    "RouteNameFavorite",
    "RouteRefFavorite",
    "RouteSummary",
    "Station",
    "StationDistance",
    "StationVehicleGroup",
    "StationVehicleResult",
    "StopSequenceEntry",
    "StopTime",
    "Trip",
    "TripStop",
    "VehicleDirection",
    "normalize_favorite_routes",
]

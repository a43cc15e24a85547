"""Application services."""

from nearby_transit.application.services.busy_route_filter import BusyRouteFilter
from nearby_transit.application.services.degradation_controller import (
    DegradationController,
    classify_performance,
)
from nearby_transit.application.services.direction_estimator import DirectionEstimator
from nearby_transit.application.services.fallback_cache import InMemoryFallbackCache
from nearby_transit.application.services.geo import calculate_distance
from nearby_transit.application.services.proximity_station_selector import (
    ProximityStationSelector,
)
from nearby_transit.application.services.station_locator import StationLocator
from nearby_transit.application.services.station_vehicle_aggregator import (
    StationVehicleAggregator,
)
from nearby_transit.application.services.station_vehicle_service import StationVehicleService
from nearby_transit.application.services.trip_stop_index import TripStopIndex
from nearby_transit.application.services.vehicle_trip_matcher import TripMatch, VehicleTripMatcher

__all__ = [
    "BusyRouteFilter",
    "DegradationController",
    "DirectionEstimator",
    "InMemoryFallbackCache",
    "ProximityStationSelector",
    "StationLocator",
    "StationVehicleAggregator",
    "StationVehicleService",
    "TripMatch",
    "TripStopIndex",
    "VehicleTripMatcher",
    "calculate_distance",
    "classify_performance",
]

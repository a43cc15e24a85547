"""Station vehicle service: the vehicle-to-station matching pipeline."""

from __future__ import annotations

import logging
import time
from collections.abc import Awaitable, Callable, Iterable, Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, TypeVar

from nearby_transit.application.services.busy_route_filter import BusyRouteFilter
from nearby_transit.application.services.degradation_controller import classify_performance
from nearby_transit.application.services.proximity_station_selector import (
    ProximityStationSelector,
)
from nearby_transit.application.services.station_locator import StationLocator
from nearby_transit.application.services.station_vehicle_aggregator import (
    StationVehicleAggregator,
)
from nearby_transit.application.services.trip_stop_index import TripStopIndex
from nearby_transit.application.services.vehicle_trip_matcher import TripMatch, VehicleTripMatcher
from nearby_transit.domain.errors import (
    CircuitOpenError,
    DataUnavailableError,
    NearbyTransitError,
    PerformanceDegradationError,
)
from nearby_transit.domain.models.coordinates import Coordinates
from nearby_transit.domain.models.degradation import (
    DegradationContext,
    DegradationLevel,
    FallbackStrategy,
    PerformanceIssue,
    PerformanceMetrics,
)
from nearby_transit.domain.models.display_settings import DisplaySettings
from nearby_transit.domain.models.favorite_route import normalize_favorite_routes
from nearby_transit.domain.models.filtering_config import FilteringConfig
from nearby_transit.domain.models.live_vehicle import LiveVehicle
from nearby_transit.domain.models.route import Route, RouteActivity, RouteSummary
from nearby_transit.domain.models.station import Station, StationDistance
from nearby_transit.domain.models.station_vehicle_group import StationVehicleGroup
from nearby_transit.domain.models.station_vehicle_result import StationVehicleResult
from nearby_transit.domain.models.trip import StopTime, Trip
from nearby_transit.domain.ports.degradation_service import DegradationService
from nearby_transit.domain.ports.transit_data_repository import TransitDataRepository

logger = logging.getLogger(__name__)

T = TypeVar("T")

STATION_DATA = "station-data"
VEHICLE_DATA = "vehicle-data"
ROUTE_DATA = "route-data"
TRIP_DATA = "trip-data"
STOP_TIME_DATA = "stop-time-data"
VEHICLE_FILTER = "vehicle-filter"
FETCHED_COMPONENTS = 5


@dataclass
class _RunState:
    """Inputs and degradation notes collected during one run."""

    stations: list[Station] = field(default_factory=list)
    vehicles: list[LiveVehicle] = field(default_factory=list)
    routes: list[Route] = field(default_factory=list)
    trips: list[Trip] = field(default_factory=list)
    stop_times: list[StopTime] = field(default_factory=list)
    route_activity: dict[str, RouteActivity] | None = None
    skip_filtering: bool = False
    failed_fetches: int = 0
    confidence: float = 1.0
    limitations: list[str] = field(default_factory=list)

    def degrade(self, confidence: float, limitations: Iterable[str]) -> None:
        self.confidence = min(self.confidence, confidence)
        for limitation in limitations:
            if limitation not in self.limitations:
                self.limitations.append(limitation)


class StationVehicleService:
    """Finds the nearby stations worth showing and the vehicles heading to them.

    Every run fetches all inputs first, so the computation works on one
    consistent snapshot. Collaborator failures are replaced by the fallbacks
    of the degradation service; nothing raised by a collaborator escapes
    ``get_station_vehicle_groups``.
    """

    def __init__(
        self,
        repository: TransitDataRepository,
        degradation: DegradationService,
        agency_id: str,
        filtering: FilteringConfig | Mapping[str, Any] | None = None,
        *,
        station_locator: StationLocator | None = None,
        matcher: VehicleTripMatcher | None = None,
        aggregator: StationVehicleAggregator | None = None,
        selector: ProximityStationSelector | None = None,
        busy_route_filter: BusyRouteFilter | None = None,
        memory_probe: Callable[[], float] | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """Initialize the service.

        Args:
            repository: Source of stations, vehicles, routes, trips and stop times.
            degradation: Circuit breakers and fallbacks.
            agency_id: Agency to fetch data for.
            filtering: Filtering configuration; mappings are sanitized first.
            station_locator: Finds candidate stations.
            matcher: Matches vehicles to relevant trips.
            aggregator: Ranks vehicles per station.
            selector: Picks the output stations.
            busy_route_filter: Distance filters vehicles of busy routes.
            memory_probe: Returns memory usage as a fraction in [0, 1]; without
                one, memory never counts toward the performance level.
            clock: Source of the current time.
        """
        self._repository = repository
        self._degradation = degradation
        self._agency_id = agency_id
        if filtering is None:
            filtering = FilteringConfig()
        elif not isinstance(filtering, FilteringConfig):
            filtering = degradation.handle_invalid_configuration(filtering)
        self._filtering = filtering
        self._station_locator = station_locator or StationLocator()
        self._matcher = matcher or VehicleTripMatcher()
        self._aggregator = aggregator or StationVehicleAggregator()
        self._selector = selector or ProximityStationSelector()
        self._busy_route_filter = busy_route_filter or BusyRouteFilter()
        self._memory_probe = memory_probe or (lambda: 0.0)
        self._clock = clock or (lambda: datetime.now(UTC))
        self._generation = 0

        if filtering.enable_debug_logging:
            logging.getLogger("nearby_transit").setLevel(logging.DEBUG)

    @property
    def filtering(self) -> FilteringConfig:
        return self._filtering

    @property
    def generation(self) -> int:
        """Generation of the most recently started run."""
        return self._generation

    def is_current_generation(self, generation: int) -> bool:
        """Whether a result of ``generation`` is from the latest started run."""
        return generation == self._generation

    async def get_station_vehicle_groups(
        self,
        origin: Coordinates,
        settings: DisplaySettings | None = None,
        favorites: Iterable[Any] = (),
    ) -> StationVehicleResult:
        """Run the pipeline for one rider location.

        Args:
            origin: Rider location.
            settings: Display settings; defaults apply when omitted.
            favorites: Favorite routes as names or ``{"routeName": ...}`` references.

        Returns:
            The selected station groups tagged with this run's generation.
        """
        self._generation += 1
        generation = self._generation
        settings = settings or DisplaySettings()
        started = time.perf_counter()
        state = _RunState()

        favorite_names = normalize_favorite_routes(favorites)
        if settings.filter_by_favorites and not favorite_names:
            logger.info("Favorites mode without favorite routes, nothing to show")
            return self._result(generation, [], state)

        if not await self._fetch_inputs(state):
            return self._result(generation, [], state)

        if state.route_activity is None:
            state.route_activity = self._route_activity(state.vehicles)
            self._degradation.cache_route_activity(self._agency_id, state.route_activity)

        groups, used_schedule_fallback = self._match_guarded(
            origin, settings, favorite_names, state
        )

        elapsed_ms = (time.perf_counter() - started) * 1000
        try:
            self._check_performance(elapsed_ms, state)
        except PerformanceDegradationError as e:
            context = await self._degradation.handle_performance_issues(e.issue)
            state.degrade(
                1.0,
                [f"Performance degraded ({context.degradation_level.value})"],
            )

        return self._result(generation, groups, state, used_schedule_fallback)

    async def _fetch_inputs(self, state: _RunState) -> bool:
        """Fetch every input, applying fallbacks. Returns False when the run cannot continue."""
        agency_id = self._agency_id

        try:
            state.stations = await self._guarded_fetch(
                STATION_DATA, lambda: self._repository.get_stations(agency_id)
            )
        except NearbyTransitError as e:
            state.failed_fetches += 1
            self._record_unrecoverable(e, "station_data_unavailable", STATION_DATA, state)
            state.degrade(0.0, ["No station data available"])
            return False

        try:
            state.vehicles = await self._guarded_fetch(
                VEHICLE_DATA, lambda: self._repository.get_vehicles(agency_id)
            )
            self._degradation.cache_vehicle_data(agency_id, state.vehicles)
        except NearbyTransitError as e:
            state.failed_fetches += 1
            critical = (
                self._degradation.get_current_degradation_level() is DegradationLevel.CRITICAL
            )
            fallback = await self._degradation.handle_missing_vehicle_data(
                self._context(
                    "vehicle_data_unavailable",
                    e,
                    DegradationLevel.CRITICAL if critical else DegradationLevel.MODERATE,
                    FallbackStrategy.EMERGENCY_MODE if critical else FallbackStrategy.USE_CACHE,
                    VEHICLE_DATA,
                )
            )
            state.vehicles = fallback.vehicles
            state.degrade(fallback.confidence, fallback.limitations)

        try:
            state.routes = await self._guarded_fetch(
                ROUTE_DATA, lambda: self._repository.get_routes(agency_id)
            )
        except NearbyTransitError as e:
            state.failed_fetches += 1
            strategy = (
                FallbackStrategy.USE_CACHE
                if isinstance(e, CircuitOpenError)
                else FallbackStrategy.SKIP_FILTERING
            )
            fallback = await self._degradation.handle_route_data_unavailability(
                self._context(
                    "route_data_unavailable", e, DegradationLevel.MINIMAL, strategy, ROUTE_DATA
                )
            )
            state.route_activity = fallback.route_activities
            state.skip_filtering = strategy is FallbackStrategy.SKIP_FILTERING
            state.degrade(fallback.confidence, fallback.limitations)

        try:
            state.trips = await self._guarded_fetch(
                TRIP_DATA, lambda: self._repository.get_trips(agency_id)
            )
        except NearbyTransitError as e:
            state.failed_fetches += 1
            self._degradation.record_degradation_event(
                self._context(
                    "trip_data_unavailable",
                    e,
                    DegradationLevel.MINIMAL,
                    FallbackStrategy.USE_DEFAULTS,
                    TRIP_DATA,
                )
            )
            state.degrade(0.9, ["Destinations estimated from route descriptions"])

        try:
            state.stop_times = await self._guarded_fetch(
                STOP_TIME_DATA, lambda: self._repository.get_stop_times(agency_id)
            )
        except NearbyTransitError as e:
            state.failed_fetches += 1
            self._record_unrecoverable(e, "stop_time_data_unavailable", STOP_TIME_DATA, state)
            state.degrade(0.0, ["No schedule data available"])
            return False

        return True

    async def _guarded_fetch(
        self, component: str, fetch: Callable[[], Awaitable[list[T]]]
    ) -> list[T]:
        """Call a collaborator through its circuit breaker.

        Raises:
            CircuitOpenError: If the breaker does not permit the call.
            DataUnavailableError: If the collaborator fails or returns nothing.
        """
        if not self._degradation.is_call_permitted(component):
            raise CircuitOpenError(component)
        try:
            data = await fetch()
        except DataUnavailableError as e:
            logger.warning(f"Fetching {component} failed: {e}")
            self._degradation.update_circuit_breaker(component, success=False)
            raise
        except Exception as e:
            logger.error(f"Unexpected error fetching {component}: {e}", exc_info=True)
            self._degradation.update_circuit_breaker(component, success=False)
            raise DataUnavailableError(component, str(e) or type(e).__name__) from e
        if not data:
            logger.warning(f"Fetching {component} returned no data")
            self._degradation.update_circuit_breaker(component, success=False)
            raise DataUnavailableError(component)
        self._degradation.update_circuit_breaker(component, success=True)
        return data

    def _match_guarded(
        self,
        origin: Coordinates,
        settings: DisplaySettings,
        favorite_names: list[str],
        state: _RunState,
    ) -> tuple[list[StationVehicleGroup], bool]:
        if not self._degradation.is_call_permitted(VEHICLE_FILTER):
            logger.warning("Vehicle filtering circuit is open, returning no stations")
            state.degrade(0.0, ["Vehicle filtering temporarily disabled"])
            return [], False
        try:
            result = self._match(origin, settings, favorite_names, state)
        except DataUnavailableError as e:
            logger.warning(f"Cannot match vehicles: {e}")
            self._degradation.update_circuit_breaker(VEHICLE_FILTER, success=False)
            state.degrade(0.0, ["No schedule data available"])
            return [], False
        except Exception as e:
            logger.error(f"Vehicle matching failed: {e}", exc_info=True)
            self._degradation.update_circuit_breaker(VEHICLE_FILTER, success=False)
            state.degrade(0.0, ["Vehicle matching failed"])
            return [], False
        self._degradation.update_circuit_breaker(VEHICLE_FILTER, success=True)
        return result

    def _match(
        self,
        origin: Coordinates,
        settings: DisplaySettings,
        favorite_names: list[str],
        state: _RunState,
    ) -> tuple[list[StationVehicleGroup], bool]:
        trip_index = TripStopIndex.build(state.stop_times)
        stations_by_id = {station.id: station for station in state.stations}
        routes_by_id = {route.id: route for route in state.routes}
        trips_by_id = {trip.id: trip for trip in state.trips}
        favorites_mode = settings.filter_by_favorites and not state.skip_filtering

        nearby = self._station_locator.locate(
            state.stations, origin, settings.max_search_radius, settings.max_stations_to_check
        )
        if state.skip_filtering:
            vehicles = state.vehicles
        else:
            vehicles = self._busy_route_filter.filter(
                state.vehicles,
                state.route_activity or {},
                [candidate.station for candidate in nearby],
                self._filtering.distance_filter_threshold,
            )
        match = self._matcher.match(
            vehicles,
            trip_index,
            nearby,
            filter_by_favorites=settings.filter_by_favorites,
            favorite_route_names=favorite_names,
            routes=state.routes,
            trips=state.trips,
            skip_favorite_filtering=state.skip_filtering,
        )

        if favorites_mode:
            closest = self._station_locator.closest(
                state.stations, origin, match.candidate_station_ids
            )
            candidates = [closest] if closest is not None else []
        else:
            candidates = nearby

        groups = self._aggregator.aggregate(
            candidates,
            match.relevant_vehicles,
            trip_index,
            settings,
            stations_by_id=stations_by_id,
            routes_by_id=routes_by_id,
            trips_by_id=trips_by_id,
            now=self._clock(),
        )
        selected = self._selector.select(
            groups,
            filter_by_favorites=favorites_mode,
            max_stations=settings.max_stations,
            proximity_threshold=settings.proximity_threshold,
        )

        if favorites_mode and not selected and match.used_schedule_fallback and candidates:
            selected = self._scheduled_routes_group(
                candidates[0], match, favorite_names, trip_index, state
            )
        logger.debug(
            f"Matched {len(match.relevant_vehicles)} vehicles to "
            f"{len(candidates)} candidate stations, selected {len(selected)}"
        )
        return selected, match.used_schedule_fallback

    @staticmethod
    def _scheduled_routes_group(
        station: StationDistance,
        match: TripMatch,
        favorite_names: list[str],
        trip_index: TripStopIndex,
        state: _RunState,
    ) -> list[StationVehicleGroup]:
        """Closest scheduled favorite station with its favorite routes and no live vehicles."""
        favorite_routes = {
            route.id: route for route in state.routes if route.name in favorite_names
        }
        serving_trips = trip_index.trips_serving([station.station.id])
        route_ids = {
            trip.route_id
            for trip in state.trips
            if trip.id in serving_trips and trip.route_id in favorite_routes
        }
        if not route_ids:
            return []
        all_routes = sorted(
            (
                RouteSummary(
                    route_id=route_id,
                    route_name=favorite_routes[route_id].name,
                    vehicle_count=0,
                )
                for route_id in route_ids
            ),
            key=lambda summary: summary.route_name,
        )
        logger.info(
            f"No live favorite vehicles, showing scheduled routes at {station.station.name} "
            f"({len(match.candidate_station_ids)} scheduled stations)"
        )
        return [StationVehicleGroup(station=station, vehicles=[], all_routes=all_routes)]

    def _route_activity(self, vehicles: list[LiveVehicle]) -> dict[str, RouteActivity]:
        counts: dict[str, int] = {}
        for vehicle in vehicles:
            counts[vehicle.route_id] = counts.get(vehicle.route_id, 0) + 1
        threshold = self._filtering.busy_route_threshold
        return {
            route_id: RouteActivity(
                route_id=route_id, vehicle_count=count, is_busy=count >= threshold
            )
            for route_id, count in counts.items()
        }

    def _check_performance(self, elapsed_ms: float, state: _RunState) -> None:
        """Raise when the run's metrics breach the degradation thresholds.

        Raises:
            PerformanceDegradationError: If monitoring is enabled and a threshold is exceeded.
        """
        if not self._filtering.performance_monitoring:
            return
        seconds = elapsed_ms / 1000
        metrics = PerformanceMetrics(
            response_time=elapsed_ms,
            memory_usage=self._memory_probe(),
            error_rate=state.failed_fetches / FETCHED_COMPONENTS,
            throughput=len(state.vehicles) / seconds if seconds > 0 else 0.0,
        )
        level = classify_performance(metrics)
        if level is DegradationLevel.NONE:
            return
        raise PerformanceDegradationError(
            PerformanceIssue(
                metrics=metrics,
                reported_severity=level,
                recommendations=_recommendations(metrics),
                circuit_breaker_triggered=level
                in (DegradationLevel.SEVERE, DegradationLevel.CRITICAL),
            )
        )

    def _record_unrecoverable(
        self, error: NearbyTransitError, failure_type: str, component: str, state: _RunState
    ) -> None:
        logger.warning(f"Cannot build station groups: {error}")
        self._degradation.record_degradation_event(
            self._context(
                failure_type,
                error,
                DegradationLevel.SEVERE,
                FallbackStrategy.USE_DEFAULTS,
                component,
            )
        )

    def _context(
        self,
        failure_type: str,
        error: Exception,
        level: DegradationLevel,
        strategy: FallbackStrategy,
        component: str,
    ) -> DegradationContext:
        return DegradationContext(
            failure_type=failure_type,
            failure_message=str(error),
            degradation_level=level,
            fallback_strategy=strategy,
            timestamp=self._clock(),
            affected_components=[component],
        )

    def _result(
        self,
        generation: int,
        groups: list[StationVehicleGroup],
        state: _RunState,
        used_schedule_fallback: bool = False,
    ) -> StationVehicleResult:
        return StationVehicleResult(
            groups=groups,
            generation=generation,
            confidence=state.confidence,
            limitations=list(state.limitations),
            degradation_level=self._degradation.get_current_degradation_level(),
            route_activity=dict(state.route_activity or {}),
            used_schedule_fallback=used_schedule_fallback,
        )


def _recommendations(metrics: PerformanceMetrics) -> list[str]:
    recommendations = []
    if metrics.response_time > 1000:
        recommendations.append("Reduce max_stations_to_check")
    if metrics.memory_usage > 0.6:
        recommendations.append("Clear fallback caches")
    if metrics.error_rate > 0.05:
        recommendations.append("Check upstream API availability")
    return recommendations

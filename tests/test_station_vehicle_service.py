"""Tests for StationVehicleService, the end-to-end matching pipeline."""

from collections import Counter
from datetime import timedelta
from unittest.mock import MagicMock

import pytest

from nearby_transit.application.services import DegradationController, StationVehicleService
from nearby_transit.application.services.degradation_controller import PERFORMANCE_MONITOR
from nearby_transit.application.services.station_vehicle_service import (
    ROUTE_DATA,
    VEHICLE_DATA,
    VEHICLE_FILTER,
)
from nearby_transit.domain.errors import DataUnavailableError
from nearby_transit.domain.models import (
    DegradationContext,
    DegradationLevel,
    DisplaySettings,
    FallbackStrategy,
    LiveVehicle,
    Route,
    RouteSummary,
    Station,
    StationVehicleResult,
    StopTime,
    Trip,
)
from tests.test_degradation_controller import FakeClock
from tests.test_models import NOW, ORIGIN, TransitNetwork, make_vehicle, sample_network


class MockTransitDataRepository:
    """Serves a fixed network, failing the sources named in ``failures``."""

    def __init__(self, network: TransitNetwork) -> None:
        self.network = network
        self.failures: dict[str, Exception] = {}
        self.calls: Counter[str] = Counter()

    async def _serve(self, source: str, data: list) -> list:
        self.calls[source] += 1
        if source in self.failures:
            raise self.failures[source]
        return list(data)

    async def get_stations(self, agency_id: str) -> list[Station]:
        return await self._serve("stations", self.network.stations)

    async def get_vehicles(self, agency_id: str) -> list[LiveVehicle]:
        return await self._serve("vehicles", self.network.vehicles)

    async def get_routes(self, agency_id: str) -> list[Route]:
        return await self._serve("routes", self.network.routes)

    async def get_trips(self, agency_id: str) -> list[Trip]:
        return await self._serve("trips", self.network.trips)

    async def get_stop_times(self, agency_id: str) -> list[StopTime]:
        return await self._serve("stop_times", self.network.stop_times)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def repository() -> MockTransitDataRepository:
    return MockTransitDataRepository(sample_network())


@pytest.fixture
def controller(clock: FakeClock) -> DegradationController:
    return DegradationController(clock=clock)


@pytest.fixture
def service(
    repository: MockTransitDataRepository, controller: DegradationController, clock: FakeClock
) -> StationVehicleService:
    return StationVehicleService(repository, controller, "2", clock=clock)


def _vehicle_ids(result: StationVehicleResult) -> list[list[str]]:
    return [[v.id for v in group.vehicles] for group in result.groups]


def _station_ids(result: StationVehicleResult) -> list[str]:
    return [group.station.station.id for group in result.groups]


def _fail(repository: MockTransitDataRepository, source: str) -> None:
    repository.failures[source] = DataUnavailableError(source, "HTTP 500")


@pytest.mark.asyncio
async def test_station_display_returns_closest_station_with_best_vehicles(
    service: StationVehicleService,
) -> None:
    """Given a healthy network, when running the pipeline, then S3 is shown with one vehicle per route."""
    result = await service.get_station_vehicle_groups(ORIGIN)

    assert _station_ids(result) == ["S3"]
    assert _vehicle_ids(result) == [["b1", "a2"]]
    assert result.groups[0].all_routes == [
        RouteSummary(route_id="A", route_name="24B", vehicle_count=2),
        RouteSummary(route_id="B", route_name="35", vehicle_count=2),
    ]
    assert result.confidence == 1.0
    assert result.limitations == []
    assert result.degradation_level is DegradationLevel.NONE
    assert result.generation == 1
    assert result.route_activity["A"].vehicle_count == 2
    assert not result.route_activity["A"].is_busy


@pytest.mark.asyncio
async def test_second_station_within_proximity_threshold(service: StationVehicleService) -> None:
    """Given a wide proximity threshold, when running the pipeline, then the nearest neighbour is added."""
    result = await service.get_station_vehicle_groups(
        ORIGIN, DisplaySettings(proximity_threshold=1000)
    )

    assert _station_ids(result) == ["S3", "S6"]


@pytest.mark.asyncio
async def test_favorites_mode_shows_only_favorite_routes(service: StationVehicleService) -> None:
    """Given favorite route 35, when running in favorites mode, then only its vehicles are shown."""
    result = await service.get_station_vehicle_groups(
        ORIGIN, DisplaySettings(filter_by_favorites=True), favorites=[{"routeName": "35"}]
    )

    assert _station_ids(result) == ["S3"]
    assert _vehicle_ids(result) == [["b1", "b2"]]
    assert not result.used_schedule_fallback


@pytest.mark.asyncio
async def test_favorites_mode_without_favorites_fetches_nothing(
    service: StationVehicleService, repository: MockTransitDataRepository
) -> None:
    """Given favorites mode and no favorites, when running, then the result is empty without fetching."""
    result = await service.get_station_vehicle_groups(
        ORIGIN, DisplaySettings(filter_by_favorites=True)
    )

    assert result.groups == []
    assert sum(repository.calls.values()) == 0


@pytest.mark.asyncio
async def test_favorites_without_live_vehicles_show_scheduled_station(
    service: StationVehicleService, repository: MockTransitDataRepository
) -> None:
    """Given no live vehicle on the favorite route, when running, then its closest scheduled station is shown."""
    repository.network.vehicles = [v for v in repository.network.vehicles if v.route_id == "A"]

    result = await service.get_station_vehicle_groups(
        ORIGIN, DisplaySettings(filter_by_favorites=True), favorites=["35"]
    )

    assert result.used_schedule_fallback
    assert _station_ids(result) == ["S3"]
    assert result.groups[0].vehicles == []
    assert result.groups[0].all_routes == [
        RouteSummary(route_id="B", route_name="35", vehicle_count=0)
    ]


@pytest.mark.asyncio
async def test_station_failure_stops_the_run(
    service: StationVehicleService, repository: MockTransitDataRepository
) -> None:
    """Given stations cannot be fetched, when running, then an empty zero-confidence result is returned."""
    _fail(repository, "stations")

    result = await service.get_station_vehicle_groups(ORIGIN)

    assert result.groups == []
    assert result.confidence == 0.0
    assert "No station data available" in result.limitations
    assert result.degradation_level is DegradationLevel.SEVERE
    assert repository.calls["vehicles"] == 0


@pytest.mark.asyncio
async def test_vehicle_failure_serves_cached_vehicles(
    service: StationVehicleService, repository: MockTransitDataRepository
) -> None:
    """Given a previous successful run, when vehicles fail, then cached vehicles are matched instead."""
    await service.get_station_vehicle_groups(ORIGIN)
    _fail(repository, "vehicles")

    result = await service.get_station_vehicle_groups(ORIGIN)

    assert _vehicle_ids(result) == [["b1", "a2"]]
    assert result.confidence == 0.7
    assert "Data may be outdated" in result.limitations
    assert result.degradation_level is DegradationLevel.MODERATE
    assert result.is_degraded


@pytest.mark.asyncio
async def test_empty_vehicle_response_counts_as_failure(
    service: StationVehicleService,
    repository: MockTransitDataRepository,
    controller: DegradationController,
) -> None:
    """Given an empty vehicle list, when running, then it is treated as unavailable data."""
    repository.network.vehicles = []

    result = await service.get_station_vehicle_groups(ORIGIN)

    assert result.groups == []
    assert result.confidence == 0.1
    assert controller.get_circuit_breaker_info(VEHICLE_DATA).failure_count == 1


@pytest.mark.asyncio
async def test_vehicle_failure_in_critical_state_uses_emergency_mode(
    service: StationVehicleService,
    repository: MockTransitDataRepository,
    controller: DegradationController,
) -> None:
    """Given a recent critical event, when vehicles fail, then emergency mode serves nothing."""
    controller.record_degradation_event(
        DegradationContext(
            failure_type="performance_degradation",
            failure_message="overloaded",
            degradation_level=DegradationLevel.CRITICAL,
            fallback_strategy=FallbackStrategy.EMERGENCY_MODE,
            timestamp=NOW,
        )
    )
    _fail(repository, "vehicles")

    result = await service.get_station_vehicle_groups(ORIGIN)

    assert result.groups == []
    assert result.confidence == 0.0
    assert "Emergency mode active" in result.limitations


@pytest.mark.asyncio
async def test_route_failure_skips_favorite_filtering(
    service: StationVehicleService, repository: MockTransitDataRepository
) -> None:
    """Given routes fail, when running in favorites mode, then vehicles are shown unfiltered."""
    _fail(repository, "routes")

    result = await service.get_station_vehicle_groups(
        ORIGIN, DisplaySettings(filter_by_favorites=True), favorites=["35"]
    )

    assert _vehicle_ids(result) == [["b1", "a2"]]
    assert [v.route_name for v in result.groups[0].vehicles] == ["Route B", "Route A"]
    assert result.confidence == 0.5
    assert "Route-based filtering disabled" in result.limitations
    assert result.route_activity == {}


@pytest.mark.asyncio
async def test_open_route_breaker_uses_cached_activity_without_calling(
    service: StationVehicleService,
    repository: MockTransitDataRepository,
    controller: DegradationController,
) -> None:
    """Given an open route breaker, when running, then cached activity is used and routes are not fetched."""
    first = await service.get_station_vehicle_groups(ORIGIN)
    for _ in range(5):
        controller.update_circuit_breaker(ROUTE_DATA, success=False)

    result = await service.get_station_vehicle_groups(ORIGIN)

    assert repository.calls["routes"] == 1
    assert result.confidence == 0.6
    assert result.route_activity == first.route_activity


@pytest.mark.asyncio
async def test_trip_failure_estimates_destinations(
    service: StationVehicleService, repository: MockTransitDataRepository
) -> None:
    """Given trips fail, when running, then destinations fall back to route descriptions."""
    _fail(repository, "trips")

    result = await service.get_station_vehicle_groups(ORIGIN)

    destinations = {v.id: v.destination for v in result.groups[0].vehicles}
    assert destinations == {"b1": "Unknown destination", "a2": "Central - Airport"}
    assert result.confidence == 0.9
    assert "Destinations estimated from route descriptions" in result.limitations


@pytest.mark.asyncio
async def test_stop_time_failure_stops_the_run(
    service: StationVehicleService, repository: MockTransitDataRepository
) -> None:
    """Given stop times fail, when running, then no stations are returned."""
    _fail(repository, "stop_times")

    result = await service.get_station_vehicle_groups(ORIGIN)

    assert result.groups == []
    assert "No schedule data available" in result.limitations


@pytest.mark.asyncio
async def test_single_failed_fetch_records_performance_event(
    service: StationVehicleService,
    repository: MockTransitDataRepository,
    controller: DegradationController,
) -> None:
    """Given one failed fetch, when running, then the error rate is reported as a performance issue."""
    _fail(repository, "trips")

    result = await service.get_station_vehicle_groups(ORIGIN)

    failure_types = [event.failure_type for event in controller.get_degradation_history()]
    assert "performance_degradation" in failure_types
    assert "Performance degraded (moderate)" in result.limitations


@pytest.mark.asyncio
async def test_memory_pressure_is_mitigated(
    repository: MockTransitDataRepository, controller: DegradationController, clock: FakeClock
) -> None:
    """Given very high memory usage, when running, then a critical performance event is handled."""
    service = StationVehicleService(
        repository, controller, "2", memory_probe=lambda: 0.95, clock=clock
    )

    result = await service.get_station_vehicle_groups(ORIGIN)

    assert _station_ids(result) == ["S3"]
    assert "Performance degraded (critical)" in result.limitations
    assert result.degradation_level is DegradationLevel.CRITICAL
    assert controller.cache_ttl == timedelta(minutes=5)
    assert controller.get_circuit_breaker_info(PERFORMANCE_MONITOR).failure_count == 1


@pytest.mark.asyncio
async def test_performance_monitoring_can_be_disabled(
    repository: MockTransitDataRepository, controller: DegradationController, clock: FakeClock
) -> None:
    """Given monitoring disabled, when memory is high, then no performance event is recorded."""
    service = StationVehicleService(
        repository,
        controller,
        "2",
        {"performance_monitoring": False},
        memory_probe=lambda: 0.95,
        clock=clock,
    )

    result = await service.get_station_vehicle_groups(ORIGIN)

    assert result.limitations == []
    assert controller.get_degradation_history() == []


@pytest.mark.asyncio
async def test_unexpected_matching_error_is_contained(
    repository: MockTransitDataRepository,
    controller: DegradationController,
    clock: FakeClock,
    caplog: pytest.LogCaptureFixture,
) -> None:
    """Given a matcher that raises, when running, then an empty result is returned and logged."""
    matcher = MagicMock()
    matcher.match.side_effect = RuntimeError("boom")
    service = StationVehicleService(repository, controller, "2", matcher=matcher, clock=clock)

    result = await service.get_station_vehicle_groups(ORIGIN)

    assert result.groups == []
    assert "Vehicle matching failed" in result.limitations
    assert controller.get_circuit_breaker_info(VEHICLE_FILTER).failure_count == 1
    assert "Vehicle matching failed" in caplog.text


@pytest.mark.asyncio
async def test_open_vehicle_filter_breaker_disables_matching(
    service: StationVehicleService, controller: DegradationController
) -> None:
    """Given an open vehicle filter breaker, when running, then matching is skipped."""
    for _ in range(5):
        controller.update_circuit_breaker(VEHICLE_FILTER, success=False)

    result = await service.get_station_vehicle_groups(ORIGIN)

    assert result.groups == []
    assert "Vehicle filtering temporarily disabled" in result.limitations


@pytest.mark.asyncio
async def test_generations_increase_per_run(service: StationVehicleService) -> None:
    """Given two runs, when checking generations, then only the latest is current."""
    first = await service.get_station_vehicle_groups(ORIGIN)
    second = await service.get_station_vehicle_groups(ORIGIN)

    assert (first.generation, second.generation) == (1, 2)
    assert not service.is_current_generation(first.generation)
    assert service.is_current_generation(second.generation)


def test_filtering_mapping_is_sanitized(
    repository: MockTransitDataRepository, controller: DegradationController
) -> None:
    """Given a filtering mapping with an invalid field, when creating the service, then it is repaired."""
    service = StationVehicleService(
        repository, controller, "2", {"busy_route_threshold": -1, "distance_filter_threshold": 800}
    )

    assert service.filtering.busy_route_threshold == 5
    assert service.filtering.distance_filter_threshold == 800
    assert len(controller.get_degradation_history()) == 1


@pytest.mark.asyncio
async def test_busy_routes_follow_threshold(
    repository: MockTransitDataRepository, controller: DegradationController, clock: FakeClock
) -> None:
    """Given a busy threshold of two, when running, then routes with two vehicles are busy."""
    service = StationVehicleService(
        repository, controller, "2", {"busy_route_threshold": 2}, clock=clock
    )

    result = await service.get_station_vehicle_groups(ORIGIN)

    assert result.route_activity["A"].is_busy
    assert result.route_activity["B"].is_busy


@pytest.mark.asyncio
async def test_unexpected_repository_error_counts_as_failure(
    service: StationVehicleService,
    repository: MockTransitDataRepository,
    controller: DegradationController,
) -> None:
    """Given the vehicle source raises a non-domain error, when running, then the cache is used."""
    await service.get_station_vehicle_groups(ORIGIN)
    repository.failures["vehicles"] = ValueError("Expecting value")

    result = await service.get_station_vehicle_groups(ORIGIN)

    assert _vehicle_ids(result) == [["b1", "a2"]]
    assert result.confidence == 0.7
    assert controller.get_circuit_breaker_info(VEHICLE_DATA).failure_count == 1


def _add_far_route_a_vehicle(repository: MockTransitDataRepository) -> None:
    # About 6.6 km north of S5, the last stop of T1
    repository.network.vehicles.append(make_vehicle("a3", "A", "T1", 46.80, 23.60))


@pytest.mark.asyncio
async def test_busy_route_vehicles_far_from_stations_are_dropped(
    repository: MockTransitDataRepository, controller: DegradationController, clock: FakeClock
) -> None:
    """Given a busy route with a far vehicle, when running, then only its near vehicles are matched."""
    _add_far_route_a_vehicle(repository)
    service = StationVehicleService(
        repository, controller, "2", {"busy_route_threshold": 3}, clock=clock
    )

    result = await service.get_station_vehicle_groups(ORIGIN)

    assert result.route_activity["A"].is_busy
    assert not result.route_activity["B"].is_busy
    assert result.groups[0].all_routes == [
        RouteSummary("A", "24B", 2),
        RouteSummary("B", "35", 2),
    ]


@pytest.mark.asyncio
async def test_quiet_route_vehicles_are_all_matched(
    service: StationVehicleService, repository: MockTransitDataRepository
) -> None:
    """Given a quiet route with a far vehicle, when running, then every vehicle is matched."""
    _add_far_route_a_vehicle(repository)

    result = await service.get_station_vehicle_groups(ORIGIN)

    assert not result.route_activity["A"].is_busy
    assert result.groups[0].all_routes[0] == RouteSummary("A", "24B", 3)


@pytest.mark.asyncio
async def test_skip_filtering_bypasses_distance_filter(
    repository: MockTransitDataRepository, controller: DegradationController, clock: FakeClock
) -> None:
    """Given routes fail with a busy threshold set, when running, then far vehicles stay."""
    _add_far_route_a_vehicle(repository)
    _fail(repository, "routes")
    service = StationVehicleService(
        repository, controller, "2", {"busy_route_threshold": 3}, clock=clock
    )

    result = await service.get_station_vehicle_groups(ORIGIN)

    assert result.groups[0].all_routes[0] == RouteSummary("A", "Route A", 3)
    assert "All vehicles shown regardless of activity" in result.limitations

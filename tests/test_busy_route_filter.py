"""Tests for BusyRouteFilter."""

import pytest

from nearby_transit.application.services.busy_route_filter import BusyRouteFilter
from nearby_transit.domain.models import Coordinates, RouteActivity, Station
from tests.test_models import make_station, make_vehicle

STATIONS = [make_station("S3", 46.72, 23.60)]


def _activity(route_id: str, count: int, busy: bool) -> dict[str, RouteActivity]:
    return {route_id: RouteActivity(route_id=route_id, vehicle_count=count, is_busy=busy)}


def test_busy_route_keeps_only_near_vehicles(caplog: pytest.LogCaptureFixture) -> None:
    """Given a busy route, when filtering, then vehicles beyond the threshold are dropped."""
    near = make_vehicle("near", "A", "T1", 46.725, 23.60)
    far = make_vehicle("far", "A", "T1", 46.80, 23.60)

    kept = BusyRouteFilter().filter([near, far], _activity("A", 2, True), STATIONS, 2000)

    assert kept == [near]
    assert "Distance filtered 1 of 2 vehicles" in caplog.text


def test_quiet_route_keeps_every_vehicle() -> None:
    """Given a quiet route, when filtering, then far vehicles are kept."""
    far = make_vehicle("far", "A", "T1", 46.80, 23.60)

    kept = BusyRouteFilter().filter([far], _activity("A", 2, False), STATIONS, 2000)

    assert kept == [far]


def test_single_vehicle_route_is_never_distance_filtered() -> None:
    """Given a busy-flagged route with one vehicle, when filtering, then it is kept."""
    far = make_vehicle("far", "A", "T1", 46.80, 23.60)

    kept = BusyRouteFilter().filter([far], _activity("A", 1, True), STATIONS, 2000)

    assert kept == [far]


def test_routes_without_activity_are_kept() -> None:
    """Given no activity for a route, when filtering, then its vehicles are kept."""
    far = make_vehicle("far", "B", "T2", 46.80, 23.60)

    kept = BusyRouteFilter().filter([far], _activity("A", 9, True), STATIONS, 2000)

    assert kept == [far]


def test_no_target_stations_keeps_everything() -> None:
    """Given no target stations, when filtering, then all vehicles are kept."""
    far = make_vehicle("far", "A", "T1", 46.80, 23.60)

    assert BusyRouteFilter().filter([far], _activity("A", 2, True), [], 100) == [far]


def test_distance_is_measured_to_the_nearest_valid_station() -> None:
    """Given one invalid and one near station, when filtering, then the valid one decides."""
    broken = Station(id="X", name="Broken", coordinates=Coordinates(float("nan"), 0))
    near = make_vehicle("near", "A", "T1", 46.7205, 23.60)
    lost = make_vehicle("lost", "A", "T1", float("nan"), 23.60)

    kept = BusyRouteFilter().filter(
        [near, lost], _activity("A", 2, True), [broken, *STATIONS], 100
    )

    assert kept == [near]

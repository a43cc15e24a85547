"""Per-station vehicle ranking, deduplication and limits."""

import logging
from datetime import datetime, timedelta

from nearby_transit.application.services.direction_estimator import DirectionEstimator
from nearby_transit.application.services.trip_stop_index import TripStopIndex
from nearby_transit.domain.models.direction import DirectionError, VehicleDirection
from nearby_transit.domain.models.display_settings import DisplaySettings
from nearby_transit.domain.models.live_vehicle import LiveVehicle
from nearby_transit.domain.models.matched_vehicle import MatchedVehicle, StopSequenceEntry
from nearby_transit.domain.models.route import Route, RouteSummary
from nearby_transit.domain.models.station import Station, StationDistance
from nearby_transit.domain.models.station_vehicle_group import StationVehicleGroup
from nearby_transit.domain.models.trip import Trip

logger = logging.getLogger(__name__)

UNKNOWN_DESTINATION = "Unknown destination"


def priority_key(vehicle: MatchedVehicle) -> tuple[int, int]:
    """At station first, then arriving by ETA, then everything else by ETA."""
    if vehicle.is_at_station:
        return (0, 0)
    if vehicle.is_arriving:
        return (1, vehicle.minutes_away)
    return (2, vehicle.minutes_away)


def _best_in_route_key(vehicle: MatchedVehicle) -> tuple[int, int, str]:
    if vehicle.is_at_station:
        return (0, 0, "")
    if vehicle.is_arriving:
        return (1, vehicle.minutes_away, "")
    if vehicle.has_departed:
        return (3, 0, vehicle.id)
    return (2, vehicle.minutes_away, "")


def _across_routes_key(vehicle: MatchedVehicle) -> tuple[int, int, str]:
    if vehicle.is_at_station:
        return (0, 0, "")
    if vehicle.is_arriving:
        return (1, vehicle.minutes_away, "")
    if vehicle.has_departed:
        return (3, 0, vehicle.route_name)
    return (2, vehicle.minutes_away, "")


class StationVehicleAggregator:
    """Builds one ``StationVehicleGroup`` per candidate station."""

    def __init__(self, direction_estimator: DirectionEstimator | None = None) -> None:
        self._direction_estimator = direction_estimator or DirectionEstimator()

    def aggregate(
        self,
        stations: list[StationDistance],
        vehicles: list[LiveVehicle],
        trip_index: TripStopIndex,
        settings: DisplaySettings,
        *,
        stations_by_id: dict[str, Station],
        routes_by_id: dict[str, Route] | None = None,
        trips_by_id: dict[str, Trip] | None = None,
        now: datetime,
    ) -> list[StationVehicleGroup]:
        """Match, rank and limit vehicles for each station, in the given station order."""
        routes_by_id = routes_by_id or {}
        trips_by_id = trips_by_id or {}
        groups = []
        for station_distance in stations:
            station = station_distance.station
            matched = [
                self._match_vehicle(
                    vehicle, station, trip_index, stations_by_id, routes_by_id, trips_by_id, now
                )
                for vehicle in vehicles
                if trip_index.serves(vehicle.trip_id, station.id)
            ]
            groups.append(
                StationVehicleGroup(
                    station=station_distance,
                    vehicles=self.select_vehicles(matched, settings),
                    all_routes=self.summarize_routes(matched),
                )
            )
        return groups

    @staticmethod
    def select_vehicles(
        matched: list[MatchedVehicle], settings: DisplaySettings
    ) -> list[MatchedVehicle]:
        """Apply the display policy to the vehicles matched at one station."""
        if settings.show_all_vehicles_per_route:
            return sorted(matched, key=priority_key)

        by_route: dict[str, list[MatchedVehicle]] = {}
        for vehicle in matched:
            by_route.setdefault(vehicle.route_id, []).append(vehicle)

        if len(by_route) == 1:
            return sorted(matched, key=priority_key)[: settings.max_vehicles_per_station]

        best_per_route = [
            min(route_vehicles, key=_best_in_route_key) for route_vehicles in by_route.values()
        ]
        best_per_route.sort(key=_across_routes_key)
        return best_per_route[: settings.max_vehicles_per_station]

    @staticmethod
    def summarize_routes(matched: list[MatchedVehicle]) -> list[RouteSummary]:
        """Distinct routes among all matched vehicles, with counts, sorted by route name."""
        counts: dict[str, int] = {}
        names: dict[str, str] = {}
        for vehicle in matched:
            counts[vehicle.route_id] = counts.get(vehicle.route_id, 0) + 1
            names.setdefault(vehicle.route_id, vehicle.route_name)
        summaries = [
            RouteSummary(route_id=route_id, route_name=names[route_id], vehicle_count=count)
            for route_id, count in counts.items()
        ]
        return sorted(summaries, key=lambda summary: summary.route_name)

    def _match_vehicle(
        self,
        vehicle: LiveVehicle,
        station: Station,
        trip_index: TripStopIndex,
        stations_by_id: dict[str, Station],
        routes_by_id: dict[str, Route],
        trips_by_id: dict[str, Trip],
        now: datetime,
    ) -> MatchedVehicle:
        trip_id = vehicle.trip_id or ""
        trip_stops = trip_index.stops_for_trip(trip_id)
        outcome = self._direction_estimator.estimate(vehicle, station, trip_stops, stations_by_id)

        if isinstance(outcome, DirectionError):
            logger.warning(
                f"Could not infer direction of vehicle {outcome.vehicle_id} "
                f"at station {outcome.station_id}: {outcome.reason}"
            )
            direction = VehicleDirection.UNKNOWN
            minutes_away = 0
            closest_sequence = None
        else:
            direction = outcome.direction
            minutes_away = outcome.minutes_away
            closest_sequence = outcome.closest_sequence

        route = routes_by_id.get(vehicle.route_id)
        trip = trips_by_id.get(trip_id)
        return MatchedVehicle(
            vehicle=vehicle,
            route_id=vehicle.route_id,
            route_name=route.name if route else f"Route {vehicle.route_id}",
            destination=self._destination(trip, route),
            direction=direction,
            minutes_away=minutes_away,
            estimated_arrival=now + timedelta(minutes=minutes_away),
            station=station,
            stop_sequence=self._stop_sequence(trip_index, trip_id, closest_sequence, stations_by_id),
        )

    @staticmethod
    def _destination(trip: Trip | None, route: Route | None) -> str:
        if trip is not None and trip.headsign:
            return trip.headsign
        if route is not None and route.description:
            return route.description
        return UNKNOWN_DESTINATION

    @staticmethod
    def _stop_sequence(
        trip_index: TripStopIndex,
        trip_id: str,
        closest_sequence: int | None,
        stations_by_id: dict[str, Station],
    ) -> list[StopSequenceEntry]:
        sorted_stops = trip_index.sorted_stops(trip_id)
        if not sorted_stops:
            return []
        terminus = sorted_stops[-1].sequence
        entries = []
        for stop in sorted_stops:
            stop_station = stations_by_id.get(stop.stop_id)
            entries.append(
                StopSequenceEntry(
                    stop_id=stop.stop_id,
                    stop_name=stop_station.name if stop_station else f"Stop {stop.stop_id}",
                    sequence=stop.sequence,
                    is_current=stop.sequence == closest_sequence,
                    is_destination=stop.sequence == terminus,
                )
            )
        return entries

"""Vehicle to trip matching service."""

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field

from nearby_transit.application.services.trip_stop_index import TripStopIndex
from nearby_transit.domain.models.live_vehicle import LiveVehicle
from nearby_transit.domain.models.route import Route
from nearby_transit.domain.models.station import StationDistance
from nearby_transit.domain.models.trip import Trip

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TripMatch:
    """Vehicles and trips relevant to the candidate stations."""

    relevant_vehicles: list[LiveVehicle]
    relevant_trip_ids: set[str]
    candidate_station_ids: set[str]
    used_schedule_fallback: bool = False
    unmatched_favorites: list[str] = field(default_factory=list)


class VehicleTripMatcher:
    """Reduces the live vehicle set to vehicles whose trips serve relevant stations."""

    def match(
        self,
        vehicles: list[LiveVehicle],
        trip_index: TripStopIndex,
        candidate_stations: list[StationDistance],
        *,
        filter_by_favorites: bool = False,
        favorite_route_names: Iterable[str] = (),
        routes: Iterable[Route] = (),
        trips: Iterable[Trip] = (),
        skip_favorite_filtering: bool = False,
    ) -> TripMatch:
        """Match vehicles to trips in station-display or favorites mode.

        Args:
            vehicles: Live vehicles of this poll cycle.
            trip_index: Trip stop index built from stop_times.
            candidate_stations: Stations found around the origin.
            filter_by_favorites: Select favorites mode.
            favorite_route_names: Normalized favorite route names.
            routes: All routes, used to map favorite names to route ids.
            trips: All trips, used by the schedule fallback.
            skip_favorite_filtering: Show vehicles unfiltered when route data is missing.

        Returns:
            The relevant vehicles and trips, and the station ids they were matched against.
        """
        if filter_by_favorites and not skip_favorite_filtering:
            return self._match_favorites(
                vehicles, trip_index, list(favorite_route_names), list(routes), list(trips)
            )

        station_ids = {candidate.station.id for candidate in candidate_stations}
        relevant_trip_ids = trip_index.trips_serving(station_ids)
        return TripMatch(
            relevant_vehicles=self._on_trips(vehicles, relevant_trip_ids),
            relevant_trip_ids=relevant_trip_ids,
            candidate_station_ids=station_ids,
        )

    def _match_favorites(
        self,
        vehicles: list[LiveVehicle],
        trip_index: TripStopIndex,
        favorite_names: list[str],
        routes: list[Route],
        trips: list[Trip],
    ) -> TripMatch:
        routes_by_name: dict[str, Route] = {}
        for route in routes:
            routes_by_name.setdefault(route.name, route)

        favorite_route_ids: set[str] = set()
        unmatched: list[str] = []
        for name in favorite_names:
            route = routes_by_name.get(name)
            if route is None:
                unmatched.append(name)
            else:
                favorite_route_ids.add(route.id)
        if unmatched:
            logger.info(f"Favorite routes not found in route data, ignoring: {unmatched}")

        favorite_vehicles = [v for v in vehicles if v.route_id and v.route_id in favorite_route_ids]
        active_trip_ids = {v.trip_id for v in favorite_vehicles if v.trip_id}
        station_ids = trip_index.stations_served_by(active_trip_ids)

        used_schedule_fallback = False
        if not station_ids:
            logger.debug("No stations found from active favorite vehicles, using schedule data")
            station_ids = self._stations_from_schedule(trip_index, favorite_route_ids, trips)
            used_schedule_fallback = True

        relevant_trip_ids = trip_index.trips_serving(station_ids)
        logger.debug(
            f"Favorites matching: {len(favorite_vehicles)} favorite vehicles, "
            f"{len(station_ids)} candidate stations, {len(relevant_trip_ids)} relevant trips"
        )
        return TripMatch(
            relevant_vehicles=self._on_trips(favorite_vehicles, relevant_trip_ids),
            relevant_trip_ids=relevant_trip_ids,
            candidate_station_ids=station_ids,
            used_schedule_fallback=used_schedule_fallback,
            unmatched_favorites=unmatched,
        )

    @staticmethod
    def _stations_from_schedule(
        trip_index: TripStopIndex, favorite_route_ids: set[str], trips: list[Trip]
    ) -> set[str]:
        """Every station ever served by a favorite route, regardless of live activity."""
        favorite_trip_ids = {trip.id for trip in trips if trip.route_id in favorite_route_ids}
        return trip_index.stations_served_by(favorite_trip_ids)

    @staticmethod
    def _on_trips(vehicles: list[LiveVehicle], trip_ids: set[str]) -> list[LiveVehicle]:
        return [v for v in vehicles if v.trip_id and v.trip_id in trip_ids]

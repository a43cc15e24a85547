"""Station locator service."""

import logging
from collections.abc import Iterable

from nearby_transit.application.services.geo import calculate_distance
from nearby_transit.domain.errors import InvalidCoordinateError
from nearby_transit.domain.models.coordinates import Coordinates
from nearby_transit.domain.models.station import Station, StationDistance

logger = logging.getLogger(__name__)


class StationLocator:
    """Finds candidate stations around an origin."""

    def locate(
        self,
        stations: Iterable[Station],
        origin: Coordinates,
        max_search_radius: float,
        max_stations_to_check: int,
    ) -> list[StationDistance]:
        """Return stations within ``max_search_radius`` meters, closest first.

        Stations with invalid coordinates are skipped. Ties keep the input
        order, and the result is truncated to ``max_stations_to_check``.
        """
        in_range = [
            candidate
            for candidate in self._with_distances(stations, origin)
            if candidate.distance <= max_search_radius
        ]
        in_range.sort(key=lambda candidate: candidate.distance)
        return in_range[:max_stations_to_check]

    def closest(
        self,
        stations: Iterable[Station],
        origin: Coordinates,
        station_ids: set[str],
    ) -> StationDistance | None:
        """Return the closest station among ``station_ids``, ignoring any radius."""
        candidates = self._with_distances(
            (station for station in stations if station.id in station_ids), origin
        )
        if not candidates:
            return None
        return min(candidates, key=lambda candidate: candidate.distance)

    @staticmethod
    def _with_distances(
        stations: Iterable[Station], origin: Coordinates
    ) -> list[StationDistance]:
        result: list[StationDistance] = []
        for station in stations:
            try:
                distance = calculate_distance(origin, station.coordinates)
            except InvalidCoordinateError:
                logger.debug(f"Skipping station {station.id} ({station.name}): invalid coordinates")
                continue
            result.append(StationDistance(station=station, distance=distance))
        return result

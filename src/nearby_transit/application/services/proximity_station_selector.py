"""Decides which stations make it into the final output."""

import logging

from nearby_transit.application.services.geo import calculate_distance
from nearby_transit.domain.errors import InvalidCoordinateError
from nearby_transit.domain.models.station_vehicle_group import StationVehicleGroup

logger = logging.getLogger(__name__)


class ProximityStationSelector:
    """Keeps the closest station with vehicles and at most one close neighbour."""

    def select(
        self,
        groups: list[StationVehicleGroup],
        *,
        filter_by_favorites: bool,
        max_stations: int,
        proximity_threshold: float,
    ) -> list[StationVehicleGroup]:
        """Select output stations from groups ordered by distance from the origin.

        A second station is only added in station-display mode, when
        ``max_stations > 1``, and when it lies within ``proximity_threshold``
        meters of the first selected station.
        """
        with_vehicles = [group for group in groups if group.vehicles]
        if not with_vehicles:
            return []

        first = with_vehicles[0]
        selected = [first]
        if filter_by_favorites or max_stations <= 1:
            return selected

        first_coordinates = first.station.station.coordinates
        for candidate in with_vehicles[1:]:
            try:
                distance = calculate_distance(
                    first_coordinates, candidate.station.station.coordinates
                )
            except InvalidCoordinateError:
                logger.debug(
                    f"Skipping station {candidate.station.station.id} in proximity check: "
                    "invalid coordinates"
                )
                continue
            if distance <= proximity_threshold:
                selected.append(candidate)
                break
        return selected

"""Distance filtering of vehicles on busy routes."""

import logging
from collections.abc import Mapping, Sequence

from nearby_transit.application.services.geo import calculate_distance
from nearby_transit.domain.errors import InvalidCoordinateError
from nearby_transit.domain.models.live_vehicle import LiveVehicle
from nearby_transit.domain.models.route import RouteActivity
from nearby_transit.domain.models.station import Station

logger = logging.getLogger(__name__)


class BusyRouteFilter:
    """Drops far-away vehicles of busy routes, keeping every vehicle of quiet routes.

    A route is distance filtered only when its activity marks it busy and it
    has more than one vehicle. Vehicles of routes without activity data are
    kept.
    """

    def filter(
        self,
        vehicles: Sequence[LiveVehicle],
        route_activity: Mapping[str, RouteActivity],
        stations: Sequence[Station],
        max_distance: float,
    ) -> list[LiveVehicle]:
        """Return the vehicles worth matching, in input order.

        Args:
            vehicles: Live vehicles of the agency.
            route_activity: Activity per route id.
            stations: Target stations distances are measured against.
            max_distance: Meters a busy-route vehicle may be from its nearest target station.
        """
        if not stations:
            logger.debug("No target stations for distance filtering, keeping all vehicles")
            return list(vehicles)

        kept: list[LiveVehicle] = []
        for vehicle in vehicles:
            if not self.should_apply_distance_filter(vehicle.route_id, route_activity):
                kept.append(vehicle)
                continue
            distance = self._distance_to_nearest(vehicle, stations)
            if distance is not None and distance <= max_distance:
                kept.append(vehicle)

        if len(kept) < len(vehicles):
            logger.info(
                f"Distance filtered {len(vehicles) - len(kept)} of {len(vehicles)} vehicles "
                f"on busy routes (max {max_distance:.0f}m)"
            )
        return kept

    @staticmethod
    def should_apply_distance_filter(
        route_id: str, route_activity: Mapping[str, RouteActivity]
    ) -> bool:
        activity = route_activity.get(route_id)
        if activity is None:
            return False
        return activity.is_busy and activity.vehicle_count > 1

    @staticmethod
    def _distance_to_nearest(vehicle: LiveVehicle, stations: Sequence[Station]) -> float | None:
        distances = []
        for station in stations:
            try:
                distances.append(calculate_distance(vehicle.position, station.coordinates))
            except InvalidCoordinateError:
                continue
        if not distances:
            logger.debug(f"Vehicle {vehicle.id} has no measurable distance, dropping it")
            return None
        return min(distances)

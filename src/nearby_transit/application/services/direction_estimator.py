"""Direction and ETA inference for a vehicle relative to one station."""

import math

from nearby_transit.application.services.geo import calculate_distance
from nearby_transit.domain.errors import InvalidCoordinateError
from nearby_transit.domain.models.direction import (
    DirectionError,
    DirectionEstimate,
    DirectionOutcome,
    VehicleDirection,
)
from nearby_transit.domain.models.live_vehicle import LiveVehicle
from nearby_transit.domain.models.station import Station
from nearby_transit.domain.models.trip import TripStop

MINUTES_PER_STOP = 2


class DirectionEstimator:
    """Infers arriving/departing state and minutes away from stop sequences.

    The vehicle's position along its trip is the trip stop nearest to its GPS
    position; it is not projected onto the route shape.
    """

    def estimate(
        self,
        vehicle: LiveVehicle,
        station: Station,
        trip_stops: list[TripStop],
        stations_by_id: dict[str, Station],
    ) -> DirectionOutcome:
        target_sequence = next(
            (stop.sequence for stop in trip_stops if stop.stop_id == station.id), None
        )
        if target_sequence is None:
            return self._error("station is not on the vehicle's trip", vehicle, station)

        closest_sequence = self.closest_sequence(vehicle, trip_stops, stations_by_id)
        if closest_sequence is None:
            return self._error("no trip stop with usable coordinates", vehicle, station)

        if closest_sequence < target_sequence:
            return DirectionEstimate(
                direction=VehicleDirection.ARRIVING,
                minutes_away=max(1, (target_sequence - closest_sequence) * MINUTES_PER_STOP),
                closest_sequence=closest_sequence,
                target_sequence=target_sequence,
            )
        if closest_sequence > target_sequence:
            return DirectionEstimate(
                direction=VehicleDirection.DEPARTING,
                minutes_away=(closest_sequence - target_sequence) * MINUTES_PER_STOP,
                closest_sequence=closest_sequence,
                target_sequence=target_sequence,
            )
        return DirectionEstimate(
            direction=VehicleDirection.ARRIVING,
            minutes_away=0,
            closest_sequence=closest_sequence,
            target_sequence=target_sequence,
        )

    @staticmethod
    def closest_sequence(
        vehicle: LiveVehicle,
        trip_stops: list[TripStop],
        stations_by_id: dict[str, Station],
    ) -> int | None:
        """Sequence of the trip stop nearest to the vehicle, or None if none can be measured."""
        best_distance = math.inf
        best_sequence: int | None = None
        for stop in trip_stops:
            stop_station = stations_by_id.get(stop.stop_id)
            if stop_station is None:
                continue
            try:
                distance = calculate_distance(vehicle.position, stop_station.coordinates)
            except InvalidCoordinateError:
                continue
            if distance < best_distance:
                best_distance = distance
                best_sequence = stop.sequence
        return best_sequence

    @staticmethod
    def _error(reason: str, vehicle: LiveVehicle, station: Station) -> DirectionError:
        return DirectionError(reason=reason, vehicle_id=vehicle.id, station_id=station.id)

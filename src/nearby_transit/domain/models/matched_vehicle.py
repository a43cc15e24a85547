"""Matched vehicle domain model."""

from dataclasses import dataclass, field
from datetime import datetime

from .direction import VehicleDirection
from .live_vehicle import LiveVehicle
from .station import Station


@dataclass(frozen=True)
class StopSequenceEntry:
    """One stop of a vehicle's trip, marked with the vehicle's position and terminus."""

    stop_id: str
    stop_name: str
    sequence: int
    is_current: bool
    is_destination: bool


@dataclass(frozen=True)
class MatchedVehicle:
    """A live vehicle resolved against one station."""

    vehicle: LiveVehicle
    route_id: str
    route_name: str
    destination: str
    direction: VehicleDirection
    minutes_away: int
    estimated_arrival: datetime
    station: Station
    stop_sequence: list[StopSequenceEntry] = field(default_factory=list)

    @property
    def id(self) -> str:
        return self.vehicle.id

    @property
    def is_at_station(self) -> bool:
        """True when the vehicle is arriving and zero minutes away."""
        return self.direction is VehicleDirection.ARRIVING and self.minutes_away == 0

    @property
    def is_arriving(self) -> bool:
        """True when the vehicle is still on its way to the station."""
        return self.direction is VehicleDirection.ARRIVING and self.minutes_away > 0

    @property
    def has_departed(self) -> bool:
        return self.direction is VehicleDirection.DEPARTING

"""Direction inference results."""

from dataclasses import dataclass
from enum import Enum


class VehicleDirection(str, Enum):
    """Movement of a vehicle relative to one station."""

    ARRIVING = "arriving"
    DEPARTING = "departing"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class DirectionEstimate:
    """Successful direction inference for a (vehicle, station) pair."""

    direction: VehicleDirection
    minutes_away: int
    closest_sequence: int
    target_sequence: int


@dataclass(frozen=True)
class DirectionError:
    """Direction could not be inferred for a (vehicle, station) pair."""

    reason: str
    vehicle_id: str
    station_id: str


DirectionOutcome = DirectionEstimate | DirectionError

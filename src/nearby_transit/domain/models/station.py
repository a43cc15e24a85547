"""Station domain model."""

from dataclasses import dataclass

from .coordinates import Coordinates


@dataclass(frozen=True)
class Station:
    """Represents a public transport station (a GTFS stop)."""

    id: str
    name: str
    coordinates: Coordinates


@dataclass(frozen=True)
class StationDistance:
    """A station paired with its distance in meters from the rider's location."""

    station: Station
    distance: float

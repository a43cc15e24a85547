"""Live vehicle domain model."""

from dataclasses import dataclass
from datetime import datetime

from .coordinates import Coordinates


@dataclass(frozen=True)
class LiveVehicle:
    """A vehicle position as reported by the real-time feed for one poll cycle."""

    id: str
    route_id: str
    trip_id: str | None
    position: Coordinates
    timestamp: datetime
    speed: float | None = None
    label: str | None = None
    is_wheelchair_accessible: bool = False
    is_bike_accessible: bool = False

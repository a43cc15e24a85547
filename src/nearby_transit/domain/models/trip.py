"""Trip and stop time domain models."""

from dataclasses import dataclass


@dataclass(frozen=True)
class Trip:
    """One scheduled run of a route."""

    id: str
    route_id: str
    headsign: str | None = None


@dataclass(frozen=True)
class StopTime:
    """Position of a stop within a trip. Sequences are unique per trip."""

    trip_id: str
    stop_id: str
    sequence: int


@dataclass(frozen=True)
class TripStop:
    """A stop of a trip, as stored in the trip stop index."""

    stop_id: str
    sequence: int

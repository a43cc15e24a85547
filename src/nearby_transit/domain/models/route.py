"""Route domain model."""

from dataclasses import dataclass


@dataclass(frozen=True)
class Route:
    """A transit route. ``name`` is the rider-facing route number (e.g. "24B")."""

    id: str
    name: str
    description: str | None = None


@dataclass(frozen=True)
class RouteSummary:
    """A route observed at a station, with how many matched vehicles serve it."""

    route_id: str
    route_name: str
    vehicle_count: int


@dataclass(frozen=True)
class RouteActivity:
    """Live activity of a route across the whole agency."""

    route_id: str
    vehicle_count: int
    is_busy: bool

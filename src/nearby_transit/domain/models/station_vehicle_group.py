"""Station vehicle group domain model."""

from dataclasses import dataclass, field

from .matched_vehicle import MatchedVehicle
from .route import RouteSummary
from .station import StationDistance


@dataclass(frozen=True)
class StationVehicleGroup:
    """The vehicles selected for one station, plus every route observed there."""

    station: StationDistance
    vehicles: list[MatchedVehicle] = field(default_factory=list)
    all_routes: list[RouteSummary] = field(default_factory=list)

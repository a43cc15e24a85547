"""Result of one pipeline run."""

from dataclasses import dataclass, field

from .degradation import DegradationLevel
from .route import RouteActivity
from .station_vehicle_group import StationVehicleGroup


@dataclass(frozen=True)
class StationVehicleResult:
    """Station groups produced by one run, tagged with the run's generation."""

    groups: list[StationVehicleGroup]
    generation: int
    confidence: float = 1.0
    limitations: list[str] = field(default_factory=list)
    degradation_level: DegradationLevel = DegradationLevel.NONE
    route_activity: dict[str, RouteActivity] = field(default_factory=dict)
    used_schedule_fallback: bool = False

    @property
    def is_degraded(self) -> bool:
        return self.confidence < 1.0 or bool(self.limitations)

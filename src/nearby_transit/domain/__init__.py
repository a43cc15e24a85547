"""Domain layer - core models, errors and ports."""

from nearby_transit.domain.models import (
    Coordinates,
    DisplaySettings,
    LiveVehicle,
    Route,
    Station,
    StationVehicleGroup,
    StopTime,
    Trip,
)
from nearby_transit.domain.ports import DegradationService, TransitDataRepository

__all__ = [
    "Coordinates",
    "DegradationService",
    "DisplaySettings",
    "LiveVehicle",
    "Route",
    "Station",
    "StationVehicleGroup",
    "StopTime",
    "TransitDataRepository",
    "Trip",
]

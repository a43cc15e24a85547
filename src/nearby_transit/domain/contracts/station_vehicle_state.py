"""Protocol for holding the latest pipeline result."""

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from nearby_transit.domain.models.station_vehicle_result import StationVehicleResult


class StationVehicleStateProtocol(Protocol):
    """Protocol for a result holder that ignores results from stale runs."""

    def apply(self, result: "StationVehicleResult") -> bool:
        """Apply a result unless a newer generation was already applied.

        Args:
            result: The pipeline result.

        Returns:
            True if the result was applied.
        """
        ...

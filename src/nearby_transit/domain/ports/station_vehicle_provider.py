"""Station vehicle provider port."""

from collections.abc import Iterable
from typing import Any, Protocol

from nearby_transit.domain.models.coordinates import Coordinates
from nearby_transit.domain.models.display_settings import DisplaySettings
from nearby_transit.domain.models.station_vehicle_result import StationVehicleResult


class StationVehicleProvider(Protocol):
    """Port for running the vehicle-to-station matching pipeline."""

    async def get_station_vehicle_groups(
        self,
        origin: Coordinates,
        settings: DisplaySettings | None = None,
        favorites: Iterable[Any] = (),
    ) -> StationVehicleResult:
        """Get the nearby stations and the vehicles relevant to them.

        Args:
            origin: Rider location.
            settings: Display settings.
            favorites: Favorite routes, used in favorites mode.

        Returns:
            The selected station groups tagged with the run's generation.
        """
        ...

    def is_current_generation(self, generation: int) -> bool:
        """Whether a result of ``generation`` is from the latest started run."""
        ...

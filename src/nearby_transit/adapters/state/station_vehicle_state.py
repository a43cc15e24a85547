"""Holder of the latest applied pipeline result."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from nearby_transit.domain.contracts.station_vehicle_state import StationVehicleStateProtocol

if TYPE_CHECKING:
    from nearby_transit.domain.models.station_vehicle_result import StationVehicleResult

logger = logging.getLogger(__name__)


class StationVehicleState(StationVehicleStateProtocol):
    """Latest station groups shown to the rider.

    Runs may finish out of order; a result older than the newest applied
    generation is discarded.
    """

    def __init__(self) -> None:
        self.result: StationVehicleResult | None = None
        self.last_update: datetime | None = None

    @property
    def generation(self) -> int:
        return self.result.generation if self.result is not None else 0

    def apply(self, result: StationVehicleResult) -> bool:
        if self.result is not None and result.generation < self.result.generation:
            logger.debug(
                f"Discarding stale result of generation {result.generation} "
                f"(current {self.result.generation})"
            )
            return False
        self.result = result
        self.last_update = datetime.now(UTC)
        return True

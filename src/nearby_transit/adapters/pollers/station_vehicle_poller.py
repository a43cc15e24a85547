"""Poller running the station vehicle pipeline periodically."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from typing import TYPE_CHECKING

from nearby_transit.domain.contracts.station_vehicle_poller import StationVehiclePollerProtocol
from nearby_transit.domain.contracts.station_vehicle_state import (
    StationVehicleStateProtocol,  # noqa: TC001 - Runtime dependency: used in __init__ signature
)

if TYPE_CHECKING:
    from nearby_transit.domain.models.coordinates import Coordinates
    from nearby_transit.domain.models.display_settings import DisplaySettings
    from nearby_transit.domain.models.station_vehicle_result import StationVehicleResult
    from nearby_transit.domain.ports import StationVehicleProvider

logger = logging.getLogger(__name__)


class StationVehiclePoller(StationVehiclePollerProtocol):
    """Runs the pipeline on an interval and applies results to the state."""

    def __init__(
        self,
        service: StationVehicleProvider,
        state: StationVehicleStateProtocol,
        origin: Coordinates,
        settings: DisplaySettings,
        favorites: list[str],
        refresh_interval_seconds: float,
        performance_budget_ms: float | None = None,
        on_update: Callable[[StationVehicleResult], None] | None = None,
    ) -> None:
        """Initialize the poller.

        Args:
            service: The matching pipeline.
            state: Receives each result; stale generations are dropped there.
            origin: Rider location.
            settings: Display settings for every run.
            favorites: Favorite route names.
            refresh_interval_seconds: Delay between runs.
            performance_budget_ms: Runs slower than this are logged as slow.
            on_update: Called with every applied result.
        """
        self.service = service
        self.state = state
        self.origin = origin
        self.settings = settings
        self.favorites = favorites
        self.refresh_interval_seconds = refresh_interval_seconds
        self.performance_budget_ms = performance_budget_ms
        self.on_update = on_update
        self._task: asyncio.Task | None = None

    async def start(self) -> None:
        """Start the poller."""
        if self._task is not None and not self._task.done():
            logger.warning("Station vehicle poller already running")
            return
        self._task = asyncio.create_task(self._poll_loop())
        logger.info(
            f"Started station vehicle poller (every {self.refresh_interval_seconds}s)"
        )

    async def stop(self) -> None:
        """Stop the poller."""
        if self._task and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                logger.info("Station vehicle poller cancelled")
            logger.info("Stopped station vehicle poller")

    async def _poll_loop(self) -> None:
        await self.refresh()
        while True:
            await asyncio.sleep(self.refresh_interval_seconds)
            await self.refresh()

    async def refresh(self) -> bool:
        """Run the pipeline once. Returns True if the result was applied."""
        started = time.perf_counter()
        result = await self.service.get_station_vehicle_groups(
            self.origin, self.settings, self.favorites
        )
        elapsed_ms = (time.perf_counter() - started) * 1000
        if self.performance_budget_ms is not None and elapsed_ms > self.performance_budget_ms:
            logger.warning(
                f"Pipeline run took {elapsed_ms:.0f}ms "
                f"(budget {self.performance_budget_ms:.0f}ms)"
            )

        if not self.state.apply(result):
            return False

        vehicle_count = sum(len(group.vehicles) for group in result.groups)
        logger.info(
            f"Updated station vehicles: {len(result.groups)} station(s), "
            f"{vehicle_count} vehicle(s), confidence {result.confidence:.1f}"
        )
        if result.limitations:
            logger.info(f"Limitations: {', '.join(result.limitations)}")
        if self.on_update is not None:
            self.on_update(result)
        return True

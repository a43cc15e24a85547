"""Main entry point for the nearby transit poller."""

import asyncio
import logging
import sys

import aiohttp

from nearby_transit.adapters.config import AppConfig, SettingsLoader
from nearby_transit.adapters.pollers import StationVehiclePoller
from nearby_transit.adapters.state import StationVehicleState
from nearby_transit.adapters.system import system_memory_usage
from nearby_transit.adapters.tranzy_api import TranzyTransitRepository
from nearby_transit.application.services import DegradationController, StationVehicleService

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
    stream=sys.stderr,
)

logger = logging.getLogger(__name__)


async def main() -> None:
    """Main application entry point."""
    try:
        config = AppConfig().load_toml()
        origin = SettingsLoader.origin(config)
    except (ValueError, FileNotFoundError) as e:
        logger.error(f"Invalid configuration: {e}")
        sys.exit(1)

    if not config.tranzy_api_key:
        logger.error("No Tranzy API key configured. Set TRANZY_API_KEY in the environment or .env.")
        sys.exit(1)

    settings = SettingsLoader.display_settings(config)
    favorites = SettingsLoader.favorite_routes(config)
    if settings.filter_by_favorites:
        logger.info(f"Favorites mode with routes: {', '.join(favorites) or '(none)'}")

    controller = DegradationController(SettingsLoader.degradation_settings(config))
    await controller.start()

    async with aiohttp.ClientSession() as session:
        repository = TranzyTransitRepository(
            session,
            config.tranzy_api_key,
            base_url=config.tranzy_base_url,
            timeout_seconds=config.api_timeout_seconds,
        )
        service = StationVehicleService(
            repository,
            controller,
            config.agency_id,
            filtering=config.filtering,
            memory_probe=system_memory_usage,
        )
        poller = StationVehiclePoller(
            service,
            StationVehicleState(),
            origin,
            settings,
            favorites,
            refresh_interval_seconds=config.refresh_interval_seconds,
            performance_budget_ms=config.performance_budget_ms,
        )

        try:
            await poller.start()
            await asyncio.Event().wait()
        finally:
            logger.info("Shutting down...")
            await poller.stop()
            await controller.dispose()


def run() -> None:
    """Synchronous entry point for the poller command."""
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    run()

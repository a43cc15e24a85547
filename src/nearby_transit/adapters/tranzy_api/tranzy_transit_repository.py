"""Tranzy transit data repository adapter."""

import logging
from typing import TYPE_CHECKING

from nearby_transit.adapters.tranzy_api.constants import (
    ROUTES_PATH,
    STOP_TIMES_PATH,
    STOPS_PATH,
    TRANZY_BASE_URL,
    TRIPS_PATH,
    VEHICLES_PATH,
)
from nearby_transit.adapters.tranzy_api.http_client import TranzyHttpClient
from nearby_transit.adapters.tranzy_api.record_parser import RecordParser
from nearby_transit.domain.models.live_vehicle import LiveVehicle
from nearby_transit.domain.models.route import Route
from nearby_transit.domain.models.station import Station
from nearby_transit.domain.models.trip import StopTime, Trip
from nearby_transit.domain.ports.transit_data_repository import TransitDataRepository

logger = logging.getLogger(__name__)

if TYPE_CHECKING:
    from aiohttp import ClientSession


class TranzyTransitRepository(TransitDataRepository):
    """Adapter for the Tranzy open-data API."""

    def __init__(
        self,
        session: "ClientSession",
        api_key: str,
        base_url: str = TRANZY_BASE_URL,
        timeout_seconds: float = 10,
    ) -> None:
        """Initialize with an aiohttp session and credentials.

        Args:
            session: aiohttp ClientSession for HTTP requests.
            api_key: Tranzy API key.
            base_url: API base URL.
            timeout_seconds: Total timeout per request.
        """
        self._http_client = TranzyHttpClient(
            session, api_key, base_url=base_url, timeout_seconds=timeout_seconds
        )

    async def get_stations(self, agency_id: str) -> list[Station]:
        records = await self._http_client.fetch_list(STOPS_PATH, agency_id)
        return RecordParser.parse_all(records, RecordParser.parse_station, "stop")

    async def get_vehicles(self, agency_id: str) -> list[LiveVehicle]:
        records = await self._http_client.fetch_list(VEHICLES_PATH, agency_id)
        vehicles = RecordParser.parse_all(records, RecordParser.parse_vehicle, "vehicle")
        logger.debug(f"Parsed {len(vehicles)} of {len(records)} vehicle records")
        return vehicles

    async def get_routes(self, agency_id: str) -> list[Route]:
        records = await self._http_client.fetch_list(ROUTES_PATH, agency_id)
        return RecordParser.parse_all(records, RecordParser.parse_route, "route")

    async def get_trips(self, agency_id: str) -> list[Trip]:
        records = await self._http_client.fetch_list(TRIPS_PATH, agency_id)
        return RecordParser.parse_all(records, RecordParser.parse_trip, "trip")

    async def get_stop_times(self, agency_id: str) -> list[StopTime]:
        records = await self._http_client.fetch_list(STOP_TIMES_PATH, agency_id)
        return RecordParser.parse_all(records, RecordParser.parse_stop_time, "stop_time")

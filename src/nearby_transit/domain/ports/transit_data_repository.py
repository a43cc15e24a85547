"""Transit data repository port."""

from typing import Protocol

from nearby_transit.domain.models.live_vehicle import LiveVehicle
from nearby_transit.domain.models.route import Route
from nearby_transit.domain.models.station import Station
from nearby_transit.domain.models.trip import StopTime, Trip


class TransitDataRepository(Protocol):
    """Port for fetching an agency's reference and real-time data.

    Implementations raise ``DataUnavailableError`` when a source cannot be read.
    """

    async def get_stations(self, agency_id: str) -> list[Station]:
        """Get all stations of the agency."""
        ...

    async def get_vehicles(self, agency_id: str) -> list[LiveVehicle]:
        """Get the current live vehicle positions."""
        ...

    async def get_routes(self, agency_id: str) -> list[Route]:
        """Get all routes of the agency."""
        ...

    async def get_trips(self, agency_id: str) -> list[Trip]:
        """Get all trips of the agency."""
        ...

    async def get_stop_times(self, agency_id: str) -> list[StopTime]:
        """Get all stop times of the agency."""
        ...

"""Ports (interfaces) for the ports-and-adapters architecture."""

from nearby_transit.domain.ports.degradation_service import DegradationService
from nearby_transit.domain.ports.station_vehicle_provider import StationVehicleProvider
from nearby_transit.domain.ports.transit_data_repository import TransitDataRepository

__all__ = [
    "DegradationService",
    "StationVehicleProvider",
    "TransitDataRepository",
]

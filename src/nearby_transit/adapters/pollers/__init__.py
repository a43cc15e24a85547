"""Pollers for periodic pipeline runs."""

from nearby_transit.adapters.pollers.station_vehicle_poller import StationVehiclePoller

__all__ = ["StationVehiclePoller"]

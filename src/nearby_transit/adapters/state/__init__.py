"""Result state adapters."""

from nearby_transit.adapters.state.station_vehicle_state import StationVehicleState

__all__ = ["StationVehicleState"]

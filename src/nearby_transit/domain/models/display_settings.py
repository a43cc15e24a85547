"""Display settings for the matching pipeline."""

from pydantic import BaseModel, ConfigDict, Field


class DisplaySettings(BaseModel):
    """Per-request tunables of the vehicle-to-station matching pipeline."""

    model_config = ConfigDict(frozen=True)

    filter_by_favorites: bool = False
    max_stations: int = Field(default=2, ge=1)
    max_vehicles_per_station: int = Field(default=5, ge=1)
    show_all_vehicles_per_route: bool = False
    max_search_radius: float = Field(default=5000, gt=0, description="Meters")
    max_stations_to_check: int = Field(default=20, ge=1)
    proximity_threshold: float = Field(default=200, ge=0, description="Meters")

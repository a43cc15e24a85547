"""Route filtering configuration with documented bounds."""

from pydantic import BaseModel, ConfigDict, Field

BUSY_ROUTE_THRESHOLD_BOUNDS = (0, 50)
DISTANCE_FILTER_THRESHOLD_BOUNDS = (100, 10000)


class FilteringConfig(BaseModel):
    """Fully populated filtering configuration.

    Values are strict: integers must be real ints (not bools or floats) and
    flags must be real bools. Partial or invalid input is repaired by
    ``DegradationController.handle_invalid_configuration``.
    """

    model_config = ConfigDict(frozen=True, strict=True, extra="ignore")

    busy_route_threshold: int = Field(
        default=5,
        ge=BUSY_ROUTE_THRESHOLD_BOUNDS[0],
        le=BUSY_ROUTE_THRESHOLD_BOUNDS[1],
        description="Vehicles on a route at which it counts as busy",
    )
    distance_filter_threshold: int = Field(
        default=2000,
        ge=DISTANCE_FILTER_THRESHOLD_BOUNDS[0],
        le=DISTANCE_FILTER_THRESHOLD_BOUNDS[1],
        description="Meters",
    )
    enable_debug_logging: bool = False
    performance_monitoring: bool = True

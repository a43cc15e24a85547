"""Coordinates domain model."""

import math
from dataclasses import dataclass


@dataclass(frozen=True)
class Coordinates:
    """A WGS84 position."""

    latitude: float
    longitude: float

    def is_valid(self) -> bool:
        """Return True if both values are finite numbers within range."""
        try:
            lat = float(self.latitude)
            lon = float(self.longitude)
        except (TypeError, ValueError):
            return False
        if not (math.isfinite(lat) and math.isfinite(lon)):
            return False
        return -90.0 <= lat <= 90.0 and -180.0 <= lon <= 180.0

"""Great-circle distance."""

import math

from nearby_transit.domain.errors import InvalidCoordinateError
from nearby_transit.domain.models.coordinates import Coordinates

EARTH_RADIUS_METERS = 6_371_000


def _validated(point: Coordinates) -> tuple[float, float]:
    if not point.is_valid():
        raise InvalidCoordinateError(point.latitude, point.longitude)
    return float(point.latitude), float(point.longitude)


def calculate_distance(a: Coordinates, b: Coordinates) -> float:
    """Return the haversine distance between two points in meters.

    Raises:
        InvalidCoordinateError: If either point is non-finite or out of range.
    """
    lat1, lon1 = _validated(a)
    lat2, lon2 = _validated(b)

    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)

    h = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    return 2 * EARTH_RADIUS_METERS * math.atan2(math.sqrt(h), math.sqrt(1 - h))

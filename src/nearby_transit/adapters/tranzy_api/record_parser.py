"""Parser for Tranzy open-data records."""

import logging
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any, TypeVar

from nearby_transit.adapters.tranzy_api.constants import BIKE_ACCESSIBLE, WHEELCHAIR_ACCESSIBLE
from nearby_transit.domain.models.coordinates import Coordinates
from nearby_transit.domain.models.live_vehicle import LiveVehicle
from nearby_transit.domain.models.route import Route
from nearby_transit.domain.models.station import Station
from nearby_transit.domain.models.trip import StopTime, Trip

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _optional_str(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _required_str(record: dict[str, Any], key: str) -> str:
    value = _optional_str(record.get(key))
    if value is None:
        raise ValueError(f"missing {key}")
    return value


class RecordParser:
    """Parses Tranzy JSON records into domain objects.

    Records that cannot be parsed are logged and skipped; a malformed record
    never fails the whole response.
    """

    @staticmethod
    def parse_all(
        records: list[dict[str, Any]], parse: Callable[[dict[str, Any]], T | None], kind: str
    ) -> list[T]:
        results = []
        for record in records:
            try:
                parsed = parse(record)
            except (KeyError, TypeError, ValueError) as e:
                logger.error(f"Skipping malformed {kind} record {record!r}: {e}")
                continue
            if parsed is not None:
                results.append(parsed)
        return results

    @staticmethod
    def parse_station(record: dict[str, Any]) -> Station:
        stop_id = _required_str(record, "stop_id")
        return Station(
            id=stop_id,
            name=_optional_str(record.get("stop_name")) or f"Stop {stop_id}",
            coordinates=Coordinates(
                latitude=float(record["stop_lat"]), longitude=float(record["stop_lon"])
            ),
        )

    @staticmethod
    def parse_vehicle(record: dict[str, Any]) -> LiveVehicle | None:
        """Parse a vehicle position; vehicles without position or route are not tracked."""
        latitude = record.get("latitude")
        longitude = record.get("longitude")
        route_id = _optional_str(record.get("route_id"))
        if latitude is None or longitude is None or route_id is None:
            return None

        speed = record.get("speed")
        return LiveVehicle(
            id=_required_str(record, "id"),
            route_id=route_id,
            trip_id=_optional_str(record.get("trip_id")),
            position=Coordinates(latitude=float(latitude), longitude=float(longitude)),
            timestamp=RecordParser.parse_timestamp(record.get("timestamp")),
            speed=float(speed) if speed is not None else None,
            label=_optional_str(record.get("label")),
            is_wheelchair_accessible=record.get("wheelchair_accessible") == WHEELCHAIR_ACCESSIBLE,
            is_bike_accessible=record.get("bike_accessible") == BIKE_ACCESSIBLE,
        )

    @staticmethod
    def parse_route(record: dict[str, Any]) -> Route:
        route_id = _required_str(record, "route_id")
        return Route(
            id=route_id,
            name=_optional_str(record.get("route_short_name")) or route_id,
            description=_optional_str(record.get("route_long_name"))
            or _optional_str(record.get("route_desc")),
        )

    @staticmethod
    def parse_trip(record: dict[str, Any]) -> Trip:
        return Trip(
            id=_required_str(record, "trip_id"),
            route_id=_required_str(record, "route_id"),
            headsign=_optional_str(record.get("trip_headsign")),
        )

    @staticmethod
    def parse_stop_time(record: dict[str, Any]) -> StopTime:
        return StopTime(
            trip_id=_required_str(record, "trip_id"),
            stop_id=_required_str(record, "stop_id"),
            sequence=int(record["stop_sequence"]),
        )

    @staticmethod
    def parse_timestamp(value: Any) -> datetime:
        """Parse an ISO-8601 timestamp, assuming UTC when no offset is given.

        Missing or unparseable values fall back to the current time.
        """
        if isinstance(value, str) and value:
            try:
                parsed = datetime.fromisoformat(value)
            except ValueError:
                logger.debug(f"Unparseable vehicle timestamp {value!r}")
            else:
                return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)
        return datetime.now(UTC)

"""Index of each trip's stops."""

from collections.abc import Iterable

from nearby_transit.domain.errors import DataUnavailableError
from nearby_transit.domain.models.trip import StopTime, TripStop


class TripStopIndex:
    """Maps trip ids to their stops for one pipeline run.

    Stops are kept in input order; use ``sorted_stops`` for sequence order.
    """

    def __init__(self, trip_stops: dict[str, list[TripStop]]) -> None:
        self._trip_stops = trip_stops

    @classmethod
    def build(cls, stop_times: Iterable[StopTime]) -> "TripStopIndex":
        """Build the index from all stop times of the agency.

        Raises:
            DataUnavailableError: If there are no stop times.
        """
        trip_stops: dict[str, list[TripStop]] = {}
        for stop_time in stop_times:
            trip_stops.setdefault(stop_time.trip_id, []).append(
                TripStop(stop_id=stop_time.stop_id, sequence=stop_time.sequence)
            )
        if not trip_stops:
            raise DataUnavailableError("stop_times", "no stop times to index")
        return cls(trip_stops)

    def __contains__(self, trip_id: object) -> bool:
        return trip_id in self._trip_stops

    def __len__(self) -> int:
        return len(self._trip_stops)

    def stops_for_trip(self, trip_id: str) -> list[TripStop]:
        return list(self._trip_stops.get(trip_id, []))

    def sorted_stops(self, trip_id: str) -> list[TripStop]:
        return sorted(self._trip_stops.get(trip_id, []), key=lambda stop: stop.sequence)

    def sequence_of(self, trip_id: str, stop_id: str) -> int | None:
        for stop in self._trip_stops.get(trip_id, []):
            if stop.stop_id == stop_id:
                return stop.sequence
        return None

    def serves(self, trip_id: str | None, stop_id: str) -> bool:
        if trip_id is None:
            return False
        return self.sequence_of(trip_id, stop_id) is not None

    def terminus_sequence(self, trip_id: str) -> int | None:
        stops = self._trip_stops.get(trip_id)
        if not stops:
            return None
        return max(stop.sequence for stop in stops)

    def trips_serving(self, station_ids: Iterable[str]) -> set[str]:
        """Trip ids whose stops include any of ``station_ids``."""
        wanted = set(station_ids)
        return {
            trip_id
            for trip_id, stops in self._trip_stops.items()
            if any(stop.stop_id in wanted for stop in stops)
        }

    def stations_served_by(self, trip_ids: Iterable[str]) -> set[str]:
        """Station ids visited by any of ``trip_ids``."""
        served: set[str] = set()
        for trip_id in trip_ids:
            served.update(stop.stop_id for stop in self._trip_stops.get(trip_id, []))
        return served

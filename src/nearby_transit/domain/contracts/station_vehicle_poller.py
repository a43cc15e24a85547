"""Protocol for periodic station vehicle refresh."""

from typing import Protocol


class StationVehiclePollerProtocol(Protocol):
    """Protocol for polling the pipeline and updating state."""

    async def start(self) -> None:
        """Start the poller."""
        ...

    async def stop(self) -> None:
        """Stop the poller."""
        ...

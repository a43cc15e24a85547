"""Degradation service port."""

from typing import Any, Protocol

from nearby_transit.domain.models.degradation import (
    CircuitBreakerInfo,
    DegradationContext,
    DegradationLevel,
    FallbackRouteActivity,
    FallbackVehicleData,
    PerformanceIssue,
)
from nearby_transit.domain.models.filtering_config import FilteringConfig
from nearby_transit.domain.models.live_vehicle import LiveVehicle
from nearby_transit.domain.models.route import RouteActivity


class DegradationService(Protocol):
    """Port for circuit breakers and fallback strategies."""

    async def handle_missing_vehicle_data(self, context: DegradationContext) -> FallbackVehicleData:
        """Return substitute vehicle data for a failed vehicle fetch."""
        ...

    async def handle_route_data_unavailability(
        self, context: DegradationContext
    ) -> FallbackRouteActivity:
        """Return substitute route activity for unavailable route data."""
        ...

    async def handle_performance_issues(self, issue: PerformanceIssue) -> DegradationContext:
        """Classify a performance issue and apply mitigations."""
        ...

    def handle_invalid_configuration(self, config: dict[str, Any]) -> FilteringConfig:
        """Return a fully valid filtering config built from partial input."""
        ...

    def get_circuit_breaker_info(self, component: str) -> CircuitBreakerInfo:
        """Get the state of a component's circuit breaker."""
        ...

    def update_circuit_breaker(self, component: str, success: bool) -> None:
        """Record the outcome of a guarded operation."""
        ...

    def reset_circuit_breaker(self, component: str) -> None:
        """Force a component's circuit breaker back to closed."""
        ...

    def is_call_permitted(self, component: str) -> bool:
        """Whether the guarded operation may be invoked now."""
        ...

    def record_degradation_event(self, context: DegradationContext) -> None:
        """Append an event to the degradation history."""
        ...

    def cache_vehicle_data(self, key: str, vehicles: list[LiveVehicle]) -> None:
        """Remember a successful vehicle fetch for later fallbacks."""
        ...

    def cache_route_activity(self, key: str, activities: dict[str, RouteActivity]) -> None:
        """Remember computed route activity for later fallbacks."""
        ...

    def get_current_degradation_level(self) -> DegradationLevel:
        """Highest level recorded in the recent window."""
        ...

    def get_degradation_history(self) -> list[DegradationContext]:
        """Copy of the recorded degradation events."""
        ...

    def clear_degradation_history(self) -> None:
        """Forget all recorded degradation events."""
        ...

"""Error taxonomy for the matching pipeline and its resilience layer."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from nearby_transit.domain.models.degradation import PerformanceIssue


class NearbyTransitError(Exception):
    """Base class for all errors raised by nearby_transit."""


class InvalidCoordinateError(NearbyTransitError):
    """A latitude/longitude pair is not finite or out of range."""

    def __init__(self, latitude: Any, longitude: Any) -> None:
        super().__init__(f"Invalid coordinates: lat={latitude!r}, lon={longitude!r}")
        self.latitude = latitude
        self.longitude = longitude


class DataUnavailableError(NearbyTransitError):
    """An upstream collaborator returned no usable data."""

    def __init__(self, source: str, reason: str = "no data returned") -> None:
        super().__init__(f"{source} unavailable: {reason}")
        self.source = source
        self.reason = reason


class ConfigValidationError(NearbyTransitError):
    """A configuration value is out of range or has the wrong type."""

    def __init__(self, field: str, value: Any, reason: str) -> None:
        super().__init__(f"Invalid {field}={value!r}: {reason}")
        self.field = field
        self.value = value
        self.reason = reason


class CircuitOpenError(NearbyTransitError):
    """The circuit for a component is open; the fallback path must be used."""

    def __init__(self, component: str) -> None:
        super().__init__(f"Circuit breaker for {component} is open")
        self.component = component


class PerformanceDegradationError(NearbyTransitError):
    """Measured pipeline metrics breached the degradation thresholds."""

    def __init__(self, issue: PerformanceIssue) -> None:
        metrics = issue.metrics
        super().__init__(
            f"Performance degraded: response_time={metrics.response_time:.0f}ms, "
            f"error_rate={metrics.error_rate:.2f}, memory_usage={metrics.memory_usage:.2f}"
        )
        self.issue = issue

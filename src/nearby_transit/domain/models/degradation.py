"""Degradation, circuit breaker and fallback domain models."""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Literal

from .live_vehicle import LiveVehicle
from .route import RouteActivity


class DegradationLevel(str, Enum):
    """Severity of a degradation event."""

    NONE = "none"
    MINIMAL = "minimal"
    MODERATE = "moderate"
    SEVERE = "severe"
    CRITICAL = "critical"

    @property
    def severity(self) -> int:
        return _LEVEL_SEVERITY[self]


_LEVEL_SEVERITY = {
    DegradationLevel.NONE: 1,
    DegradationLevel.MINIMAL: 2,
    DegradationLevel.MODERATE: 3,
    DegradationLevel.SEVERE: 4,
    DegradationLevel.CRITICAL: 5,
}


class FallbackStrategy(str, Enum):
    """How a failing stage is replaced."""

    USE_CACHE = "use_cache"
    USE_DEFAULTS = "use_defaults"
    SKIP_FILTERING = "skip_filtering"
    REDUCE_FUNCTIONALITY = "reduce_functionality"
    EMERGENCY_MODE = "emergency_mode"


class CircuitBreakerState(str, Enum):
    """State of a per-component circuit breaker."""

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


FallbackSource = Literal["cache", "defaults", "partial", "estimated"]


@dataclass(frozen=True)
class DegradationContext:
    """A recorded failure and the fallback chosen for it."""

    failure_type: str
    failure_message: str
    degradation_level: DegradationLevel
    fallback_strategy: FallbackStrategy
    timestamp: datetime
    affected_components: list[str] = field(default_factory=list)
    recovery_actions: list[str] = field(default_factory=list)
    estimated_recovery_time: timedelta | None = None


@dataclass
class CircuitBreakerConfig:
    """Tunables of one circuit breaker. Mutated by performance mitigations."""

    failure_threshold: int = 5
    success_threshold: int = 3
    timeout: timedelta = timedelta(seconds=60)
    # Failures further apart than this restart the count in CLOSED state
    window_size: timedelta = timedelta(minutes=5)
    enabled: bool = True


@dataclass
class CircuitBreakerInfo:
    """Live state of one circuit breaker."""

    config: CircuitBreakerConfig
    state: CircuitBreakerState = CircuitBreakerState.CLOSED
    failure_count: int = 0
    success_count: int = 0
    last_failure_time: datetime | None = None
    next_attempt_time: datetime | None = None


@dataclass(frozen=True)
class FallbackVehicleData:
    """Vehicle payload served instead of a live fetch."""

    vehicles: list[LiveVehicle]
    source: FallbackSource
    confidence: float
    limitations: list[str]
    last_updated: datetime


@dataclass(frozen=True)
class FallbackRouteActivity:
    """Route activity payload served when route data is unavailable."""

    route_activities: dict[str, RouteActivity]
    source: FallbackSource
    confidence: float
    limitations: list[str]
    last_updated: datetime


@dataclass(frozen=True)
class PerformanceMetrics:
    """Measured pipeline metrics.

    ``response_time`` is in milliseconds, ``memory_usage`` and ``error_rate``
    are fractions in [0, 1], ``throughput`` is vehicles processed per second.
    """

    response_time: float
    memory_usage: float = 0.0
    error_rate: float = 0.0
    throughput: float = 0.0


@dataclass(frozen=True)
class PerformanceIssue:
    """A performance observation handed to the degradation controller."""

    metrics: PerformanceMetrics
    detected: bool = True
    reported_severity: DegradationLevel | None = None
    recommendations: list[str] = field(default_factory=list)
    circuit_breaker_triggered: bool = False


@dataclass(frozen=True)
class DegradationSettings:
    """Constructor-level configuration of the degradation controller."""

    cache_ttl: timedelta = timedelta(minutes=10)
    max_history_size: int = 1000
    history_max_age: timedelta = timedelta(days=7)
    recent_level_window: timedelta = timedelta(minutes=5)
    cache_sweep_interval: timedelta = timedelta(minutes=5)
    history_prune_interval: timedelta = timedelta(hours=1)
    breaker_defaults: CircuitBreakerConfig = field(default_factory=CircuitBreakerConfig)

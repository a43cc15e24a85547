"""Circuit breakers, fallback data and performance mitigations."""

from __future__ import annotations

import asyncio
import logging
import re
from collections.abc import Callable, Mapping
from dataclasses import replace
from datetime import UTC, datetime, timedelta
from typing import Any

from pydantic import ValidationError

from nearby_transit.application.services.fallback_cache import InMemoryFallbackCache
from nearby_transit.domain.contracts.fallback_cache import (
    FallbackCacheProtocol,  # noqa: TC001 - Runtime dependency: used in __init__ signature
)
from nearby_transit.domain.errors import ConfigValidationError
from nearby_transit.domain.models.degradation import (
    CircuitBreakerInfo,
    CircuitBreakerState,
    DegradationContext,
    DegradationLevel,
    DegradationSettings,
    FallbackRouteActivity,
    FallbackStrategy,
    FallbackVehicleData,
    PerformanceIssue,
    PerformanceMetrics,
)
from nearby_transit.domain.models.filtering_config import FilteringConfig
from nearby_transit.domain.models.live_vehicle import LiveVehicle
from nearby_transit.domain.models.route import RouteActivity

logger = logging.getLogger(__name__)

PERFORMANCE_MONITOR = "performance-monitor"
CONFIGURATION_MANAGER = "configuration-manager"
PERFORMANCE_AFFECTED_COMPONENTS = ["route-analysis", "vehicle-filtering", "data-transformation"]

# (level, response_time ms, memory_usage, error_rate); first row exceeded wins.
PERFORMANCE_THRESHOLDS: list[tuple[DegradationLevel, float, float, float]] = [
    (DegradationLevel.CRITICAL, 10000, 0.9, 0.5),
    (DegradationLevel.SEVERE, 5000, 0.8, 0.3),
    (DegradationLevel.MODERATE, 2000, 0.7, 0.1),
    (DegradationLevel.MINIMAL, 1000, 0.6, 0.05),
]

LEVEL_STRATEGIES = {
    DegradationLevel.CRITICAL: FallbackStrategy.EMERGENCY_MODE,
    DegradationLevel.SEVERE: FallbackStrategy.REDUCE_FUNCTIONALITY,
    DegradationLevel.MODERATE: FallbackStrategy.USE_CACHE,
    DegradationLevel.MINIMAL: FallbackStrategy.USE_DEFAULTS,
    DegradationLevel.NONE: FallbackStrategy.USE_CACHE,
}

RECOVERY_TIMES = {
    DegradationLevel.CRITICAL: timedelta(minutes=5),
    DegradationLevel.SEVERE: timedelta(minutes=3),
    DegradationLevel.MODERATE: timedelta(minutes=2),
    DegradationLevel.MINIMAL: timedelta(minutes=1),
    DegradationLevel.NONE: timedelta(seconds=30),
}

HIGH_MEMORY_USAGE = 0.8
SLOW_RESPONSE_MS = 5000
HIGH_ERROR_RATE = 0.2
MAX_BREAKER_TIMEOUT = timedelta(minutes=5)
MIN_CACHE_TTL = timedelta(seconds=30)

STALE_VEHICLE_LIMITATIONS = ["Data may be outdated", "Real-time updates unavailable"]
DEFAULT_VEHICLE_LIMITATIONS = [
    "No vehicle data available",
    "Service temporarily unavailable",
    "Please try again later",
]
EMERGENCY_VEHICLE_LIMITATIONS = [
    "Emergency mode active",
    "All vehicle tracking temporarily disabled",
    "Service under maintenance",
]
STALE_ROUTE_LIMITATIONS = [
    "Route activity data may be outdated",
    "Filtering decisions based on stale data",
]
DEFAULT_ROUTE_LIMITATIONS = [
    "No route activity data available",
    "All routes treated as quiet",
    "Distance filtering disabled",
]
SKIP_FILTERING_LIMITATIONS = [
    "Route-based filtering disabled",
    "All vehicles shown regardless of activity",
    "Distance filtering may still apply",
]
EMERGENCY_ROUTE_LIMITATIONS = [
    "Emergency mode active",
    "Route filtering disabled",
    "Service under maintenance",
]


def _utc_now() -> datetime:
    return datetime.now(UTC)


def classify_performance(metrics: PerformanceMetrics) -> DegradationLevel:
    """Degradation level for measured metrics, NONE when no threshold is exceeded."""
    for level, response_time, memory_usage, error_rate in PERFORMANCE_THRESHOLDS:
        if (
            metrics.response_time > response_time
            or metrics.memory_usage > memory_usage
            or metrics.error_rate > error_rate
        ):
            return level
    return DegradationLevel.NONE


def _snake_case(key: str) -> str:
    return re.sub(r"(?<!^)(?=[A-Z])", "_", key).lower()


def _filtering_fields(config: Mapping[str, Any]) -> dict[str, Any]:
    """Map provided keys onto FilteringConfig field names; snake_case wins over camelCase."""
    fields: dict[str, Any] = {}
    for key, value in config.items():
        name = key if key in FilteringConfig.model_fields else _snake_case(str(key))
        if name not in FilteringConfig.model_fields:
            logger.debug(f"Ignoring unknown filtering option {key!r}")
            continue
        if key == name or name not in fields:
            fields[name] = value
    return fields


def _validated_field(name: str, value: Any) -> Any:
    """Validate one FilteringConfig field on its own.

    Raises:
        ConfigValidationError: If the value is out of range or has the wrong type.
    """
    try:
        FilteringConfig.model_validate({name: value})
    except ValidationError as e:
        raise ConfigValidationError(name, value, e.errors()[0]["msg"]) from e
    return value


class DegradationController:
    """Process-wide resilience state shared by all pipeline runs.

    Holds one circuit breaker per component name (created on first use), the
    fallback caches for vehicles and route activity, and the degradation
    history. Background sweeps run as asyncio tasks between ``start()`` and
    ``stop()``; they can also be invoked directly.
    """

    def __init__(
        self,
        settings: DegradationSettings | None = None,
        vehicle_cache: FallbackCacheProtocol[list[LiveVehicle]] | None = None,
        route_activity_cache: FallbackCacheProtocol[dict[str, RouteActivity]] | None = None,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        """Initialize the controller.

        Args:
            settings: Cache, history and breaker defaults.
            vehicle_cache: Cache of successful vehicle fetches.
            route_activity_cache: Cache of computed route activity.
            clock: Source of the current time.
        """
        self.settings = settings or DegradationSettings()
        self._vehicle_cache = vehicle_cache or InMemoryFallbackCache()
        self._route_activity_cache = route_activity_cache or InMemoryFallbackCache()
        self._clock = clock
        self._cache_ttl = self.settings.cache_ttl
        self._circuit_breakers: dict[str, CircuitBreakerInfo] = {}
        self._history: list[DegradationContext] = []
        self._tasks: list[asyncio.Task] = []
        logger.info(
            f"Degradation controller initialized (cache TTL {self._cache_ttl}, "
            f"failure threshold {self.settings.breaker_defaults.failure_threshold})"
        )

    @property
    def cache_ttl(self) -> timedelta:
        return self._cache_ttl

    # Lifecycle

    async def start(self) -> None:
        """Start the periodic cache sweep and history prune tasks."""
        if any(not task.done() for task in self._tasks):
            logger.warning("Degradation controller sweeps already running")
            return
        self._tasks = [
            asyncio.create_task(
                self._run_periodically(
                    self.settings.cache_sweep_interval, self.sweep_expired_cache_entries
                )
            ),
            asyncio.create_task(
                self._run_periodically(
                    self.settings.history_prune_interval, self.prune_degradation_history
                )
            ),
        ]
        logger.info("Started degradation controller sweeps")

    async def stop(self) -> None:
        """Cancel the background tasks and wait for them to finish."""
        running = [task for task in self._tasks if not task.done()]
        for task in running:
            task.cancel()
        for task in running:
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._tasks = []
        if running:
            logger.info("Stopped degradation controller sweeps")

    async def dispose(self) -> None:
        """Stop background work and drop all cached data and history."""
        await self.stop()
        self._vehicle_cache.evict_older_than(0, self._clock())
        self._route_activity_cache.evict_older_than(0, self._clock())
        self._history.clear()
        self._circuit_breakers.clear()

    async def _run_periodically(self, interval: timedelta, action: Callable[[], Any]) -> None:
        while True:
            await asyncio.sleep(interval.total_seconds())
            action()

    def sweep_expired_cache_entries(self) -> int:
        """Evict cache entries older than the current TTL; returns how many were removed."""
        now = self._clock()
        ttl_seconds = self._cache_ttl.total_seconds()
        removed = self._vehicle_cache.evict_older_than(ttl_seconds, now)
        removed += self._route_activity_cache.evict_older_than(ttl_seconds, now)
        return removed

    def prune_degradation_history(self) -> int:
        """Drop events older than the history age limit and trim to the size limit."""
        cutoff = self._clock() - self.settings.history_max_age
        kept = [event for event in self._history if event.timestamp >= cutoff]
        kept = kept[-self.settings.max_history_size :]
        removed = len(self._history) - len(kept)
        self._history = kept
        if removed:
            logger.debug(f"Pruned {removed} degradation events")
        return removed

    # Cache filling

    def cache_vehicle_data(self, key: str, vehicles: list[LiveVehicle]) -> None:
        self._vehicle_cache.set(key, list(vehicles), self._clock())

    def cache_route_activity(self, key: str, activities: dict[str, RouteActivity]) -> None:
        self._route_activity_cache.set(key, dict(activities), self._clock())

    # Fallbacks

    async def handle_missing_vehicle_data(self, context: DegradationContext) -> FallbackVehicleData:
        """Return substitute vehicle data according to the context's strategy."""
        logger.warning(
            f"Handling missing vehicle data ({context.failure_type}, "
            f"level {context.degradation_level.value}, "
            f"strategy {context.fallback_strategy.value})"
        )
        self.record_degradation_event(context)

        strategy = context.fallback_strategy
        if strategy is FallbackStrategy.USE_DEFAULTS:
            return self._default_vehicle_data()
        if strategy is FallbackStrategy.EMERGENCY_MODE:
            return FallbackVehicleData(
                vehicles=[],
                source="defaults",
                confidence=0.0,
                limitations=list(EMERGENCY_VEHICLE_LIMITATIONS),
                last_updated=self._clock(),
            )
        if strategy is not FallbackStrategy.USE_CACHE:
            logger.warning(
                f"Unsupported vehicle fallback strategy {strategy.value}, using cache"
            )
        return self._cached_vehicle_data()

    def _cached_vehicle_data(self) -> FallbackVehicleData:
        cached = self._vehicle_cache.get_freshest(self._cache_ttl.total_seconds(), self._clock())
        if cached is None:
            logger.info("No valid cached vehicle data, using defaults")
            return self._default_vehicle_data()
        vehicles, updated_at = cached
        return FallbackVehicleData(
            vehicles=list(vehicles),
            source="cache",
            confidence=0.7,
            limitations=list(STALE_VEHICLE_LIMITATIONS),
            last_updated=updated_at,
        )

    def _default_vehicle_data(self) -> FallbackVehicleData:
        return FallbackVehicleData(
            vehicles=[],
            source="defaults",
            confidence=0.1,
            limitations=list(DEFAULT_VEHICLE_LIMITATIONS),
            last_updated=self._clock(),
        )

    async def handle_route_data_unavailability(
        self, context: DegradationContext
    ) -> FallbackRouteActivity:
        """Return substitute route activity according to the context's strategy."""
        logger.warning(
            f"Handling route data unavailability ({context.failure_type}, "
            f"level {context.degradation_level.value}, "
            f"strategy {context.fallback_strategy.value})"
        )
        self.record_degradation_event(context)

        strategy = context.fallback_strategy
        if strategy is FallbackStrategy.USE_DEFAULTS:
            return self._default_route_activity()
        if strategy is FallbackStrategy.SKIP_FILTERING:
            return FallbackRouteActivity(
                route_activities={},
                source="defaults",
                confidence=0.5,
                limitations=list(SKIP_FILTERING_LIMITATIONS),
                last_updated=self._clock(),
            )
        if strategy is FallbackStrategy.EMERGENCY_MODE:
            return FallbackRouteActivity(
                route_activities={},
                source="defaults",
                confidence=0.0,
                limitations=list(EMERGENCY_ROUTE_LIMITATIONS),
                last_updated=self._clock(),
            )
        if strategy is not FallbackStrategy.USE_CACHE:
            logger.warning(f"Unsupported route fallback strategy {strategy.value}, using cache")
        return self._cached_route_activity()

    def _cached_route_activity(self) -> FallbackRouteActivity:
        cached = self._route_activity_cache.get_freshest(
            self._cache_ttl.total_seconds(), self._clock()
        )
        if cached is None:
            logger.info("No valid cached route activity, using defaults")
            return self._default_route_activity()
        activities, updated_at = cached
        return FallbackRouteActivity(
            route_activities=dict(activities),
            source="cache",
            confidence=0.6,
            limitations=list(STALE_ROUTE_LIMITATIONS),
            last_updated=updated_at,
        )

    def _default_route_activity(self) -> FallbackRouteActivity:
        return FallbackRouteActivity(
            route_activities={},
            source="defaults",
            confidence=0.2,
            limitations=list(DEFAULT_ROUTE_LIMITATIONS),
            last_updated=self._clock(),
        )

    # Performance

    async def handle_performance_issues(self, issue: PerformanceIssue) -> DegradationContext:
        """Classify measured metrics, apply mitigations and record the event."""
        metrics = issue.metrics
        logger.warning(
            f"Performance issue detected: response_time={metrics.response_time:.0f}ms, "
            f"memory_usage={metrics.memory_usage:.2f}, error_rate={metrics.error_rate:.2f}, "
            f"circuit_breaker_triggered={issue.circuit_breaker_triggered}"
        )
        level = classify_performance(metrics)
        context = DegradationContext(
            failure_type="performance_degradation",
            failure_message=f"Performance issue detected: {level.value}",
            degradation_level=level,
            fallback_strategy=LEVEL_STRATEGIES[level],
            timestamp=self._clock(),
            affected_components=list(PERFORMANCE_AFFECTED_COMPONENTS),
            recovery_actions=list(issue.recommendations),
            estimated_recovery_time=RECOVERY_TIMES[level],
        )

        if issue.circuit_breaker_triggered:
            self.update_circuit_breaker(PERFORMANCE_MONITOR, success=False)

        self._apply_performance_mitigations(metrics)
        self.record_degradation_event(context)
        return context

    def _apply_performance_mitigations(self, metrics: PerformanceMetrics) -> None:
        if metrics.memory_usage > HIGH_MEMORY_USAGE:
            self._reduce_cache_ttl()
            logger.info("Reduced cache TTL due to high memory usage")
        if metrics.response_time > SLOW_RESPONSE_MS:
            self._raise_breaker_timeouts(metrics.response_time)
            logger.info("Adjusted circuit breaker timeouts due to slow response times")
        if metrics.error_rate > HIGH_ERROR_RATE:
            self._tighten_breakers()
            logger.info("Enabled strict circuit breakers due to high error rate")

    def _reduce_cache_ttl(self) -> None:
        self._cache_ttl = max(self._cache_ttl / 2, MIN_CACHE_TTL)
        self.sweep_expired_cache_entries()

    def _raise_breaker_timeouts(self, response_time_ms: float) -> None:
        target = min(timedelta(milliseconds=2 * response_time_ms), MAX_BREAKER_TIMEOUT)
        for breaker in self._circuit_breakers.values():
            if breaker.config.timeout < target:
                breaker.config.timeout = target

    def _tighten_breakers(self) -> None:
        for breaker in self._circuit_breakers.values():
            breaker.config.failure_threshold = max(1, breaker.config.failure_threshold // 2)
            breaker.config.success_threshold = breaker.config.success_threshold * 2

    # Configuration

    def handle_invalid_configuration(
        self, config: Mapping[str, Any] | FilteringConfig
    ) -> FilteringConfig:
        """Build a fully valid filtering config from partial or invalid input.

        Each provided field is validated on its own. Invalid values are
        replaced by the field default with one warning and one MINIMAL
        degradation event each; missing fields silently take their default.
        Keys may be given in snake_case or camelCase; unknown keys are ignored.
        """
        provided = (
            config.model_dump()
            if isinstance(config, FilteringConfig)
            else _filtering_fields(config)
        )
        logger.info(f"Validating filtering configuration: {provided}")

        accepted: dict[str, Any] = {}
        for name, field_info in FilteringConfig.model_fields.items():
            if name not in provided:
                continue
            try:
                accepted[name] = _validated_field(name, provided[name])
            except ConfigValidationError as e:
                logger.warning(f"{e}, using default {field_info.default!r}")
                self.record_degradation_event(
                    DegradationContext(
                        failure_type="invalid_configuration",
                        failure_message=str(e),
                        degradation_level=DegradationLevel.MINIMAL,
                        fallback_strategy=FallbackStrategy.USE_DEFAULTS,
                        timestamp=self._clock(),
                        affected_components=[CONFIGURATION_MANAGER],
                        recovery_actions=[f"Set {name} to a valid value"],
                    )
                )

        return FilteringConfig.model_validate(accepted)

    # Circuit breakers

    def _breaker(self, component: str) -> CircuitBreakerInfo:
        breaker = self._circuit_breakers.get(component)
        if breaker is None:
            breaker = CircuitBreakerInfo(config=replace(self.settings.breaker_defaults))
            self._circuit_breakers[component] = breaker
            logger.debug(f"Created circuit breaker for {component}")
        return breaker

    def get_circuit_breaker_info(self, component: str) -> CircuitBreakerInfo:
        """Snapshot of a component's breaker, creating it closed on first use."""
        breaker = self._breaker(component)
        return replace(breaker, config=replace(breaker.config))

    def update_circuit_breaker(self, component: str, success: bool) -> None:
        breaker = self._breaker(component)
        now = self._clock()

        if success:
            breaker.success_count += 1
            breaker.failure_count = max(0, breaker.failure_count - 1)
            if (
                breaker.state is CircuitBreakerState.HALF_OPEN
                and breaker.success_count >= breaker.config.success_threshold
            ):
                breaker.state = CircuitBreakerState.CLOSED
                breaker.failure_count = 0
                breaker.next_attempt_time = None
                logger.info(f"Circuit breaker closed for {component}")
        else:
            if (
                breaker.state is CircuitBreakerState.CLOSED
                and breaker.last_failure_time is not None
                and now - breaker.last_failure_time > breaker.config.window_size
            ):
                # Failures outside the window no longer count toward opening
                breaker.failure_count = 0
            breaker.failure_count += 1
            breaker.success_count = 0
            breaker.last_failure_time = now
            if breaker.state is CircuitBreakerState.HALF_OPEN or (
                breaker.state is CircuitBreakerState.CLOSED
                and breaker.failure_count >= breaker.config.failure_threshold
            ):
                breaker.state = CircuitBreakerState.OPEN
                breaker.next_attempt_time = now + breaker.config.timeout
                logger.warning(
                    f"Circuit breaker opened for {component} "
                    f"(failures: {breaker.failure_count})"
                )

        self._maybe_half_open(component, breaker, now)

    def _maybe_half_open(self, component: str, breaker: CircuitBreakerInfo, now: datetime) -> None:
        if (
            breaker.state is CircuitBreakerState.OPEN
            and breaker.next_attempt_time is not None
            and now >= breaker.next_attempt_time
        ):
            breaker.state = CircuitBreakerState.HALF_OPEN
            breaker.success_count = 0
            logger.info(f"Circuit breaker half-opened for {component}")

    def reset_circuit_breaker(self, component: str) -> None:
        breaker = self._circuit_breakers.get(component)
        if breaker is None:
            return
        breaker.state = CircuitBreakerState.CLOSED
        breaker.failure_count = 0
        breaker.success_count = 0
        breaker.last_failure_time = None
        breaker.next_attempt_time = None
        logger.info(f"Circuit breaker reset for {component}")

    def is_call_permitted(self, component: str) -> bool:
        """Whether a guarded call may go ahead; OPEN breakers probe once the timeout elapsed."""
        breaker = self._breaker(component)
        if not breaker.config.enabled:
            return True
        self._maybe_half_open(component, breaker, self._clock())
        return breaker.state is not CircuitBreakerState.OPEN

    # History

    def record_degradation_event(self, context: DegradationContext) -> None:
        self._history.append(context)
        if len(self._history) > self.settings.max_history_size:
            self._history = self._history[-self.settings.max_history_size :]
        logger.info(
            f"Degradation event recorded: {context.failure_type} "
            f"({context.degradation_level.value}, {context.fallback_strategy.value})"
        )

    def get_current_degradation_level(self) -> DegradationLevel:
        """Highest level among events recorded in the recent window, NONE if there are none."""
        cutoff = self._clock() - self.settings.recent_level_window
        recent = [event.degradation_level for event in self._history if event.timestamp > cutoff]
        if not recent:
            return DegradationLevel.NONE
        return max(recent, key=lambda level: level.severity)

    def get_degradation_history(self) -> list[DegradationContext]:
        return list(self._history)

    def clear_degradation_history(self) -> None:
        self._history.clear()
        logger.info("Degradation history cleared")

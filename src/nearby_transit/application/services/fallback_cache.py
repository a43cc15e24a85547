"""In-memory fallback cache implementation."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Generic, TypeVar

from nearby_transit.domain.contracts.fallback_cache import FallbackCacheProtocol

T = TypeVar("T")

logger = logging.getLogger(__name__)


class InMemoryFallbackCache(FallbackCacheProtocol[T], Generic[T]):
    """In-memory cache of fallback payloads keyed by fetch key."""

    def __init__(self) -> None:
        """Initialize the cache."""
        self._entries: dict[str, tuple[T, datetime]] = {}

    def get_freshest(self, max_age_seconds: float, now: datetime) -> tuple[T, datetime] | None:
        freshest: tuple[T, datetime] | None = None
        for value, updated_at in self._entries.values():
            if (now - updated_at).total_seconds() >= max_age_seconds:
                continue
            if freshest is None or updated_at > freshest[1]:
                freshest = (value, updated_at)
        return freshest

    def set(self, key: str, value: T, updated_at: datetime) -> None:
        self._entries[key] = (value, updated_at)

    def evict_older_than(self, max_age_seconds: float, now: datetime) -> int:
        expired = [
            key
            for key, (_, updated_at) in self._entries.items()
            if (now - updated_at).total_seconds() >= max_age_seconds
        ]
        for key in expired:
            del self._entries[key]
        if expired:
            logger.debug(f"Evicted {len(expired)} expired fallback cache entries")
        return len(expired)

    def __len__(self) -> int:
        return len(self._entries)

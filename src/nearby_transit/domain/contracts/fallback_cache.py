"""Protocol for fallback payload caching."""

from datetime import datetime
from typing import Protocol, TypeVar

T = TypeVar("T")


class FallbackCacheProtocol(Protocol[T]):
    """Keyed cache of fallback payloads stamped with their last update time."""

    def get_freshest(self, max_age_seconds: float, now: datetime) -> tuple[T, datetime] | None:
        """Get the most recently updated entry younger than ``max_age_seconds``.

        Args:
            max_age_seconds: Maximum entry age.
            now: Reference time.

        Returns:
            The freshest payload and its update time, or None if every entry is too old.
        """
        ...

    def set(self, key: str, value: T, updated_at: datetime) -> None:
        """Store a payload under a key, replacing any earlier entry.

        Args:
            key: Cache key.
            value: Payload to store.
            updated_at: When the payload was produced.
        """
        ...

    def evict_older_than(self, max_age_seconds: float, now: datetime) -> int:
        """Remove entries older than ``max_age_seconds`` and return how many were removed."""
        ...

    def __len__(self) -> int: ...

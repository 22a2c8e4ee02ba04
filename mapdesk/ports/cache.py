"""Cache port.

Process-local key/value storage with expiry, shared by the name
resolver (location-name list), the new-request flow (drafts between the
name prompt and the details form) and the HF classifier (its pipeline).
"""

from __future__ import annotations

from typing import Callable, Optional, Protocol, TypeVar

T = TypeVar("T")


class CachePort(Protocol[T]):
    """Port for the bot's TTL caches.

    Implementation: adapters/cache/memory_cache.py (InMemoryCache).
    """

    def get(self, key: str) -> Optional[T]:
        """Return the live value for ``key``, or None if absent or expired."""
        ...

    def set(self, key: str, value: T, ttl: Optional[float] = None) -> None:
        ...

    def get_or_compute(self, key: str, compute_fn: Callable[[], T]) -> T:
        """Return the cached value, computing and storing it on a miss."""
        ...

    def invalidate(self, key: str) -> bool:
        ...

    def purge_expired(self) -> int:
        """Drop expired entries and return how many were dropped."""
        ...

    def clear(self) -> int:
        ...

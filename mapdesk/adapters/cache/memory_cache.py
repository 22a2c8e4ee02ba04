"""In-memory TTL cache.

One instance per concern, each with its own lifetime:
- ``names``: the resolver's location-name list (one hour)
- ``drafts``: new-request drafts awaiting the details form (15 minutes)
- ``models``: lazily loaded classification pipelines (no expiry)
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, Generic, NamedTuple, Optional, TypeVar

T = TypeVar("T")

_NEVER = float("inf")


class _Entry(NamedTuple):
    value: object
    expires_at: float


@dataclass
class InMemoryCache(Generic[T]):
    """Thread-safe CachePort with per-entry expiry.

    Expired entries are dropped lazily when read, or in bulk by
    purge_expired(), which the bot's sweep loop calls for drafts.

    Attributes:
        default_ttl_seconds: Lifetime of entries stored without a ttl (None = forever)
        name: Cache name, used in the logger name
        clock: Source of the current time in seconds

    Example:
        drafts = InMemoryCache(name="drafts", default_ttl_seconds=900)
        drafts.set("draft:1234", draft)
    """

    default_ttl_seconds: Optional[float] = None
    name: str = "cache"
    clock: Callable[[], float] = time.time

    _entries: Dict[str, _Entry] = field(default_factory=dict, repr=False)
    _lock: threading.RLock = field(default_factory=threading.RLock, repr=False)
    _logger: logging.Logger = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._logger = logging.getLogger(f"mapdesk.cache.{self.name}")

    def _expiry(self, ttl: Optional[float]) -> float:
        lifetime = ttl if ttl is not None else self.default_ttl_seconds
        return _NEVER if lifetime is None else self.clock() + lifetime

    def get(self, key: str) -> Optional[T]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if self.clock() > entry.expires_at:
                del self._entries[key]
                self._logger.debug("Cache entry expired", extra={"key": key})
                return None
            return entry.value  # type: ignore[return-value]

    def set(self, key: str, value: T, ttl: Optional[float] = None) -> None:
        with self._lock:
            self._entries[key] = _Entry(value, self._expiry(ttl))

    def get_or_compute(self, key: str, compute_fn: Callable[[], T]) -> T:
        """Cache-aside lookup.

        compute_fn runs outside the lock, so two concurrent misses may both
        compute; the later result is kept.
        """
        value = self.get(key)
        if value is not None:
            return value
        self._logger.debug("Cache miss, computing", extra={"key": key})
        value = compute_fn()
        self.set(key, value)
        return value

    def invalidate(self, key: str) -> bool:
        with self._lock:
            return self._entries.pop(key, None) is not None

    def purge_expired(self) -> int:
        with self._lock:
            now = self.clock()
            stale = [key for key, entry in self._entries.items() if now > entry.expires_at]
            for key in stale:
                del self._entries[key]
        if stale:
            self._logger.debug("Purged expired entries", extra={"count": len(stale)})
        return len(stale)

    def clear(self) -> int:
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
        self._logger.info("Cache cleared", extra={"entries_cleared": count})
        return count

    def size(self) -> int:
        with self._lock:
            return len(self._entries)

"""Cache adapter - the in-memory TTL cache behind CachePort."""

from .memory_cache import InMemoryCache

__all__ = ["InMemoryCache"]

"""Edit session adapters - Implementations of EditSessionStorePort."""

from .memory_store import InMemoryEditSessionStore

__all__ = ["InMemoryEditSessionStore"]

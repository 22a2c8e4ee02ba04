"""Edit session port.

Sessions hold a user's in-progress field edits between interactions.
The workflow only depends on this contract, so a shared store can
replace the process-local one without touching the engine.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Mapping, Protocol

if TYPE_CHECKING:
    from ..domain.models import EditSession, FieldEdit


class EditSessionStorePort(Protocol):
    """Port for edit session storage.

    Implementations:
    - adapters/sessions/memory_store.py (InMemoryEditSessionStore)
    """

    def get(self, user_id: str, target_id: str) -> EditSession:
        """Return the stored session, or an empty one for unknown keys.

        Reading a session refreshes its last-access time.
        """
        ...

    def save(
        self,
        user_id: str,
        target_id: str,
        display_name: str,
        field_edits: Mapping[str, FieldEdit],
    ) -> EditSession:
        """Create or replace a session. Last write wins."""
        ...

    def delete(self, user_id: str, target_id: str) -> bool:
        """Remove a session. Deleting an unknown key is not an error."""
        ...

    def sweep(self) -> int:
        """Evict sessions idle past the TTL. Returns the eviction count."""
        ...

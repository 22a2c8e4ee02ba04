"""Chat surface port used by request reconciliation."""

from __future__ import annotations

from typing import Protocol


class MessageProbePort(Protocol):
    """Checks whether a request's backing chat message still exists."""

    async def message_exists(self, message_id: str) -> bool:
        """Return False only when the message is known to be gone.

        Raises:
            Exception: Any transport error; the caller logs and skips it.
        """
        ...

"""Change notification port."""

from __future__ import annotations

from typing import Protocol


class ChangeNotifierPort(Protocol):
    """Tells downstream consumers that the Location Store changed.

    Fire-and-forget: implementations log failures and never raise.

    Implementations:
    - adapters/notify/postgres_notifier.py (PostgresChangeNotifier)
    - adapters/notify/postgres_notifier.py (LoggingChangeNotifier)
    """

    def notify(self, reason: str) -> None:
        ...

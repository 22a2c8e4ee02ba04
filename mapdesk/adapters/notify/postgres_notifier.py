"""Change notifications for consumers of the map dataset.

The map site listens on a PostgreSQL channel and reloads its markers
when the bot changes the dataset.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field

from sqlalchemy import Engine, text
from sqlalchemy.exc import SQLAlchemyError

_CHANNEL_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


@dataclass
class PostgresChangeNotifier:
    """ChangeNotifierPort issuing ``NOTIFY <channel>``.

    Failures are logged and dropped; the dataset write that triggered
    the notification is never undone because of them.

    Attributes:
        engine: Engine connected to the dataset database
        channel: LISTEN/NOTIFY channel name
    """

    engine: Engine
    channel: str = "location_changes"

    _logger: logging.Logger = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._logger = logging.getLogger(__name__)
        if not _CHANNEL_PATTERN.match(self.channel):
            raise ValueError(f"Invalid notification channel name: {self.channel!r}")

    def notify(self, reason: str) -> None:
        try:
            with self.engine.begin() as connection:
                connection.execute(text(f"NOTIFY {self.channel}"))
        except SQLAlchemyError as e:
            self._logger.warning(
                "Change notification failed",
                extra={"channel": self.channel, "reason": reason, "error": str(e)},
            )
            return
        self._logger.debug(
            "Change notification sent",
            extra={"channel": self.channel, "reason": reason},
        )


@dataclass
class LoggingChangeNotifier:
    """ChangeNotifierPort for databases without LISTEN/NOTIFY."""

    _logger: logging.Logger = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._logger = logging.getLogger(__name__)

    def notify(self, reason: str) -> None:
        self._logger.info("Location data changed", extra={"reason": reason})

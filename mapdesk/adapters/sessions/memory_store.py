"""Process-local edit session store.

Sessions live only in this process's memory. Two bot processes do not
share sessions, and a restart loses every in-progress edit; moderators
re-open a session from the stored request when that happens.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Callable, Dict, Mapping, Tuple

from ...domain.models import EditSession, FieldEdit


@dataclass
class InMemoryEditSessionStore:
    """Thread-safe TTL store for EditSession values.

    Attributes:
        ttl_seconds: Idle time after which a session is evicted
        clock: Source of the current time in seconds
    """

    ttl_seconds: float = 1800.0
    clock: Callable[[], float] = time.time

    _sessions: Dict[Tuple[str, str], EditSession] = field(
        default_factory=dict, repr=False
    )
    _lock: threading.RLock = field(default_factory=threading.RLock, repr=False)
    _logger: logging.Logger = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._logger = logging.getLogger(__name__)

    def _now(self) -> datetime:
        return datetime.fromtimestamp(self.clock(), tz=timezone.utc)

    def _is_expired(self, session: EditSession) -> bool:
        idle = self.clock() - session.last_accessed_at.timestamp()
        return idle > self.ttl_seconds

    def get(self, user_id: str, target_id: str) -> EditSession:
        key = (user_id, target_id)
        with self._lock:
            session = self._sessions.get(key)
            if session is None:
                return EditSession.empty(user_id, target_id)
            if self._is_expired(session):
                del self._sessions[key]
                self._logger.debug(
                    "Edit session expired on read",
                    extra={"user_id": user_id, "target_id": target_id},
                )
                return EditSession.empty(user_id, target_id)
            session = replace(session, last_accessed_at=self._now())
            self._sessions[key] = session
            return session

    def save(
        self,
        user_id: str,
        target_id: str,
        display_name: str,
        field_edits: Mapping[str, FieldEdit],
    ) -> EditSession:
        key = (user_id, target_id)
        now = self._now()
        with self._lock:
            previous = self._sessions.get(key)
            created_at = (
                previous.created_at
                if previous is not None and not self._is_expired(previous)
                else now
            )
            session = EditSession(
                user_id=user_id,
                target_id=target_id,
                display_name=display_name,
                field_edits=dict(field_edits),
                created_at=created_at,
                last_accessed_at=now,
            )
            self._sessions[key] = session
        self._logger.debug(
            "Edit session saved",
            extra={
                "user_id": user_id,
                "target_id": target_id,
                "fields": sorted(field_edits),
            },
        )
        return session

    def delete(self, user_id: str, target_id: str) -> bool:
        with self._lock:
            return self._sessions.pop((user_id, target_id), None) is not None

    def sweep(self) -> int:
        with self._lock:
            expired = [k for k, s in self._sessions.items() if self._is_expired(s)]
            for key in expired:
                del self._sessions[key]
        if expired:
            self._logger.info(
                "Swept idle edit sessions", extra={"evicted": len(expired)}
            )
        return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

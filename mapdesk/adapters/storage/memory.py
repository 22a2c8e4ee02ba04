"""In-memory Location and Request stores.

Used by the test suite and by local runs without a database
(``MAPDESK_DB_BACKEND=memory``).
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional
from uuid import uuid4

from ...domain.errors import NotFoundError, ValidationError
from ...domain.models import ChangeRequest, Location, RequestStatus, utcnow
from ...domain.snapshots import apply_fields


@dataclass
class InMemoryLocationStore:
    """LocationStorePort over a dict, in insertion order."""

    _locations: Dict[str, Location] = field(default_factory=dict, repr=False)
    _lock: threading.RLock = field(default_factory=threading.RLock, repr=False)

    @classmethod
    def with_locations(cls, *locations: Location) -> InMemoryLocationStore:
        store = cls()
        for location in locations:
            store.restore(location)
        return store

    def get(self, location_id: str) -> Optional[Location]:
        with self._lock:
            return self._locations.get(location_id)

    def find_by_name(self, name: str) -> List[Location]:
        needle = name.strip().casefold()
        with self._lock:
            return [
                loc for loc in self._locations.values() if loc.name.casefold() == needle
            ]

    def search(self, term: str, limit: int = 25) -> List[Location]:
        needle = term.strip().casefold()
        with self._lock:
            hits = [
                loc for loc in self._locations.values() if needle in loc.name.casefold()
            ]
        return sorted(hits, key=lambda loc: loc.name.casefold())[:limit]

    def list_names(self) -> List[str]:
        with self._lock:
            return sorted({loc.name for loc in self._locations.values()})

    def create(self, location: Location) -> Location:
        if not location.id:
            location = replace(location, id=uuid4().hex)
        with self._lock:
            self._locations[location.id] = location
        return location

    def update(self, location_id: str, fields: Mapping[str, Any]) -> Location:
        with self._lock:
            current = self._locations.get(location_id)
            if current is None:
                raise NotFoundError(
                    "That location no longer exists.",
                    entity="location",
                    key=location_id,
                )
            updated = apply_fields(current, fields)
            self._locations[location_id] = updated
            return updated

    def delete(self, location_id: str) -> bool:
        with self._lock:
            return self._locations.pop(location_id, None) is not None

    def restore(self, location: Location) -> Location:
        with self._lock:
            self._locations[location.id] = location
        return location

    def __len__(self) -> int:
        return len(self._locations)


@dataclass
class InMemoryRequestStore:
    """RequestStorePort over a dict keyed by request id."""

    _requests: Dict[str, ChangeRequest] = field(default_factory=dict, repr=False)
    _lock: threading.RLock = field(default_factory=threading.RLock, repr=False)
    _logger: logging.Logger = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._logger = logging.getLogger(__name__)

    def add(self, request: ChangeRequest) -> ChangeRequest:
        with self._lock:
            if self.get_by_message_id(request.message_id) is not None:
                raise ValidationError(
                    "A request is already filed for this message.",
                    field="message_id",
                )
            self._requests[request.id] = request
        return request

    def get(self, request_id: str) -> Optional[ChangeRequest]:
        with self._lock:
            return self._requests.get(request_id)

    def get_by_message_id(self, message_id: str) -> Optional[ChangeRequest]:
        with self._lock:
            for request in self._requests.values():
                if request.message_id == message_id:
                    return request
        return None

    def _require(self, request_id: str) -> ChangeRequest:
        request = self._requests.get(request_id)
        if request is None:
            raise NotFoundError(
                "That request no longer exists.", entity="request", key=request_id
            )
        return request

    def update_status(
        self,
        request_id: str,
        status: RequestStatus,
        approver_id: Optional[str] = None,
        approved_at: Optional[datetime] = None,
    ) -> ChangeRequest:
        with self._lock:
            request = self._require(request_id)
            updated = replace(
                request,
                status=status,
                approver_id=approver_id if approver_id is not None else request.approver_id,
                approved_at=approved_at if approved_at is not None else request.approved_at,
                updated_at=utcnow(),
            )
            self._requests[request_id] = updated
            return updated

    def update_snapshots(
        self,
        request_id: str,
        current_data: Optional[str] = None,
        new_data: Optional[str] = None,
    ) -> ChangeRequest:
        with self._lock:
            request = self._require(request_id)
            updated = replace(
                request,
                current_data=current_data if current_data is not None else request.current_data,
                new_data=new_data if new_data is not None else request.new_data,
                updated_at=utcnow(),
            )
            self._requests[request_id] = updated
            return updated

    def list_by_status(
        self, status: Optional[RequestStatus] = None, limit: Optional[int] = None
    ) -> List[ChangeRequest]:
        with self._lock:
            requests = [
                r for r in self._requests.values() if status is None or r.status == status
            ]
        requests.sort(key=lambda r: r.created_at, reverse=True)
        return requests[:limit] if limit is not None else requests

    def delete_by_message_id(self, message_id: str) -> bool:
        with self._lock:
            request = self.get_by_message_id(message_id)
            if request is None:
                return False
            del self._requests[request.id]
        self._logger.info("Request deleted", extra={"message_id": message_id})
        return True

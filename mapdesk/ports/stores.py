"""Storage ports - the Location Store and the Request Store.

The Location Store is the shared map dataset; the Request Store holds
change requests and their snapshots. Each operation is atomic on its
own; the workflow never assumes a transaction spanning both stores.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any, List, Mapping, Optional, Protocol, Sequence

if TYPE_CHECKING:
    from ..domain.models import ChangeRequest, Location, RequestStatus


class LocationStorePort(Protocol):
    """Port for the map dataset.

    Implementations:
    - adapters/storage/sql_location_store.py (SqlAlchemyLocationStore)
    - adapters/storage/memory.py (InMemoryLocationStore)
    """

    def get(self, location_id: str) -> Optional[Location]:
        ...

    def find_by_name(self, name: str) -> List[Location]:
        """All locations whose name equals ``name``, case-insensitively."""
        ...

    def search(self, term: str, limit: int = 25) -> List[Location]:
        """Locations whose name contains ``term``, case-insensitively."""
        ...

    def list_names(self) -> List[str]:
        """Every distinct location name."""
        ...

    def create(self, location: Location) -> Location:
        """Insert a location. The store assigns the id when it is empty."""
        ...

    def update(self, location_id: str, fields: Mapping[str, Any]) -> Location:
        """Apply snapshot-keyed field values to an existing location.

        Raises:
            NotFoundError: If the location does not exist.
        """
        ...

    def delete(self, location_id: str) -> bool:
        ...

    def restore(self, location: Location) -> Location:
        """Insert or overwrite a location with exactly the given state."""
        ...


class RequestStorePort(Protocol):
    """Port for change request persistence.

    Implementations:
    - adapters/storage/sql_request_store.py (SqlAlchemyRequestStore)
    - adapters/storage/memory.py (InMemoryRequestStore)
    """

    def add(self, request: ChangeRequest) -> ChangeRequest:
        """Persist a new request.

        Raises:
            ValidationError: If a request already exists for the message.
        """
        ...

    def get(self, request_id: str) -> Optional[ChangeRequest]:
        ...

    def get_by_message_id(self, message_id: str) -> Optional[ChangeRequest]:
        ...

    def update_status(
        self,
        request_id: str,
        status: RequestStatus,
        approver_id: Optional[str] = None,
        approved_at: Optional[datetime] = None,
    ) -> ChangeRequest:
        ...

    def update_snapshots(
        self,
        request_id: str,
        current_data: Optional[str] = None,
        new_data: Optional[str] = None,
    ) -> ChangeRequest:
        """Replace whichever snapshots are given (None leaves one as is)."""
        ...

    def list_by_status(
        self, status: Optional[RequestStatus] = None, limit: Optional[int] = None
    ) -> Sequence[ChangeRequest]:
        """Requests newest first, optionally filtered by status."""
        ...

    def delete_by_message_id(self, message_id: str) -> bool:
        ...

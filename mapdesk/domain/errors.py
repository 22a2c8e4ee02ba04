"""Typed domain errors for MapDesk.

Every failure the workflow can surface to a member or moderator is one
of these types. Each carries a human-readable ``message`` that the
interaction boundary shows as-is, and can wrap a root ``cause`` for
debugging.

All errors inherit from MapDeskError.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional


@dataclass
class MapDeskError(Exception):
    """Base error for the MapDesk domain.

    Attributes:
        message: Human-readable error description, safe to show to users
        cause: Optional underlying exception that caused this error
    """

    message: str
    cause: Optional[Exception] = field(default=None, repr=False)

    def __str__(self) -> str:
        if self.cause:
            return f"{self.message}: {self.cause}"
        return self.message

    def __post_init__(self) -> None:
        super().__init__(self.message)


@dataclass
class ValidationError(MapDeskError):
    """User input was malformed or incomplete.

    Raised for bad coordinates, unknown fields, out-of-range point
    indexes, missing justifications and edits that change nothing.

    Attributes:
        field: Name of the offending input field, if any
    """

    field: Optional[str] = None


@dataclass
class NotFoundError(MapDeskError):
    """A referenced entity does not exist.

    Attributes:
        entity: Kind of entity ("location", "request", "draft")
        key: The identifier or name that was looked up
    """

    entity: str = ""
    key: str = ""


@dataclass
class PermissionDeniedError(MapDeskError):
    """The actor lacks the moderator role for an admin operation.

    Attributes:
        actor_id: Chat user id of the caller
        action: Name of the refused operation
    """

    actor_id: str = ""
    action: str = ""


@dataclass
class DependencyError(MapDeskError):
    """An external dependency (classifier, matcher, notifier) failed.

    Never shown to users: the workflow converts it into its documented
    fallback behaviour.

    Attributes:
        service: Name of the failing dependency
    """

    service: str = ""


@dataclass
class PartialFailureError(MapDeskError):
    """The Location Store changed but the request status did not.

    The dataset and the request record now disagree. This is logged
    loudly and surfaced to the moderator; there is no automatic
    compensation.

    Attributes:
        request_id: Id of the request whose status update failed
        location_id: Id of the location that was already mutated
    """

    request_id: str = ""
    location_id: Optional[str] = None


@dataclass
class InvalidTransitionError(MapDeskError):
    """A lifecycle move that the request status does not allow.

    Attributes:
        current: Status the request is in
        target: Status that was requested
    """

    current: str = ""
    target: str = ""


@dataclass
class SnapshotError(MapDeskError):
    """A request's stored snapshot is missing, unparseable or untargeted.

    Attributes:
        request_id: Id of the request carrying the bad snapshot
        reason: Short machine-friendly reason ("missing", "corrupt", "no_id")
    """

    request_id: str = ""
    reason: str = ""

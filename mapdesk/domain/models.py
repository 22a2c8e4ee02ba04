"""Immutable domain models for MapDesk.

All models are frozen dataclasses with slots. They have no external
dependencies and represent the core business concepts: map entries
(locations), change requests, edit sessions and resolver candidates.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, FrozenSet, Mapping, Optional, Tuple, Union


def utcnow() -> datetime:
    """Timezone-aware current time, used for every stored timestamp."""
    return datetime.now(timezone.utc)


class _Wildcard(Enum):
    ALL = "*"

    def __repr__(self) -> str:
        return "WILDCARD"


# Addresses every point of a multi-point location.
WILDCARD = _Wildcard.ALL

# Internal (0-based) point index, the wildcard, or "no index".
CoordinateIndex = Union[int, _Wildcard, None]


@dataclass(frozen=True, slots=True)
class Point:
    """A single map coordinate pair."""

    x: float
    y: float

    def as_list(self) -> list[float]:
        return [self.x, self.y]


@dataclass(frozen=True, slots=True)
class SinglePoint:
    """Coordinates of a location that sits at one place."""

    point: Point

    @property
    def points(self) -> Tuple[Point, ...]:
        return (self.point,)


@dataclass(frozen=True, slots=True)
class MultiPoint:
    """Coordinates of a location present at several places.

    A multi-point value always holds at least one point. Reducing a
    multi-point location to a single point keeps the multi-point shape.
    """

    points: Tuple[Point, ...]

    def __post_init__(self) -> None:
        if not self.points:
            raise ValueError("MultiPoint requires at least one point")


Coordinates = Union[SinglePoint, MultiPoint]


@dataclass(frozen=True, slots=True)
class Location:
    """A map entry in the shared dataset.

    Attributes:
        id: Stable identifier assigned by the Location Store
        name: Display name (unique by convention, not by constraint)
        coordinates: Single point or non-empty list of points
        type: Category label (e.g. "poi", "dungeon")
        description: Free text
        media_urls: Attached media links, in insertion order
        icon: Optional icon identifier
        submitted_by: Chat user id of the original proposer
        approved_by: Chat user id of the last approving moderator
        last_modified: Time of the last approved change
    """

    id: str
    name: str
    coordinates: Coordinates
    type: str = "user_submitted"
    description: str = ""
    media_urls: Tuple[str, ...] = ()
    icon: Optional[str] = None
    submitted_by: Optional[str] = None
    approved_by: Optional[str] = None
    last_modified: Optional[datetime] = None

    @property
    def is_multi_point(self) -> bool:
        return isinstance(self.coordinates, MultiPoint)

    @property
    def point_count(self) -> int:
        return len(self.coordinates.points)


class RequestKind(str, Enum):
    """What a change request proposes."""

    NEW = "new"
    EDIT = "edit"
    REMOVE = "remove"


class RequestStatus(str, Enum):
    """Lifecycle state of a change request.

    pending -> implemented | dismissed, implemented -> reverted.
    Dismissed and reverted are terminal.
    """

    PENDING = "pending"
    IMPLEMENTED = "implemented"
    DISMISSED = "dismissed"
    REVERTED = "reverted"

    def can_transition_to(self, target: RequestStatus) -> bool:
        return target in _TRANSITIONS[self]


_TRANSITIONS: Dict[RequestStatus, FrozenSet[RequestStatus]] = {
    RequestStatus.PENDING: frozenset(
        {RequestStatus.IMPLEMENTED, RequestStatus.DISMISSED}
    ),
    RequestStatus.IMPLEMENTED: frozenset({RequestStatus.REVERTED}),
    RequestStatus.DISMISSED: frozenset(),
    RequestStatus.REVERTED: frozenset(),
}


@dataclass(frozen=True, slots=True)
class ChangeRequest:
    """A durable record of a proposed mutation to the dataset.

    Snapshots are kept as the raw JSON text that was stored, so that a
    corrupt record can be detected (and refused) at approval time rather
    than at load time.

    Attributes:
        id: Request identifier (uuid4 string)
        message_id: Id of the chat message that carries the request
        requester_id: Chat user id of the proposer
        kind: new, edit or remove
        reason: Justification text
        current_data: Snapshot before the change (None for new entries)
        new_data: Snapshot after the change
        status: Lifecycle state
        approver_id: Moderator who approved, dismissed or reverted it
        approved_at: When the last moderation happened
    """

    id: str
    message_id: str
    requester_id: str
    kind: RequestKind
    reason: str = ""
    current_data: Optional[str] = None
    new_data: Optional[str] = None
    status: RequestStatus = RequestStatus.PENDING
    approver_id: Optional[str] = None
    approved_at: Optional[datetime] = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)


@dataclass(frozen=True, slots=True)
class FieldEdit:
    """One pending change to a single editable field.

    Values are kept in the text form a member typed into a form.
    ``index`` is set when a coordinate edit addresses a single point.
    """

    old_value: str
    new_value: str
    timestamp: datetime = field(default_factory=utcnow)
    index: CoordinateIndex = None

    @property
    def is_change(self) -> bool:
        return self.old_value.strip() != self.new_value.strip()


@dataclass(frozen=True, slots=True)
class EditSession:
    """A user's in-progress field edits against one target.

    Keyed by (user_id, target_id). An empty session is returned for
    unknown keys instead of None.
    """

    user_id: str
    target_id: str
    display_name: str = ""
    field_edits: Mapping[str, FieldEdit] = field(default_factory=dict)
    created_at: datetime = field(default_factory=utcnow)
    last_accessed_at: datetime = field(default_factory=utcnow)

    @classmethod
    def empty(cls, user_id: str, target_id: str) -> EditSession:
        return cls(user_id=user_id, target_id=target_id)

    @property
    def is_empty(self) -> bool:
        return not self.field_edits


@dataclass(frozen=True, slots=True)
class ResolvedCandidate:
    """One selectable answer produced by the name resolver.

    Attributes:
        name: Location display name
        location_id: Id of the location
        coordinate_index: Point index, WILDCARD or None (whole entry)
        is_multi_point: Whether the location has multi-point coordinates
        point_count: Number of points of the location
        rank: Position in the ordered result list (0 = best)
    """

    name: str
    location_id: str
    coordinate_index: CoordinateIndex = None
    is_multi_point: bool = False
    point_count: int = 1
    rank: int = 0

    @property
    def label(self) -> str:
        if self.coordinate_index is WILDCARD:
            return f"{self.name} * (All {self.point_count} points)"
        if isinstance(self.coordinate_index, int):
            return f"{self.name} #{self.coordinate_index + 1}"
        return self.name

    @property
    def value(self) -> str:
        if self.coordinate_index is WILDCARD:
            return f"{self.name}|*"
        if isinstance(self.coordinate_index, int):
            return f"{self.name}|{self.coordinate_index}"
        return self.name


@dataclass(frozen=True, slots=True)
class Actor:
    """The chat user calling into the workflow."""

    user_id: str
    is_admin: bool = False
    display_name: str = ""


@dataclass(frozen=True, slots=True)
class NewRequestDraft:
    """A new-entry proposal being assembled across several interactions."""

    user_id: str
    name: str
    coordinates: Optional[Coordinates] = None
    description: str = ""
    media_url: Optional[str] = None
    type: Optional[str] = None
    near_match: Optional[Location] = None
    merge_target_id: Optional[str] = None
    created_at: datetime = field(default_factory=utcnow)

    @property
    def needs_path_choice(self) -> bool:
        return self.near_match is not None and self.merge_target_id is None


@dataclass(frozen=True, slots=True)
class RequestDraft:
    """A fully validated request ready to be posted and filed.

    The chat layer posts the request message first, then files the
    draft with the resulting message id.

    Attributes:
        kind: new, edit or remove
        requester_id: Proposing user
        title: Name of the affected entry, for display
        reason: Justification text
        current_data: Serialized pre-change snapshot
        new_data: Serialized post-change snapshot
        changes: Field -> (old, new) pairs for display
        session_target: Edit session to delete once filed
    """

    kind: RequestKind
    requester_id: str
    title: str
    reason: str = ""
    current_data: Optional[str] = None
    new_data: Optional[str] = None
    changes: Mapping[str, Tuple[str, str]] = field(default_factory=dict)
    session_target: Optional[str] = None

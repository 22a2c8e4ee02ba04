"""Domain layer - models, errors and pure rules.

This package has no external dependencies.
"""

from .errors import (
    DependencyError,
    InvalidTransitionError,
    MapDeskError,
    NotFoundError,
    PartialFailureError,
    PermissionDeniedError,
    SnapshotError,
    ValidationError,
)
from .models import (
    WILDCARD,
    Actor,
    ChangeRequest,
    CoordinateIndex,
    Coordinates,
    EditSession,
    FieldEdit,
    Location,
    MultiPoint,
    NewRequestDraft,
    Point,
    RequestDraft,
    RequestKind,
    RequestStatus,
    ResolvedCandidate,
    SinglePoint,
)

__all__ = [
    # Errors
    "MapDeskError",
    "ValidationError",
    "NotFoundError",
    "PermissionDeniedError",
    "DependencyError",
    "PartialFailureError",
    "InvalidTransitionError",
    "SnapshotError",
    # Models
    "WILDCARD",
    "Actor",
    "ChangeRequest",
    "CoordinateIndex",
    "Coordinates",
    "EditSession",
    "FieldEdit",
    "Location",
    "MultiPoint",
    "NewRequestDraft",
    "Point",
    "RequestDraft",
    "RequestKind",
    "RequestStatus",
    "ResolvedCandidate",
    "SinglePoint",
]

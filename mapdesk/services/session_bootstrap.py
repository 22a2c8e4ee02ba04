"""Rebuild an edit session from a stored change request.

A moderator who wants to amend a request before approving it starts
from the edits the request already carries. Three strategies are tried
in a fixed order, and the first that yields edits wins:

1. STRUCTURED_DIFF: diff the current and new snapshots
2. LEGACY_TEXT: read ``field: value`` lines from older text-only records
3. EMPTY: start from nothing

Malformed input never aborts reconstruction; the strategy that hit it is
logged and skipped.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Tuple

from ..domain.errors import SnapshotError, ValidationError
from ..domain.models import ChangeRequest, FieldEdit
from ..domain.snapshots import (
    EDITABLE_FIELDS,
    diff_snapshots,
    field_to_text,
    parse_snapshot,
    text_to_field,
)

logger = logging.getLogger(__name__)

_LEGACY_LINE = re.compile(r"^([^:]+):\s*(.+)$")

# Labels seen in older free-text requests, mapped to snapshot fields.
LEGACY_LABELS: Dict[str, str] = {
    "name": "name",
    "description": "description",
    "desc": "description",
    "type": "type",
    "category": "type",
    "icon": "icon",
    "coordinates": "coordinates",
    "coords": "coordinates",
    "media": "mediaUrl",
    "media url": "mediaUrl",
    "mediaurl": "mediaUrl",
}


class ReconstructionStrategy(str, Enum):
    STRUCTURED_DIFF = "structured_diff"
    LEGACY_TEXT = "legacy_text"
    EMPTY = "empty"


@dataclass(frozen=True)
class Reconstruction:
    strategy: ReconstructionStrategy
    edits: Mapping[str, FieldEdit] = field(default_factory=dict)


def _current_snapshot(request: ChangeRequest) -> Dict[str, object]:
    if request.current_data is None:
        return {}
    try:
        return parse_snapshot(request.current_data, request.id)
    except SnapshotError:
        logger.warning(
            "Ignoring unreadable current snapshot", extra={"request_id": request.id}
        )
        return {}


def from_structured_diff(request: ChangeRequest) -> Optional[Dict[str, FieldEdit]]:
    """Edits for every editable field that differs between the snapshots."""
    try:
        new = parse_snapshot(request.new_data, request.id)
        current = (
            parse_snapshot(request.current_data, request.id)
            if request.current_data is not None
            else {}
        )
    except SnapshotError as e:
        logger.info(
            "Structured diff unavailable",
            extra={"request_id": request.id, "reason": e.reason},
        )
        return None

    edits: Dict[str, FieldEdit] = {}
    for name, (old, new_value) in diff_snapshots(current, new).items():
        edits[name] = FieldEdit(
            old_value=field_to_text(name, old),
            new_value=field_to_text(name, new_value),
        )
    return edits or None


def parse_legacy_lines(text: str) -> List[Tuple[str, str]]:
    """``field: value`` pairs for recognised editable fields, in order."""
    pairs: List[Tuple[str, str]] = []
    for line in text.splitlines():
        match = _LEGACY_LINE.match(line.strip())
        if not match:
            continue
        label = match.group(1).strip().lower()
        name = LEGACY_LABELS.get(label)
        if name in EDITABLE_FIELDS:
            pairs.append((name, match.group(2).strip()))
    return pairs


def _legacy_sources(request: ChangeRequest) -> Iterable[str]:
    raw = request.new_data
    if raw and raw.strip():
        try:
            json.loads(raw)
        except ValueError:
            yield raw
    if request.reason:
        yield request.reason


def from_legacy_text(request: ChangeRequest) -> Optional[Dict[str, FieldEdit]]:
    """Edits parsed from free text: the raw new data if it is not JSON, then the reason."""
    current = _current_snapshot(request)
    for source in _legacy_sources(request):
        edits: Dict[str, FieldEdit] = {}
        for name, value in parse_legacy_lines(source):
            try:
                text_to_field(name, value)
            except ValidationError:
                logger.info(
                    "Skipping invalid legacy field",
                    extra={"request_id": request.id, "field": name},
                )
                continue
            edits[name] = FieldEdit(
                old_value=field_to_text(name, current.get(name)),
                new_value=value,
            )
        if edits:
            return edits
    return None


STRATEGIES: Tuple[
    Tuple[ReconstructionStrategy, Callable[[ChangeRequest], Optional[Dict[str, FieldEdit]]]],
    ...,
] = (
    (ReconstructionStrategy.STRUCTURED_DIFF, from_structured_diff),
    (ReconstructionStrategy.LEGACY_TEXT, from_legacy_text),
)


def reconstruct_edits(request: ChangeRequest) -> Reconstruction:
    for strategy, build in STRATEGIES:
        edits = build(request)
        if edits:
            logger.debug(
                "Reconstructed edit session",
                extra={
                    "request_id": request.id,
                    "strategy": strategy.value,
                    "fields": sorted(edits),
                },
            )
            return Reconstruction(strategy, edits)
    return Reconstruction(ReconstructionStrategy.EMPTY)

"""Location snapshots and field-level diffs.

A snapshot is the JSON form of a Location stored on a change request.
Approval of an edit applies only the editable fields whose values truly
differ between the request's current and new snapshots; metadata such
as ids and timestamps never takes part in a diff.
"""

from __future__ import annotations

import json
from datetime import datetime
from typing import Any, Dict, Mapping, Optional, Tuple

from .coordinates import (
    coordinates_from_json,
    coordinates_to_json,
    format_coordinates,
    parse_coordinates,
)
from .errors import SnapshotError, ValidationError
from .models import Location

EDITABLE_FIELDS: Tuple[str, ...] = (
    "name",
    "description",
    "type",
    "icon",
    "coordinates",
    "mediaUrl",
)

# Fields offered by the field-selection control when editing.
FORM_FIELDS: Tuple[str, ...] = ("name", "description", "type", "icon", "coordinates")

FIELD_LABELS: Dict[str, str] = {
    "name": "Name",
    "description": "Description",
    "type": "Type",
    "icon": "Icon",
    "coordinates": "Coordinates",
    "mediaUrl": "Media URL",
}


def location_to_snapshot(location: Location) -> Dict[str, Any]:
    return {
        "id": location.id,
        "name": location.name,
        "coordinates": coordinates_to_json(location.coordinates),
        "type": location.type,
        "description": location.description,
        "mediaUrl": list(location.media_urls),
        "icon": location.icon,
        "submittedBy": location.submitted_by,
        "approvedBy": location.approved_by,
        "lastModified": (
            location.last_modified.isoformat() if location.last_modified else None
        ),
    }


def snapshot_to_location(data: Mapping[str, Any], request_id: str = "") -> Location:
    """Rebuild a Location from a snapshot.

    Raises:
        SnapshotError: If the snapshot has no id or unusable coordinates.
    """
    if not data.get("id"):
        raise SnapshotError(
            "The stored snapshot does not identify a location.",
            request_id=request_id,
            reason="no_id",
        )
    try:
        coordinates = coordinates_from_json(data.get("coordinates"))
    except ValidationError as e:
        raise SnapshotError(
            "The stored snapshot has unusable coordinates.",
            cause=e,
            request_id=request_id,
            reason="corrupt",
        )
    last_modified = data.get("lastModified")
    return Location(
        id=str(data["id"]),
        name=str(data.get("name") or ""),
        coordinates=coordinates,
        type=str(data.get("type") or "user_submitted"),
        description=str(data.get("description") or ""),
        media_urls=tuple(_as_url_list(data.get("mediaUrl"))),
        icon=data.get("icon"),
        submitted_by=data.get("submittedBy"),
        approved_by=data.get("approvedBy"),
        last_modified=datetime.fromisoformat(last_modified) if last_modified else None,
    )


def parse_snapshot(raw: Optional[str], request_id: str = "") -> Dict[str, Any]:
    """Decode a stored snapshot.

    Raises:
        SnapshotError: If the snapshot is missing or not a JSON object.
    """
    if raw is None or not str(raw).strip():
        raise SnapshotError(
            "This request has no stored snapshot.",
            request_id=request_id,
            reason="missing",
        )
    try:
        data = json.loads(raw)
    except (TypeError, ValueError) as e:
        raise SnapshotError(
            "This request's stored data is corrupt.",
            cause=e,
            request_id=request_id,
            reason="corrupt",
        )
    if not isinstance(data, dict):
        raise SnapshotError(
            "This request's stored data is corrupt.",
            request_id=request_id,
            reason="corrupt",
        )
    return data


def dump_snapshot(data: Mapping[str, Any]) -> str:
    return json.dumps(dict(data), ensure_ascii=False)


def _canonical(value: Any) -> Any:
    if isinstance(value, bool) or value is None:
        return value
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, (list, tuple)):
        return [_canonical(v) for v in value]
    if isinstance(value, dict):
        return {k: _canonical(v) for k, v in value.items()}
    if isinstance(value, str):
        return value.strip()
    return value


def values_differ(old: Any, new: Any) -> bool:
    """Compare two field values numerically and structurally.

    ``10`` equals ``10.0`` and lists compare element-wise. A missing
    value and an empty string count as equal.
    """
    old_c, new_c = _canonical(old), _canonical(new)
    if old_c in (None, "", []) and new_c in (None, "", []):
        return False
    return old_c != new_c


def diff_snapshots(
    current: Mapping[str, Any], new: Mapping[str, Any]
) -> Dict[str, Tuple[Any, Any]]:
    """Editable fields whose values differ, as field -> (old, new).

    Fields absent from ``new`` are untouched, not cleared.
    """
    changes: Dict[str, Tuple[Any, Any]] = {}
    for name in EDITABLE_FIELDS:
        if name not in new:
            continue
        if values_differ(current.get(name), new[name]):
            changes[name] = (current.get(name), new[name])
    return changes


def field_to_text(name: str, value: Any) -> str:
    """Render a snapshot field the way it appears in forms and embeds."""
    if value is None:
        return ""
    if name == "coordinates":
        try:
            return format_coordinates(coordinates_from_json(value))
        except ValidationError:
            return json.dumps(value)
    if name == "mediaUrl":
        return ", ".join(_as_url_list(value))
    return str(value)


def text_to_field(name: str, text: str) -> Any:
    """Convert form text into the snapshot value for ``name``.

    Raises:
        ValidationError: If the field is not editable or the text is invalid.
    """
    if name not in EDITABLE_FIELDS:
        raise ValidationError(f"'{name}' cannot be edited.", field=name)
    text = (text or "").strip()
    if name == "coordinates":
        return coordinates_to_json(parse_coordinates(text))
    if name == "mediaUrl":
        return _as_url_list(text)
    if name == "name" and not text:
        raise ValidationError("The name cannot be empty.", field="name")
    if name == "icon" and not text:
        return None
    return text


def _as_url_list(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [part.strip() for part in value.split(",") if part.strip()]
    return [str(v) for v in value if v]


def apply_fields(location: Location, fields: Mapping[str, Any]) -> Location:
    """Return ``location`` with snapshot-keyed field values applied.

    Raises:
        SnapshotError: If the result is not a valid location.
    """
    snapshot = location_to_snapshot(location)
    for key, value in fields.items():
        if key == "id":
            continue
        if isinstance(value, datetime):
            value = value.isoformat()
        snapshot[key] = value
    return snapshot_to_location(snapshot)

"""Point addressing for multi-point locations.

Members see 1-based point numbers ("Old Mill #2"); everything internal,
including choice values emitted by the resolver ("Old Mill|1"), uses
0-based indexes. The conversion happens here and nowhere else.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from .errors import ValidationError
from .models import WILDCARD, CoordinateIndex

_INTERNAL_PATTERN = re.compile(r"^(?P<name>.+?)\|(?P<index>\*|\d+)$")
_EXTERNAL_PATTERN = re.compile(r"^(?P<name>.+?)\s+#(?P<index>\d+)$")


@dataclass(frozen=True, slots=True)
class Selection:
    """A parsed name selection: the entry name plus an optional point index."""

    name: str
    index: CoordinateIndex = None


def to_internal_index(external: int) -> int:
    """Convert a 1-based point number to a 0-based index.

    Raises:
        ValidationError: If the number is below 1.
    """
    if external < 1:
        raise ValidationError(
            f"Point numbers start at 1, got {external}.", field="index"
        )
    return external - 1


def to_external_index(internal: int) -> int:
    return internal + 1


def parse_selection(text: str) -> Selection:
    """Split a selection string into name and point index.

    Accepted forms:
        ``Old Mill|1``  internal index 1 (as produced by choice values)
        ``Old Mill|*``  every point
        ``Old Mill #2`` external point number 2, i.e. internal index 1
        ``Old Mill``    the whole entry

    Raises:
        ValidationError: If the text is empty or uses point number 0.
    """
    stripped = (text or "").strip()
    if not stripped:
        raise ValidationError("A location name is required.", field="name")

    match = _INTERNAL_PATTERN.match(stripped)
    if match:
        raw = match.group("index")
        index: CoordinateIndex = WILDCARD if raw == "*" else int(raw)
        return Selection(match.group("name").strip(), index)

    match = _EXTERNAL_PATTERN.match(stripped)
    if match:
        return Selection(
            match.group("name").strip(),
            to_internal_index(int(match.group("index"))),
        )

    return Selection(stripped)


def format_selection(name: str, index: CoordinateIndex) -> str:
    """Inverse of parse_selection for the internal form."""
    if index is WILDCARD:
        return f"{name}|*"
    if isinstance(index, int):
        return f"{name}|{index}"
    return name


def strip_index_marker(text: str) -> str:
    """The name part of a selection, ignoring any index marker."""
    stripped = (text or "").strip()
    for pattern in (_INTERNAL_PATTERN, _EXTERNAL_PATTERN):
        match = pattern.match(stripped)
        if match:
            return match.group("name").strip()
    return stripped

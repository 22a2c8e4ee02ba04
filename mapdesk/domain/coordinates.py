"""Coordinate parsing, formatting and point arithmetic.

Coordinates travel through three forms:

- text typed by members: ``[x, y]`` or ``[x, y], [x, y]`` (one pair per
  line is accepted as well)
- the tagged domain value: SinglePoint or MultiPoint
- stored JSON: ``[x, y]`` or ``[[x, y], [x, y]]``

Shape detection happens only in coordinates_from_json, at the storage
boundary. Everything past that point works on the tagged value.
"""

from __future__ import annotations

import re
from typing import Any, List, Optional, Union

from .errors import ValidationError
from .models import (
    WILDCARD,
    CoordinateIndex,
    Coordinates,
    MultiPoint,
    Point,
    SinglePoint,
)

PAIR_PATTERN = re.compile(r"\[\s*(-?\d+(?:\.\d*)?)\s*,\s*(-?\d+(?:\.\d*)?)\s*\]")
_SEPARATOR_PATTERN = re.compile(r"^[\s,]*$")


def format_number(value: float) -> str:
    if float(value).is_integer():
        return str(int(value))
    return repr(float(value))


def format_point(point: Point) -> str:
    return f"[{format_number(point.x)}, {format_number(point.y)}]"


def parse_point(text: str) -> Point:
    """Parse exactly one ``[x, y]`` pair.

    Raises:
        ValidationError: If the text is not a single coordinate pair.
    """
    coords = parse_coordinates(text)
    if not isinstance(coords, SinglePoint):
        raise ValidationError(
            "Editing a single point takes exactly one [x, y] pair.",
            field="coordinates",
        )
    return coords.point


def parse_coordinates(text: str) -> Coordinates:
    """Parse member-typed coordinate text.

    A lone pair yields a SinglePoint; several pairs separated by commas
    or newlines yield a MultiPoint. Anything between pairs other than
    separators is rejected.

    Args:
        text: The raw text from a form field.

    Returns:
        The tagged coordinates value.

    Raises:
        ValidationError: If no pair is found or stray text is present.
    """
    if text is None or not text.strip():
        raise ValidationError("Coordinates are required.", field="coordinates")

    stripped = text.strip()
    points: List[Point] = []
    cursor = 0
    for match in PAIR_PATTERN.finditer(stripped):
        if not _SEPARATOR_PATTERN.match(stripped[cursor : match.start()]):
            break
        points.append(Point(float(match.group(1)), float(match.group(2))))
        cursor = match.end()
    else:
        if points and _SEPARATOR_PATTERN.match(stripped[cursor:]):
            if len(points) == 1:
                return SinglePoint(points[0])
            return MultiPoint(tuple(points))

    raise ValidationError(
        "Invalid coordinates. Use [x, y] or [x, y], [x, y] for several points.",
        field="coordinates",
    )


def format_coordinates(coords: Coordinates, separator: str = ", ") -> str:
    """Render coordinates in the text form that parse_coordinates accepts."""
    return separator.join(format_point(p) for p in coords.points)


def coordinates_from_json(value: Any) -> Coordinates:
    """Build the tagged value from stored JSON.

    ``[x, y]`` with two numbers is a single point; a list of pairs is a
    multi-point value.

    Raises:
        ValidationError: If the value has neither shape.
    """
    if _is_pair(value):
        return SinglePoint(Point(float(value[0]), float(value[1])))
    if isinstance(value, (list, tuple)) and value and all(_is_pair(v) for v in value):
        return MultiPoint(tuple(Point(float(v[0]), float(v[1])) for v in value))
    raise ValidationError(
        f"Unrecognised stored coordinates: {value!r}", field="coordinates"
    )


def coordinates_to_json(coords: Coordinates) -> Union[List[float], List[List[float]]]:
    if isinstance(coords, SinglePoint):
        return coords.point.as_list()
    return [p.as_list() for p in coords.points]


def _is_pair(value: Any) -> bool:
    return (
        isinstance(value, (list, tuple))
        and len(value) == 2
        and all(isinstance(v, (int, float)) and not isinstance(v, bool) for v in value)
    )


def merge_coordinates(existing: Coordinates, incoming: Coordinates) -> MultiPoint:
    """Append incoming points after the existing ones.

    Order is preserved and duplicates are kept. The result is always a
    multi-point value.
    """
    return MultiPoint(tuple(existing.points) + tuple(incoming.points))


def check_index(coords: Coordinates, index: CoordinateIndex) -> None:
    if not isinstance(index, int) or isinstance(index, bool):
        raise ValidationError(f"Unrecognised point index: {index!r}", field="coordinates")
    if not 0 <= index < len(coords.points):
        raise ValidationError(
            f"Point #{index + 1} does not exist "
            f"(this entry has {len(coords.points)} point(s)).",
            field="coordinates",
        )


def replace_point(coords: Coordinates, index: CoordinateIndex, new: Coordinates) -> Coordinates:
    """Replace the addressed point, or everything for WILDCARD/None.

    When a single index is addressed, ``new`` must hold exactly one point.
    """
    if index is None or index is WILDCARD:
        return new
    check_index(coords, index)
    if len(new.points) != 1:
        raise ValidationError(
            "Editing a single point takes exactly one [x, y] pair.",
            field="coordinates",
        )
    if isinstance(coords, SinglePoint):
        return SinglePoint(new.points[0])
    points = list(coords.points)
    points[index] = new.points[0]
    return MultiPoint(tuple(points))


def remove_point(coords: Coordinates, index: int) -> Optional[Coordinates]:
    """Drop one point. Returns None when nothing is left."""
    check_index(coords, index)
    remaining = tuple(p for i, p in enumerate(coords.points) if i != index)
    if not remaining:
        return None
    return MultiPoint(remaining)


def point_at(coords: Coordinates, index: CoordinateIndex) -> Coordinates:
    """The sub-value addressed by ``index`` (the whole value for WILDCARD/None)."""
    if index is None or index is WILDCARD:
        return coords
    check_index(coords, index)
    return SinglePoint(coords.points[index])


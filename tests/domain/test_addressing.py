"""Tests for point addressing (1-based for members, 0-based inside)."""

import pytest

from mapdesk.domain.addressing import (
    Selection,
    format_selection,
    parse_selection,
    strip_index_marker,
    to_external_index,
    to_internal_index,
)
from mapdesk.domain.errors import ValidationError
from mapdesk.domain.models import WILDCARD, ResolvedCandidate


def test_external_number_two_is_internal_index_one():
    assert to_internal_index(2) == 1
    assert to_external_index(1) == 2


def test_point_number_zero_is_invalid():
    with pytest.raises(ValidationError):
        to_internal_index(0)


@pytest.mark.parametrize(
    "text,expected",
    [
        ("Old Mill|1", Selection("Old Mill", 1)),
        ("Old Mill|0", Selection("Old Mill", 0)),
        ("Old Mill|*", Selection("Old Mill", WILDCARD)),
        ("Old Mill #2", Selection("Old Mill", 1)),
        ("Old Mill", Selection("Old Mill")),
        ("  Old Mill  ", Selection("Old Mill")),
        ("Route 66", Selection("Route 66")),
    ],
)
def test_parse_selection(text, expected):
    assert parse_selection(text) == expected


def test_parse_selection_rejects_empty():
    with pytest.raises(ValidationError):
        parse_selection("  ")


def test_parse_selection_rejects_point_zero():
    with pytest.raises(ValidationError):
        parse_selection("Old Mill #0")


def test_format_selection_is_inverse_of_parse():
    for index in (None, WILDCARD, 0, 4):
        text = format_selection("Iron Vein", index)
        assert parse_selection(text) == Selection("Iron Vein", index)


def test_strip_index_marker():
    assert strip_index_marker("Iron Vein|2") == "Iron Vein"
    assert strip_index_marker("Iron Vein #3") == "Iron Vein"
    assert strip_index_marker("Iron Vein|*") == "Iron Vein"
    assert strip_index_marker(" Iron ") == "Iron"


class TestCandidateLabels:
    def test_wildcard_label(self):
        candidate = ResolvedCandidate(
            "Iron Vein", "iv", WILDCARD, is_multi_point=True, point_count=3
        )
        assert candidate.label == "Iron Vein * (All 3 points)"
        assert candidate.value == "Iron Vein|*"

    def test_point_label_is_one_based_value_is_zero_based(self):
        candidate = ResolvedCandidate("Iron Vein", "iv", 1, is_multi_point=True, point_count=3)
        assert candidate.label == "Iron Vein #2"
        assert candidate.value == "Iron Vein|1"

    def test_single_point_label_is_plain_name(self):
        candidate = ResolvedCandidate("Old Mill", "om")
        assert candidate.label == "Old Mill"
        assert candidate.value == "Old Mill"

    def test_value_resolves_to_same_index(self):
        candidate = ResolvedCandidate("Iron Vein", "iv", 2, is_multi_point=True, point_count=3)
        assert parse_selection(candidate.value).index == 2
        assert parse_selection(candidate.label).index == 2

"""Tests for component id encoding."""

import pytest

from mapdesk.domain.models import WILDCARD
from mapdesk.interactions import Action, ComponentId


@pytest.mark.parametrize(
    "component,expected",
    [
        (ComponentId(Action.APPROVE, "12345"), "approve:12345::"),
        (ComponentId(Action.PICK_FIELD, "old-mill", 2, "42"), "pick_field:old-mill:2:42"),
        (ComponentId(Action.PICK_FIELD, "iron-vein", WILDCARD, "42"), "pick_field:iron-vein:*:42"),
        (ComponentId(Action.NEW_CANCEL, user_id="42"), "new_cancel:::42"),
    ],
)
def test_encode(component, expected):
    assert component.encode() == expected
    assert ComponentId.decode(expected) == component


def test_index_zero_survives():
    decoded = ComponentId.decode(ComponentId(Action.PICK_POINT, "x", 0).encode())
    assert decoded.aux_index == 0


def test_overlong_id_is_refused():
    with pytest.raises(ValueError):
        ComponentId(Action.APPROVE, "x" * 100).encode()


@pytest.mark.parametrize("raw", [None, "", "garbage", "bogus_action:1:2:3"])
def test_junk_decodes_to_unknown(raw):
    assert ComponentId.decode(raw).action is Action.UNKNOWN


def test_short_id_is_padded():
    decoded = ComponentId.decode("deny")
    assert decoded.action is Action.DENY
    assert decoded.target_id is None
    assert decoded.user_id is None


def test_allows_owner_only():
    owned = ComponentId(Action.PICK_FIELD, "x", user_id="42")
    assert owned.allows("42")
    assert owned.allows(42)
    assert not owned.allows("7")
    assert ComponentId(Action.APPROVE, "x").allows("7")

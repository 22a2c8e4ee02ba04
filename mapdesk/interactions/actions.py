"""Typed component actions.

Every button, choice menu and form the bot sends carries a custom id of
the form ``action:target:aux:user``. It is decoded exactly once, here,
into a ComponentId; handlers never look at the raw string.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from ..domain.models import WILDCARD, CoordinateIndex

MAX_CUSTOM_ID_LENGTH = 100
_SEPARATOR = ":"


class Action(str, Enum):
    # New entry flow
    NEW_DETAILS = "new_details"
    NEW_MERGE = "new_merge"
    NEW_DISTINCT = "new_distinct"
    NEW_CANCEL = "new_cancel"
    # Edit flow
    PICK_POINT = "pick_point"
    PICK_FIELD = "pick_field"
    FIELD_FORM = "field_form"
    SUBMIT_EDITS = "submit_edits"
    EDIT_REASON = "edit_reason"
    CANCEL_EDIT = "cancel_edit"
    # Remove flow
    REMOVE_REASON = "remove_reason"
    # Moderation
    APPROVE = "approve"
    MODIFY = "modify"
    MODIFY_FIELD = "modify_field"
    MODIFY_FORM = "modify_form"
    APPROVE_MODIFIED = "approve_modified"
    DENY = "deny"
    DENY_REASON = "deny_reason"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, value: str) -> Action:
        try:
            return cls(value)
        except ValueError:
            return cls.UNKNOWN


def _encode_index(index: CoordinateIndex) -> str:
    if index is WILDCARD:
        return "*"
    if isinstance(index, int):
        return str(index)
    return ""


def _decode_index(raw: str) -> CoordinateIndex:
    if raw == "*":
        return WILDCARD
    if raw.isdigit():
        return int(raw)
    return None


@dataclass(frozen=True, slots=True)
class ComponentId:
    """Decoded custom id of an interactive component.

    Attributes:
        action: What the component does
        target_id: Location id or request message id, depending on action
        aux_index: Point index carried along an edit or removal
        user_id: Only this user may use the component (None = anyone)
    """

    action: Action
    target_id: Optional[str] = None
    aux_index: CoordinateIndex = None
    user_id: Optional[str] = None

    def encode(self) -> str:
        encoded = _SEPARATOR.join(
            [
                self.action.value,
                self.target_id or "",
                _encode_index(self.aux_index),
                self.user_id or "",
            ]
        )
        if len(encoded) > MAX_CUSTOM_ID_LENGTH:
            raise ValueError(f"Custom id too long ({len(encoded)}): {encoded!r}")
        return encoded

    @classmethod
    def decode(cls, raw: Optional[str]) -> ComponentId:
        """Decode a custom id. Never raises: junk becomes Action.UNKNOWN."""
        parts = (raw or "").split(_SEPARATOR)
        parts += [""] * (4 - len(parts))
        action, target, aux, user = parts[:4]
        return cls(
            action=Action.parse(action),
            target_id=target or None,
            aux_index=_decode_index(aux),
            user_id=user or None,
        )

    def allows(self, user_id: str) -> bool:
        return self.user_id is None or self.user_id == str(user_id)

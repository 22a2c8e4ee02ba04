"""Component and form builders.

Views here only lay components out. Every component carries an encoded
ComponentId and is routed by the client's interaction handler, so the
views are stopped right after sending and hold no state.
"""

from __future__ import annotations

from typing import Dict, Iterable, List, Mapping, Optional, Sequence

import discord
from discord import ButtonStyle, SelectOption, TextStyle, ui

from ..domain.models import CoordinateIndex, Location, RequestKind, ResolvedCandidate
from ..domain.snapshots import FIELD_LABELS, FORM_FIELDS
from ..interactions.actions import Action, ComponentId

SELECT_OPTION_LIMIT = 25
_LABEL_LIMIT = 100
_FIELD_STYLES = {"description": TextStyle.paragraph, "coordinates": TextStyle.paragraph}


def _cid(
    action: Action,
    target_id: Optional[str] = None,
    aux_index: CoordinateIndex = None,
    user_id: Optional[str] = None,
) -> str:
    return ComponentId(action, target_id, aux_index, user_id).encode()


def _view(*items: ui.Item, timeout: Optional[float] = 600) -> ui.View:
    view = ui.View(timeout=timeout)
    for item in items:
        view.add_item(item)
    return view


# ===================== New entry flow =====================


def new_details_modal(name: str, user_id: str) -> ui.Modal:
    modal = ui.Modal(
        title=f"New location: {name}"[:45],
        custom_id=_cid(Action.NEW_DETAILS, user_id=user_id),
    )
    modal.add_item(
        ui.TextInput(
            label="Coordinates",
            custom_id="coordinates",
            placeholder="[x, y] or [x, y], [x, y] for several points",
            style=TextStyle.paragraph,
            max_length=1000,
        )
    )
    modal.add_item(
        ui.TextInput(
            label="Description",
            custom_id="description",
            style=TextStyle.paragraph,
            max_length=1000,
        )
    )
    modal.add_item(
        ui.TextInput(
            label="Screenshot or media URL (optional)",
            custom_id="media_url",
            required=False,
            max_length=500,
        )
    )
    return modal


def near_match_view(near: Location, user_id: str) -> ui.View:
    return _view(
        ui.Button(
            label=f"Add to '{near.name}'"[:80],
            style=ButtonStyle.green,
            custom_id=_cid(Action.NEW_MERGE, near.id, user_id=user_id),
        ),
        ui.Button(
            label="Keep as a separate entry",
            style=ButtonStyle.blurple,
            custom_id=_cid(Action.NEW_DISTINCT, user_id=user_id),
        ),
        ui.Button(
            label="Cancel",
            style=ButtonStyle.grey,
            custom_id=_cid(Action.NEW_CANCEL, user_id=user_id),
        ),
    )


# ===================== Edit flow =====================


def point_choice_view(location: Location, choices: Sequence[ResolvedCandidate], user_id: str) -> ui.View:
    options = [
        SelectOption(label=c.label[:_LABEL_LIMIT], value=c.value[:_LABEL_LIMIT])
        for c in choices
    ]
    return _view(
        ui.Select(
            placeholder="Which point do you want to edit?",
            options=options[:SELECT_OPTION_LIMIT],
            custom_id=_cid(Action.PICK_POINT, location.id, user_id=user_id),
        )
    )


def _field_options(previews: Mapping[str, str]) -> List[SelectOption]:
    return [
        SelectOption(
            label=FIELD_LABELS[name],
            value=name,
            description=(previews.get(name) or "Not set")[:_LABEL_LIMIT],
        )
        for name in FORM_FIELDS
    ]


def edit_panel_view(
    location_id: str,
    index: CoordinateIndex,
    previews: Mapping[str, str],
    user_id: str,
) -> ui.View:
    return _view(
        ui.Select(
            placeholder="Pick a field to edit",
            options=_field_options(previews),
            custom_id=_cid(Action.PICK_FIELD, location_id, index, user_id),
        ),
        ui.Button(
            label="Submit edits",
            style=ButtonStyle.green,
            custom_id=_cid(Action.SUBMIT_EDITS, location_id, index, user_id),
        ),
        ui.Button(
            label="Cancel",
            style=ButtonStyle.grey,
            custom_id=_cid(Action.CANCEL_EDIT, location_id, index, user_id),
        ),
    )


def field_modal(
    action: Action,
    target_id: str,
    field_name: str,
    default: str,
    index: CoordinateIndex = None,
    user_id: Optional[str] = None,
) -> ui.Modal:
    label = FIELD_LABELS.get(field_name, field_name)
    modal = ui.Modal(
        title=f"Edit {label}"[:45],
        custom_id=_cid(action, target_id, index, user_id),
    )
    modal.add_item(
        ui.TextInput(
            label=label,
            custom_id=field_name,
            default=default[:1000] or None,
            style=_FIELD_STYLES.get(field_name, TextStyle.short),
            required=field_name in ("name", "coordinates", "type"),
            max_length=1000,
        )
    )
    return modal


def reason_modal(
    action: Action,
    title: str,
    target_id: Optional[str] = None,
    index: CoordinateIndex = None,
    user_id: Optional[str] = None,
    label: str = "Reason",
) -> ui.Modal:
    modal = ui.Modal(title=title[:45], custom_id=_cid(action, target_id, index, user_id))
    modal.add_item(
        ui.TextInput(
            label=label,
            custom_id="reason",
            style=TextStyle.paragraph,
            max_length=1000,
        )
    )
    return modal


# ===================== Moderation =====================


def moderation_view(kind: RequestKind) -> ui.View:
    items: List[ui.Item] = [
        ui.Button(label="Approve", style=ButtonStyle.green, custom_id=_cid(Action.APPROVE))
    ]
    if kind is RequestKind.EDIT:
        items.append(
            ui.Button(label="Modify", style=ButtonStyle.blurple, custom_id=_cid(Action.MODIFY))
        )
    label = "Deny" if kind is RequestKind.EDIT else "Dismiss"
    items.append(ui.Button(label=label, style=ButtonStyle.red, custom_id=_cid(Action.DENY)))
    return _view(*items, timeout=None)


def modify_panel_view(message_id: str, previews: Mapping[str, str], user_id: str) -> ui.View:
    return _view(
        ui.Select(
            placeholder="Pick a field to amend",
            options=_field_options(previews),
            custom_id=_cid(Action.MODIFY_FIELD, message_id, user_id=user_id),
        ),
        ui.Button(
            label="Approve with changes",
            style=ButtonStyle.green,
            custom_id=_cid(Action.APPROVE_MODIFIED, message_id, user_id=user_id),
        ),
    )


# ===================== Reading submissions =====================


def modal_values(interaction: discord.Interaction) -> Dict[str, str]:
    """Text input values of a submitted form, keyed by input custom id."""
    values: Dict[str, str] = {}
    data = interaction.data or {}
    for row in data.get("components", []):
        for component in _row_children(row):
            custom_id = component.get("custom_id")
            if custom_id:
                values[custom_id] = component.get("value") or ""
    return values


def _row_children(row: Mapping) -> Iterable[Mapping]:
    if "components" in row:
        return row["components"]
    if "component" in row:
        return [row["component"]]
    return [row]


def selected_value(interaction: discord.Interaction) -> Optional[str]:
    data = interaction.data or {}
    values = data.get("values") or []
    return values[0] if values else None

"""Embeds for request messages and admin output."""

from __future__ import annotations

from typing import Iterable, Mapping, Optional, Tuple

import discord

from ..domain.addressing import to_external_index
from ..domain.coordinates import format_number
from ..domain.models import (
    ChangeRequest,
    CoordinateIndex,
    Location,
    Point,
    RequestKind,
    RequestStatus,
)
from ..domain.snapshots import FIELD_LABELS

KIND_TITLES = {
    RequestKind.NEW: "New location request",
    RequestKind.EDIT: "Edit request",
    RequestKind.REMOVE: "Removal request",
}

STATUS_COLOURS = {
    RequestStatus.PENDING: discord.Colour.gold(),
    RequestStatus.IMPLEMENTED: discord.Colour.green(),
    RequestStatus.DISMISSED: discord.Colour.red(),
    RequestStatus.REVERTED: discord.Colour.dark_grey(),
}

FIELD_VALUE_LIMIT = 1024
_DESCRIPTION_LIMIT = 4096
MAP_LINK_LIMIT = 5


def _clip(text: str, limit: int = FIELD_VALUE_LIMIT) -> str:
    text = text or "(empty)"
    return text if len(text) <= limit else text[: limit - 3] + "..."


def _change_lines(changes: Mapping[str, Tuple[str, str]]) -> Iterable[Tuple[str, str]]:
    for name, (old, new) in changes.items():
        label = FIELD_LABELS.get(name, name.title())
        if old:
            yield label, _clip(f"~~{old}~~\n→ {new}")
        else:
            yield label, _clip(new)


def request_embed(
    kind: RequestKind,
    title: str,
    requester_id: str,
    reason: str,
    changes: Mapping[str, Tuple[str, str]],
) -> discord.Embed:
    """The public embed posted in the request channel."""
    embed = discord.Embed(
        title=f"{KIND_TITLES[kind]}: {title}"[:256],
        colour=STATUS_COLOURS[RequestStatus.PENDING],
    )
    embed.add_field(name="Submitted by", value=f"<@{requester_id}>", inline=True)
    embed.add_field(name="Status", value="Pending", inline=True)
    for label, value in _change_lines(changes):
        embed.add_field(name=label, value=value, inline=False)
    if reason and kind is not RequestKind.NEW:
        embed.add_field(name="Reason", value=_clip(reason), inline=False)
    return embed


def stamp_embed(
    embed: discord.Embed,
    status: RequestStatus,
    moderator_id: str,
    note: Optional[str] = None,
) -> discord.Embed:
    """Mark a request embed with its moderation outcome."""
    stamped = embed.copy()
    stamped.colour = STATUS_COLOURS[status]
    for index, existing in enumerate(stamped.fields):
        if existing.name == "Status":
            stamped.set_field_at(
                index,
                name="Status",
                value=f"{status.value.title()} by <@{moderator_id}>",
                inline=True,
            )
            break
    if note:
        stamped.add_field(name="Moderator note", value=_clip(note), inline=False)
    return stamped


def request_info_embed(
    request: ChangeRequest, changes: Mapping[str, Tuple[str, str]]
) -> discord.Embed:
    embed = discord.Embed(
        title=f"Request {request.id}",
        colour=STATUS_COLOURS[request.status],
    )
    embed.add_field(name="Kind", value=request.kind.value, inline=True)
    embed.add_field(name="Status", value=request.status.value, inline=True)
    embed.add_field(name="Submitted by", value=f"<@{request.requester_id}>", inline=True)
    if request.approver_id:
        embed.add_field(name="Moderator", value=f"<@{request.approver_id}>", inline=True)
    embed.add_field(
        name="Created",
        value=discord.utils.format_dt(request.created_at, "f"),
        inline=True,
    )
    embed.add_field(name="Message", value=request.message_id, inline=True)
    if request.reason:
        embed.add_field(name="Reason", value=_clip(request.reason), inline=False)
    for label, value in _change_lines(changes):
        embed.add_field(name=label, value=value, inline=False)
    return embed


def request_list_embed(
    requests: Iterable[ChangeRequest], status_label: str
) -> discord.Embed:
    lines = [
        f"`{r.id}` {r.kind.value} · {r.status.value} · <@{r.requester_id}> · "
        f"{discord.utils.format_dt(r.created_at, 'R')}"
        for r in requests
    ]
    description = "\n".join(lines) or "No requests found."
    return discord.Embed(
        title=f"Requests ({status_label})",
        description=description[:_DESCRIPTION_LIMIT],
        colour=discord.Colour.blurple(),
    )


def pending_edits_text(display_name: str, edits: Mapping[str, Tuple[str, str]]) -> str:
    """Plain-text summary of an edit session for ephemeral panels."""
    if not edits:
        return f"Editing **{display_name}**. No changes yet: pick a field below."
    lines = [f"Editing **{display_name}**. Pending changes:"]
    for name, (old, new) in edits.items():
        label = FIELD_LABELS.get(name, name)
        lines.append(f"• **{label}**: {old or '(empty)'} → {new or '(empty)'}")
    return "\n".join(lines)[:2000]


# ===================== Map lookup =====================


def map_link(map_url: str, point: Point) -> str:
    return f"{map_url}?coord={format_number(point.x)},{format_number(point.y)}"


def location_embed(location: Location, index: CoordinateIndex, map_url: str) -> discord.Embed:
    """Public answer to /whereis: description, type and map links.

    A concrete ``index`` links that one point; otherwise a multi-point
    entry links its first few points.
    """
    points = location.coordinates.points
    title = location.name
    if isinstance(index, int):
        number = to_external_index(index)
        title = f"{location.name} (Point #{number})"
        links = [f"[View point #{number} on map]({map_link(map_url, points[index])})"]
    elif not location.is_multi_point:
        links = [f"[View on map]({map_link(map_url, points[0])})"]
    else:
        links = [
            f"[Point #{to_external_index(i)}]({map_link(map_url, point)})"
            for i, point in enumerate(points[:MAP_LINK_LIMIT])
        ]
        if len(points) > MAP_LINK_LIMIT:
            links.append(f"*...and {len(points) - MAP_LINK_LIMIT} more points*")

    embed = discord.Embed(
        title=title[:256],
        description=(location.description or "*No description available*")[:_DESCRIPTION_LIMIT],
        colour=discord.Colour.blue(),
    )
    embed.add_field(name="Type", value=location.type or "Unknown", inline=True)
    embed.add_field(name="Map links", value=_clip("\n".join(links)), inline=False)
    return embed

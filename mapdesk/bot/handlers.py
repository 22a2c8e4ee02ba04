"""Handlers for component and form interactions.

One coroutine per Action. Engine calls block on storage and model
services, so they run in worker threads. Anything that may take longer
than the interaction deadline defers first and answers via follow-up.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any, Callable, Dict, Optional, TypeVar

import discord

from ..domain.addressing import parse_selection
from ..domain.errors import PermissionDeniedError, ValidationError
from ..domain.models import (
    Actor,
    CoordinateIndex,
    Location,
    RequestDraft,
    RequestStatus,
    ResolvedCandidate,
)
from ..domain.snapshots import FORM_FIELDS, field_to_text, location_to_snapshot
from ..interactions.actions import Action, ComponentId
from ..interactions.dispatcher import ActionRouter, Handler
from ..services.workflow import ApprovalOutcome, WorkflowEngine, moderation_target
from . import views
from .embeds import pending_edits_text, request_embed, stamp_embed

if TYPE_CHECKING:
    from .client import MapDeskBot

T = TypeVar("T")

log = logging.getLogger(__name__)


def actor_for(interaction: discord.Interaction, admin_role_id: Optional[int]) -> Actor:
    """Build the workflow Actor, deriving moderator rights from roles."""
    user = interaction.user
    is_admin = False
    if isinstance(user, discord.Member):
        is_admin = user.guild_permissions.administrator or (
            admin_role_id is not None and any(r.id == admin_role_id for r in user.roles)
        )
    return Actor(user_id=str(user.id), is_admin=is_admin, display_name=user.display_name)


class DiscordResponder:
    """Responder over a discord.py interaction; every reply is ephemeral."""

    def __init__(self, interaction: discord.Interaction) -> None:
        self.interaction = interaction

    def is_done(self) -> bool:
        return self.interaction.response.is_done()

    async def send_initial(self, content: str) -> None:
        await self.interaction.response.send_message(content, ephemeral=True)

    async def send_followup(self, content: str) -> None:
        await self.interaction.followup.send(content, ephemeral=True)


class InteractionHandlers:
    """All component and form handlers, bound to one bot instance."""

    def __init__(self, bot: MapDeskBot) -> None:
        self.bot = bot

    @property
    def engine(self) -> WorkflowEngine:
        return self.bot.engine

    async def run(self, fn: Callable[..., T], *args: Any) -> T:
        return await asyncio.to_thread(fn, *args)

    def actor(self, interaction: discord.Interaction) -> Actor:
        return actor_for(interaction, self.bot.config.discord.admin_role_id)

    def router(self) -> ActionRouter:
        handlers: Dict[Action, Handler] = {
            Action.NEW_DETAILS: self.new_details,
            Action.NEW_MERGE: self.new_merge,
            Action.NEW_DISTINCT: self.new_distinct,
            Action.NEW_CANCEL: self.new_cancel,
            Action.PICK_POINT: self.pick_point,
            Action.PICK_FIELD: self.pick_field,
            Action.FIELD_FORM: self.field_form,
            Action.SUBMIT_EDITS: self.submit_edits,
            Action.EDIT_REASON: self.edit_reason,
            Action.CANCEL_EDIT: self.cancel_edit,
            Action.REMOVE_REASON: self.remove_reason,
            Action.APPROVE: self.approve,
            Action.MODIFY: self.modify,
            Action.MODIFY_FIELD: self.modify_field,
            Action.MODIFY_FORM: self.modify_form,
            Action.APPROVE_MODIFIED: self.approve_modified,
            Action.DENY: self.deny,
            Action.DENY_REASON: self.deny_reason,
            Action.UNKNOWN: self.unknown,
        }
        return ActionRouter(handlers)

    # ===================== Shared steps =====================

    async def post_request(self, interaction: discord.Interaction, draft: RequestDraft) -> None:
        """Post the public request message, then file the request against it."""
        channel = self.bot.request_channel()
        embed = request_embed(
            draft.kind, draft.title, draft.requester_id, draft.reason, draft.changes
        )
        view = views.moderation_view(draft.kind)
        message = await channel.send(embed=embed, view=view)
        view.stop()
        try:
            await self.run(self.engine.file_request, draft, str(message.id))
        except Exception:
            await message.delete()
            raise
        await interaction.followup.send(
            f"Your request was submitted for review: {message.jump_url}", ephemeral=True
        )

    async def show_edit_panel(
        self,
        interaction: discord.Interaction,
        location: Location,
        index: CoordinateIndex,
        edit_message: bool = False,
    ) -> None:
        actor = self.actor(interaction)
        session = await self.run(self.engine.get_edit_session, actor, location.id)
        snapshot = location_to_snapshot(location)
        previews = {name: field_to_text(name, snapshot.get(name)) for name in FORM_FIELDS}
        pending = {
            name: (edit.old_value, edit.new_value)
            for name, edit in session.field_edits.items()
        }
        title = ResolvedCandidate(
            name=location.name,
            location_id=location.id,
            coordinate_index=index,
            is_multi_point=location.is_multi_point,
            point_count=location.point_count,
        ).label
        content = pending_edits_text(title, pending)
        view = views.edit_panel_view(location.id, index, previews, actor.user_id)
        if edit_message:
            await interaction.response.edit_message(content=content, view=view)
        else:
            await interaction.response.send_message(content, view=view, ephemeral=True)
        view.stop()

    async def update_request_message(
        self,
        interaction: discord.Interaction,
        message_id: str,
        status: RequestStatus,
        note: Optional[str] = None,
    ) -> None:
        message = interaction.message
        if message is None or str(message.id) != message_id:
            message = await self.bot.request_channel().fetch_message(int(message_id))
        if not message.embeds:
            await message.edit(view=None)
            return
        embed = stamp_embed(message.embeds[0], status, str(interaction.user.id), note)
        await message.edit(embed=embed, view=None)

    def require_owner(self, interaction: discord.Interaction, component: ComponentId) -> None:
        if not component.allows(str(interaction.user.id)):
            raise PermissionDeniedError(
                "These controls belong to someone else.",
                actor_id=str(interaction.user.id),
                action=component.action.value,
            )

    # ===================== New entry flow =====================

    async def new_details(self, interaction: discord.Interaction, component: ComponentId) -> None:
        self.require_owner(interaction, component)
        values = views.modal_values(interaction)
        await interaction.response.defer(ephemeral=True, thinking=True)
        actor = self.actor(interaction)
        draft = await self.run(
            self.engine.draft_new_request,
            actor,
            values.get("coordinates", ""),
            values.get("description", ""),
            values.get("media_url"),
        )
        if draft.needs_path_choice and draft.near_match is not None:
            view = views.near_match_view(draft.near_match, actor.user_id)
            await interaction.followup.send(
                f"A similar entry already exists: **{draft.near_match.name}**. "
                "Should your coordinates be added to it, or is this a different place?",
                view=view,
                ephemeral=True,
            )
            view.stop()
            return
        request = await self.run(self.engine.build_new_request, actor)
        await self.post_request(interaction, request)

    async def _new_path(
        self, interaction: discord.Interaction, component: ComponentId, merge_into: Optional[str]
    ) -> None:
        self.require_owner(interaction, component)
        await interaction.response.defer(ephemeral=True, thinking=True)
        actor = self.actor(interaction)
        await self.run(self.engine.choose_new_path, actor, merge_into)
        request = await self.run(self.engine.build_new_request, actor)
        await self.post_request(interaction, request)

    async def new_merge(self, interaction: discord.Interaction, component: ComponentId) -> None:
        if not component.target_id:
            raise ValidationError("This control is missing its target.")
        await self._new_path(interaction, component, component.target_id)

    async def new_distinct(self, interaction: discord.Interaction, component: ComponentId) -> None:
        await self._new_path(interaction, component, None)

    async def new_cancel(self, interaction: discord.Interaction, component: ComponentId) -> None:
        self.require_owner(interaction, component)
        await self.run(self.engine.cancel_new_request, self.actor(interaction))
        await interaction.response.edit_message(content="Request cancelled.", view=None)

    # ===================== Edit flow =====================

    async def _location(self, component: ComponentId) -> Location:
        if not component.target_id:
            raise ValidationError("This control is missing its target.")
        return await self.run(self.engine.get_location, component.target_id)

    async def pick_point(self, interaction: discord.Interaction, component: ComponentId) -> None:
        self.require_owner(interaction, component)
        location = await self._location(component)
        index = parse_selection(views.selected_value(interaction) or "").index
        await self.show_edit_panel(interaction, location, index, edit_message=True)

    async def pick_field(self, interaction: discord.Interaction, component: ComponentId) -> None:
        self.require_owner(interaction, component)
        field_name = views.selected_value(interaction)
        if field_name not in FORM_FIELDS:
            raise ValidationError("Unknown field.", field=field_name)
        location = await self._location(component)
        default = await self.run(
            self.engine.field_form_default,
            self.actor(interaction),
            location,
            field_name,
            component.aux_index,
        )
        modal = views.field_modal(
            Action.FIELD_FORM,
            location.id,
            field_name,
            default,
            component.aux_index,
            component.user_id,
        )
        await interaction.response.send_modal(modal)

    async def field_form(self, interaction: discord.Interaction, component: ComponentId) -> None:
        self.require_owner(interaction, component)
        location = await self._location(component)
        actor = self.actor(interaction)
        for field_name, value in views.modal_values(interaction).items():
            await self.run(
                self.engine.record_field_edit,
                actor,
                location.id,
                field_name,
                value,
                component.aux_index,
            )
        await self.show_edit_panel(interaction, location, component.aux_index, edit_message=True)

    async def submit_edits(self, interaction: discord.Interaction, component: ComponentId) -> None:
        self.require_owner(interaction, component)
        location = await self._location(component)
        session = await self.run(
            self.engine.get_edit_session, self.actor(interaction), location.id
        )
        if session.is_empty:
            raise ValidationError("You haven't edited any field yet.")
        modal = views.reason_modal(
            Action.EDIT_REASON,
            f"Why edit {location.name}?",
            location.id,
            component.aux_index,
            component.user_id,
        )
        await interaction.response.send_modal(modal)

    async def edit_reason(self, interaction: discord.Interaction, component: ComponentId) -> None:
        self.require_owner(interaction, component)
        reason = views.modal_values(interaction).get("reason", "")
        await interaction.response.defer(ephemeral=True, thinking=True)
        draft = await self.run(
            self.engine.build_edit_request,
            self.actor(interaction),
            component.target_id or "",
            reason,
        )
        await self.post_request(interaction, draft)

    async def cancel_edit(self, interaction: discord.Interaction, component: ComponentId) -> None:
        self.require_owner(interaction, component)
        await self.run(
            self.engine.discard_edit_session,
            self.actor(interaction),
            component.target_id or "",
        )
        await interaction.response.edit_message(content="Edit cancelled.", view=None)

    # ===================== Remove flow =====================

    async def remove_reason(self, interaction: discord.Interaction, component: ComponentId) -> None:
        self.require_owner(interaction, component)
        reason = views.modal_values(interaction).get("reason", "")
        await interaction.response.defer(ephemeral=True, thinking=True)
        draft = await self.run(
            self.engine.build_remove_request,
            self.actor(interaction),
            component.target_id or "",
            component.aux_index,
            reason,
        )
        await self.post_request(interaction, draft)

    # ===================== Moderation =====================

    def _message_id(self, interaction: discord.Interaction, component: ComponentId) -> str:
        if component.target_id:
            return component.target_id
        if interaction.message is None:
            raise ValidationError("This control is not attached to a request.")
        return str(interaction.message.id)

    async def _finish_approval(
        self, interaction: discord.Interaction, message_id: str, outcome: ApprovalOutcome
    ) -> None:
        await interaction.followup.send(outcome.summary, ephemeral=True)
        try:
            await self.update_request_message(
                interaction, message_id, RequestStatus.IMPLEMENTED, outcome.summary
            )
        except discord.HTTPException as e:
            log.warning(
                "Could not restamp approved request message",
                extra={
                    "message_id": message_id,
                    "request_id": outcome.request.id,
                    "error": str(e),
                },
            )

    async def approve(self, interaction: discord.Interaction, component: ComponentId) -> None:
        message_id = self._message_id(interaction, component)
        await interaction.response.defer(ephemeral=True, thinking=True)
        outcome = await self.run(self.engine.approve, self.actor(interaction), message_id)
        await self._finish_approval(interaction, message_id, outcome)

    async def _show_modify_panel(
        self, interaction: discord.Interaction, message_id: str, edit_message: bool
    ) -> None:
        actor = self.actor(interaction)
        session = await self.run(
            self.engine.get_edit_session, actor, moderation_target(message_id)
        )
        pending = {
            name: (edit.old_value, edit.new_value)
            for name, edit in session.field_edits.items()
        }
        previews = {name: new for name, (_, new) in pending.items()}
        content = pending_edits_text(session.display_name or "request", pending)
        view = views.modify_panel_view(message_id, previews, actor.user_id)
        if edit_message:
            await interaction.response.edit_message(content=content, view=view)
        else:
            await interaction.response.send_message(content, view=view, ephemeral=True)
        view.stop()

    async def modify(self, interaction: discord.Interaction, component: ComponentId) -> None:
        message_id = self._message_id(interaction, component)
        await self.run(self.engine.open_moderation_session, self.actor(interaction), message_id)
        await self._show_modify_panel(interaction, message_id, edit_message=False)

    async def modify_field(self, interaction: discord.Interaction, component: ComponentId) -> None:
        self.require_owner(interaction, component)
        field_name = views.selected_value(interaction)
        if field_name not in FORM_FIELDS:
            raise ValidationError("Unknown field.", field=field_name)
        message_id = self._message_id(interaction, component)
        default = await self.run(
            self.engine.moderation_field_default,
            self.actor(interaction),
            message_id,
            field_name,
        )
        modal = views.field_modal(
            Action.MODIFY_FORM, message_id, field_name, default, user_id=component.user_id
        )
        await interaction.response.send_modal(modal)

    async def modify_form(self, interaction: discord.Interaction, component: ComponentId) -> None:
        self.require_owner(interaction, component)
        message_id = self._message_id(interaction, component)
        actor = self.actor(interaction)
        for field_name, value in views.modal_values(interaction).items():
            await self.run(
                self.engine.amend_moderation_field, actor, message_id, field_name, value
            )
        await self._show_modify_panel(interaction, message_id, edit_message=True)

    async def approve_modified(self, interaction: discord.Interaction, component: ComponentId) -> None:
        self.require_owner(interaction, component)
        message_id = self._message_id(interaction, component)
        await interaction.response.defer(ephemeral=True, thinking=True)
        outcome = await self.run(
            self.engine.approve_with_amendments, self.actor(interaction), message_id
        )
        await self._finish_approval(interaction, message_id, outcome)

    async def deny(self, interaction: discord.Interaction, component: ComponentId) -> None:
        message_id = self._message_id(interaction, component)
        self.engine.ensure_moderator(self.actor(interaction), "deny")
        modal = views.reason_modal(
            Action.DENY_REASON,
            "Reason for denial",
            message_id,
            user_id=str(interaction.user.id),
            label="Why is this request denied?",
        )
        await interaction.response.send_modal(modal)

    async def deny_reason(self, interaction: discord.Interaction, component: ComponentId) -> None:
        self.require_owner(interaction, component)
        message_id = self._message_id(interaction, component)
        reason = views.modal_values(interaction).get("reason", "")
        await interaction.response.defer(ephemeral=True, thinking=True)
        await self.run(self.engine.deny, self.actor(interaction), message_id, reason)
        await self.update_request_message(
            interaction, message_id, RequestStatus.DISMISSED, reason
        )
        await interaction.followup.send("Request dismissed.", ephemeral=True)

    async def unknown(self, interaction: discord.Interaction, component: ComponentId) -> None:
        log.info(
            "Unknown component interaction",
            extra={"custom_id": (interaction.data or {}).get("custom_id")},
        )
        await interaction.response.send_message(
            "This control is no longer active.", ephemeral=True
        )

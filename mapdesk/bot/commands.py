"""Slash commands: /request and /whereis for members, /admin for moderators."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, List, Optional

import discord
from discord import app_commands

from ..domain.models import RequestStatus
from ..interactions.actions import Action
from ..interactions.dispatcher import guarded
from . import views
from .embeds import location_embed, request_info_embed, request_list_embed
from .handlers import DiscordResponder

if TYPE_CHECKING:
    from .client import MapDeskBot

log = logging.getLogger(__name__)

_CHOICE_LIMIT = 100

STATUS_CHOICES = [
    app_commands.Choice(name="Pending", value="pending"),
    app_commands.Choice(name="Implemented", value="implemented"),
    app_commands.Choice(name="Dismissed", value="dismissed"),
    app_commands.Choice(name="Reverted", value="reverted"),
    app_commands.Choice(name="All", value="all"),
]


async def location_choices(bot: MapDeskBot, current: str) -> List[app_commands.Choice[str]]:
    """Autocomplete choices for a location option. Direct matches only."""
    try:
        candidates = await bot.handlers.run(
            bot.resolver.resolve,
            current,
            bot.config.resolver.max_choices,
            False,
        )
    except Exception as e:
        log.warning("Autocomplete failed", extra={"query": current, "error": str(e)})
        return []
    return [
        app_commands.Choice(name=c.label[:_CHOICE_LIMIT], value=c.value[:_CHOICE_LIMIT])
        for c in candidates
    ]


def whereis_command(bot: MapDeskBot) -> app_commands.Command:
    """Public /whereis: map links for a location or one of its points."""

    @app_commands.command(name="whereis", description="Get a link to a location on the map")
    @app_commands.describe(location="Name of the location to find")
    async def whereis(interaction: discord.Interaction, location: str) -> None:
        async def handle() -> None:
            await interaction.response.defer(thinking=True)
            found, index = await bot.handlers.run(bot.resolver.find_target, location)
            await interaction.followup.send(
                embed=location_embed(found, index, bot.config.discord.map_url)
            )

        await guarded(DiscordResponder(interaction), handle)

    @whereis.autocomplete("location")
    async def _whereis_autocomplete(
        interaction: discord.Interaction, current: str
    ) -> List[app_commands.Choice[str]]:
        return await location_choices(bot, current)

    return whereis


class RequestCommands(app_commands.Group):
    """Submit new locations, edits and removals for review."""

    def __init__(self, bot: MapDeskBot) -> None:
        super().__init__(name="request", description="Propose changes to the map")
        self.bot = bot

    async def location_autocomplete(
        self, interaction: discord.Interaction, current: str
    ) -> List[app_commands.Choice[str]]:
        return await location_choices(self.bot, current)

    @app_commands.command(name="new", description="Suggest a new location")
    @app_commands.describe(name="Name of the new location")
    async def new(self, interaction: discord.Interaction, name: str) -> None:
        async def handle() -> None:
            actor = self.bot.handlers.actor(interaction)
            draft = self.bot.engine.start_new_request(actor, name)
            await interaction.response.send_modal(
                views.new_details_modal(draft.name, actor.user_id)
            )

        await guarded(DiscordResponder(interaction), handle)

    @app_commands.command(name="edit", description="Suggest changes to a location")
    @app_commands.describe(location="Location to edit")
    async def edit(self, interaction: discord.Interaction, location: str) -> None:
        async def handle() -> None:
            handlers = self.bot.handlers
            actor = handlers.actor(interaction)
            target = await handlers.run(self.bot.engine.begin_edit, actor, location)
            if target.needs_point_choice:
                choices = self.bot.engine.point_choices(target.location)
                view = views.point_choice_view(target.location, choices, actor.user_id)
                await interaction.response.send_message(
                    f"**{target.location.name}** has {target.location.point_count} points. "
                    "Pick one, or all of them.",
                    view=view,
                    ephemeral=True,
                )
                view.stop()
                return
            await handlers.show_edit_panel(interaction, target.location, target.index)

        await guarded(DiscordResponder(interaction), handle)

    @app_commands.command(name="remove", description="Ask for a location or one of its points to be removed")
    @app_commands.describe(location="Location (or point) to remove")
    async def remove(self, interaction: discord.Interaction, location: str) -> None:
        async def handle() -> None:
            handlers = self.bot.handlers
            actor = handlers.actor(interaction)
            target = await handlers.run(self.bot.engine.begin_remove, actor, location)
            modal = views.reason_modal(
                Action.REMOVE_REASON,
                f"Remove {target.location.name}",
                target.location.id,
                target.index,
                actor.user_id,
                label="Why should this be removed?",
            )
            await interaction.response.send_modal(modal)

        await guarded(DiscordResponder(interaction), handle)

    @edit.autocomplete("location")
    async def _edit_autocomplete(
        self, interaction: discord.Interaction, current: str
    ) -> List[app_commands.Choice[str]]:
        return await self.location_autocomplete(interaction, current)

    @remove.autocomplete("location")
    async def _remove_autocomplete(
        self, interaction: discord.Interaction, current: str
    ) -> List[app_commands.Choice[str]]:
        return await self.location_autocomplete(interaction, current)


class AdminCommands(app_commands.Group):
    """Moderator tools over the request history."""

    def __init__(self, bot: MapDeskBot) -> None:
        super().__init__(name="admin", description="Moderate map change requests")
        self.bot = bot

    @app_commands.command(name="undo", description="Revert an implemented request")
    @app_commands.describe(request_id="Request id (or its message id)")
    async def undo(self, interaction: discord.Interaction, request_id: str) -> None:
        async def handle() -> None:
            handlers = self.bot.handlers
            actor = handlers.actor(interaction)
            self.bot.engine.ensure_moderator(actor, "undo")
            await interaction.response.defer(ephemeral=True, thinking=True)
            reverted = await handlers.run(self.bot.engine.undo, actor, request_id.strip())
            await interaction.followup.send(
                f"Request `{reverted.id}` was reverted.", ephemeral=True
            )

        await guarded(DiscordResponder(interaction), handle)

    @app_commands.command(name="info", description="Show one request in detail")
    @app_commands.describe(request_id="Request id (or its message id)")
    async def info(self, interaction: discord.Interaction, request_id: str) -> None:
        async def handle() -> None:
            handlers = self.bot.handlers
            actor = handlers.actor(interaction)
            request = await handlers.run(
                self.bot.engine.request_info, actor, request_id.strip()
            )
            changes = self.bot.engine.request_changes(request)
            await interaction.response.send_message(
                embed=request_info_embed(request, changes), ephemeral=True
            )

        await guarded(DiscordResponder(interaction), handle)

    @app_commands.command(name="requests", description="List recent requests")
    @app_commands.describe(status="Only show requests in this state")
    @app_commands.choices(status=STATUS_CHOICES)
    async def requests(
        self,
        interaction: discord.Interaction,
        status: Optional[app_commands.Choice[str]] = None,
    ) -> None:
        async def handle() -> None:
            handlers = self.bot.handlers
            actor = handlers.actor(interaction)
            value = status.value if status else "pending"
            wanted = None if value == "all" else RequestStatus(value)
            found = await handlers.run(self.bot.engine.list_requests, actor, wanted)
            await interaction.response.send_message(
                embed=request_list_embed(found, value), ephemeral=True
            )

        await guarded(DiscordResponder(interaction), handle)

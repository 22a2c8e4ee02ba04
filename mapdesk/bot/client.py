"""The Discord client: command registration, routing and background jobs."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional

import discord
from discord import app_commands
from discord.ext import tasks

from ..config import AppConfig
from ..container import Container, get_container
from ..interactions.actions import ComponentId
from ..interactions.dispatcher import guarded
from ..ports.sessions import EditSessionStorePort
from ..ports.stores import RequestStorePort
from ..services import NameResolver, WorkflowEngine, reconcile_requests
from .commands import AdminCommands, RequestCommands, whereis_command
from .handlers import DiscordResponder, InteractionHandlers

log = logging.getLogger(__name__)

UNKNOWN_MESSAGE = 10008

_ROUTED_TYPES = (discord.InteractionType.component, discord.InteractionType.modal_submit)


class DiscordMessageProbe:
    """MessageProbePort over the request channel."""

    def __init__(self, bot: MapDeskBot) -> None:
        self.bot = bot

    async def message_exists(self, message_id: str) -> bool:
        channel = self.bot.request_channel()
        try:
            await channel.fetch_message(int(message_id))
        except discord.NotFound as e:
            if e.code == UNKNOWN_MESSAGE:
                return False
            raise
        return True


class MapDeskBot(discord.Client):
    """Request & approval bot.

    Components and forms are not bound to view callbacks: every one of
    them is decoded from its custom id in on_interaction and routed to
    a handler, so controls keep working across restarts.
    """

    def __init__(self, container: Container) -> None:
        intents = discord.Intents.default()
        super().__init__(intents=intents)
        self.container = container
        self.config: AppConfig = container.config
        self.engine: WorkflowEngine = container.resolve(WorkflowEngine)
        self.resolver: NameResolver = container.resolve(NameResolver)
        self.requests: RequestStorePort = container.resolve(RequestStorePort)
        self.sessions: EditSessionStorePort = container.resolve(EditSessionStorePort)
        self.tree = app_commands.CommandTree(self)
        self.handlers = InteractionHandlers(self)
        self.router = self.handlers.router()
        self.probe = DiscordMessageProbe(self)

    def request_channel(self) -> Any:
        channel_id = self.config.discord.request_channel_id
        channel = self.get_channel(channel_id) if channel_id else None
        if channel is None:
            raise RuntimeError(f"Request channel {channel_id} is not available")
        return channel

    async def setup_hook(self) -> None:
        self.tree.add_command(RequestCommands(self))
        self.tree.add_command(AdminCommands(self))
        self.tree.add_command(whereis_command(self))
        guild_id = self.config.discord.guild_id
        if guild_id:
            guild = discord.Object(id=guild_id)
            self.tree.copy_global_to(guild=guild)
            await self.tree.sync(guild=guild)
        else:
            await self.tree.sync()

        self.sweep_sessions.change_interval(
            seconds=self.config.session.sweep_interval_seconds
        )
        self.sweep_sessions.start()
        if self.config.sync.enabled:
            self.reconcile.change_interval(hours=self.config.sync.interval_hours)
            self.reconcile.start()

    async def on_ready(self) -> None:
        log.info("Bot connected", extra={"user": str(self.user), "guilds": len(self.guilds)})

    async def on_interaction(self, interaction: discord.Interaction) -> None:
        if interaction.type not in _ROUTED_TYPES:
            return
        component = ComponentId.decode((interaction.data or {}).get("custom_id"))
        log.debug(
            "Routing interaction",
            extra={"action": component.action.value, "user_id": interaction.user.id},
        )
        await guarded(
            DiscordResponder(interaction),
            lambda: self.router.dispatch(interaction, component),
        )

    async def close(self) -> None:
        self.sweep_sessions.cancel()
        self.reconcile.cancel()
        await super().close()

    # ===================== Background jobs =====================

    @tasks.loop(seconds=300)
    async def sweep_sessions(self) -> None:
        evicted = await asyncio.to_thread(self.sessions.sweep)
        drafts = self.container.caches.get("drafts")
        if drafts is not None:
            evicted += drafts.purge_expired()
        if evicted:
            log.debug("Expired sessions and drafts removed", extra={"count": evicted})

    @tasks.loop(hours=24)
    async def reconcile(self) -> None:
        await reconcile_requests(
            self.requests,
            self.probe,
            pause_every=self.config.sync.pause_every,
            pause_seconds=self.config.sync.pause_seconds,
        )

    @reconcile.before_loop
    async def _before_reconcile(self) -> None:
        await self.wait_until_ready()
        await asyncio.sleep(self.config.sync.initial_delay_seconds)

    @reconcile.error
    async def _reconcile_failed(self, error: BaseException) -> None:
        log.error("Reconciliation run failed", exc_info=error)


def create_bot(container: Optional[Container] = None) -> MapDeskBot:
    return MapDeskBot(container or get_container())

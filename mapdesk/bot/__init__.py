"""Discord surface - slash commands, components and background jobs."""

from .client import DiscordMessageProbe, MapDeskBot, create_bot

__all__ = ["DiscordMessageProbe", "MapDeskBot", "create_bot"]

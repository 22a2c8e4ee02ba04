"""Tests for the /whereis command and location autocomplete."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from mapdesk.bot.commands import location_choices, whereis_command


@pytest.fixture
def bot(resolver):
    bot = MagicMock()
    bot.resolver = resolver
    bot.config.discord.map_url = "https://map.example/"
    bot.config.resolver.max_choices = 25
    bot.handlers.run = AsyncMock(side_effect=lambda fn, *args: fn(*args))
    return bot


@pytest.fixture
def interaction():
    interaction = MagicMock()
    interaction.response.defer = AsyncMock()
    interaction.response.is_done.return_value = True
    interaction.followup.send = AsyncMock()
    return interaction


def run_whereis(bot, interaction, location):
    command = whereis_command(bot)
    asyncio.run(command.callback(interaction, location))


def test_whereis_links_one_point(bot, interaction):
    run_whereis(bot, interaction, "Iron Vein #2")

    interaction.response.defer.assert_awaited_once()
    embed = interaction.followup.send.call_args.kwargs["embed"]
    assert embed.title == "Iron Vein (Point #2)"
    assert "https://map.example/?coord=2,2" in embed.fields[1].value


def test_whereis_accepts_autocomplete_values(bot, interaction):
    run_whereis(bot, interaction, "Watchtower|*")
    embed = interaction.followup.send.call_args.kwargs["embed"]
    assert embed.title == "Watchtower"


def test_whereis_unknown_location(bot, interaction):
    run_whereis(bot, interaction, "Atlantis")
    interaction.followup.send.assert_awaited_once_with(
        "No location named 'Atlantis' was found.", ephemeral=True
    )


def test_whereis_is_registered_with_autocomplete(bot):
    command = whereis_command(bot)
    assert command.name == "whereis"
    assert command.get_parameter("location").autocomplete


def test_location_choices(bot):
    choices = asyncio.run(location_choices(bot, "iron"))
    assert [c.value for c in choices] == ["Iron Vein|*", "Iron Vein|0", "Iron Vein|1", "Iron Vein|2"]


def test_location_choices_survive_failures(bot):
    bot.handlers.run = AsyncMock(side_effect=RuntimeError("pool closed"))
    assert asyncio.run(location_choices(bot, "iron")) == []

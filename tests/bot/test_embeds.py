"""Tests for request embeds and actor resolution."""

from unittest.mock import MagicMock

import discord
import pytest

from mapdesk.bot.embeds import (
    location_embed,
    map_link,
    pending_edits_text,
    request_embed,
    request_list_embed,
    stamp_embed,
)
from mapdesk.bot.handlers import actor_for
from mapdesk.domain.models import WILDCARD, ChangeRequest, Point, RequestKind, RequestStatus


def field_map(embed):
    return {f.name: f.value for f in embed.fields}


def test_request_embed_lists_changes_and_reason():
    embed = request_embed(
        RequestKind.EDIT,
        "Old Mill",
        "111",
        "typo in name",
        {"name": ("Old Mill", "New Mill"), "description": ("", "Rebuilt")},
    )
    fields = field_map(embed)
    assert embed.title == "Edit request: Old Mill"
    assert fields["Status"] == "Pending"
    assert fields["Submitted by"] == "<@111>"
    assert "~~Old Mill~~" in fields["Name"]
    assert fields["Reason"] == "typo in name"


def test_new_request_embed_has_no_reason_field():
    embed = request_embed(RequestKind.NEW, "Harbor", "111", "ignored", {"name": ("", "Harbor")})
    assert "Reason" not in field_map(embed)


def test_long_values_are_clipped():
    embed = request_embed(RequestKind.NEW, "Harbor", "111", "", {"description": ("", "x" * 2000)})
    assert all(len(f.value) <= 1024 for f in embed.fields)


def test_stamp_embed_updates_status_and_keeps_original():
    original = request_embed(RequestKind.REMOVE, "Old Mill", "111", "gone", {})
    stamped = stamp_embed(original, RequestStatus.DISMISSED, "999", note="Still there")
    assert field_map(stamped)["Status"] == "Dismissed by <@999>"
    assert field_map(stamped)["Moderator note"] == "Still there"
    assert field_map(original)["Status"] == "Pending"
    assert stamped.colour == discord.Colour.red()


def test_request_list_embed_empty():
    assert request_list_embed([], "pending").description == "No requests found."


def test_request_list_embed_rows():
    request = ChangeRequest(id="r1", message_id="m1", requester_id="111", kind=RequestKind.NEW)
    embed = request_list_embed([request], "all")
    assert embed.title == "Requests (all)"
    assert "`r1` new · pending · <@111>" in embed.description


def test_pending_edits_text():
    assert "No changes yet" in pending_edits_text("Old Mill", {})
    text = pending_edits_text("Old Mill", {"type": ("poi", "camp")})
    assert "poi → camp" in text


MAP_URL = "https://map.example/"


class TestLocationEmbed:
    def test_map_link_drops_trailing_zeros(self):
        assert map_link(MAP_URL, Point(10, 20.5)) == "https://map.example/?coord=10,20.5"

    def test_single_point(self, locations):
        embed = location_embed(locations.get("old-mill"), None, MAP_URL)
        fields = field_map(embed)
        assert embed.title == "Old Mill"
        assert embed.description == "A ruined mill"
        assert fields["Type"] == "poi"
        assert fields["Map links"] == "[View on map](https://map.example/?coord=10,20)"

    def test_one_point_uses_its_external_number(self, locations):
        embed = location_embed(locations.get("iron-vein"), 1, MAP_URL)
        assert embed.title == "Iron Vein (Point #2)"
        assert field_map(embed)["Map links"] == (
            "[View point #2 on map](https://map.example/?coord=2,2)"
        )

    @pytest.mark.parametrize("index", [None, WILDCARD])
    def test_every_point_is_linked(self, locations, index):
        links = field_map(location_embed(locations.get("iron-vein"), index, MAP_URL))["Map links"]
        assert links.splitlines() == [
            "[Point #1](https://map.example/?coord=1,1)",
            "[Point #2](https://map.example/?coord=2,2)",
            "[Point #3](https://map.example/?coord=3,3)",
        ]

    def test_long_point_lists_are_cut(self, make_multi):
        location = make_multi("Ore Field", *[(i, i) for i in range(8)], description="")
        embed = location_embed(location, None, MAP_URL)
        lines = field_map(embed)["Map links"].splitlines()
        assert len(lines) == 6
        assert lines[-1] == "*...and 3 more points*"
        assert embed.description == "*No description available*"


class TestActorFor:
    def make_interaction(self, administrator=False, role_ids=()):
        member = MagicMock(spec=discord.Member)
        member.id = 42
        member.display_name = "Mod"
        member.guild_permissions.administrator = administrator
        member.roles = [MagicMock(id=role_id) for role_id in role_ids]
        interaction = MagicMock()
        interaction.user = member
        return interaction

    def test_administrator(self):
        actor = actor_for(self.make_interaction(administrator=True), None)
        assert actor.is_admin
        assert actor.user_id == "42"

    def test_admin_role(self):
        assert actor_for(self.make_interaction(role_ids=(5, 7)), 7).is_admin

    def test_regular_member(self):
        assert not actor_for(self.make_interaction(role_ids=(5,)), 7).is_admin

    def test_direct_message_user_is_never_admin(self):
        interaction = MagicMock()
        interaction.user = MagicMock(spec=discord.User)
        interaction.user.id = 1
        interaction.user.display_name = "Someone"
        assert not actor_for(interaction, 7).is_admin

"""Tests for action routing and the one-response guarantee."""

import asyncio

import pytest

from mapdesk.domain.errors import PermissionDeniedError
from mapdesk.interactions import Action, ActionRouter, ComponentId, guarded, respond
from mapdesk.interactions.dispatcher import DEFAULT_ACK, GENERIC_ERROR


class FakeResponder:
    def __init__(self, done=False):
        self.done = done
        self.initial = []
        self.followups = []

    def is_done(self):
        return self.done

    async def send_initial(self, content):
        self.initial.append(content)
        self.done = True

    async def send_followup(self, content):
        self.followups.append(content)


async def noop(interaction, component):
    return None


def test_router_requires_every_action():
    handlers = {action: noop for action in Action if action is not Action.DENY}
    with pytest.raises(ValueError, match="deny"):
        ActionRouter(handlers)


def test_router_dispatches_by_action():
    seen = []

    async def record(interaction, component):
        seen.append((interaction, component.action))

    handlers = {action: noop for action in Action}
    handlers[Action.APPROVE] = record
    router = ActionRouter(handlers)
    asyncio.run(router.dispatch("ix", ComponentId(Action.APPROVE, "m1")))
    assert seen == [("ix", Action.APPROVE)]


def test_respond_uses_followup_once_answered():
    responder = FakeResponder(done=True)
    asyncio.run(respond(responder, "hi"))
    assert responder.followups == ["hi"]
    assert responder.initial == []


class TestGuarded:
    def test_domain_error_message_is_shown(self):
        responder = FakeResponder()

        async def handler():
            raise PermissionDeniedError("Only moderators can approve.", actor_id="1")

        asyncio.run(guarded(responder, handler))
        assert responder.initial == ["Only moderators can approve."]

    def test_unexpected_error_gets_generic_message(self):
        responder = FakeResponder(done=True)

        async def handler():
            raise KeyError("boom")

        asyncio.run(guarded(responder, handler))
        assert responder.followups == [GENERIC_ERROR]

    def test_silent_handler_is_acknowledged(self):
        responder = FakeResponder()

        async def handler():
            return None

        asyncio.run(guarded(responder, handler))
        assert responder.initial == [DEFAULT_ACK]

    def test_answering_handler_gets_no_extra_response(self):
        responder = FakeResponder()

        async def handler():
            await responder.send_initial("Request posted.")

        asyncio.run(guarded(responder, handler))
        assert responder.initial == ["Request posted."]
        assert responder.followups == []

"""Action routing and the one-response guarantee.

Every interaction must receive exactly one visible response. guarded()
wraps a handler so that domain errors become their message, unexpected
errors become a generic apology, and a handler that forgot to answer
still acknowledges the user.
"""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, Dict, Mapping, Protocol

from ..domain.errors import MapDeskError
from .actions import Action, ComponentId

logger = logging.getLogger(__name__)

GENERIC_ERROR = "Something went wrong while handling that. Please try again."
DEFAULT_ACK = "Done."

Handler = Callable[[Any, ComponentId], Awaitable[None]]


class Responder(Protocol):
    """The response channel of one interaction."""

    def is_done(self) -> bool:
        ...

    async def send_initial(self, content: str) -> None:
        ...

    async def send_followup(self, content: str) -> None:
        ...


async def respond(responder: Responder, content: str) -> None:
    """Answer through the initial response if still open, else a follow-up."""
    if responder.is_done():
        await responder.send_followup(content)
    else:
        await responder.send_initial(content)


async def guarded(responder: Responder, handler: Callable[[], Awaitable[None]]) -> None:
    try:
        await handler()
    except MapDeskError as e:
        logger.info(
            "Interaction refused",
            extra={"error_type": type(e).__name__, "error": e.message},
        )
        await respond(responder, e.message)
        return
    except Exception:
        logger.exception("Unhandled error in interaction handler")
        await respond(responder, GENERIC_ERROR)
        return
    if not responder.is_done():
        await responder.send_initial(DEFAULT_ACK)


class ActionRouter:
    """Maps every Action to a handler.

    Construction fails if any action has no handler, so a new action
    cannot ship without one.
    """

    def __init__(self, handlers: Mapping[Action, Handler]) -> None:
        missing = [action.value for action in Action if action not in handlers]
        if missing:
            raise ValueError(f"No handler for actions: {', '.join(missing)}")
        self._handlers: Dict[Action, Handler] = dict(handlers)

    async def dispatch(self, interaction: Any, component: ComponentId) -> None:
        await self._handlers[component.action](interaction, component)

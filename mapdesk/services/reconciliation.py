"""Reconcile stored requests with the chat messages that carry them.

A request whose message was deleted can never be moderated, so it is
purged. The sweep is paced to stay under the chat platform's rate
limits and skips (but logs) any request it cannot check.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, List

from ..domain.models import RequestStatus
from ..ports.stores import RequestStorePort
from ..ports.surface import MessageProbePort

logger = logging.getLogger(__name__)


@dataclass
class ReconciliationReport:
    checked: int = 0
    purged: List[str] = field(default_factory=list)
    errors: int = 0


async def reconcile_requests(
    requests: RequestStorePort,
    probe: MessageProbePort,
    pause_every: int = 5,
    pause_seconds: float = 1.0,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> ReconciliationReport:
    """Purge pending requests whose message no longer exists.

    Args:
        requests: The Request Store (called from a worker thread).
        probe: Checks message existence on the chat platform.
        pause_every: Pause after this many checks.
        pause_seconds: Length of each pause.
        sleep: Awaitable sleep, injectable for tests.

    Returns:
        Counts of checked, purged and failed requests.
    """
    report = ReconciliationReport()
    pending = await asyncio.to_thread(requests.list_by_status, RequestStatus.PENDING)
    logger.info("Reconciling pending requests", extra={"count": len(pending)})

    for position, request in enumerate(pending, start=1):
        try:
            exists = await probe.message_exists(request.message_id)
            report.checked += 1
            if not exists:
                await asyncio.to_thread(
                    requests.delete_by_message_id, request.message_id
                )
                report.purged.append(request.id)
                logger.info(
                    "Purged request with deleted message",
                    extra={"request_id": request.id, "message_id": request.message_id},
                )
        except Exception as e:
            report.errors += 1
            logger.error(
                "Could not reconcile request",
                extra={"request_id": request.id, "error": str(e)},
            )
        if pause_every > 0 and position % pause_every == 0 and position < len(pending):
            await sleep(pause_seconds)

    logger.info(
        "Reconciliation finished",
        extra={
            "checked": report.checked,
            "purged": len(report.purged),
            "errors": report.errors,
        },
    )
    return report

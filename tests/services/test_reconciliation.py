"""Tests for purging requests whose chat message was deleted."""

import asyncio

from mapdesk.adapters.storage import InMemoryRequestStore
from mapdesk.domain.models import ChangeRequest, RequestKind, RequestStatus
from mapdesk.services.reconciliation import reconcile_requests


class FakeProbe:
    def __init__(self, gone=(), failing=()):
        self.gone = set(gone)
        self.failing = set(failing)
        self.checked = []

    async def message_exists(self, message_id):
        self.checked.append(message_id)
        if message_id in self.failing:
            raise ConnectionError("gateway timeout")
        return message_id not in self.gone


class RecordingSleep:
    def __init__(self):
        self.calls = []

    async def __call__(self, seconds):
        self.calls.append(seconds)


def store_with(count, status=RequestStatus.PENDING):
    store = InMemoryRequestStore()
    for i in range(count):
        store.add(
            ChangeRequest(
                id=f"r{i}",
                message_id=f"m{i}",
                requester_id="111",
                kind=RequestKind.NEW,
                status=status,
            )
        )
    return store


def run(store, probe, sleep, pause_every=5):
    return asyncio.run(
        reconcile_requests(store, probe, pause_every=pause_every, pause_seconds=1.0, sleep=sleep)
    )


def test_deleted_messages_are_purged():
    store = store_with(3)
    report = run(store, FakeProbe(gone={"m1"}), RecordingSleep())

    assert report.checked == 3
    assert report.purged == ["r1"]
    assert store.get_by_message_id("m1") is None
    assert store.get_by_message_id("m0") is not None


def test_probe_errors_are_counted_and_skipped():
    store = store_with(3)
    report = run(store, FakeProbe(gone={"m2"}, failing={"m0"}), RecordingSleep())

    assert report.errors == 1
    assert report.purged == ["r2"]
    assert store.get_by_message_id("m0") is not None


def test_only_pending_requests_are_checked():
    store = store_with(2, status=RequestStatus.IMPLEMENTED)
    probe = FakeProbe(gone={"m0", "m1"})
    report = run(store, probe, RecordingSleep())

    assert probe.checked == []
    assert report.checked == 0
    assert len(store.list_by_status()) == 2


def test_pauses_between_batches():
    sleep = RecordingSleep()
    run(store_with(12), FakeProbe(), sleep, pause_every=5)
    assert sleep.calls == [1.0, 1.0]


def test_no_pause_after_last_batch():
    sleep = RecordingSleep()
    run(store_with(5), FakeProbe(), sleep, pause_every=5)
    assert sleep.calls == []

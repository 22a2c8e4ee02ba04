"""Tests for the in-memory edit session store."""

import pytest

from mapdesk.adapters.sessions import InMemoryEditSessionStore
from mapdesk.domain.models import FieldEdit


class FakeClock:
    def __init__(self, now=1_000_000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(clock):
    return InMemoryEditSessionStore(ttl_seconds=60, clock=clock)


EDITS = {"name": FieldEdit("Old Mill", "New Mill")}


def test_unknown_key_returns_empty_session(store):
    session = store.get("u1", "t1")
    assert session.is_empty
    assert session.user_id == "u1"
    assert len(store) == 0


def test_save_then_get(store):
    store.save("u1", "t1", "Old Mill", EDITS)
    session = store.get("u1", "t1")
    assert session.display_name == "Old Mill"
    assert session.field_edits["name"].new_value == "New Mill"


def test_sessions_are_scoped_per_user(store):
    store.save("u1", "t1", "Old Mill", EDITS)
    assert store.get("u2", "t1").is_empty


def test_idle_session_expires(store, clock):
    store.save("u1", "t1", "Old Mill", EDITS)
    clock.advance(61)
    assert store.get("u1", "t1").is_empty
    assert len(store) == 0


def test_reading_refreshes_last_access(store, clock):
    store.save("u1", "t1", "Old Mill", EDITS)
    clock.advance(50)
    store.get("u1", "t1")
    clock.advance(50)
    assert not store.get("u1", "t1").is_empty


def test_created_at_survives_resave(store, clock):
    first = store.save("u1", "t1", "Old Mill", EDITS)
    clock.advance(30)
    second = store.save("u1", "t1", "Old Mill", {"type": FieldEdit("poi", "camp")})
    assert second.created_at == first.created_at
    assert second.last_accessed_at > first.last_accessed_at
    assert set(second.field_edits) == {"type"}


def test_delete(store):
    store.save("u1", "t1", "Old Mill", EDITS)
    assert store.delete("u1", "t1") is True
    assert store.delete("u1", "t1") is False


def test_sweep_evicts_only_idle_sessions(store, clock):
    store.save("u1", "t1", "Old Mill", EDITS)
    clock.advance(45)
    store.save("u2", "t2", "Watchtower", EDITS)
    clock.advance(30)
    assert store.sweep() == 1
    assert len(store) == 1
    assert not store.get("u2", "t2").is_empty

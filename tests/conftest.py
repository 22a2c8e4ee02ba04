"""Shared fixtures: in-memory stores and a fully wired workflow engine."""

import os
import sys
from typing import List, Optional, Sequence

import pytest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from mapdesk.adapters.cache import InMemoryCache
from mapdesk.adapters.nlp import DisabledNameMatcher
from mapdesk.adapters.sessions import InMemoryEditSessionStore
from mapdesk.adapters.storage import InMemoryLocationStore, InMemoryRequestStore
from mapdesk.config import DEFAULT_CATEGORIES, ResolverConfig
from mapdesk.domain.models import Actor, Location, MultiPoint, Point, SinglePoint
from mapdesk.services import NameResolver, WorkflowEngine


def single(name: str, x: float, y: float, location_id: Optional[str] = None, **kwargs) -> Location:
    return Location(
        id=location_id or name.lower().replace(" ", "-"),
        name=name,
        coordinates=SinglePoint(Point(x, y)),
        **kwargs,
    )


def multi(name: str, *pairs, location_id: Optional[str] = None, **kwargs) -> Location:
    return Location(
        id=location_id or name.lower().replace(" ", "-"),
        name=name,
        coordinates=MultiPoint(tuple(Point(x, y) for x, y in pairs)),
        **kwargs,
    )


class StubClassifier:
    """Returns a fixed label, or raises when given an exception."""

    def __init__(self, answer=None):
        self.answer = answer
        self.calls: List[tuple] = []

    def classify(self, name, description):
        self.calls.append((name, description))
        if isinstance(self.answer, Exception):
            raise self.answer
        return self.answer


class StubMatcher:
    def __init__(self, answer: Sequence[str] = (), error: Optional[Exception] = None):
        self.answer = list(answer)
        self.error = error
        self.calls: List[tuple] = []

    def match(self, query, names, limit):
        self.calls.append((query, list(names), limit))
        if self.error is not None:
            raise self.error
        return list(self.answer)


class RecordingNotifier:
    def __init__(self):
        self.reasons: List[str] = []

    def notify(self, reason):
        self.reasons.append(reason)


@pytest.fixture
def make_single():
    return single


@pytest.fixture
def make_multi():
    return multi


@pytest.fixture
def make_classifier():
    return StubClassifier


@pytest.fixture
def make_matcher():
    return StubMatcher


@pytest.fixture
def member():
    return Actor(user_id="111", is_admin=False, display_name="Member")


@pytest.fixture
def moderator():
    return Actor(user_id="999", is_admin=True, display_name="Moderator")


@pytest.fixture
def locations():
    return InMemoryLocationStore.with_locations(
        single("Old Mill", 10, 20, type="poi", description="A ruined mill"),
        multi("Iron Vein", (1, 1), (2, 2), (3, 3), type="resource", description="Ore"),
        single("Mill Pond", 12, 22, type="location", description="Still water"),
        single("Watchtower", 50, 60, type="camp", description="Lookout"),
    )


@pytest.fixture
def requests_store():
    return InMemoryRequestStore()


@pytest.fixture
def sessions():
    return InMemoryEditSessionStore()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def classifier():
    return StubClassifier("poi")


@pytest.fixture
def resolver(locations):
    return NameResolver(
        locations=locations,
        matcher=DisabledNameMatcher(),
        cache=InMemoryCache(name="names"),
        config=ResolverConfig(),
    )


@pytest.fixture
def engine(locations, requests_store, sessions, resolver, classifier, notifier):
    return WorkflowEngine(
        locations=locations,
        requests=requests_store,
        sessions=sessions,
        resolver=resolver,
        classifier=classifier,
        notifier=notifier,
        drafts=InMemoryCache(name="drafts"),
        categories=list(DEFAULT_CATEGORIES),
        fallback_category="user_submitted",
    )

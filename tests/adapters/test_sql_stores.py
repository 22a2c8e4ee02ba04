"""Tests for the SQLAlchemy stores on in-memory SQLite."""

import pytest
from sqlalchemy import create_engine

from mapdesk.adapters.storage import SqlAlchemyLocationStore, SqlAlchemyRequestStore
from mapdesk.domain.errors import NotFoundError, ValidationError
from mapdesk.domain.models import (
    ChangeRequest,
    Location,
    MultiPoint,
    Point,
    RequestKind,
    RequestStatus,
    SinglePoint,
)


@pytest.fixture
def db_engine():
    engine = create_engine("sqlite://")
    yield engine
    engine.dispose()


@pytest.fixture
def location_store(db_engine):
    return SqlAlchemyLocationStore(engine=db_engine, create_schema=True)


@pytest.fixture
def request_store(db_engine):
    return SqlAlchemyRequestStore(engine=db_engine)


def make_request(message_id="m1", status=RequestStatus.PENDING, request_id=None):
    return ChangeRequest(
        id=request_id or f"req-{message_id}",
        message_id=message_id,
        requester_id="111",
        kind=RequestKind.EDIT,
        reason="typo",
        current_data='{"name": "Old Mill"}',
        new_data='{"name": "New Mill"}',
        status=status,
    )


class TestSqlAlchemyLocationStore:
    def test_create_and_get(self, location_store, make_single):
        location_store.create(make_single("Old Mill", 10, 20, description="A ruined mill"))
        loaded = location_store.get("old-mill")
        assert loaded.name == "Old Mill"
        assert loaded.coordinates == SinglePoint(Point(10, 20))
        assert loaded.description == "A ruined mill"

    def test_create_assigns_id(self, location_store):
        created = location_store.create(Location("", "Harbor", SinglePoint(Point(1, 2))))
        assert created.id
        assert location_store.get(created.id).name == "Harbor"

    def test_multi_point_round_trip(self, location_store, make_multi):
        location_store.create(make_multi("Iron Vein", (1, 1), (2, 2)))
        loaded = location_store.get("iron-vein")
        assert isinstance(loaded.coordinates, MultiPoint)
        assert loaded.point_count == 2

    def test_find_by_name_ignores_case(self, location_store, make_single):
        location_store.create(make_single("Old Mill", 10, 20))
        assert [l.id for l in location_store.find_by_name("old mill ")] == ["old-mill"]

    def test_search_and_list_names(self, location_store, make_single):
        for name in ("Old Mill", "Mill Pond", "Watchtower"):
            location_store.create(make_single(name, 0, 0))
        assert [l.name for l in location_store.search("mill")] == ["Mill Pond", "Old Mill"]
        assert location_store.list_names() == ["Mill Pond", "Old Mill", "Watchtower"]

    def test_update_fields(self, location_store, make_single):
        location_store.create(make_single("Old Mill", 10, 20))
        updated = location_store.update("old-mill", {"name": "New Mill", "type": "camp"})
        assert updated.name == "New Mill"
        assert location_store.get("old-mill").type == "camp"

    def test_update_missing_location(self, location_store):
        with pytest.raises(NotFoundError):
            location_store.update("nope", {"name": "x"})

    def test_delete_and_restore(self, location_store, make_single):
        original = location_store.create(make_single("Old Mill", 10, 20))
        assert location_store.delete("old-mill") is True
        assert location_store.delete("old-mill") is False
        location_store.restore(original)
        assert location_store.get("old-mill").name == "Old Mill"


class TestSqlAlchemyRequestStore:
    def test_add_and_lookup(self, request_store):
        request_store.add(make_request())
        loaded = request_store.get_by_message_id("m1")
        assert loaded.id == "req-m1"
        assert loaded.kind is RequestKind.EDIT
        assert loaded.new_data == '{"name": "New Mill"}'

    def test_duplicate_message_is_rejected(self, request_store):
        request_store.add(make_request())
        with pytest.raises(ValidationError):
            request_store.add(make_request(request_id="other"))

    def test_update_status(self, request_store):
        request_store.add(make_request())
        updated = request_store.update_status("req-m1", RequestStatus.IMPLEMENTED, approver_id="999")
        assert updated.status is RequestStatus.IMPLEMENTED
        assert request_store.get("req-m1").approver_id == "999"

    def test_update_missing_request(self, request_store):
        with pytest.raises(NotFoundError):
            request_store.update_status("nope", RequestStatus.DISMISSED)

    def test_update_snapshots_keeps_unset_side(self, request_store):
        request_store.add(make_request())
        request_store.update_snapshots("req-m1", new_data='{"name": "Big Mill"}')
        loaded = request_store.get("req-m1")
        assert loaded.new_data == '{"name": "Big Mill"}'
        assert loaded.current_data == '{"name": "Old Mill"}'

    def test_list_by_status(self, request_store):
        request_store.add(make_request("m1"))
        request_store.add(make_request("m2", status=RequestStatus.DISMISSED))
        request_store.add(make_request("m3"))
        pending = request_store.list_by_status(RequestStatus.PENDING)
        assert {r.message_id for r in pending} == {"m1", "m3"}
        assert len(request_store.list_by_status()) == 3
        assert len(request_store.list_by_status(limit=2)) == 2

    def test_delete_by_message_id(self, request_store):
        request_store.add(make_request())
        assert request_store.delete_by_message_id("m1") is True
        assert request_store.delete_by_message_id("m1") is False
        assert request_store.get("req-m1") is None

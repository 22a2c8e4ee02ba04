"""Location Store backed by the map site's database."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, List, Mapping, Optional
from uuid import uuid4

from sqlalchemy import Engine, func, select
from sqlalchemy.orm import Session, sessionmaker

from ...domain.coordinates import coordinates_from_json, coordinates_to_json
from ...domain.errors import NotFoundError
from ...domain.models import Location, utcnow
from ...domain.snapshots import apply_fields
from .orm import Base, LocationRecord


def record_to_location(record: LocationRecord) -> Location:
    return Location(
        id=record.id,
        name=record.name,
        coordinates=coordinates_from_json(record.coordinates),
        type=record.type,
        description=record.description or "",
        media_urls=tuple(record.media_url or ()),
        icon=record.icon,
        submitted_by=record.submitted_by,
        approved_by=record.approved_by,
        last_modified=record.last_modified,
    )


def _copy_onto(record: LocationRecord, location: Location) -> None:
    record.name = location.name
    record.coordinates = coordinates_to_json(location.coordinates)
    record.type = location.type
    record.description = location.description
    record.media_url = list(location.media_urls)
    record.icon = location.icon
    record.submitted_by = location.submitted_by
    record.approved_by = location.approved_by
    record.last_modified = location.last_modified or utcnow()


@dataclass
class SqlAlchemyLocationStore:
    """LocationStorePort over the ``Location`` table.

    Every method opens its own session and commits before returning,
    so each call is atomic on its own.

    Attributes:
        engine: SQLAlchemy engine for the dataset database
        create_schema: Create the table if missing (local runs only; the
            map site owns this table in production)
    """

    engine: Engine
    create_schema: bool = False

    _sessions: sessionmaker[Session] = field(init=False, repr=False)
    _logger: logging.Logger = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._sessions = sessionmaker(bind=self.engine, expire_on_commit=False)
        self._logger = logging.getLogger(__name__)
        if self.create_schema:
            Base.metadata.create_all(self.engine, tables=[LocationRecord.__table__])

    def get(self, location_id: str) -> Optional[Location]:
        with self._sessions() as session:
            record = session.get(LocationRecord, location_id)
            return record_to_location(record) if record else None

    def find_by_name(self, name: str) -> List[Location]:
        stmt = select(LocationRecord).where(
            func.lower(LocationRecord.name) == name.strip().lower()
        )
        with self._sessions() as session:
            return [record_to_location(r) for r in session.scalars(stmt)]

    def search(self, term: str, limit: int = 25) -> List[Location]:
        stmt = (
            select(LocationRecord)
            .where(LocationRecord.name.icontains(term.strip(), autoescape=True))
            .order_by(LocationRecord.name)
            .limit(limit)
        )
        with self._sessions() as session:
            return [record_to_location(r) for r in session.scalars(stmt)]

    def list_names(self) -> List[str]:
        stmt = select(LocationRecord.name).distinct().order_by(LocationRecord.name)
        with self._sessions() as session:
            return list(session.scalars(stmt))

    def create(self, location: Location) -> Location:
        record = LocationRecord(id=location.id or uuid4().hex)
        _copy_onto(record, location)
        with self._sessions.begin() as session:
            session.add(record)
        self._logger.info(
            "Location created", extra={"location_id": record.id, "name": record.name}
        )
        return record_to_location(record)

    def update(self, location_id: str, fields: Mapping[str, Any]) -> Location:
        with self._sessions.begin() as session:
            record = session.get(LocationRecord, location_id)
            if record is None:
                raise NotFoundError(
                    "That location no longer exists.",
                    entity="location",
                    key=location_id,
                )
            updated = apply_fields(record_to_location(record), fields)
            _copy_onto(record, updated)
        self._logger.info(
            "Location updated",
            extra={"location_id": location_id, "fields": sorted(fields)},
        )
        return updated

    def delete(self, location_id: str) -> bool:
        with self._sessions.begin() as session:
            record = session.get(LocationRecord, location_id)
            if record is None:
                return False
            session.delete(record)
        self._logger.info("Location deleted", extra={"location_id": location_id})
        return True

    def restore(self, location: Location) -> Location:
        with self._sessions.begin() as session:
            record = session.get(LocationRecord, location.id)
            if record is None:
                record = LocationRecord(id=location.id)
                session.add(record)
            _copy_onto(record, location)
        self._logger.info("Location restored", extra={"location_id": location.id})
        return location

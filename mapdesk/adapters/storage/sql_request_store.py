"""Request Store backed by SQLAlchemy."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from sqlalchemy import Engine, delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from ...domain.errors import NotFoundError, ValidationError
from ...domain.models import ChangeRequest, RequestKind, RequestStatus
from .orm import Base, ChangeRequestRecord


def record_to_request(record: ChangeRequestRecord) -> ChangeRequest:
    return ChangeRequest(
        id=record.id,
        message_id=record.message_id,
        requester_id=record.requester_id,
        kind=RequestKind(record.kind),
        reason=record.reason or "",
        current_data=record.current_data,
        new_data=record.new_data,
        status=RequestStatus(record.status),
        approver_id=record.approver_id,
        approved_at=record.approved_at,
        created_at=record.created_at,
        updated_at=record.updated_at,
    )


@dataclass
class SqlAlchemyRequestStore:
    """RequestStorePort over the ``change_requests`` table.

    Attributes:
        engine: SQLAlchemy engine for the bot's own database
        create_schema: Create the table on startup if it is missing
    """

    engine: Engine
    create_schema: bool = True

    _sessions: sessionmaker[Session] = field(init=False, repr=False)
    _logger: logging.Logger = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._sessions = sessionmaker(bind=self.engine, expire_on_commit=False)
        self._logger = logging.getLogger(__name__)
        if self.create_schema:
            Base.metadata.create_all(
                self.engine, tables=[ChangeRequestRecord.__table__]
            )

    def add(self, request: ChangeRequest) -> ChangeRequest:
        record = ChangeRequestRecord(
            id=request.id,
            message_id=request.message_id,
            requester_id=request.requester_id,
            kind=request.kind.value,
            reason=request.reason,
            current_data=request.current_data,
            new_data=request.new_data,
            status=request.status.value,
            approver_id=request.approver_id,
            approved_at=request.approved_at,
            created_at=request.created_at,
            updated_at=request.updated_at,
        )
        try:
            with self._sessions.begin() as session:
                session.add(record)
        except IntegrityError as e:
            raise ValidationError(
                "A request is already filed for this message.",
                cause=e,
                field="message_id",
            )
        self._logger.info(
            "Request saved",
            extra={"request_id": request.id, "kind": request.kind.value},
        )
        return record_to_request(record)

    def get(self, request_id: str) -> Optional[ChangeRequest]:
        with self._sessions() as session:
            record = session.get(ChangeRequestRecord, request_id)
            return record_to_request(record) if record else None

    def get_by_message_id(self, message_id: str) -> Optional[ChangeRequest]:
        stmt = select(ChangeRequestRecord).where(
            ChangeRequestRecord.message_id == message_id
        )
        with self._sessions() as session:
            record = session.scalars(stmt).first()
            return record_to_request(record) if record else None

    def _load_for_update(self, session: Session, request_id: str) -> ChangeRequestRecord:
        record = session.get(ChangeRequestRecord, request_id)
        if record is None:
            raise NotFoundError(
                "That request no longer exists.", entity="request", key=request_id
            )
        return record

    def update_status(
        self,
        request_id: str,
        status: RequestStatus,
        approver_id: Optional[str] = None,
        approved_at: Optional[datetime] = None,
    ) -> ChangeRequest:
        with self._sessions.begin() as session:
            record = self._load_for_update(session, request_id)
            record.status = status.value
            if approver_id is not None:
                record.approver_id = approver_id
            if approved_at is not None:
                record.approved_at = approved_at
        self._logger.info(
            "Request status updated",
            extra={"request_id": request_id, "status": status.value},
        )
        return record_to_request(record)

    def update_snapshots(
        self,
        request_id: str,
        current_data: Optional[str] = None,
        new_data: Optional[str] = None,
    ) -> ChangeRequest:
        with self._sessions.begin() as session:
            record = self._load_for_update(session, request_id)
            if current_data is not None:
                record.current_data = current_data
            if new_data is not None:
                record.new_data = new_data
        return record_to_request(record)

    def list_by_status(
        self, status: Optional[RequestStatus] = None, limit: Optional[int] = None
    ) -> List[ChangeRequest]:
        stmt = select(ChangeRequestRecord).order_by(
            ChangeRequestRecord.created_at.desc()
        )
        if status is not None:
            stmt = stmt.where(ChangeRequestRecord.status == status.value)
        if limit is not None:
            stmt = stmt.limit(limit)
        with self._sessions() as session:
            return [record_to_request(r) for r in session.scalars(stmt)]

    def delete_by_message_id(self, message_id: str) -> bool:
        stmt = delete(ChangeRequestRecord).where(
            ChangeRequestRecord.message_id == message_id
        )
        with self._sessions.begin() as session:
            result = session.execute(stmt)
        deleted = bool(result.rowcount)
        if deleted:
            self._logger.info(
                "Request deleted", extra={"message_id": message_id}
            )
        return deleted

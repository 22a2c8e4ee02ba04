"""SQLAlchemy table mappings.

Two tables, usually in two databases:
- change_requests: owned by the bot (SQLite by default)
- "Location": the shared map dataset, owned by the map site (PostgreSQL).
  Its camelCase column names follow the dataset's existing schema.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional
from uuid import uuid4

from sqlalchemy import JSON, DateTime, Index, String, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, declarative_base, mapped_column

Base = declarative_base()

JsonColumn = JSON().with_variant(JSONB(), "postgresql")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow
    )


class ChangeRequestRecord(Base, TimestampMixin):
    __tablename__ = "change_requests"
    __table_args__ = (Index("ix_change_requests_status", "status"),)

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid4())
    )
    message_id: Mapped[str] = mapped_column(String(32), nullable=False, unique=True)
    requester_id: Mapped[str] = mapped_column(String(32), nullable=False)
    kind: Mapped[str] = mapped_column(String(16), nullable=False)
    reason: Mapped[str] = mapped_column(Text, nullable=False, default="")
    current_data: Mapped[Optional[str]] = mapped_column(Text)
    new_data: Mapped[Optional[str]] = mapped_column(Text)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="pending")
    approver_id: Mapped[Optional[str]] = mapped_column(String(32))
    approved_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))


class LocationRecord(Base):
    __tablename__ = "Location"

    id: Mapped[str] = mapped_column(Text, primary_key=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    coordinates: Mapped[Any] = mapped_column(JsonColumn, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    type: Mapped[str] = mapped_column(Text, nullable=False)
    icon: Mapped[Optional[str]] = mapped_column(Text)
    media_url: Mapped[Optional[Any]] = mapped_column("mediaUrl", JsonColumn)
    last_modified: Mapped[datetime] = mapped_column(
        "lastModified", DateTime(timezone=True), nullable=False, default=_utcnow
    )
    created_at: Mapped[datetime] = mapped_column(
        "createdAt", DateTime(timezone=True), nullable=False, default=_utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        "updatedAt",
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        onupdate=_utcnow,
    )
    submitted_by: Mapped[Optional[str]] = mapped_column("submittedBy", Text)
    approved_by: Mapped[Optional[str]] = mapped_column("approvedBy", Text)

"""Base model classes and mixins for contact book models."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import DateTime, ForeignKey, Uuid
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    pass


class UUIDMixin:
    """Adds a UUID primary key."""

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )


class TimestampMixin:
    """Adds created_at / updated_at columns.

    Assigned in Python rather than by the server so ordering by updated_at
    keeps sub-second resolution on SQLite.
    """

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, index=True
    )


class OwnerMixin:
    """Adds owner_id FK; every row belongs to exactly one account."""

    owner_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("account.id", ondelete="CASCADE"),
        index=True,
    )

"""Contact model."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, DateTime, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, OwnerMixin, TimestampMixin, UUIDMixin


class Contact(UUIDMixin, TimestampMixin, OwnerMixin, Base):
    __tablename__ = "contact"
    __table_args__ = (
        Index("ix_contact_owner_updated", "owner_id", "updated_at"),
    )

    name: Mapped[str] = mapped_column(String(200))
    email: Mapped[str] = mapped_column(String(255), index=True)
    phone: Mapped[str | None] = mapped_column(String(50), default=None)
    company: Mapped[str | None] = mapped_column(String(200), default=None)
    position: Mapped[str | None] = mapped_column(String(200), default=None)
    notes: Mapped[str | None] = mapped_column(Text, default=None)
    avatar: Mapped[str | None] = mapped_column(String(500), default=None)
    favorite: Mapped[bool] = mapped_column(Boolean, default=False)
    last_contact: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), default=None)

    # Relationships
    owner: Mapped["Account"] = relationship(back_populates="contacts")  # noqa: F821
    tags: Mapped[list["Tag"]] = relationship(  # noqa: F821
        secondary="contact_tag", back_populates="contacts", order_by="Tag.name"
    )

    @property
    def tag_names(self) -> list[str]:
        return [t.name for t in self.tags]

    @property
    def initials(self) -> str:
        parts = [p[0] for p in self.name.split() if p]
        return "".join(parts)[:2].upper() or "?"

    def __repr__(self) -> str:
        return f"<Contact {self.name!r}>"

"""Contact schemas."""

from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, Field, field_validator


class ContactCreate(BaseModel):
    name: str
    email: str
    phone: str | None = None
    company: str | None = None
    position: str | None = None
    notes: str | None = None
    avatar: str | None = None
    favorite: bool = False
    last_contact: datetime | None = None
    tags: list[str] = Field(default_factory=list)


class ContactUpdate(ContactCreate):
    pass


class ContactPatch(BaseModel):
    """Request body for create and update. Unset keys keep the form's values.

    Only types are checked here; required fields, email shape and dates are
    the form's job so they come back as per-field messages.
    """

    name: str | None = None
    email: str | None = None
    phone: str | None = None
    company: str | None = None
    position: str | None = None
    notes: str | None = None
    avatar: str | None = None
    favorite: bool | None = None
    last_contact: datetime | str | None = None
    tags: list[str] | None = None

    model_config = {"extra": "ignore"}


class ContactResponse(ContactCreate):
    id: uuid.UUID
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}

    @field_validator("tags", mode="before")
    @classmethod
    def _tag_names(cls, value):
        # ORM rows carry Tag objects; the API exposes names only.
        return [getattr(t, "name", t) for t in value or []]


class ContactSummary(BaseModel):
    total: int
    favorites: int
    recent: list[ContactResponse]
    favorite_contacts: list[ContactResponse]


class TagResponse(BaseModel):
    id: uuid.UUID
    name: str
    created_at: datetime

    model_config = {"from_attributes": True}

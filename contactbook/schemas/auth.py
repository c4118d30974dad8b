"""Auth request/response schemas."""

from __future__ import annotations

import uuid

from pydantic import BaseModel


class Credentials(BaseModel):
    email: str
    password: str


class AccountResponse(BaseModel):
    id: uuid.UUID
    email: str

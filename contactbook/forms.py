"""Contact form state and client-side validation.

The form collects raw field values, validates them locally and only then hands
a ``ContactCreate`` to a submit handler. A failed validation never reaches the
handler, so nothing is written.

States::

    pristine -> editing -> submitting -> success
                                      -> submit_error
                        -> validation_error

Editing a field from any settled state moves the form back to ``editing``.
"""

from __future__ import annotations

import enum
import re
from datetime import datetime
from typing import Any, Awaitable, Callable, Mapping, TypeVar
from urllib.parse import quote

from .config import settings
from .errors import FormValidationError
from .schemas.contact import ContactCreate

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

TEXT_FIELDS = ("name", "email", "phone", "company", "position", "notes", "avatar")

R = TypeVar("R")


class FormState(str, enum.Enum):
    PRISTINE = "pristine"
    EDITING = "editing"
    SUBMITTING = "submitting"
    SUCCESS = "success"
    VALIDATION_ERROR = "validation_error"
    SUBMIT_ERROR = "submit_error"


def is_valid_email(value: str | None) -> bool:
    return bool(value) and EMAIL_RE.match(value) is not None


def avatar_url_for(name: str) -> str:
    return f"{settings.avatar_base_url}?seed={quote(name, safe='')}"


def normalize_tag(raw: str | None) -> str:
    return (raw or "").strip().lower()


def _parse_date(value: Any) -> datetime | None:
    if value is None or isinstance(value, datetime):
        return value
    if isinstance(value, str):
        return datetime.fromisoformat(value.strip())
    raise ValueError(f"Unsupported date value {value!r}")


class ContactForm:
    """Mutable form model for creating or editing one contact."""

    def __init__(self, initial: Mapping[str, Any] | None = None):
        initial = dict(initial or {})
        self.data: dict[str, Any] = {field: initial.get(field) or "" for field in TEXT_FIELDS}
        self.data["favorite"] = bool(initial.get("favorite", False))
        self.data["last_contact"] = initial.get("last_contact")
        self.data["tags"] = [normalize_tag(t) for t in initial.get("tags") or [] if normalize_tag(t)]
        # An explicit avatar from the initial data is never replaced by a generated one.
        self._custom_avatar = bool(initial.get("avatar"))
        self.errors: dict[str, str] = {}
        self.state = FormState.PRISTINE

    def _touch(self) -> None:
        if self.state is FormState.SUBMITTING:
            raise RuntimeError("Form is being submitted")
        self.state = FormState.EDITING

    def set(self, field: str, value: Any) -> None:
        """Update one field and clear its error; it is not re-validated here."""
        if field not in self.data or field == "tags":
            raise KeyError(field)
        if field == "favorite" and not isinstance(value, bool):
            raise TypeError(f"favorite must be a bool, got {value!r}")
        self._touch()
        if field in TEXT_FIELDS:
            value = "" if value is None else str(value)
        elif field == "last_contact" and value == "":
            value = None
        self.data[field] = value
        self.errors.pop(field, None)
        if field == "avatar":
            self._custom_avatar = bool(value)

    def update(self, values: Mapping[str, Any]) -> None:
        for field, value in values.items():
            if field == "tags":
                self.set_tags(value or [])
            elif field in self.data:
                self.set(field, value)

    def add_tag(self, raw: str) -> bool:
        tag = normalize_tag(raw)
        if not tag:
            return False
        self._touch()
        self.data["tags"].append(tag)
        return True

    def remove_tag(self, tag: str) -> None:
        self._touch()
        self.data["tags"] = [t for t in self.data["tags"] if t != tag]

    def set_tags(self, tags) -> None:
        if isinstance(tags, str) or not all(isinstance(t, str) for t in tags):
            raise TypeError("tags must be a list of strings")
        self._touch()
        self.data["tags"] = []
        for raw in tags:
            self.add_tag(raw)

    def validate(self) -> bool:
        errors: dict[str, str] = {}
        if not self.data["name"].strip():
            errors["name"] = "Name is required"
        email = self.data["email"].strip()
        if not email:
            errors["email"] = "Email is required"
        elif not is_valid_email(email):
            errors["email"] = "Please enter a valid email"
        try:
            _parse_date(self.data["last_contact"])
        except ValueError:
            errors["last_contact"] = "Please enter a valid date"
        self.errors = errors
        return not errors

    def cleaned(self) -> ContactCreate:
        name = self.data["name"].strip()
        avatar = self.data["avatar"].strip()
        if not avatar and not self._custom_avatar:
            avatar = avatar_url_for(name)
        return ContactCreate(
            name=name,
            email=self.data["email"].strip(),
            phone=self.data["phone"].strip() or None,
            company=self.data["company"].strip() or None,
            position=self.data["position"].strip() or None,
            notes=self.data["notes"].strip() or None,
            avatar=avatar or None,
            favorite=self.data["favorite"],
            last_contact=_parse_date(self.data["last_contact"]),
            tags=list(self.data["tags"]),
        )

    async def submit(self, handler: Callable[[ContactCreate], Awaitable[R]]) -> R:
        if self.state is FormState.SUBMITTING:
            raise RuntimeError("Form is already being submitted")
        if not self.validate():
            self.state = FormState.VALIDATION_ERROR
            raise FormValidationError(self.errors)

        self.state = FormState.SUBMITTING
        try:
            result = await handler(self.cleaned())
        except Exception:
            self.state = FormState.SUBMIT_ERROR
            raise
        self.state = FormState.SUCCESS
        return result

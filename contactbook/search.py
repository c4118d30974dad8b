"""Contact search: in-process matching and the server-side filter clause."""

from __future__ import annotations

from typing import Iterable, Protocol, Sequence, TypeVar

from sqlalchemy import ColumnElement, or_

from .models.contact import Contact
from .models.tag import Tag


class Searchable(Protocol):
    name: str
    email: str
    phone: str | None
    company: str | None
    position: str | None
    tags: Sequence


T = TypeVar("T", bound=Searchable)


def normalize_query(query: str | None) -> str:
    return (query or "").strip().lower()


def _tag_name(tag) -> str:
    return getattr(tag, "name", tag) or ""


def contact_matches(contact: Searchable, term: str) -> bool:
    """True when ``term`` (already normalized) occurs in any searchable field."""
    fields = (contact.name, contact.email, contact.company, contact.position, contact.phone)
    if any(term in (value or "").lower() for value in fields):
        return True
    return any(term in _tag_name(tag).lower() for tag in contact.tags or ())


def filter_contacts(contacts: Iterable[T], query: str | None) -> list[T]:
    """Filter an already ordered list, keeping its order. Blank query keeps all."""
    term = normalize_query(query)
    if not term:
        return list(contacts)
    return [c for c in contacts if contact_matches(c, term)]


def search_clause(query: str) -> ColumnElement[bool]:
    """WHERE clause matching ``query`` against contact columns or any tag name."""
    term = normalize_query(query)
    return or_(
        Contact.name.icontains(term, autoescape=True),
        Contact.email.icontains(term, autoescape=True),
        Contact.company.icontains(term, autoescape=True),
        Contact.position.icontains(term, autoescape=True),
        Contact.phone.icontains(term, autoescape=True),
        Contact.tags.any(Tag.name.icontains(term, autoescape=True)),
    )

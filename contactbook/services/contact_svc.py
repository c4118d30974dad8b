"""Contact service - CRUD, favorites, search, tag sync.

Every function takes the acting ``Principal`` explicitly and only touches rows
owned by it. Database errors are rolled back, logged and re-raised as
``BackendFailure``; nothing is retried here.
"""

from __future__ import annotations

import logging
import uuid
from contextlib import asynccontextmanager

from sqlalchemy import Select, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..auth import Principal
from ..config import settings
from ..errors import BackendFailure, ContactNotFound, NotAuthenticated
from ..models.base import utcnow
from ..models.contact import Contact
from ..models.tag import Tag
from ..schemas.contact import ContactCreate, ContactUpdate
from ..search import filter_contacts, normalize_query, search_clause
from . import tag_svc

log = logging.getLogger(__name__)

RECENT_LIMIT = 5
FAVORITES_PREVIEW = 3


def _require(principal: Principal | None) -> Principal:
    if principal is None:
        raise NotAuthenticated()
    return principal


def _owned(principal: Principal) -> Select:
    return (
        select(Contact)
        .where(Contact.owner_id == principal.id)
        .options(selectinload(Contact.tags))
        .execution_options(populate_existing=True)
    )


def _newest_first(stmt: Select) -> Select:
    return stmt.order_by(Contact.updated_at.desc(), Contact.created_at.desc())


@asynccontextmanager
async def _backend(db: AsyncSession, action: str):
    try:
        yield
    except SQLAlchemyError as exc:
        await db.rollback()
        log.exception("contact %s failed", action)
        raise BackendFailure() from exc


async def _load(db: AsyncSession, principal: Principal, contact_id: uuid.UUID) -> Contact:
    result = await db.execute(_owned(principal).where(Contact.id == contact_id))
    contact = result.scalar_one_or_none()
    if contact is None:
        raise ContactNotFound(contact_id)
    return contact


async def list_contacts(
    db: AsyncSession,
    principal: Principal | None,
    *,
    favorite: bool | None = None,
    tag_name: str | None = None,
) -> list[Contact]:
    """All contacts of the principal with tags, most recently updated first."""
    principal = _require(principal)
    stmt = _owned(principal)
    if favorite is not None:
        stmt = stmt.where(Contact.favorite.is_(favorite))
    if tag_name:
        stmt = stmt.where(Contact.tags.any(Tag.name == tag_name.strip().lower()))

    async with _backend(db, "list"):
        result = await db.execute(_newest_first(stmt))
        return list(result.scalars().all())


async def get_contact(
    db: AsyncSession, principal: Principal | None, contact_id: uuid.UUID
) -> Contact:
    """Get one owned contact with tags. Raises ContactNotFound otherwise."""
    principal = _require(principal)
    async with _backend(db, "get"):
        return await _load(db, principal, contact_id)


async def create_contact(
    db: AsyncSession, principal: Principal | None, data: ContactCreate
) -> Contact:
    """Create a contact and link its tags, reusing tags the owner already has."""
    principal = _require(principal)
    now = utcnow()
    fields = data.model_dump(exclude={"tags"})

    async with _backend(db, "create"):
        contact = Contact(owner_id=principal.id, created_at=now, updated_at=now, **fields)
        db.add(contact)
        await db.flush()
        await tag_svc.replace_contact_tags(db, principal.id, contact.id, data.tags)
        await db.commit()
        contact = await _load(db, principal, contact.id)

    log.info("created contact %s owner=%s", contact.id, principal.id)
    return contact


async def update_contact(
    db: AsyncSession, principal: Principal | None, contact_id: uuid.UUID, data: ContactUpdate
) -> Contact:
    """Overwrite the contact's fields and fully replace its tag links."""
    principal = _require(principal)

    async with _backend(db, "update"):
        contact = await _load(db, principal, contact_id)
        for key, value in data.model_dump(exclude={"tags"}).items():
            setattr(contact, key, value)
        contact.updated_at = utcnow()
        await tag_svc.replace_contact_tags(db, principal.id, contact.id, data.tags)
        await db.commit()
        contact = await _load(db, principal, contact_id)

    log.info("updated contact %s owner=%s", contact_id, principal.id)
    return contact


async def toggle_favorite(
    db: AsyncSession, principal: Principal | None, contact_id: uuid.UUID
) -> Contact:
    """Flip ``favorite``. Read-modify-write, not atomic across sessions."""
    principal = _require(principal)

    async with _backend(db, "favorite"):
        contact = await _load(db, principal, contact_id)
        contact.favorite = not contact.favorite
        contact.updated_at = utcnow()
        await db.commit()
        contact = await _load(db, principal, contact_id)

    log.info("toggled favorite contact %s -> %s", contact_id, contact.favorite)
    return contact


async def delete_contact(
    db: AsyncSession, principal: Principal | None, contact_id: uuid.UUID
) -> None:
    """Delete an owned contact. Join rows cascade; tag rows stay."""
    principal = _require(principal)

    async with _backend(db, "delete"):
        contact = await _load(db, principal, contact_id)
        await db.delete(contact)
        await db.commit()

    log.info("deleted contact %s owner=%s", contact_id, principal.id)


async def search_contacts(
    db: AsyncSession,
    principal: Principal | None,
    query: str | None,
    *,
    local: bool | None = None,
) -> list[Contact]:
    """Case-insensitive substring search over contact fields and tag names.

    A blank query returns the same result as ``list_contacts``. Results carry
    their full tag sets in both modes.
    """
    principal = _require(principal)
    if not normalize_query(query):
        return await list_contacts(db, principal)

    if settings.local_search if local is None else local:
        return filter_contacts(await list_contacts(db, principal), query)

    async with _backend(db, "search"):
        result = await db.execute(_newest_first(_owned(principal).where(search_clause(query))))
        return list(result.scalars().all())


async def contact_summary(db: AsyncSession, principal: Principal | None) -> dict:
    """Counts plus the recent and favorite previews for the dashboard."""
    contacts = await list_contacts(db, principal)
    favorites = [c for c in contacts if c.favorite]
    return {
        "total": len(contacts),
        "favorites": len(favorites),
        "recent": contacts[:RECENT_LIMIT],
        "favorite_contacts": favorites[:FAVORITES_PREVIEW],
    }

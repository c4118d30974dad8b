"""Tag service - owner-scoped lookup, lazy creation, pruning."""

from __future__ import annotations

import logging
import uuid
from typing import Iterable

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..auth import Principal
from ..errors import BackendFailure, NotAuthenticated
from ..models.tag import ContactTag, Tag

log = logging.getLogger(__name__)


def normalize_tag_names(names: Iterable[str] | None) -> list[str]:
    """Trim, lowercase and de-duplicate tag names, keeping first-seen order."""
    seen: dict[str, None] = {}
    for raw in names or ():
        name = (raw or "").strip().lower()
        if name:
            seen.setdefault(name, None)
    return list(seen)


async def list_tags(db: AsyncSession, principal: Principal) -> list[Tag]:
    stmt = select(Tag).where(Tag.owner_id == principal.id).order_by(Tag.name)
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def get_tag(db: AsyncSession, principal: Principal, tag_id: uuid.UUID) -> Tag | None:
    stmt = select(Tag).where(Tag.id == tag_id, Tag.owner_id == principal.id)
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


async def get_or_create_tag(
    db: AsyncSession, owner_id: uuid.UUID, name: str
) -> tuple[Tag, bool]:
    """Get existing tag or stage a new one. Returns (tag, created).

    Flushes but does not commit; the caller owns the transaction.
    """
    stmt = select(Tag).where(Tag.owner_id == owner_id, Tag.name == name)
    result = await db.execute(stmt)
    tag = result.scalar_one_or_none()
    if tag:
        return tag, False
    tag = Tag(owner_id=owner_id, name=name)
    db.add(tag)
    await db.flush()
    return tag, True


async def replace_contact_tags(
    db: AsyncSession, owner_id: uuid.UUID, contact_id: uuid.UUID, names: Iterable[str]
) -> list[Tag]:
    """Drop every join row of the contact, then link it to ``names``.

    Tags left without contacts are kept; see ``prune_unused_tags``.
    """
    existing = await db.execute(select(ContactTag).where(ContactTag.contact_id == contact_id))
    for link in existing.scalars().all():
        await db.delete(link)
    await db.flush()

    tags = []
    for name in normalize_tag_names(names):
        tag, _ = await get_or_create_tag(db, owner_id, name)
        db.add(ContactTag(contact_id=contact_id, tag_id=tag.id))
        tags.append(tag)
    await db.flush()
    return tags


async def create_tag(db: AsyncSession, principal: Principal | None, name: str) -> Tag:
    if principal is None:
        raise NotAuthenticated()
    names = normalize_tag_names([name])
    if not names:
        raise ValueError("Tag name is required")
    try:
        tag, _ = await get_or_create_tag(db, principal.id, names[0])
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        log.exception("tag create failed owner=%s", principal.id)
        raise BackendFailure() from exc
    await db.refresh(tag)
    return tag


async def delete_tag(db: AsyncSession, principal: Principal | None, tag_id: uuid.UUID) -> bool:
    """Delete an owned tag; its join rows go with it."""
    if principal is None:
        raise NotAuthenticated()
    tag = await get_tag(db, principal, tag_id)
    if not tag:
        return False
    try:
        await db.delete(tag)
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        log.exception("tag delete failed tag=%s", tag_id)
        raise BackendFailure() from exc
    log.info("deleted tag %s owner=%s", tag_id, principal.id)
    return True


async def prune_unused_tags(db: AsyncSession, principal: Principal | None) -> int:
    """Delete the owner's tags that no contact references. Returns the count."""
    if principal is None:
        raise NotAuthenticated()
    referenced = select(ContactTag.tag_id)
    stmt = delete(Tag).where(Tag.owner_id == principal.id, Tag.id.not_in(referenced))
    try:
        result = await db.execute(stmt.execution_options(synchronize_session=False))
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        log.exception("tag prune failed owner=%s", principal.id)
        raise BackendFailure() from exc
    log.info("pruned %d unused tags owner=%s", result.rowcount, principal.id)
    return result.rowcount

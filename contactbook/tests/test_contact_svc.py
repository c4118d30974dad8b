"""Test contact service."""

from __future__ import annotations

import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from contactbook.auth import Principal
from contactbook.errors import BackendFailure, ContactNotFound, NotAuthenticated
from contactbook.models.contact import Contact
from contactbook.models.tag import ContactTag, Tag
from contactbook.schemas.contact import ContactCreate, ContactUpdate
from contactbook.services import contact_svc


def _data(**overrides) -> ContactCreate:
    fields = {"name": "Alex Morgan", "email": "alex@example.com"}
    fields.update(overrides)
    return ContactCreate(**fields)


@pytest.mark.asyncio
async def test_create_and_get_contact(db: AsyncSession, owner: Principal):
    data = _data(
        phone="+1 (555) 123-4567",
        company="TechCorp Inc.",
        position="Product Manager",
        notes="Met at the conference.",
        favorite=True,
    )
    contact = await contact_svc.create_contact(db, owner, data)

    fetched = await contact_svc.get_contact(db, owner, contact.id)
    assert fetched.name == "Alex Morgan"
    assert fetched.email == "alex@example.com"
    assert fetched.phone == "+1 (555) 123-4567"
    assert fetched.company == "TechCorp Inc."
    assert fetched.position == "Product Manager"
    assert fetched.notes == "Met at the conference."
    assert fetched.favorite is True
    assert fetched.owner_id == owner.id
    assert fetched.created_at is not None
    assert fetched.updated_at == fetched.created_at


@pytest.mark.asyncio
async def test_create_normalizes_and_reuses_tags(db: AsyncSession, owner: Principal):
    contact = await contact_svc.create_contact(
        db, owner, _data(tags=["Client", "client", "VIP", "  "])
    )
    assert set(contact.tag_names) == {"client", "vip"}

    other = await contact_svc.create_contact(
        db, owner, _data(name="Taylor Chen", email="taylor@example.com", tags=["CLIENT"])
    )
    assert other.tag_names == ["client"]

    tags = (await db.execute(select(Tag).where(Tag.owner_id == owner.id))).scalars().all()
    assert sorted(t.name for t in tags) == ["client", "vip"]


@pytest.mark.asyncio
async def test_create_requires_principal(db: AsyncSession, owner: Principal):
    with pytest.raises(NotAuthenticated):
        await contact_svc.create_contact(db, None, _data())

    rows = (await db.execute(select(Contact))).scalars().all()
    assert rows == []


@pytest.mark.asyncio
async def test_create_for_unknown_owner_is_backend_failure(db: AsyncSession):
    import uuid

    ghost = Principal(id=uuid.uuid4(), email="ghost@example.com")
    with pytest.raises(BackendFailure):
        await contact_svc.create_contact(db, ghost, _data())


@pytest.mark.asyncio
async def test_list_contacts_newest_update_first(db: AsyncSession, owner: Principal):
    first = await contact_svc.create_contact(db, owner, _data(name="First"))
    await contact_svc.create_contact(db, owner, _data(name="Second"))

    names = [c.name for c in await contact_svc.list_contacts(db, owner)]
    assert names == ["Second", "First"]

    await contact_svc.toggle_favorite(db, owner, first.id)
    names = [c.name for c in await contact_svc.list_contacts(db, owner)]
    assert names == ["First", "Second"]


@pytest.mark.asyncio
async def test_list_contacts_filters(db: AsyncSession, owner: Principal):
    await contact_svc.create_contact(db, owner, _data(name="Fav", favorite=True, tags=["vip"]))
    await contact_svc.create_contact(db, owner, _data(name="Plain", tags=["lead"]))

    favorites = await contact_svc.list_contacts(db, owner, favorite=True)
    assert [c.name for c in favorites] == ["Fav"]

    tagged = await contact_svc.list_contacts(db, owner, tag_name="LEAD")
    assert [c.name for c in tagged] == ["Plain"]


@pytest.mark.asyncio
async def test_contacts_are_owner_scoped(
    db: AsyncSession, owner: Principal, stranger: Principal
):
    contact = await contact_svc.create_contact(db, owner, _data())

    assert await contact_svc.list_contacts(db, stranger) == []
    with pytest.raises(ContactNotFound):
        await contact_svc.get_contact(db, stranger, contact.id)
    with pytest.raises(ContactNotFound):
        await contact_svc.toggle_favorite(db, stranger, contact.id)
    with pytest.raises(ContactNotFound):
        await contact_svc.delete_contact(db, stranger, contact.id)

    still_there = await contact_svc.get_contact(db, owner, contact.id)
    assert still_there.favorite is False


@pytest.mark.asyncio
async def test_update_contact_fields(db: AsyncSession, owner: Principal):
    contact = await contact_svc.create_contact(db, owner, _data(company="Old Co"))
    created_updated_at = contact.updated_at

    updated = await contact_svc.update_contact(
        db, owner, contact.id, ContactUpdate(name="Alex M.", email="alex@new.example.com")
    )
    assert updated.name == "Alex M."
    assert updated.email == "alex@new.example.com"
    assert updated.company is None
    assert updated.updated_at > created_updated_at


@pytest.mark.asyncio
async def test_update_replaces_tags_and_keeps_orphan(db: AsyncSession, owner: Principal):
    contact = await contact_svc.create_contact(db, owner, _data(tags=["a", "b"]))

    updated = await contact_svc.update_contact(
        db, owner, contact.id, ContactUpdate(name="Alex Morgan", email="alex@example.com", tags=["b", "c"])
    )
    assert set(updated.tag_names) == {"b", "c"}

    orphan = (
        await db.execute(select(Tag).where(Tag.owner_id == owner.id, Tag.name == "a"))
    ).scalar_one()
    links = (
        await db.execute(select(ContactTag).where(ContactTag.tag_id == orphan.id))
    ).scalars().all()
    assert links == []


@pytest.mark.asyncio
async def test_update_missing_contact(db: AsyncSession, owner: Principal):
    import uuid

    with pytest.raises(ContactNotFound):
        await contact_svc.update_contact(db, owner, uuid.uuid4(), ContactUpdate(name="X", email="x@y.io"))


@pytest.mark.asyncio
async def test_toggle_favorite_twice_restores(db: AsyncSession, owner: Principal):
    contact = await contact_svc.create_contact(db, owner, _data())
    original = contact.favorite
    created_updated_at = contact.updated_at

    once = await contact_svc.toggle_favorite(db, owner, contact.id)
    assert once.favorite is (not original)
    twice = await contact_svc.toggle_favorite(db, owner, contact.id)
    assert twice.favorite is original
    assert twice.updated_at > created_updated_at


@pytest.mark.asyncio
async def test_delete_contact_removes_join_rows(db: AsyncSession, owner: Principal):
    contact = await contact_svc.create_contact(db, owner, _data(tags=["investor"]))
    contact_id = contact.id

    await contact_svc.delete_contact(db, owner, contact_id)

    assert all(c.id != contact_id for c in await contact_svc.list_contacts(db, owner))
    links = (
        await db.execute(select(ContactTag).where(ContactTag.contact_id == contact_id))
    ).scalars().all()
    assert links == []
    # Tag rows survive deletion
    tag = (await db.execute(select(Tag).where(Tag.name == "investor"))).scalar_one()
    assert tag.owner_id == owner.id

    with pytest.raises(ContactNotFound):
        await contact_svc.get_contact(db, owner, contact_id)


@pytest.mark.asyncio
async def test_contact_summary(db: AsyncSession, owner: Principal):
    for i in range(7):
        await contact_svc.create_contact(db, owner, _data(name=f"User{i}", favorite=i % 2 == 0))

    summary = await contact_svc.contact_summary(db, owner)
    assert summary["total"] == 7
    assert summary["favorites"] == 4
    assert [c.name for c in summary["recent"]] == ["User6", "User5", "User4", "User3", "User2"]
    assert [c.name for c in summary["favorite_contacts"]] == ["User6", "User4", "User2"]

"""Test in-process and server-side contact search."""

from __future__ import annotations

from dataclasses import dataclass, field

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from contactbook.auth import Principal
from contactbook.schemas.contact import ContactCreate
from contactbook.search import contact_matches, filter_contacts, normalize_query
from contactbook.services import contact_svc


@dataclass
class Card:
    name: str
    email: str
    phone: str | None = None
    company: str | None = None
    position: str | None = None
    tags: list[str] = field(default_factory=list)


CARDS = [
    Card("Alex Morgan", "alex@example.com", "+1 (555) 123-4567", "TechCorp Inc.", "Product Manager", ["client", "tech"]),
    Card("Jordan Rivera", "jordan@example.com", company="Startup Ventures", position="CEO", tags=["investor"]),
    Card("Casey Williams", "casey@example.com"),
]


def test_normalize_query():
    assert normalize_query("  MiXed ") == "mixed"
    assert normalize_query(None) == ""


def test_blank_query_keeps_everything_in_order():
    assert filter_contacts(CARDS, "") == CARDS
    assert filter_contacts(CARDS, "   ") == CARDS


@pytest.mark.parametrize(
    "query,expected",
    [
        ("alex", ["Alex Morgan"]),
        ("EXAMPLE.COM", ["Alex Morgan", "Jordan Rivera", "Casey Williams"]),
        ("startup", ["Jordan Rivera"]),
        ("ceo", ["Jordan Rivera"]),
        ("555", ["Alex Morgan"]),
        ("invest", ["Jordan Rivera"]),
        ("nobody", []),
    ],
)
def test_filter_contacts(query, expected):
    assert [c.name for c in filter_contacts(CARDS, query)] == expected


def test_contact_matches_handles_missing_fields():
    assert contact_matches(CARDS[2], "casey")
    assert not contact_matches(CARDS[2], "corp")


async def _seed(db: AsyncSession, principal: Principal):
    await contact_svc.create_contact(db, principal, ContactCreate(
        name="Alex Morgan", email="alex@example.com", company="TechCorp Inc.",
        tags=["client", "tech"],
    ))
    await contact_svc.create_contact(db, principal, ContactCreate(
        name="Jordan Rivera", email="jordan@example.com", position="CEO",
        tags=["investor", "important"],
    ))
    await contact_svc.create_contact(db, principal, ContactCreate(
        name="Pat 100%", email="pat_x@example.com",
    ))


@pytest.mark.asyncio
@pytest.mark.parametrize("local", [False, True])
async def test_search_by_tag_only_returns_full_tag_set(
    db: AsyncSession, owner: Principal, local: bool
):
    await _seed(db, owner)

    results = await contact_svc.search_contacts(db, owner, "investor", local=local)
    assert [c.name for c in results] == ["Jordan Rivera"]
    assert set(results[0].tag_names) == {"investor", "important"}


@pytest.mark.asyncio
@pytest.mark.parametrize("local", [False, True])
async def test_search_fields_case_insensitive(db: AsyncSession, owner: Principal, local: bool):
    await _seed(db, owner)

    assert [c.name for c in await contact_svc.search_contacts(db, owner, "TECHCORP", local=local)] == [
        "Alex Morgan"
    ]
    assert [c.name for c in await contact_svc.search_contacts(db, owner, "ceo", local=local)] == [
        "Jordan Rivera"
    ]


@pytest.mark.asyncio
async def test_search_blank_query_matches_list(db: AsyncSession, owner: Principal):
    await _seed(db, owner)

    listed = [c.id for c in await contact_svc.list_contacts(db, owner)]
    searched = [c.id for c in await contact_svc.search_contacts(db, owner, "  ")]
    assert searched == listed


@pytest.mark.asyncio
async def test_search_escapes_wildcards(db: AsyncSession, owner: Principal):
    await _seed(db, owner)

    assert [c.name for c in await contact_svc.search_contacts(db, owner, "%", local=False)] == [
        "Pat 100%"
    ]
    assert [c.name for c in await contact_svc.search_contacts(db, owner, "_", local=False)] == [
        "Pat 100%"
    ]


@pytest.mark.asyncio
async def test_search_is_owner_scoped(db: AsyncSession, owner: Principal, stranger: Principal):
    await _seed(db, owner)

    assert await contact_svc.search_contacts(db, stranger, "alex") == []


@pytest.mark.asyncio
@pytest.mark.parametrize("local", [False, True])
@pytest.mark.parametrize("query", ["émile", "ÉMILE", "zoë", "ZOË"])
async def test_search_folds_accented_case(
    db: AsyncSession, owner: Principal, local: bool, query: str
):
    await contact_svc.create_contact(db, owner, ContactCreate(
        name="ÉMILE Zola", email="emile@example.com", company="Zoë & Co",
    ))
    await _seed(db, owner)

    results = await contact_svc.search_contacts(db, owner, query, local=local)
    assert [c.name for c in results] == ["ÉMILE Zola"]

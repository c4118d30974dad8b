"""Async test fixtures for contact book tests using SQLite."""

from __future__ import annotations

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from contactbook.auth import AttemptLimiter, Principal
from contactbook.cache import ContactCache
from contactbook.config import settings
from contactbook.database import configure_sqlite, get_db
from contactbook.models.account import Account
from contactbook.models.base import Base


@pytest.fixture(autouse=True)
def _test_settings(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr(settings, "auth_secret", "test-secret")
    monkeypatch.setattr(settings, "search_mode", "server")
    monkeypatch.setattr(settings, "cache_enabled", True)


@pytest_asyncio.fixture
async def engine():
    eng = create_async_engine("sqlite+aiosqlite:///:memory:", echo=False)
    configure_sqlite(eng)
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest_asyncio.fixture
async def db(engine):
    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session


async def _account(db: AsyncSession, email: str) -> Account:
    account = Account(email=email, password_hash="pbkdf2_sha256$1$00$00")
    db.add(account)
    await db.commit()
    await db.refresh(account)
    return account


@pytest_asyncio.fixture
async def owner(db: AsyncSession) -> Principal:
    account = await _account(db, "owner@example.com")
    return Principal(id=account.id, email=account.email)


@pytest_asyncio.fixture
async def stranger(db: AsyncSession) -> Principal:
    account = await _account(db, "stranger@example.com")
    return Principal(id=account.id, email=account.email)


@pytest_asyncio.fixture
async def client(engine, monkeypatch: pytest.MonkeyPatch):
    """HTTPX async test client against the app, signed out."""
    from contactbook.app import app
    from contactbook.routers import auth as auth_routes

    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.state.contact_cache = ContactCache()
    monkeypatch.setattr(auth_routes, "limiter", AttemptLimiter())

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def auth_client(client: AsyncClient):
    """The same client after signing up; the session cookie is kept in its jar."""
    resp = await client.post(
        "/auth/sign-up", json={"email": "me@example.com", "password": "correct-horse"}
    )
    assert resp.status_code == 201
    return client

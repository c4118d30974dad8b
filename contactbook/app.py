"""FastAPI application for the contact book service."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from .cache import ContactCache
from .config import settings

log = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    # Auto-create tables for SQLite (local dev); other databases use Alembic migrations
    if "sqlite" in settings.database_url:
        from .database import engine
        from .models import Base
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
    if not settings.auth_secret.strip():
        if settings.is_production:
            raise RuntimeError("CONTACTBOOK_AUTH_SECRET must be set in production")
        log.warning("CONTACTBOOK_AUTH_SECRET is empty; sign-in will fail until it is set")
    yield


app = FastAPI(title=settings.app_title, lifespan=lifespan)
app.state.contact_cache = ContactCache(enabled=settings.cache_enabled)

# Import and register routers
from .routers import auth, contacts, dashboard, health, tags  # noqa: E402

app.include_router(auth.router)
app.include_router(contacts.router)
app.include_router(tags.router)
app.include_router(dashboard.router)
app.include_router(health.router)

"""Async database engine and session factory."""

from __future__ import annotations

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from .config import settings


def _unicode_lower(value):
    return value.lower() if isinstance(value, str) else value


def configure_sqlite(eng: AsyncEngine) -> None:
    """Per-connection SQLite setup: enforce foreign keys, fold case beyond ASCII.

    SQLite ignores ON DELETE CASCADE unless the pragma is set, and its built-in
    ``lower()`` leaves non-ASCII letters untouched, which breaks ``icontains``
    on names such as "Émile".
    """
    if eng.dialect.name != "sqlite":
        return

    @event.listens_for(eng.sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()
        dbapi_connection.create_function("lower", 1, _unicode_lower)


engine = create_async_engine(settings.database_url, echo=settings.echo_sql)
configure_sqlite(engine)
async_session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def get_db():
    """FastAPI dependency that yields an async session."""
    async with async_session_factory() as session:
        yield session

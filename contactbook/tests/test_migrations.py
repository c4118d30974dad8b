"""Smoke tests for the Alembic migrations."""

from __future__ import annotations

from pathlib import Path

from alembic import command
from alembic.config import Config
from sqlalchemy import create_engine, inspect

from contactbook.config import settings


def test_alembic_upgrade_creates_schema(tmp_path: Path, monkeypatch):
    db_path = tmp_path / "contactbook_migrations.db"
    monkeypatch.setattr(settings, "database_url", f"sqlite+aiosqlite:///{db_path}")

    cfg = Config(str(settings.alembic_ini))
    command.upgrade(cfg, "head")

    engine = create_engine(f"sqlite:///{db_path}")
    try:
        insp = inspect(engine)
        tables = set(insp.get_table_names())
        contact_columns = {c["name"] for c in insp.get_columns("contact")}
        link_pk = insp.get_pk_constraint("contact_tag")["constrained_columns"]
    finally:
        engine.dispose()

    assert {"account", "contact", "tag", "contact_tag"} <= tables
    assert {"owner_id", "name", "email", "favorite", "last_contact", "updated_at"} <= contact_columns
    assert set(link_pk) == {"contact_id", "tag_id"}

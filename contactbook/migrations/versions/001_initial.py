"""Initial contact book schema.

Revision ID: 001_initial
Revises:
Create Date: 2026-10-17
"""

from __future__ import annotations

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


revision: str = "001_initial"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    ]


def upgrade() -> None:
    # Account (owner of everything below)
    op.create_table(
        "account",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("last_login_at", sa.DateTime(timezone=True)),
        *_timestamps(),
    )
    op.create_index("ix_account_email", "account", ["email"], unique=True)
    op.create_index("ix_account_updated_at", "account", ["updated_at"])

    # Contact
    op.create_table(
        "contact",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("owner_id", sa.Uuid(), sa.ForeignKey("account.id", ondelete="CASCADE"), nullable=False),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("phone", sa.String(50)),
        sa.Column("company", sa.String(200)),
        sa.Column("position", sa.String(200)),
        sa.Column("notes", sa.Text()),
        sa.Column("avatar", sa.String(500)),
        sa.Column("favorite", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("last_contact", sa.DateTime(timezone=True)),
        *_timestamps(),
    )
    op.create_index("ix_contact_owner_id", "contact", ["owner_id"])
    op.create_index("ix_contact_email", "contact", ["email"])
    op.create_index("ix_contact_updated_at", "contact", ["updated_at"])
    op.create_index("ix_contact_owner_updated", "contact", ["owner_id", "updated_at"])

    # Tag
    op.create_table(
        "tag",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("owner_id", sa.Uuid(), sa.ForeignKey("account.id", ondelete="CASCADE"), nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("owner_id", "name", name="uq_tag_owner_name"),
    )
    op.create_index("ix_tag_owner_id", "tag", ["owner_id"])
    op.create_index("ix_tag_updated_at", "tag", ["updated_at"])

    # Contact-Tag M2M
    op.create_table(
        "contact_tag",
        sa.Column("contact_id", sa.Uuid(), sa.ForeignKey("contact.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("tag_id", sa.Uuid(), sa.ForeignKey("tag.id", ondelete="CASCADE"), primary_key=True),
    )
    op.create_index("ix_contact_tag_tag_id", "contact_tag", ["tag_id"])


def downgrade() -> None:
    op.drop_table("contact_tag")
    op.drop_table("tag")
    op.drop_table("contact")
    op.drop_table("account")

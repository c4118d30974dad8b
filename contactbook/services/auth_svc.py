"""Account service - sign-up, credential checks, session principal lookup."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..auth import Principal, hash_password_async, verify_password_async
from ..errors import SignUpRejected
from ..models.account import Account

log = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 8


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def _as_utc(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _should_update_last_login(last_login_at: datetime | None, now: datetime) -> bool:
    """Avoid a write on every one of several rapid sign-ins."""
    last = _as_utc(last_login_at)
    if last is None:
        return True
    return (now - last).total_seconds() >= 60


def to_principal(account: Account) -> Principal:
    return Principal(id=account.id, email=account.email)


async def get_account_by_email(db: AsyncSession, email: str) -> Account | None:
    stmt = select(Account).where(Account.email == normalize_email(email))
    return (await db.execute(stmt)).scalar_one_or_none()


async def sign_up(db: AsyncSession, email: str, password: str) -> Account:
    email_norm = normalize_email(email)
    if not email_norm or "@" not in email_norm:
        raise SignUpRejected("A valid email is required")
    if len(password or "") < MIN_PASSWORD_LENGTH:
        raise SignUpRejected(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    if await get_account_by_email(db, email_norm):
        raise SignUpRejected("An account with this email already exists")

    account = Account(email=email_norm, password_hash=await hash_password_async(password))
    db.add(account)
    try:
        await db.commit()
    except IntegrityError as exc:
        await db.rollback()
        raise SignUpRejected("An account with this email already exists") from exc
    await db.refresh(account)
    log.info("account created %s", account.id)
    return account


async def authenticate(db: AsyncSession, email: str, password: str) -> Principal | None:
    """Validate credentials. Returns the principal or None."""
    email_norm = normalize_email(email)
    if not email_norm or not password:
        return None

    account = await get_account_by_email(db, email_norm)
    if not account or not account.is_active:
        return None
    if not await verify_password_async(password, account.password_hash):
        return None

    now = datetime.now(timezone.utc)
    if _should_update_last_login(account.last_login_at, now):
        account.last_login_at = now
        await db.commit()
    return to_principal(account)


async def resolve_principal(db: AsyncSession, principal: Principal) -> Principal | None:
    """Confirm a token's account still exists and is active."""
    account = await db.get(Account, principal.id)
    if not account or not account.is_active:
        return None
    return to_principal(account)

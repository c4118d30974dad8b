"""FastAPI dependencies for the session principal and the contact cache."""

from __future__ import annotations

from fastapi import Depends, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from .auth import Principal, decode_session_token, token_from_request
from .cache import ContactCache
from .config import settings
from .database import get_db
from .services import auth_svc


async def get_principal(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> Principal | None:
    """Principal of the request's session, or None when signed out."""
    principal = decode_session_token(settings, token_from_request(request, settings))
    if principal is None:
        return None
    return await auth_svc.resolve_principal(db, principal)


async def require_principal(
    principal: Principal | None = Depends(get_principal),
) -> Principal:
    if principal is None:
        raise HTTPException(status_code=401, detail="Authentication required")
    return principal


def get_cache(request: Request) -> ContactCache:
    cache = getattr(request.app.state, "contact_cache", None)
    if cache is None:
        cache = ContactCache(enabled=settings.cache_enabled)
        request.app.state.contact_cache = cache
    return cache

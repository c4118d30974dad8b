"""Account routes - sign-up, sign-in, sign-out, current user."""

from __future__ import annotations

import logging
import time

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from ..auth import (
    AttemptLimiter,
    Principal,
    clear_session_cookie,
    client_addr,
    issue_session_token,
    set_session_cookie,
)
from ..config import settings
from ..database import get_db
from ..deps import require_principal
from ..errors import SignUpRejected
from ..schemas.auth import AccountResponse, Credentials
from ..services import auth_svc

log = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])
limiter = AttemptLimiter()


def _peer(request: Request) -> str:
    return client_addr(request, trust_forwarded=settings.auth_trust_forwarded_for)


def _login_key(request: Request, email: str) -> str:
    return f"sign-in:{auth_svc.normalize_email(email)}:{_peer(request)}"


def _require_secret() -> None:
    # Sessions cannot be issued without a secret; refuse before writing anything.
    if not settings.auth_secret.strip():
        log.error("CONTACTBOOK_AUTH_SECRET is not set; refusing account request")
        raise HTTPException(status_code=503, detail="Accounts are not available")


def _session_response(principal: Principal, status_code: int = 200) -> JSONResponse:
    response = JSONResponse(
        {"id": str(principal.id), "email": principal.email}, status_code=status_code
    )
    set_session_cookie(response, settings, issue_session_token(settings, principal))
    return response


@router.post("/sign-up")
async def sign_up(data: Credentials, db: AsyncSession = Depends(get_db)):
    _require_secret()
    try:
        account = await auth_svc.sign_up(db, data.email, data.password)
    except SignUpRejected as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return _session_response(auth_svc.to_principal(account), status_code=201)


@router.post("/sign-in")
async def sign_in(
    data: Credentials,
    request: Request,
    db: AsyncSession = Depends(get_db),
):
    _require_secret()
    key = _login_key(request, data.email)
    now = time.monotonic()
    if limiter.is_blocked(key, now):
        raise HTTPException(status_code=429, detail="Too many attempts, try again later")

    principal = await auth_svc.authenticate(db, data.email, data.password)
    if principal is None:
        limiter.add_failure(
            key=key,
            now=now,
            window_seconds=settings.auth_rate_limit_window_seconds,
            max_attempts=settings.auth_rate_limit_max_attempts,
            block_seconds=settings.auth_rate_limit_block_seconds,
        )
        log.warning("sign-in failed from %s", _peer(request))
        raise HTTPException(status_code=401, detail="Invalid email or password")

    limiter.clear(key)
    return _session_response(principal)


@router.post("/sign-out")
async def sign_out():
    response = JSONResponse({"signed_out": True})
    clear_session_cookie(response, settings)
    return response


@router.get("/me")
async def me(principal: Principal = Depends(require_principal)) -> AccountResponse:
    return AccountResponse(id=principal.id, email=principal.email)

"""Session tokens, password hashing and sign-in throttling."""

from __future__ import annotations

import asyncio
import base64
import hashlib
import hmac
import json
import secrets
import time
import uuid
from dataclasses import dataclass

from fastapi import Request

PASSWORD_SCHEME = "pbkdf2_sha256"


@dataclass(frozen=True)
class Principal:
    """The signed-in account a request acts on behalf of."""

    id: uuid.UUID
    email: str


class AttemptLimiter:
    """Counts failed sign-ins per key and blocks a key once it hits the limit.

    Every recorded failure also evicts keys whose failures have left the
    window and whose block has lapsed, so the table only holds keys with
    recent activity.
    """

    def __init__(self):
        self._failures: dict[str, list[float]] = {}
        self._blocked: dict[str, float] = {}

    def __len__(self) -> int:
        return len(self._failures.keys() | self._blocked.keys())

    def is_blocked(self, key: str, now: float) -> bool:
        until = self._blocked.get(key)
        if until is None:
            return False
        if until > now:
            return True
        del self._blocked[key]
        return False

    def add_failure(
        self,
        *,
        key: str,
        now: float,
        window_seconds: int,
        max_attempts: int,
        block_seconds: int,
    ) -> bool:
        """Record a failure for ``key``; True when the key is now blocked."""
        if max_attempts <= 0:
            return False
        self._evict(now, cutoff=now - max(1, window_seconds))
        if self.is_blocked(key, now):
            return True

        recent = self._failures.setdefault(key, [])
        recent.append(now)
        if len(recent) < max_attempts:
            return False
        del self._failures[key]
        self._blocked[key] = now + max(1, block_seconds)
        return True

    def _evict(self, now: float, *, cutoff: float) -> None:
        for key in list(self._failures):
            kept = [t for t in self._failures[key] if t >= cutoff]
            if kept:
                self._failures[key] = kept
            else:
                del self._failures[key]
        for key in [k for k, until in self._blocked.items() if until <= now]:
            del self._blocked[key]

    def clear(self, key: str) -> None:
        self._failures.pop(key, None)
        self._blocked.pop(key, None)


def hash_password(password: str, iterations: int = 200_000) -> str:
    """Hash as ``pbkdf2_sha256$<iterations>$<salt hex>$<digest hex>``."""
    if not password:
        raise ValueError("Password is required")
    salt = secrets.token_bytes(16)
    digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, iterations)
    return "$".join((PASSWORD_SCHEME, str(iterations), salt.hex(), digest.hex()))


def verify_password(password: str, stored_hash: str) -> bool:
    if not password or not stored_hash:
        return False
    parts = stored_hash.split("$")
    if len(parts) != 4 or parts[0] != PASSWORD_SCHEME:
        return False
    try:
        iterations = int(parts[1])
        salt, expected = bytes.fromhex(parts[2]), bytes.fromhex(parts[3])
    except ValueError:
        return False
    actual = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, iterations)
    return hmac.compare_digest(actual, expected)


async def hash_password_async(password: str) -> str:
    return await asyncio.to_thread(hash_password, password)


async def verify_password_async(password: str, stored_hash: str) -> bool:
    return await asyncio.to_thread(verify_password, password, stored_hash)


def _encode_body(payload: dict) -> str:
    raw = json.dumps(payload, separators=(",", ":"), sort_keys=True).encode("utf-8")
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")


def _decode_body(body: str) -> dict | None:
    try:
        payload = json.loads(base64.urlsafe_b64decode(body + "=" * (-len(body) % 4)))
    except ValueError:
        return None
    return payload if isinstance(payload, dict) else None


def _ttl_seconds(settings_obj) -> int:
    return max(60, int(settings_obj.auth_session_ttl_seconds))


def _sign(secret: str, body: str) -> bytes:
    return hmac.new(secret.encode("utf-8"), body.encode("utf-8"), hashlib.sha256).hexdigest().encode("ascii")


def issue_session_token(settings_obj, principal: Principal, *, now: int | None = None) -> str:
    secret = (settings_obj.auth_secret or "").strip()
    if not secret:
        raise RuntimeError("auth_secret must be configured to issue sessions")

    issued = int(time.time()) if now is None else now
    body = _encode_body({
        "sub": str(principal.id),
        "email": principal.email,
        "iat": issued,
        "exp": issued + _ttl_seconds(settings_obj),
    })
    return f"{body}.{_sign(secret, body).decode('ascii')}"


def decode_session_token(settings_obj, token: str) -> Principal | None:
    """Principal carried by a valid, unexpired token; None for anything else."""
    secret = (settings_obj.auth_secret or "").strip()
    if not secret or not token:
        return None

    body, _, provided_sig = token.partition(".")
    # Header values arrive latin-1 decoded and may hold any character.
    if not hmac.compare_digest(provided_sig.encode("utf-8"), _sign(secret, body)):
        return None

    payload = _decode_body(body)
    if payload is None:
        return None
    exp = payload.get("exp")
    if not isinstance(exp, int) or exp <= int(time.time()):
        return None
    try:
        account_id = uuid.UUID(str(payload.get("sub")))
    except ValueError:
        return None
    email = payload.get("email")
    if not isinstance(email, str) or not email.strip():
        return None
    return Principal(id=account_id, email=email.strip().lower())


def token_from_request(request: Request, settings_obj) -> str:
    cookie_token = request.cookies.get(settings_obj.auth_cookie_name, "")
    if cookie_token:
        return cookie_token

    auth = request.headers.get("authorization", "")
    if auth.lower().startswith("bearer "):
        return auth[7:].strip()
    return ""


def set_session_cookie(response, settings_obj, token: str):
    response.set_cookie(
        key=settings_obj.auth_cookie_name,
        value=token,
        max_age=_ttl_seconds(settings_obj),
        httponly=True,
        secure=bool(settings_obj.auth_cookie_secure),
        samesite="lax",
        path="/",
    )


def clear_session_cookie(response, settings_obj):
    response.delete_cookie(settings_obj.auth_cookie_name, path="/")


def client_addr(request: Request, *, trust_forwarded: bool = False) -> str:
    """Peer address; the first X-Forwarded-For hop only behind a trusted proxy."""
    if trust_forwarded:
        forwarded = request.headers.get("x-forwarded-for", "").split(",", 1)[0].strip()
        if forwarded:
            return forwarded
    if request.client and request.client.host:
        return request.client.host
    return "unknown"

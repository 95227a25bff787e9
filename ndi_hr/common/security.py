"""Password hashing, session JWTs and purpose-scoped signed tokens."""

from __future__ import annotations

import hashlib
import secrets
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from jose import JWTError, jwt
from werkzeug.security import check_password_hash, generate_password_hash

from ndi_hr.config import settings

INVOICE_UNLOCK_PURPOSE = "invoice-unlock"
LEAVE_ATTACHMENT_PURPOSE = "leave-attachment"


# ── Passwords ───────────────────────────────────────────────────────

def hash_password(password: str) -> str:
    return generate_password_hash(password)


def verify_password(password: str, password_hash: Optional[str]) -> bool:
    if not password_hash:
        return False
    return check_password_hash(password_hash, password)


# ── Opaque tokens (invitation / password reset) ─────────────────────

def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode()).hexdigest()


def generate_url_token() -> str:
    return secrets.token_urlsafe(32)


# ── Session JWT ─────────────────────────────────────────────────────

def create_session_token(user_id: uuid.UUID, expires_at: datetime) -> str:
    """Encode the access JWT stored (hashed) in ``user_sessions``."""
    payload = {
        "sub": str(user_id),
        "type": "access",
        "jti": uuid.uuid4().hex,
        "exp": expires_at,
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def decode_session_token(token: str) -> dict[str, Any]:
    """Decode and verify an access JWT. Raises ``JWTError`` on any failure."""
    payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    if payload.get("type") != "access":
        raise JWTError("Invalid token type.")
    return payload


# ── Purpose-scoped signed tokens ────────────────────────────────────

def create_signed_token(purpose: str, claims: dict[str, Any], ttl: timedelta) -> str:
    payload = dict(claims)
    payload["purpose"] = purpose
    payload["exp"] = datetime.now(timezone.utc) + ttl
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def verify_signed_token(token: str, purpose: str) -> Optional[dict[str, Any]]:
    """Return the claims when the signature, expiry and purpose check out, else None."""
    try:
        payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except JWTError:
        return None
    if payload.get("purpose") != purpose:
        return None
    return payload

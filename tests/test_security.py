"""Security test suite — password hashing, session and signed tokens,
session expiry, login rate limiting and upload path containment.
"""

from __future__ import annotations

import uuid
from datetime import timedelta

import pytest
from fastapi import Depends
from jose import JWTError, jwt
from starlette.requests import Request

from ndi_hr.auth.dependencies import extract_session_token, require_role
from ndi_hr.auth.models import UserSession
from ndi_hr.common.constants import UserRole
from ndi_hr.common.exceptions import BadRequestException
from ndi_hr.common.formatting import utcnow
from ndi_hr.common.rate_limit import LOGIN_RATE_LIMIT
from ndi_hr.common.security import (
    INVOICE_UNLOCK_PURPOSE,
    LEAVE_ATTACHMENT_PURPOSE,
    create_session_token,
    create_signed_token,
    decode_session_token,
    generate_url_token,
    hash_password,
    hash_token,
    verify_password,
    verify_signed_token,
)
from ndi_hr.common.storage import resolve_path
from ndi_hr.config import settings
from ndi_hr.core_hr.models import User
from tests.conftest import DEFAULT_PASSWORD, create_session_headers


def _request(headers: dict[str, str]) -> Request:
    raw = [(k.lower().encode(), v.encode()) for k, v in headers.items()]
    return Request({"type": "http", "headers": raw})


# ═════════════════════════════════════════════════════════════════════
# Passwords and opaque tokens
# ═════════════════════════════════════════════════════════════════════


def test_password_hash_roundtrip():
    hashed = hash_password("Sup3r-secret!")
    assert hashed != "Sup3r-secret!"
    assert verify_password("Sup3r-secret!", hashed)
    assert not verify_password("sup3r-secret!", hashed)


def test_verify_password_without_hash():
    assert verify_password("anything", None) is False
    assert verify_password("anything", "") is False


def test_url_tokens_are_unique_and_hash_stably():
    first, second = generate_url_token(), generate_url_token()
    assert first != second
    assert hash_token(first) == hash_token(first)
    assert len(hash_token(first)) == 64


# ═════════════════════════════════════════════════════════════════════
# Session JWT
# ═════════════════════════════════════════════════════════════════════


def test_session_token_claims():
    user_id = uuid.uuid4()
    token = create_session_token(user_id, utcnow() + timedelta(hours=1))
    payload = decode_session_token(token)
    assert payload["sub"] == str(user_id)
    assert payload["type"] == "access"
    assert payload["jti"]


def test_session_tokens_differ_per_issue():
    user_id = uuid.uuid4()
    expires_at = utcnow() + timedelta(hours=1)
    assert create_session_token(user_id, expires_at) != create_session_token(user_id, expires_at)


def test_decode_rejects_other_token_types():
    token = create_signed_token(INVOICE_UNLOCK_PURPOSE, {"sub": "x"}, timedelta(minutes=5))
    with pytest.raises(JWTError):
        decode_session_token(token)


def test_decode_rejects_foreign_signature():
    token = jwt.encode(
        {"sub": str(uuid.uuid4()), "type": "access", "exp": utcnow() + timedelta(hours=1)},
        "some-other-secret",
        algorithm=settings.JWT_ALGORITHM,
    )
    with pytest.raises(JWTError):
        decode_session_token(token)


def test_extract_session_token_prefers_cookie():
    request = _request({
        "Cookie": f"{settings.SESSION_COOKIE_NAME}=from-cookie",
        "Authorization": "Bearer from-header",
    })
    assert extract_session_token(request) == "from-cookie"
    assert extract_session_token(_request({"Authorization": "Bearer abc"})) == "abc"
    assert extract_session_token(_request({"Authorization": "Basic abc"})) is None


async def test_expired_jwt_reports_expiry(client, employee_id):
    token = create_session_token(employee_id, utcnow() - timedelta(minutes=1))
    resp = await client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert resp.status_code == 401
    assert resp.json()["detail"] == "Your session has expired. Please sign in again."


async def test_expired_session_row_rejected(client, db, employee_id):
    # JWT still valid, persisted session already past its expiry
    token = create_session_token(employee_id, utcnow() + timedelta(hours=1))
    db.add(UserSession(
        user_id=employee_id,
        token_hash=hash_token(token),
        expires_at=utcnow() - timedelta(minutes=1),
    ))
    await db.commit()

    resp = await client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert resp.status_code == 401
    assert resp.json()["detail"] == "Session invalid or expired."


async def test_session_of_other_user_rejected(client, db, employee_id, hr_admin_id):
    headers = await create_session_headers(db, employee_id)
    token = headers["Authorization"][len("Bearer "):]
    claims = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    claims["sub"] = str(hr_admin_id)
    forged = jwt.encode(claims, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)

    resp = await client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {forged}"})
    assert resp.status_code == 401


# ═════════════════════════════════════════════════════════════════════
# Purpose-scoped signed tokens
# ═════════════════════════════════════════════════════════════════════


def test_signed_token_roundtrip():
    token = create_signed_token(
        LEAVE_ATTACHMENT_PURPOSE, {"key": "leave-attachments/a.pdf"}, timedelta(minutes=5),
    )
    claims = verify_signed_token(token, LEAVE_ATTACHMENT_PURPOSE)
    assert claims["key"] == "leave-attachments/a.pdf"


def test_signed_token_wrong_purpose():
    token = create_signed_token(LEAVE_ATTACHMENT_PURPOSE, {"key": "x"}, timedelta(minutes=5))
    assert verify_signed_token(token, INVOICE_UNLOCK_PURPOSE) is None


def test_signed_token_expired():
    token = create_signed_token(INVOICE_UNLOCK_PURPOSE, {"sub": "x"}, timedelta(seconds=-1))
    assert verify_signed_token(token, INVOICE_UNLOCK_PURPOSE) is None


def test_signed_token_tampered():
    token = create_signed_token(INVOICE_UNLOCK_PURPOSE, {"sub": "x"}, timedelta(minutes=5))
    assert verify_signed_token(token[:-2] + "xx", INVOICE_UNLOCK_PURPOSE) is None


# ═════════════════════════════════════════════════════════════════════
# Rate limiting
# ═════════════════════════════════════════════════════════════════════


async def test_login_rate_limited(client, employee_id):
    allowed = int(LOGIN_RATE_LIMIT.split("/")[0])
    body = {"email": "rahim.uddin@ndilabs.com", "password": "wrong-password"}
    for _ in range(allowed):
        resp = await client.post("/api/v1/auth/login", json=body)
        assert resp.status_code == 401

    blocked = await client.post(
        "/api/v1/auth/login",
        json={"email": "rahim.uddin@ndilabs.com", "password": DEFAULT_PASSWORD},
    )
    assert blocked.status_code == 429


# ═════════════════════════════════════════════════════════════════════
# Upload storage
# ═════════════════════════════════════════════════════════════════════


def test_resolve_path_stays_inside_upload_root():
    path = resolve_path("profile-photos/me.png")
    assert path.endswith("profile-photos/me.png")


@pytest.mark.parametrize("key", ["../secrets.txt", "profile-photos/../../etc/passwd", "/etc/passwd"])
def test_resolve_path_rejects_escape(key):
    with pytest.raises(BadRequestException):
        resolve_path(key)


# ═════════════════════════════════════════════════════════════════════
# Role guard
# ═════════════════════════════════════════════════════════════════════


async def test_require_role_guard(app, client, employee_headers, hr_headers):
    async def _guarded_route(user: User = Depends(require_role(UserRole.HR_ADMIN, UserRole.ORG_OWNER))):
        return {"id": str(user.id)}

    app.add_api_route("/api/v1/_guarded", _guarded_route, methods=["GET"])

    denied = await client.get("/api/v1/_guarded", headers=employee_headers)
    assert denied.status_code == 403
    assert denied.json()["detail"].startswith("Role 'EMPLOYEE' is not permitted.")

    allowed = await client.get("/api/v1/_guarded", headers=hr_headers)
    assert allowed.status_code == 200

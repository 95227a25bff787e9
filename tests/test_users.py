"""Self-service profile tests — read, update, password change and photo upload."""

from __future__ import annotations

import os

from sqlalchemy import select

from ndi_hr.common.security import verify_password
from ndi_hr.common.storage import resolve_path
from ndi_hr.core_hr.models import Department, EmployeeProfile, User
from tests.conftest import (
    DEFAULT_PASSWORD,
    TestSessionFactory,
    _make_user,
    fetch,
)

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


def _profile_payload(**overrides):
    payload = {
        "profile": {
            "first_name": "Rahim",
            "last_name": "Uddin",
            "preferred_name": "  ",
            "work_model": "REMOTE",
            "work_email": "rahim.uddin@ndilabs.com",
            "work_phone": "01711111111",
            "current_address": "Dhanmondi, Dhaka",
        },
        "employment": {
            "employee_code": "  NDI-100 ",
            "designation": "Senior Engineer",
            "department_name": "Engineering",
            "employment_type": "FULL_TIME",
            "primary_location": "Dhaka HQ",
        },
        "emergency_contact": {
            "name": "Karim Uddin",
            "relationship": "Brother",
            "phone": "01822222222",
        },
        "bank_account": {
            "bank_name": "BRAC Bank",
            "account_holder": "Rahim Uddin",
            "account_number": "1501201234567",
            "branch": "Gulshan",
        },
    }
    for section, values in overrides.items():
        payload[section].update(values)
    return payload


# ── GET /me ─────────────────────────────────────────────────────────


async def test_get_profile(client, employee_headers, employee_id):
    resp = await client.get("/api/v1/users/me", headers=employee_headers)
    assert resp.status_code == 200
    data = resp.json()
    assert data["id"] == str(employee_id)
    assert data["email"] == "rahim.uddin@ndilabs.com"
    assert data["organization_name"] == "NDI Labs"
    assert data["profile"]["first_name"] == "Rahim"
    assert data["employment"]["employee_code"] == "NDI-100"
    assert data["employment"]["status"] == "ACTIVE"
    assert data["emergency_contact"] is None
    assert data["bank_account"] is None


async def test_get_profile_requires_auth(client):
    resp = await client.get("/api/v1/users/me")
    assert resp.status_code == 401


# ── PUT /me ─────────────────────────────────────────────────────────


async def test_update_profile_fills_every_section(client, employee_headers, employee_id):
    resp = await client.put("/api/v1/users/me", json=_profile_payload(), headers=employee_headers)
    assert resp.status_code == 200
    data = resp.json()
    assert data["profile"]["preferred_name"] is None
    assert data["profile"]["work_model"] == "REMOTE"
    assert data["phone"] == "01711111111"
    assert data["employment"]["employee_code"] == "NDI-100"
    assert data["employment"]["designation"] == "Senior Engineer"
    assert data["employment"]["department_name"] == "Engineering"
    assert data["emergency_contact"]["relationship"] == "Brother"
    assert data["bank_account"]["branch"] == "Gulshan"

    async with TestSessionFactory() as session:
        departments = (await session.execute(select(Department))).scalars().all()
        profile = (await session.execute(
            select(EmployeeProfile).where(EmployeeProfile.user_id == employee_id),
        )).scalar_one()
    assert [d.name for d in departments] == ["Engineering"]
    assert profile.current_address == "Dhanmondi, Dhaka"


async def test_update_profile_twice_reuses_records(client, employee_headers):
    await client.put("/api/v1/users/me", json=_profile_payload(), headers=employee_headers)
    resp = await client.put(
        "/api/v1/users/me",
        json=_profile_payload(
            emergency_contact={"name": "Salma Uddin", "relationship": "Mother"},
            bank_account={"account_number": "999"},
        ),
        headers=employee_headers,
    )
    assert resp.status_code == 200
    assert resp.json()["emergency_contact"]["name"] == "Salma Uddin"
    assert resp.json()["bank_account"]["account_number"] == "999"


async def test_update_profile_duplicate_employee_code(client, db, organization, employee_headers):
    await _make_user(db, organization, email="other@ndilabs.com", employee_code="NDI-200")

    resp = await client.put(
        "/api/v1/users/me",
        json=_profile_payload(employment={"employee_code": "NDI-200"}),
        headers=employee_headers,
    )
    assert resp.status_code == 409
    assert resp.json()["detail"] == "This employee ID is already registered in your workspace."


async def test_update_profile_invalid_email(client, employee_headers):
    resp = await client.put(
        "/api/v1/users/me",
        json=_profile_payload(profile={"work_email": "not-an-email"}),
        headers=employee_headers,
    )
    assert resp.status_code == 422
    assert "profile.work_email" in resp.json()["errors"]


# ── PUT /me/password ────────────────────────────────────────────────


async def test_update_password(client, employee_headers, employee_id):
    resp = await client.put("/api/v1/users/me/password", json={
        "current_password": DEFAULT_PASSWORD,
        "new_password": "BetterPass456!",
    }, headers=employee_headers)
    assert resp.status_code == 200
    assert resp.json()["message"] == "Password updated successfully."

    user = await fetch(User, employee_id)
    assert verify_password("BetterPass456!", user.password_hash)


async def test_update_password_wrong_current(client, employee_headers):
    resp = await client.put("/api/v1/users/me/password", json={
        "current_password": "nope-nope",
        "new_password": "BetterPass456!",
    }, headers=employee_headers)
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Current password is incorrect."


async def test_update_password_must_change(client, employee_headers):
    resp = await client.put("/api/v1/users/me/password", json={
        "current_password": DEFAULT_PASSWORD,
        "new_password": DEFAULT_PASSWORD,
    }, headers=employee_headers)
    assert resp.status_code == 400
    assert resp.json()["detail"] == "New password must be different from the current password."


async def test_update_password_too_short(client, employee_headers):
    resp = await client.put("/api/v1/users/me/password", json={
        "current_password": DEFAULT_PASSWORD,
        "new_password": "short",
    }, headers=employee_headers)
    assert resp.status_code == 422


# ── POST /me/photo ──────────────────────────────────────────────────


async def test_upload_photo(client, employee_headers, employee_id):
    resp = await client.post(
        "/api/v1/users/me/photo",
        files={"file": ("Me At Work.png", PNG_BYTES, "image/png")},
        headers=employee_headers,
    )
    assert resp.status_code == 200
    url = resp.json()["profile_photo_url"]
    assert url.startswith(f"/uploads/profile-photos/{employee_id}-")
    assert url.endswith(".png")
    assert "Me At Work" not in url
    assert os.path.isfile(resolve_path(url[len("/uploads/"):]))

    async with TestSessionFactory() as session:
        profile = (await session.execute(
            select(EmployeeProfile).where(EmployeeProfile.user_id == employee_id),
        )).scalar_one()
    assert profile.profile_photo_url == url


async def test_upload_photo_extension_follows_content_type(client, employee_headers):
    resp = await client.post(
        "/api/v1/users/me/photo",
        files={"file": ("x.html", b"<script>alert(1)</script>", "image/png")},
        headers=employee_headers,
    )
    assert resp.status_code == 200
    url = resp.json()["profile_photo_url"]
    assert url.endswith(".png")

    served = await client.get(url)
    assert served.status_code == 200
    assert served.headers["content-type"] == "image/png"


async def test_upload_photo_replaces_previous_file(client, employee_headers):
    first = await client.post(
        "/api/v1/users/me/photo",
        files={"file": ("a.png", PNG_BYTES, "image/png")},
        headers=employee_headers,
    )
    second = await client.post(
        "/api/v1/users/me/photo",
        files={"file": ("b.webp", b"RIFF0000WEBP", "image/webp")},
        headers=employee_headers,
    )
    assert second.status_code == 200
    old_key = first.json()["profile_photo_url"][len("/uploads/"):]
    assert not os.path.exists(resolve_path(old_key))


async def test_upload_photo_rejects_wrong_type(client, employee_headers):
    resp = await client.post(
        "/api/v1/users/me/photo",
        files={"file": ("cv.pdf", b"%PDF-1.4", "application/pdf")},
        headers=employee_headers,
    )
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Only JPG, PNG or WEBP images are allowed"


async def test_upload_photo_empty_file(client, employee_headers):
    resp = await client.post(
        "/api/v1/users/me/photo",
        files={"file": ("a.png", b"", "image/png")},
        headers=employee_headers,
    )
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Selected file is empty"


async def test_upload_photo_missing_file(client, employee_headers):
    resp = await client.post("/api/v1/users/me/photo", headers=employee_headers)
    assert resp.status_code == 400
    assert resp.json()["detail"] == "No file attached"

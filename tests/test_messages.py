"""Chat tests — thread creation, titles, unread counts, directory and realtime push."""

from __future__ import annotations

import uuid

import pytest

from ndi_hr.common.constants import EmploymentStatus
from ndi_hr.core_hr.models import User
from ndi_hr.messages.models import Thread
from ndi_hr.notifications.realtime import MESSAGE_EVENT
from ndi_hr.notifications.realtime import hub as realtime_hub
from tests.conftest import (
    TestSessionFactory,
    _make_organization,
    _make_user,
    create_session_headers,
    fetch,
)


class _RecordingSocket:
    def __init__(self):
        self.sent = []

    async def accept(self):
        pass

    async def send_json(self, message):
        self.sent.append(message)


async def _start_thread(client, headers, participant_ids, message="Hello there", **extra):
    payload = {"participant_ids": [str(p) for p in participant_ids], "message": message}
    payload.update(extra)
    return await client.post("/api/v1/messages/threads", json=payload, headers=headers)


# ── Create / detail ─────────────────────────────────────────────────


async def test_create_thread_returns_detail(client, employee_headers, employee_id, hr_admin_id):
    resp = await _start_thread(client, employee_headers, [hr_admin_id], message="  Payslip question  ")
    assert resp.status_code == 201
    data = resp.json()
    assert data["title"] == "Nusrat"
    assert data["viewer_id"] == str(employee_id)
    assert {p["id"] for p in data["participants"]} == {str(employee_id), str(hr_admin_id)}
    assert [m["body"] for m in data["messages"]] == ["Payslip question"]
    assert data["messages"][0]["sender_name"] == "Rahim"

    thread = await fetch(Thread, uuid.UUID(data["id"]))
    assert thread.is_private is True
    assert thread.created_by_id == employee_id


async def test_thread_with_only_self_is_personal_notes(client, employee_headers, employee_id):
    resp = await _start_thread(client, employee_headers, [employee_id], message="Remember the form")
    assert resp.json()["title"] == "Personal Notes"
    assert len(resp.json()["participants"]) == 1


async def test_explicit_title_wins(client, employee_headers, hr_admin_id):
    resp = await _start_thread(client, employee_headers, [hr_admin_id], title="  Payroll  ")
    assert resp.json()["title"] == "Payroll"


async def test_title_lists_at_most_three_names(client, db, organization, employee_headers):
    ids = []
    for name in ("Anika", "Bashir", "Chandni", "Dipu"):
        ids.append(await _make_user(db, organization, email=f"{name.lower()}@ndilabs.com", first_name=name))
    resp = await _start_thread(client, employee_headers, ids)
    assert resp.json()["title"] == "Anika, Bashir, Chandni"


async def test_large_group_is_not_private(client, db, organization, employee_headers):
    ids = [
        await _make_user(db, organization, email=f"member{i}@ndilabs.com", first_name=f"Member{i}")
        for i in range(10)
    ]
    resp = await _start_thread(client, employee_headers, ids)
    thread = await fetch(Thread, uuid.UUID(resp.json()["id"]))
    assert thread.is_private is False


async def test_create_rejects_foreign_participant(client, db, employee_headers):
    elsewhere = await _make_organization(db, name="Other Co", domain="other.co")
    outsider_id = await _make_user(db, elsewhere, email="x@other.co")
    resp = await _start_thread(client, employee_headers, [outsider_id])
    assert resp.status_code == 400
    assert resp.json()["detail"] == "One or more participants could not be added to this chat."


async def test_create_rejects_blank_message(client, employee_headers, hr_admin_id):
    resp = await _start_thread(client, employee_headers, [hr_admin_id], message="   ")
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Message cannot be empty."


async def test_chat_requires_organization(client, db):
    drifter_id = await _make_user(db, None, email="drifter@example.com")
    headers = await create_session_headers(db, drifter_id)
    resp = await client.get("/api/v1/messages", headers=headers)
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Join an organization to use chat."


# ── Membership rules ────────────────────────────────────────────────


async def test_non_member_cannot_open_thread(client, employee_headers, hr_admin_id, owner_headers):
    created = await _start_thread(client, employee_headers, [hr_admin_id])
    thread_id = created.json()["id"]

    resp = await client.get(f"/api/v1/messages/threads/{thread_id}", headers=owner_headers)
    assert resp.status_code == 404
    assert resp.json()["detail"] == "Thread is not available."

    resp = await client.post(
        f"/api/v1/messages/threads/{thread_id}/messages", json={"body": "hi"}, headers=owner_headers,
    )
    assert resp.status_code == 404


async def test_member_moved_to_other_org_is_blocked(client, db, employee_headers, employee_id, hr_admin_id):
    created = await _start_thread(client, employee_headers, [hr_admin_id])
    thread_id = created.json()["id"]

    elsewhere = await _make_organization(db, name="Other Co", domain="other.co")
    async with TestSessionFactory() as session:
        user = await session.get(User, employee_id)
        user.organization_id = elsewhere.id
        await session.commit()

    resp = await client.get(f"/api/v1/messages/threads/{thread_id}", headers=employee_headers)
    assert resp.status_code == 403
    assert resp.json()["detail"] == "Thread is restricted to another organization."


# ── Unread counts ───────────────────────────────────────────────────


async def test_unread_count_follows_reads(client, employee_headers, hr_headers, hr_admin_id):
    created = await _start_thread(client, employee_headers, [hr_admin_id], message="First")
    thread_id = created.json()["id"]
    await client.post(
        f"/api/v1/messages/threads/{thread_id}/messages", json={"body": "Second"}, headers=employee_headers,
    )

    listing = await client.get("/api/v1/messages", headers=hr_headers)
    summary = listing.json()["threads"][0]
    assert summary["unread_count"] == 2
    assert summary["title"] == "Rahim"
    assert summary["last_message"]["body"] == "Second"

    # The sender never has unread messages of their own
    mine = await client.get("/api/v1/messages", headers=employee_headers)
    assert mine.json()["threads"][0]["unread_count"] == 0

    await client.get(f"/api/v1/messages/threads/{thread_id}", headers=hr_headers)
    listing = await client.get("/api/v1/messages", headers=hr_headers)
    assert listing.json()["threads"][0]["unread_count"] == 0


async def test_send_blank_message_rejected(client, employee_headers, hr_admin_id):
    created = await _start_thread(client, employee_headers, [hr_admin_id])
    resp = await client.post(
        f"/api/v1/messages/threads/{created.json()['id']}/messages",
        json={"body": "  "},
        headers=employee_headers,
    )
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Message cannot be empty."


async def test_list_filters_by_query(client, db, organization, employee_headers, hr_admin_id):
    karim_id = await _make_user(db, organization, email="karim@ndilabs.com", first_name="Karim")
    await _start_thread(client, employee_headers, [hr_admin_id])
    await _start_thread(client, employee_headers, [karim_id], title="Sprint sync")

    resp = await client.get("/api/v1/messages", params={"query": "karim"}, headers=employee_headers)
    assert [t["title"] for t in resp.json()["threads"]] == ["Sprint sync"]


# ── Directory ───────────────────────────────────────────────────────


async def test_directory_skips_terminated(client, db, organization, employee_headers, hr_admin_id):
    await _make_user(
        db, organization, email="gone@ndilabs.com", first_name="Gone", status=EmploymentStatus.TERMINATED,
    )
    resp = await client.get("/api/v1/messages/directory", headers=employee_headers)
    names = [m["name"] for m in resp.json()["members"]]
    assert names == ["Nusrat", "Rahim"]

    filtered = await client.get(
        "/api/v1/messages/directory", params={"query": "hr.admin"}, headers=employee_headers,
    )
    assert [m["id"] for m in filtered.json()["members"]] == [str(hr_admin_id)]


# ── Realtime ────────────────────────────────────────────────────────


@pytest.fixture
async def hr_socket(hr_admin_id):
    socket = _RecordingSocket()
    await realtime_hub.connect(hr_admin_id, socket)
    yield socket
    realtime_hub.disconnect(hr_admin_id, socket)


async def test_new_message_is_pushed_to_other_participants(client, employee_headers, hr_admin_id, hr_socket):
    created = await _start_thread(client, employee_headers, [hr_admin_id], message="Ping")
    assert [m["event"] for m in hr_socket.sent] == [MESSAGE_EVENT]
    assert hr_socket.sent[0]["data"]["body"] == "Ping"

    await client.post(
        f"/api/v1/messages/threads/{created.json()['id']}/messages",
        json={"body": "Pong?"},
        headers=employee_headers,
    )
    assert hr_socket.sent[-1]["data"]["body"] == "Pong?"
    assert hr_socket.sent[-1]["data"]["sender_name"] == "Rahim"

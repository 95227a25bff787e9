"""Notification test suite — audience visibility, receipts, highlights, announcements and the realtime hub."""

from __future__ import annotations

import uuid

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import select
from starlette.websockets import WebSocketDisconnect

from ndi_hr.announcements.service import body_preview
from ndi_hr.common.constants import (
    NotificationAudience,
    NotificationStatus,
    NotificationType,
    UserRole,
)
from ndi_hr.main import create_app
from ndi_hr.notifications.models import Notification, NotificationReceipt
from ndi_hr.notifications.realtime import NOTIFICATION_EVENT, NotificationHub
from ndi_hr.notifications.realtime import hub as realtime_hub
from ndi_hr.notifications.service import NotificationService, build_highlights
from tests.conftest import (
    TestSessionFactory,
    _make_organization,
    _make_user,
    create_session_headers,
)


async def _notify(db, organization, **kwargs):
    defaults = {
        "organization_id": organization.id,
        "title": "Office closed Friday",
        "body": "The office will be closed for maintenance.",
        "type": NotificationType.ANNOUNCEMENT,
    }
    defaults.update(kwargs)
    notification = await NotificationService.create_notification(db, **defaults)
    await db.commit()
    return notification


# ── Visibility ──────────────────────────────────────────────────────


async def test_list_respects_audience(client, db, organization, employee_id, hr_admin_id, employee_headers):
    await _notify(db, organization, title="Org wide")
    await _notify(
        db, organization,
        title="For HR",
        type=NotificationType.LEAVE,
        audience=NotificationAudience.ROLE,
        target_roles=[UserRole.HR_ADMIN],
    )
    await _notify(
        db, organization,
        title="Just Rahim",
        type=NotificationType.ATTENDANCE,
        audience=NotificationAudience.INDIVIDUAL,
        target_user_id=employee_id,
    )
    await _notify(
        db, organization,
        title="Just HR admin",
        audience=NotificationAudience.INDIVIDUAL,
        target_user_id=hr_admin_id,
    )
    await _notify(db, organization, title="Draft", status=NotificationStatus.DRAFT)

    resp = await client.get("/api/v1/notifications", headers=employee_headers)
    assert resp.status_code == 200
    data = resp.json()
    titles = {n["title"] for n in data["notifications"]}
    assert titles == {"Org wide", "Just Rahim"}
    assert data["total"] == 2
    assert data["counts"]["overall"] == 2
    assert data["counts"]["per_type"]["ANNOUNCEMENT"] == 1
    assert data["counts"]["per_type"]["ATTENDANCE"] == 1
    assert data["counts"]["per_type"]["INVOICE"] == 0


async def test_role_audience_visible_to_role(client, db, organization, hr_headers):
    await _notify(
        db, organization,
        title="For HR",
        type=NotificationType.LEAVE,
        audience=NotificationAudience.ROLE,
        target_roles=[UserRole.HR_ADMIN, UserRole.MANAGER],
    )
    resp = await client.get("/api/v1/notifications", headers=hr_headers)
    assert [n["title"] for n in resp.json()["notifications"]] == ["For HR"]


async def test_filter_by_type(client, db, organization, employee_headers):
    await _notify(db, organization, title="Announcement")
    await _notify(db, organization, title="Report", type=NotificationType.REPORT)

    resp = await client.get(
        "/api/v1/notifications", params={"type": "REPORT"}, headers=employee_headers,
    )
    assert [n["title"] for n in resp.json()["notifications"]] == ["Report"]
    # Counts ignore the filter
    assert resp.json()["counts"]["overall"] == 2


async def test_other_organization_isolated(client, db, employee_headers):
    other = await _make_organization(db, name="Other Co", domain="other.com")
    await _notify(db, other, title="Not yours")
    resp = await client.get("/api/v1/notifications", headers=employee_headers)
    assert resp.json()["notifications"] == []


async def test_user_without_organization(client, db):
    user_id = await _make_user(db, None, email="floating@ndilabs.com")
    headers = await create_session_headers(db, user_id)
    resp = await client.get("/api/v1/notifications", headers=headers)
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Missing organization context for notifications."


# ── Detail / receipts ───────────────────────────────────────────────


async def test_detail_with_highlights_and_sender(client, db, organization, hr_admin_id, employee_headers):
    notification = await _notify(
        db, organization,
        sender_id=hr_admin_id,
        title="New holiday scheduled: Victory Day",
        metadata={"holidayDate": "2026-12-16", "appliesTo": "All employees"},
    )
    resp = await client.get(f"/api/v1/notifications/{notification.id}", headers=employee_headers)
    assert resp.status_code == 200
    data = resp.json()
    assert data["audience_label"] == "Entire organization"
    assert data["source"] == "MANAGEMENT"
    assert data["sender"]["email"] == "hr.admin@ndilabs.com"
    highlights = {h["label"]: h["value"] for h in data["highlights"]}
    assert highlights == {"Effective date": "December 16, 2026", "Applies to": "All employees"}


async def test_detail_not_visible_is_404(client, db, organization, hr_admin_id, employee_headers):
    notification = await _notify(
        db, organization,
        audience=NotificationAudience.INDIVIDUAL,
        target_user_id=hr_admin_id,
    )
    resp = await client.get(f"/api/v1/notifications/{notification.id}", headers=employee_headers)
    assert resp.status_code == 404
    assert resp.json()["detail"] == "Notification could not be found."


async def test_mark_seen_and_unseen_count(client, db, organization, employee_id, employee_headers):
    first = await _notify(db, organization, title="One")
    await _notify(db, organization, title="Two")
    await _notify(db, organization, title="Later", status=NotificationStatus.SCHEDULED)

    count = await client.get("/api/v1/notifications/unseen-count", headers=employee_headers)
    assert count.json()["unseen"] == 2

    resp = await client.post(f"/api/v1/notifications/{first.id}/seen", headers=employee_headers)
    assert resp.status_code == 200
    assert resp.json() == {"id": str(first.id), "is_seen": True}

    # Idempotent
    again = await client.post(f"/api/v1/notifications/{first.id}/seen", headers=employee_headers)
    assert again.status_code == 200

    count = await client.get("/api/v1/notifications/unseen-count", headers=employee_headers)
    assert count.json()["unseen"] == 1

    async with TestSessionFactory() as session:
        receipts = (await session.execute(select(NotificationReceipt))).scalars().all()
    assert len(receipts) == 1
    assert receipts[0].user_id == employee_id

    listing = await client.get("/api/v1/notifications", headers=employee_headers)
    seen = {n["title"]: n["is_seen"] for n in listing.json()["notifications"]}
    assert seen["One"] is True
    assert seen["Two"] is False


async def test_mark_seen_unknown(client, employee_headers):
    resp = await client.post(f"/api/v1/notifications/{uuid.uuid4()}/seen", headers=employee_headers)
    assert resp.status_code == 404


# ── Highlights ──────────────────────────────────────────────────────


def test_leave_highlights():
    highlights = build_highlights(NotificationType.LEAVE, {
        "leaveTypeLabel": "Casual Leave",
        "startDate": "2026-04-06",
        "endDate": "2026-04-08",
        "decision": "Approved",
    })
    assert [(h.label, h.value) for h in highlights] == [
        ("Leave type", "Casual Leave"),
        ("Schedule", "April 6, 2026 -> April 8, 2026"),
        ("Decision", "Approved"),
    ]


def test_invoice_highlights_format_total():
    highlights = build_highlights(NotificationType.INVOICE, {
        "periodLabel": "March 2026", "total": 2416.05, "currency": "USD",
    })
    assert ("Total", "$2,416.05") in [(h.label, h.value) for h in highlights]


def test_report_highlights_missing_count():
    highlights = build_highlights(NotificationType.REPORT, {
        "reportMonth": "2026-03", "missingEmployees": ["a", "b"],
    })
    values = {h.label: h.value for h in highlights}
    assert values["Report month"] == "March 2026"
    assert values["Missing submissions"] == "2 teammates"


def test_highlights_without_metadata():
    assert build_highlights(NotificationType.ANNOUNCEMENT, None) == []


# ── Announcements ───────────────────────────────────────────────────


async def test_send_organization_announcement(client, hr_headers, employee_headers):
    resp = await client.post("/api/v1/hr/announcements", json={
        "title": "Town hall",
        "body": "Quarterly town hall on Thursday at 4pm.",
    }, headers=hr_headers)
    assert resp.status_code == 201
    assert resp.json()["notification_count"] == 1

    feed = await client.get("/api/v1/notifications", headers=employee_headers)
    assert [n["title"] for n in feed.json()["notifications"]] == ["Town hall"]

    overview = await client.get("/api/v1/hr/announcements", headers=hr_headers)
    assert overview.status_code == 200
    entry = overview.json()["announcements"][0]
    assert entry["id"] == resp.json()["dispatch_id"]
    assert entry["is_organization_wide"] is True
    assert entry["audience_label"] == "Entire organization"


async def test_send_individual_announcement_groups_by_dispatch(
    client, db, organization, hr_headers, employee_id,
):
    second_id = await _make_user(db, organization, email="second@ndilabs.com", first_name="Karim")
    resp = await client.post("/api/v1/hr/announcements", json={
        "title": "Laptop refresh",
        "body": "Bring your laptop to IT on Monday.",
        "audience": "INDIVIDUAL",
        "recipient_ids": [str(employee_id), str(second_id), str(employee_id)],
    }, headers=hr_headers)
    assert resp.status_code == 201
    assert resp.json()["notification_count"] == 2

    async with TestSessionFactory() as session:
        rows = (await session.execute(select(Notification))).scalars().all()
    assert {r.target_user_id for r in rows} == {employee_id, second_id}
    assert len({r.metadata_["dispatchId"] for r in rows}) == 1

    overview = await client.get("/api/v1/hr/announcements", headers=hr_headers)
    announcements = overview.json()["announcements"]
    assert len(announcements) == 1
    assert announcements[0]["recipient_count"] == 2
    assert announcements[0]["audience_label"] == "2 teammates"


async def test_individual_announcement_needs_recipients(client, hr_headers):
    resp = await client.post("/api/v1/hr/announcements", json={
        "title": "Laptop refresh",
        "body": "Bring your laptop to IT on Monday.",
        "audience": "INDIVIDUAL",
    }, headers=hr_headers)
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Select at least one teammate to notify."


async def test_announcement_to_foreign_user_rejected(client, db, hr_headers):
    other = await _make_organization(db, name="Other Co", domain="other.com")
    outsider = await _make_user(db, other, email="someone@other.com")
    resp = await client.post("/api/v1/hr/announcements", json={
        "title": "Laptop refresh",
        "body": "Bring your laptop to IT on Monday.",
        "audience": "INDIVIDUAL",
        "recipient_ids": [str(outsider)],
    }, headers=hr_headers)
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Some selected teammates are no longer available."


async def test_role_audience_announcement_rejected(client, hr_headers):
    resp = await client.post("/api/v1/hr/announcements", json={
        "title": "Managers only",
        "body": "This should not be allowed here.",
        "audience": "ROLE",
    }, headers=hr_headers)
    assert resp.status_code == 422


async def test_employee_cannot_announce(client, employee_headers):
    resp = await client.post("/api/v1/hr/announcements", json={
        "title": "Town hall",
        "body": "Quarterly town hall on Thursday at 4pm.",
    }, headers=employee_headers)
    assert resp.status_code == 403


def test_body_preview_truncates():
    assert body_preview("short") == "short"
    preview = body_preview("x" * 200)
    assert len(preview) == 160
    assert preview.endswith("…")


# ── Realtime hub ────────────────────────────────────────────────────


class _FakeSocket:
    def __init__(self, fail: bool = False):
        self.accepted = False
        self.sent = []
        self.fail = fail

    async def accept(self):
        self.accepted = True

    async def send_json(self, message):
        if self.fail:
            raise RuntimeError("socket closed")
        self.sent.append(message)


async def test_hub_delivers_to_connected_users():
    hub = NotificationHub()
    user_id = uuid.uuid4()
    socket = _FakeSocket()
    await hub.connect(user_id, socket)
    assert socket.accepted
    assert hub.connection_count() == 1

    await hub.deliver([([user_id, uuid.uuid4()], {"id": "n-1"})])
    assert socket.sent == [{"event": NOTIFICATION_EVENT, "data": {"id": "n-1"}}]


async def test_hub_drops_failing_socket():
    hub = NotificationHub()
    user_id = uuid.uuid4()
    await hub.connect(user_id, _FakeSocket(fail=True))

    delivered = await hub.send_to_user(user_id, {"event": NOTIFICATION_EVENT})
    assert delivered == 0
    assert hub.is_connected(user_id) is False


def test_websocket_without_token_is_closed():
    test_client = TestClient(create_app())
    with pytest.raises(WebSocketDisconnect):
        with test_client.websocket_connect("/api/v1/notifications/ws") as websocket:
            websocket.receive_text()


# ── Realtime push from mutations ────────────────────────────────────


@pytest.fixture
async def employee_socket(employee_id):
    socket = _FakeSocket()
    await realtime_hub.connect(employee_id, socket)
    yield socket
    realtime_hub.disconnect(employee_id, socket)


async def test_announcement_is_pushed_to_connected_member(client, hr_headers, employee_socket):
    resp = await client.post("/api/v1/hr/announcements", json={
        "title": "Town hall",
        "body": "Quarterly town hall on Thursday at 4pm.",
    }, headers=hr_headers)
    assert resp.status_code == 201

    assert len(employee_socket.sent) == 1
    message = employee_socket.sent[0]
    assert message["event"] == NOTIFICATION_EVENT
    assert message["data"]["title"] == "Town hall"
    assert message["data"]["type"] == "ANNOUNCEMENT"


async def test_leave_decision_is_pushed_to_employee(
    client, employee_headers, hr_headers, employee_socket,
):
    submitted = await client.post("/api/v1/leave/applications", json={
        "leave_type": "CASUAL",
        "start_date": "2026-04-06",
        "end_date": "2026-04-07",
        "reason": "Family wedding in Sylhet",
    }, headers=employee_headers)
    assert submitted.status_code == 201
    # The submission notice targets HR roles only
    assert employee_socket.sent == []

    resp = await client.put(
        f"/api/v1/hr/leave/{submitted.json()['request']['id']}/status",
        json={"status": "APPROVED"},
        headers=hr_headers,
    )
    assert resp.status_code == 200
    assert [m["data"]["title"] for m in employee_socket.sent] == ["Leave request approved"]
    assert employee_socket.sent[0]["data"]["action_url"] == "/leave"

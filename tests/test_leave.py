"""Leave module test suite — applications, balances, attachments and the HR review queue."""

from __future__ import annotations

import io
import uuid
from decimal import Decimal

from openpyxl import load_workbook
from sqlalchemy import select

from ndi_hr.common.audit import AuditTrail
from ndi_hr.common.constants import LeaveStatus, NotificationAudience, UserRole
from ndi_hr.core_hr.models import EmploymentDetail, TeamLead
from ndi_hr.leave.models import LeaveRequest
from ndi_hr.notifications.models import Notification
from tests.conftest import (
    TestSessionFactory,
    _make_department,
    _make_organization,
    _make_team,
    _make_user,
    create_session_headers,
)


def _application(**overrides) -> dict:
    body = {
        "leave_type": "CASUAL",
        "start_date": "2026-04-06",
        "end_date": "2026-04-08",
        "reason": "Family wedding in Sylhet",
    }
    body.update(overrides)
    return body


async def _employment(user_id: uuid.UUID) -> EmploymentDetail:
    async with TestSessionFactory() as session:
        result = await session.execute(
            select(EmploymentDetail).where(EmploymentDetail.user_id == user_id),
        )
        return result.scalar_one()


async def _submit(client, headers, **overrides) -> dict:
    resp = await client.post("/api/v1/leave/applications", json=_application(**overrides), headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()


# ── Submission ──────────────────────────────────────────────────────


async def test_summary_shows_balances(client, employee_headers):
    resp = await client.get("/api/v1/leave/summary", headers=employee_headers)
    assert resp.status_code == 200
    balances = {b["type"]: b["remaining"] for b in resp.json()["balances"]}
    assert balances["CASUAL"] == 10
    assert balances["SICK"] == 7
    assert resp.json()["requests"] == []


async def test_submit_deducts_balance_immediately(client, employee_headers, employee_id):
    data = await _submit(client, employee_headers)
    assert data["request"]["status"] == LeaveStatus.PENDING.value
    assert data["request"]["total_days"] == 3
    assert data["request"]["leave_type_label"] == "Casual Leave"
    casual = next(b for b in data["balances"] if b["type"] == "CASUAL")
    assert casual["remaining"] == 7

    employment = await _employment(employee_id)
    assert employment.casual_leave_balance == Decimal("7")


async def test_submit_notifies_reviewer_roles(client, employee_headers):
    await _submit(client, employee_headers)

    async with TestSessionFactory() as session:
        notifications = (await session.execute(select(Notification))).scalars().all()
    assert len(notifications) == 1
    notification = notifications[0]
    assert notification.audience == NotificationAudience.ROLE
    assert UserRole.HR_ADMIN.value in notification.target_roles
    assert UserRole.EMPLOYEE.value not in notification.target_roles
    assert notification.title == "Rahim requested Casual Leave"


async def test_submit_insufficient_balance(client, employee_headers):
    resp = await client.post(
        "/api/v1/leave/applications",
        json=_application(start_date="2026-04-01", end_date="2026-04-20"),
        headers=employee_headers,
    )
    assert resp.status_code == 400
    assert resp.json()["detail"] == "You do not have enough Casual Leave remaining for this request."


async def test_submit_end_before_start(client, employee_headers):
    resp = await client.post(
        "/api/v1/leave/applications",
        json=_application(start_date="2026-04-08", end_date="2026-04-06"),
        headers=employee_headers,
    )
    assert resp.status_code == 422


async def test_sick_leave_requires_attachment(client, employee_headers):
    resp = await client.post(
        "/api/v1/leave/applications",
        json=_application(leave_type="SICK"),
        headers=employee_headers,
    )
    assert resp.status_code == 422


async def test_short_reason_rejected(client, employee_headers):
    resp = await client.post(
        "/api/v1/leave/applications", json=_application(reason="tired"), headers=employee_headers,
    )
    assert resp.status_code == 422
    assert "reason" in resp.json()["errors"]


async def test_application_pdf_only_for_owner(client, db, organization, employee_headers):
    data = await _submit(client, employee_headers)
    request_id = data["request"]["id"]

    resp = await client.get(f"/api/v1/leave/applications/{request_id}/pdf", headers=employee_headers)
    assert resp.status_code == 200
    assert resp.headers["content-type"] == "application/pdf"
    assert resp.content.startswith(b"%PDF")

    other_id = await _make_user(db, organization, email="other@ndilabs.com")
    other_headers = await create_session_headers(db, other_id)
    resp = await client.get(f"/api/v1/leave/applications/{request_id}/pdf", headers=other_headers)
    assert resp.status_code == 404


# ── Attachments ─────────────────────────────────────────────────────


async def test_attachment_upload_download_and_sick_leave(client, employee_headers):
    upload = await client.post(
        "/api/v1/leave/attachments",
        files={"file": ("Doctor Note.pdf", b"%PDF-1.4 fake", "application/pdf")},
        headers=employee_headers,
    )
    assert upload.status_code == 200
    payload = upload.json()
    key = payload["storage_key"]
    assert key.startswith("leave-attachments/")
    assert key.endswith("-doctor-note.pdf")

    download = await client.get(payload["attachment"]["download_url"])
    assert download.status_code == 200
    assert download.content == b"%PDF-1.4 fake"
    assert download.headers["cache-control"] == "private, max-age=0, no-store"

    data = await _submit(
        client, employee_headers,
        leave_type="SICK",
        start_date="2026-04-06",
        end_date="2026-04-06",
        attachments=[{
            "name": "Doctor Note.pdf",
            "type": "application/pdf",
            "size": 13,
            "storage_key": key,
        }],
    )
    attachments = data["request"]["attachments"]
    assert len(attachments) == 1
    assert attachments[0]["name"] == "Doctor Note.pdf"
    assert attachments[0]["download_url"].startswith("/api/v1/leave/attachments/")


async def test_attachment_rejects_disallowed_type(client, employee_headers):
    resp = await client.post(
        "/api/v1/leave/attachments",
        files={"file": ("notes.txt", b"hello", "text/plain")},
        headers=employee_headers,
    )
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Only PDF or common image formats are allowed."


async def test_attachment_rejects_empty_file(client, employee_headers):
    resp = await client.post(
        "/api/v1/leave/attachments",
        files={"file": ("empty.png", b"", "image/png")},
        headers=employee_headers,
    )
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Selected file is empty"


async def test_attachment_download_bad_token(client):
    resp = await client.get("/api/v1/leave/attachments/not-a-token")
    assert resp.status_code == 404


async def test_delete_attachment_of_another_user_forbidden(client, employee_headers, hr_headers):
    upload = await client.post(
        "/api/v1/leave/attachments",
        files={"file": ("scan.png", b"\x89PNG data", "image/png")},
        headers=employee_headers,
    )
    key = upload.json()["storage_key"]

    other = await client.request(
        "DELETE", "/api/v1/leave/attachments", json={"key": "leave-attachments/x/y/z.png"},
        headers=employee_headers,
    )
    assert other.status_code == 403

    own = await client.request(
        "DELETE", "/api/v1/leave/attachments", json={"key": key}, headers=employee_headers,
    )
    assert own.status_code == 200

    bad = await client.request(
        "DELETE", "/api/v1/leave/attachments", json={"key": "profile-photos/x.png"},
        headers=hr_headers,
    )
    assert bad.status_code == 400


async def test_submit_rejects_attachment_uploaded_by_someone_else(
    client, employee_id, employee_headers, hr_headers,
):
    upload = await client.post(
        "/api/v1/leave/attachments",
        files={"file": ("Salary.pdf", b"%PDF-1.4 hr only", "application/pdf")},
        headers=hr_headers,
    )
    foreign_key = upload.json()["storage_key"]

    for key in (foreign_key, f"{foreign_key.rsplit('/', 2)[0]}/{employee_id}/../x/y.pdf"):
        resp = await client.post(
            "/api/v1/leave/applications",
            json=_application(
                leave_type="SICK",
                start_date="2026-04-06",
                end_date="2026-04-06",
                attachments=[{"name": "Salary.pdf", "type": "application/pdf", "storage_key": key}],
            ),
            headers=employee_headers,
        )
        assert resp.status_code == 403
        assert resp.json()["detail"] == "You can only attach files you uploaded."

    # Rejected before any balance is touched
    assert (await _employment(employee_id)).sick_leave_balance == Decimal("7")
    async with TestSessionFactory() as session:
        assert (await session.execute(select(LeaveRequest))).scalars().all() == []


async def test_hr_delete_override_is_scoped_to_organization(
    client, db, employee_headers, hr_headers,
):
    upload = await client.post(
        "/api/v1/leave/attachments",
        files={"file": ("scan.png", b"\x89PNG data", "image/png")},
        headers=employee_headers,
    )
    key = upload.json()["storage_key"]

    other_org = await _make_organization(db, name="Elsewhere", domain="elsewhere.io")
    outsider_hr = await _make_user(db, other_org, email="hr@elsewhere.io", role=UserRole.HR_ADMIN)
    outsider_headers = await create_session_headers(db, outsider_hr)

    denied = await client.request(
        "DELETE", "/api/v1/leave/attachments", json={"key": key}, headers=outsider_headers,
    )
    assert denied.status_code == 403

    allowed = await client.request(
        "DELETE", "/api/v1/leave/attachments", json={"key": key}, headers=hr_headers,
    )
    assert allowed.status_code == 200


# ── HR review ───────────────────────────────────────────────────────


async def test_hr_queue_lists_organization_requests(client, employee_headers, hr_headers):
    await _submit(client, employee_headers)

    resp = await client.get("/api/v1/hr/leave", headers=hr_headers)
    assert resp.status_code == 200
    requests = resp.json()["requests"]
    assert len(requests) == 1
    assert requests[0]["employee"]["employee_code"] == "NDI-100"
    assert requests[0]["remaining_balance"]["remaining"] == 7

    count = await client.get("/api/v1/hr/leave/pending-count", headers=hr_headers)
    assert count.json()["count"] == 1

    filtered = await client.get("/api/v1/hr/leave", params={"status": "APPROVED"}, headers=hr_headers)
    assert filtered.json()["requests"] == []

    searched = await client.get("/api/v1/hr/leave", params={"search": "rahim"}, headers=hr_headers)
    assert len(searched.json()["requests"]) == 1


async def test_hr_queue_hidden_from_other_organization(client, db, employee_headers):
    await _submit(client, employee_headers)
    other_org = await _make_organization(db, name="Other Co", domain="other.com")
    outsider_id = await _make_user(db, other_org, email="hr@other.com", role=UserRole.HR_ADMIN)
    headers = await create_session_headers(db, outsider_id)

    resp = await client.get("/api/v1/hr/leave", headers=headers)
    assert resp.json()["requests"] == []


async def test_deny_refunds_and_reapprove_deducts(client, employee_headers, hr_headers, employee_id):
    data = await _submit(client, employee_headers)
    request_id = data["request"]["id"]

    denied = await client.put(
        f"/api/v1/hr/leave/{request_id}/status",
        json={"status": "DENIED", "note": "Peak release week"},
        headers=hr_headers,
    )
    assert denied.status_code == 200
    assert denied.json()["status"] == "DENIED"
    assert denied.json()["note"] == "Peak release week"
    assert (await _employment(employee_id)).casual_leave_balance == Decimal("10")

    approved = await client.put(
        f"/api/v1/hr/leave/{request_id}/status", json={"status": "APPROVED"}, headers=hr_headers,
    )
    assert approved.status_code == 200
    assert (await _employment(employee_id)).casual_leave_balance == Decimal("7")

    async with TestSessionFactory() as session:
        audits = (await session.execute(
            select(AuditTrail).where(AuditTrail.entity_type == "leave_request"),
        )).scalars().all()
    assert len(audits) == 2


async def test_approve_notifies_employee(client, employee_headers, hr_headers, employee_id):
    data = await _submit(client, employee_headers)
    await client.put(
        f"/api/v1/hr/leave/{data['request']['id']}/status",
        json={"status": "APPROVED"},
        headers=hr_headers,
    )

    async with TestSessionFactory() as session:
        individual = (await session.execute(
            select(Notification).where(Notification.audience == NotificationAudience.INDIVIDUAL),
        )).scalars().all()
    assert len(individual) == 1
    assert individual[0].target_user_id == employee_id
    assert individual[0].title == "Leave request approved"

    feed = await client.get("/api/v1/notifications", headers=employee_headers)
    titles = [n["title"] for n in feed.json()["notifications"]]
    assert "Leave request approved" in titles


async def test_approve_notifies_team_leads_and_department_head(
    client, db, organization, hr_admin_id, hr_headers,
):
    department = await _make_department(db, organization)
    team = await _make_team(db, organization, department)
    head_id = await _make_user(db, organization, email="head@ndilabs.com", role=UserRole.MANAGER)
    lead_id = await _make_user(db, organization, email="lead@ndilabs.com")
    requester_id = await _make_user(
        db, organization, email="requester@ndilabs.com", first_name="Karim",
        department_id=department.id, team_id=team.id,
    )
    department.head_id = head_id
    # The head is also a lead, and the requester and reviewer lead the team too
    db.add_all([
        TeamLead(team_id=team.id, lead_id=lead_id),
        TeamLead(team_id=team.id, lead_id=head_id),
        TeamLead(team_id=team.id, lead_id=requester_id),
        TeamLead(team_id=team.id, lead_id=hr_admin_id),
    ])
    await db.commit()

    requester_headers = await create_session_headers(db, requester_id)
    data = await _submit(client, requester_headers)
    resp = await client.put(
        f"/api/v1/hr/leave/{data['request']['id']}/status",
        json={"status": "APPROVED"},
        headers=hr_headers,
    )
    assert resp.status_code == 200

    async with TestSessionFactory() as session:
        individual = (await session.execute(
            select(Notification).where(Notification.audience == NotificationAudience.INDIVIDUAL),
        )).scalars().all()
    by_target = {n.target_user_id: n for n in individual}
    assert len(individual) == 3
    assert set(by_target) == {requester_id, lead_id, head_id}
    assert by_target[requester_id].title == "Leave request approved"
    assert by_target[lead_id].title == "Karim's leave approved"
    assert by_target[head_id].metadata_["employeeId"] == str(requester_id)
    assert by_target[head_id].metadata_["totalDays"] == 3


async def test_deny_does_not_notify_team_leads(client, db, organization, hr_headers):
    department = await _make_department(db, organization)
    team = await _make_team(db, organization, department)
    lead_id = await _make_user(db, organization, email="lead@ndilabs.com")
    requester_id = await _make_user(
        db, organization, email="requester@ndilabs.com",
        department_id=department.id, team_id=team.id,
    )
    db.add(TeamLead(team_id=team.id, lead_id=lead_id))
    await db.commit()

    data = await _submit(client, await create_session_headers(db, requester_id))
    await client.put(
        f"/api/v1/hr/leave/{data['request']['id']}/status",
        json={"status": "DENIED"},
        headers=hr_headers,
    )

    async with TestSessionFactory() as session:
        targets = (await session.execute(
            select(Notification.target_user_id).where(
                Notification.audience == NotificationAudience.INDIVIDUAL,
            ),
        )).scalars().all()
    assert targets == [requester_id]


async def test_reapprove_without_balance_rejected(client, db, employee_headers, hr_headers, employee_id):
    data = await _submit(client, employee_headers)
    request_id = data["request"]["id"]
    await client.put(f"/api/v1/hr/leave/{request_id}/status", json={"status": "DENIED"}, headers=hr_headers)

    employment = (await db.execute(
        select(EmploymentDetail).where(EmploymentDetail.user_id == employee_id),
    )).scalar_one()
    employment.casual_leave_balance = Decimal("1")
    await db.commit()

    resp = await client.put(
        f"/api/v1/hr/leave/{request_id}/status", json={"status": "APPROVED"}, headers=hr_headers,
    )
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Insufficient balance to approve this request."

    async with TestSessionFactory() as session:
        stored = await session.get(LeaveRequest, uuid.UUID(request_id))
    assert stored.status == LeaveStatus.DENIED


async def test_status_update_unknown_request(client, hr_headers):
    resp = await client.put(
        f"/api/v1/hr/leave/{uuid.uuid4()}/status", json={"status": "APPROVED"}, headers=hr_headers,
    )
    assert resp.status_code == 404


async def test_employee_cannot_review(client, employee_headers):
    data = await _submit(client, employee_headers)
    resp = await client.put(
        f"/api/v1/hr/leave/{data['request']['id']}/status",
        json={"status": "APPROVED"},
        headers=employee_headers,
    )
    assert resp.status_code == 403


async def test_export_workbook(client, employee_headers, hr_headers):
    await _submit(client, employee_headers)
    resp = await client.get("/api/v1/hr/leave/export", headers=hr_headers)
    assert resp.status_code == 200
    assert "leave-requests-" in resp.headers["content-disposition"]

    sheet = load_workbook(io.BytesIO(resp.content)).active
    rows = list(sheet.iter_rows(values_only=True))
    assert rows[0][0] == "Employee"
    assert rows[1][1] == "NDI-100"
    assert rows[1][3] == "Casual Leave"

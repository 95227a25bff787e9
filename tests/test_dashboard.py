"""Dashboard module test suite — section builders over a fixed clock plus
the HTTP endpoints and auth enforcement.
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from decimal import Decimal

from ndi_hr.attendance.models import AttendanceRecord, Holiday, WorkPolicy
from ndi_hr.common.constants import (
    AttendanceStatus,
    LeaveStatus,
    LeaveType,
    NotificationAudience,
    NotificationType,
)
from ndi_hr.dashboard.service import TREND_DAYS, DashboardService, work_hours_label
from ndi_hr.leave.models import LeaveRequest
from ndi_hr.notifications.service import NotificationService
from ndi_hr.users.service import load_user
from tests.conftest import TestSessionFactory, _make_user, create_session_headers

# 12:00 in Dhaka
NOW = datetime(2026, 3, 15, 6, 0, tzinfo=timezone.utc)


async def _seed_month(db, organization, employee_id):
    db.add_all([
        AttendanceRecord(
            employee_id=employee_id,
            attendance_date=date(2026, 2, 28),
            status=AttendanceStatus.LATE,
            total_work_seconds=3 * 3600,
        ),
        AttendanceRecord(
            employee_id=employee_id,
            attendance_date=date(2026, 3, 2),
            status=AttendanceStatus.PRESENT,
            check_in_at=datetime(2026, 3, 2, 3, 0, tzinfo=timezone.utc),
            total_work_seconds=8 * 3600,
        ),
        AttendanceRecord(
            employee_id=employee_id,
            attendance_date=date(2026, 3, 3),
            status=AttendanceStatus.LATE,
            check_in_at=datetime(2026, 3, 3, 3, 30, tzinfo=timezone.utc),
            total_work_seconds=7 * 3600,
        ),
        AttendanceRecord(
            employee_id=employee_id,
            attendance_date=date(2026, 3, 10),
            status=AttendanceStatus.REMOTE,
            total_work_seconds=6 * 3600,
        ),
        LeaveRequest(
            employee_id=employee_id,
            leave_type=LeaveType.CASUAL,
            start_date=date(2026, 2, 27),
            end_date=date(2026, 3, 2),
            total_days=Decimal("4"),
            status=LeaveStatus.APPROVED,
        ),
        LeaveRequest(
            employee_id=employee_id,
            leave_type=LeaveType.SICK,
            start_date=date(2026, 3, 20),
            end_date=date(2026, 3, 21),
            total_days=Decimal("2"),
            status=LeaveStatus.PENDING,
        ),
        LeaveRequest(
            employee_id=employee_id,
            leave_type=LeaveType.ANNUAL,
            start_date=date(2026, 3, 25),
            end_date=date(2026, 3, 25),
            total_days=Decimal("1"),
            status=LeaveStatus.DENIED,
        ),
        Holiday(organization_id=organization.id, title="Past", holiday_date=date(2026, 2, 21)),
        Holiday(organization_id=organization.id, title="Independence Day", holiday_date=date(2026, 3, 26)),
    ])
    await db.commit()


async def _dataset(employee_id):
    async with TestSessionFactory() as session:
        user = await load_user(session, employee_id)
        return await DashboardService.load(session, user, now=NOW)


# ── Pure helpers ────────────────────────────────────────────────────


def test_work_hours_label():
    assert work_hours_label(None) is None
    policy = WorkPolicy(
        onsite_start_time="09:00", onsite_end_time="18:00",
        remote_start_time="08:00", remote_end_time="17:00",
    )
    assert work_hours_label(policy) == "On-site 09:00-18:00 • Remote 08:00-17:00"


# ── Sections over a fixed clock ─────────────────────────────────────


async def test_dataset_window(db, organization, employee_id):
    await _seed_month(db, organization, employee_id)
    data = await _dataset(employee_id)

    assert data.today == date(2026, 3, 15)
    assert data.month_start == date(2026, 3, 1)
    assert data.month_end == date(2026, 3, 31)
    assert [r.attendance_date for r in data.attendance] == [
        date(2026, 3, 2), date(2026, 3, 3), date(2026, 3, 10),
    ]
    assert [leave.leave_type for leave in data.upcoming_leaves] == [LeaveType.SICK]
    assert data.pending_count == 1
    assert [h.title for h in data.holidays] == ["Independence Day"]


async def test_attendance_section(db, organization, employee_id):
    await _seed_month(db, organization, employee_id)
    section = DashboardService.attendance_section(await _dataset(employee_id))

    summary = section.attendance_summary
    assert summary.month_label == "March 2026"
    assert summary.total_records == 3
    assert summary.on_time_percentage == 66.7
    # 09:00 and 09:30 local
    assert summary.average_check_in == "09:15 AM"
    assert summary.average_work_seconds == 7 * 3600
    assert summary.status_counts[AttendanceStatus.LATE] == 1
    assert summary.status_counts[AttendanceStatus.ABSENT] == 0

    trend = section.attendance_trend
    assert len(trend) == TREND_DAYS
    assert trend[0].date == date(2026, 3, 6)
    assert trend[-1].date == date(2026, 3, 15)
    assert trend[4].status == AttendanceStatus.REMOTE
    assert trend[4].worked_seconds == 6 * 3600
    assert trend[5].status == AttendanceStatus.ABSENT


async def test_summary_section(db, organization, employee_id):
    await _seed_month(db, organization, employee_id)
    section = DashboardService.summary_section(await _dataset(employee_id))

    snapshot = section.month_snapshot
    assert snapshot.days_worked == 3
    assert snapshot.hours_logged == 21.0
    # Only the March part of the approved leave counts
    assert snapshot.leaves_taken == 2

    stats = {stat.id: stat for stat in section.quick_stats}
    assert stats["leave-balance"].value == "61d"
    assert stats["leave-balance"].helper == "Paternity/Maternity Leave most remaining"
    assert stats["attendance"].value == "67%"
    assert stats["pending"].value == "1"
    assert stats["pending"].helper == "NDI Labs needs a response"
    assert stats["upcoming"].value == "Mar 20"


async def test_summary_section_empty_month(db, organization, employee_id):
    section = DashboardService.summary_section(await _dataset(employee_id))
    stats = {stat.id: stat for stat in section.quick_stats}
    assert section.month_snapshot.days_worked == 0
    assert stats["attendance"].value == "0%"
    assert stats["pending"].helper == "All caught up"
    assert stats["upcoming"].value == "—"


async def test_time_off_section(db, organization, employee_id):
    await _seed_month(db, organization, employee_id)
    section = DashboardService.time_off_section(await _dataset(employee_id))

    balances = {b.type: b.remaining for b in section.leave_balances}
    assert balances[LeaveType.CASUAL] == 10
    assert balances[LeaveType.SICK] == 7
    assert section.leave_highlights.next_leave_date == date(2026, 3, 20)
    assert section.leave_highlights.upcoming[0].leave_type_label == "Sick Leave"
    assert [h.title for h in section.upcoming_holidays] == ["Independence Day"]


async def test_profile_section(db, organization, employee_id):
    db.add(WorkPolicy(
        organization_id=organization.id,
        onsite_start_time="09:00", onsite_end_time="18:00",
        remote_start_time="08:00", remote_end_time="17:00",
    ))
    await db.commit()

    section = DashboardService.profile_section(await _dataset(employee_id))
    assert section.workspace_name == "NDI Labs"
    assert section.profile.full_name == "Rahim Uddin"
    assert section.profile.tags == ["FULL_TIME", "HYBRID"]
    assert section.profile.work_hours == "On-site 09:00-18:00 • Remote 08:00-17:00"

    company = {field.label: field.value for field in section.company_details}
    assert company["Employee ID"] == "NDI-100"
    assert company["Joined"] == "2024-01-15"


# ── HTTP ────────────────────────────────────────────────────────────


async def test_overview_endpoint(client, employee_headers):
    resp = await client.get("/api/v1/dashboard/overview", headers=employee_headers)
    assert resp.status_code == 200
    data = resp.json()
    assert data["profile"]["full_name"] == "Rahim Uddin"
    assert len(data["attendance_trend"]) == TREND_DAYS
    assert {stat["id"] for stat in data["quick_stats"]} == {
        "leave-balance", "attendance", "pending", "upcoming",
    }
    assert data["notifications"] == []


async def test_notifications_endpoint(client, db, organization, employee_id, employee_headers):
    for index in range(7):
        await NotificationService.create_notification(
            db,
            organization_id=organization.id,
            title=f"Update {index}",
            body="Body",
            type=NotificationType.ANNOUNCEMENT,
        )
    await NotificationService.create_notification(
        db,
        organization_id=organization.id,
        title="Someone else",
        body="Body",
        type=NotificationType.LEAVE,
        audience=NotificationAudience.INDIVIDUAL,
        target_user_id=await _make_user(db, organization, email="other@ndilabs.com"),
    )
    await db.commit()

    resp = await client.get("/api/v1/dashboard/notifications", headers=employee_headers)
    assert resp.status_code == 200
    notifications = resp.json()["notifications"]
    assert len(notifications) == 5
    assert all(n["title"].startswith("Update") for n in notifications)
    assert all(n["is_seen"] is False for n in notifications)


async def test_holidays_endpoint(client, db, organization, employee_headers):
    db.add_all([
        Holiday(organization_id=organization.id, title="Victory Day", holiday_date=date(2026, 12, 16)),
        Holiday(organization_id=organization.id, title="Language Day", holiday_date=date(2026, 2, 21)),
    ])
    await db.commit()

    resp = await client.get("/api/v1/dashboard/holidays", headers=employee_headers)
    assert resp.status_code == 200
    data = resp.json()
    assert data["workspace_name"] == "NDI Labs"
    assert [h["title"] for h in data["holidays"]] == ["Language Day", "Victory Day"]


async def test_section_endpoints(client, employee_headers):
    for section in ("profile", "summary", "attendance", "time-off"):
        resp = await client.get(f"/api/v1/dashboard/{section}", headers=employee_headers)
        assert resp.status_code == 200, section


async def test_dashboard_requires_auth(client):
    resp = await client.get("/api/v1/dashboard/overview")
    assert resp.status_code == 401


async def test_dashboard_requires_organization(client, db):
    loner = await _make_user(db, None, email="loner@ndilabs.com")
    headers = await create_session_headers(db, loner)
    resp = await client.get("/api/v1/dashboard/overview", headers=headers)
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Missing organization context for dashboard."

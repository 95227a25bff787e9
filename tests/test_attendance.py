"""Attendance test suite — day timer, history, arrival status and the HR work policy."""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

import pytest
from sqlalchemy import select

from ndi_hr.attendance.models import AttendanceRecord, Holiday, WorkPolicy
from ndi_hr.attendance.service import (
    arrival_status,
    format_day_list,
    normalize_weekdays,
    resolve_week_schedule,
    scheduled_start,
    time_label,
    timezone_from_location,
)
from ndi_hr.common.constants import (
    MAX_DAILY_WORK_SECONDS,
    AttendanceStatus,
    NotificationType,
    UserRole,
    Weekday,
)
from ndi_hr.common.formatting import local_today
from ndi_hr.core_hr.models import EmploymentDetail
from ndi_hr.notifications.models import Notification
from tests.conftest import TestSessionFactory, _make_organization, _make_user, create_session_headers


async def _all(model):
    async with TestSessionFactory() as session:
        return (await session.execute(select(model))).scalars().all()


# ── Pure helpers ────────────────────────────────────────────────────


def test_arrival_status_within_tolerance():
    scheduled = datetime(2026, 3, 2, 3, 0, tzinfo=timezone.utc)
    assert arrival_status(scheduled + timedelta(minutes=10), scheduled) == AttendanceStatus.PRESENT
    assert arrival_status(scheduled - timedelta(hours=1), scheduled) == AttendanceStatus.PRESENT


def test_arrival_status_late():
    scheduled = datetime(2026, 3, 2, 3, 0, tzinfo=timezone.utc)
    late = scheduled + timedelta(minutes=10, seconds=1)
    assert arrival_status(late, scheduled) == AttendanceStatus.LATE


def test_scheduled_start_uses_organization_zone():
    start = scheduled_start("09:30", "09:00", date(2026, 3, 2), "Asia/Dhaka")
    # Dhaka is UTC+6
    assert start.astimezone(timezone.utc) == datetime(2026, 3, 2, 3, 30, tzinfo=timezone.utc)


def test_scheduled_start_bad_value_falls_back():
    start = scheduled_start("25:99", "09:00", date(2026, 3, 2), "Asia/Dhaka")
    assert (start.hour, start.minute) == (9, 0)


def test_normalize_weekdays_orders_and_dedupes():
    assert normalize_weekdays(["FRIDAY", "MONDAY", "FRIDAY", "NOPE"]) == [
        Weekday.MONDAY, Weekday.FRIDAY,
    ]


def test_resolve_week_schedule_defaults_without_policy():
    schedule = resolve_week_schedule(None)
    assert schedule.working_days[0] == Weekday.MONDAY
    assert schedule.weekend_days == [Weekday.SATURDAY, Weekday.SUNDAY]


def test_format_day_list():
    assert format_day_list([Weekday.SUNDAY, Weekday.MONDAY]) == "Monday, Sunday"
    assert format_day_list([]) == "Not set"


# ── Day timer ───────────────────────────────────────────────────────


async def test_today_before_start(client, employee_headers):
    resp = await client.get("/api/v1/attendance/today", headers=employee_headers)
    assert resp.status_code == 200
    assert resp.json()["record"] is None
    assert resp.json()["work_model"] == "HYBRID"


async def test_start_day_creates_record(client, employee_headers, employee_id):
    resp = await client.post(
        "/api/v1/attendance/start-day", json={"location": "REMOTE"}, headers=employee_headers,
    )
    assert resp.status_code == 201
    data = resp.json()
    assert data["location"] == "Remote"
    assert data["source"] == "WEB"
    assert data["status"] in (AttendanceStatus.PRESENT.value, AttendanceStatus.LATE.value)
    assert data["attendance_date"] == local_today("Asia/Dhaka").isoformat()

    today = await client.get("/api/v1/attendance/today", headers=employee_headers)
    assert today.json()["record"]["id"] == data["id"]

    records = await _all(AttendanceRecord)
    assert len(records) == 1
    assert records[0].employee_id == employee_id


@pytest.mark.parametrize("checked_in_utc, location, expected", [
    # Dhaka is UTC+6; on-site starts 09:00, remote 08:00, with 10 minutes' grace
    (datetime(2026, 3, 16, 5, 0, tzinfo=timezone.utc), "ONSITE", AttendanceStatus.LATE),
    (datetime(2026, 3, 16, 3, 11, tzinfo=timezone.utc), "ONSITE", AttendanceStatus.LATE),
    (datetime(2026, 3, 16, 3, 10, tzinfo=timezone.utc), "ONSITE", AttendanceStatus.PRESENT),
    (datetime(2026, 3, 16, 2, 30, tzinfo=timezone.utc), "REMOTE", AttendanceStatus.LATE),
    (datetime(2026, 3, 16, 1, 55, tzinfo=timezone.utc), "REMOTE", AttendanceStatus.PRESENT),
])
async def test_start_day_marks_late_arrival(
    client, employee_headers, monkeypatch, checked_in_utc, location, expected,
):
    monkeypatch.setattr("ndi_hr.attendance.service.utcnow", lambda: checked_in_utc)
    resp = await client.post(
        "/api/v1/attendance/start-day", json={"location": location}, headers=employee_headers,
    )
    assert resp.status_code == 201
    assert resp.json()["status"] == expected.value
    assert resp.json()["attendance_date"] == "2026-03-16"


async def test_start_day_uses_work_policy_start(client, db, organization, employee_headers, monkeypatch):
    db.add(WorkPolicy(
        organization_id=organization.id,
        onsite_start_time="10:30", onsite_end_time="19:00",
        remote_start_time="08:00", remote_end_time="17:00",
    ))
    await db.commit()
    # 10:35 local is inside the grace window of a 10:30 start
    monkeypatch.setattr(
        "ndi_hr.attendance.service.utcnow", lambda: datetime(2026, 3, 16, 4, 35, tzinfo=timezone.utc),
    )
    resp = await client.post(
        "/api/v1/attendance/start-day", json={"location": "ONSITE"}, headers=employee_headers,
    )
    assert resp.json()["status"] == AttendanceStatus.PRESENT.value


async def test_start_day_twice_rejected(client, employee_headers):
    first = await client.post(
        "/api/v1/attendance/start-day", json={"location": "ONSITE"}, headers=employee_headers,
    )
    assert first.status_code == 201

    second = await client.post(
        "/api/v1/attendance/start-day", json={"location": "ONSITE"}, headers=employee_headers,
    )
    assert second.status_code == 400
    assert second.json()["detail"].startswith("Attendance has already been recorded for today.")


async def test_start_day_invalid_location(client, employee_headers):
    resp = await client.post(
        "/api/v1/attendance/start-day", json={"location": "MOON"}, headers=employee_headers,
    )
    assert resp.status_code == 422


async def test_complete_day_clamps_work_seconds(client, employee_headers):
    await client.post(
        "/api/v1/attendance/start-day", json={"location": "ONSITE"}, headers=employee_headers,
    )
    resp = await client.post(
        "/api/v1/attendance/complete-day",
        json={"work_seconds": MAX_DAILY_WORK_SECONDS + 3600, "break_seconds": 1800},
        headers=employee_headers,
    )
    assert resp.status_code == 200
    data = resp.json()
    assert data["total_work_seconds"] == MAX_DAILY_WORK_SECONDS
    assert data["total_break_seconds"] == 1800
    assert data["check_out_at"] is not None


async def test_complete_day_without_open_record(client, employee_headers):
    resp = await client.post(
        "/api/v1/attendance/complete-day",
        json={"work_seconds": 100, "break_seconds": 0},
        headers=employee_headers,
    )
    assert resp.status_code == 400
    assert resp.json()["detail"] == "No active attendance record found for completion."


async def test_complete_day_negative_rejected(client, employee_headers):
    resp = await client.post(
        "/api/v1/attendance/complete-day",
        json={"work_seconds": -5, "break_seconds": 0},
        headers=employee_headers,
    )
    assert resp.status_code == 422


async def test_history_returns_requested_month(client, db, employee_id, employee_headers):
    for day, status in ((date(2026, 2, 27), AttendanceStatus.PRESENT),
                        (date(2026, 3, 2), AttendanceStatus.LATE),
                        (date(2026, 3, 3), AttendanceStatus.PRESENT)):
        db.add(AttendanceRecord(
            employee_id=employee_id,
            attendance_date=day,
            status=status,
            total_work_seconds=7 * 3600,
        ))
    await db.commit()

    # Months are 0-based: 2 == March
    resp = await client.get(
        "/api/v1/attendance/history", params={"month": 2, "year": 2026}, headers=employee_headers,
    )
    assert resp.status_code == 200
    records = resp.json()["records"]
    assert [r["attendance_date"] for r in records] == ["2026-03-03", "2026-03-02"]
    assert resp.json()["week_schedule"]["weekend_days"] == ["SATURDAY", "SUNDAY"]


async def test_history_month_out_of_range(client, employee_headers):
    resp = await client.get(
        "/api/v1/attendance/history", params={"month": 12}, headers=employee_headers,
    )
    assert resp.status_code == 422


# ── Work policy ─────────────────────────────────────────────────────


async def test_work_overview_defaults(client, owner_headers):
    resp = await client.get("/api/v1/hr/work", headers=owner_headers)
    assert resp.status_code == 200
    data = resp.json()
    assert data["viewer_role"] == UserRole.ORG_OWNER.value
    assert data["can_manage"] is True
    assert data["policy"]["onsite_start_time"] == "09:00"
    assert data["policy"]["remote_start_time"] == "08:00"
    assert data["holidays"] == []


async def test_create_holiday_announces(client, owner_headers):
    resp = await client.post(
        "/api/v1/hr/work/holidays",
        json={"title": "Victory Day", "date": "2026-12-16", "description": "  National holiday "},
        headers=owner_headers,
    )
    assert resp.status_code == 201
    data = resp.json()
    assert data["date_label"] == "Dec 16, 2026"
    assert data["description"] == "National holiday"

    holidays = await _all(Holiday)
    assert len(holidays) == 1

    notifications = await _all(Notification)
    assert len(notifications) == 1
    assert notifications[0].type == NotificationType.ANNOUNCEMENT
    assert notifications[0].title == "New holiday scheduled: Victory Day"
    assert notifications[0].metadata_["holidayDate"] == "2026-12-16"


async def test_duplicate_holiday_conflict(client, owner_headers):
    body = {"title": "Victory Day", "date": "2026-12-16"}
    assert (await client.post("/api/v1/hr/work/holidays", json=body, headers=owner_headers)).status_code == 201
    resp = await client.post(
        "/api/v1/hr/work/holidays",
        json={"title": "Another", "date": "2026-12-16"},
        headers=owner_headers,
    )
    assert resp.status_code == 409
    assert resp.json()["detail"] == "This date is already marked as a holiday."


async def test_update_working_hours(client, owner_headers):
    resp = await client.put("/api/v1/hr/work/hours", json={
        "onsite_start_time": "10:00",
        "onsite_end_time": "19:00",
        "remote_start_time": "09:00",
        "remote_end_time": "18:00",
    }, headers=owner_headers)
    assert resp.status_code == 200
    assert resp.json()["onsite_start_time"] == "10:00"

    policies = await _all(WorkPolicy)
    assert len(policies) == 1
    assert policies[0].remote_end_time == "18:00"


async def test_update_working_hours_rejects_bad_time(client, owner_headers):
    resp = await client.put("/api/v1/hr/work/hours", json={
        "onsite_start_time": "9am",
        "onsite_end_time": "19:00",
        "remote_start_time": "09:00",
        "remote_end_time": "18:00",
    }, headers=owner_headers)
    assert resp.status_code == 422
    assert "onsite_start_time" in resp.json()["errors"]


async def test_update_week_schedule(client, owner_headers, employee_headers):
    resp = await client.put("/api/v1/hr/work/week-schedule", json={
        "working_days": ["SUNDAY", "MONDAY", "TUESDAY", "WEDNESDAY", "THURSDAY"],
        "weekend_days": ["FRIDAY", "SATURDAY"],
    }, headers=owner_headers)
    assert resp.status_code == 200
    assert resp.json()["working_days"][0] == "MONDAY"
    assert resp.json()["weekend_days"] == ["FRIDAY", "SATURDAY"]

    history = await client.get("/api/v1/attendance/history", headers=employee_headers)
    assert history.json()["week_schedule"]["weekend_days"] == ["FRIDAY", "SATURDAY"]


async def test_week_schedule_validation(client, owner_headers):
    missing_working = await client.put("/api/v1/hr/work/week-schedule", json={
        "working_days": [], "weekend_days": ["SUNDAY"],
    }, headers=owner_headers)
    assert missing_working.status_code == 400
    assert missing_working.json()["detail"] == "Select at least one working day."

    missing_weekend = await client.put("/api/v1/hr/work/week-schedule", json={
        "working_days": ["MONDAY"], "weekend_days": [],
    }, headers=owner_headers)
    assert missing_weekend.json()["detail"] == "Select at least one weekend day."

    overlap = await client.put("/api/v1/hr/work/week-schedule", json={
        "working_days": ["MONDAY", "SUNDAY"], "weekend_days": ["SUNDAY"],
    }, headers=owner_headers)
    assert overlap.json()["detail"] == "A day cannot be marked as both working and weekend."


async def test_work_policy_requires_management_role(client, db, organization, employee_headers):
    assert (await client.get("/api/v1/hr/work", headers=employee_headers)).status_code == 403

    admin_id = await _make_user(db, organization, email="org.admin@ndilabs.com", role=UserRole.ORG_ADMIN)
    headers = await create_session_headers(db, admin_id)
    assert (await client.get("/api/v1/hr/work", headers=headers)).status_code == 200


# ── Attendance desk (HR) ────────────────────────────────────────────


def test_timezone_from_location():
    assert timezone_from_location("Dhaka HQ", None) == "Asia/Dhaka"
    assert timezone_from_location("Remote (Europe/Berlin)", "Asia/Dhaka") == "Europe/Berlin"
    assert timezone_from_location("New York office", None) == "America/New_York"
    assert timezone_from_location("Mars base", "Asia/Dhaka") == "Asia/Dhaka"
    assert timezone_from_location(None, "Nowhere/Zone") is None


def test_time_label_in_organization_zone():
    assert time_label(datetime(2026, 3, 2, 3, 5, tzinfo=timezone.utc), "Asia/Dhaka") == "09:05 AM"
    assert time_label(None, "Asia/Dhaka") == "—"


async def _manual(client, headers, employee_id, **overrides):
    payload = {
        "employee_id": str(employee_id),
        "date": "2026-03-02",
        "check_in": "09:30",
        "check_out": "18:00",
        "work_type": "ONSITE",
    }
    payload.update(overrides)
    return await client.post("/api/v1/hr/attendance/manual-entry", json=payload, headers=headers)


async def test_manual_entry_creates_record(client, hr_headers, employee_id):
    resp = await _manual(client, hr_headers, employee_id)
    assert resp.status_code == 200
    data = resp.json()
    assert data["name"] == "Rahim"
    assert data["status"] == "Late"
    assert data["check_in"] == "09:30 AM"
    assert data["check_out"] == "06:00 PM"
    assert data["source"] == "Manual"

    records = await _all(AttendanceRecord)
    assert len(records) == 1
    record = records[0]
    assert record.source == "HR_MANUAL"
    assert record.location == "On-site"
    assert record.status == AttendanceStatus.LATE
    assert record.total_work_seconds == 8 * 3600 + 30 * 60
    assert record.check_in_at.replace(tzinfo=timezone.utc) == datetime(2026, 3, 2, 3, 30, tzinfo=timezone.utc)


async def test_manual_entry_overwrites_existing_day(client, db, hr_headers, employee_id):
    db.add(AttendanceRecord(
        employee_id=employee_id,
        attendance_date=date(2026, 3, 2),
        check_in_at=datetime(2026, 3, 2, 5, 0, tzinfo=timezone.utc),
        status=AttendanceStatus.LATE,
        source="WEB",
        location="Remote",
    ))
    await db.commit()

    resp = await _manual(client, hr_headers, employee_id, check_in="09:05", check_out=None)
    assert resp.json()["status"] == "On time"
    assert resp.json()["check_out"] == "—"

    records = await _all(AttendanceRecord)
    assert len(records) == 1
    assert records[0].status == AttendanceStatus.PRESENT
    assert records[0].source == "HR_MANUAL"
    assert records[0].check_out_at is None


async def test_manual_entry_reads_times_in_location_zone(client, db, hr_headers, employee_id):
    employment = (await db.execute(
        select(EmploymentDetail).where(EmploymentDetail.user_id == employee_id),
    )).scalar_one()
    employment.primary_location = "London"
    await db.commit()

    resp = await _manual(client, hr_headers, employee_id, check_in="09:00", check_out="17:00")
    data = resp.json()
    # 09:00 in London is on time there and reads as 3 PM in Dhaka
    assert data["status"] == "On time"
    assert data["check_in"] == "03:00 PM"
    record = (await _all(AttendanceRecord))[0]
    assert record.check_in_at.replace(tzinfo=timezone.utc) == datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)


async def test_manual_entry_validation(client, db, hr_headers, employee_headers, employee_id):
    backwards = await _manual(client, hr_headers, employee_id, check_in="18:00", check_out="09:00")
    assert backwards.status_code == 400
    assert backwards.json()["detail"] == "Check-out cannot be before check-in."

    bad_time = await _manual(client, hr_headers, employee_id, check_in="9am")
    assert bad_time.status_code == 422

    elsewhere = await _make_organization(db, name="Other Co", domain="other.co")
    outsider_id = await _make_user(db, elsewhere, email="x@other.co")
    missing = await _manual(client, hr_headers, outsider_id)
    assert missing.status_code == 404
    assert missing.json()["detail"] == "Employee not found."

    forbidden = await _manual(client, employee_headers, employee_id)
    assert forbidden.status_code == 403


async def test_hr_overview_board(client, db, hr_headers, employee_id, hr_admin_id):
    db.add_all([
        AttendanceRecord(
            employee_id=employee_id, attendance_date=date(2026, 3, 4),
            status=AttendanceStatus.LATE, source="WEB",
        ),
        AttendanceRecord(
            employee_id=hr_admin_id, attendance_date=date(2026, 3, 4),
            check_in_at=datetime(2026, 3, 4, 2, 50, tzinfo=timezone.utc),
            status=AttendanceStatus.PRESENT, source="HR_MANUAL",
        ),
        AttendanceRecord(
            employee_id=employee_id, attendance_date=date(2026, 3, 3),
            status=AttendanceStatus.ABSENT, source="WEB",
        ),
        AttendanceRecord(
            employee_id=hr_admin_id, attendance_date=date(2026, 3, 3),
            status=AttendanceStatus.HOLIDAY, source="WEB",
        ),
    ])
    await db.commit()

    resp = await client.get("/api/v1/hr/attendance", params={"date": "2026-03-04"}, headers=hr_headers)
    assert resp.status_code == 200
    data = resp.json()
    assert [e["name"] for e in data["employees"]] == ["Nusrat", "Rahim"]
    assert [(log["name"], log["status"], log["source"]) for log in data["day_logs"]] == [
        ("Nusrat", "On time", "Manual"),
        ("Rahim", "Late", "System"),
    ]
    assert data["day_logs"][0]["check_in"] == "08:50 AM"
    assert data["status_counts"] == {"On time": 1, "Late": 1, "On leave": 0, "Absent": 0}

    calendar = {day["date"]: day["signal"] for day in data["calendar"]}
    assert len(calendar) == 31
    assert calendar["2026-03-01"] == "none"
    assert calendar["2026-03-03"] == "absent"
    assert calendar["2026-03-04"] == "late"

    trend = data["weekly_trend"]
    assert [p["label"] for p in trend] == ["Sat", "Sun", "Mon", "Tue", "Wed"]
    assert (trend[-1]["present_count"], trend[-1]["present_percentage"]) == (1, 50)


async def test_hr_history_for_one_employee(client, db, hr_headers, employee_id):
    db.add_all([
        AttendanceRecord(
            employee_id=employee_id, attendance_date=date(2026, 3, 2),
            check_in_at=datetime(2026, 3, 2, 2, 55, tzinfo=timezone.utc),
            status=AttendanceStatus.PRESENT, source="WEB",
        ),
        AttendanceRecord(
            employee_id=employee_id, attendance_date=date(2026, 3, 9),
            status=AttendanceStatus.ABSENT, source="HR_MANUAL",
        ),
        AttendanceRecord(
            employee_id=employee_id, attendance_date=date(2026, 2, 27),
            status=AttendanceStatus.PRESENT, source="WEB",
        ),
    ])
    await db.commit()

    resp = await client.get(
        "/api/v1/hr/attendance/history",
        params={"employee_id": str(employee_id), "month": 2, "year": 2026},
        headers=hr_headers,
    )
    data = resp.json()
    assert [(r["date"], r["status"], r["source"]) for r in data["rows"]] == [
        ("2026-03-09", "Absent", "Manual"),
        ("2026-03-02", "On time", "System"),
    ]
    assert data["rows"][1]["check_in"] == "08:55 AM"

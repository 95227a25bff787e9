"""My-team overview tests."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

from sqlalchemy import select

from ndi_hr.common.constants import EmploymentStatus, LeaveStatus, LeaveType, WorkModel
from ndi_hr.core_hr.models import EmploymentDetail, TeamLead, User
from ndi_hr.leave.models import LeaveRequest
from ndi_hr.team.service import MyTeamService, next_anniversary, tenure_label, tenure_months
from tests.conftest import _make_department, _make_team, _make_user


async def _set_start(db, user_id, start):
    employment = (await db.execute(
        select(EmploymentDetail).where(EmploymentDetail.user_id == user_id),
    )).scalar_one()
    employment.start_date = start
    await db.commit()


async def _platform_team(db, organization, employee_id):
    department = await _make_department(db, organization)
    team = await _make_team(db, organization, department)
    employment = (await db.execute(
        select(EmploymentDetail).where(EmploymentDetail.user_id == employee_id),
    )).scalar_one()
    employment.team_id = team.id
    employment.department_id = department.id
    employment.primary_location = "Dhaka"
    await db.commit()
    return department, team


# ── Helpers ─────────────────────────────────────────────────────────


def test_tenure_label():
    assert tenure_label(0) == "New teammate"
    assert tenure_label(1) == "1 mo"
    assert tenure_label(12) == "1 yr"
    assert tenure_label(27) == "2 yrs 3 mos"


def test_tenure_months_never_negative():
    assert tenure_months(date(2026, 5, 1), date(2026, 3, 1)) == 0
    assert tenure_months(date(2024, 1, 15), date(2026, 3, 1)) == 26
    assert tenure_months(None, date(2026, 3, 1)) == 0


def test_next_anniversary_rolls_to_next_year():
    assert next_anniversary(date(2023, 1, 10), date(2026, 3, 1)) == (date(2027, 1, 10), 4, 315)
    assert next_anniversary(date(2024, 3, 1), date(2026, 3, 1)) == (date(2026, 3, 1), 2, 0)
    # Joined today: no anniversary yet
    assert next_anniversary(date(2026, 3, 1), date(2026, 3, 1)) is None


def test_next_anniversary_leap_day_start():
    assert next_anniversary(date(2024, 2, 29), date(2026, 2, 1)) == (date(2026, 2, 28), 2, 27)


# ── Overview ────────────────────────────────────────────────────────


async def test_overview_without_team(client, employee_headers):
    resp = await client.get("/api/v1/team/overview", headers=employee_headers)
    assert resp.status_code == 200
    data = resp.json()
    assert data["has_team"] is False
    assert data["team"] is None
    assert data["timezone"] == "Asia/Dhaka"
    assert data["stats"]["headcount"] == 0
    assert data["members"] == []


async def test_overview_lists_team(client, db, organization, employee_id, employee_headers, hr_admin_id):
    department, team = await _platform_team(db, organization, employee_id)
    department.head_id = hr_admin_id
    await _make_user(
        db, organization, email="former@ndilabs.com", first_name="Former",
        team_id=team.id, status=EmploymentStatus.TERMINATED, work_model=WorkModel.REMOTE,
    )
    lead_id = await _make_user(
        db, organization, email="lead@ndilabs.com", first_name="Lamia",
        team_id=team.id, is_team_lead=True, work_model=WorkModel.ONSITE,
    )
    db.add(TeamLead(team_id=team.id, lead_id=lead_id))
    await db.commit()

    resp = await client.get("/api/v1/team/overview", headers=employee_headers)
    data = resp.json()
    assert data["has_team"] is True
    assert data["team"]["name"] == "Platform"
    assert data["team"]["department_name"] == "Engineering"
    assert data["team"]["manager"]["full_name"] == "Nusrat"
    assert [lead["full_name"] for lead in data["team"]["leads"]] == ["Lamia"]
    assert data["team"]["location_hint"] == "Dhaka"

    assert data["stats"]["headcount"] == 3
    assert data["stats"]["active"] == 2
    assert data["highlights"][0]["helper"] == "2 active · 1 pending"
    statuses = {m["full_name"]: m["status_label"] for m in data["members"]}
    assert statuses == {"Rahim": "Active", "Former": "Former", "Lamia": "Active"}

    stats = {s["id"]: (s["count"], s["percentage"]) for s in data["work_model_stats"]}
    assert stats == {"onsite": (1, 33), "hybrid": (1, 33), "remote": (1, 33)}


async def test_manager_falls_back_to_reporting_manager(client, db, organization, employee_id, employee_headers, owner_id):
    await _platform_team(db, organization, employee_id)
    employment = (await db.execute(
        select(EmploymentDetail).where(EmploymentDetail.user_id == employee_id),
    )).scalar_one()
    employment.reporting_manager_id = owner_id
    await db.commit()

    resp = await client.get("/api/v1/team/overview", headers=employee_headers)
    assert resp.json()["team"]["manager"]["full_name"] == "Farhana"


async def test_joiners_anniversaries_and_leaves(db, organization, employee_id):
    _, team = await _platform_team(db, organization, employee_id)
    await _set_start(db, employee_id, date(2023, 3, 20))
    newcomer_id = await _make_user(db, organization, email="new@ndilabs.com", first_name="Nabila", team_id=team.id)
    await _set_start(db, newcomer_id, date(2026, 2, 1))

    db.add_all([
        LeaveRequest(
            employee_id=newcomer_id, leave_type=LeaveType.SICK,
            start_date=date(2026, 3, 4), end_date=date(2026, 3, 5),
            total_days=Decimal("2"), status=LeaveStatus.APPROVED,
        ),
        LeaveRequest(
            employee_id=employee_id, leave_type=LeaveType.CASUAL,
            start_date=date(2026, 2, 2), end_date=date(2026, 2, 2),
            total_days=Decimal("1"), status=LeaveStatus.APPROVED,
        ),
        LeaveRequest(
            employee_id=employee_id, leave_type=LeaveType.CASUAL,
            start_date=date(2026, 3, 9), end_date=date(2026, 3, 9),
            total_days=Decimal("1"), status=LeaveStatus.DENIED,
        ),
    ])
    await db.commit()

    viewer = (await db.execute(
        select(User).where(User.id == employee_id).execution_options(populate_existing=True),
    )).scalar_one()
    overview = await MyTeamService.overview(db, viewer, today=date(2026, 3, 1))

    assert [m.full_name for m in overview.new_joiners] == ["Nabila"]
    assert [(a.member_name, a.years_completed, a.days_away) for a in overview.anniversaries] == [("Rahim", 3, 19)]
    assert overview.anniversaries[0].date_label == "Fri, Mar 20"

    assert len(overview.upcoming_leaves) == 1
    leave = overview.upcoming_leaves[0]
    assert leave.member_name == "Nabila"
    assert leave.leave_type_label == "Sick Leave"
    assert leave.range_label == "Wed, Mar 4 - Thu, Mar 5"
    assert leave.helper == "2 days · Approved"

"""Department and team test suite — overview, CRUD, heads, leads and membership.

Tests exercise the HTTP API (via router) and verify state through a fresh session.
"""

from __future__ import annotations

import uuid

from sqlalchemy import select

from ndi_hr.common.audit import AuditTrail
from ndi_hr.common.constants import UserRole
from ndi_hr.core_hr.models import Department, EmploymentDetail, Team, TeamLead
from tests.conftest import (
    TestSessionFactory,
    _make_department,
    _make_organization,
    _make_team,
    _make_user,
    create_session_headers,
)


async def _employment(user_id) -> EmploymentDetail:
    async with TestSessionFactory() as session:
        return (await session.execute(
            select(EmploymentDetail).where(EmploymentDetail.user_id == user_id),
        )).scalar_one()


async def _all(model):
    async with TestSessionFactory() as session:
        return (await session.execute(select(model))).scalars().all()


# ═════════════════════════════════════════════════════════════════════
# Departments
# ═════════════════════════════════════════════════════════════════════


async def test_department_overview(client, db, organization, owner_headers, employee_id, hr_admin_id):
    engineering = await _make_department(db, organization)
    await _make_department(db, organization, name="Design", code="DSN")
    engineering.head_id = hr_admin_id
    await db.commit()
    async with TestSessionFactory() as session:
        employment = (await session.execute(
            select(EmploymentDetail).where(EmploymentDetail.user_id == employee_id),
        )).scalar_one()
        employment.department_id = engineering.id
        await session.commit()

    resp = await client.get("/api/v1/hr/departments", headers=owner_headers)
    assert resp.status_code == 200
    data = resp.json()
    assert data["can_manage"] is True
    assert [d["name"] for d in data["departments"]] == ["Design", "Engineering"]

    eng = data["departments"][1]
    assert eng["head_name"] == "Nusrat"
    assert eng["member_count"] == 1
    assert eng["member_user_ids"] == [str(employee_id)]
    assert eng["member_preview"][0]["department_name"] == "Engineering"
    assert [p["full_name"] for p in data["employees"]] == ["Farhana", "Nusrat", "Rahim"]


async def test_department_routes_require_admin(client, hr_headers):
    resp = await client.get("/api/v1/hr/departments", headers=hr_headers)
    assert resp.status_code == 403
    assert resp.json()["detail"] == (
        "Only org admins, org owners, or super admins can manage departments."
    )


async def test_create_department(client, owner_headers, organization):
    resp = await client.post(
        "/api/v1/hr/departments",
        json={"name": "  People Ops ", "code": "OPS", "description": " "},
        headers=owner_headers,
    )
    assert resp.status_code == 201
    assert resp.json()["message"] == "Department People Ops created."

    departments = await _all(Department)
    assert len(departments) == 1
    assert departments[0].name == "People Ops"
    assert departments[0].description is None
    assert departments[0].organization_id == organization.id


async def test_create_department_duplicates(client, db, organization, owner_headers):
    await _make_department(db, organization)

    by_name = await client.post(
        "/api/v1/hr/departments", json={"name": "engineering"}, headers=owner_headers,
    )
    assert by_name.status_code == 409
    assert by_name.json()["detail"] == "A department with that name already exists."

    by_code = await client.post(
        "/api/v1/hr/departments", json={"name": "Platform", "code": "eng"}, headers=owner_headers,
    )
    assert by_code.status_code == 409
    assert by_code.json()["detail"] == "A department with that code already exists."


async def test_same_name_allowed_in_other_organization(client, db, owner_headers):
    other = await _make_organization(db, name="Elsewhere", domain="elsewhere.io")
    await _make_department(db, other)

    resp = await client.post(
        "/api/v1/hr/departments", json={"name": "Engineering", "code": "ENG"}, headers=owner_headers,
    )
    assert resp.status_code == 201


async def test_update_department(client, db, organization, owner_headers):
    department = await _make_department(db, organization)
    resp = await client.put(
        f"/api/v1/hr/departments/{department.id}",
        json={"name": "Engineering & Data", "code": "ENGD", "description": "Builders"},
        headers=owner_headers,
    )
    assert resp.status_code == 200
    assert resp.json()["message"] == "Department Engineering & Data updated."


async def test_update_department_other_organization_not_found(client, db, owner_headers):
    other = await _make_organization(db, name="Elsewhere", domain="elsewhere.io")
    department = await _make_department(db, other)

    resp = await client.put(
        f"/api/v1/hr/departments/{department.id}",
        json={"name": "Mine now"},
        headers=owner_headers,
    )
    assert resp.status_code == 404
    assert resp.json()["detail"] == "Department not found."


async def test_assign_department_head_moves_head_in(client, db, organization, owner_headers, hr_admin_id):
    department = await _make_department(db, organization)

    resp = await client.put(
        f"/api/v1/hr/departments/{department.id}/head",
        json={"head_user_id": str(hr_admin_id)},
        headers=owner_headers,
    )
    assert resp.status_code == 200
    assert (await _employment(hr_admin_id)).department_id == department.id

    cleared = await client.put(
        f"/api/v1/hr/departments/{department.id}/head",
        json={"head_user_id": None},
        headers=owner_headers,
    )
    assert cleared.status_code == 200
    departments = await _all(Department)
    assert departments[0].head_id is None


async def test_assign_department_head_outsider(client, db, organization, owner_headers):
    department = await _make_department(db, organization)
    other = await _make_organization(db, name="Elsewhere", domain="elsewhere.io")
    outsider = await _make_user(db, other, email="someone@elsewhere.io")

    resp = await client.put(
        f"/api/v1/hr/departments/{department.id}/head",
        json={"head_user_id": str(outsider)},
        headers=owner_headers,
    )
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Select a manager from this organization."


async def test_assign_department_members(client, db, organization, owner_headers, employee_id, hr_admin_id):
    department = await _make_department(db, organization)
    department.head_id = hr_admin_id
    await db.commit()

    resp = await client.put(
        f"/api/v1/hr/departments/{department.id}/members",
        json={"member_user_ids": [str(employee_id)]},
        headers=owner_headers,
    )
    assert resp.status_code == 200
    assert (await _employment(employee_id)).department_id == department.id
    # The head is always kept as a member
    assert (await _employment(hr_admin_id)).department_id == department.id

    resp = await client.put(
        f"/api/v1/hr/departments/{department.id}/members",
        json={"member_user_ids": []},
        headers=owner_headers,
    )
    assert resp.status_code == 200
    assert (await _employment(employee_id)).department_id is None
    assert (await _employment(hr_admin_id)).department_id == department.id


async def test_assign_department_members_unknown_user(client, db, organization, owner_headers):
    department = await _make_department(db, organization)
    resp = await client.put(
        f"/api/v1/hr/departments/{department.id}/members",
        json={"member_user_ids": [str(uuid.uuid4())]},
        headers=owner_headers,
    )
    assert resp.status_code == 400
    assert resp.json()["detail"] == "All members must belong to this organization."


# ═════════════════════════════════════════════════════════════════════
# Teams
# ═════════════════════════════════════════════════════════════════════


async def test_team_overview_visible_to_hr(client, db, organization, hr_headers, employee_id):
    department = await _make_department(db, organization)
    team = await _make_team(db, organization, department)
    async with TestSessionFactory() as session:
        employment = (await session.execute(
            select(EmploymentDetail).where(EmploymentDetail.user_id == employee_id),
        )).scalar_one()
        employment.team_id = team.id
        await session.commit()

    resp = await client.get("/api/v1/hr/teams", headers=hr_headers)
    assert resp.status_code == 200
    data = resp.json()
    assert data["can_manage"] is False
    assert data["departments"] == [{"id": str(department.id), "name": "Engineering"}]
    platform = data["teams"][0]
    assert platform["department_name"] == "Engineering"
    assert platform["member_user_ids"] == [str(employee_id)]
    assert platform["leads"] == []


async def test_hr_cannot_create_team(client, db, organization, hr_headers):
    department = await _make_department(db, organization)
    resp = await client.post(
        "/api/v1/hr/teams",
        json={"name": "Backend", "department_id": str(department.id)},
        headers=hr_headers,
    )
    assert resp.status_code == 403
    assert resp.json()["detail"] == "Manager, org admin, org owner, or super admin access required."


async def test_create_team(client, db, organization, owner_headers):
    department = await _make_department(db, organization)
    resp = await client.post(
        "/api/v1/hr/teams",
        json={"name": "Backend", "department_id": str(department.id), "description": ""},
        headers=owner_headers,
    )
    assert resp.status_code == 201
    assert resp.json()["message"] == "Team Backend created."

    teams = await _all(Team)
    assert [(t.name, t.department_id, t.description) for t in teams] == [
        ("Backend", department.id, None),
    ]


async def test_create_team_validation(client, db, organization, owner_headers):
    department = await _make_department(db, organization)
    await _make_team(db, organization, department)

    duplicate = await client.post(
        "/api/v1/hr/teams",
        json={"name": "PLATFORM", "department_id": str(department.id)},
        headers=owner_headers,
    )
    assert duplicate.status_code == 409
    assert duplicate.json()["detail"] == "A team with that name already exists."

    unknown = await client.post(
        "/api/v1/hr/teams",
        json={"name": "Mobile", "department_id": str(uuid.uuid4())},
        headers=owner_headers,
    )
    assert unknown.status_code == 400
    assert unknown.json()["detail"] == "Select a valid department for this organization."


async def test_update_team_keeps_own_name(client, db, organization, owner_headers):
    department = await _make_department(db, organization)
    team = await _make_team(db, organization, department)
    resp = await client.put(
        f"/api/v1/hr/teams/{team.id}",
        json={"name": "Platform", "department_id": str(department.id), "description": "Infra"},
        headers=owner_headers,
    )
    assert resp.status_code == 200
    assert resp.json()["message"] == "Team Platform updated."


async def test_assign_team_leads(client, db, organization, owner_headers, employee_id):
    department = await _make_department(db, organization)
    team = await _make_team(db, organization, department)

    resp = await client.put(
        f"/api/v1/hr/teams/{team.id}/leads",
        json={"lead_user_ids": [str(employee_id), str(employee_id)]},
        headers=owner_headers,
    )
    assert resp.status_code == 200
    leads = await _all(TeamLead)
    assert [(lead.team_id, lead.lead_id) for lead in leads] == [(team.id, employee_id)]
    employment = await _employment(employee_id)
    assert employment.team_id == team.id
    assert employment.is_team_lead is True

    resp = await client.put(
        f"/api/v1/hr/teams/{team.id}/leads", json={"lead_user_ids": []}, headers=owner_headers,
    )
    assert resp.status_code == 200
    assert await _all(TeamLead) == []
    assert (await _employment(employee_id)).is_team_lead is False


async def test_assign_team_members_keeps_leads(
    client, db, organization, owner_headers, employee_id, hr_admin_id,
):
    department = await _make_department(db, organization)
    team = await _make_team(db, organization, department)
    await client.put(
        f"/api/v1/hr/teams/{team.id}/leads",
        json={"lead_user_ids": [str(employee_id)]},
        headers=owner_headers,
    )

    resp = await client.put(
        f"/api/v1/hr/teams/{team.id}/members",
        json={"member_user_ids": [str(hr_admin_id)]},
        headers=owner_headers,
    )
    assert resp.status_code == 200
    assert (await _employment(hr_admin_id)).team_id == team.id
    assert (await _employment(employee_id)).team_id == team.id

    await client.put(
        f"/api/v1/hr/teams/{team.id}/members", json={"member_user_ids": []}, headers=owner_headers,
    )
    assert (await _employment(hr_admin_id)).team_id is None
    assert (await _employment(employee_id)).team_id == team.id


async def test_delete_team(client, db, organization, owner_headers, owner_id, employee_id):
    department = await _make_department(db, organization)
    team = await _make_team(db, organization, department)
    await client.put(
        f"/api/v1/hr/teams/{team.id}/leads",
        json={"lead_user_ids": [str(employee_id)]},
        headers=owner_headers,
    )

    resp = await client.delete(f"/api/v1/hr/teams/{team.id}", headers=owner_headers)
    assert resp.status_code == 200
    assert resp.json()["message"] == "Team deleted."

    assert await _all(Team) == []
    assert await _all(TeamLead) == []
    employment = await _employment(employee_id)
    assert employment.team_id is None
    assert employment.is_team_lead is False

    entries = await _all(AuditTrail)
    assert [(e.action, e.entity_type, e.actor_id) for e in entries] == [("delete", "team", owner_id)]
    assert entries[0].old_values == {"name": "Platform"}


async def test_manager_can_manage_teams(client, db, organization):
    department = await _make_department(db, organization)
    manager_id = await _make_user(db, organization, email="lead@ndilabs.com", role=UserRole.MANAGER)
    headers = await create_session_headers(db, manager_id)

    resp = await client.post(
        "/api/v1/hr/teams",
        json={"name": "Mobile", "department_id": str(department.id)},
        headers=headers,
    )
    assert resp.status_code == 201


async def test_delete_unknown_team(client, owner_headers):
    resp = await client.delete(f"/api/v1/hr/teams/{uuid.uuid4()}", headers=owner_headers)
    assert resp.status_code == 404
    assert resp.json()["detail"] == "Team not found."

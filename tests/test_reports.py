"""Work report tests — daily/monthly upserts, personal history, HR overview."""

from __future__ import annotations

from datetime import date, timedelta

from sqlalchemy import select

from ndi_hr.common.formatting import local_today
from ndi_hr.reports.models import DailyReportEntry, MonthlyReport
from tests.conftest import TestSessionFactory, _make_user, create_session_headers


def _daily(report_date, **overrides):
    payload = {
        "report_date": report_date.isoformat(),
        "note": "  ",
        "entries": [
            {"work_type": "Development", "task_name": "Payroll export", "details": "Wired the PDF", "working_hours": 5},
            {"work_type": "Review", "task_name": "Code review", "others": " ", "details": "Leave PRs", "working_hours": 2.5},
        ],
    }
    payload.update(overrides)
    return payload


def _monthly(report_month, entries=None):
    return {
        "report_month": report_month.isoformat(),
        "entries": entries or [
            {"task_name": "Attendance board", "story_point": 8, "working_hours": 40},
            {"task_name": "Invoice PDF", "story_point": 5, "working_hours": 22.5},
        ],
    }


# ── Daily ───────────────────────────────────────────────────────────


async def test_submit_daily_then_resubmit_replaces_entries(client, employee_headers):
    today = local_today("Asia/Dhaka")
    first = await client.post("/api/v1/reports/daily", json=_daily(today), headers=employee_headers)
    assert first.status_code == 200
    assert first.json()["entry_count"] == 2

    second = await client.post(
        "/api/v1/reports/daily",
        json=_daily(today, note="Short day", entries=[
            {"work_type": "Meetings", "task_name": "Sprint planning", "details": "Q3 scope", "working_hours": 1},
        ]),
        headers=employee_headers,
    )
    assert second.status_code == 200
    assert second.json()["id"] == first.json()["id"]
    assert second.json()["entry_count"] == 1

    async with TestSessionFactory() as session:
        entries = (await session.execute(select(DailyReportEntry))).scalars().all()
    assert [e.task_name for e in entries] == ["Sprint planning"]


async def test_submit_daily_validation(client, employee_headers):
    today = local_today("Asia/Dhaka")
    empty = await client.post("/api/v1/reports/daily", json=_daily(today, entries=[]), headers=employee_headers)
    assert empty.status_code == 422

    too_long = await client.post(
        "/api/v1/reports/daily",
        json=_daily(today, entries=[
            {"work_type": "Dev", "task_name": "X", "details": "Y", "working_hours": 25},
        ]),
        headers=employee_headers,
    )
    assert too_long.status_code == 422


async def test_submit_requires_organization(client, db):
    drifter_id = await _make_user(db, None, email="drifter@example.com")
    headers = await create_session_headers(db, drifter_id)
    resp = await client.post(
        "/api/v1/reports/daily", json=_daily(local_today("Asia/Dhaka")), headers=headers,
    )
    assert resp.status_code == 403
    assert resp.json()["detail"] == "Missing organization context."


async def test_daily_history_defaults_to_today(client, employee_headers):
    today = local_today("Asia/Dhaka")
    await client.post("/api/v1/reports/daily", json=_daily(today), headers=employee_headers)
    await client.post(
        "/api/v1/reports/daily", json=_daily(today - timedelta(days=3)), headers=employee_headers,
    )

    resp = await client.get("/api/v1/reports/daily/history", headers=employee_headers)
    assert resp.status_code == 200
    data = resp.json()
    assert [item["report_date"] for item in data["items"]] == [today.isoformat()]
    assert data["items"][0]["total_working_hours"] == 7.5
    assert data["items"][0]["note"] is None
    assert data["totals"] == {"working_hours": 7.5, "entry_count": 2}
    assert data["pagination"]["page_size"] == 20


async def test_daily_history_paginates_and_sorts(client, employee_headers):
    base = date(2026, 3, 2)
    for offset in range(3):
        await client.post(
            "/api/v1/reports/daily", json=_daily(base + timedelta(days=offset)), headers=employee_headers,
        )

    resp = await client.get(
        "/api/v1/reports/daily/history",
        params={
            "start_date": "2026-03-01",
            "end_date": "2026-03-31",
            "page_size": 2,
            "page": 2,
            "sort": "oldest",
        },
        headers=employee_headers,
    )
    data = resp.json()
    assert [item["report_date"] for item in data["items"]] == ["2026-03-04"]
    assert data["pagination"]["total_items"] == 3
    assert data["pagination"]["total_pages"] == 2
    # Totals span every page
    assert data["totals"]["entry_count"] == 6


async def test_daily_history_search_matches_entries(client, employee_headers):
    await client.post("/api/v1/reports/daily", json=_daily(date(2026, 3, 2)), headers=employee_headers)
    await client.post(
        "/api/v1/reports/daily",
        json=_daily(date(2026, 3, 3), entries=[
            {"work_type": "Support", "task_name": "On-call", "details": "Pager", "working_hours": 3},
        ]),
        headers=employee_headers,
    )

    resp = await client.get(
        "/api/v1/reports/daily/history",
        params={"start_date": "2026-03-01", "end_date": "2026-03-31", "search": "payroll"},
        headers=employee_headers,
    )
    assert [item["report_date"] for item in resp.json()["items"]] == ["2026-03-02"]


async def test_daily_history_rejects_inverted_range(client, employee_headers):
    resp = await client.get(
        "/api/v1/reports/daily/history",
        params={"start_date": "2026-03-10", "end_date": "2026-03-01"},
        headers=employee_headers,
    )
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Start date cannot be after end date."


async def test_empty_history_still_has_one_page(client, employee_headers):
    resp = await client.get("/api/v1/reports/daily/history", headers=employee_headers)
    assert resp.json()["items"] == []
    assert resp.json()["pagination"]["total_pages"] == 1


# ── Monthly ─────────────────────────────────────────────────────────


async def test_submit_monthly_keys_first_of_month(client, employee_headers):
    resp = await client.post("/api/v1/reports/monthly", json=_monthly(date(2026, 2, 17)), headers=employee_headers)
    assert resp.status_code == 200
    assert resp.json()["report_month"] == "2026-02-01"

    again = await client.post(
        "/api/v1/reports/monthly",
        json=_monthly(date(2026, 2, 28), entries=[
            {"task_name": "Reports overview", "story_point": 13, "working_hours": 60},
        ]),
        headers=employee_headers,
    )
    assert again.json()["id"] == resp.json()["id"]

    async with TestSessionFactory() as session:
        reports = (await session.execute(select(MonthlyReport))).scalars().all()
    assert len(reports) == 1
    assert [e.task_name for e in reports[0].entries] == ["Reports overview"]


async def test_monthly_history_totals(client, employee_headers):
    await client.post("/api/v1/reports/monthly", json=_monthly(date(2026, 1, 5)), headers=employee_headers)
    await client.post("/api/v1/reports/monthly", json=_monthly(date(2026, 2, 5)), headers=employee_headers)

    resp = await client.get(
        "/api/v1/reports/monthly/history",
        params={"start_date": "2026-01-01", "end_date": "2026-02-28"},
        headers=employee_headers,
    )
    data = resp.json()
    assert [item["month_label"] for item in data["items"]] == ["Feb 2026", "Jan 2026"]
    assert data["items"][0]["total_story_points"] == 13
    assert data["totals"] == {"working_hours": 125.0, "story_points": 26.0, "entry_count": 4}
    assert data["pagination"]["page_size"] == 12


async def test_monthly_history_search_by_story_points(client, employee_headers):
    await client.post("/api/v1/reports/monthly", json=_monthly(date(2026, 1, 5)), headers=employee_headers)
    await client.post(
        "/api/v1/reports/monthly",
        json=_monthly(date(2026, 2, 5), entries=[
            {"task_name": "Chat", "story_point": 3, "working_hours": 10},
        ]),
        headers=employee_headers,
    )
    resp = await client.get(
        "/api/v1/reports/monthly/history",
        params={"start_date": "2026-01-01", "end_date": "2026-02-28", "search": "8"},
        headers=employee_headers,
    )
    assert [item["report_month"] for item in resp.json()["items"]] == ["2026-01-01"]


# ── HR overview ─────────────────────────────────────────────────────


async def test_hr_overview_rows_and_trends(client, db, organization, hr_headers, employee_headers):
    colleague_id = await _make_user(db, organization, email="sadia@ndilabs.com", first_name="Sadia")
    colleague_headers = await create_session_headers(db, colleague_id)

    await client.post("/api/v1/reports/daily", json=_daily(date(2026, 3, 2)), headers=employee_headers)
    await client.post("/api/v1/reports/daily", json=_daily(date(2026, 3, 2)), headers=colleague_headers)
    await client.post("/api/v1/reports/daily", json=_daily(date(2026, 3, 3)), headers=employee_headers)
    await client.post("/api/v1/reports/monthly", json=_monthly(date(2026, 3, 1)), headers=employee_headers)

    resp = await client.get(
        "/api/v1/hr/reports",
        params={"start_date": "2026-03-01", "end_date": "2026-03-31"},
        headers=hr_headers,
    )
    assert resp.status_code == 200
    data = resp.json()
    assert len(data["daily"]) == 3
    row = data["daily"][0]
    assert row["report_date"] == "2026-03-03"
    assert row["employee_name"] == "Rahim"
    assert row["work_types"] == ["Development", "Review"]
    assert row["top_tasks"] == ["Payroll export", "Code review"]

    assert [(p["label"], p["report_count"]) for p in data["daily_trend"]] == [("Mar 2", 2), ("Mar 3", 1)]
    assert data["monthly_trend"][0]["label"] == "Mar 2026"
    assert data["monthly"][0]["total_story_points"] == 13
    assert {e["name"] for e in data["filters"]["employees"]} == {"Nusrat", "Rahim", "Sadia"}


async def test_hr_overview_filters_by_employee(client, db, organization, hr_headers, employee_headers, employee_id):
    colleague_id = await _make_user(db, organization, email="sadia@ndilabs.com", first_name="Sadia")
    colleague_headers = await create_session_headers(db, colleague_id)
    await client.post("/api/v1/reports/daily", json=_daily(date(2026, 3, 2)), headers=employee_headers)
    await client.post("/api/v1/reports/daily", json=_daily(date(2026, 3, 2)), headers=colleague_headers)

    resp = await client.get(
        "/api/v1/hr/reports",
        params={"start_date": "2026-03-01", "end_date": "2026-03-31", "employee_id": str(employee_id)},
        headers=hr_headers,
    )
    assert [r["employee_id"] for r in resp.json()["daily"]] == [str(employee_id)]


async def test_hr_overview_requires_hr(client, employee_headers):
    resp = await client.get("/api/v1/hr/reports", headers=employee_headers)
    assert resp.status_code == 403

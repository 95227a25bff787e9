"""HR landing dashboard: one read-only snapshot of the organization's day.

Every figure is computed for a target date (organization-local today by
default) against the day before it. Headcount counts people whose
employment is ACTIVE or PROBATION.
"""

from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ndi_hr.attendance.models import AttendanceRecord, WorkPolicy
from ndi_hr.attendance.service import (
    get_work_policy,
    is_late,
    organization_records,
    organization_timezone,
    time_label,
)
from ndi_hr.common.constants import (
    LEAVE_BALANCE_FIELDS,
    LEAVE_TYPE_LABELS,
    AttendanceStatus,
    EmploymentStatus,
    LeaveStatus,
)
from ndi_hr.common.formatting import (
    as_utc,
    decimal_to_float,
    format_date_range,
    get_zone,
    local_today,
    month_bounds,
    relative_time_label,
    shift_months,
)
from ndi_hr.core_hr.models import EmploymentDetail, User
from ndi_hr.hr_dashboard.schemas import (
    AttendanceBreakdownCard,
    AttendanceLogEntry,
    AttendanceTrendPoint,
    CoverageSummary,
    EngagementGauge,
    HrDashboardResponse,
    LabeledValue,
    LeaveApprovalCard,
    QuickAction,
    StatCard,
    TeamCapacityItem,
    WorkforcePoint,
)
from ndi_hr.leave.models import LeaveRequest

logger = logging.getLogger(__name__)

HEADCOUNT_STATUSES = (EmploymentStatus.ACTIVE, EmploymentStatus.PROBATION)
PRESENT_STATUSES = frozenset({
    AttendanceStatus.PRESENT,
    AttendanceStatus.LATE,
    AttendanceStatus.REMOTE,
    AttendanceStatus.HALF_DAY,
})
OPEN_LEAVE_STATUSES = (LeaveStatus.PENDING, LeaveStatus.PROCESSING)
HEADCOUNT_PIVOT_DAYS = 30
LEAVE_APPROVAL_LIMIT = 5
ATTENDANCE_LOG_LIMIT = 6
CAPACITY_MONTHS = 6
TREND_HOURS = (9, 10, 11, 12, 13, 14)
BREAKDOWN_LABELS = {"onsite": "On-site", "remote": "Remote", "late": "Late", "absent": "Absent"}


# ── Formatting ──────────────────────────────────────────────────────

def format_trend(value: float, suffix: str, digits: int = 1) -> str:
    """Signed change such as ``+2.5 pts``; anything under 0.01 reads as ``0``."""
    if abs(value) < 0.01:
        return f"0{suffix}"
    return f"{'+' if value > 0 else ''}{value:.{digits}f}{suffix}"


def format_delta(value: int) -> str:
    if value == 0:
        return "No change"
    return f"{'+' if value > 0 else ''}{value} vs yesterday"


def hour_label(hour: int) -> str:
    suffix = "AM" if hour < 12 else "PM"
    return f"{(hour % 12) or 12} {suffix}"


def _percent(part: int, whole: int) -> float:
    return part / whole * 100 if whole else 0.0


# ── Attendance classification ───────────────────────────────────────

def is_remote_record(record: AttendanceRecord) -> bool:
    location = (record.location or "").lower()
    source = (record.source or "").lower()
    return (
        record.status == AttendanceStatus.REMOTE
        or "remote" in location
        or "vpn" in source
        or "remote" in source
    )


def categorize(records: list[AttendanceRecord], policy: Optional[WorkPolicy], tz_name: Optional[str]) -> dict[str, int]:
    counts = {key: 0 for key in BREAKDOWN_LABELS}
    for record in records:
        if record.status in (AttendanceStatus.ABSENT, AttendanceStatus.HOLIDAY):
            counts["absent"] += 1
        elif is_late(record, policy, tz_name):
            counts["late"] += 1
        elif is_remote_record(record):
            counts["remote"] += 1
        else:
            counts["onsite"] += 1
    return counts


def _log_status(record: AttendanceRecord, policy: Optional[WorkPolicy], tz_name: Optional[str]) -> tuple[str, str]:
    """``(label, state)`` for one dashboard log row."""
    if record.status == AttendanceStatus.ABSENT:
        return "Missing", "missing"
    if record.status == AttendanceStatus.HOLIDAY:
        return "Holiday", "remote"
    late = is_late(record, policy, tz_name)
    remote = is_remote_record(record)
    if record.status == AttendanceStatus.HALF_DAY:
        label = "Half day"
    elif late:
        label = "Late"
    else:
        label = "Remote" if remote else "On-site"
    if late:
        return label, "late"
    return label, "remote" if remote else "on-time"


def _department_name(user: Optional[User]) -> str:
    employment = user.employment if user else None
    if employment is None:
        return "—"
    if employment.department is not None:
        return employment.department.name
    if employment.team is not None:
        return employment.team.name
    return "—"


def attendance_log(
    records: list[AttendanceRecord], policy: Optional[WorkPolicy], tz_name: Optional[str],
) -> list[AttendanceLogEntry]:
    ordered = sorted(
        records,
        key=lambda r: as_utc(r.check_in_at).timestamp() if r.check_in_at else 0.0,
        reverse=True,
    )
    entries = []
    for record in ordered[:ATTENDANCE_LOG_LIMIT]:
        label, state = _log_status(record, policy, tz_name)
        entries.append(AttendanceLogEntry(
            id=record.id,
            name=record.employee.display_name if record.employee else "Unknown member",
            department=_department_name(record.employee),
            check_in=time_label(record.check_in_at, tz_name),
            status=label,
            method=f"{record.source or 'System'} · {record.location or 'N/A'}",
            state=state,
        ))
    return entries


def attendance_trend(records: list[AttendanceRecord], tz_name: Optional[str]) -> list[AttendanceTrendPoint]:
    """Check-ins per local hour through the morning, split on-site / remote."""
    zone = get_zone(tz_name)
    buckets = {hour: [0, 0] for hour in TREND_HOURS}
    for record in records:
        if record.check_in_at is None:
            continue
        hour = as_utc(record.check_in_at).astimezone(zone).hour
        if hour in buckets:
            buckets[hour][1 if is_remote_record(record) else 0] += 1
    return [
        AttendanceTrendPoint(hour=hour_label(hour), onsite=onsite, remote=remote)
        for hour, (onsite, remote) in buckets.items()
    ]


# ── Cards ───────────────────────────────────────────────────────────

def quick_actions(missing: int, pending_leaves: int, late: int) -> list[QuickAction]:
    return [
        QuickAction(
            id="attendance-reminder",
            title="Follow up on missing check-ins" if missing else "Coverage looks good",
            detail=f"{missing} people still need to check in." if missing else "Everyone has a record for today.",
            meta="Due soon" if missing else "Status",
            cta="Send Reminder" if missing else "Share Update",
        ),
        QuickAction(
            id="leave-queue",
            title="Review leave approvals",
            detail=(
                f"{pending_leaves} leave requests awaiting HR." if pending_leaves
                else "No leave requests waiting action."
            ),
            meta="Queue" if pending_leaves else "FYI",
            cta="Open Queue" if pending_leaves else "View Schedule",
        ),
        QuickAction(
            id="late-pattern",
            title="Investigate late arrivals" if late else "All on time",
            detail=f"{late} late check-ins logged today." if late else "Nobody has been flagged late yet.",
            meta="Insight",
            cta="View Log" if late else "Share Kudos",
        ),
    ]


def leave_approval(request: LeaveRequest) -> LeaveApprovalCard:
    employee = request.employee
    employment = employee.employment if employee else None
    days = max(1, round(decimal_to_float(request.total_days)))
    remaining = decimal_to_float(getattr(employment, LEAVE_BALANCE_FIELDS[request.leave_type])) if employment else 0
    if employment and employment.current_project is not None:
        coverage = f"{employment.current_project.name} coverage in place"
    elif employment and employment.department is not None:
        coverage = f"{employment.department.name} will cover"
    else:
        coverage = (employment.current_project_note if employment else None) or "Coverage plan pending"
    return LeaveApprovalCard(
        id=request.id,
        name=employee.display_name if employee else "Unknown member",
        role=(employment.designation if employment else None) or "Team member",
        type=LEAVE_TYPE_LABELS[request.leave_type],
        duration=f"{format_date_range(request.start_date, request.end_date)} ({days} day{'' if days == 1 else 's'})",
        balance=f"{remaining:g} days remaining",
        coverage=coverage,
        submitted=f"Requested {relative_time_label(request.created_at)}",
    )


def workforce_capacity(employments: list[EmploymentDetail], target: date) -> list[WorkforcePoint]:
    points = []
    for offset in range(CAPACITY_MONTHS - 1, -1, -1):
        month_start = shift_months(target, -offset)
        _, month_end = month_bounds(month_start.year, month_start.month)
        actual = sum(1 for e in employments if e.start_date and e.start_date <= month_end)
        points.append(WorkforcePoint(label=month_start.strftime("%b"), plan=actual, actual=actual))
    return points


def team_capacity(employments: list[EmploymentDetail]) -> list[TeamCapacityItem]:
    by_team: dict[str, list[int]] = {}
    for employment in employments:
        name = employment.team.name if employment.team else "Unassigned"
        entry = by_team.setdefault(name, [0, 0])
        entry[1] += 1
        if employment.current_project_id:
            entry[0] += 1
    return [
        TeamCapacityItem(team=name, committed=committed, available=available)
        for name, (committed, available) in by_team.items()
    ]


# ═════════════════════════════════════════════════════════════════════
# HrDashboardService
# ═════════════════════════════════════════════════════════════════════


class HrDashboardService:

    @staticmethod
    async def overview(db: AsyncSession, viewer: User, day: Optional[date] = None) -> HrDashboardResponse:
        organization_id = viewer.organization_id
        tz_name = await organization_timezone(db, organization_id)
        target = day or local_today(tz_name)
        previous = target - timedelta(days=1)
        policy = await get_work_policy(db, organization_id)

        employment_result = await db.execute(
            select(EmploymentDetail)
            .join(User, User.id == EmploymentDetail.user_id)
            .where(
                User.organization_id == organization_id,
                EmploymentDetail.status.in_(HEADCOUNT_STATUSES),
            ),
        )
        active = list(employment_result.scalars().all())
        total = len(active)

        records = await organization_records(db, organization_id, previous, target)
        today_records = [r for r in records if r.attendance_date == target]
        yesterday_records = [r for r in records if r.attendance_date == previous]

        open_leaves = (
            select(LeaveRequest)
            .join(User, User.id == LeaveRequest.employee_id)
            .where(User.organization_id == organization_id, LeaveRequest.status.in_(OPEN_LEAVE_STATUSES))
        )
        pending_count = (await db.execute(
            select(func.count()).select_from(open_leaves.subquery()),
        )).scalar_one()
        pending_result = await db.execute(
            open_leaves.order_by(LeaveRequest.created_at.desc()).limit(LEAVE_APPROVAL_LIMIT),
        )
        pending = list(pending_result.scalars().all())

        # ── Headline figures ────────────────────────────────────────
        pivot = target - timedelta(days=HEADCOUNT_PIVOT_DAYS)
        earlier = [e for e in active if e.start_date and e.start_date <= pivot]
        headcount_change = (total - len(earlier)) / len(earlier) * 100 if earlier else 0.0

        present = sum(1 for r in today_records if r.status in PRESENT_STATUSES)
        present_before = sum(1 for r in yesterday_records if r.status in PRESENT_STATUSES)
        coverage = _percent(present, total)
        coverage_before = _percent(present_before, total)

        on_time = sum(1 for r in today_records if not is_late(r, policy, tz_name))
        on_time_before = sum(1 for r in yesterday_records if not is_late(r, policy, tz_name))
        accuracy = _percent(on_time, len(today_records)) if today_records else 100.0
        accuracy_before = _percent(on_time_before, len(yesterday_records)) if yesterday_records else accuracy

        utilized = sum(1 for e in active if e.current_project_id)
        utilization = _percent(utilized, total)
        if earlier:
            utilization_before = _percent(sum(1 for e in earlier if e.current_project_id), len(earlier))
        else:
            utilization_before = utilization

        missing = max(total - len(today_records), 0)
        missing_before = max(total - len(yesterday_records), 0)
        open_actions = pending_count + missing
        open_actions_before = pending_count + missing_before

        stat_highlights = [
            StatCard(
                label="People Strength", value=f"{total:,}",
                trend=format_trend(headcount_change, "%"), descriptor="vs last 30 days",
            ),
            StatCard(
                label="Attendance Accuracy", value=f"{accuracy:.1f}%",
                trend=format_trend(accuracy - accuracy_before, " pts"), descriptor="vs yesterday",
            ),
            StatCard(
                label="Average Utilization", value=f"{utilization:.0f}%",
                trend=format_trend(utilization - utilization_before, " pts"), descriptor="vs last month",
            ),
            StatCard(
                label="Open Actions", value=f"{open_actions:,}",
                trend=format_trend(open_actions - open_actions_before, "", 0), descriptor="HR service desk",
            ),
        ]

        coverage_points = round(coverage)
        coverage_change = coverage_points - round(coverage_before)
        latest_sync = max((as_utc(r.updated_at) for r in today_records if r.updated_at), default=None)
        coverage_summary = CoverageSummary(
            present_count=present,
            total_employees=total,
            percent_label=f"{coverage_points}% of {total:,}",
            change_label=(
                "No change vs yesterday" if coverage_change == 0
                else f"{'+' if coverage_change > 0 else ''}{coverage_change} pts vs yesterday"
            ),
            synced_label=f"Synced {relative_time_label(latest_sync)}",
        )

        categories = categorize(today_records, policy, tz_name)
        categories_before = categorize(yesterday_records, policy, tz_name)
        breakdown = [
            AttendanceBreakdownCard(
                id=key, label=label, value=categories[key],
                delta=format_delta(categories[key] - categories_before[key]),
            )
            for key, label in BREAKDOWN_LABELS.items()
        ]

        engagement = round((coverage + accuracy + utilization) / 3)
        engagement_before = round((coverage_before + accuracy_before + utilization_before) / 3)

        logger.debug(
            "HR dashboard for org %s on %s: %d active, %d records, %d open leaves",
            organization_id, target, total, len(today_records), pending_count,
        )
        return HrDashboardResponse(
            date=target,
            stat_highlights=stat_highlights,
            coverage_summary=coverage_summary,
            attendance_breakdown=breakdown,
            attendance_trend=attendance_trend(today_records, tz_name),
            attendance_log=attendance_log(today_records, policy, tz_name),
            leave_approvals=[leave_approval(request) for request in pending],
            quick_actions=quick_actions(missing, pending_count, categories["late"]),
            workforce_capacity=workforce_capacity(active, target),
            workforce_signals=[
                LabeledValue(label="Open leave requests", value=f"{pending_count:,}", detail="Need HR attention"),
                LabeledValue(label="Missing check-ins", value=f"{missing:,}", detail="Haven't started their day"),
            ],
            engagement_gauge=EngagementGauge(
                value=engagement, change=format_trend(engagement - engagement_before, " pts"),
            ),
            engagement_snapshot=[
                LabeledValue(
                    label="Attendance coverage", value=f"{round(coverage)}%", detail="Employees checked in today",
                ),
                LabeledValue(
                    label="Project utilization", value=f"{round(utilization)}%", detail="Assigned to live projects",
                ),
                LabeledValue(label="Open leave requests", value=f"{pending_count:,}", detail="Need HR attention"),
            ],
            team_capacity=team_capacity(active),
        )

"""Employee dashboard: every section is derived from one dataset load.

Dates are evaluated in the organization's timezone; the attendance window
covers whichever starts first of the current month and the 10-day trend.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Optional, Sequence

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ndi_hr.attendance.models import AttendanceRecord, Holiday, WorkPolicy
from ndi_hr.attendance.service import get_work_policy, holiday_summary
from ndi_hr.common.constants import LEAVE_TYPE_LABELS, AttendanceStatus, LeaveStatus
from ndi_hr.common.exceptions import BadRequestException
from ndi_hr.common.formatting import (
    as_utc,
    decimal_to_float,
    format_short_date,
    get_zone,
    local_today,
    minutes_to_label,
    month_label,
    overlap_days,
)
from ndi_hr.core_hr.models import User
from ndi_hr.dashboard.schemas import (
    AttendanceSummary,
    AttendanceTrendPoint,
    DashboardAttendanceSection,
    DashboardHolidaysSection,
    DashboardNotification,
    DashboardNotificationsSection,
    DashboardOverview,
    DashboardProfile,
    DashboardProfileSection,
    DashboardSummarySection,
    DashboardTimeOffSection,
    DetailField,
    LeaveHighlights,
    MonthSnapshot,
    QuickStat,
    UpcomingLeave,
)
from ndi_hr.leave.models import LeaveRequest
from ndi_hr.leave.service import build_balance_response
from ndi_hr.notifications.models import Notification, NotificationReceipt
from ndi_hr.notifications.service import visibility_clause
from ndi_hr.users.service import manager_name

logger = logging.getLogger(__name__)

TREND_DAYS = 10
UPCOMING_LEAVE_LIMIT = 4
NOTIFICATION_LIMIT = 5
HOLIDAY_LIMIT = 5
DEFAULT_WORKSPACE_NAME = "Workspace"

WORKED_STATUSES = frozenset({
    AttendanceStatus.PRESENT,
    AttendanceStatus.LATE,
    AttendanceStatus.HALF_DAY,
    AttendanceStatus.REMOTE,
})
ON_TIME_STATUSES = frozenset({AttendanceStatus.PRESENT, AttendanceStatus.REMOTE})
OPEN_LEAVE_STATUSES = (LeaveStatus.PENDING, LeaveStatus.PROCESSING)


@dataclass
class DashboardDataset:
    user: User
    today: date
    month_start: date
    month_end: date
    trend_start: date
    tz_name: Optional[str]
    organization_name: str
    attendance: Sequence[AttendanceRecord] = field(default_factory=list)
    monthly_leaves: Sequence[LeaveRequest] = field(default_factory=list)
    upcoming_leaves: Sequence[LeaveRequest] = field(default_factory=list)
    notifications: Sequence[Notification] = field(default_factory=list)
    seen_ids: set[uuid.UUID] = field(default_factory=set)
    holidays: Sequence[Holiday] = field(default_factory=list)
    policy: Optional[WorkPolicy] = None
    pending_count: int = 0


def work_hours_label(policy: Optional[WorkPolicy]) -> Optional[str]:
    if policy is None:
        return None
    parts = []
    if policy.onsite_start_time and policy.onsite_end_time:
        parts.append(f"On-site {policy.onsite_start_time}-{policy.onsite_end_time}")
    if policy.remote_start_time and policy.remote_end_time:
        parts.append(f"Remote {policy.remote_start_time}-{policy.remote_end_time}")
    return " • ".join(parts) or None


def _enum_value(value) -> Optional[str]:
    return value.value if value is not None else None


def _iso(value: Optional[date]) -> Optional[str]:
    return value.isoformat() if value else None


# ═════════════════════════════════════════════════════════════════════
# DashboardService
# ═════════════════════════════════════════════════════════════════════


class DashboardService:
    """Builds the employee home screen."""

    @staticmethod
    def _require_organization(user: User) -> uuid.UUID:
        if user.organization_id is None:
            raise BadRequestException(detail="Missing organization context for dashboard.")
        return user.organization_id

    @staticmethod
    async def load(db: AsyncSession, user: User, *, now: Optional[datetime] = None) -> DashboardDataset:
        organization_id = DashboardService._require_organization(user)
        organization = user.organization
        tz_name = organization.timezone if organization else None

        today = local_today(tz_name, now)
        month_start = today.replace(day=1)
        next_month = (month_start + timedelta(days=32)).replace(day=1)
        month_end = next_month - timedelta(days=1)
        trend_start = today - timedelta(days=TREND_DAYS - 1)
        window_start = min(month_start, trend_start)

        attendance = (await db.execute(
            select(AttendanceRecord)
            .where(
                AttendanceRecord.employee_id == user.id,
                AttendanceRecord.attendance_date >= window_start,
                AttendanceRecord.attendance_date <= max(month_end, today),
            )
            .order_by(AttendanceRecord.attendance_date.asc()),
        )).scalars().all()

        monthly_leaves = (await db.execute(
            select(LeaveRequest)
            .where(
                LeaveRequest.employee_id == user.id,
                LeaveRequest.start_date <= month_end,
                LeaveRequest.end_date >= month_start,
            )
            .order_by(LeaveRequest.start_date.asc()),
        )).scalars().all()

        upcoming_leaves = (await db.execute(
            select(LeaveRequest)
            .where(
                LeaveRequest.employee_id == user.id,
                LeaveRequest.start_date >= today,
                LeaveRequest.status.in_(
                    [LeaveStatus.PENDING, LeaveStatus.PROCESSING, LeaveStatus.APPROVED],
                ),
            )
            .order_by(LeaveRequest.start_date.asc())
            .limit(UPCOMING_LEAVE_LIMIT),
        )).scalars().all()

        notifications = (await db.execute(
            select(Notification)
            .where(visibility_clause(user))
            .order_by(
                Notification.sent_at.desc().nulls_last(),
                Notification.scheduled_at.desc().nulls_last(),
                Notification.created_at.desc(),
            )
            .limit(NOTIFICATION_LIMIT),
        )).scalars().all()
        seen_ids: set[uuid.UUID] = set()
        if notifications:
            seen_ids = set((await db.execute(
                select(NotificationReceipt.notification_id).where(
                    NotificationReceipt.user_id == user.id,
                    NotificationReceipt.is_seen.is_(True),
                    NotificationReceipt.notification_id.in_([n.id for n in notifications]),
                ),
            )).scalars().all())

        holidays = (await db.execute(
            select(Holiday)
            .where(Holiday.organization_id == organization_id, Holiday.holiday_date >= today)
            .order_by(Holiday.holiday_date.asc())
            .limit(HOLIDAY_LIMIT),
        )).scalars().all()

        pending_count = (await db.execute(
            select(func.count(LeaveRequest.id)).where(
                LeaveRequest.employee_id == user.id,
                LeaveRequest.status.in_(OPEN_LEAVE_STATUSES),
            ),
        )).scalar() or 0

        return DashboardDataset(
            user=user,
            today=today,
            month_start=month_start,
            month_end=month_end,
            trend_start=trend_start,
            tz_name=tz_name,
            organization_name=organization.name if organization else DEFAULT_WORKSPACE_NAME,
            attendance=attendance,
            monthly_leaves=monthly_leaves,
            upcoming_leaves=upcoming_leaves,
            notifications=notifications,
            seen_ids=seen_ids,
            holidays=holidays,
            policy=await get_work_policy(db, organization_id),
            pending_count=pending_count,
        )

    # ── Sections ────────────────────────────────────────────────────

    @staticmethod
    def profile_section(data: DashboardDataset) -> DashboardProfileSection:
        user = data.user
        profile = user.profile
        employment = user.employment
        hours = work_hours_label(data.policy)
        manager = manager_name(employment.manager) if employment else None

        base_name = " ".join(
            p for p in ((profile.first_name, profile.last_name) if profile else ()) if p
        ).strip()
        full_name = base_name or (profile.preferred_name if profile else None) or user.email

        team_name = employment.team.name if employment and employment.team else None
        department_name = (
            employment.department.name if employment and employment.department else None
        )
        employment_type = _enum_value(employment.employment_type) if employment else None
        employment_status = _enum_value(employment.status) if employment else None
        work_model = _enum_value(profile.work_model) if profile else None
        tags = [tag.strip() for tag in (team_name, employment_type, work_model) if tag]

        return DashboardProfileSection(
            workspace_name=data.organization_name,
            profile=DashboardProfile(
                full_name=full_name,
                preferred_name=profile.preferred_name if profile else None,
                designation=(employment.designation or None) if employment else None,
                avatar_url=profile.profile_photo_url if profile else None,
                joining_date=employment.start_date if employment else None,
                team_name=team_name,
                department_name=department_name,
                manager_name=manager,
                employment_type=employment_type,
                employment_status=employment_status,
                work_model=work_model,
                work_hours=hours,
                current_project_note=employment.current_project_note if employment else None,
                primary_location=employment.primary_location if employment else None,
                tags=tags,
            ),
            personal_details=[
                DetailField(label="Work Email", value=(profile.work_email if profile else None) or user.email),
                DetailField(label="Personal Email", value=profile.personal_email if profile else None),
                DetailField(label="Work Phone", value=(profile.work_phone if profile else None) or user.phone),
                DetailField(label="Personal Phone", value=profile.personal_phone if profile else None),
                DetailField(label="Work Model", value=work_model),
                DetailField(label="Date of Birth", value=_iso(profile.date_of_birth) if profile else None),
                DetailField(label="Current Address", value=profile.current_address if profile else None),
                DetailField(label="Permanent Address", value=profile.permanent_address if profile else None),
                DetailField(label="Nationality", value=profile.nationality if profile else None),
            ],
            company_details=[
                DetailField(label="Employee ID", value=employment.employee_code if employment else None),
                DetailField(label="Department", value=department_name),
                DetailField(label="Team", value=team_name),
                DetailField(label="Designation", value=(employment.designation or None) if employment else None),
                DetailField(label="Reporting Manager", value=manager),
                DetailField(label="Employment Type", value=employment_type),
                DetailField(label="Status", value=employment_status),
                DetailField(label="Work Hours", value=hours),
                DetailField(label="Location", value=employment.primary_location if employment else None),
                DetailField(label="Project", value=employment.current_project_note if employment else None),
                DetailField(label="Joined", value=_iso(employment.start_date) if employment else None),
            ],
        )

    @staticmethod
    def attendance_section(data: DashboardDataset) -> DashboardAttendanceSection:
        by_day = {record.attendance_date: record for record in data.attendance}
        trend = []
        for offset in range(TREND_DAYS):
            day = data.trend_start + timedelta(days=offset)
            record = by_day.get(day)
            trend.append(AttendanceTrendPoint(
                date=day,
                status=record.status if record else AttendanceStatus.ABSENT,
                worked_seconds=record.total_work_seconds if record else 0,
                check_in_at=record.check_in_at if record else None,
                check_out_at=record.check_out_at if record else None,
            ))

        zone = get_zone(data.tz_name)
        counts = {status: 0 for status in AttendanceStatus}
        total = worked = on_time = 0
        work_seconds = work_samples = 0
        check_in_minutes = check_in_samples = 0
        for record in data.attendance:
            if record.attendance_date < data.month_start:
                continue
            total += 1
            counts[record.status] += 1
            if record.status in WORKED_STATUSES:
                worked += 1
            if record.status in ON_TIME_STATUSES:
                on_time += 1
            if record.total_work_seconds is not None:
                work_seconds += record.total_work_seconds
                work_samples += 1
            if record.check_in_at is not None:
                local = as_utc(record.check_in_at).astimezone(zone)
                check_in_minutes += local.hour * 60 + local.minute
                check_in_samples += 1

        on_time_pct = (on_time / total) * 100 if total else 0.0
        return DashboardAttendanceSection(
            attendance_summary=AttendanceSummary(
                month_label=month_label(data.month_start.year, data.month_start.month),
                total_records=total,
                on_time_percentage=round(on_time_pct, 1),
                average_check_in=(
                    minutes_to_label(round(check_in_minutes / check_in_samples))
                    if check_in_samples else None
                ),
                average_work_seconds=round(work_seconds / work_samples) if work_samples else 0,
                status_counts=counts,
            ),
            attendance_trend=trend,
        )

    @staticmethod
    def _days_worked_and_hours(data: DashboardDataset) -> tuple[int, float, float]:
        monthly = [r for r in data.attendance if r.attendance_date >= data.month_start]
        total = len(monthly)
        worked = sum(1 for r in monthly if r.status in WORKED_STATUSES)
        on_time = sum(1 for r in monthly if r.status in ON_TIME_STATUSES)
        hours = round(sum(r.total_work_seconds or 0 for r in monthly) / 3600, 1)
        on_time_pct = (on_time / total) * 100 if total else 0.0
        return worked, hours, on_time_pct

    @staticmethod
    def time_off_section(data: DashboardDataset) -> DashboardTimeOffSection:
        employment = data.user.employment
        upcoming = [
            UpcomingLeave(
                id=leave.id,
                leave_type=leave.leave_type,
                leave_type_label=LEAVE_TYPE_LABELS[leave.leave_type],
                status=leave.status,
                start_date=leave.start_date,
                end_date=leave.end_date,
                total_days=decimal_to_float(leave.total_days),
            )
            for leave in data.upcoming_leaves
        ]
        return DashboardTimeOffSection(
            leave_balances=build_balance_response(employment) if employment else [],
            leave_highlights=LeaveHighlights(
                pending_count=data.pending_count,
                upcoming=upcoming,
                next_leave_date=upcoming[0].start_date if upcoming else None,
            ),
            upcoming_holidays=[holiday_summary(h) for h in data.holidays],
        )

    @staticmethod
    def summary_section(data: DashboardDataset) -> DashboardSummarySection:
        worked, hours, on_time_pct = DashboardService._days_worked_and_hours(data)
        leaves_taken = sum(
            overlap_days(leave.start_date, leave.end_date, data.month_start, data.month_end)
            for leave in data.monthly_leaves
            if leave.status in (LeaveStatus.APPROVED, LeaveStatus.PROCESSING)
        )

        employment = data.user.employment
        balances = build_balance_response(employment) if employment else []
        total_balance = sum(b.remaining for b in balances)
        leader = max(balances, key=lambda b: b.remaining) if balances else None
        next_leave = data.upcoming_leaves[0].start_date if data.upcoming_leaves else None

        return DashboardSummarySection(
            month_snapshot=MonthSnapshot(
                days_worked=worked, hours_logged=hours, leaves_taken=leaves_taken,
            ),
            quick_stats=[
                QuickStat(
                    id="leave-balance",
                    label="Leave balance",
                    value=f"{round(total_balance, 1):g}d",
                    helper=f"{leader.label} most remaining" if leader else "No leave data yet",
                ),
                QuickStat(
                    id="attendance",
                    label="Attendance",
                    value=f"{round(on_time_pct)}%",
                    helper="On-time this month",
                ),
                QuickStat(
                    id="pending",
                    label="Pending actions",
                    value=str(data.pending_count),
                    helper=(
                        f"{data.organization_name} needs a response"
                        if data.pending_count else "All caught up"
                    ),
                ),
                QuickStat(
                    id="upcoming",
                    label="Next time off",
                    value=format_short_date(next_leave) if next_leave else "—",
                    helper="Scheduled leave" if next_leave else "No upcoming leave",
                ),
            ],
        )

    @staticmethod
    def notifications_section(data: DashboardDataset) -> DashboardNotificationsSection:
        return DashboardNotificationsSection(
            notifications=[
                DashboardNotification(
                    id=n.id,
                    title=n.title,
                    body=n.body,
                    type=n.type,
                    status=n.status,
                    is_seen=n.id in data.seen_ids,
                    action_url=n.action_url,
                    timestamp=as_utc(n.sent_at or n.scheduled_at or n.created_at),
                )
                for n in data.notifications
            ],
        )

    # ── Entry points ────────────────────────────────────────────────

    @staticmethod
    async def overview(db: AsyncSession, user: User) -> DashboardOverview:
        data = await DashboardService.load(db, user)
        profile = DashboardService.profile_section(data)
        summary = DashboardService.summary_section(data)
        attendance = DashboardService.attendance_section(data)
        time_off = DashboardService.time_off_section(data)
        return DashboardOverview(
            profile=profile.profile,
            month_snapshot=summary.month_snapshot,
            quick_stats=summary.quick_stats,
            personal_details=profile.personal_details,
            company_details=profile.company_details,
            attendance_summary=attendance.attendance_summary,
            attendance_trend=attendance.attendance_trend,
            leave_balances=time_off.leave_balances,
            leave_highlights=time_off.leave_highlights,
            upcoming_holidays=time_off.upcoming_holidays,
            notifications=DashboardService.notifications_section(data).notifications,
        )

    @staticmethod
    async def holidays(db: AsyncSession, user: User) -> DashboardHolidaysSection:
        organization_id = DashboardService._require_organization(user)
        result = await db.execute(
            select(Holiday)
            .where(Holiday.organization_id == organization_id)
            .order_by(Holiday.holiday_date.asc()),
        )
        organization = user.organization
        return DashboardHolidaysSection(
            workspace_name=organization.name if organization else DEFAULT_WORKSPACE_NAME,
            holidays=[holiday_summary(h) for h in result.scalars().all()],
        )

"""Attendance service layer: the employee day-timer, the HR attendance desk,
and the HR work policy.

Business logic:
  - One attendance row per employee per organization-local day
  - Arrival status from the policy start time plus a 10 minute tolerance
  - HR can see the whole organization by day or month and key in a day by hand;
    manual times are read in the zone of the employee's primary location
  - Work policy (office hours, working week) and holidays per organization,
    with an organization-wide announcement on every change
"""

from __future__ import annotations

import logging
import re
import uuid
from datetime import date, datetime, time, timedelta, timezone
from typing import Iterable, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from fastapi import BackgroundTasks
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ndi_hr.attendance.models import AttendanceRecord, Holiday, WorkPolicy
from ndi_hr.attendance.schemas import (
    AttendanceHistoryResponse,
    AttendanceRecordResponse,
    CalendarDay,
    CompleteDayRequest,
    CreateHolidayRequest,
    HolidaySummary,
    HrAttendanceEmployee,
    HrAttendanceHistoryResponse,
    HrAttendanceHistoryRow,
    HrAttendanceLog,
    HrAttendanceOverviewResponse,
    ManualEntryRequest,
    TodayAttendanceResponse,
    WeeklyTrendPoint,
    WeekSchedule,
    WeekScheduleRequest,
    WorkingHoursRequest,
    WorkOverviewResponse,
    WorkPolicyView,
)
from ndi_hr.common.constants import (
    DEFAULT_ONSITE_END,
    DEFAULT_ONSITE_START,
    DEFAULT_REMOTE_END,
    DEFAULT_REMOTE_START,
    DEFAULT_WEEKEND_DAYS,
    DEFAULT_WORKING_DAYS,
    LATE_TOLERANCE_MINUTES,
    MAX_DAILY_WORK_SECONDS,
    WEEKDAY_ORDER,
    WORK_MANAGEMENT_ROLES,
    AttendanceStatus,
    EmploymentStatus,
    NotificationType,
    Weekday,
    WorkModel,
)
from ndi_hr.common.audit import create_audit_entry
from ndi_hr.common.exceptions import BadRequestException, ConflictError, NotFoundException
from ndi_hr.common.formatting import (
    as_utc,
    get_zone,
    local_today,
    minutes_to_label,
    month_bounds,
    parse_hhmm,
    title_case_enum,
    utcnow,
)
from ndi_hr.core_hr.models import EmployeeProfile, Organization, User
from ndi_hr.notifications.service import NotificationService

logger = logging.getLogger(__name__)

LOCATION_LABELS = {"REMOTE": "Remote", "ONSITE": "On-site"}
ATTENDANCE_SOURCE = "WEB"


# ── Policy helpers ──────────────────────────────────────────────────

def normalize_weekdays(values: Optional[Iterable[str]]) -> list[Weekday]:
    """Known weekday names only, deduplicated, Monday first."""
    seen: set[Weekday] = set()
    for raw in values or []:
        try:
            seen.add(Weekday(getattr(raw, "value", raw)))
        except ValueError:
            continue
    return [day for day in WEEKDAY_ORDER if day in seen]


def resolve_week_schedule(policy: Optional[WorkPolicy]) -> WeekSchedule:
    if policy is None:
        return WeekSchedule(
            working_days=list(DEFAULT_WORKING_DAYS),
            weekend_days=list(DEFAULT_WEEKEND_DAYS),
        )
    working = normalize_weekdays(policy.working_days)
    weekend = [day for day in normalize_weekdays(policy.weekend_days) if day not in working]
    return WeekSchedule(
        working_days=working or list(DEFAULT_WORKING_DAYS),
        weekend_days=weekend or list(DEFAULT_WEEKEND_DAYS),
    )


def policy_view(policy: Optional[WorkPolicy]) -> WorkPolicyView:
    schedule = resolve_week_schedule(policy)
    return WorkPolicyView(
        onsite_start_time=policy.onsite_start_time if policy else DEFAULT_ONSITE_START,
        onsite_end_time=policy.onsite_end_time if policy else DEFAULT_ONSITE_END,
        remote_start_time=policy.remote_start_time if policy else DEFAULT_REMOTE_START,
        remote_end_time=policy.remote_end_time if policy else DEFAULT_REMOTE_END,
        working_days=schedule.working_days,
        weekend_days=schedule.weekend_days,
    )


def format_day_list(days: Iterable[Weekday]) -> str:
    ordered = normalize_weekdays(days)
    return ", ".join(title_case_enum(day.value) for day in ordered) if ordered else "Not set"


def holiday_date_label(value: date) -> str:
    return f"{value.strftime('%b')} {value.day}, {value.year}"


def holiday_summary(holiday: Holiday) -> HolidaySummary:
    return HolidaySummary(
        id=holiday.id,
        title=holiday.title,
        description=holiday.description,
        date=holiday.holiday_date,
        date_label=holiday_date_label(holiday.holiday_date),
    )


async def get_work_policy(db: AsyncSession, organization_id: Optional[uuid.UUID]) -> Optional[WorkPolicy]:
    if organization_id is None:
        return None
    result = await db.execute(select(WorkPolicy).where(WorkPolicy.organization_id == organization_id))
    return result.scalars().first()


async def organization_timezone(db: AsyncSession, organization_id: Optional[uuid.UUID]) -> Optional[str]:
    if organization_id is None:
        return None
    organization = await db.get(Organization, organization_id)
    return organization.timezone if organization else None


def scheduled_start(
    start_time: Optional[str],
    fallback: str,
    day: date,
    tz_name: Optional[str],
) -> datetime:
    """Policy start time on *day* as an aware datetime in the organization zone."""
    try:
        hours, minutes = parse_hhmm(start_time or fallback)
        local_time = time(hours, minutes)
    except ValueError:
        hours, minutes = parse_hhmm(fallback)
        local_time = time(hours, minutes)
    return datetime.combine(day, local_time, tzinfo=get_zone(tz_name))


def arrival_status(checked_in_at: datetime, scheduled: datetime) -> AttendanceStatus:
    if checked_in_at > scheduled + timedelta(minutes=LATE_TOLERANCE_MINUTES):
        return AttendanceStatus.LATE
    return AttendanceStatus.PRESENT


# ═════════════════════════════════════════════════════════════════════
# AttendanceService
# ═════════════════════════════════════════════════════════════════════


class AttendanceService:
    """Day-timer operations for the signed-in employee."""

    @staticmethod
    async def _record_for(db: AsyncSession, employee_id: uuid.UUID, day: date) -> Optional[AttendanceRecord]:
        result = await db.execute(
            select(AttendanceRecord).where(
                AttendanceRecord.employee_id == employee_id,
                AttendanceRecord.attendance_date == day,
            ),
        )
        return result.scalars().first()

    @staticmethod
    async def today(db: AsyncSession, user: User) -> TodayAttendanceResponse:
        tz_name = await organization_timezone(db, user.organization_id)
        record = await AttendanceService._record_for(db, user.id, local_today(tz_name))
        return TodayAttendanceResponse(
            record=AttendanceRecordResponse.model_validate(record) if record else None,
            work_model=user.profile.work_model if user.profile else None,
        )

    @staticmethod
    async def start_day(db: AsyncSession, user: User, location: str) -> AttendanceRecordResponse:
        if user.organization_id is None:
            raise BadRequestException(detail="Organization context missing.")

        now = utcnow()
        tz_name = await organization_timezone(db, user.organization_id)
        today = local_today(tz_name, now)
        if await AttendanceService._record_for(db, user.id, today) is not None:
            raise BadRequestException(
                detail=(
                    "Attendance has already been recorded for today. "
                    "Please contact HR if you need to make a change."
                ),
            )

        policy = await get_work_policy(db, user.organization_id)
        if location == "REMOTE":
            start = scheduled_start(
                policy.remote_start_time if policy else None, DEFAULT_REMOTE_START, today, tz_name,
            )
        else:
            start = scheduled_start(
                policy.onsite_start_time if policy else None, DEFAULT_ONSITE_START, today, tz_name,
            )

        record = AttendanceRecord(
            employee_id=user.id,
            attendance_date=today,
            check_in_at=now,
            status=arrival_status(now, start),
            source=ATTENDANCE_SOURCE,
            total_work_seconds=0,
            total_break_seconds=0,
            location=LOCATION_LABELS[location],
        )
        db.add(record)
        await db.flush()
        logger.info("Attendance started for %s on %s (%s)", user.id, today, record.status.value)
        return AttendanceRecordResponse.model_validate(record)

    @staticmethod
    async def complete_day(
        db: AsyncSession, user: User, body: CompleteDayRequest,
    ) -> AttendanceRecordResponse:
        result = await db.execute(
            select(AttendanceRecord)
            .where(
                AttendanceRecord.employee_id == user.id,
                AttendanceRecord.check_in_at.is_not(None),
                AttendanceRecord.check_out_at.is_(None),
            )
            .order_by(AttendanceRecord.attendance_date.desc())
            .limit(1),
        )
        record = result.scalars().first()
        if record is None:
            raise BadRequestException(detail="No active attendance record found for completion.")

        # Last write wins; the client timer is the source of the totals
        record.check_out_at = utcnow()
        record.total_work_seconds = max(0, min(body.work_seconds, MAX_DAILY_WORK_SECONDS))
        record.total_break_seconds = body.break_seconds
        await db.flush()
        return AttendanceRecordResponse.model_validate(record)

    @staticmethod
    async def history(
        db: AsyncSession,
        user: User,
        month: Optional[int] = None,
        year: Optional[int] = None,
    ) -> AttendanceHistoryResponse:
        """Records for one month, newest first. ``month`` is 0-based."""
        tz_name = await organization_timezone(db, user.organization_id)
        today = local_today(tz_name)
        month_number = (month if month is not None else today.month - 1) + 1
        year = year if year is not None else today.year
        range_start = date(year, month_number, 1)
        range_end = date(year + 1, 1, 1) if month_number == 12 else date(year, month_number + 1, 1)

        result = await db.execute(
            select(AttendanceRecord)
            .where(
                AttendanceRecord.employee_id == user.id,
                AttendanceRecord.attendance_date >= range_start,
                AttendanceRecord.attendance_date < range_end,
            )
            .order_by(AttendanceRecord.attendance_date.desc()),
        )
        policy = await get_work_policy(db, user.organization_id)
        return AttendanceHistoryResponse(
            records=[AttendanceRecordResponse.model_validate(r) for r in result.scalars().all()],
            week_schedule=resolve_week_schedule(policy),
        )


# ═════════════════════════════════════════════════════════════════════
# WorkPolicyService
# ═════════════════════════════════════════════════════════════════════


class WorkPolicyService:
    """Office hours, working week and holidays for an organization."""

    @staticmethod
    async def overview(db: AsyncSession, viewer: User) -> WorkOverviewResponse:
        policy = await get_work_policy(db, viewer.organization_id)
        result = await db.execute(
            select(Holiday)
            .where(Holiday.organization_id == viewer.organization_id)
            .order_by(Holiday.holiday_date),
        )
        return WorkOverviewResponse(
            viewer_role=viewer.role,
            can_manage=viewer.role in WORK_MANAGEMENT_ROLES,
            policy=policy_view(policy),
            holidays=[holiday_summary(h) for h in result.scalars().all()],
        )

    @staticmethod
    async def _ensure_policy(db: AsyncSession, organization_id: uuid.UUID) -> WorkPolicy:
        policy = await get_work_policy(db, organization_id)
        if policy is None:
            policy = WorkPolicy(organization_id=organization_id)
            db.add(policy)
        return policy

    @staticmethod
    async def create_holiday(
        db: AsyncSession,
        viewer: User,
        body: CreateHolidayRequest,
        background_tasks: Optional[BackgroundTasks] = None,
    ) -> HolidaySummary:
        organization_id = viewer.organization_id
        title = body.title.strip()
        existing = await db.execute(
            select(Holiday.id).where(
                Holiday.organization_id == organization_id,
                Holiday.holiday_date == body.date,
            ),
        )
        if existing.scalar() is not None:
            raise ConflictError(
                "date", body.date.isoformat(), detail="This date is already marked as a holiday.",
            )

        holiday = Holiday(
            organization_id=organization_id,
            title=title,
            holiday_date=body.date,
            description=body.description,
        )
        db.add(holiday)
        await db.flush()

        readable = holiday_date_label(body.date)
        suffix = f" {body.description}" if body.description else ""
        metadata = {
            "holidayId": str(holiday.id),
            "holidayDate": body.date.isoformat(),
            "appliesTo": "All employees",
        }
        if body.description:
            metadata["reason"] = body.description
        notification = await NotificationService.create_notification(
            db,
            organization_id=organization_id,
            sender_id=viewer.id,
            title=f"New holiday scheduled: {title}",
            body=f"{title} will be observed on {readable}.{suffix}",
            type=NotificationType.ANNOUNCEMENT,
            action_url="/holidays",
            metadata=metadata,
        )
        await NotificationService.publish(db, [notification], background_tasks)
        logger.info("Holiday %s created for %s", body.date, organization_id)
        return holiday_summary(holiday)

    @staticmethod
    async def update_working_hours(
        db: AsyncSession,
        viewer: User,
        body: WorkingHoursRequest,
        background_tasks: Optional[BackgroundTasks] = None,
    ) -> WorkPolicyView:
        policy = await WorkPolicyService._ensure_policy(db, viewer.organization_id)
        policy.onsite_start_time = body.onsite_start_time
        policy.onsite_end_time = body.onsite_end_time
        policy.remote_start_time = body.remote_start_time
        policy.remote_end_time = body.remote_end_time
        await db.flush()

        notification = await NotificationService.create_notification(
            db,
            organization_id=viewer.organization_id,
            sender_id=viewer.id,
            title="Working hours updated",
            body=(
                f"On-site {body.onsite_start_time} - {body.onsite_end_time} | "
                f"Remote {body.remote_start_time} - {body.remote_end_time}"
            ),
            type=NotificationType.ANNOUNCEMENT,
            action_url="/attendance",
            metadata={
                "effectiveDate": utcnow().isoformat(),
                "appliesTo": "All employees",
                "onsiteStartTime": body.onsite_start_time,
                "onsiteEndTime": body.onsite_end_time,
                "remoteStartTime": body.remote_start_time,
                "remoteEndTime": body.remote_end_time,
            },
        )
        await NotificationService.publish(db, [notification], background_tasks)
        return policy_view(policy)

    @staticmethod
    async def update_week_schedule(
        db: AsyncSession,
        viewer: User,
        body: WeekScheduleRequest,
        background_tasks: Optional[BackgroundTasks] = None,
    ) -> WorkPolicyView:
        if not body.working_days:
            raise BadRequestException(detail="Select at least one working day.")
        if not body.weekend_days:
            raise BadRequestException(detail="Select at least one weekend day.")
        if set(body.working_days) & set(body.weekend_days):
            raise BadRequestException(detail="A day cannot be marked as both working and weekend.")

        working = normalize_weekdays(body.working_days)
        weekend = normalize_weekdays(body.weekend_days)
        policy = await WorkPolicyService._ensure_policy(db, viewer.organization_id)
        policy.working_days = [day.value for day in working]
        policy.weekend_days = [day.value for day in weekend]
        await db.flush()

        notification = await NotificationService.create_notification(
            db,
            organization_id=viewer.organization_id,
            sender_id=viewer.id,
            title="Workweek cadence updated",
            body=f"Working days: {format_day_list(working)} | Weekend: {format_day_list(weekend)}",
            type=NotificationType.ANNOUNCEMENT,
            action_url="/attendance",
            metadata={
                "effectiveDate": utcnow().isoformat(),
                "appliesTo": "All employees",
                "workingDays": [day.value for day in working],
                "weekendDays": [day.value for day in weekend],
            },
        )
        await NotificationService.publish(db, [notification], background_tasks)
        return policy_view(policy)


# ═════════════════════════════════════════════════════════════════════
# Attendance desk helpers (shared with the HR dashboard)
# ═════════════════════════════════════════════════════════════════════

MANUAL_SOURCE = "HR_MANUAL"
EMPTY_TIME_LABEL = "—"
WEEKLY_TREND_DAYS = 5

HR_STATUS_BY_ATTENDANCE = {
    AttendanceStatus.PRESENT: "On time",
    AttendanceStatus.LATE: "Late",
    AttendanceStatus.HALF_DAY: "On leave",
    AttendanceStatus.ABSENT: "Absent",
    AttendanceStatus.REMOTE: "On time",
    AttendanceStatus.HOLIDAY: "On leave",
}
HR_STATUSES = ("On time", "Late", "On leave", "Absent")

# Worst status of the day wins the calendar cell
CALENDAR_SIGNALS = (
    ("Absent", "absent"),
    ("Late", "late"),
    ("On leave", "leave"),
    ("On time", "ontime"),
)

_TIMEZONE_TOKEN = re.compile(r"([A-Za-z]+/[A-Za-z0-9_\-+]+(?:/[A-Za-z0-9_\-+]+)?)")
LOCATION_TIMEZONE_HINTS = (
    ("dhaka", "Asia/Dhaka"),
    ("singapore", "Asia/Singapore"),
    ("tokyo", "Asia/Tokyo"),
    ("seoul", "Asia/Seoul"),
    ("kolkata", "Asia/Kolkata"),
    ("bangalore", "Asia/Kolkata"),
    ("mumbai", "Asia/Kolkata"),
    ("delhi", "Asia/Kolkata"),
    ("dubai", "Asia/Dubai"),
    ("doha", "Asia/Qatar"),
    ("london", "Europe/London"),
    ("berlin", "Europe/Berlin"),
    ("paris", "Europe/Paris"),
    ("toronto", "America/Toronto"),
    ("new york", "America/New_York"),
    ("san francisco", "America/Los_Angeles"),
    ("los angeles", "America/Los_Angeles"),
    ("austin", "America/Chicago"),
    ("sydney", "Australia/Sydney"),
    ("melbourne", "Australia/Melbourne"),
    ("brisbane", "Australia/Brisbane"),
)


def is_valid_timezone(name: Optional[str]) -> bool:
    if not name:
        return False
    try:
        ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        return False
    return True


def timezone_from_location(location: Optional[str], fallback: Optional[str]) -> Optional[str]:
    """IANA zone named in *location*, else a known city in it, else *fallback*."""
    text = (location or "").strip()
    if text:
        if is_valid_timezone(text):
            return text
        match = _TIMEZONE_TOKEN.search(text)
        if match and is_valid_timezone(match.group(1)):
            return match.group(1)
        lowered = text.lower()
        for city, zone in LOCATION_TIMEZONE_HINTS:
            if re.search(rf"\b{city}\b", lowered):
                return zone
    fallback = (fallback or "").strip()
    return fallback if is_valid_timezone(fallback) else None


def infer_work_type(record: AttendanceRecord) -> str:
    if record.status == AttendanceStatus.REMOTE:
        return "REMOTE"
    if "remote" in (record.location or "").lower():
        return "REMOTE"
    profile = record.employee.profile if record.employee else None
    if profile is not None and profile.work_model == WorkModel.REMOTE:
        return "REMOTE"
    return "ONSITE"


def policy_start(policy: Optional[WorkPolicy], work_type: str, day: date, tz_name: Optional[str]) -> datetime:
    if work_type == "REMOTE":
        return scheduled_start(policy.remote_start_time if policy else None, DEFAULT_REMOTE_START, day, tz_name)
    return scheduled_start(policy.onsite_start_time if policy else None, DEFAULT_ONSITE_START, day, tz_name)


def is_late(record: AttendanceRecord, policy: Optional[WorkPolicy], tz_name: Optional[str]) -> bool:
    """Stored as LATE, or checked in past the policy start plus tolerance."""
    if record.status == AttendanceStatus.LATE:
        return True
    if record.check_in_at is None:
        return False
    start = policy_start(policy, infer_work_type(record), record.attendance_date, tz_name)
    return arrival_status(as_utc(record.check_in_at), start) == AttendanceStatus.LATE


def hr_status(record: AttendanceRecord, policy: Optional[WorkPolicy], tz_name: Optional[str]) -> str:
    status = HR_STATUS_BY_ATTENDANCE.get(record.status, "On time")
    if status == "On time" and is_late(record, policy, tz_name):
        return "Late"
    return status


def is_manual_source(source: Optional[str]) -> bool:
    return "manual" in (source or "").lower()


def time_label(value: Optional[datetime], tz_name: Optional[str]) -> str:
    """Wall-clock ``hh:mm AM`` in the organization zone."""
    if value is None:
        return EMPTY_TIME_LABEL
    local = as_utc(value).astimezone(get_zone(tz_name))
    return minutes_to_label(local.hour * 60 + local.minute)


def _employee_name(user: Optional[User]) -> str:
    return user.display_name if user else "Unknown member"


def _employment_names(user: Optional[User]) -> tuple[Optional[str], Optional[str]]:
    employment = user.employment if user else None
    if employment is None:
        return None, None
    department = employment.department.name if employment.department else None
    team = employment.team.name if employment.team else None
    return department, team


def hr_log(record: AttendanceRecord, policy: Optional[WorkPolicy], tz_name: Optional[str]) -> HrAttendanceLog:
    department, squad = _employment_names(record.employee)
    return HrAttendanceLog(
        id=record.id,
        employee_id=record.employee_id,
        name=_employee_name(record.employee),
        department=department,
        squad=squad,
        check_in=time_label(record.check_in_at, tz_name),
        check_out=time_label(record.check_out_at, tz_name),
        status=hr_status(record, policy, tz_name),
        source="Manual" if is_manual_source(record.source) else "System",
    )


async def organization_records(
    db: AsyncSession, organization_id: uuid.UUID, start: date, end: date,
) -> list[AttendanceRecord]:
    """Records of the organization's people with ``start <= date <= end``."""
    result = await db.execute(
        select(AttendanceRecord)
        .join(User, User.id == AttendanceRecord.employee_id)
        .outerjoin(EmployeeProfile, EmployeeProfile.user_id == User.id)
        .where(
            User.organization_id == organization_id,
            AttendanceRecord.attendance_date >= start,
            AttendanceRecord.attendance_date <= end,
        )
        .order_by(AttendanceRecord.attendance_date, EmployeeProfile.first_name, User.email),
    )
    return list(result.scalars().all())


# ═════════════════════════════════════════════════════════════════════
# HrAttendanceService
# ═════════════════════════════════════════════════════════════════════


class HrAttendanceService:
    """Organization-wide attendance for HR: day board, monthly history, manual entry."""

    @staticmethod
    async def overview(
        db: AsyncSession, viewer: User, day: Optional[date] = None,
    ) -> HrAttendanceOverviewResponse:
        organization_id = viewer.organization_id
        tz_name = await organization_timezone(db, organization_id)
        target = day or local_today(tz_name)
        policy = await get_work_policy(db, organization_id)

        employees_result = await db.execute(
            select(User)
            .outerjoin(EmployeeProfile, EmployeeProfile.user_id == User.id)
            .where(
                User.organization_id == organization_id,
                User.status.in_([EmploymentStatus.ACTIVE, EmploymentStatus.PROBATION]),
            )
            .order_by(EmployeeProfile.first_name, User.email),
        )
        employees = []
        for user in employees_result.scalars().all():
            department, squad = _employment_names(user)
            employees.append(HrAttendanceEmployee(
                id=user.id, name=user.display_name, department=department, squad=squad,
            ))

        month_start, month_end = month_bounds(target.year, target.month)
        trend_start = target - timedelta(days=WEEKLY_TREND_DAYS - 1)
        records = await organization_records(
            db, organization_id, min(month_start, trend_start), max(month_end, target),
        )
        statuses: dict[date, set[str]] = {}
        for record in records:
            statuses.setdefault(record.attendance_date, set()).add(hr_status(record, policy, tz_name))

        day_logs = [hr_log(r, policy, tz_name) for r in records if r.attendance_date == target]
        counts = {status: 0 for status in HR_STATUSES}
        for log in day_logs:
            counts[log.status] += 1

        calendar = []
        cursor = month_start
        while cursor <= month_end:
            found = statuses.get(cursor, set())
            signal = next((s for label, s in CALENDAR_SIGNALS if label in found), "none")
            calendar.append(CalendarDay(date=cursor, signal=signal))
            cursor += timedelta(days=1)

        on_time: dict[date, int] = {}
        for record in records:
            if trend_start <= record.attendance_date <= target and hr_status(record, policy, tz_name) == "On time":
                on_time[record.attendance_date] = on_time.get(record.attendance_date, 0) + 1
        weekly_trend = []
        for offset in range(WEEKLY_TREND_DAYS):
            point = trend_start + timedelta(days=offset)
            present = on_time.get(point, 0)
            weekly_trend.append(WeeklyTrendPoint(
                date=point,
                label=point.strftime("%a"),
                present_count=present,
                present_percentage=round(present / len(employees) * 100) if employees else 0,
            ))

        return HrAttendanceOverviewResponse(
            date=target,
            employees=employees,
            day_logs=day_logs,
            status_counts=counts,
            calendar=calendar,
            weekly_trend=weekly_trend,
        )

    @staticmethod
    async def history(
        db: AsyncSession, viewer: User, employee_id: uuid.UUID, month: int, year: int,
    ) -> HrAttendanceHistoryResponse:
        """One employee's month, newest first. ``month`` is 0-based."""
        organization_id = viewer.organization_id
        tz_name = await organization_timezone(db, organization_id)
        policy = await get_work_policy(db, organization_id)
        month_start, month_end = month_bounds(year, month + 1)
        result = await db.execute(
            select(AttendanceRecord)
            .join(User, User.id == AttendanceRecord.employee_id)
            .where(
                AttendanceRecord.employee_id == employee_id,
                User.organization_id == organization_id,
                AttendanceRecord.attendance_date >= month_start,
                AttendanceRecord.attendance_date <= month_end,
            )
            .order_by(AttendanceRecord.attendance_date.desc()),
        )
        return HrAttendanceHistoryResponse(
            employee_id=employee_id,
            month=month,
            year=year,
            rows=[
                HrAttendanceHistoryRow(
                    date=record.attendance_date,
                    check_in=time_label(record.check_in_at, tz_name),
                    check_out=time_label(record.check_out_at, tz_name),
                    status=hr_status(record, policy, tz_name),
                    source="Manual" if is_manual_source(record.source) else "System",
                )
                for record in result.scalars().all()
            ],
        )

    @staticmethod
    async def manual_entry(db: AsyncSession, viewer: User, body: ManualEntryRequest) -> HrAttendanceLog:
        """Create or overwrite an employee's day. Times are read in the employee's location zone."""
        organization_id = viewer.organization_id
        employee = await db.get(User, body.employee_id)
        if employee is None or employee.organization_id != organization_id:
            raise NotFoundException("Employee", body.employee_id, detail="Employee not found.")

        org_tz = await organization_timezone(db, organization_id)
        location = employee.employment.primary_location if employee.employment else None
        entry_tz = timezone_from_location(location, org_tz) or org_tz
        zone = get_zone(entry_tz)
        check_in_at = datetime.combine(body.date, time(*parse_hhmm(body.check_in)), tzinfo=zone)
        check_out_at = None
        if body.check_out:
            check_out_at = datetime.combine(body.date, time(*parse_hhmm(body.check_out)), tzinfo=zone)
            if check_out_at < check_in_at:
                raise BadRequestException(detail="Check-out cannot be before check-in.")

        policy = await get_work_policy(db, organization_id)
        status = arrival_status(check_in_at, policy_start(policy, body.work_type, body.date, entry_tz))

        record = await AttendanceService._record_for(db, employee.id, body.date)
        old_values = None
        if record is None:
            record = AttendanceRecord(
                employee_id=employee.id,
                attendance_date=body.date,
                total_work_seconds=0,
                total_break_seconds=0,
            )
            db.add(record)
        else:
            old_values = {
                "status": record.status.value,
                "source": record.source,
                "checkInAt": record.check_in_at.isoformat() if record.check_in_at else None,
                "checkOutAt": record.check_out_at.isoformat() if record.check_out_at else None,
            }
        record.check_in_at = check_in_at.astimezone(timezone.utc)
        record.check_out_at = check_out_at.astimezone(timezone.utc) if check_out_at else None
        if check_out_at is not None:
            record.total_work_seconds = int((check_out_at - check_in_at).total_seconds())
        record.status = status
        record.source = MANUAL_SOURCE
        record.location = LOCATION_LABELS[body.work_type]
        await db.flush()

        await create_audit_entry(
            db,
            action="attendance.manual_entry",
            entity_type="attendance_record",
            entity_id=record.id,
            actor_id=viewer.id,
            old_values=old_values,
            new_values={
                "employeeId": str(employee.id),
                "date": body.date.isoformat(),
                "status": status.value,
                "workType": body.work_type,
            },
        )
        result = await db.execute(
            select(AttendanceRecord)
            .where(AttendanceRecord.id == record.id)
            .execution_options(populate_existing=True),
        )
        record = result.scalar_one()
        logger.info("Manual attendance for %s on %s by %s (%s)", employee.id, body.date, viewer.id, status.value)
        return hr_log(record, policy, org_tz)

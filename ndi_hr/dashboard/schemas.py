"""Response schemas for the employee dashboard sections."""

import uuid
from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel

from ndi_hr.attendance.schemas import HolidaySummary
from ndi_hr.common.constants import (
    AttendanceStatus,
    LeaveStatus,
    LeaveType,
    NotificationStatus,
    NotificationType,
)
from ndi_hr.leave.schemas import LeaveBalanceResponse


# ── Profile ─────────────────────────────────────────────────────────

class DashboardProfile(BaseModel):
    full_name: str
    preferred_name: Optional[str] = None
    designation: Optional[str] = None
    avatar_url: Optional[str] = None
    joining_date: Optional[date] = None
    team_name: Optional[str] = None
    department_name: Optional[str] = None
    manager_name: Optional[str] = None
    employment_type: Optional[str] = None
    employment_status: Optional[str] = None
    work_model: Optional[str] = None
    work_hours: Optional[str] = None
    current_project_note: Optional[str] = None
    primary_location: Optional[str] = None
    tags: list[str]


class DetailField(BaseModel):
    label: str
    value: Optional[str] = None


class DashboardProfileSection(BaseModel):
    workspace_name: str
    profile: DashboardProfile
    personal_details: list[DetailField]
    company_details: list[DetailField]


# ── Summary ─────────────────────────────────────────────────────────

class MonthSnapshot(BaseModel):
    days_worked: int
    hours_logged: float
    leaves_taken: int


class QuickStat(BaseModel):
    id: str
    label: str
    value: str
    helper: str


class DashboardSummarySection(BaseModel):
    month_snapshot: MonthSnapshot
    quick_stats: list[QuickStat]


# ── Attendance ──────────────────────────────────────────────────────

class AttendanceSummary(BaseModel):
    month_label: str
    total_records: int
    on_time_percentage: float
    average_check_in: Optional[str] = None
    average_work_seconds: int
    status_counts: dict[AttendanceStatus, int]


class AttendanceTrendPoint(BaseModel):
    date: date
    status: AttendanceStatus
    worked_seconds: int
    check_in_at: Optional[datetime] = None
    check_out_at: Optional[datetime] = None


class DashboardAttendanceSection(BaseModel):
    attendance_summary: AttendanceSummary
    attendance_trend: list[AttendanceTrendPoint]


# ── Time off ────────────────────────────────────────────────────────

class UpcomingLeave(BaseModel):
    id: uuid.UUID
    leave_type: LeaveType
    leave_type_label: str
    status: LeaveStatus
    start_date: date
    end_date: date
    total_days: float


class LeaveHighlights(BaseModel):
    pending_count: int
    upcoming: list[UpcomingLeave]
    next_leave_date: Optional[date] = None


class DashboardTimeOffSection(BaseModel):
    leave_balances: list[LeaveBalanceResponse]
    leave_highlights: LeaveHighlights
    upcoming_holidays: list[HolidaySummary]


# ── Notifications ───────────────────────────────────────────────────

class DashboardNotification(BaseModel):
    id: uuid.UUID
    title: str
    body: str
    type: NotificationType
    status: NotificationStatus
    is_seen: bool
    action_url: Optional[str] = None
    timestamp: datetime


class DashboardNotificationsSection(BaseModel):
    notifications: list[DashboardNotification]


# ── Holidays / overview ─────────────────────────────────────────────

class DashboardHolidaysSection(BaseModel):
    workspace_name: str
    holidays: list[HolidaySummary]


class DashboardOverview(BaseModel):
    profile: DashboardProfile
    month_snapshot: MonthSnapshot
    quick_stats: list[QuickStat]
    personal_details: list[DetailField]
    company_details: list[DetailField]
    attendance_summary: AttendanceSummary
    attendance_trend: list[AttendanceTrendPoint]
    leave_balances: list[LeaveBalanceResponse]
    leave_highlights: LeaveHighlights
    upcoming_holidays: list[HolidaySummary]
    notifications: list[DashboardNotification]

"""Pydantic v2 schemas for the attendance day-timer and the HR work policy."""

import re
import uuid
from datetime import date, datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ndi_hr.common.constants import AttendanceStatus, UserRole, Weekday, WorkModel

_TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


# ═════════════════════════════════════════════════════════════════════
# Attendance (employee)
# ═════════════════════════════════════════════════════════════════════


class AttendanceRecordResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    attendance_date: date
    check_in_at: Optional[datetime] = None
    check_out_at: Optional[datetime] = None
    total_work_seconds: int = 0
    total_break_seconds: int = 0
    status: AttendanceStatus
    note: Optional[str] = None
    source: Optional[str] = None
    location: Optional[str] = None


class TodayAttendanceResponse(BaseModel):
    record: Optional[AttendanceRecordResponse] = None
    work_model: Optional[WorkModel] = None


class StartDayRequest(BaseModel):
    location: Literal["REMOTE", "ONSITE"]


class CompleteDayRequest(BaseModel):
    work_seconds: int = Field(..., ge=0)
    break_seconds: int = Field(..., ge=0)


class WeekSchedule(BaseModel):
    working_days: list[Weekday]
    weekend_days: list[Weekday]


class AttendanceHistoryResponse(BaseModel):
    records: list[AttendanceRecordResponse]
    week_schedule: WeekSchedule


# ═════════════════════════════════════════════════════════════════════
# Work policy / holidays (HR)
# ═════════════════════════════════════════════════════════════════════


class WorkPolicyView(BaseModel):
    onsite_start_time: str
    onsite_end_time: str
    remote_start_time: str
    remote_end_time: str
    working_days: list[Weekday]
    weekend_days: list[Weekday]


class HolidaySummary(BaseModel):
    id: uuid.UUID
    title: str
    description: Optional[str] = None
    date: date
    date_label: str


class WorkOverviewResponse(BaseModel):
    viewer_role: UserRole
    can_manage: bool
    policy: WorkPolicyView
    holidays: list[HolidaySummary]


class CreateHolidayRequest(BaseModel):
    title: str = Field(..., min_length=2, max_length=120)
    date: date
    description: Optional[str] = Field(None, max_length=240)

    @field_validator("description", mode="before")
    @classmethod
    def blank_to_none(cls, v):
        if isinstance(v, str):
            v = v.strip()
            return v or None
        return v


_TIME_LABELS = {
    "onsite_start_time": "On-site start time",
    "onsite_end_time": "On-site end time",
    "remote_start_time": "Remote start time",
    "remote_end_time": "Remote end time",
}


class WorkingHoursRequest(BaseModel):
    onsite_start_time: str
    onsite_end_time: str
    remote_start_time: str
    remote_end_time: str

    @field_validator("onsite_start_time", "onsite_end_time", "remote_start_time", "remote_end_time")
    @classmethod
    def validate_hhmm(cls, v: str, info):
        v = v.strip()
        if not _TIME_PATTERN.match(v):
            raise ValueError(f"{_TIME_LABELS[info.field_name]} must be in 24h HH:MM format.")
        return v


class WeekScheduleRequest(BaseModel):
    working_days: list[Weekday] = Field(default_factory=list)
    weekend_days: list[Weekday] = Field(default_factory=list)


# ═════════════════════════════════════════════════════════════════════
# Attendance desk (HR)
# ═════════════════════════════════════════════════════════════════════

HrAttendanceStatus = Literal["On time", "Late", "On leave", "Absent"]
CalendarSignal = Literal["ontime", "late", "leave", "absent", "none"]


class HrAttendanceLog(BaseModel):
    id: uuid.UUID
    employee_id: uuid.UUID
    name: str
    department: Optional[str] = None
    squad: Optional[str] = None
    check_in: str
    check_out: str
    status: HrAttendanceStatus
    source: Literal["Manual", "System"]


class HrAttendanceEmployee(BaseModel):
    id: uuid.UUID
    name: str
    department: Optional[str] = None
    squad: Optional[str] = None


class CalendarDay(BaseModel):
    date: date
    signal: CalendarSignal


class WeeklyTrendPoint(BaseModel):
    date: date
    label: str
    present_count: int
    present_percentage: int


class HrAttendanceOverviewResponse(BaseModel):
    date: date
    employees: list[HrAttendanceEmployee]
    day_logs: list[HrAttendanceLog]
    status_counts: dict[str, int]
    calendar: list[CalendarDay]
    weekly_trend: list[WeeklyTrendPoint]


class HrAttendanceHistoryRow(BaseModel):
    date: date
    check_in: str
    check_out: str
    status: HrAttendanceStatus
    source: Literal["Manual", "System"]


class HrAttendanceHistoryResponse(BaseModel):
    employee_id: uuid.UUID
    month: int
    year: int
    rows: list[HrAttendanceHistoryRow]


class ManualEntryRequest(BaseModel):
    employee_id: uuid.UUID
    date: date
    check_in: str
    check_out: Optional[str] = None
    work_type: Literal["REMOTE", "ONSITE"]

    @field_validator("check_in")
    @classmethod
    def validate_check_in(cls, v: str):
        v = v.strip()
        if not _TIME_PATTERN.match(v):
            raise ValueError("Check-in must be in 24h HH:MM format.")
        return v

    @field_validator("check_out", mode="before")
    @classmethod
    def validate_check_out(cls, v):
        if isinstance(v, str):
            v = v.strip()
            if not v:
                return None
            if not _TIME_PATTERN.match(v):
                raise ValueError("Check-out must be in 24h HH:MM format.")
        return v

"""Pydantic v2 schemas for daily/monthly work reports and the HR report overview."""

import uuid
from datetime import date, datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator

from ndi_hr.common.pagination import PaginationMeta

ReportSort = Literal["recent", "oldest"]


def _strip_optional(value):
    if isinstance(value, str):
        value = value.strip()
        return value or None
    return value


def _strip_required(value):
    return value.strip() if isinstance(value, str) else value


# ═════════════════════════════════════════════════════════════════════
# Submissions
# ═════════════════════════════════════════════════════════════════════


class DailyEntryInput(BaseModel):
    work_type: str = Field(..., min_length=1, max_length=120)
    task_name: str = Field(..., min_length=1, max_length=255)
    others: Optional[str] = Field(None, max_length=255)
    details: str = Field(..., min_length=1)
    working_hours: float = Field(..., gt=0, le=24)

    @field_validator("work_type", "task_name", "details", mode="before")
    @classmethod
    def strip_required(cls, v):
        return _strip_required(v)

    @field_validator("others", mode="before")
    @classmethod
    def blank_to_none(cls, v):
        return _strip_optional(v)


class DailyReportRequest(BaseModel):
    report_date: date
    note: Optional[str] = Field(None, max_length=2000)
    entries: list[DailyEntryInput] = Field(..., min_length=1)

    @field_validator("note", mode="before")
    @classmethod
    def blank_to_none(cls, v):
        return _strip_optional(v)


class MonthlyEntryInput(BaseModel):
    task_name: str = Field(..., min_length=1, max_length=255)
    story_point: float = Field(..., ge=0, le=500)
    working_hours: float = Field(..., gt=0, le=200)

    @field_validator("task_name", mode="before")
    @classmethod
    def strip_required(cls, v):
        return _strip_required(v)


class MonthlyReportRequest(BaseModel):
    # Any day inside the month; stored as the first of the month
    report_month: date
    entries: list[MonthlyEntryInput] = Field(..., min_length=1)


class DailyReportSubmitted(BaseModel):
    id: uuid.UUID
    report_date: date
    entry_count: int


class MonthlyReportSubmitted(BaseModel):
    id: uuid.UUID
    report_month: date
    entry_count: int


# ═════════════════════════════════════════════════════════════════════
# History
# ═════════════════════════════════════════════════════════════════════


class DailyEntryItem(BaseModel):
    id: uuid.UUID
    work_type: str
    task_name: str
    others: Optional[str] = None
    details: str
    working_hours: float


class DailyReportItem(BaseModel):
    id: uuid.UUID
    report_date: date
    note: Optional[str] = None
    submitted_at: datetime
    updated_at: datetime
    entries: list[DailyEntryItem]
    total_working_hours: float


class DailyHistoryTotals(BaseModel):
    working_hours: float
    entry_count: int


class DailyHistoryResponse(BaseModel):
    items: list[DailyReportItem]
    pagination: PaginationMeta
    totals: DailyHistoryTotals


class MonthlyEntryItem(BaseModel):
    id: uuid.UUID
    task_name: str
    story_point: float
    working_hours: float


class MonthlyReportItem(BaseModel):
    id: uuid.UUID
    report_month: date
    month_label: str
    submitted_at: datetime
    updated_at: datetime
    entries: list[MonthlyEntryItem]
    total_story_points: float
    total_working_hours: float


class MonthlyHistoryTotals(BaseModel):
    working_hours: float
    story_points: float
    entry_count: int


class MonthlyHistoryResponse(BaseModel):
    items: list[MonthlyReportItem]
    pagination: PaginationMeta
    totals: MonthlyHistoryTotals


# ═════════════════════════════════════════════════════════════════════
# HR overview
# ═════════════════════════════════════════════════════════════════════


class HrDailyRow(BaseModel):
    id: uuid.UUID
    employee_id: uuid.UUID
    employee_name: str
    report_date: date
    entry_count: int
    total_working_hours: float
    work_types: list[str]
    top_tasks: list[str]
    note: Optional[str] = None


class HrMonthlyRow(BaseModel):
    id: uuid.UUID
    employee_id: uuid.UUID
    employee_name: str
    report_month: date
    month_label: str
    entry_count: int
    total_working_hours: float
    total_story_points: float
    top_tasks: list[str]


class DailyTrendPoint(BaseModel):
    date: date
    label: str
    report_count: int
    working_hours: float


class MonthlyTrendPoint(BaseModel):
    month: date
    label: str
    report_count: int
    working_hours: float
    story_points: float


class ReportEmployeeOption(BaseModel):
    id: uuid.UUID
    name: str


class ReportFilters(BaseModel):
    start_date: date
    end_date: date
    employee_id: Optional[uuid.UUID] = None
    search: Optional[str] = None
    employees: list[ReportEmployeeOption]


class HrReportOverviewResponse(BaseModel):
    filters: ReportFilters
    daily: list[HrDailyRow]
    monthly: list[HrMonthlyRow]
    daily_trend: list[DailyTrendPoint]
    monthly_trend: list[MonthlyTrendPoint]

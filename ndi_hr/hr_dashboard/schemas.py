"""Response schemas for the HR workspace landing dashboard."""

import uuid
from datetime import date
from typing import Literal

from pydantic import BaseModel

AttendanceState = Literal["on-time", "late", "remote", "missing"]


class StatCard(BaseModel):
    label: str
    value: str
    trend: str
    descriptor: str


class CoverageSummary(BaseModel):
    present_count: int
    total_employees: int
    percent_label: str
    change_label: str
    synced_label: str


class AttendanceBreakdownCard(BaseModel):
    id: str
    label: str
    value: int
    delta: str


class AttendanceTrendPoint(BaseModel):
    hour: str
    onsite: int
    remote: int


class AttendanceLogEntry(BaseModel):
    id: uuid.UUID
    name: str
    department: str
    check_in: str
    status: str
    method: str
    state: AttendanceState


class LeaveApprovalCard(BaseModel):
    id: uuid.UUID
    name: str
    role: str
    type: str
    duration: str
    balance: str
    coverage: str
    submitted: str


class QuickAction(BaseModel):
    id: str
    title: str
    detail: str
    meta: str
    cta: str


class WorkforcePoint(BaseModel):
    label: str
    plan: int
    actual: int


class LabeledValue(BaseModel):
    label: str
    value: str
    detail: str


class EngagementGauge(BaseModel):
    value: int
    change: str


class TeamCapacityItem(BaseModel):
    team: str
    committed: int
    available: int


class HrDashboardResponse(BaseModel):
    date: date
    stat_highlights: list[StatCard]
    coverage_summary: CoverageSummary
    attendance_breakdown: list[AttendanceBreakdownCard]
    attendance_trend: list[AttendanceTrendPoint]
    attendance_log: list[AttendanceLogEntry]
    leave_approvals: list[LeaveApprovalCard]
    quick_actions: list[QuickAction]
    workforce_capacity: list[WorkforcePoint]
    workforce_signals: list[LabeledValue]
    engagement_gauge: EngagementGauge
    engagement_snapshot: list[LabeledValue]
    team_capacity: list[TeamCapacityItem]

"""Response schemas for the "my team" overview."""

import uuid
from datetime import date
from typing import Optional

from pydantic import BaseModel

from ndi_hr.common.constants import (
    EmploymentStatus,
    EmploymentType,
    LeaveStatus,
    LeaveType,
    WorkModel,
)


class TeamPerson(BaseModel):
    id: uuid.UUID
    full_name: str
    preferred_name: Optional[str] = None
    avatar_url: Optional[str] = None
    designation: Optional[str] = None
    email: Optional[str] = None
    work_model: Optional[WorkModel] = None
    is_team_lead: bool = False


class TeamMember(BaseModel):
    id: uuid.UUID
    user_id: uuid.UUID
    full_name: str
    preferred_name: Optional[str] = None
    avatar_url: Optional[str] = None
    designation: Optional[str] = None
    employment_type: EmploymentType
    employment_type_label: str
    status: EmploymentStatus
    status_label: str
    work_model: Optional[WorkModel] = None
    work_model_label: str
    location: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    start_date: Optional[date] = None
    start_date_label: Optional[str] = None
    tenure_months: int
    tenure_label: str
    is_team_lead: bool


class TeamHighlight(BaseModel):
    id: str
    label: str
    value: str
    helper: str


class TeamWorkModelStat(BaseModel):
    id: str
    label: str
    count: int
    percentage: int
    helper: str


class TeamAnniversary(BaseModel):
    member_id: uuid.UUID
    member_name: str
    date: date
    date_label: str
    years_completed: int
    days_away: int


class TeamUpcomingLeave(BaseModel):
    id: uuid.UUID
    member_id: uuid.UUID
    member_name: str
    leave_type: LeaveType
    leave_type_label: str
    status: LeaveStatus
    status_label: str
    start_date: date
    end_date: date
    range_label: str
    helper: str


class TeamSummary(BaseModel):
    id: uuid.UUID
    name: str
    description: Optional[str] = None
    department_name: Optional[str] = None
    leads: list[TeamPerson]
    manager: Optional[TeamPerson] = None
    location_hint: Optional[str] = None


class TeamStats(BaseModel):
    headcount: int = 0
    active: int = 0
    avg_tenure_months: int = 0
    avg_tenure_label: str = "—"


class MyTeamOverviewResponse(BaseModel):
    has_team: bool
    timezone: Optional[str] = None
    team: Optional[TeamSummary] = None
    stats: TeamStats
    highlights: list[TeamHighlight] = []
    work_model_stats: list[TeamWorkModelStat] = []
    members: list[TeamMember] = []
    new_joiners: list[TeamMember] = []
    anniversaries: list[TeamAnniversary] = []
    upcoming_leaves: list[TeamUpcomingLeave] = []

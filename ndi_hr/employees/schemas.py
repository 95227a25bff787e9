"""Pydantic v2 schemas for the HR employee directory, edit form and invitations."""

import uuid
from datetime import date
from typing import Literal, Optional

from pydantic import BaseModel, EmailStr, Field, field_validator

from ndi_hr.common.constants import EmploymentType, UserRole, WorkModel

EmploymentTypeLabel = Literal["Full-time", "Part-time", "Contract", "Intern"]
WorkArrangementLabel = Literal["On-site", "Hybrid", "Remote"]
DirectoryStatusLabel = Literal["Active", "On Leave", "Probation", "Pending"]


def _strip_optional(value):
    if isinstance(value, str):
        value = value.strip()
        return value or None
    return value


# ═════════════════════════════════════════════════════════════════════
# Directory / dashboard
# ═════════════════════════════════════════════════════════════════════


class EmployeeDirectoryEntry(BaseModel):
    id: uuid.UUID
    user_role: UserRole
    employee_code: Optional[str] = None
    name: str
    role: str
    department: Optional[str] = None
    squad: Optional[str] = None
    location: Optional[str] = None
    status: str
    start_date: Optional[date] = None
    email: str
    phone: Optional[str] = None
    manager: Optional[str] = None
    employment_type: str
    work_arrangement: Optional[str] = None
    avatar_initials: str
    profile_photo_url: Optional[str] = None
    experience: str
    can_terminate: bool


class OptionItem(BaseModel):
    value: str
    label: str


class InviteDepartmentOption(BaseModel):
    id: uuid.UUID
    name: str
    head_id: Optional[uuid.UUID] = None
    head_name: Optional[str] = None


class InviteTeamOption(BaseModel):
    id: uuid.UUID
    name: str
    department_id: uuid.UUID
    lead_id: Optional[uuid.UUID] = None
    lead_name: Optional[str] = None


class ManualInviteOptions(BaseModel):
    organization_domain: Optional[str] = None
    organization_name: str
    departments: list[InviteDepartmentOption]
    teams: list[InviteTeamOption]
    locations: list[str]
    employment_types: list[OptionItem]
    work_models: list[OptionItem]
    allowed_roles: list[OptionItem]


class EmployeeDashboardResponse(BaseModel):
    viewer_role: UserRole
    viewer_id: uuid.UUID
    directory: list[EmployeeDirectoryEntry]
    manual_invite: ManualInviteOptions


# ═════════════════════════════════════════════════════════════════════
# Profile / edit form
# ═════════════════════════════════════════════════════════════════════


class EmergencyContactSummary(BaseModel):
    name: str
    phone: str
    relation: str


class LeaveBalances(BaseModel):
    annual: float
    sick: float
    casual: float
    parental: float


class EmployeeProfileDetail(BaseModel):
    id: uuid.UUID
    employee_code: Optional[str] = None
    name: str
    role: str
    department: Optional[str] = None
    squad: Optional[str] = None
    location: Optional[str] = None
    status: str
    start_date: Optional[date] = None
    email: str
    phone: Optional[str] = None
    manager: Optional[str] = None
    employment_type: str
    work_arrangement: Optional[str] = None
    avatar_initials: str
    profile_photo_url: Optional[str] = None
    experience: str
    address: Optional[str] = None
    emergency_contact: Optional[EmergencyContactSummary] = None
    leave_balances: LeaveBalances


class EmployeeProfileResponse(BaseModel):
    profile: EmployeeProfileDetail


class EmployeeForm(BaseModel):
    id: uuid.UUID
    user_role: UserRole
    employee_code: Optional[str] = None
    full_name: str
    preferred_name: Optional[str] = None
    email: str
    phone: Optional[str] = None
    address: Optional[str] = None
    role: str
    department: Optional[str] = None
    employment_type: str
    work_arrangement: Optional[str] = None
    work_location: Optional[str] = None
    start_date: Optional[date] = None
    status: str
    emergency_contact: Optional[EmergencyContactSummary] = None
    profile_photo_url: Optional[str] = None
    leave_balances: LeaveBalances
    gross_salary: float
    income_tax: float


class EditPermissions(BaseModel):
    can_edit: bool
    viewer_role: UserRole
    target_role: UserRole
    reason: Optional[str] = None
    can_edit_compensation: bool


class EmployeeFormResponse(BaseModel):
    form: EmployeeForm
    permissions: EditPermissions


# ═════════════════════════════════════════════════════════════════════
# Mutations
# ═════════════════════════════════════════════════════════════════════


class UpdateEmployeeRequest(BaseModel):
    full_name: str = Field(..., min_length=1)
    preferred_name: Optional[str] = None
    email: EmailStr
    phone: Optional[str] = None
    address: Optional[str] = None
    role: str = Field(..., min_length=1)
    department: Optional[str] = None
    employment_type: EmploymentTypeLabel
    work_arrangement: Optional[WorkArrangementLabel] = None
    work_location: Optional[str] = None
    start_date: Optional[date] = None
    status: DirectoryStatusLabel
    emergency_name: Optional[str] = None
    emergency_phone: Optional[str] = None
    emergency_relation: Optional[str] = None
    gross_salary: Optional[float] = Field(None, ge=0)
    income_tax: Optional[float] = Field(None, ge=0)

    @field_validator(
        "preferred_name", "phone", "address", "department", "work_location",
        "emergency_name", "emergency_phone", "emergency_relation",
        mode="before",
    )
    @classmethod
    def blank_to_none(cls, v):
        return _strip_optional(v)


class LeaveQuotaRequest(BaseModel):
    annual: float = Field(..., ge=0, le=365)
    sick: float = Field(..., ge=0, le=365)
    casual: float = Field(..., ge=0, le=365)
    parental: float = Field(..., ge=0, le=365)


class LeaveQuotaResponse(BaseModel):
    leave_balances: LeaveBalances


class CompensationRequest(BaseModel):
    gross_salary: float = Field(..., ge=0)
    income_tax: float = Field(..., ge=0)


class CompensationFigures(BaseModel):
    gross_salary: float
    income_tax: float


class CompensationResponse(BaseModel):
    compensation: CompensationFigures


class InviteEmployeeRequest(BaseModel):
    full_name: str = Field(..., min_length=3)
    employee_code: str = Field(..., min_length=1)
    work_email: EmailStr
    invite_role: UserRole
    designation: str = Field(..., min_length=2)
    department_id: Optional[uuid.UUID] = None
    team_id: Optional[uuid.UUID] = None
    manager_id: Optional[uuid.UUID] = None
    phone_number: str = Field(..., pattern=r"^\+?[0-9()\s-]{7,20}$")
    start_date: Optional[date] = None
    work_location: Optional[str] = None
    employment_type: EmploymentType
    work_model: WorkModel
    notes: Optional[str] = Field(None, max_length=2000)

    @field_validator("department_id", "team_id", "manager_id", "work_location", "notes", mode="before")
    @classmethod
    def blank_to_none(cls, v):
        return _strip_optional(v)


class InviteEmployeeResponse(BaseModel):
    user_id: uuid.UUID
    email: str
    role: UserRole
    invite_url: str

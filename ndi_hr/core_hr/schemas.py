"""Pydantic v2 schemas for the HR back office: departments, teams, organization."""

import uuid
from datetime import datetime
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, EmailStr, Field, field_validator


def _strip_optional(value):
    if isinstance(value, str):
        value = value.strip()
        return value or None
    return value


# ═════════════════════════════════════════════════════════════════════
# Department schemas
# ═════════════════════════════════════════════════════════════════════


class DepartmentPerson(BaseModel):
    user_id: uuid.UUID
    full_name: str
    email: Optional[str] = None
    designation: Optional[str] = None
    avatar_url: Optional[str] = None
    department_id: Optional[uuid.UUID] = None
    department_name: Optional[str] = None


class DepartmentItem(BaseModel):
    id: uuid.UUID
    name: str
    code: Optional[str] = None
    description: Optional[str] = None
    head_user_id: Optional[uuid.UUID] = None
    head_name: Optional[str] = None
    head_email: Optional[str] = None
    head_avatar_url: Optional[str] = None
    member_count: int
    member_user_ids: list[uuid.UUID]
    member_preview: list[DepartmentPerson]
    created_at: datetime
    updated_at: datetime


class DepartmentOverviewResponse(BaseModel):
    viewer_role: str
    can_manage: bool
    departments: list[DepartmentItem]
    employees: list[DepartmentPerson]


class DepartmentRequest(BaseModel):
    name: str = Field(..., min_length=2, max_length=120)
    code: Optional[str] = Field(None, min_length=2, max_length=24)
    description: Optional[str] = Field(None, max_length=500)

    @field_validator("code", "description", mode="before")
    @classmethod
    def blank_to_none(cls, v):
        return _strip_optional(v)


class AssignHeadRequest(BaseModel):
    head_user_id: Optional[uuid.UUID] = None


class AssignMembersRequest(BaseModel):
    member_user_ids: list[uuid.UUID] = Field(default_factory=list)


# ═════════════════════════════════════════════════════════════════════
# Team schemas
# ═════════════════════════════════════════════════════════════════════


class TeamPerson(BaseModel):
    user_id: uuid.UUID
    full_name: str
    designation: Optional[str] = None
    email: Optional[str] = None
    avatar_url: Optional[str] = None
    team_id: Optional[uuid.UUID] = None
    team_name: Optional[str] = None
    is_team_lead: bool = False


class DepartmentOption(BaseModel):
    id: uuid.UUID
    name: str


class TeamItem(BaseModel):
    id: uuid.UUID
    name: str
    description: Optional[str] = None
    department_id: uuid.UUID
    department_name: str
    leads: list[TeamPerson]
    lead_user_ids: list[uuid.UUID]
    member_user_ids: list[uuid.UUID]
    member_count: int
    member_preview: list[TeamPerson]


class TeamOverviewResponse(BaseModel):
    viewer_role: str
    can_manage: bool
    departments: list[DepartmentOption]
    employees: list[TeamPerson]
    teams: list[TeamItem]


class TeamRequest(BaseModel):
    name: str = Field(..., min_length=2, max_length=120)
    department_id: uuid.UUID
    description: Optional[str] = Field(None, max_length=500)

    @field_validator("description", mode="before")
    @classmethod
    def blank_to_none(cls, v):
        return _strip_optional(v)


class AssignLeadsRequest(BaseModel):
    lead_user_ids: list[uuid.UUID] = Field(default_factory=list)


# ═════════════════════════════════════════════════════════════════════
# Organization schemas
# ═════════════════════════════════════════════════════════════════════


class OrganizationDetails(BaseModel):
    id: uuid.UUID
    name: str
    domain: Optional[str] = None
    timezone: str
    locale: str
    logo_url: Optional[str] = None
    member_count: int
    created_at: datetime
    updated_at: datetime


class OrganizationMember(BaseModel):
    id: uuid.UUID
    name: str
    email: str
    role: str
    designation: Optional[str] = None
    avatar_url: Optional[str] = None


class OrganizationManagementResponse(BaseModel):
    viewer_role: str
    can_manage: bool
    organization: Optional[OrganizationDetails] = None
    admins: list[OrganizationMember]
    eligible_members: list[OrganizationMember]


class UpdateOrganizationRequest(BaseModel):
    name: str = Field(..., min_length=3, max_length=120)
    domain: Optional[str] = Field(None, min_length=3, max_length=120)
    timezone: Optional[str] = Field(None, min_length=2, max_length=120)
    locale: Optional[str] = Field(None, min_length=2, max_length=32)
    logo_url: str = Field(..., min_length=5, max_length=1024)

    @field_validator("domain", "timezone", "locale", mode="before")
    @classmethod
    def blank_to_none(cls, v):
        return _strip_optional(v)

    @field_validator("timezone")
    @classmethod
    def known_timezone(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError):
            raise ValueError("Select a valid timezone.")
        return v


class OrganizationUpdateResponse(BaseModel):
    organization: OrganizationDetails


class RoleChangeResponse(BaseModel):
    user_id: uuid.UUID
    role: str


class LogoUploadResponse(BaseModel):
    logo_url: str


# ═════════════════════════════════════════════════════════════════════
# Organization administration (super admin)
# ═════════════════════════════════════════════════════════════════════


class OrganizationListResponse(BaseModel):
    organizations: list[OrganizationDetails]


class CreateOrganizationRequest(BaseModel):
    name: str = Field(..., min_length=2, max_length=120)
    domain: Optional[str] = Field(None, min_length=3, max_length=120)
    timezone: Optional[str] = Field(None, min_length=2, max_length=120)
    locale: Optional[str] = Field(None, min_length=2, max_length=32)
    logo_url: Optional[str] = Field(None, max_length=1024)
    owner_name: str = Field(..., min_length=2, max_length=120)
    owner_email: EmailStr
    owner_phone: Optional[str] = Field(None, max_length=32)
    owner_designation: Optional[str] = Field(None, max_length=120)

    @field_validator("domain", "timezone", "locale", "logo_url", "owner_phone", "owner_designation", mode="before")
    @classmethod
    def blank_to_none(cls, v):
        return _strip_optional(v)

    @field_validator("timezone")
    @classmethod
    def known_timezone(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError):
            raise ValueError("Select a valid timezone.")
        return v


class CreateOrganizationResponse(BaseModel):
    organization_id: uuid.UUID
    organization_name: str
    owner_id: uuid.UUID
    owner_email: str
    invite_url: str


class DeleteOrganizationRequest(BaseModel):
    password: str = Field(..., min_length=1, max_length=128)


class DeleteOrganizationResponse(BaseModel):
    organization_id: uuid.UUID
    removed_users: int
    message: str

"""Pydantic v2 schemas for project management."""

import uuid
from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from ndi_hr.common.constants import ProjectStatus


def _strip_optional(value):
    if isinstance(value, str):
        value = value.strip()
        return value or None
    return value


class ProjectMember(BaseModel):
    user_id: uuid.UUID
    full_name: str
    email: Optional[str] = None
    designation: Optional[str] = None
    avatar_url: Optional[str] = None


class ProjectSummary(BaseModel):
    id: uuid.UUID
    name: str
    code: Optional[str] = None
    description: Optional[str] = None
    client_name: Optional[str] = None
    status: ProjectStatus
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    project_manager_id: Optional[uuid.UUID] = None
    project_manager_name: Optional[str] = None
    project_manager_email: Optional[str] = None
    project_manager_avatar_url: Optional[str] = None
    member_count: int
    member_user_ids: list[uuid.UUID]
    member_preview: list[ProjectMember]
    created_at: datetime
    updated_at: datetime


class ProjectOverviewResponse(BaseModel):
    viewer_role: str
    can_manage: bool
    projects: list[ProjectSummary]
    employees: list[ProjectMember]


class ProjectRequest(BaseModel):
    name: str = Field(..., min_length=3, max_length=160)
    code: Optional[str] = Field(None, max_length=64)
    description: Optional[str] = Field(None, max_length=2000)
    client_name: Optional[str] = Field(None, max_length=128)
    status: ProjectStatus = ProjectStatus.ACTIVE
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    project_manager_id: Optional[uuid.UUID] = None
    member_user_ids: list[uuid.UUID] = Field(default_factory=list)

    @field_validator("code", "description", "client_name", mode="before")
    @classmethod
    def blank_to_none(cls, v):
        return _strip_optional(v)

    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, v):
        return v.strip() if isinstance(v, str) else v


class ProjectMutationResponse(BaseModel):
    message: str
    project: Optional[ProjectSummary] = None

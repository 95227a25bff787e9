"""Self-service profile schemas."""

import uuid
from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, EmailStr, Field, field_validator

from ndi_hr.common.constants import EmploymentType, Gender, WorkModel


def _blank_to_none(value):
    if isinstance(value, str):
        value = value.strip()
        return value or None
    return value


# ── Response ────────────────────────────────────────────────────────

class ProfileSection(BaseModel):
    first_name: str
    last_name: str
    preferred_name: Optional[str] = None
    gender: Optional[Gender] = None
    date_of_birth: Optional[date] = None
    nationality: Optional[str] = None
    current_address: Optional[str] = None
    permanent_address: Optional[str] = None
    work_model: Optional[WorkModel] = None
    personal_email: Optional[str] = None
    work_email: Optional[str] = None
    personal_phone: Optional[str] = None
    work_phone: Optional[str] = None
    profile_photo_url: Optional[str] = None
    bio: Optional[str] = None

    model_config = {"from_attributes": True}


class EmploymentSection(BaseModel):
    employee_code: Optional[str] = None
    designation: str
    employment_type: EmploymentType
    start_date: date
    status: str
    department_name: Optional[str] = None
    team_name: Optional[str] = None
    manager_name: Optional[str] = None
    primary_location: Optional[str] = None


class EmergencyContactSection(BaseModel):
    name: str
    phone: str
    relationship: str
    alternate_phone: Optional[str] = None


class BankAccountSection(BaseModel):
    bank_name: str
    account_holder: str
    account_number: str
    branch: Optional[str] = None
    swift_code: Optional[str] = None
    tax_id: Optional[str] = None

    model_config = {"from_attributes": True}


class UserProfileResponse(BaseModel):
    id: uuid.UUID
    email: str
    phone: Optional[str] = None
    organization_name: str
    last_login_at: Optional[datetime] = None
    profile: Optional[ProfileSection] = None
    employment: Optional[EmploymentSection] = None
    emergency_contact: Optional[EmergencyContactSection] = None
    bank_account: Optional[BankAccountSection] = None


# ── Update ──────────────────────────────────────────────────────────

class ProfileInput(BaseModel):
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    preferred_name: Optional[str] = Field(None, max_length=100)
    gender: Optional[Gender] = None
    date_of_birth: Optional[date] = None
    nationality: Optional[str] = None
    work_model: Optional[WorkModel] = None
    bio: Optional[str] = None
    work_email: EmailStr
    personal_email: Optional[EmailStr] = None
    work_phone: Optional[str] = None
    personal_phone: Optional[str] = None
    current_address: Optional[str] = None
    permanent_address: Optional[str] = None

    @field_validator(
        "preferred_name", "nationality", "bio", "work_phone", "personal_phone",
        "current_address", "permanent_address", mode="before",
    )
    @classmethod
    def strip_optional(cls, v):
        return _blank_to_none(v)


class EmploymentInput(BaseModel):
    employee_code: str = Field(..., min_length=1, max_length=32)
    designation: str = Field(..., min_length=1, max_length=120)
    department_name: Optional[str] = Field(None, max_length=120)
    employment_type: EmploymentType
    start_date: Optional[date] = None
    primary_location: Optional[str] = Field(None, max_length=120)

    @field_validator("department_name", "primary_location", mode="before")
    @classmethod
    def strip_optional(cls, v):
        return _blank_to_none(v)


class EmergencyContactInput(BaseModel):
    name: str = Field(..., min_length=1, max_length=120)
    relationship: str = Field(..., min_length=1, max_length=64)
    phone: str = Field(..., min_length=1, max_length=32)
    alternate_phone: Optional[str] = Field(None, max_length=32)

    @field_validator("alternate_phone", mode="before")
    @classmethod
    def strip_optional(cls, v):
        return _blank_to_none(v)


class BankAccountInput(BaseModel):
    bank_name: str = Field(..., min_length=1, max_length=120)
    account_holder: str = Field(..., min_length=1, max_length=120)
    account_number: str = Field(..., min_length=1, max_length=64)
    branch: Optional[str] = None
    swift_code: Optional[str] = None
    tax_id: Optional[str] = None

    @field_validator("branch", "swift_code", "tax_id", mode="before")
    @classmethod
    def strip_optional(cls, v):
        return _blank_to_none(v)


class UpdateProfileRequest(BaseModel):
    profile: ProfileInput
    employment: EmploymentInput
    emergency_contact: EmergencyContactInput
    bank_account: BankAccountInput


class UpdatePasswordRequest(BaseModel):
    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=8)


class PhotoUploadResponse(BaseModel):
    profile_photo_url: str

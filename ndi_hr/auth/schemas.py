"""Auth Pydantic schemas for request / response validation."""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, EmailStr, Field, field_validator


# ── Requests ────────────────────────────────────────────────────────

class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1)
    remember: bool = False


class SignupRequest(BaseModel):
    full_name: str = Field(min_length=2, max_length=160)
    email: EmailStr
    password: str = Field(min_length=8, max_length=128)
    employee_code: str = Field(min_length=3, max_length=32)
    phone: str = Field(min_length=6, max_length=32)
    designation: Optional[str] = Field(default=None, max_length=120)
    organization_domain: Optional[str] = Field(default=None, max_length=120)
    profile_photo_url: Optional[str] = Field(default=None, max_length=255)

    @field_validator("full_name", "employee_code", "phone")
    @classmethod
    def _strip(cls, value: str) -> str:
        cleaned = value.strip()
        if not cleaned:
            raise ValueError("This field is required.")
        return cleaned

    @field_validator("profile_photo_url")
    @classmethod
    def _signup_photo(cls, value: Optional[str]) -> Optional[str]:
        if value is None or not value.strip():
            return None
        cleaned = value.strip()
        if not cleaned.startswith("/uploads/pending-signups/") or ".." in cleaned:
            raise ValueError("Upload the photo through the signup form.")
        return cleaned


class CompleteInviteRequest(BaseModel):
    token: str = Field(min_length=16)
    email: EmailStr
    password: str = Field(min_length=8, max_length=128)
    first_name: Optional[str] = Field(default=None, max_length=100)
    last_name: Optional[str] = Field(default=None, max_length=100)
    preferred_name: Optional[str] = Field(default=None, max_length=100)


class ForgotPasswordRequest(BaseModel):
    email: EmailStr


class ResetPasswordRequest(BaseModel):
    token: str = Field(min_length=16)
    password: str = Field(min_length=8, max_length=128)


# ── Responses ───────────────────────────────────────────────────────

class UserSummary(BaseModel):
    id: uuid.UUID
    email: str
    role: str
    status: str
    organization_id: Optional[uuid.UUID] = None
    organization_name: Optional[str] = None
    display_name: str
    avatar_url: Optional[str] = None
    employee_code: Optional[str] = None
    designation: Optional[str] = None


class LoginResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_at: datetime
    user: UserSummary


class SignupResponse(BaseModel):
    user_id: uuid.UUID
    email: str
    organization_id: Optional[uuid.UUID] = None
    organization_name: Optional[str] = None
    message: str


class InviteDetailsResponse(BaseModel):
    user_id: uuid.UUID
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    preferred_name: Optional[str] = None
    organization_name: Optional[str] = None
    role: str
    designation: Optional[str] = None
    department_name: Optional[str] = None
    expires_at: datetime


class MessageResponse(BaseModel):
    message: str


class SignupPhotoResponse(BaseModel):
    profile_photo_url: str

"""Pydantic v2 schemas for leave applications, attachments and the HR review queue."""

import uuid
from datetime import date, datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from ndi_hr.common.constants import MAX_LEAVE_ATTACHMENTS, LeaveStatus, LeaveType

MAX_ATTACHMENT_BYTES = 5 * 1024 * 1024


# ═════════════════════════════════════════════════════════════════════
# Shared
# ═════════════════════════════════════════════════════════════════════


class LeaveAttachmentResponse(BaseModel):
    id: str
    name: str
    mime_type: Optional[str] = None
    size_bytes: Optional[int] = None
    download_url: Optional[str] = None
    uploaded_at: Optional[str] = None


class LeaveBalanceResponse(BaseModel):
    type: LeaveType
    label: str
    remaining: float


class LeaveRequestResponse(BaseModel):
    id: uuid.UUID
    leave_type: LeaveType
    leave_type_label: str
    start_date: date
    end_date: date
    total_days: float
    status: LeaveStatus
    reason: Optional[str] = None
    note: Optional[str] = None
    attachments: list[LeaveAttachmentResponse] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime


# ═════════════════════════════════════════════════════════════════════
# Employee
# ═════════════════════════════════════════════════════════════════════


class LeaveSummaryResponse(BaseModel):
    balances: list[LeaveBalanceResponse]
    requests: list[LeaveRequestResponse]


class LeaveAttachmentInput(BaseModel):
    id: Optional[str] = None
    name: str = Field(..., min_length=1, max_length=120)
    type: Optional[str] = Field(None, max_length=120)
    size: Optional[int] = Field(None, ge=0)
    storage_key: Optional[str] = None

    @field_validator("size")
    @classmethod
    def validate_size(cls, v: Optional[int]) -> Optional[int]:
        if v is not None and v > MAX_ATTACHMENT_BYTES:
            raise ValueError("Attachments must be smaller than 5 MB.")
        return v

    @field_validator("storage_key")
    @classmethod
    def require_storage_key(cls, v: Optional[str]) -> str:
        if not v or not v.strip():
            raise ValueError("Attachment reference is missing.")
        return v.strip()


class CreateLeaveApplicationRequest(BaseModel):
    leave_type: LeaveType
    start_date: date
    end_date: date
    reason: str = Field(..., min_length=10, max_length=2000)
    note: Optional[str] = Field(None, max_length=2000)
    attachments: list[LeaveAttachmentInput] = Field(
        default_factory=list, max_length=MAX_LEAVE_ATTACHMENTS,
    )

    @field_validator("reason", mode="before")
    @classmethod
    def strip_reason(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("note", mode="before")
    @classmethod
    def blank_note(cls, v):
        if isinstance(v, str):
            v = v.strip()
            return v or None
        return v

    @model_validator(mode="after")
    def check_dates_and_documents(self):
        if self.end_date < self.start_date:
            raise ValueError("End date must be on or after the start date.")
        if self.leave_type == LeaveType.SICK and not self.attachments:
            raise ValueError("Supporting documentation is required for sick leave.")
        return self


class SubmitLeaveResponse(BaseModel):
    request: LeaveRequestResponse
    balances: list[LeaveBalanceResponse]


class AttachmentUploadResponse(BaseModel):
    attachment: LeaveAttachmentResponse
    storage_key: str


class DeleteAttachmentRequest(BaseModel):
    key: str = ""


# ═════════════════════════════════════════════════════════════════════
# HR review queue
# ═════════════════════════════════════════════════════════════════════


SortField = Literal["submittedAt", "startDate", "leaveType", "status"]
SortOrder = Literal["asc", "desc"]


class HrLeaveEmployee(BaseModel):
    id: uuid.UUID
    name: str
    email: str
    phone: Optional[str] = None
    employee_code: Optional[str] = None
    designation: Optional[str] = None
    department: Optional[str] = None
    team: Optional[str] = None
    organization: Optional[str] = None


class HrLeaveRequest(BaseModel):
    id: uuid.UUID
    leave_type: LeaveType
    leave_type_label: str
    start_date: date
    end_date: date
    total_days: float
    status: LeaveStatus
    reason: Optional[str] = None
    note: Optional[str] = None
    submitted_at: datetime
    attachments: list[LeaveAttachmentResponse] = Field(default_factory=list)
    employee: HrLeaveEmployee
    balances: list[LeaveBalanceResponse]
    remaining_balance: LeaveBalanceResponse


class HrLeaveListResponse(BaseModel):
    requests: list[HrLeaveRequest]


class UpdateLeaveStatusRequest(BaseModel):
    status: Literal["PROCESSING", "APPROVED", "DENIED", "CANCELLED"]
    note: Optional[str] = Field(None, max_length=2000)


class PendingCountResponse(BaseModel):
    count: int

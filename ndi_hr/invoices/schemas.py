"""Pydantic v2 schemas for employee invoices and HR invoice management."""

import uuid
from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from ndi_hr.common.constants import InvoiceStatus


# ═════════════════════════════════════════════════════════════════════
# Responses
# ═════════════════════════════════════════════════════════════════════


class EmployeeInvoiceListItem(BaseModel):
    id: uuid.UUID
    title: str
    period_label: str
    due_date: Optional[date] = None
    status: InvoiceStatus
    status_label: str
    currency: str
    total: float
    total_formatted: str
    updated_at: datetime
    is_actionable: bool


class EmployeeInvoiceListResponse(BaseModel):
    invoices: list[EmployeeInvoiceListItem]


class InvoiceUnlockResponse(BaseModel):
    token: str


class InvoicePerson(BaseModel):
    id: uuid.UUID
    name: str
    email: str


class InvoiceEmployee(InvoicePerson):
    phone: Optional[str] = None
    address: Optional[str] = None
    employee_code: Optional[str] = None


class InvoiceTimestamps(BaseModel):
    created_at: datetime
    sent_at: Optional[datetime] = None
    confirmed_at: Optional[datetime] = None
    ready_at: Optional[datetime] = None


class InvoiceReviewRequest(BaseModel):
    comment: Optional[str] = None
    requested_at: Optional[datetime] = None
    requested_by: Optional[InvoicePerson] = None


class InvoiceBankAccount(BaseModel):
    account_holder: str
    bank_name: str
    account_number: str
    branch: Optional[str] = None
    swift_code: Optional[str] = None


class InvoiceLineItem(BaseModel):
    id: uuid.UUID
    description: str
    quantity: int
    unit_price: float
    amount: float


class InvoiceDetail(BaseModel):
    id: uuid.UUID
    title: str
    period_month: int
    period_year: int
    period_label: str
    due_date: Optional[date] = None
    currency: str
    status: InvoiceStatus
    status_label: str
    subtotal: float
    tax: float
    total: float
    subtotal_formatted: str
    tax_formatted: str
    total_formatted: str
    notes: Optional[str] = None
    employee: InvoiceEmployee
    created_by: Optional[InvoicePerson] = None
    timestamps: InvoiceTimestamps
    review_request: InvoiceReviewRequest
    bank_account: Optional[InvoiceBankAccount] = None
    items: list[InvoiceLineItem]
    can_confirm: bool
    can_request_changes: bool


class InvoiceDetailResponse(BaseModel):
    invoice: InvoiceDetail


class HrInvoiceListItem(BaseModel):
    id: uuid.UUID
    title: str
    employee_id: uuid.UUID
    employee_name: str
    period_month: int
    period_year: int
    period_label: str
    due_date: Optional[date] = None
    status: InvoiceStatus
    status_label: str
    subtotal: float
    tax: float
    total: float
    currency: str
    total_formatted: str
    updated_at: datetime
    can_send: bool
    review_comment: Optional[str] = None
    review_requested_at: Optional[datetime] = None


class HrInvoiceEmployeeOption(BaseModel):
    id: uuid.UUID
    name: str
    employee_code: Optional[str] = None
    designation: Optional[str] = None
    gross_salary: float
    income_tax: float


class HrInvoiceDashboardResponse(BaseModel):
    invoices: list[HrInvoiceListItem]
    employee_options: list[HrInvoiceEmployeeOption]
    pending_review: int


# ═════════════════════════════════════════════════════════════════════
# Requests
# ═════════════════════════════════════════════════════════════════════


class UnlockInvoiceRequest(BaseModel):
    password: str = Field(..., min_length=6)


class InvoiceTokenRequest(BaseModel):
    token: str = Field(..., min_length=1)


class RequestInvoiceChangesRequest(InvoiceTokenRequest):
    comment: str = Field(..., max_length=2000)


class InvoiceItemInput(BaseModel):
    description: str = Field(..., max_length=255)
    quantity: int = Field(1, ge=1)
    unit_price: float

    @field_validator("description", mode="before")
    @classmethod
    def strip_description(cls, v):
        return v.strip() if isinstance(v, str) else v


class InvoiceUpsertRequest(BaseModel):
    employee_id: uuid.UUID
    title: str = Field(..., min_length=3, max_length=160)
    period_month: int = Field(..., ge=1, le=12)
    period_year: int = Field(..., ge=2000, le=2100)
    due_date: Optional[date] = None
    currency: str = Field("USD", min_length=3, max_length=12)
    tax_rate: float = Field(0, ge=0, le=100)
    notes: Optional[str] = Field(None, max_length=2000)
    items: list[InvoiceItemInput] = Field(..., min_length=1)

    @field_validator("title", mode="before")
    @classmethod
    def strip_title(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("currency", mode="before")
    @classmethod
    def normalize_currency(cls, v):
        return v.strip().upper() if isinstance(v, str) else v

    @field_validator("notes", mode="before")
    @classmethod
    def blank_notes(cls, v):
        if isinstance(v, str):
            v = v.strip()
            return v or None
        return v

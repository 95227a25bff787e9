"""Invoice routers: employee review (``/api/v1/invoices``) and HR management (``/api/v1/hr/invoices``)."""

import uuid

from fastapi import APIRouter, BackgroundTasks, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from ndi_hr.auth.dependencies import get_current_user, require_hr_access
from ndi_hr.auth.schemas import MessageResponse
from ndi_hr.core_hr.models import User
from ndi_hr.database import get_db
from ndi_hr.invoices.schemas import (
    EmployeeInvoiceListResponse,
    HrInvoiceDashboardResponse,
    HrInvoiceListItem,
    InvoiceDetailResponse,
    InvoiceTokenRequest,
    InvoiceUnlockResponse,
    InvoiceUpsertRequest,
    RequestInvoiceChangesRequest,
    UnlockInvoiceRequest,
)
from ndi_hr.invoices.service import HRInvoiceService, InvoiceService

router = APIRouter(prefix="", tags=["invoices"])
hr_router = APIRouter(prefix="", tags=["hr-invoices"])


def _client_ip(request: Request):
    return request.client.host if request.client else None


# ═════════════════════════════════════════════════════════════════════
# Employee
# ═════════════════════════════════════════════════════════════════════


# ── GET / ───────────────────────────────────────────────────────────

@router.get("", response_model=EmployeeInvoiceListResponse)
async def list_invoices(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await InvoiceService.list_invoices(db, user)


# ── POST /{invoice_id}/unlock ───────────────────────────────────────

@router.post("/{invoice_id}/unlock", response_model=InvoiceUnlockResponse)
async def unlock(
    invoice_id: uuid.UUID,
    body: UnlockInvoiceRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await InvoiceService.unlock(db, user, invoice_id, body.password)


# ── GET /{invoice_id}?token= ────────────────────────────────────────

@router.get("/{invoice_id}", response_model=InvoiceDetailResponse)
async def detail(
    invoice_id: uuid.UUID,
    token: str = Query(..., min_length=1),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await InvoiceService.detail(db, user, invoice_id, token)


# ── POST /{invoice_id}/confirm ──────────────────────────────────────

@router.post("/{invoice_id}/confirm", response_model=InvoiceDetailResponse)
async def confirm(
    invoice_id: uuid.UUID,
    body: InvoiceTokenRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await InvoiceService.confirm(db, user, invoice_id, body.token)


# ── POST /{invoice_id}/request-review ───────────────────────────────

@router.post("/{invoice_id}/request-review", response_model=InvoiceDetailResponse)
async def request_review(
    invoice_id: uuid.UUID,
    body: RequestInvoiceChangesRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await InvoiceService.request_review(db, user, invoice_id, body.token, body.comment)


# ═════════════════════════════════════════════════════════════════════
# HR
# ═════════════════════════════════════════════════════════════════════


@hr_router.get("", response_model=HrInvoiceDashboardResponse)
async def hr_dashboard(
    viewer: User = Depends(require_hr_access),
    db: AsyncSession = Depends(get_db),
):
    return await HRInvoiceService.dashboard(db, viewer)


@hr_router.post("", response_model=HrInvoiceListItem, status_code=status.HTTP_201_CREATED)
async def hr_create(
    body: InvoiceUpsertRequest,
    viewer: User = Depends(require_hr_access),
    db: AsyncSession = Depends(get_db),
):
    return await HRInvoiceService.create(db, viewer, body)


@hr_router.get("/{invoice_id}", response_model=InvoiceDetailResponse)
async def hr_detail(
    invoice_id: uuid.UUID,
    viewer: User = Depends(require_hr_access),
    db: AsyncSession = Depends(get_db),
):
    return await HRInvoiceService.detail(db, viewer, invoice_id)


@hr_router.put("/{invoice_id}", response_model=HrInvoiceListItem)
async def hr_update(
    invoice_id: uuid.UUID,
    body: InvoiceUpsertRequest,
    viewer: User = Depends(require_hr_access),
    db: AsyncSession = Depends(get_db),
):
    return await HRInvoiceService.update(db, viewer, invoice_id, body)


@hr_router.post("/{invoice_id}/send", response_model=HrInvoiceListItem)
async def hr_send(
    invoice_id: uuid.UUID,
    request: Request,
    background_tasks: BackgroundTasks,
    viewer: User = Depends(require_hr_access),
    db: AsyncSession = Depends(get_db),
):
    return await HRInvoiceService.send(
        db, viewer, invoice_id, background_tasks, ip_address=_client_ip(request),
    )


@hr_router.delete("/{invoice_id}", response_model=MessageResponse)
async def hr_delete(
    invoice_id: uuid.UUID,
    request: Request,
    viewer: User = Depends(require_hr_access),
    db: AsyncSession = Depends(get_db),
):
    await HRInvoiceService.delete(db, viewer, invoice_id, ip_address=_client_ip(request))
    return MessageResponse(message="Invoice deleted.")

"""HR employee endpoints (``/api/v1/hr/employees``)."""

import uuid

from fastapi import APIRouter, Depends, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from ndi_hr.auth.dependencies import require_hr_access
from ndi_hr.auth.schemas import MessageResponse
from ndi_hr.common.export import XLSX_MEDIA_TYPE
from ndi_hr.common.formatting import utcnow
from ndi_hr.core_hr.models import User
from ndi_hr.database import get_db
from ndi_hr.employees.schemas import (
    CompensationRequest,
    CompensationResponse,
    EmployeeDashboardResponse,
    EmployeeFormResponse,
    EmployeeProfileResponse,
    InviteEmployeeRequest,
    InviteEmployeeResponse,
    LeaveQuotaRequest,
    LeaveQuotaResponse,
    UpdateEmployeeRequest,
)
from ndi_hr.employees.service import EmployeeService

router = APIRouter(prefix="", tags=["hr-employees"])


def _client_ip(request: Request):
    return request.client.host if request.client else None


# ── GET / ───────────────────────────────────────────────────────────

@router.get("", response_model=EmployeeDashboardResponse)
async def dashboard(
    viewer: User = Depends(require_hr_access),
    db: AsyncSession = Depends(get_db),
):
    return await EmployeeService.dashboard(db, viewer)


# ── GET /export ─────────────────────────────────────────────────────

@router.get("/export")
async def export_directory(
    viewer: User = Depends(require_hr_access),
    db: AsyncSession = Depends(get_db),
):
    content = await EmployeeService.export_directory(db, viewer)
    filename = f"employees-{utcnow():%Y%m%d}.xlsx"
    return Response(
        content=content,
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


# ── POST /invite ────────────────────────────────────────────────────

@router.post("/invite", response_model=InviteEmployeeResponse, status_code=status.HTTP_201_CREATED)
async def invite(
    body: InviteEmployeeRequest,
    viewer: User = Depends(require_hr_access),
    db: AsyncSession = Depends(get_db),
):
    return await EmployeeService.invite(db, viewer, body)


# ── GET /{employee_id} ──────────────────────────────────────────────

@router.get("/{employee_id}", response_model=EmployeeProfileResponse)
async def profile(
    employee_id: uuid.UUID,
    viewer: User = Depends(require_hr_access),
    db: AsyncSession = Depends(get_db),
):
    return await EmployeeService.profile(db, viewer, employee_id)


# ── GET /{employee_id}/form ─────────────────────────────────────────

@router.get("/{employee_id}/form", response_model=EmployeeFormResponse)
async def form(
    employee_id: uuid.UUID,
    viewer: User = Depends(require_hr_access),
    db: AsyncSession = Depends(get_db),
):
    return await EmployeeService.form(db, viewer, employee_id)


# ── PUT /{employee_id} ──────────────────────────────────────────────

@router.put("/{employee_id}", response_model=EmployeeFormResponse)
async def update(
    employee_id: uuid.UUID,
    body: UpdateEmployeeRequest,
    request: Request,
    viewer: User = Depends(require_hr_access),
    db: AsyncSession = Depends(get_db),
):
    return await EmployeeService.update(
        db, viewer, employee_id, body, ip_address=_client_ip(request),
    )


# ── PUT /{employee_id}/leave-quota ──────────────────────────────────

@router.put("/{employee_id}/leave-quota", response_model=LeaveQuotaResponse)
async def update_leave_quota(
    employee_id: uuid.UUID,
    body: LeaveQuotaRequest,
    viewer: User = Depends(require_hr_access),
    db: AsyncSession = Depends(get_db),
):
    balances = await EmployeeService.update_leave_quota(db, viewer, employee_id, body)
    return LeaveQuotaResponse(leave_balances=balances)


# ── PUT /{employee_id}/compensation ─────────────────────────────────

@router.put("/{employee_id}/compensation", response_model=CompensationResponse)
async def update_compensation(
    employee_id: uuid.UUID,
    body: CompensationRequest,
    viewer: User = Depends(require_hr_access),
    db: AsyncSession = Depends(get_db),
):
    figures = await EmployeeService.update_compensation(db, viewer, employee_id, body)
    return CompensationResponse(compensation=figures)


# ── DELETE /{employee_id} ───────────────────────────────────────────

@router.delete("/{employee_id}", response_model=MessageResponse)
async def terminate(
    employee_id: uuid.UUID,
    request: Request,
    viewer: User = Depends(require_hr_access),
    db: AsyncSession = Depends(get_db),
):
    await EmployeeService.terminate(db, viewer, employee_id, ip_address=_client_ip(request))
    return MessageResponse(message="Employee terminated.")

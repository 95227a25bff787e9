"""Leave router: employee applications, attachments and the HR review queue.

Routes:
    /leave/summary                              Balances and recent requests
    /leave/applications                         Submit a request
    /leave/applications/{id}/pdf                Printable application
    /leave/attachments                          Upload / delete an attachment
    /leave/attachments/{token}                  Signed download link
    /hr/leave                                   Review queue
    /hr/leave/export                            Review queue as .xlsx
    /hr/leave/pending-count                     PENDING + PROCESSING count
    /hr/leave/{id}/status                       Review decision
"""

import uuid
from typing import Optional
from urllib.parse import quote

from fastapi import APIRouter, BackgroundTasks, Depends, File, Query, Request, Response, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from ndi_hr.auth.dependencies import get_current_user, require_hr_access
from ndi_hr.auth.schemas import MessageResponse
from ndi_hr.common.constants import LeaveStatus, LeaveType
from ndi_hr.common.export import PDF_MEDIA_TYPE, XLSX_MEDIA_TYPE
from ndi_hr.common.formatting import utcnow
from ndi_hr.core_hr.models import User
from ndi_hr.database import get_db
from ndi_hr.leave.schemas import (
    AttachmentUploadResponse,
    CreateLeaveApplicationRequest,
    DeleteAttachmentRequest,
    HrLeaveListResponse,
    HrLeaveRequest,
    LeaveSummaryResponse,
    PendingCountResponse,
    SortField,
    SortOrder,
    SubmitLeaveResponse,
    UpdateLeaveStatusRequest,
)
from ndi_hr.leave.service import HRLeaveService, LeaveService

router = APIRouter(prefix="", tags=["leave"])
hr_router = APIRouter(prefix="", tags=["hr-leave"])


def _client_ip(request: Request):
    return request.client.host if request.client else None


# ═════════════════════════════════════════════════════════════════════
# Employee
# ═════════════════════════════════════════════════════════════════════


@router.get("/summary", response_model=LeaveSummaryResponse)
async def summary(
    limit: int = Query(25, ge=1, le=50),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await LeaveService.summary(db, user, limit=limit)


@router.post("/applications", response_model=SubmitLeaveResponse, status_code=status.HTTP_201_CREATED)
async def submit_application(
    body: CreateLeaveApplicationRequest,
    background_tasks: BackgroundTasks,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await LeaveService.submit_application(db, user, body, background_tasks)


@router.get("/applications/{request_id}/pdf")
async def application_pdf(
    request_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    content, leave_request = await LeaveService.application_pdf(db, user, request_id)
    filename = f"leave-application-{leave_request.start_date:%Y%m%d}.pdf"
    return Response(
        content=content,
        media_type=PDF_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.post("/attachments", response_model=AttachmentUploadResponse)
async def upload_attachment(
    file: Optional[UploadFile] = File(default=None),
    user: User = Depends(get_current_user),
):
    contents = await file.read() if file is not None else None
    return LeaveService.upload_attachment(
        user,
        file_name=file.filename if file else None,
        content_type=file.content_type if file else None,
        contents=contents,
    )


@router.delete("/attachments", response_model=MessageResponse)
async def delete_attachment(
    body: DeleteAttachmentRequest,
    user: User = Depends(get_current_user),
):
    LeaveService.delete_attachment(user, body.key)
    return MessageResponse(message="Attachment deleted.")


@router.get("/attachments/{token}")
async def download_attachment(token: str):
    contents, mime_type, name = LeaveService.read_attachment(token)
    return Response(
        content=contents,
        media_type=mime_type,
        headers={
            "Content-Disposition": f'attachment; filename="{quote(name)}"',
            "Cache-Control": "private, max-age=0, no-store",
        },
    )


# ═════════════════════════════════════════════════════════════════════
# HR review queue
# ═════════════════════════════════════════════════════════════════════


def _list_filters(
    status: Optional[LeaveStatus] = Query(None),
    leave_type: Optional[LeaveType] = Query(None),
    search: Optional[str] = Query(None, min_length=1, max_length=120),
    month: Optional[int] = Query(None, ge=1, le=12),
    year: Optional[int] = Query(None, ge=2000, le=2100),
    sort_field: Optional[SortField] = Query(None),
    sort_order: Optional[SortOrder] = Query(None),
    limit: int = Query(100, ge=1, le=200),
) -> dict:
    return {
        "status": status,
        "leave_type": leave_type,
        "search": search,
        "month": month,
        "year": year,
        "sort_field": sort_field,
        "sort_order": sort_order,
        "limit": limit,
    }


@hr_router.get("", response_model=HrLeaveListResponse)
async def list_requests(
    filters: dict = Depends(_list_filters),
    viewer: User = Depends(require_hr_access),
    db: AsyncSession = Depends(get_db),
):
    return await HRLeaveService.list_requests(db, viewer, **filters)


@hr_router.get("/export")
async def export_requests(
    filters: dict = Depends(_list_filters),
    viewer: User = Depends(require_hr_access),
    db: AsyncSession = Depends(get_db),
):
    content = await HRLeaveService.export_requests(db, viewer, **filters)
    filename = f"leave-requests-{utcnow():%Y%m%d}.xlsx"
    return Response(
        content=content,
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@hr_router.get("/pending-count", response_model=PendingCountResponse)
async def pending_count(
    viewer: User = Depends(require_hr_access),
    db: AsyncSession = Depends(get_db),
):
    return PendingCountResponse(count=await HRLeaveService.pending_count(db, viewer))


@hr_router.put("/{request_id}/status", response_model=HrLeaveRequest)
async def update_status(
    request_id: uuid.UUID,
    body: UpdateLeaveStatusRequest,
    request: Request,
    background_tasks: BackgroundTasks,
    viewer: User = Depends(require_hr_access),
    db: AsyncSession = Depends(get_db),
):
    return await HRLeaveService.update_status(
        db, viewer, request_id, body, background_tasks, ip_address=_client_ip(request),
    )

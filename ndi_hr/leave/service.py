"""Leave service layer: employee applications and the HR review queue.

Business logic:
  - Remaining balances live on ``EmploymentDetail``; submitting a request
    deducts the inclusive day count from the matching column
  - Moving a request into DENIED refunds the days, moving it out of DENIED
    takes them again (refused when the balance would go negative)
  - Reviewers are told about new requests through a ROLE notification, the
    employee and their leads about decisions through INDIVIDUAL ones
  - Attachments are stored under ``leave-attachments/`` and fetched through a
    signed, time-limited download link
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, time, timedelta, timezone
from decimal import Decimal
from typing import Any, Optional

from fastapi import BackgroundTasks
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ndi_hr.common.audit import create_audit_entry
from ndi_hr.common.constants import (
    LEAVE_BALANCE_FIELDS,
    LEAVE_REVIEWER_ROLES,
    LEAVE_TYPE_LABELS,
    LeaveStatus,
    LeaveType,
    NotificationAudience,
    NotificationType,
    UserRole,
)
from ndi_hr.common.exceptions import (
    AppException,
    BadRequestException,
    ForbiddenException,
    NotFoundException,
)
from ndi_hr.common.export import ExcelExportService, PDFExportService
from ndi_hr.common.filters import apply_search, apply_sorting
from ndi_hr.common.formatting import (
    decimal_to_float,
    day_label,
    format_date_range,
    format_long_date,
    inclusive_days,
    month_bounds,
    title_case_enum,
    utcnow,
)
from ndi_hr.common.security import (
    LEAVE_ATTACHMENT_PURPOSE,
    create_signed_token,
    verify_signed_token,
)
from ndi_hr.common.storage import (
    LEAVE_ATTACHMENT_PREFIX,
    build_leave_attachment_key,
    delete_file,
    is_within_folder,
    leave_attachment_folder,
    read_file,
    save_file,
)
from ndi_hr.config import settings
from ndi_hr.core_hr.models import EmployeeProfile, EmploymentDetail, User
from ndi_hr.leave.models import LeaveRequest
from ndi_hr.leave.schemas import (
    AttachmentUploadResponse,
    CreateLeaveApplicationRequest,
    HrLeaveEmployee,
    HrLeaveListResponse,
    HrLeaveRequest,
    LeaveAttachmentInput,
    LeaveAttachmentResponse,
    LeaveBalanceResponse,
    LeaveRequestResponse,
    LeaveSummaryResponse,
    MAX_ATTACHMENT_BYTES,
    SubmitLeaveResponse,
    UpdateLeaveStatusRequest,
)
from ndi_hr.notifications.service import NotificationService

logger = logging.getLogger(__name__)

ATTACHMENT_TOKEN_TTL = timedelta(days=settings.ATTACHMENT_TOKEN_TTL_DAYS)
ATTACHMENT_DOWNLOAD_PATH = "/api/v1/leave/attachments"
ALLOWED_ATTACHMENT_TYPES = frozenset({
    "application/pdf",
    "image/jpeg",
    "image/jpg",
    "image/png",
    "image/webp",
})

# Statuses whose request days are back on the employee's balance
_REFUNDED_STATUSES = frozenset({LeaveStatus.DENIED})

_EMPLOYEE_DECISIONS = {
    LeaveStatus.APPROVED: ("Leave request approved", "was approved."),
    LeaveStatus.DENIED: ("Leave request denied", "was denied."),
    LeaveStatus.CANCELLED: ("Leave request cancelled", "was cancelled by HR."),
}

_SORT_COLUMNS = {
    "submittedAt": LeaveRequest.created_at,
    "startDate": LeaveRequest.start_date,
    "leaveType": LeaveRequest.leave_type,
    "status": LeaveRequest.status,
}

EXPORT_HEADERS = [
    "Employee",
    "Employee ID",
    "Department",
    "Leave Type",
    "Start Date",
    "End Date",
    "Days",
    "Status",
    "Submitted",
    "Reason",
]


# ── Attachments ─────────────────────────────────────────────────────

def create_attachment_token(key: str, name: str, mime_type: Optional[str]) -> str:
    return create_signed_token(
        LEAVE_ATTACHMENT_PURPOSE,
        {"key": key, "name": name, "mimeType": mime_type or "application/octet-stream"},
        ATTACHMENT_TOKEN_TTL,
    )


def build_download_url(token: str) -> str:
    return f"{ATTACHMENT_DOWNLOAD_PATH}/{token}"


def serialize_attachment(stored: dict[str, Any]) -> Optional[LeaveAttachmentResponse]:
    """Stored JSON attachment → response with a fresh download link.

    Entries without a name are skipped.
    """
    name = stored.get("name")
    if not isinstance(name, str) or not name:
        return None
    key = stored.get("storageKey")
    mime_type = stored.get("mimeType")
    download_url = None
    if key:
        download_url = build_download_url(create_attachment_token(key, name, mime_type))
    size = stored.get("sizeBytes")
    return LeaveAttachmentResponse(
        id=str(stored.get("id") or uuid.uuid4()),
        name=name,
        mime_type=mime_type,
        size_bytes=int(size) if isinstance(size, (int, float)) else None,
        download_url=download_url,
        uploaded_at=stored.get("uploadedAt"),
    )


def parse_attachments(raw: Optional[list]) -> list[LeaveAttachmentResponse]:
    if not isinstance(raw, list):
        return []
    parsed = []
    for item in raw:
        if isinstance(item, dict):
            attachment = serialize_attachment(item)
            if attachment is not None:
                parsed.append(attachment)
    return parsed


def to_stored_attachments(attachments: list[LeaveAttachmentInput]) -> list[dict[str, Any]]:
    uploaded_at = utcnow().isoformat()
    return [
        {
            "id": attachment.id or str(uuid.uuid4()),
            "name": attachment.name,
            "mimeType": attachment.type,
            "sizeBytes": attachment.size,
            "storageKey": attachment.storage_key,
            "uploadedAt": uploaded_at,
        }
        for attachment in attachments
    ]


# ── Balances / serialization ────────────────────────────────────────

def build_balance_response(employment: EmploymentDetail) -> list[LeaveBalanceResponse]:
    return [
        LeaveBalanceResponse(
            type=leave_type,
            label=LEAVE_TYPE_LABELS[leave_type],
            remaining=decimal_to_float(getattr(employment, field)),
        )
        for leave_type, field in LEAVE_BALANCE_FIELDS.items()
    ]


def serialize_request(request: LeaveRequest) -> LeaveRequestResponse:
    return LeaveRequestResponse(
        id=request.id,
        leave_type=request.leave_type,
        leave_type_label=LEAVE_TYPE_LABELS[request.leave_type],
        start_date=request.start_date,
        end_date=request.end_date,
        total_days=decimal_to_float(request.total_days),
        status=request.status,
        reason=request.reason,
        note=request.note,
        attachments=parse_attachments(request.attachments),
        created_at=request.created_at,
        updated_at=request.updated_at,
    )


def serialize_hr_request(request: LeaveRequest) -> HrLeaveRequest:
    employee = request.employee
    employment = employee.employment
    if employment is None:
        raise BadRequestException(detail="Employment details missing for this leave request.")

    balances = build_balance_response(employment)
    remaining = next(
        (balance for balance in balances if balance.type == request.leave_type),
        LeaveBalanceResponse(
            type=request.leave_type, label=LEAVE_TYPE_LABELS[request.leave_type], remaining=0,
        ),
    )
    return HrLeaveRequest(
        id=request.id,
        leave_type=request.leave_type,
        leave_type_label=LEAVE_TYPE_LABELS[request.leave_type],
        start_date=request.start_date,
        end_date=request.end_date,
        total_days=decimal_to_float(request.total_days),
        status=request.status,
        reason=request.reason,
        note=request.note,
        submitted_at=request.created_at,
        attachments=parse_attachments(request.attachments),
        employee=HrLeaveEmployee(
            id=employee.id,
            name=employee.display_name,
            email=employee.email,
            phone=employee.phone,
            employee_code=employment.employee_code,
            designation=employment.designation or None,
            department=employment.department.name if employment.department else None,
            team=employment.team.name if employment.team else None,
            organization=employee.organization.name if employee.organization else None,
        ),
        balances=balances,
        remaining_balance=remaining,
    )


async def _get_employment(db: AsyncSession, user_id: uuid.UUID) -> EmploymentDetail:
    result = await db.execute(
        select(EmploymentDetail).where(EmploymentDetail.user_id == user_id),
    )
    employment = result.scalar_one_or_none()
    if employment is None:
        raise NotFoundException(
            "EmploymentDetail", user_id, detail="Employment record not found for this user.",
        )
    return employment


# ═════════════════════════════════════════════════════════════════════
# LeaveService (employee)
# ═════════════════════════════════════════════════════════════════════


class LeaveService:
    """Employee-facing leave operations."""

    @staticmethod
    async def summary(db: AsyncSession, user: User, limit: int = 25) -> LeaveSummaryResponse:
        employment = await _get_employment(db, user.id)
        result = await db.execute(
            select(LeaveRequest)
            .where(LeaveRequest.employee_id == user.id)
            .order_by(LeaveRequest.created_at.desc())
            .limit(limit),
        )
        return LeaveSummaryResponse(
            balances=build_balance_response(employment),
            requests=[serialize_request(r) for r in result.scalars().all()],
        )

    @staticmethod
    async def submit_application(
        db: AsyncSession,
        user: User,
        body: CreateLeaveApplicationRequest,
        background_tasks: Optional[BackgroundTasks] = None,
    ) -> SubmitLeaveResponse:
        organization_id = user.organization_id
        if organization_id is None:
            raise BadRequestException(detail="Missing organization context for leave submission.")

        own_folder = leave_attachment_folder(user.id, organization_id)
        for attachment in body.attachments:
            if not is_within_folder(attachment.storage_key, own_folder):
                raise ForbiddenException(detail="You can only attach files you uploaded.")

        total_days = inclusive_days(body.start_date, body.end_date)
        if total_days <= 0:
            raise BadRequestException(detail="Invalid leave duration.")
        requested = Decimal(total_days)
        label = LEAVE_TYPE_LABELS[body.leave_type]

        employment = await _get_employment(db, user.id)
        field = LEAVE_BALANCE_FIELDS[body.leave_type]
        current = getattr(employment, field) or Decimal("0")
        if current < requested:
            raise BadRequestException(
                detail=f"You do not have enough {label} remaining for this request.",
            )
        setattr(employment, field, current - requested)

        request = LeaveRequest(
            employee_id=user.id,
            leave_type=body.leave_type,
            start_date=body.start_date,
            end_date=body.end_date,
            total_days=requested,
            status=LeaveStatus.PENDING,
            reason=body.reason,
            note=body.note,
            attachments=to_stored_attachments(body.attachments) or None,
        )
        db.add(request)
        await db.flush()

        notification = await NotificationService.create_notification(
            db,
            organization_id=organization_id,
            sender_id=user.id,
            title=f"{user.display_name} requested {label}",
            body=(
                f"{label} • {format_date_range(body.start_date, body.end_date)} "
                f"({total_days} {day_label(total_days)})"
            ),
            type=NotificationType.LEAVE,
            audience=NotificationAudience.ROLE,
            target_roles=LEAVE_REVIEWER_ROLES,
            action_url="/hr-admin/leave-approvals",
            metadata={
                "leaveRequestId": str(request.id),
                "employeeId": str(user.id),
                "leaveType": body.leave_type.value,
                "startDate": body.start_date.isoformat(),
                "endDate": body.end_date.isoformat(),
                "totalDays": total_days,
                "status": request.status.value,
            },
        )
        await NotificationService.publish(db, [notification], background_tasks)
        logger.info("Leave request %s submitted by %s (%s days)", request.id, user.id, total_days)

        return SubmitLeaveResponse(
            request=serialize_request(request),
            balances=build_balance_response(employment),
        )

    # ── Application PDF ─────────────────────────────────────────────

    @staticmethod
    async def application_pdf(
        db: AsyncSession, user: User, request_id: uuid.UUID,
    ) -> tuple[bytes, LeaveRequest]:
        request = await db.get(LeaveRequest, request_id)
        if request is None or request.employee_id != user.id:
            raise NotFoundException("LeaveRequest", request_id, detail="Leave request not found.")

        employment = user.employment
        label = LEAVE_TYPE_LABELS[request.leave_type]
        days = decimal_to_float(request.total_days)
        fields = [
            ("Employee", user.display_name),
            ("Employee ID", (employment.employee_code if employment else None) or "—"),
            ("Designation", (employment.designation if employment else None) or "—"),
            (
                "Department",
                employment.department.name if employment and employment.department else "—",
            ),
            ("Leave type", label),
            (
                "Dates",
                f"{format_long_date(request.start_date)} – {format_long_date(request.end_date)}",
            ),
            ("Total days", f"{days:g} {day_label(days)}"),
            ("Reason", request.reason or "—"),
            ("Note", request.note or "—"),
            ("Status", title_case_enum(request.status.value)),
            ("Submitted", format_long_date(request.created_at.date())),
        ]
        organization = user.organization.name if user.organization else "Leave application"
        content = PDFExportService.render_detail_document(
            title="Leave Application",
            subtitle=organization,
            fields=fields,
        )
        return content, request

    # ── Attachment storage ──────────────────────────────────────────

    @staticmethod
    def upload_attachment(
        user: User,
        *,
        file_name: Optional[str],
        content_type: Optional[str],
        contents: Optional[bytes],
    ) -> AttachmentUploadResponse:
        if contents is None:
            raise BadRequestException(detail="No file attached")
        if len(contents) == 0:
            raise BadRequestException(detail="Selected file is empty")
        if len(contents) > MAX_ATTACHMENT_BYTES:
            raise BadRequestException(detail="File exceeds 5 MB limit")
        if (content_type or "").lower() not in ALLOWED_ATTACHMENT_TYPES:
            raise BadRequestException(detail="Only PDF or common image formats are allowed.")

        name = file_name or "attachment"
        key = build_leave_attachment_key(user.id, user.organization_id, name, content_type)
        try:
            save_file(key, contents)
        except OSError:
            logger.exception("Failed to store leave attachment for %s", user.id)
            raise AppException(
                status_code=500,
                error_type="storage-error",
                title="Storage Error",
                detail="Unable to upload the file right now.",
            )

        token = create_attachment_token(key, name, content_type)
        attachment = LeaveAttachmentResponse(
            id=str(uuid.uuid4()),
            name=name,
            mime_type=content_type or None,
            size_bytes=len(contents),
            download_url=build_download_url(token),
            uploaded_at=utcnow().isoformat(),
        )
        return AttachmentUploadResponse(attachment=attachment, storage_key=key)

    @staticmethod
    def delete_attachment(user: User, key: str) -> None:
        key = (key or "").strip()
        if not key:
            raise BadRequestException(detail="Attachment key is required")
        if not key.startswith(f"{LEAVE_ATTACHMENT_PREFIX}/"):
            raise BadRequestException(detail="Invalid attachment reference")
        owns_key = is_within_folder(key, leave_attachment_folder(user.id, user.organization_id))
        # HR admins may clean up uploads within their own organization only
        hr_override = (
            user.role == UserRole.HR_ADMIN
            and user.organization_id is not None
            and is_within_folder(key, f"{LEAVE_ATTACHMENT_PREFIX}/{user.organization_id}/")
        )
        if not owns_key and not hr_override:
            raise ForbiddenException(detail="You are not allowed to delete this attachment.")
        delete_file(key)

    @staticmethod
    def read_attachment(token: str) -> tuple[bytes, str, str]:
        """Resolve a download token to ``(contents, mime type, file name)``."""
        claims = verify_signed_token(token, LEAVE_ATTACHMENT_PURPOSE)
        key = claims.get("key") if claims else None
        if not key or not str(key).startswith(f"{LEAVE_ATTACHMENT_PREFIX}/"):
            raise NotFoundException("Attachment", detail="Invalid or expired link")
        contents = read_file(key)
        if contents is None:
            raise NotFoundException("Attachment", detail="Attachment not found")
        name = (claims.get("name") or "leave-attachment").replace('"', "")
        return contents, claims.get("mimeType") or "application/octet-stream", name


# ═════════════════════════════════════════════════════════════════════
# HRLeaveService
# ═════════════════════════════════════════════════════════════════════


class HRLeaveService:
    """Organization-wide review queue for HR access roles."""

    @staticmethod
    def _filtered_query(
        viewer: User,
        *,
        status: Optional[LeaveStatus] = None,
        leave_type: Optional[LeaveType] = None,
        search: Optional[str] = None,
        month: Optional[int] = None,
        year: Optional[int] = None,
        sort_field: Optional[str] = None,
        sort_order: Optional[str] = None,
        limit: int = 100,
    ):
        query = (
            select(LeaveRequest)
            .join(User, User.id == LeaveRequest.employee_id)
            .outerjoin(EmployeeProfile, EmployeeProfile.user_id == User.id)
            .outerjoin(EmploymentDetail, EmploymentDetail.user_id == User.id)
            .where(User.organization_id == viewer.organization_id)
        )
        query = apply_search(
            query,
            search,
            [
                EmployeeProfile.preferred_name,
                EmployeeProfile.first_name,
                EmployeeProfile.last_name,
                User.email,
                EmploymentDetail.employee_code,
            ],
        )
        if status is not None:
            query = query.where(LeaveRequest.status == status)
        if leave_type is not None:
            query = query.where(LeaveRequest.leave_type == leave_type)
        if month and year:
            first, last = month_bounds(year, month)
            range_start = datetime.combine(first, time.min, tzinfo=timezone.utc)
            range_end = datetime.combine(last + timedelta(days=1), time.min, tzinfo=timezone.utc)
            query = query.where(
                LeaveRequest.created_at >= range_start,
                LeaveRequest.created_at < range_end,
            )
        query = apply_sorting(query, _SORT_COLUMNS, sort_field, sort_order, default="submittedAt")
        return query.limit(limit)

    @staticmethod
    async def list_requests(db: AsyncSession, viewer: User, **filters) -> HrLeaveListResponse:
        result = await db.execute(HRLeaveService._filtered_query(viewer, **filters))
        return HrLeaveListResponse(
            requests=[serialize_hr_request(r) for r in result.scalars().unique().all()],
        )

    @staticmethod
    async def export_requests(db: AsyncSession, viewer: User, **filters) -> bytes:
        result = await db.execute(HRLeaveService._filtered_query(viewer, **filters))
        rows = []
        for request in result.scalars().unique().all():
            employment = request.employee.employment
            rows.append([
                request.employee.display_name,
                employment.employee_code if employment else None,
                employment.department.name if employment and employment.department else None,
                LEAVE_TYPE_LABELS[request.leave_type],
                request.start_date,
                request.end_date,
                decimal_to_float(request.total_days),
                title_case_enum(request.status.value),
                request.created_at.date(),
                request.reason,
            ])
        return ExcelExportService.build_workbook("Leave Requests", EXPORT_HEADERS, rows)

    @staticmethod
    async def pending_count(db: AsyncSession, viewer: User) -> int:
        if viewer.organization_id is None:
            return 0
        result = await db.execute(
            select(func.count(LeaveRequest.id))
            .join(User, User.id == LeaveRequest.employee_id)
            .where(
                User.organization_id == viewer.organization_id,
                LeaveRequest.status.in_([LeaveStatus.PENDING, LeaveStatus.PROCESSING]),
            ),
        )
        return result.scalar() or 0

    @staticmethod
    async def update_status(
        db: AsyncSession,
        viewer: User,
        request_id: uuid.UUID,
        body: UpdateLeaveStatusRequest,
        background_tasks: Optional[BackgroundTasks] = None,
        *,
        ip_address: Optional[str] = None,
    ) -> HrLeaveRequest:
        request = await db.get(LeaveRequest, request_id)
        if request is None or request.employee.organization_id != viewer.organization_id:
            raise NotFoundException("LeaveRequest", request_id, detail="Leave request not found.")

        employee = request.employee
        employment = employee.employment
        if employment is None:
            raise BadRequestException(detail="Employment record missing for this employee.")

        previous_status = request.status
        next_status = LeaveStatus(body.status)
        was_refunded = previous_status in _REFUNDED_STATUSES
        will_refund = next_status in _REFUNDED_STATUSES

        if was_refunded != will_refund:
            field = LEAVE_BALANCE_FIELDS[request.leave_type]
            current = getattr(employment, field) or Decimal("0")
            if will_refund:
                updated = current + request.total_days
            else:
                updated = current - request.total_days
                if updated < 0:
                    raise BadRequestException(
                        detail="Insufficient balance to approve this request.",
                    )
            setattr(employment, field, updated)

        request.status = next_status
        request.reviewer_id = viewer.id
        request.reviewed_at = utcnow()
        if "note" in body.model_fields_set:
            request.note = body.note
        await db.flush()

        await create_audit_entry(
            db,
            action="status_change",
            entity_type="leave_request",
            entity_id=request.id,
            actor_id=viewer.id,
            old_values={"status": previous_status.value},
            new_values={"status": next_status.value, "note": request.note},
            ip_address=ip_address,
        )

        notifications = await HRLeaveService._notify_decision(db, viewer, request, body.note)
        await NotificationService.publish(db, notifications, background_tasks)
        logger.info(
            "Leave request %s moved %s -> %s by %s",
            request.id, previous_status.value, next_status.value, viewer.id,
        )
        return serialize_hr_request(request)

    @staticmethod
    async def _notify_decision(
        db: AsyncSession,
        viewer: User,
        request: LeaveRequest,
        note: Optional[str],
    ) -> list:
        employee = request.employee
        organization_id = employee.organization_id or viewer.organization_id
        decision = _EMPLOYEE_DECISIONS.get(request.status)
        if organization_id is None or decision is None:
            return []

        label = LEAVE_TYPE_LABELS[request.leave_type]
        range_label = format_date_range(request.start_date, request.end_date)
        total_days = decimal_to_float(request.total_days)
        base_metadata = {
            "leaveRequestId": str(request.id),
            "status": request.status.value,
            "reviewerId": str(viewer.id),
            "startDate": request.start_date.isoformat(),
            "endDate": request.end_date.isoformat(),
            "note": note,
        }

        title, suffix = decision
        notifications = [
            await NotificationService.create_notification(
                db,
                organization_id=organization_id,
                sender_id=viewer.id,
                title=title,
                body=f"Your {label} ({range_label}) {suffix}",
                type=NotificationType.LEAVE,
                audience=NotificationAudience.INDIVIDUAL,
                target_user_id=employee.id,
                action_url="/leave",
                metadata=base_metadata,
            ),
        ]
        if request.status != LeaveStatus.APPROVED:
            return notifications

        employment = employee.employment
        candidates: list[Optional[uuid.UUID]] = []
        if employment and employment.team:
            candidates.extend(lead.lead_id for lead in employment.team.leads)
        if employment and employment.department:
            candidates.append(employment.department.head_id)
        recipients = []
        for candidate in candidates:
            if candidate and candidate not in (employee.id, viewer.id) and candidate not in recipients:
                recipients.append(candidate)

        name = employee.display_name
        for target_user_id in recipients:
            notifications.append(
                await NotificationService.create_notification(
                    db,
                    organization_id=organization_id,
                    sender_id=viewer.id,
                    title=f"{name}'s leave approved",
                    body=(
                        f"{name}'s {label} ({range_label}) was approved "
                        f"({total_days:g} {day_label(total_days)})."
                    ),
                    type=NotificationType.LEAVE,
                    audience=NotificationAudience.INDIVIDUAL,
                    target_user_id=target_user_id,
                    metadata={
                        **base_metadata,
                        "employeeId": str(employee.id),
                        "totalDays": total_days,
                    },
                ),
            )
        return notifications

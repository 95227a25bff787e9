"""Common module: shared utilities for the NDI HR portal."""

from ndi_hr.common.audit import AuditTrail, create_audit_entry
from ndi_hr.common.constants import (
    DEFAULT_TIMEZONE,
    HR_ACCESS_ROLES,
    LEAVE_TYPE_LABELS,
    AttendanceStatus,
    EmploymentStatus,
    EmploymentType,
    InvoiceStatus,
    LeaveStatus,
    LeaveType,
    NotificationAudience,
    NotificationStatus,
    NotificationType,
    UserRole,
    WorkModel,
)
from ndi_hr.common.exceptions import (
    AppException,
    BadRequestException,
    ConflictError,
    ForbiddenException,
    NotFoundException,
    UnauthorizedException,
    ValidationException,
    register_exception_handlers,
)

__all__ = [
    # Audit
    "AuditTrail",
    "create_audit_entry",
    # Constants / Enums
    "AttendanceStatus",
    "EmploymentStatus",
    "EmploymentType",
    "InvoiceStatus",
    "LeaveStatus",
    "LeaveType",
    "NotificationAudience",
    "NotificationStatus",
    "NotificationType",
    "UserRole",
    "WorkModel",
    "DEFAULT_TIMEZONE",
    "HR_ACCESS_ROLES",
    "LEAVE_TYPE_LABELS",
    # Exceptions
    "AppException",
    "BadRequestException",
    "ConflictError",
    "ForbiddenException",
    "NotFoundException",
    "UnauthorizedException",
    "ValidationException",
    "register_exception_handlers",
]

"""Enums and constants for the NDI HR portal, mirrored by PostgreSQL ENUM types."""

from __future__ import annotations

import enum
from decimal import Decimal


# ── Auth / Roles ────────────────────────────────────────────────────

class UserRole(str, enum.Enum):
    SUPER_ADMIN = "SUPER_ADMIN"
    ORG_OWNER = "ORG_OWNER"
    ORG_ADMIN = "ORG_ADMIN"
    HR_ADMIN = "HR_ADMIN"
    MANAGER = "MANAGER"
    EMPLOYEE = "EMPLOYEE"


# Seniority, higher index = more senior
ROLE_ORDER: list[UserRole] = [
    UserRole.EMPLOYEE,
    UserRole.HR_ADMIN,
    UserRole.MANAGER,
    UserRole.ORG_ADMIN,
    UserRole.ORG_OWNER,
    UserRole.SUPER_ADMIN,
]
ROLE_RANK: dict[UserRole, int] = {role: index for index, role in enumerate(ROLE_ORDER)}

ROLE_LABELS: dict[UserRole, str] = {
    UserRole.SUPER_ADMIN: "Super Admin",
    UserRole.ORG_OWNER: "Org Owner",
    UserRole.ORG_ADMIN: "Org Admin",
    UserRole.HR_ADMIN: "HR Admin",
    UserRole.MANAGER: "Manager",
    UserRole.EMPLOYEE: "Employee",
}

HR_ACCESS_ROLES: frozenset[UserRole] = frozenset({
    UserRole.HR_ADMIN,
    UserRole.MANAGER,
    UserRole.ORG_ADMIN,
    UserRole.ORG_OWNER,
    UserRole.SUPER_ADMIN,
})
TEAM_MANAGEMENT_ROLES: frozenset[UserRole] = frozenset({
    UserRole.MANAGER,
    UserRole.ORG_ADMIN,
    UserRole.ORG_OWNER,
    UserRole.SUPER_ADMIN,
})
DEPARTMENT_MANAGEMENT_ROLES: frozenset[UserRole] = frozenset({
    UserRole.ORG_ADMIN,
    UserRole.ORG_OWNER,
    UserRole.SUPER_ADMIN,
})
WORK_MANAGEMENT_ROLES: frozenset[UserRole] = frozenset({
    UserRole.ORG_OWNER,
    UserRole.ORG_ADMIN,
    UserRole.SUPER_ADMIN,
})
ORGANIZATION_MANAGEMENT_ROLES: frozenset[UserRole] = frozenset({
    UserRole.ORG_OWNER,
    UserRole.SUPER_ADMIN,
})
PROJECT_MANAGEMENT_ROLES = TEAM_MANAGEMENT_ROLES
COMPENSATION_MANAGER_ROLES = HR_ACCESS_ROLES

INVITE_ROLE_MATRIX: dict[UserRole, list[UserRole]] = {
    UserRole.SUPER_ADMIN: [
        UserRole.ORG_OWNER,
        UserRole.ORG_ADMIN,
        UserRole.MANAGER,
        UserRole.HR_ADMIN,
        UserRole.EMPLOYEE,
    ],
    UserRole.ORG_OWNER: [
        UserRole.ORG_ADMIN,
        UserRole.MANAGER,
        UserRole.HR_ADMIN,
        UserRole.EMPLOYEE,
    ],
    UserRole.ORG_ADMIN: [UserRole.MANAGER, UserRole.HR_ADMIN, UserRole.EMPLOYEE],
    UserRole.MANAGER: [UserRole.HR_ADMIN, UserRole.EMPLOYEE],
    UserRole.HR_ADMIN: [UserRole.EMPLOYEE],
    UserRole.EMPLOYEE: [],
}


# ── Employee / Core HR ──────────────────────────────────────────────

class EmploymentStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    PROBATION = "PROBATION"
    INACTIVE = "INACTIVE"
    TERMINATED = "TERMINATED"
    SABBATICAL = "SABBATICAL"


class Gender(str, enum.Enum):
    MALE = "MALE"
    FEMALE = "FEMALE"
    NON_BINARY = "NON_BINARY"
    UNDISCLOSED = "UNDISCLOSED"


class WorkModel(str, enum.Enum):
    ONSITE = "ONSITE"
    HYBRID = "HYBRID"
    REMOTE = "REMOTE"


class EmploymentType(str, enum.Enum):
    FULL_TIME = "FULL_TIME"
    PART_TIME = "PART_TIME"
    CONTRACT = "CONTRACT"
    INTERN = "INTERN"


WORK_MODEL_LABELS: dict[WorkModel, str] = {
    WorkModel.ONSITE: "On-site",
    WorkModel.HYBRID: "Hybrid",
    WorkModel.REMOTE: "Remote",
}

EMPLOYMENT_TYPE_LABELS: dict[EmploymentType, str] = {
    EmploymentType.FULL_TIME: "Full-time",
    EmploymentType.PART_TIME: "Part-time",
    EmploymentType.CONTRACT: "Contract",
    EmploymentType.INTERN: "Intern",
}

# Directory status shown to HR; several stored states collapse onto one label
EMPLOYMENT_STATUS_LABELS: dict[EmploymentStatus, str] = {
    EmploymentStatus.ACTIVE: "Active",
    EmploymentStatus.PROBATION: "Probation",
    EmploymentStatus.SABBATICAL: "On Leave",
    EmploymentStatus.INACTIVE: "Pending",
    EmploymentStatus.TERMINATED: "Pending",
}


# "My team" wording differs from the HR directory: nothing collapses there
TEAM_STATUS_LABELS: dict[EmploymentStatus, str] = {
    EmploymentStatus.ACTIVE: "Active",
    EmploymentStatus.PROBATION: "Probation",
    EmploymentStatus.SABBATICAL: "On leave",
    EmploymentStatus.INACTIVE: "Inactive",
    EmploymentStatus.TERMINATED: "Former",
}

ACTIVE_EMPLOYMENT_STATUSES: frozenset[EmploymentStatus] = frozenset({
    EmploymentStatus.ACTIVE,
    EmploymentStatus.PROBATION,
    EmploymentStatus.SABBATICAL,
})


# ── Projects ────────────────────────────────────────────────────────

class ProjectStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    ON_HOLD = "ON_HOLD"
    COMPLETED = "COMPLETED"
    ARCHIVED = "ARCHIVED"


# ── Attendance / Work policy ────────────────────────────────────────

class AttendanceStatus(str, enum.Enum):
    PRESENT = "PRESENT"
    LATE = "LATE"
    HALF_DAY = "HALF_DAY"
    ABSENT = "ABSENT"
    REMOTE = "REMOTE"
    HOLIDAY = "HOLIDAY"


class Weekday(str, enum.Enum):
    MONDAY = "MONDAY"
    TUESDAY = "TUESDAY"
    WEDNESDAY = "WEDNESDAY"
    THURSDAY = "THURSDAY"
    FRIDAY = "FRIDAY"
    SATURDAY = "SATURDAY"
    SUNDAY = "SUNDAY"


WEEKDAY_ORDER: list[Weekday] = list(Weekday)

DEFAULT_WORKING_DAYS: list[Weekday] = WEEKDAY_ORDER[:5]
DEFAULT_WEEKEND_DAYS: list[Weekday] = WEEKDAY_ORDER[5:]

DEFAULT_ONSITE_START = "09:00"
DEFAULT_ONSITE_END = "18:00"
DEFAULT_REMOTE_START = "08:00"
DEFAULT_REMOTE_END = "17:00"

LATE_TOLERANCE_MINUTES = 10
MAX_DAILY_WORK_SECONDS = 8 * 60 * 60


# ── Leave ───────────────────────────────────────────────────────────

class LeaveStatus(str, enum.Enum):
    DRAFT = "DRAFT"
    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    APPROVED = "APPROVED"
    DENIED = "DENIED"
    CANCELLED = "CANCELLED"


class LeaveType(str, enum.Enum):
    CASUAL = "CASUAL"
    SICK = "SICK"
    ANNUAL = "ANNUAL"
    PATERNITY_MATERNITY = "PATERNITY_MATERNITY"


LEAVE_TYPE_LABELS: dict[LeaveType, str] = {
    LeaveType.CASUAL: "Casual Leave",
    LeaveType.SICK: "Sick Leave",
    LeaveType.ANNUAL: "Annual Leave",
    LeaveType.PATERNITY_MATERNITY: "Paternity/Maternity Leave",
}

DEFAULT_LEAVE_ALLOCATIONS: dict[LeaveType, Decimal] = {
    LeaveType.CASUAL: Decimal("10"),
    LeaveType.SICK: Decimal("7"),
    LeaveType.ANNUAL: Decimal("14"),
    LeaveType.PATERNITY_MATERNITY: Decimal("30"),
}

# EmploymentDetail column holding the remaining balance of each leave type
LEAVE_BALANCE_FIELDS: dict[LeaveType, str] = {
    LeaveType.CASUAL: "casual_leave_balance",
    LeaveType.SICK: "sick_leave_balance",
    LeaveType.ANNUAL: "annual_leave_balance",
    LeaveType.PATERNITY_MATERNITY: "parental_leave_balance",
}

MAX_LEAVE_ATTACHMENTS = 3
LEAVE_REVIEWER_ROLES: list[UserRole] = [
    UserRole.HR_ADMIN,
    UserRole.MANAGER,
    UserRole.ORG_OWNER,
    UserRole.ORG_ADMIN,
    UserRole.SUPER_ADMIN,
]


# ── Notifications ───────────────────────────────────────────────────

class NotificationType(str, enum.Enum):
    ANNOUNCEMENT = "ANNOUNCEMENT"
    LEAVE = "LEAVE"
    ATTENDANCE = "ATTENDANCE"
    REPORT = "REPORT"
    INVOICE = "INVOICE"


class NotificationStatus(str, enum.Enum):
    DRAFT = "DRAFT"
    SCHEDULED = "SCHEDULED"
    SENT = "SENT"
    CANCELLED = "CANCELLED"


class NotificationAudience(str, enum.Enum):
    ORGANIZATION = "ORGANIZATION"
    ROLE = "ROLE"
    INDIVIDUAL = "INDIVIDUAL"


NOTIFICATION_TYPE_LABELS: dict[NotificationType, str] = {
    NotificationType.ANNOUNCEMENT: "Announcement",
    NotificationType.LEAVE: "Leave",
    NotificationType.ATTENDANCE: "Attendance",
    NotificationType.REPORT: "Reports",
    NotificationType.INVOICE: "Invoices",
}

# Announcements come from people; everything else is generated by the system
MANAGEMENT_NOTIFICATION_TYPES: frozenset[NotificationType] = frozenset({
    NotificationType.ANNOUNCEMENT,
})


# ── Invoices ────────────────────────────────────────────────────────

class InvoiceStatus(str, enum.Enum):
    DRAFT = "DRAFT"
    PENDING_REVIEW = "PENDING_REVIEW"
    CHANGES_REQUESTED = "CHANGES_REQUESTED"
    READY_TO_DELIVER = "READY_TO_DELIVER"


EDITABLE_INVOICE_STATUSES: frozenset[InvoiceStatus] = frozenset({
    InvoiceStatus.DRAFT,
    InvoiceStatus.CHANGES_REQUESTED,
})

INVOICE_STATUS_LABELS: dict[InvoiceStatus, str] = {
    InvoiceStatus.DRAFT: "Draft",
    InvoiceStatus.PENDING_REVIEW: "Pending review",
    InvoiceStatus.CHANGES_REQUESTED: "Changes requested",
    InvoiceStatus.READY_TO_DELIVER: "Ready to deliver",
}


# ── Misc constants ──────────────────────────────────────────────────

DEFAULT_TIMEZONE = "Asia/Dhaka"
MONTH_NAMES = [
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
]

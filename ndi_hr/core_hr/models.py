"""Core HR ORM models: Organization, User, profile/employment records, Department, Team, Project.

SQLAlchemy 2.0 async-compatible models with Mapped[] annotations. Relationships
that every read path needs are loaded with ``lazy="selectin"`` so that async
sessions never trigger implicit IO.
"""

from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ndi_hr.common.constants import (
    DEFAULT_LEAVE_ALLOCATIONS,
    DEFAULT_TIMEZONE,
    EmploymentStatus,
    EmploymentType,
    Gender,
    LeaveType,
    ProjectStatus,
    UserRole,
    WorkModel,
)
from ndi_hr.common.formatting import format_display_name, utcnow
from ndi_hr.database import Base


# ═════════════════════════════════════════════════════════════════════
# Organization
# ═════════════════════════════════════════════════════════════════════


class Organization(Base):
    """Tenant workspace. Every HR record is scoped to one organization."""

    __tablename__ = "organizations"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    name: Mapped[str] = mapped_column(sa.String(120), nullable=False)
    domain: Mapped[Optional[str]] = mapped_column(sa.String(120), unique=True)
    timezone: Mapped[str] = mapped_column(
        sa.String(64), nullable=False, default=DEFAULT_TIMEZONE,
    )
    locale: Mapped[str] = mapped_column(sa.String(16), nullable=False, default="en-US")
    logo_url: Mapped[Optional[str]] = mapped_column(sa.String(1024))
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=utcnow, nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False,
    )

    def __repr__(self) -> str:
        return f"<Organization {self.name!r}>"


# ═════════════════════════════════════════════════════════════════════
# User (login identity + role)
# ═════════════════════════════════════════════════════════════════════


class User(Base):
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    organization_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("organizations.id", ondelete="SET NULL"),
    )
    email: Mapped[str] = mapped_column(sa.String(255), unique=True, nullable=False)
    password_hash: Mapped[Optional[str]] = mapped_column(sa.String(255))
    phone: Mapped[Optional[str]] = mapped_column(sa.String(32))
    role: Mapped[UserRole] = mapped_column(
        sa.Enum(UserRole, name="user_role"),
        nullable=False,
        default=UserRole.EMPLOYEE,
    )
    status: Mapped[EmploymentStatus] = mapped_column(
        sa.Enum(EmploymentStatus, name="employment_status"),
        nullable=False,
        default=EmploymentStatus.INACTIVE,
    )
    last_login_at: Mapped[Optional[datetime]] = mapped_column(sa.DateTime(timezone=True))
    invited_at: Mapped[Optional[datetime]] = mapped_column(sa.DateTime(timezone=True))
    invited_by_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("users.id", ondelete="SET NULL"),
    )
    archived_at: Mapped[Optional[datetime]] = mapped_column(sa.DateTime(timezone=True))
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=utcnow, nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False,
    )

    # ── Relationships ───────────────────────────────────────────────
    organization: Mapped[Optional[Organization]] = relationship(lazy="selectin")
    profile: Mapped[Optional[EmployeeProfile]] = relationship(
        back_populates="user", uselist=False, lazy="selectin",
    )
    employment: Mapped[Optional[EmploymentDetail]] = relationship(
        back_populates="user",
        uselist=False,
        lazy="selectin",
        foreign_keys="EmploymentDetail.user_id",
    )
    emergency_contacts: Mapped[list[EmergencyContact]] = relationship(
        back_populates="user",
        lazy="selectin",
        order_by="EmergencyContact.created_at",
    )
    bank_accounts: Mapped[list[EmployeeBankAccount]] = relationship(
        back_populates="user",
        lazy="selectin",
        order_by="EmployeeBankAccount.created_at",
    )

    @property
    def display_name(self) -> str:
        profile = self.profile
        if profile is None:
            return self.email
        return format_display_name(
            preferred_name=profile.preferred_name,
            first_name=profile.first_name,
            last_name=profile.last_name,
            fallback=self.email,
        )

    def __repr__(self) -> str:
        return f"<User {self.email!r} ({self.role.value})>"


# ═════════════════════════════════════════════════════════════════════
# Profile / employment
# ═════════════════════════════════════════════════════════════════════


class EmployeeProfile(Base):
    __tablename__ = "employee_profiles"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        sa.ForeignKey("users.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )
    first_name: Mapped[str] = mapped_column(sa.String(100), nullable=False, default="")
    last_name: Mapped[str] = mapped_column(sa.String(100), nullable=False, default="")
    preferred_name: Mapped[Optional[str]] = mapped_column(sa.String(100))
    gender: Mapped[Optional[Gender]] = mapped_column(sa.Enum(Gender, name="gender"))
    date_of_birth: Mapped[Optional[date]] = mapped_column(sa.Date)
    nationality: Mapped[Optional[str]] = mapped_column(sa.String(100))
    current_address: Mapped[Optional[str]] = mapped_column(sa.Text)
    permanent_address: Mapped[Optional[str]] = mapped_column(sa.Text)
    work_model: Mapped[Optional[WorkModel]] = mapped_column(sa.Enum(WorkModel, name="work_model"))
    personal_email: Mapped[Optional[str]] = mapped_column(sa.String(255))
    work_email: Mapped[Optional[str]] = mapped_column(sa.String(255))
    personal_phone: Mapped[Optional[str]] = mapped_column(sa.String(32))
    work_phone: Mapped[Optional[str]] = mapped_column(sa.String(32))
    profile_photo_url: Mapped[Optional[str]] = mapped_column(sa.String(1024))
    bio: Mapped[Optional[str]] = mapped_column(sa.Text)
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=utcnow, nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False,
    )

    user: Mapped[User] = relationship(back_populates="profile")


class EmploymentDetail(Base):
    """Job record for a user: placement, leave balances and payroll fields."""

    __tablename__ = "employment_details"
    __table_args__ = (
        sa.UniqueConstraint("organization_id", "employee_code", name="uq_employment_org_code"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        sa.ForeignKey("users.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )
    organization_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("organizations.id", ondelete="SET NULL"),
    )
    employee_code: Mapped[Optional[str]] = mapped_column(sa.String(32))
    designation: Mapped[str] = mapped_column(sa.String(120), nullable=False, default="")
    employment_type: Mapped[EmploymentType] = mapped_column(
        sa.Enum(EmploymentType, name="employment_type"),
        nullable=False,
        default=EmploymentType.FULL_TIME,
    )
    status: Mapped[EmploymentStatus] = mapped_column(
        sa.Enum(EmploymentStatus, name="employment_status"),
        nullable=False,
        default=EmploymentStatus.ACTIVE,
    )
    start_date: Mapped[date] = mapped_column(sa.Date, nullable=False, default=date.today)
    end_date: Mapped[Optional[date]] = mapped_column(sa.Date)
    department_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("departments.id", ondelete="SET NULL"),
    )
    team_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("teams.id", ondelete="SET NULL"),
    )
    reporting_manager_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("users.id", ondelete="SET NULL"),
    )
    primary_location: Mapped[Optional[str]] = mapped_column(sa.String(120))
    is_team_lead: Mapped[bool] = mapped_column(sa.Boolean, nullable=False, default=False)

    # Leave balances (remaining days)
    casual_leave_balance: Mapped[Decimal] = mapped_column(
        sa.Numeric(5, 2), nullable=False, default=DEFAULT_LEAVE_ALLOCATIONS[LeaveType.CASUAL],
    )
    sick_leave_balance: Mapped[Decimal] = mapped_column(
        sa.Numeric(5, 2), nullable=False, default=DEFAULT_LEAVE_ALLOCATIONS[LeaveType.SICK],
    )
    annual_leave_balance: Mapped[Decimal] = mapped_column(
        sa.Numeric(5, 2), nullable=False, default=DEFAULT_LEAVE_ALLOCATIONS[LeaveType.ANNUAL],
    )
    parental_leave_balance: Mapped[Decimal] = mapped_column(
        sa.Numeric(5, 2),
        nullable=False,
        default=DEFAULT_LEAVE_ALLOCATIONS[LeaveType.PATERNITY_MATERNITY],
    )

    # Payroll
    gross_salary: Mapped[Optional[Decimal]] = mapped_column(sa.Numeric(12, 2))
    income_tax: Mapped[Optional[Decimal]] = mapped_column(sa.Numeric(12, 2))
    current_project_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("projects.id", ondelete="SET NULL"),
    )
    current_project_note: Mapped[Optional[str]] = mapped_column(sa.Text)

    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=utcnow, nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False,
    )

    # ── Relationships ───────────────────────────────────────────────
    user: Mapped[User] = relationship(back_populates="employment", foreign_keys=[user_id])
    department: Mapped[Optional[Department]] = relationship(lazy="selectin")
    team: Mapped[Optional[Team]] = relationship(lazy="selectin")
    manager: Mapped[Optional[User]] = relationship(
        foreign_keys=[reporting_manager_id], lazy="selectin",
    )
    current_project: Mapped[Optional[Project]] = relationship(lazy="selectin")


class EmergencyContact(Base):
    __tablename__ = "emergency_contacts"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False,
    )
    name: Mapped[str] = mapped_column(sa.String(120), nullable=False)
    # "relationship" would shadow sqlalchemy.orm.relationship in the class body
    relation: Mapped[str] = mapped_column("relationship", sa.String(64), nullable=False)
    phone: Mapped[str] = mapped_column(sa.String(32), nullable=False, default="")
    alternate_phone: Mapped[Optional[str]] = mapped_column(sa.String(32))
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=utcnow, nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False,
    )

    user: Mapped[User] = relationship(back_populates="emergency_contacts")


class EmployeeBankAccount(Base):
    __tablename__ = "employee_bank_accounts"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False,
    )
    bank_name: Mapped[str] = mapped_column(sa.String(120), nullable=False)
    account_holder: Mapped[str] = mapped_column(sa.String(120), nullable=False)
    account_number: Mapped[str] = mapped_column(sa.String(64), nullable=False)
    branch: Mapped[Optional[str]] = mapped_column(sa.String(120))
    swift_code: Mapped[Optional[str]] = mapped_column(sa.String(32))
    tax_id: Mapped[Optional[str]] = mapped_column(sa.String(64))
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=utcnow, nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False,
    )

    user: Mapped[User] = relationship(back_populates="bank_accounts")


# ═════════════════════════════════════════════════════════════════════
# Department / Team
# ═════════════════════════════════════════════════════════════════════


class Department(Base):
    __tablename__ = "departments"
    __table_args__ = (
        sa.UniqueConstraint("organization_id", "name", name="uq_department_org_name"),
        sa.UniqueConstraint("organization_id", "code", name="uq_department_org_code"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    organization_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False,
    )
    name: Mapped[str] = mapped_column(sa.String(120), nullable=False)
    code: Mapped[Optional[str]] = mapped_column(sa.String(24))
    description: Mapped[Optional[str]] = mapped_column(sa.Text)
    head_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("users.id", ondelete="SET NULL"),
    )
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=utcnow, nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False,
    )

    head: Mapped[Optional[User]] = relationship(foreign_keys=[head_id], lazy="selectin")

    def __repr__(self) -> str:
        return f"<Department {self.name!r} ({self.code})>"


class Team(Base):
    __tablename__ = "teams"
    __table_args__ = (
        sa.UniqueConstraint("organization_id", "name", name="uq_team_org_name"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    organization_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False,
    )
    department_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("departments.id", ondelete="CASCADE"), nullable=False,
    )
    name: Mapped[str] = mapped_column(sa.String(120), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(sa.Text)
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=utcnow, nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False,
    )

    department: Mapped[Department] = relationship(lazy="selectin")
    leads: Mapped[list[TeamLead]] = relationship(
        back_populates="team",
        lazy="selectin",
        cascade="all, delete-orphan",
        order_by="TeamLead.created_at",
    )

    def __repr__(self) -> str:
        return f"<Team {self.name!r}>"


class TeamLead(Base):
    __tablename__ = "team_leads"
    __table_args__ = (
        sa.UniqueConstraint("team_id", "lead_id", name="uq_team_lead"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    team_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("teams.id", ondelete="CASCADE"), nullable=False,
    )
    lead_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False,
    )
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=utcnow, nullable=False,
    )

    team: Mapped[Team] = relationship(back_populates="leads")
    lead: Mapped[User] = relationship(lazy="selectin")


# ═════════════════════════════════════════════════════════════════════
# Project
# ═════════════════════════════════════════════════════════════════════


class Project(Base):
    """Client or internal engagement; members point at it via EmploymentDetail."""

    __tablename__ = "projects"
    __table_args__ = (
        sa.UniqueConstraint("organization_id", "name", name="uq_project_org_name"),
        sa.UniqueConstraint("organization_id", "code", name="uq_project_org_code"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    organization_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False,
    )
    name: Mapped[str] = mapped_column(sa.String(160), nullable=False)
    code: Mapped[Optional[str]] = mapped_column(sa.String(64))
    description: Mapped[Optional[str]] = mapped_column(sa.Text)
    client_name: Mapped[Optional[str]] = mapped_column(sa.String(128))
    status: Mapped[ProjectStatus] = mapped_column(
        sa.Enum(ProjectStatus, name="project_status"),
        nullable=False,
        default=ProjectStatus.ACTIVE,
    )
    start_date: Mapped[Optional[date]] = mapped_column(sa.Date)
    end_date: Mapped[Optional[date]] = mapped_column(sa.Date)
    project_manager_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("users.id", ondelete="SET NULL"),
    )
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=utcnow, nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False,
    )

    project_manager: Mapped[Optional[User]] = relationship(
        foreign_keys=[project_manager_id], lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<Project {self.name!r} ({self.status.value})>"

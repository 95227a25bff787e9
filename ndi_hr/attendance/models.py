"""Attendance ORM models: AttendanceRecord, Holiday, WorkPolicy."""

from __future__ import annotations

import uuid
from datetime import date, datetime
from typing import Optional

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ndi_hr.common.constants import (
    DEFAULT_ONSITE_END,
    DEFAULT_ONSITE_START,
    DEFAULT_REMOTE_END,
    DEFAULT_REMOTE_START,
    DEFAULT_WEEKEND_DAYS,
    DEFAULT_WORKING_DAYS,
    AttendanceStatus,
)
from ndi_hr.common.formatting import utcnow
from ndi_hr.database import Base


# ═════════════════════════════════════════════════════════════════════
# AttendanceRecord (one row per employee per day)
# ═════════════════════════════════════════════════════════════════════


class AttendanceRecord(Base):
    __tablename__ = "attendance_records"
    __table_args__ = (
        sa.UniqueConstraint("employee_id", "attendance_date", name="uq_attendance_employee_date"),
        sa.Index("ix_attendance_date", "attendance_date"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    employee_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False,
    )
    attendance_date: Mapped[date] = mapped_column(sa.Date, nullable=False)
    check_in_at: Mapped[Optional[datetime]] = mapped_column(sa.DateTime(timezone=True))
    check_out_at: Mapped[Optional[datetime]] = mapped_column(sa.DateTime(timezone=True))
    total_work_seconds: Mapped[int] = mapped_column(sa.Integer, nullable=False, default=0)
    total_break_seconds: Mapped[int] = mapped_column(sa.Integer, nullable=False, default=0)
    status: Mapped[AttendanceStatus] = mapped_column(
        sa.Enum(AttendanceStatus, name="attendance_status"),
        nullable=False,
        default=AttendanceStatus.PRESENT,
    )
    note: Mapped[Optional[str]] = mapped_column(sa.Text)
    location: Mapped[Optional[str]] = mapped_column(sa.String(64))
    source: Mapped[Optional[str]] = mapped_column(sa.String(32))
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=utcnow, nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False,
    )

    employee: Mapped["ndi_hr.core_hr.models.User"] = relationship(lazy="selectin")

    def __repr__(self) -> str:
        return f"<AttendanceRecord {self.employee_id} {self.attendance_date} {self.status.value}>"


# ═════════════════════════════════════════════════════════════════════
# Holiday / WorkPolicy (organization calendar)
# ═════════════════════════════════════════════════════════════════════


class Holiday(Base):
    __tablename__ = "holidays"
    __table_args__ = (
        sa.UniqueConstraint("organization_id", "date", name="uq_holiday_org_date"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    organization_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False,
    )
    title: Mapped[str] = mapped_column(sa.String(120), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(sa.String(240))
    holiday_date: Mapped[date] = mapped_column("date", sa.Date, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=utcnow, nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False,
    )


class WorkPolicy(Base):
    """Per-organization office hours and working week."""

    __tablename__ = "work_policies"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    organization_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        sa.ForeignKey("organizations.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )
    onsite_start_time: Mapped[str] = mapped_column(
        sa.String(5), nullable=False, default=DEFAULT_ONSITE_START,
    )
    onsite_end_time: Mapped[str] = mapped_column(
        sa.String(5), nullable=False, default=DEFAULT_ONSITE_END,
    )
    remote_start_time: Mapped[str] = mapped_column(
        sa.String(5), nullable=False, default=DEFAULT_REMOTE_START,
    )
    remote_end_time: Mapped[str] = mapped_column(
        sa.String(5), nullable=False, default=DEFAULT_REMOTE_END,
    )
    # Weekday names, e.g. ["MONDAY", "TUESDAY"]
    working_days: Mapped[list] = mapped_column(
        JSONB, nullable=False, default=lambda: [d.value for d in DEFAULT_WORKING_DAYS],
    )
    weekend_days: Mapped[list] = mapped_column(
        JSONB, nullable=False, default=lambda: [d.value for d in DEFAULT_WEEKEND_DAYS],
    )
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=utcnow, nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False,
    )

"""Work report ORM models: daily and monthly reports with their task entries."""

from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ndi_hr.common.formatting import utcnow
from ndi_hr.database import Base


# ═════════════════════════════════════════════════════════════════════
# Daily report
# ═════════════════════════════════════════════════════════════════════


class DailyReport(Base):
    __tablename__ = "daily_reports"
    __table_args__ = (
        sa.UniqueConstraint("employee_id", "report_date", name="uq_daily_report_employee_date"),
        sa.Index("ix_daily_reports_org_date", "organization_id", "report_date"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    organization_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False,
    )
    employee_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False,
    )
    report_date: Mapped[date] = mapped_column(sa.Date, nullable=False)
    note: Mapped[Optional[str]] = mapped_column(sa.Text)
    submitted_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=utcnow, nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False,
    )

    entries: Mapped[list[DailyReportEntry]] = relationship(
        back_populates="report",
        lazy="selectin",
        cascade="all, delete-orphan",
        order_by="DailyReportEntry.position",
    )
    employee: Mapped["ndi_hr.core_hr.models.User"] = relationship(lazy="selectin")

    def __repr__(self) -> str:
        return f"<DailyReport {self.employee_id} {self.report_date}>"


class DailyReportEntry(Base):
    __tablename__ = "daily_report_entries"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    report_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("daily_reports.id", ondelete="CASCADE"), nullable=False,
    )
    position: Mapped[int] = mapped_column(sa.Integer, nullable=False, default=0)
    work_type: Mapped[str] = mapped_column(sa.String(120), nullable=False)
    task_name: Mapped[str] = mapped_column(sa.String(255), nullable=False)
    others: Mapped[Optional[str]] = mapped_column(sa.String(255))
    details: Mapped[str] = mapped_column(sa.Text, nullable=False)
    working_hours: Mapped[Decimal] = mapped_column(sa.Numeric(5, 2), nullable=False)

    report: Mapped[DailyReport] = relationship(back_populates="entries")


# ═════════════════════════════════════════════════════════════════════
# Monthly report
# ═════════════════════════════════════════════════════════════════════


class MonthlyReport(Base):
    __tablename__ = "monthly_reports"
    __table_args__ = (
        sa.UniqueConstraint("employee_id", "report_month", name="uq_monthly_report_employee_month"),
        sa.Index("ix_monthly_reports_org_month", "organization_id", "report_month"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    organization_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False,
    )
    employee_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False,
    )
    # Always the first day of the month
    report_month: Mapped[date] = mapped_column(sa.Date, nullable=False)
    submitted_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=utcnow, nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False,
    )

    entries: Mapped[list[MonthlyReportEntry]] = relationship(
        back_populates="report",
        lazy="selectin",
        cascade="all, delete-orphan",
        order_by="MonthlyReportEntry.position",
    )
    employee: Mapped["ndi_hr.core_hr.models.User"] = relationship(lazy="selectin")

    def __repr__(self) -> str:
        return f"<MonthlyReport {self.employee_id} {self.report_month}>"


class MonthlyReportEntry(Base):
    __tablename__ = "monthly_report_entries"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    report_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("monthly_reports.id", ondelete="CASCADE"), nullable=False,
    )
    position: Mapped[int] = mapped_column(sa.Integer, nullable=False, default=0)
    task_name: Mapped[str] = mapped_column(sa.String(255), nullable=False)
    story_point: Mapped[Decimal] = mapped_column(sa.Numeric(6, 2), nullable=False)
    working_hours: Mapped[Decimal] = mapped_column(sa.Numeric(6, 2), nullable=False)

    report: Mapped[MonthlyReport] = relationship(back_populates="entries")

"""Leave ORM model: LeaveRequest.

Remaining balances live on ``EmploymentDetail``; a request deducts from the
matching column when it is submitted.
"""

from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ndi_hr.common.constants import LeaveStatus, LeaveType
from ndi_hr.common.formatting import utcnow
from ndi_hr.database import Base


class LeaveRequest(Base):
    __tablename__ = "leave_requests"
    __table_args__ = (
        sa.Index("ix_leave_requests_employee", "employee_id"),
        sa.Index("ix_leave_requests_status", "status"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    employee_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False,
    )
    leave_type: Mapped[LeaveType] = mapped_column(
        sa.Enum(LeaveType, name="leave_type"), nullable=False,
    )
    start_date: Mapped[date] = mapped_column(sa.Date, nullable=False)
    end_date: Mapped[date] = mapped_column(sa.Date, nullable=False)
    total_days: Mapped[Decimal] = mapped_column(sa.Numeric(5, 2), nullable=False)
    status: Mapped[LeaveStatus] = mapped_column(
        sa.Enum(LeaveStatus, name="leave_status"),
        nullable=False,
        default=LeaveStatus.PENDING,
    )
    reason: Mapped[Optional[str]] = mapped_column(sa.Text)
    note: Mapped[Optional[str]] = mapped_column(sa.Text)
    # List of stored attachment dicts (id, name, mimeType, sizeBytes, storageKey, uploadedAt)
    attachments: Mapped[Optional[list]] = mapped_column(JSONB)
    reviewer_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("users.id", ondelete="SET NULL"),
    )
    reviewed_at: Mapped[Optional[datetime]] = mapped_column(sa.DateTime(timezone=True))
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=utcnow, nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False,
    )

    # ── Relationships ───────────────────────────────────────────────
    employee: Mapped["ndi_hr.core_hr.models.User"] = relationship(
        foreign_keys=[employee_id], lazy="selectin",
    )
    reviewer: Mapped[Optional["ndi_hr.core_hr.models.User"]] = relationship(
        foreign_keys=[reviewer_id], lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<LeaveRequest {self.leave_type.value} {self.start_date}..{self.end_date} {self.status.value}>"

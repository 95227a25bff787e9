"""Invoice ORM models: Invoice, InvoiceItem."""

from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ndi_hr.common.constants import InvoiceStatus
from ndi_hr.common.formatting import utcnow
from ndi_hr.database import Base


class Invoice(Base):
    __tablename__ = "invoices"
    __table_args__ = (
        sa.Index("ix_invoices_employee", "employee_id"),
        sa.Index("ix_invoices_org_status", "organization_id", "status"),
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
    created_by_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("users.id", ondelete="SET NULL"),
    )
    title: Mapped[str] = mapped_column(sa.String(160), nullable=False)
    period_month: Mapped[int] = mapped_column(sa.SmallInteger, nullable=False)
    period_year: Mapped[int] = mapped_column(sa.SmallInteger, nullable=False)
    due_date: Mapped[Optional[date]] = mapped_column(sa.Date)
    currency: Mapped[str] = mapped_column(sa.String(12), nullable=False, default="USD")
    subtotal: Mapped[Decimal] = mapped_column(sa.Numeric(12, 2), nullable=False, default=Decimal("0"))
    tax: Mapped[Decimal] = mapped_column(sa.Numeric(12, 2), nullable=False, default=Decimal("0"))
    total: Mapped[Decimal] = mapped_column(sa.Numeric(12, 2), nullable=False, default=Decimal("0"))
    notes: Mapped[Optional[str]] = mapped_column(sa.Text)
    status: Mapped[InvoiceStatus] = mapped_column(
        sa.Enum(InvoiceStatus, name="invoice_status"),
        nullable=False,
        default=InvoiceStatus.DRAFT,
    )
    sent_at: Mapped[Optional[datetime]] = mapped_column(sa.DateTime(timezone=True))
    confirmed_at: Mapped[Optional[datetime]] = mapped_column(sa.DateTime(timezone=True))
    ready_at: Mapped[Optional[datetime]] = mapped_column(sa.DateTime(timezone=True))
    review_comment: Mapped[Optional[str]] = mapped_column(sa.Text)
    reviewed_at: Mapped[Optional[datetime]] = mapped_column(sa.DateTime(timezone=True))
    reviewed_by_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("users.id", ondelete="SET NULL"),
    )
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=utcnow, nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False,
    )

    # ── Relationships ───────────────────────────────────────────────
    items: Mapped[list[InvoiceItem]] = relationship(
        back_populates="invoice",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="InvoiceItem.position",
    )
    employee: Mapped["ndi_hr.core_hr.models.User"] = relationship(
        foreign_keys=[employee_id], lazy="selectin",
    )
    created_by: Mapped[Optional["ndi_hr.core_hr.models.User"]] = relationship(
        foreign_keys=[created_by_id], lazy="selectin",
    )
    reviewed_by: Mapped[Optional["ndi_hr.core_hr.models.User"]] = relationship(
        foreign_keys=[reviewed_by_id], lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<Invoice {self.title!r} {self.period_month}/{self.period_year} {self.status.value}>"


class InvoiceItem(Base):
    __tablename__ = "invoice_items"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    invoice_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("invoices.id", ondelete="CASCADE"), nullable=False,
    )
    position: Mapped[int] = mapped_column(sa.Integer, nullable=False, default=0)
    description: Mapped[str] = mapped_column(sa.String(255), nullable=False)
    quantity: Mapped[int] = mapped_column(sa.Integer, nullable=False, default=1)
    unit_price: Mapped[Decimal] = mapped_column(sa.Numeric(12, 2), nullable=False)
    amount: Mapped[Decimal] = mapped_column(sa.Numeric(12, 2), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=utcnow, nullable=False,
    )

    invoice: Mapped[Invoice] = relationship(back_populates="items")

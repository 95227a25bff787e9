"""Notification ORM models: Notification, NotificationReceipt."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any, Optional

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ndi_hr.common.constants import (
    NotificationAudience,
    NotificationStatus,
    NotificationType,
)
from ndi_hr.common.formatting import utcnow
from ndi_hr.database import Base


class Notification(Base):
    """A message addressed to a whole organization, a set of roles or one user."""

    __tablename__ = "notifications"
    __table_args__ = (
        sa.Index("ix_notifications_org_status", "organization_id", "status"),
        sa.Index("ix_notifications_target_user", "target_user_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    organization_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False,
    )
    sender_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("users.id", ondelete="SET NULL"),
    )
    title: Mapped[str] = mapped_column(sa.String(160), nullable=False)
    body: Mapped[str] = mapped_column(sa.Text, nullable=False)
    type: Mapped[NotificationType] = mapped_column(
        sa.Enum(NotificationType, name="notification_type"),
        nullable=False,
        default=NotificationType.ANNOUNCEMENT,
    )
    audience: Mapped[NotificationAudience] = mapped_column(
        sa.Enum(NotificationAudience, name="notification_audience"),
        nullable=False,
        default=NotificationAudience.ORGANIZATION,
    )
    # Role values, e.g. ["HR_ADMIN", "MANAGER"]; only used with the ROLE audience
    target_roles: Mapped[list] = mapped_column(JSONB, nullable=False, default=list)
    target_user_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("users.id", ondelete="CASCADE"),
    )
    status: Mapped[NotificationStatus] = mapped_column(
        sa.Enum(NotificationStatus, name="notification_status"),
        nullable=False,
        default=NotificationStatus.DRAFT,
    )
    action_url: Mapped[Optional[str]] = mapped_column(sa.String(512))
    # "metadata" is reserved on declarative classes
    metadata_: Mapped[Optional[dict[str, Any]]] = mapped_column("metadata", JSONB)
    scheduled_at: Mapped[Optional[datetime]] = mapped_column(sa.DateTime(timezone=True))
    sent_at: Mapped[Optional[datetime]] = mapped_column(sa.DateTime(timezone=True))
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=utcnow, nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False,
    )

    sender: Mapped[Optional["ndi_hr.core_hr.models.User"]] = relationship(
        foreign_keys=[sender_id], lazy="selectin",
    )
    target_user: Mapped[Optional["ndi_hr.core_hr.models.User"]] = relationship(
        foreign_keys=[target_user_id], lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<Notification {self.type.value} {self.title!r}>"


class NotificationReceipt(Base):
    __tablename__ = "notification_receipts"
    __table_args__ = (
        sa.UniqueConstraint("notification_id", "user_id", name="uq_notification_receipt"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    notification_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("notifications.id", ondelete="CASCADE"), nullable=False,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False,
    )
    is_seen: Mapped[bool] = mapped_column(sa.Boolean, nullable=False, default=False)
    seen_at: Mapped[Optional[datetime]] = mapped_column(sa.DateTime(timezone=True))
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=utcnow, nullable=False,
    )

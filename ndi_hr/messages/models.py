"""Chat ORM models: Thread, ThreadParticipant, ChatMessage."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ndi_hr.common.formatting import utcnow
from ndi_hr.database import Base


class Thread(Base):
    __tablename__ = "threads"
    __table_args__ = (
        sa.Index("ix_threads_org_last_message", "organization_id", "last_message_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    organization_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False,
    )
    created_by_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("users.id", ondelete="SET NULL"),
    )
    title: Mapped[Optional[str]] = mapped_column(sa.String(100))
    is_private: Mapped[bool] = mapped_column(sa.Boolean, nullable=False, default=True)
    last_message_at: Mapped[Optional[datetime]] = mapped_column(sa.DateTime(timezone=True))
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=utcnow, nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False,
    )

    participants: Mapped[list[ThreadParticipant]] = relationship(
        back_populates="thread",
        lazy="selectin",
        cascade="all, delete-orphan",
        order_by="ThreadParticipant.created_at",
    )

    def __repr__(self) -> str:
        return f"<Thread {self.id} ({len(self.participants)} participants)>"


class ThreadParticipant(Base):
    __tablename__ = "thread_participants"
    __table_args__ = (
        sa.UniqueConstraint("thread_id", "user_id", name="uq_thread_participant"),
        sa.Index("ix_thread_participants_user", "user_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    thread_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("threads.id", ondelete="CASCADE"), nullable=False,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False,
    )
    last_read_at: Mapped[Optional[datetime]] = mapped_column(sa.DateTime(timezone=True))
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=utcnow, nullable=False,
    )

    thread: Mapped[Thread] = relationship(back_populates="participants", lazy="selectin")
    user: Mapped["ndi_hr.core_hr.models.User"] = relationship(lazy="selectin")


class ChatMessage(Base):
    __tablename__ = "chat_messages"
    __table_args__ = (
        sa.Index("ix_chat_messages_thread_created", "thread_id", "created_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    thread_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("threads.id", ondelete="CASCADE"), nullable=False,
    )
    sender_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False,
    )
    body: Mapped[str] = mapped_column(sa.Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=utcnow, nullable=False,
    )

    sender: Mapped["ndi_hr.core_hr.models.User"] = relationship(lazy="selectin")

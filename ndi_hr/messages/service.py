"""Chat service: thread list, member directory, thread detail, send, create.

Threads never cross organizations. A participant's ``last_read_at`` moves
forward when they open the thread or post into it; anything newer from
someone else counts as unread.
"""

from __future__ import annotations

import logging
import uuid
from typing import Optional, Sequence

from fastapi import BackgroundTasks
from sqlalchemy import and_, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from ndi_hr.common.constants import EmploymentStatus
from ndi_hr.common.exceptions import BadRequestException, ForbiddenException, NotFoundException
from ndi_hr.common.formatting import utcnow
from ndi_hr.core_hr.models import EmployeeProfile, User
from ndi_hr.messages.models import ChatMessage, Thread, ThreadParticipant
from ndi_hr.messages.schemas import (
    CreateThreadRequest,
    DirectoryEntry,
    DirectoryResponse,
    ThreadDetailView,
    ThreadListResponse,
    ThreadMessageView,
    ThreadParticipantView,
    ThreadSummaryView,
)
from ndi_hr.notifications.realtime import MESSAGE_EVENT, hub

logger = logging.getLogger(__name__)

PRIVATE_THREAD_MAX_PARTICIPANTS = 10
TITLE_NAME_LIMIT = 3


def _organization_id(viewer: User) -> uuid.UUID:
    if viewer.organization_id is None:
        raise BadRequestException(detail="Join an organization to use chat.")
    return viewer.organization_id


def _participant_view(user: User) -> ThreadParticipantView:
    return ThreadParticipantView(
        id=user.id,
        name=user.display_name,
        avatar_url=user.profile.profile_photo_url if user.profile else None,
        designation=user.employment.designation if user.employment else None,
    )


def _message_view(message: ChatMessage) -> ThreadMessageView:
    sender = message.sender
    return ThreadMessageView(
        id=message.id,
        thread_id=message.thread_id,
        body=message.body,
        created_at=message.created_at,
        sender_id=message.sender_id,
        sender_name=sender.display_name if sender else "Unknown member",
        sender_avatar=sender.profile.profile_photo_url if sender and sender.profile else None,
    )


def thread_title(thread: Thread, viewer_id: uuid.UUID) -> str:
    """Explicit title, else up to three counterpart names, else "Personal Notes"."""
    if thread.title and thread.title.strip():
        return thread.title.strip()
    names = [p.user.display_name for p in thread.participants if p.user_id != viewer_id]
    if not names:
        return "Personal Notes"
    return ", ".join(list(dict.fromkeys(names))[:TITLE_NAME_LIMIT])


class MessageService:

    # ── Membership ───────────────────────────────────────────────────

    @staticmethod
    async def _membership(
        db: AsyncSession, thread_id: uuid.UUID, viewer: User,
    ) -> ThreadParticipant:
        organization_id = _organization_id(viewer)
        result = await db.execute(
            select(ThreadParticipant).where(
                ThreadParticipant.thread_id == thread_id,
                ThreadParticipant.user_id == viewer.id,
            ),
        )
        membership = result.scalars().first()
        if membership is None:
            raise NotFoundException("Thread", thread_id, detail="Thread is not available.")
        thread = await db.get(Thread, thread_id)
        if thread is None or thread.organization_id != organization_id:
            raise ForbiddenException(detail="Thread is restricted to another organization.")
        return membership

    # ── Reads ────────────────────────────────────────────────────────

    @staticmethod
    async def _unread_counts(
        db: AsyncSession, viewer_id: uuid.UUID, memberships: Sequence[ThreadParticipant],
    ) -> dict[uuid.UUID, int]:
        if not memberships:
            return {}
        unread_clauses = [
            and_(
                ChatMessage.thread_id == m.thread_id,
                ChatMessage.created_at > m.last_read_at,
            ) if m.last_read_at is not None else ChatMessage.thread_id == m.thread_id
            for m in memberships
        ]
        result = await db.execute(
            select(ChatMessage.thread_id, func.count())
            .where(ChatMessage.sender_id != viewer_id, or_(*unread_clauses))
            .group_by(ChatMessage.thread_id),
        )
        return {thread_id: count for thread_id, count in result.all()}

    @staticmethod
    async def _last_messages(
        db: AsyncSession, thread_ids: Sequence[uuid.UUID],
    ) -> dict[uuid.UUID, ChatMessage]:
        if not thread_ids:
            return {}
        result = await db.execute(
            select(ChatMessage)
            .where(ChatMessage.thread_id.in_(thread_ids))
            .order_by(ChatMessage.created_at.desc()),
        )
        latest: dict[uuid.UUID, ChatMessage] = {}
        for message in result.scalars().all():
            latest.setdefault(message.thread_id, message)
        return latest

    @staticmethod
    async def list_threads(
        db: AsyncSession, viewer: User, query: Optional[str] = None,
    ) -> ThreadListResponse:
        organization_id = _organization_id(viewer)
        result = await db.execute(
            select(ThreadParticipant)
            .join(Thread, Thread.id == ThreadParticipant.thread_id)
            .where(
                ThreadParticipant.user_id == viewer.id,
                Thread.organization_id == organization_id,
            )
            .order_by(Thread.last_message_at.desc(), Thread.updated_at.desc()),
        )
        memberships = result.scalars().all()
        unread = await MessageService._unread_counts(db, viewer.id, memberships)
        latest = await MessageService._last_messages(db, [m.thread_id for m in memberships])

        summaries = []
        for membership in memberships:
            thread = membership.thread
            participants = [_participant_view(p.user) for p in thread.participants]
            last = latest.get(thread.id)
            summaries.append(ThreadSummaryView(
                id=thread.id,
                title=thread_title(thread, viewer.id),
                last_message_at=thread.last_message_at,
                last_message=_message_view(last) if last else None,
                unread_count=unread.get(thread.id, 0),
                participant_count=len(participants),
                participants=participants,
            ))

        needle = (query or "").strip().lower()
        if needle:
            summaries = [
                s for s in summaries
                if needle in s.title.lower() or any(needle in p.name.lower() for p in s.participants)
            ]
        return ThreadListResponse(threads=summaries)

    @staticmethod
    async def directory(
        db: AsyncSession, viewer: User, query: Optional[str] = None,
    ) -> DirectoryResponse:
        organization_id = _organization_id(viewer)
        stmt = (
            select(User)
            .outerjoin(EmployeeProfile, EmployeeProfile.user_id == User.id)
            .where(
                User.organization_id == organization_id,
                User.status != EmploymentStatus.TERMINATED,
            )
            .order_by(EmployeeProfile.first_name, EmployeeProfile.last_name)
        )
        needle = (query or "").strip()
        if needle:
            pattern = f"%{needle}%"
            stmt = stmt.where(or_(
                User.email.ilike(pattern),
                EmployeeProfile.first_name.ilike(pattern),
                EmployeeProfile.last_name.ilike(pattern),
                EmployeeProfile.preferred_name.ilike(pattern),
            ))
        members = (await db.execute(stmt)).scalars().all()
        return DirectoryResponse(
            viewer_id=viewer.id,
            members=[
                DirectoryEntry(
                    id=m.id,
                    name=m.display_name,
                    email=m.email,
                    avatar_url=m.profile.profile_photo_url if m.profile else None,
                    designation=m.employment.designation if m.employment else None,
                    role=m.role,
                )
                for m in members
            ],
        )

    @staticmethod
    async def thread_detail(db: AsyncSession, viewer: User, thread_id: uuid.UUID) -> ThreadDetailView:
        membership = await MessageService._membership(db, thread_id, viewer)
        thread = membership.thread

        messages = await db.execute(
            select(ChatMessage)
            .where(ChatMessage.thread_id == thread_id)
            .order_by(ChatMessage.created_at),
        )
        membership.last_read_at = utcnow()
        await db.flush()

        return ThreadDetailView(
            id=thread.id,
            title=thread_title(thread, viewer.id),
            participants=[_participant_view(p.user) for p in thread.participants],
            messages=[_message_view(m) for m in messages.scalars().all()],
            viewer_id=viewer.id,
        )

    # ── Writes ───────────────────────────────────────────────────────

    @staticmethod
    async def _load_message(db: AsyncSession, message_id: uuid.UUID) -> ChatMessage:
        result = await db.execute(
            select(ChatMessage)
            .where(ChatMessage.id == message_id)
            .execution_options(populate_existing=True),
        )
        return result.scalar_one()

    @staticmethod
    def _push(
        background_tasks: Optional[BackgroundTasks],
        thread: Thread,
        sender_id: uuid.UUID,
        message: ThreadMessageView,
    ) -> None:
        if background_tasks is None or hub.connection_count() == 0:
            return
        recipients = [p.user_id for p in thread.participants if p.user_id != sender_id]
        if recipients:
            background_tasks.add_task(
                hub.deliver, [(recipients, message.model_dump(mode="json"))], MESSAGE_EVENT,
            )

    @staticmethod
    async def send_message(
        db: AsyncSession,
        viewer: User,
        thread_id: uuid.UUID,
        body: str,
        background_tasks: Optional[BackgroundTasks] = None,
    ) -> ThreadMessageView:
        membership = await MessageService._membership(db, thread_id, viewer)
        text = body.strip()
        if not text:
            raise BadRequestException(detail="Message cannot be empty.")

        message = ChatMessage(thread_id=thread_id, sender_id=viewer.id, body=text, created_at=utcnow())
        db.add(message)
        membership.thread.last_message_at = message.created_at
        membership.last_read_at = message.created_at
        await db.flush()
        message = await MessageService._load_message(db, message.id)

        view = _message_view(message)
        MessageService._push(background_tasks, membership.thread, viewer.id, view)
        return view

    @staticmethod
    async def create_thread(
        db: AsyncSession,
        viewer: User,
        body: CreateThreadRequest,
        background_tasks: Optional[BackgroundTasks] = None,
    ) -> ThreadDetailView:
        organization_id = _organization_id(viewer)
        text = body.message.strip()
        if not text:
            raise BadRequestException(detail="Message cannot be empty.")

        participant_ids = list(dict.fromkeys([*body.participant_ids, viewer.id]))
        found = await db.execute(
            select(func.count()).select_from(User).where(
                User.id.in_(participant_ids),
                User.organization_id == organization_id,
            ),
        )
        if found.scalar_one() != len(participant_ids):
            raise BadRequestException(
                detail="One or more participants could not be added to this chat.",
            )

        now = utcnow()
        thread = Thread(
            organization_id=organization_id,
            created_by_id=viewer.id,
            title=body.title,
            is_private=len(participant_ids) <= PRIVATE_THREAD_MAX_PARTICIPANTS,
            last_message_at=now,
            participants=[
                ThreadParticipant(user_id=uid, last_read_at=now if uid == viewer.id else None)
                for uid in participant_ids
            ],
        )
        db.add(thread)
        await db.flush()
        message = ChatMessage(thread_id=thread.id, sender_id=viewer.id, body=text, created_at=now)
        db.add(message)
        await db.flush()
        # Pending participants carry no eager-loaded users yet
        await db.execute(
            select(ThreadParticipant)
            .where(ThreadParticipant.thread_id == thread.id)
            .execution_options(populate_existing=True),
        )
        message = await MessageService._load_message(db, message.id)

        logger.info("Thread %s created by %s with %d participants", thread.id, viewer.id, len(participant_ids))
        MessageService._push(background_tasks, thread, viewer.id, _message_view(message))
        return await MessageService.thread_detail(db, viewer, thread.id)

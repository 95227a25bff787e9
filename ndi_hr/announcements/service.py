"""HR announcements: dispatch history grouped by send, and manual sends."""

from __future__ import annotations

import logging
import uuid
from typing import Any, Optional, Sequence

from fastapi import BackgroundTasks
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ndi_hr.announcements.schemas import (
    AnnouncementListItem,
    AnnouncementOverviewResponse,
    AnnouncementRecipient,
    SendAnnouncementRequest,
    SendAnnouncementResponse,
)
from ndi_hr.common.constants import (
    EmploymentStatus,
    NotificationAudience,
    NotificationType,
)
from ndi_hr.common.exceptions import BadRequestException
from ndi_hr.common.formatting import as_utc
from ndi_hr.core_hr.models import EmployeeProfile, User
from ndi_hr.notifications.models import Notification
from ndi_hr.notifications.service import NotificationService

logger = logging.getLogger(__name__)

ANNOUNCEMENT_LIMIT = 40
BODY_PREVIEW_LIMIT = 160


def _named(user: Optional[User]) -> Optional[str]:
    if user is None:
        return None
    profile = user.profile
    if profile is not None:
        parts = [
            p.strip() for p in (profile.preferred_name, profile.first_name, profile.last_name)
            if p and p.strip()
        ]
        if parts:
            return " ".join(parts)
    return user.email


def _recipient(user: User) -> AnnouncementRecipient:
    return AnnouncementRecipient(
        id=user.id,
        name=_named(user) or user.email,
        email=user.email,
        role=user.role.value,
    )


def body_preview(value: str, limit: int = BODY_PREVIEW_LIMIT) -> str:
    if len(value) <= limit:
        return value
    return f"{value[:limit - 1]}…"


def _audience_label(audience: NotificationAudience, recipients: list[AnnouncementRecipient]) -> str:
    if audience == NotificationAudience.ORGANIZATION:
        return "Entire organization"
    if not recipients:
        return "Specific teammates"
    if len(recipients) == 1:
        return recipients[0].name
    return f"{len(recipients)} teammates"


def group_announcements(records: Sequence[Notification]) -> list[AnnouncementListItem]:
    """Collapse per-recipient rows of one send into a single history entry.

    Rows sharing ``metadata.dispatchId`` belong together; rows without one
    stand alone. ``metadata.audienceMode`` wins over the stored audience.
    """
    groups: dict[str, dict[str, Any]] = {}

    for record in records:
        metadata = record.metadata_ if isinstance(record.metadata_, dict) else {}
        raw_dispatch = metadata.get("dispatchId")
        dispatch_id = (
            raw_dispatch if isinstance(raw_dispatch, str) and raw_dispatch.strip() else str(record.id)
        )
        mode = metadata.get("audienceMode")
        if mode in (NotificationAudience.ORGANIZATION.value, NotificationAudience.INDIVIDUAL.value):
            audience = NotificationAudience(mode)
        else:
            audience = record.audience
        sender_name = _named(record.sender)
        sent_at = as_utc(record.sent_at) if record.sent_at else None
        created_at = as_utc(record.created_at)

        group = groups.get(dispatch_id)
        if group is None:
            group = groups[dispatch_id] = {
                "id": dispatch_id,
                "title": record.title,
                "body": record.body,
                "status": record.status.value,
                "audience": audience,
                "sent_at": sent_at,
                "created_at": created_at,
                "recipients": {},
                "sender_id": record.sender_id,
                "sender_name": sender_name,
            }
        else:
            if sent_at and (group["sent_at"] is None or sent_at > group["sent_at"]):
                group["sent_at"] = sent_at
            if created_at < group["created_at"]:
                group["created_at"] = created_at
            if audience == NotificationAudience.ORGANIZATION:
                group["audience"] = NotificationAudience.ORGANIZATION
            if not group["sender_name"] and sender_name:
                group["sender_name"] = sender_name
            if not group["sender_id"] and record.sender_id:
                group["sender_id"] = record.sender_id

        if record.audience == NotificationAudience.INDIVIDUAL and record.target_user is not None:
            recipient = _recipient(record.target_user)
            group["recipients"].setdefault(recipient.id, recipient)

    ordered = sorted(
        groups.values(),
        key=lambda g: g["sent_at"] or g["created_at"],
        reverse=True,
    )

    items = []
    for group in ordered:
        recipients = sorted(group["recipients"].values(), key=lambda r: r.name.lower())
        items.append(AnnouncementListItem(
            id=group["id"],
            title=group["title"],
            body=group["body"],
            body_preview=body_preview(group["body"]),
            status=group["status"],
            audience=group["audience"].value,
            audience_label=_audience_label(group["audience"], recipients),
            sent_at=group["sent_at"],
            created_at=group["created_at"],
            recipient_count=len(recipients),
            recipients=recipients,
            is_organization_wide=group["audience"] == NotificationAudience.ORGANIZATION,
            sender_id=group["sender_id"],
            sender_name=group["sender_name"],
        ))
    return items


# ═════════════════════════════════════════════════════════════════════
# AnnouncementService
# ═════════════════════════════════════════════════════════════════════


class AnnouncementService:

    @staticmethod
    async def overview(db: AsyncSession, viewer: User) -> AnnouncementOverviewResponse:
        result = await db.execute(
            select(Notification)
            .where(
                Notification.organization_id == viewer.organization_id,
                Notification.type == NotificationType.ANNOUNCEMENT,
            )
            .order_by(Notification.sent_at.desc().nulls_last(), Notification.created_at.desc())
            .limit(ANNOUNCEMENT_LIMIT),
        )
        records = result.scalars().all()

        people = await db.execute(
            select(User)
            .outerjoin(EmployeeProfile, EmployeeProfile.user_id == User.id)
            .where(
                User.organization_id == viewer.organization_id,
                User.status != EmploymentStatus.TERMINATED,
            )
            .order_by(EmployeeProfile.first_name, EmployeeProfile.last_name, User.email),
        )

        return AnnouncementOverviewResponse(
            viewer_role=viewer.role.value,
            announcements=group_announcements(records),
            recipients=[_recipient(u) for u in people.scalars().all()],
        )

    @staticmethod
    async def send(
        db: AsyncSession,
        viewer: User,
        body: SendAnnouncementRequest,
        background_tasks: Optional[BackgroundTasks] = None,
    ) -> SendAnnouncementResponse:
        title = body.title.strip()
        text = body.body.strip()
        if not title:
            raise BadRequestException(detail="Provide an announcement topic.")
        if not text:
            raise BadRequestException(detail="Write the announcement details.")

        dispatch_id = str(uuid.uuid4())
        metadata = {
            "dispatchId": dispatch_id,
            "audienceMode": body.audience.value,
            "manualAnnouncement": True,
        }

        if body.audience == NotificationAudience.ORGANIZATION:
            recipient_ids: list[uuid.UUID] = []
        else:
            recipient_ids = list(dict.fromkeys(body.recipient_ids))
            if not recipient_ids:
                raise BadRequestException(detail="Select at least one teammate to notify.")
            result = await db.execute(
                select(User.id).where(
                    User.id.in_(recipient_ids),
                    User.organization_id == viewer.organization_id,
                    User.status != EmploymentStatus.TERMINATED,
                ),
            )
            if len(result.scalars().all()) != len(recipient_ids):
                raise BadRequestException(detail="Some selected teammates are no longer available.")

        targets: list[Optional[uuid.UUID]] = recipient_ids or [None]
        notifications = []
        for target_id in targets:
            notifications.append(await NotificationService.create_notification(
                db,
                organization_id=viewer.organization_id,
                sender_id=viewer.id,
                title=title,
                body=text,
                type=NotificationType.ANNOUNCEMENT,
                audience=(
                    NotificationAudience.INDIVIDUAL if target_id else NotificationAudience.ORGANIZATION
                ),
                target_user_id=target_id,
                action_url="/notification",
                metadata=metadata,
            ))

        await NotificationService.publish(db, notifications, background_tasks)
        logger.info(
            "Announcement %s sent by %s (%d notification(s))",
            dispatch_id, viewer.id, len(notifications),
        )
        return SendAnnouncementResponse(
            dispatch_id=dispatch_id,
            notification_count=len(notifications),
        )

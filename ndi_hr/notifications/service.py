"""Notification service: creation, audience visibility, receipts and realtime fan-out."""

from __future__ import annotations

import logging
import uuid
from datetime import date
from typing import Any, Iterable, Optional, Sequence

from fastapi import BackgroundTasks
from sqlalchemy import String, and_, cast, exists, func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ndi_hr.common.constants import (
    MANAGEMENT_NOTIFICATION_TYPES,
    NOTIFICATION_TYPE_LABELS,
    EmploymentStatus,
    NotificationAudience,
    NotificationStatus,
    NotificationType,
    UserRole,
)
from ndi_hr.common.exceptions import BadRequestException, NotFoundException
from ndi_hr.common.formatting import (
    as_utc,
    format_currency,
    format_long_date,
    month_label,
    title_case_enum,
    utcnow,
)
from ndi_hr.core_hr.models import User
from ndi_hr.notifications.models import Notification, NotificationReceipt
from ndi_hr.notifications.realtime import hub
from ndi_hr.notifications.schemas import (
    MarkSeenResponse,
    NotificationCounts,
    NotificationDetailResponse,
    NotificationHighlight,
    NotificationListItem,
    NotificationListResponse,
    NotificationSender,
    UnseenCountResponse,
)

logger = logging.getLogger(__name__)

_VISIBLE_STATUSES = (NotificationStatus.SENT, NotificationStatus.SCHEDULED)

_ORDERING = (
    Notification.sent_at.desc().nulls_last(),
    Notification.scheduled_at.desc().nulls_last(),
    Notification.created_at.desc(),
)


# ── Audience scope ──────────────────────────────────────────────────

def _role_filter(role: UserRole):
    # target_roles is a JSON array of role names; match the quoted element
    return cast(Notification.target_roles, String).like(f'%"{role.value}"%')


def visibility_clause(user: User):
    """SQL predicate: notifications *user* is allowed to see."""
    return and_(
        Notification.organization_id == user.organization_id,
        Notification.status.in_(_VISIBLE_STATUSES),
        or_(
            Notification.audience == NotificationAudience.ORGANIZATION,
            and_(
                Notification.audience == NotificationAudience.ROLE,
                _role_filter(user.role),
            ),
            and_(
                Notification.audience == NotificationAudience.INDIVIDUAL,
                Notification.target_user_id == user.id,
            ),
        ),
    )


def _require_organization(user: User) -> None:
    if user.organization_id is None:
        raise BadRequestException(detail="Missing organization context for notifications.")


# ── Presentation helpers ────────────────────────────────────────────

def _timestamp(notification: Notification):
    return as_utc(notification.sent_at or notification.scheduled_at or notification.created_at)


def _source(notification_type: NotificationType) -> tuple[str, str]:
    if notification_type in MANAGEMENT_NOTIFICATION_TYPES:
        return "MANAGEMENT", "Management"
    return "SYSTEM", "System"


def _to_list_item(notification: Notification, is_seen: bool) -> NotificationListItem:
    source, source_label = _source(notification.type)
    return NotificationListItem(
        id=notification.id,
        title=notification.title,
        body=notification.body,
        type=notification.type.value,
        type_label=NOTIFICATION_TYPE_LABELS.get(notification.type, notification.type.value),
        status=notification.status.value,
        is_seen=is_seen,
        action_url=notification.action_url,
        timestamp=_timestamp(notification),
        source=source,
        source_label=source_label,
    )


def _string(value: Any) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value
    return None


def _number(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return None
    return None


def _date_label(value: Optional[str]) -> Optional[str]:
    if not value:
        return None
    try:
        return format_long_date(date.fromisoformat(value[:10]))
    except ValueError:
        return None


def _month_label(value: Optional[str]) -> Optional[str]:
    if not value:
        return None
    try:
        year, month = value[:7].split("-")
        return month_label(int(year), int(month))
    except (ValueError, IndexError):
        return None


def _date_range_label(start: Optional[str], end: Optional[str]) -> Optional[str]:
    start_label = _date_label(start)
    end_label = _date_label(end)
    if start_label and end_label and start_label != end_label:
        return f"{start_label} -> {end_label}"
    return start_label or end_label


def build_highlights(
    notification_type: NotificationType,
    metadata: Optional[dict[str, Any]],
) -> list[NotificationHighlight]:
    """Type-specific label/value pairs pulled out of a notification's metadata."""
    if not metadata:
        return []

    pairs: list[tuple[str, Optional[str]]] = []
    if notification_type == NotificationType.ANNOUNCEMENT:
        pairs = [
            ("Effective date", _date_label(
                _string(metadata.get("effectiveDate")) or _string(metadata.get("holidayDate")),
            )),
            ("Applies to", _string(metadata.get("appliesTo"))),
            ("Region", _string(metadata.get("region"))),
            ("Reason", _string(metadata.get("reason"))),
        ]
    elif notification_type == NotificationType.LEAVE:
        dates = metadata.get("dates") if isinstance(metadata.get("dates"), dict) else {}
        start = _string(dates.get("start")) or _string(metadata.get("startDate"))
        end = _string(dates.get("end")) or _string(metadata.get("endDate"))
        pairs = [
            ("Leave type", _string(metadata.get("leaveTypeLabel")) or _string(metadata.get("leaveType"))),
            ("Schedule", _date_range_label(start, end)),
            ("Decision", _string(metadata.get("decision"))),
        ]
    elif notification_type == NotificationType.ATTENDANCE:
        pairs = [
            ("Attendance date", _date_label(_string(metadata.get("attendanceDate")))),
            ("Shift start", _string(metadata.get("shiftStart"))),
            ("Check-in", _string(metadata.get("checkInAt"))),
        ]
    elif notification_type == NotificationType.REPORT:
        pairs = [
            ("Report date", _date_label(_string(metadata.get("date")))),
            ("Report month", _month_label(_string(metadata.get("reportMonth")))),
            ("Owner", _string(metadata.get("ownerTeam"))),
        ]
        missing = metadata.get("missingEmployees")
        if isinstance(missing, list) and missing:
            count = len(missing)
            pairs.append(("Missing submissions", f"{count} teammate{'' if count == 1 else 's'}"))
    elif notification_type == NotificationType.INVOICE:
        total = _number(metadata.get("total"))
        currency = _string(metadata.get("currency"))
        pairs = [
            ("Period", _string(metadata.get("periodLabel")) or _string(metadata.get("period"))),
            ("Total", format_currency(total, currency or "") if total is not None else None),
            ("Status", _string(metadata.get("statusLabel")) or _string(metadata.get("status"))),
        ]

    return [NotificationHighlight(label=label, value=value) for label, value in pairs if value]


def build_audience_label(notification: Notification, viewer_id: uuid.UUID) -> str:
    if notification.audience == NotificationAudience.ORGANIZATION:
        return "Entire organization"
    if notification.audience == NotificationAudience.ROLE:
        roles = notification.target_roles or []
        return ", ".join(title_case_enum(role) for role in roles) if roles else "Role specific"
    if notification.target_user_id and notification.target_user_id == viewer_id:
        return "You"
    return "Individual teammate"


def _sender_summary(notification: Notification) -> Optional[NotificationSender]:
    sender = notification.sender
    if sender is None:
        return None
    profile = sender.profile
    parts = []
    if profile is not None:
        parts = [p for p in (profile.preferred_name, profile.first_name, profile.last_name) if p]
    name = " ".join(parts).strip() or sender.email
    return NotificationSender(id=sender.id, name=name, email=sender.email)


def device_payload(notification: Notification) -> dict[str, Any]:
    return {
        "id": str(notification.id),
        "title": notification.title,
        "body": notification.body,
        "action_url": notification.action_url,
        "timestamp": _timestamp(notification).isoformat(),
        "type": notification.type.value,
        "status": notification.status.value,
    }


# ═════════════════════════════════════════════════════════════════════
# NotificationService
# ═════════════════════════════════════════════════════════════════════


class NotificationService:
    """Async notification operations."""

    @staticmethod
    async def create_notification(
        db: AsyncSession,
        *,
        organization_id: uuid.UUID,
        title: str,
        body: str,
        type: NotificationType,
        audience: NotificationAudience = NotificationAudience.ORGANIZATION,
        sender_id: Optional[uuid.UUID] = None,
        target_roles: Optional[Iterable[UserRole | str]] = None,
        target_user_id: Optional[uuid.UUID] = None,
        action_url: Optional[str] = None,
        metadata: Optional[dict[str, Any]] = None,
        status: NotificationStatus = NotificationStatus.SENT,
    ) -> Notification:
        """Create a new notification and flush to DB."""
        notification = Notification(
            organization_id=organization_id,
            sender_id=sender_id,
            title=title,
            body=body,
            type=type,
            audience=audience,
            target_roles=[getattr(role, "value", role) for role in (target_roles or [])],
            target_user_id=target_user_id,
            status=status,
            action_url=action_url,
            metadata_=metadata,
            sent_at=utcnow() if status == NotificationStatus.SENT else None,
        )
        db.add(notification)
        await db.flush()
        return notification

    # ── Realtime ────────────────────────────────────────────────────

    @staticmethod
    async def resolve_recipient_ids(
        db: AsyncSession,
        notification: Notification,
    ) -> list[uuid.UUID]:
        if notification.audience == NotificationAudience.INDIVIDUAL:
            return [notification.target_user_id] if notification.target_user_id else []

        query = select(User.id).where(
            User.organization_id == notification.organization_id,
            User.status != EmploymentStatus.TERMINATED,
        )
        if notification.audience == NotificationAudience.ROLE:
            roles = [UserRole(role) for role in (notification.target_roles or [])]
            if not roles:
                return []
            query = query.where(User.role.in_(roles))
        result = await db.execute(query)
        return list(result.scalars().all())

    @staticmethod
    async def publish(
        db: AsyncSession,
        notifications: Sequence[Notification],
        background_tasks: Optional[BackgroundTasks],
    ) -> None:
        """Queue realtime pushes for freshly created notifications.

        Recipients are resolved inside the caller's session; the socket sends
        run after the response. Failures are logged and never surface.
        """
        if background_tasks is None or not notifications or hub.connection_count() == 0:
            return
        try:
            deliveries = []
            for notification in notifications:
                recipient_ids = await NotificationService.resolve_recipient_ids(db, notification)
                if recipient_ids:
                    deliveries.append((recipient_ids, device_payload(notification)))
        except SQLAlchemyError:
            logger.exception("Failed to resolve notification recipients")
            return
        if deliveries:
            background_tasks.add_task(hub.deliver, deliveries)

    # ── Reads ───────────────────────────────────────────────────────

    @staticmethod
    async def _seen_ids(
        db: AsyncSession,
        user_id: uuid.UUID,
        notification_ids: Sequence[uuid.UUID],
    ) -> set[uuid.UUID]:
        if not notification_ids:
            return set()
        result = await db.execute(
            select(NotificationReceipt.notification_id).where(
                NotificationReceipt.user_id == user_id,
                NotificationReceipt.is_seen.is_(True),
                NotificationReceipt.notification_id.in_(notification_ids),
            ),
        )
        return set(result.scalars().all())

    @staticmethod
    async def list_notifications(
        db: AsyncSession,
        user: User,
        notification_type: Optional[NotificationType] = None,
        limit: Optional[int] = None,
    ) -> NotificationListResponse:
        _require_organization(user)

        query = select(Notification).where(visibility_clause(user)).order_by(*_ORDERING)
        if notification_type is not None:
            query = query.where(Notification.type == notification_type)
        if limit is not None:
            query = query.limit(limit)
        records = (await db.execute(query)).scalars().all()

        grouped = await db.execute(
            select(Notification.type, func.count())
            .where(visibility_clause(user))
            .group_by(Notification.type),
        )
        per_type = {t.value: 0 for t in NotificationType}
        for row_type, count in grouped.all():
            per_type[NotificationType(row_type).value] = count

        seen = await NotificationService._seen_ids(db, user.id, [n.id for n in records])
        items = [_to_list_item(n, n.id in seen) for n in records]
        return NotificationListResponse(
            notifications=items,
            total=len(items),
            counts=NotificationCounts(overall=sum(per_type.values()), per_type=per_type),
        )

    @staticmethod
    async def _get_visible(
        db: AsyncSession,
        user: User,
        notification_id: uuid.UUID,
    ) -> Notification:
        _require_organization(user)
        result = await db.execute(
            select(Notification).where(
                Notification.id == notification_id,
                visibility_clause(user),
            ),
        )
        notification = result.scalars().first()
        if notification is None:
            raise NotFoundException(
                "Notification", notification_id, detail="Notification could not be found.",
            )
        return notification

    @staticmethod
    async def get_detail(
        db: AsyncSession,
        user: User,
        notification_id: uuid.UUID,
    ) -> NotificationDetailResponse:
        notification = await NotificationService._get_visible(db, user, notification_id)
        seen = await NotificationService._seen_ids(db, user.id, [notification.id])
        base = _to_list_item(notification, notification.id in seen)
        metadata = notification.metadata_ if isinstance(notification.metadata_, dict) else None
        return NotificationDetailResponse(
            **base.model_dump(),
            audience=notification.audience.value,
            audience_label=build_audience_label(notification, user.id),
            metadata=metadata,
            highlights=build_highlights(notification.type, metadata),
            sender=_sender_summary(notification),
        )

    @staticmethod
    async def unseen_count(db: AsyncSession, user: User) -> UnseenCountResponse:
        _require_organization(user)
        seen_receipt = exists().where(
            NotificationReceipt.notification_id == Notification.id,
            NotificationReceipt.user_id == user.id,
            NotificationReceipt.is_seen.is_(True),
        )
        result = await db.execute(
            select(func.count())
            .select_from(Notification)
            .where(
                visibility_clause(user),
                Notification.status == NotificationStatus.SENT,
                ~seen_receipt,
            ),
        )
        return UnseenCountResponse(unseen=result.scalar_one())

    # ── Writes ──────────────────────────────────────────────────────

    @staticmethod
    async def mark_as_seen(
        db: AsyncSession,
        user: User,
        notification_id: uuid.UUID,
    ) -> MarkSeenResponse:
        notification = await NotificationService._get_visible(db, user, notification_id)

        result = await db.execute(
            select(NotificationReceipt).where(
                NotificationReceipt.notification_id == notification.id,
                NotificationReceipt.user_id == user.id,
            ),
        )
        receipt = result.scalars().first()
        if receipt is None:
            db.add(NotificationReceipt(
                notification_id=notification.id,
                user_id=user.id,
                is_seen=True,
                seen_at=utcnow(),
            ))
        elif not receipt.is_seen:
            receipt.is_seen = True
            receipt.seen_at = utcnow()
        await db.flush()
        return MarkSeenResponse(id=notification.id, is_seen=True)

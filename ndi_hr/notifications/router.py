"""Notification endpoints: list, detail, unseen count, mark seen, realtime socket."""

import logging
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect, status
from sqlalchemy.ext.asyncio import AsyncSession

from ndi_hr.auth.dependencies import authenticate_token, get_current_user
from ndi_hr.common.constants import NotificationType
from ndi_hr.common.exceptions import UnauthorizedException
from ndi_hr.config import settings
from ndi_hr.core_hr.models import User
from ndi_hr.database import get_db, session_scope
from ndi_hr.notifications.realtime import hub
from ndi_hr.notifications.schemas import (
    MarkSeenResponse,
    NotificationDetailResponse,
    NotificationListResponse,
    UnseenCountResponse,
)
from ndi_hr.notifications.service import NotificationService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="", tags=["notifications"])


# ── GET / ───────────────────────────────────────────────────────────

@router.get("", response_model=NotificationListResponse)
async def list_notifications(
    type: Optional[NotificationType] = Query(default=None, description="Filter by notification type"),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Notifications visible to the caller, newest first, with per-type counts."""
    return await NotificationService.list_notifications(db, user, notification_type=type)


# ── GET /unseen-count ───────────────────────────────────────────────
# Registered before /{notification_id} so the literal path wins.

@router.get("/unseen-count", response_model=UnseenCountResponse)
async def unseen_count(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await NotificationService.unseen_count(db, user)


# ── WS /ws ──────────────────────────────────────────────────────────

@router.websocket("/ws")
async def notifications_socket(websocket: WebSocket, token: Optional[str] = None):
    """Push ``notification:new`` events to the signed-in user.

    Authenticates with the session cookie or a ``token`` query parameter.
    Incoming frames are ignored; the socket is push-only.
    """
    session_token = websocket.cookies.get(settings.SESSION_COOKIE_NAME) or token
    if not session_token:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    try:
        async with session_scope() as db:
            user = await authenticate_token(db, session_token)
            user_id = user.id
    except UnauthorizedException:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await hub.connect(user_id, websocket)
    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        pass
    finally:
        hub.disconnect(user_id, websocket)
        logger.debug("Realtime socket closed for user %s", user_id)


# ── GET /{notification_id} ──────────────────────────────────────────

@router.get("/{notification_id}", response_model=NotificationDetailResponse)
async def get_notification(
    notification_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await NotificationService.get_detail(db, user, notification_id)


# ── POST /{notification_id}/seen ────────────────────────────────────

@router.post("/{notification_id}/seen", response_model=MarkSeenResponse)
async def mark_seen(
    notification_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await NotificationService.mark_as_seen(db, user, notification_id)

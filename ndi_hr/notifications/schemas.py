"""Notification Pydantic schemas."""

import uuid
from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel


class NotificationListItem(BaseModel):
    id: uuid.UUID
    title: str
    body: str
    type: str
    type_label: str
    status: str
    is_seen: bool
    action_url: Optional[str] = None
    timestamp: datetime
    source: str
    source_label: str


class NotificationCounts(BaseModel):
    overall: int
    per_type: dict[str, int]


class NotificationListResponse(BaseModel):
    notifications: list[NotificationListItem]
    total: int
    counts: NotificationCounts


class NotificationHighlight(BaseModel):
    label: str
    value: str


class NotificationSender(BaseModel):
    id: uuid.UUID
    name: str
    email: str


class NotificationDetailResponse(NotificationListItem):
    audience: str
    audience_label: str
    metadata: Optional[dict[str, Any]] = None
    highlights: list[NotificationHighlight]
    sender: Optional[NotificationSender] = None


class UnseenCountResponse(BaseModel):
    unseen: int


class MarkSeenResponse(BaseModel):
    id: uuid.UUID
    is_seen: bool

"""HR announcement schemas."""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, model_validator

from ndi_hr.common.constants import NotificationAudience


class AnnouncementRecipient(BaseModel):
    id: uuid.UUID
    name: str
    email: str
    role: str


class AnnouncementListItem(BaseModel):
    id: str
    title: str
    body: str
    body_preview: str
    status: str
    audience: str
    audience_label: str
    sent_at: Optional[datetime] = None
    created_at: datetime
    recipient_count: int
    recipients: list[AnnouncementRecipient]
    is_organization_wide: bool
    sender_id: Optional[uuid.UUID] = None
    sender_name: Optional[str] = None


class AnnouncementOverviewResponse(BaseModel):
    viewer_role: str
    announcements: list[AnnouncementListItem]
    recipients: list[AnnouncementRecipient]


class SendAnnouncementRequest(BaseModel):
    title: str = Field(..., min_length=3, max_length=160)
    body: str = Field(..., min_length=10, max_length=2000)
    audience: NotificationAudience = NotificationAudience.ORGANIZATION
    recipient_ids: list[uuid.UUID] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_audience(self):
        if self.audience == NotificationAudience.ROLE:
            raise ValueError("Announcements go to the whole organization or selected teammates.")
        return self


class SendAnnouncementResponse(BaseModel):
    dispatch_id: str
    notification_count: int

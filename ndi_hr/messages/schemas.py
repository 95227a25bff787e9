"""Pydantic v2 schemas for organization chat."""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from ndi_hr.common.constants import UserRole


class DirectoryEntry(BaseModel):
    id: uuid.UUID
    name: str
    email: str
    avatar_url: Optional[str] = None
    designation: Optional[str] = None
    role: UserRole


class DirectoryResponse(BaseModel):
    viewer_id: uuid.UUID
    members: list[DirectoryEntry]


class ThreadParticipantView(BaseModel):
    id: uuid.UUID
    name: str
    avatar_url: Optional[str] = None
    designation: Optional[str] = None


class ThreadMessageView(BaseModel):
    id: uuid.UUID
    thread_id: uuid.UUID
    body: str
    created_at: datetime
    sender_id: uuid.UUID
    sender_name: str
    sender_avatar: Optional[str] = None


class ThreadSummaryView(BaseModel):
    id: uuid.UUID
    title: str
    last_message_at: Optional[datetime] = None
    last_message: Optional[ThreadMessageView] = None
    unread_count: int
    participant_count: int
    participants: list[ThreadParticipantView]


class ThreadListResponse(BaseModel):
    threads: list[ThreadSummaryView]


class ThreadDetailView(BaseModel):
    id: uuid.UUID
    title: str
    participants: list[ThreadParticipantView]
    messages: list[ThreadMessageView]
    viewer_id: uuid.UUID


class SendMessageRequest(BaseModel):
    body: str = Field(..., max_length=2000)


class CreateThreadRequest(BaseModel):
    title: Optional[str] = Field(None, min_length=3, max_length=100)
    participant_ids: list[uuid.UUID] = Field(..., min_length=1)
    message: str = Field(..., max_length=2000)

    @field_validator("title", mode="before")
    @classmethod
    def blank_to_none(cls, v):
        if isinstance(v, str):
            v = v.strip()
            return v or None
        return v

"""Chat router.

Routes:
    /messages                           Threads the viewer takes part in
    /messages/directory                 Organization members to start a chat with
    /messages/threads                   Start a thread with a first message
    /messages/threads/{id}              Thread detail (marks it read)
    /messages/threads/{id}/messages     Post a message
"""

import uuid
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from ndi_hr.auth.dependencies import get_current_user
from ndi_hr.core_hr.models import User
from ndi_hr.database import get_db
from ndi_hr.messages.schemas import (
    CreateThreadRequest,
    DirectoryResponse,
    SendMessageRequest,
    ThreadDetailView,
    ThreadListResponse,
    ThreadMessageView,
)
from ndi_hr.messages.service import MessageService

router = APIRouter(prefix="", tags=["messages"])


@router.get("", response_model=ThreadListResponse)
async def list_threads(
    query: Optional[str] = Query(None, max_length=120),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await MessageService.list_threads(db, user, query)


@router.get("/directory", response_model=DirectoryResponse)
async def directory(
    query: Optional[str] = Query(None, max_length=120),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await MessageService.directory(db, user, query)


@router.post("/threads", response_model=ThreadDetailView, status_code=status.HTTP_201_CREATED)
async def create_thread(
    body: CreateThreadRequest,
    background_tasks: BackgroundTasks,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await MessageService.create_thread(db, user, body, background_tasks)


@router.get("/threads/{thread_id}", response_model=ThreadDetailView)
async def thread_detail(
    thread_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await MessageService.thread_detail(db, user, thread_id)


@router.post(
    "/threads/{thread_id}/messages",
    response_model=ThreadMessageView,
    status_code=status.HTTP_201_CREATED,
)
async def send_message(
    thread_id: uuid.UUID,
    body: SendMessageRequest,
    background_tasks: BackgroundTasks,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await MessageService.send_message(db, user, thread_id, body.body, background_tasks)

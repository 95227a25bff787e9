"""HR announcement endpoints."""

from fastapi import APIRouter, BackgroundTasks, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from ndi_hr.announcements.schemas import (
    AnnouncementOverviewResponse,
    SendAnnouncementRequest,
    SendAnnouncementResponse,
)
from ndi_hr.announcements.service import AnnouncementService
from ndi_hr.auth.dependencies import require_hr_access
from ndi_hr.core_hr.models import User
from ndi_hr.database import get_db

router = APIRouter(prefix="", tags=["hr-announcements"])


# ── GET / ───────────────────────────────────────────────────────────

@router.get("", response_model=AnnouncementOverviewResponse)
async def overview(
    viewer: User = Depends(require_hr_access),
    db: AsyncSession = Depends(get_db),
):
    return await AnnouncementService.overview(db, viewer)


# ── POST / ──────────────────────────────────────────────────────────

@router.post("", response_model=SendAnnouncementResponse, status_code=status.HTTP_201_CREATED)
async def send(
    body: SendAnnouncementRequest,
    background_tasks: BackgroundTasks,
    viewer: User = Depends(require_hr_access),
    db: AsyncSession = Depends(get_db),
):
    return await AnnouncementService.send(db, viewer, body, background_tasks)

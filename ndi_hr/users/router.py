"""Self-service profile endpoints (``/api/v1/users/me``)."""

from typing import Optional

from fastapi import APIRouter, Depends, File, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from ndi_hr.auth.dependencies import get_current_user
from ndi_hr.auth.schemas import MessageResponse
from ndi_hr.core_hr.models import User
from ndi_hr.database import get_db
from ndi_hr.users.schemas import (
    PhotoUploadResponse,
    UpdatePasswordRequest,
    UpdateProfileRequest,
    UserProfileResponse,
)
from ndi_hr.users.service import UserService

router = APIRouter(prefix="", tags=["users"])


# ── GET /me ─────────────────────────────────────────────────────────

@router.get("/me", response_model=UserProfileResponse)
async def get_profile(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await UserService.get_profile(db, user)


# ── PUT /me ─────────────────────────────────────────────────────────

@router.put("/me", response_model=UserProfileResponse)
async def update_profile(
    body: UpdateProfileRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await UserService.update_profile(db, user, body)


# ── PUT /me/password ────────────────────────────────────────────────

@router.put("/me/password", response_model=MessageResponse)
async def update_password(
    body: UpdatePasswordRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    message = await UserService.update_password(db, user, body)
    return MessageResponse(message=message)


# ── POST /me/photo ──────────────────────────────────────────────────

@router.post("/me/photo", response_model=PhotoUploadResponse)
async def upload_photo(
    file: Optional[UploadFile] = File(default=None),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    contents = await file.read() if file is not None else None
    url = await UserService.upload_photo(
        db,
        user,
        content_type=file.content_type if file else None,
        contents=contents,
    )
    return PhotoUploadResponse(profile_photo_url=url)

"""Employee dashboard endpoints (``/api/v1/dashboard``)."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ndi_hr.auth.dependencies import get_current_user
from ndi_hr.core_hr.models import User
from ndi_hr.dashboard.schemas import (
    DashboardAttendanceSection,
    DashboardHolidaysSection,
    DashboardNotificationsSection,
    DashboardOverview,
    DashboardProfileSection,
    DashboardSummarySection,
    DashboardTimeOffSection,
)
from ndi_hr.dashboard.service import DashboardService
from ndi_hr.database import get_db

router = APIRouter(prefix="", tags=["dashboard"])


@router.get("/overview", response_model=DashboardOverview)
async def overview(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await DashboardService.overview(db, user)


@router.get("/profile", response_model=DashboardProfileSection)
async def profile(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return DashboardService.profile_section(await DashboardService.load(db, user))


@router.get("/summary", response_model=DashboardSummarySection)
async def summary(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return DashboardService.summary_section(await DashboardService.load(db, user))


@router.get("/attendance", response_model=DashboardAttendanceSection)
async def attendance(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return DashboardService.attendance_section(await DashboardService.load(db, user))


@router.get("/time-off", response_model=DashboardTimeOffSection)
async def time_off(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return DashboardService.time_off_section(await DashboardService.load(db, user))


@router.get("/notifications", response_model=DashboardNotificationsSection)
async def notifications(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return DashboardService.notifications_section(await DashboardService.load(db, user))


@router.get("/holidays", response_model=DashboardHolidaysSection)
async def holidays(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await DashboardService.holidays(db, user)

"""Attendance router: the employee day-timer and HR work policy management.

Routes:
    /attendance/today               Today's record and work model
    /attendance/start-day           Check in
    /attendance/complete-day        Check out with the timer totals
    /attendance/history             One month of records plus the working week
    /hr/attendance                  Organization day board, calendar and trend
    /hr/attendance/history          One employee's month
    /hr/attendance/manual-entry     Key in or overwrite a day
    /hr/work                        Policy and holiday overview
    /hr/work/holidays               Add a holiday
    /hr/work/hours                  Office hours
    /hr/work/week-schedule          Working and weekend days
"""

import uuid
from datetime import date
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from ndi_hr.attendance.schemas import (
    AttendanceHistoryResponse,
    AttendanceRecordResponse,
    CompleteDayRequest,
    CreateHolidayRequest,
    HolidaySummary,
    HrAttendanceHistoryResponse,
    HrAttendanceLog,
    HrAttendanceOverviewResponse,
    ManualEntryRequest,
    StartDayRequest,
    TodayAttendanceResponse,
    WeekScheduleRequest,
    WorkingHoursRequest,
    WorkOverviewResponse,
    WorkPolicyView,
)
from ndi_hr.attendance.service import AttendanceService, HrAttendanceService, WorkPolicyService
from ndi_hr.auth.dependencies import get_current_user, require_hr_access, require_work_manager
from ndi_hr.core_hr.models import User
from ndi_hr.database import get_db

router = APIRouter(prefix="", tags=["attendance"])
work_router = APIRouter(prefix="", tags=["hr-work"])
hr_router = APIRouter(prefix="", tags=["hr-attendance"])


# ═════════════════════════════════════════════════════════════════════
# Attendance
# ═════════════════════════════════════════════════════════════════════


@router.get("/today", response_model=TodayAttendanceResponse)
async def today(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await AttendanceService.today(db, user)


@router.post("/start-day", response_model=AttendanceRecordResponse, status_code=status.HTTP_201_CREATED)
async def start_day(
    body: StartDayRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await AttendanceService.start_day(db, user, body.location)


@router.post("/complete-day", response_model=AttendanceRecordResponse)
async def complete_day(
    body: CompleteDayRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await AttendanceService.complete_day(db, user, body)


@router.get("/history", response_model=AttendanceHistoryResponse)
async def history(
    month: Optional[int] = Query(None, ge=0, le=11),
    year: Optional[int] = Query(None, ge=2000, le=2100),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await AttendanceService.history(db, user, month=month, year=year)


# ═════════════════════════════════════════════════════════════════════
# Work policy
# ═════════════════════════════════════════════════════════════════════


@work_router.get("", response_model=WorkOverviewResponse)
async def work_overview(
    viewer: User = Depends(require_work_manager),
    db: AsyncSession = Depends(get_db),
):
    return await WorkPolicyService.overview(db, viewer)


@work_router.post("/holidays", response_model=HolidaySummary, status_code=status.HTTP_201_CREATED)
async def create_holiday(
    body: CreateHolidayRequest,
    background_tasks: BackgroundTasks,
    viewer: User = Depends(require_work_manager),
    db: AsyncSession = Depends(get_db),
):
    return await WorkPolicyService.create_holiday(db, viewer, body, background_tasks)


@work_router.put("/hours", response_model=WorkPolicyView)
async def update_working_hours(
    body: WorkingHoursRequest,
    background_tasks: BackgroundTasks,
    viewer: User = Depends(require_work_manager),
    db: AsyncSession = Depends(get_db),
):
    return await WorkPolicyService.update_working_hours(db, viewer, body, background_tasks)


@work_router.put("/week-schedule", response_model=WorkPolicyView)
async def update_week_schedule(
    body: WeekScheduleRequest,
    background_tasks: BackgroundTasks,
    viewer: User = Depends(require_work_manager),
    db: AsyncSession = Depends(get_db),
):
    return await WorkPolicyService.update_week_schedule(db, viewer, body, background_tasks)


# ═════════════════════════════════════════════════════════════════════
# Attendance desk (HR)
# ═════════════════════════════════════════════════════════════════════


@hr_router.get("", response_model=HrAttendanceOverviewResponse)
async def hr_overview(
    day: Optional[date] = Query(None, alias="date"),
    viewer: User = Depends(require_hr_access),
    db: AsyncSession = Depends(get_db),
):
    return await HrAttendanceService.overview(db, viewer, day)


@hr_router.get("/history", response_model=HrAttendanceHistoryResponse)
async def hr_history(
    employee_id: uuid.UUID,
    month: int = Query(..., ge=0, le=11),
    year: int = Query(..., ge=1970, le=2100),
    viewer: User = Depends(require_hr_access),
    db: AsyncSession = Depends(get_db),
):
    return await HrAttendanceService.history(db, viewer, employee_id, month, year)


@hr_router.post("/manual-entry", response_model=HrAttendanceLog)
async def manual_entry(
    body: ManualEntryRequest,
    viewer: User = Depends(require_hr_access),
    db: AsyncSession = Depends(get_db),
):
    return await HrAttendanceService.manual_entry(db, viewer, body)

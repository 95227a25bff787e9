"""Work report router: employee submissions and history, HR overview.

Routes:
    /reports/daily                  Submit (upsert) the day's report
    /reports/daily/history          Paginated personal history
    /reports/monthly                Submit (upsert) the month's report
    /reports/monthly/history        Paginated personal history
    /hr/reports                     Organization overview with trends
"""

import uuid
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ndi_hr.auth.dependencies import get_current_user, require_hr_access
from ndi_hr.common.pagination import PaginationParams
from ndi_hr.core_hr.models import User
from ndi_hr.database import get_db
from ndi_hr.reports.schemas import (
    DailyHistoryResponse,
    DailyReportRequest,
    DailyReportSubmitted,
    HrReportOverviewResponse,
    MonthlyHistoryResponse,
    MonthlyReportRequest,
    MonthlyReportSubmitted,
    ReportSort,
)
from ndi_hr.reports.service import HrReportService, ReportService

router = APIRouter(prefix="", tags=["reports"])
hr_router = APIRouter(prefix="", tags=["hr-reports"])


# ═════════════════════════════════════════════════════════════════════
# Employee
# ═════════════════════════════════════════════════════════════════════


@router.post("/daily", response_model=DailyReportSubmitted)
async def submit_daily(
    body: DailyReportRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await ReportService.submit_daily(db, user, body)


@router.get("/daily/history", response_model=DailyHistoryResponse)
async def daily_history(
    pagination: PaginationParams = Depends(),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    search: Optional[str] = Query(None, max_length=200),
    sort: ReportSort = Query("recent"),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await ReportService.daily_history(
        db, user, pagination,
        start_date=start_date, end_date=end_date, search=search, sort=sort,
    )


@router.post("/monthly", response_model=MonthlyReportSubmitted)
async def submit_monthly(
    body: MonthlyReportRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await ReportService.submit_monthly(db, user, body)


@router.get("/monthly/history", response_model=MonthlyHistoryResponse)
async def monthly_history(
    pagination: PaginationParams = Depends(),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    search: Optional[str] = Query(None, max_length=200),
    sort: ReportSort = Query("recent"),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await ReportService.monthly_history(
        db, user, pagination,
        start_date=start_date, end_date=end_date, search=search, sort=sort,
    )


# ═════════════════════════════════════════════════════════════════════
# HR
# ═════════════════════════════════════════════════════════════════════


@hr_router.get("", response_model=HrReportOverviewResponse)
async def report_overview(
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    employee_id: Optional[uuid.UUID] = Query(None),
    search: Optional[str] = Query(None, max_length=200),
    viewer: User = Depends(require_hr_access),
    db: AsyncSession = Depends(get_db),
):
    return await HrReportService.overview(
        db, viewer,
        start_date=start_date, end_date=end_date, employee_id=employee_id, search=search,
    )

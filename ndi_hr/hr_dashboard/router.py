"""HR dashboard endpoint (``/api/v1/hr/dashboard``)."""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ndi_hr.auth.dependencies import require_hr_access
from ndi_hr.core_hr.models import User
from ndi_hr.database import get_db
from ndi_hr.hr_dashboard.schemas import HrDashboardResponse
from ndi_hr.hr_dashboard.service import HrDashboardService

router = APIRouter(prefix="", tags=["hr-dashboard"])


@router.get("", response_model=HrDashboardResponse)
async def overview(
    day: Optional[date] = Query(None, alias="date"),
    user: User = Depends(require_hr_access),
    db: AsyncSession = Depends(get_db),
):
    return await HrDashboardService.overview(db, user, day)

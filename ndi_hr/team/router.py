"""My-team endpoint (``/api/v1/team``)."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ndi_hr.auth.dependencies import get_current_user
from ndi_hr.core_hr.models import User
from ndi_hr.database import get_db
from ndi_hr.team.schemas import MyTeamOverviewResponse
from ndi_hr.team.service import MyTeamService

router = APIRouter(prefix="", tags=["team"])


@router.get("/overview", response_model=MyTeamOverviewResponse)
async def overview(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await MyTeamService.overview(db, user)

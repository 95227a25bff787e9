"""Project router.

Routes:
    /hr/projects          Overview, create
    /hr/projects/{id}     Update, delete
"""

import uuid

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from ndi_hr.auth.dependencies import require_project_manager
from ndi_hr.auth.schemas import MessageResponse
from ndi_hr.core_hr.models import User
from ndi_hr.database import get_db
from ndi_hr.projects.schemas import (
    ProjectMutationResponse,
    ProjectOverviewResponse,
    ProjectRequest,
)
from ndi_hr.projects.service import ProjectService

router = APIRouter(prefix="", tags=["hr-projects"])


@router.get("", response_model=ProjectOverviewResponse)
async def project_overview(
    viewer: User = Depends(require_project_manager),
    db: AsyncSession = Depends(get_db),
):
    return await ProjectService.overview(db, viewer)


@router.post("", response_model=ProjectMutationResponse, status_code=status.HTTP_201_CREATED)
async def create_project(
    body: ProjectRequest,
    viewer: User = Depends(require_project_manager),
    db: AsyncSession = Depends(get_db),
):
    project = await ProjectService.create(db, viewer, body)
    return ProjectMutationResponse(
        message=f"Project {project.name} created.",
        project=await ProjectService.get_summary(db, project),
    )


@router.put("/{project_id}", response_model=ProjectMutationResponse)
async def update_project(
    project_id: uuid.UUID,
    body: ProjectRequest,
    viewer: User = Depends(require_project_manager),
    db: AsyncSession = Depends(get_db),
):
    project = await ProjectService.update(db, viewer, project_id, body)
    return ProjectMutationResponse(
        message=f"Project {project.name} updated.",
        project=await ProjectService.get_summary(db, project),
    )


@router.delete("/{project_id}", response_model=MessageResponse)
async def delete_project(
    project_id: uuid.UUID,
    viewer: User = Depends(require_project_manager),
    db: AsyncSession = Depends(get_db),
):
    await ProjectService.delete(db, viewer, project_id)
    return MessageResponse(message="Project deleted successfully.")

"""Core HR router: department, team and organization management.

Routes:
    /hr/departments                       Overview, create
    /hr/departments/{id}                  Update
    /hr/departments/{id}/head             Assign or clear the head
    /hr/departments/{id}/members          Replace the member list
    /hr/teams                             Overview, create
    /hr/teams/{id}                        Update, delete
    /hr/teams/{id}/leads                  Replace the lead list
    /hr/teams/{id}/members                Replace the member list
    /hr/organization                      Management view, update details
    /hr/organization/admins/{user_id}     Promote to / demote from Org Admin
    /hr/organization/logo                 Upload a logo image
    /hr/organizations                     List all, create with an invited owner (super admin)
    /hr/organizations/{id}/delete         Password-confirmed delete (super admin)
"""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from ndi_hr.auth.dependencies import (
    require_department_manager,
    require_hr_access,
    require_organization_manager,
    require_role,
    require_super_admin,
    require_team_manager,
)
from ndi_hr.auth.schemas import MessageResponse
from ndi_hr.common.constants import ORGANIZATION_MANAGEMENT_ROLES
from ndi_hr.core_hr.models import User
from ndi_hr.core_hr.schemas import (
    AssignHeadRequest,
    AssignLeadsRequest,
    AssignMembersRequest,
    CreateOrganizationRequest,
    CreateOrganizationResponse,
    DeleteOrganizationRequest,
    DeleteOrganizationResponse,
    DepartmentOverviewResponse,
    DepartmentRequest,
    LogoUploadResponse,
    OrganizationListResponse,
    OrganizationManagementResponse,
    OrganizationUpdateResponse,
    RoleChangeResponse,
    TeamOverviewResponse,
    TeamRequest,
    UpdateOrganizationRequest,
)
from ndi_hr.core_hr.service import (
    DepartmentService,
    OrganizationAdminService,
    OrganizationService,
    TeamService,
)
from ndi_hr.database import get_db


# ═════════════════════════════════════════════════════════════════════
# Routers
# ═════════════════════════════════════════════════════════════════════

departments_router = APIRouter(prefix="", tags=["hr-departments"])
teams_router = APIRouter(prefix="", tags=["hr-teams"])
organization_router = APIRouter(prefix="", tags=["hr-organization"])
organizations_router = APIRouter(prefix="", tags=["hr-organizations"])


# ═════════════════════════════════════════════════════════════════════
# Departments
# ═════════════════════════════════════════════════════════════════════


@departments_router.get("", response_model=DepartmentOverviewResponse)
async def department_overview(
    viewer: User = Depends(require_department_manager),
    db: AsyncSession = Depends(get_db),
):
    return await DepartmentService.overview(db, viewer)


@departments_router.post("", response_model=MessageResponse, status_code=status.HTTP_201_CREATED)
async def create_department(
    body: DepartmentRequest,
    viewer: User = Depends(require_department_manager),
    db: AsyncSession = Depends(get_db),
):
    department = await DepartmentService.create(db, viewer, body)
    return MessageResponse(message=f"Department {department.name} created.")


@departments_router.put("/{department_id}", response_model=MessageResponse)
async def update_department(
    department_id: uuid.UUID,
    body: DepartmentRequest,
    viewer: User = Depends(require_department_manager),
    db: AsyncSession = Depends(get_db),
):
    department = await DepartmentService.update(db, viewer, department_id, body)
    return MessageResponse(message=f"Department {department.name} updated.")


@departments_router.put("/{department_id}/head", response_model=MessageResponse)
async def assign_department_head(
    department_id: uuid.UUID,
    body: AssignHeadRequest,
    viewer: User = Depends(require_department_manager),
    db: AsyncSession = Depends(get_db),
):
    await DepartmentService.assign_head(db, viewer, department_id, body)
    return MessageResponse(message="Department head updated.")


@departments_router.put("/{department_id}/members", response_model=MessageResponse)
async def assign_department_members(
    department_id: uuid.UUID,
    body: AssignMembersRequest,
    viewer: User = Depends(require_department_manager),
    db: AsyncSession = Depends(get_db),
):
    await DepartmentService.assign_members(db, viewer, department_id, body.member_user_ids)
    return MessageResponse(message="Department members updated.")


# ═════════════════════════════════════════════════════════════════════
# Teams
# ═════════════════════════════════════════════════════════════════════


@teams_router.get("", response_model=TeamOverviewResponse)
async def team_overview(
    viewer: User = Depends(require_hr_access),
    db: AsyncSession = Depends(get_db),
):
    return await TeamService.overview(db, viewer)


@teams_router.post("", response_model=MessageResponse, status_code=status.HTTP_201_CREATED)
async def create_team(
    body: TeamRequest,
    viewer: User = Depends(require_team_manager),
    db: AsyncSession = Depends(get_db),
):
    team = await TeamService.create(db, viewer, body)
    return MessageResponse(message=f"Team {team.name} created.")


@teams_router.put("/{team_id}", response_model=MessageResponse)
async def update_team(
    team_id: uuid.UUID,
    body: TeamRequest,
    viewer: User = Depends(require_team_manager),
    db: AsyncSession = Depends(get_db),
):
    team = await TeamService.update(db, viewer, team_id, body)
    return MessageResponse(message=f"Team {team.name} updated.")


@teams_router.put("/{team_id}/leads", response_model=MessageResponse)
async def assign_team_leads(
    team_id: uuid.UUID,
    body: AssignLeadsRequest,
    viewer: User = Depends(require_team_manager),
    db: AsyncSession = Depends(get_db),
):
    await TeamService.assign_leads(db, viewer, team_id, body.lead_user_ids)
    return MessageResponse(message="Team leads updated.")


@teams_router.put("/{team_id}/members", response_model=MessageResponse)
async def assign_team_members(
    team_id: uuid.UUID,
    body: AssignMembersRequest,
    viewer: User = Depends(require_team_manager),
    db: AsyncSession = Depends(get_db),
):
    await TeamService.assign_members(db, viewer, team_id, body.member_user_ids)
    return MessageResponse(message="Team members updated.")


@teams_router.delete("/{team_id}", response_model=MessageResponse)
async def delete_team(
    team_id: uuid.UUID,
    viewer: User = Depends(require_team_manager),
    db: AsyncSession = Depends(get_db),
):
    await TeamService.delete(db, viewer, team_id)
    return MessageResponse(message="Team deleted.")


# ═════════════════════════════════════════════════════════════════════
# Organization
# ═════════════════════════════════════════════════════════════════════


@organization_router.get("", response_model=OrganizationManagementResponse)
async def organization_management(
    viewer: User = Depends(require_organization_manager),
    db: AsyncSession = Depends(get_db),
):
    return await OrganizationService.management(db, viewer)


@organization_router.put("", response_model=OrganizationUpdateResponse)
async def update_organization(
    body: UpdateOrganizationRequest,
    viewer: User = Depends(require_organization_manager),
    db: AsyncSession = Depends(get_db),
):
    details = await OrganizationService.update_details(db, viewer, body)
    return OrganizationUpdateResponse(organization=details)


@organization_router.post("/admins/{user_id}", response_model=RoleChangeResponse)
async def add_admin(
    user_id: uuid.UUID,
    viewer: User = Depends(require_organization_manager),
    db: AsyncSession = Depends(get_db),
):
    target = await OrganizationService.add_admin(db, viewer, user_id)
    return RoleChangeResponse(user_id=target.id, role=target.role.value)


@organization_router.delete("/admins/{user_id}", response_model=RoleChangeResponse)
async def remove_admin(
    user_id: uuid.UUID,
    viewer: User = Depends(require_organization_manager),
    db: AsyncSession = Depends(get_db),
):
    target = await OrganizationService.remove_admin(db, viewer, user_id)
    return RoleChangeResponse(user_id=target.id, role=target.role.value)


@organization_router.post("/logo", response_model=LogoUploadResponse)
async def upload_logo(
    file: Optional[UploadFile] = File(default=None),
    organization_id: Optional[uuid.UUID] = Form(default=None),
    viewer: User = Depends(require_role(*ORGANIZATION_MANAGEMENT_ROLES)),
    db: AsyncSession = Depends(get_db),
):
    contents = await file.read() if file is not None else None
    url = await OrganizationService.upload_logo(
        db,
        viewer,
        organization_id=organization_id,
        content_type=file.content_type if file else None,
        contents=contents,
    )
    return LogoUploadResponse(logo_url=url)


# ═════════════════════════════════════════════════════════════════════
# Organizations (super admin)
# ═════════════════════════════════════════════════════════════════════


@organizations_router.get("", response_model=OrganizationListResponse)
async def list_organizations(
    _: User = Depends(require_super_admin),
    db: AsyncSession = Depends(get_db),
):
    return OrganizationListResponse(organizations=await OrganizationAdminService.list_all(db))


@organizations_router.post("", response_model=CreateOrganizationResponse, status_code=status.HTTP_201_CREATED)
async def create_organization(
    body: CreateOrganizationRequest,
    viewer: User = Depends(require_super_admin),
    db: AsyncSession = Depends(get_db),
):
    return await OrganizationAdminService.create(db, viewer, body)


@organizations_router.post("/{organization_id}/delete", response_model=DeleteOrganizationResponse)
async def delete_organization(
    organization_id: uuid.UUID,
    body: DeleteOrganizationRequest,
    viewer: User = Depends(require_super_admin),
    db: AsyncSession = Depends(get_db),
):
    removed = await OrganizationAdminService.delete(db, viewer, organization_id, body.password)
    return DeleteOrganizationResponse(
        organization_id=organization_id,
        removed_users=removed,
        message="Organization deleted.",
    )

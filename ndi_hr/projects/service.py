"""Project service: overview, create, update, delete.

Project membership lives on ``EmploymentDetail.current_project_id``; a member
belongs to at most one project at a time.
"""

from __future__ import annotations

import logging
import uuid
from typing import Optional, Sequence

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ndi_hr.common.audit import create_audit_entry
from ndi_hr.common.constants import PROJECT_MANAGEMENT_ROLES
from ndi_hr.common.exceptions import BadRequestException, ConflictError, NotFoundException
from ndi_hr.core_hr.models import EmploymentDetail, Project, User
from ndi_hr.projects.schemas import (
    ProjectMember,
    ProjectOverviewResponse,
    ProjectRequest,
    ProjectSummary,
)

logger = logging.getLogger(__name__)

MEMBER_PREVIEW_SIZE = 4


def _member(user: User) -> ProjectMember:
    profile = user.profile
    employment = user.employment
    return ProjectMember(
        user_id=user.id,
        full_name=user.display_name,
        email=profile.work_email if profile and profile.work_email else user.email,
        designation=employment.designation if employment and employment.designation else None,
        avatar_url=profile.profile_photo_url if profile else None,
    )


class ProjectService:

    @staticmethod
    async def _members_by_project(
        db: AsyncSession, organization_id: uuid.UUID,
    ) -> tuple[list[ProjectMember], dict[uuid.UUID, list[ProjectMember]]]:
        result = await db.execute(
            select(User)
            .join(EmploymentDetail, EmploymentDetail.user_id == User.id)
            .where(EmploymentDetail.organization_id == organization_id),
        )
        users = result.scalars().all()
        people = sorted((_member(u) for u in users), key=lambda m: m.full_name.lower())

        project_by_user = {
            u.id: u.employment.current_project_id for u in users if u.employment is not None
        }
        grouped: dict[uuid.UUID, list[ProjectMember]] = {}
        for person in people:
            project_id = project_by_user.get(person.user_id)
            if project_id:
                grouped.setdefault(project_id, []).append(person)
        return people, grouped

    @staticmethod
    def _summary(project: Project, members: Sequence[ProjectMember]) -> ProjectSummary:
        manager = project.project_manager
        profile = manager.profile if manager else None
        return ProjectSummary(
            id=project.id,
            name=project.name,
            code=project.code,
            description=project.description,
            client_name=project.client_name,
            status=project.status,
            start_date=project.start_date,
            end_date=project.end_date,
            project_manager_id=project.project_manager_id,
            project_manager_name=manager.display_name if manager else None,
            project_manager_email=manager.email if manager else None,
            project_manager_avatar_url=profile.profile_photo_url if profile else None,
            member_count=len(members),
            member_user_ids=[m.user_id for m in members],
            member_preview=list(members[:MEMBER_PREVIEW_SIZE]),
            created_at=project.created_at,
            updated_at=project.updated_at,
        )

    @staticmethod
    async def overview(db: AsyncSession, viewer: User) -> ProjectOverviewResponse:
        organization_id = viewer.organization_id
        result = await db.execute(
            select(Project)
            .where(Project.organization_id == organization_id)
            .order_by(Project.status, Project.created_at.desc()),
        )
        people, grouped = await ProjectService._members_by_project(db, organization_id)
        return ProjectOverviewResponse(
            viewer_role=viewer.role.value,
            can_manage=viewer.role in PROJECT_MANAGEMENT_ROLES,
            projects=[
                ProjectService._summary(p, grouped.get(p.id, []))
                for p in result.scalars().all()
            ],
            employees=people,
        )

    @staticmethod
    async def get_summary(db: AsyncSession, project: Project) -> ProjectSummary:
        _, grouped = await ProjectService._members_by_project(db, project.organization_id)
        return ProjectService._summary(project, grouped.get(project.id, []))

    # ── Validation ───────────────────────────────────────────────────

    @staticmethod
    async def _get(db: AsyncSession, organization_id: uuid.UUID, project_id: uuid.UUID) -> Project:
        result = await db.execute(
            select(Project).where(
                Project.id == project_id,
                Project.organization_id == organization_id,
            ),
        )
        project = result.scalars().first()
        if project is None:
            raise NotFoundException("Project", project_id, detail="Project not found.")
        return project

    @staticmethod
    async def _count_members(
        db: AsyncSession, organization_id: uuid.UUID, user_ids: Sequence[uuid.UUID],
    ) -> int:
        result = await db.execute(
            select(func.count()).select_from(EmploymentDetail).where(
                EmploymentDetail.organization_id == organization_id,
                EmploymentDetail.user_id.in_(user_ids),
            ),
        )
        return result.scalar_one()

    @staticmethod
    async def _validate(
        db: AsyncSession,
        organization_id: uuid.UUID,
        body: ProjectRequest,
        exclude_id: Optional[uuid.UUID] = None,
    ) -> list[uuid.UUID]:
        if body.start_date and body.end_date and body.end_date < body.start_date:
            raise BadRequestException(detail="End date can’t be before the start date.")

        if body.project_manager_id is not None:
            if await ProjectService._count_members(db, organization_id, [body.project_manager_id]) != 1:
                raise BadRequestException(
                    detail="Select a project manager that belongs to this organization.",
                )

        member_ids = list(dict.fromkeys(body.member_user_ids))
        if member_ids and await ProjectService._count_members(db, organization_id, member_ids) != len(member_ids):
            raise BadRequestException(detail="Select employees that belong to this organization.")

        query = select(Project).where(Project.organization_id == organization_id)
        if exclude_id is not None:
            query = query.where(Project.id != exclude_id)
        for other in (await db.execute(query)).scalars().all():
            if other.name.lower() == body.name.lower():
                raise ConflictError(
                    "name", body.name,
                    detail="A project with that name already exists in this organization.",
                )
            if body.code and other.code and other.code.lower() == body.code.lower():
                raise ConflictError(
                    "code", body.code,
                    detail="A project with that code already exists in this organization.",
                )
        return member_ids

    @staticmethod
    async def _assign(
        db: AsyncSession, organization_id: uuid.UUID, project_id: uuid.UUID, user_ids: Sequence[uuid.UUID],
    ) -> None:
        if not user_ids:
            return
        await db.execute(
            update(EmploymentDetail)
            .where(
                EmploymentDetail.organization_id == organization_id,
                EmploymentDetail.user_id.in_(user_ids),
            )
            .values(current_project_id=project_id, current_project_note=None),
        )

    @staticmethod
    def _apply(project: Project, body: ProjectRequest) -> None:
        project.name = body.name
        project.code = body.code
        project.description = body.description
        project.client_name = body.client_name
        project.status = body.status
        project.start_date = body.start_date
        project.end_date = body.end_date
        project.project_manager_id = body.project_manager_id

    # ── Mutations ────────────────────────────────────────────────────

    @staticmethod
    async def create(db: AsyncSession, viewer: User, body: ProjectRequest) -> Project:
        organization_id = viewer.organization_id
        member_ids = await ProjectService._validate(db, organization_id, body)

        project = Project(organization_id=organization_id)
        ProjectService._apply(project, body)
        db.add(project)
        await db.flush()
        await ProjectService._assign(db, organization_id, project.id, member_ids)
        await db.flush()
        await db.refresh(project)

        logger.info("Project %r created in organization %s", project.name, organization_id)
        return project

    @staticmethod
    async def update(
        db: AsyncSession, viewer: User, project_id: uuid.UUID, body: ProjectRequest,
    ) -> Project:
        organization_id = viewer.organization_id
        project = await ProjectService._get(db, organization_id, project_id)
        member_ids = await ProjectService._validate(db, organization_id, body, exclude_id=project.id)

        ProjectService._apply(project, body)

        current = await db.execute(
            select(EmploymentDetail.user_id).where(
                EmploymentDetail.organization_id == organization_id,
                EmploymentDetail.current_project_id == project.id,
            ),
        )
        current_ids = set(current.scalars().all())
        to_remove = [uid for uid in current_ids if uid not in set(member_ids)]
        to_add = [uid for uid in member_ids if uid not in current_ids]

        if to_remove:
            await db.execute(
                update(EmploymentDetail)
                .where(
                    EmploymentDetail.organization_id == organization_id,
                    EmploymentDetail.user_id.in_(to_remove),
                )
                .values(current_project_id=None),
            )
        await ProjectService._assign(db, organization_id, project.id, to_add)
        await db.flush()
        await db.refresh(project)
        return project

    @staticmethod
    async def delete(db: AsyncSession, viewer: User, project_id: uuid.UUID) -> None:
        organization_id = viewer.organization_id
        project = await ProjectService._get(db, organization_id, project_id)

        await db.execute(
            update(EmploymentDetail)
            .where(
                EmploymentDetail.organization_id == organization_id,
                EmploymentDetail.current_project_id == project.id,
            )
            .values(current_project_id=None),
        )
        await db.delete(project)
        await db.flush()

        await create_audit_entry(
            db,
            action="delete",
            entity_type="project",
            entity_id=project_id,
            actor_id=viewer.id,
            old_values={"name": project.name},
        )

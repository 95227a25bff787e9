"""Core HR service layer: departments, teams and organization settings.

Every operation is scoped to the caller's organization, except the super
admin organization lifecycle at the bottom; the router guards decide who
may call what.
"""

from __future__ import annotations

import logging
import re
import uuid
from typing import Iterable, Optional, Sequence

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ndi_hr.auth.service import (
    build_invite_url,
    get_user_by_email,
    issue_invitation_token,
    normalize_email,
    send_invitation_email,
)
from ndi_hr.common.audit import create_audit_entry
from ndi_hr.common.constants import (
    DEFAULT_TIMEZONE,
    DEPARTMENT_MANAGEMENT_ROLES,
    TEAM_MANAGEMENT_ROLES,
    EmploymentStatus,
    EmploymentType,
    UserRole,
    WorkModel,
)
from ndi_hr.common.exceptions import (
    BadRequestException,
    ConflictError,
    ForbiddenException,
    NotFoundException,
    UnauthorizedException,
)
from ndi_hr.common.formatting import local_today, split_full_name, utcnow
from ndi_hr.common.security import generate_url_token, hash_password, verify_password
from ndi_hr.common.storage import build_organization_logo_key, public_url, save_file, validate_image
from ndi_hr.core_hr.cascade import delete_organization_cascade
from ndi_hr.core_hr.models import (
    Department,
    EmployeeProfile,
    EmploymentDetail,
    Organization,
    Team,
    TeamLead,
    User,
)
from ndi_hr.core_hr.schemas import (
    AssignHeadRequest,
    CreateOrganizationRequest,
    CreateOrganizationResponse,
    DepartmentItem,
    DepartmentOption,
    DepartmentOverviewResponse,
    DepartmentPerson,
    DepartmentRequest,
    OrganizationDetails,
    OrganizationManagementResponse,
    OrganizationMember,
    TeamItem,
    TeamOverviewResponse,
    TeamPerson,
    TeamRequest,
    UpdateOrganizationRequest,
)

logger = logging.getLogger(__name__)

MEMBER_PREVIEW_SIZE = 4


async def _org_employments(db: AsyncSession, organization_id: uuid.UUID) -> Sequence[EmploymentDetail]:
    result = await db.execute(
        select(EmploymentDetail).where(EmploymentDetail.organization_id == organization_id),
    )
    return result.scalars().all()


async def _users_by_id(db: AsyncSession, user_ids: Iterable[uuid.UUID]) -> dict[uuid.UUID, User]:
    ids = list(set(user_ids))
    if not ids:
        return {}
    result = await db.execute(select(User).where(User.id.in_(ids)))
    return {u.id: u for u in result.scalars().all()}


async def _require_members(
    db: AsyncSession,
    organization_id: uuid.UUID,
    user_ids: Sequence[uuid.UUID],
    detail: str,
) -> None:
    """Raise unless every id has an employment record in the organization."""
    if not user_ids:
        return
    result = await db.execute(
        select(func.count()).select_from(EmploymentDetail).where(
            EmploymentDetail.organization_id == organization_id,
            EmploymentDetail.user_id.in_(user_ids),
        ),
    )
    if result.scalar_one() != len(user_ids):
        raise BadRequestException(detail=detail)


async def get_or_create_department(
    db: AsyncSession, organization_id: uuid.UUID, name: str,
) -> Department:
    """Department with exactly this name, created on first use."""
    result = await db.execute(
        select(Department).where(
            Department.organization_id == organization_id,
            Department.name == name,
        ),
    )
    department = result.scalars().first()
    if department is None:
        department = Department(organization_id=organization_id, name=name)
        db.add(department)
        await db.flush()
        logger.info("Created department %r in organization %s", name, organization_id)
    return department


# ═════════════════════════════════════════════════════════════════════
# DepartmentService
# ═════════════════════════════════════════════════════════════════════


class DepartmentService:

    @staticmethod
    def _person(employment: EmploymentDetail, user: Optional[User]) -> DepartmentPerson:
        profile = user.profile if user else None
        email = user.email if user else None
        return DepartmentPerson(
            user_id=employment.user_id,
            full_name=user.display_name if user else "—",
            email=(profile.work_email if profile and profile.work_email else email),
            designation=employment.designation or None,
            avatar_url=profile.profile_photo_url if profile else None,
            department_id=employment.department_id,
            department_name=employment.department.name if employment.department else None,
        )

    @staticmethod
    async def overview(db: AsyncSession, viewer: User) -> DepartmentOverviewResponse:
        organization_id = viewer.organization_id
        result = await db.execute(
            select(Department)
            .where(Department.organization_id == organization_id)
            .order_by(Department.name),
        )
        departments = result.scalars().all()

        employments = await _org_employments(db, organization_id)
        users = await _users_by_id(db, (e.user_id for e in employments))
        people = sorted(
            (DepartmentService._person(e, users.get(e.user_id)) for e in employments),
            key=lambda p: p.full_name.lower(),
        )

        members_by_department: dict[uuid.UUID, list[DepartmentPerson]] = {}
        for person in people:
            if person.department_id:
                members_by_department.setdefault(person.department_id, []).append(person)

        items = []
        for department in departments:
            members = members_by_department.get(department.id, [])
            head = department.head
            items.append(DepartmentItem(
                id=department.id,
                name=department.name,
                code=department.code,
                description=department.description,
                head_user_id=department.head_id,
                head_name=head.display_name if head else None,
                head_email=head.email if head else None,
                head_avatar_url=head.profile.profile_photo_url if head and head.profile else None,
                member_count=len(members),
                member_user_ids=[m.user_id for m in members],
                member_preview=members[:MEMBER_PREVIEW_SIZE],
                created_at=department.created_at,
                updated_at=department.updated_at,
            ))

        return DepartmentOverviewResponse(
            viewer_role=viewer.role.value,
            can_manage=viewer.role in DEPARTMENT_MANAGEMENT_ROLES,
            departments=items,
            employees=people,
        )

    @staticmethod
    async def _get(db: AsyncSession, organization_id: uuid.UUID, department_id: uuid.UUID) -> Department:
        result = await db.execute(
            select(Department).where(
                Department.id == department_id,
                Department.organization_id == organization_id,
            ),
        )
        department = result.scalars().first()
        if department is None:
            raise NotFoundException("Department", department_id, detail="Department not found.")
        return department

    @staticmethod
    async def _check_unique(
        db: AsyncSession,
        organization_id: uuid.UUID,
        name: str,
        code: Optional[str],
        exclude_id: Optional[uuid.UUID] = None,
    ) -> None:
        query = select(Department).where(Department.organization_id == organization_id)
        if exclude_id is not None:
            query = query.where(Department.id != exclude_id)
        for other in (await db.execute(query)).scalars().all():
            if other.name.lower() == name.lower():
                raise ConflictError("name", name, detail="A department with that name already exists.")
            if code and other.code and other.code.lower() == code.lower():
                raise ConflictError("code", code, detail="A department with that code already exists.")

    @staticmethod
    async def create(db: AsyncSession, viewer: User, body: DepartmentRequest) -> Department:
        name = body.name.strip()
        if not name:
            raise BadRequestException(detail="Department name is required.")
        await DepartmentService._check_unique(db, viewer.organization_id, name, body.code)

        department = Department(
            organization_id=viewer.organization_id,
            name=name,
            code=body.code,
            description=body.description,
        )
        db.add(department)
        await db.flush()
        logger.info("Department %r created in organization %s", name, viewer.organization_id)
        return department

    @staticmethod
    async def update(
        db: AsyncSession, viewer: User, department_id: uuid.UUID, body: DepartmentRequest,
    ) -> Department:
        department = await DepartmentService._get(db, viewer.organization_id, department_id)
        name = body.name.strip()
        if not name:
            raise BadRequestException(detail="Department name cannot be empty.")
        await DepartmentService._check_unique(
            db, viewer.organization_id, name, body.code, exclude_id=department.id,
        )
        department.name = name
        department.code = body.code
        department.description = body.description
        await db.flush()
        return department

    @staticmethod
    async def assign_head(
        db: AsyncSession, viewer: User, department_id: uuid.UUID, body: AssignHeadRequest,
    ) -> None:
        organization_id = viewer.organization_id
        department = await DepartmentService._get(db, organization_id, department_id)

        head_id = body.head_user_id
        if head_id is not None:
            await _require_members(
                db, organization_id, [head_id], "Select a manager from this organization.",
            )
        department.head_id = head_id
        if head_id is not None:
            # The head always belongs to the department they lead
            await db.execute(
                update(EmploymentDetail)
                .where(
                    EmploymentDetail.organization_id == organization_id,
                    EmploymentDetail.user_id == head_id,
                )
                .values(department_id=department.id),
            )
        await db.flush()

    @staticmethod
    async def assign_members(
        db: AsyncSession, viewer: User, department_id: uuid.UUID, member_ids: Sequence[uuid.UUID],
    ) -> None:
        organization_id = viewer.organization_id
        department = await DepartmentService._get(db, organization_id, department_id)

        desired = list(dict.fromkeys(member_ids))
        if department.head_id and department.head_id not in desired:
            desired.append(department.head_id)
        await _require_members(
            db, organization_id, desired, "All members must belong to this organization.",
        )

        result = await db.execute(
            select(EmploymentDetail.user_id).where(
                EmploymentDetail.organization_id == organization_id,
                EmploymentDetail.department_id == department.id,
            ),
        )
        to_remove = [uid for uid in result.scalars().all() if uid not in set(desired)]

        if desired:
            await db.execute(
                update(EmploymentDetail)
                .where(
                    EmploymentDetail.organization_id == organization_id,
                    EmploymentDetail.user_id.in_(desired),
                )
                .values(department_id=department.id),
            )
        if to_remove:
            await db.execute(
                update(EmploymentDetail)
                .where(
                    EmploymentDetail.organization_id == organization_id,
                    EmploymentDetail.user_id.in_(to_remove),
                )
                .values(department_id=None),
            )
        await db.flush()


# ═════════════════════════════════════════════════════════════════════
# TeamService
# ═════════════════════════════════════════════════════════════════════


class TeamService:

    @staticmethod
    def _person(user: User) -> TeamPerson:
        profile = user.profile
        employment = user.employment
        return TeamPerson(
            user_id=user.id,
            full_name=user.display_name,
            designation=employment.designation if employment and employment.designation else None,
            email=profile.work_email if profile and profile.work_email else user.email,
            avatar_url=profile.profile_photo_url if profile else None,
            team_id=employment.team_id if employment else None,
            team_name=employment.team.name if employment and employment.team else None,
            is_team_lead=bool(employment and employment.is_team_lead),
        )

    @staticmethod
    async def overview(db: AsyncSession, viewer: User) -> TeamOverviewResponse:
        organization_id = viewer.organization_id

        departments = await db.execute(
            select(Department)
            .where(Department.organization_id == organization_id)
            .order_by(Department.name),
        )
        teams = await db.execute(
            select(Team).where(Team.organization_id == organization_id).order_by(Team.name),
        )
        employments = await _org_employments(db, organization_id)
        users = await _users_by_id(db, (e.user_id for e in employments))

        people = sorted(
            (TeamService._person(u) for u in users.values()),
            key=lambda p: p.full_name.lower(),
        )

        items = []
        for team in teams.scalars().all():
            leads = [TeamService._person(entry.lead) for entry in team.leads]
            members = [p for p in people if p.team_id == team.id]
            items.append(TeamItem(
                id=team.id,
                name=team.name,
                description=team.description,
                department_id=team.department_id,
                department_name=team.department.name if team.department else "—",
                leads=leads,
                lead_user_ids=[lead.user_id for lead in leads],
                member_user_ids=[m.user_id for m in members],
                member_count=len(members),
                member_preview=members[:MEMBER_PREVIEW_SIZE],
            ))

        return TeamOverviewResponse(
            viewer_role=viewer.role.value,
            can_manage=viewer.role in TEAM_MANAGEMENT_ROLES,
            departments=[DepartmentOption(id=d.id, name=d.name) for d in departments.scalars().all()],
            employees=people,
            teams=items,
        )

    @staticmethod
    async def _get(db: AsyncSession, organization_id: uuid.UUID, team_id: uuid.UUID) -> Team:
        result = await db.execute(
            select(Team).where(Team.id == team_id, Team.organization_id == organization_id),
        )
        team = result.scalars().first()
        if team is None:
            raise NotFoundException("Team", team_id, detail="Team not found.")
        return team

    @staticmethod
    async def _validate(db: AsyncSession, organization_id: uuid.UUID, body: TeamRequest,
                        exclude_id: Optional[uuid.UUID] = None) -> str:
        name = body.name.strip()
        if not name:
            raise BadRequestException(detail="Team name is required.")
        department = await db.execute(
            select(Department.id).where(
                Department.id == body.department_id,
                Department.organization_id == organization_id,
            ),
        )
        if department.scalar() is None:
            raise BadRequestException(detail="Select a valid department for this organization.")

        query = select(Team.id).where(
            Team.organization_id == organization_id,
            func.lower(Team.name) == name.lower(),
        )
        if exclude_id is not None:
            query = query.where(Team.id != exclude_id)
        if (await db.execute(query)).scalar() is not None:
            raise ConflictError("name", name, detail="A team with that name already exists.")
        return name

    @staticmethod
    async def create(db: AsyncSession, viewer: User, body: TeamRequest) -> Team:
        name = await TeamService._validate(db, viewer.organization_id, body)
        team = Team(
            organization_id=viewer.organization_id,
            department_id=body.department_id,
            name=name,
            description=body.description,
        )
        db.add(team)
        await db.flush()
        logger.info("Team %r created in organization %s", name, viewer.organization_id)
        return team

    @staticmethod
    async def update(db: AsyncSession, viewer: User, team_id: uuid.UUID, body: TeamRequest) -> Team:
        team = await TeamService._get(db, viewer.organization_id, team_id)
        team.name = await TeamService._validate(db, viewer.organization_id, body, exclude_id=team.id)
        team.department_id = body.department_id
        team.description = body.description
        await db.flush()
        return team

    @staticmethod
    async def _clear_lead_flags(
        db: AsyncSession, organization_id: uuid.UUID, user_ids: Sequence[uuid.UUID],
    ) -> None:
        """Drop ``is_team_lead`` for users who no longer lead any team."""
        if not user_ids:
            return
        still_leading = await db.execute(
            select(TeamLead.lead_id).where(TeamLead.lead_id.in_(user_ids)),
        )
        keep = set(still_leading.scalars().all())
        to_unset = [uid for uid in user_ids if uid not in keep]
        if to_unset:
            await db.execute(
                update(EmploymentDetail)
                .where(
                    EmploymentDetail.organization_id == organization_id,
                    EmploymentDetail.user_id.in_(to_unset),
                )
                .values(is_team_lead=False),
            )

    @staticmethod
    async def assign_leads(
        db: AsyncSession, viewer: User, team_id: uuid.UUID, lead_ids: Sequence[uuid.UUID],
    ) -> None:
        organization_id = viewer.organization_id
        team = await TeamService._get(db, organization_id, team_id)

        desired = list(dict.fromkeys(lead_ids))
        await _require_members(
            db, organization_id, desired, "Select valid teammates from this organization.",
        )

        existing = [entry.lead_id for entry in team.leads]
        to_remove = [uid for uid in existing if uid not in desired]
        for entry in list(team.leads):
            if entry.lead_id in to_remove:
                team.leads.remove(entry)
        for uid in desired:
            if uid not in existing:
                team.leads.append(TeamLead(lead_id=uid))
        await db.flush()

        if desired:
            await db.execute(
                update(EmploymentDetail)
                .where(
                    EmploymentDetail.organization_id == organization_id,
                    EmploymentDetail.user_id.in_(desired),
                )
                .values(team_id=team.id, is_team_lead=True),
            )
        await TeamService._clear_lead_flags(db, organization_id, to_remove)
        await db.flush()

    @staticmethod
    async def assign_members(
        db: AsyncSession, viewer: User, team_id: uuid.UUID, member_ids: Sequence[uuid.UUID],
    ) -> None:
        organization_id = viewer.organization_id
        team = await TeamService._get(db, organization_id, team_id)

        desired = list(dict.fromkeys(member_ids))
        for entry in team.leads:
            if entry.lead_id not in desired:
                desired.append(entry.lead_id)
        await _require_members(
            db, organization_id, desired, "All members must belong to this organization.",
        )

        result = await db.execute(
            select(EmploymentDetail.user_id).where(
                EmploymentDetail.organization_id == organization_id,
                EmploymentDetail.team_id == team.id,
            ),
        )
        to_remove = [uid for uid in result.scalars().all() if uid not in set(desired)]

        if desired:
            await db.execute(
                update(EmploymentDetail)
                .where(
                    EmploymentDetail.organization_id == organization_id,
                    EmploymentDetail.user_id.in_(desired),
                )
                .values(team_id=team.id),
            )
        if to_remove:
            await db.execute(
                update(EmploymentDetail)
                .where(
                    EmploymentDetail.organization_id == organization_id,
                    EmploymentDetail.user_id.in_(to_remove),
                )
                .values(team_id=None),
            )
        await db.flush()

    @staticmethod
    async def delete(db: AsyncSession, viewer: User, team_id: uuid.UUID) -> None:
        organization_id = viewer.organization_id
        team = await TeamService._get(db, organization_id, team_id)
        former_leads = [entry.lead_id for entry in team.leads]

        await db.execute(
            update(EmploymentDetail)
            .where(EmploymentDetail.team_id == team.id)
            .values(team_id=None),
        )
        await db.delete(team)
        await db.flush()
        await TeamService._clear_lead_flags(db, organization_id, former_leads)
        await db.flush()

        await create_audit_entry(
            db,
            action="delete",
            entity_type="team",
            entity_id=team_id,
            actor_id=viewer.id,
            old_values={"name": team.name},
        )


# ═════════════════════════════════════════════════════════════════════
# OrganizationService
# ═════════════════════════════════════════════════════════════════════


class OrganizationService:

    @staticmethod
    def _member(user: User) -> OrganizationMember:
        return OrganizationMember(
            id=user.id,
            name=user.display_name,
            email=user.email,
            role=user.role.value,
            designation=user.employment.designation if user.employment else None,
            avatar_url=user.profile.profile_photo_url if user.profile else None,
        )

    @staticmethod
    async def _details(db: AsyncSession, organization: Organization) -> OrganizationDetails:
        count = await db.execute(
            select(func.count()).select_from(User).where(User.organization_id == organization.id),
        )
        return OrganizationDetails(
            id=organization.id,
            name=organization.name,
            domain=organization.domain,
            timezone=organization.timezone or DEFAULT_TIMEZONE,
            locale=organization.locale,
            logo_url=organization.logo_url,
            member_count=count.scalar_one(),
            created_at=organization.created_at,
            updated_at=organization.updated_at,
        )

    @staticmethod
    async def _get_organization(db: AsyncSession, organization_id: uuid.UUID) -> Organization:
        result = await db.execute(select(Organization).where(Organization.id == organization_id))
        organization = result.scalars().first()
        if organization is None:
            raise NotFoundException("Organization", organization_id, detail="Organization not found.")
        return organization

    @staticmethod
    async def management(db: AsyncSession, viewer: User) -> OrganizationManagementResponse:
        organization = await OrganizationService._get_organization(db, viewer.organization_id)

        admins = await db.execute(
            select(User)
            .where(User.organization_id == organization.id, User.role == UserRole.ORG_ADMIN)
            .order_by(User.created_at),
        )
        eligible = await db.execute(
            select(User)
            .where(
                User.organization_id == organization.id,
                User.role.in_([UserRole.HR_ADMIN, UserRole.MANAGER, UserRole.EMPLOYEE]),
            )
            .order_by(User.created_at),
        )
        return OrganizationManagementResponse(
            viewer_role=viewer.role.value,
            can_manage=True,
            organization=await OrganizationService._details(db, organization),
            admins=[OrganizationService._member(u) for u in admins.scalars().all()],
            eligible_members=[OrganizationService._member(u) for u in eligible.scalars().all()],
        )

    @staticmethod
    async def update_details(
        db: AsyncSession, viewer: User, body: UpdateOrganizationRequest,
    ) -> OrganizationDetails:
        organization = await OrganizationService._get_organization(db, viewer.organization_id)

        name = body.name.strip()
        if not name:
            raise BadRequestException(detail="Organization name cannot be empty.")
        logo_url = body.logo_url.strip()
        if not logo_url:
            raise BadRequestException(detail="Organization logo is required.")

        domain = body.domain.lower() if body.domain else None
        if domain:
            clash = await db.execute(
                select(Organization.id).where(
                    Organization.domain == domain,
                    Organization.id != organization.id,
                ),
            )
            if clash.scalar() is not None:
                raise ConflictError("domain", domain, detail="That organization domain is already in use.")

        old_values = {"name": organization.name, "domain": organization.domain}
        organization.name = name
        organization.domain = domain
        organization.timezone = body.timezone or DEFAULT_TIMEZONE
        organization.locale = body.locale or organization.locale
        organization.logo_url = logo_url
        await db.flush()

        await create_audit_entry(
            db,
            action="update",
            entity_type="organization",
            entity_id=organization.id,
            actor_id=viewer.id,
            old_values=old_values,
            new_values={"name": name, "domain": domain},
        )
        return await OrganizationService._details(db, organization)

    @staticmethod
    async def _get_member(db: AsyncSession, viewer: User, user_id: uuid.UUID) -> Optional[User]:
        result = await db.execute(
            select(User).where(User.id == user_id, User.organization_id == viewer.organization_id),
        )
        return result.scalars().first()

    @staticmethod
    async def add_admin(db: AsyncSession, viewer: User, user_id: uuid.UUID) -> User:
        target = await OrganizationService._get_member(db, viewer, user_id)
        if target is None:
            raise NotFoundException(
                "User", user_id, detail="Employee not found in this organization.",
            )
        if target.role in (UserRole.ORG_OWNER, UserRole.SUPER_ADMIN):
            raise ForbiddenException(detail="You cannot change this role to Org Admin.")
        if target.role == UserRole.ORG_ADMIN:
            raise BadRequestException(detail="This employee is already an Org Admin.")

        previous = target.role
        target.role = UserRole.ORG_ADMIN
        await db.flush()
        await create_audit_entry(
            db,
            action="role_change",
            entity_type="user",
            entity_id=target.id,
            actor_id=viewer.id,
            old_values={"role": previous.value},
            new_values={"role": UserRole.ORG_ADMIN.value},
        )
        return target

    @staticmethod
    async def remove_admin(db: AsyncSession, viewer: User, user_id: uuid.UUID) -> User:
        target = await OrganizationService._get_member(db, viewer, user_id)
        if target is None or target.role != UserRole.ORG_ADMIN:
            raise NotFoundException("User", user_id, detail="Org Admin not found.")

        target.role = UserRole.HR_ADMIN
        await db.flush()
        await create_audit_entry(
            db,
            action="role_change",
            entity_type="user",
            entity_id=target.id,
            actor_id=viewer.id,
            old_values={"role": UserRole.ORG_ADMIN.value},
            new_values={"role": UserRole.HR_ADMIN.value},
        )
        return target

    @staticmethod
    async def upload_logo(
        db: AsyncSession,
        viewer: User,
        *,
        organization_id: Optional[uuid.UUID],
        content_type: Optional[str],
        contents: Optional[bytes],
    ) -> str:
        """Store a logo under the organization's folder and return its public URL.

        Super admins may upload for any organization, or into ``pending`` while
        creating one; everyone else only for their own organization.
        """
        contents = validate_image(
            content_type,
            contents,
            missing_detail="No file selected.",
            type_detail="Only JPG, PNG, or WEBP logos are supported.",
        )
        if viewer.role == UserRole.SUPER_ADMIN:
            if organization_id is not None:
                await OrganizationService._get_organization(db, organization_id)
            folder_id = organization_id or viewer.organization_id
            folder = str(folder_id) if folder_id else "pending"
        else:
            if viewer.organization_id is None:
                raise ForbiddenException(detail="Join an organization to upload its logo.")
            if organization_id is not None and organization_id != viewer.organization_id:
                raise ForbiddenException(detail="You can only upload logos for your organization.")
            folder = str(viewer.organization_id)

        key = build_organization_logo_key(folder, content_type)
        save_file(key, contents)
        logger.info("Organization logo stored at %s by %s", key, viewer.id)
        return public_url(key)


# ═════════════════════════════════════════════════════════════════════
# OrganizationAdminService
# ═════════════════════════════════════════════════════════════════════


def owner_employee_code(organization_name: str) -> str:
    prefix = re.sub(r"[^A-Za-z0-9]", "", organization_name).upper()[:4] or "ORG"
    return f"{prefix}-OWNER-1"


class OrganizationAdminService:
    """Platform-level organization lifecycle, super admins only."""

    @staticmethod
    async def list_all(db: AsyncSession) -> list[OrganizationDetails]:
        result = await db.execute(select(Organization).order_by(Organization.created_at))
        return [await OrganizationService._details(db, org) for org in result.scalars().all()]

    @staticmethod
    async def create(
        db: AsyncSession, viewer: User, body: CreateOrganizationRequest,
    ) -> CreateOrganizationResponse:
        name = body.name.strip()
        if not name:
            raise BadRequestException(detail="Organization name is required.")

        domain = body.domain.lower() if body.domain else None
        if domain:
            clash = await db.execute(select(Organization.id).where(Organization.domain == domain))
            if clash.scalar() is not None:
                raise ConflictError("domain", domain, detail="That organization domain is already in use.")
        email = normalize_email(body.owner_email)
        if await get_user_by_email(db, email) is not None:
            raise ConflictError("email", email, detail="An account already exists for that email.")

        organization = Organization(
            name=name,
            domain=domain,
            timezone=body.timezone or DEFAULT_TIMEZONE,
            locale=body.locale or "en-US",
            logo_url=body.logo_url,
        )
        db.add(organization)
        await db.flush()

        phone = " ".join(body.owner_phone.split()) if body.owner_phone else None
        first_name, last_name = split_full_name(body.owner_name)
        owner = User(
            organization_id=organization.id,
            email=email,
            phone=phone,
            # Unusable until the owner accepts the invitation
            password_hash=hash_password(generate_url_token()),
            role=UserRole.ORG_OWNER,
            status=EmploymentStatus.INACTIVE,
            invited_at=utcnow(),
            invited_by_id=viewer.id,
        )
        db.add(owner)
        await db.flush()
        db.add(EmployeeProfile(
            user_id=owner.id,
            first_name=first_name,
            last_name=last_name,
            preferred_name=first_name,
            work_email=email,
            work_phone=phone,
            work_model=WorkModel.HYBRID,
        ))
        db.add(EmploymentDetail(
            user_id=owner.id,
            organization_id=organization.id,
            employee_code=owner_employee_code(name),
            designation=body.owner_designation or "Org Owner",
            employment_type=EmploymentType.FULL_TIME,
            status=EmploymentStatus.INACTIVE,
            start_date=local_today(organization.timezone),
        ))
        await db.flush()

        token = await issue_invitation_token(db, owner.id)
        await create_audit_entry(
            db,
            action="create",
            entity_type="organization",
            entity_id=organization.id,
            actor_id=viewer.id,
            new_values={"name": name, "domain": domain, "ownerEmail": email},
        )
        logger.info("Organization %r created by %s, owner invited: %s", name, viewer.id, email)
        invite_url = build_invite_url(token, email)
        await send_invitation_email(
            email=email,
            first_name=first_name,
            role=UserRole.ORG_OWNER,
            organization_name=name,
            invite_url=invite_url,
            sender_name=viewer.display_name,
        )
        return CreateOrganizationResponse(
            organization_id=organization.id,
            organization_name=name,
            owner_id=owner.id,
            owner_email=email,
            invite_url=invite_url,
        )

    @staticmethod
    async def delete(
        db: AsyncSession, viewer: User, organization_id: uuid.UUID, password: str,
    ) -> int:
        if not verify_password(password, viewer.password_hash):
            raise UnauthorizedException(detail="Incorrect password. Try again.")
        organization = await OrganizationService._get_organization(db, organization_id)
        if organization.id == viewer.organization_id:
            raise BadRequestException(detail="You cannot delete the organization you belong to.")

        old_values = {"name": organization.name, "domain": organization.domain}
        removed = await delete_organization_cascade(db, organization.id)
        await create_audit_entry(
            db,
            action="delete",
            entity_type="organization",
            entity_id=organization_id,
            actor_id=viewer.id,
            old_values=old_values,
            new_values={"removedUsers": removed},
        )
        return removed

"""HR employee management: directory, edit form, quotas, invitations, termination.

Every read and write is scoped to the viewer's organization. Edit and
termination rights are role-relative and come from
``ndi_hr.core_hr.permissions``.
"""

from __future__ import annotations

import logging
import uuid
from datetime import date
from decimal import Decimal
from typing import Optional

from sqlalchemy import delete, select
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
    EMPLOYMENT_STATUS_LABELS,
    EMPLOYMENT_TYPE_LABELS,
    ROLE_LABELS,
    WORK_MODEL_LABELS,
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
)
from ndi_hr.common.export import ExcelExportService
from ndi_hr.common.formatting import decimal_to_float, split_full_name, utcnow
from ndi_hr.common.security import generate_url_token, hash_password
from ndi_hr.core_hr.cascade import delete_user_cascade
from ndi_hr.core_hr.models import (
    Department,
    EmergencyContact,
    EmployeeProfile,
    EmploymentDetail,
    Organization,
    Team,
    User,
)
from ndi_hr.core_hr.permissions import (
    allowed_invite_roles,
    can_manage_compensation,
    get_edit_permission,
    get_termination_permission,
)
from ndi_hr.core_hr.service import get_or_create_department
from ndi_hr.employees.schemas import (
    CompensationFigures,
    CompensationRequest,
    EditPermissions,
    EmergencyContactSummary,
    EmployeeDashboardResponse,
    EmployeeDirectoryEntry,
    EmployeeForm,
    EmployeeFormResponse,
    EmployeeProfileDetail,
    EmployeeProfileResponse,
    InviteDepartmentOption,
    InviteEmployeeRequest,
    InviteEmployeeResponse,
    InviteTeamOption,
    LeaveBalances,
    LeaveQuotaRequest,
    ManualInviteOptions,
    OptionItem,
    UpdateEmployeeRequest,
)
from ndi_hr.users.service import load_user, manager_name

logger = logging.getLogger(__name__)

MAX_LEAVE_QUOTA = 365

EXPORT_HEADERS = [
    "Employee ID",
    "Name",
    "Email",
    "Phone",
    "Role",
    "Department",
    "Team",
    "Manager",
    "Employment Type",
    "Work Arrangement",
    "Location",
    "Status",
    "Start Date",
    "Experience",
]


# ── Formatting helpers ──────────────────────────────────────────────

def build_initials(user: User) -> str:
    def from_words(value: str) -> str:
        return "".join(part[0].upper() for part in value.split() if part)[:2] or "HR"

    profile = user.profile
    if profile and profile.preferred_name:
        return from_words(profile.preferred_name)
    if profile:
        letters = "".join(p[0].upper() for p in (profile.first_name, profile.last_name) if p)
        if letters:
            return letters[:2]
    return from_words(user.email) if user.email else "HR"


def format_experience(start_date: Optional[date], today: Optional[date] = None) -> str:
    """Tenure label: ``< 1 mo``, ``7 mo``, ``1 yr``, ``3 yrs``."""
    if start_date is None:
        return "—"
    today = today or utcnow().date()
    elapsed_days = (today - start_date).days
    if elapsed_days <= 0:
        return "—"
    years = elapsed_days / 365
    if years < 1:
        months = int(years * 12)
        return "< 1 mo" if months <= 1 else f"{months} mo"
    whole = int(years)
    return f"{whole} yr{'s' if whole > 1 else ''}"


def status_label(user: User) -> str:
    status = user.employment.status if user.employment else user.status
    return EMPLOYMENT_STATUS_LABELS.get(status, "Active")


def status_from_label(label: str) -> EmploymentStatus:
    # "Pending" maps to INACTIVE: the first stored state carrying that label
    for status, value in EMPLOYMENT_STATUS_LABELS.items():
        if value == label:
            return status
    return EmploymentStatus.ACTIVE


def employment_type_from_label(label: Optional[str]) -> EmploymentType:
    for employment_type, value in EMPLOYMENT_TYPE_LABELS.items():
        if label and value.lower() == label.lower():
            return employment_type
    return EmploymentType.FULL_TIME


def work_model_from_label(label: Optional[str]) -> Optional[WorkModel]:
    for work_model, value in WORK_MODEL_LABELS.items():
        if label and value.lower() == label.lower():
            return work_model
    return None


def _leave_balances(employment: Optional[EmploymentDetail]) -> LeaveBalances:
    if employment is None:
        return LeaveBalances(annual=0, sick=0, casual=0, parental=0)
    return LeaveBalances(
        annual=decimal_to_float(employment.annual_leave_balance),
        sick=decimal_to_float(employment.sick_leave_balance),
        casual=decimal_to_float(employment.casual_leave_balance),
        parental=decimal_to_float(employment.parental_leave_balance),
    )


def _emergency_contact(user: User) -> Optional[EmergencyContactSummary]:
    if not user.emergency_contacts:
        return None
    contact = user.emergency_contacts[0]
    return EmergencyContactSummary(name=contact.name, phone=contact.phone, relation=contact.relation)


def _money(value: Optional[float]) -> Optional[Decimal]:
    if value is None:
        return None
    return Decimal(str(round(max(0.0, value), 2)))


def _employment_type_label(employment: Optional[EmploymentDetail], default: str) -> str:
    if employment is None:
        return default
    return EMPLOYMENT_TYPE_LABELS[employment.employment_type]


def _work_arrangement(user: User) -> Optional[str]:
    profile = user.profile
    if profile is None or profile.work_model is None:
        return None
    return WORK_MODEL_LABELS[profile.work_model]


def _location(user: User) -> Optional[str]:
    employment = user.employment
    if employment and employment.primary_location:
        return employment.primary_location
    return user.profile.current_address if user.profile else None


# ── Mappers ─────────────────────────────────────────────────────────

def build_directory_entry(user: User, viewer: User) -> EmployeeDirectoryEntry:
    employment = user.employment
    termination = get_termination_permission(viewer.role, user.role, is_self=viewer.id == user.id)
    return EmployeeDirectoryEntry(
        id=user.id,
        user_role=user.role,
        employee_code=employment.employee_code if employment else None,
        name=user.display_name,
        role=(employment.designation if employment and employment.designation else "Team member"),
        department=employment.department.name if employment and employment.department else None,
        squad=employment.team.name if employment and employment.team else None,
        location=_location(user),
        status=status_label(user),
        start_date=employment.start_date if employment else None,
        email=user.email,
        phone=user.phone,
        manager=manager_name(employment.manager) if employment else None,
        employment_type=_employment_type_label(employment, "—"),
        work_arrangement=_work_arrangement(user),
        avatar_initials=build_initials(user),
        profile_photo_url=user.profile.profile_photo_url if user.profile else None,
        experience=format_experience(employment.start_date if employment else None),
        can_terminate=termination.allowed,
    )


def build_profile_detail(user: User) -> EmployeeProfileDetail:
    employment = user.employment
    profile = user.profile
    return EmployeeProfileDetail(
        id=user.id,
        employee_code=employment.employee_code if employment else None,
        name=user.display_name,
        role=(employment.designation if employment and employment.designation else "Team member"),
        department=employment.department.name if employment and employment.department else None,
        squad=employment.team.name if employment and employment.team else None,
        location=_location(user),
        status=status_label(user),
        start_date=employment.start_date if employment else None,
        email=(profile.work_email if profile and profile.work_email else user.email),
        phone=user.phone or (profile.work_phone if profile else None),
        manager=manager_name(employment.manager) if employment else None,
        employment_type=_employment_type_label(employment, "Full-time"),
        work_arrangement=_work_arrangement(user),
        avatar_initials=build_initials(user),
        profile_photo_url=profile.profile_photo_url if profile else None,
        experience=format_experience(employment.start_date if employment else None),
        address=(profile.current_address or profile.permanent_address) if profile else None,
        emergency_contact=_emergency_contact(user),
        leave_balances=_leave_balances(employment),
    )


def build_form(user: User) -> EmployeeForm:
    employment = user.employment
    profile = user.profile
    full_name = " ".join(p for p in (profile.first_name, profile.last_name) if p) if profile else ""
    return EmployeeForm(
        id=user.id,
        user_role=user.role,
        employee_code=employment.employee_code if employment else None,
        full_name=full_name or user.display_name,
        preferred_name=profile.preferred_name if profile else None,
        email=(profile.work_email if profile and profile.work_email else user.email),
        phone=user.phone or (profile.work_phone if profile else None),
        address=(profile.current_address or profile.permanent_address) if profile else None,
        role=employment.designation if employment else "",
        department=employment.department.name if employment and employment.department else None,
        employment_type=_employment_type_label(employment, "Full-time"),
        work_arrangement=_work_arrangement(user),
        work_location=employment.primary_location if employment else None,
        start_date=employment.start_date if employment else None,
        status=status_label(user),
        emergency_contact=_emergency_contact(user),
        profile_photo_url=profile.profile_photo_url if profile else None,
        leave_balances=_leave_balances(employment),
        gross_salary=decimal_to_float(employment.gross_salary if employment else None),
        income_tax=decimal_to_float(employment.income_tax if employment else None),
    )


# ═════════════════════════════════════════════════════════════════════
# EmployeeService
# ═════════════════════════════════════════════════════════════════════


class EmployeeService:

    @staticmethod
    async def _get_employee(db: AsyncSession, viewer: User, employee_id: uuid.UUID) -> User:
        query = select(User).where(User.id == employee_id)
        if viewer.role != UserRole.SUPER_ADMIN:
            query = query.where(User.organization_id == viewer.organization_id)
        user = (await db.execute(query)).scalars().first()
        if user is None:
            raise NotFoundException("Employee", employee_id, detail="Employee not found.")
        return user

    # ── Directory ───────────────────────────────────────────────────

    @staticmethod
    async def _directory(db: AsyncSession, viewer: User) -> list[EmployeeDirectoryEntry]:
        result = await db.execute(
            select(User)
            .where(User.organization_id == viewer.organization_id)
            .order_by(User.created_at.desc()),
        )
        return [build_directory_entry(user, viewer) for user in result.scalars().all()]

    @staticmethod
    async def invite_options(db: AsyncSession, viewer: User) -> ManualInviteOptions:
        organization_id = viewer.organization_id
        organization = await db.get(Organization, organization_id)

        departments = (await db.execute(
            select(Department)
            .where(Department.organization_id == organization_id)
            .order_by(Department.name),
        )).scalars().all()
        teams = (await db.execute(
            select(Team).where(Team.organization_id == organization_id).order_by(Team.name),
        )).scalars().all()
        location_rows = await db.execute(
            select(EmploymentDetail.primary_location)
            .where(
                EmploymentDetail.organization_id == organization_id,
                EmploymentDetail.primary_location.is_not(None),
            )
            .distinct(),
        )
        locations = sorted({value.strip() for value in location_rows.scalars().all() if value and value.strip()})

        team_options = []
        for team in teams:
            lead = team.leads[0].lead if team.leads else None
            team_options.append(InviteTeamOption(
                id=team.id,
                name=team.name,
                department_id=team.department_id,
                lead_id=lead.id if lead else None,
                lead_name=lead.display_name if lead else None,
            ))

        return ManualInviteOptions(
            organization_domain=organization.domain if organization else None,
            organization_name=organization.name if organization else "Your organization",
            departments=[
                InviteDepartmentOption(
                    id=department.id,
                    name=department.name,
                    head_id=department.head_id,
                    head_name=department.head.display_name if department.head else None,
                )
                for department in departments
            ],
            teams=team_options,
            locations=locations,
            employment_types=[
                OptionItem(value=value.value, label=label)
                for value, label in EMPLOYMENT_TYPE_LABELS.items()
            ],
            work_models=[
                OptionItem(value=value.value, label=label)
                for value, label in WORK_MODEL_LABELS.items()
            ],
            allowed_roles=[
                OptionItem(value=role.value, label=ROLE_LABELS[role])
                for role in allowed_invite_roles(viewer.role)
            ],
        )

    @staticmethod
    async def dashboard(db: AsyncSession, viewer: User) -> EmployeeDashboardResponse:
        return EmployeeDashboardResponse(
            viewer_role=viewer.role,
            viewer_id=viewer.id,
            directory=await EmployeeService._directory(db, viewer),
            manual_invite=await EmployeeService.invite_options(db, viewer),
        )

    @staticmethod
    async def export_directory(db: AsyncSession, viewer: User) -> bytes:
        rows = [
            [
                entry.employee_code or "",
                entry.name,
                entry.email,
                entry.phone or "",
                entry.role,
                entry.department or "",
                entry.squad or "",
                entry.manager or "",
                entry.employment_type,
                entry.work_arrangement or "",
                entry.location or "",
                entry.status,
                entry.start_date.isoformat() if entry.start_date else "",
                entry.experience,
            ]
            for entry in await EmployeeService._directory(db, viewer)
        ]
        return ExcelExportService.build_workbook("Employees", EXPORT_HEADERS, rows)

    # ── Profile / form ──────────────────────────────────────────────

    @staticmethod
    async def profile(db: AsyncSession, viewer: User, employee_id: uuid.UUID) -> EmployeeProfileResponse:
        user = await EmployeeService._get_employee(db, viewer, employee_id)
        return EmployeeProfileResponse(profile=build_profile_detail(user))

    @staticmethod
    async def form(db: AsyncSession, viewer: User, employee_id: uuid.UUID) -> EmployeeFormResponse:
        user = await EmployeeService._get_employee(db, viewer, employee_id)
        permission = get_edit_permission(viewer.role, user.role)
        return EmployeeFormResponse(
            form=build_form(user),
            permissions=EditPermissions(
                can_edit=permission.allowed,
                viewer_role=viewer.role,
                target_role=user.role,
                reason=permission.reason,
                can_edit_compensation=can_manage_compensation(viewer.role),
            ),
        )

    # ── Update ──────────────────────────────────────────────────────

    @staticmethod
    async def update(
        db: AsyncSession,
        viewer: User,
        employee_id: uuid.UUID,
        body: UpdateEmployeeRequest,
        *,
        ip_address: Optional[str] = None,
    ) -> EmployeeFormResponse:
        user = await EmployeeService._get_employee(db, viewer, employee_id)
        permission = get_edit_permission(viewer.role, user.role)
        if not permission.allowed:
            raise ForbiddenException(
                detail=permission.reason or "You are not allowed to edit this employee.",
            )

        email = normalize_email(body.email)
        if email != user.email:
            existing = await get_user_by_email(db, email)
            if existing is not None and existing.id != user.id:
                raise ConflictError(
                    "email", email, detail="An account already exists for that email address.",
                )

        department_id = None
        if body.department:
            department = await get_or_create_department(db, user.organization_id, body.department)
            department_id = department.id

        old_values = {
            "email": user.email,
            "status": user.employment.status.value if user.employment else None,
            "designation": user.employment.designation if user.employment else None,
        }

        first_name, last_name = split_full_name(body.full_name)
        user.email = email
        user.phone = body.phone

        profile = user.profile
        if profile is None:
            profile = EmployeeProfile(user_id=user.id)
            db.add(profile)
        profile.first_name = first_name
        profile.last_name = last_name
        profile.preferred_name = body.preferred_name
        profile.work_email = email
        profile.work_phone = body.phone
        profile.current_address = body.address
        profile.work_model = work_model_from_label(body.work_arrangement)

        employment = user.employment
        if employment is None:
            employment = EmploymentDetail(
                user_id=user.id,
                organization_id=user.organization_id,
                start_date=body.start_date or utcnow().date(),
            )
            db.add(employment)
        employment.designation = body.role.strip()
        employment.employment_type = employment_type_from_label(body.employment_type)
        employment.primary_location = body.work_location
        if body.start_date:
            employment.start_date = body.start_date
        employment.department_id = department_id
        employment.status = status_from_label(body.status)
        gross_salary = _money(body.gross_salary)
        if gross_salary is not None:
            employment.gross_salary = gross_salary
        income_tax = _money(body.income_tax)
        if income_tax is not None:
            employment.income_tax = income_tax

        if body.emergency_name or body.emergency_phone or body.emergency_relation:
            contact = user.emergency_contacts[0] if user.emergency_contacts else None
            if contact is None:
                contact = EmergencyContact(user_id=user.id)
                db.add(contact)
            contact.name = body.emergency_name or "Emergency contact"
            contact.phone = body.emergency_phone or ""
            contact.relation = body.emergency_relation or "Family"
        else:
            await db.execute(delete(EmergencyContact).where(EmergencyContact.user_id == user.id))

        await db.flush()
        await create_audit_entry(
            db,
            action="update",
            entity_type="user",
            entity_id=user.id,
            actor_id=viewer.id,
            old_values=old_values,
            new_values={
                "email": email,
                "status": employment.status.value,
                "designation": employment.designation,
            },
            ip_address=ip_address,
        )
        logger.info("Employee %s updated by %s", user.id, viewer.id)

        await load_user(db, user.id)
        return await EmployeeService.form(db, viewer, user.id)

    # ── Leave quota / compensation ──────────────────────────────────

    @staticmethod
    async def _get_employment(
        db: AsyncSession, viewer: User, employee_id: uuid.UUID,
    ) -> EmploymentDetail:
        result = await db.execute(
            select(EmploymentDetail)
            .join(User, User.id == EmploymentDetail.user_id)
            .where(
                EmploymentDetail.user_id == employee_id,
                User.organization_id == viewer.organization_id,
            ),
        )
        employment = result.scalars().first()
        if employment is None:
            raise NotFoundException("Employee", employee_id, detail="Employee not found.")
        return employment

    @staticmethod
    async def update_leave_quota(
        db: AsyncSession,
        viewer: User,
        employee_id: uuid.UUID,
        body: LeaveQuotaRequest,
    ) -> LeaveBalances:
        employment = await EmployeeService._get_employment(db, viewer, employee_id)

        def clamp(value: float) -> Decimal:
            return Decimal(str(round(max(0.0, min(value, MAX_LEAVE_QUOTA)), 2)))

        employment.annual_leave_balance = clamp(body.annual)
        employment.sick_leave_balance = clamp(body.sick)
        employment.casual_leave_balance = clamp(body.casual)
        employment.parental_leave_balance = clamp(body.parental)
        await db.flush()
        return _leave_balances(employment)

    @staticmethod
    async def update_compensation(
        db: AsyncSession,
        viewer: User,
        employee_id: uuid.UUID,
        body: CompensationRequest,
    ) -> CompensationFigures:
        if not can_manage_compensation(viewer.role):
            raise ForbiddenException(
                detail="You do not have permission to update compensation details.",
            )
        employment = await EmployeeService._get_employment(db, viewer, employee_id)
        employment.gross_salary = _money(body.gross_salary)
        employment.income_tax = _money(body.income_tax)
        await db.flush()
        return CompensationFigures(
            gross_salary=decimal_to_float(employment.gross_salary),
            income_tax=decimal_to_float(employment.income_tax),
        )

    # ── Invite ──────────────────────────────────────────────────────

    @staticmethod
    async def invite(
        db: AsyncSession,
        viewer: User,
        body: InviteEmployeeRequest,
    ) -> InviteEmployeeResponse:
        if body.invite_role not in allowed_invite_roles(viewer.role):
            raise ForbiddenException(detail="You are not allowed to invite that role.")

        organization = await db.get(Organization, viewer.organization_id)
        if organization is None:
            raise BadRequestException(detail="Your organization is not available.")

        email = normalize_email(body.work_email)
        employee_code = body.employee_code.strip().upper()
        if not employee_code:
            raise BadRequestException(detail="Employee ID is required.")
        phone = " ".join(body.phone_number.split())
        if not phone:
            raise BadRequestException(detail="Phone number is required.")

        department: Optional[Department] = None
        if body.department_id:
            department = (await db.execute(
                select(Department).where(
                    Department.id == body.department_id,
                    Department.organization_id == organization.id,
                ),
            )).scalars().first()
            if department is None:
                raise BadRequestException(detail="Selected department does not exist.")

        team: Optional[Team] = None
        if body.team_id:
            team = (await db.execute(
                select(Team).where(Team.id == body.team_id, Team.organization_id == organization.id),
            )).scalars().first()
            if team is None:
                raise BadRequestException(detail="Selected team does not exist.")
            if department is not None and team.department_id != department.id:
                raise BadRequestException(detail="Selected team does not belong to that department.")
            if department is None:
                department = team.department

        manager_id = body.manager_id
        if manager_id is None:
            if team is not None and team.leads:
                manager_id = team.leads[0].lead_id
            elif department is not None:
                manager_id = department.head_id
        if manager_id is not None:
            manager = (await db.execute(
                select(User.id).where(User.id == manager_id, User.organization_id == organization.id),
            )).scalar()
            if manager is None:
                raise BadRequestException(detail="Selected manager does not exist.")

        designation = body.designation.strip()
        if not designation:
            raise BadRequestException(detail="Role/title cannot be empty.")

        duplicate = await db.execute(
            select(EmploymentDetail.id).where(
                EmploymentDetail.organization_id == organization.id,
                EmploymentDetail.employee_code == employee_code,
            ),
        )
        if duplicate.scalar() is not None:
            raise ConflictError(
                "employee_code", employee_code, detail="This employee ID is already in use.",
            )
        if await get_user_by_email(db, email) is not None:
            raise ConflictError(
                "email", email, detail="An account already exists for that email address.",
            )

        first_name, last_name = split_full_name(body.full_name)
        user = User(
            organization_id=organization.id,
            email=email,
            phone=phone,
            # Unusable until the invitee picks a password
            password_hash=hash_password(generate_url_token()),
            role=body.invite_role,
            status=EmploymentStatus.INACTIVE,
            invited_at=utcnow(),
            invited_by_id=viewer.id,
        )
        db.add(user)
        await db.flush()

        db.add(EmployeeProfile(
            user_id=user.id,
            first_name=first_name,
            last_name=last_name,
            preferred_name=first_name,
            work_email=email,
            work_phone=phone,
            work_model=body.work_model,
        ))
        db.add(EmploymentDetail(
            user_id=user.id,
            organization_id=organization.id,
            employee_code=employee_code,
            designation=designation,
            employment_type=body.employment_type,
            status=EmploymentStatus.INACTIVE,
            start_date=body.start_date or utcnow().date(),
            department_id=department.id if department else None,
            team_id=team.id if team else None,
            primary_location=body.work_location,
            reporting_manager_id=manager_id,
            current_project_note=body.notes,
        ))
        await db.flush()

        token = await issue_invitation_token(db, user.id)
        invite_url = build_invite_url(token, email)
        await create_audit_entry(
            db,
            action="invite",
            entity_type="user",
            entity_id=user.id,
            actor_id=viewer.id,
            new_values={"email": email, "role": body.invite_role.value},
        )
        logger.info("Invitation issued for %s (%s) by %s", email, body.invite_role.value, viewer.id)
        await send_invitation_email(
            email=email,
            first_name=first_name,
            role=body.invite_role,
            organization_name=organization.name,
            invite_url=invite_url,
            sender_name=viewer.display_name,
        )

        return InviteEmployeeResponse(
            user_id=user.id,
            email=email,
            role=body.invite_role,
            invite_url=invite_url,
        )

    # ── Terminate ───────────────────────────────────────────────────

    @staticmethod
    async def terminate(
        db: AsyncSession,
        viewer: User,
        employee_id: uuid.UUID,
        *,
        ip_address: Optional[str] = None,
    ) -> None:
        employee = await EmployeeService._get_employee(db, viewer, employee_id)
        permission = get_termination_permission(
            viewer.role, employee.role, is_self=viewer.id == employee.id,
        )
        if not permission.allowed:
            raise ForbiddenException(detail=permission.reason or "You cannot terminate this employee.")

        snapshot = {"email": employee.email, "role": employee.role.value}
        await delete_user_cascade(db, employee.id)
        await create_audit_entry(
            db,
            action="terminate",
            entity_type="user",
            entity_id=employee_id,
            actor_id=viewer.id,
            old_values=snapshot,
            ip_address=ip_address,
        )
        logger.info("Employee %s terminated by %s", employee_id, viewer.id)

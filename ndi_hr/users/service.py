"""Self-service profile: read, update, password change and photo upload."""

from __future__ import annotations

import logging
import uuid
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ndi_hr.common.constants import EmploymentStatus
from ndi_hr.common.exceptions import BadRequestException, ConflictError, NotFoundException
from ndi_hr.common.formatting import utcnow
from ndi_hr.common.security import hash_password, verify_password
from ndi_hr.common.storage import (
    PROFILE_PHOTO_PREFIX,
    build_profile_photo_key,
    delete_file,
    public_url,
    save_file,
    validate_image,
)
from ndi_hr.core_hr.models import (
    EmergencyContact,
    EmployeeBankAccount,
    EmployeeProfile,
    EmploymentDetail,
    User,
)
from ndi_hr.core_hr.service import get_or_create_department
from ndi_hr.users.schemas import (
    BankAccountSection,
    EmergencyContactSection,
    EmploymentSection,
    ProfileSection,
    UpdatePasswordRequest,
    UpdateProfileRequest,
    UserProfileResponse,
)

logger = logging.getLogger(__name__)


def manager_name(manager: Optional[User]) -> Optional[str]:
    if manager is None or manager.profile is None:
        return None
    profile = manager.profile
    if profile.preferred_name:
        return profile.preferred_name
    return " ".join(p for p in (profile.first_name, profile.last_name) if p) or None


async def load_user(db: AsyncSession, user_id: uuid.UUID) -> User:
    """Fresh copy of a user with every eager relationship reloaded."""
    result = await db.execute(
        select(User)
        .where(User.id == user_id)
        .execution_options(populate_existing=True),
    )
    user = result.scalars().first()
    if user is None:
        raise NotFoundException("User", user_id)
    return user


def build_profile_response(user: User) -> UserProfileResponse:
    employment = user.employment
    contact = user.emergency_contacts[0] if user.emergency_contacts else None
    bank = user.bank_accounts[0] if user.bank_accounts else None
    return UserProfileResponse(
        id=user.id,
        email=user.email,
        phone=user.phone,
        organization_name=user.organization.name if user.organization else "",
        last_login_at=user.last_login_at,
        profile=ProfileSection.model_validate(user.profile) if user.profile else None,
        employment=EmploymentSection(
            employee_code=employment.employee_code,
            designation=employment.designation,
            employment_type=employment.employment_type,
            start_date=employment.start_date,
            status=employment.status.value,
            department_name=employment.department.name if employment.department else None,
            team_name=employment.team.name if employment.team else None,
            manager_name=manager_name(employment.manager),
            primary_location=employment.primary_location,
        ) if employment else None,
        emergency_contact=EmergencyContactSection(
            name=contact.name,
            phone=contact.phone,
            relationship=contact.relation,
            alternate_phone=contact.alternate_phone,
        ) if contact else None,
        bank_account=BankAccountSection.model_validate(bank) if bank else None,
    )


class UserService:
    """Operations a signed-in user performs on their own record."""

    @staticmethod
    async def get_profile(db: AsyncSession, user: User) -> UserProfileResponse:
        return build_profile_response(user)

    # ── Update profile ──────────────────────────────────────────────

    @staticmethod
    async def update_profile(
        db: AsyncSession,
        user: User,
        body: UpdateProfileRequest,
    ) -> UserProfileResponse:
        profile_data = body.profile.model_dump()
        profile = user.profile
        if profile is None:
            profile = EmployeeProfile(user_id=user.id)
            db.add(profile)
        for field, value in profile_data.items():
            setattr(profile, field, value)

        job = body.employment
        employee_code = job.employee_code.strip()
        if user.organization_id is not None:
            duplicate = await db.execute(
                select(EmploymentDetail.id).where(
                    EmploymentDetail.organization_id == user.organization_id,
                    EmploymentDetail.employee_code == employee_code,
                    EmploymentDetail.user_id != user.id,
                ),
            )
            if duplicate.scalar() is not None:
                raise ConflictError(
                    "employee_code",
                    employee_code,
                    detail="This employee ID is already registered in your workspace.",
                )

        department_id = None
        if job.department_name and user.organization_id is not None:
            department = await get_or_create_department(
                db, user.organization_id, job.department_name,
            )
            department_id = department.id

        employment = user.employment
        if employment is None:
            employment = EmploymentDetail(
                user_id=user.id,
                organization_id=user.organization_id,
                status=EmploymentStatus.ACTIVE,
                start_date=job.start_date or utcnow().date(),
            )
            db.add(employment)
        employment.employee_code = employee_code
        employment.designation = job.designation.strip()
        employment.employment_type = job.employment_type
        if job.start_date:
            employment.start_date = job.start_date
        if department_id is not None:
            employment.department_id = department_id
        employment.primary_location = job.primary_location

        user.phone = body.profile.work_phone or body.profile.personal_phone

        contact_data = body.emergency_contact
        contact = user.emergency_contacts[0] if user.emergency_contacts else None
        if contact is None:
            contact = EmergencyContact(user_id=user.id)
            db.add(contact)
        contact.name = contact_data.name
        contact.relation = contact_data.relationship
        contact.phone = contact_data.phone
        contact.alternate_phone = contact_data.alternate_phone

        bank = user.bank_accounts[0] if user.bank_accounts else None
        if bank is None:
            bank = EmployeeBankAccount(user_id=user.id)
            db.add(bank)
        for field, value in body.bank_account.model_dump().items():
            setattr(bank, field, value)

        await db.flush()
        logger.info("Profile updated for user %s", user.id)
        return build_profile_response(await load_user(db, user.id))

    # ── Password ────────────────────────────────────────────────────

    @staticmethod
    async def update_password(
        db: AsyncSession,
        user: User,
        body: UpdatePasswordRequest,
    ) -> str:
        if not user.password_hash:
            raise NotFoundException("User", user.id, detail="User account not found.")
        if not verify_password(body.current_password, user.password_hash):
            raise BadRequestException(detail="Current password is incorrect.")
        if body.current_password == body.new_password:
            raise BadRequestException(
                detail="New password must be different from the current password.",
            )
        user.password_hash = hash_password(body.new_password)
        await db.flush()
        return "Password updated successfully."

    # ── Photo upload ────────────────────────────────────────────────

    @staticmethod
    async def upload_photo(
        db: AsyncSession,
        user: User,
        *,
        content_type: Optional[str],
        contents: Optional[bytes],
    ) -> str:
        """Store a new profile photo and return its public URL."""
        contents = validate_image(content_type, contents)

        key = build_profile_photo_key(user.id, content_type)
        save_file(key, contents)
        url = public_url(key)

        profile = user.profile
        if profile is None:
            profile = EmployeeProfile(user_id=user.id)
            db.add(profile)
        previous = profile.profile_photo_url
        profile.profile_photo_url = url
        await db.flush()

        if previous and previous.startswith(public_url(f"{PROFILE_PHOTO_PREFIX}/")):
            delete_file(previous[len(public_url("")):])
        return url

"""Auth service: credential checks, session lifecycle, signup, invitations, password reset."""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timedelta
from typing import Optional
from urllib.parse import urlencode

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ndi_hr.auth.models import InvitationToken, PasswordResetToken, UserSession
from ndi_hr.auth.schemas import SignupRequest, UserSummary
from ndi_hr.common.constants import EmploymentStatus, EmploymentType, UserRole
from ndi_hr.common.exceptions import (
    BadRequestException,
    ConflictError,
    ForbiddenException,
    UnauthorizedException,
)
from ndi_hr.common.formatting import split_full_name, utcnow
from ndi_hr.common.mailer import invitation_email, password_reset_email, send_email
from ndi_hr.common.security import (
    create_session_token,
    generate_url_token,
    hash_password,
    hash_token,
    verify_password,
)
from ndi_hr.common.storage import build_signup_photo_key, public_url, save_file, validate_image
from ndi_hr.config import settings
from ndi_hr.core_hr.models import EmployeeProfile, EmploymentDetail, Organization, User

logger = logging.getLogger(__name__)

_INACTIVE_STATUSES = (EmploymentStatus.INACTIVE, EmploymentStatus.TERMINATED)


def normalize_email(email: str) -> str:
    return email.strip().lower()


# ── Lookups ─────────────────────────────────────────────────────────

async def get_user_by_email(db: AsyncSession, email: str) -> Optional[User]:
    result = await db.execute(select(User).where(User.email == normalize_email(email)))
    return result.scalars().first()


async def get_user(db: AsyncSession, user_id: uuid.UUID) -> Optional[User]:
    result = await db.execute(select(User).where(User.id == user_id))
    return result.scalars().first()


def build_user_summary(user: User) -> UserSummary:
    employment = user.employment
    profile = user.profile
    return UserSummary(
        id=user.id,
        email=user.email,
        role=user.role.value,
        status=user.status.value,
        organization_id=user.organization_id,
        organization_name=user.organization.name if user.organization else None,
        display_name=user.display_name,
        avatar_url=profile.profile_photo_url if profile else None,
        employee_code=employment.employee_code if employment else None,
        designation=employment.designation if employment else None,
    )


# ── Login / sessions ────────────────────────────────────────────────

async def authenticate(db: AsyncSession, email: str, password: str) -> User:
    """Return the user for valid credentials; raise 401/403 otherwise."""
    user = await get_user_by_email(db, email)
    if user is None or not verify_password(password, user.password_hash):
        raise UnauthorizedException(detail="Invalid email or password.")
    if user.status in _INACTIVE_STATUSES or user.archived_at is not None:
        raise ForbiddenException(detail="Your account is not active yet.")
    return user


async def create_session(
    db: AsyncSession,
    user: User,
    *,
    remember: bool,
    ip: Optional[str],
    user_agent: Optional[str],
) -> tuple[str, datetime]:
    """Issue a session JWT and persist its hash.  Returns (token, expires_at)."""
    ttl_days = settings.REMEMBER_ME_TTL_DAYS if remember else settings.SESSION_TTL_DAYS
    now = utcnow()
    expires_at = now + timedelta(days=ttl_days)
    token = create_session_token(user.id, expires_at)

    db.add(UserSession(
        user_id=user.id,
        token_hash=hash_token(token),
        ip_address=ip,
        user_agent=user_agent,
        expires_at=expires_at,
    ))
    user.last_login_at = now
    await db.flush()
    return token, expires_at


async def revoke_session(db: AsyncSession, token_hash: str) -> None:
    """Mark a session as revoked by its token hash."""
    result = await db.execute(
        select(UserSession).where(UserSession.token_hash == token_hash),
    )
    session = result.scalars().first()
    if session:
        session.is_revoked = True
        await db.flush()


async def revoke_all_sessions(db: AsyncSession, user_id: uuid.UUID) -> None:
    await db.execute(
        update(UserSession)
        .where(UserSession.user_id == user_id, UserSession.is_revoked.is_(False))
        .values(is_revoked=True),
    )
    await db.flush()


async def load_session_user(db: AsyncSession, token: str, user_id: uuid.UUID) -> Optional[User]:
    """Return the user behind a live session, or None when the session is gone."""
    result = await db.execute(
        select(UserSession.id).where(
            UserSession.token_hash == hash_token(token),
            UserSession.user_id == user_id,
            UserSession.is_revoked.is_(False),
            UserSession.expires_at > utcnow(),
        ),
    )
    if result.scalar() is None:
        return None

    result = await db.execute(
        select(User).where(
            User.id == user_id,
            User.archived_at.is_(None),
            User.status != EmploymentStatus.TERMINATED,
        ),
    )
    return result.scalars().first()


# ── Signup ──────────────────────────────────────────────────────────

def store_signup_photo(content_type: Optional[str], contents: Optional[bytes]) -> str:
    """Save a photo chosen before the account exists; returns its public URL."""
    contents = validate_image(content_type, contents, missing_detail="Select a photo to upload.")
    key = build_signup_photo_key(content_type, utcnow().year)
    save_file(key, contents)
    logger.info("Signup photo stored at %s", key)
    return public_url(key)


async def register_user(db: AsyncSession, body: SignupRequest) -> tuple[User, Optional[Organization]]:
    """Self-service signup: creates an INACTIVE employee awaiting HR activation."""
    email = normalize_email(body.email)
    employee_code = body.employee_code.strip()

    organization: Optional[Organization] = None
    if body.organization_domain and body.organization_domain.strip():
        domain = body.organization_domain.strip().lower()
        result = await db.execute(select(Organization).where(Organization.domain == domain))
        organization = result.scalars().first()
        if organization is None:
            raise BadRequestException(detail="Selected organization is no longer available.")

    if await get_user_by_email(db, email) is not None:
        raise ConflictError(
            "email", email, detail="An account already exists for this email address.",
        )

    if organization is not None:
        duplicate = await db.execute(
            select(EmploymentDetail.id).where(
                EmploymentDetail.organization_id == organization.id,
                EmploymentDetail.employee_code == employee_code,
            ),
        )
        if duplicate.scalar() is not None:
            raise ConflictError(
                "employee_code",
                employee_code,
                detail="This employee ID is already registered in your workspace.",
            )

    first_name, last_name = split_full_name(body.full_name)
    user = User(
        organization_id=organization.id if organization else None,
        email=email,
        password_hash=hash_password(body.password),
        phone=body.phone,
        role=UserRole.EMPLOYEE,
        status=EmploymentStatus.INACTIVE,
        invited_at=utcnow(),
    )
    db.add(user)
    await db.flush()

    db.add(EmployeeProfile(
        user_id=user.id,
        first_name=first_name,
        last_name=last_name,
        preferred_name=first_name,
        work_email=email,
        work_phone=body.phone,
        profile_photo_url=body.profile_photo_url,
    ))
    db.add(EmploymentDetail(
        user_id=user.id,
        organization_id=organization.id if organization else None,
        employee_code=employee_code,
        designation=(body.designation or "").strip(),
        employment_type=EmploymentType.FULL_TIME,
        status=EmploymentStatus.INACTIVE,
        start_date=utcnow().date(),
    ))
    await db.flush()
    logger.info("Registered user %s (organization=%s)", user.id, user.organization_id)
    return user, organization


# ── Invitations ─────────────────────────────────────────────────────

async def issue_invitation_token(db: AsyncSession, user_id: uuid.UUID) -> str:
    token = generate_url_token()
    db.add(InvitationToken(
        user_id=user_id,
        token_hash=hash_token(token),
        expires_at=utcnow() + timedelta(hours=settings.INVITE_TOKEN_TTL_HOURS),
    ))
    await db.flush()
    return token


def build_invite_url(token: str, email: str) -> str:
    query = urlencode({"token": token, "email": email})
    return f"{settings.APP_BASE_URL.rstrip('/')}/auth/signup?{query}"


async def send_invitation_email(
    *,
    email: str,
    first_name: Optional[str],
    role: UserRole,
    organization_name: str,
    invite_url: str,
    sender_name: Optional[str] = None,
) -> bool:
    subject, text = invitation_email(
        organization_name=organization_name,
        role=role,
        invite_url=invite_url,
        expires_at=utcnow() + timedelta(hours=settings.INVITE_TOKEN_TTL_HOURS),
        recipient_name=first_name,
        sender_name=sender_name,
    )
    return await send_email(email, subject, text, sender_name=f"{organization_name} HR")


async def load_invitation(
    db: AsyncSession, token: str, email: str,
) -> tuple[InvitationToken, User]:
    """Return an unused, unexpired invitation for *email* or raise 401."""
    result = await db.execute(
        select(InvitationToken).where(
            InvitationToken.token_hash == hash_token(token),
            InvitationToken.used_at.is_(None),
            InvitationToken.expires_at > utcnow(),
        ),
    )
    invitation = result.scalars().first()
    user = await get_user(db, invitation.user_id) if invitation else None
    if invitation is None or user is None or user.email != normalize_email(email):
        raise UnauthorizedException(detail="Invalid or expired invitation link.")
    return invitation, user


async def complete_invite(
    db: AsyncSession,
    *,
    token: str,
    email: str,
    password: str,
    first_name: Optional[str] = None,
    last_name: Optional[str] = None,
    preferred_name: Optional[str] = None,
) -> User:
    invitation, user = await load_invitation(db, token, email)

    user.password_hash = hash_password(password)
    user.status = EmploymentStatus.ACTIVE
    user.invited_at = None

    profile = user.profile
    if profile is None:
        profile = EmployeeProfile(user_id=user.id, work_email=user.email)
        db.add(profile)
    if first_name and first_name.strip():
        profile.first_name = first_name.strip()
    if last_name and last_name.strip():
        profile.last_name = last_name.strip()
    cleaned_preferred = (preferred_name or "").strip()
    if cleaned_preferred:
        profile.preferred_name = cleaned_preferred
    elif not profile.preferred_name:
        profile.preferred_name = profile.first_name or None

    if user.employment is not None:
        user.employment.status = EmploymentStatus.ACTIVE

    invitation.used_at = utcnow()
    await db.execute(
        delete(InvitationToken).where(
            InvitationToken.user_id == user.id,
            InvitationToken.used_at.is_(None),
            InvitationToken.id != invitation.id,
        ),
    )
    await db.flush()
    logger.info("Invitation accepted by user %s", user.id)
    return user


# ── Password reset ──────────────────────────────────────────────────

async def request_password_reset(db: AsyncSession, email: str) -> Optional[str]:
    """Issue a reset token when the account exists and mail the link.  Returns the link or None.

    When mail is not configured (or delivery fails) the link is written to the log.
    """
    user = await get_user_by_email(db, email)
    if user is None:
        logger.info("Password reset requested for unknown email")
        return None

    await db.execute(delete(PasswordResetToken).where(PasswordResetToken.user_id == user.id))
    token = generate_url_token()
    db.add(PasswordResetToken(
        user_id=user.id,
        token_hash=hash_token(token),
        expires_at=utcnow() + timedelta(minutes=settings.PASSWORD_RESET_TTL_MINUTES),
    ))
    await db.flush()

    link = f"{settings.APP_BASE_URL.rstrip('/')}/auth/reset-password?{urlencode({'token': token})}"
    subject, text = password_reset_email(
        reset_url=link,
        ttl_minutes=settings.PASSWORD_RESET_TTL_MINUTES,
        recipient_name=user.profile.first_name if user.profile else None,
    )
    if not await send_email(user.email, subject, text):
        logger.info("Password reset link for user %s: %s", user.id, link)
    return link


async def reset_password(db: AsyncSession, token: str, password: str) -> User:
    result = await db.execute(
        select(PasswordResetToken).where(
            PasswordResetToken.token_hash == hash_token(token),
            PasswordResetToken.used_at.is_(None),
            PasswordResetToken.expires_at > utcnow(),
        ),
    )
    record = result.scalars().first()
    if record is None:
        raise BadRequestException(detail="This reset link is invalid or has expired.")

    user = await get_user(db, record.user_id)
    if user is None:
        raise BadRequestException(detail="This reset link is invalid or has expired.")

    user.password_hash = hash_password(password)
    record.used_at = utcnow()
    await revoke_all_sessions(db, user.id)
    await db.flush()
    return user

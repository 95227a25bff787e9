"""Auth dependencies: session validation, RBAC enforcement."""

from __future__ import annotations

import uuid
from typing import Callable, Iterable, Optional

from fastapi import Depends, Request
from jose import ExpiredSignatureError, JWTError
from sqlalchemy.ext.asyncio import AsyncSession

from ndi_hr.auth.service import load_session_user
from ndi_hr.common.constants import (
    DEPARTMENT_MANAGEMENT_ROLES,
    HR_ACCESS_ROLES,
    ORGANIZATION_MANAGEMENT_ROLES,
    PROJECT_MANAGEMENT_ROLES,
    TEAM_MANAGEMENT_ROLES,
    WORK_MANAGEMENT_ROLES,
    UserRole,
)
from ndi_hr.common.exceptions import ForbiddenException, UnauthorizedException
from ndi_hr.common.security import decode_session_token
from ndi_hr.config import settings
from ndi_hr.core_hr.models import User
from ndi_hr.database import get_db


def extract_session_token(request: Request) -> Optional[str]:
    """Session cookie first, then ``Authorization: Bearer``."""
    cookie = request.cookies.get(settings.SESSION_COOKIE_NAME)
    if cookie:
        return cookie
    auth_header = request.headers.get("Authorization")
    if auth_header and auth_header.startswith("Bearer "):
        return auth_header[7:]
    return None


async def authenticate_token(db: AsyncSession, token: str) -> User:
    """Validate JWT + persisted session and return the user, or raise 401."""
    try:
        payload = decode_session_token(token)
    except ExpiredSignatureError:
        raise UnauthorizedException(detail="Your session has expired. Please sign in again.")
    except JWTError:
        raise UnauthorizedException(detail="Invalid session token.")

    try:
        user_id = uuid.UUID(payload["sub"])
    except (KeyError, ValueError):
        raise UnauthorizedException(detail="Invalid session token.")

    user = await load_session_user(db, token, user_id)
    if user is None:
        raise UnauthorizedException(detail="Session invalid or expired.")
    return user


# ── Core dependency ─────────────────────────────────────────────────

async def get_current_user(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> User:
    """Validate the session and return the authenticated User."""
    token = extract_session_token(request)
    if not token:
        raise UnauthorizedException()

    user = await authenticate_token(db, token)

    # Role always comes from the database, never from the token
    request.state.user_role = user.role
    request.state.session_token = token
    return user


# ── Role-based dependencies ─────────────────────────────────────────

def require_role(*allowed_roles: UserRole) -> Callable:
    """Return a FastAPI dependency that enforces role membership."""

    async def _check(
        request: Request,
        user: User = Depends(get_current_user),
    ) -> User:
        user_role: UserRole = request.state.user_role
        if user_role not in allowed_roles:
            raise ForbiddenException(
                detail=f"Role '{user_role.value}' is not permitted. Required: {[r.value for r in allowed_roles]}.",
            )
        return user

    return _check


def _require_group(
    roles: Iterable[UserRole],
    *,
    detail: str,
    missing_org_detail: str,
) -> Callable:
    allowed = frozenset(roles)

    async def _check(user: User = Depends(get_current_user)) -> User:
        if user.role not in allowed:
            raise ForbiddenException(detail=detail)
        if user.organization_id is None:
            raise ForbiddenException(detail=missing_org_detail)
        return user

    return _check


require_hr_access = _require_group(
    HR_ACCESS_ROLES,
    detail="HR access required.",
    missing_org_detail="Join an organization to manage employees.",
)

require_team_manager = _require_group(
    TEAM_MANAGEMENT_ROLES,
    detail="Manager, org admin, org owner, or super admin access required.",
    missing_org_detail="Join an organization to manage teams.",
)

require_department_manager = _require_group(
    DEPARTMENT_MANAGEMENT_ROLES,
    detail="Only org admins, org owners, or super admins can manage departments.",
    missing_org_detail="Join an organization to manage departments.",
)

require_work_manager = _require_group(
    WORK_MANAGEMENT_ROLES,
    detail="Only org owners, org admins, or super admins can manage work policies.",
    missing_org_detail="Join an organization to manage work policies.",
)

require_organization_manager = _require_group(
    ORGANIZATION_MANAGEMENT_ROLES,
    detail="Only org owners or super admins can manage organization settings.",
    missing_org_detail="Join an organization to manage organization settings.",
)

require_project_manager = _require_group(
    PROJECT_MANAGEMENT_ROLES,
    detail="Only managers, org admins, org owners, or super admins can manage projects.",
    missing_org_detail="Join an organization to manage projects.",
)

require_super_admin = require_role(UserRole.SUPER_ADMIN)

"""Auth router: credential login, logout, signup (with photo), invitations, password reset."""

from typing import Optional

from fastapi import APIRouter, Depends, File, Query, Request, Response, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from ndi_hr.auth.dependencies import get_current_user
from ndi_hr.auth.schemas import (
    CompleteInviteRequest,
    ForgotPasswordRequest,
    InviteDetailsResponse,
    LoginRequest,
    LoginResponse,
    MessageResponse,
    ResetPasswordRequest,
    SignupPhotoResponse,
    SignupRequest,
    SignupResponse,
    UserSummary,
)
from ndi_hr.auth.service import (
    authenticate,
    build_user_summary,
    complete_invite,
    create_session,
    load_invitation,
    register_user,
    request_password_reset,
    reset_password,
    revoke_session,
    store_signup_photo,
)
from ndi_hr.common.audit import create_audit_entry
from ndi_hr.common.rate_limit import LOGIN_RATE_LIMIT, limiter
from ndi_hr.common.security import hash_token
from ndi_hr.config import settings
from ndi_hr.core_hr.models import User
from ndi_hr.database import get_db

router = APIRouter(prefix="", tags=["auth"])


def _client_ip(request: Request):
    return request.client.host if request.client else None


# ── POST /login ─────────────────────────────────────────────────────

@router.post("/login", response_model=LoginResponse)
@limiter.limit(LOGIN_RATE_LIMIT)
async def login(
    request: Request,
    response: Response,
    body: LoginRequest,
    db: AsyncSession = Depends(get_db),
):
    user = await authenticate(db, body.email, body.password)

    ip = _client_ip(request)
    user_agent = request.headers.get("user-agent")
    token, expires_at = await create_session(
        db, user, remember=body.remember, ip=ip, user_agent=user_agent,
    )

    await create_audit_entry(
        db,
        action="login",
        entity_type="user_session",
        entity_id=user.id,
        actor_id=user.id,
        new_values={"ip": ip, "user_agent": user_agent, "remember": body.remember},
        ip_address=ip,
        user_agent=user_agent,
    )

    ttl_days = settings.REMEMBER_ME_TTL_DAYS if body.remember else settings.SESSION_TTL_DAYS
    response.set_cookie(
        key=settings.SESSION_COOKIE_NAME,
        value=token,
        max_age=ttl_days * 24 * 3600,
        httponly=True,
        samesite="lax",
        secure=settings.secure_cookies,
        path="/",
    )

    return LoginResponse(
        access_token=token,
        expires_at=expires_at,
        user=build_user_summary(user),
    )


# ── POST /logout ────────────────────────────────────────────────────

@router.post("/logout", response_model=MessageResponse)
async def logout(
    request: Request,
    response: Response,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await revoke_session(db, hash_token(request.state.session_token))

    await create_audit_entry(
        db,
        action="logout",
        entity_type="user_session",
        entity_id=user.id,
        actor_id=user.id,
        ip_address=_client_ip(request),
        user_agent=request.headers.get("user-agent"),
    )

    response.delete_cookie(settings.SESSION_COOKIE_NAME, path="/")
    return MessageResponse(message="Logged out successfully")


# ── GET /me ─────────────────────────────────────────────────────────

@router.get("/me", response_model=UserSummary)
async def me(user: User = Depends(get_current_user)):
    return build_user_summary(user)


# ── POST /signup ────────────────────────────────────────────────────

@router.post("/signup", response_model=SignupResponse, status_code=status.HTTP_201_CREATED)
async def signup(
    body: SignupRequest,
    db: AsyncSession = Depends(get_db),
):
    user, organization = await register_user(db, body)
    return SignupResponse(
        user_id=user.id,
        email=user.email,
        organization_id=organization.id if organization else None,
        organization_name=organization.name if organization else None,
        message="Account created. An HR admin will activate it shortly.",
    )


# ── POST /signup/photo ──────────────────────────────────────────────

@router.post("/signup/photo", response_model=SignupPhotoResponse)
async def signup_photo(file: Optional[UploadFile] = File(default=None)):
    contents = await file.read() if file is not None else None
    url = store_signup_photo(file.content_type if file else None, contents)
    return SignupPhotoResponse(profile_photo_url=url)


# ── GET /invite ─────────────────────────────────────────────────────

@router.get("/invite", response_model=InviteDetailsResponse)
async def invite_details(
    token: str = Query(..., min_length=16),
    email: str = Query(..., min_length=3),
    db: AsyncSession = Depends(get_db),
):
    invitation, user = await load_invitation(db, token, email)
    profile = user.profile
    employment = user.employment
    return InviteDetailsResponse(
        user_id=user.id,
        email=user.email,
        first_name=profile.first_name if profile else None,
        last_name=profile.last_name if profile else None,
        preferred_name=profile.preferred_name if profile else None,
        organization_name=user.organization.name if user.organization else None,
        role=user.role.value,
        designation=employment.designation if employment else None,
        department_name=(
            employment.department.name if employment and employment.department else None
        ),
        expires_at=invitation.expires_at,
    )


# ── POST /invite/complete ───────────────────────────────────────────

@router.post("/invite/complete", response_model=MessageResponse)
async def invite_complete(
    body: CompleteInviteRequest,
    db: AsyncSession = Depends(get_db),
):
    await complete_invite(
        db,
        token=body.token,
        email=body.email,
        password=body.password,
        first_name=body.first_name,
        last_name=body.last_name,
        preferred_name=body.preferred_name,
    )
    return MessageResponse(message="Invitation accepted. You can now sign in.")


# ── POST /forgot-password ───────────────────────────────────────────

@router.post(
    "/forgot-password",
    response_model=MessageResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
@limiter.limit(LOGIN_RATE_LIMIT)
async def forgot_password(
    request: Request,
    body: ForgotPasswordRequest,
    db: AsyncSession = Depends(get_db),
):
    await request_password_reset(db, body.email)
    return MessageResponse(
        message="If an account exists for that email, a reset link is on its way.",
    )


# ── POST /reset-password ────────────────────────────────────────────

@router.post("/reset-password", response_model=MessageResponse)
async def reset_password_endpoint(
    request: Request,
    body: ResetPasswordRequest,
    db: AsyncSession = Depends(get_db),
):
    user = await reset_password(db, body.token, body.password)
    await create_audit_entry(
        db,
        action="password_reset",
        entity_type="user",
        entity_id=user.id,
        actor_id=user.id,
        ip_address=_client_ip(request),
        user_agent=request.headers.get("user-agent"),
    )
    return MessageResponse(message="Password updated. You can now sign in.")

"""NDI HR — FastAPI Application Factory."""

import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from ndi_hr.announcements.router import router as announcements_router
from ndi_hr.attendance.router import router as attendance_router
from ndi_hr.attendance.router import hr_router as hr_attendance_router
from ndi_hr.attendance.router import work_router
from ndi_hr.auth.router import router as auth_router
from ndi_hr.common.exceptions import register_exception_handlers
from ndi_hr.common.rate_limit import limiter
from ndi_hr.common.storage import ORGANIZATION_LOGO_PREFIX, PROFILE_PHOTO_PREFIX, SIGNUP_PHOTO_PREFIX
from ndi_hr.config import settings
from ndi_hr.core_hr.router import (
    departments_router,
    organization_router,
    organizations_router,
    teams_router,
)
from ndi_hr.dashboard.router import router as dashboard_router
from ndi_hr.database import engine
from ndi_hr.employees.router import router as employees_router
from ndi_hr.hr_dashboard.router import router as hr_dashboard_router
from ndi_hr.invoices.router import hr_router as hr_invoices_router
from ndi_hr.invoices.router import router as invoices_router
from ndi_hr.leave.router import hr_router as hr_leave_router
from ndi_hr.leave.router import router as leave_router
from ndi_hr.messages.router import router as messages_router
from ndi_hr.notifications.router import router as notifications_router
from ndi_hr.projects.router import router as projects_router
from ndi_hr.reports.router import hr_router as hr_reports_router
from ndi_hr.reports.router import router as reports_router
from ndi_hr.team.router import router as team_router
from ndi_hr.users.router import router as users_router

APP_VERSION = "1.0.0"

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup and shutdown events."""
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    os.makedirs(settings.UPLOAD_DIR, exist_ok=True)
    logger.info("NDI HR starting (%s)", settings.ENVIRONMENT)
    yield
    await engine.dispose()
    logger.info("NDI HR stopped")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="NDI HR",
        description="Internal HR workspace: employees, attendance, leave, invoices, notifications",
        version=APP_VERSION,
        docs_url="/api/docs" if settings.ENVIRONMENT != "production" else None,
        redoc_url="/api/redoc" if settings.ENVIRONMENT != "production" else None,
        lifespan=lifespan,
    )

    # Exception handlers (RFC 7807)
    register_exception_handlers(app)

    # Rate limiting (slowapi)
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    # CORS (credentials on: the session lives in a cookie)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Health check (no auth)
    @app.get("/api/v1/health", tags=["system"])
    async def health_check():
        return {
            "status": "healthy",
            "version": APP_VERSION,
            "environment": settings.ENVIRONMENT,
        }

    # Employee-facing routers
    app.include_router(auth_router, prefix="/api/v1/auth", tags=["auth"])
    app.include_router(users_router, prefix="/api/v1/users", tags=["users"])
    app.include_router(dashboard_router, prefix="/api/v1/dashboard", tags=["dashboard"])
    app.include_router(attendance_router, prefix="/api/v1/attendance", tags=["attendance"])
    app.include_router(leave_router, prefix="/api/v1/leave", tags=["leave"])
    app.include_router(invoices_router, prefix="/api/v1/invoices", tags=["invoices"])
    app.include_router(notifications_router, prefix="/api/v1/notifications", tags=["notifications"])
    app.include_router(messages_router, prefix="/api/v1/messages", tags=["messages"])
    app.include_router(reports_router, prefix="/api/v1/reports", tags=["reports"])
    app.include_router(team_router, prefix="/api/v1/team", tags=["team"])

    # HR workspace routers
    app.include_router(hr_dashboard_router, prefix="/api/v1/hr/dashboard", tags=["hr"])
    app.include_router(employees_router, prefix="/api/v1/hr/employees", tags=["hr"])
    app.include_router(departments_router, prefix="/api/v1/hr/departments", tags=["hr"])
    app.include_router(teams_router, prefix="/api/v1/hr/teams", tags=["hr"])
    app.include_router(organization_router, prefix="/api/v1/hr/organization", tags=["hr"])
    app.include_router(organizations_router, prefix="/api/v1/hr/organizations", tags=["hr"])
    app.include_router(announcements_router, prefix="/api/v1/hr/announcements", tags=["hr"])
    app.include_router(work_router, prefix="/api/v1/hr/work", tags=["hr"])
    app.include_router(hr_attendance_router, prefix="/api/v1/hr/attendance", tags=["hr"])
    app.include_router(hr_leave_router, prefix="/api/v1/hr/leave", tags=["hr"])
    app.include_router(hr_invoices_router, prefix="/api/v1/hr/invoices", tags=["hr"])
    app.include_router(projects_router, prefix="/api/v1/hr/projects", tags=["hr"])
    app.include_router(hr_reports_router, prefix="/api/v1/hr/reports", tags=["hr"])

    # Images are public; leave attachments go through signed links
    for prefix in (PROFILE_PHOTO_PREFIX, ORGANIZATION_LOGO_PREFIX, SIGNUP_PHOTO_PREFIX):
        app.mount(
            f"/uploads/{prefix}",
            StaticFiles(directory=os.path.join(settings.UPLOAD_DIR, prefix), check_dir=False),
            name=prefix,
        )

    return app


app = create_app()

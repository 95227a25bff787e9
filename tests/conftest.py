"""Shared test fixtures — async DB, client, auth helpers, factories.

Reusable across all test modules (auth, employees, attendance, leave, invoices...).
Uses SQLite + aiosqlite for fast isolated tests without PostgreSQL.
"""

from __future__ import annotations

import os
import tempfile

# Set test settings before any other import touches pydantic-settings
os.environ.setdefault("JWT_SECRET", "test-secret-for-ci-do-not-use-in-production")
os.environ.setdefault("UPLOAD_DIR", tempfile.mkdtemp(prefix="ndi-hr-uploads-"))
os.environ.setdefault("ENVIRONMENT", "test")

import uuid
from datetime import date, timedelta
from decimal import Decimal
from typing import AsyncGenerator, Optional

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from ndi_hr.common.constants import EmploymentStatus, UserRole, WorkModel
from ndi_hr.common.formatting import utcnow
from ndi_hr.common.security import create_session_token, hash_password, hash_token
from ndi_hr.database import Base, get_db
from ndi_hr.main import create_app

# Import ALL model modules so SQLAlchemy can resolve cross-module relationships
import ndi_hr.attendance.models  # noqa: F401
import ndi_hr.auth.models  # noqa: F401
import ndi_hr.common.audit  # noqa: F401
import ndi_hr.core_hr.models  # noqa: F401
import ndi_hr.invoices.models  # noqa: F401
import ndi_hr.leave.models  # noqa: F401
import ndi_hr.messages.models  # noqa: F401
import ndi_hr.notifications.models  # noqa: F401
import ndi_hr.reports.models  # noqa: F401

# ── SQLite compat: compile PG-specific types to TEXT/CHAR ───────────

from sqlalchemy.dialects.postgresql import INET, JSONB, UUID as PG_UUID
from sqlalchemy.ext.compiler import compiles


@compiles(JSONB, "sqlite")
def _jsonb_sqlite(element, compiler, **kw):
    return "TEXT"


@compiles(INET, "sqlite")
def _inet_sqlite(element, compiler, **kw):
    return "TEXT"


@compiles(PG_UUID, "sqlite")
def _uuid_sqlite(element, compiler, **kw):
    return "CHAR(36)"


# ── Test database (SQLite in-memory) ────────────────────────────────

TEST_DATABASE_URL = "sqlite+aiosqlite://"

engine = create_async_engine(
    TEST_DATABASE_URL,
    echo=False,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestSessionFactory = async_sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False,
)

DEFAULT_PASSWORD = "Password123!"


@pytest.fixture(autouse=True)
async def _setup_db():
    """Create all tables before each test, drop after."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture(autouse=True)
def _reset_rate_limiter():
    """Reset slowapi's in-memory counters so login limits never leak across tests."""
    from ndi_hr.common.rate_limit import limiter

    limiter.reset()
    yield


async def _override_get_db() -> AsyncGenerator[AsyncSession, None]:
    async with TestSessionFactory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


# ── FastAPI test client ─────────────────────────────────────────────

@pytest.fixture
async def app():
    """Create a fresh app instance with DB dependency overridden."""
    application = create_app()
    application.dependency_overrides[get_db] = _override_get_db
    yield application
    application.dependency_overrides.clear()


@pytest.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client wired to the test app."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


# ── Database session (for direct DB operations in tests) ────────────

@pytest.fixture
async def db() -> AsyncGenerator[AsyncSession, None]:
    async with TestSessionFactory() as session:
        yield session
        await session.commit()


async def fetch(model, entity_id):
    """Load a row through a fresh session (bypasses the test session's identity map)."""
    async with TestSessionFactory() as session:
        return await session.get(model, entity_id)


# ── Model factories ─────────────────────────────────────────────────

async def _make_organization(
    db: AsyncSession,
    *,
    name: str = "NDI Labs",
    domain: str = "ndilabs.com",
    timezone: str = "Asia/Dhaka",
):
    from ndi_hr.core_hr.models import Organization

    organization = Organization(name=name, domain=domain, timezone=timezone)
    db.add(organization)
    await db.commit()
    return organization


async def _make_user(
    db: AsyncSession,
    organization,
    *,
    email: str,
    role: UserRole = UserRole.EMPLOYEE,
    first_name: str = "Test",
    last_name: str = "User",
    status: EmploymentStatus = EmploymentStatus.ACTIVE,
    password: Optional[str] = DEFAULT_PASSWORD,
    employee_code: Optional[str] = None,
    designation: str = "Software Engineer",
    department_id: Optional[uuid.UUID] = None,
    team_id: Optional[uuid.UUID] = None,
    reporting_manager_id: Optional[uuid.UUID] = None,
    is_team_lead: bool = False,
    work_model: Optional[WorkModel] = WorkModel.HYBRID,
    casual_leave_balance: Decimal = Decimal("10"),
    sick_leave_balance: Decimal = Decimal("7"),
):
    """Insert a user with profile and employment records; returns the committed User id."""
    from ndi_hr.core_hr.models import EmployeeProfile, EmploymentDetail, User

    organization_id = organization.id if organization is not None else None
    user = User(
        organization_id=organization_id,
        email=email,
        password_hash=hash_password(password) if password else None,
        phone="01700000000",
        role=role,
        status=status,
    )
    db.add(user)
    await db.flush()
    db.add(EmployeeProfile(
        user_id=user.id,
        first_name=first_name,
        last_name=last_name,
        preferred_name=first_name,
        work_email=email,
        work_model=work_model,
    ))
    db.add(EmploymentDetail(
        user_id=user.id,
        organization_id=organization_id,
        employee_code=employee_code or f"NDI-{uuid.uuid4().hex[:6].upper()}",
        designation=designation,
        status=status,
        start_date=date(2024, 1, 15),
        department_id=department_id,
        team_id=team_id,
        reporting_manager_id=reporting_manager_id,
        is_team_lead=is_team_lead,
        casual_leave_balance=casual_leave_balance,
        sick_leave_balance=sick_leave_balance,
    ))
    await db.commit()
    return user.id


async def _make_department(db: AsyncSession, organization, *, name: str = "Engineering", code: str = "ENG"):
    from ndi_hr.core_hr.models import Department

    department = Department(organization_id=organization.id, name=name, code=code)
    db.add(department)
    await db.commit()
    return department


async def _make_team(db: AsyncSession, organization, department, *, name: str = "Platform"):
    from ndi_hr.core_hr.models import Team

    team = Team(organization_id=organization.id, department_id=department.id, name=name)
    db.add(team)
    await db.commit()
    return team


# ── Auth helpers ────────────────────────────────────────────────────

async def create_session_headers(db: AsyncSession, user_id: uuid.UUID) -> dict[str, str]:
    """Persist a live session for *user_id* and return Bearer auth headers."""
    from ndi_hr.auth.models import UserSession

    expires_at = utcnow() + timedelta(days=1)
    token = create_session_token(user_id, expires_at)
    db.add(UserSession(
        user_id=user_id,
        token_hash=hash_token(token),
        expires_at=expires_at,
    ))
    await db.commit()
    return {"Authorization": f"Bearer {token}"}


# ── Seeded workspace ────────────────────────────────────────────────

@pytest.fixture
async def organization(db):
    return await _make_organization(db)


@pytest.fixture
async def employee_id(db, organization) -> uuid.UUID:
    return await _make_user(
        db, organization,
        email="rahim.uddin@ndilabs.com",
        first_name="Rahim",
        last_name="Uddin",
        employee_code="NDI-100",
    )


@pytest.fixture
async def hr_admin_id(db, organization) -> uuid.UUID:
    return await _make_user(
        db, organization,
        email="hr.admin@ndilabs.com",
        role=UserRole.HR_ADMIN,
        first_name="Nusrat",
        last_name="Jahan",
        designation="HR Manager",
        employee_code="NDI-010",
    )


@pytest.fixture
async def owner_id(db, organization) -> uuid.UUID:
    return await _make_user(
        db, organization,
        email="owner@ndilabs.com",
        role=UserRole.ORG_OWNER,
        first_name="Farhana",
        last_name="Rahman",
        designation="Founder",
        employee_code="NDI-001",
    )


@pytest.fixture
async def employee_headers(db, employee_id) -> dict[str, str]:
    return await create_session_headers(db, employee_id)


@pytest.fixture
async def hr_headers(db, hr_admin_id) -> dict[str, str]:
    return await create_session_headers(db, hr_admin_id)


@pytest.fixture
async def owner_headers(db, owner_id) -> dict[str, str]:
    return await create_session_headers(db, owner_id)

"""002 – Add projects, work reports and chat tables.

Creates the project roster, daily/monthly work reports and the messaging
threads, and links employment records to their current project.

Uses CREATE TABLE IF NOT EXISTS so the revision can be re-applied against
a database bootstrapped from the ORM metadata.

Revision ID: 002_projects_reports_messages
Revises: 001_initial_schema
Create Date: 2026-10-17 21:00:00.000000+06:00
"""

import re

from alembic import op
import sqlalchemy as sa

# Revision identifiers
revision = "002_projects_reports_messages"
down_revision = "001_initial_schema"
branch_labels = None
depends_on = None


_SAFE_IDENT_RE = re.compile(r'^[a-z_][a-z0-9_]*$')


def _validate_identifier(name: str) -> str:
    if not _SAFE_IDENT_RE.match(name):
        raise ValueError(f"Unsafe SQL identifier: {name!r}")
    return name


def _safe_drop_table(name: str) -> None:
    _validate_identifier(name)
    op.execute(sa.text(f'DROP TABLE IF EXISTS "{name}" CASCADE'))


def upgrade() -> None:
    # ══════════════════════════════════════════════════════════════════
    # 1. projects
    # ══════════════════════════════════════════════════════════════════
    op.execute("""
        DO $$ BEGIN
            CREATE TYPE project_status AS ENUM ('ACTIVE', 'ON_HOLD', 'COMPLETED', 'ARCHIVED');
        EXCEPTION WHEN duplicate_object THEN NULL;
        END $$
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS projects (
            id                  UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            organization_id     UUID NOT NULL REFERENCES organizations(id) ON DELETE CASCADE,
            name                VARCHAR(160) NOT NULL,
            code                VARCHAR(64),
            description         TEXT,
            client_name         VARCHAR(128),
            status              project_status NOT NULL DEFAULT 'ACTIVE',
            start_date          DATE,
            end_date            DATE,
            project_manager_id  UUID REFERENCES users(id) ON DELETE SET NULL,
            created_at          TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at          TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_project_org_name UNIQUE (organization_id, name),
            CONSTRAINT uq_project_org_code UNIQUE (organization_id, code)
        )
    """)
    op.execute("""
        ALTER TABLE employment_details
            ADD COLUMN IF NOT EXISTS current_project_id UUID
            REFERENCES projects(id) ON DELETE SET NULL
    """)
    op.execute(
        "CREATE INDEX IF NOT EXISTS idx_employment_project ON employment_details(current_project_id)"
    )

    # ══════════════════════════════════════════════════════════════════
    # 2. daily_reports / daily_report_entries
    # ══════════════════════════════════════════════════════════════════
    op.execute("""
        CREATE TABLE IF NOT EXISTS daily_reports (
            id               UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            organization_id  UUID NOT NULL REFERENCES organizations(id) ON DELETE CASCADE,
            employee_id      UUID NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            report_date      DATE NOT NULL,
            note             TEXT,
            submitted_at     TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at       TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_daily_report_employee_date UNIQUE (employee_id, report_date)
        )
    """)
    op.execute(
        "CREATE INDEX IF NOT EXISTS ix_daily_reports_org_date ON daily_reports(organization_id, report_date)"
    )
    op.execute("""
        CREATE TABLE IF NOT EXISTS daily_report_entries (
            id             UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            report_id      UUID NOT NULL REFERENCES daily_reports(id) ON DELETE CASCADE,
            position       INTEGER NOT NULL DEFAULT 0,
            work_type      VARCHAR(120) NOT NULL,
            task_name      VARCHAR(255) NOT NULL,
            others         VARCHAR(255),
            details        TEXT NOT NULL,
            working_hours  NUMERIC(5,2) NOT NULL
        )
    """)

    # ══════════════════════════════════════════════════════════════════
    # 3. monthly_reports / monthly_report_entries
    # ══════════════════════════════════════════════════════════════════
    op.execute("""
        CREATE TABLE IF NOT EXISTS monthly_reports (
            id               UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            organization_id  UUID NOT NULL REFERENCES organizations(id) ON DELETE CASCADE,
            employee_id      UUID NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            report_month     DATE NOT NULL,
            submitted_at     TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at       TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_monthly_report_employee_month UNIQUE (employee_id, report_month)
        )
    """)
    op.execute(
        "CREATE INDEX IF NOT EXISTS ix_monthly_reports_org_month "
        "ON monthly_reports(organization_id, report_month)"
    )
    op.execute("""
        CREATE TABLE IF NOT EXISTS monthly_report_entries (
            id             UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            report_id      UUID NOT NULL REFERENCES monthly_reports(id) ON DELETE CASCADE,
            position       INTEGER NOT NULL DEFAULT 0,
            task_name      VARCHAR(255) NOT NULL,
            story_point    NUMERIC(6,2) NOT NULL,
            working_hours  NUMERIC(6,2) NOT NULL
        )
    """)

    # ══════════════════════════════════════════════════════════════════
    # 4. threads / thread_participants / chat_messages
    # ══════════════════════════════════════════════════════════════════
    op.execute("""
        CREATE TABLE IF NOT EXISTS threads (
            id               UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            organization_id  UUID NOT NULL REFERENCES organizations(id) ON DELETE CASCADE,
            created_by_id    UUID REFERENCES users(id) ON DELETE SET NULL,
            title            VARCHAR(100),
            is_private       BOOLEAN NOT NULL DEFAULT TRUE,
            last_message_at  TIMESTAMPTZ,
            created_at       TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at       TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute(
        "CREATE INDEX IF NOT EXISTS ix_threads_org_last_message ON threads(organization_id, last_message_at)"
    )
    op.execute("""
        CREATE TABLE IF NOT EXISTS thread_participants (
            id            UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            thread_id     UUID NOT NULL REFERENCES threads(id) ON DELETE CASCADE,
            user_id       UUID NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            last_read_at  TIMESTAMPTZ,
            created_at    TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_thread_participant UNIQUE (thread_id, user_id)
        )
    """)
    op.execute(
        "CREATE INDEX IF NOT EXISTS ix_thread_participants_user ON thread_participants(user_id)"
    )
    op.execute("""
        CREATE TABLE IF NOT EXISTS chat_messages (
            id          UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            thread_id   UUID NOT NULL REFERENCES threads(id) ON DELETE CASCADE,
            sender_id   UUID NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            body        TEXT NOT NULL,
            created_at  TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute(
        "CREATE INDEX IF NOT EXISTS ix_chat_messages_thread_created ON chat_messages(thread_id, created_at)"
    )


def downgrade() -> None:
    _safe_drop_table("chat_messages")
    _safe_drop_table("thread_participants")
    _safe_drop_table("threads")
    _safe_drop_table("monthly_report_entries")
    _safe_drop_table("monthly_reports")
    _safe_drop_table("daily_report_entries")
    _safe_drop_table("daily_reports")
    op.execute("ALTER TABLE employment_details DROP COLUMN IF EXISTS current_project_id")
    _safe_drop_table("projects")
    op.execute("DROP TYPE IF EXISTS project_status")

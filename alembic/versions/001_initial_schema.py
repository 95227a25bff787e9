"""001 – Initial schema: organizations, people, attendance, leave, invoices, notifications.

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-17 18:00:00.000000+06:00
"""

from alembic import op

# Revision identifiers
revision = "001_initial_schema"
down_revision = None
branch_labels = None
depends_on = None


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

# Values match the Python enum member names (SQLAlchemy persists names)
ENUM_TYPES: list[tuple[str, list[str]]] = [
    (
        "user_role",
        ["SUPER_ADMIN", "ORG_OWNER", "ORG_ADMIN", "HR_ADMIN", "MANAGER", "EMPLOYEE"],
    ),
    (
        "employment_status",
        ["ACTIVE", "PROBATION", "INACTIVE", "TERMINATED", "SABBATICAL"],
    ),
    ("gender", ["MALE", "FEMALE", "NON_BINARY", "UNDISCLOSED"]),
    ("work_model", ["ONSITE", "HYBRID", "REMOTE"]),
    ("employment_type", ["FULL_TIME", "PART_TIME", "CONTRACT", "INTERN"]),
    (
        "attendance_status",
        ["PRESENT", "LATE", "HALF_DAY", "ABSENT", "REMOTE", "HOLIDAY"],
    ),
    ("leave_type", ["CASUAL", "SICK", "ANNUAL", "PATERNITY_MATERNITY"]),
    (
        "leave_status",
        ["DRAFT", "PENDING", "PROCESSING", "APPROVED", "DENIED", "CANCELLED"],
    ),
    (
        "invoice_status",
        ["DRAFT", "PENDING_REVIEW", "CHANGES_REQUESTED", "READY_TO_DELIVER"],
    ),
    (
        "notification_type",
        ["ANNOUNCEMENT", "LEAVE", "ATTENDANCE", "REPORT", "INVOICE"],
    ),
    ("notification_status", ["DRAFT", "SCHEDULED", "SENT", "CANCELLED"]),
    ("notification_audience", ["ORGANIZATION", "ROLE", "INDIVIDUAL"]),
]


def _create_enum(name: str, values: list[str]) -> None:
    vals = ", ".join(f"'{v}'" for v in values)
    op.execute(f"CREATE TYPE {name} AS ENUM ({vals})")


def _drop_enum(name: str) -> None:
    op.execute(f"DROP TYPE IF EXISTS {name}")


# ---------------------------------------------------------------------------
# UPGRADE
# ---------------------------------------------------------------------------


def upgrade() -> None:
    # ── Extensions ────────────────────────────────────────────────────────
    op.execute('CREATE EXTENSION IF NOT EXISTS "uuid-ossp"')

    # ── Enum types ────────────────────────────────────────────────────────
    for name, values in ENUM_TYPES:
        _create_enum(name, values)

    # ── 1. organizations ──────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE organizations (
            id          UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            name        VARCHAR(120) NOT NULL,
            domain      VARCHAR(120) UNIQUE,
            timezone    VARCHAR(64) NOT NULL DEFAULT 'Asia/Dhaka',
            locale      VARCHAR(16) NOT NULL DEFAULT 'en-US',
            logo_url    VARCHAR(1024),
            created_at  TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at  TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)

    # ── 2. users ──────────────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE users (
            id               UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            organization_id  UUID REFERENCES organizations(id) ON DELETE SET NULL,
            email            VARCHAR(255) NOT NULL UNIQUE,
            password_hash    VARCHAR(255),
            phone            VARCHAR(32),
            role             user_role NOT NULL DEFAULT 'EMPLOYEE',
            status           employment_status NOT NULL DEFAULT 'INACTIVE',
            last_login_at    TIMESTAMPTZ,
            invited_at       TIMESTAMPTZ,
            invited_by_id    UUID REFERENCES users(id) ON DELETE SET NULL,
            archived_at      TIMESTAMPTZ,
            created_at       TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at       TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX idx_users_organization ON users(organization_id)")

    # ── 3. employee_profiles ──────────────────────────────────────────────
    op.execute("""
        CREATE TABLE employee_profiles (
            id                 UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            user_id            UUID NOT NULL UNIQUE REFERENCES users(id) ON DELETE CASCADE,
            first_name         VARCHAR(100) NOT NULL DEFAULT '',
            last_name          VARCHAR(100) NOT NULL DEFAULT '',
            preferred_name     VARCHAR(100),
            gender             gender,
            date_of_birth      DATE,
            nationality        VARCHAR(100),
            current_address    TEXT,
            permanent_address  TEXT,
            work_model         work_model,
            personal_email     VARCHAR(255),
            work_email         VARCHAR(255),
            personal_phone     VARCHAR(32),
            work_phone         VARCHAR(32),
            profile_photo_url  VARCHAR(1024),
            bio                TEXT,
            created_at         TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at         TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)

    # ── 4. departments ────────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE departments (
            id               UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            organization_id  UUID NOT NULL REFERENCES organizations(id) ON DELETE CASCADE,
            name             VARCHAR(120) NOT NULL,
            code             VARCHAR(24),
            description      TEXT,
            head_id          UUID REFERENCES users(id) ON DELETE SET NULL,
            created_at       TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at       TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_department_org_name UNIQUE (organization_id, name),
            CONSTRAINT uq_department_org_code UNIQUE (organization_id, code)
        )
    """)

    # ── 5. teams / team_leads ─────────────────────────────────────────────
    op.execute("""
        CREATE TABLE teams (
            id               UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            organization_id  UUID NOT NULL REFERENCES organizations(id) ON DELETE CASCADE,
            department_id    UUID NOT NULL REFERENCES departments(id) ON DELETE CASCADE,
            name             VARCHAR(120) NOT NULL,
            description      TEXT,
            created_at       TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at       TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_team_org_name UNIQUE (organization_id, name)
        )
    """)
    op.execute("""
        CREATE TABLE team_leads (
            id          UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            team_id     UUID NOT NULL REFERENCES teams(id) ON DELETE CASCADE,
            lead_id     UUID NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            created_at  TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_team_lead UNIQUE (team_id, lead_id)
        )
    """)

    # ── 6. employment_details ─────────────────────────────────────────────
    op.execute("""
        CREATE TABLE employment_details (
            id                      UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            user_id                 UUID NOT NULL UNIQUE REFERENCES users(id) ON DELETE CASCADE,
            organization_id         UUID REFERENCES organizations(id) ON DELETE SET NULL,
            employee_code           VARCHAR(32),
            designation             VARCHAR(120) NOT NULL DEFAULT '',
            employment_type         employment_type NOT NULL DEFAULT 'FULL_TIME',
            status                  employment_status NOT NULL DEFAULT 'ACTIVE',
            start_date              DATE NOT NULL DEFAULT CURRENT_DATE,
            end_date                DATE,
            department_id           UUID REFERENCES departments(id) ON DELETE SET NULL,
            team_id                 UUID REFERENCES teams(id) ON DELETE SET NULL,
            reporting_manager_id    UUID REFERENCES users(id) ON DELETE SET NULL,
            primary_location        VARCHAR(120),
            is_team_lead            BOOLEAN NOT NULL DEFAULT FALSE,
            casual_leave_balance    NUMERIC(5,2) NOT NULL DEFAULT 10,
            sick_leave_balance      NUMERIC(5,2) NOT NULL DEFAULT 7,
            annual_leave_balance    NUMERIC(5,2) NOT NULL DEFAULT 14,
            parental_leave_balance  NUMERIC(5,2) NOT NULL DEFAULT 30,
            gross_salary            NUMERIC(12,2),
            income_tax              NUMERIC(12,2),
            current_project_note    TEXT,
            created_at              TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at              TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_employment_org_code UNIQUE (organization_id, employee_code)
        )
    """)
    op.execute("CREATE INDEX idx_employment_department ON employment_details(department_id)")
    op.execute("CREATE INDEX idx_employment_team       ON employment_details(team_id)")

    # ── 7. emergency_contacts / employee_bank_accounts ────────────────────
    op.execute("""
        CREATE TABLE emergency_contacts (
            id               UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            user_id          UUID NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            name             VARCHAR(120) NOT NULL,
            relationship     VARCHAR(64) NOT NULL,
            phone            VARCHAR(32) NOT NULL DEFAULT '',
            alternate_phone  VARCHAR(32),
            created_at       TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at       TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("""
        CREATE TABLE employee_bank_accounts (
            id              UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            user_id         UUID NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            bank_name       VARCHAR(120) NOT NULL,
            account_holder  VARCHAR(120) NOT NULL,
            account_number  VARCHAR(64) NOT NULL,
            branch          VARCHAR(120),
            swift_code      VARCHAR(32),
            tax_id          VARCHAR(64),
            created_at      TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at      TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)

    # ── 8. user_sessions / password_reset_tokens / invitation_tokens ──────
    op.execute("""
        CREATE TABLE user_sessions (
            id          UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            user_id     UUID NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            token_hash  VARCHAR(128) NOT NULL UNIQUE,
            ip_address  INET,
            user_agent  TEXT,
            expires_at  TIMESTAMPTZ NOT NULL,
            is_revoked  BOOLEAN NOT NULL DEFAULT FALSE,
            created_at  TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX ix_user_sessions_user_id ON user_sessions(user_id)")
    op.execute("CREATE INDEX idx_user_sessions_expires ON user_sessions(expires_at)")

    for table in ("password_reset_tokens", "invitation_tokens"):
        op.execute(f"""
            CREATE TABLE {table} (
                id          UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
                user_id     UUID NOT NULL REFERENCES users(id) ON DELETE CASCADE,
                token_hash  VARCHAR(128) NOT NULL UNIQUE,
                expires_at  TIMESTAMPTZ NOT NULL,
                used_at     TIMESTAMPTZ,
                created_at  TIMESTAMPTZ NOT NULL DEFAULT NOW()
            )
        """)

    # ── 9. attendance_records ─────────────────────────────────────────────
    op.execute("""
        CREATE TABLE attendance_records (
            id                   UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            employee_id          UUID NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            attendance_date      DATE NOT NULL,
            check_in_at          TIMESTAMPTZ,
            check_out_at         TIMESTAMPTZ,
            total_work_seconds   INTEGER NOT NULL DEFAULT 0,
            total_break_seconds  INTEGER NOT NULL DEFAULT 0,
            status               attendance_status NOT NULL DEFAULT 'PRESENT',
            note                 TEXT,
            location             VARCHAR(64),
            source               VARCHAR(32),
            created_at           TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at           TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_attendance_employee_date UNIQUE (employee_id, attendance_date)
        )
    """)
    op.execute("CREATE INDEX ix_attendance_date ON attendance_records(attendance_date)")

    # ── 10. holidays / work_policies ──────────────────────────────────────
    op.execute("""
        CREATE TABLE holidays (
            id               UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            organization_id  UUID NOT NULL REFERENCES organizations(id) ON DELETE CASCADE,
            title            VARCHAR(120) NOT NULL,
            description      VARCHAR(240),
            date             DATE NOT NULL,
            created_at       TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at       TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_holiday_org_date UNIQUE (organization_id, date)
        )
    """)
    op.execute("""
        CREATE TABLE work_policies (
            id                 UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            organization_id    UUID NOT NULL UNIQUE REFERENCES organizations(id) ON DELETE CASCADE,
            onsite_start_time  VARCHAR(5) NOT NULL DEFAULT '09:00',
            onsite_end_time    VARCHAR(5) NOT NULL DEFAULT '18:00',
            remote_start_time  VARCHAR(5) NOT NULL DEFAULT '08:00',
            remote_end_time    VARCHAR(5) NOT NULL DEFAULT '17:00',
            working_days       JSONB NOT NULL
                DEFAULT '["MONDAY", "TUESDAY", "WEDNESDAY", "THURSDAY", "FRIDAY"]',
            weekend_days       JSONB NOT NULL DEFAULT '["SATURDAY", "SUNDAY"]',
            created_at         TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at         TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)

    # ── 11. leave_requests ────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE leave_requests (
            id           UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            employee_id  UUID NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            leave_type   leave_type NOT NULL,
            start_date   DATE NOT NULL,
            end_date     DATE NOT NULL,
            total_days   NUMERIC(5,2) NOT NULL,
            status       leave_status NOT NULL DEFAULT 'PENDING',
            reason       TEXT,
            note         TEXT,
            attachments  JSONB,
            reviewer_id  UUID REFERENCES users(id) ON DELETE SET NULL,
            reviewed_at  TIMESTAMPTZ,
            created_at   TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at   TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CHECK (end_date >= start_date)
        )
    """)
    op.execute("CREATE INDEX ix_leave_requests_employee ON leave_requests(employee_id)")
    op.execute("CREATE INDEX ix_leave_requests_status   ON leave_requests(status)")

    # ── 12. invoices / invoice_items ──────────────────────────────────────
    op.execute("""
        CREATE TABLE invoices (
            id               UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            organization_id  UUID NOT NULL REFERENCES organizations(id) ON DELETE CASCADE,
            employee_id      UUID NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            created_by_id    UUID REFERENCES users(id) ON DELETE SET NULL,
            title            VARCHAR(160) NOT NULL,
            period_month     SMALLINT NOT NULL CHECK (period_month BETWEEN 1 AND 12),
            period_year      SMALLINT NOT NULL,
            due_date         DATE,
            currency         VARCHAR(12) NOT NULL DEFAULT 'USD',
            subtotal         NUMERIC(12,2) NOT NULL DEFAULT 0,
            tax              NUMERIC(12,2) NOT NULL DEFAULT 0,
            total            NUMERIC(12,2) NOT NULL DEFAULT 0,
            notes            TEXT,
            status           invoice_status NOT NULL DEFAULT 'DRAFT',
            sent_at          TIMESTAMPTZ,
            confirmed_at     TIMESTAMPTZ,
            ready_at         TIMESTAMPTZ,
            review_comment   TEXT,
            reviewed_at      TIMESTAMPTZ,
            reviewed_by_id   UUID REFERENCES users(id) ON DELETE SET NULL,
            created_at       TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at       TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX ix_invoices_employee   ON invoices(employee_id)")
    op.execute("CREATE INDEX ix_invoices_org_status ON invoices(organization_id, status)")
    op.execute("""
        CREATE TABLE invoice_items (
            id           UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            invoice_id   UUID NOT NULL REFERENCES invoices(id) ON DELETE CASCADE,
            position     INTEGER NOT NULL DEFAULT 0,
            description  VARCHAR(255) NOT NULL,
            quantity     INTEGER NOT NULL DEFAULT 1 CHECK (quantity >= 1),
            unit_price   NUMERIC(12,2) NOT NULL,
            amount       NUMERIC(12,2) NOT NULL,
            created_at   TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)

    # ── 13. notifications / notification_receipts ─────────────────────────
    op.execute("""
        CREATE TABLE notifications (
            id               UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            organization_id  UUID NOT NULL REFERENCES organizations(id) ON DELETE CASCADE,
            sender_id        UUID REFERENCES users(id) ON DELETE SET NULL,
            title            VARCHAR(160) NOT NULL,
            body             TEXT NOT NULL,
            type             notification_type NOT NULL DEFAULT 'ANNOUNCEMENT',
            audience         notification_audience NOT NULL DEFAULT 'ORGANIZATION',
            target_roles     JSONB NOT NULL DEFAULT '[]',
            target_user_id   UUID REFERENCES users(id) ON DELETE CASCADE,
            status           notification_status NOT NULL DEFAULT 'DRAFT',
            action_url       VARCHAR(512),
            metadata         JSONB,
            scheduled_at     TIMESTAMPTZ,
            sent_at          TIMESTAMPTZ,
            created_at       TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at       TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX ix_notifications_org_status  ON notifications(organization_id, status)")
    op.execute("CREATE INDEX ix_notifications_target_user ON notifications(target_user_id)")
    op.execute("""
        CREATE TABLE notification_receipts (
            id               UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            notification_id  UUID NOT NULL REFERENCES notifications(id) ON DELETE CASCADE,
            user_id          UUID NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            is_seen          BOOLEAN NOT NULL DEFAULT FALSE,
            seen_at          TIMESTAMPTZ,
            created_at       TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_notification_receipt UNIQUE (notification_id, user_id)
        )
    """)

    # ── 14. audit_trail ───────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE audit_trail (
            id           UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            actor_id     UUID REFERENCES users(id) ON DELETE SET NULL,
            action       VARCHAR(50) NOT NULL,
            entity_type  VARCHAR(50) NOT NULL,
            entity_id    UUID NOT NULL,
            old_values   JSONB,
            new_values   JSONB,
            ip_address   INET,
            user_agent   TEXT,
            created_at   TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX ix_audit_trail_actor_id ON audit_trail(actor_id)")
    op.execute("CREATE INDEX ix_audit_trail_entity   ON audit_trail(entity_type, entity_id)")
    op.execute("CREATE INDEX ix_audit_trail_action   ON audit_trail(action)")


# ---------------------------------------------------------------------------
# DOWNGRADE
# ---------------------------------------------------------------------------


def downgrade() -> None:
    # Drop tables in reverse dependency order
    tables = [
        "audit_trail",
        "notification_receipts",
        "notifications",
        "invoice_items",
        "invoices",
        "leave_requests",
        "work_policies",
        "holidays",
        "attendance_records",
        "invitation_tokens",
        "password_reset_tokens",
        "user_sessions",
        "employee_bank_accounts",
        "emergency_contacts",
        "employment_details",
        "team_leads",
        "teams",
        "departments",
        "employee_profiles",
        "users",
        "organizations",
    ]
    for t in tables:
        op.execute(f"DROP TABLE IF EXISTS {t} CASCADE")

    # Drop enum types
    for name, _ in reversed(ENUM_TYPES):
        _drop_enum(name)

    op.execute('DROP EXTENSION IF EXISTS "uuid-ossp"')

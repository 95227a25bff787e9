#!/usr/bin/env python3
"""Bootstrap a workspace — create the first organization and its owner account.

Run once against an empty database (after ``alembic upgrade head``):

    python scripts/bootstrap_workspace.py \\
        --organization "NDI Labs" --domain ndi.example.com \\
        --email owner@ndi.example.com --full-name "Farhana Rahman" \\
        --employee-code NDI-001 --phone 01700000000

The password is read from --password or, when omitted, from the
BOOTSTRAP_PASSWORD environment variable (.env is loaded first).

Exit codes:
    0 = organization and owner created
    1 = invalid input or the account/organization already exists
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys

from dotenv import load_dotenv

load_dotenv()

from pydantic import ValidationError  # noqa: E402
from sqlalchemy import select, update  # noqa: E402

from ndi_hr.auth.schemas import SignupRequest  # noqa: E402
from ndi_hr.auth.service import register_user  # noqa: E402
from ndi_hr.common.constants import DEFAULT_TIMEZONE, EmploymentStatus, UserRole  # noqa: E402
from ndi_hr.common.exceptions import AppException  # noqa: E402
from ndi_hr.core_hr.models import EmploymentDetail, Organization  # noqa: E402
from ndi_hr.database import engine, session_scope  # noqa: E402

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("bootstrap_workspace")

OWNER_ROLES = {
    "ORG_OWNER": UserRole.ORG_OWNER,
    "SUPER_ADMIN": UserRole.SUPER_ADMIN,
}


async def bootstrap(args: argparse.Namespace, password: str) -> None:
    domain = args.domain.strip().lower()
    signup = SignupRequest(
        full_name=args.full_name,
        email=args.email,
        password=password,
        employee_code=args.employee_code,
        phone=args.phone,
        designation=args.designation,
        organization_domain=domain,
    )

    async with session_scope() as db:
        existing = await db.execute(select(Organization).where(Organization.domain == domain))
        organization = existing.scalars().first()
        if organization is None:
            organization = Organization(
                name=args.organization.strip(),
                domain=domain,
                timezone=args.timezone,
            )
            db.add(organization)
            await db.flush()
            logger.info("Created organization %s (%s)", organization.name, organization.id)
        else:
            logger.info("Organization %s already exists, attaching owner", organization.name)

        user, _ = await register_user(db, signup)
        user.role = OWNER_ROLES[args.role]
        user.status = EmploymentStatus.ACTIVE
        await db.execute(
            update(EmploymentDetail)
            .where(EmploymentDetail.user_id == user.id)
            .values(status=EmploymentStatus.ACTIVE),
        )
        logger.info("Created %s account %s (%s)", user.role.value, user.email, user.id)

    await engine.dispose()


def main():
    parser = argparse.ArgumentParser(description="Create the first organization and its owner")
    parser.add_argument("--organization", required=True, help="Organization display name")
    parser.add_argument("--domain", required=True, help="Organization domain, e.g. ndi.example.com")
    parser.add_argument("--timezone", default=DEFAULT_TIMEZONE,
                        help=f"IANA timezone (default: {DEFAULT_TIMEZONE})")
    parser.add_argument("--email", required=True, help="Owner login email")
    parser.add_argument("--full-name", required=True, help="Owner full name")
    parser.add_argument("--employee-code", required=True, help="Owner employee ID")
    parser.add_argument("--phone", required=True, help="Owner phone number")
    parser.add_argument("--designation", default="Founder", help="Owner designation")
    parser.add_argument("--role", choices=sorted(OWNER_ROLES), default="ORG_OWNER",
                        help="Role for the account (default: ORG_OWNER)")
    parser.add_argument("--password", help="Owner password (or BOOTSTRAP_PASSWORD)")
    args = parser.parse_args()

    password = args.password or os.environ.get("BOOTSTRAP_PASSWORD")
    if not password:
        logger.error("No password given: pass --password or set BOOTSTRAP_PASSWORD")
        sys.exit(1)

    try:
        asyncio.run(bootstrap(args, password))
    except ValidationError as exc:
        logger.error("Invalid input:\n%s", exc)
        sys.exit(1)
    except AppException as exc:
        logger.error("Bootstrap failed: %s", exc.detail)
        sys.exit(1)


if __name__ == "__main__":
    main()

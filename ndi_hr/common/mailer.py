"""Outbound mail over SMTP: invitation and password-reset messages.

Delivery is best effort. Without ``SMTP_HOST`` messages are skipped with a
warning; transport failures are logged and reported as ``False`` so the
request that triggered them still succeeds (the link is also returned or
logged by the caller).
"""

from __future__ import annotations

import logging
import smtplib
from datetime import datetime
from email.message import EmailMessage
from email.utils import formataddr
from typing import Optional

from starlette.concurrency import run_in_threadpool

from ndi_hr.common.constants import ROLE_LABELS, UserRole
from ndi_hr.common.formatting import format_short_date
from ndi_hr.config import settings

logger = logging.getLogger(__name__)

SMTP_TIMEOUT_SECONDS = 10


def mail_configured() -> bool:
    return bool(settings.SMTP_HOST and (settings.SMTP_FROM or settings.SMTP_USERNAME))


def _deliver(message: EmailMessage) -> None:
    with smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT, timeout=SMTP_TIMEOUT_SECONDS) as smtp:
        if settings.SMTP_USE_TLS:
            smtp.starttls()
        if settings.SMTP_USERNAME:
            smtp.login(settings.SMTP_USERNAME, settings.SMTP_PASSWORD)
        smtp.send_message(message)


def build_message(to: str, subject: str, text: str, *, sender_name: Optional[str] = None) -> EmailMessage:
    address = settings.SMTP_FROM or settings.SMTP_USERNAME
    message = EmailMessage()
    message["From"] = formataddr((sender_name, address)) if sender_name else address
    message["To"] = to
    message["Subject"] = subject
    message.set_content(text)
    return message


async def send_email(to: str, subject: str, text: str, *, sender_name: Optional[str] = None) -> bool:
    if not mail_configured():
        logger.warning("SMTP is not configured; skipping %r email to %s", subject, to)
        return False
    message = build_message(to, subject, text, sender_name=sender_name)
    try:
        await run_in_threadpool(_deliver, message)
    except (smtplib.SMTPException, OSError):
        logger.exception("Failed to send %r email to %s", subject, to)
        return False
    logger.info("Sent %r email to %s", subject, to)
    return True


# ── Templates ───────────────────────────────────────────────────────

def invitation_email(
    *,
    organization_name: str,
    role: UserRole,
    invite_url: str,
    expires_at: datetime,
    recipient_name: Optional[str] = None,
    sender_name: Optional[str] = None,
) -> tuple[str, str]:
    """``(subject, body)`` for a new-account invitation."""
    greeting = f"Hi {recipient_name}," if recipient_name else "Hi there,"
    sender = (sender_name or "").strip() or "HR team"
    body = "\n".join([
        greeting,
        "",
        f"{sender} invited you to join {organization_name} on HR as {ROLE_LABELS[role]}.",
        "Use the secure link below to finish setting up your account and choose a password.",
        "",
        invite_url,
        "",
        f"For security, your invitation link will expire on {format_short_date(expires_at.date())}.",
        "",
        "See you inside,",
        sender,
    ])
    return f"You're invited to {organization_name} on HR", body


def password_reset_email(*, reset_url: str, ttl_minutes: int, recipient_name: Optional[str] = None) -> tuple[str, str]:
    salutation = f"Dear {recipient_name}," if recipient_name else "Dear team member,"
    body = "\n".join([
        salutation,
        "",
        "You recently requested assistance resetting the password for your HR account.",
        f"Use the secure link below to create a new password. The link will remain active for {ttl_minutes} minutes.",
        "",
        reset_url,
        "",
        "If you did not submit this request, please disregard this email or notify your workspace administrator.",
        "",
        "Best regards,",
        "HR Security Team",
    ])
    return "HR password reset instructions", body

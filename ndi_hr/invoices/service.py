"""Invoice service layer.

Employees see their own invoices once HR sends them. Opening one requires
re-entering the account password, which yields a short-lived unlock token
scoped to that invoice; confirming or requesting changes needs the same token.

HR drafts invoices from line items (totals are always recomputed server-side),
edits them while DRAFT or CHANGES_REQUESTED, and sends them for review.
"""

from __future__ import annotations

import logging
import uuid
from datetime import timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from fastapi import BackgroundTasks
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ndi_hr.common.audit import create_audit_entry
from ndi_hr.common.constants import (
    EDITABLE_INVOICE_STATUSES,
    INVOICE_STATUS_LABELS,
    InvoiceStatus,
    NotificationAudience,
    NotificationType,
)
from ndi_hr.common.exceptions import BadRequestException, NotFoundException, UnauthorizedException
from ndi_hr.common.formatting import decimal_to_float, format_currency, month_label, utcnow
from ndi_hr.common.security import (
    INVOICE_UNLOCK_PURPOSE,
    create_signed_token,
    verify_password,
    verify_signed_token,
)
from ndi_hr.config import settings
from ndi_hr.core_hr.models import User
from ndi_hr.invoices.models import Invoice, InvoiceItem
from ndi_hr.invoices.schemas import (
    EmployeeInvoiceListItem,
    EmployeeInvoiceListResponse,
    HrInvoiceDashboardResponse,
    HrInvoiceEmployeeOption,
    HrInvoiceListItem,
    InvoiceBankAccount,
    InvoiceDetail,
    InvoiceDetailResponse,
    InvoiceEmployee,
    InvoiceItemInput,
    InvoiceLineItem,
    InvoicePerson,
    InvoiceReviewRequest,
    InvoiceTimestamps,
    InvoiceUnlockResponse,
    InvoiceUpsertRequest,
)
from ndi_hr.notifications.service import NotificationService

logger = logging.getLogger(__name__)

UNLOCK_TOKEN_TTL = timedelta(minutes=settings.INVOICE_UNLOCK_TTL_MINUTES)
CENT = Decimal("0.01")
FALLBACK_NAME = "Team member"


# ── Mapping ─────────────────────────────────────────────────────────

def period_label(month: int, year: int) -> str:
    return month_label(year, min(12, max(1, month)))


def _name(user: Optional[User]) -> str:
    if user is None or user.profile is None:
        return FALLBACK_NAME
    name = user.display_name
    return FALLBACK_NAME if name == user.email else name


def _person(user: Optional[User]) -> Optional[InvoicePerson]:
    if user is None:
        return None
    return InvoicePerson(id=user.id, name=_name(user), email=user.email)


def to_employee_summary(invoice: Invoice) -> EmployeeInvoiceListItem:
    total = decimal_to_float(invoice.total)
    return EmployeeInvoiceListItem(
        id=invoice.id,
        title=invoice.title,
        period_label=period_label(invoice.period_month, invoice.period_year),
        due_date=invoice.due_date,
        status=invoice.status,
        status_label=INVOICE_STATUS_LABELS[invoice.status],
        currency=invoice.currency,
        total=total,
        total_formatted=format_currency(total, invoice.currency),
        updated_at=invoice.updated_at,
        is_actionable=invoice.status == InvoiceStatus.PENDING_REVIEW,
    )


def to_hr_summary(invoice: Invoice) -> HrInvoiceListItem:
    total = decimal_to_float(invoice.total)
    return HrInvoiceListItem(
        id=invoice.id,
        title=invoice.title,
        employee_id=invoice.employee_id,
        employee_name=_name(invoice.employee),
        period_month=invoice.period_month,
        period_year=invoice.period_year,
        period_label=period_label(invoice.period_month, invoice.period_year),
        due_date=invoice.due_date,
        status=invoice.status,
        status_label=INVOICE_STATUS_LABELS[invoice.status],
        subtotal=decimal_to_float(invoice.subtotal),
        tax=decimal_to_float(invoice.tax),
        total=total,
        currency=invoice.currency,
        total_formatted=format_currency(total, invoice.currency),
        updated_at=invoice.updated_at,
        can_send=invoice.status in EDITABLE_INVOICE_STATUSES,
        review_comment=invoice.review_comment,
        review_requested_at=invoice.reviewed_at,
    )


def to_detail(invoice: Invoice) -> InvoiceDetail:
    employee = invoice.employee
    profile = employee.profile
    employment = employee.employment
    bank = employee.bank_accounts[0] if employee.bank_accounts else None
    subtotal = decimal_to_float(invoice.subtotal)
    tax = decimal_to_float(invoice.tax)
    total = decimal_to_float(invoice.total)
    awaiting_review = invoice.status == InvoiceStatus.PENDING_REVIEW

    return InvoiceDetail(
        id=invoice.id,
        title=invoice.title,
        period_month=invoice.period_month,
        period_year=invoice.period_year,
        period_label=period_label(invoice.period_month, invoice.period_year),
        due_date=invoice.due_date,
        currency=invoice.currency,
        status=invoice.status,
        status_label=INVOICE_STATUS_LABELS[invoice.status],
        subtotal=subtotal,
        tax=tax,
        total=total,
        subtotal_formatted=format_currency(subtotal, invoice.currency),
        tax_formatted=format_currency(tax, invoice.currency),
        total_formatted=format_currency(total, invoice.currency),
        notes=invoice.notes,
        employee=InvoiceEmployee(
            id=employee.id,
            name=_name(employee),
            email=employee.email,
            phone=(profile.work_phone if profile else None) or employee.phone,
            address=profile.current_address if profile else None,
            employee_code=employment.employee_code if employment else None,
        ),
        created_by=_person(invoice.created_by),
        timestamps=InvoiceTimestamps(
            created_at=invoice.created_at,
            sent_at=invoice.sent_at,
            confirmed_at=invoice.confirmed_at,
            ready_at=invoice.ready_at,
        ),
        review_request=InvoiceReviewRequest(
            comment=invoice.review_comment,
            requested_at=invoice.reviewed_at,
            requested_by=_person(invoice.reviewed_by),
        ),
        bank_account=InvoiceBankAccount(
            account_holder=bank.account_holder,
            bank_name=bank.bank_name,
            account_number=bank.account_number,
            branch=bank.branch,
            swift_code=bank.swift_code,
        ) if bank else None,
        items=[
            InvoiceLineItem(
                id=item.id,
                description=item.description,
                quantity=item.quantity,
                unit_price=decimal_to_float(item.unit_price),
                amount=decimal_to_float(item.amount),
            )
            for item in invoice.items
        ],
        can_confirm=awaiting_review,
        can_request_changes=awaiting_review,
    )


async def load_invoice(db: AsyncSession, invoice_id: uuid.UUID) -> Invoice:
    """Fetch an invoice with fresh relationships (after inserts or item swaps)."""
    result = await db.execute(
        select(Invoice)
        .where(Invoice.id == invoice_id)
        .execution_options(populate_existing=True),
    )
    return result.scalar_one()


# ── Totals ──────────────────────────────────────────────────────────

def sanitize_items(items: list[InvoiceItemInput]) -> list[tuple[str, int, Decimal]]:
    """Drop blank or zero-priced rows; returns ``(description, quantity, unit_price)``."""
    cleaned = []
    for item in items:
        description = item.description.strip()
        unit_price = Decimal(str(item.unit_price)).quantize(CENT, rounding=ROUND_HALF_UP)
        if len(description) > 1 and unit_price != 0:
            cleaned.append((description, max(1, int(item.quantity)), unit_price))
    return cleaned


def compute_totals(
    items: list[tuple[str, int, Decimal]], tax_rate: float,
) -> tuple[Decimal, Decimal, Decimal]:
    subtotal = sum((price * quantity for _, quantity, price in items), Decimal("0"))
    rate = max(Decimal("0"), Decimal(str(tax_rate)))
    tax = (subtotal * rate / Decimal("100")).quantize(CENT, rounding=ROUND_HALF_UP)
    subtotal = subtotal.quantize(CENT, rounding=ROUND_HALF_UP)
    return subtotal, tax, subtotal + tax


# ═════════════════════════════════════════════════════════════════════
# InvoiceService (employee)
# ═════════════════════════════════════════════════════════════════════


class InvoiceService:
    """Employee-side invoice review behind a password confirmation."""

    @staticmethod
    async def _get_own(db: AsyncSession, user: User, invoice_id: uuid.UUID) -> Invoice:
        result = await db.execute(
            select(Invoice).where(Invoice.id == invoice_id, Invoice.employee_id == user.id),
        )
        invoice = result.scalar_one_or_none()
        if invoice is None:
            raise NotFoundException("Invoice", invoice_id, detail="Invoice not found.")
        return invoice

    @staticmethod
    def _check_token(user: User, invoice_id: uuid.UUID, token: str) -> None:
        claims = verify_signed_token(token, INVOICE_UNLOCK_PURPOSE)
        if not claims or not claims.get("invoiceId") or not claims.get("userId"):
            raise UnauthorizedException(
                detail="Your password confirmation expired. Please try again.",
            )
        if claims["userId"] != str(user.id) or claims["invoiceId"] != str(invoice_id):
            raise UnauthorizedException(detail="Access denied.")

    @staticmethod
    async def list_invoices(db: AsyncSession, user: User) -> EmployeeInvoiceListResponse:
        result = await db.execute(
            select(Invoice)
            .where(Invoice.employee_id == user.id, Invoice.status != InvoiceStatus.DRAFT)
            .order_by(Invoice.updated_at.desc()),
        )
        return EmployeeInvoiceListResponse(
            invoices=[to_employee_summary(i) for i in result.scalars().all()],
        )

    @staticmethod
    async def unlock(
        db: AsyncSession, user: User, invoice_id: uuid.UUID, password: str,
    ) -> InvoiceUnlockResponse:
        invoice = await InvoiceService._get_own(db, user, invoice_id)
        if invoice.status == InvoiceStatus.DRAFT:
            raise BadRequestException(detail="This invoice is still being edited by HR.")
        if not user.password_hash:
            raise BadRequestException(detail="Your account is missing a password. Contact HR.")
        if not verify_password(password, user.password_hash):
            raise UnauthorizedException(detail="Incorrect password.")

        token = create_signed_token(
            INVOICE_UNLOCK_PURPOSE,
            {"invoiceId": str(invoice.id), "userId": str(user.id)},
            UNLOCK_TOKEN_TTL,
        )
        return InvoiceUnlockResponse(token=token)

    @staticmethod
    async def detail(
        db: AsyncSession, user: User, invoice_id: uuid.UUID, token: str,
    ) -> InvoiceDetailResponse:
        InvoiceService._check_token(user, invoice_id, token)
        invoice = await InvoiceService._get_own(db, user, invoice_id)
        return InvoiceDetailResponse(invoice=to_detail(invoice))

    @staticmethod
    async def confirm(
        db: AsyncSession, user: User, invoice_id: uuid.UUID, token: str,
    ) -> InvoiceDetailResponse:
        InvoiceService._check_token(user, invoice_id, token)
        invoice = await InvoiceService._get_own(db, user, invoice_id)
        if invoice.status != InvoiceStatus.PENDING_REVIEW:
            raise BadRequestException(detail="This invoice is no longer awaiting confirmation.")

        now = utcnow()
        invoice.status = InvoiceStatus.READY_TO_DELIVER
        invoice.confirmed_at = now
        invoice.ready_at = now
        await db.flush()
        logger.info("Invoice %s confirmed by %s", invoice.id, user.id)
        return InvoiceDetailResponse(invoice=to_detail(await load_invoice(db, invoice.id)))

    @staticmethod
    async def request_review(
        db: AsyncSession, user: User, invoice_id: uuid.UUID, token: str, comment: str,
    ) -> InvoiceDetailResponse:
        InvoiceService._check_token(user, invoice_id, token)
        invoice = await InvoiceService._get_own(db, user, invoice_id)
        if invoice.status != InvoiceStatus.PENDING_REVIEW:
            raise BadRequestException(
                detail="You can only request changes on invoices awaiting review.",
            )
        cleaned = (comment or "").strip()
        if len(cleaned) < 5:
            raise BadRequestException(detail="Provide a comment with at least 5 characters.")

        invoice.status = InvoiceStatus.CHANGES_REQUESTED
        invoice.review_comment = cleaned
        invoice.reviewed_at = utcnow()
        invoice.reviewed_by_id = user.id
        await db.flush()
        logger.info("Changes requested on invoice %s by %s", invoice.id, user.id)
        return InvoiceDetailResponse(invoice=to_detail(await load_invoice(db, invoice.id)))


# ═════════════════════════════════════════════════════════════════════
# HRInvoiceService
# ═════════════════════════════════════════════════════════════════════


class HRInvoiceService:
    """Invoice drafting and dispatch for HR access roles."""

    @staticmethod
    async def _get(db: AsyncSession, viewer: User, invoice_id: uuid.UUID) -> Invoice:
        result = await db.execute(
            select(Invoice).where(
                Invoice.id == invoice_id,
                Invoice.organization_id == viewer.organization_id,
            ),
        )
        invoice = result.scalar_one_or_none()
        if invoice is None:
            raise NotFoundException("Invoice", invoice_id, detail="Invoice not found.")
        return invoice

    @staticmethod
    async def _get_employee(db: AsyncSession, viewer: User, employee_id: uuid.UUID) -> User:
        result = await db.execute(
            select(User).where(
                User.id == employee_id,
                User.organization_id == viewer.organization_id,
            ),
        )
        employee = result.scalar_one_or_none()
        if employee is None:
            raise NotFoundException("User", employee_id, detail="Employee not found.")
        return employee

    @staticmethod
    async def dashboard(db: AsyncSession, viewer: User) -> HrInvoiceDashboardResponse:
        invoices = (await db.execute(
            select(Invoice)
            .where(Invoice.organization_id == viewer.organization_id)
            .order_by(Invoice.updated_at.desc()),
        )).scalars().all()
        employees = (await db.execute(
            select(User)
            .where(User.organization_id == viewer.organization_id)
            .order_by(User.created_at.asc()),
        )).scalars().all()

        options = []
        for employee in employees:
            employment = employee.employment
            options.append(HrInvoiceEmployeeOption(
                id=employee.id,
                name=_name(employee),
                employee_code=employment.employee_code if employment else None,
                designation=(employment.designation or None) if employment else None,
                gross_salary=decimal_to_float(employment.gross_salary if employment else None),
                income_tax=decimal_to_float(employment.income_tax if employment else None),
            ))

        return HrInvoiceDashboardResponse(
            invoices=[to_hr_summary(i) for i in invoices],
            employee_options=options,
            pending_review=sum(1 for i in invoices if i.status == InvoiceStatus.PENDING_REVIEW),
        )

    @staticmethod
    async def detail(db: AsyncSession, viewer: User, invoice_id: uuid.UUID) -> InvoiceDetailResponse:
        invoice = await HRInvoiceService._get(db, viewer, invoice_id)
        return InvoiceDetailResponse(invoice=to_detail(invoice))

    @staticmethod
    def _apply(invoice: Invoice, body: InvoiceUpsertRequest) -> None:
        items = sanitize_items(body.items)
        if not items:
            raise BadRequestException(detail="Add at least one line item.")
        subtotal, tax, total = compute_totals(items, body.tax_rate)

        invoice.employee_id = body.employee_id
        invoice.title = body.title
        invoice.period_month = body.period_month
        invoice.period_year = body.period_year
        invoice.due_date = body.due_date
        invoice.currency = body.currency
        invoice.subtotal = subtotal
        invoice.tax = tax
        invoice.total = total
        invoice.notes = body.notes
        invoice.items = [
            InvoiceItem(
                position=index,
                description=description,
                quantity=quantity,
                unit_price=price,
                amount=(price * quantity).quantize(CENT, rounding=ROUND_HALF_UP),
            )
            for index, (description, quantity, price) in enumerate(items)
        ]

    @staticmethod
    async def create(db: AsyncSession, viewer: User, body: InvoiceUpsertRequest) -> HrInvoiceListItem:
        await HRInvoiceService._get_employee(db, viewer, body.employee_id)
        invoice = Invoice(
            organization_id=viewer.organization_id,
            created_by_id=viewer.id,
            status=InvoiceStatus.DRAFT,
        )
        HRInvoiceService._apply(invoice, body)
        db.add(invoice)
        await db.flush()
        logger.info("Invoice %s drafted for %s by %s", invoice.id, body.employee_id, viewer.id)
        return to_hr_summary(await load_invoice(db, invoice.id))

    @staticmethod
    async def update(
        db: AsyncSession, viewer: User, invoice_id: uuid.UUID, body: InvoiceUpsertRequest,
    ) -> HrInvoiceListItem:
        invoice = await HRInvoiceService._get(db, viewer, invoice_id)
        if invoice.status not in EDITABLE_INVOICE_STATUSES:
            raise BadRequestException(
                detail="Only draft or change-requested invoices can be edited.",
            )
        await HRInvoiceService._get_employee(db, viewer, body.employee_id)
        HRInvoiceService._apply(invoice, body)
        await db.flush()
        return to_hr_summary(await load_invoice(db, invoice.id))

    @staticmethod
    async def send(
        db: AsyncSession,
        viewer: User,
        invoice_id: uuid.UUID,
        background_tasks: Optional[BackgroundTasks] = None,
        *,
        ip_address: Optional[str] = None,
    ) -> HrInvoiceListItem:
        invoice = await HRInvoiceService._get(db, viewer, invoice_id)
        if invoice.status not in EDITABLE_INVOICE_STATUSES:
            raise BadRequestException(detail="Only draft or change-requested invoices can be sent.")

        previous_status = invoice.status
        invoice.status = InvoiceStatus.PENDING_REVIEW
        invoice.sent_at = utcnow()
        invoice.review_comment = None
        invoice.reviewed_at = None
        invoice.reviewed_by_id = None
        await db.flush()

        label = period_label(invoice.period_month, invoice.period_year)
        notification = await NotificationService.create_notification(
            db,
            organization_id=invoice.organization_id,
            sender_id=viewer.id,
            title=f"{invoice.title} ready for review",
            body=f"Please review your {label} invoice.",
            type=NotificationType.INVOICE,
            audience=NotificationAudience.INDIVIDUAL,
            target_user_id=invoice.employee_id,
            action_url=f"/invoice/{invoice.id}",
            metadata={
                "invoiceId": str(invoice.id),
                "periodLabel": label,
                "currency": invoice.currency,
                "total": decimal_to_float(invoice.total),
                "status": invoice.status.value,
                "statusLabel": INVOICE_STATUS_LABELS[invoice.status],
            },
        )
        await create_audit_entry(
            db,
            action="send",
            entity_type="invoice",
            entity_id=invoice.id,
            actor_id=viewer.id,
            old_values={"status": previous_status.value},
            new_values={"status": invoice.status.value},
            ip_address=ip_address,
        )
        await NotificationService.publish(db, [notification], background_tasks)
        logger.info("Invoice %s sent to %s", invoice.id, invoice.employee_id)
        return to_hr_summary(await load_invoice(db, invoice.id))

    @staticmethod
    async def delete(
        db: AsyncSession,
        viewer: User,
        invoice_id: uuid.UUID,
        *,
        ip_address: Optional[str] = None,
    ) -> None:
        invoice = await HRInvoiceService._get(db, viewer, invoice_id)
        if invoice.status != InvoiceStatus.DRAFT:
            raise BadRequestException(detail="Only draft invoices can be deleted.")
        await create_audit_entry(
            db,
            action="delete",
            entity_type="invoice",
            entity_id=invoice.id,
            actor_id=viewer.id,
            old_values={"title": invoice.title, "employeeId": str(invoice.employee_id)},
            ip_address=ip_address,
        )
        await db.delete(invoice)
        await db.flush()

"""Hard-delete cascades for people and whole organizations.

Rows are removed child-first so the deletes also work on backends that do
not enforce ``ON DELETE`` rules (SQLite in tests).
"""

from __future__ import annotations

import logging
import uuid

from sqlalchemy import delete, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ndi_hr.attendance.models import AttendanceRecord, Holiday, WorkPolicy
from ndi_hr.auth.models import InvitationToken, PasswordResetToken, UserSession
from ndi_hr.common.audit import AuditTrail
from ndi_hr.core_hr.models import (
    Department,
    EmergencyContact,
    EmployeeBankAccount,
    EmployeeProfile,
    EmploymentDetail,
    Organization,
    Project,
    Team,
    TeamLead,
    User,
)
from ndi_hr.invoices.models import Invoice, InvoiceItem
from ndi_hr.leave.models import LeaveRequest
from ndi_hr.messages.models import ChatMessage, Thread, ThreadParticipant
from ndi_hr.notifications.models import Notification, NotificationReceipt
from ndi_hr.reports.models import DailyReport, DailyReportEntry, MonthlyReport, MonthlyReportEntry

logger = logging.getLogger(__name__)


async def delete_user_cascade(db: AsyncSession, user_id: uuid.UUID) -> None:
    """Remove a user and every row that belongs to them.

    References the user merely authored or reviewed are cleared instead of
    deleted, so other people's leave requests, invoices and announcements
    survive.
    """
    await db.execute(update(Department).where(Department.head_id == user_id).values(head_id=None))
    await db.execute(
        update(EmploymentDetail)
        .where(EmploymentDetail.reporting_manager_id == user_id)
        .values(reporting_manager_id=None),
    )
    await db.execute(update(User).where(User.invited_by_id == user_id).values(invited_by_id=None))
    await db.execute(update(Notification).where(Notification.sender_id == user_id).values(sender_id=None))
    await db.execute(update(LeaveRequest).where(LeaveRequest.reviewer_id == user_id).values(reviewer_id=None))
    await db.execute(update(Invoice).where(Invoice.created_by_id == user_id).values(created_by_id=None))
    await db.execute(update(Invoice).where(Invoice.reviewed_by_id == user_id).values(reviewed_by_id=None))
    await db.execute(update(AuditTrail).where(AuditTrail.actor_id == user_id).values(actor_id=None))
    await db.execute(update(Project).where(Project.project_manager_id == user_id).values(project_manager_id=None))
    await db.execute(update(Thread).where(Thread.created_by_id == user_id).values(created_by_id=None))

    targeted = select(Notification.id).where(Notification.target_user_id == user_id)
    await db.execute(
        delete(NotificationReceipt).where(
            or_(
                NotificationReceipt.user_id == user_id,
                NotificationReceipt.notification_id.in_(targeted),
            ),
        ),
    )
    await db.execute(delete(Notification).where(Notification.target_user_id == user_id))

    own_invoices = select(Invoice.id).where(Invoice.employee_id == user_id)
    await db.execute(delete(InvoiceItem).where(InvoiceItem.invoice_id.in_(own_invoices)))
    await db.execute(delete(Invoice).where(Invoice.employee_id == user_id))

    await db.execute(delete(ChatMessage).where(ChatMessage.sender_id == user_id))
    await db.execute(delete(ThreadParticipant).where(ThreadParticipant.user_id == user_id))

    own_daily = select(DailyReport.id).where(DailyReport.employee_id == user_id)
    await db.execute(delete(DailyReportEntry).where(DailyReportEntry.report_id.in_(own_daily)))
    await db.execute(delete(DailyReport).where(DailyReport.employee_id == user_id))
    own_monthly = select(MonthlyReport.id).where(MonthlyReport.employee_id == user_id)
    await db.execute(delete(MonthlyReportEntry).where(MonthlyReportEntry.report_id.in_(own_monthly)))
    await db.execute(delete(MonthlyReport).where(MonthlyReport.employee_id == user_id))

    await db.execute(delete(TeamLead).where(TeamLead.lead_id == user_id))
    await db.execute(delete(EmergencyContact).where(EmergencyContact.user_id == user_id))
    await db.execute(delete(EmployeeBankAccount).where(EmployeeBankAccount.user_id == user_id))
    await db.execute(delete(AttendanceRecord).where(AttendanceRecord.employee_id == user_id))
    await db.execute(delete(LeaveRequest).where(LeaveRequest.employee_id == user_id))
    await db.execute(delete(EmployeeProfile).where(EmployeeProfile.user_id == user_id))
    await db.execute(delete(EmploymentDetail).where(EmploymentDetail.user_id == user_id))
    await db.execute(delete(UserSession).where(UserSession.user_id == user_id))
    await db.execute(delete(PasswordResetToken).where(PasswordResetToken.user_id == user_id))
    await db.execute(delete(InvitationToken).where(InvitationToken.user_id == user_id))
    await db.execute(delete(User).where(User.id == user_id))


async def delete_organization_cascade(db: AsyncSession, organization_id: uuid.UUID) -> int:
    """Delete an organization, its people and everything scoped to it.

    Returns the number of user accounts removed.
    """
    user_ids = (await db.execute(
        select(User.id).where(User.organization_id == organization_id),
    )).scalars().all()
    for user_id in user_ids:
        await delete_user_cascade(db, user_id)

    threads = select(Thread.id).where(Thread.organization_id == organization_id)
    await db.execute(delete(ChatMessage).where(ChatMessage.thread_id.in_(threads)))
    await db.execute(delete(ThreadParticipant).where(ThreadParticipant.thread_id.in_(threads)))
    await db.execute(delete(Thread).where(Thread.organization_id == organization_id))

    notifications = select(Notification.id).where(Notification.organization_id == organization_id)
    await db.execute(delete(NotificationReceipt).where(NotificationReceipt.notification_id.in_(notifications)))
    await db.execute(delete(Notification).where(Notification.organization_id == organization_id))

    daily = select(DailyReport.id).where(DailyReport.organization_id == organization_id)
    await db.execute(delete(DailyReportEntry).where(DailyReportEntry.report_id.in_(daily)))
    await db.execute(delete(DailyReport).where(DailyReport.organization_id == organization_id))
    monthly = select(MonthlyReport.id).where(MonthlyReport.organization_id == organization_id)
    await db.execute(delete(MonthlyReportEntry).where(MonthlyReportEntry.report_id.in_(monthly)))
    await db.execute(delete(MonthlyReport).where(MonthlyReport.organization_id == organization_id))

    invoices = select(Invoice.id).where(Invoice.organization_id == organization_id)
    await db.execute(delete(InvoiceItem).where(InvoiceItem.invoice_id.in_(invoices)))
    await db.execute(delete(Invoice).where(Invoice.organization_id == organization_id))

    await db.execute(delete(EmploymentDetail).where(EmploymentDetail.organization_id == organization_id))
    await db.execute(delete(Project).where(Project.organization_id == organization_id))
    await db.execute(delete(Holiday).where(Holiday.organization_id == organization_id))
    await db.execute(delete(WorkPolicy).where(WorkPolicy.organization_id == organization_id))

    teams = select(Team.id).where(Team.organization_id == organization_id)
    await db.execute(delete(TeamLead).where(TeamLead.team_id.in_(teams)))
    await db.execute(delete(Team).where(Team.organization_id == organization_id))
    await db.execute(delete(Department).where(Department.organization_id == organization_id))
    await db.execute(delete(Organization).where(Organization.id == organization_id))

    logger.info("Deleted organization %s with %d user accounts", organization_id, len(user_ids))
    return len(user_ids)

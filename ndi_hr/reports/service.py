"""Work report service: employee submissions, personal history, HR overview.

Business logic:
  - One daily report per employee per date and one monthly report per
    employee per month; resubmitting replaces the entries wholesale
  - Monthly reports are keyed by the first day of the month
  - History defaults to today (daily) or the current month (monthly) in the
    organization's timezone; totals cover every matching report, not just
    the current page
"""

from __future__ import annotations

import logging
import uuid
from datetime import date, timedelta
from decimal import Decimal, InvalidOperation
from typing import Optional

from sqlalchemy import Select, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from ndi_hr.common.constants import EmploymentStatus
from ndi_hr.common.exceptions import BadRequestException, ForbiddenException
from ndi_hr.common.formatting import (
    decimal_to_float,
    format_short_date,
    local_today,
    shift_months,
)
from ndi_hr.common.pagination import PaginationParams, paginate
from ndi_hr.core_hr.models import EmployeeProfile, User
from ndi_hr.reports.models import (
    DailyReport,
    DailyReportEntry,
    MonthlyReport,
    MonthlyReportEntry,
)
from ndi_hr.reports.schemas import (
    DailyEntryItem,
    DailyHistoryResponse,
    DailyHistoryTotals,
    DailyReportItem,
    DailyReportRequest,
    DailyReportSubmitted,
    DailyTrendPoint,
    HrDailyRow,
    HrMonthlyRow,
    HrReportOverviewResponse,
    MonthlyEntryItem,
    MonthlyHistoryResponse,
    MonthlyHistoryTotals,
    MonthlyReportItem,
    MonthlyReportRequest,
    MonthlyReportSubmitted,
    MonthlyTrendPoint,
    ReportEmployeeOption,
    ReportFilters,
    ReportSort,
)

logger = logging.getLogger(__name__)

DAILY_PAGE_SIZE = 20
MONTHLY_PAGE_SIZE = 12
HR_DAILY_LIMIT = 200
HR_MONTHLY_LIMIT = 100
HR_DAILY_FALLBACK_DAYS = 30
HR_MONTHLY_FALLBACK_MONTHS = 6


# ── Helpers ─────────────────────────────────────────────────────────

def _organization_id(user: User) -> uuid.UUID:
    if user.organization_id is None:
        raise ForbiddenException(detail="Missing organization context.")
    return user.organization_id


def _viewer_today(user: User) -> date:
    return local_today(user.organization.timezone if user.organization else None)


def first_of_month(value: date) -> date:
    return value.replace(day=1)


def _check_range(start: Optional[date], end: Optional[date]) -> None:
    if start and end and start > end:
        raise BadRequestException(detail="Start date cannot be after end date.")


def _daily_search(search: Optional[str]):
    if not search or not search.strip():
        return None
    pattern = f"%{search.strip()}%"
    return DailyReport.entries.any(or_(
        DailyReportEntry.task_name.ilike(pattern),
        DailyReportEntry.details.ilike(pattern),
        DailyReportEntry.others.ilike(pattern),
        DailyReportEntry.work_type.ilike(pattern),
    ))


def _monthly_search(search: Optional[str]):
    if not search or not search.strip():
        return None
    term = search.strip()
    clauses = [MonthlyReportEntry.task_name.ilike(f"%{term}%")]
    try:
        clauses.append(MonthlyReportEntry.story_point == Decimal(term))
    except InvalidOperation:
        pass
    return MonthlyReport.entries.any(or_(*clauses))


def _daily_hours(report: DailyReport) -> float:
    return sum(decimal_to_float(e.working_hours) for e in report.entries)


def _monthly_hours(report: MonthlyReport) -> float:
    return sum(decimal_to_float(e.working_hours) for e in report.entries)


def _monthly_points(report: MonthlyReport) -> float:
    return sum(decimal_to_float(e.story_point) for e in report.entries)


def _month_label(value: date) -> str:
    return f"{value.strftime('%b')} {value.year}"


# ═════════════════════════════════════════════════════════════════════
# ReportService (employee)
# ═════════════════════════════════════════════════════════════════════


class ReportService:

    @staticmethod
    async def submit_daily(db: AsyncSession, user: User, body: DailyReportRequest) -> DailyReportSubmitted:
        organization_id = _organization_id(user)
        result = await db.execute(
            select(DailyReport).where(
                DailyReport.employee_id == user.id,
                DailyReport.report_date == body.report_date,
            ),
        )
        report = result.scalars().first()
        if report is None:
            report = DailyReport(
                organization_id=organization_id,
                employee_id=user.id,
                report_date=body.report_date,
            )
            db.add(report)
        report.note = body.note
        report.entries = [
            DailyReportEntry(
                position=index,
                work_type=entry.work_type,
                task_name=entry.task_name,
                others=entry.others,
                details=entry.details,
                working_hours=Decimal(str(entry.working_hours)),
            )
            for index, entry in enumerate(body.entries)
        ]
        await db.flush()

        logger.info("Daily report %s saved for %s", body.report_date, user.id)
        return DailyReportSubmitted(
            id=report.id, report_date=report.report_date, entry_count=len(report.entries),
        )

    @staticmethod
    async def submit_monthly(
        db: AsyncSession, user: User, body: MonthlyReportRequest,
    ) -> MonthlyReportSubmitted:
        organization_id = _organization_id(user)
        report_month = first_of_month(body.report_month)
        result = await db.execute(
            select(MonthlyReport).where(
                MonthlyReport.employee_id == user.id,
                MonthlyReport.report_month == report_month,
            ),
        )
        report = result.scalars().first()
        if report is None:
            report = MonthlyReport(
                organization_id=organization_id,
                employee_id=user.id,
                report_month=report_month,
            )
            db.add(report)
        report.entries = [
            MonthlyReportEntry(
                position=index,
                task_name=entry.task_name,
                story_point=Decimal(str(entry.story_point)),
                working_hours=Decimal(str(entry.working_hours)),
            )
            for index, entry in enumerate(body.entries)
        ]
        await db.flush()

        logger.info("Monthly report %s saved for %s", report_month, user.id)
        return MonthlyReportSubmitted(
            id=report.id, report_month=report.report_month, entry_count=len(report.entries),
        )

    # ── History ──────────────────────────────────────────────────────

    @staticmethod
    async def daily_history(
        db: AsyncSession,
        user: User,
        params: PaginationParams,
        *,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        search: Optional[str] = None,
        sort: ReportSort = "recent",
    ) -> DailyHistoryResponse:
        _organization_id(user)
        if start_date is None and end_date is None:
            start_date = end_date = _viewer_today(user)
        _check_range(start_date, end_date)

        query: Select = select(DailyReport).where(DailyReport.employee_id == user.id)
        if start_date:
            query = query.where(DailyReport.report_date >= start_date)
        if end_date:
            query = query.where(DailyReport.report_date <= end_date)
        search_clause = _daily_search(search)
        if search_clause is not None:
            query = query.where(search_clause)

        all_reports = (await db.execute(query)).scalars().all()
        ordered = query.order_by(
            DailyReport.report_date.desc() if sort == "recent" else DailyReport.report_date.asc(),
        )
        page = await paginate(db, ordered, params.with_default(DAILY_PAGE_SIZE))

        items = [
            DailyReportItem(
                id=r.id,
                report_date=r.report_date,
                note=r.note,
                submitted_at=r.submitted_at,
                updated_at=r.updated_at,
                entries=[
                    DailyEntryItem(
                        id=e.id,
                        work_type=e.work_type,
                        task_name=e.task_name,
                        others=e.others,
                        details=e.details,
                        working_hours=decimal_to_float(e.working_hours),
                    )
                    for e in r.entries
                ],
                total_working_hours=_daily_hours(r),
            )
            for r in page.data
        ]
        return DailyHistoryResponse(
            items=items,
            pagination=page.meta,
            totals=DailyHistoryTotals(
                working_hours=sum(_daily_hours(r) for r in all_reports),
                entry_count=sum(len(r.entries) for r in all_reports),
            ),
        )

    @staticmethod
    async def monthly_history(
        db: AsyncSession,
        user: User,
        params: PaginationParams,
        *,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        search: Optional[str] = None,
        sort: ReportSort = "recent",
    ) -> MonthlyHistoryResponse:
        _organization_id(user)
        if start_date is None and end_date is None:
            start_date = end_date = _viewer_today(user)
        start_month = first_of_month(start_date) if start_date else None
        end_month = first_of_month(end_date) if end_date else None
        _check_range(start_month, end_month)

        query: Select = select(MonthlyReport).where(MonthlyReport.employee_id == user.id)
        if start_month:
            query = query.where(MonthlyReport.report_month >= start_month)
        if end_month:
            query = query.where(MonthlyReport.report_month <= end_month)
        search_clause = _monthly_search(search)
        if search_clause is not None:
            query = query.where(search_clause)

        all_reports = (await db.execute(query)).scalars().all()
        ordered = query.order_by(
            MonthlyReport.report_month.desc() if sort == "recent" else MonthlyReport.report_month.asc(),
        )
        page = await paginate(db, ordered, params.with_default(MONTHLY_PAGE_SIZE))

        items = [
            MonthlyReportItem(
                id=r.id,
                report_month=r.report_month,
                month_label=_month_label(r.report_month),
                submitted_at=r.submitted_at,
                updated_at=r.updated_at,
                entries=[
                    MonthlyEntryItem(
                        id=e.id,
                        task_name=e.task_name,
                        story_point=decimal_to_float(e.story_point),
                        working_hours=decimal_to_float(e.working_hours),
                    )
                    for e in r.entries
                ],
                total_story_points=_monthly_points(r),
                total_working_hours=_monthly_hours(r),
            )
            for r in page.data
        ]
        return MonthlyHistoryResponse(
            items=items,
            pagination=page.meta,
            totals=MonthlyHistoryTotals(
                working_hours=sum(_monthly_hours(r) for r in all_reports),
                story_points=sum(_monthly_points(r) for r in all_reports),
                entry_count=sum(len(r.entries) for r in all_reports),
            ),
        )


# ═════════════════════════════════════════════════════════════════════
# HrReportService
# ═════════════════════════════════════════════════════════════════════


class HrReportService:

    @staticmethod
    async def overview(
        db: AsyncSession,
        viewer: User,
        *,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        employee_id: Optional[uuid.UUID] = None,
        search: Optional[str] = None,
    ) -> HrReportOverviewResponse:
        organization_id = viewer.organization_id
        today = _viewer_today(viewer)

        day_start = start_date or today - timedelta(days=HR_DAILY_FALLBACK_DAYS)
        day_end = end_date or today
        _check_range(day_start, day_end)
        month_start = first_of_month(start_date) if start_date else shift_months(today, -HR_MONTHLY_FALLBACK_MONTHS)
        month_end = first_of_month(end_date) if end_date else first_of_month(today)

        # ── Daily ────────────────────────────────────────────────────
        daily_q = select(DailyReport).where(
            DailyReport.organization_id == organization_id,
            DailyReport.report_date >= day_start,
            DailyReport.report_date <= day_end,
        )
        monthly_q = select(MonthlyReport).where(
            MonthlyReport.organization_id == organization_id,
            MonthlyReport.report_month >= month_start,
            MonthlyReport.report_month <= month_end,
        )
        if employee_id is not None:
            daily_q = daily_q.where(DailyReport.employee_id == employee_id)
            monthly_q = monthly_q.where(MonthlyReport.employee_id == employee_id)
        daily_search = _daily_search(search)
        if daily_search is not None:
            daily_q = daily_q.where(daily_search)
        monthly_search = _monthly_search(search)
        if monthly_search is not None:
            monthly_q = monthly_q.where(monthly_search)

        daily_reports = (await db.execute(
            daily_q.order_by(DailyReport.report_date.desc(), DailyReport.submitted_at.desc())
            .limit(HR_DAILY_LIMIT),
        )).scalars().all()
        monthly_reports = (await db.execute(
            monthly_q.order_by(MonthlyReport.report_month.desc(), MonthlyReport.submitted_at.desc())
            .limit(HR_MONTHLY_LIMIT),
        )).scalars().all()

        daily_rows = []
        daily_trend: dict[date, DailyTrendPoint] = {}
        for report in daily_reports:
            hours = _daily_hours(report)
            daily_rows.append(HrDailyRow(
                id=report.id,
                employee_id=report.employee_id,
                employee_name=report.employee.display_name,
                report_date=report.report_date,
                entry_count=len(report.entries),
                total_working_hours=hours,
                work_types=list(dict.fromkeys(e.work_type for e in report.entries))[:3],
                top_tasks=[e.task_name for e in report.entries[:3]],
                note=report.note,
            ))
            point = daily_trend.setdefault(report.report_date, DailyTrendPoint(
                date=report.report_date,
                label=format_short_date(report.report_date),
                report_count=0,
                working_hours=0,
            ))
            point.report_count += 1
            point.working_hours += hours

        monthly_rows = []
        monthly_trend: dict[date, MonthlyTrendPoint] = {}
        for report in monthly_reports:
            hours = _monthly_hours(report)
            points = _monthly_points(report)
            monthly_rows.append(HrMonthlyRow(
                id=report.id,
                employee_id=report.employee_id,
                employee_name=report.employee.display_name,
                report_month=report.report_month,
                month_label=_month_label(report.report_month),
                entry_count=len(report.entries),
                total_working_hours=hours,
                total_story_points=points,
                top_tasks=[e.task_name for e in report.entries[:4]],
            ))
            point = monthly_trend.setdefault(report.report_month, MonthlyTrendPoint(
                month=report.report_month,
                label=_month_label(report.report_month),
                report_count=0,
                working_hours=0,
                story_points=0,
            ))
            point.report_count += 1
            point.working_hours += hours
            point.story_points += points

        # ── Employee filter options ──────────────────────────────────
        employees = (await db.execute(
            select(User)
            .outerjoin(EmployeeProfile, EmployeeProfile.user_id == User.id)
            .where(
                User.organization_id == organization_id,
                User.status == EmploymentStatus.ACTIVE,
            )
            .order_by(EmployeeProfile.first_name, User.email),
        )).scalars().all()

        return HrReportOverviewResponse(
            filters=ReportFilters(
                start_date=day_start,
                end_date=day_end,
                employee_id=employee_id,
                search=search.strip() if search and search.strip() else None,
                employees=[ReportEmployeeOption(id=u.id, name=u.display_name) for u in employees],
            ),
            daily=daily_rows,
            monthly=monthly_rows,
            daily_trend=[daily_trend[k] for k in sorted(daily_trend)],
            monthly_trend=[monthly_trend[k] for k in sorted(monthly_trend)],
        )

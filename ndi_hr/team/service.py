"""My-team overview: the viewer's team, its people, and what is coming up for them.

Everything is computed against "today" in the organization's timezone.
Members are every employment record on the viewer's team, former staff
included; ``active`` counts only the working statuses.
"""

from __future__ import annotations

import calendar
import logging
from collections import Counter
from datetime import date, timedelta
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ndi_hr.attendance.service import organization_timezone
from ndi_hr.common.constants import (
    ACTIVE_EMPLOYMENT_STATUSES,
    EMPLOYMENT_TYPE_LABELS,
    LEAVE_TYPE_LABELS,
    TEAM_STATUS_LABELS,
    WORK_MODEL_LABELS,
    LeaveStatus,
    WorkModel,
)
from ndi_hr.common.formatting import (
    decimal_to_float,
    format_short_date,
    local_today,
    month_label,
    title_case_enum,
)
from ndi_hr.core_hr.models import EmploymentDetail, User
from ndi_hr.leave.models import LeaveRequest
from ndi_hr.team.schemas import (
    MyTeamOverviewResponse,
    TeamAnniversary,
    TeamHighlight,
    TeamMember,
    TeamPerson,
    TeamStats,
    TeamSummary,
    TeamUpcomingLeave,
    TeamWorkModelStat,
)

logger = logging.getLogger(__name__)

NEW_JOINER_WINDOW_DAYS = 90
ANNIVERSARY_WINDOW_DAYS = 60
NEW_JOINER_LIMIT = 6
ANNIVERSARY_LIMIT = 5
UPCOMING_LEAVE_LIMIT = 6
UPCOMING_LEAVE_STATUSES = (LeaveStatus.PENDING, LeaveStatus.PROCESSING, LeaveStatus.APPROVED)


# ── Helpers ─────────────────────────────────────────────────────────

def tenure_months(start: Optional[date], today: date) -> int:
    if start is None:
        return 0
    months = (today.year - start.year) * 12 + (today.month - start.month)
    return max(months, 0)


def tenure_label(months: int) -> str:
    """``2 yrs 3 mos``; anything under a month is a "New teammate"."""
    if months <= 0:
        return "New teammate"
    years, rest = divmod(months, 12)
    parts = []
    if years:
        parts.append(f"{years} yr{'s' if years > 1 else ''}")
    if rest:
        parts.append(f"{rest} mo{'s' if rest > 1 else ''}")
    return " ".join(parts)


def _weekday_label(value: date) -> str:
    return f"{value.strftime('%a')}, {format_short_date(value)}"


def _on_or_after(start: date, year: int) -> date:
    # Feb 29 starters celebrate on Feb 28 in common years
    day = min(start.day, calendar.monthrange(year, start.month)[1])
    return date(year, start.month, day)


def next_anniversary(start: Optional[date], today: date) -> Optional[tuple[date, int, int]]:
    """``(date, years_completed, days_away)`` of the next work anniversary."""
    if start is None:
        return None
    candidate = _on_or_after(start, today.year)
    if candidate < today:
        candidate = _on_or_after(start, today.year + 1)
    years = candidate.year - start.year
    if years < 1:
        return None
    return candidate, years, (candidate - today).days


def _person(user: Optional[User]) -> Optional[TeamPerson]:
    if user is None:
        return None
    profile = user.profile
    employment = user.employment
    return TeamPerson(
        id=user.id,
        full_name=user.display_name,
        preferred_name=profile.preferred_name if profile else None,
        avatar_url=profile.profile_photo_url if profile else None,
        designation=employment.designation if employment else None,
        email=(profile.work_email if profile else None) or user.email,
        work_model=profile.work_model if profile else None,
        is_team_lead=bool(employment and employment.is_team_lead),
    )


def _member(user: User, today: date) -> TeamMember:
    profile = user.profile
    employment = user.employment
    work_model = profile.work_model if profile else None
    months = tenure_months(employment.start_date, today)
    return TeamMember(
        id=employment.id,
        user_id=user.id,
        full_name=user.display_name,
        preferred_name=profile.preferred_name if profile else None,
        avatar_url=profile.profile_photo_url if profile else None,
        designation=employment.designation,
        employment_type=employment.employment_type,
        employment_type_label=EMPLOYMENT_TYPE_LABELS[employment.employment_type],
        status=employment.status,
        status_label=TEAM_STATUS_LABELS[employment.status],
        work_model=work_model,
        work_model_label=WORK_MODEL_LABELS[work_model] if work_model else "Not set",
        location=employment.primary_location or (profile.current_address if profile else None),
        email=(profile.work_email if profile else None) or user.email,
        phone=user.phone or (profile.work_phone if profile else None),
        start_date=employment.start_date,
        start_date_label=(
            f"{format_short_date(employment.start_date)}, {employment.start_date.year}"
            if employment.start_date else None
        ),
        tenure_months=months,
        tenure_label=tenure_label(months),
        is_team_lead=employment.is_team_lead,
    )


def _plural(count: int, word: str) -> str:
    return f"{count} {word}{'' if count == 1 else 's'}"


class MyTeamService:

    @staticmethod
    async def _team_users(db: AsyncSession, employment: EmploymentDetail) -> list[User]:
        result = await db.execute(
            select(User)
            .join(EmploymentDetail, EmploymentDetail.user_id == User.id)
            .where(
                EmploymentDetail.organization_id == employment.organization_id,
                EmploymentDetail.team_id == employment.team_id,
            )
            .order_by(EmploymentDetail.start_date, User.email)
            .execution_options(populate_existing=True),
        )
        return list(result.scalars().all())

    @staticmethod
    async def _upcoming_leaves(
        db: AsyncSession, members: list[TeamMember], today: date,
    ) -> list[TeamUpcomingLeave]:
        if not members:
            return []
        by_user = {m.user_id: m for m in members}
        result = await db.execute(
            select(LeaveRequest)
            .where(
                LeaveRequest.employee_id.in_(by_user),
                LeaveRequest.status.in_(UPCOMING_LEAVE_STATUSES),
                LeaveRequest.end_date >= today,
            )
            .order_by(LeaveRequest.start_date)
            .limit(UPCOMING_LEAVE_LIMIT),
        )
        leaves = []
        for leave in result.scalars().all():
            member = by_user[leave.employee_id]
            status_label = title_case_enum(leave.status.value)
            days = decimal_to_float(leave.total_days)
            duration = f"{days:g} day{'s' if days != 1 else ''}" if days > 0 else "—"
            if leave.start_date == leave.end_date:
                range_label = _weekday_label(leave.start_date)
            else:
                range_label = f"{_weekday_label(leave.start_date)} - {_weekday_label(leave.end_date)}"
            leaves.append(TeamUpcomingLeave(
                id=leave.id,
                member_id=member.id,
                member_name=member.full_name,
                leave_type=leave.leave_type,
                leave_type_label=LEAVE_TYPE_LABELS[leave.leave_type],
                status=leave.status,
                status_label=status_label,
                start_date=leave.start_date,
                end_date=leave.end_date,
                range_label=range_label,
                helper=f"{duration} · {status_label}",
            ))
        return leaves

    @staticmethod
    async def overview(
        db: AsyncSession, viewer: User, *, today: Optional[date] = None,
    ) -> MyTeamOverviewResponse:
        tz_name = await organization_timezone(db, viewer.organization_id)
        employment = viewer.employment
        if employment is None or employment.team_id is None or employment.team is None:
            return MyTeamOverviewResponse(has_team=False, timezone=tz_name, stats=TeamStats())

        today = today or local_today(tz_name)
        team = employment.team
        users = await MyTeamService._team_users(db, employment)
        members = [_member(user, today) for user in users]

        headcount = len(members)
        active = sum(1 for m in members if m.status in ACTIVE_EMPLOYMENT_STATUSES)
        avg_months = round(sum(m.tenure_months for m in members) / headcount) if headcount else 0
        avg_label = tenure_label(avg_months)

        work_model_stats = []
        for model in (WorkModel.ONSITE, WorkModel.HYBRID, WorkModel.REMOTE):
            count = sum(1 for m in members if m.work_model == model)
            work_model_stats.append(TeamWorkModelStat(
                id=model.value.lower(),
                label=WORK_MODEL_LABELS[model],
                count=count,
                percentage=round(count / headcount * 100) if headcount else 0,
                helper=_plural(count, "teammate"),
            ))

        locations = Counter(m.location for m in members if m.location)
        top_location = locations.most_common(1)[0][0] if locations else None
        starts = [m.start_date for m in members if m.start_date]
        earliest = min(starts) if starts else None

        highlights = [
            TeamHighlight(
                id="headcount",
                label="Headcount",
                value=_plural(headcount, "teammate"),
                helper=(
                    "No active members yet" if headcount == 0
                    else f"{active} active · {headcount - active} pending"
                ),
            ),
            TeamHighlight(
                id="tenure",
                label="Average tenure",
                value=avg_label,
                helper=(
                    f"Since {month_label(earliest.year, earliest.month)}" if earliest
                    else "Start dates not recorded"
                ),
            ),
            TeamHighlight(
                id="locations",
                label="Locations",
                value=str(len(locations)),
                helper=(
                    f"{'Single' if len(locations) == 1 else 'Multiple'} work hubs" if locations
                    else "Location data pending"
                ),
            ),
        ]

        threshold = today - timedelta(days=NEW_JOINER_WINDOW_DAYS)
        new_joiners = [m for m in members if m.start_date and m.start_date >= threshold][:NEW_JOINER_LIMIT]

        anniversaries = []
        for member in members:
            upcoming = next_anniversary(member.start_date, today)
            if upcoming is None or upcoming[2] > ANNIVERSARY_WINDOW_DAYS:
                continue
            when, years, days_away = upcoming
            anniversaries.append(TeamAnniversary(
                member_id=member.id,
                member_name=member.full_name,
                date=when,
                date_label=_weekday_label(when),
                years_completed=years,
                days_away=days_away,
            ))
        anniversaries.sort(key=lambda a: a.days_away)

        leads = [p for p in (_person(entry.lead) for entry in team.leads) if p is not None]
        department = team.department
        manager = _person(department.head if department else None) or _person(employment.manager)

        logger.debug("Team overview for %s: team %s, %d members", viewer.id, team.id, headcount)
        return MyTeamOverviewResponse(
            has_team=True,
            timezone=tz_name,
            team=TeamSummary(
                id=team.id,
                name=team.name,
                description=team.description,
                department_name=department.name if department else None,
                leads=leads,
                manager=manager,
                location_hint=top_location or employment.primary_location,
            ),
            stats=TeamStats(
                headcount=headcount,
                active=active,
                avg_tenure_months=avg_months,
                avg_tenure_label=avg_label,
            ),
            highlights=highlights,
            work_model_stats=work_model_stats,
            members=members,
            new_joiners=new_joiners,
            anniversaries=anniversaries[:ANNIVERSARY_LIMIT],
            upcoming_leaves=await MyTeamService._upcoming_leaves(db, members, today),
        )

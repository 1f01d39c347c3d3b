"""
Billing reconciliation: what a student owes for a period under their active subscription.

Only sessions the student was marked present at are charged. Absent, excused and
unmarked sessions count against the free-absence allowance, which is reported but
never changes the amount. Durations are summed as integer minutes and turned into
Decimal hours once, at the end.
"""

import calendar
import logging
from datetime import date
from decimal import Decimal
from typing import Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from academy.core.enums import AttendanceOutcome, SessionStatus
from academy.core.exceptions import NoActiveSubscription, ScheduleValidationError
from academy.core.intervals import date_range_bounds, minutes_between
from academy.db.session import run_bounded

from academy.api.v1.attendance.service import outcome_of, sessions_in_range
from academy.api.v1.subscriptions.service import active_during

from .schemas import BillingCalculation

logger = logging.getLogger(__name__)

MINUTES_PER_HOUR = Decimal(60)


async def _calculate(
    db: AsyncSession,
    student_id: UUID,
    period_start: date,
    period_end: date,
) -> BillingCalculation:
    student_subscription = await active_during(db, student_id, period_start, period_end)
    if student_subscription is None:
        raise NoActiveSubscription(student_id)
    plan = student_subscription.subscription

    start, end = date_range_bounds(period_start, period_end)
    pairs = await sessions_in_range(db, student_id, start, end)

    minutes_scheduled = minutes_attended = 0
    sessions_scheduled = sessions_attended = 0
    for session, record in pairs:
        if session.status == SessionStatus.CANCELLED.value:
            continue
        duration = minutes_between(session.start_date, session.end_date)
        minutes_scheduled += duration
        sessions_scheduled += 1
        if outcome_of(record) == AttendanceOutcome.PRESENT:
            minutes_attended += duration
            sessions_attended += 1

    hourly_rate = Decimal(plan.hourly_rate)
    free_absences_used = sessions_scheduled - sessions_attended
    max_free_absences = plan.max_free_absences or 0
    calculation = BillingCalculation(
        student_id=student_id,
        subscription_id=plan.id,
        student_subscription_id=student_subscription.id,
        period_start=period_start,
        period_end=period_end,
        hours_scheduled=Decimal(minutes_scheduled) / MINUTES_PER_HOUR,
        hours_attended=Decimal(minutes_attended) / MINUTES_PER_HOUR,
        sessions_scheduled=sessions_scheduled,
        sessions_attended=sessions_attended,
        free_absences_used=free_absences_used,
        max_free_absences=max_free_absences,
        free_absences_remaining=max(max_free_absences - free_absences_used, 0),
        hourly_rate=hourly_rate,
        total_amount=Decimal(minutes_attended) * hourly_rate / MINUTES_PER_HOUR,
        currency=plan.currency,
    )
    logger.info(
        "Billing for student %s %s..%s: %d/%d sessions attended, total %s",
        student_id,
        period_start,
        period_end,
        sessions_attended,
        sessions_scheduled,
        calculation.formatted_total_amount,
    )
    return calculation


async def calculate(
    db: AsyncSession,
    student_id: UUID,
    period_start: date,
    period_end: date,
    timeout: Optional[float] = None,
) -> BillingCalculation:
    """Raises NoActiveSubscription when no active subscription overlaps the period."""
    if period_end < period_start:
        raise ScheduleValidationError("period_end must not be before period_start")
    return await run_bounded(
        db, "Billing calculation", _calculate(db, student_id, period_start, period_end), timeout
    )


async def calculate_monthly(
    db: AsyncSession,
    student_id: UUID,
    year: int,
    month: int,
    timeout: Optional[float] = None,
) -> BillingCalculation:
    """Bill for a calendar month, first to last day."""
    if not 1 <= month <= 12:
        raise ScheduleValidationError("month must be between 1 and 12")
    last_day = calendar.monthrange(year, month)[1]
    return await calculate(db, student_id, date(year, month, 1), date(year, month, last_day), timeout)

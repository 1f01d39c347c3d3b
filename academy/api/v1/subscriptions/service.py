"""
Subscription plans and the per-student subscription state machine.

A student has no subscription, one active subscription, or only inactive ones.
Activation deactivates whatever is active and inserts the new row in a single
transaction; the partial unique index on (student_id) WHERE status = 'active'
turns a concurrent activation into ConcurrencyConflict for the loser.
"""

import logging
import warnings
from datetime import date
from typing import List, Optional
from uuid import UUID

from fastapi import status
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from academy.core.config import settings
from academy.core.enums import SubscriptionStatus
from academy.core.exceptions import (
    ConcurrencyConflict,
    DataIntegrityWarning,
    ScheduleValidationError,
    ServiceError,
    SubscriptionActivationError,
)
from academy.core.models import StudentSubscription, Subscription
from academy.db.session import run_bounded

from .schemas import StudentSubscriptionResponse, SubscriptionCreate, SubscriptionResponse

logger = logging.getLogger(__name__)


# ----- Plans -----
async def create_subscription(db: AsyncSession, payload: SubscriptionCreate) -> SubscriptionResponse:
    plan = Subscription(
        name=payload.name,
        hourly_rate=payload.hourly_rate,
        hours_per_month=payload.hours_per_month,
        max_free_absences=payload.max_free_absences,
        total_amount=payload.total_amount,
        currency=(payload.currency or settings.default_currency).upper(),
    )
    db.add(plan)
    await db.commit()
    await db.refresh(plan)
    return SubscriptionResponse.model_validate(plan)


async def list_subscriptions(db: AsyncSession, include_superseded: bool = False) -> List[SubscriptionResponse]:
    stmt = select(Subscription).order_by(Subscription.name, Subscription.created_at)
    if not include_superseded:
        stmt = stmt.where(Subscription.superseded_by_id.is_(None))
    result = await db.execute(stmt)
    return [SubscriptionResponse.model_validate(p) for p in result.scalars().all()]


async def _get_plan(db: AsyncSession, subscription_id: UUID) -> Subscription:
    plan = await db.get(Subscription, subscription_id)
    if not plan:
        raise ServiceError("Subscription not found", status.HTTP_404_NOT_FOUND)
    return plan


async def get_subscription(db: AsyncSession, subscription_id: UUID) -> SubscriptionResponse:
    return SubscriptionResponse.model_validate(await _get_plan(db, subscription_id))


async def supersede_subscription(
    db: AsyncSession,
    subscription_id: UUID,
    payload: SubscriptionCreate,
) -> SubscriptionResponse:
    """
    Change a plan's terms. Plans are never edited in place: a new plan is inserted and
    the old one points at it, so student subscriptions already bound to the old plan
    keep billing at the old rate.
    """
    old = await _get_plan(db, subscription_id)
    if old.superseded_by_id is not None:
        raise ServiceError("Subscription has already been superseded", status.HTTP_409_CONFLICT)

    new = Subscription(
        name=payload.name,
        hourly_rate=payload.hourly_rate,
        hours_per_month=payload.hours_per_month,
        max_free_absences=payload.max_free_absences,
        total_amount=payload.total_amount,
        currency=(payload.currency or old.currency).upper(),
    )
    db.add(new)
    await db.flush()
    old.superseded_by_id = new.id
    await db.commit()
    await db.refresh(new)
    logger.info("Subscription %s superseded by %s", old.id, new.id)
    return SubscriptionResponse.model_validate(new)


# ----- Student subscriptions -----
async def _commit_activation(db: AsyncSession, row: StudentSubscription) -> StudentSubscription:
    """Deactivate every other active row of the student and activate `row`, atomically."""
    try:
        stmt = update(StudentSubscription).where(
            StudentSubscription.student_id == row.student_id,
            StudentSubscription.status == SubscriptionStatus.ACTIVE.value,
        )
        if row.id is not None:
            stmt = stmt.where(StudentSubscription.id != row.id)
        result = await db.execute(stmt.values(status=SubscriptionStatus.INACTIVE.value))
        row.status = SubscriptionStatus.ACTIVE.value
        db.add(row)
        await db.commit()
    except IntegrityError:
        await db.rollback()
        logger.warning("Activation for student %s lost a concurrent race, rolled back", row.student_id)
        raise ConcurrencyConflict(
            "Another subscription was activated for this student at the same time; reload and retry"
        )
    except SQLAlchemyError:
        await db.rollback()
        logger.exception("Activation for student %s failed, rolled back", row.student_id)
        raise SubscriptionActivationError("Subscription activation failed and was rolled back; retry")

    await db.refresh(row)
    logger.info(
        "Student %s: subscription %s active for %s..%s (%d previous deactivated)",
        row.student_id,
        row.subscription_id,
        row.start_date,
        row.end_date,
        result.rowcount or 0,
    )
    return row


async def activate(
    db: AsyncSession,
    student_id: UUID,
    subscription_id: UUID,
    start_date: date,
    end_date: date,
    every_month: bool = False,
    timeout: Optional[float] = None,
) -> StudentSubscriptionResponse:
    """
    Make `subscription_id` the student's only active subscription for [start_date, end_date).
    `every_month` marks it as renewing monthly; it is stored only and does not
    change billing.

    Raises ConcurrencyConflict, SubscriptionActivationError or StoreTimeout; in every
    case nothing was committed.
    """
    if start_date >= end_date:
        raise ScheduleValidationError("start_date must be before end_date")

    async def _unit() -> StudentSubscription:
        await _get_plan(db, subscription_id)
        row = StudentSubscription(
            student_id=student_id,
            subscription_id=subscription_id,
            start_date=start_date,
            end_date=end_date,
            every_month=every_month,
        )
        return await _commit_activation(db, row)

    row = await run_bounded(db, "Subscription activation", _unit(), timeout)
    return StudentSubscriptionResponse.model_validate(row)


async def _get_student_subscription(db: AsyncSession, student_subscription_id: UUID) -> StudentSubscription:
    row = await db.get(StudentSubscription, student_subscription_id)
    if not row:
        raise ServiceError("Student subscription not found", status.HTTP_404_NOT_FOUND)
    return row


async def reactivate(
    db: AsyncSession,
    student_subscription_id: UUID,
    timeout: Optional[float] = None,
) -> StudentSubscriptionResponse:
    async def _unit() -> StudentSubscription:
        row = await _get_student_subscription(db, student_subscription_id)
        if row.status == SubscriptionStatus.ACTIVE.value:
            return row
        return await _commit_activation(db, row)

    row = await run_bounded(db, "Subscription reactivation", _unit(), timeout)
    return StudentSubscriptionResponse.model_validate(row)


async def deactivate(
    db: AsyncSession,
    student_subscription_id: UUID,
    timeout: Optional[float] = None,
) -> StudentSubscriptionResponse:
    """Idempotent: deactivating an inactive subscription is a no-op."""
    async def _unit() -> StudentSubscription:
        row = await _get_student_subscription(db, student_subscription_id)
        if row.status != SubscriptionStatus.INACTIVE.value:
            row.status = SubscriptionStatus.INACTIVE.value
            await db.commit()
            await db.refresh(row)
            logger.info("Student %s: subscription %s deactivated", row.student_id, row.id)
        return row

    row = await run_bounded(db, "Subscription deactivation", _unit(), timeout)
    return StudentSubscriptionResponse.model_validate(row)


async def _latest_active(
    db: AsyncSession,
    student_id: UUID,
    first_day: date,
    last_day: date,
) -> Optional[StudentSubscription]:
    """
    The student's active subscription overlapping [first_day, last_day].

    More than one match means the store is inconsistent: a DataIntegrityWarning is
    emitted and the most recently started one is returned.
    """
    result = await db.execute(
        select(StudentSubscription)
        .where(
            StudentSubscription.student_id == student_id,
            StudentSubscription.status == SubscriptionStatus.ACTIVE.value,
            StudentSubscription.start_date <= last_day,
            StudentSubscription.end_date > first_day,
        )
        .order_by(StudentSubscription.start_date.desc(), StudentSubscription.created_at.desc())
    )
    rows = result.scalars().all()
    if not rows:
        return None
    if len(rows) > 1:
        when = str(first_day) if first_day == last_day else f"{first_day}..{last_day}"
        message = (
            f"Student {student_id} has {len(rows)} active subscriptions on {when}; "
            f"using {rows[0].id} (latest start)"
        )
        logger.warning(message)
        warnings.warn(message, DataIntegrityWarning, stacklevel=3)
    return rows[0]


async def current_active(db: AsyncSession, student_id: UUID, as_of: date) -> Optional[StudentSubscription]:
    """The student's active subscription covering `as_of` (start inclusive, end exclusive)."""
    return await _latest_active(db, student_id, as_of, as_of)


async def active_during(
    db: AsyncSession,
    student_id: UUID,
    period_start: date,
    period_end: date,
) -> Optional[StudentSubscription]:
    """The student's active subscription overlapping the inclusive period, if any."""
    return await _latest_active(db, student_id, period_start, period_end)


async def list_student_subscriptions(db: AsyncSession, student_id: UUID) -> List[StudentSubscriptionResponse]:
    result = await db.execute(
        select(StudentSubscription)
        .where(StudentSubscription.student_id == student_id)
        .order_by(StudentSubscription.start_date.desc(), StudentSubscription.created_at.desc())
    )
    return [StudentSubscriptionResponse.model_validate(r) for r in result.scalars().all()]

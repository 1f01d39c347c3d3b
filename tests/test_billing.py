from datetime import date, datetime, timezone
from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from academy.api.v1.billing import service
from academy.api.v1.billing.formatting import format_billing_period, format_currency, month_range_label
from academy.api.v1.subscriptions import service as subscriptions
from academy.core.enums import SessionStatus
from academy.core.exceptions import NoActiveSubscription, ScheduleValidationError
from academy.core.models import StudentAttendance


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


async def _attend(db: AsyncSession, student_id, session, status: str) -> None:
    db.add(StudentAttendance(student_id=student_id, session_id=session.id, attendance_status=status))
    await db.commit()


@pytest.mark.asyncio
async def test_only_attended_hours_are_charged(db_session: AsyncSession, make_class, make_plan) -> None:
    student_id = uuid4()
    plan = await make_plan(hourly_rate="20.00", max_free_absences=2)
    await subscriptions.activate(db_session, student_id, plan.id, date(2025, 3, 1), date(2025, 4, 1))
    _, sessions = await make_class(
        student_ids=[student_id],
        sessions=[(utc(2025, 3, 3, 9), utc(2025, 3, 3, 10)), (utc(2025, 3, 10, 9), utc(2025, 3, 10, 10))],
    )
    await _attend(db_session, student_id, sessions[0], "present")

    bill = await service.calculate(db_session, student_id, date(2025, 3, 1), date(2025, 3, 31))

    assert bill.hours_attended == Decimal(1)
    assert bill.hours_scheduled == Decimal(2)
    assert bill.total_amount == Decimal(20)
    assert bill.sessions_scheduled == 2
    assert bill.sessions_attended == 1
    assert bill.free_absences_used == 1
    assert bill.free_absences_remaining == 1
    assert bill.sessions_attended + bill.free_absences_used == bill.sessions_scheduled
    assert bill.formatted_total_amount == "$20.00"
    assert bill.subscription_id == plan.id


@pytest.mark.asyncio
async def test_no_active_subscription(db_session: AsyncSession, make_class) -> None:
    student_id = uuid4()
    await make_class(student_ids=[student_id], sessions=[(utc(2025, 3, 3, 9), utc(2025, 3, 3, 10))])

    with pytest.raises(NoActiveSubscription) as exc:
        await service.calculate(db_session, student_id, date(2025, 3, 1), date(2025, 3, 31))
    assert exc.value.status_code == 404
    assert "no active subscription" in exc.value.message


@pytest.mark.asyncio
async def test_absent_excused_and_unmarked_are_never_charged(
    db_session: AsyncSession, make_class, make_plan
) -> None:
    student_id = uuid4()
    plan = await make_plan(hourly_rate="30.00", max_free_absences=1)
    await subscriptions.activate(db_session, student_id, plan.id, date(2025, 3, 1), date(2025, 4, 1))
    _, sessions = await make_class(
        student_ids=[student_id],
        sessions=[
            (utc(2025, 3, 3, 9), utc(2025, 3, 3, 10, 30)),
            (utc(2025, 3, 4, 9), utc(2025, 3, 4, 10)),
            (utc(2025, 3, 5, 9), utc(2025, 3, 5, 10)),
            (utc(2025, 3, 6, 9), utc(2025, 3, 6, 10)),
        ],
    )
    await _attend(db_session, student_id, sessions[0], "present")
    await _attend(db_session, student_id, sessions[1], "absent")
    await _attend(db_session, student_id, sessions[2], "excused")
    # sessions[3] unmarked

    bill = await service.calculate(db_session, student_id, date(2025, 3, 1), date(2025, 3, 31))
    assert bill.hours_attended == Decimal("1.5")
    assert bill.total_amount == Decimal(45)
    assert bill.free_absences_used == 3
    # Exceeding the allowance is reported, never charged
    assert bill.free_absences_remaining == 0


@pytest.mark.asyncio
async def test_cancelled_sessions_are_skipped(db_session: AsyncSession, make_class, make_plan) -> None:
    student_id = uuid4()
    plan = await make_plan()
    await subscriptions.activate(db_session, student_id, plan.id, date(2025, 3, 1), date(2025, 4, 1))
    _, sessions = await make_class(
        student_ids=[student_id],
        sessions=[(utc(2025, 3, 3, 9), utc(2025, 3, 3, 10)), (utc(2025, 3, 4, 9), utc(2025, 3, 4, 10))],
    )
    sessions[1].status = SessionStatus.CANCELLED.value
    await db_session.commit()

    bill = await service.calculate(db_session, student_id, date(2025, 3, 1), date(2025, 3, 31))
    assert bill.sessions_scheduled == 1
    assert bill.free_absences_used == 1
    assert bill.total_amount == Decimal(0)


@pytest.mark.asyncio
async def test_subscription_starting_mid_period_is_used(db_session: AsyncSession, make_class, make_plan) -> None:
    student_id = uuid4()
    plan = await make_plan()
    await subscriptions.activate(db_session, student_id, plan.id, date(2025, 3, 15), date(2025, 6, 1))

    bill = await service.calculate(db_session, student_id, date(2025, 3, 1), date(2025, 3, 31))
    assert bill.student_subscription_id is not None
    assert bill.sessions_scheduled == 0
    assert bill.total_amount == Decimal(0)


@pytest.mark.asyncio
async def test_calculate_monthly_uses_calendar_month(db_session: AsyncSession, make_class, make_plan) -> None:
    student_id = uuid4()
    plan = await make_plan(hourly_rate="10.00")
    await subscriptions.activate(db_session, student_id, plan.id, date(2024, 1, 1), date(2025, 1, 1))
    _, sessions = await make_class(
        student_ids=[student_id],
        sessions=[
            (utc(2024, 1, 31, 22), utc(2024, 1, 31, 23)),
            (utc(2024, 2, 1, 0), utc(2024, 2, 1, 1)),
            (utc(2024, 2, 29, 23), utc(2024, 2, 29, 23, 59)),
            (utc(2024, 3, 1, 0), utc(2024, 3, 1, 1)),
        ],
    )
    for s in sessions:
        await _attend(db_session, student_id, s, "present")

    bill = await service.calculate_monthly(db_session, student_id, 2024, 2)
    assert bill.period_start == date(2024, 2, 1)
    assert bill.period_end == date(2024, 2, 29)
    assert bill.sessions_attended == 2
    assert bill.billing_period == "2/1/2024 - 2/29/2024"
    assert bill.months == "2"

    with pytest.raises(ScheduleValidationError):
        await service.calculate_monthly(db_session, student_id, 2024, 13)


def test_format_currency_rounds_half_up() -> None:
    assert format_currency(Decimal("1234.5")) == "$1,234.50"
    assert format_currency(Decimal("0.125")) == "$0.13"
    assert format_currency(Decimal("20") / 3) == "$6.67"
    assert format_currency(Decimal("10"), "EUR") == "€10.00"
    assert format_currency(Decimal("10"), "chf") == "CHF 10.00"
    assert format_currency(Decimal("-5")) == "-$5.00"


def test_period_labels() -> None:
    assert format_billing_period(date(2025, 5, 1), date(2025, 5, 31)) == "5/1/2025 - 5/31/2025"
    assert month_range_label(date(2025, 5, 1), date(2025, 5, 31)) == "5"
    assert month_range_label(date(2025, 5, 1), date(2025, 7, 31)) == "5-7"
    assert month_range_label(date(2024, 11, 1), date(2025, 1, 31)) == "11/2024-1/2025"


@pytest.mark.asyncio
async def test_subscription_inside_the_period_is_used(db_session: AsyncSession, make_class, make_plan) -> None:
    student_id = uuid4()
    plan = await make_plan(hourly_rate="20.00")
    active = await subscriptions.activate(db_session, student_id, plan.id, date(2025, 1, 10), date(2025, 1, 20))
    _, sessions = await make_class(student_ids=[student_id], sessions=[(utc(2025, 1, 15, 9), utc(2025, 1, 15, 10))])
    await _attend(db_session, student_id, sessions[0], "present")

    bill = await service.calculate(db_session, student_id, date(2025, 1, 1), date(2025, 1, 31))
    assert bill.student_subscription_id == active.id
    assert bill.total_amount == Decimal(20)

    # Ended the day before the period starts: nothing to bill against
    with pytest.raises(NoActiveSubscription):
        await service.calculate(db_session, student_id, date(2025, 1, 20), date(2025, 1, 31))

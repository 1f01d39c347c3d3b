"""Scheduling service: commitment loading, conflict checks, availability and recurring commitments."""

import logging
from datetime import date, datetime, timedelta, timezone
from typing import Iterable, List, Optional
from uuid import UUID

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from academy.core.enums import CommitmentSource, DayOfWeek, Role, SessionStatus
from academy.core.intervals import (
    TimeSlot,
    WeeklySchedule,
    date_range_bounds,
    localize_schedule,
    validate_schedule,
    validate_slot,
)
from academy.core.models import (
    AcademyClass,
    ClassSession,
    ClassStudent,
    ClassTeacher,
    RecurringCommitment,
    TeacherAvailability,
)
from academy.db.session import run_bounded

from .detector import Conflict, DatedCommitment, WeeklyCommitment, find_availability_gaps, find_conflicts
from .schemas import (
    CommitmentCreate,
    CommitmentCreateResult,
    CommitmentResponse,
    ConflictCheckRequest,
    ConflictReport,
    OwnerConflicts,
    TeacherAvailabilityResponse,
    TeacherAvailabilityUpdate,
)

logger = logging.getLogger(__name__)


def _recurring_to_weekly(row: RecurringCommitment) -> WeeklyCommitment:
    return WeeklyCommitment(
        owner_id=row.owner_id,
        day=DayOfWeek(row.day_of_week),
        slot=TimeSlot(start=row.start_time, end=row.end_time),
        source=CommitmentSource.WEEKLY,
        reference_id=row.id,
        label=row.label,
    )


async def list_person_sessions(
    db: AsyncSession,
    person_id: UUID,
    starts_from: datetime,
    starts_until: datetime,
    exclude_class_id: Optional[UUID] = None,
    exclude_session_ids: Iterable[UUID] = (),
) -> List[DatedCommitment]:
    """Non-cancelled sessions the person teaches or attends, starting inside the bounds."""
    taught = select(ClassTeacher.class_id).where(ClassTeacher.teacher_id == person_id)
    attended = select(ClassStudent.class_id).where(ClassStudent.student_id == person_id)
    stmt = (
        select(ClassSession, AcademyClass.title)
        .join(AcademyClass, ClassSession.class_id == AcademyClass.id)
        .where(
            or_(ClassSession.class_id.in_(taught), ClassSession.class_id.in_(attended)),
            ClassSession.start_date >= starts_from,
            ClassSession.start_date <= starts_until,
            ClassSession.status != SessionStatus.CANCELLED.value,
        )
        .order_by(ClassSession.start_date)
    )
    if exclude_class_id is not None:
        stmt = stmt.where(ClassSession.class_id != exclude_class_id)
    excluded = list(exclude_session_ids)
    if excluded:
        stmt = stmt.where(ClassSession.id.not_in(excluded))
    result = await db.execute(stmt)
    return [
        DatedCommitment(
            owner_id=person_id,
            starts_at=session.start_date,
            ends_at=session.end_date,
            reference_id=session.id,
            label=title,
        )
        for session, title in result.all()
    ]


async def load_commitments(
    db: AsyncSession,
    person_id: UUID,
    start_date: date,
    end_date: date,
    exclude_class_id: Optional[UUID] = None,
    exclude_session_ids: Iterable[UUID] = (),
    timezone_name: Optional[str] = None,
) -> List[WeeklyCommitment]:
    """
    Everything a person is already committed to in the window, as weekly commitments:
    their recurring commitments plus the sessions they teach or attend, normalized
    from concrete dates to day-of-week slots. The window dates are read in
    `timezone_name` (UTC when omitted).
    """
    result = await db.execute(
        select(RecurringCommitment).where(RecurringCommitment.owner_id == person_id)
    )
    commitments = [_recurring_to_weekly(row) for row in result.scalars().all()]

    starts_from, starts_until = date_range_bounds(start_date, end_date, timezone_name)
    sessions = await list_person_sessions(
        db, person_id, starts_from, starts_until, exclude_class_id, exclude_session_ids
    )
    commitments.extend(s.to_weekly() for s in sessions)
    return commitments


async def get_availability_schedule(db: AsyncSession, teacher_id: UUID) -> Optional[WeeklySchedule]:
    result = await db.execute(
        select(TeacherAvailability).where(TeacherAvailability.teacher_id == teacher_id)
    )
    row = result.scalar_one_or_none()
    if not row:
        return None
    return WeeklySchedule.model_validate(row.weekly_schedule or {})


async def check_person(
    db: AsyncSession,
    person_id: UUID,
    role: Role,
    schedule: WeeklySchedule,
    start_date: date,
    end_date: date,
    exclude_class_id: Optional[UUID] = None,
    exclude_session_ids: Iterable[UUID] = (),
    check_availability: bool = True,
    timezone_name: Optional[str] = None,
) -> OwnerConflicts:
    existing = await load_commitments(
        db, person_id, start_date, end_date, exclude_class_id, exclude_session_ids, timezone_name
    )
    conflicts: List[Conflict] = find_conflicts(schedule, existing)
    if role == Role.TEACHER and check_availability:
        availability = await get_availability_schedule(db, person_id)
        # A teacher who never declared availability is not restricted
        if availability is not None:
            conflicts.extend(find_availability_gaps(schedule, availability, person_id))
    return OwnerConflicts(
        owner_id=person_id,
        role=role,
        has_conflict=bool(conflicts),
        conflicts=conflicts,
    )


async def collect_conflicts(db: AsyncSession, payload: ConflictCheckRequest) -> ConflictReport:
    """Check a candidate weekly schedule for several teachers and students at once."""
    schedule = payload.utc_schedule()
    validate_schedule(schedule)

    results: List[OwnerConflicts] = []
    for teacher_id in payload.teacher_ids:
        results.append(
            await check_person(
                db, teacher_id, Role.TEACHER, schedule, payload.start_date, payload.end_date,
                exclude_class_id=payload.exclude_class_id,
                check_availability=payload.check_availability,
                timezone_name=payload.timezone,
            )
        )
    for student_id in payload.student_ids:
        results.append(
            await check_person(
                db, student_id, Role.STUDENT, schedule, payload.start_date, payload.end_date,
                exclude_class_id=payload.exclude_class_id,
                timezone_name=payload.timezone,
            )
        )
    has_conflict = any(r.has_conflict for r in results)
    if has_conflict:
        logger.info(
            "Conflict check found %d conflict(s) across %d people",
            sum(len(r.conflicts) for r in results),
            len(results),
        )
    return ConflictReport(has_conflict=has_conflict, weekly_schedule=schedule, results=results)


async def check_conflicts(
    db: AsyncSession,
    payload: ConflictCheckRequest,
    timeout: Optional[float] = None,
) -> ConflictReport:
    return await run_bounded(db, "Conflict check", collect_conflicts(db, payload), timeout)


# ----- Teacher availability -----
async def get_teacher_availability(
    db: AsyncSession,
    teacher_id: UUID,
) -> Optional[TeacherAvailabilityResponse]:
    result = await db.execute(
        select(TeacherAvailability).where(TeacherAvailability.teacher_id == teacher_id)
    )
    row = result.scalar_one_or_none()
    if not row:
        return None
    return TeacherAvailabilityResponse(
        teacher_id=row.teacher_id,
        weekly_schedule=WeeklySchedule.model_validate(row.weekly_schedule or {}),
        updated_at=row.updated_at,
    )


async def set_teacher_availability(
    db: AsyncSession,
    teacher_id: UUID,
    payload: TeacherAvailabilityUpdate,
) -> TeacherAvailabilityResponse:
    schedule = payload.weekly_schedule
    if payload.timezone:
        schedule = localize_schedule(schedule, payload.timezone)
    validate_schedule(schedule)

    result = await db.execute(
        select(TeacherAvailability).where(TeacherAvailability.teacher_id == teacher_id)
    )
    row = result.scalar_one_or_none()
    stored = schedule.model_dump(mode="json")
    if row is None:
        row = TeacherAvailability(teacher_id=teacher_id, weekly_schedule=stored)
        db.add(row)
    else:
        row.weekly_schedule = stored
    await db.commit()
    await db.refresh(row)
    return TeacherAvailabilityResponse(
        teacher_id=row.teacher_id,
        weekly_schedule=schedule,
        updated_at=row.updated_at,
    )


# ----- Recurring commitments -----
async def create_commitment(db: AsyncSession, payload: CommitmentCreate) -> CommitmentCreateResult:
    slot = TimeSlot(start=payload.start_time, end=payload.end_time)
    validate_slot(slot)

    if payload.check_conflicts:
        window_start = payload.window_start or datetime.now(timezone.utc).date()
        window_end = payload.window_end or window_start + timedelta(days=6)
        candidate = WeeklySchedule.from_slots([(payload.day_of_week, slot)])
        existing = await load_commitments(db, payload.owner_id, window_start, window_end)
        conflicts = find_conflicts(candidate, existing)
        if conflicts:
            return CommitmentCreateResult(created=False, conflicts=conflicts)

    row = RecurringCommitment(
        owner_id=payload.owner_id,
        day_of_week=int(payload.day_of_week),
        start_time=slot.start,
        end_time=slot.end,
        label=payload.label,
    )
    db.add(row)
    await db.commit()
    await db.refresh(row)
    return CommitmentCreateResult(created=True, commitment=CommitmentResponse.model_validate(row))


async def list_commitments(db: AsyncSession, owner_id: UUID) -> List[CommitmentResponse]:
    result = await db.execute(
        select(RecurringCommitment)
        .where(RecurringCommitment.owner_id == owner_id)
        .order_by(RecurringCommitment.day_of_week, RecurringCommitment.start_time)
    )
    return [CommitmentResponse.model_validate(row) for row in result.scalars().all()]


async def delete_commitment(db: AsyncSession, commitment_id: UUID) -> bool:
    row = await db.get(RecurringCommitment, commitment_id)
    if not row:
        return False
    await db.delete(row)
    await db.commit()
    return True

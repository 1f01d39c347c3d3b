"""Classes and their sessions: creation with conflict check, materialization, cancel/reschedule."""

import logging
from datetime import date
from typing import List, Optional
from uuid import UUID

from fastapi import status
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from academy.core.enums import Role, SessionStatus
from academy.core.exceptions import ScheduleValidationError, ServiceError
from academy.core.intervals import (
    WeeklySchedule,
    as_utc,
    dated_occurrences,
    minutes_between,
    validate_schedule,
    weekly_from_dated,
)
from academy.core.models import AcademyClass, ClassSession, ClassStudent, ClassTeacher
from academy.db.session import run_bounded

from academy.api.v1.scheduling import service as scheduling_service
from academy.api.v1.scheduling.schemas import ConflictCheckRequest, OwnerConflicts

from .schemas import (
    ClassCreate,
    ClassCreateResult,
    ClassResponse,
    RescheduleResult,
    SessionReschedule,
    SessionResponse,
)

logger = logging.getLogger(__name__)


def _class_to_response(
    c: AcademyClass,
    teacher_ids: Optional[List[UUID]] = None,
    student_ids: Optional[List[UUID]] = None,
) -> ClassResponse:
    if teacher_ids is None:
        teacher_ids = [t.teacher_id for t in c.teachers]
    if student_ids is None:
        student_ids = [s.student_id for s in c.students]
    return ClassResponse(
        id=c.id,
        title=c.title,
        description=c.description,
        subject=c.subject,
        start_date=c.start_date,
        end_date=c.end_date,
        weekly_schedule=WeeklySchedule.model_validate(c.weekly_schedule or {}),
        status=c.status,
        class_link=c.class_link,
        created_by=c.created_by,
        teacher_ids=teacher_ids,
        student_ids=student_ids,
        created_at=c.created_at,
    )


def session_to_response(s: ClassSession) -> SessionResponse:
    return SessionResponse(
        id=s.id,
        class_id=s.class_id,
        start_date=as_utc(s.start_date),
        end_date=as_utc(s.end_date),
        status=SessionStatus(s.status),
        duration_minutes=minutes_between(s.start_date, s.end_date),
        cancellation_reason=s.cancellation_reason,
        cancelled_by=s.cancelled_by,
    )


def materialize_sessions(
    class_id: UUID,
    schedule: WeeklySchedule,
    start_date: date,
    end_date: date,
    timezone_name: Optional[str] = None,
) -> List[ClassSession]:
    """One scheduled session per weekly slot occurrence in [start_date, end_date].

    `schedule` and the dates are wall-clock in `timezone_name` (UTC when omitted);
    each occurrence is converted with the offset of its own date.
    """
    sessions = []
    for starts_at, ends_at in dated_occurrences(schedule, start_date, end_date, timezone_name):
        sessions.append(
            ClassSession(
                class_id=class_id,
                start_date=starts_at,
                end_date=ends_at,
                status=SessionStatus.SCHEDULED.value,
            )
        )
    return sessions


async def create_class(
    db: AsyncSession,
    payload: ClassCreate,
    created_by: Optional[UUID] = None,
    timeout: Optional[float] = None,
) -> ClassCreateResult:
    """
    Check the class schedule against every teacher's and student's commitments, then
    persist class, enrollments and sessions in one transaction. With conflicts and no
    `force`, nothing is written and the conflicts are returned.

    Check and write together are bounded by `timeout`; on expiry StoreTimeout is
    raised and nothing was committed.
    """
    schedule = payload.utc_schedule()
    validate_schedule(schedule)
    if schedule.is_empty():
        raise ScheduleValidationError("Class needs at least one weekly time slot")
    return await run_bounded(db, "Class creation", _create_class(db, payload, schedule, created_by), timeout)


async def _create_class(
    db: AsyncSession,
    payload: ClassCreate,
    schedule: WeeklySchedule,
    created_by: Optional[UUID],
) -> ClassCreateResult:
    teacher_ids = list(dict.fromkeys(payload.teacher_ids))
    student_ids = list(dict.fromkeys(payload.student_ids))
    report = await scheduling_service.collect_conflicts(
        db,
        ConflictCheckRequest(
            weekly_schedule=payload.weekly_schedule,
            timezone=payload.timezone,
            start_date=payload.start_date,
            end_date=payload.end_date,
            teacher_ids=teacher_ids,
            student_ids=student_ids,
            check_availability=payload.check_availability,
        ),
    )
    if report.has_conflict and not payload.force:
        return ClassCreateResult(created=False, conflicts=report)
    if report.has_conflict:
        logger.warning("Creating class %r despite %d conflict(s) (forced)", payload.title, len(report.conflicts))

    try:
        obj = AcademyClass(
            title=payload.title,
            description=payload.description,
            subject=payload.subject,
            start_date=payload.start_date,
            end_date=payload.end_date,
            weekly_schedule=schedule.model_dump(mode="json"),
            class_link=payload.class_link,
            created_by=created_by,
        )
        db.add(obj)
        await db.flush()
        db.add_all(ClassTeacher(class_id=obj.id, teacher_id=t) for t in teacher_ids)
        db.add_all(ClassStudent(class_id=obj.id, student_id=s) for s in student_ids)
        sessions = materialize_sessions(
            obj.id, payload.weekly_schedule, payload.start_date, payload.end_date, payload.timezone
        )
        db.add_all(sessions)
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ServiceError("Class creation failed", status.HTTP_409_CONFLICT)

    logger.info("Created class %s with %d session(s)", obj.id, len(sessions))
    return ClassCreateResult(
        created=True,
        academy_class=_class_to_response(obj, teacher_ids, student_ids),
        sessions_created=len(sessions),
        conflicts=report,
    )


async def get_class(db: AsyncSession, class_id: UUID) -> Optional[ClassResponse]:
    result = await db.execute(select(AcademyClass).where(AcademyClass.id == class_id))
    obj = result.scalar_one_or_none()
    return _class_to_response(obj) if obj else None


async def list_class_sessions(
    db: AsyncSession,
    class_id: UUID,
    session_status: Optional[SessionStatus] = None,
) -> List[SessionResponse]:
    stmt = select(ClassSession).where(ClassSession.class_id == class_id)
    if session_status is not None:
        stmt = stmt.where(ClassSession.status == session_status.value)
    stmt = stmt.order_by(ClassSession.start_date)
    result = await db.execute(stmt)
    return [session_to_response(s) for s in result.scalars().all()]


async def _get_session(db: AsyncSession, session_id: UUID) -> ClassSession:
    session = await db.get(ClassSession, session_id)
    if not session:
        raise ServiceError("Session not found", status.HTTP_404_NOT_FOUND)
    return session


async def cancel_session(
    db: AsyncSession,
    session_id: UUID,
    reason: Optional[str],
    cancelled_by: Optional[UUID],
) -> SessionResponse:
    session = await _get_session(db, session_id)
    if session.status == SessionStatus.COMPLETED.value:
        raise ScheduleValidationError("Cannot cancel a completed session")
    if session.status != SessionStatus.CANCELLED.value:
        session.status = SessionStatus.CANCELLED.value
        session.cancellation_reason = reason
        session.cancelled_by = cancelled_by
        await db.commit()
        await db.refresh(session)
        logger.info("Session %s cancelled by %s", session_id, cancelled_by)
    return session_to_response(session)


async def complete_session(db: AsyncSession, session_id: UUID) -> SessionResponse:
    session = await _get_session(db, session_id)
    if session.status == SessionStatus.CANCELLED.value:
        raise ScheduleValidationError("Cannot complete a cancelled session")
    if session.status != SessionStatus.COMPLETED.value:
        session.status = SessionStatus.COMPLETED.value
        await db.commit()
        await db.refresh(session)
    return session_to_response(session)


async def _participants(db: AsyncSession, class_id: UUID):
    teachers = await db.execute(select(ClassTeacher.teacher_id).where(ClassTeacher.class_id == class_id))
    students = await db.execute(select(ClassStudent.student_id).where(ClassStudent.class_id == class_id))
    return list(teachers.scalars().all()), list(students.scalars().all())


async def reschedule_session(
    db: AsyncSession,
    session_id: UUID,
    payload: SessionReschedule,
    timeout: Optional[float] = None,
) -> RescheduleResult:
    """
    Move one session to a new date/time. The new range is normalized to its weekday
    slot and compared with what each participant has on that calendar date.
    """
    return await run_bounded(db, "Session reschedule", _reschedule_session(db, session_id, payload), timeout)


async def _reschedule_session(
    db: AsyncSession,
    session_id: UUID,
    payload: SessionReschedule,
) -> RescheduleResult:
    session = await _get_session(db, session_id)
    if session.status != SessionStatus.SCHEDULED.value:
        raise ScheduleValidationError(f"Cannot reschedule a {session.status} session")

    day, slot = weekly_from_dated(payload.start_date, payload.end_date)
    candidate = WeeklySchedule.from_slots([(day, slot)])
    on = as_utc(payload.start_date).date()

    teacher_ids, student_ids = await _participants(db, session.class_id)
    results: List[OwnerConflicts] = []
    for person_id, role in [(t, Role.TEACHER) for t in teacher_ids] + [(s, Role.STUDENT) for s in student_ids]:
        checked = await scheduling_service.check_person(
            db, person_id, role, candidate, on, on,
            exclude_session_ids=[session.id],
            check_availability=payload.check_availability,
        )
        if checked.has_conflict:
            results.append(checked)

    if results and not payload.force:
        return RescheduleResult(rescheduled=False, session=session_to_response(session), conflicts=results)

    session.start_date = as_utc(payload.start_date)
    session.end_date = as_utc(payload.end_date)
    await db.commit()
    await db.refresh(session)
    logger.info("Session %s rescheduled to %s", session_id, session.start_date)
    return RescheduleResult(rescheduled=True, session=session_to_response(session), conflicts=results)

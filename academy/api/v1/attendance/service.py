"""Attendance ledger: which sessions a student was expected at, and what was recorded."""

import logging
from datetime import date, datetime
from typing import List, Optional, Tuple
from uuid import UUID

from fastapi import status
from sqlalchemy import and_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from academy.core.enums import AttendanceOutcome, AttendanceStatus, SessionStatus
from academy.core.exceptions import ScheduleValidationError, ServiceError
from academy.core.intervals import date_range_bounds
from academy.core.models import ClassSession, ClassStudent, StudentAttendance

from academy.api.v1.classes.service import session_to_response

from .schemas import LedgerEntry, StudentAttendanceBulkMark, StudentAttendanceRecord, StudentLedger

logger = logging.getLogger(__name__)

_OUTCOMES = {
    AttendanceStatus.PRESENT.value: AttendanceOutcome.PRESENT,
    AttendanceStatus.ABSENT.value: AttendanceOutcome.ABSENT,
    AttendanceStatus.EXCUSED.value: AttendanceOutcome.EXCUSED,
}


def outcome_of(record: Optional[StudentAttendance]) -> AttendanceOutcome:
    """No record, or an `expected` placeholder, is UNMARKED; never ABSENT."""
    if record is None:
        return AttendanceOutcome.UNMARKED
    return _OUTCOMES.get(record.attendance_status, AttendanceOutcome.UNMARKED)


async def sessions_in_range(
    db: AsyncSession,
    student_id: UUID,
    start: datetime,
    end: datetime,
) -> List[Tuple[ClassSession, Optional[StudentAttendance]]]:
    """
    Sessions of every class the student is enrolled in whose start lies in [start, end],
    ordered by start, each paired with the student's attendance record or None.
    Cancelled sessions are included; callers decide what to do with them.
    """
    stmt = (
        select(ClassSession, StudentAttendance)
        .join(
            ClassStudent,
            and_(ClassStudent.class_id == ClassSession.class_id, ClassStudent.student_id == student_id),
        )
        .outerjoin(
            StudentAttendance,
            and_(
                StudentAttendance.session_id == ClassSession.id,
                StudentAttendance.student_id == student_id,
            ),
        )
        .where(ClassSession.start_date >= start, ClassSession.start_date <= end)
        .order_by(ClassSession.start_date, ClassSession.id)
    )
    result = await db.execute(stmt)
    return [(session, record) for session, record in result.all()]


async def get_student_ledger(
    db: AsyncSession,
    student_id: UUID,
    start_date: date,
    end_date: date,
) -> StudentLedger:
    if end_date < start_date:
        raise ScheduleValidationError("end_date must not be before start_date")
    start, end = date_range_bounds(start_date, end_date)
    pairs = await sessions_in_range(db, student_id, start, end)
    return StudentLedger(
        student_id=student_id,
        start_date=start_date,
        end_date=end_date,
        entries=[
            LedgerEntry(
                session=session_to_response(session),
                attendance_status=AttendanceStatus(record.attendance_status) if record else None,
                outcome=outcome_of(record),
            )
            for session, record in pairs
        ],
    )


async def mark_attendance(
    db: AsyncSession,
    session_id: UUID,
    payload: StudentAttendanceBulkMark,
    marked_by: Optional[UUID],
) -> List[StudentAttendanceRecord]:
    """Upsert one record per (student, session). Marking `expected` resets a student to unmarked."""
    session = await db.get(ClassSession, session_id)
    if not session:
        raise ServiceError("Session not found", status.HTTP_404_NOT_FOUND)
    if session.status == SessionStatus.CANCELLED.value:
        raise ScheduleValidationError("Cannot mark attendance for a cancelled session")

    enrolled = await db.execute(
        select(ClassStudent.student_id).where(ClassStudent.class_id == session.class_id)
    )
    enrolled_ids = set(enrolled.scalars().all())
    not_enrolled = [r.student_id for r in payload.records if r.student_id not in enrolled_ids]
    if not_enrolled:
        raise ScheduleValidationError(
            f"Students not enrolled in this class: {', '.join(str(s) for s in not_enrolled)}"
        )

    existing = await db.execute(
        select(StudentAttendance).where(StudentAttendance.session_id == session_id)
    )
    by_student = {row.student_id: row for row in existing.scalars().all()}

    rows = []
    try:
        # Last mark wins when a student appears twice in one request
        for mark in payload.records:
            row = by_student.get(mark.student_id)
            if row is None:
                row = StudentAttendance(
                    student_id=mark.student_id,
                    session_id=session_id,
                    attendance_status=mark.status.value,
                    marked_by=marked_by,
                )
                db.add(row)
                by_student[mark.student_id] = row
            else:
                row.attendance_status = mark.status.value
                row.marked_by = marked_by
            if row not in rows:
                rows.append(row)
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ServiceError("Attendance was marked concurrently; reload and retry", status.HTTP_409_CONFLICT)

    for row in rows:
        await db.refresh(row)
    logger.info("Marked attendance for %d student(s) in session %s", len(rows), session_id)
    return [StudentAttendanceRecord.model_validate(row) for row in rows]


async def list_session_attendance(db: AsyncSession, session_id: UUID) -> List[StudentAttendanceRecord]:
    result = await db.execute(
        select(StudentAttendance)
        .where(StudentAttendance.session_id == session_id)
        .order_by(StudentAttendance.student_id)
    )
    return [StudentAttendanceRecord.model_validate(row) for row in result.scalars().all()]

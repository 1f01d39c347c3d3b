"""Attendance API router."""

from datetime import date
from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from academy.auth.dependencies import get_current_user
from academy.auth.rbac import ensure_self_or_staff, require_roles
from academy.auth.schemas import CurrentUser
from academy.core.enums import Role
from academy.core.exceptions import ServiceError
from academy.db.session import get_db

from . import service
from .schemas import StudentAttendanceBulkMark, StudentAttendanceRecord, StudentLedger

router = APIRouter(prefix="/api/v1/attendance", tags=["attendance"])


@router.post(
    "/sessions/{session_id}",
    response_model=List[StudentAttendanceRecord],
    status_code=status.HTTP_201_CREATED,
)
async def mark_attendance(
    session_id: UUID,
    payload: StudentAttendanceBulkMark,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_roles(Role.MODERATOR, Role.TEACHER)),
) -> List[StudentAttendanceRecord]:
    """Mark students of one session. Re-marking overwrites the previous status."""
    try:
        return await service.mark_attendance(db, session_id, payload, current_user.id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get(
    "/sessions/{session_id}",
    response_model=List[StudentAttendanceRecord],
    dependencies=[Depends(require_roles(Role.MODERATOR, Role.TEACHER))],
)
async def list_session_attendance(
    session_id: UUID,
    db: AsyncSession = Depends(get_db),
) -> List[StudentAttendanceRecord]:
    return await service.list_session_attendance(db, session_id)


@router.get(
    "/students/{student_id}",
    response_model=StudentLedger,
)
async def get_student_ledger(
    student_id: UUID,
    start_date: date = Query(..., description="First day, inclusive"),
    end_date: date = Query(..., description="Last day, inclusive"),
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> StudentLedger:
    """Sessions the student was expected at in the range, with present/absent/excused/unmarked."""
    ensure_self_or_staff(current_user, student_id)
    try:
        return await service.get_student_ledger(db, student_id, start_date, end_date)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)

from datetime import date, datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from academy.core.enums import AttendanceOutcome, AttendanceStatus

from academy.api.v1.classes.schemas import SessionResponse


class StudentAttendanceMark(BaseModel):
    """Mark attendance for a single student."""

    student_id: UUID
    status: AttendanceStatus = Field(..., description="present, absent, excused or expected (reset)")


class StudentAttendanceBulkMark(BaseModel):
    """Mark several students of one session."""

    records: List[StudentAttendanceMark] = Field(..., min_length=1)


class StudentAttendanceRecord(BaseModel):
    id: UUID
    student_id: UUID
    session_id: UUID
    attendance_status: AttendanceStatus
    marked_by: Optional[UUID] = None
    updated_at: datetime

    class Config:
        from_attributes = True


class LedgerEntry(BaseModel):
    """One session of the student's ledger. `outcome` is UNMARKED when nothing was recorded."""

    session: SessionResponse
    attendance_status: Optional[AttendanceStatus] = None
    outcome: AttendanceOutcome


class StudentLedger(BaseModel):
    student_id: UUID
    start_date: date
    end_date: date
    entries: List[LedgerEntry]

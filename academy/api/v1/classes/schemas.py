from datetime import date, datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field, model_validator

from academy.core.enums import SessionStatus
from academy.core.intervals import WeeklySchedule, as_utc, localize_schedule

from academy.api.v1.scheduling.schemas import ConflictReport, OwnerConflicts


class ClassCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    subject: str = Field(..., min_length=1, max_length=255)
    start_date: date
    end_date: date
    weekly_schedule: WeeklySchedule
    # IANA name the slots are written in; omitted means UTC
    timezone: Optional[str] = None
    teacher_ids: List[UUID] = Field(..., min_length=1)
    student_ids: List[UUID] = Field(default_factory=list)
    class_link: Optional[str] = Field(None, max_length=500)
    check_availability: bool = True
    # Persist even when conflicts were found (admin override)
    force: bool = False

    @model_validator(mode="after")
    def validate_range(self) -> "ClassCreate":
        if self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self

    def utc_schedule(self) -> WeeklySchedule:
        if not self.timezone:
            return self.weekly_schedule
        return localize_schedule(self.weekly_schedule, self.timezone, reference=self.start_date)


class ClassResponse(BaseModel):
    id: UUID
    title: str
    description: Optional[str] = None
    subject: str
    start_date: date
    end_date: date
    weekly_schedule: WeeklySchedule
    status: str
    class_link: Optional[str] = None
    created_by: Optional[UUID] = None
    teacher_ids: List[UUID]
    student_ids: List[UUID]
    created_at: datetime


class ClassCreateResult(BaseModel):
    created: bool
    academy_class: Optional[ClassResponse] = None
    sessions_created: int = 0
    conflicts: ConflictReport


class SessionResponse(BaseModel):
    id: UUID
    class_id: UUID
    start_date: datetime
    end_date: datetime
    status: SessionStatus
    duration_minutes: int
    cancellation_reason: Optional[str] = None
    cancelled_by: Optional[UUID] = None


class SessionCancel(BaseModel):
    reason: Optional[str] = Field(None, max_length=1000)


class SessionReschedule(BaseModel):
    start_date: datetime
    end_date: datetime
    check_availability: bool = True
    force: bool = False

    @model_validator(mode="after")
    def validate_range(self) -> "SessionReschedule":
        if as_utc(self.end_date) <= as_utc(self.start_date):
            raise ValueError("end_date must be after start_date")
        return self


class RescheduleResult(BaseModel):
    rescheduled: bool
    session: SessionResponse
    conflicts: List[OwnerConflicts] = Field(default_factory=list)

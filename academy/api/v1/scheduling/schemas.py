from datetime import date, datetime, time
from typing import List, Optional, Union
from uuid import UUID

from pydantic import BaseModel, Field, field_serializer, field_validator, model_validator

from academy.core.enums import DayOfWeek, Role
from academy.core.intervals import WeeklySchedule, localize_schedule, parse_time_of_day

from .detector import Conflict


class ConflictCheckRequest(BaseModel):
    """Candidate weekly schedule to check for the given people over [start_date, end_date]."""

    weekly_schedule: WeeklySchedule
    # IANA name the slots are written in; omitted means the slots are already UTC
    timezone: Optional[str] = None
    start_date: date
    end_date: date
    teacher_ids: List[UUID] = Field(default_factory=list)
    student_ids: List[UUID] = Field(default_factory=list)
    exclude_class_id: Optional[UUID] = None
    check_availability: bool = True

    @model_validator(mode="after")
    def validate_range(self) -> "ConflictCheckRequest":
        if self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self

    def utc_schedule(self) -> WeeklySchedule:
        if not self.timezone:
            return self.weekly_schedule
        return localize_schedule(self.weekly_schedule, self.timezone, reference=self.start_date)


class OwnerConflicts(BaseModel):
    owner_id: UUID
    role: Role
    has_conflict: bool
    conflicts: List[Conflict]


class ConflictReport(BaseModel):
    """Result of a conflict check. Conflicts are data to display, not an error."""

    has_conflict: bool
    weekly_schedule: WeeklySchedule  # as compared, in UTC
    results: List[OwnerConflicts]

    @property
    def conflicts(self) -> List[Conflict]:
        return [c for r in self.results for c in r.conflicts]


class TeacherAvailabilityUpdate(BaseModel):
    weekly_schedule: WeeklySchedule
    timezone: Optional[str] = None


class TeacherAvailabilityResponse(BaseModel):
    teacher_id: UUID
    weekly_schedule: WeeklySchedule
    updated_at: datetime


class CommitmentCreate(BaseModel):
    owner_id: UUID
    day_of_week: DayOfWeek = Field(..., description="0=Monday .. 6=Sunday")
    start_time: Union[str, time] = Field(..., description="24-hour UTC, e.g. 09:00")
    end_time: Union[str, time] = Field(..., description="24-hour UTC, e.g. 09:45")
    label: Optional[str] = Field(None, max_length=255)
    check_conflicts: bool = True
    # Sessions inside this window are compared too; defaults to the coming week
    window_start: Optional[date] = None
    window_end: Optional[date] = None

    @field_validator("start_time", "end_time", mode="before")
    @classmethod
    def parse_time(cls, v: Union[str, time]) -> time:
        return parse_time_of_day(v)


class CommitmentResponse(BaseModel):
    id: UUID
    owner_id: UUID
    day_of_week: DayOfWeek
    start_time: time
    end_time: time
    label: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True

    @field_serializer("start_time", "end_time")
    def serialize_time_24(self, t: time) -> str:
        """Output as 24-hour string HH:MM (e.g. 09:00, 09:45)."""
        return t.strftime("%H:%M")


class CommitmentCreateResult(BaseModel):
    created: bool
    commitment: Optional[CommitmentResponse] = None
    conflicts: List[Conflict] = Field(default_factory=list)

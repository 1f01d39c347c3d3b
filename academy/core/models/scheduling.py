"""Recurring weekly commitments and teacher availability."""

import uuid
from datetime import datetime

from sqlalchemy import JSON, CheckConstraint, Column, DateTime, Integer, String, Time, Uuid

from academy.db.session import Base


class RecurringCommitment(Base):
    """A recurring block of a person's week (teacher or student), in UTC."""

    __tablename__ = "weekly_commitments"
    __table_args__ = (
        CheckConstraint("day_of_week BETWEEN 0 AND 6", name="chk_weekly_commitment_day"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    owner_id = Column(Uuid, nullable=False, index=True)
    day_of_week = Column(Integer, nullable=False)  # 0=Monday .. 6=Sunday
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    label = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)


class TeacherAvailability(Base):
    """When a teacher may be booked. One row per teacher."""

    __tablename__ = "teacher_availability"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    teacher_id = Column(Uuid, nullable=False, unique=True)
    # {"monday": [{"start": "08:00", "end": "12:00"}], ...} in UTC
    weekly_schedule = Column(JSON, nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

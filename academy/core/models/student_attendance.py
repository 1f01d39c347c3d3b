import uuid
from datetime import datetime

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, String, UniqueConstraint, Uuid

from academy.db.session import Base


class StudentAttendance(Base):
    """Student attendance: one per student per session. Written with upsert semantics."""

    __tablename__ = "student_attendance"
    __table_args__ = (
        UniqueConstraint("student_id", "session_id", name="uq_student_attendance_session"),
        CheckConstraint(
            "attendance_status IN ('present','absent','excused','expected')",
            name="chk_student_attendance_status",
        ),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    student_id = Column(Uuid, nullable=False, index=True)
    # RESTRICT: a session is never deleted while attendance references it
    session_id = Column(Uuid, ForeignKey("class_sessions.id", ondelete="RESTRICT"), nullable=False)
    attendance_status = Column(String(20), nullable=False)  # present, absent, excused, expected
    marked_by = Column(Uuid, nullable=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

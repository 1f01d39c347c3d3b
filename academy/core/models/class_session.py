import uuid
from datetime import datetime

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, String, Text, Uuid
from sqlalchemy.orm import relationship

from academy.core.enums import SessionStatus
from academy.db.session import Base


class ClassSession(Base):
    """Concrete occurrence of a class. start_date/end_date are UTC timestamps."""

    __tablename__ = "class_sessions"
    __table_args__ = (
        CheckConstraint(
            "status IN ('scheduled','completed','cancelled')",
            name="chk_class_session_status",
        ),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    class_id = Column(Uuid, ForeignKey("classes.id", ondelete="RESTRICT"), nullable=False, index=True)
    start_date = Column(DateTime(timezone=True), nullable=False, index=True)
    end_date = Column(DateTime(timezone=True), nullable=False)
    status = Column(String(20), nullable=False, default=SessionStatus.SCHEDULED.value)
    cancellation_reason = Column(Text, nullable=True)
    cancelled_by = Column(Uuid, nullable=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    academy_class = relationship("AcademyClass", lazy="joined")

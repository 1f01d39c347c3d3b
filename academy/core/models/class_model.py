import uuid
from datetime import datetime

from sqlalchemy import JSON, Column, Date, DateTime, ForeignKey, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import relationship

from academy.core.enums import ClassStatus
from academy.db.session import Base


class AcademyClass(Base):
    """A recurring class. weekly_schedule holds the UTC slots sessions are materialized from."""

    __tablename__ = "classes"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    subject = Column(String(255), nullable=False)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    # {"monday": [{"start": "09:00", "end": "10:00"}], ...}
    weekly_schedule = Column(JSON, nullable=False, default=dict)
    status = Column(String(20), nullable=False, default=ClassStatus.ACTIVE.value)
    class_link = Column(String(500), nullable=True)
    created_by = Column(Uuid, nullable=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)

    teachers = relationship("ClassTeacher", cascade="all, delete-orphan", lazy="selectin")
    students = relationship("ClassStudent", cascade="all, delete-orphan", lazy="selectin")


class ClassTeacher(Base):
    __tablename__ = "class_teachers"
    __table_args__ = (UniqueConstraint("class_id", "teacher_id", name="uq_class_teacher"),)

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    class_id = Column(Uuid, ForeignKey("classes.id", ondelete="CASCADE"), nullable=False)
    teacher_id = Column(Uuid, nullable=False, index=True)


class ClassStudent(Base):
    """Enrollment mapping. Students of a class are enrolled in every session of it."""

    __tablename__ = "class_students"
    __table_args__ = (UniqueConstraint("class_id", "student_id", name="uq_class_student"),)

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    class_id = Column(Uuid, ForeignKey("classes.id", ondelete="CASCADE"), nullable=False)
    student_id = Column(Uuid, nullable=False, index=True)

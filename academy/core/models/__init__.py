from academy.core.models.class_model import AcademyClass, ClassStudent, ClassTeacher
from academy.core.models.class_session import ClassSession
from academy.core.models.scheduling import RecurringCommitment, TeacherAvailability
from academy.core.models.student_attendance import StudentAttendance
from academy.core.models.student_subscription import StudentSubscription
from academy.core.models.subscription import Subscription

__all__ = [
    "AcademyClass",
    "ClassSession",
    "ClassStudent",
    "ClassTeacher",
    "RecurringCommitment",
    "StudentAttendance",
    "StudentSubscription",
    "Subscription",
    "TeacherAvailability",
]

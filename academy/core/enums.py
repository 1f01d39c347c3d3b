from enum import Enum, IntEnum


class DayOfWeek(IntEnum):
    MONDAY = 0
    TUESDAY = 1
    WEDNESDAY = 2
    THURSDAY = 3
    FRIDAY = 4
    SATURDAY = 5
    SUNDAY = 6

    @property
    def key(self) -> str:
        """Lowercase key used in serialized weekly schedules (e.g. "monday")."""
        return self.name.lower()

    @property
    def label(self) -> str:
        return self.name.capitalize()

    @classmethod
    def from_key(cls, key: str) -> "DayOfWeek":
        return cls[key.strip().upper()]


class Role(str, Enum):
    ADMIN = "admin"
    MODERATOR = "moderator"
    TEACHER = "teacher"
    STUDENT = "student"
    PARENT = "parent"


class ClassStatus(str, Enum):
    ACTIVE = "active"
    ARCHIVED = "archived"


class SessionStatus(str, Enum):
    SCHEDULED = "scheduled"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class AttendanceStatus(str, Enum):
    """Values stored in student_attendance.attendance_status."""

    PRESENT = "present"
    ABSENT = "absent"
    EXCUSED = "excused"
    # Placeholder row written before a teacher marks the session
    EXPECTED = "expected"


class AttendanceOutcome(str, Enum):
    """What the ledger reports for a (session, student) pair."""

    PRESENT = "present"
    ABSENT = "absent"
    EXCUSED = "excused"
    UNMARKED = "unmarked"


class SubscriptionStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class CommitmentSource(str, Enum):
    WEEKLY = "weekly"
    SESSION = "session"


class ConflictKind(str, Enum):
    OVERLAP = "overlap"
    OUTSIDE_AVAILABILITY = "outside_availability"

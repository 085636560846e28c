"""
Enumerations shared by models, schemas and services.
"""

from enum import Enum


class UserRole(str, Enum):
    """Roles supplied by the identity provider."""

    TEACHER = "teacher"
    ADMIN = "admin"


class ViolationStatus(str, Enum):
    """Lifecycle of a violation."""

    PENDING = "pending"
    ATTENDED = "attended"
    ABSENT = "absent"
    REASSIGNED = "reassigned"
    COMPLETED = "completed"


class AttendanceStatus(str, Enum):
    """Attendance record states."""

    PENDING = "pending"
    ATTENDED = "attended"
    ABSENT = "absent"
    REASSIGNED = "reassigned"


class AbsenceReason(str, Enum):
    """Reason codes attached to an attendance record."""

    UNEXCUSED = "unexcused"
    EXCUSED = "excused"
    MEDICAL = "medical"
    SCHOOL_EVENT = "school_event"
    OTHER = "other"


class NotificationKind(str, Enum):
    DETENTION_ASSIGNED = "detention_assigned"
    DETENTION_RESCHEDULED = "detention_rescheduled"


class NotificationStatus(str, Enum):
    QUEUED = "queued"
    SENT = "sent"
    FAILED = "failed"


# Statuses whose date a student is still expected to attend
BOOKED_VIOLATION_STATUSES = (
    ViolationStatus.PENDING,
    ViolationStatus.ABSENT,
    ViolationStatus.REASSIGNED,
)

# Statuses that still hold a seat on their slot; released on archive or
# when the violation is moved to another date
SEAT_HOLDING_STATUSES = (
    ViolationStatus.PENDING,
    ViolationStatus.ABSENT,
    ViolationStatus.REASSIGNED,
)

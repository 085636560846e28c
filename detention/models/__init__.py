"""
Database models.

Importing this package registers every table on ``Base.metadata``.
"""

from detention.models.base import Base
from detention.models.detention import (
    AbsenceLogEntry,
    AttendanceRecord,
    DetentionSlot,
    NotificationQueueItem,
    Student,
    Violation,
    StudentWarning,
)

__all__ = [
    "Base",
    "AbsenceLogEntry",
    "AttendanceRecord",
    "DetentionSlot",
    "NotificationQueueItem",
    "Student",
    "Violation",
    "StudentWarning",
]

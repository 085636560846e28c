"""
Detention domain models.
"""

from detention.models.detention.attendance_record import AbsenceLogEntry, AttendanceRecord
from detention.models.detention.detention_slot import DetentionSlot
from detention.models.detention.notification_queue import NotificationQueueItem
from detention.models.detention.student import Student
from detention.models.detention.violation import Violation, StudentWarning

__all__ = [
    "AbsenceLogEntry",
    "AttendanceRecord",
    "DetentionSlot",
    "NotificationQueueItem",
    "Student",
    "Violation",
    "StudentWarning",
]

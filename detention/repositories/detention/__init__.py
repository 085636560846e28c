"""
Detention repositories.
"""

from detention.repositories.detention.attendance_repository import (
    AbsenceLogRepository,
    AttendanceRecordRepository,
)
from detention.repositories.detention.notification_queue_repository import NotificationQueueRepository
from detention.repositories.detention.slot_repository import SlotRepository
from detention.repositories.detention.student_repository import StudentRepository
from detention.repositories.detention.violation_repository import ViolationRepository, WarningRepository

__all__ = [
    "AbsenceLogRepository",
    "AttendanceRecordRepository",
    "NotificationQueueRepository",
    "SlotRepository",
    "StudentRepository",
    "ViolationRepository",
    "WarningRepository",
]

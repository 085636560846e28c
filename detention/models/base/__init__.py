"""
Base models package.

Provides the declarative base, abstract base classes and enums for all
database models.
"""

from detention.models.base.base_model import Base, BaseModel, TimestampModel, generate_id
from detention.models.base.enums import (
    AbsenceReason,
    AttendanceStatus,
    BOOKED_VIOLATION_STATUSES,
    NotificationKind,
    NotificationStatus,
    SEAT_HOLDING_STATUSES,
    UserRole,
    ViolationStatus,
)

__all__ = [
    "Base",
    "BaseModel",
    "TimestampModel",
    "generate_id",
    "AbsenceReason",
    "AttendanceStatus",
    "BOOKED_VIOLATION_STATUSES",
    "NotificationKind",
    "NotificationStatus",
    "SEAT_HOLDING_STATUSES",
    "UserRole",
    "ViolationStatus",
]

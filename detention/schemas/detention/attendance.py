"""
Attendance schemas.
"""

from datetime import date, datetime
from typing import List, Optional

from pydantic import Field

from detention.models.base.enums import AbsenceReason, AttendanceStatus
from detention.schemas.common.base import BaseCreateSchema, BaseDBSchema, BaseSchema, BaseUpdateSchema

__all__ = [
    "AttendanceMarkRequest",
    "AttendanceAmendRequest",
    "AttendanceBatchItem",
    "AttendanceBatchRequest",
    "AttendanceRecordResponse",
    "AbsenceLogCorrection",
    "AbsenceLogResponse",
    "SessionOpenResponse",
]


class AttendanceMarkRequest(BaseCreateSchema):
    status: AttendanceStatus = Field(..., description="attended or absent")
    reason: Optional[AbsenceReason] = Field(default=None, description="Absence reason")
    notes: Optional[str] = Field(default=None, max_length=2000)
    session_date: Optional[date] = Field(default=None, description="Session being marked")


class AttendanceAmendRequest(BaseUpdateSchema):
    status: Optional[AttendanceStatus] = None
    reason: Optional[AbsenceReason] = None
    notes: Optional[str] = Field(default=None, max_length=2000)
    attendance_id: Optional[str] = Field(default=None, description="Historical record to correct")


class AttendanceBatchItem(BaseSchema):
    violation_id: str
    status: AttendanceStatus
    reason: Optional[AbsenceReason] = None
    notes: Optional[str] = Field(default=None, max_length=2000)


class AttendanceBatchRequest(BaseSchema):
    slot_date: date
    items: List[AttendanceBatchItem] = Field(..., min_length=1)


class AttendanceRecordResponse(BaseDBSchema):
    violation_id: str
    student_id: str
    detention_date: date
    status: AttendanceStatus
    reason: AbsenceReason
    notes: Optional[str] = None
    is_current: bool
    marked_by: Optional[str] = None
    marked_at: Optional[datetime] = None
    amended_by: Optional[str] = None
    amended_at: Optional[datetime] = None
    reassigned_at: Optional[datetime] = None
    reassigned_to_date: Optional[date] = None


class AbsenceLogCorrection(BaseUpdateSchema):
    reason: Optional[AbsenceReason] = None
    absence_date: Optional[date] = None


class AbsenceLogResponse(BaseSchema):
    id: str
    attendance_id: str
    violation_id: str
    student_id: str
    absence_date: date
    recorded_at: datetime
    reason: AbsenceReason
    marked_by: str
    corrected_by: Optional[str] = None
    corrected_at: Optional[datetime] = None


class SessionOpenResponse(BaseSchema):
    slot_date: date
    activated: int

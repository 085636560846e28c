from detention.schemas.detention.attendance import (
    AbsenceLogCorrection,
    AbsenceLogResponse,
    AttendanceAmendRequest,
    AttendanceBatchItem,
    AttendanceBatchRequest,
    AttendanceMarkRequest,
    AttendanceRecordResponse,
    SessionOpenResponse,
)
from detention.schemas.detention.reassignment import ReassignmentOutcomeResponse, ReassignmentRequest
from detention.schemas.detention.slot import SlotCreate, SlotResponse, SlotUpdate
from detention.schemas.detention.student import ReconciliationSummary
from detention.schemas.detention.violation import (
    ViolationCreate,
    ViolationResponse,
    WarningCreate,
    WarningResponse,
)

__all__ = [
    "AbsenceLogCorrection",
    "AbsenceLogResponse",
    "AttendanceAmendRequest",
    "AttendanceBatchItem",
    "AttendanceBatchRequest",
    "AttendanceMarkRequest",
    "AttendanceRecordResponse",
    "ReassignmentOutcomeResponse",
    "ReassignmentRequest",
    "ReconciliationSummary",
    "SessionOpenResponse",
    "SlotCreate",
    "SlotResponse",
    "SlotUpdate",
    "ViolationCreate",
    "ViolationResponse",
    "WarningCreate",
    "WarningResponse",
]

"""
Violation and warning schemas.
"""

from datetime import date, datetime
from typing import Optional

from pydantic import Field

from detention.models.base.enums import ViolationStatus
from detention.schemas.common.base import BaseCreateSchema, BaseDBSchema

__all__ = ["ViolationCreate", "ViolationResponse", "WarningCreate", "WarningResponse"]


class ViolationCreate(BaseCreateSchema):
    student_id: str = Field(..., min_length=1)
    violation_type: str = Field(..., min_length=1, max_length=120, description="e.g. Late to class")
    detention_date: date = Field(..., description="Slot date to book")


class ViolationResponse(BaseDBSchema):
    student_id: str
    violation_type: str
    detention_date: date
    original_detention_date: date
    slot_id: Optional[str] = None
    status: ViolationStatus
    issued_by: str
    is_archived: bool
    assigned_at: Optional[datetime] = None


class WarningCreate(BaseCreateSchema):
    student_id: str = Field(..., min_length=1)
    violation_type: str = Field(..., min_length=1, max_length=120)


class WarningResponse(BaseDBSchema):
    student_id: str
    violation_type: str
    issued_by: str
    is_archived: bool

"""
Reassignment schemas.
"""

from datetime import date
from typing import Dict, List, Optional

from pydantic import Field, model_validator

from detention.schemas.common.base import BaseSchema

__all__ = ["ReassignmentRequest", "ReassignmentOutcomeResponse"]


class ReassignmentRequest(BaseSchema):
    """
    Reassign the absentees of ``absent_date``.

    ``overrides`` maps violation id to an explicit target date and wins
    over ``auto_assign`` for that violation.
    """

    absent_date: date
    auto_assign: bool = True
    overrides: Dict[str, date] = Field(default_factory=dict)
    violation_ids: Optional[List[str]] = Field(
        default=None,
        description="Violations to move; defaults to every absentee of the date",
    )

    @model_validator(mode="after")
    def _targets_after_absence(self) -> "ReassignmentRequest":
        early = [vid for vid, target in self.overrides.items() if target <= self.absent_date]
        if early:
            raise ValueError(f"Override dates must be after {self.absent_date}: {', '.join(early)}")
        return self


class ReassignmentOutcomeResponse(BaseSchema):
    violation_id: str
    student_id: str
    from_date: date
    to_date: date
    slot_id: Optional[str] = None
    attendance_id: str
    already_applied: bool = False

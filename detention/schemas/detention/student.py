"""
Student counter schemas.
"""

from pydantic import Field

from detention.schemas.common.base import BaseSchema

__all__ = ["ReconciliationSummary"]


class ReconciliationSummary(BaseSchema):
    checked: int = Field(..., ge=0)
    corrected: int = Field(..., ge=0)
    skipped: int = Field(..., ge=0)

"""
Detention slot schemas.
"""

from datetime import date
from typing import Optional

from pydantic import Field, computed_field

from detention.schemas.common.base import BaseCreateSchema, BaseDBSchema, BaseUpdateSchema

__all__ = ["SlotCreate", "SlotUpdate", "SlotResponse"]


class SlotCreate(BaseCreateSchema):
    """Supervisor sign-up for a detention date."""

    slot_date: date = Field(..., description="Session date")
    capacity: Optional[int] = Field(default=None, ge=1, description="Seats offered")
    location: Optional[str] = Field(default=None, max_length=120, description="Room")


class SlotUpdate(BaseUpdateSchema):
    capacity: Optional[int] = Field(default=None, ge=1)
    location: Optional[str] = Field(default=None, min_length=1, max_length=120)


class SlotResponse(BaseDBSchema):
    slot_date: date
    capacity: int
    booked_count: int
    location: str
    supervisor_id: str

    @computed_field  # type: ignore[misc]
    @property
    def remaining(self) -> int:
        return self.capacity - self.booked_count

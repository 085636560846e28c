"""
Detention slot model.

One row per supervisor sign-up for a date; ``booked_count`` is only ever
changed through conditional updates in the slot repository.
"""

from datetime import date

from sqlalchemy import CheckConstraint, Date, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from detention.models.base.base_model import TimestampModel

__all__ = ["DetentionSlot"]


class DetentionSlot(TimestampModel):
    """Capacity-bounded detention session on a calendar day."""

    __tablename__ = "detention_slots"

    slot_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    capacity: Mapped[int] = mapped_column(Integer, nullable=False, default=20)
    booked_count: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        server_default="0",
    )
    location: Mapped[str] = mapped_column(String(120), nullable=False, default="Cafeteria")
    supervisor_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)

    __table_args__ = (
        UniqueConstraint("slot_date", "supervisor_id", name="uq_slot_date_supervisor"),
        CheckConstraint("capacity >= 1", name="ck_slot_capacity_positive"),
        CheckConstraint("booked_count >= 0", name="ck_slot_booked_non_negative"),
        CheckConstraint("booked_count <= capacity", name="ck_slot_booked_within_capacity"),
        Index("ix_slot_date_booked", "slot_date", "booked_count"),
    )

    @property
    def remaining(self) -> int:
        return self.capacity - self.booked_count

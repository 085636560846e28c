"""
Detention slot repository.

Every change to ``booked_count`` and every capacity edit is a single
conditional UPDATE/DELETE, so concurrent callers never race on a read
followed by a write.
"""

from datetime import date
from typing import Iterator, List, Optional

from sqlalchemy import delete, select, update
from sqlalchemy.orm import Session

from detention.models.detention.detention_slot import DetentionSlot
from detention.repositories.base.base_repository import BaseRepository


class SlotRepository(BaseRepository[DetentionSlot]):
    """Repository for detention slots and their seat counters."""

    def __init__(self, session: Session):
        super().__init__(DetentionSlot, session)

    def create_slot(
        self,
        slot_date: date,
        capacity: int,
        location: str,
        supervisor_id: str,
    ) -> DetentionSlot:
        return self.add(
            DetentionSlot(
                slot_date=slot_date,
                capacity=capacity,
                booked_count=0,
                location=location,
                supervisor_id=supervisor_id,
            )
        )

    def find_by_date(self, slot_date: date, supervisor_id: Optional[str] = None) -> List[DetentionSlot]:
        """Slots on a date in sign-up order."""
        stmt = select(DetentionSlot).where(DetentionSlot.slot_date == slot_date)
        if supervisor_id:
            stmt = stmt.where(DetentionSlot.supervisor_id == supervisor_id)
        stmt = stmt.order_by(DetentionSlot.created_at, DetentionSlot.id).execution_options(
            populate_existing=True
        )
        return list(self.db.execute(stmt).scalars().all())

    def try_reserve(self, slot_id: str) -> bool:
        """
        Take one seat if the slot is not full.

        Returns:
            True if a seat was taken
        """
        stmt = (
            update(DetentionSlot)
            .where(
                DetentionSlot.id == slot_id,
                DetentionSlot.booked_count < DetentionSlot.capacity,
            )
            .values(booked_count=DetentionSlot.booked_count + 1)
            .execution_options(synchronize_session=False)
        )
        return self.db.execute(stmt).rowcount == 1

    def release(self, slot_id: str) -> bool:
        """
        Give one seat back, never going below zero.

        Returns:
            True if a seat was released
        """
        stmt = (
            update(DetentionSlot)
            .where(DetentionSlot.id == slot_id, DetentionSlot.booked_count > 0)
            .values(booked_count=DetentionSlot.booked_count - 1)
            .execution_options(synchronize_session=False)
        )
        return self.db.execute(stmt).rowcount == 1

    def update_details(
        self,
        slot_id: str,
        capacity: Optional[int] = None,
        location: Optional[str] = None,
    ) -> bool:
        """
        Change capacity and/or location; capacity never drops below the seats taken.

        Returns:
            True if the row was updated
        """
        values = {}
        stmt = update(DetentionSlot).where(DetentionSlot.id == slot_id)
        if capacity is not None:
            values["capacity"] = capacity
            stmt = stmt.where(DetentionSlot.booked_count <= capacity)
        if location is not None:
            values["location"] = location
        if not values:
            return True
        stmt = stmt.values(**values).execution_options(synchronize_session=False)
        return self.db.execute(stmt).rowcount == 1

    def delete_if_empty(self, slot_id: str) -> bool:
        stmt = (
            delete(DetentionSlot)
            .where(DetentionSlot.id == slot_id, DetentionSlot.booked_count == 0)
            .execution_options(synchronize_session=False)
        )
        return self.db.execute(stmt).rowcount == 1

    def iter_available(self, after_date: date, batch_size: int = 50) -> Iterator[DetentionSlot]:
        """
        Lazily stream slots strictly after ``after_date`` with a free seat,
        ascending by date.
        """
        stmt = (
            select(DetentionSlot)
            .where(
                DetentionSlot.slot_date > after_date,
                DetentionSlot.booked_count < DetentionSlot.capacity,
            )
            .order_by(DetentionSlot.slot_date, DetentionSlot.created_at, DetentionSlot.id)
            .execution_options(yield_per=batch_size, populate_existing=True)
        )
        result = self.db.execute(stmt)
        try:
            yield from result.scalars()
        finally:
            result.close()

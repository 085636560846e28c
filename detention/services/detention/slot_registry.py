"""
Slot registry: detention slot sign-up, seat reservation and the
availability search used by reassignment.
"""

from contextlib import closing
from datetime import date
from itertools import islice
from typing import Callable, Iterable, Iterator, List, Optional

from sqlalchemy.orm import Session

from detention.config.settings import settings
from detention.core.exceptions import (
    CapacityExceededError,
    ConflictError,
    ForbiddenError,
    ResourceNotFoundError,
    ValidationError,
)
from detention.models.detention.detention_slot import DetentionSlot
from detention.repositories.detention.slot_repository import SlotRepository
from detention.services.base.base_service import Actor, BaseService
from detention.services.base.service_result import ServiceResult


class SlotRegistry(BaseService[DetentionSlot, SlotRepository]):
    """
    Owns detention slots and their seat counters.

    Public methods run in their own transaction and return a
    ServiceResult. The ``*_seat`` methods run inside the caller's
    transaction and raise typed errors instead.
    """

    def __init__(self, db_session: Session, today: Callable[[], date] = date.today):
        super().__init__(SlotRepository(db_session), db_session)
        self._today = today

    # -------------------------------------------------------------------------
    # Sign-up and maintenance
    # -------------------------------------------------------------------------

    def create_slot(
        self,
        slot_date: date,
        owner: Actor,
        capacity: Optional[int] = None,
        location: Optional[str] = None,
    ) -> ServiceResult[DetentionSlot]:
        """
        Sign a supervisor up for a detention date.

        Args:
            slot_date: Calendar day of the session
            owner: Supervising staff member
            capacity: Seats offered (defaults to DEFAULT_SLOT_CAPACITY)
            location: Room name (defaults to DEFAULT_SLOT_LOCATION)

        Returns:
            ServiceResult containing the new slot
        """
        try:
            capacity = settings.DEFAULT_SLOT_CAPACITY if capacity is None else capacity
            location = (location or settings.DEFAULT_SLOT_LOCATION).strip()
            self._validate_slot_input(slot_date, capacity, location)

            with self.transaction("create slot"):
                if self.repository.find_by_date(slot_date, owner.user_id):
                    raise ConflictError(
                        f"Date {slot_date} already assigned to this supervisor",
                        details={"slot_date": slot_date.isoformat(), "supervisor_id": owner.user_id},
                    )
                slot = self.repository.create_slot(slot_date, capacity, location, owner.user_id)

            self._log_operation(
                "create slot",
                slot.id,
                {"slot_date": slot_date.isoformat(), "capacity": capacity, "supervisor_id": owner.user_id},
            )
            return ServiceResult.success(slot, message="Detention slot created")
        except Exception as e:
            return self._handle_exception(e, "create slot", slot_date)

    def update_slot(
        self,
        slot_id: str,
        actor: Actor,
        capacity: Optional[int] = None,
        location: Optional[str] = None,
    ) -> ServiceResult[DetentionSlot]:
        """Change capacity or location; capacity may not go below the seats already taken."""
        try:
            if capacity is not None and not 1 <= capacity <= settings.MAX_SLOT_CAPACITY:
                raise ValidationError(
                    f"Capacity must be between 1 and {settings.MAX_SLOT_CAPACITY}",
                    field_errors={"capacity": ["out of range"]},
                )
            if location is not None and not location.strip():
                raise ValidationError("Location cannot be blank", field_errors={"location": ["blank"]})

            with self.transaction("update slot"):
                slot = self.repository.get_or_raise(slot_id)
                self._check_owner(slot, actor)
                updated = self.repository.update_details(
                    slot_id,
                    capacity=capacity,
                    location=location.strip() if location is not None else None,
                )
                if not updated:
                    slot = self.repository.refresh(slot)
                    raise ValidationError(
                        f"Capacity cannot be set below the {slot.booked_count} seat(s) already booked",
                        field_errors={"capacity": ["below booked count"]},
                    )
                slot = self.repository.refresh(slot)

            self._log_operation("update slot", slot_id, {"capacity": capacity, "location": location})
            return ServiceResult.success(slot, message="Detention slot updated")
        except Exception as e:
            return self._handle_exception(e, "update slot", slot_id)

    def delete_slot(self, slot_id: str, actor: Optional[Actor] = None) -> ServiceResult[bool]:
        """Delete an empty slot; occupied slots raise ConflictError."""
        try:
            with self.transaction("delete slot"):
                slot = self.repository.get_or_raise(slot_id)
                if actor is not None:
                    self._check_owner(slot, actor)
                if not self.repository.delete_if_empty(slot_id):
                    raise ConflictError(
                        "Cannot delete a slot with assigned students",
                        details={"slot_id": slot_id, "booked_count": slot.booked_count},
                    )

            self._log_operation("delete slot", slot_id)
            return ServiceResult.success(True, message="Detention slot deleted")
        except Exception as e:
            return self._handle_exception(e, "delete slot", slot_id)

    def get_slot(self, slot_id: str) -> ServiceResult[DetentionSlot]:
        try:
            slot = self.repository.get_by_id(slot_id)
            if slot is None:
                return ServiceResult.not_found("DetentionSlot", slot_id)
            return ServiceResult.success(slot)
        except Exception as e:
            return self._handle_exception(e, "get slot", slot_id)

    # -------------------------------------------------------------------------
    # Seats
    # -------------------------------------------------------------------------

    def reserve(self, slot_date: date, owner: Optional[str] = None) -> ServiceResult[DetentionSlot]:
        """Take one seat on ``slot_date`` in its own transaction."""
        try:
            with self.transaction("reserve seat"):
                slot = self.reserve_seat(slot_date, owner)
            return ServiceResult.success(slot, message="Seat reserved")
        except Exception as e:
            return self._handle_exception(e, "reserve seat", slot_date)

    def release(self, slot_date: date, owner: Optional[str] = None) -> ServiceResult[Optional[DetentionSlot]]:
        """Give one seat back on ``slot_date``; a no-op when nothing is booked."""
        try:
            with self.transaction("release seat"):
                released = None
                for slot in reversed(self.repository.find_by_date(slot_date, owner)):
                    if self.repository.release(slot.id):
                        released = self.repository.refresh(slot)
                        break
            return ServiceResult.success(
                released,
                message="Seat released" if released else "No booked seat to release",
            )
        except Exception as e:
            return self._handle_exception(e, "release seat", slot_date)

    def reserve_seat(self, slot_date: date, owner: Optional[str] = None) -> DetentionSlot:
        """
        Take one seat on the date within the current transaction.

        Slots on the date are tried in sign-up order; each attempt is a
        single conditional increment.

        Raises:
            ResourceNotFoundError: If no slot is scheduled on the date
            CapacityExceededError: If every slot on the date is full
        """
        slots = self.repository.find_by_date(slot_date, owner)
        if not slots:
            raise ResourceNotFoundError(
                "DetentionSlot",
                message=f"No detention slot scheduled on {slot_date}",
            )
        for slot in slots:
            if self.repository.try_reserve(slot.id):
                return self.repository.refresh(slot)
        raise CapacityExceededError(slot_date)

    def reserve_seat_in(self, slot: DetentionSlot) -> bool:
        """Take one seat in a specific slot within the current transaction."""
        if self.repository.try_reserve(slot.id):
            self.repository.refresh(slot)
            return True
        return False

    def release_seat(self, slot_id: Optional[str]) -> bool:
        """Give one seat back within the current transaction, floored at zero."""
        if not slot_id:
            return False
        released = self.repository.release(slot_id)
        if not released:
            self._logger.warning(
                f"Release on slot {slot_id} skipped: no booked seat",
                extra={"slot_id": slot_id},
            )
        return released

    # -------------------------------------------------------------------------
    # Availability
    # -------------------------------------------------------------------------

    def list_available(self, after_date: date) -> Iterator[DetentionSlot]:
        """Lazily yield slots after ``after_date`` with a free seat, earliest first."""
        return self.repository.iter_available(after_date)

    def list_available_slots(self, after_date: date, limit: int) -> ServiceResult[List[DetentionSlot]]:
        """First ``limit`` available slots after ``after_date``."""
        try:
            with closing(self.list_available(after_date)) as slots:
                return ServiceResult.success(list(islice(slots, limit)))
        except Exception as e:
            return self._handle_exception(e, "list available slots", after_date)

    def iter_candidate_slots(self, after_date: date, exclude_dates: Iterable[date] = ()) -> Iterator[DetentionSlot]:
        """Available slots after ``after_date`` whose date is not excluded."""
        excluded = set(exclude_dates)
        for slot in self.list_available(after_date):
            if slot.slot_date not in excluded:
                yield slot

    # -------------------------------------------------------------------------
    # Validation
    # -------------------------------------------------------------------------

    def _validate_slot_input(self, slot_date: date, capacity: int, location: str) -> None:
        field_errors = {}
        if slot_date < self._today():
            field_errors["slot_date"] = ["date is in the past"]
        if not 1 <= capacity <= settings.MAX_SLOT_CAPACITY:
            field_errors["capacity"] = [f"must be between 1 and {settings.MAX_SLOT_CAPACITY}"]
        if not location:
            field_errors["location"] = ["required"]
        if field_errors:
            raise ValidationError("Invalid detention slot", field_errors=field_errors)

    @staticmethod
    def _check_owner(slot: DetentionSlot, actor: Actor) -> None:
        if not actor.is_admin and slot.supervisor_id != actor.user_id:
            raise ForbiddenError(
                "Only the supervising teacher or an administrator may change this slot",
                details={"slot_id": slot.id},
            )

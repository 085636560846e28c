from datetime import date, timedelta

import pytest

from detention.config.settings import settings
from detention.core.exceptions import CapacityExceededError, ResourceNotFoundError
from detention.models.detention.detention_slot import DetentionSlot
from detention.services.base.service_result import ErrorCode
from detention.services.detention.slot_registry import SlotRegistry


class TestCreateSlot:
    def test_defaults_applied(self, db, teacher, base_date):
        result = SlotRegistry(db).create_slot(base_date, teacher)

        assert result.is_success
        slot = result.data
        assert slot.capacity == settings.DEFAULT_SLOT_CAPACITY
        assert slot.location == settings.DEFAULT_SLOT_LOCATION
        assert slot.booked_count == 0
        assert slot.supervisor_id == teacher.user_id

    def test_past_date_rejected(self, db, teacher):
        result = SlotRegistry(db).create_slot(date.today() - timedelta(days=1), teacher)

        assert not result.is_success
        assert result.error_code == ErrorCode.VALIDATION_ERROR

    @pytest.mark.parametrize("capacity", [0, -3, 51])
    def test_capacity_out_of_range(self, db, teacher, base_date, capacity):
        result = SlotRegistry(db).create_slot(base_date, teacher, capacity=capacity)

        assert result.error_code == ErrorCode.VALIDATION_ERROR
        assert db.query(DetentionSlot).count() == 0

    def test_same_supervisor_same_day_conflicts(self, db, teacher, other_teacher, base_date):
        registry = SlotRegistry(db)
        assert registry.create_slot(base_date, teacher).is_success

        duplicate = registry.create_slot(base_date, teacher)
        second_room = registry.create_slot(base_date, other_teacher, location="Library")

        assert duplicate.error_code == ErrorCode.CONFLICT
        assert second_room.is_success


class TestReserveAndRelease:
    def test_reserve_until_full(self, db, make_slot, base_date):
        slot = make_slot(base_date, capacity=2)
        registry = SlotRegistry(db)

        assert registry.reserve(base_date).is_success
        assert registry.reserve(base_date).is_success
        third = registry.reserve(base_date)

        assert third.error_code == ErrorCode.CAPACITY_EXCEEDED
        assert registry.repository.refresh(slot).booked_count == 2

    def test_reserve_spills_to_second_slot_on_same_date(self, db, make_slot, base_date):
        first = make_slot(base_date, capacity=1)
        second = make_slot(base_date, capacity=1)
        registry = SlotRegistry(db)

        assert registry.reserve(base_date).is_success
        assert registry.reserve(base_date).is_success
        assert registry.reserve(base_date).error_code == ErrorCode.CAPACITY_EXCEEDED

        booked = {registry.repository.refresh(s).booked_count for s in (first, second)}
        assert booked == {1}

    def test_reserve_without_slot_is_not_found(self, db, base_date):
        result = SlotRegistry(db).reserve(base_date)

        assert result.error_code == ErrorCode.NOT_FOUND

    def test_reserve_seat_raises_inside_transaction(self, db, make_slot, base_date):
        make_slot(base_date, capacity=1)
        registry = SlotRegistry(db)
        registry.reserve(base_date)

        with pytest.raises(CapacityExceededError):
            registry.reserve_seat(base_date)
        with pytest.raises(ResourceNotFoundError):
            registry.reserve_seat(base_date + timedelta(days=1))
        db.rollback()

    def test_release_is_floored_at_zero(self, db, make_slot, base_date):
        slot = make_slot(base_date, capacity=2)
        registry = SlotRegistry(db)

        registry.reserve(base_date)
        assert registry.release(base_date).data is not None
        empty_release = registry.release(base_date)

        assert empty_release.is_success
        assert empty_release.data is None
        assert registry.repository.refresh(slot).booked_count == 0


class TestListAvailable:
    def test_only_later_slots_with_room_ascending(self, db, make_slot, base_date):
        make_slot(base_date, capacity=3)
        full = make_slot(base_date + timedelta(days=1), capacity=1)
        make_slot(base_date + timedelta(days=4), capacity=2)
        make_slot(base_date + timedelta(days=2), capacity=2)
        registry = SlotRegistry(db)
        registry.reserve(full.slot_date)

        dates = [slot.slot_date for slot in registry.list_available(base_date)]

        assert dates == [base_date + timedelta(days=2), base_date + timedelta(days=4)]

    def test_is_lazy(self, db, make_slot, base_date):
        for offset in range(1, 4):
            make_slot(base_date + timedelta(days=offset))

        available = SlotRegistry(db).list_available(base_date)

        assert next(available).slot_date == base_date + timedelta(days=1)
        available.close()

    def test_limited_listing_closes_the_cursor(self, db, make_slot, base_date, monkeypatch):
        for offset in range(1, 4):
            make_slot(base_date + timedelta(days=offset))
        registry = SlotRegistry(db)
        opened = []
        original = registry.list_available

        def tracked(after_date):
            opened.append(original(after_date))
            return opened[-1]

        monkeypatch.setattr(registry, "list_available", tracked)

        result = registry.list_available_slots(base_date, 2)

        assert [s.slot_date for s in result.unwrap()] == [
            base_date + timedelta(days=1),
            base_date + timedelta(days=2),
        ]
        assert opened[0].gi_frame is None

    def test_candidates_skip_excluded_dates(self, db, make_slot, base_date):
        for offset in (1, 2, 3):
            make_slot(base_date + timedelta(days=offset))

        candidates = SlotRegistry(db).iter_candidate_slots(base_date, {base_date + timedelta(days=1)})

        assert [s.slot_date for s in candidates] == [
            base_date + timedelta(days=2),
            base_date + timedelta(days=3),
        ]


class TestUpdateAndDelete:
    def test_capacity_cannot_drop_below_booked(self, db, teacher, base_date):
        registry = SlotRegistry(db)
        slot = registry.create_slot(base_date, teacher, capacity=3).unwrap()
        registry.reserve(base_date)
        registry.reserve(base_date)

        result = registry.update_slot(slot.id, teacher, capacity=1)

        assert result.error_code == ErrorCode.VALIDATION_ERROR
        assert registry.repository.refresh(slot).capacity == 3

    def test_update_by_owner_and_admin(self, db, teacher, admin, base_date):
        registry = SlotRegistry(db)
        slot = registry.create_slot(base_date, teacher, capacity=3).unwrap()

        assert registry.update_slot(slot.id, teacher, capacity=4).data.capacity == 4
        assert registry.update_slot(slot.id, admin, location="Gym").data.location == "Gym"

    def test_update_by_other_teacher_forbidden(self, db, teacher, other_teacher, base_date):
        registry = SlotRegistry(db)
        slot = registry.create_slot(base_date, teacher).unwrap()

        result = registry.update_slot(slot.id, other_teacher, capacity=4)

        assert result.error_code == ErrorCode.FORBIDDEN

    def test_delete_occupied_slot_conflicts(self, db, teacher, base_date):
        registry = SlotRegistry(db)
        slot = registry.create_slot(base_date, teacher).unwrap()
        registry.reserve(base_date)

        result = registry.delete_slot(slot.id, teacher)

        assert result.error_code == ErrorCode.CONFLICT
        assert registry.repository.get_by_id(slot.id) is not None

    def test_delete_empty_slot(self, db, teacher, base_date):
        registry = SlotRegistry(db)
        slot = registry.create_slot(base_date, teacher).unwrap()

        assert registry.delete_slot(slot.id, teacher).is_success
        assert registry.repository.get_by_id(slot.id) is None

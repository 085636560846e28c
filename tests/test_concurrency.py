"""
Concurrent writers against shared slots and counters, each with its own session.
"""

import threading
from datetime import timedelta

from detention.models.base.enums import AbsenceReason, AttendanceStatus
from detention.models.detention.detention_slot import DetentionSlot
from detention.models.detention.violation import Violation
from detention.repositories.detention.student_repository import StudentRepository
from detention.services.base.service_result import ErrorCode
from detention.services.detention.attendance_tracker import AttendanceTracker
from detention.services.detention.reassignment_engine import ReassignmentEngine
from detention.services.detention.slot_registry import SlotRegistry
from detention.services.detention.violation_ledger import ViolationLedger


def _run_concurrently(workers):
    barrier = threading.Barrier(len(workers))
    results = [None] * len(workers)

    def _runner(index, work):
        barrier.wait()
        results[index] = work()

    threads = [threading.Thread(target=_runner, args=(i, w)) for i, w in enumerate(workers)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=60)
    return results


class TestConcurrentReservation:
    def test_exactly_capacity_reservations_succeed(self, session_factory, make_slot, base_date):
        capacity, contenders = 3, 10
        slot = make_slot(base_date, capacity=capacity)

        def reserve():
            session = session_factory()
            try:
                return SlotRegistry(session).reserve(base_date)
            finally:
                session.close()

        results = _run_concurrently([reserve] * contenders)

        assert sum(r.is_success for r in results) == capacity
        assert {r.error_code for r in results if not r.is_success} == {ErrorCode.CAPACITY_EXCEEDED}
        check = session_factory()
        try:
            assert check.get(DetentionSlot, slot.id).booked_count == capacity
        finally:
            check.close()

    def test_last_seat_goes_to_one_violation(self, session_factory, make_student, make_slot, teacher, base_date):
        make_slot(base_date, capacity=1)
        students = [make_student() for _ in range(4)]

        def record_for(student):
            def _record():
                session = session_factory()
                try:
                    return ViolationLedger(session).record_violation(student.id, "Late", base_date, teacher)
                finally:
                    session.close()
            return _record

        results = _run_concurrently([record_for(s) for s in students])

        assert sum(r.is_success for r in results) == 1
        assert all(r.error_code == ErrorCode.CAPACITY_EXCEEDED for r in results if not r.is_success)
        check = session_factory()
        try:
            assert check.query(Violation).count() == 1
        finally:
            check.close()

    def test_concurrent_release_never_goes_negative(self, session_factory, make_slot, base_date):
        slot_date = base_date + timedelta(days=1)
        slot = make_slot(slot_date, capacity=2)
        setup = session_factory()
        try:
            SlotRegistry(setup).reserve(slot_date).unwrap()
        finally:
            setup.close()

        def release():
            session = session_factory()
            try:
                return SlotRegistry(session).release(slot_date)
            finally:
                session.close()

        results = _run_concurrently([release] * 5)

        assert all(r.is_success for r in results)
        assert sum(r.data is not None for r in results) == 1
        check = session_factory()
        try:
            assert check.get(DetentionSlot, slot.id).booked_count == 0
        finally:
            check.close()


class TestConcurrentBooking:
    def test_same_date_bookings_for_one_student(self, session_factory, make_student, make_slot, teacher, base_date):
        contenders = 8
        slot = make_slot(base_date, capacity=10)
        student = make_student()

        def record():
            session = session_factory()
            try:
                return ViolationLedger(session).record_violation(student.id, "Late", base_date, teacher)
            finally:
                session.close()

        results = _run_concurrently([record] * contenders)

        assert sum(r.is_success for r in results) == 1
        assert {r.error_code for r in results if not r.is_success} == {ErrorCode.CONFLICT}
        check = session_factory()
        try:
            assert check.get(DetentionSlot, slot.id).booked_count == 1
            assert check.query(Violation).filter_by(student_id=student.id).count() == 1
        finally:
            check.close()

    def test_reassignment_and_booking_race_for_one_date(self, session_factory, make_student, make_slot, book, teacher, base_date):
        next_day = base_date + timedelta(days=1)
        make_slot(base_date)
        target = make_slot(next_day, capacity=5)
        student = make_student()
        violation = book(student, base_date)
        setup = session_factory()
        try:
            AttendanceTracker(setup).mark_attendance(violation.id, AttendanceStatus.ABSENT, teacher).unwrap()
        finally:
            setup.close()

        def reassign():
            session = session_factory()
            try:
                return ReassignmentEngine(session).reassign(violation.id, base_date, teacher, target_date=next_day)
            finally:
                session.close()

        def record():
            session = session_factory()
            try:
                return ViolationLedger(session).record_violation(student.id, "Phone use", next_day, teacher)
            finally:
                session.close()

        results = _run_concurrently([reassign, record])

        assert sum(r.is_success for r in results) == 1
        assert [r.error_code for r in results if not r.is_success] == [ErrorCode.CONFLICT]
        check = session_factory()
        try:
            assert check.get(DetentionSlot, target.id).booked_count == 1
            booked = check.query(Violation).filter_by(student_id=student.id, detention_date=next_day).count()
            assert booked == 1
        finally:
            check.close()


class TestConcurrentMarking:
    def test_unexcused_counter_counts_every_absence(self, session_factory, make_student, make_slot, book, teacher, base_date):
        absences = 6
        student = make_student()
        violation_ids = []
        for offset in range(absences):
            day = base_date + timedelta(days=offset)
            make_slot(day)
            violation_ids.append(book(student, day).id)

        def mark_absent(violation_id):
            def _mark():
                session = session_factory()
                try:
                    return AttendanceTracker(session).mark_attendance(
                        violation_id, AttendanceStatus.ABSENT, teacher, reason=AbsenceReason.UNEXCUSED
                    )
                finally:
                    session.close()
            return _mark

        results = _run_concurrently([mark_absent(vid) for vid in violation_ids])

        assert all(r.is_success for r in results)
        check = session_factory()
        try:
            students = StudentRepository(check)
            assert students.get_unexcused(student.id) == absences
            assert students.count_unexcused_records(student.id) == absences
        finally:
            check.close()

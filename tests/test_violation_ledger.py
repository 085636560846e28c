from datetime import timedelta

from detention.config.settings import settings
from detention.models.base.enums import (
    AttendanceStatus,
    NotificationKind,
    ViolationStatus,
)
from detention.models.detention.attendance_record import AttendanceRecord
from detention.models.detention.notification_queue import NotificationQueueItem
from detention.models.detention.violation import StudentWarning, Violation
from detention.services.base.service_result import ErrorCode
from detention.services.detention.attendance_tracker import AttendanceTracker
from detention.services.detention.violation_ledger import ViolationLedger


class TestRecordViolation:
    def test_books_seat_and_creates_pending_record(self, db, dispatcher, make_student, make_slot, teacher, base_date):
        student = make_student()
        slot = make_slot(base_date, capacity=3)

        result = ViolationLedger(db, dispatcher=dispatcher).record_violation(
            student.id, "Late to class", base_date, teacher
        )

        assert result.is_success
        violation = result.data
        assert violation.status == ViolationStatus.PENDING
        assert violation.slot_id == slot.id
        assert violation.original_detention_date == base_date
        records = db.query(AttendanceRecord).filter_by(violation_id=violation.id).all()
        assert len(records) == 1
        assert records[0].status == AttendanceStatus.PENDING
        assert records[0].is_current
        db.refresh(slot)
        assert slot.booked_count == 1

    def test_assignment_notification_queued_after_commit(self, db, dispatcher, make_student, make_slot, teacher, base_date):
        student = make_student()
        make_slot(base_date)

        violation = ViolationLedger(db, dispatcher=dispatcher).record_violation(
            student.id, "Dress code", base_date, teacher
        ).unwrap()

        queued = db.query(NotificationQueueItem).all()
        assert len(queued) == 1
        assert queued[0].kind == NotificationKind.DETENTION_ASSIGNED
        assert queued[0].violation_id == violation.id
        assert queued[0].detention_date == base_date

    def test_full_slot_writes_nothing(self, db, dispatcher, make_student, make_slot, teacher, base_date):
        slot = make_slot(base_date, capacity=1)
        first, second = make_student(), make_student()
        ledger = ViolationLedger(db, dispatcher=dispatcher)

        assert ledger.record_violation(first.id, "Late", base_date, teacher).is_success
        result = ledger.record_violation(second.id, "Late", base_date, teacher)

        assert result.error_code == ErrorCode.CAPACITY_EXCEEDED
        assert db.query(Violation).filter_by(student_id=second.id).count() == 0
        assert db.query(AttendanceRecord).filter_by(student_id=second.id).count() == 0
        db.refresh(slot)
        assert slot.booked_count == 1

    def test_second_booking_on_same_date_conflicts(self, db, dispatcher, make_student, make_slot, teacher, base_date):
        slot = make_slot(base_date, capacity=5)
        student = make_student()
        ledger = ViolationLedger(db, dispatcher=dispatcher)
        ledger.record_violation(student.id, "Late", base_date, teacher)

        result = ledger.record_violation(student.id, "Phone use", base_date, teacher)

        assert result.error_code == ErrorCode.CONFLICT
        db.refresh(slot)
        assert slot.booked_count == 1

    def test_unknown_student_consumes_no_seat(self, db, dispatcher, make_slot, teacher, base_date):
        slot = make_slot(base_date, capacity=1)

        result = ViolationLedger(db, dispatcher=dispatcher).record_violation("ghost", "Late", base_date, teacher)

        assert result.error_code == ErrorCode.NOT_FOUND
        db.refresh(slot)
        assert slot.booked_count == 0

    def test_blank_type_rejected(self, db, dispatcher, make_student, teacher, base_date):
        result = ViolationLedger(db, dispatcher=dispatcher).record_violation(
            make_student().id, "   ", base_date, teacher
        )

        assert result.error_code == ErrorCode.VALIDATION_ERROR


class TestWarnings:
    def test_escalation_after_limit(self, db, dispatcher, make_student, teacher):
        student = make_student()
        ledger = ViolationLedger(db, dispatcher=dispatcher)

        for _ in range(settings.WARNING_LIMIT):
            assert ledger.record_warning(student.id, "Phone use", teacher).is_success
        result = ledger.record_warning(student.id, "Phone use", teacher)

        assert result.error_code == ErrorCode.ESCALATION_REQUIRED
        assert result.error.details["limit"] == settings.WARNING_LIMIT
        assert ledger.record_warning(student.id, "Dress code", teacher).is_success

    def test_violation_consumes_open_warnings(self, db, dispatcher, make_student, make_slot, teacher, base_date):
        student = make_student()
        make_slot(base_date)
        ledger = ViolationLedger(db, dispatcher=dispatcher)
        for _ in range(settings.WARNING_LIMIT):
            ledger.record_warning(student.id, "Phone use", teacher)

        ledger.record_violation(student.id, "Phone use", base_date, teacher).unwrap()

        assert db.query(StudentWarning).filter_by(student_id=student.id, is_archived=False).count() == 0
        assert ledger.record_warning(student.id, "Phone use", teacher).is_success


class TestArchiveViolation:
    def test_pending_violation_gives_seat_back(self, db, dispatcher, make_student, make_slot, book, teacher, base_date):
        slot = make_slot(base_date, capacity=1)
        violation = book(make_student(), base_date)

        result = ViolationLedger(db, dispatcher=dispatcher).archive_violation(violation.id, teacher)

        assert result.is_success
        assert result.data.is_archived
        db.refresh(slot)
        assert slot.booked_count == 0

    def test_absent_violation_gives_seat_back(self, db, dispatcher, make_student, make_slot, book, teacher, counter_of, base_date):
        slot = make_slot(base_date, capacity=1)
        student = make_student()
        violation = book(student, base_date)
        AttendanceTracker(db, dispatcher=dispatcher).mark_attendance(
            violation.id, AttendanceStatus.ABSENT, teacher
        ).unwrap()

        archived = ViolationLedger(db, dispatcher=dispatcher).archive_violation(violation.id, teacher).unwrap()

        assert archived.status == ViolationStatus.ABSENT
        assert archived.slot_id is None
        db.refresh(slot)
        assert slot.booked_count == 0
        assert counter_of(student) == 1

    def test_attended_violation_is_completed(self, db, dispatcher, make_student, make_slot, book, teacher, base_date):
        slot = make_slot(base_date, capacity=2)
        violation = book(make_student(), base_date)
        AttendanceTracker(db, dispatcher=dispatcher).mark_attendance(
            violation.id, AttendanceStatus.ATTENDED, teacher
        ).unwrap()

        archived = ViolationLedger(db, dispatcher=dispatcher).archive_violation(violation.id, teacher).unwrap()

        assert archived.status == ViolationStatus.COMPLETED
        db.refresh(slot)
        assert slot.booked_count == 1

    def test_only_issuer_or_admin(self, db, dispatcher, make_student, make_slot, book, other_teacher, admin, base_date):
        make_slot(base_date)
        violation = book(make_student(), base_date)
        ledger = ViolationLedger(db, dispatcher=dispatcher)

        assert ledger.archive_violation(violation.id, other_teacher).error_code == ErrorCode.FORBIDDEN
        assert ledger.archive_violation(violation.id, admin).is_success

    def test_conflict_dates_ignore_archived(self, db, dispatcher, make_student, make_slot, book, teacher, base_date):
        later = base_date + timedelta(days=2)
        make_slot(base_date)
        make_slot(later)
        student = make_student()
        first = book(student, base_date)
        book(student, later)
        ledger = ViolationLedger(db, dispatcher=dispatcher)

        assert ledger.get_conflict_dates(student.id) == {base_date, later}
        ledger.archive_violation(first.id, teacher)
        assert ledger.get_conflict_dates(student.id) == {later}
        assert ledger.get_conflict_dates(student.id, exclude_violation_id=first.id) == {later}

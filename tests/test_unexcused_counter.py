import pytest

from detention.core.exceptions import ResourceNotFoundError
from detention.models.base.enums import AbsenceReason, AttendanceStatus
from detention.services.base.service_result import ErrorCode
from detention.services.detention.unexcused_counter import UnexcusedCounter, compute_delta

ABSENT_UNEXCUSED = (AttendanceStatus.ABSENT, AbsenceReason.UNEXCUSED)
ABSENT_EXCUSED = (AttendanceStatus.ABSENT, AbsenceReason.EXCUSED)
ABSENT_MEDICAL = (AttendanceStatus.ABSENT, AbsenceReason.MEDICAL)
PENDING = (AttendanceStatus.PENDING, AbsenceReason.UNEXCUSED)
ATTENDED = (AttendanceStatus.ATTENDED, AbsenceReason.UNEXCUSED)


class TestComputeDelta:
    @pytest.mark.parametrize(
        "old, new, expected",
        [
            (PENDING, ABSENT_UNEXCUSED, 1),
            (ABSENT_EXCUSED, ABSENT_UNEXCUSED, 1),
            (ABSENT_UNEXCUSED, ABSENT_EXCUSED, -1),
            (ABSENT_UNEXCUSED, ATTENDED, -1),
            (ABSENT_UNEXCUSED, ABSENT_UNEXCUSED, 0),
            (PENDING, ATTENDED, 0),
            (ABSENT_EXCUSED, ABSENT_MEDICAL, 0),
            ((None, None), ABSENT_UNEXCUSED, 1),
        ],
    )
    def test_transition_table(self, old, new, expected):
        assert compute_delta(old, new) == expected


class TestApplyDelta:
    def test_increment_and_decrement(self, db, make_student, counter_of):
        student = make_student()
        counter = UnexcusedCounter(db)

        assert counter.apply_delta(student.id, PENDING, ABSENT_UNEXCUSED) == 1
        assert counter_of(student) == 1
        assert counter.apply_delta(student.id, ABSENT_UNEXCUSED, ABSENT_EXCUSED) == -1
        assert counter_of(student) == 0
        db.commit()

    def test_decrement_at_zero_is_floored(self, db, make_student, counter_of):
        student = make_student()

        applied = UnexcusedCounter(db).apply_delta(student.id, ABSENT_UNEXCUSED, ATTENDED)

        assert applied == 0
        assert counter_of(student) == 0

    def test_neutral_transition_skips_the_store(self, db):
        assert UnexcusedCounter(db).apply_delta("no-such-student", PENDING, ATTENDED) == 0

    def test_unknown_student_raises(self, db):
        with pytest.raises(ResourceNotFoundError):
            UnexcusedCounter(db).apply_delta("no-such-student", PENDING, ABSENT_UNEXCUSED)


class TestRevert:
    def test_exact_inverse_of_persisted_deltas(self, db, make_student, counter_of):
        student = make_student()
        counter = UnexcusedCounter(db)
        applied = [
            counter.apply_delta(student.id, PENDING, ABSENT_UNEXCUSED),
            counter.apply_delta(student.id, PENDING, ABSENT_UNEXCUSED),
            counter.apply_delta(student.id, ABSENT_UNEXCUSED, ABSENT_EXCUSED),
        ]
        db.commit()
        assert counter_of(student) == 1

        result = counter.revert(student.id, applied)

        assert result.is_success
        assert result.data == -1
        assert counter_of(student) == 0

    def test_get_count_unknown_student(self, db):
        assert UnexcusedCounter(db).get_count("missing").error_code == ErrorCode.NOT_FOUND

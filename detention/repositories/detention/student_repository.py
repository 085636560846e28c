"""
Student repository, including the atomic unexcused counter updates.
"""

from typing import Iterator, Optional

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from detention.models.base.enums import AbsenceReason, AttendanceStatus
from detention.models.detention.attendance_record import AttendanceRecord
from detention.models.detention.student import Student
from detention.repositories.base.base_repository import BaseRepository


class StudentRepository(BaseRepository[Student]):
    """Repository for students and their unexcused-absence tally."""

    def __init__(self, session: Session):
        super().__init__(Student, session)

    def create_student(self, name: str, email: Optional[str] = None, student_id: Optional[str] = None) -> Student:
        student = Student(name=name, email=email, unexcused_count=0)
        if student_id:
            student.id = student_id
        return self.add(student)

    # ==================== Counter Operations ====================

    def increment_unexcused(self, student_id: str) -> bool:
        stmt = (
            update(Student)
            .where(Student.id == student_id)
            .values(unexcused_count=Student.unexcused_count + 1)
            .execution_options(synchronize_session=False)
        )
        return self.db.execute(stmt).rowcount == 1

    def decrement_unexcused(self, student_id: str) -> bool:
        """Decrement floored at zero; False when nothing changed."""
        stmt = (
            update(Student)
            .where(Student.id == student_id, Student.unexcused_count > 0)
            .values(unexcused_count=Student.unexcused_count - 1)
            .execution_options(synchronize_session=False)
        )
        return self.db.execute(stmt).rowcount == 1

    def set_unexcused(self, student_id: str, expected: int, value: int) -> bool:
        """
        Compare-and-set the counter.

        Returns:
            True if the stored value still equalled ``expected`` and was replaced
        """
        stmt = (
            update(Student)
            .where(Student.id == student_id, Student.unexcused_count == expected)
            .values(unexcused_count=value)
            .execution_options(synchronize_session=False)
        )
        return self.db.execute(stmt).rowcount == 1

    def get_unexcused(self, student_id: str) -> Optional[int]:
        stmt = select(Student.unexcused_count).where(Student.id == student_id)
        return self.db.execute(stmt).scalar_one_or_none()

    def count_unexcused_records(self, student_id: str) -> int:
        """Number of the student's attendance records in (absent, unexcused)."""
        stmt = select(func.count(AttendanceRecord.id)).where(
            AttendanceRecord.student_id == student_id,
            AttendanceRecord.status == AttendanceStatus.ABSENT,
            AttendanceRecord.reason == AbsenceReason.UNEXCUSED,
        )
        return int(self.db.execute(stmt).scalar_one())

    def iter_ids(self, batch_size: int = 500) -> Iterator[str]:
        result = self.db.execute(
            select(Student.id).order_by(Student.id).execution_options(yield_per=batch_size)
        )
        try:
            yield from result.scalars()
        finally:
            result.close()

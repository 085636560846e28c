"""
Violation and warning repositories.
"""

from datetime import date, datetime, timezone
from typing import List, Optional, Set

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from detention.models.base.enums import BOOKED_VIOLATION_STATUSES, ViolationStatus
from detention.models.detention.violation import StudentWarning, Violation
from detention.repositories.base.base_repository import BaseRepository


class ViolationRepository(BaseRepository[Violation]):
    """Repository for violations and per-student booked dates."""

    def __init__(self, session: Session):
        super().__init__(Violation, session)

    def create_violation(
        self,
        student_id: str,
        violation_type: str,
        detention_date: date,
        slot_id: str,
        issued_by: str,
    ) -> Violation:
        return self.add(
            Violation(
                student_id=student_id,
                violation_type=violation_type,
                detention_date=detention_date,
                original_detention_date=detention_date,
                slot_id=slot_id,
                status=ViolationStatus.PENDING,
                issued_by=issued_by,
                is_archived=False,
                assigned_at=datetime.now(timezone.utc),
            )
        )

    def booked_dates(self, student_id: str, exclude_violation_id: Optional[str] = None) -> Set[date]:
        """
        Dates of the student's open violations (pending, absent, reassigned).
        """
        stmt = select(Violation.detention_date).where(
            Violation.student_id == student_id,
            Violation.is_archived.is_(False),
            Violation.status.in_(BOOKED_VIOLATION_STATUSES),
        )
        if exclude_violation_id:
            stmt = stmt.where(Violation.id != exclude_violation_id)
        return set(self.db.execute(stmt).scalars().all())

    def find_for_date(
        self,
        detention_date: date,
        status: Optional[ViolationStatus] = None,
    ) -> List[Violation]:
        stmt = select(Violation).where(
            Violation.detention_date == detention_date,
            Violation.is_archived.is_(False),
        )
        if status is not None:
            stmt = stmt.where(Violation.status == status)
        return list(self.db.execute(stmt.order_by(Violation.created_at)).scalars().all())


class WarningRepository(BaseRepository[StudentWarning]):
    """Repository for warnings issued ahead of a violation."""

    def __init__(self, session: Session):
        super().__init__(StudentWarning, session)

    def count_open(self, student_id: str, violation_type: str) -> int:
        stmt = select(func.count(StudentWarning.id)).where(
            StudentWarning.student_id == student_id,
            StudentWarning.violation_type == violation_type,
            StudentWarning.is_archived.is_(False),
        )
        return int(self.db.execute(stmt).scalar_one())

    def create_warning(self, student_id: str, violation_type: str, issued_by: str) -> StudentWarning:
        return self.add(
            StudentWarning(
                student_id=student_id,
                violation_type=violation_type,
                issued_by=issued_by,
                is_archived=False,
            )
        )

    def archive_open(self, student_id: str, violation_type: str) -> int:
        stmt = (
            update(StudentWarning)
            .where(
                StudentWarning.student_id == student_id,
                StudentWarning.violation_type == violation_type,
                StudentWarning.is_archived.is_(False),
            )
            .values(is_archived=True)
            .execution_options(synchronize_session=False)
        )
        return self.db.execute(stmt).rowcount

"""
Attendance record and absence log repositories.
"""

from datetime import date
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from detention.core.exceptions import ResourceNotFoundError
from detention.models.base.enums import AbsenceReason, AttendanceStatus
from detention.models.detention.attendance_record import AbsenceLogEntry, AttendanceRecord
from detention.models.detention.violation import Violation
from detention.repositories.base.base_repository import BaseRepository


class AttendanceRecordRepository(BaseRepository[AttendanceRecord]):
    """
    Repository for attendance records.
    """

    def __init__(self, session: Session):
        super().__init__(AttendanceRecord, session)

    def create_record(
        self,
        violation_id: str,
        student_id: str,
        detention_date: date,
        status: AttendanceStatus = AttendanceStatus.PENDING,
        reason: AbsenceReason = AbsenceReason.UNEXCUSED,
    ) -> AttendanceRecord:
        return self.add(
            AttendanceRecord(
                violation_id=violation_id,
                student_id=student_id,
                detention_date=detention_date,
                status=status,
                reason=reason,
                is_current=True,
            )
        )

    def get_current(self, violation_id: str, for_update: bool = False) -> Optional[AttendanceRecord]:
        stmt = (
            select(AttendanceRecord)
            .where(
                AttendanceRecord.violation_id == violation_id,
                AttendanceRecord.is_current.is_(True),
            )
            .execution_options(populate_existing=True)
        )
        if for_update:
            stmt = stmt.with_for_update()
        return self.db.execute(stmt).scalar_one_or_none()

    def get_current_or_raise(self, violation_id: str, for_update: bool = False) -> AttendanceRecord:
        record = self.get_current(violation_id, for_update=for_update)
        if record is None:
            raise ResourceNotFoundError(
                "AttendanceRecord",
                message=f"No current attendance record for violation {violation_id}",
            )
        return record

    def get_for_violation_date(self, violation_id: str, detention_date: date) -> Optional[AttendanceRecord]:
        stmt = select(AttendanceRecord).where(
            AttendanceRecord.violation_id == violation_id,
            AttendanceRecord.detention_date == detention_date,
        )
        return self.db.execute(stmt).scalar_one_or_none()

    def list_for_violation(self, violation_id: str) -> List[AttendanceRecord]:
        stmt = (
            select(AttendanceRecord)
            .where(AttendanceRecord.violation_id == violation_id)
            .order_by(AttendanceRecord.detention_date)
        )
        return list(self.db.execute(stmt).scalars().all())

    def find_current_on_date(
        self,
        detention_date: date,
        status: AttendanceStatus,
        for_update: bool = False,
    ) -> List[AttendanceRecord]:
        """Current records in ``status`` on a date, skipping archived violations."""
        stmt = (
            select(AttendanceRecord)
            .join(Violation, Violation.id == AttendanceRecord.violation_id)
            .where(
                AttendanceRecord.detention_date == detention_date,
                AttendanceRecord.status == status,
                AttendanceRecord.is_current.is_(True),
                Violation.is_archived.is_(False),
            )
            .order_by(AttendanceRecord.created_at, AttendanceRecord.id)
            .execution_options(populate_existing=True)
        )
        if for_update:
            stmt = stmt.with_for_update(of=AttendanceRecord)
        return list(self.db.execute(stmt).scalars().all())


class AbsenceLogRepository(BaseRepository[AbsenceLogEntry]):
    """
    Repository for the append-only absence log.
    """

    def __init__(self, session: Session):
        super().__init__(AbsenceLogEntry, session)

    def find_entry(self, attendance_id: str, absence_date: date) -> Optional[AbsenceLogEntry]:
        stmt = select(AbsenceLogEntry).where(
            AbsenceLogEntry.attendance_id == attendance_id,
            AbsenceLogEntry.absence_date == absence_date,
        )
        return self.db.execute(stmt).scalar_one_or_none()

    def append(self, record: AttendanceRecord, marked_by: str) -> AbsenceLogEntry:
        return self.add(
            AbsenceLogEntry(
                attendance_id=record.id,
                violation_id=record.violation_id,
                student_id=record.student_id,
                absence_date=record.detention_date,
                reason=record.reason,
                marked_by=marked_by,
            )
        )

    def list_for_student(self, student_id: str) -> List[AbsenceLogEntry]:
        stmt = (
            select(AbsenceLogEntry)
            .where(AbsenceLogEntry.student_id == student_id)
            .order_by(AbsenceLogEntry.absence_date)
        )
        return list(self.db.execute(stmt).scalars().all())

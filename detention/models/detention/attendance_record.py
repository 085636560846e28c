"""
Attendance record models.

Provides the per-(violation, slot date) attendance record and the
append-only absence log.
"""

from datetime import date, datetime
from typing import Optional

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from detention.models.base.base_model import BaseModel, TimestampModel
from detention.models.base.enums import AbsenceReason, AttendanceStatus

__all__ = [
    "AttendanceRecord",
    "AbsenceLogEntry",
]


class AttendanceRecord(TimestampModel):
    """
    Attendance outcome for one violation on one slot date.

    Exactly one record per violation has ``is_current`` set; earlier records
    are kept as history once the violation moves to a new date.
    """

    __tablename__ = "attendance_records"

    violation_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("violations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    student_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("students.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    detention_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    status: Mapped[AttendanceStatus] = mapped_column(
        Enum(AttendanceStatus, name="attendance_status_enum"),
        nullable=False,
        default=AttendanceStatus.PENDING,
        index=True,
    )
    reason: Mapped[AbsenceReason] = mapped_column(
        Enum(AbsenceReason, name="absence_reason_enum"),
        nullable=False,
        default=AbsenceReason.UNEXCUSED,
    )
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    is_current: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    # Marking metadata
    marked_by: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    marked_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    amended_by: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    amended_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    # Reassignment trail
    reassigned_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    reassigned_to_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)

    violation: Mapped["Violation"] = relationship(  # noqa: F821
        "Violation",
        back_populates="attendance_records",
    )

    __table_args__ = (
        UniqueConstraint("violation_id", "detention_date", name="uq_attendance_violation_date"),
        Index("ix_attendance_student_status_reason", "student_id", "status", "reason"),
    )

    @property
    def combination(self) -> tuple:
        return (self.status, self.reason)


class AbsenceLogEntry(BaseModel):
    """
    Audit row written once per transition into ``absent``.

    Only ``reason`` and ``absence_date`` may be corrected afterwards.
    """

    __tablename__ = "absence_log"

    attendance_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("attendance_records.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    violation_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("violations.id", ondelete="CASCADE"),
        nullable=False,
    )
    student_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("students.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    absence_date: Mapped[date] = mapped_column(Date, nullable=False)
    recorded_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
    reason: Mapped[AbsenceReason] = mapped_column(
        Enum(AbsenceReason, name="absence_reason_enum"),
        nullable=False,
    )
    marked_by: Mapped[str] = mapped_column(String(36), nullable=False)
    corrected_by: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    corrected_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        UniqueConstraint("attendance_id", "absence_date", name="uq_absence_attendance_date"),
    )

"""
Violation and warning models.
"""

from datetime import date, datetime
from typing import List, Optional

from sqlalchemy import Boolean, Date, DateTime, Enum, ForeignKey, Index, String, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from detention.models.base.base_model import TimestampModel
from detention.models.base.enums import BOOKED_VIOLATION_STATUSES, ViolationStatus

__all__ = ["Violation", "StudentWarning"]

# Rows that make up a student's conflict set; at most one per date
OPEN_BOOKING_CLAUSE = text(
    "NOT is_archived AND status IN ({})".format(
        ", ".join(f"'{status.name}'" for status in BOOKED_VIOLATION_STATUSES)
    )
)


class Violation(TimestampModel):
    """
    One disciplinary incident booked against a detention slot.

    ``status`` mirrors the status of the current attendance record. Rows are
    archived, never deleted.
    """

    __tablename__ = "violations"

    student_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("students.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    violation_type: Mapped[str] = mapped_column(String(120), nullable=False)
    detention_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    original_detention_date: Mapped[date] = mapped_column(Date, nullable=False)
    slot_id: Mapped[Optional[str]] = mapped_column(
        String(36),
        ForeignKey("detention_slots.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
        comment="Slot whose seat this violation currently holds",
    )
    status: Mapped[ViolationStatus] = mapped_column(
        Enum(ViolationStatus, name="violation_status_enum"),
        nullable=False,
        default=ViolationStatus.PENDING,
        index=True,
    )
    issued_by: Mapped[str] = mapped_column(String(36), nullable=False)
    is_archived: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    assigned_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    attendance_records: Mapped[List["AttendanceRecord"]] = relationship(  # noqa: F821
        "AttendanceRecord",
        back_populates="violation",
        order_by="AttendanceRecord.detention_date",
    )

    __table_args__ = (
        Index("ix_violation_student_status", "student_id", "status", "is_archived"),
        Index(
            "uq_violation_student_open_date",
            "student_id",
            "detention_date",
            unique=True,
            sqlite_where=OPEN_BOOKING_CLAUSE,
            postgresql_where=OPEN_BOOKING_CLAUSE,
        ),
    )


class StudentWarning(TimestampModel):
    """Warning issued instead of a detention until the escalation limit is reached."""

    __tablename__ = "warnings"

    student_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("students.id", ondelete="CASCADE"),
        nullable=False,
    )
    violation_type: Mapped[str] = mapped_column(String(120), nullable=False)
    issued_by: Mapped[str] = mapped_column(String(36), nullable=False)
    is_archived: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    __table_args__ = (
        Index("ix_warning_student_type", "student_id", "violation_type", "is_archived"),
    )

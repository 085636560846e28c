"""
Student reference row carrying the unexcused-absence counter.
"""

from typing import Optional

from sqlalchemy import CheckConstraint, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from detention.models.base.base_model import TimestampModel

__all__ = ["Student"]


class Student(TimestampModel):
    """
    Minimal student record.

    Roster import owns the descriptive fields; this service only maintains
    ``unexcused_count``, which always equals the number of the student's
    attendance records in (absent, unexcused).
    """

    __tablename__ = "students"

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    email: Mapped[Optional[str]] = mapped_column(String(320), nullable=True)
    unexcused_count: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        server_default="0",
        comment="Running tally of unexcused absences",
    )

    __table_args__ = (
        CheckConstraint("unexcused_count >= 0", name="ck_student_unexcused_non_negative"),
    )

"""
Outbound notification queue.
"""

from datetime import date, datetime
from typing import Optional

from sqlalchemy import Date, DateTime, Enum, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from detention.models.base.base_model import TimestampModel
from detention.models.base.enums import NotificationKind, NotificationStatus

__all__ = ["NotificationQueueItem"]


class NotificationQueueItem(TimestampModel):
    """Fire-and-forget notification waiting for the sender."""

    __tablename__ = "notification_queue"

    kind: Mapped[NotificationKind] = mapped_column(
        Enum(NotificationKind, name="notification_kind_enum"),
        nullable=False,
    )
    student_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    violation_id: Mapped[str] = mapped_column(String(36), nullable=False)
    attendance_id: Mapped[str] = mapped_column(String(36), nullable=False)
    detention_date: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[NotificationStatus] = mapped_column(
        Enum(NotificationStatus, name="notification_status_enum"),
        nullable=False,
        default=NotificationStatus.QUEUED,
    )
    attempts: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_error: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    sent_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index("ix_notification_queue_status", "status", "created_at"),
    )

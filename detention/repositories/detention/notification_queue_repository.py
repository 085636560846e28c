"""
Notification queue repository.
"""

from datetime import date, datetime, timezone
from typing import List

from sqlalchemy import select
from sqlalchemy.orm import Session

from detention.models.base.enums import NotificationKind, NotificationStatus
from detention.models.detention.notification_queue import NotificationQueueItem
from detention.repositories.base.base_repository import BaseRepository


class NotificationQueueRepository(BaseRepository[NotificationQueueItem]):
    """Repository for queued outbound notifications."""

    def __init__(self, session: Session):
        super().__init__(NotificationQueueItem, session)

    def enqueue(
        self,
        kind: NotificationKind,
        student_id: str,
        violation_id: str,
        attendance_id: str,
        detention_date: date,
    ) -> NotificationQueueItem:
        return self.add(
            NotificationQueueItem(
                kind=kind,
                student_id=student_id,
                violation_id=violation_id,
                attendance_id=attendance_id,
                detention_date=detention_date,
                status=NotificationStatus.QUEUED,
                attempts=0,
            )
        )

    def fetch_queued(self, limit: int = 100) -> List[NotificationQueueItem]:
        stmt = (
            select(NotificationQueueItem)
            .where(NotificationQueueItem.status == NotificationStatus.QUEUED)
            .order_by(NotificationQueueItem.created_at, NotificationQueueItem.id)
            .limit(limit)
        )
        return list(self.db.execute(stmt).scalars().all())

    def mark_sent(self, item: NotificationQueueItem) -> None:
        item.status = NotificationStatus.SENT
        item.attempts += 1
        item.sent_at = datetime.now(timezone.utc)
        item.last_error = None
        self.flush()

    def mark_attempt_failed(self, item: NotificationQueueItem, error: str, max_attempts: int) -> None:
        item.attempts += 1
        item.last_error = error[:2000]
        if item.attempts >= max_attempts:
            item.status = NotificationStatus.FAILED
        self.flush()

"""
Notification dispatcher: outbound queue for detention notices.

Enqueueing happens after the triggering transaction has committed and
never fails that transaction; delivery is a separate step that drains the
queue through a NotificationSender.
"""

from datetime import date
from typing import Dict, Optional

from sqlalchemy.orm import Session

from detention.config.settings import settings
from detention.core.exceptions import BaseAppException, DependencyUnavailableError
from detention.models.base.enums import NotificationKind
from detention.models.detention.notification_queue import NotificationQueueItem
from detention.repositories.detention.notification_queue_repository import NotificationQueueRepository
from detention.services.base.base_service import BaseService
from detention.services.base.notification_sender import NotificationSender, build_notification_sender
from detention.services.base.service_result import ErrorSeverity, ServiceResult


class NotificationDispatcher(BaseService[NotificationQueueItem, NotificationQueueRepository]):
    """
    Enqueue and deliver detention notifications with:
    - Fire-and-forget enqueueing
    - Delivery tracking and bounded retries
    """

    def __init__(
        self,
        db_session: Session,
        sender: Optional[NotificationSender] = None,
        max_attempts: Optional[int] = None,
    ):
        """
        Initialize notification dispatcher.

        Args:
            db_session: SQLAlchemy database session
            sender: Delivery backend (defaults to the configured one)
            max_attempts: Attempts before an item is marked failed
        """
        super().__init__(NotificationQueueRepository(db_session), db_session)
        self.sender = sender or build_notification_sender()
        self.max_attempts = max_attempts or settings.NOTIFICATION_MAX_ATTEMPTS

    # -------------------------------------------------------------------------
    # Enqueueing
    # -------------------------------------------------------------------------

    def enqueue(
        self,
        kind: NotificationKind,
        student_id: str,
        violation_id: str,
        attendance_id: str,
        detention_date: date,
    ) -> ServiceResult[NotificationQueueItem]:
        """
        Queue a notification.

        Failures are logged as warnings and returned, never raised.
        """
        try:
            with self.transaction("enqueue notification"):
                item = self.repository.enqueue(
                    kind, student_id, violation_id, attendance_id, detention_date
                )

            self._logger.info(
                f"Notification queued: {kind.value} for student {student_id}",
                extra={
                    "notification_id": item.id,
                    "violation_id": violation_id,
                    "detention_date": detention_date.isoformat(),
                },
            )
            return ServiceResult.success(item, message="Notification queued")
        except BaseAppException as e:
            self._logger.warning(
                f"Failed to queue notification for student {student_id}: {e}",
                extra={"violation_id": violation_id},
            )
            return ServiceResult.from_app_exception(e, severity=ErrorSeverity.WARNING)
        except Exception as e:
            return self._handle_exception(e, "queue notification", violation_id)

    # -------------------------------------------------------------------------
    # Delivery
    # -------------------------------------------------------------------------

    def deliver_pending(self, limit: int = 100) -> ServiceResult[Dict[str, int]]:
        """
        Drain queued notifications through the sender.

        Each item is delivered and recorded in its own transaction so one
        failing recipient does not hold back the others.

        Returns:
            ServiceResult with counts of sent, retried and failed items
        """
        try:
            items = self.repository.fetch_queued(limit)
        except Exception as e:
            return self._handle_exception(e, "fetch queued notifications")

        sent = retried = failed = 0
        for item in items:
            try:
                self.sender.send(item.student_id, item.attendance_id, item.detention_date, item.kind.value)
            except DependencyUnavailableError as e:
                self._logger.warning(
                    f"Notification delivery failed: {e.message}",
                    extra={"notification_id": item.id, "attempts": item.attempts + 1},
                )
                try:
                    with self.transaction("record notification failure"):
                        self.repository.mark_attempt_failed(item, e.message, self.max_attempts)
                except DependencyUnavailableError as store_error:
                    return self._handle_exception(store_error, "record notification failure", item.id)
                if item.attempts >= self.max_attempts:
                    failed += 1
                else:
                    retried += 1
                continue

            try:
                with self.transaction("record notification delivery"):
                    self.repository.mark_sent(item)
            except DependencyUnavailableError as store_error:
                return self._handle_exception(store_error, "record notification delivery", item.id)
            sent += 1

        summary = {"sent": sent, "retried": retried, "failed": failed}
        self._logger.info(
            f"Notification delivery run: {sent} sent, {retried} to retry, {failed} failed",
            extra=summary,
        )
        return ServiceResult.success(summary, metadata={"processed": len(items)})

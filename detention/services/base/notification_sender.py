"""
Outbound notification senders.

The webhook sender hands a message to the email service over HTTP using
httpx; the logging sender is used when no webhook is configured.
"""

from datetime import date
from typing import Any, Dict, Optional

import httpx

from detention.config.settings import settings
from detention.core.exceptions import DependencyUnavailableError
from detention.core.logging import get_logger

logger = get_logger(__name__)


class NotificationSender:
    """Shape the dispatcher depends on."""

    def send(self, student_id: str, attendance_id: str, new_detention_date: date, kind: str) -> None:
        raise NotImplementedError


class LoggingNotificationSender(NotificationSender):
    """Records the notification in the log instead of delivering it."""

    def send(self, student_id: str, attendance_id: str, new_detention_date: date, kind: str) -> None:
        logger.info(
            "Notification delivery skipped (no webhook configured)",
            extra={
                "student_id": student_id,
                "attendance_id": attendance_id,
                "detention_date": new_detention_date.isoformat(),
                "kind": kind,
            },
        )


class WebhookNotificationSender(NotificationSender):
    """
    Posts ``{student_id, attendance_id, new_detention_date}`` to the email
    webhook.

    Any transport error or non-2xx response is raised as
    ``DependencyUnavailableError``.
    """

    def __init__(
        self,
        url: str,
        secret: Optional[str] = None,
        timeout: float = 10.0,
        client: Optional[httpx.Client] = None,
    ):
        self.url = url
        self.secret = secret
        self.timeout = timeout
        self._client = client

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.secret:
            headers["Authorization"] = f"Bearer {self.secret}"
        return headers

    def _payload(self, student_id: str, attendance_id: str, new_detention_date: date, kind: str) -> Dict[str, Any]:
        return {
            "student_id": student_id,
            "attendance_id": attendance_id,
            "new_detention_date": new_detention_date.isoformat(),
            "kind": kind,
            "from_name": settings.NOTIFICATION_FROM_NAME,
        }

    def send(self, student_id: str, attendance_id: str, new_detention_date: date, kind: str) -> None:
        payload = self._payload(student_id, attendance_id, new_detention_date, kind)
        try:
            if self._client is not None:
                response = self._client.post(self.url, json=payload, headers=self._headers(), timeout=self.timeout)
            else:
                with httpx.Client(timeout=self.timeout) as client:
                    response = client.post(self.url, json=payload, headers=self._headers())
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise DependencyUnavailableError(
                "notification sender",
                f"Notification webhook returned {e.response.status_code}",
                details={"status_code": e.response.status_code},
            ) from e
        except httpx.HTTPError as e:
            raise DependencyUnavailableError(
                "notification sender",
                f"Notification webhook unreachable: {e}",
            ) from e

        logger.info(
            "Notification delivered",
            extra={"student_id": student_id, "attendance_id": attendance_id, "kind": kind},
        )


def build_notification_sender() -> NotificationSender:
    if settings.NOTIFICATION_WEBHOOK_URL:
        return WebhookNotificationSender(
            settings.NOTIFICATION_WEBHOOK_URL,
            secret=settings.NOTIFICATION_WEBHOOK_SECRET,
            timeout=settings.NOTIFICATION_TIMEOUT_SECONDS,
        )
    return LoggingNotificationSender()

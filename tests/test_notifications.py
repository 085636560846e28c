import json
from datetime import timedelta

import httpx
import pytest

from detention.core.background_tasks import (
    DELIVER_NOTIFICATIONS_TASK,
    RECONCILE_COUNTERS_TASK,
    celery_app,
    deliver_queued_notifications,
)
from detention.core.exceptions import DependencyUnavailableError
from detention.models.base.enums import NotificationKind, NotificationStatus
from detention.models.detention.notification_queue import NotificationQueueItem
from detention.services.base.notification_dispatcher import NotificationDispatcher
from detention.services.base.notification_sender import WebhookNotificationSender


def _queue(dispatcher, student_id, base_date, count=1):
    for n in range(count):
        dispatcher.enqueue(
            NotificationKind.DETENTION_RESCHEDULED,
            student_id,
            f"violation-{n}",
            f"attendance-{n}",
            base_date + timedelta(days=n),
        ).unwrap()


def _server_error(request):
    return httpx.Response(500)


def _refused(request):
    raise httpx.ConnectError("refused", request=request)


class TestDispatcher:
    def test_delivers_queued_items(self, db, dispatcher, sender, base_date):
        _queue(dispatcher, "student-1", base_date, count=2)

        summary = dispatcher.deliver_pending().unwrap()

        assert summary == {"sent": 2, "retried": 0, "failed": 0}
        assert sender.send.call_count == 2
        sender.send.assert_any_call("student-1", "attendance-0", base_date, "detention_rescheduled")
        statuses = {item.status for item in db.query(NotificationQueueItem).all()}
        assert statuses == {NotificationStatus.SENT}

    def test_failed_delivery_is_retried_then_given_up(self, db, sender, base_date):
        sender.send.side_effect = DependencyUnavailableError("notification sender", "webhook down")
        dispatcher = NotificationDispatcher(db, sender=sender, max_attempts=2)
        _queue(dispatcher, "student-1", base_date)

        first = dispatcher.deliver_pending().unwrap()
        second = dispatcher.deliver_pending().unwrap()
        third = dispatcher.deliver_pending().unwrap()

        assert first == {"sent": 0, "retried": 1, "failed": 0}
        assert second == {"sent": 0, "retried": 0, "failed": 1}
        assert third == {"sent": 0, "retried": 0, "failed": 0}
        item = db.query(NotificationQueueItem).one()
        assert item.status == NotificationStatus.FAILED
        assert item.attempts == 2
        assert item.last_error == "webhook down"


class TestWebhookSender:
    def test_posts_payload(self, base_date):
        captured = {}

        def handler(request):
            captured["body"] = json.loads(request.content)
            captured["auth"] = request.headers.get("authorization")
            return httpx.Response(202)

        client = httpx.Client(transport=httpx.MockTransport(handler))
        sender = WebhookNotificationSender("https://mail.example.test/hook", secret="s3cret", client=client)

        sender.send("student-1", "attendance-1", base_date, "detention_rescheduled")

        assert captured["body"]["student_id"] == "student-1"
        assert captured["body"]["attendance_id"] == "attendance-1"
        assert captured["body"]["new_detention_date"] == base_date.isoformat()
        assert captured["auth"] == "Bearer s3cret"

    @pytest.mark.parametrize("handler", [_server_error, _refused])
    def test_errors_become_dependency_unavailable(self, handler, base_date):
        client = httpx.Client(transport=httpx.MockTransport(handler))
        sender = WebhookNotificationSender("https://mail.example.test/hook", client=client)

        with pytest.raises(DependencyUnavailableError):
            sender.send("student-1", "attendance-1", base_date, "detention_rescheduled")


class TestBackgroundDelivery:
    def test_drains_queue_in_own_session(self, db, engine, dispatcher, sender, base_date):
        _queue(dispatcher, "student-1", base_date, count=3)

        result = deliver_queued_notifications(engine, sender)

        assert result.unwrap() == {"sent": 3, "retried": 0, "failed": 0}
        db.expire_all()
        assert {item.status for item in db.query(NotificationQueueItem).all()} == {NotificationStatus.SENT}

    def test_periodic_tasks_are_registered(self):
        scheduled = {entry["task"] for entry in celery_app.conf.beat_schedule.values()}

        assert scheduled == {DELIVER_NOTIFICATIONS_TASK, RECONCILE_COUNTERS_TASK}
        assert DELIVER_NOTIFICATIONS_TASK in celery_app.tasks
        assert RECONCILE_COUNTERS_TASK in celery_app.tasks

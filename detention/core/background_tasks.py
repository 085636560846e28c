"""
Background task management.

Celery application for out-of-request work: draining the notification
queue and the nightly unexcused-counter reconciliation. Request handlers
also drain the queue in-process after a response through
``deliver_queued_notifications`` so notices go out without waiting for
the next beat tick.
"""

from datetime import timedelta
from typing import Any, Dict, Optional

from celery import Celery
from celery.schedules import crontab
from sqlalchemy.engine import Engine

from detention.config.database import SessionLocal, build_session_factory
from detention.config.settings import settings
from detention.core.logging import get_logger
from detention.services.base.notification_dispatcher import NotificationDispatcher
from detention.services.base.notification_sender import NotificationSender
from detention.services.base.service_result import ServiceResult
from detention.services.detention.counter_reconciliation import CounterReconciliation

logger = get_logger(__name__)

DELIVER_NOTIFICATIONS_TASK = "detention.tasks.deliver_notifications"
RECONCILE_COUNTERS_TASK = "detention.tasks.reconcile_unexcused_counters"


def create_celery_app() -> Celery:
    """Build the Celery application from settings."""
    app = Celery(
        "detention_tasks",
        broker=settings.TASK_BROKER_URL,
        backend=settings.TASK_RESULT_BACKEND,
    )
    app.conf.update(
        task_serializer="json",
        accept_content=["json"],
        result_serializer="json",
        timezone="UTC",
        enable_utc=True,
        task_track_started=True,
        task_time_limit=settings.TASK_TIMEOUT,
        task_soft_time_limit=max(settings.TASK_TIMEOUT - 30, 1),
        worker_prefetch_multiplier=1,
        task_acks_late=True,
        task_always_eager=settings.TASK_ALWAYS_EAGER,
    )
    if settings.ENABLE_PERIODIC_TASKS:
        app.conf.beat_schedule = {
            "deliver-queued-notifications": {
                "task": DELIVER_NOTIFICATIONS_TASK,
                "schedule": timedelta(seconds=settings.NOTIFICATION_DELIVERY_INTERVAL_SECONDS),
            },
            "reconcile-unexcused-counters": {
                "task": RECONCILE_COUNTERS_TASK,
                "schedule": crontab(hour=settings.RECONCILIATION_HOUR_UTC, minute=0),
            },
        }
    return app


celery_app = create_celery_app()


def deliver_queued_notifications(
    bind: Optional[Engine] = None,
    sender: Optional[NotificationSender] = None,
    limit: Optional[int] = None,
) -> ServiceResult[Dict[str, int]]:
    """
    Drain the notification queue in a session of its own.

    Args:
        bind: Engine to use (defaults to the application engine)
        sender: Delivery backend (defaults to the configured one)
        limit: Maximum number of items to process
    """
    factory = build_session_factory(bind) if bind is not None else SessionLocal
    session = factory()
    try:
        result = NotificationDispatcher(session, sender=sender).deliver_pending(
            limit or settings.NOTIFICATION_BATCH_SIZE
        )
    finally:
        session.close()

    if not result.is_success:
        logger.error(
            f"Notification delivery run failed: {result.error.message}",
            extra={"error_code": result.error.code.value},
        )
    return result


@celery_app.task(name=DELIVER_NOTIFICATIONS_TASK)
def deliver_notifications(limit: Optional[int] = None) -> Dict[str, Any]:
    return deliver_queued_notifications(limit=limit).to_dict()


@celery_app.task(name=RECONCILE_COUNTERS_TASK)
def reconcile_unexcused_counters() -> Dict[str, Any]:
    session = SessionLocal()
    try:
        result = CounterReconciliation(session).reconcile()
    finally:
        session.close()

    if not result.is_success:
        logger.error(
            f"Counter reconciliation failed: {result.error.message}",
            extra={"error_code": result.error.code.value},
        )
    return result.to_dict()


__all__ = [
    "celery_app",
    "create_celery_app",
    "deliver_notifications",
    "deliver_queued_notifications",
    "reconcile_unexcused_counters",
]

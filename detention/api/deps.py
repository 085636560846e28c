"""
Shared FastAPI dependencies and result helpers.

Example usage in a router:
    @router.post("/slots")
    def create_slot(payload: SlotCreate, db: Session = Depends(deps.get_db),
                    actor: Actor = Depends(deps.get_current_actor)):
        ...
"""

from typing import Generator, Optional, Type, TypeVar

from fastapi import BackgroundTasks, Depends, Header
from pydantic import BaseModel
from sqlalchemy.orm import Session

from detention.config.database import get_db_session
from detention.core.background_tasks import deliver_queued_notifications
from detention.core.exceptions import STATUS_BY_ERROR_CODE, AuthenticationError, BaseAppException
from detention.models.base.enums import UserRole
from detention.schemas.common.response import BatchItemResponse, BatchResponse, ErrorBody
from detention.services.base.base_service import Actor
from detention.services.base.notification_dispatcher import NotificationDispatcher
from detention.services.base.notification_sender import NotificationSender, build_notification_sender
from detention.services.base.service_result import ServiceError, ServiceResult, summarize_batch

TSchema = TypeVar("TSchema", bound=BaseModel)


# --- Database & identity ------------------------------------------------------

def get_db() -> Generator[Session, None, None]:
    """One session per request; tests override this dependency."""
    yield from get_db_session()


def get_current_actor(
    x_user_id: Optional[str] = Header(default=None),
    x_user_role: Optional[str] = Header(default=None),
) -> Actor:
    """
    Identity as forwarded by the upstream identity provider.

    Raises:
        AuthenticationError: If the user id is missing or the role unknown
    """
    if not x_user_id or not x_user_id.strip():
        raise AuthenticationError("Missing X-User-Id header")
    try:
        role = UserRole((x_user_role or UserRole.TEACHER.value).strip().lower())
    except ValueError as e:
        raise AuthenticationError(f"Unknown role: {x_user_role}") from e
    return Actor(x_user_id.strip(), role)


def get_notification_sender() -> NotificationSender:
    return build_notification_sender()


def get_notification_dispatcher(
    db: Session = Depends(get_db),
    sender: NotificationSender = Depends(get_notification_sender),
) -> NotificationDispatcher:
    return NotificationDispatcher(db, sender=sender)


def schedule_notification_delivery(background_tasks: BackgroundTasks, dispatcher: NotificationDispatcher) -> None:
    """Drain the notification queue once the response has been sent."""
    background_tasks.add_task(
        deliver_queued_notifications,
        dispatcher.db.get_bind(),
        dispatcher.sender,
    )


# --- ServiceResult -> HTTP --------------------------------------------------------

def _error_body(error: Optional[ServiceError]) -> Optional[ErrorBody]:
    if error is None:
        return None
    return ErrorBody(code=error.code.value, message=error.message, details=error.details)


def unwrap_result(result: ServiceResult):
    """Return the result data, or raise it as an application error for the handler."""
    if result.is_success:
        return result.data
    error = result.error
    raise BaseAppException(
        error.message,
        error.code,
        error.details,
        STATUS_BY_ERROR_CODE.get(error.code, 500),
    )


def to_batch_response(
    result: ServiceResult,
    schema: Type[TSchema],
) -> BatchResponse:
    """Render a batch ServiceResult as per-item outcomes with totals."""
    items = unwrap_result(result)
    rendered = []
    for item in items:
        data = None
        if item.is_success and item.result.data is not None:
            data = schema.model_validate(item.result.data)
        rendered.append(
            BatchItemResponse[schema](
                key=item.key,
                success=item.is_success,
                data=data,
                error=_error_body(item.result.error),
            )
        )
    return BatchResponse[schema](items=rendered, **summarize_batch(items))

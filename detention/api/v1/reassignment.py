"""
Reassignment endpoint.
"""

from fastapi import APIRouter, BackgroundTasks, Depends
from sqlalchemy.orm import Session

from detention.api import deps
from detention.schemas.common.response import BatchResponse
from detention.schemas.detention.reassignment import ReassignmentOutcomeResponse, ReassignmentRequest
from detention.services.base.base_service import Actor
from detention.services.base.notification_dispatcher import NotificationDispatcher
from detention.services.detention.reassignment_engine import ReassignmentEngine

router = APIRouter(prefix="/reassignments", tags=["Reassignment"])


@router.post("", response_model=BatchResponse[ReassignmentOutcomeResponse])
def reassign_batch(
    payload: ReassignmentRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(deps.get_db),
    actor: Actor = Depends(deps.get_current_actor),
    dispatcher: NotificationDispatcher = Depends(deps.get_notification_dispatcher),
):
    """Per-student results; one student's failure does not affect the others."""
    result = ReassignmentEngine(db, dispatcher=dispatcher).reassign_batch(
        payload.absent_date,
        actor,
        overrides=payload.overrides,
        auto_assign=payload.auto_assign,
        violation_ids=payload.violation_ids,
    )
    response = deps.to_batch_response(result, ReassignmentOutcomeResponse)
    if response.successful:
        deps.schedule_notification_delivery(background_tasks, dispatcher)
    return response

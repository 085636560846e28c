"""
Violation and warning endpoints.
"""

from datetime import date
from typing import List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query, status
from sqlalchemy.orm import Session

from detention.api import deps
from detention.models.base.enums import ViolationStatus
from detention.schemas.detention.attendance import AttendanceRecordResponse
from detention.schemas.detention.violation import (
    ViolationCreate,
    ViolationResponse,
    WarningCreate,
    WarningResponse,
)
from detention.services.base.base_service import Actor
from detention.services.base.notification_dispatcher import NotificationDispatcher
from detention.services.detention.attendance_tracker import AttendanceTracker
from detention.services.detention.violation_ledger import ViolationLedger

router = APIRouter(tags=["Violations"])


@router.post("/violations", response_model=ViolationResponse, status_code=status.HTTP_201_CREATED)
def record_violation(
    payload: ViolationCreate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(deps.get_db),
    actor: Actor = Depends(deps.get_current_actor),
    dispatcher: NotificationDispatcher = Depends(deps.get_notification_dispatcher),
):
    result = ViolationLedger(db, dispatcher=dispatcher).record_violation(
        payload.student_id,
        payload.violation_type,
        payload.detention_date,
        actor,
    )
    violation = deps.unwrap_result(result)
    deps.schedule_notification_delivery(background_tasks, dispatcher)
    return violation


@router.get("/violations", response_model=List[ViolationResponse])
def list_violations(
    detention_date: date = Query(..., description="Session date"),
    status_filter: Optional[ViolationStatus] = Query(None, alias="status"),
    db: Session = Depends(deps.get_db),
    actor: Actor = Depends(deps.get_current_actor),
):
    """Open violations booked on a session date; the roll call for that day."""
    return deps.unwrap_result(ViolationLedger(db).list_for_date(detention_date, status_filter))


@router.get("/violations/{violation_id}/attendance", response_model=List[AttendanceRecordResponse])
def get_attendance_history(
    violation_id: str,
    db: Session = Depends(deps.get_db),
    actor: Actor = Depends(deps.get_current_actor),
):
    """Attendance records of a violation including sessions it was moved from."""
    return deps.unwrap_result(AttendanceTracker(db).attendance_history(violation_id))


@router.post("/violations/{violation_id}/archive", response_model=ViolationResponse)
def archive_violation(
    violation_id: str,
    db: Session = Depends(deps.get_db),
    actor: Actor = Depends(deps.get_current_actor),
    dispatcher: NotificationDispatcher = Depends(deps.get_notification_dispatcher),
):
    return deps.unwrap_result(ViolationLedger(db, dispatcher=dispatcher).archive_violation(violation_id, actor))


@router.post("/warnings", response_model=WarningResponse, status_code=status.HTTP_201_CREATED)
def record_warning(
    payload: WarningCreate,
    db: Session = Depends(deps.get_db),
    actor: Actor = Depends(deps.get_current_actor),
    dispatcher: NotificationDispatcher = Depends(deps.get_notification_dispatcher),
):
    """Issue a warning; refused with ESCALATION_REQUIRED at the warning limit."""
    result = ViolationLedger(db, dispatcher=dispatcher).record_warning(
        payload.student_id,
        payload.violation_type,
        actor,
    )
    return deps.unwrap_result(result)

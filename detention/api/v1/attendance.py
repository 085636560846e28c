"""
Attendance endpoints.
"""

from datetime import date

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from detention.api import deps
from detention.schemas.common.response import BatchResponse
from detention.schemas.detention.attendance import (
    AbsenceLogCorrection,
    AbsenceLogResponse,
    AttendanceAmendRequest,
    AttendanceBatchRequest,
    AttendanceMarkRequest,
    AttendanceRecordResponse,
    SessionOpenResponse,
)
from detention.services.base.base_service import Actor
from detention.services.base.notification_dispatcher import NotificationDispatcher
from detention.services.detention.attendance_tracker import AttendanceMark, AttendanceTracker

router = APIRouter(tags=["Attendance"])


def _tracker(
    db: Session = Depends(deps.get_db),
    dispatcher: NotificationDispatcher = Depends(deps.get_notification_dispatcher),
) -> AttendanceTracker:
    return AttendanceTracker(db, dispatcher=dispatcher)


@router.post("/attendance/batch", response_model=BatchResponse[AttendanceRecordResponse])
def mark_attendance_batch(
    payload: AttendanceBatchRequest,
    tracker: AttendanceTracker = Depends(_tracker),
    actor: Actor = Depends(deps.get_current_actor),
):
    """Mark a whole session; each row commits independently."""
    items = [
        AttendanceMark(item.violation_id, item.status, reason=item.reason, notes=item.notes)
        for item in payload.items
    ]
    result = tracker.mark_batch(payload.slot_date, items, actor)
    return deps.to_batch_response(result, AttendanceRecordResponse)


@router.post("/attendance/sessions/{slot_date}/open", response_model=SessionOpenResponse)
def open_session(
    slot_date: date,
    tracker: AttendanceTracker = Depends(_tracker),
    actor: Actor = Depends(deps.get_current_actor),
):
    activated = deps.unwrap_result(tracker.activate_reassigned(slot_date, actor))
    return SessionOpenResponse(slot_date=slot_date, activated=activated)


@router.post("/attendance/{violation_id}/mark", response_model=AttendanceRecordResponse)
def mark_attendance(
    violation_id: str,
    payload: AttendanceMarkRequest,
    tracker: AttendanceTracker = Depends(_tracker),
    actor: Actor = Depends(deps.get_current_actor),
):
    result = tracker.mark_attendance(
        violation_id,
        payload.status,
        actor,
        reason=payload.reason,
        notes=payload.notes,
        session_date=payload.session_date,
    )
    return deps.unwrap_result(result)


@router.post("/attendance/{violation_id}/amend", response_model=AttendanceRecordResponse)
def amend_attendance(
    violation_id: str,
    payload: AttendanceAmendRequest,
    tracker: AttendanceTracker = Depends(_tracker),
    actor: Actor = Depends(deps.get_current_actor),
):
    result = tracker.amend_attendance(
        violation_id,
        actor,
        status=payload.status,
        reason=payload.reason,
        notes=payload.notes,
        attendance_id=payload.attendance_id,
    )
    return deps.unwrap_result(result)


@router.patch("/absence-log/{entry_id}", response_model=AbsenceLogResponse)
def correct_absence_log(
    entry_id: str,
    payload: AbsenceLogCorrection,
    tracker: AttendanceTracker = Depends(_tracker),
    actor: Actor = Depends(deps.get_current_actor),
):
    result = tracker.correct_absence_log(
        entry_id,
        actor,
        reason=payload.reason,
        absence_date=payload.absence_date,
    )
    return deps.unwrap_result(result)

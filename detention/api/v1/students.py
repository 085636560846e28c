"""
Student counter and absence history endpoints.
"""

from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from detention.api import deps
from detention.core.exceptions import ForbiddenError
from detention.schemas.detention.attendance import AbsenceLogResponse
from detention.schemas.detention.student import ReconciliationSummary
from detention.services.base.base_service import Actor
from detention.services.detention.attendance_tracker import AttendanceTracker
from detention.services.detention.counter_reconciliation import CounterReconciliation

router = APIRouter(prefix="/students", tags=["Students"])


@router.get("/{student_id}/absences", response_model=List[AbsenceLogResponse])
def list_absences(
    student_id: str,
    db: Session = Depends(deps.get_db),
    actor: Actor = Depends(deps.get_current_actor),
):
    return deps.unwrap_result(AttendanceTracker(db).absence_history(student_id))


@router.post("/{student_id}/unexcused/reconcile", response_model=ReconciliationSummary)
def reconcile_unexcused_counter(
    student_id: str,
    db: Session = Depends(deps.get_db),
    actor: Actor = Depends(deps.get_current_actor),
):
    if not actor.is_admin:
        raise ForbiddenError("Counter reconciliation is restricted to administrators")
    return deps.unwrap_result(CounterReconciliation(db).reconcile(student_id))

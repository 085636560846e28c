"""
Unexcused-absence counter.

The counter on ``students.unexcused_count`` moves only through the delta
rule below, executed as a database-side increment/decrement inside the
caller's transaction.
"""

from typing import Iterable, List, Optional, Tuple

from sqlalchemy.orm import Session

from detention.core.exceptions import ResourceNotFoundError
from detention.models.base.enums import AbsenceReason, AttendanceStatus
from detention.models.detention.student import Student
from detention.repositories.detention.student_repository import StudentRepository
from detention.services.base.base_service import BaseService
from detention.services.base.service_result import ServiceResult

Combination = Tuple[Optional[AttendanceStatus], Optional[AbsenceReason]]

UNEXCUSED_ABSENCE: Combination = (AttendanceStatus.ABSENT, AbsenceReason.UNEXCUSED)


def compute_delta(old: Combination, new: Combination) -> int:
    """
    +1 when entering (absent, unexcused), -1 when leaving it, else 0.
    """
    was_counted = tuple(old) == UNEXCUSED_ABSENCE
    is_counted = tuple(new) == UNEXCUSED_ABSENCE
    if is_counted and not was_counted:
        return 1
    if was_counted and not is_counted:
        return -1
    return 0


class UnexcusedCounter(BaseService[Student, StudentRepository]):
    """Maintains the per-student unexcused-absence tally."""

    def __init__(self, db_session: Session):
        super().__init__(StudentRepository(db_session), db_session)

    def apply_delta(self, student_id: str, old: Combination, new: Combination) -> int:
        """
        Apply the transition delta in the current transaction.

        Does not commit; the caller's attendance write and this update
        succeed or fail together.

        Returns:
            The delta actually persisted (a decrement at zero persists 0)

        Raises:
            ResourceNotFoundError: If the student row does not exist
        """
        delta = compute_delta(old, new)
        if delta == 0:
            return 0
        return self._step(student_id, delta)

    def _step(self, student_id: str, delta: int) -> int:
        if delta > 0:
            if not self.repository.increment_unexcused(student_id):
                raise ResourceNotFoundError("Student", student_id)
            return 1

        if self.repository.decrement_unexcused(student_id):
            return -1
        if self.repository.get_unexcused(student_id) is None:
            raise ResourceNotFoundError("Student", student_id)
        self._logger.warning(
            f"Unexcused counter for student {student_id} already at zero; decrement skipped",
            extra={"student_id": student_id},
        )
        return 0

    def revert(self, student_id: str, applied_deltas: Iterable[int]) -> ServiceResult[int]:
        """
        Undo deltas that were persisted for an abandoned submission.

        Applies the exact inverse of each delta in reverse order, in one
        transaction.

        Returns:
            ServiceResult with the net change made by the reversal
        """
        deltas: List[int] = [d for d in applied_deltas if d]
        try:
            net = 0
            with self.transaction("revert unexcused deltas"):
                for delta in reversed(deltas):
                    net += self._step(student_id, -delta)

            self._log_operation(
                "revert unexcused deltas",
                student_id,
                {"reverted": len(deltas), "net_change": net},
            )
            return ServiceResult.success(net, message=f"Reverted {len(deltas)} counter change(s)")
        except Exception as e:
            return self._handle_exception(e, "revert unexcused deltas", student_id)

    def get_count(self, student_id: str) -> ServiceResult[int]:
        try:
            value = self.repository.get_unexcused(student_id)
            if value is None:
                return ServiceResult.not_found("Student", student_id)
            return ServiceResult.success(value)
        except Exception as e:
            return self._handle_exception(e, "read unexcused counter", student_id)

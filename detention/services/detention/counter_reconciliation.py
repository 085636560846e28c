"""
Counter reconciliation job.

Recomputes ``unexcused_count`` from the attendance records and corrects
any drift with a compare-and-set, so a concurrent increment is never lost.
"""

from typing import Dict, Optional

from sqlalchemy.orm import Session

from detention.core.exceptions import ConflictError, ResourceNotFoundError
from detention.models.detention.student import Student
from detention.repositories.detention.student_repository import StudentRepository
from detention.services.base.base_service import BaseService
from detention.services.base.service_result import ServiceResult


class CounterReconciliation(BaseService[Student, StudentRepository]):
    """Periodic repair of the per-student unexcused counters."""

    def __init__(self, db_session: Session):
        super().__init__(StudentRepository(db_session), db_session)

    def reconcile(self, student_id: Optional[str] = None) -> ServiceResult[Dict[str, int]]:
        """
        Reconcile one student, or every student when ``student_id`` is None.

        Returns:
            ServiceResult with counts of students checked, corrected and
            skipped (value changed underneath the check)
        """
        try:
            if student_id is not None:
                ids = [student_id]
            else:
                ids = list(self.repository.iter_ids())
        except Exception as e:
            return self._handle_exception(e, "list students for reconciliation")

        checked = corrected = skipped = 0
        for sid in ids:
            try:
                with self.transaction("reconcile unexcused counter"):
                    changed = self._reconcile_one(sid)
            except ConflictError:
                skipped += 1
                continue
            except Exception as e:
                return self._handle_exception(e, "reconcile unexcused counter", sid)
            checked += 1
            corrected += int(changed)

        summary = {"checked": checked, "corrected": corrected, "skipped": skipped}
        self._log_operation("reconcile unexcused counters", student_id, summary)
        return ServiceResult.success(summary, message=f"{corrected} counter(s) corrected")

    def _reconcile_one(self, student_id: str) -> bool:
        stored = self.repository.get_unexcused(student_id)
        if stored is None:
            raise ResourceNotFoundError("Student", student_id)
        actual = self.repository.count_unexcused_records(student_id)
        if stored == actual:
            return False

        if not self.repository.set_unexcused(student_id, stored, actual):
            self._logger.warning(
                f"Unexcused counter for student {student_id} changed during reconciliation; skipped",
                extra={"student_id": student_id},
            )
            raise ConflictError(
                "Counter changed during reconciliation",
                details={"student_id": student_id},
            )

        self._logger.warning(
            f"Unexcused counter drift corrected for student {student_id}: {stored} -> {actual}",
            extra={"student_id": student_id, "stored": stored, "actual": actual},
        )
        return True

"""
Violation ledger: issues warnings and violations, and books each violation
into a detention slot.
"""

from datetime import date
from typing import Callable, List, Optional, Set

from sqlalchemy.orm import Session

from detention.config.settings import settings
from detention.core.exceptions import (
    ConflictError,
    EscalationRequiredError,
    ForbiddenError,
    ValidationError,
)
from detention.models.base.enums import (
    SEAT_HOLDING_STATUSES,
    NotificationKind,
    ViolationStatus,
)
from detention.models.detention.violation import StudentWarning, Violation
from detention.repositories.detention.attendance_repository import AttendanceRecordRepository
from detention.repositories.detention.student_repository import StudentRepository
from detention.repositories.detention.violation_repository import (
    ViolationRepository,
    WarningRepository,
)
from detention.services.base.base_service import Actor, BaseService
from detention.services.base.notification_dispatcher import NotificationDispatcher
from detention.services.base.service_result import ServiceResult
from detention.services.detention.slot_registry import SlotRegistry


class ViolationLedger(BaseService[Violation, ViolationRepository]):
    """
    Violation lifecycle service.

    Booking a violation takes a seat, creates the violation and its first
    attendance record in one transaction.
    """

    def __init__(
        self,
        db_session: Session,
        dispatcher: Optional[NotificationDispatcher] = None,
        today: Callable[[], date] = date.today,
    ):
        super().__init__(ViolationRepository(db_session), db_session)
        self.warnings = WarningRepository(db_session)
        self.students = StudentRepository(db_session)
        self.records = AttendanceRecordRepository(db_session)
        self.slots = SlotRegistry(db_session, today=today)
        self.dispatcher = dispatcher or NotificationDispatcher(db_session)
        self._today = today

    # -------------------------------------------------------------------------
    # Violations
    # -------------------------------------------------------------------------

    def record_violation(
        self,
        student_id: str,
        violation_type: str,
        detention_date: date,
        issuer: Actor,
    ) -> ServiceResult[Violation]:
        """
        Record a violation and book the student into ``detention_date``.

        Args:
            student_id: Student receiving the detention
            violation_type: Free-text category (e.g. "Late to class")
            detention_date: Slot date to book
            issuer: Staff member issuing the violation

        Returns:
            ServiceResult containing the pending violation. Fails with
            CAPACITY_EXCEEDED when the date is full and CONFLICT when the
            student already holds a booking that day; nothing is written
            in either case.
        """
        try:
            violation_type = (violation_type or "").strip()
            if not violation_type:
                raise ValidationError(
                    "Violation type is required",
                    field_errors={"violation_type": ["required"]},
                )
            if detention_date < self._today():
                raise ValidationError(
                    "Detention date is in the past",
                    field_errors={"detention_date": ["date is in the past"]},
                )

            with self.transaction("record violation") as ctx:
                self.students.get_or_raise(student_id, for_update=True)
                if detention_date in self.repository.booked_dates(student_id):
                    raise ConflictError(
                        f"Student already booked for detention on {detention_date}",
                        details={"student_id": student_id, "detention_date": detention_date.isoformat()},
                    )

                slot = self.slots.reserve_seat(detention_date)
                violation = self.repository.create_violation(
                    student_id, violation_type, detention_date, slot.id, issuer.user_id
                )
                record = self.records.create_record(violation.id, student_id, detention_date)
                archived = self.warnings.archive_open(student_id, violation_type)

                ctx.after_commit(
                    lambda: self.dispatcher.enqueue(
                        NotificationKind.DETENTION_ASSIGNED,
                        student_id,
                        violation.id,
                        record.id,
                        detention_date,
                    )
                )

            self._log_operation(
                "record violation",
                violation.id,
                {
                    "student_id": student_id,
                    "detention_date": detention_date.isoformat(),
                    "slot_id": slot.id,
                    "warnings_archived": archived,
                },
            )
            return ServiceResult.success(violation, message="Violation recorded")
        except Exception as e:
            return self._handle_exception(e, "record violation", student_id)

    def archive_violation(self, violation_id: str, actor: Actor) -> ServiceResult[Violation]:
        """
        Archive a violation, giving its seat back if it still holds one.

        The unexcused counter is left alone: absences already recorded
        remain part of the student's history.
        """
        try:
            with self.transaction("archive violation"):
                violation = self.repository.get_or_raise(violation_id, for_update=True)
                if not actor.is_admin and violation.issued_by != actor.user_id:
                    raise ForbiddenError(
                        "Only the issuing teacher or an administrator may archive this violation",
                        details={"violation_id": violation_id},
                    )
                if violation.is_archived:
                    return ServiceResult.success(violation, message="Violation already archived")

                if violation.status in SEAT_HOLDING_STATUSES:
                    self.slots.release_seat(violation.slot_id)
                    violation.slot_id = None
                if violation.status == ViolationStatus.ATTENDED:
                    violation.status = ViolationStatus.COMPLETED
                violation.is_archived = True
                self.repository.flush()

            self._log_operation("archive violation", violation_id, {"status": violation.status.value})
            return ServiceResult.success(violation, message="Violation archived")
        except Exception as e:
            return self._handle_exception(e, "archive violation", violation_id)

    def list_for_date(
        self,
        detention_date: date,
        status: Optional[ViolationStatus] = None,
    ) -> ServiceResult[List[Violation]]:
        """Open violations booked on ``detention_date``, oldest first."""
        try:
            return ServiceResult.success(self.repository.find_for_date(detention_date, status))
        except Exception as e:
            return self._handle_exception(e, "list violations", detention_date)

    def get_conflict_dates(self, student_id: str, exclude_violation_id: Optional[str] = None) -> Set[date]:
        """Dates on which the student already holds an open booking."""
        return self.repository.booked_dates(student_id, exclude_violation_id=exclude_violation_id)

    def update_status(self, violation: Violation, new_status: ViolationStatus) -> Violation:
        """
        Mirror an attendance status onto the violation.

        Runs inside the caller's transaction, next to the paired
        attendance record write.
        """
        violation.status = new_status
        self.repository.flush()
        return violation

    # -------------------------------------------------------------------------
    # Warnings
    # -------------------------------------------------------------------------

    def record_warning(
        self,
        student_id: str,
        violation_type: str,
        issuer: Actor,
    ) -> ServiceResult[StudentWarning]:
        """
        Issue a warning, or refuse with ESCALATION_REQUIRED once the student
        already has WARNING_LIMIT open warnings of this type.
        """
        try:
            violation_type = (violation_type or "").strip()
            if not violation_type:
                raise ValidationError(
                    "Violation type is required",
                    field_errors={"violation_type": ["required"]},
                )

            with self.transaction("record warning"):
                self.students.get_or_raise(student_id)
                open_count = self.warnings.count_open(student_id, violation_type)
                if open_count >= settings.WARNING_LIMIT:
                    raise EscalationRequiredError(
                        student_id, violation_type, open_count, settings.WARNING_LIMIT
                    )
                warning = self.warnings.create_warning(student_id, violation_type, issuer.user_id)

            self._log_operation(
                "record warning",
                warning.id,
                {"student_id": student_id, "open_warnings": open_count + 1},
            )
            return ServiceResult.success(
                warning,
                message="Warning recorded",
                metadata={"open_warnings": open_count + 1, "limit": settings.WARNING_LIMIT},
            )
        except Exception as e:
            return self._handle_exception(e, "record warning", student_id)

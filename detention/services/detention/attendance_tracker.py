"""
Attendance tracker: marking, amendment and absence logging.

Every attendance write is paired with the violation status and the
unexcused counter in the same transaction.
"""

from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import List, Optional, Sequence

from sqlalchemy.orm import Session

from detention.core.exceptions import (
    ConflictError,
    ForbiddenError,
    InvalidTransitionError,
    ResourceNotFoundError,
    ValidationError,
)
from detention.models.base.enums import AbsenceReason, AttendanceStatus, ViolationStatus
from detention.models.detention.attendance_record import AbsenceLogEntry, AttendanceRecord
from detention.repositories.detention.attendance_repository import (
    AbsenceLogRepository,
    AttendanceRecordRepository,
)
from detention.services.base.base_service import Actor, BaseService
from detention.services.base.notification_dispatcher import NotificationDispatcher
from detention.services.base.service_result import (
    BatchItemResult,
    ServiceResult,
    summarize_batch,
)
from detention.services.detention.unexcused_counter import UnexcusedCounter
from detention.services.detention.violation_ledger import ViolationLedger

MARKABLE_STATUSES = (AttendanceStatus.ATTENDED, AttendanceStatus.ABSENT)
AMENDABLE_STATUSES = (AttendanceStatus.PENDING, AttendanceStatus.ATTENDED, AttendanceStatus.ABSENT)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class AttendanceMark:
    """One row of a session's attendance sheet."""

    violation_id: str
    status: AttendanceStatus
    reason: Optional[AbsenceReason] = None
    notes: Optional[str] = None


class AttendanceTracker(BaseService[AttendanceRecord, AttendanceRecordRepository]):
    """
    Attendance state machine.

    pending -> attended | absent; absent -> reassigned (by the
    reassignment engine); reassigned -> pending when the new session opens.
    """

    def __init__(self, db_session: Session, dispatcher: Optional[NotificationDispatcher] = None):
        super().__init__(AttendanceRecordRepository(db_session), db_session)
        self.absence_log = AbsenceLogRepository(db_session)
        self.ledger = ViolationLedger(db_session, dispatcher=dispatcher)
        self.counter = UnexcusedCounter(db_session)

    # -------------------------------------------------------------------------
    # Marking
    # -------------------------------------------------------------------------

    def mark_attendance(
        self,
        violation_id: str,
        status: AttendanceStatus,
        marker: Actor,
        reason: Optional[AbsenceReason] = None,
        notes: Optional[str] = None,
        session_date: Optional[date] = None,
    ) -> ServiceResult[AttendanceRecord]:
        """
        Mark the current record of a violation attended or absent.

        A record still flagged ``reassigned`` is activated to ``pending``
        first, in the same transaction.

        Args:
            violation_id: Violation being marked
            status: ``attended`` or ``absent``
            marker: Staff member taking attendance
            reason: Absence reason (defaults to unexcused)
            notes: Free-text notes
            session_date: When given, the record must be for this date

        Returns:
            ServiceResult containing the updated record
        """
        try:
            status = AttendanceStatus(status)
            if status not in MARKABLE_STATUSES:
                raise ValidationError(
                    "Attendance can only be marked attended or absent",
                    field_errors={"status": ["must be attended or absent"]},
                )

            with self.transaction("mark attendance"):
                violation = self.ledger.repository.get_or_raise(violation_id, for_update=True)
                if violation.is_archived:
                    raise ConflictError(
                        "Violation is archived",
                        details={"violation_id": violation_id},
                    )
                record = self.repository.get_current_or_raise(violation_id, for_update=True)
                if session_date is not None and record.detention_date != session_date:
                    raise ValidationError(
                        f"Violation is scheduled for {record.detention_date}, not {session_date}",
                        field_errors={"session_date": ["does not match the scheduled date"]},
                    )

                if record.status == AttendanceStatus.REASSIGNED:
                    record.status = AttendanceStatus.PENDING
                    self.ledger.update_status(violation, ViolationStatus.PENDING)
                elif record.status != AttendanceStatus.PENDING:
                    raise InvalidTransitionError(record.status.value, status.value)

                old = record.combination
                record.status = status
                record.reason = AbsenceReason(reason) if reason else AbsenceReason.UNEXCUSED
                record.notes = notes
                record.marked_by = marker.user_id
                record.marked_at = _utcnow()
                self.repository.flush()

                self.ledger.update_status(violation, ViolationStatus(status.value))
                if status == AttendanceStatus.ABSENT:
                    self._log_absence(record, marker.user_id)
                delta = self.counter.apply_delta(record.student_id, old, record.combination)

            self._log_operation(
                "mark attendance",
                record.id,
                {"violation_id": violation_id, "status": status.value, "counter_delta": delta},
            )
            return ServiceResult.success(record, message=f"Attendance marked {status.value}")
        except Exception as e:
            return self._handle_exception(e, "mark attendance", violation_id)

    def mark_batch(
        self,
        slot_date: date,
        items: Sequence[AttendanceMark],
        marker: Actor,
    ) -> ServiceResult[List[BatchItemResult]]:
        """
        Mark a whole session. Each item commits on its own; a failed item
        leaves the others applied.
        """
        results = [
            BatchItemResult(
                key=item.violation_id,
                result=self.mark_attendance(
                    item.violation_id,
                    item.status,
                    marker,
                    reason=item.reason,
                    notes=item.notes,
                    session_date=slot_date,
                ),
            )
            for item in items
        ]
        summary = summarize_batch(results)
        self._logger.info(
            f"Attendance batch for {slot_date}: {summary['successful']} of {summary['total']} marked",
            extra={"slot_date": slot_date.isoformat(), **summary},
        )
        return ServiceResult.success(results, metadata=summary)

    def activate_reassigned(self, slot_date: date, actor: Actor) -> ServiceResult[int]:
        """Open a session: every reassigned record on the date becomes pending."""
        try:
            with self.transaction("activate reassigned records"):
                records = self.repository.find_current_on_date(
                    slot_date, AttendanceStatus.REASSIGNED, for_update=True
                )
                for record in records:
                    violation = self.ledger.repository.get_or_raise(record.violation_id, for_update=True)
                    record.status = AttendanceStatus.PENDING
                    self.ledger.update_status(violation, ViolationStatus.PENDING)

            self._log_operation(
                "activate reassigned records",
                slot_date,
                {"activated": len(records), "actor": actor.user_id},
            )
            return ServiceResult.success(len(records), message=f"{len(records)} record(s) activated")
        except Exception as e:
            return self._handle_exception(e, "activate reassigned records", slot_date)

    # -------------------------------------------------------------------------
    # Amendment
    # -------------------------------------------------------------------------

    def amend_attendance(
        self,
        violation_id: str,
        actor: Actor,
        status: Optional[AttendanceStatus] = None,
        reason: Optional[AbsenceReason] = None,
        notes: Optional[str] = None,
        attendance_id: Optional[str] = None,
    ) -> ServiceResult[AttendanceRecord]:
        """
        Correct a marked record.

        Only an administrator or the original marker may amend. Status can
        change only on the current record; a historical record (one the
        violation has moved on from) takes reason and notes only.
        """
        try:
            new_status = AttendanceStatus(status) if status is not None else None

            with self.transaction("amend attendance"):
                record = self._load_for_amend(violation_id, attendance_id)
                if not actor.is_admin and record.marked_by != actor.user_id:
                    raise ForbiddenError(
                        "Only the teacher who took attendance or an administrator may amend it",
                        details={"attendance_id": record.id},
                    )
                if record.status == AttendanceStatus.PENDING:
                    raise InvalidTransitionError(
                        record.status.value,
                        new_status.value if new_status else None,
                        message="Attendance has not been marked yet",
                    )

                status_changed = new_status is not None and new_status != record.status
                if status_changed:
                    self._check_amend_transition(record, new_status)
                reason_changed = reason is not None and AbsenceReason(reason) != record.reason

                old = record.combination
                if status_changed:
                    record.status = new_status
                if reason is not None:
                    record.reason = AbsenceReason(reason)
                if notes is not None:
                    record.notes = notes
                record.amended_by = actor.user_id
                record.amended_at = _utcnow()
                self.repository.flush()

                if status_changed:
                    violation = self.ledger.repository.get_or_raise(violation_id, for_update=True)
                    self.ledger.update_status(violation, ViolationStatus(new_status.value))
                if record.status == AttendanceStatus.ABSENT and (status_changed or reason_changed):
                    self._log_absence(record, actor.user_id)
                delta = self.counter.apply_delta(record.student_id, old, record.combination)

            self._log_operation(
                "amend attendance",
                record.id,
                {
                    "violation_id": violation_id,
                    "status": record.status.value,
                    "reason": record.reason.value,
                    "counter_delta": delta,
                },
            )
            return ServiceResult.success(record, message="Attendance amended")
        except Exception as e:
            return self._handle_exception(e, "amend attendance", violation_id)

    def _load_for_amend(self, violation_id: str, attendance_id: Optional[str]) -> AttendanceRecord:
        if attendance_id is None:
            return self.repository.get_current_or_raise(violation_id, for_update=True)
        record = self.repository.get_by_id(attendance_id, for_update=True)
        if record is None or record.violation_id != violation_id:
            raise ResourceNotFoundError("AttendanceRecord", attendance_id)
        return record

    @staticmethod
    def _check_amend_transition(record: AttendanceRecord, new_status: AttendanceStatus) -> None:
        if not record.is_current:
            raise InvalidTransitionError(
                record.status.value,
                new_status.value,
                message="Historical attendance records accept reason and notes corrections only",
            )
        if record.status == AttendanceStatus.REASSIGNED or new_status not in AMENDABLE_STATUSES:
            raise InvalidTransitionError(record.status.value, new_status.value)

    # -------------------------------------------------------------------------
    # History
    # -------------------------------------------------------------------------

    def attendance_history(self, violation_id: str) -> ServiceResult[List[AttendanceRecord]]:
        """Every record of a violation, earliest session first."""
        try:
            if self.ledger.repository.get_by_id(violation_id) is None:
                return ServiceResult.not_found("Violation", violation_id)
            return ServiceResult.success(self.repository.list_for_violation(violation_id))
        except Exception as e:
            return self._handle_exception(e, "attendance history", violation_id)

    def absence_history(self, student_id: str) -> ServiceResult[List[AbsenceLogEntry]]:
        try:
            if self.ledger.students.get_by_id(student_id) is None:
                return ServiceResult.not_found("Student", student_id)
            return ServiceResult.success(self.absence_log.list_for_student(student_id))
        except Exception as e:
            return self._handle_exception(e, "absence history", student_id)

    # -------------------------------------------------------------------------
    # Absence log
    # -------------------------------------------------------------------------

    def correct_absence_log(
        self,
        entry_id: str,
        actor: Actor,
        reason: Optional[AbsenceReason] = None,
        absence_date: Optional[date] = None,
    ) -> ServiceResult[AbsenceLogEntry]:
        """
        Correct an absence log entry's reason or date.

        A reason change is carried to the attendance record and the
        counter. Entries are never deleted.
        """
        try:
            if reason is None and absence_date is None:
                raise ValidationError("Nothing to correct", field_errors={"reason": ["or absence_date required"]})

            with self.transaction("correct absence log"):
                entry = self.absence_log.get_or_raise(entry_id, for_update=True)
                if not actor.is_admin and entry.marked_by != actor.user_id:
                    raise ForbiddenError(
                        "Only the teacher who recorded the absence or an administrator may correct it",
                        details={"entry_id": entry_id},
                    )

                delta = 0
                if reason is not None and AbsenceReason(reason) != entry.reason:
                    entry.reason = AbsenceReason(reason)
                    record = self.repository.get_or_raise(entry.attendance_id, for_update=True)
                    if record.status == AttendanceStatus.ABSENT:
                        old = record.combination
                        record.reason = entry.reason
                        record.amended_by = actor.user_id
                        record.amended_at = _utcnow()
                        self.repository.flush()
                        delta = self.counter.apply_delta(record.student_id, old, record.combination)
                if absence_date is not None:
                    entry.absence_date = absence_date
                entry.corrected_by = actor.user_id
                entry.corrected_at = _utcnow()
                self.absence_log.flush()

            self._log_operation(
                "correct absence log",
                entry_id,
                {"reason": entry.reason.value, "counter_delta": delta},
            )
            return ServiceResult.success(entry, message="Absence log corrected")
        except Exception as e:
            return self._handle_exception(e, "correct absence log", entry_id)

    def _log_absence(self, record: AttendanceRecord, actor_id: str) -> AbsenceLogEntry:
        entry = self.absence_log.find_entry(record.id, record.detention_date)
        if entry is None:
            return self.absence_log.append(record, actor_id)
        if entry.reason != record.reason:
            entry.reason = record.reason
            entry.corrected_by = actor_id
            entry.corrected_at = _utcnow()
            self.absence_log.flush()
        return entry

"""
Reassignment engine: moves absent students' violations to a later slot.
"""

from contextlib import closing
from dataclasses import dataclass
from datetime import date, datetime, timezone
from itertools import islice
from typing import List, Mapping, Optional, Sequence, Set

from sqlalchemy.orm import Session

from detention.config.settings import settings
from detention.core.exceptions import (
    ConflictError,
    InvalidTransitionError,
    NoSlotAvailableError,
    ValidationError,
)
from detention.models.base.enums import AttendanceStatus, NotificationKind, ViolationStatus
from detention.models.detention.attendance_record import AttendanceRecord
from detention.models.detention.detention_slot import DetentionSlot
from detention.models.detention.violation import Violation
from detention.repositories.detention.attendance_repository import AttendanceRecordRepository
from detention.services.base.base_service import Actor, BaseService
from detention.services.base.notification_dispatcher import NotificationDispatcher
from detention.services.base.service_result import (
    BatchItemResult,
    ServiceResult,
    summarize_batch,
)
from detention.services.detention.slot_registry import SlotRegistry
from detention.services.detention.violation_ledger import ViolationLedger


@dataclass
class ReassignmentOutcome:
    """Committed move of one violation."""

    violation_id: str
    student_id: str
    from_date: date
    to_date: date
    slot_id: Optional[str]
    attendance_id: str
    already_applied: bool = False


class ReassignmentEngine(BaseService[AttendanceRecord, AttendanceRecordRepository]):
    """
    Finds and commits a new detention date for each absentee.

    Every student is handled in its own transaction, so one student with
    no qualifying date does not hold back the rest of the batch.
    """

    def __init__(
        self,
        db_session: Session,
        dispatcher: Optional[NotificationDispatcher] = None,
        capacity_retries: Optional[int] = None,
    ):
        super().__init__(AttendanceRecordRepository(db_session), db_session)
        self.dispatcher = dispatcher or NotificationDispatcher(db_session)
        self.ledger = ViolationLedger(db_session, dispatcher=self.dispatcher)
        self.slots = SlotRegistry(db_session)
        self.capacity_retries = (
            settings.REASSIGN_CAPACITY_RETRIES if capacity_retries is None else capacity_retries
        )

    def reassign_batch(
        self,
        absent_date: date,
        actor: Actor,
        overrides: Optional[Mapping[str, date]] = None,
        auto_assign: bool = True,
        violation_ids: Optional[Sequence[str]] = None,
    ) -> ServiceResult[List[BatchItemResult]]:
        """
        Reassign absentees of ``absent_date``.

        Args:
            absent_date: Session the students missed
            actor: Staff member running the reassignment
            overrides: Explicit target date per violation id; these take
                precedence over auto-assign
            auto_assign: Use the earliest qualifying date for violations
                without an override
            violation_ids: Violations to move (defaults to every current
                absent record on ``absent_date`` plus the override keys)

        Returns:
            ServiceResult whose data holds one BatchItemResult per violation
        """
        overrides = dict(overrides or {})
        try:
            targets = self._batch_violation_ids(absent_date, overrides, violation_ids)
        except Exception as e:
            return self._handle_exception(e, "collect absentees", absent_date)

        results = [
            BatchItemResult(
                key=violation_id,
                result=self.reassign(
                    violation_id,
                    absent_date,
                    actor,
                    target_date=overrides.get(violation_id),
                    auto_assign=auto_assign,
                ),
            )
            for violation_id in targets
        ]
        summary = summarize_batch(results)
        self._logger.info(
            f"Reassignment batch for {absent_date}: {summary['successful']} of {summary['total']} moved",
            extra={"absent_date": absent_date.isoformat(), "actor": actor.user_id, **summary},
        )
        return ServiceResult.success(results, metadata=summary)

    def reassign(
        self,
        violation_id: str,
        absent_date: date,
        actor: Actor,
        target_date: Optional[date] = None,
        auto_assign: bool = True,
    ) -> ServiceResult[ReassignmentOutcome]:
        """
        Move one absent violation to ``target_date`` or, with auto-assign,
        to the earliest free date outside the student's conflict set.

        Re-submitting a committed move is a no-op.
        """
        try:
            if target_date is None and not auto_assign:
                raise ValidationError(
                    "A target date is required when auto-assign is off",
                    field_errors={"target_date": ["required"]},
                )
            if target_date is not None and target_date <= absent_date:
                raise ValidationError(
                    "Target date must be after the missed session",
                    field_errors={"target_date": ["must be after the absent date"]},
                )

            with self.transaction("reassign violation") as ctx:
                violation = self.ledger.repository.get_or_raise(violation_id, for_update=True)
                if violation.is_archived:
                    raise ConflictError(
                        "Violation is archived",
                        details={"violation_id": violation_id},
                    )
                self.ledger.students.get_or_raise(violation.student_id, for_update=True)
                record = self.repository.get_current_or_raise(violation_id, for_update=True)

                previous = self._already_applied(violation, record, absent_date, target_date)
                if previous is not None:
                    return ServiceResult.success(previous, message="Reassignment already applied")

                if record.status != AttendanceStatus.ABSENT or record.detention_date != absent_date:
                    raise InvalidTransitionError(
                        record.status.value,
                        AttendanceStatus.REASSIGNED.value,
                        message=(
                            f"Violation {violation_id} is not an open absence on {absent_date} "
                            f"(current: {record.status.value} on {record.detention_date})"
                        ),
                    )

                conflicts = self.ledger.get_conflict_dates(violation.student_id, exclude_violation_id=violation.id)
                if target_date is not None:
                    slot = self._reserve_explicit(target_date, conflicts)
                else:
                    slot = self._reserve_earliest(absent_date, conflicts)

                outcome = self._commit_move(violation, record, slot)
                ctx.after_commit(
                    lambda: self.dispatcher.enqueue(
                        NotificationKind.DETENTION_RESCHEDULED,
                        outcome.student_id,
                        outcome.violation_id,
                        outcome.attendance_id,
                        outcome.to_date,
                    )
                )

            self._log_operation(
                "reassign violation",
                violation_id,
                {
                    "student_id": outcome.student_id,
                    "from_date": absent_date.isoformat(),
                    "to_date": outcome.to_date.isoformat(),
                    "auto_assigned": target_date is None,
                },
            )
            return ServiceResult.success(outcome, message=f"Reassigned to {outcome.to_date}")
        except Exception as e:
            return self._handle_exception(e, "reassign violation", violation_id)

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _batch_violation_ids(
        self,
        absent_date: date,
        overrides: Mapping[str, date],
        violation_ids: Optional[Sequence[str]],
    ) -> List[str]:
        if violation_ids is not None:
            ordered = list(violation_ids)
        else:
            ordered = [
                record.violation_id
                for record in self.repository.find_current_on_date(absent_date, AttendanceStatus.ABSENT)
            ]
        seen = set(ordered)
        ordered.extend(vid for vid in overrides if vid not in seen)
        return list(dict.fromkeys(ordered))

    def _already_applied(
        self,
        violation: Violation,
        current: AttendanceRecord,
        absent_date: date,
        target_date: Optional[date],
    ) -> Optional[ReassignmentOutcome]:
        if current.status != AttendanceStatus.REASSIGNED or current.detention_date == absent_date:
            return None
        missed = self.repository.get_for_violation_date(violation.id, absent_date)
        if missed is None or missed.reassigned_to_date != current.detention_date:
            return None
        if target_date is not None and target_date != current.detention_date:
            raise InvalidTransitionError(
                AttendanceStatus.REASSIGNED.value,
                AttendanceStatus.REASSIGNED.value,
                message=f"Violation {violation.id} was already reassigned to {current.detention_date}",
            )
        return ReassignmentOutcome(
            violation_id=violation.id,
            student_id=violation.student_id,
            from_date=absent_date,
            to_date=current.detention_date,
            slot_id=violation.slot_id,
            attendance_id=current.id,
            already_applied=True,
        )

    def _reserve_explicit(self, target_date: date, conflicts: Set[date]) -> DetentionSlot:
        if target_date in conflicts:
            raise ConflictError(
                f"Student already booked for detention on {target_date}",
                details={"target_date": target_date.isoformat()},
            )
        if not self.slots.repository.find_by_date(target_date):
            raise NoSlotAvailableError(
                f"No detention slot scheduled on {target_date}",
                details={"target_date": target_date.isoformat()},
            )
        return self.slots.reserve_seat(target_date)

    def _reserve_earliest(self, absent_date: date, conflicts: Set[date]) -> DetentionSlot:
        with closing(self.slots.iter_candidate_slots(absent_date, conflicts)) as candidates:
            shortlist = list(islice(candidates, self.capacity_retries + 1))

        for attempt, slot in enumerate(shortlist):
            if self.slots.reserve_seat_in(slot):
                return slot
            self._logger.info(
                f"Slot on {slot.slot_date} filled during reassignment; trying next candidate",
                extra={"slot_id": slot.id, "attempt": attempt + 1},
            )

        raise NoSlotAvailableError(
            f"No available detention date after {absent_date}",
            details={
                "absent_date": absent_date.isoformat(),
                "conflict_dates": sorted(d.isoformat() for d in conflicts),
                "candidates_tried": len(shortlist),
            },
        )

    def _commit_move(
        self,
        violation: Violation,
        missed: AttendanceRecord,
        slot: DetentionSlot,
    ) -> ReassignmentOutcome:
        now = datetime.now(timezone.utc)
        from_date = missed.detention_date

        self.slots.release_seat(violation.slot_id)

        missed.is_current = False
        missed.reassigned_at = now
        missed.reassigned_to_date = slot.slot_date
        self.repository.flush()

        moved = self.repository.create_record(
            violation.id,
            violation.student_id,
            slot.slot_date,
            status=AttendanceStatus.REASSIGNED,
        )

        violation.detention_date = slot.slot_date
        violation.slot_id = slot.id
        self.ledger.update_status(violation, ViolationStatus.REASSIGNED)

        return ReassignmentOutcome(
            violation_id=violation.id,
            student_id=violation.student_id,
            from_date=from_date,
            to_date=slot.slot_date,
            slot_id=slot.id,
            attendance_id=moved.id,
        )


__all__ = ["ReassignmentEngine", "ReassignmentOutcome"]

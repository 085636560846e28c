"""
Detention domain services.
"""

from detention.services.detention.attendance_tracker import AttendanceMark, AttendanceTracker
from detention.services.detention.counter_reconciliation import CounterReconciliation
from detention.services.detention.reassignment_engine import ReassignmentEngine, ReassignmentOutcome
from detention.services.detention.slot_registry import SlotRegistry
from detention.services.detention.unexcused_counter import (
    UNEXCUSED_ABSENCE,
    Combination,
    UnexcusedCounter,
    compute_delta,
)
from detention.services.detention.violation_ledger import ViolationLedger

__all__ = [
    "AttendanceMark",
    "AttendanceTracker",
    "Combination",
    "CounterReconciliation",
    "ReassignmentEngine",
    "ReassignmentOutcome",
    "SlotRegistry",
    "UNEXCUSED_ABSENCE",
    "UnexcusedCounter",
    "ViolationLedger",
    "compute_delta",
]

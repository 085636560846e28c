"""
Shared fixtures: a file-backed SQLite database per test so worker threads
can share it, plus actors, students and booking helpers.
"""

from datetime import date, timedelta
from unittest.mock import MagicMock

import pytest

from detention.config.database import build_engine, build_session_factory
from detention.models import Base
from detention.models.base.enums import UserRole
from detention.repositories.detention.student_repository import StudentRepository
from detention.services.base.base_service import Actor
from detention.services.base.notification_dispatcher import NotificationDispatcher
from detention.services.base.notification_sender import NotificationSender
from detention.services.detention.slot_registry import SlotRegistry
from detention.services.detention.violation_ledger import ViolationLedger


@pytest.fixture
def engine(tmp_path):
    eng = build_engine(f"sqlite:///{tmp_path / 'detention.db'}")
    Base.metadata.create_all(bind=eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def base_date():
    """A Monday far enough ahead that every slot date is in the future."""
    start = date.today() + timedelta(days=30)
    return start + timedelta(days=(7 - start.weekday()) % 7)


@pytest.fixture
def teacher():
    return Actor("teacher-1", UserRole.TEACHER)


@pytest.fixture
def other_teacher():
    return Actor("teacher-2", UserRole.TEACHER)


@pytest.fixture
def admin():
    return Actor("admin-1", UserRole.ADMIN)


@pytest.fixture
def sender():
    return MagicMock(spec=NotificationSender)


@pytest.fixture
def dispatcher(db, sender):
    return NotificationDispatcher(db, sender=sender)


@pytest.fixture
def make_student(db):
    counter = {"n": 0}

    def _make(name=None):
        counter["n"] += 1
        student = StudentRepository(db).create_student(name or f"Student {counter['n']}")
        db.commit()
        return student

    return _make


@pytest.fixture
def make_slot(db):
    """Create a slot; each call on the same date uses a fresh supervisor."""
    owners = {}

    def _make(slot_date, capacity=5, location=None):
        owners[slot_date] = owners.get(slot_date, 0) + 1
        owner = Actor(f"supervisor-{owners[slot_date]}")
        return SlotRegistry(db).create_slot(slot_date, owner, capacity=capacity, location=location).unwrap()

    return _make


@pytest.fixture
def book(db, dispatcher, teacher):
    """Record a violation for a student on a date and return it."""

    def _book(student, detention_date, violation_type="Late to class", issuer=None):
        ledger = ViolationLedger(db, dispatcher=dispatcher)
        return ledger.record_violation(student.id, violation_type, detention_date, issuer or teacher).unwrap()

    return _book


@pytest.fixture
def counter_of(db):
    def _count(student):
        return StudentRepository(db).get_unexcused(student.id)

    return _count

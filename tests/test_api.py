from datetime import timedelta

import pytest
from fastapi.testclient import TestClient

from detention.api import deps
from detention.main import app
from detention.models.base.enums import NotificationStatus
from detention.models.detention.attendance_record import AbsenceLogEntry
from detention.models.detention.notification_queue import NotificationQueueItem
from detention.repositories.detention.student_repository import StudentRepository

TEACHER = {"X-User-Id": "teacher-1", "X-User-Role": "teacher"}
ADMIN = {"X-User-Id": "admin-1", "X-User-Role": "admin"}


@pytest.fixture
def client(db, sender):
    def _get_db():
        yield db

    app.dependency_overrides[deps.get_db] = _get_db
    app.dependency_overrides[deps.get_notification_sender] = lambda: sender
    yield TestClient(app)
    app.dependency_overrides.clear()


def _create_slot(client, slot_date, capacity=5, headers=TEACHER):
    return client.post(
        "/api/v1/slots",
        json={"slot_date": slot_date.isoformat(), "capacity": capacity},
        headers=headers,
    )


class TestIdentity:
    def test_missing_user_is_rejected(self, client, base_date):
        response = client.post("/api/v1/slots", json={"slot_date": base_date.isoformat()})

        assert response.status_code == 401
        assert response.json()["error"]["code"] == "AUTHENTICATION_FAILED"

    def test_unknown_role_is_rejected(self, client, base_date):
        response = _create_slot(client, base_date, headers={"X-User-Id": "u1", "X-User-Role": "janitor"})

        assert response.status_code == 401


class TestSlotEndpoints:
    def test_create_duplicate_and_list(self, client, base_date):
        created = _create_slot(client, base_date, capacity=2)
        duplicate = _create_slot(client, base_date)
        _create_slot(client, base_date + timedelta(days=2))

        assert created.status_code == 201
        assert created.json()["remaining"] == 2
        assert duplicate.status_code == 409
        assert duplicate.json()["error"]["code"] == "CONFLICT"

        listed = client.get(
            "/api/v1/slots/available",
            params={"after": (base_date - timedelta(days=1)).isoformat()},
            headers=TEACHER,
        )
        assert [s["slot_date"] for s in listed.json()] == [
            base_date.isoformat(),
            (base_date + timedelta(days=2)).isoformat(),
        ]

        fetched = client.get(f"/api/v1/slots/{created.json()['id']}", headers=TEACHER)
        missing = client.get("/api/v1/slots/no-such-slot", headers=TEACHER)
        assert fetched.json()["capacity"] == 2
        assert missing.status_code == 404

    def test_request_validation_uses_error_envelope(self, client):
        response = client.post("/api/v1/slots", json={"slot_date": "not-a-date"}, headers=TEACHER)

        assert response.status_code == 422
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"

    def test_delete_occupied_slot(self, client, make_student, base_date):
        slot_id = _create_slot(client, base_date).json()["id"]
        client.post(
            "/api/v1/violations",
            json={"student_id": make_student().id, "violation_type": "Late", "detention_date": base_date.isoformat()},
            headers=TEACHER,
        )

        response = client.delete(f"/api/v1/slots/{slot_id}", headers=TEACHER)

        assert response.status_code == 409


class TestDetentionFlow:
    def test_full_slot_returns_capacity_exceeded(self, client, make_student, base_date):
        _create_slot(client, base_date, capacity=1)
        payload = {"violation_type": "Late", "detention_date": base_date.isoformat()}

        first = client.post("/api/v1/violations", json={**payload, "student_id": make_student().id}, headers=TEACHER)
        second = client.post("/api/v1/violations", json={**payload, "student_id": make_student().id}, headers=TEACHER)

        assert first.status_code == 201
        assert second.status_code == 409
        assert second.json()["error"]["code"] == "CAPACITY_EXCEEDED"

    def test_absence_reassignment_and_correction(self, client, db, make_student, counter_of, base_date):
        next_day = base_date + timedelta(days=1)
        _create_slot(client, base_date)
        _create_slot(client, next_day)
        student = make_student()
        violation = client.post(
            "/api/v1/violations",
            json={"student_id": student.id, "violation_type": "Late", "detention_date": base_date.isoformat()},
            headers=TEACHER,
        ).json()

        marked = client.post(
            f"/api/v1/attendance/{violation['id']}/mark",
            json={"status": "absent", "reason": "unexcused"},
            headers=TEACHER,
        )
        assert marked.status_code == 200
        assert marked.json()["status"] == "absent"
        assert counter_of(student) == 1

        reassigned = client.post(
            "/api/v1/reassignments",
            json={"absent_date": base_date.isoformat(), "auto_assign": True},
            headers=TEACHER,
        ).json()
        assert reassigned["successful"] == 1
        assert reassigned["items"][0]["data"]["to_date"] == next_day.isoformat()

        opened = client.post(f"/api/v1/attendance/sessions/{next_day.isoformat()}/open", headers=TEACHER)
        assert opened.json()["activated"] == 1

        entry = db.query(AbsenceLogEntry).one()
        corrected = client.patch(f"/api/v1/absence-log/{entry.id}", json={"reason": "medical"}, headers=TEACHER)
        assert corrected.status_code == 200
        assert corrected.json()["reason"] == "medical"
        assert counter_of(student) == 0

        history = client.get(f"/api/v1/violations/{violation['id']}/attendance", headers=TEACHER).json()
        assert [(r["detention_date"], r["status"], r["is_current"]) for r in history] == [
            (base_date.isoformat(), "absent", False),
            (next_day.isoformat(), "pending", True),
        ]
        absences = client.get(f"/api/v1/students/{student.id}/absences", headers=TEACHER).json()
        assert [a["reason"] for a in absences] == ["medical"]
        roll_call = client.get(
            "/api/v1/violations", params={"detention_date": next_day.isoformat()}, headers=TEACHER
        ).json()
        assert [v["id"] for v in roll_call] == [violation["id"]]

    def test_batch_marking_reports_each_row(self, client, make_student, base_date):
        _create_slot(client, base_date)
        violation = client.post(
            "/api/v1/violations",
            json={"student_id": make_student().id, "violation_type": "Late", "detention_date": base_date.isoformat()},
            headers=TEACHER,
        ).json()

        response = client.post(
            "/api/v1/attendance/batch",
            json={
                "slot_date": base_date.isoformat(),
                "items": [
                    {"violation_id": violation["id"], "status": "attended"},
                    {"violation_id": "missing", "status": "absent"},
                ],
            },
            headers=TEACHER,
        )

        body = response.json()
        assert response.status_code == 200
        assert (body["total"], body["successful"], body["failed"]) == (2, 1, 1)
        assert body["items"][1]["error"]["code"] == "NOT_FOUND"

    def test_warning_escalation(self, client, make_student):
        payload = {"student_id": make_student().id, "violation_type": "Phone use"}

        codes = [client.post("/api/v1/warnings", json=payload, headers=TEACHER).status_code for _ in range(3)]

        assert codes == [201, 201, 409]


class TestNotificationDelivery:
    def test_booking_and_reassignment_notices_are_sent(self, client, db, sender, make_student, base_date):
        next_day = base_date + timedelta(days=1)
        _create_slot(client, base_date)
        _create_slot(client, next_day)
        student = make_student()
        violation = client.post(
            "/api/v1/violations",
            json={"student_id": student.id, "violation_type": "Late", "detention_date": base_date.isoformat()},
            headers=TEACHER,
        ).json()
        client.post(f"/api/v1/attendance/{violation['id']}/mark", json={"status": "absent"}, headers=TEACHER)
        reassigned = client.post(
            "/api/v1/reassignments",
            json={"absent_date": base_date.isoformat()},
            headers=TEACHER,
        ).json()

        moved_to = reassigned["items"][0]["data"]
        sent = [(c.args[0], c.args[2], c.args[3]) for c in sender.send.call_args_list]
        assert sent == [
            (student.id, base_date, "detention_assigned"),
            (student.id, next_day, "detention_rescheduled"),
        ]
        assert sender.send.call_args_list[1].args[1] == moved_to["attendance_id"]

        db.expire_all()
        statuses = [item.status for item in db.query(NotificationQueueItem).all()]
        assert statuses == [NotificationStatus.SENT, NotificationStatus.SENT]

    def test_failed_booking_sends_nothing(self, client, sender, make_student, base_date):
        response = client.post(
            "/api/v1/violations",
            json={"student_id": make_student().id, "violation_type": "Late", "detention_date": base_date.isoformat()},
            headers=TEACHER,
        )

        assert response.status_code == 404
        sender.send.assert_not_called()


class TestReconcileEndpoint:
    def test_admin_only_and_fixes_drift(self, client, db, make_student, counter_of):
        student = make_student()
        StudentRepository(db).set_unexcused(student.id, 0, 4)
        db.commit()

        denied = client.post(f"/api/v1/students/{student.id}/unexcused/reconcile", headers=TEACHER)
        fixed = client.post(f"/api/v1/students/{student.id}/unexcused/reconcile", headers=ADMIN)

        assert denied.status_code == 403
        assert fixed.json() == {"checked": 1, "corrected": 1, "skipped": 0}
        assert counter_of(student) == 0


def test_health(client, monkeypatch):
    monkeypatch.setattr(
        "detention.main.check_database_connection",
        lambda: {"is_connected": True, "response_time_ms": 0.1, "error": None},
    )

    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"

"""
Test suite for Booking endpoints

Tests cover:
- POST /bookings/ - Commit a booking (confirmed, already booked, denied, conflict, fatal)
- PATCH /bookings/cancel/{booking_id} - Release a booking
- GET /bookings/student - List the caller's bookings
- POST /bookings/reconcile - Reconcile the client's booking cache
- Permission and user type checks
"""
import importlib
from datetime import timedelta

from fastapi import status
from fastapi.testclient import TestClient
from sqlalchemy.exc import SQLAlchemyError

from app.crud.booking import booking_crud
from app.models.schedule import Schedule
from common_utils.auth.utils import create_access_token
from tests.fixtures import READ_ONLY_PERMISSIONS, STUDENT_ID


def _payload(schedule, **overrides):
    body = {
        "schedule_id": schedule.schedule_id,
        "route_id": schedule.route_id,
        "trip_date": str(schedule.schedule_date),
    }
    body.update(overrides)
    return body


class TestCreateBooking:
    """Test POST /bookings/"""

    def test_create_booking_success(self, client: TestClient, auth_headers, test_student, test_schedule, test_db):
        response = client.post("/api/v1/bookings/", json=_payload(test_schedule), headers=auth_headers)

        assert response.status_code == status.HTTP_201_CREATED
        data = response.json()
        assert data["success"] is True
        assert data["data"]["student_id"] == STUDENT_ID
        assert data["data"]["seat_number"] == "A1"
        assert data["data"]["status"] == "confirmed"
        assert data["data"]["amount"] == 45.0
        assert "X-Request-ID" in response.headers

        schedule = test_db.get(Schedule, test_schedule.schedule_id)
        test_db.refresh(schedule)
        assert schedule.booked_seats == 1
        assert schedule.available_seats == 39

    def test_repeat_request_returns_existing_booking(self, client: TestClient, auth_headers, test_student, test_schedule):
        first = client.post("/api/v1/bookings/", json=_payload(test_schedule), headers=auth_headers)
        second = client.post("/api/v1/bookings/", json=_payload(test_schedule), headers=auth_headers)

        assert second.status_code == status.HTTP_200_OK
        assert second.json()["data"]["booking_id"] == first.json()["data"]["booking_id"]

    def test_denied_lists_every_reason(self, client: TestClient, auth_headers, test_student, make_schedule):
        schedule = make_schedule(admin_approved=False, booked_seats=40)

        response = client.post("/api/v1/bookings/", json=_payload(schedule), headers=auth_headers)

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        detail = response.json()["detail"]
        assert detail["success"] is False
        assert detail["error_code"] == "NOT_APPROVED"
        assert detail["details"]["outcome"] == "denied"
        codes = [v["code"] for v in detail["details"]["violations"]]
        assert codes[0] == "NOT_APPROVED"
        assert "NO_SEATS" in codes

    def test_unknown_schedule(self, client: TestClient, auth_headers, test_student, test_schedule):
        response = client.post(
            "/api/v1/bookings/",
            json=_payload(test_schedule, schedule_id=9999),
            headers=auth_headers,
        )
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["detail"]["error_code"] == "SCHEDULE_NOT_FOUND"

    def test_conflict_maps_to_409(self, client: TestClient, auth_headers, test_student, test_schedule, monkeypatch):
        monkeypatch.setattr(booking_crud, "debit_seat", lambda db, *, schedule_id, expected_booked: False)

        response = client.post("/api/v1/bookings/", json=_payload(test_schedule), headers=auth_headers)

        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.json()["detail"]["error_code"] == "BOOKING_CONFLICT"

    def test_storage_failure_maps_to_500(self, client: TestClient, auth_headers, test_student, test_schedule, monkeypatch):
        def broken(db, *, schedule_id, expected_booked):
            raise SQLAlchemyError("connection reset")

        monkeypatch.setattr(booking_crud, "debit_seat", broken)

        response = client.post("/api/v1/bookings/", json=_payload(test_schedule), headers=auth_headers)

        assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
        assert response.json()["detail"]["details"]["outcome"] == "fatal"

    def test_negative_amount_rejected(self, client: TestClient, auth_headers, test_student, test_schedule):
        response = client.post(
            "/api/v1/bookings/",
            json=_payload(test_schedule, amount=-5),
            headers=auth_headers,
        )
        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

    def test_requires_token(self, client: TestClient, test_schedule):
        response = client.post("/api/v1/bookings/", json=_payload(test_schedule))
        assert response.status_code in (status.HTTP_401_UNAUTHORIZED, status.HTTP_403_FORBIDDEN)

    def test_invalid_token(self, client: TestClient, test_schedule):
        response = client.post(
            "/api/v1/bookings/",
            json=_payload(test_schedule),
            headers={"Authorization": "Bearer not-a-jwt"},
        )
        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_only_students_can_book(self, client: TestClient, admin_token, test_schedule):
        response = client.post(
            "/api/v1/bookings/",
            json=_payload(test_schedule),
            headers={"Authorization": f"Bearer {admin_token}"},
        )
        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert response.json()["detail"]["error_code"] == "FORBIDDEN"

    def test_read_permission_cannot_book(self, client: TestClient, test_student, test_schedule):
        token = create_access_token(user_id=STUDENT_ID, user_type="student", permissions=READ_ONLY_PERMISSIONS)
        response = client.post(
            "/api/v1/bookings/",
            json=_payload(test_schedule),
            headers={"Authorization": f"Bearer {token}"},
        )
        assert response.status_code == status.HTTP_403_FORBIDDEN


class TestCancelBooking:
    """Test PATCH /bookings/cancel/{booking_id}"""

    def _book(self, client, headers, schedule):
        return client.post("/api/v1/bookings/", json=_payload(schedule), headers=headers).json()["data"]

    def test_cancel_success(self, client: TestClient, auth_headers, test_student, test_schedule, test_db):
        booking = self._book(client, auth_headers, test_schedule)

        response = client.patch(
            f"/api/v1/bookings/cancel/{booking['booking_id']}",
            json={"reason": "Exam rescheduled"},
            headers=auth_headers,
        )

        assert response.status_code == status.HTTP_200_OK
        data = response.json()["data"]
        assert data["status"] == "cancelled"
        assert data["reason"] == "Exam rescheduled"

        schedule = test_db.get(Schedule, test_schedule.schedule_id)
        test_db.refresh(schedule)
        assert schedule.booked_seats == 0
        assert schedule.available_seats == 40

    def test_cancel_without_body(self, client: TestClient, auth_headers, test_student, test_schedule):
        booking = self._book(client, auth_headers, test_schedule)
        response = client.patch(f"/api/v1/bookings/cancel/{booking['booking_id']}", headers=auth_headers)
        assert response.status_code == status.HTTP_200_OK
        assert response.json()["data"]["reason"] == "Cancelled by student"

    def test_cancel_not_found(self, client: TestClient, auth_headers, test_student):
        response = client.patch("/api/v1/bookings/cancel/999", headers=auth_headers)
        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json()["detail"]["error_code"] == "BOOKING_NOT_FOUND"

    def test_cancel_someone_elses_booking(
        self, client: TestClient, auth_headers, other_student_token, test_student, other_student, test_schedule
    ):
        booking = self._book(client, auth_headers, test_schedule)
        response = client.patch(
            f"/api/v1/bookings/cancel/{booking['booking_id']}",
            headers={"Authorization": f"Bearer {other_student_token}"},
        )
        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert response.json()["detail"]["error_code"] == "NOT_OWNER"

    def test_cancel_twice(self, client: TestClient, auth_headers, test_student, test_schedule):
        booking = self._book(client, auth_headers, test_schedule)
        client.patch(f"/api/v1/bookings/cancel/{booking['booking_id']}", headers=auth_headers)
        response = client.patch(f"/api/v1/bookings/cancel/{booking['booking_id']}", headers=auth_headers)
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["detail"]["error_code"] == "ALREADY_CANCELLED"


class TestStudentBookings:
    """Test GET /bookings/student"""

    def test_lists_only_callers_bookings(
        self, client: TestClient, auth_headers, other_student_token, test_student, other_student, make_schedule
    ):
        first = make_schedule(days_ahead=3)
        second = make_schedule(days_ahead=4)
        client.post("/api/v1/bookings/", json=_payload(first), headers=auth_headers)
        client.post("/api/v1/bookings/", json=_payload(second), headers=auth_headers)
        client.post(
            "/api/v1/bookings/",
            json=_payload(first),
            headers={"Authorization": f"Bearer {other_student_token}"},
        )

        response = client.get("/api/v1/bookings/student", headers=auth_headers)

        assert response.status_code == status.HTTP_200_OK
        data = response.json()["data"]
        assert len(data) == 2
        assert {b["student_id"] for b in data} == {STUDENT_ID}
        # latest trip first
        assert data[0]["trip_date"] == str(second.schedule_date)

    def test_filter_by_status(self, client: TestClient, auth_headers, test_student, make_schedule):
        kept = make_schedule(days_ahead=3)
        dropped = make_schedule(days_ahead=4)
        client.post("/api/v1/bookings/", json=_payload(kept), headers=auth_headers)
        booking = client.post("/api/v1/bookings/", json=_payload(dropped), headers=auth_headers).json()["data"]
        client.patch(f"/api/v1/bookings/cancel/{booking['booking_id']}", headers=auth_headers)

        response = client.get("/api/v1/bookings/student?status=cancelled", headers=auth_headers)

        data = response.json()["data"]
        assert [b["booking_id"] for b in data] == [booking["booking_id"]]


class TestReconcile:
    """Test POST /bookings/reconcile"""

    def test_reconcile_reports_drift(self, client: TestClient, auth_headers, test_student, test_schedule, today):
        client.post("/api/v1/bookings/", json=_payload(test_schedule), headers=auth_headers)
        phantom = today + timedelta(days=5)

        response = client.post(
            "/api/v1/bookings/reconcile",
            json={
                "date_from": str(today),
                "date_to": str(today + timedelta(days=6)),
                "cache": {str(phantom): True},
            },
            headers=auth_headers,
        )

        assert response.status_code == status.HTTP_200_OK
        data = response.json()["data"]
        assert data["corrected_cache"][str(test_schedule.schedule_date)] is True
        assert data["corrected_cache"][str(phantom)] is False
        drift = {(c["trip_date"], c["direction"]) for c in data["diff"]}
        assert drift == {(str(test_schedule.schedule_date), "added"), (str(phantom), "removed")}

    def test_in_sync_cache(self, client: TestClient, auth_headers, test_student, today):
        response = client.post(
            "/api/v1/bookings/reconcile",
            json={"date_from": str(today), "date_to": str(today)},
            headers=auth_headers,
        )
        assert response.status_code == status.HTTP_200_OK
        assert response.json()["data"]["diff"] == []
        assert response.json()["message"] == "Cache in sync"

    def test_inverted_range_rejected(self, client: TestClient, auth_headers, today):
        response = client.post(
            "/api/v1/bookings/reconcile",
            json={"date_from": str(today), "date_to": str(today - timedelta(days=1))},
            headers=auth_headers,
        )
        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

    def test_range_too_large(self, client: TestClient, auth_headers, today):
        response = client.post(
            "/api/v1/bookings/reconcile",
            json={"date_from": str(today), "date_to": str(today + timedelta(days=400))},
            headers=auth_headers,
        )
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["detail"]["error_code"] == "RANGE_TOO_LARGE"

    def test_deadline_maps_to_504(self, client: TestClient, auth_headers, today, monkeypatch):
        router_module = importlib.import_module("app.routes.booking_router")
        from app.services.reconciliation import ReconciliationCancelled

        def expired(*args, **kwargs):
            raise ReconciliationCancelled("Reconciliation deadline exceeded")

        monkeypatch.setattr(router_module, "reconcile", expired)
        response = client.post(
            "/api/v1/bookings/reconcile",
            json={"date_from": str(today), "date_to": str(today)},
            headers=auth_headers,
        )
        assert response.status_code == status.HTTP_504_GATEWAY_TIMEOUT
        assert response.json()["detail"]["error_code"] == "RECONCILE_TIMEOUT"


def test_health(client: TestClient):
    response = client.get("/health")
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["database"] == "ok"


def test_health_counts_requests(client: TestClient):
    client.get("/api/v1/bookings/student")
    body = client.get("/health").json()
    assert body["requests"]["total"] >= 1
    assert body["requests"]["errors"] >= 1

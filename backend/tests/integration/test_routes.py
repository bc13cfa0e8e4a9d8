"""HTTP surface of the booking API, backed by the in-memory test database."""

from unittest.mock import Mock

import pytest
from fastapi.testclient import TestClient

from booking_core.api.dependencies import get_booking_service
from booking_core.api.dependencies.database import get_db
from booking_core.core.exceptions import RepositoryException
from booking_core.main import app
from tests._utils.booking_helpers import DAY_1, DAY_2, DAY_3, booking_data, session_entry

BASE = "/api/v1"


@pytest.fixture
def client(db, catalog):
    def override_get_db():
        try:
            yield db
            db.commit()
        except Exception:
            db.rollback()
            raise

    app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(app, raise_server_exceptions=False)
    finally:
        app.dependency_overrides.clear()


def _create(client, sessions, **overrides):
    return client.post(f"{BASE}/bookings", json=booking_data(sessions, **overrides))


class TestBookingRoutes:
    def test_create_returns_booking(self, client):
        response = _create(client, [session_entry(DAY_1, "S1"), session_entry(DAY_2, "S2")])

        assert response.status_code == 201
        body = response.json()
        assert body["appointment_id"] == "APT000001"
        assert [(s["session_date"], s["slot_id"]) for s in body["sessions"]] == [
            (DAY_1, "S1"),
            (DAY_2, "S2"),
        ]
        assert body["payment"]["status"] == "pending"

    def test_conflict_lists_every_colliding_slot(self, client):
        _create(client, [session_entry(DAY_1, "S1"), session_entry(DAY_2, "S1")])

        response = _create(
            client,
            [session_entry(DAY_1, "S1"), session_entry(DAY_2, "S1"), session_entry(DAY_3, "S1")],
        )

        assert response.status_code == 409
        body = response.json()
        assert body["code"] == "BOOKING_CONFLICT"
        assert body["conflicts"] == [
            {"date": DAY_1, "slot_id": "S1", "provider_id": "prov-a"},
            {"date": DAY_2, "slot_id": "S1", "provider_id": "prov-a"},
        ]
        assert len(client.get(f"{BASE}/bookings").json()) == 1

    def test_missing_fields_is_bad_request(self, client):
        response = client.post(f"{BASE}/bookings", json={"sessions": []})

        assert response.status_code == 400
        body = response.json()
        assert body["code"] == "MISSING_FIELDS"
        assert body["errors"]["missing_fields"] == [
            "package_id",
            "patient_id",
            "therapy_id",
            "provider_id",
        ]

    def test_storage_errors_render_a_coded_problem(self, client):
        failing_service = Mock()
        failing_service.get_booking.side_effect = RepositoryException("connection reset")
        app.dependency_overrides[get_booking_service] = lambda: failing_service

        response = client.get(f"{BASE}/bookings/any")

        assert response.status_code == 500
        body = response.json()
        assert body["code"] == "repository_error"
        assert "connection reset" not in body["detail"]

    def test_unknown_booking_is_not_found(self, client):
        response = client.get(f"{BASE}/bookings/missing")

        assert response.status_code == 404
        assert response.json()["title"] == "Not Found"

    def test_update_moves_a_session(self, client):
        booking = _create(client, [session_entry(DAY_1, "S1")]).json()

        response = client.put(
            f"{BASE}/bookings/{booking['id']}",
            json={"sessions": [session_entry(DAY_2, "S1")], "notes": "moved"},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["notes"] == "moved"
        assert [s["session_date"] for s in body["sessions"]] == [DAY_2]

        # The vacated slot is free for someone else
        assert _create(client, [session_entry(DAY_1, "S1")]).status_code == 201

    def test_list_filters_by_session_date(self, client):
        first = _create(client, [session_entry(DAY_1, "S1")]).json()
        _create(client, [session_entry(DAY_2, "S1")])

        response = client.get(f"{BASE}/bookings", params={"session_date": DAY_1})

        assert [b["id"] for b in response.json()] == [first["id"]]
        assert client.get(f"{BASE}/bookings", params={"session_date": "bad"}).status_code == 400

    def test_delete_releases_slots(self, client):
        booking = _create(client, [session_entry(DAY_1, "S1")]).json()

        response = client.delete(f"{BASE}/bookings/{booking['id']}")

        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "booking_id": booking["id"],
            "released_ledger_rows": 1,
        }
        assert _create(client, [session_entry(DAY_1, "S1")]).status_code == 201

    def test_check_in_is_idempotent(self, client):
        booking = _create(client, [session_entry(DAY_1, "S1")]).json()
        payload = {"booking_id": booking["id"], "session_id": booking["sessions"][0]["id"]}

        first = client.post(f"{BASE}/bookings/check-in", json=payload)
        second = client.post(f"{BASE}/bookings/check-in", json=payload)

        assert first.status_code == 200
        assert first.json()["already_checked_in"] is False
        assert first.json()["booking"]["sessions"][0]["is_checked_in"] is True
        assert second.json()["already_checked_in"] is True

    def test_check_in_requires_both_ids(self, client):
        response = client.post(f"{BASE}/bookings/check-in", json={"booking_id": "b"})

        assert response.status_code == 400
        assert response.json()["errors"]["missing_fields"] == ["session_id"]

    def test_collect_payment(self, client):
        booking = _create(client, [session_entry(DAY_1, "S1")], coupon="SAVE10").json()

        first = client.post(f"{BASE}/bookings/{booking['id']}/collect-payment")
        second = client.post(f"{BASE}/bookings/{booking['id']}/collect-payment")

        assert first.status_code == 200
        assert first.json()["payment"]["status"] == "paid"
        assert first.json()["payment"]["amount"] == "900.00"
        assert second.json()["already_paid"] is True
        assert second.json()["finance_record_id"] == first.json()["finance_record_id"]


class TestRequestRoutes:
    def test_session_edit_request_lifecycle(self, client):
        booking = _create(client, [session_entry(DAY_1, "S1")]).json()
        payload = {
            "booking_id": booking["id"],
            "patient_id": "pat-1",
            "sessions": [
                {
                    "session_id": booking["sessions"][0]["id"],
                    "new_date": DAY_2,
                    "new_slot_id": "S2",
                }
            ],
        }

        created = client.post(f"{BASE}/session-edit-requests", json=payload)
        assert created.status_code == 201
        request_id = created.json()["id"]

        duplicate = client.post(f"{BASE}/session-edit-requests", json=payload)
        assert duplicate.status_code == 400

        approved = client.put(
            f"{BASE}/session-edit-requests/{request_id}", json={"status": "approved"}
        )
        assert approved.json()["status"] == "approved"

        listed = client.get(f"{BASE}/session-edit-requests", params={"status": "approved"})
        assert [r["id"] for r in listed.json()] == [request_id]

        deleted = client.delete(f"{BASE}/session-edit-requests/{request_id}")
        assert deleted.json() == {"success": True, "request_id": request_id}

    def test_booking_request_reject(self, client):
        created = client.post(
            f"{BASE}/booking-requests",
            json={
                "package_id": "pkg-1",
                "patient_id": "pat-1",
                "therapy_id": "svc-physio",
                "sessions": [{"date": DAY_1, "slot_id": "S1"}],
            },
        )
        assert created.status_code == 201
        request_id = created.json()["id"]

        assert client.post(f"{BASE}/booking-requests/{request_id}/reject").status_code == 200
        again = client.post(f"{BASE}/booking-requests/{request_id}/reject")
        assert again.status_code == 400
        assert again.json()["code"] == "BOOKING_REQUEST_CLOSED"


class TestSupportingRoutes:
    def test_availability_summary(self, client):
        _create(client, [session_entry(DAY_1, "S1")])

        response = client.get(
            f"{BASE}/availability/summary",
            params={"provider_id": "prov-a", "from_date": DAY_1, "to_date": DAY_2},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["ref_code"] == "DR-RAO"
        assert body["booked_slots"] == {DAY_1: ["S1"]}
        day_one_s1 = next(
            s for s in body["slots"] if s["slot_date"] == DAY_1 and s["slot_id"] == "S1"
        )
        assert day_one_s1["booked"] == 1
        assert day_one_s1["remaining"] == 0

    def test_availability_summary_rejects_inverted_range(self, client):
        response = client.get(
            f"{BASE}/availability/summary",
            params={"provider_id": "prov-a", "from_date": DAY_2, "to_date": DAY_1},
        )

        assert response.status_code == 400

    def test_price_preview(self, client, deal):
        response = client.post(
            f"{BASE}/jobs/price-preview",
            json={
                "business_id": "biz-1",
                "deal_code": "TENOFF",
                "services": [{"id": "brakes", "sub_services": [{"id": "pads", "price": "200"}]}],
            },
        )

        assert response.status_code == 200
        body = response.json()
        assert body["total_discount"] == "20.00"
        assert body["total_payable_amount"] == "180.00"

    def test_health_and_metrics(self, client):
        health = client.get(f"{BASE}/health")
        assert health.status_code == 200
        assert health.json()["status"] == "healthy"

        metrics = client.get(f"{BASE}/metrics")
        assert metrics.status_code == 200
        assert metrics.headers["content-type"].startswith("text/plain")

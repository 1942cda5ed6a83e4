"""Tests for the HTTP surface."""

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from slotbook.models import Reservation, ReservationStatus

from .conftest import ADMIN_ADDRESS

FUTURE_DAY = "2030-05-20"


def booking_payload(**overrides):
    payload = {
        "date": FUTURE_DAY,
        "startTime": "13:00",
        "course": "60min",
        "name": "Aiko Tanaka",
        "phone": "09012345678",
        "email": "aiko@example.com",
    }
    payload.update(overrides)
    return payload


class TestHealth:
    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}


class TestAvailabilityRoutes:
    def test_open_day(self, client):
        response = client.get("/api/availability", params={"date": FUTURE_DAY, "course": "60min"})
        assert response.status_code == 200
        data = response.json()
        assert data["slots"][0] == "10:00"
        assert data["slots"][-1] == "22:00"
        assert data["durationMinutes"] == 60
        assert data["degraded"] is False

    def test_confirmed_booking_blocks_slots(self, client, make_reservation):
        make_reservation(start_time="13:00", status=ReservationStatus.CONFIRMED)
        slots = client.get("/api/availability", params={"date": FUTURE_DAY}).json()["slots"]
        assert "13:00" not in slots
        assert "12:15" in slots
        assert "14:45" in slots

    def test_bad_date_is_400(self, client):
        response = client.get("/api/availability", params={"date": "tomorrow"})
        assert response.status_code == 400
        assert response.json()["error"] == "validation_error"

    def test_unknown_course_is_400(self, client):
        response = client.get("/api/availability", params={"date": FUTURE_DAY, "course": "5min"})
        assert response.status_code == 400

    def test_day_overview(self, client):
        response = client.get(
            "/api/availability/days", params={"start": FUTURE_DAY, "end": "2030-05-22", "course": "30min"}
        )
        assert response.status_code == 200
        days = response.json()["days"]
        assert [d["date"] for d in days] == ["2030-05-20", "2030-05-21", "2030-05-22"]
        assert all(d["available"] for d in days)

    def test_day_overview_range_limit(self, client):
        response = client.get("/api/availability/days", params={"start": FUTURE_DAY, "end": "2030-09-01"})
        assert response.status_code == 400


class TestReservationRoutes:
    def test_quote(self, client, make_coupon):
        make_coupon(code="WELCOME500", amount=500)
        response = client.post(
            "/api/reservations/quote",
            json={"course": "60min", "name": "New Person", "phone": "09099999999", "couponCode": "WELCOME500"},
        )
        assert response.status_code == 200
        assert response.json() == {
            "course": "60min",
            "basePrice": 4000,
            "isFirstTime": True,
            "couponDiscount": 500,
            "couponCode": "WELCOME500",
            "finalPrice": 3500,
        }

    @pytest.mark.parametrize("overrides", [{"name": "   "}, {"phone": ""}, {"name": "", "phone": "  "}])
    def test_quote_without_identity_is_400(self, client, overrides):
        payload = {"course": "60min", "name": "Aiko Tanaka", "phone": "09012345678"}
        payload.update(overrides)
        response = client.post("/api/reservations/quote", json=payload)
        assert response.status_code == 400
        body = response.json()
        assert body["ok"] is False
        assert body["error"] == "validation_error"

    def test_create_returns_201_pending(self, client, email_client):
        response = client.post("/api/reservations", json=booking_payload())
        assert response.status_code == 201
        data = response.json()
        assert data["status"] == "pending"
        assert data["price"] == 4000
        assert len(email_client.sent_to(ADMIN_ADDRESS)) == 1

        fetched = client.get(f"/api/reservations/{data['reservationId']}")
        assert fetched.status_code == 200
        assert fetched.json()["start_time"] == "13:00"
        assert fetched.json()["end_time"] == "14:00"

    @pytest.mark.parametrize("missing", ["date", "startTime", "course", "name", "phone"])
    def test_create_missing_field_is_400(self, client, missing):
        payload = booking_payload()
        del payload[missing]
        response = client.post("/api/reservations", json=payload)
        assert response.status_code == 400
        body = response.json()
        assert body["ok"] is False
        assert body["error"] == "validation_error"

    def test_create_malformed_email_is_400(self, client):
        response = client.post("/api/reservations", json=booking_payload(email="not-an-email"))
        assert response.status_code == 400

    def test_create_outside_hours_is_400(self, client):
        response = client.post("/api/reservations", json=booking_payload(startTime="22:30"))
        assert response.status_code == 400
        assert "business hours" in response.json()["detail"]

    def test_get_unknown_is_404(self, client):
        response = client.get("/api/reservations/does-not-exist")
        assert response.status_code == 404
        assert response.json()["error"] == "not_found"


class TestDecisionRoutes:
    def test_confirm_json(self, client, make_reservation):
        reservation = make_reservation()
        response = client.post("/api/confirm", json={"reservationId": reservation.id})
        assert response.status_code == 200
        data = response.json()
        assert data["ok"] is True
        assert data["reservationId"] == reservation.id
        assert data["calendarEventId"] == "evt-1"
        assert [e["name"] for e in data["sideEffects"]] == ["calendar", "admin_email", "customer_email"]

    def test_confirm_json_twice_is_409(self, client, make_reservation):
        reservation = make_reservation()
        client.post("/api/confirm", json={"reservationId": reservation.id})
        response = client.post("/api/confirm", json={"reservationId": reservation.id})
        assert response.status_code == 409
        assert response.json()["error"] == "invalid_state"

    def test_confirm_link_twice_shows_already_processed(self, client, make_reservation, email_client):
        reservation = make_reservation()

        first = client.get("/api/confirm", params={"id": reservation.id})
        assert first.status_code == 200
        assert "Reservation confirmed" in first.text
        sent = len(email_client.sent)

        second = client.get("/api/confirm", params={"id": reservation.id})
        assert second.status_code == 409
        assert "Already processed" in second.text
        assert len(email_client.sent) == sent

    def test_confirm_unknown_is_404(self, client):
        response = client.post("/api/confirm", json={"reservationId": "missing"})
        assert response.status_code == 404

    def test_confirm_without_id_is_400(self, client):
        response = client.post("/api/confirm", json={})
        assert response.status_code == 400

    @pytest.mark.parametrize("path", ["/api/confirm", "/api/deny"])
    def test_blank_id_is_400(self, client, path):
        response = client.post(path, json={"reservationId": "   "})
        assert response.status_code == 400
        assert response.json()["error"] == "validation_error"

    def test_confirm_store_failure_is_500(self, client, make_reservation, monkeypatch, session_factory, email_client):
        reservation = make_reservation()

        def broken(self):
            raise OperationalError("UPDATE reservations", {}, Exception("database is locked"))

        monkeypatch.setattr(Session, "commit", broken)
        response = client.post("/api/confirm", json={"reservationId": reservation.id})

        assert response.status_code == 500
        body = response.json()
        assert body["ok"] is False
        assert body["error"] == "store_failure"
        assert email_client.sent == []
        session = session_factory()
        try:
            assert session.get(Reservation, reservation.id).status == ReservationStatus.PENDING
        finally:
            session.close()

    def test_deny_link(self, client, make_reservation, session_factory):
        reservation = make_reservation()
        response = client.get("/api/deny", params={"id": reservation.id})
        assert response.status_code == 200
        assert "Reservation denied" in response.text

        session = session_factory()
        try:
            assert session.get(Reservation, reservation.id).status == ReservationStatus.DENIED
        finally:
            session.close()

    def test_deny_json_after_confirm_is_409(self, client, make_reservation):
        reservation = make_reservation(status=ReservationStatus.CONFIRMED)
        response = client.post("/api/deny", json={"reservationId": reservation.id})
        assert response.status_code == 409


class TestGoogleOAuthRoutes:
    def test_auth_redirects_with_state_cookie(self, client, monkeypatch):
        monkeypatch.setattr("slotbook.routes.google_oauth.GOOGLE_CLIENT_ID", "client-123")
        response = client.get("/api/google/auth", follow_redirects=False)
        assert response.status_code == 302
        assert response.headers["location"].startswith("https://accounts.google.com/o/oauth2/v2/auth?")
        assert "client_id=client-123" in response.headers["location"]
        assert "oauth_state" in response.cookies

    def test_auth_without_client_id_is_500(self, client, monkeypatch):
        monkeypatch.setattr("slotbook.routes.google_oauth.GOOGLE_CLIENT_ID", None)
        response = client.get("/api/google/auth", follow_redirects=False)
        assert response.status_code == 500

    def test_callback_masks_code(self, client):
        client.cookies.set("oauth_state", "abc")
        response = client.get("/api/oauth2callback", params={"code": "4/0AbCdEfGhIjKlMn", "state": "abc"})
        assert response.status_code == 200
        assert response.json()["code"] == "4/0AbCdE***"
        assert response.json()["state_ok"] is True
        assert response.headers["cache-control"].startswith("no-store")

    def test_callback_state_mismatch_is_400(self, client):
        client.cookies.set("oauth_state", "abc")
        response = client.get("/api/oauth2callback", params={"code": "xyz", "state": "other"})
        assert response.status_code == 400
        assert response.json()["state_ok"] is False

    def test_exchange_requires_code(self, client):
        response = client.post("/api/google/exchange", json={})
        assert response.status_code == 400
        assert response.json() == {"error": "code_required"}

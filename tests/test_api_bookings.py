import json

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from dispatch_service import models

TOUR_PAYLOAD = {
    "kind": "tour",
    "customer_name": "Ana Lopez",
    "customer_email": "ana@example.com",
    "tour_name": "Dunn's River Falls",
    "booking_date": "2099-07-04",
    "number_of_people": 4,
    "total_amount": 240.0,
}

AIRPORT_BOTH_PAYLOAD = {
    "kind": "airport",
    "customer_name": "Tom Reid",
    "customer_email": "tom@example.com",
    "service_type": "both",
    "flight_number": "AA123",
    "arrival_date": "2099-06-01",
    "arrival_time": "14:30",
    "dropoff_location": "Half Moon",
    "departure_flight_number": "AA456",
    "departure_date": "2099-06-08",
    "departure_time": "11:15",
    "pickup_location": "Half Moon",
    "passengers": 2,
}


def test_create_tour_booking_is_public(client: TestClient, db_session: Session):
    response = client.post("/bookings", json=TOUR_PAYLOAD)
    assert response.status_code == 201
    data = response.json()["data"]
    assert data["kind"] == "tour"
    assert data["status"] == "pending"
    assert data["service_date"] == "2099-07-04"
    assert data["total_amount"] == 240.0

    event = db_session.query(models.OutboxEvent).one()
    payload = json.loads(event.payload)
    assert payload["event"] == "booking.created"
    assert payload["booking_id"] == data["id"]


def test_create_airport_round_trip_price(client: TestClient):
    response = client.post("/bookings", json=AIRPORT_BOTH_PAYLOAD)
    assert response.status_code == 201
    data = response.json()["data"]
    assert data["kind"] == "airport"
    assert data["total_amount"] == 140.0
    # Arrival leg comes first
    assert data["service_date"] == "2099-06-01"
    assert data["status"] == "pending"


def test_create_airport_ignores_client_price_and_status(client: TestClient):
    payload = {**AIRPORT_BOTH_PAYLOAD, "service_type": "pickup", "total_amount": 1.0, "status": "confirmed"}
    response = client.post("/bookings", json=payload)
    assert response.status_code == 201
    data = response.json()["data"]
    assert data["total_amount"] == 75.0
    assert data["status"] == "pending"


def test_create_airport_pickup_needs_arrival(client: TestClient, db_session: Session):
    payload = {**AIRPORT_BOTH_PAYLOAD, "service_type": "pickup"}
    del payload["arrival_date"]
    response = client.post("/bookings", json=payload)
    assert response.status_code == 400
    assert response.json()["success"] is False
    assert db_session.query(models.Booking).count() == 0


def test_create_booking_unknown_kind(client: TestClient):
    response = client.post("/bookings", json={**TOUR_PAYLOAD, "kind": "cruise"})
    assert response.status_code == 400


def test_create_tour_booking_bad_email(client: TestClient):
    response = client.post("/bookings", json={**TOUR_PAYLOAD, "customer_email": "not-an-email"})
    assert response.status_code == 400
    assert "customer_email" in response.json()["details"]


def test_list_bookings_requires_token(client: TestClient):
    assert client.get("/bookings").status_code == 401


def test_list_bookings_filters_by_kind(client: TestClient, auth_headers, make_tour_booking, make_airport_booking):
    make_tour_booking()
    airport_id = make_airport_booking().id

    response = client.get("/bookings?kind=airport", headers=auth_headers)
    assert response.status_code == 200
    data = response.json()["data"]
    assert [b["id"] for b in data] == [airport_id]


def test_list_bookings_rejects_unknown_status_filter(client: TestClient, auth_headers):
    response = client.get("/bookings?status=lost", headers=auth_headers)
    assert response.status_code == 400
    assert "status" in response.json()["details"]


def test_read_booking_not_found(client: TestClient, auth_headers):
    response = client.get("/bookings/123456", headers=auth_headers)
    assert response.status_code == 404
    assert response.json() == {"success": False, "error": "Booking 123456 not found"}


def test_patch_booking_status(client: TestClient, auth_headers, make_tour_booking):
    booking_id = make_tour_booking(status="confirmed").id

    response = client.patch(f"/bookings/{booking_id}", json={"status": "completed"}, headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["data"]["status"] == "completed"


def test_deleted_booking_orphans_its_assignment(client: TestClient, auth_headers, make_driver, make_tour_booking,
                                                make_assignment):
    driver_id = make_driver().id
    booking_id = make_tour_booking().id
    make_assignment(driver_id, booking_id)

    response = client.delete(f"/bookings/{booking_id}", headers=auth_headers)
    assert response.status_code == 200

    body = client.get(f"/drivers/{driver_id}/jobs", headers=auth_headers).json()
    assert body["jobs"] == []
    assert body["missing_booking_ids"] == [booking_id]

    assert client.delete(f"/bookings/{booking_id}", headers=auth_headers).status_code == 404


def test_create_tour_booking_ignores_client_status(client: TestClient):
    response = client.post("/bookings", json={**TOUR_PAYLOAD, "status": "completed"})
    assert response.status_code == 201
    assert response.json()["data"]["status"] == "pending"


@pytest.mark.parametrize("field", ["customer_name", "customer_email", "status"])
def test_patch_booking_rejects_null_required_field(client: TestClient, auth_headers, make_tour_booking, field):
    booking_id = make_tour_booking(customer_name="Ana Lopez").id

    response = client.patch(f"/bookings/{booking_id}", json={field: None}, headers=auth_headers)
    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert field in body["details"]

    stored = client.get(f"/bookings/{booking_id}", headers=auth_headers).json()["data"]
    assert stored["customer_name"] == "Ana Lopez"


@pytest.mark.parametrize("query", ["skip=-1", "limit=0", "limit=501"])
def test_list_bookings_rejects_out_of_range_paging(client: TestClient, auth_headers, query):
    response = client.get(f"/bookings?{query}", headers=auth_headers)
    assert response.status_code == 400
    assert query.split("=")[0] in response.json()["details"]


def test_list_bookings_paging(client: TestClient, auth_headers, make_tour_booking):
    ids = [make_tour_booking().id for _ in range(3)]

    response = client.get("/bookings?skip=1&limit=1", headers=auth_headers)
    assert response.status_code == 200
    # Newest first, so skipping one lands on the middle booking
    assert [b["id"] for b in response.json()["data"]] == [ids[1]]


# --- Booking stats ---

def test_booking_stats(client: TestClient, auth_headers, make_tour_booking, make_airport_booking):
    make_tour_booking(amount=100.0)
    make_tour_booking(amount=250.5, status="cancelled")
    make_airport_booking()

    response = client.get("/bookings/stats", headers=auth_headers)
    assert response.status_code == 200
    assert response.json() == {
        "success": True,
        "data": {"tour_count": 2, "airport_count": 1, "total_revenue": 425.5},
    }


def test_booking_stats_empty_store(client: TestClient, auth_headers):
    response = client.get("/bookings/stats", headers=auth_headers)
    assert response.json()["data"] == {"tour_count": 0, "airport_count": 0, "total_revenue": 0}


def test_booking_stats_requires_token(client: TestClient):
    assert client.get("/bookings/stats").status_code == 401

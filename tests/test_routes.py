from datetime import datetime
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from loft_booking.clients.auth import AuthenticatedSession
from loft_booking.dependencies.services import get_auth_provider, get_session_registry
from loft_booking.main import app
from loft_booking.schemas.vendor import (
    AppointmentRecord,
    AvailabilitySlot,
    AvailableResources,
    BookingConfirmation,
    CustomerProfile,
    Location,
    PrepayService,
    PricingResult,
    ResourceUnit,
    Service,
)
from loft_booking.services.exceptions import AuthError, HttpError, NetworkError
from loft_booking.services.registry import SessionRegistry


NOW = datetime(2025, 10, 20, 9, 0)
HOST = "https://beta.uschedule.com"


def _vendor_client() -> AsyncMock:
    client = AsyncMock()
    client.list_locations.return_value = [Location(id=1, description="Loft Golf Scottsdale")]
    client.list_services.return_value = [
        Service(id=10, description="Simulator Bay Rental", service_length=60)
    ]
    client.list_service_types.return_value = []
    client.list_resource_units.return_value = [
        ResourceUnit(id=101, status_id=1, nick_name="Bay 1", capacity=4),
        ResourceUnit(id=102, status_id=1, nick_name="Bay 2", capacity=8),
    ]
    client.find_available_resources.return_value = AvailableResources()
    client.query_availability.return_value = [
        AvailabilitySlot(start_time="2025-10-25T14:00:00"),
        AvailabilitySlot(start_time="2025-10-25T15:00:00"),
    ]
    client.get_pricing.return_value = PricingResult(price=45.0)
    client.create_booking.return_value = BookingConfirmation(reservation_id=555, price=45.0)
    client.list_appointments.return_value = []
    return client


@pytest.fixture
def vendor() -> AsyncMock:
    return _vendor_client()


@pytest.fixture
def provider(vendor) -> AsyncMock:
    provider = AsyncMock()
    provider.authenticate.return_value = AuthenticatedSession(
        token="tok-123", host=HOST, client=vendor, username="golfer"
    )
    return provider


@pytest.fixture
def api(provider):
    registry = SessionRegistry(clock=lambda: NOW)
    app.dependency_overrides[get_auth_provider] = lambda: provider
    app.dependency_overrides[get_session_registry] = lambda: registry
    yield TestClient(app)
    app.dependency_overrides.clear()


def _login(api: TestClient) -> dict:
    response = api.post("/auth/login", json={"username": "golfer", "password": "pw"})
    assert response.status_code == 200
    return {"X-US-AuthToken": response.json()["token"]}


def test_health(api) -> None:
    response = api.get("/health")

    assert response.status_code == 200
    assert response.json() == {"ok": True}


def test_requests_without_token_are_rejected(api) -> None:
    assert api.post("/booking/sessions").status_code == 401
    assert api.get("/appointments", headers={"X-US-AuthToken": "unknown"}).status_code == 401


def test_failed_login_returns_401(api, provider) -> None:
    provider.authenticate.side_effect = AuthError("Invalid username or password", 401)

    response = api.post("/auth/login", json={"username": "golfer", "password": "bad"})

    assert response.status_code == 401
    assert response.json()["detail"] == "Invalid username or password"


def test_booking_flow_end_to_end(api, vendor) -> None:
    headers = _login(api)

    response = api.post("/booking/sessions", headers=headers)
    assert response.status_code == 200
    session = response.json()
    session_id = session["session_id"]
    assert session_id == "BKS-00001"
    assert session["location"]["name"] == "Loft Golf Scottsdale"
    base = f"/booking/sessions/{session_id}"

    body = api.post(f"{base}/service", json={"service_id": 10}, headers=headers).json()
    assert body["accepted"] is True
    assert body["session"]["can_proceed_to_guests"] is True

    body = api.post(f"{base}/guests", json={"group_size": 6}, headers=headers).json()
    assert [bay["id"] for bay in body["session"]["eligible_bays"]] == [102]

    body = api.post(f"{base}/bay", json={"resource_unit_id": 101}, headers=headers).json()
    assert body["accepted"] is False
    assert api.post(f"{base}/bay", json={"resource_unit_id": 999}, headers=headers).status_code == 404
    body = api.post(f"{base}/bay", json={"resource_unit_id": 102}, headers=headers).json()
    assert body["accepted"] is True

    body = api.post(f"{base}/date", json={"selected_date": "2025-10-25"}, headers=headers).json()
    assert body["session"]["date_label"] == "Saturday, Oct 25"
    assert [slot["label"] for slot in body["session"]["available_slots"]] == [
        "2:00 PM - 3:00 PM",
        "3:00 PM - 4:00 PM",
    ]

    body = api.post(
        f"{base}/slot", json={"start_time": "2025-10-25T14:00:00"}, headers=headers
    ).json()
    assert body["accepted"] is True
    assert body["session"]["can_confirm"] is True

    body = api.post(f"{base}/pricing", headers=headers).json()
    assert body["session"]["price_label"] == "$45.00"

    body = api.post(f"{base}/confirm", headers=headers).json()
    assert body["accepted"] is True
    assert body["session"]["booking_result"]["reservation_id"] == 555

    body = api.post(f"{base}/confirm", headers=headers).json()
    assert body["accepted"] is False
    vendor.create_booking.assert_awaited_once()


def test_unknown_session_returns_404(api) -> None:
    headers = _login(api)

    assert api.get("/booking/sessions/BKS-99999", headers=headers).status_code == 404
    assert api.delete("/booking/sessions/BKS-99999", headers=headers).status_code == 404


def test_catalog_failure_returns_502(api, vendor) -> None:
    vendor.list_locations.side_effect = NetworkError()
    headers = _login(api)

    response = api.post("/booking/sessions", headers=headers)

    assert response.status_code == 502
    assert response.json()["detail"] == "Unable to reach the booking service"


def test_appointments_listing_and_rejected_cancel(api, vendor) -> None:
    vendor.list_appointments.return_value = [
        AppointmentRecord(id=77, start_time="2025-10-20T18:00:00", status_id=1)
    ]
    vendor.cancel_booking.side_effect = HttpError(400, '{"Message":"Too late to cancel"}')
    headers = _login(api)

    body = api.get("/appointments", headers=headers).json()
    assert body["total"] == 1
    assert body["items"][0]["status"] == "Upcoming"
    assert body["items"][0]["can_cancel"] is False

    body = api.post("/appointments/77/cancel", headers=headers).json()
    assert body["cancelled"] is False
    assert body["message"] == "Too late to cancel"
    assert [item["appointment_id"] for item in body["appointments"]] == [77]


def test_appointments_failure_returns_502(api, vendor) -> None:
    vendor.list_appointments.side_effect = NetworkError()
    headers = _login(api)

    assert api.get("/appointments", headers=headers).status_code == 502


def test_customer_profile(api, vendor) -> None:
    vendor.get_customer.return_value = CustomerProfile(
        id=1, first_name="Pat", last_name="Golfer", membership_exp="2026-01-31T00:00:00"
    )
    headers = _login(api)

    body = api.get("/customer", headers=headers).json()

    assert body["full_name"] == "Pat Golfer"
    assert body["membership_active"] is True


def test_prepaid_offers(api, vendor) -> None:
    vendor.list_prepay_services.return_value = [
        PrepayService(id=3, description="10 Hour Pack", price=400.0, units=10)
    ]
    headers = _login(api)

    body = api.get("/customer/prepaid/offers", headers=headers).json()

    assert body == [
        {"service_id": 3, "description": "10 Hour Pack", "units": 10, "price_label": "$400.00"}
    ]


def test_appointment_detail(api, vendor) -> None:
    vendor.get_appointment.return_value = AppointmentRecord(
        id=77, start_time="2025-10-23T18:00:00", status_id=1
    )
    headers = _login(api)

    body = api.get("/appointments/77", headers=headers).json()
    assert body["appointment_id"] == 77
    assert body["can_cancel"] is True
    vendor.get_appointment.assert_awaited_once_with("tok-123", 77)

    vendor.get_appointment.side_effect = HttpError(400, "Appointment not found")
    response = api.get("/appointments/78", headers=headers)
    assert response.status_code == 404
    assert response.json()["detail"] == "Appointment not found"


def test_saved_cards(api) -> None:
    headers = _login(api)
    form = {
        "name_on_card": "Pat Golfer",
        "number": "4242424242424242",
        "exp_month": 9,
        "exp_year": 2025,
        "cvv": "123",
        "billing_address": "1 Fairway Dr",
        "billing_city": "Scottsdale",
        "billing_state": "AZ",
        "billing_zip": "85251",
    }

    response = api.post("/customer/cards", json=form, headers=headers)
    assert response.status_code == 422
    assert response.json()["detail"] == "Card is expired."

    form["exp_year"] = 2027
    response = api.post("/customer/cards", json=form, headers=headers)
    assert response.status_code == 200
    assert response.json()["last4"] == "4242"

    assert [card["last4"] for card in api.get("/customer/cards", headers=headers).json()] == ["4242"]
    api.delete("/customer/cards/4242", headers=headers)
    assert api.get("/customer/cards", headers=headers).json() == []


def test_logout_closes_pinned_client(api, vendor) -> None:
    headers = _login(api)

    assert api.post("/auth/logout", headers=headers).json() == {"ok": True}

    vendor.close.assert_awaited_once()
    assert api.get("/appointments", headers=headers).status_code == 401

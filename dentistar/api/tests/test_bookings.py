from datetime import date, timedelta

import pytest
from sqlalchemy.exc import IntegrityError

from app.core.config import get_settings
from app.core.errors import ConflictError
from app.db.session import get_db
from app.main import app
from app.models import Booking, BookingStatus
from app.services.bookings import (
    BookingCreate,
    create_booking,
    validate_date,
    validate_email,
    validate_phone,
    validate_time,
)


def booking_payload(provider_id, **overrides):
    payload = {
        "name": "Jane Doe",
        "email": "jane@x.com",
        "phone": "555-123-4567",
        "address": "1 Main St",
        "provider_id": str(provider_id),
    }
    payload.update(overrides)
    return payload


def test_field_validators():
    today = date(2026, 3, 10)
    assert validate_email("a@b.com") is True
    assert validate_email("bad") is False
    assert validate_date(today - timedelta(days=1), today=today) is False
    assert validate_date(today, today=today) is True
    assert validate_date("2026-03-10T15:00:00Z", today=today) is True
    assert validate_time("25:00") is False
    assert validate_time("14:30") is True
    assert validate_time("9:05") is True
    assert validate_phone("+1 (212) 555-0100") is True
    assert validate_phone("1" * 32) is False


def test_create_booking_is_pending(client, make_provider):
    provider = make_provider(phone_number="2125550100")

    response = client.post("/bookings", json=booking_payload(provider.id))

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["message"] == "Booking created successfully!"
    booking = body["booking"]
    assert booking["status"] == "pending"
    assert booking["provider_id"] == str(provider.id)
    assert booking["provider_name"] == provider.name
    assert booking["provider"]["phone_number"] == "2125550100"


def test_duplicate_pending_booking_is_rejected(client, make_provider, db_session):
    provider = make_provider()
    assert client.post("/bookings", json=booking_payload(provider.id)).status_code == 200

    response = client.post(
        "/bookings", json=booking_payload(provider.id, email="JANE@x.com")
    )

    assert response.status_code == 409
    assert response.json() == {
        "error": "Duplicate booking",
        "details": "You already have a pending booking.",
    }
    assert db_session.query(Booking).count() == 1


def test_other_email_or_provider_is_accepted(client, make_provider):
    first = make_provider()
    second = make_provider()
    assert client.post("/bookings", json=booking_payload(first.id)).status_code == 200

    other_email = client.post(
        "/bookings", json=booking_payload(first.id, email="john@x.com")
    )
    other_provider = client.post("/bookings", json=booking_payload(second.id))

    assert other_email.status_code == 200
    assert other_provider.status_code == 200


def test_new_booking_allowed_after_previous_one_confirmed(client, make_provider, gateway, db_session):
    provider = make_provider()
    created = client.post("/bookings", json=booking_payload(provider.id)).json()["booking"]
    booking = gateway.get_booking(created["id"])
    gateway.update_booking(booking, status=BookingStatus.CONFIRMED)
    db_session.commit()

    response = client.post("/bookings", json=booking_payload(provider.id))
    assert response.status_code == 200


def test_pending_uniqueness_is_enforced_by_storage(gateway, make_provider):
    provider = make_provider()
    fields = dict(
        provider_id=provider.id,
        name="Jane",
        email="jane@x.com",
        phone="5551234567",
        address="1 Main St",
    )
    gateway.add_booking(**fields)

    with pytest.raises(IntegrityError):
        with gateway.savepoint():
            gateway.add_booking(**fields)


def test_booking_by_place_id(client, make_provider):
    provider = make_provider(place_id="ChIJbooking")
    response = client.post("/bookings", json=booking_payload("ChIJbooking"))
    assert response.status_code == 200
    assert response.json()["booking"]["provider_id"] == str(provider.id)


@pytest.mark.parametrize(
    ("overrides", "error"),
    [
        ({"name": ""}, "Missing required fields"),
        ({"email": "not-an-email"}, "Invalid email format"),
        ({"phone": "12345"}, "Invalid phone number format"),
        ({"phone": "5" * 40}, "Invalid phone number format"),
        ({"appointment_date": "2000-01-01"}, "Invalid appointment date"),
        ({"appointment_date": "soon"}, "Invalid appointment date"),
        ({"appointment_time": "25:00"}, "Invalid appointment time format"),
    ],
)
def test_validation_errors(client, make_provider, overrides, error):
    provider = make_provider()
    response = client.post("/bookings", json=booking_payload(provider.id, **overrides))
    assert response.status_code == 400
    assert response.json()["error"] == error


def test_missing_fields_are_listed(client):
    response = client.post("/bookings", json={"name": "Jane"})
    assert response.status_code == 400
    assert response.json()["details"] == "Missing: email, phone, address, provider_id"


def test_unknown_provider(client):
    response = client.post("/bookings", json=booking_payload("ChIJmissing"))
    assert response.status_code == 404
    assert response.json() == {
        "error": "Provider not found",
        "details": "No match for ID/place_id: ChIJmissing",
    }


def test_list_bookings_requires_filter(client):
    response = client.get("/bookings")
    assert response.status_code == 400
    assert response.json()["error"] == "Email or provider_id parameter is required"


def test_list_bookings_by_email_and_provider(client, make_provider):
    provider = make_provider()
    other = make_provider()
    client.post("/bookings", json=booking_payload(provider.id))
    client.post("/bookings", json=booking_payload(other.id))

    by_email = client.get("/bookings", params={"email": "JANE@x.com"}).json()
    assert by_email["success"] is True
    assert len(by_email["bookings"]) == 2

    by_provider = client.get("/bookings", params={"provider_id": str(provider.id)}).json()
    assert [b["provider_id"] for b in by_provider["bookings"]] == [str(provider.id)]

    assert client.get("/bookings", params={"provider_id": "nope"}).json()["bookings"] == []


def test_missing_database_configuration(client, monkeypatch):
    app.dependency_overrides.pop(get_db)
    monkeypatch.setattr(get_settings(), "database_url", None)

    response = client.post("/bookings", json={})

    assert response.status_code == 500
    assert response.json() == {
        "error": "Service not configured",
        "details": "DATABASE_URL is not set",
    }


def test_storage_conflict_leaves_session_usable(gateway, db_session, make_provider, monkeypatch):
    provider = make_provider()
    payload = BookingCreate(**booking_payload(provider.id))
    create_booking(gateway, payload)
    db_session.commit()

    monkeypatch.setattr(gateway, "pending_booking", lambda email, provider_id: None)
    with pytest.raises(ConflictError):
        create_booking(gateway, payload)

    assert len(gateway.list_bookings(provider_id=provider.id)) == 1

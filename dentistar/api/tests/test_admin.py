import pytest

from app.core.config import get_settings
from app.models import Booking, Person, ProfileRole
from conftest import bearer, make_token


@pytest.fixture()
def provider_with_activity(make_provider, gateway, db_session):
    provider = make_provider(name="Busy Dental", phone_number="+15550003333")
    gateway.add_person(provider_id=provider.id, name="Dr. Ray", email="ray@busy.com")
    gateway.add_booking(
        provider_id=provider.id,
        name="Jane Doe",
        email="jane@x.com",
        phone="5551234567",
        address="1 Main St",
    )
    db_session.commit()
    return provider


def test_admin_routes_require_sign_in(client):
    response = client.get("/admin/providers")
    assert response.status_code == 401
    assert response.json()["error"] == "Unauthorized"


@pytest.mark.parametrize(
    ("role", "is_verified"),
    [(ProfileRole.PROVIDER, True), (ProfileRole.ADMIN, False)],
)
def test_non_admins_are_forbidden(client, make_profile, role, is_verified):
    make_profile(user_id="someone", role=role, is_verified=is_verified)
    headers = bearer(make_token("someone", email="someone@example.com"))

    response = client.get("/admin/bookings", headers=headers)

    assert response.status_code == 403
    assert response.json()["error"] == "Admin access required"


def test_admin_email_pin(client, admin_headers, monkeypatch):
    monkeypatch.setattr(get_settings(), "admin_email", "boss@example.com")
    assert client.get("/admin/auth/check", headers=admin_headers).status_code == 403

    monkeypatch.setattr(get_settings(), "admin_email", "ADMIN@example.com")
    assert client.get("/admin/auth/check", headers=admin_headers).status_code == 200


def test_auth_check(client, admin_headers):
    body = client.get("/admin/auth/check", headers=admin_headers).json()
    assert body == {
        "isAdmin": True,
        "user": {
            "id": "admin-1",
            "email": "admin@example.com",
            "full_name": "Ada Admin",
            "role": "admin",
        },
    }


def test_listings(client, admin_headers, provider_with_activity):
    providers = client.get("/admin/providers", headers=admin_headers).json()
    assert providers["count"] == 1
    assert providers["providers"][0]["name"] == "Busy Dental"
    assert providers["providers"][0]["createdAt"]

    bookings = client.get("/admin/bookings", headers=admin_headers).json()
    assert bookings["count"] == 1
    assert bookings["bookings"][0]["provider_name"] == "Busy Dental"

    people = client.get("/admin/people", headers=admin_headers).json()
    assert people["count"] == 1
    assert people["people"][0]["provider"]["name"] == "Busy Dental"

    profiles = client.get("/admin/profiles", headers=admin_headers).json()
    assert [p["user_id"] for p in profiles["profiles"]] == ["admin-1"]


def test_delete_provider(client, admin_headers, provider_with_activity, db_session):
    missing_id = client.delete("/admin/providers", headers=admin_headers)
    assert missing_id.status_code == 400
    assert missing_id.json()["error"] == "Provider ID is required"

    unknown = client.delete(
        "/admin/providers",
        params={"id": "00000000-0000-0000-0000-000000000000"},
        headers=admin_headers,
    )
    assert unknown.status_code == 404

    response = client.delete(
        "/admin/providers", params={"id": str(provider_with_activity.id)}, headers=admin_headers
    )
    assert response.status_code == 200
    assert response.json()["message"] == "Provider Busy Dental deleted successfully"
    assert db_session.query(Person).count() == 0
    assert db_session.query(Booking).count() == 0


def test_update_booking_status(client, admin_headers, provider_with_activity, db_session):
    booking = db_session.query(Booking).one()

    invalid = client.put(
        "/admin/bookings",
        json={"id": str(booking.id), "status": "archived"},
        headers=admin_headers,
    )
    assert invalid.status_code == 400
    assert invalid.json()["error"] == "Invalid status"

    incomplete = client.put("/admin/bookings", json={"status": "confirmed"}, headers=admin_headers)
    assert incomplete.json()["error"] == "Booking ID and status are required"

    response = client.put(
        "/admin/bookings",
        json={"id": str(booking.id), "status": "confirmed"},
        headers=admin_headers,
    )
    assert response.status_code == 200
    assert response.json()["booking"]["status"] == "confirmed"
    assert response.json()["message"] == "Booking updated successfully"


def test_profile_verification(client, admin_headers, make_profile):
    pending = make_profile(user_id="owner-9", phone="+15550009999", is_verified=False)
    owner_headers = bearer(make_token("owner-9", phone="+15550009999"))
    put = client.put("/provider/profile", json={"name": "Nine Dental"}, headers=owner_headers)
    assert put.status_code == 403

    response = client.put(
        f"/admin/profiles/{pending.id}/verification",
        json={"is_verified": True},
        headers=admin_headers,
    )
    assert response.status_code == 200
    assert response.json()["profile"]["is_verified"] is True

    put = client.put("/provider/profile", json={"name": "Nine Dental"}, headers=owner_headers)
    assert put.status_code == 200


def test_profile_verification_errors(client, admin_headers, make_profile):
    profile = make_profile(user_id="owner-10")

    missing_flag = client.put(
        f"/admin/profiles/{profile.id}/verification", json={}, headers=admin_headers
    )
    assert missing_flag.status_code == 400
    assert missing_flag.json()["error"] == "is_verified is required"

    unknown = client.put(
        "/admin/profiles/not-a-uuid/verification",
        json={"is_verified": True},
        headers=admin_headers,
    )
    assert unknown.status_code == 404


def test_expired_session_is_rejected(client, admin_headers):
    expired = bearer(make_token("admin-1", email="admin@example.com", expires_in=-60))
    response = client.get("/admin/auth/check", headers=expired)
    assert response.status_code == 401
    assert response.json() == {"error": "Unauthorized"}

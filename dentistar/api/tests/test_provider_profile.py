from datetime import timedelta

import httpx
import pytest

from app.models import Profile, Provider
from app.models.base import utcnow
from conftest import bearer, make_token

PHONE = "+12125550199"


@pytest.fixture()
def headers():
    return bearer(make_token("user-1", phone=PHONE, email="owner@example.com"))


@pytest.fixture()
def verified(make_profile):
    return make_profile(user_id="user-1", phone=PHONE, is_verified=True)


def owner_place_payloads(places, *, place_id="ChIJowner", phone="(212) 555-0199"):
    places.on(
        "place/textsearch/json",
        {"status": "OK", "results": [{"place_id": place_id, "name": "Midtown Dental"}]},
    )
    places.on(
        "place/details/json",
        {
            "status": "OK",
            "result": {
                "place_id": place_id,
                "name": "Midtown Dental",
                "formatted_address": "350 5th Ave, New York, NY 10118, USA",
                "formatted_phone_number": phone,
                "types": ["dentist", "health"],
                "rating": 4.8,
                "user_ratings_total": 321,
                "geometry": {"location": {"lat": 40.7484, "lng": -73.9857}},
                "photos": [{"photo_reference": "ref-1"}, {"photo_reference": "ref-2"}],
                "opening_hours": {
                    "open_now": True,
                    "periods": [
                        {"open": {"day": 1, "time": "0800"}, "close": {"day": 1, "time": "1600"}}
                    ],
                    "weekday_text": ["Monday: 8:00 AM - 4:00 PM"],
                },
            },
        },
    )


def test_profile_requires_phone_session(client):
    assert client.get("/provider/profile").status_code == 401


def test_first_visit_creates_unverified_profile(client, headers, db_session):
    response = client.get("/provider/profile", headers=headers)
    assert response.status_code == 200
    assert response.json() == {
        "success": True,
        "provider": None,
        "verified": False,
        "message": "Profile created. Verification pending.",
    }

    again = client.get("/provider/profile", headers=headers).json()
    assert again["message"] == "Account verification pending"
    assert db_session.query(Profile).filter(Profile.phone == PHONE).count() == 1


def test_cached_provider_skips_places(client, headers, verified, make_provider, places):
    provider = make_provider(phone_number=PHONE, last_verified=utcnow())

    body = client.get("/provider/profile", headers=headers).json()

    assert body["source"] == "database"
    assert body["stale"] is False
    assert body["provider"]["id"] == str(provider.id)
    assert places.requests == []


def test_stale_provider_is_refreshed(client, headers, verified, make_provider, places, db_session):
    provider = make_provider(
        phone_number=PHONE,
        place_id="ChIJowner",
        rating=3.0,
        last_verified=utcnow() - timedelta(days=90),
    )
    owner_place_payloads(places)

    body = client.get("/provider/profile", headers=headers).json()

    assert body["source"] == "database"
    assert body["stale"] is False
    assert body["provider"]["rating"] == 4.8
    db_session.refresh(provider)
    assert provider.review_count == 321


def test_stale_provider_kept_when_refresh_fails(client, headers, verified, make_provider, places):
    make_provider(phone_number=PHONE, place_id="ChIJowner", last_verified=None, rating=3.0)
    places.on("place/details/json", httpx.Response(503))

    body = client.get("/provider/profile", headers=headers).json()

    assert body["stale"] is True
    assert body["provider"]["rating"] == 3.0


def test_missing_provider_without_places_key(client, headers, verified):
    body = client.get("/provider/profile", headers=headers).json()
    assert body["verified"] is True
    assert body["provider"] is None
    assert body["message"] == "No provider data found. Please update your profile manually."


def test_missing_provider_enriched_from_places(client, headers, verified, places, db_session):
    owner_place_payloads(places)

    body = client.get("/provider/profile", headers=headers).json()

    assert body["source"] == "places"
    assert body["message"] == "Provider data imported from Google Places"
    provider = body["provider"]
    assert provider["name"] == "Midtown Dental"
    assert provider["phone_number"] == PHONE
    assert provider["tags"] == ["General Dentistry"]
    assert len(provider["photos"]) == 2
    assert "maxwidth=800" in provider["photos"][0]

    stored = db_session.query(Provider).filter(Provider.phone_number == PHONE).one()
    assert stored.zip_code == "10118"
    assert stored.user_id == "user-1"
    assert stored.last_verified is not None

    search = places.calls_to("place/textsearch/json")[0]
    assert search.url.params["query"] == f"dentist {PHONE}"


def test_enrichment_survives_failed_insert(client, headers, verified, places, make_provider):
    make_provider(name="Someone Else", phone_number="+13105550000", place_id="ChIJowner")
    owner_place_payloads(places)

    body = client.get("/provider/profile", headers=headers).json()

    assert body["source"] == "places"
    assert body["message"] == "Data fetched from Google Places but not saved to database"
    assert body["provider"]["name"] == "Midtown Dental"


def test_update_requires_verified_profile(client, headers, make_profile):
    make_profile(user_id="user-1", phone=PHONE, is_verified=False)
    response = client.put("/provider/profile", json={"name": "Clinic"}, headers=headers)
    assert response.status_code == 403
    assert response.json()["error"] == "User account not verified. Please contact support."


def test_update_requires_name(client, headers, verified):
    response = client.put("/provider/profile", json={"name": "  "}, headers=headers)
    assert response.status_code == 400
    assert response.json()["error"] == "Practice name is required"


def test_update_creates_then_updates_provider(client, headers, verified):
    payload = {
        "name": "Harbor Dental",
        "address": "9 Pier Rd, Boston, MA 02110, USA",
        "website": "https://harbor.example.com",
        "tags": ["Orthodontics", ""],
        "photos": [],
    }
    created = client.put("/provider/profile", json=payload, headers=headers)
    assert created.status_code == 200
    assert created.json()["message"] == "Provider profile created successfully"
    provider = created.json()["provider"]
    assert provider["phone_number"] == PHONE
    assert provider["tags"] == ["Orthodontics"]

    updated = client.put(
        "/provider/profile", json={**payload, "name": "Harbor Family Dental"}, headers=headers
    )
    assert updated.json()["message"] == "Provider profile updated successfully"
    assert updated.json()["provider"]["id"] == provider["id"]
    assert updated.json()["provider"]["name"] == "Harbor Family Dental"


def test_hand_entered_provider_is_never_stale(client, headers, verified, make_provider, places):
    make_provider(
        phone_number=PHONE,
        place_id=None,
        last_verified=utcnow() - timedelta(days=365),
    )

    body = client.get("/provider/profile", headers=headers).json()

    assert body["source"] == "database"
    assert body["stale"] is False
    assert places.requests == []

import pytest

from app.models import Location, Provider, ProviderType
from app.services.geo import BoundingBox, haversine_km
from app.services.place_mapping import directory_provider_type, directory_tags, tags_match
from conftest import bearer, make_token

CENTER = {"lat": 40.7506, "lng": -73.9972}

REVERSE_GEOCODE = {
    "status": "OK",
    "results": [
        {
            "address_components": [
                {"long_name": "10001", "short_name": "10001", "types": ["postal_code"]},
                {"long_name": "New York", "short_name": "New York", "types": ["locality"]},
                {"long_name": "New York", "short_name": "NY", "types": ["administrative_area_level_1"]},
                {"long_name": "United States", "short_name": "US", "types": ["country"]},
            ]
        }
    ],
}

PLACE_DETAILS = {
    "ChIJchelsea": {
        "name": "Chelsea Orthodontics",
        "formatted_address": "200 W 26th St, New York, NY 10001, USA",
        "formatted_phone_number": "(212) 555-0110",
        "types": ["dentist", "health"],
        "rating": 4.6,
        "user_ratings_total": 88,
        "geometry": {"location": {"lat": 40.7468, "lng": -73.9940}},
        "business_status": "OPERATIONAL",
        "photos": [{"photo_reference": f"ref-{n}"} for n in range(7)],
    },
    "ChIJgramercy": {
        "name": "Gramercy Dental Care",
        "formatted_address": "30 E 20th St, New York, NY 10003, USA",
        "types": ["dentist"],
        "geometry": {"location": {"lat": 40.7385, "lng": -73.9890}},
        "business_status": "OPERATIONAL",
    },
    "ChIJclosed": {
        "name": "Closed Smiles",
        "formatted_address": "1 Closed Ave, New York, NY 10001, USA",
        "types": ["dentist"],
        "geometry": {"location": {"lat": 40.7500, "lng": -73.9950}},
        "business_status": "CLOSED_PERMANENTLY",
    },
}

TEXT_SEARCH = {
    "status": "OK",
    "results": [
        {"place_id": place_id, "geometry": details["geometry"]}
        for place_id, details in PLACE_DETAILS.items()
    ]
    + [
        {
            "place_id": "ChIJfaraway",
            "geometry": {"location": {"lat": 34.0522, "lng": -118.2437}},
        }
    ],
}


def details_for(request):
    details = PLACE_DETAILS.get(request.url.params["place_id"])
    if details is None:
        return {"status": "NOT_FOUND"}
    return {"status": "OK", "result": details}


@pytest.fixture()
def places_directory(places):
    places.on("geocode/json", REVERSE_GEOCODE)
    places.on("place/textsearch/json", TEXT_SEARCH)
    places.on("place/details/json", details_for)
    return places


@pytest.fixture()
def nearby(make_provider):
    near = make_provider(
        name="Near Dental", lat=40.7527, lng=-73.9772, zip_code="10001", tags=["Orthodontics"]
    )
    mid = make_provider(
        name="Mid Dental", lat=40.80, lng=-73.95, zip_code="10025", tags=["General Dentistry"]
    )
    far = make_provider(name="Far Dental", lat=40.95, lng=-73.80, zip_code="10550")
    return near, mid, far


def search(client, headers=None, **params):
    return client.get("/providers", params={**CENTER, **params}, headers=headers or {})


def test_location_is_required(client):
    assert client.get("/providers").json() == {"error": "Location required"}
    response = client.get("/providers", params={"lat": "abc", "lng": "-73.9"})
    assert response.status_code == 400


def test_database_results_sorted_by_distance(client, nearby):
    near, mid, _ = nearby

    body = search(client).json()

    assert body["source"] == "database"
    assert body["fromCache"] is True
    assert [p["id"] for p in body["providers"]] == [str(near.id), str(mid.id)]
    assert body["totalCount"] == 2
    distances = [p["distance"] for p in body["providers"]]
    assert distances == sorted(distances)
    assert distances[-1] < 20


def test_pagination(client, nearby):
    near, mid, _ = nearby

    first = search(client, limit=1).json()
    second = search(client, limit=1, page=2).json()

    assert first["hasMore"] is True
    assert [p["id"] for p in first["providers"]] == [str(near.id)]
    assert second["hasMore"] is False
    assert [p["id"] for p in second["providers"]] == [str(mid.id)]


def test_tag_and_type_filters(client, nearby, make_provider):
    near, _, _ = nearby
    make_provider(
        name="Glow Aesthetics", type=ProviderType.COSMETIC, lat=40.7510, lng=-73.9980
    )

    by_tag = search(client, tags="ortho").json()
    assert [p["id"] for p in by_tag["providers"]] == [str(near.id)]

    cosmetic = search(client, type="cosmetic").json()
    assert [p["name"] for p in cosmetic["providers"]] == ["Glow Aesthetics"]


def test_zip_search_prefers_exact_zip(client, nearby):
    near, _, _ = nearby
    body = search(client, zip="10001").json()
    assert [p["id"] for p in body["providers"]] == [str(near.id)]
    assert body["zipCode"] == "10001"


def test_miss_for_non_admin_explains(client, places_directory):
    body = search(client, zip="10001").json()

    assert body["providers"] == []
    assert body["message"] == (
        "No providers found for ZIP 10001. An admin needs to search this area first."
    )
    assert places_directory.requests == []


def test_admin_miss_imports_from_places(client, admin_headers, places_directory, db_session):
    body = search(client, admin_headers, type="dentist").json()

    assert body["source"] == "places"
    assert body["fromCache"] is False
    names = [p["name"] for p in body["providers"]]
    assert names == ["Chelsea Orthodontics", "Gramercy Dental Care"]

    chelsea = body["providers"][0]
    assert chelsea["type"] == "dentist"
    assert chelsea["zipCode"] == "10001"
    assert set(chelsea["tags"]) == {"General Dentistry", "Orthodontics"}
    assert len(chelsea["photos"]) == 5
    assert "maxheight=300" in chelsea["photos"][0]

    stored = db_session.query(Provider).order_by(Provider.name).all()
    assert [p.place_id for p in stored] == ["ChIJchelsea", "ChIJgramercy"]
    location = db_session.query(Location).one()
    assert (location.city, location.state, location.provider_count) == ("New York", "NY", 2)

    queries = {r.url.params["query"] for r in places_directory.calls_to("place/textsearch/json")}
    assert "dentist 10001" in queries
    assert not any("cosmetic surgeon" in q for q in queries)

    follow_up = search(client).json()
    assert follow_up["source"] == "database"
    assert len(follow_up["providers"]) == 2


def test_admin_import_applies_strict_zip_filter(client, admin_headers, places_directory):
    body = search(client, admin_headers, zip="10001", type="dentist").json()
    assert [p["name"] for p in body["providers"]] == ["Chelsea Orthodontics"]

    empty = search(
        client, admin_headers, zip="99999", type="dentist", force_refresh="true"
    ).json()
    assert empty["providers"] == []
    assert empty["message"] == (
        "No dental providers found in ZIP code 99999. Try searching a nearby ZIP code."
    )


def test_import_reimports_by_place_id(client, admin_headers, places_directory, db_session):
    search(client, admin_headers, type="dentist", force_refresh="true")
    search(client, admin_headers, type="dentist", force_refresh="true")
    assert db_session.query(Provider).count() == 2


def test_tags_match_both_directions():
    assert tags_match(["Orthodontics"], ["ortho"])
    assert tags_match(["Ortho"], ["Orthodontics"])
    assert not tags_match(["Pediatric Dentistry"], ["Implants"])


def test_type_inference_from_keywords():
    assert directory_provider_type(["doctor"], "Beverly Hills Plastic Surgeon") == ProviderType.COSMETIC
    assert directory_provider_type(["doctor"], "Cosmetic Dental Studio") == ProviderType.DENTIST
    assert directory_provider_type(["health"], "Skin Clinic", "dentist") == ProviderType.DENTIST
    assert directory_tags([], "Laser Skin Spa", ProviderType.COSMETIC) == [
        "Skin Care",
        "Laser Treatments",
        "Medical Spa",
    ]


def test_bounding_box_has_minimum_reach():
    box = BoundingBox.around(40.0, -74.0, 5)
    reach_km = haversine_km(40.0, -74.0, box.max_lat, -74.0)
    assert reach_km == pytest.approx(25, rel=0.01)


def test_stale_session_searches_as_anonymous(client, nearby, admin_headers):
    expired = bearer(make_token("admin-1", email="admin@example.com", expires_in=-60))

    anonymous = search(client)
    with_expired = search(client, expired)

    assert with_expired.status_code == 200
    assert with_expired.json() == anonymous.json()


def test_expired_session_cannot_import(client, admin_headers, places_directory):
    expired = bearer(make_token("admin-1", email="admin@example.com", expires_in=-60))

    body = search(client, expired, zip="10001").json()

    assert body["source"] == "database"
    assert body["providers"] == []
    assert places_directory.requests == []

from sqlalchemy.exc import OperationalError

from app.services.provider_resolver import resolve_provider


def test_phone_and_place_id_lookups_over_http(client, make_provider):
    by_phone = make_provider(name="Phone Dental", phone_number="5551234567")
    by_place = make_provider(name="Place Dental", place_id="ChIJabc123")

    response = client.get("/providers/5551234567")
    assert response.status_code == 200
    body = response.json()
    assert body["provider"]["id"] == str(by_phone.id)
    assert body["provider"]["phoneNumber"] == "5551234567"
    assert body["searchMethod"] == "phone_number"

    response = client.get("/providers/ChIJabc123")
    assert response.status_code == 200
    assert response.json()["provider"]["id"] == str(by_place.id)
    assert response.json()["searchMethod"] == "place_id"


def test_lookup_by_primary_key(client, make_provider):
    provider = make_provider()
    response = client.get(f"/providers/{provider.id}")
    assert response.status_code == 200
    assert response.json()["provider"]["name"] == provider.name


def test_unknown_identifier_returns_debug(client, make_provider):
    make_provider(phone_number="5550000000")
    response = client.get("/providers/9999999999")
    assert response.status_code == 404
    body = response.json()
    assert body["error"] == "Provider not found"
    assert body["debug"]["is_phone_number"] is True
    assert body["debug"]["matched_strategy"] is None
    assert body["debug"]["search_strategies_tried"] == [
        "phone_number",
        "id",
        "partial_phone",
        "comprehensive",
    ]


def test_resolution_is_deterministic(gateway, make_provider):
    make_provider(phone_number="+1 (555) 123-4567")
    make_provider(phone_number="+15551234567")

    results = [resolve_provider(gateway, "5551234567") for _ in range(5)]
    ids = {result.provider.id for result in results}
    assert len(ids) == 1
    assert {result.strategy for result in results} == {"partial_phone"}


def test_exact_phone_wins_over_later_strategies(gateway, make_provider):
    make_provider(name="Suffix Match", phone_number="+15551234567", place_id="ChIJsuffix")
    exact = make_provider(name="Exact Match", phone_number="5551234567")

    result = resolve_provider(gateway, "5551234567")
    assert result.provider.id == exact.id
    assert result.strategy == "phone_number"
    assert result.attempted == ["phone_number"]


def test_formatted_phone_skips_exact_phone_strategy(gateway, make_provider):
    provider = make_provider(phone_number="(555) 123-4567")

    result = resolve_provider(gateway, "(555) 123-4567")
    assert result.provider.id == provider.id
    assert "phone_number" not in result.attempted
    assert result.is_phone_number is False


def test_duplicate_exact_phone_falls_through(gateway, make_provider):
    first = make_provider(phone_number="5557654321")
    make_provider(phone_number="5557654321")

    result = resolve_provider(gateway, "5557654321")
    assert result.strategy == "partial_phone"
    assert result.provider.id == first.id


def test_blank_identifier_is_not_found(gateway):
    result = resolve_provider(gateway, "   ")
    assert not result.found
    assert result.attempted == []


def test_failed_strategy_falls_through_to_next(gateway, make_provider, monkeypatch):
    provider = make_provider(phone_number="2125550100")

    def broken_lookup(*criteria):
        raise OperationalError("SELECT providers", {}, Exception("connection reset"))

    monkeypatch.setattr(gateway, "find_provider", broken_lookup)

    result = resolve_provider(gateway, "2125550100")

    assert result.provider.id == provider.id
    assert result.strategy == "partial_phone"
    assert result.attempted == ["phone_number", "id", "partial_phone"]

"""Directory search: database first, places import for admins on a miss."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

import httpx
from sqlalchemy.exc import SQLAlchemyError

from app.db.gateway import PersistenceGateway
from app.models import Provider, ProviderType
from app.models.base import utcnow
from app.services.geo import AreaInfo, BoundingBox, area_from_components, haversine_km
from app.services.place_mapping import (
    DETAIL_FIELDS,
    extract_zip,
    provider_fields_from_listing,
    tags_match,
)
from app.services.places_client import PlacesClient
from app.services.provider_resolver import serialize_provider

logger = logging.getLogger(__name__)

ZIP_QUERY_LIMIT = 100
IMPORT_RADIUS_KM = 25
IMPORT_SEARCH_RADIUS_M = 25_000
IMPORT_RESULT_HEADROOM = 50

TAG_QUERIES: dict[str, tuple[str, ...]] = {
    "Orthodontics": ("orthodontist", "braces", "invisalign", "teeth straightening"),
    "Pediatric": ("pediatric dentist", "children dentist", "kids dental"),
    "Cosmetics": ("cosmetic dentist", "smile makeover", "teeth whitening"),
    "Cosmetic Dentistry": ("cosmetic dentist", "veneers", "smile design"),
    "General Dentistry": ("general dentist", "family dentist", "dental office", "DDS", "DMD"),
    "Emergency Services": ("emergency dentist", "urgent dental care", "24 hour dentist"),
    "Oral Surgery": ("oral surgeon", "tooth extraction", "wisdom teeth"),
    "Dental Implants": ("dental implants", "implant dentist", "tooth replacement"),
    "Endodontics": ("endodontist", "root canal specialist", "root canal treatment"),
    "Periodontics": ("periodontist", "gum specialist", "gum disease treatment"),
    "TMJ Treatment": ("tmj specialist", "jaw treatment", "tmj therapy"),
    "Prosthodontics": ("prosthodontist", "dental prosthetics", "dentures"),
    "Sedation Dentistry": ("sedation dentist", "sleep dentistry", "anxiety dentist"),
    "Preventive Care": ("preventive dentist", "dental hygiene", "dental cleaning"),
    "Routine Checkups": ("dental checkup", "dental examination", "routine dental"),
    "Family Dentistry": ("family dentist", "family dental practice", "all ages dental"),
}
DENTIST_QUERIES = (
    "dentist",
    "DDS",
    "DMD",
    "dental clinic",
    "orthodontist",
    "family dentist",
)
COSMETIC_QUERIES = ("cosmetic surgeon", "plastic surgeon", "dermatologist")


@dataclass
class SearchQuery:
    lat: float
    lng: float
    zip_code: str | None = None
    page: int = 1
    limit: int = 30
    radius: int = 20
    provider_type: str | None = None
    tags: list[str] = field(default_factory=list)
    force_refresh: bool = False

    @property
    def type_filter(self) -> ProviderType | None:
        if self.provider_type in (ProviderType.DENTIST.value, ProviderType.COSMETIC.value):
            return ProviderType(self.provider_type)
        return None

    @property
    def max_distance_km(self) -> float:
        return self.radius * 3 if self.zip_code else self.radius

    def wants(self, kind: ProviderType) -> bool:
        return self.type_filter in (None, kind)


@dataclass
class SearchResult:
    providers: list[dict[str, Any]]
    total_count: int
    from_cache: bool
    source: str
    has_more: bool = False
    message: str | None = None

    def as_response(self, query: SearchQuery) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "providers": self.providers,
            "count": len(self.providers),
            "totalCount": self.total_count,
            "hasMore": self.has_more,
            "page": query.page,
            "limit": query.limit,
            "location": {"lat": query.lat, "lng": query.lng},
            "zipCode": query.zip_code,
            "fromCache": self.from_cache,
            "source": self.source,
        }
        if self.message:
            payload["message"] = self.message
        return payload


def _paginate(items: list[Any], page: int, limit: int) -> list[Any]:
    start = (max(page, 1) - 1) * limit
    return items[start : start + limit]


def _database_candidates(
    gateway: PersistenceGateway, query: SearchQuery
) -> list[Provider]:
    type_criteria = []
    if query.type_filter is not None:
        type_criteria.append(Provider.type == query.type_filter)

    if query.zip_code:
        providers = gateway.list_providers(
            Provider.zip_code == query.zip_code, *type_criteria, limit=ZIP_QUERY_LIMIT
        )
        if providers:
            return list(providers)
        providers = gateway.list_providers(
            Provider.address.icontains(query.zip_code, autoescape=True), *type_criteria
        )
        if providers:
            return list(providers)

    box = BoundingBox.around(query.lat, query.lng, query.radius)
    return list(
        gateway.list_providers(
            Provider.lat >= box.min_lat,
            Provider.lat <= box.max_lat,
            Provider.lng >= box.min_lng,
            Provider.lng <= box.max_lng,
            *type_criteria,
        )
    )


def search_database(gateway: PersistenceGateway, query: SearchQuery) -> SearchResult | None:
    ranked: list[tuple[float, Provider]] = []
    for provider in _database_candidates(gateway, query):
        if provider.lat is None or provider.lng is None:
            continue
        if query.tags and not tags_match(provider.tags or [], query.tags):
            continue
        distance = haversine_km(query.lat, query.lng, provider.lat, provider.lng)
        if distance <= query.max_distance_km:
            ranked.append((distance, provider))

    if not ranked:
        return None
    ranked.sort(key=lambda item: item[0])
    page = _paginate(ranked, query.page, query.limit)
    return SearchResult(
        providers=[serialize_provider(p, distance=d) for d, p in page],
        total_count=len(ranked),
        from_cache=True,
        source="database",
        has_more=query.page * query.limit < len(ranked),
    )


def _search_plan(query: SearchQuery, zip_code: str) -> list[tuple[str, str]]:
    """Ordered ``(search_type, text_query)`` pairs."""

    plan: list[tuple[str, str]] = []
    if query.tags:
        for tag in query.tags:
            for term in TAG_QUERIES.get(tag, (tag.lower(),)):
                if query.wants(ProviderType.DENTIST):
                    plan.append((ProviderType.DENTIST.value, f"{term} {zip_code}"))
                if query.wants(ProviderType.COSMETIC):
                    plan.append((ProviderType.COSMETIC.value, f"{term} cosmetic {zip_code}"))
        return plan

    if query.wants(ProviderType.DENTIST):
        plan.extend((ProviderType.DENTIST.value, f"{term} {zip_code}") for term in DENTIST_QUERIES)
    if query.wants(ProviderType.COSMETIC):
        plan.extend(
            (ProviderType.COSMETIC.value, f"{term} {zip_code}") for term in COSMETIC_QUERIES
        )
    return plan


def locate_area(client: PlacesClient, lat: float, lng: float) -> AreaInfo:
    try:
        results = client.reverse_geocode(lat, lng)
    except (httpx.HTTPError, ValueError) as exc:
        logger.warning("reverse geocoding failed", extra={"error": str(exc)})
        return AreaInfo()
    if not results:
        return AreaInfo()
    return area_from_components(results[0].get("address_components") or [])


def _collect_places(
    client: PlacesClient, query: SearchQuery, area: AreaInfo
) -> list[dict[str, Any]]:
    needed = query.page * query.limit + IMPORT_RESULT_HEADROOM
    collected: list[dict[str, Any]] = []
    for search_type, text in _search_plan(query, area.zip_code):
        if len(collected) >= needed:
            break
        place_type = "dentist" if search_type == ProviderType.DENTIST.value else "doctor"
        try:
            results = client.text_search_pages(
                text,
                place_type=place_type,
                location=(query.lat, query.lng),
                radius=IMPORT_SEARCH_RADIUS_M,
            )
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("place search failed", extra={"query": text, "error": str(exc)})
            continue
        collected.extend({**place, "_search_type": search_type} for place in results)

    unique: dict[str, dict[str, Any]] = {}
    for place in collected:
        place_id = place.get("place_id")
        if place_id and place_id not in unique:
            unique[place_id] = place

    nearby = []
    for place in unique.values():
        location = (place.get("geometry") or {}).get("location") or {}
        if "lat" in location and "lng" in location:
            distance = haversine_km(query.lat, query.lng, location["lat"], location["lng"])
            if distance > IMPORT_RADIUS_KM:
                continue
        nearby.append(place)
    return nearby


def _store_listings(
    gateway: PersistenceGateway,
    listings: list[dict[str, Any]],
    area: AreaInfo,
    query: SearchQuery,
) -> list[Provider] | None:
    try:
        with gateway.savepoint():
            stored = [gateway.upsert_provider(fields) for fields in listings]
            if area.city != "Unknown":
                gateway.upsert_location(
                    city=area.city,
                    state=area.state,
                    country=area.country,
                    lat=query.lat,
                    lng=query.lng,
                    provider_count=len(stored),
                )
    except SQLAlchemyError as exc:
        logger.warning("imported providers not stored", extra={"error": str(exc)})
        return None
    return stored


def import_from_places(
    gateway: PersistenceGateway, client: PlacesClient, query: SearchQuery
) -> SearchResult:
    area = locate_area(client, query.lat, query.lng)
    places = _collect_places(client, query, area)
    candidates = _paginate(places, query.page, query.limit)

    listings: list[dict[str, Any]] = []
    for place in candidates:
        try:
            details = client.place_details(place["place_id"], DETAIL_FIELDS)
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning(
                "place details failed",
                extra={"place_id": place["place_id"], "error": str(exc)},
            )
            continue
        if not details:
            continue
        fields = provider_fields_from_listing(
            client,
            details,
            place_id=place["place_id"],
            center=(query.lat, query.lng),
            search_type=place.get("_search_type"),
            fallback_address=place.get("vicinity"),
            fallback_zip=area.zip_code if area.has_zip else query.zip_code,
        )
        if fields is None:
            continue
        if query.tags and not tags_match(fields["tags"], query.tags):
            continue
        listings.append(fields)

    if query.zip_code:
        listings = [f for f in listings if extract_zip(f["address"]) == query.zip_code]
        if not listings:
            return SearchResult(
                providers=[],
                total_count=0,
                from_cache=False,
                source="places",
                message=(
                    f"No dental providers found in ZIP code {query.zip_code}. "
                    "Try searching a nearby ZIP code."
                ),
            )

    for fields in listings:
        fields["last_verified"] = utcnow()
    stored = _store_listings(gateway, listings, area, query) if listings else []

    views = []
    for index, fields in enumerate(listings):
        distance = haversine_km(query.lat, query.lng, fields["lat"], fields["lng"])
        if stored is not None:
            views.append(serialize_provider(stored[index], distance=distance))
        else:
            view = serialize_provider(Provider(**fields), distance=distance)
            view["id"] = fields["place_id"]
            views.append(view)
    views.sort(key=lambda view: view.get("distance") or 0)

    logger.info(
        "providers imported from places",
        extra={"count": len(views), "zip_code": query.zip_code or area.zip_code},
    )
    return SearchResult(
        providers=views,
        total_count=len(views),
        from_cache=False,
        source="places",
    )


def search_providers(
    gateway: PersistenceGateway,
    client: PlacesClient | None,
    query: SearchQuery,
    *,
    admin: bool,
) -> dict[str, Any]:
    if not query.force_refresh:
        result = search_database(gateway, query)
        if result is not None:
            return result.as_response(query)

    if admin and client is not None:
        return import_from_places(gateway, client, query).as_response(query)

    if query.zip_code:
        message = (
            f"No providers found for ZIP {query.zip_code}. "
            "An admin needs to search this area first."
        )
    else:
        message = "No providers found for this location. An admin needs to search this area first."
    return SearchResult(
        providers=[], total_count=0, from_cache=False, source="database", message=message
    ).as_response(query)


__all__ = [
    "SearchQuery",
    "SearchResult",
    "import_from_places",
    "locate_area",
    "search_database",
    "search_providers",
]

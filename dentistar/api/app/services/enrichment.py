"""Provider cache lookup and places-API enrichment.

Lookups go through an explicit cache step: a provider row found by phone is
a hit, and it is stale once ``last_verified`` is older than the configured
age. Stale rows and misses are enriched from the places API on a best-effort
basis; failures never fail the read.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

import httpx
from sqlalchemy.exc import SQLAlchemyError

from app.db.gateway import PersistenceGateway
from app.models import Provider
from app.models.base import ensure_utc, utcnow
from app.services.place_mapping import (
    DETAIL_FIELDS,
    last_ten_digits,
    opening_hours_from_place,
    provider_fields_from_owner_place,
)
from app.services.places_client import PlacesClient

logger = logging.getLogger(__name__)

OWNER_SEARCH_TERM = "dentist"


@dataclass
class CachedProvider:
    provider: Provider
    is_stale: bool


@dataclass
class EnrichmentResult:
    provider: dict[str, Any]
    persisted: bool

    @property
    def message(self) -> str:
        if self.persisted:
            return "Provider data imported from Google Places"
        return "Data fetched from Google Places but not saved to database"


def profile_view(source: Provider | Mapping[str, Any]) -> dict[str, Any]:
    """Portal view of a provider row or of unsaved provider fields."""

    def read(name: str) -> Any:
        if isinstance(source, Mapping):
            return source.get(name)
        return getattr(source, name)

    provider_type = read("type")
    return {
        "id": str(read("id")),
        "name": read("name"),
        "type": getattr(provider_type, "value", provider_type),
        "address": read("address"),
        "phone_number": read("phone_number"),
        "website": read("website"),
        "tags": list(read("tags") or []),
        "photos": list(read("photos") or []),
        "rating": read("rating"),
        "review_count": read("review_count"),
        "business_status": read("business_status"),
        "opening_hours": read("opening_hours"),
        "place_id": read("place_id"),
    }


def lookup_cached_provider(
    gateway: PersistenceGateway,
    phone: str,
    max_age: timedelta,
    now: datetime | None = None,
) -> CachedProvider | None:
    provider = gateway.provider_by_phone(phone)
    if provider is None:
        return None
    # Rows entered by hand have no place to refresh from.
    if not provider.place_id:
        return CachedProvider(provider, is_stale=False)
    if provider.last_verified is None:
        return CachedProvider(provider, is_stale=True)
    age = (now or utcnow()) - ensure_utc(provider.last_verified)
    return CachedProvider(provider, is_stale=age > max_age)


def find_owner_place(client: PlacesClient, phone: str) -> Mapping[str, Any] | None:
    """Place whose phone ends with the same 10 digits, else the first hit."""

    data = client.text_search(f"{OWNER_SEARCH_TERM} {phone}", place_type="dentist")
    results = data.get("results") or []
    if data.get("status") != "OK" or not results:
        return None

    wanted = last_ten_digits(phone)
    for candidate in results:
        place_id = candidate.get("place_id")
        if not place_id:
            continue
        details = client.place_details(place_id, DETAIL_FIELDS)
        if not details:
            continue
        place_phone = details.get("formatted_phone_number") or details.get(
            "international_phone_number"
        )
        if place_phone and wanted and last_ten_digits(place_phone) == wanted:
            details.setdefault("place_id", place_id)
            return details
    return results[0]


def enrich_provider(
    gateway: PersistenceGateway,
    client: PlacesClient | None,
    *,
    phone: str,
    user_id: str | None,
) -> EnrichmentResult | None:
    """Build a provider from the places API and try to store it."""

    if client is None:
        return None
    try:
        place = find_owner_place(client, phone)
    except (httpx.HTTPError, ValueError) as exc:
        logger.warning("places lookup failed", extra={"error": str(exc)})
        return None
    if place is None:
        return None

    fields = provider_fields_from_owner_place(client, place, phone=phone, user_id=user_id)
    fields["last_verified"] = utcnow()

    try:
        with gateway.savepoint():
            provider = gateway.add_provider(**fields)
    except SQLAlchemyError as exc:
        logger.warning(
            "enriched provider not persisted",
            extra={"place_id": fields.get("place_id"), "error": str(exc)},
        )
        return EnrichmentResult(
            provider=profile_view({**fields, "id": uuid.uuid4()}), persisted=False
        )

    logger.info(
        "provider imported from places",
        extra={"provider_id": str(provider.id), "place_id": provider.place_id},
    )
    return EnrichmentResult(provider=profile_view(provider), persisted=True)


def refresh_provider(
    gateway: PersistenceGateway, client: PlacesClient | None, provider: Provider
) -> bool:
    """Refresh externally-owned fields of a stale row; ``True`` on success."""

    if client is None or not provider.place_id:
        return False
    try:
        details = client.place_details(provider.place_id, DETAIL_FIELDS)
    except (httpx.HTTPError, ValueError) as exc:
        logger.warning(
            "provider refresh failed",
            extra={"provider_id": str(provider.id), "error": str(exc)},
        )
        return False
    if not details:
        return False

    updates: dict[str, Any] = {"last_verified": utcnow()}
    if details.get("rating") is not None:
        updates["rating"] = details["rating"]
    if details.get("user_ratings_total") is not None:
        updates["review_count"] = details["user_ratings_total"]
    if details.get("business_status"):
        updates["business_status"] = details["business_status"]
    hours = opening_hours_from_place(details)
    if hours is not None:
        updates["opening_hours"] = hours

    try:
        with gateway.savepoint():
            gateway.update_provider(provider, **updates)
    except SQLAlchemyError as exc:
        logger.warning(
            "provider refresh not persisted",
            extra={"provider_id": str(provider.id), "error": str(exc)},
        )
        return False
    return True


__all__ = [
    "CachedProvider",
    "EnrichmentResult",
    "enrich_provider",
    "find_owner_place",
    "lookup_cached_provider",
    "profile_view",
    "refresh_provider",
]

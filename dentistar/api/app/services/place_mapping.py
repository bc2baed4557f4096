"""Map places API payloads onto the internal provider schema."""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from typing import Any

from app.models import ProviderType
from app.services.places_client import PlacesClient

DETAIL_FIELDS = (
    "name,formatted_address,formatted_phone_number,international_phone_number,"
    "website,rating,user_ratings_total,types,geometry,business_status,photos,"
    "opening_hours,place_id"
)
CLOSED_STATUSES = frozenset({"CLOSED_PERMANENTLY", "CLOSED_TEMPORARILY"})
MAX_PHOTOS = 5

ZIP_IN_TEXT = re.compile(r"\b(\d{5})(?:-\d{4})?\b")

COSMETIC_KEYWORDS = (
    "cosmetic", "plastic", "dermatolog", "aesthetic", "botox", "laser",
    "med spa", "medical spa", "beauty", "surgeon", "facial", "skin",
    "fillers", "injectables", "lip enhancement", "anti-aging",
)
DENTAL_KEYWORDS = (
    "dental", "dentist", "orthodont", "oral", "tooth", "teeth",
    "braces", "invisalign", "endodont", "periodont", "pediatric",
    "gum", "implant", "cavity", "root canal", "tmj", "prosthodont",
    "dds", "dmd", "doctor of dental surgery", "doctor of dental medicine",
)

# (tag, any of these name fragments)
DENTAL_NAME_TAGS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("Orthodontics", ("orthodont", "braces", "invisalign")),
    ("Dental Implants", ("implant",)),
    ("Endodontics", ("endodont", "root canal")),
    ("Periodontics", ("periodont", "gum")),
    ("Pediatric Dentistry", ("pediatric", "children")),
    ("Emergency Dentistry", ("emergency", "urgent")),
    ("Family Dentistry", ("family",)),
    ("Prosthodontics", ("prosthodont",)),
    ("TMJ Treatment", ("tmj", "jaw")),
    ("Sedation Dentistry", ("sedation",)),
    ("Preventive Care", ("preventive",)),
    ("Routine Checkups", ("checkup", "cleaning")),
)
COSMETIC_NAME_TAGS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("Plastic Surgery", ("plastic", "surgeon")),
    ("Skin Care", ("dermatolog", "skin")),
    ("Injectables", ("botox", "filler")),
    ("Laser Treatments", ("laser",)),
    ("Aesthetic Medicine", ("aesthetic", "cosmetic")),
    ("Facial Procedures", ("facial",)),
    ("Medical Spa", ("med spa", "spa")),
)


def extract_zip(text: str | None) -> str | None:
    """First 5-digit ZIP (ZIP+4 reduced to 5 digits) found in ``text``."""

    if not text:
        return None
    match = ZIP_IN_TEXT.search(text)
    return match.group(1) if match else None


def phone_digits(value: str | None) -> str:
    return re.sub(r"\D", "", value or "")


def last_ten_digits(value: str | None) -> str:
    return phone_digits(value)[-10:]


def _contains_any(haystacks: Iterable[str], needles: Iterable[str]) -> bool:
    haystacks = list(haystacks)
    return any(needle in hay for needle in needles for hay in haystacks)


def photo_urls(
    client: PlacesClient,
    photos: Any,
    *,
    max_width: int,
    max_height: int | None = None,
) -> list[str]:
    if not isinstance(photos, list):
        return []
    urls = []
    for photo in photos[:MAX_PHOTOS]:
        reference = photo.get("photo_reference") if isinstance(photo, Mapping) else None
        if reference:
            urls.append(
                client.photo_url(reference, max_width=max_width, max_height=max_height)
            )
    return urls


def opening_hours_from_place(details: Mapping[str, Any]) -> dict[str, Any] | None:
    hours = details.get("opening_hours")
    if not isinstance(hours, Mapping):
        return None
    return {
        "open_now": bool(hours.get("open_now")),
        "periods": list(hours.get("periods") or []),
        "weekday_text": list(hours.get("weekday_text") or []),
    }


def _location(details: Mapping[str, Any]) -> tuple[float | None, float | None]:
    location = (details.get("geometry") or {}).get("location") or {}
    return location.get("lat"), location.get("lng")


# -- owner enrichment ---------------------------------------------------------


def owner_provider_type(types: list[str], name: str) -> ProviderType:
    lowered = [t.lower() for t in types]
    if _contains_any(lowered, ("cosmetic", "aesthetic")) or "cosmetic" in name.lower():
        return ProviderType.COSMETIC
    return ProviderType.DENTIST


def owner_tags(types: list[str]) -> list[str]:
    """At most three specialty tags, never empty."""

    lowered = [t.lower() for t in types]
    tags = []
    if "dentist" in lowered:
        tags.append("General Dentistry")
    if _contains_any(lowered, ("cosmetic",)):
        tags.append("Cosmetic Dentistry")
    if "orthodontist" in lowered:
        tags.append("Orthodontics")
    return tags[:3] or ["General Dentistry"]


def provider_fields_from_owner_place(
    client: PlacesClient,
    details: Mapping[str, Any],
    *,
    phone: str,
    user_id: str | None,
) -> dict[str, Any]:
    """Provider columns for an operator's own practice found by phone."""

    types = list(details.get("types") or [])
    name = details.get("name") or "Unknown Practice"
    lat, lng = _location(details)
    address = details.get("formatted_address") or details.get("vicinity")
    return {
        "name": name,
        "type": owner_provider_type(types, name),
        "address": address,
        "zip_code": extract_zip(address),
        "lat": lat,
        "lng": lng,
        "rating": details.get("rating") or 0,
        "review_count": details.get("user_ratings_total") or 0,
        "tags": owner_tags(types),
        "phone_number": phone,
        "website": details.get("website"),
        "photos": photo_urls(client, details.get("photos"), max_width=800),
        "opening_hours": opening_hours_from_place(details),
        "place_id": details.get("place_id"),
        "business_status": details.get("business_status") or "OPERATIONAL",
        "user_id": user_id,
    }


# -- directory import ---------------------------------------------------------


def directory_provider_type(
    types: list[str], name: str, search_type: str | None = None
) -> ProviderType:
    if search_type in (ProviderType.DENTIST.value, ProviderType.COSMETIC.value):
        return ProviderType(search_type)

    haystacks = [name.lower(), " ".join(types).lower()]
    has_cosmetic = _contains_any(haystacks, COSMETIC_KEYWORDS)
    has_dental = _contains_any(haystacks, DENTAL_KEYWORDS)
    if has_cosmetic and not has_dental:
        return ProviderType.COSMETIC
    return ProviderType.DENTIST


def directory_tags(types: list[str], name: str, provider_type: ProviderType) -> list[str]:
    lowered_name = (name or "").lower()
    type_text = " ".join(types).lower()
    tags: list[str] = []

    if provider_type == ProviderType.DENTIST:
        if "dentist" in type_text or _contains_any([lowered_name], ("dental", "dds", "dmd")):
            tags.append("General Dentistry")
        if "oral" in lowered_name and "surgeon" in lowered_name:
            tags.append("Oral Surgery")
        if "cosmetic" in lowered_name and "dent" in lowered_name:
            tags.append("Cosmetic Dentistry")
        for tag, fragments in DENTAL_NAME_TAGS:
            if _contains_any([lowered_name], fragments):
                tags.append(tag)
        return tags or ["General Dentistry"]

    for tag, fragments in COSMETIC_NAME_TAGS:
        if _contains_any([lowered_name], fragments):
            tags.append(tag)
    return tags or ["Cosmetic Services"]


def provider_fields_from_listing(
    client: PlacesClient,
    details: Mapping[str, Any],
    *,
    place_id: str,
    center: tuple[float, float],
    search_type: str | None = None,
    fallback_address: str | None = None,
    fallback_zip: str | None = None,
) -> dict[str, Any] | None:
    """Provider columns for a directory import; ``None`` for closed places."""

    if details.get("business_status") in CLOSED_STATUSES:
        return None

    types = list(details.get("types") or [])
    name = details.get("name") or "Unknown Provider"
    provider_type = directory_provider_type(types, name, search_type)
    lat, lng = _location(details)
    address = details.get("formatted_address") or fallback_address or "Address not available"
    return {
        "place_id": place_id,
        "name": name,
        "type": provider_type,
        "address": address,
        "zip_code": extract_zip(address) or fallback_zip,
        "lat": lat or center[0],
        "lng": lng or center[1],
        "rating": details.get("rating") or 0,
        "review_count": details.get("user_ratings_total") or 0,
        "tags": directory_tags(types, name, provider_type),
        "phone_number": details.get("formatted_phone_number"),
        "website": details.get("website"),
        "photos": photo_urls(
            client, details.get("photos"), max_width=400, max_height=300
        ),
        "opening_hours": opening_hours_from_place(details),
        "business_status": "OPERATIONAL",
    }


def tags_match(provider_tags: Iterable[str], requested: Iterable[str]) -> bool:
    """Case-insensitive substring match in either direction."""

    requested = [tag.lower() for tag in requested]
    for tag in provider_tags:
        lowered = tag.lower()
        if any(lowered in want or want in lowered for want in requested):
            return True
    return False


__all__ = [
    "CLOSED_STATUSES",
    "DETAIL_FIELDS",
    "directory_provider_type",
    "directory_tags",
    "extract_zip",
    "last_ten_digits",
    "owner_provider_type",
    "owner_tags",
    "photo_urls",
    "provider_fields_from_listing",
    "provider_fields_from_owner_place",
    "tags_match",
]

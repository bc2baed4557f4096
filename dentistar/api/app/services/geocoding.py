"""ZIP-code autocomplete and geocoding through the places API."""

from __future__ import annotations

import re
from typing import Any

from app.core.errors import NotFoundError, ValidationError
from app.services.geo import AreaInfo, area_from_components, is_full_zip
from app.services.places_client import PlacesClient

ZIP_SOMEWHERE = re.compile(r"\b\d{5}(-\d{4})?\b")
MAX_PREDICTIONS = 5


def wants_zip_suggestions(text: str) -> bool:
    """Only partial ZIPs get suggestions: digits first, not yet complete."""

    text = (text or "").strip()
    return bool(text) and text[0].isdigit() and not is_full_zip(text)


def is_zip_prediction(prediction: dict[str, Any]) -> bool:
    if "postal_code" in (prediction.get("types") or []):
        return True
    main_text = (prediction.get("structured_formatting") or {}).get("main_text") or ""
    if is_full_zip(main_text):
        return True
    return bool(ZIP_SOMEWHERE.search(prediction.get("description") or ""))


def zip_suggestions(client: PlacesClient | None, text: str) -> list[dict[str, Any]]:
    if client is None or not wants_zip_suggestions(text):
        return []
    predictions = client.autocomplete(
        text.strip(), types="postal_code", components="country:us"
    )
    suggestions = []
    for prediction in predictions:
        if not is_zip_prediction(prediction):
            continue
        formatting = prediction.get("structured_formatting") or {}
        suggestions.append(
            {
                "place_id": prediction.get("place_id"),
                "description": prediction.get("description"),
                "main_text": formatting.get("main_text"),
                "secondary_text": formatting.get("secondary_text"),
            }
        )
    return suggestions[:MAX_PREDICTIONS]


def resolve_zip_place(client: PlacesClient | None, place_id: str) -> dict[str, Any]:
    """Coordinates and ZIP of a US postal-code place."""

    if not place_id:
        raise ValidationError("place_id is required")
    if client is None:
        raise NotFoundError("Location not found")

    results = client.geocode_place(place_id)
    if not results:
        raise NotFoundError("Location not found")
    result = results[0]
    area = area_from_components(result.get("address_components") or [])
    if not area.has_zip:
        raise NotFoundError("Please select a ZIP code")
    if area.country != "US":
        raise NotFoundError("Only US ZIP codes are supported")

    location = (result.get("geometry") or {}).get("location") or {}
    return {
        "lat": location.get("lat"),
        "lng": location.get("lng"),
        "address": result.get("formatted_address"),
        "zipCode": area.zip_code,
        "city": area.city,
        "state": area.state,
    }


def reverse_lookup(client: PlacesClient | None, lat: float, lng: float) -> AreaInfo:
    if client is None:
        return AreaInfo()
    results = client.reverse_geocode(lat, lng)
    if not results:
        return AreaInfo()
    return area_from_components(results[0].get("address_components") or [])


__all__ = [
    "is_zip_prediction",
    "resolve_zip_place",
    "reverse_lookup",
    "wants_zip_suggestions",
    "zip_suggestions",
]

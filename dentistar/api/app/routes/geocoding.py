from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query

from app.services.geocoding import resolve_zip_place, reverse_lookup, zip_suggestions
from app.services.places_client import PlacesClient, get_places_client

router = APIRouter(prefix="/geocoding", tags=["Geocoding"])


@router.get("/autocomplete")
def autocomplete(
    text: str = Query(default="", alias="input"),
    client: PlacesClient | None = Depends(get_places_client),
) -> dict[str, Any]:
    """ZIP suggestions for a partially typed US postal code."""

    return {"predictions": zip_suggestions(client, text)}


@router.get("/resolve")
def resolve(
    place_id: str = "",
    client: PlacesClient | None = Depends(get_places_client),
) -> dict[str, Any]:
    return resolve_zip_place(client, place_id.strip())


@router.get("/reverse")
def reverse(
    lat: float,
    lng: float,
    client: PlacesClient | None = Depends(get_places_client),
) -> dict[str, Any]:
    area = reverse_lookup(client, lat, lng)
    return {"lat": lat, "lng": lng, **area.as_dict()}

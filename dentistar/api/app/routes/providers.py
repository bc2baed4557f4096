from __future__ import annotations

from datetime import date
from typing import Any

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import JSONResponse

from app.core.config import get_settings
from app.core.errors import NotFoundError, ValidationError
from app.core.security import (
    AuthenticatedUser,
    ProviderActor,
    get_current_provider,
    get_optional_user,
    is_admin,
)
from app.db.gateway import PersistenceGateway
from app.db.session import get_gateway
from app.models import Provider
from app.services.people import (
    PersonPayload,
    create_person,
    ensure_path_matches_actor,
    provider_directory_people,
)
from app.services.places_client import PlacesClient, get_places_client
from app.services.practice_hours import (
    Practice,
    available_dates,
    available_time_slots,
    current_month_display,
    next_available_slot,
    practice_status,
)
from app.services.provider_resolver import (
    provider_summary,
    resolve_provider,
    serialize_provider,
)
from app.services.provider_search import SearchQuery, search_providers

router = APIRouter(prefix="/providers", tags=["Providers"])


def _parse_coordinate(raw: str | None) -> float | None:
    try:
        return float(raw) if raw not in (None, "") else None
    except ValueError:
        return None


def _resolve_or_404(gateway: PersistenceGateway, identifier: str) -> Provider:
    result = resolve_provider(gateway, identifier)
    if not result.found:
        raise NotFoundError("Provider not found", details=result.debug())
    return result.provider


@router.get("")
def search_directory(
    gateway: PersistenceGateway = Depends(get_gateway),
    client: PlacesClient | None = Depends(get_places_client),
    user: AuthenticatedUser | None = Depends(get_optional_user),
    lat: str | None = None,
    lng: str | None = None,
    zip_code: str | None = Query(default=None, alias="zip"),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=30, ge=1, le=100),
    radius: int | None = Query(default=None, ge=1),
    provider_type: str | None = Query(default=None, alias="type"),
    tags: str | None = None,
    force_refresh: bool = False,
) -> dict[str, Any]:
    """Search the directory around a point, optionally restricted to a ZIP."""

    lat_value = _parse_coordinate(lat)
    lng_value = _parse_coordinate(lng)
    if lat_value is None or lng_value is None:
        raise ValidationError("Location required")

    query = SearchQuery(
        lat=lat_value,
        lng=lng_value,
        zip_code=(zip_code or "").strip() or None,
        page=page,
        limit=limit,
        radius=radius or get_settings().default_search_radius_km,
        provider_type=provider_type,
        tags=[tag.strip() for tag in (tags or "").split(",") if tag.strip()],
        force_refresh=force_refresh,
    )
    return search_providers(gateway, client, query, admin=is_admin(gateway, user))


@router.get("/{identifier}")
def get_provider(
    identifier: str,
    gateway: PersistenceGateway = Depends(get_gateway),
):
    """Look up a provider by phone, place id or internal id."""

    result = resolve_provider(gateway, identifier)
    if not result.found:
        return JSONResponse(
            status_code=status.HTTP_404_NOT_FOUND,
            content={
                "error": "Provider not found",
                "message": f"No provider found with identifier: {result.search_value}",
                "debug": result.debug(),
            },
        )
    return {
        "provider": serialize_provider(result.provider),
        "searchMethod": result.strategy,
        "debug": result.debug(),
    }


@router.get("/{identifier}/hours")
def get_provider_hours(
    identifier: str,
    gateway: PersistenceGateway = Depends(get_gateway),
) -> dict[str, Any]:
    """Open/closed status in the practice's local time."""

    provider = _resolve_or_404(gateway, identifier)
    practice = Practice.from_provider(provider)
    upcoming = next_available_slot(practice)
    return {
        "provider_id": str(provider.id),
        "timezone": practice.timezone_name,
        **practice_status(practice).as_dict(),
        "next_available": (
            {"date": upcoming[0].isoformat(), **upcoming[1].as_dict()} if upcoming else None
        ),
        "current_month": current_month_display(practice),
        "weekday_text": (provider.opening_hours or {}).get("weekday_text") or [],
    }


@router.get("/{identifier}/availability")
def get_provider_availability(
    identifier: str,
    days: int = Query(default=30, ge=1, le=90),
    start_date: date | None = None,
    gateway: PersistenceGateway = Depends(get_gateway),
) -> dict[str, Any]:
    provider = _resolve_or_404(gateway, identifier)
    practice = Practice.from_provider(provider)
    return {
        "provider_id": str(provider.id),
        "timezone": practice.timezone_name,
        "dates": [entry.as_dict() for entry in available_dates(practice, days, start_date)],
    }


@router.get("/{identifier}/slots")
def get_provider_slots(
    identifier: str,
    date_value: str = Query(alias="date"),
    gateway: PersistenceGateway = Depends(get_gateway),
) -> dict[str, Any]:
    """Half-hour slots for one day."""

    provider = _resolve_or_404(gateway, identifier)
    try:
        selected = date.fromisoformat(date_value)
    except ValueError as exc:
        raise ValidationError("Invalid date format. Use YYYY-MM-DD.") from exc

    practice = Practice.from_provider(provider)
    return {
        "provider_id": str(provider.id),
        "date": selected.isoformat(),
        "timezone": practice.timezone_name,
        "slots": [slot.as_dict() for slot in available_time_slots(practice, selected)],
    }


@router.get("/{provider_id}/people")
def list_provider_people(
    provider_id: str,
    gateway: PersistenceGateway = Depends(get_gateway),
) -> dict[str, Any]:
    """Public, read-only staff listing."""

    provider, people = provider_directory_people(gateway, provider_id)
    return {
        "success": True,
        "people": people,
        "provider": provider_summary(provider),
        "count": len(people),
    }


@router.post("/{provider_id}/people")
def add_provider_person(
    provider_id: str,
    payload: PersonPayload,
    gateway: PersistenceGateway = Depends(get_gateway),
    actor: ProviderActor = Depends(get_current_provider),
) -> dict[str, Any]:
    ensure_path_matches_actor(actor, provider_id)
    person = create_person(gateway, actor, payload)
    return {"success": True, "person": person, "message": "Person added successfully"}

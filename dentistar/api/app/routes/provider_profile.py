from __future__ import annotations

from datetime import timedelta
from typing import Any

from fastapi import APIRouter, Depends

from app.core.config import get_settings
from app.core.security import AuthenticatedUser, get_phone_user
from app.db.gateway import PersistenceGateway
from app.db.session import get_gateway
from app.services.places_client import PlacesClient, get_places_client
from app.services.provider_profile import (
    ProviderProfileUpdate,
    get_provider_profile,
    update_provider_profile,
)

router = APIRouter(prefix="/provider", tags=["Provider profile"])


@router.get("/profile")
def read_profile(
    gateway: PersistenceGateway = Depends(get_gateway),
    client: PlacesClient | None = Depends(get_places_client),
    user: AuthenticatedUser = Depends(get_phone_user),
) -> dict[str, Any]:
    """Practice profile of the signed-in provider, enriched on first visit."""

    max_age = timedelta(hours=get_settings().provider_cache_max_age_hours)
    return get_provider_profile(gateway, client, user, max_age=max_age)


@router.put("/profile")
def write_profile(
    payload: ProviderProfileUpdate,
    gateway: PersistenceGateway = Depends(get_gateway),
    user: AuthenticatedUser = Depends(get_phone_user),
) -> dict[str, Any]:
    return update_provider_profile(gateway, user, payload)

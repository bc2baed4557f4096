"""Provider self-service portal: profile gate and practice record."""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import Any

from pydantic import BaseModel
from sqlalchemy.exc import IntegrityError

from app.core.errors import OwnershipError, ValidationError
from app.core.security import AuthenticatedUser
from app.db.gateway import PersistenceGateway
from app.logging_utils import set_provider_context
from app.models import Profile, ProfileRole, ProviderType
from app.models.base import utcnow
from app.services.enrichment import (
    enrich_provider,
    lookup_cached_provider,
    profile_view,
    refresh_provider,
)
from app.services.place_mapping import extract_zip
from app.services.places_client import PlacesClient

logger = logging.getLogger(__name__)


class ProviderProfileUpdate(BaseModel):
    name: str | None = None
    address: str | None = None
    phone_number: str | None = None
    website: str | None = None
    tags: list[str] | None = None
    photos: list[str] | None = None


def ensure_profile(
    gateway: PersistenceGateway, user: AuthenticatedUser
) -> tuple[Profile, bool]:
    """Return the caller's profile, creating an unverified one on first use."""

    profile = gateway.profile_by_phone(user.phone)
    if profile is not None:
        return profile, False
    try:
        with gateway.savepoint():
            profile = gateway.add_profile(
                user_id=user.user_id,
                phone=user.phone,
                email=user.email,
                role=ProfileRole.PROVIDER,
                is_verified=False,
            )
    except IntegrityError:
        # Created concurrently by another request for the same phone.
        profile = gateway.profile_by_phone(user.phone)
        if profile is None:
            raise
        return profile, False
    logger.info("profile created", extra={"profile_id": str(profile.id)})
    return profile, True


def get_provider_profile(
    gateway: PersistenceGateway,
    client: PlacesClient | None,
    user: AuthenticatedUser,
    *,
    max_age: timedelta,
) -> dict[str, Any]:
    profile, created = ensure_profile(gateway, user)
    if created:
        return {
            "success": True,
            "provider": None,
            "verified": False,
            "message": "Profile created. Verification pending.",
        }
    if not profile.is_verified:
        return {
            "success": True,
            "provider": None,
            "verified": False,
            "message": "Account verification pending",
        }

    cached = lookup_cached_provider(gateway, user.phone, max_age)
    if cached is not None:
        set_provider_context(cached.provider.id)
        refreshed = cached.is_stale and refresh_provider(gateway, client, cached.provider)
        return {
            "success": True,
            "verified": True,
            "provider": profile_view(cached.provider),
            "source": "database",
            "stale": cached.is_stale and not refreshed,
        }

    result = enrich_provider(gateway, client, phone=user.phone, user_id=user.user_id)
    if result is None:
        return {
            "success": True,
            "verified": True,
            "provider": None,
            "message": "No provider data found. Please update your profile manually.",
        }
    return {
        "success": True,
        "verified": True,
        "provider": result.provider,
        "source": "places",
        "message": result.message,
    }


def update_provider_profile(
    gateway: PersistenceGateway,
    user: AuthenticatedUser,
    payload: ProviderProfileUpdate,
) -> dict[str, Any]:
    profile = gateway.profile_by_phone(user.phone)
    if profile is None or not profile.is_verified:
        raise OwnershipError("User account not verified. Please contact support.")

    name = (payload.name or "").strip()
    if not name:
        raise ValidationError("Practice name is required")

    address = (payload.address or "").strip() or None
    fields: dict[str, Any] = {
        "name": name,
        "address": address,
        "zip_code": extract_zip(address),
        "phone_number": (payload.phone_number or "").strip() or user.phone,
        "website": (payload.website or "").strip() or None,
        "tags": [tag for tag in payload.tags or [] if tag.strip()],
        "photos": [url for url in payload.photos or [] if url.strip()],
    }

    provider = gateway.provider_by_phone(user.phone)
    if provider is None:
        provider = gateway.add_provider(
            type=ProviderType.DENTIST,
            user_id=user.user_id,
            last_verified=utcnow(),
            **fields,
        )
        message = "Provider profile created successfully"
    else:
        gateway.update_provider(provider, **fields)
        message = "Provider profile updated successfully"

    set_provider_context(provider.id)
    logger.info("provider profile saved", extra={"provider_id": str(provider.id)})
    return {"success": True, "provider": profile_view(provider), "message": message}


__all__ = [
    "ProviderProfileUpdate",
    "ensure_profile",
    "get_provider_profile",
    "update_provider_profile",
]

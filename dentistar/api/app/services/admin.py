"""Back-office operations available to verified admins."""

from __future__ import annotations

import logging
from typing import Any

from app.core.errors import NotFoundError, ValidationError
from app.db.gateway import PersistenceGateway
from app.models import Profile
from app.services.bookings import serialize_booking
from app.services.people import serialize_person
from app.services.provider_resolver import provider_summary, serialize_provider

logger = logging.getLogger(__name__)


def serialize_profile(profile: Profile) -> dict[str, Any]:
    return {
        "id": str(profile.id),
        "user_id": profile.user_id,
        "phone": profile.phone,
        "email": profile.email,
        "full_name": profile.full_name,
        "avatar_url": profile.avatar_url,
        "role": profile.role.value,
        "is_verified": profile.is_verified,
        "created_at": profile.created_at.isoformat() if profile.created_at else None,
    }


def list_all_providers(gateway: PersistenceGateway) -> list[dict[str, Any]]:
    providers = gateway.list_providers(newest_first=True)
    views = []
    for provider in providers:
        view = serialize_provider(provider)
        view["createdAt"] = provider.created_at.isoformat() if provider.created_at else None
        views.append(view)
    return views


def delete_provider(gateway: PersistenceGateway, provider_id: str | None) -> str:
    """Hard delete a provider together with its staff and bookings."""

    if not provider_id:
        raise ValidationError("Provider ID is required")
    provider = gateway.get_provider(provider_id)
    if provider is None:
        raise NotFoundError("Provider not found")
    name = provider.name
    gateway.delete_provider(provider)
    logger.info("provider deleted", extra={"provider_id": provider_id})
    return name


def list_all_bookings(gateway: PersistenceGateway) -> list[dict[str, Any]]:
    cache: dict[Any, Any] = {}
    bookings = []
    for booking in gateway.list_bookings():
        if booking.provider_id not in cache:
            cache[booking.provider_id] = gateway.get_provider(booking.provider_id)
        bookings.append(serialize_booking(booking, cache[booking.provider_id]))
    return bookings


def list_all_people(gateway: PersistenceGateway) -> list[dict[str, Any]]:
    cache: dict[Any, Any] = {}
    people = []
    for person in gateway.list_people():
        if person.provider_id not in cache:
            cache[person.provider_id] = gateway.get_provider(person.provider_id)
        provider = cache[person.provider_id]
        people.append(
            {
                **serialize_person(person),
                "provider": provider_summary(provider) if provider else None,
            }
        )
    return people


def list_all_profiles(gateway: PersistenceGateway) -> list[dict[str, Any]]:
    return [serialize_profile(profile) for profile in gateway.list_profiles()]


def set_profile_verification(
    gateway: PersistenceGateway, profile_id: str, is_verified: bool | None
) -> dict[str, Any]:
    if is_verified is None:
        raise ValidationError("is_verified is required")
    profile = gateway.get_profile(profile_id)
    if profile is None:
        raise NotFoundError("Profile not found")
    gateway.update_profile(profile, is_verified=is_verified)
    logger.info(
        "profile verification changed",
        extra={"profile_id": str(profile.id), "is_verified": is_verified},
    )
    return serialize_profile(profile)


__all__ = [
    "delete_provider",
    "list_all_bookings",
    "list_all_people",
    "list_all_profiles",
    "list_all_providers",
    "serialize_profile",
    "set_profile_verification",
]

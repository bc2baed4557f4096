"""Staff records scoped to the caller's own provider."""

from __future__ import annotations

import logging
import uuid
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.exc import IntegrityError

from app.core.errors import (
    ConflictError,
    NotFoundError,
    OwnershipError,
    ValidationError,
)
from app.core.security import ProviderActor
from app.db.gateway import PersistenceGateway
from app.models import Person, Provider
from app.services.bookings import validate_email

logger = logging.getLogger(__name__)


class PersonPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str | None = None
    name: str | None = None
    email: str | None = None
    avatar: str | None = None
    address: str | None = None
    biography: str | None = None
    dentistry_types: list[str] | None = Field(default=None, alias="dentistryTypes")
    degree: str | None = None


def _optional(value: str | None) -> str | None:
    cleaned = (value or "").strip()
    return cleaned or None


def _person_fields(payload: PersonPayload) -> dict[str, Any]:
    name = (payload.name or "").strip()
    email = (payload.email or "").strip()
    if not name:
        raise ValidationError("Name is required")
    if not email:
        raise ValidationError("Email is required")
    if not validate_email(email):
        raise ValidationError("Please enter a valid email address")

    types = [item.strip() for item in payload.dentistry_types or [] if item.strip()]
    return {
        "name": name,
        "email": email,
        "avatar": _optional(payload.avatar),
        "address": _optional(payload.address),
        "biography": _optional(payload.biography),
        "dentistry_types": types or None,
        "degree": _optional(payload.degree),
    }


def serialize_person(person: Person) -> dict[str, Any]:
    return {
        "id": str(person.id),
        "provider_id": str(person.provider_id),
        "name": person.name,
        "email": person.email,
        "avatar": person.avatar,
        "address": person.address,
        "biography": person.biography,
        "dentistry_types": person.dentistry_types,
        "degree": person.degree,
        "created_at": person.created_at.isoformat() if person.created_at else None,
        "updated_at": person.updated_at.isoformat() if person.updated_at else None,
    }


def _owned_person(
    gateway: PersistenceGateway, actor: ProviderActor, person_id: str | None, action: str
) -> Person:
    if not person_id:
        raise ValidationError("Person ID is required")
    person = gateway.get_person(person_id)
    if person is None:
        raise NotFoundError("Person not found")
    if person.provider_id != actor.provider_id:
        logger.warning(
            "person ownership mismatch",
            extra={"person_id": str(person.id), "action": action},
        )
        raise OwnershipError(f"Unauthorized to {action} this person")
    return person


def list_people(gateway: PersistenceGateway, actor: ProviderActor) -> list[dict[str, Any]]:
    return [serialize_person(p) for p in gateway.list_people(actor.provider_id)]


def create_person(
    gateway: PersistenceGateway, actor: ProviderActor, payload: PersonPayload
) -> dict[str, Any]:
    fields = _person_fields(payload)
    if gateway.person_with_email(actor.provider_id, fields["email"]) is not None:
        raise ConflictError(
            "A person with this email already exists", status_code=400
        )

    try:
        person = gateway.add_person(provider_id=actor.provider_id, **fields)
    except IntegrityError as exc:
        raise ConflictError(
            "A person with this email already exists", status_code=400
        ) from exc

    logger.info("person created", extra={"person_id": str(person.id)})
    return serialize_person(person)


def update_person(
    gateway: PersistenceGateway, actor: ProviderActor, payload: PersonPayload
) -> dict[str, Any]:
    person = _owned_person(gateway, actor, payload.id, "modify")
    fields = _person_fields(payload)
    duplicate = gateway.person_with_email(
        actor.provider_id, fields["email"], exclude_id=person.id
    )
    if duplicate is not None:
        raise ConflictError(
            "Another person with this email already exists", status_code=400
        )

    try:
        gateway.update_person(person, **fields)
    except IntegrityError as exc:
        raise ConflictError(
            "Another person with this email already exists", status_code=400
        ) from exc
    return serialize_person(person)


def delete_person(
    gateway: PersistenceGateway, actor: ProviderActor, person_id: str | None
) -> str:
    """Delete and return the removed person's name."""

    person = _owned_person(gateway, actor, person_id, "delete")
    name = person.name
    gateway.delete_person(person)
    logger.info("person deleted", extra={"person_id": str(person_id)})
    return name


def provider_directory_people(
    gateway: PersistenceGateway, provider_id: str
) -> tuple[Provider, list[dict[str, Any]]]:
    """Read-only staff listing for a public provider page."""

    provider = gateway.get_provider(provider_id)
    if provider is None:
        raise NotFoundError("Provider not found")
    return provider, [serialize_person(p) for p in gateway.list_people(provider.id)]


def ensure_path_matches_actor(actor: ProviderActor, provider_id: str) -> None:
    try:
        requested = uuid.UUID(provider_id)
    except ValueError as exc:
        raise OwnershipError("Unauthorized to add people to this provider") from exc
    if requested != actor.provider_id:
        raise OwnershipError("Unauthorized to add people to this provider")


__all__ = [
    "PersonPayload",
    "create_person",
    "delete_person",
    "ensure_path_matches_actor",
    "list_people",
    "provider_directory_people",
    "serialize_person",
    "update_person",
]

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends

from app.core.security import ProviderActor, get_current_provider
from app.db.gateway import PersistenceGateway
from app.db.session import get_gateway
from app.services.people import (
    PersonPayload,
    create_person,
    delete_person,
    list_people,
    update_person,
)

router = APIRouter(prefix="/people", tags=["People"])


@router.get("")
def get_people(
    gateway: PersistenceGateway = Depends(get_gateway),
    actor: ProviderActor = Depends(get_current_provider),
) -> dict[str, Any]:
    """Staff of the caller's own practice."""

    people = list_people(gateway, actor)
    return {
        "success": True,
        "people": people,
        "provider": {"id": str(actor.provider_id), "name": actor.provider_name},
    }


@router.post("")
def add_person(
    payload: PersonPayload,
    gateway: PersistenceGateway = Depends(get_gateway),
    actor: ProviderActor = Depends(get_current_provider),
) -> dict[str, Any]:
    person = create_person(gateway, actor, payload)
    return {"success": True, "person": person, "message": "Person added successfully"}


@router.put("")
def edit_person(
    payload: PersonPayload,
    gateway: PersistenceGateway = Depends(get_gateway),
    actor: ProviderActor = Depends(get_current_provider),
) -> dict[str, Any]:
    person = update_person(gateway, actor, payload)
    return {"success": True, "person": person, "message": "Person updated successfully"}


@router.delete("/{person_id}")
def remove_person(
    person_id: str,
    gateway: PersistenceGateway = Depends(get_gateway),
    actor: ProviderActor = Depends(get_current_provider),
) -> dict[str, Any]:
    name = delete_person(gateway, actor, person_id)
    return {"success": True, "message": f"{name} has been deleted successfully"}

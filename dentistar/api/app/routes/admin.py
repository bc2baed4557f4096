from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from app.core.security import AuthenticatedUser, require_admin
from app.db.gateway import PersistenceGateway
from app.db.session import get_gateway
from app.services.admin import (
    delete_provider,
    list_all_bookings,
    list_all_people,
    list_all_profiles,
    list_all_providers,
    set_profile_verification,
)
from app.services.bookings import update_booking_status

router = APIRouter(prefix="/admin", tags=["Admin"])


class BookingStatusUpdate(BaseModel):
    id: str | None = None
    status: str | None = None


class VerificationUpdate(BaseModel):
    is_verified: bool | None = None


@router.get("/auth/check")
def auth_check(
    gateway: PersistenceGateway = Depends(get_gateway),
    user: AuthenticatedUser = Depends(require_admin),
) -> dict[str, Any]:
    profile = gateway.profile_by_user_id(user.user_id)
    return {
        "isAdmin": True,
        "user": {
            "id": user.user_id,
            "email": user.email,
            "full_name": profile.full_name if profile else None,
            "role": profile.role.value if profile else None,
        },
    }


@router.get("/providers")
def admin_providers(
    gateway: PersistenceGateway = Depends(get_gateway),
    _: AuthenticatedUser = Depends(require_admin),
) -> dict[str, Any]:
    providers = list_all_providers(gateway)
    return {"success": True, "providers": providers, "count": len(providers)}


@router.delete("/providers")
def admin_delete_provider(
    id: str | None = None,
    gateway: PersistenceGateway = Depends(get_gateway),
    _: AuthenticatedUser = Depends(require_admin),
) -> dict[str, Any]:
    name = delete_provider(gateway, id)
    return {"success": True, "message": f"Provider {name} deleted successfully"}


@router.get("/bookings")
def admin_bookings(
    gateway: PersistenceGateway = Depends(get_gateway),
    _: AuthenticatedUser = Depends(require_admin),
) -> dict[str, Any]:
    bookings = list_all_bookings(gateway)
    return {"success": True, "bookings": bookings, "count": len(bookings)}


@router.put("/bookings")
def admin_update_booking(
    payload: BookingStatusUpdate,
    gateway: PersistenceGateway = Depends(get_gateway),
    _: AuthenticatedUser = Depends(require_admin),
) -> dict[str, Any]:
    booking = update_booking_status(gateway, payload.id, payload.status)
    return {"success": True, "booking": booking, "message": "Booking updated successfully"}


@router.get("/people")
def admin_people(
    gateway: PersistenceGateway = Depends(get_gateway),
    _: AuthenticatedUser = Depends(require_admin),
) -> dict[str, Any]:
    people = list_all_people(gateway)
    return {"success": True, "people": people, "count": len(people)}


@router.get("/profiles")
def admin_profiles(
    gateway: PersistenceGateway = Depends(get_gateway),
    _: AuthenticatedUser = Depends(require_admin),
) -> dict[str, Any]:
    profiles = list_all_profiles(gateway)
    return {"success": True, "profiles": profiles, "count": len(profiles)}


@router.put("/profiles/{profile_id}/verification")
def admin_verify_profile(
    profile_id: str,
    payload: VerificationUpdate,
    gateway: PersistenceGateway = Depends(get_gateway),
    _: AuthenticatedUser = Depends(require_admin),
) -> dict[str, Any]:
    """Mark a profile verified or unverified."""

    profile = set_profile_verification(gateway, profile_id, payload.is_verified)
    return {"success": True, "profile": profile}

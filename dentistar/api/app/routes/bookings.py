from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends

from app.db.gateway import PersistenceGateway
from app.db.session import get_gateway
from app.services.bookings import BookingCreate, create_booking, list_bookings

router = APIRouter(prefix="/bookings", tags=["Bookings"])


@router.post("")
def submit_booking(
    payload: BookingCreate,
    gateway: PersistenceGateway = Depends(get_gateway),
) -> dict[str, Any]:
    """Create a pending appointment request for a provider."""

    booking = create_booking(gateway, payload)
    return {"success": True, "booking": booking, "message": "Booking created successfully!"}


@router.get("")
def get_bookings(
    email: str | None = None,
    provider_id: str | None = None,
    gateway: PersistenceGateway = Depends(get_gateway),
) -> dict[str, Any]:
    bookings = list_bookings(gateway, email=email, provider_id=provider_id)
    return {"success": True, "bookings": bookings}

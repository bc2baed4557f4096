"""Booking validation and persistence."""

from __future__ import annotations

import logging
import re
from datetime import date, datetime, timezone
from typing import Any

from pydantic import BaseModel
from sqlalchemy.exc import IntegrityError

from app.core.errors import ConflictError, NotFoundError, ValidationError
from app.db.gateway import PersistenceGateway, as_uuid
from app.models import Booking, BookingStatus, Provider
from app.services.provider_resolver import provider_summary

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PHONE_PATTERN = re.compile(r"^[\+]?[0-9\s\-\(\)]{10,31}$")
TIME_PATTERN = re.compile(r"^([0-1]?[0-9]|2[0-3]):[0-5][0-9]$")

REQUIRED_FIELDS = ("name", "email", "phone", "address", "provider_id")


class BookingCreate(BaseModel):
    name: str | None = None
    email: str | None = None
    phone: str | None = None
    address: str | None = None
    provider_id: str | None = None
    appointment_date: str | None = None
    appointment_time: str | None = None


def validate_email(email: str) -> bool:
    return bool(EMAIL_PATTERN.match(email or ""))


def validate_phone(phone: str) -> bool:
    return bool(PHONE_PATTERN.match(phone or ""))


def parse_appointment_date(value: str) -> date | None:
    """Accept ``YYYY-MM-DD`` or a full ISO timestamp; ``None`` if unparseable."""

    text = (value or "").strip()
    if not text:
        return None
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        return None


def validate_date(value: str | date, today: date | None = None) -> bool:
    """Valid date not earlier than today (time of day ignored)."""

    parsed = value if isinstance(value, date) else parse_appointment_date(value)
    if parsed is None:
        return False
    return parsed >= (today or datetime.now(timezone.utc).date())


def validate_time(value: str) -> bool:
    return bool(TIME_PATTERN.match(value or ""))


def _clean(value: str | None) -> str:
    return (value or "").strip()


def validate_booking(payload: BookingCreate, today: date | None = None) -> dict[str, Any]:
    """Return normalised booking fields or raise ``ValidationError``."""

    fields = {name: _clean(getattr(payload, name)) for name in REQUIRED_FIELDS}
    missing = [name for name, value in fields.items() if not value]
    if missing:
        raise ValidationError(
            "Missing required fields", details=f"Missing: {', '.join(missing)}"
        )

    if not validate_email(fields["email"]):
        raise ValidationError("Invalid email format")
    if not validate_phone(fields["phone"]):
        raise ValidationError("Invalid phone number format")

    appointment_date: date | None = None
    raw_date = _clean(payload.appointment_date)
    if raw_date:
        appointment_date = parse_appointment_date(raw_date)
        if appointment_date is None or not validate_date(appointment_date, today):
            raise ValidationError("Invalid appointment date")

    appointment_time = _clean(payload.appointment_time) or None
    if appointment_time and not validate_time(appointment_time):
        raise ValidationError("Invalid appointment time format")

    fields["email"] = fields["email"].lower()
    fields["appointment_date"] = appointment_date
    fields["appointment_time"] = appointment_time
    return fields


def find_booking_provider(gateway: PersistenceGateway, identifier: str) -> Provider:
    """Primary key first, then place id."""

    provider = gateway.get_provider(identifier)
    if provider is None:
        provider = gateway.provider_by_place_id(identifier)
    if provider is None:
        raise NotFoundError(
            "Provider not found", details=f"No match for ID/place_id: {identifier}"
        )
    return provider


def serialize_booking(
    booking: Booking, provider: Provider | None = None
) -> dict[str, Any]:
    data: dict[str, Any] = {
        "id": str(booking.id),
        "provider_id": str(booking.provider_id),
        "name": booking.name,
        "email": booking.email,
        "phone": booking.phone,
        "address": booking.address,
        "appointment_date": (
            booking.appointment_date.isoformat() if booking.appointment_date else None
        ),
        "appointment_time": booking.appointment_time,
        "status": booking.status.value,
        "created_at": booking.created_at.isoformat() if booking.created_at else None,
        "updated_at": booking.updated_at.isoformat() if booking.updated_at else None,
    }
    if provider is not None:
        data["provider_name"] = provider.name
        data["provider"] = provider_summary(provider)
    return data


def create_booking(
    gateway: PersistenceGateway,
    payload: BookingCreate,
    today: date | None = None,
) -> dict[str, Any]:
    fields = validate_booking(payload, today)
    provider = find_booking_provider(gateway, fields["provider_id"])

    if gateway.pending_booking(fields["email"], provider.id) is not None:
        raise ConflictError(
            "Duplicate booking", details="You already have a pending booking."
        )

    try:
        with gateway.savepoint():
            booking = gateway.add_booking(
                provider_id=provider.id,
                name=fields["name"],
                email=fields["email"],
                phone=fields["phone"],
                address=fields["address"],
                appointment_date=fields["appointment_date"],
                appointment_time=fields["appointment_time"],
                status=BookingStatus.PENDING,
            )
    except IntegrityError as exc:
        raise ConflictError(
            "Duplicate booking", details="You already have a pending booking."
        ) from exc

    logger.info(
        "booking created",
        extra={"booking_id": str(booking.id), "provider_id": str(provider.id)},
    )
    return serialize_booking(booking, provider)


def list_bookings(
    gateway: PersistenceGateway,
    *,
    email: str | None = None,
    provider_id: str | None = None,
) -> list[dict[str, Any]]:
    email = _clean(email).lower() or None
    provider_id = _clean(provider_id) or None
    if email is None and provider_id is None:
        raise ValidationError("Email or provider_id parameter is required")

    provider_uuid = None
    if provider_id is not None:
        provider_uuid = as_uuid(provider_id)
        if provider_uuid is None:
            return []

    bookings = gateway.list_bookings(email=email, provider_id=provider_uuid)
    providers: dict[Any, Provider | None] = {}
    serialized = []
    for booking in bookings:
        if booking.provider_id not in providers:
            providers[booking.provider_id] = gateway.get_provider(booking.provider_id)
        serialized.append(serialize_booking(booking, providers[booking.provider_id]))
    return serialized


def update_booking_status(
    gateway: PersistenceGateway, booking_id: str | None, status: str | None
) -> dict[str, Any]:
    if not booking_id or not status:
        raise ValidationError("Booking ID and status are required")
    try:
        new_status = BookingStatus(status)
    except ValueError as exc:
        allowed = ", ".join(member.value for member in BookingStatus)
        raise ValidationError("Invalid status", details=f"Expected one of: {allowed}") from exc

    booking = gateway.get_booking(booking_id)
    if booking is None:
        raise NotFoundError("Booking not found")

    try:
        with gateway.savepoint():
            gateway.update_booking(booking, status=new_status)
    except IntegrityError as exc:
        raise ConflictError(
            "Duplicate booking",
            details="Another pending booking exists for this email and provider.",
        ) from exc

    logger.info(
        "booking status changed",
        extra={"booking_id": str(booking.id), "status": new_status.value},
    )
    return serialize_booking(booking, gateway.get_provider(booking.provider_id))


__all__ = [
    "BookingCreate",
    "create_booking",
    "list_bookings",
    "serialize_booking",
    "update_booking_status",
    "validate_booking",
    "validate_date",
    "validate_email",
    "validate_phone",
    "validate_time",
]

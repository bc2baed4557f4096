"""Typed accessor over the relational store.

Every route receives one ``PersistenceGateway`` per request through
``Depends(get_gateway)``; services never open sessions on their own.
"""

from __future__ import annotations

import uuid
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from typing import Any

from sqlalchemy import ColumnElement, delete, select
from sqlalchemy.orm import Session

from app.models import (
    Booking,
    BookingStatus,
    Location,
    Person,
    Profile,
    Provider,
)
from app.models.base import utcnow


def as_uuid(value: Any) -> uuid.UUID | None:
    """Parse an identifier, returning ``None`` when it is not a UUID."""

    if isinstance(value, uuid.UUID):
        return value
    if value is None:
        return None
    try:
        return uuid.UUID(str(value).strip())
    except (ValueError, AttributeError):
        return None


class PersistenceGateway:
    """CRUD and simple filter/order operations per table."""

    def __init__(self, session: Session) -> None:
        self.session = session

    # -- transaction helpers -------------------------------------------------

    @contextmanager
    def savepoint(self) -> Iterator[None]:
        """Run a block in a nested transaction that rolls back on its own."""

        with self.session.begin_nested():
            yield

    def rollback(self) -> None:
        self.session.rollback()

    def _add(self, instance: Any) -> Any:
        self.session.add(instance)
        self.session.flush()
        return instance

    def _update(self, instance: Any, fields: dict[str, Any]) -> Any:
        for key, value in fields.items():
            setattr(instance, key, value)
        self.session.flush()
        return instance

    # -- providers -----------------------------------------------------------

    def get_provider(self, provider_id: Any) -> Provider | None:
        parsed = as_uuid(provider_id)
        if parsed is None:
            return None
        return self.session.get(Provider, parsed)

    def find_provider(self, *criteria: ColumnElement[bool]) -> Provider | None:
        """Return the single provider matching ``criteria``.

        Raises ``MultipleResultsFound`` when the match is ambiguous.
        """

        stmt = select(Provider).where(*criteria)
        return self.session.execute(stmt).scalars().one_or_none()

    def first_provider(self, *criteria: ColumnElement[bool]) -> Provider | None:
        stmt = (
            select(Provider)
            .where(*criteria)
            .order_by(Provider.created_at, Provider.id)
            .limit(1)
        )
        return self.session.execute(stmt).scalars().first()

    def provider_by_phone(self, phone: str) -> Provider | None:
        return self.first_provider(Provider.phone_number == phone)

    def provider_by_place_id(self, place_id: str) -> Provider | None:
        return self.first_provider(Provider.place_id == place_id)

    def list_providers(
        self,
        *criteria: ColumnElement[bool],
        newest_first: bool = False,
        limit: int | None = None,
    ) -> Sequence[Provider]:
        order = Provider.created_at.desc() if newest_first else Provider.created_at
        stmt = select(Provider).where(*criteria).order_by(order)
        if limit is not None:
            stmt = stmt.limit(limit)
        return self.session.execute(stmt).scalars().all()

    def add_provider(self, **fields: Any) -> Provider:
        return self._add(Provider(**fields))

    def update_provider(self, provider: Provider, **fields: Any) -> Provider:
        return self._update(provider, fields)

    def upsert_provider(self, fields: dict[str, Any]) -> Provider:
        """Insert or update a provider keyed on ``place_id``."""

        place_id = fields.get("place_id")
        existing = self.provider_by_place_id(place_id) if place_id else None
        if existing is None:
            return self.add_provider(**fields)
        return self.update_provider(existing, **fields)

    def delete_provider(self, provider: Provider) -> None:
        self.session.execute(delete(Person).where(Person.provider_id == provider.id))
        self.session.execute(delete(Booking).where(Booking.provider_id == provider.id))
        self.session.delete(provider)
        self.session.flush()

    # -- people --------------------------------------------------------------

    def list_people(self, provider_id: uuid.UUID | None = None) -> Sequence[Person]:
        stmt = select(Person).order_by(Person.created_at.desc())
        if provider_id is not None:
            stmt = stmt.where(Person.provider_id == provider_id)
        return self.session.execute(stmt).scalars().all()

    def get_person(self, person_id: Any) -> Person | None:
        parsed = as_uuid(person_id)
        if parsed is None:
            return None
        return self.session.get(Person, parsed)

    def person_with_email(
        self,
        provider_id: uuid.UUID,
        email: str,
        *,
        exclude_id: uuid.UUID | None = None,
    ) -> Person | None:
        stmt = select(Person).where(
            Person.provider_id == provider_id, Person.email == email
        )
        if exclude_id is not None:
            stmt = stmt.where(Person.id != exclude_id)
        return self.session.execute(stmt.limit(1)).scalars().first()

    def add_person(self, **fields: Any) -> Person:
        return self._add(Person(**fields))

    def update_person(self, person: Person, **fields: Any) -> Person:
        return self._update(person, fields)

    def delete_person(self, person: Person) -> None:
        self.session.delete(person)
        self.session.flush()

    # -- bookings ------------------------------------------------------------

    def pending_booking(self, email: str, provider_id: uuid.UUID) -> Booking | None:
        stmt = (
            select(Booking)
            .where(
                Booking.email == email,
                Booking.provider_id == provider_id,
                Booking.status == BookingStatus.PENDING,
            )
            .limit(1)
        )
        return self.session.execute(stmt).scalars().first()

    def list_bookings(
        self,
        *,
        email: str | None = None,
        provider_id: uuid.UUID | None = None,
    ) -> Sequence[Booking]:
        stmt = select(Booking).order_by(Booking.created_at.desc())
        if email is not None:
            stmt = stmt.where(Booking.email == email)
        if provider_id is not None:
            stmt = stmt.where(Booking.provider_id == provider_id)
        return self.session.execute(stmt).scalars().all()

    def get_booking(self, booking_id: Any) -> Booking | None:
        parsed = as_uuid(booking_id)
        if parsed is None:
            return None
        return self.session.get(Booking, parsed)

    def add_booking(self, **fields: Any) -> Booking:
        return self._add(Booking(**fields))

    def update_booking(self, booking: Booking, **fields: Any) -> Booking:
        return self._update(booking, fields)

    # -- profiles ------------------------------------------------------------

    def profile_by_phone(self, phone: str) -> Profile | None:
        stmt = select(Profile).where(Profile.phone == phone).limit(1)
        return self.session.execute(stmt).scalars().first()

    def profile_by_user_id(self, user_id: str) -> Profile | None:
        stmt = (
            select(Profile)
            .where(Profile.user_id == user_id)
            .order_by(Profile.created_at)
            .limit(1)
        )
        return self.session.execute(stmt).scalars().first()

    def get_profile(self, profile_id: Any) -> Profile | None:
        parsed = as_uuid(profile_id)
        if parsed is None:
            return None
        return self.session.get(Profile, parsed)

    def list_profiles(self) -> Sequence[Profile]:
        stmt = select(Profile).order_by(Profile.created_at.desc())
        return self.session.execute(stmt).scalars().all()

    def add_profile(self, **fields: Any) -> Profile:
        return self._add(Profile(**fields))

    def update_profile(self, profile: Profile, **fields: Any) -> Profile:
        return self._update(profile, fields)

    # -- locations -----------------------------------------------------------

    def get_location(self, city: str, state: str, country: str = "US") -> Location | None:
        stmt = select(Location).where(
            Location.city == city,
            Location.state == state,
            Location.country == country,
        )
        return self.session.execute(stmt).scalars().first()

    def upsert_location(
        self,
        *,
        city: str,
        state: str,
        country: str,
        lat: float,
        lng: float,
        provider_count: int,
    ) -> Location:
        location = self.get_location(city, state, country)
        fields = {
            "lat": lat,
            "lng": lng,
            "provider_count": provider_count,
            "last_searched": utcnow(),
        }
        if location is None:
            return self._add(Location(city=city, state=state, country=country, **fields))
        return self._update(location, fields)


__all__ = ["PersistenceGateway", "as_uuid"]

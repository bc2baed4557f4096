"""Resolve an arbitrary identifier string to a single provider.

Strategies run in a fixed order and the first hit wins:

1. ``phone_number`` - all digits, at least 10 long, exact phone match
2. ``place_id``     - starts with ``ChIJ``, exact place id match
3. ``id``           - primary key match
4. ``partial_phone``- at least 10 long, phone ends with the last 10 chars
5. ``comprehensive``- one OR query across id, place id and phone

A query failure inside a strategy counts as "no match" for that step.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy import false, or_
from sqlalchemy.exc import MultipleResultsFound, SQLAlchemyError

from app.db.gateway import PersistenceGateway, as_uuid
from app.models import Provider

logger = logging.getLogger(__name__)

# Formatting characters are not stripped: "(555) 123-4567" skips this path.
DIGITS_ONLY = re.compile(r"^\d+$")
PLACE_ID_PREFIX = "ChIJ"
PHONE_MIN_LENGTH = 10


@dataclass
class ResolutionResult:
    """Outcome of a lookup, with provenance for diagnostics."""

    search_value: str
    provider: Provider | None = None
    strategy: str | None = None
    attempted: list[str] = field(default_factory=list)

    @property
    def found(self) -> bool:
        return self.provider is not None

    @property
    def is_phone_number(self) -> bool:
        return looks_like_phone(self.search_value)

    @property
    def is_place_id(self) -> bool:
        return looks_like_place_id(self.search_value)

    def debug(self) -> dict[str, Any]:
        return {
            "searched_value": self.search_value,
            "search_strategies_tried": list(self.attempted),
            "matched_strategy": self.strategy,
            "is_phone_number": self.is_phone_number,
            "is_place_id": self.is_place_id,
        }


def looks_like_phone(value: str) -> bool:
    return bool(DIGITS_ONLY.match(value)) and len(value) >= PHONE_MIN_LENGTH


def looks_like_place_id(value: str) -> bool:
    return value.startswith(PLACE_ID_PREFIX)


class ProviderResolver:
    def __init__(self, gateway: PersistenceGateway) -> None:
        self.gateway = gateway

    def resolve(self, identifier: str) -> ResolutionResult:
        value = (identifier or "").strip()
        result = ResolutionResult(search_value=value)
        if not value:
            return result

        steps: list[tuple[str, Callable[[], Provider | None]]] = []
        if looks_like_phone(value):
            steps.append(("phone_number", lambda: self._by_phone(value)))
        if looks_like_place_id(value):
            steps.append(("place_id", lambda: self._by_place_id(value)))
        steps.append(("id", lambda: self.gateway.get_provider(value)))
        if len(value) >= PHONE_MIN_LENGTH:
            steps.append(("partial_phone", lambda: self._by_phone_suffix(value)))
        steps.append(("comprehensive", lambda: self._comprehensive(value)))

        for name, lookup in steps:
            result.attempted.append(name)
            provider = self._attempt(name, value, lookup)
            if provider is not None:
                result.provider = provider
                result.strategy = name
                logger.info(
                    "provider resolved",
                    extra={
                        "search_value": value,
                        "strategy": name,
                        "provider_id": str(provider.id),
                    },
                )
                return result

        logger.info(
            "provider not resolved",
            extra={"search_value": value, "strategies": result.attempted},
        )
        return result

    def _attempt(
        self, name: str, value: str, lookup: Callable[[], Provider | None]
    ) -> Provider | None:
        try:
            return lookup()
        except MultipleResultsFound:
            logger.info(
                "ambiguous provider match",
                extra={"strategy": name, "search_value": value},
            )
            return None
        except SQLAlchemyError as exc:
            self.gateway.rollback()
            logger.warning(
                "provider lookup step failed",
                extra={"strategy": name, "search_value": value, "error": str(exc)},
            )
            return None

    # Exact matches use single-row semantics: duplicates are not a match.
    def _by_phone(self, value: str) -> Provider | None:
        return self.gateway.find_provider(Provider.phone_number == value)

    def _by_place_id(self, value: str) -> Provider | None:
        return self.gateway.find_provider(Provider.place_id == value)

    def _by_phone_suffix(self, value: str) -> Provider | None:
        suffix = value[-PHONE_MIN_LENGTH:]
        return self.gateway.first_provider(
            Provider.phone_number.iendswith(suffix, autoescape=True)
        )

    def _comprehensive(self, value: str) -> Provider | None:
        parsed_id = as_uuid(value)
        return self.gateway.first_provider(
            or_(
                Provider.id == parsed_id if parsed_id is not None else false(),
                Provider.place_id == value,
                Provider.phone_number == value,
                Provider.phone_number.icontains(value, autoescape=True),
            )
        )


def resolve_provider(gateway: PersistenceGateway, identifier: str) -> ResolutionResult:
    return ProviderResolver(gateway).resolve(identifier)


def serialize_provider(
    provider: Provider, *, distance: float | None = None
) -> dict[str, Any]:
    """Public ``ProviderView`` of a provider row."""

    view: dict[str, Any] = {
        "id": str(provider.id),
        "name": provider.name,
        "type": provider.type.value if provider.type else None,
        "address": provider.address,
        "lat": provider.lat,
        "lng": provider.lng,
        "rating": provider.rating or 0,
        "reviewCount": provider.review_count or 0,
        "tags": list(provider.tags or []),
        "phoneNumber": provider.phone_number,
        "website": provider.website,
        "photos": list(provider.photos or []),
        "hours": provider.opening_hours,
        "placeId": provider.place_id,
        "zipCode": provider.zip_code,
        "businessStatus": provider.business_status,
    }
    if distance is not None:
        view["distance"] = round(distance, 2)
    return view


def provider_summary(provider: Provider) -> dict[str, Any]:
    return {
        "id": str(provider.id),
        "name": provider.name,
        "type": provider.type.value if provider.type else None,
        "address": provider.address,
        "phone_number": provider.phone_number,
    }


__all__ = [
    "ProviderResolver",
    "ResolutionResult",
    "looks_like_phone",
    "looks_like_place_id",
    "provider_summary",
    "resolve_provider",
    "serialize_provider",
]

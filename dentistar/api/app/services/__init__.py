"""Service layer utilities for the Dentistar API."""

from app.services.places_client import PlacesClient, get_places_client
from app.services.practice_hours import Practice
from app.services.provider_resolver import (
    ProviderResolver,
    ResolutionResult,
    resolve_provider,
    serialize_provider,
)

__all__ = [
    "PlacesClient",
    "Practice",
    "ProviderResolver",
    "ResolutionResult",
    "get_places_client",
    "resolve_provider",
    "serialize_provider",
]

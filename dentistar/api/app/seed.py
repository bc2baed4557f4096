from __future__ import annotations

import logging
from typing import Any

from app.core.config import settings
from app.db.gateway import PersistenceGateway
from app.db.session import get_session_factory
from app.logging_utils import configure_logging, set_provider_context
from app.models import Provider, ProfileRole, ProviderType
from app.models.base import utcnow
from app.services.place_mapping import extract_zip

logger = logging.getLogger(__name__)

WEEKDAYS_9_TO_5 = [(day, "0900", "1700") for day in range(1, 6)]
WEEKDAYS_AND_SATURDAY = WEEKDAYS_9_TO_5 + [(6, "0900", "1300")]


def opening_hours(spans: list[tuple[int, str, str]]) -> dict[str, Any]:
    return {
        "periods": [
            {"open": {"day": day, "time": start}, "close": {"day": day, "time": end}}
            for day, start, end in spans
        ]
    }


PROVIDERS: list[dict[str, Any]] = [
    {
        "place_id": "ChIJdemo-brooklyn-smiles",
        "name": "Brooklyn Smiles Dental",
        "type": ProviderType.DENTIST,
        "phone_number": "+17185550101",
        "address": "120 Court St, Brooklyn, NY 11201, USA",
        "lat": 40.6905,
        "lng": -73.9923,
        "tags": ["General Dentistry", "Family Dentistry"],
        "rating": 4.7,
        "review_count": 212,
        "opening_hours": opening_hours(WEEKDAYS_AND_SATURDAY),
    },
    {
        "place_id": "ChIJdemo-loop-orthodontics",
        "name": "Loop Orthodontics",
        "type": ProviderType.DENTIST,
        "phone_number": "+13125550142",
        "address": "55 E Monroe St, Chicago, IL 60603, USA",
        "lat": 41.8807,
        "lng": -87.6256,
        "tags": ["Orthodontics"],
        "rating": 4.5,
        "review_count": 98,
        "opening_hours": opening_hours(WEEKDAYS_9_TO_5),
    },
    {
        "place_id": "ChIJdemo-phoenix-aesthetics",
        "name": "Desert Aesthetics Studio",
        "type": ProviderType.COSMETIC,
        "phone_number": "+16025550177",
        "address": "2 N Central Ave, Phoenix, AZ 85004, USA",
        "lat": 33.4484,
        "lng": -112.0740,
        "tags": ["Cosmetic Dentistry"],
        "rating": 4.9,
        "review_count": 57,
        "opening_hours": opening_hours([(day, "1000", "1900") for day in range(1, 7)]),
    },
    {
        "place_id": "ChIJdemo-mission-dental",
        "name": "Mission Dental Care",
        "type": ProviderType.DENTIST,
        "phone_number": "+14155550123",
        "address": "2100 Mission St, San Francisco, CA 94110, USA",
        "lat": 37.7630,
        "lng": -122.4194,
        "tags": ["Emergency Services", "General Dentistry"],
        "rating": 4.3,
        "review_count": 143,
        "opening_hours": opening_hours(WEEKDAYS_9_TO_5),
    },
]

PEOPLE: dict[str, list[dict[str, Any]]] = {
    "ChIJdemo-brooklyn-smiles": [
        {
            "name": "Dr. Maya Goldberg",
            "email": "maya@brooklynsmiles.example.com",
            "degree": "DDS",
            "dentistry_types": ["General Dentistry"],
        },
        {
            "name": "Carlos Rivera",
            "email": "carlos@brooklynsmiles.example.com",
            "degree": "RDH",
            "dentistry_types": ["Preventive Care"],
        },
    ],
    "ChIJdemo-loop-orthodontics": [
        {
            "name": "Dr. Priya Natarajan",
            "email": "priya@looportho.example.com",
            "degree": "DMD",
            "dentistry_types": ["Orthodontics"],
        },
    ],
}

ADMIN_PROFILE = {
    "user_id": "00000000-0000-0000-0000-00000000a0a0",
    "email": "admin@dentistar.example.com",
    "full_name": "Directory Admin",
}


def ensure_providers(gateway: PersistenceGateway) -> dict[str, Provider]:
    providers: dict[str, Provider] = {}
    for entry in PROVIDERS:
        fields = {
            **entry,
            "zip_code": extract_zip(entry["address"]),
            "last_verified": utcnow(),
        }
        providers[entry["place_id"]] = gateway.upsert_provider(fields)

    logger.info("ensured providers", extra={"total": len(providers)})
    return providers


def ensure_people(gateway: PersistenceGateway, providers: dict[str, Provider]) -> None:
    created = 0
    for place_id, people in PEOPLE.items():
        provider = providers[place_id]
        set_provider_context(provider.id)
        for entry in people:
            if gateway.person_with_email(provider.id, entry["email"]) is not None:
                continue
            gateway.add_person(provider_id=provider.id, **entry)
            created += 1
    set_provider_context(None)
    logger.info("ensured people", extra={"created": created})


def ensure_admin(gateway: PersistenceGateway) -> None:
    profile = gateway.profile_by_user_id(ADMIN_PROFILE["user_id"])
    if profile is not None:
        logger.info("admin profile already present", extra={"profile_id": str(profile.id)})
        return

    profile = gateway.add_profile(
        **ADMIN_PROFILE, role=ProfileRole.ADMIN, is_verified=True
    )
    logger.info("created admin profile", extra={"profile_id": str(profile.id)})


def seed() -> None:
    configure_logging()
    logger.info("starting seed process")

    if not settings.database_url:
        raise SystemExit("DATABASE_URL is not set")

    session = get_session_factory(settings.database_url)()
    gateway = PersistenceGateway(session)
    try:
        providers = ensure_providers(gateway)
        ensure_people(gateway, providers)
        ensure_admin(gateway)
        session.commit()
        logger.info("seed complete", extra={"providers": len(providers)})
    except Exception:
        session.rollback()
        logger.exception("seed failed")
        raise
    finally:
        session.close()


if __name__ == "__main__":  # pragma: no cover - script entrypoint
    seed()

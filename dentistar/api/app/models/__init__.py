"""SQLAlchemy models for the Dentistar API."""

from app.models.base import Base
from app.models.booking import Booking, BookingStatus
from app.models.location import Location
from app.models.person import Person
from app.models.profile import Profile, ProfileRole
from app.models.provider import Provider, ProviderType

__all__ = [
    "Base",
    "Booking",
    "BookingStatus",
    "Location",
    "Person",
    "Profile",
    "ProfileRole",
    "Provider",
    "ProviderType",
]

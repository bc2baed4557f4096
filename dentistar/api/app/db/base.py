"""Import SQLAlchemy models for Alembic's autogenerate feature."""

from app.models.base import Base
from app.models import (  # noqa: F401
    Booking,
    Location,
    Person,
    Profile,
    Provider,
)

__all__ = [
    "Base",
    "Booking",
    "Location",
    "Person",
    "Profile",
    "Provider",
]

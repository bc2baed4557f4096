from __future__ import annotations

import enum
import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import DateTime, Enum, Float, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base, JSONType, TimestampMixin, enum_values


class ProviderType(str, enum.Enum):
    """Kind of dental practice shown in the directory."""

    DENTIST = "dentist"
    COSMETIC = "cosmetic"


class Provider(Base, TimestampMixin):
    """Dental practice listed in the directory."""

    __tablename__ = "providers"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    place_id: Mapped[str | None] = mapped_column(
        String(255), unique=True, nullable=True
    )
    phone_number: Mapped[str | None] = mapped_column(
        String(32), index=True, nullable=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    type: Mapped[ProviderType] = mapped_column(
        Enum(ProviderType, name="provider_type", values_callable=enum_values),
        default=ProviderType.DENTIST,
        nullable=False,
    )
    address: Mapped[str | None] = mapped_column(Text, nullable=True)
    zip_code: Mapped[str | None] = mapped_column(String(10), index=True, nullable=True)
    lat: Mapped[float | None] = mapped_column(Float, nullable=True)
    lng: Mapped[float | None] = mapped_column(Float, nullable=True)
    website: Mapped[str | None] = mapped_column(String(512), nullable=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    tags: Mapped[list[str]] = mapped_column(JSONType, default=list, nullable=False)
    photos: Mapped[list[str]] = mapped_column(JSONType, default=list, nullable=False)
    rating: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    review_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    business_status: Mapped[str] = mapped_column(
        String(64), default="OPERATIONAL", nullable=False
    )
    opening_hours: Mapped[dict[str, Any] | None] = mapped_column(
        JSONType, nullable=True
    )
    user_id: Mapped[str | None] = mapped_column(String(64), index=True, nullable=True)
    last_verified: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

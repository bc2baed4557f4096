from __future__ import annotations

import enum
import uuid

from sqlalchemy import Boolean, Enum, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base, TimestampMixin, enum_values


class ProfileRole(str, enum.Enum):
    """Access role attached to an authenticated identity."""

    USER = "user"
    ADMIN = "admin"
    PROVIDER = "provider"


class Profile(Base, TimestampMixin):
    """Portal profile of an authenticated user."""

    __tablename__ = "profiles"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[str] = mapped_column(String(64), index=True, nullable=False)
    phone: Mapped[str | None] = mapped_column(String(32), unique=True, nullable=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    full_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    avatar_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    role: Mapped[ProfileRole] = mapped_column(
        Enum(ProfileRole, name="profile_role", values_callable=enum_values),
        default=ProfileRole.USER,
        nullable=False,
    )
    is_verified: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

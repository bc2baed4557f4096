"""Bearer-token authentication and caller capabilities."""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import Any

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from app.core.config import get_settings
from app.core.errors import (
    AuthenticationError,
    ConfigurationError,
    NotFoundError,
    OwnershipError,
)
from app.db.gateway import PersistenceGateway
from app.db.session import get_gateway
from app.logging_utils import set_provider_context
from app.models import ProfileRole

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"

bearer_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class AuthenticatedUser:
    """Identity asserted by the auth backend's access token."""

    user_id: str
    phone: str | None = None
    email: str | None = None

    def as_dict(self) -> dict[str, Any]:
        return {"id": self.user_id, "phone": self.phone, "email": self.email}


@dataclass(frozen=True)
class ProviderActor:
    """Capability proving the caller operates ``provider_id``."""

    provider_id: uuid.UUID
    provider_name: str
    user: AuthenticatedUser


def decode_access_token(token: str) -> AuthenticatedUser:
    settings = get_settings()
    if not settings.supabase_jwt_secret:
        raise ConfigurationError(details="SUPABASE_JWT_SECRET is not set")

    try:
        claims = jwt.decode(
            token,
            settings.supabase_jwt_secret,
            algorithms=[ALGORITHM],
            audience=settings.supabase_jwt_audience,
        )
    except JWTError as exc:
        logger.info("rejected access token", extra={"reason": str(exc)})
        raise AuthenticationError("Unauthorized") from exc

    subject = claims.get("sub")
    if not subject:
        raise AuthenticationError("Unauthorized")
    return AuthenticatedUser(
        user_id=str(subject),
        phone=claims.get("phone") or None,
        email=claims.get("email") or None,
    )


def get_session_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> AuthenticatedUser | None:
    """Decode the bearer token if one was sent; a bad token is rejected."""

    if credentials is None:
        return None
    return decode_access_token(credentials.credentials)


def get_optional_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> AuthenticatedUser | None:
    """Caller identity for public routes; a bad token counts as anonymous."""

    if credentials is None:
        return None
    try:
        return decode_access_token(credentials.credentials)
    except AuthenticationError:
        return None


def get_current_user(
    user: AuthenticatedUser | None = Depends(get_session_user),
) -> AuthenticatedUser:
    if user is None:
        raise AuthenticationError("Unauthorized")
    return user


def get_phone_user(
    user: AuthenticatedUser | None = Depends(get_session_user),
) -> AuthenticatedUser:
    """Require a session established through phone authentication."""

    if user is None or not user.phone:
        raise AuthenticationError("Unauthorized - Please sign in with phone number")
    return user


def get_current_provider(
    gateway: PersistenceGateway = Depends(get_gateway),
    user: AuthenticatedUser = Depends(get_phone_user),
) -> ProviderActor:
    """Resolve the caller's own provider from the verified phone claim."""

    provider = gateway.provider_by_phone(user.phone)
    if provider is None:
        raise NotFoundError(
            "Provider profile not found. Please complete your provider setup first."
        )
    set_provider_context(provider.id)
    return ProviderActor(provider_id=provider.id, provider_name=provider.name, user=user)


def is_admin(gateway: PersistenceGateway, user: AuthenticatedUser | None) -> bool:
    """Verified admin profile, optionally pinned to ``ADMIN_EMAIL``."""

    if user is None:
        return False
    profile = gateway.profile_by_user_id(user.user_id)
    if profile is None or profile.role != ProfileRole.ADMIN or not profile.is_verified:
        return False

    admin_email = get_settings().admin_email
    if admin_email and (user.email or "").lower() != admin_email.lower():
        return False
    return True


def require_admin(
    gateway: PersistenceGateway = Depends(get_gateway),
    user: AuthenticatedUser = Depends(get_current_user),
) -> AuthenticatedUser:
    if not is_admin(gateway, user):
        raise OwnershipError("Admin access required")
    return user


__all__ = [
    "AuthenticatedUser",
    "ProviderActor",
    "decode_access_token",
    "get_current_provider",
    "get_current_user",
    "get_optional_user",
    "get_phone_user",
    "get_session_user",
    "is_admin",
    "require_admin",
]

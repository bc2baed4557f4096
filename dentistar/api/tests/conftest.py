from __future__ import annotations

import os
import time
from collections.abc import Callable
from typing import Any

os.environ["SUPABASE_JWT_SECRET"] = "test-secret"
os.environ["RATE_LIMIT_REQUESTS"] = "100000"
os.environ["GOOGLE_MAPS_API_KEY"] = ""
os.environ["ADMIN_EMAIL"] = ""

import httpx
import pytest
from fastapi.testclient import TestClient
from jose import jwt
from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.db.gateway import PersistenceGateway
from app.db.session import get_db
from app.main import app
from app.models import Base, Profile, ProfileRole, Provider, ProviderType
from app.services.places_client import PlacesClient, get_places_client

TEST_SECRET = "test-secret"

WEEKDAY_HOURS = {
    "periods": [
        {"open": {"day": day, "time": "0900"}, "close": {"day": day, "time": "1700"}}
        for day in range(0, 7)
    ]
}


@pytest.fixture()
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # pysqlite needs explicit BEGIN for SAVEPOINT support.
    @event.listens_for(engine, "connect")
    def _disable_pysqlite_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN")

    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def db_session(engine) -> Session:
    session = sessionmaker(bind=engine, autoflush=False)()
    yield session
    session.close()


@pytest.fixture()
def gateway(db_session) -> PersistenceGateway:
    return PersistenceGateway(db_session)


@pytest.fixture()
def client(db_session):
    def override_get_db():
        try:
            yield db_session
            db_session.commit()
        except Exception:
            db_session.rollback()
            raise

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def make_token(
    sub: str = "user-1",
    *,
    phone: str | None = None,
    email: str | None = None,
    secret: str = TEST_SECRET,
    audience: str = "authenticated",
    expires_in: int = 3600,
) -> str:
    claims: dict[str, Any] = {
        "sub": sub,
        "aud": audience,
        "exp": int(time.time()) + expires_in,
    }
    if phone:
        claims["phone"] = phone
    if email:
        claims["email"] = email
    return jwt.encode(claims, secret, algorithm="HS256")


def bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
def make_provider(gateway, db_session) -> Callable[..., Provider]:
    counter = {"n": 0}

    def factory(**overrides: Any) -> Provider:
        counter["n"] += 1
        fields: dict[str, Any] = {
            "name": f"Test Dental {counter['n']}",
            "type": ProviderType.DENTIST,
            "address": "1 Main St, New York, NY 10001, USA",
            "zip_code": "10001",
            "lat": 40.7506,
            "lng": -73.9972,
            "opening_hours": WEEKDAY_HOURS,
        }
        fields.update(overrides)
        provider = gateway.add_provider(**fields)
        db_session.commit()
        return provider

    return factory


@pytest.fixture()
def make_profile(gateway, db_session) -> Callable[..., Profile]:
    def factory(**overrides: Any) -> Profile:
        fields: dict[str, Any] = {
            "user_id": "user-1",
            "role": ProfileRole.PROVIDER,
            "is_verified": True,
        }
        fields.update(overrides)
        profile = gateway.add_profile(**fields)
        db_session.commit()
        return profile

    return factory


@pytest.fixture()
def admin_headers(make_profile) -> dict[str, str]:
    make_profile(
        user_id="admin-1",
        email="admin@example.com",
        full_name="Ada Admin",
        role=ProfileRole.ADMIN,
        is_verified=True,
    )
    return bearer(make_token("admin-1", email="admin@example.com"))


class PlacesStub:
    """Serve canned places API payloads through ``httpx.MockTransport``."""

    def __init__(self) -> None:
        self.routes: dict[str, Any] = {}
        self.requests: list[httpx.Request] = []

    def on(self, endpoint: str, payload: Any) -> None:
        """``payload`` is a dict or a callable taking the request."""

        self.routes[endpoint] = payload

    def calls_to(self, endpoint: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.path.endswith(endpoint)]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        for endpoint, payload in self.routes.items():
            if request.url.path.endswith(endpoint):
                if isinstance(payload, httpx.Response):
                    return payload
                data = payload(request) if callable(payload) else payload
                return httpx.Response(200, json=data)
        return httpx.Response(200, json={"status": "ZERO_RESULTS", "results": []})

    def client(self) -> PlacesClient:
        return PlacesClient(
            "test-key",
            base_url="https://places.test/maps/api",
            http_client=httpx.Client(transport=httpx.MockTransport(self.handler)),
            page_token_delay=0,
        )


@pytest.fixture()
def places(client) -> PlacesStub:
    stub = PlacesStub()
    places_client = stub.client()
    app.dependency_overrides[get_places_client] = lambda: places_client
    yield stub
    places_client.close()

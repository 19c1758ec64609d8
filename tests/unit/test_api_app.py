"""Unit tests for roster.api.app application factory.

Usage
-----
Run with pytest::

    pytest tests/unit/test_api_app.py

"""

from __future__ import annotations

import datetime as dt

import falcon.asgi
import falcon.testing
import pytest

from roster.api.app import AppDependencies, create_app
from roster.ratelimit import RateLimiterStore
from roster.users import SqlAlchemyUserStore
from roster.users.errors import UserStoreError
from roster.users.protocol import UserRecord
from tests.helpers.user_store import (
    RecordingUserStore,
    unreachable_session_factory,
)

CREATED = dt.datetime(2024, 6, 1, 12, 0, tzinfo=dt.UTC)


@pytest.fixture
def store() -> RecordingUserStore:
    """Provide a fresh recording store."""
    return RecordingUserStore()


@pytest.fixture
def deps(store: RecordingUserStore) -> AppDependencies:
    """Build AppDependencies around the recording store."""
    return AppDependencies(
        user_store=store,
        limiter=RateLimiterStore(rate=100.0, burst=100),
        webhook_secret="whsec_a2V5",
    )


@pytest.fixture
def client(deps: AppDependencies) -> falcon.testing.TestClient:
    """Build a test client for the full app."""
    return falcon.testing.TestClient(create_app(deps))


class TestCreateApp:
    """Tests for create_app()."""

    def test_returns_falcon_app(self, deps: AppDependencies) -> None:
        """create_app(deps) returns a Falcon ASGI App."""
        app = create_app(deps)
        assert isinstance(app, falcon.asgi.App), "expected Falcon ASGI App"

    def test_webhook_route_registered(self, client: falcon.testing.TestClient) -> None:
        """The webhook endpoint exists (unsigned requests are 401, not 404)."""
        result = client.simulate_post("/webhooks/clerk", body=b"{}")
        assert result.status == falcon.HTTP_401, "expected signature rejection"

    def test_rate_limit_applies_to_every_route(self, store: RecordingUserStore) -> None:
        """All routes share the limiter registered by the factory."""
        deps = AppDependencies(
            user_store=store, limiter=RateLimiterStore(rate=0.001, burst=2)
        )
        client = falcon.testing.TestClient(create_app(deps))

        assert client.simulate_get("/health").status == falcon.HTTP_200
        assert client.simulate_get("/users").status == falcon.HTTP_200
        assert client.simulate_post("/webhooks/clerk").status == falcon.HTTP_429


class TestHealthRoute:
    """Tests for GET /health."""

    def test_healthy_store(self, client: falcon.testing.TestClient) -> None:
        """A reachable store reports ok/up."""
        result = client.simulate_get("/health")
        assert result.status == falcon.HTTP_200
        assert result.json == {"status": "ok", "db": "up"}

    def test_degraded_store_still_200(
        self, client: falcon.testing.TestClient, store: RecordingUserStore
    ) -> None:
        """An unreachable store reports degraded without a 5xx."""
        store.healthy = False
        result = client.simulate_get("/health")
        assert result.status == falcon.HTTP_200
        assert result.json == {"status": "degraded", "db": "down"}


class TestUsersRoute:
    """Tests for GET /users."""

    def test_empty_list_is_array(self, client: falcon.testing.TestClient) -> None:
        """No users yields ``[]`` rather than null."""
        result = client.simulate_get("/users")
        assert result.status == falcon.HTTP_200
        assert result.json == []

    def test_serialises_records(
        self, client: falcon.testing.TestClient, store: RecordingUserStore
    ) -> None:
        """Records are rendered with ISO timestamps and empty-string fallbacks."""
        store.users = [
            UserRecord(
                clerk_id="user_1",
                name="Ada Lovelace",
                email="ada@example.com",
                username="",
                first_name="Ada",
                last_name="Lovelace",
                role="superadmin",
                is_active=True,
                created_at=CREATED,
                updated_at=CREATED,
            )
        ]

        result = client.simulate_get("/users")

        assert result.json == [
            {
                "clerk_id": "user_1",
                "name": "Ada Lovelace",
                "email": "ada@example.com",
                "username": "",
                "first_name": "Ada",
                "last_name": "Lovelace",
                "role": "superadmin",
                "is_active": True,
                "created_at": "2024-06-01T12:00:00+00:00",
                "updated_at": "2024-06-01T12:00:00+00:00",
                "deleted_at": None,
                "last_login_at": None,
            }
        ]

    def test_store_failure_is_opaque_500(
        self, client: falcon.testing.TestClient, store: RecordingUserStore
    ) -> None:
        """Listing failures do not leak store details."""
        store.error = UserStoreError("list", "OperationalError")
        result = client.simulate_get("/users")
        assert result.status == falcon.HTTP_500
        assert result.json == {"error": "internal server error"}

    def test_unreachable_database_is_opaque_500(self) -> None:
        """A refused database connection maps to the JSON error body."""
        deps = AppDependencies(
            user_store=SqlAlchemyUserStore(unreachable_session_factory()),  # type: ignore[arg-type]
            limiter=RateLimiterStore(rate=100.0, burst=100),
        )
        client = falcon.testing.TestClient(create_app(deps))

        result = client.simulate_get("/users")

        assert result.status == falcon.HTTP_500
        assert result.json == {"error": "internal server error"}

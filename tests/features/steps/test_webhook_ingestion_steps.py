"""Behavioural coverage for Clerk webhook ingestion."""

from __future__ import annotations

import typing as typ

import falcon.testing
import pytest
from pytest_bdd import given, parsers, scenario, then, when

from roster.api.app import AppDependencies, create_app
from roster.ratelimit import RateLimiterStore
from roster.users.errors import UserStoreError
from roster.users.protocol import UserUpsert
from tests.helpers.svix import (
    TEST_WEBHOOK_SECRET,
    encode_payload,
    signed_headers,
    user_event,
)
from tests.helpers.user_store import RecordingUserStore

if typ.TYPE_CHECKING:
    from falcon.testing.client import Result

WEBHOOK_PATH = "/webhooks/clerk"


class IngestionContext(typ.TypedDict, total=False):
    """Shared mutable scenario state."""

    client: falcon.testing.TestClient
    store: RecordingUserStore
    response: Result
    responses: list[Result]


class _FrozenClock:
    def __call__(self) -> float:
        return 0.0


@scenario(
    "../webhook_ingestion.feature",
    "A signed user.created event is stored",
)
def test_signed_user_created_is_stored() -> None:
    """Wrap the pytest-bdd scenario for a signed delivery."""


@scenario(
    "../webhook_ingestion.feature",
    "A tampered delivery is rejected",
)
def test_tampered_delivery_is_rejected() -> None:
    """Wrap the pytest-bdd scenario for a bad signature."""


@scenario(
    "../webhook_ingestion.feature",
    "A flooding client is throttled",
)
def test_flooding_client_is_throttled() -> None:
    """Wrap the pytest-bdd scenario for rate limiting."""


@scenario(
    "../webhook_ingestion.feature",
    "An event type Roster does not handle is acknowledged",
)
def test_unhandled_event_is_acknowledged() -> None:
    """Wrap the pytest-bdd scenario for an unhandled event type."""


@scenario(
    "../webhook_ingestion.feature",
    "A failing user store yields an opaque server error",
)
def test_failing_store_yields_server_error() -> None:
    """Wrap the pytest-bdd scenario for a store failure."""


@pytest.fixture
def ingestion_context() -> IngestionContext:
    """Provide empty scenario state."""
    return {}


@given("a running Roster app with a recording user store")
def given_running_app(ingestion_context: IngestionContext) -> None:
    """Build the app around a recording store and a frozen limiter clock."""
    store = RecordingUserStore()
    deps = AppDependencies(
        user_store=store,
        limiter=RateLimiterStore(rate=10.0, burst=20, clock=_FrozenClock()),
        webhook_secret=TEST_WEBHOOK_SECRET,
    )
    ingestion_context["store"] = store
    ingestion_context["client"] = falcon.testing.TestClient(create_app(deps))


@when(
    parsers.parse(
        'Clerk delivers a signed "{event_type}" event for "{user_id}" '
        'with username "{username}"'
    )
)
def when_signed_delivery(
    ingestion_context: IngestionContext,
    event_type: str,
    user_id: str,
    username: str,
) -> None:
    """Post a correctly signed event."""
    body = encode_payload(user_event(event_type, user_id=user_id, username=username))
    ingestion_context["response"] = ingestion_context["client"].simulate_post(
        WEBHOOK_PATH, body=body, headers=signed_headers(body)
    )


@given("the user store is failing")
def given_failing_store(ingestion_context: IngestionContext) -> None:
    """Make every store call raise."""
    ingestion_context["store"].error = UserStoreError("upsert", "OperationalError")


@when(parsers.parse('Clerk delivers a signed "{event_type}" event'))
def when_signed_bare_delivery(
    ingestion_context: IngestionContext, event_type: str
) -> None:
    """Post a correctly signed event of ``event_type``."""
    body = encode_payload({"type": event_type, "data": {"id": "org_1"}})
    ingestion_context["response"] = ingestion_context["client"].simulate_post(
        WEBHOOK_PATH, body=body, headers=signed_headers(body)
    )


@when(
    parsers.parse(
        'Clerk delivers a "{event_type}" event for "{user_id}" with a bad signature'
    )
)
def when_bad_signature(
    ingestion_context: IngestionContext, event_type: str, user_id: str
) -> None:
    """Post an event whose signature does not match the body."""
    body = encode_payload(user_event(event_type, user_id=user_id))
    headers = signed_headers(body)
    headers["svix-signature"] = "v1,AAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAA="
    ingestion_context["response"] = ingestion_context["client"].simulate_post(
        WEBHOOK_PATH, body=body, headers=headers
    )


@when(parsers.parse("the same client sends {count:d} health checks at once"))
def when_flood(ingestion_context: IngestionContext, count: int) -> None:
    """Send a burst of requests from one address."""
    client = ingestion_context["client"]
    ingestion_context["responses"] = [
        client.simulate_get("/health", remote_addr="203.0.113.9") for _ in range(count)
    ]


@then(parsers.parse("the response status is {status:d}"))
def then_response_status(ingestion_context: IngestionContext, status: int) -> None:
    """Assert the HTTP response status code."""
    response = ingestion_context["response"]
    assert response.status_code == status, (
        f"expected status {status}, got {response.status_code}"
    )


@then(parsers.parse('the response echoes type "{event_type}"'))
def then_echoes_type(ingestion_context: IngestionContext, event_type: str) -> None:
    """Assert the acknowledgement body."""
    body = ingestion_context["response"].json
    assert body["ok"] is True, f"expected ok acknowledgement, got {body}"
    assert body["type"] == event_type, f"expected type {event_type}, got {body}"


@then(
    parsers.parse(
        'the store received an upsert for "{user_id}" named "{name}" with no email'
    )
)
def then_store_upserted(
    ingestion_context: IngestionContext, user_id: str, name: str
) -> None:
    """Assert the recorded upsert."""
    upserts = ingestion_context["store"].upserts
    expected = UserUpsert(clerk_id=user_id, name=name, username=name, email="")
    assert upserts == [expected], f"unexpected upserts: {upserts}"


@then("the response is acknowledged as ignored")
def then_acknowledged_ignored(ingestion_context: IngestionContext) -> None:
    """Assert an ignored acknowledgement."""
    body = ingestion_context["response"].json
    assert body["ok"] is True, f"expected ok acknowledgement, got {body}"
    assert body["ignored"] is True, f"expected ignored acknowledgement, got {body}"


@then('the response body is {"error": "internal server error"}')
def then_opaque_error(ingestion_context: IngestionContext) -> None:
    """Assert the store failure detail is not exposed."""
    body = ingestion_context["response"].json
    assert body == {"error": "internal server error"}, f"unexpected body: {body}"


@then("the store was not called")
def then_store_untouched(ingestion_context: IngestionContext) -> None:
    """Assert no store operation ran."""
    calls = ingestion_context["store"].calls
    assert calls == 0, f"expected no store calls, got {calls}"


@then(
    parsers.parse(
        "{admitted:d} requests succeed and {rejected:d} are rejected with status 429"
    )
)
def then_flood_outcome(
    ingestion_context: IngestionContext, admitted: int, rejected: int
) -> None:
    """Assert the admitted/rejected split."""
    statuses = [result.status_code for result in ingestion_context["responses"]]
    assert statuses == [200] * admitted + [429] * rejected, (
        f"unexpected statuses: {statuses}"
    )

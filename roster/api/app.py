"""Application factory for the Roster Falcon ASGI application.

This module provides ``create_app()`` which wires the admission
middleware, the health, users and webhook resources, and the error
handlers around explicitly injected collaborators.

Usage
-----
Build the app from a store and a limiter::

    from roster.api.app import AppDependencies, create_app

    deps = AppDependencies(
        user_store=SqlAlchemyUserStore(session_factory),
        limiter=RateLimiterStore(rate=10.0, burst=20),
        webhook_secret=os.environ["CLERK_WEBHOOK_SECRET"],
    )
    app = create_app(deps)

"""

from __future__ import annotations

import dataclasses as dc
import typing as typ

import falcon.asgi

from roster.api.errors import register_error_handlers
from roster.api.health.resources import HealthResource
from roster.api.middleware import RateLimitMiddleware
from roster.api.users.resources import UsersResource
from roster.api.webhooks.resources import (
    ClerkWebhookDependencies,
    ClerkWebhookResource,
)
from roster.config import DEFAULT_STORE_TIMEOUT
from roster.ratelimit import DEFAULT_SWEEP_INTERVAL
from roster.webhooks.processor import WebhookProcessor

if typ.TYPE_CHECKING:
    from roster.ratelimit import RateLimiterStore
    from roster.users.protocol import UserStore

__all__ = ["AppDependencies", "create_app"]


@dc.dataclass(frozen=True, slots=True)
class AppDependencies:
    """Dependencies for the Falcon ASGI application.

    Attributes
    ----------
    user_store
        Persistence capability behind every route.
    limiter
        Process-wide rate limiter shared by all routes.
    webhook_secret
        Clerk signing secret; empty rejects every webhook.
    store_timeout
        Deadline in seconds for store calls made by the webhook route.
    trust_forwarded
        Key rate limits on forwarded client addresses.
    sweep_interval
        Seconds between rate-limiter eviction sweeps.

    """

    user_store: UserStore
    limiter: RateLimiterStore
    webhook_secret: str = ""
    store_timeout: float = DEFAULT_STORE_TIMEOUT
    trust_forwarded: bool = False
    sweep_interval: float = DEFAULT_SWEEP_INTERVAL


def create_app(dependencies: AppDependencies) -> falcon.asgi.App:
    """Create and configure the Falcon ASGI application.

    Parameters
    ----------
    dependencies
        Collaborators injected into middleware and resources.

    Returns
    -------
    falcon.asgi.App
        App serving ``GET /health``, ``GET /users`` and
        ``POST /webhooks/clerk`` behind the rate limiter.

    """
    rate_limit = RateLimitMiddleware(
        dependencies.limiter,
        trust_forwarded=dependencies.trust_forwarded,
        sweep_interval=dependencies.sweep_interval,
    )
    app = falcon.asgi.App(middleware=[rate_limit])  # type: ignore[no-matching-overload]  # Falcon stubs

    app.add_route("/health", HealthResource(dependencies.user_store))
    app.add_route("/users", UsersResource(dependencies.user_store))
    app.add_route(
        "/webhooks/clerk",
        ClerkWebhookResource(
            ClerkWebhookDependencies(
                processor=WebhookProcessor(dependencies.user_store),
                secret=dependencies.webhook_secret,
                store_timeout=dependencies.store_timeout,
                trust_forwarded=dependencies.trust_forwarded,
            )
        ),
    )

    register_error_handlers(app)

    return app

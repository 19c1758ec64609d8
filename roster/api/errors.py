"""Domain exceptions and Falcon error handlers for the API layer.

Resources and middleware raise the exceptions defined (or re-exported)
here; the handlers translate them into JSON error bodies of the form
``{"error": <message>}``.

Usage
-----
Register every handler on the Falcon app::

    from roster.api.errors import register_error_handlers

    register_error_handlers(app)

"""

from __future__ import annotations

import typing as typ

import falcon

from roster.logging import get_logger, log_exception, log_warning
from roster.users.errors import UserStoreError
from roster.webhooks.models import MalformedWebhookError

if typ.TYPE_CHECKING:
    from falcon.asgi import App, Request, Response

__all__ = [
    "InvalidInputError",
    "RateLimitExceededError",
    "WebhookSignatureError",
    "handle_invalid_input",
    "handle_malformed_webhook",
    "handle_rate_limit_exceeded",
    "handle_store_error",
    "handle_webhook_signature",
    "register_error_handlers",
]

logger = get_logger(__name__)

RETRY_AFTER_SECONDS = 1


class RateLimitExceededError(Exception):
    """Raised when a client has no tokens left in its bucket.

    Attributes
    ----------
    client_id
        Identity whose bucket was empty.

    """

    def __init__(self, client_id: str) -> None:
        """Record the rejected client identity."""
        self.client_id = client_id
        super().__init__(f"rate limit exceeded for {client_id}")


class WebhookSignatureError(Exception):
    """Raised when a webhook delivery fails signature verification."""

    def __init__(self, client_id: str | None = None) -> None:
        """Record the source of the rejected delivery."""
        self.client_id = client_id
        super().__init__("webhook signature verification failed")


class InvalidInputError(Exception):
    """Raised for client errors that should map to HTTP 400.

    Attributes
    ----------
    reason
        Human-readable description of the failure.

    """

    def __init__(self, reason: str) -> None:
        """Initialize with a validation reason."""
        self.reason = reason
        super().__init__(reason)


async def handle_rate_limit_exceeded(
    _req: Request,
    resp: Response,
    _ex: RateLimitExceededError,
    _params: dict[str, typ.Any],
) -> None:
    """Map ``RateLimitExceededError`` to HTTP 429 with ``Retry-After``."""
    resp.status = falcon.HTTP_429
    resp.set_header("Retry-After", str(RETRY_AFTER_SECONDS))
    resp.media = {"error": "rate limit exceeded"}


async def handle_webhook_signature(
    req: Request,
    resp: Response,
    ex: WebhookSignatureError,
    _params: dict[str, typ.Any],
) -> None:
    """Map ``WebhookSignatureError`` to HTTP 401 and log the rejection."""
    log_warning(
        logger,
        "Rejected webhook with invalid signature on %s from %s",
        req.path,
        ex.client_id or "unknown",
    )
    resp.status = falcon.HTTP_401
    resp.media = {"error": "invalid signature"}


async def handle_malformed_webhook(
    req: Request,
    resp: Response,
    ex: MalformedWebhookError,
    _params: dict[str, typ.Any],
) -> None:
    """Map ``MalformedWebhookError`` to HTTP 400."""
    log_warning(logger, "Malformed payload on %s: %s", req.path, ex.detail)
    resp.status = falcon.HTTP_400
    resp.media = {"error": "malformed payload"}


async def handle_invalid_input(
    _req: Request,
    resp: Response,
    ex: InvalidInputError,
    _params: dict[str, typ.Any],
) -> None:
    """Map ``InvalidInputError`` to HTTP 400."""
    resp.status = falcon.HTTP_400
    resp.media = {"error": ex.reason}


async def handle_store_error(
    req: Request,
    resp: Response,
    ex: UserStoreError,
    _params: dict[str, typ.Any],
) -> None:
    """Map ``UserStoreError`` to an opaque HTTP 500; details go to the log."""
    log_exception(logger, f"User store failure while serving {req.path}", ex)
    resp.status = falcon.HTTP_500
    resp.media = {"error": "internal server error"}


def register_error_handlers(app: App) -> None:
    """Install every Roster error handler on ``app``."""
    app.add_error_handler(RateLimitExceededError, handle_rate_limit_exceeded)
    app.add_error_handler(WebhookSignatureError, handle_webhook_signature)
    app.add_error_handler(MalformedWebhookError, handle_malformed_webhook)
    app.add_error_handler(InvalidInputError, handle_invalid_input)
    app.add_error_handler(UserStoreError, handle_store_error)

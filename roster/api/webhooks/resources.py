"""Clerk webhook ingestion resource.

``POST /webhooks/clerk`` runs each delivery through a fixed sequence that
ends at the first failure:

1. read the raw body (unreadable -> 400);
2. verify the Svix signature over the raw bytes (mismatch -> 401); the
   payload is not parsed before this step succeeds;
3. decode the JSON into a :class:`ClerkWebhookEvent` (malformed -> 400);
4. dispatch to the user store within ``store_timeout`` seconds
   (failure or timeout -> 500).

Usage
-----
Register the resource on the Falcon app::

    app.add_route(
        "/webhooks/clerk",
        ClerkWebhookResource(
            ClerkWebhookDependencies(processor=processor, secret=secret)
        ),
    )

"""

from __future__ import annotations

import asyncio
import dataclasses as dc
import typing as typ

import falcon

from roster.api.errors import InvalidInputError, WebhookSignatureError
from roster.api.middleware import client_identity
from roster.config import DEFAULT_STORE_TIMEOUT
from roster.users.errors import UserStoreError
from roster.webhooks.models import decode_event
from roster.webhooks.signature import verify_svix_signature

if typ.TYPE_CHECKING:
    from falcon.asgi import Request, Response

    from roster.webhooks.processor import WebhookProcessor

__all__ = ["ClerkWebhookDependencies", "ClerkWebhookResource"]

SVIX_ID_HEADER = "svix-id"
SVIX_TIMESTAMP_HEADER = "svix-timestamp"
SVIX_SIGNATURE_HEADER = "svix-signature"


@dc.dataclass(frozen=True, slots=True)
class ClerkWebhookDependencies:
    """Collaborators for :class:`ClerkWebhookResource`.

    Attributes
    ----------
    processor
        Dispatches decoded events to the user store.
    secret
        Clerk signing secret; empty rejects every delivery.
    store_timeout
        Deadline in seconds for the dispatch step.
    trust_forwarded
        Report forwarded client addresses in rejection logs.

    """

    processor: WebhookProcessor
    secret: str
    store_timeout: float = DEFAULT_STORE_TIMEOUT
    trust_forwarded: bool = False


class ClerkWebhookResource:
    """Receives Clerk user lifecycle webhooks."""

    def __init__(self, dependencies: ClerkWebhookDependencies) -> None:
        """Configure the resource with its dependencies."""
        self._processor = dependencies.processor
        self._secret = dependencies.secret
        self._store_timeout = dependencies.store_timeout
        self._trust_forwarded = dependencies.trust_forwarded

    async def on_post(self, req: Request, resp: Response) -> None:
        """Verify, decode and apply one webhook delivery.

        Raises
        ------
        InvalidInputError
            If the body cannot be read.
        WebhookSignatureError
            If the Svix signature does not verify.
        MalformedWebhookError
            If the verified body is not a Clerk event.
        UserStoreError
            If the store call fails or exceeds ``store_timeout``.

        """
        try:
            body = await req.stream.read()
        except OSError as exc:
            msg = "unreadable request body"
            raise InvalidInputError(msg) from exc

        if not verify_svix_signature(
            body,
            self._secret,
            req.get_header(SVIX_ID_HEADER),
            req.get_header(SVIX_TIMESTAMP_HEADER),
            req.get_header(SVIX_SIGNATURE_HEADER),
        ):
            raise WebhookSignatureError(
                client_identity(req, trust_forwarded=self._trust_forwarded)
            )

        event = decode_event(body)

        try:
            async with asyncio.timeout(self._store_timeout):
                outcome = await self._processor.process(event)
        except TimeoutError as exc:
            raise UserStoreError.timed_out(
                event.type_name, self._store_timeout
            ) from exc

        resp.media = outcome.as_media()
        resp.status = falcon.HTTP_200

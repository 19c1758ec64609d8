"""Rate-limit admission middleware for Falcon ASGI applications.

Every request is checked against the process-wide
:class:`~roster.ratelimit.RateLimiterStore` before routing.  Denied requests
raise :class:`~roster.api.errors.RateLimitExceededError`, which the app's
error handler turns into HTTP 429; resources never run for them.

The middleware also owns the limiter's eviction sweeper: it starts the
sweeper task on ASGI lifespan startup and cancels it on shutdown.

Usage
-----
Register the middleware when creating the Falcon app::

    limiter = RateLimiterStore(rate=10.0, burst=20)
    app = falcon.asgi.App(middleware=[RateLimitMiddleware(limiter)])

"""

from __future__ import annotations

import asyncio
import contextlib
import typing as typ

from roster.api.errors import RateLimitExceededError
from roster.logging import get_logger, log_debug
from roster.ratelimit import DEFAULT_SWEEP_INTERVAL

if typ.TYPE_CHECKING:
    from falcon.asgi import Request, Response

    from roster.ratelimit import RateLimiterStore

__all__ = ["RateLimitMiddleware", "client_identity"]

logger = get_logger(__name__)

UNKNOWN_CLIENT = "unknown"


def client_identity(req: Request, *, trust_forwarded: bool = False) -> str:
    """Return the identity used to key the caller's bucket.

    The socket peer address is used unless ``trust_forwarded`` is set, in
    which case the first hop recorded by ``Forwarded`` or
    ``X-Forwarded-For`` wins.
    """
    if trust_forwarded:
        route = req.access_route
        if route:
            return route[0]
    return req.remote_addr or UNKNOWN_CLIENT


class RateLimitMiddleware:
    """Falcon middleware rejecting clients whose token bucket is empty.

    Parameters
    ----------
    limiter
        Shared limiter store; this middleware holds no admission state.
    trust_forwarded
        Key clients by the forwarded address instead of the peer address.
    sweep_interval
        Seconds between eviction sweeps while the app is running.

    """

    def __init__(
        self,
        limiter: RateLimiterStore,
        *,
        trust_forwarded: bool = False,
        sweep_interval: float = DEFAULT_SWEEP_INTERVAL,
    ) -> None:
        """Bind the middleware to ``limiter``."""
        self._limiter = limiter
        self._trust_forwarded = trust_forwarded
        self._sweep_interval = sweep_interval
        self._sweeper: asyncio.Task[None] | None = None

    async def process_startup(self, _scope: object, _event: object) -> None:
        """Start the periodic eviction sweep."""
        if self._sweeper is None:
            self._sweeper = asyncio.create_task(
                self._limiter.run_sweeper(self._sweep_interval)
            )

    async def process_shutdown(self, _scope: object, _event: object) -> None:
        """Cancel the eviction sweep and wait for it to stop."""
        sweeper, self._sweeper = self._sweeper, None
        if sweeper is None:
            return
        sweeper.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await sweeper

    async def process_request(self, req: Request, _resp: Response) -> None:
        """Consume a token for the caller or raise ``RateLimitExceededError``.

        Raises
        ------
        RateLimitExceededError
            If the caller's bucket is empty.

        """
        client_id = client_identity(req, trust_forwarded=self._trust_forwarded)
        if not self._limiter.admit(client_id):
            log_debug(logger, "Rate limit exceeded for %s on %s", client_id, req.path)
            raise RateLimitExceededError(client_id)

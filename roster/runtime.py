"""Roster runtime entrypoint.

This module provides the Granian ASGI factory (``roster.runtime:create_app``)
and the ``roster`` console script.  It builds the production collaborators
from :class:`~roster.config.ServiceConfig` and delegates to
:func:`roster.api.app.create_app`.

Configuration is driven by environment variables:

- ``DATABASE_URL``: SQLAlchemy async database URL (required)
- ``CLERK_WEBHOOK_SECRET``: Clerk signing secret (webhooks are rejected
  while unset)
- ``ROSTER_HOST``: Bind address (default ``0.0.0.0``)
- ``ROSTER_PORT``: Listen port (default ``8080``)
- ``ROSTER_LOG_LEVEL``: Log level (default ``INFO``)
- ``ROSTER_RATE_LIMIT_RATE`` / ``ROSTER_RATE_LIMIT_BURST``: Per-client
  token bucket (default 10/s, burst 20)
- ``ROSTER_STORE_TIMEOUT``: Store call deadline in seconds (default 8)
- ``ROSTER_TRUST_FORWARDED``: Key rate limits on forwarded addresses

Run the service directly with ``python -m roster.runtime``.
"""

from __future__ import annotations

import os
import typing as typ

from roster.config import ConfigError, ServiceConfig
from roster.logging import (
    configure_logging,
    get_logger,
    log_error,
    log_info,
    log_warning,
)

if typ.TYPE_CHECKING:
    import falcon.asgi

__all__ = ["create_app", "load_config", "main"]

logger = get_logger(__name__)

# TCP port number range limits
_MIN_PORT = 1
_MAX_PORT = 65535


def _parse_port(port_str: str) -> int:
    """Parse and validate a port number string.

    Raises
    ------
    SystemExit
        If port_str is not a valid integer in range 1-65535.

    """
    try:
        port = int(port_str)
        if not (_MIN_PORT <= port <= _MAX_PORT):
            msg = f"port {port} outside valid range {_MIN_PORT}-{_MAX_PORT}"
            raise ValueError(msg)  # noqa: TRY301 - unify conversion and range errors
    except ValueError as exc:
        log_error(
            logger,
            "Invalid ROSTER_PORT value: %r (must be %d-%d): %s",
            port_str,
            _MIN_PORT,
            _MAX_PORT,
            exc,
        )
        raise SystemExit(1) from exc
    return port


def load_config() -> ServiceConfig:
    """Load configuration, exiting the process when it is unusable.

    Raises
    ------
    SystemExit
        If required configuration is missing or malformed.

    """
    try:
        config = ServiceConfig.from_env()
    except ConfigError as exc:
        log_error(logger, "Refusing to start: %s", exc)
        raise SystemExit(1) from exc
    if not config.webhook_secret:
        log_warning(
            logger,
            "CLERK_WEBHOOK_SECRET is not set; every webhook will be rejected",
        )
    return config


def create_app() -> falcon.asgi.App:
    """Build the Falcon ASGI application from the environment.

    Returns
    -------
    falcon.asgi.App
        App backed by a SQLAlchemy user store and a fresh rate limiter.

    """
    from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

    from roster.api.app import AppDependencies
    from roster.api.app import create_app as _create_api_app
    from roster.ratelimit import RateLimiterStore
    from roster.users.service import SqlAlchemyUserStore

    config = load_config()

    engine = create_async_engine(config.database_url, pool_pre_ping=True)
    session_factory = async_sessionmaker(engine, expire_on_commit=False)

    deps = AppDependencies(
        user_store=SqlAlchemyUserStore(session_factory),
        limiter=RateLimiterStore(
            rate=config.rate_limit_rate, burst=config.rate_limit_burst
        ),
        webhook_secret=config.webhook_secret,
        store_timeout=config.store_timeout,
        trust_forwarded=config.trust_forwarded,
    )
    return _create_api_app(deps)


def main() -> None:
    """Start the Roster server using Granian.

    Configuration is validated before the server starts so a missing
    ``DATABASE_URL`` stops the process instead of every worker.
    """
    from granian import Granian
    from granian.constants import Interfaces

    host = os.environ.get("ROSTER_HOST", "0.0.0.0")  # noqa: S104 - bind all interfaces for container
    port = _parse_port(os.environ.get("ROSTER_PORT", "8080"))
    log_level_str = os.environ.get("ROSTER_LOG_LEVEL", "INFO")

    normalized_level, invalid_level = configure_logging(log_level_str)
    if invalid_level:
        log_warning(
            logger,
            "Invalid ROSTER_LOG_LEVEL %r, falling back to %s",
            log_level_str,
            normalized_level,
        )

    config = load_config()
    log_info(
        logger,
        "Starting Roster on %s:%d (log_level=%s, rate=%g/s, burst=%d)",
        host,
        port,
        normalized_level,
        config.rate_limit_rate,
        config.rate_limit_burst,
    )

    server = Granian(
        "roster.runtime:create_app",
        address=host,
        port=port,
        interface=Interfaces.ASGI,
        factory=True,
    )
    server.serve()


if __name__ == "__main__":
    main()

"""Service configuration loaded from the process environment.

Usage
-----
Load configuration at process start:

>>> import os
>>> os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///roster.db"
>>> config = ServiceConfig.from_env()
>>> config.rate_limit_burst
20

"""

from __future__ import annotations

import dataclasses as dc
import os

DEFAULT_RATE_LIMIT_RATE = 10.0
DEFAULT_RATE_LIMIT_BURST = 20
DEFAULT_STORE_TIMEOUT = 8.0

_TRUTHY = frozenset({"1", "true", "yes", "on"})
_FALSY = frozenset({"0", "false", "no", "off"})


class ConfigError(ValueError):
    """Raised when required configuration is missing or malformed."""

    @classmethod
    def missing(cls, env_var: str) -> ConfigError:
        """Return an error for a required variable that is unset or blank."""
        return cls(f"{env_var} is required")

    @classmethod
    def invalid(cls, env_var: str, raw: str, expected: str) -> ConfigError:
        """Return an error for a variable whose value cannot be parsed."""
        return cls(f"{env_var} must be {expected}, got: {raw!r}")


def _read(env_var: str) -> str:
    return os.environ.get(env_var, "").strip()


def _parse_positive_float(env_var: str, default: float) -> float:
    raw = _read(env_var)
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError as exc:
        raise ConfigError.invalid(env_var, raw, "a number") from exc
    if value <= 0:
        raise ConfigError.invalid(env_var, raw, "a positive number")
    return value


def _parse_positive_int(env_var: str, default: int) -> int:
    raw = _read(env_var)
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ConfigError.invalid(env_var, raw, "an integer") from exc
    if value < 1:
        raise ConfigError.invalid(env_var, raw, "a positive integer")
    return value


def _parse_bool(env_var: str, *, default: bool) -> bool:
    raw = _read(env_var)
    if not raw:
        return default
    lowered = raw.lower()
    if lowered in _TRUTHY:
        return True
    if lowered in _FALSY:
        return False
    raise ConfigError.invalid(env_var, raw, "a boolean")


@dc.dataclass(frozen=True, slots=True)
class ServiceConfig:
    """Runtime configuration for the Roster service.

    Attributes
    ----------
    database_url
        SQLAlchemy async database URL.  Required.
    webhook_secret
        Clerk webhook signing secret (``whsec_<base64>``).  When empty the
        service still starts but rejects every webhook.
    rate_limit_rate
        Tokens added to each client's bucket per second.
    rate_limit_burst
        Maximum tokens a client's bucket may hold.
    store_timeout
        Upper bound in seconds on a single store call made while handling
        a webhook.
    trust_forwarded
        Use the first ``Forwarded``/``X-Forwarded-For`` hop as the client
        identity instead of the socket peer address.

    """

    database_url: str
    webhook_secret: str = ""
    rate_limit_rate: float = DEFAULT_RATE_LIMIT_RATE
    rate_limit_burst: int = DEFAULT_RATE_LIMIT_BURST
    store_timeout: float = DEFAULT_STORE_TIMEOUT
    trust_forwarded: bool = False

    @classmethod
    def from_env(cls) -> ServiceConfig:
        """Create configuration from environment variables.

        Reads ``DATABASE_URL``, ``CLERK_WEBHOOK_SECRET``,
        ``ROSTER_RATE_LIMIT_RATE``, ``ROSTER_RATE_LIMIT_BURST``,
        ``ROSTER_STORE_TIMEOUT`` and ``ROSTER_TRUST_FORWARDED``.

        Raises
        ------
        ConfigError
            If ``DATABASE_URL`` is missing or a numeric or boolean
            variable cannot be parsed.

        """
        database_url = _read("DATABASE_URL")
        if not database_url:
            raise ConfigError.missing("DATABASE_URL")

        return cls(
            database_url=database_url,
            webhook_secret=_read("CLERK_WEBHOOK_SECRET"),
            rate_limit_rate=_parse_positive_float(
                "ROSTER_RATE_LIMIT_RATE", DEFAULT_RATE_LIMIT_RATE
            ),
            rate_limit_burst=_parse_positive_int(
                "ROSTER_RATE_LIMIT_BURST", DEFAULT_RATE_LIMIT_BURST
            ),
            store_timeout=_parse_positive_float(
                "ROSTER_STORE_TIMEOUT", DEFAULT_STORE_TIMEOUT
            ),
            trust_forwarded=_parse_bool("ROSTER_TRUST_FORWARDED", default=False),
        )


__all__ = ["ConfigError", "ServiceConfig"]

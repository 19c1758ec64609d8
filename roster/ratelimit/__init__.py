"""Per-client admission control."""

from __future__ import annotations

from .store import (
    DEFAULT_BURST,
    DEFAULT_IDLE_TTL,
    DEFAULT_RATE,
    DEFAULT_SWEEP_INTERVAL,
    RateLimiterStore,
    TokenBucket,
)

__all__ = [
    "DEFAULT_BURST",
    "DEFAULT_IDLE_TTL",
    "DEFAULT_RATE",
    "DEFAULT_SWEEP_INTERVAL",
    "RateLimiterStore",
    "TokenBucket",
]

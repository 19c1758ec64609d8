"""Per-client token-bucket rate limiting with idle-entry eviction.

Every client identity (normally the peer IP address) owns a token bucket
that refills at ``rate`` tokens per second up to ``burst`` tokens.  Entries
are created lazily on first sight and removed only by :meth:`sweep`, which
:meth:`RateLimiterStore.run_sweeper` invokes on a fixed interval so memory
stays bounded under IP-rotating traffic.

All access to the client map goes through a single lock held only for the
lookup-and-mutate step; callers never see the lock or the map.

Usage
-----
Build one store per process and share it::

    limiter = RateLimiterStore(rate=10.0, burst=20)
    if not limiter.admit("203.0.113.7"):
        ...  # reject with 429

"""

from __future__ import annotations

import asyncio
import dataclasses as dc
import threading
import typing as typ

from roster.common.time import monotonic
from roster.logging import get_logger, log_debug

if typ.TYPE_CHECKING:
    from roster.common.time import Clock

__all__ = [
    "DEFAULT_BURST",
    "DEFAULT_IDLE_TTL",
    "DEFAULT_RATE",
    "DEFAULT_SWEEP_INTERVAL",
    "RateLimiterStore",
    "TokenBucket",
]

logger = get_logger(__name__)

DEFAULT_RATE = 10.0
DEFAULT_BURST = 20
DEFAULT_IDLE_TTL = 600.0
DEFAULT_SWEEP_INTERVAL = 120.0


@dc.dataclass(slots=True)
class TokenBucket:
    """Token bucket state.

    Attributes
    ----------
    rate
        Tokens added per second.
    capacity
        Maximum number of tokens held.
    tokens
        Tokens currently available.
    updated_at
        Clock reading at the last refill.

    """

    rate: float
    capacity: int
    tokens: float
    updated_at: float

    @classmethod
    def full(cls, rate: float, capacity: int, now: float) -> TokenBucket:
        """Return a bucket holding ``capacity`` tokens."""
        return cls(rate=rate, capacity=capacity, tokens=float(capacity), updated_at=now)

    def refill(self, now: float) -> None:
        """Add tokens accrued since the last refill, capped at capacity."""
        elapsed = now - self.updated_at
        if elapsed > 0:
            self.tokens = min(float(self.capacity), self.tokens + elapsed * self.rate)
            self.updated_at = now

    def consume(self, now: float) -> bool:
        """Take one token if available and report whether one was taken."""
        self.refill(now)
        if self.tokens >= 1.0:
            self.tokens -= 1.0
            return True
        return False


@dc.dataclass(slots=True)
class _ClientEntry:
    bucket: TokenBucket
    last_seen: float


class RateLimiterStore:
    """Process-wide map of client identities to token buckets.

    Parameters
    ----------
    rate
        Refill rate in tokens per second.
    burst
        Bucket capacity.
    idle_ttl
        Seconds after which an untouched entry is evicted by :meth:`sweep`.
    clock
        Monotonic clock in seconds; injectable for tests.

    """

    def __init__(
        self,
        rate: float = DEFAULT_RATE,
        burst: int = DEFAULT_BURST,
        *,
        idle_ttl: float = DEFAULT_IDLE_TTL,
        clock: Clock = monotonic,
    ) -> None:
        """Validate limits and initialise an empty client map."""
        if rate <= 0:
            msg = f"rate must be positive, got {rate}"
            raise ValueError(msg)
        if burst < 1:
            msg = f"burst must be at least 1, got {burst}"
            raise ValueError(msg)
        if idle_ttl <= 0:
            msg = f"idle_ttl must be positive, got {idle_ttl}"
            raise ValueError(msg)
        self._rate = rate
        self._burst = burst
        self._idle_ttl = idle_ttl
        self._clock = clock
        self._lock = threading.Lock()
        self._clients: dict[str, _ClientEntry] = {}

    def __len__(self) -> int:
        """Return the number of tracked client identities."""
        with self._lock:
            return len(self._clients)

    def admit(self, client_id: str) -> bool:
        """Consume one token for ``client_id`` and report whether it was allowed.

        ``last_seen`` is refreshed whether or not a token was available.
        """
        with self._lock:
            now = self._clock()
            entry = self._clients.get(client_id)
            if entry is None:
                entry = _ClientEntry(
                    bucket=TokenBucket.full(self._rate, self._burst, now),
                    last_seen=now,
                )
                self._clients[client_id] = entry
            entry.last_seen = now
            return entry.bucket.consume(now)

    def sweep(self, now: float | None = None) -> int:
        """Evict entries idle for longer than ``idle_ttl``.

        Returns
        -------
        int
            Number of entries removed.

        """
        with self._lock:
            current = self._clock() if now is None else now
            stale = [
                client_id
                for client_id, entry in self._clients.items()
                if current - entry.last_seen > self._idle_ttl
            ]
            for client_id in stale:
                del self._clients[client_id]
        if stale:
            log_debug(logger, "Evicted %d idle rate-limit entries", len(stale))
        return len(stale)

    async def run_sweeper(self, interval: float = DEFAULT_SWEEP_INTERVAL) -> None:
        """Sweep every ``interval`` seconds until cancelled."""
        while True:
            await asyncio.sleep(interval)
            self.sweep()

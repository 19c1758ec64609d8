"""Common time utilities."""

from __future__ import annotations

import datetime as dt
import time
import typing as typ

Clock: typ.TypeAlias = typ.Callable[[], float]


def utcnow() -> dt.datetime:
    """Return an aware UTC timestamp suitable for DB defaults."""
    return dt.datetime.now(dt.UTC)


def monotonic() -> float:
    """Return a monotonic reading in seconds for elapsed-time arithmetic."""
    return time.monotonic()

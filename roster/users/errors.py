"""Errors raised by the user store."""

from __future__ import annotations


class UserStoreError(RuntimeError):
    """Raised when a user store operation cannot be completed."""

    def __init__(self, operation: str, reason: str) -> None:
        """Record the failing operation and a short reason."""
        self.operation = operation
        self.reason = reason
        super().__init__(f"user store {operation} failed: {reason}")

    @classmethod
    def timed_out(cls, operation: str, timeout: float) -> UserStoreError:
        """Return an error for a call that exceeded its deadline."""
        return cls(operation, f"timed out after {timeout:g}s")

    @classmethod
    def unsupported_dialect(cls, dialect: str) -> UserStoreError:
        """Return an error for a database without upsert support."""
        return cls("upsert", f"dialect {dialect!r} is not supported")


class NaiveDatetimeError(ValueError):
    """Raised when a naive datetime is bound to a UTC timestamp column."""

    def __init__(self, column: str = "timestamp") -> None:
        """Name the column that received the naive value."""
        super().__init__(f"{column} must be timezone aware")

"""UserStore protocol and the value types exchanged with it."""

from __future__ import annotations

import dataclasses as dc
import enum
import typing as typ

if typ.TYPE_CHECKING:
    import datetime as dt


class UserRole(enum.StrEnum):
    """Roles a directory user can hold."""

    USER = "user"
    ADMIN = "admin"
    SUPERADMIN = "superadmin"


@dc.dataclass(frozen=True, slots=True)
class UserUpsert:
    """Normalised fields written when a Clerk user is created or updated.

    Attributes
    ----------
    clerk_id
        Trimmed Clerk user id; never empty.
    name
        Display name; never empty.
    username
        Trimmed username, or empty when Clerk sent none.
    email
        Selected lower-cased email, or empty to keep the stored value.
    first_name
        Trimmed first name, or empty.
    last_name
        Trimmed last name, or empty.

    """

    clerk_id: str
    name: str
    username: str = ""
    email: str = ""
    first_name: str = ""
    last_name: str = ""


@dc.dataclass(frozen=True, slots=True)
class UserRecord:
    """A user row as exposed by ``GET /users``."""

    clerk_id: str
    name: str
    email: str
    username: str
    first_name: str
    last_name: str
    role: str
    is_active: bool
    created_at: dt.datetime
    updated_at: dt.datetime
    deleted_at: dt.datetime | None = None
    last_login_at: dt.datetime | None = None


@typ.runtime_checkable
class UserStore(typ.Protocol):
    """Persistence capability consumed by webhook processing and the API.

    Implementations raise :class:`roster.users.errors.UserStoreError` on
    failure.  Every method may block on I/O and must honour cancellation.
    """

    async def upsert_with_role(self, user: UserUpsert) -> None:
        """Create or update ``user``; elect a superadmin when none is active.

        Repeated calls for the same ``clerk_id`` update the row in place,
        never change an existing role, and reactivate a soft-deleted row.
        A blank ``email`` keeps the previously stored address.
        """
        ...

    async def soft_delete(self, clerk_id: str) -> None:
        """Mark the user inactive and deleted; unknown ids are a no-op."""
        ...

    async def hard_delete(self, clerk_id: str) -> bool:
        """Remove the row entirely and return whether one existed."""
        ...

    async def list_users(self) -> list[UserRecord]:
        """Return non-deleted users, newest first."""
        ...

    async def health_check(self) -> bool:
        """Return whether the backing database answers a trivial query."""
        ...

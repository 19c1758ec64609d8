"""Read-only listing of directory users.

Usage
-----
Register the resource on the Falcon app::

    app.add_route("/users", UsersResource(user_store))

"""

from __future__ import annotations

import typing as typ

import falcon

if typ.TYPE_CHECKING:
    import datetime as dt

    from falcon.asgi import Request, Response

    from roster.users.protocol import UserRecord, UserStore

__all__ = ["UsersResource"]


def _isoformat(value: dt.datetime | None) -> str | None:
    return None if value is None else value.isoformat()


def _serialize_user(user: UserRecord) -> dict[str, typ.Any]:
    """Serialize a :class:`UserRecord` to a JSON-compatible dict."""
    return {
        "clerk_id": user.clerk_id,
        "name": user.name,
        "email": user.email,
        "username": user.username,
        "first_name": user.first_name,
        "last_name": user.last_name,
        "role": user.role,
        "is_active": user.is_active,
        "created_at": _isoformat(user.created_at),
        "updated_at": _isoformat(user.updated_at),
        "deleted_at": _isoformat(user.deleted_at),
        "last_login_at": _isoformat(user.last_login_at),
    }


class UsersResource:
    """``GET /users`` returns non-deleted users, newest first."""

    def __init__(self, user_store: UserStore) -> None:
        """Bind the resource to the store it reads from."""
        self._user_store = user_store

    async def on_get(self, _req: Request, resp: Response) -> None:
        """Respond with a JSON array of users; ``[]`` when there are none."""
        users = await self._user_store.list_users()
        resp.media = [_serialize_user(user) for user in users]
        resp.status = falcon.HTTP_200

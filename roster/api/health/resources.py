"""Health probe resource reporting process and database status.

The probe always answers HTTP 200.  A failed database check downgrades the
body to ``{"status": "degraded", "db": "down"}`` instead of erroring, so
orchestrators keep routing to a process that is alive but cut off from
its store.

Usage
-----
Register the health endpoint on the Falcon app::

    app.add_route("/health", HealthResource(user_store))

"""

from __future__ import annotations

import typing as typ
from http import HTTPStatus

if typ.TYPE_CHECKING:
    from falcon.asgi import Request, Response

    from roster.users.protocol import UserStore

__all__ = ["HealthResource"]


class HealthResource:
    """Liveness probe with a database connectivity check."""

    def __init__(self, user_store: UserStore) -> None:
        """Bind the probe to the store it checks."""
        self._user_store = user_store

    async def on_get(self, _req: Request, resp: Response) -> None:
        """Handle GET /health requests.

        Parameters
        ----------
        _req
            Falcon request (unused).
        resp
            Falcon response populated with the probe result.

        """
        if await self._user_store.health_check():
            resp.media = {"status": "ok", "db": "up"}
        else:
            resp.media = {"status": "degraded", "db": "down"}
        resp.status = HTTPStatus.OK

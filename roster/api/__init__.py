"""Roster HTTP API layer.

This package provides the Falcon Asynchronous Server Gateway Interface
(ASGI) application: rate-limit admission, the Clerk webhook endpoint, the
user listing and the health probe.

Usage
-----
Create the application from explicit dependencies::

    from roster.api import AppDependencies, create_app

    app = create_app(dependencies)

Public API
----------
create_app
    Application factory wiring middleware, resources and error handlers.
AppDependencies
    Collaborators injected into the application.
"""

from roster.api.app import AppDependencies, create_app

__all__ = ["AppDependencies", "create_app"]

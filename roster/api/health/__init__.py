"""Health probe resource.

Usage
-----
Import the resource for route registration::

    from roster.api.health.resources import HealthResource
"""

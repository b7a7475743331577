"""Admin REST API for resource-watcher.

Exposes:
    create_app -- FastAPI application factory.
"""

from resource_watcher.api.app import create_app

__all__ = ["create_app"]

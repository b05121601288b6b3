"""
Task tracker backend package.

Exposes the application factory and a ready-built app instance
(``tracker_api.app``) for ASGI servers.
"""

from .main import app, create_app  # noqa: F401

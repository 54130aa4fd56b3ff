"""API routes."""

from devtrack.api.routes import events, health

__all__ = [
    "events",
    "health",
]

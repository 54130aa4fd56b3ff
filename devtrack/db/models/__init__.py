"""Database models."""

from devtrack.db.models.dimensions import App, Branch, Entity, Language, Project
from devtrack.db.models.event import Event

__all__ = [
    "App",
    "Branch",
    "Entity",
    "Event",
    "Language",
    "Project",
]

"""Dimension models.

Free-text identifiers submitted with events are normalized into these
tables. Each table carries a uniqueness constraint on its natural key;
the entity resolver relies on it for exactly-once inserts. Rows are
append-only.
"""

from datetime import datetime

from sqlalchemy import ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from devtrack.core.datetime_utils import utc_now_naive
from devtrack.db.base import Base


class App(Base):
    """Editor or tool that produced events."""

    __tablename__ = "apps"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(default=utc_now_naive)

    __table_args__ = (UniqueConstraint("name"),)

    NATURAL_KEY = ("name",)


class Project(Base):
    """Project, identified by its name and root path."""

    __tablename__ = "projects"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    path: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(default=utc_now_naive)

    __table_args__ = (UniqueConstraint("name", "path"),)

    NATURAL_KEY = ("name", "path")


class Branch(Base):
    """VCS branch; two projects may each have their own "main"."""

    __tablename__ = "branches"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    project_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("projects.id"),
        nullable=False,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(default=utc_now_naive)

    __table_args__ = (UniqueConstraint("project_id", "name"),)

    NATURAL_KEY = ("project_id", "name")


class Entity(Base):
    """Tracked file or code unit within a project."""

    __tablename__ = "entities"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    project_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("projects.id"),
        nullable=False,
    )
    name: Mapped[str] = mapped_column(Text, nullable=False)
    entity_type: Mapped[str] = mapped_column(String(50), nullable=False)
    created_at: Mapped[datetime] = mapped_column(default=utc_now_naive)

    __table_args__ = (UniqueConstraint("project_id", "name", "entity_type"),)

    NATURAL_KEY = ("project_id", "name", "entity_type")


class Language(Base):
    """Programming language."""

    __tablename__ = "languages"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    created_at: Mapped[datetime] = mapped_column(default=utc_now_naive)

    __table_args__ = (UniqueConstraint("name"),)

    NATURAL_KEY = ("name",)

"""Event model."""

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from devtrack.core.datetime_utils import utc_now_naive
from devtrack.db.base import Base


class Event(Base):
    """Developer activity event with normalized dimension keys."""

    __tablename__ = "events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    timestamp: Mapped[datetime] = mapped_column(DateTime(), nullable=False)
    end_timestamp: Mapped[datetime | None] = mapped_column(DateTime())
    duration: Mapped[int | None] = mapped_column(Integer)
    activity_type: Mapped[str] = mapped_column(String(50), nullable=False)
    app_id: Mapped[int] = mapped_column(Integer, ForeignKey("apps.id"), nullable=False)
    project_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("projects.id"))
    branch_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("branches.id"))
    entity_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("entities.id"))
    language_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("languages.id"))
    created_at: Mapped[datetime] = mapped_column(DateTime(), default=utc_now_naive)

    __table_args__ = (
        Index("idx_events_timestamp", "timestamp"),
        Index("idx_events_activity_type", "activity_type"),
        Index("idx_events_project_time", "project_id", "timestamp"),
    )

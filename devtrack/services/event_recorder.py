"""Event recorder: writes one normalized event row."""

from dataclasses import dataclass
from datetime import datetime

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from devtrack.core.datetime_utils import to_utc_naive, utc_now_naive
from devtrack.core.errors import EventRecordError
from devtrack.core.logging import get_logger
from devtrack.db.models import Event

logger = get_logger(__name__)


@dataclass(frozen=True)
class DimensionIds:
    """Resolved foreign keys for one event."""

    app_id: int
    project_id: int | None = None
    branch_id: int | None = None
    entity_id: int | None = None
    language_id: int | None = None


class EventRecorder:
    """Persist events inside the caller's transaction.

    The row is flushed, not committed: the caller commits once every part
    of the submission has succeeded, so an event is visible with all its
    foreign keys or not at all.
    """

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def record(
        self,
        dimensions: DimensionIds,
        activity_type: str,
        timestamp: datetime | None = None,
        end_timestamp: datetime | None = None,
        duration: int | None = None,
    ) -> Event:
        """Build and flush one Event row. Timestamp defaults to now (UTC)."""
        event = Event(
            timestamp=to_utc_naive(timestamp) or utc_now_naive(),
            end_timestamp=to_utc_naive(end_timestamp),
            duration=duration,
            activity_type=activity_type,
            app_id=dimensions.app_id,
            project_id=dimensions.project_id,
            branch_id=dimensions.branch_id,
            entity_id=dimensions.entity_id,
            language_id=dimensions.language_id,
        )

        try:
            self.db.add(event)
            await self.db.flush()
        except SQLAlchemyError as e:
            raise EventRecordError(f"Failed to record {activity_type} event: {e}") from e

        logger.debug(
            "Event recorded",
            extra={"event_id": event.id, "activity_type": activity_type},
        )
        return event

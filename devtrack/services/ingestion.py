"""Ingestion: resolve every dimension of a submission, then record the event."""

from datetime import datetime

from pydantic import BaseModel, Field, model_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from devtrack.core.datetime_utils import to_utc_naive, utc_now
from devtrack.core.errors import EventRecordError
from devtrack.core.logging import get_logger
from devtrack.db.models import Event
from devtrack.services.entity_resolver import EntityResolver
from devtrack.services.event_recorder import DimensionIds, EventRecorder

logger = get_logger(__name__)


class EventInput(BaseModel):
    """Inbound event submission."""

    timestamp: datetime | None = Field(
        default=None,
        description="Event start; defaults to the time of ingestion",
    )
    duration: int | None = Field(
        default=None,
        ge=0,
        description="Duration in whole seconds",
    )
    activity_type: str = Field(
        ...,
        min_length=1,
        max_length=50,
        description="Activity (open, save, focus, typing, ...)",
    )
    app_name: str = Field(..., min_length=1, max_length=255)
    entity_name: str = Field(..., min_length=1)
    entity_type: str = Field(..., min_length=1, max_length=50)
    project_name: str = Field(..., min_length=1, max_length=255)
    project_path: str = Field(..., min_length=1)
    branch_name: str = Field(..., min_length=1, max_length=255)
    language_name: str = Field(..., min_length=1, max_length=100)
    end_timestamp: datetime | None = None

    @model_validator(mode="after")
    def check_end_after_start(self) -> "EventInput":
        """Default the start to now, then check the event does not end before it starts."""
        if self.timestamp is None:
            self.timestamp = utc_now()
        start = to_utc_naive(self.timestamp)
        end = to_utc_naive(self.end_timestamp)
        if end is not None and end < start:
            raise ValueError("end_timestamp must not be earlier than timestamp")
        return self


class EventIngestionService:
    """Drive the resolver and recorder for one submission in one transaction."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db
        self.resolver = EntityResolver(db)
        self.recorder = EventRecorder(db)

    async def ingest(self, payload: EventInput) -> Event:
        """
        Resolve app, project, branch, entity and language, then record the event.

        Dimensions are resolved in a fixed order so concurrent submissions
        take row locks in the same order. On any failure the transaction is
        rolled back, leaving neither the event nor rows created for it.

        Raises:
            ResolutionError: A dimension could not be resolved
            EventRecordError: The event row could not be written
        """
        try:
            app_id = await self.resolver.find_or_insert_app(payload.app_name)
            project_id = await self.resolver.find_or_insert_project(
                payload.project_name, payload.project_path
            )
            branch_id = await self.resolver.find_or_insert_branch(project_id, payload.branch_name)
            entity_id = await self.resolver.find_or_insert_entity(
                project_id, payload.entity_name, payload.entity_type
            )
            language_id = await self.resolver.find_or_insert_language(payload.language_name)

            event = await self.recorder.record(
                DimensionIds(
                    app_id=app_id,
                    project_id=project_id,
                    branch_id=branch_id,
                    entity_id=entity_id,
                    language_id=language_id,
                ),
                activity_type=payload.activity_type,
                timestamp=payload.timestamp,
                end_timestamp=payload.end_timestamp,
                duration=payload.duration,
            )
            try:
                await self.db.commit()
            except SQLAlchemyError as e:
                raise EventRecordError(f"Failed to commit {payload.activity_type} event: {e}") from e
        except Exception:
            await self.db.rollback()
            raise

        logger.info(
            f"Ingested {payload.activity_type} event",
            extra={
                "event_type": "event_ingested",
                "event_id": event.id,
                "project": payload.project_name,
                "app": payload.app_name,
            },
        )
        return event

"""Event endpoints."""

from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from devtrack.api.deps import get_db_session
from devtrack.core.errors import EventRecordError, ResolutionError
from devtrack.core.logging import get_logger, log_error
from devtrack.db.models import App, Branch, Entity, Event, Language, Project
from devtrack.services.ingestion import EventIngestionService, EventInput

logger = get_logger(__name__)

router = APIRouter()


class EventResponse(BaseModel):
    """Recorded event with its dimension names resolved."""

    id: int
    timestamp: datetime
    end_timestamp: datetime | None
    duration: int | None
    activity_type: str
    app_name: str
    project_name: str | None
    project_path: str | None
    branch_name: str | None
    entity_name: str | None
    entity_type: str | None
    language_name: str | None


@router.post("")
async def create_event(
    payload: EventInput,
    db: AsyncSession = Depends(get_db_session),
) -> str:
    """Receive one event from a client agent."""
    service = EventIngestionService(db)
    try:
        await service.ingest(payload)
    except ResolutionError as e:
        log_error(
            logger,
            "Event rejected: dimension resolution failed",
            error=e,
            extra={"dimension": e.dimension, "activity_type": payload.activity_type},
        )
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"Failed to resolve {e.dimension}",
        ) from e
    except EventRecordError as e:
        log_error(
            logger,
            "Event rejected: record failed",
            error=e,
            extra={"activity_type": payload.activity_type},
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to record event",
        ) from e

    return "Event recorded"


@router.get("", response_model=list[EventResponse])
async def get_events(
    activity_type: str | None = Query(
        default=None,
        max_length=50,
        description="Filter by activity type",
    ),
    project_name: str | None = Query(
        default=None,
        max_length=255,
        description="Filter by project name",
    ),
    limit: int = Query(
        default=100,
        ge=1,
        le=1000,
        description="Maximum number of events to return",
    ),
    offset: int = Query(
        default=0,
        ge=0,
        description="Offset for pagination",
    ),
    db: AsyncSession = Depends(get_db_session),
) -> list[EventResponse]:
    """Query recorded events, newest first."""
    query = (
        select(
            Event,
            App.name,
            Project.name,
            Project.path,
            Branch.name,
            Entity.name,
            Entity.entity_type,
            Language.name,
        )
        .join(App, Event.app_id == App.id)
        .outerjoin(Project, Event.project_id == Project.id)
        .outerjoin(Branch, Event.branch_id == Branch.id)
        .outerjoin(Entity, Event.entity_id == Entity.id)
        .outerjoin(Language, Event.language_id == Language.id)
        .order_by(Event.timestamp.desc(), Event.id.desc())
        .limit(limit)
        .offset(offset)
    )

    if activity_type:
        query = query.where(Event.activity_type == activity_type)
    if project_name:
        query = query.where(Project.name == project_name)

    result = await db.execute(query)
    return [
        EventResponse(
            id=event.id,
            timestamp=event.timestamp,
            end_timestamp=event.end_timestamp,
            duration=event.duration,
            activity_type=event.activity_type,
            app_name=app_name,
            project_name=proj_name,
            project_path=proj_path,
            branch_name=branch_name,
            entity_name=entity_name,
            entity_type=entity_type,
            language_name=language_name,
        )
        for (
            event,
            app_name,
            proj_name,
            proj_path,
            branch_name,
            entity_name,
            entity_type,
            language_name,
        ) in result.all()
    ]

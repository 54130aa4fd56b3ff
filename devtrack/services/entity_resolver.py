"""Entity resolver: idempotent find-or-insert for dimension rows."""

from typing import Any

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_random,
)

from devtrack.core.config import settings
from devtrack.core.errors import ResolutionConflict, ResolutionError
from devtrack.core.logging import get_logger
from devtrack.db.base import Base
from devtrack.db.models import App, Branch, Entity, Language, Project

logger = get_logger(__name__)


class EntityResolver:
    """Resolve natural keys to stable dimension ids.

    ``find_or_insert`` returns the id of the single row matching a natural
    key, creating it when missing. Concurrent callers with the same key all
    converge on the same row: the insert is an atomic insert-or-ignore
    backed by the table's unique constraint, and a lost race is resolved by
    re-reading the winner's row.

    All work happens inside the caller's session and transaction; the
    resolver never commits.
    """

    def __init__(self, db: AsyncSession, max_attempts: int | None = None) -> None:
        self.db = db
        self.max_attempts = max_attempts or settings.resolver_max_attempts

    async def find_or_insert_app(self, name: str) -> int:
        return await self.find_or_insert(App, name=name)

    async def find_or_insert_project(self, name: str, path: str) -> int:
        return await self.find_or_insert(Project, name=name, path=path)

    async def find_or_insert_branch(self, project_id: int, name: str) -> int:
        return await self.find_or_insert(Branch, project_id=project_id, name=name)

    async def find_or_insert_entity(self, project_id: int, name: str, entity_type: str) -> int:
        return await self.find_or_insert(
            Entity,
            project_id=project_id,
            name=name,
            entity_type=entity_type,
        )

    async def find_or_insert_language(self, name: str) -> int:
        return await self.find_or_insert(Language, name=name)

    async def find_or_insert(self, model: type[Base], **natural_key: Any) -> int:
        """
        Return the id of the row identified by ``natural_key``, inserting it if needed.

        Args:
            model: Dimension model (App, Project, Branch, Entity, Language)
            **natural_key: Column values forming the model's natural key

        Returns:
            Store-assigned id of the single matching row

        Raises:
            ResolutionError: The store failed, or the row never became visible
            ValueError: ``natural_key`` does not name exactly the model's key columns
        """
        dimension = model.__tablename__
        expected = model.NATURAL_KEY  # type: ignore[attr-defined]
        if set(natural_key) != set(expected):
            raise ValueError(
                f"{dimension} is keyed by {', '.join(expected)}, got {', '.join(sorted(natural_key))}"
            )

        retrying = AsyncRetrying(
            retry=retry_if_exception_type(ResolutionConflict),
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_random(0, 0.05),
            reraise=True,
        )

        try:
            async for attempt in retrying:
                with attempt:
                    row_id = await self._find_or_insert_once(model, natural_key)
        except ResolutionConflict as e:
            raise ResolutionError(
                dimension,
                f"row for {natural_key} not visible after {self.max_attempts} attempts",
            ) from e
        except SQLAlchemyError as e:
            raise ResolutionError(dimension, str(e)) from e

        return row_id

    async def _find_or_insert_once(self, model: type[Base], natural_key: dict[str, Any]) -> int:
        query = select(model.id).where(  # type: ignore[attr-defined]
            *(getattr(model, column) == value for column, value in natural_key.items())
        )

        result = await self.db.execute(query)
        row_id = result.scalar_one_or_none()
        if row_id is not None:
            return row_id

        await self._insert_ignoring_conflict(model, natural_key)

        result = await self.db.execute(query)
        row_id = result.scalar_one_or_none()
        if row_id is None:
            logger.debug(
                "Dimension row not visible after insert",
                extra={"dimension": model.__tablename__, "natural_key": natural_key},
            )
            raise ResolutionConflict(f"{model.__tablename__} {natural_key}")
        return row_id

    async def _insert_ignoring_conflict(self, model: type[Base], natural_key: dict[str, Any]) -> None:
        dialect = self.db.get_bind().dialect.name

        if dialect in ("postgresql", "sqlite"):
            insert = pg_insert if dialect == "postgresql" else sqlite_insert
            stmt = (
                insert(model)
                .values(**natural_key)
                .on_conflict_do_nothing(index_elements=list(model.NATURAL_KEY))  # type: ignore[attr-defined]
            )
            result = await self.db.execute(stmt)
            if result.rowcount:
                logger.info(
                    f"Created {model.__tablename__} row",
                    extra={"event_type": "dimension_created", "natural_key": natural_key},
                )
            return

        # No insert-or-ignore available: let the unique constraint arbitrate
        try:
            async with self.db.begin_nested():
                self.db.add(model(**natural_key))
        except IntegrityError:
            logger.debug(
                "Concurrent insert won the race",
                extra={"dimension": model.__tablename__, "natural_key": natural_key},
            )

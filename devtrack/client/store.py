"""Local SQLite event store used when no ingestion server is configured."""

from pathlib import Path

from sqlalchemy import Integer, String, Text, create_engine, select
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column, sessionmaker

from devtrack.client.events import EventRecord
from devtrack.core.datetime_utils import to_rfc3339
from devtrack.core.errors import EventPersistenceError
from devtrack.core.logging import get_logger

logger = get_logger(__name__)


class LocalBase(DeclarativeBase):
    pass


class LocalEvent(LocalBase):
    """One row per emitted record; timestamps stored as RFC3339 text."""

    __tablename__ = "events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    file: Mapped[str] = mapped_column(Text, nullable=False)
    activity: Mapped[str] = mapped_column(String(50), nullable=False)
    branch_name: Mapped[str] = mapped_column(String(255), nullable=False)
    language: Mapped[str] = mapped_column(String(100), nullable=False)
    project: Mapped[str] = mapped_column(String(255), nullable=False)
    editor: Mapped[str] = mapped_column(String(255), nullable=False)
    # "metadata" is reserved on declarative classes
    meta: Mapped[str] = mapped_column("metadata", Text, nullable=False)
    timestamp: Mapped[str] = mapped_column(String(64), nullable=False)
    duration: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


class LocalEventStore:
    """Append-only event log in a local SQLite file."""

    def __init__(self, database_url: str) -> None:
        if database_url.startswith("sqlite:///") and not database_url.endswith(":memory:"):
            Path(database_url.removeprefix("sqlite:///")).parent.mkdir(parents=True, exist_ok=True)

        self.engine = create_engine(database_url)
        LocalBase.metadata.create_all(self.engine)
        self._session_maker = sessionmaker(self.engine, class_=Session, expire_on_commit=False)

    def write(self, record: EventRecord) -> None:
        row = LocalEvent(
            file=record.file,
            activity=record.activity,
            branch_name=record.branch_name,
            language=record.language,
            project=record.project,
            editor=record.editor,
            meta=record.metadata,
            timestamp=to_rfc3339(record.timestamp),
            duration=record.duration,
        )
        try:
            with self._session_maker.begin() as session:
                session.add(row)
        except OperationalError as e:
            # locked or unreachable database; worth another try
            raise EventPersistenceError(f"Failed to insert event: {e}", record, retryable=True) from e
        except SQLAlchemyError as e:
            raise EventPersistenceError(f"Failed to insert event: {e}", record) from e

    def recent(self, limit: int = 20) -> list[LocalEvent]:
        """Most recent events first."""
        with self._session_maker() as session:
            result = session.execute(
                select(LocalEvent).order_by(LocalEvent.id.desc()).limit(limit)
            )
            return list(result.scalars().all())

    def close(self) -> None:
        self.engine.dispose()

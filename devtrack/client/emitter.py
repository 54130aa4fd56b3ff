"""Event emitter: complete an observed activity and hand it to a sink."""

from collections.abc import Callable
from datetime import datetime
from typing import Protocol

from devtrack.client.events import (
    DEFAULT_DURATION,
    DEFAULT_METADATA,
    ActivityEvent,
    EventRecord,
)
from devtrack.client.probe import get_git_branch, get_project_root
from devtrack.core.datetime_utils import utc_now
from devtrack.core.errors import EventPersistenceError
from devtrack.core.logging import get_logger
from devtrack.core.retry import retry_with_backoff

logger = get_logger(__name__)


class EventSink(Protocol):
    """Persistence boundary for event records.

    Implementations raise ``EventPersistenceError`` when a write is rejected.
    """

    def write(self, record: EventRecord) -> None: ...

    def close(self) -> None: ...


class EventEmitter:
    """Resolve branch and project root for an event, then write one record."""

    def __init__(
        self,
        sink: EventSink,
        branch_probe: Callable[[str], str] = get_git_branch,
        root_probe: Callable[[str], str] = get_project_root,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.sink = sink
        self.branch_probe = branch_probe
        self.root_probe = root_probe
        self.clock = clock

    def build_record(self, event: ActivityEvent) -> EventRecord:
        key = event.key
        return EventRecord(
            file=key.file,
            activity=event.activity.value,
            language=key.language,
            project=key.project,
            project_path=self.root_probe(key.file),
            editor=key.editor,
            branch_name=self.branch_probe(key.file),
            metadata=event.metadata if event.metadata is not None else DEFAULT_METADATA,
            duration=event.duration if event.duration is not None else DEFAULT_DURATION,
            timestamp=self.clock(),
        )

    def emit(self, event: ActivityEvent) -> EventRecord:
        """
        Write one record for ``event``.

        Returns:
            The record that was persisted

        Raises:
            EventPersistenceError: The sink rejected the write. The record is
                attached so the caller can retry or drop it.
        """
        record = self.build_record(event)
        try:
            self.sink.write(record)
        except EventPersistenceError as e:
            if e.record is None:
                e.record = record
            raise

        logger.debug(
            f"Emitted {record.activity} event for {record.file}",
            extra={"event_type": "event_emitted", "duration": record.duration},
        )
        return record


def send_with_retry(
    emitter: EventEmitter,
    event: ActivityEvent,
    attempts: int,
    min_wait: float = 1,
    max_wait: float = 10,
) -> EventRecord:
    """Emit ``event``, retrying transient sink failures up to ``attempts`` times in total."""

    @retry_with_backoff(max_attempts=max(attempts, 1), min_wait=min_wait, max_wait=max_wait)
    def _send() -> EventRecord:
        return emitter.emit(event)

    return _send()

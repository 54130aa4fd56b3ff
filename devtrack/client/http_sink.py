"""HTTP sink: deliver event records to the ingestion server."""

from typing import Any

import httpx

from devtrack.client.events import EventRecord
from devtrack.core.datetime_utils import to_rfc3339
from devtrack.core.errors import EventPersistenceError
from devtrack.core.logging import get_logger
from devtrack.core.retry import is_retryable_http_error

logger = get_logger(__name__)

ENTITY_TYPE_FILE = "file"


def to_submission(record: EventRecord) -> dict[str, Any]:
    """Map a client record onto the ingestion endpoint's body."""
    return {
        "timestamp": to_rfc3339(record.timestamp),
        "duration": record.duration,
        "activity_type": record.activity,
        "app_name": record.editor,
        "entity_name": record.file,
        "entity_type": ENTITY_TYPE_FILE,
        "project_name": record.project,
        "project_path": record.project_path,
        "branch_name": record.branch_name,
        "language_name": record.language,
    }


class HttpEventSink:
    """POST each record to ``{base_url}/events``."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 5.0,
        client: httpx.Client | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.client = client or httpx.Client(timeout=timeout)

    def write(self, record: EventRecord) -> None:
        url = f"{self.base_url}/events"
        try:
            response = self.client.post(url, json=to_submission(record))
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            detail = e.response.text[:200]
            raise EventPersistenceError(
                f"Server rejected event ({e.response.status_code}): {detail}",
                record,
                retryable=is_retryable_http_error(e),
            ) from e
        except httpx.HTTPError as e:
            raise EventPersistenceError(
                f"Failed to deliver event to {url}: {e}",
                record,
                retryable=is_retryable_http_error(e),
            ) from e

    def close(self) -> None:
        self.client.close()

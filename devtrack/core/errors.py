"""Error types shared by the client agent and the ingestion server."""

from typing import Any


class DevtrackError(Exception):
    """Base class for devtrack errors."""


class EventPersistenceError(DevtrackError):
    """Raised when the client's persistence boundary rejects an event record.

    The record that failed to persist is kept on the exception so the caller
    can decide whether to retry, log or drop it. ``retryable`` is set when
    the underlying failure was transient (timeouts, 5xx, locked database).
    """

    def __init__(self, message: str, record: Any = None, retryable: bool = False) -> None:
        super().__init__(message)
        self.record = record
        self.retryable = retryable


class PersistenceError(DevtrackError):
    """Raised when the server store fails while handling a submission."""


class ResolutionError(PersistenceError):
    """A dimension (app, project, branch, entity, language) could not be resolved."""

    def __init__(self, dimension: str, message: str) -> None:
        super().__init__(f"Failed to resolve {dimension}: {message}")
        self.dimension = dimension


class EventRecordError(PersistenceError):
    """The event row could not be written."""


class ResolutionConflict(DevtrackError):
    """A concurrent insert raced with ours and the winning row is not visible yet.

    Only raised and handled inside the entity resolver.
    """

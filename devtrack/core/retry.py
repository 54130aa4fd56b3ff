"""Retry helpers.

Nothing in devtrack retries on its own initiative: callers opt in by
wrapping a send with ``retry_with_backoff``. The entity resolver's internal
convergence loop lives with the resolver.
"""

import logging
from typing import Any, Callable, TypeVar

from httpx import ConnectError, HTTPStatusError, NetworkError, TimeoutException
from tenacity import (
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from devtrack.core.errors import EventPersistenceError

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Transient transport errors
RETRYABLE_HTTP_EXCEPTIONS = (
    TimeoutException,
    ConnectError,
    NetworkError,
)


def is_retryable_http_error(exception: BaseException) -> bool:
    """Check if HTTP error is retryable (5xx or specific 4xx errors)."""
    if isinstance(exception, HTTPStatusError):
        status_code = exception.response.status_code
        if 500 <= status_code < 600:
            return True
        # Request Timeout, Too Many Requests
        return status_code in (408, 429)
    return isinstance(exception, RETRYABLE_HTTP_EXCEPTIONS)


def is_retryable_persistence_error(exception: BaseException) -> bool:
    """A persistence failure is worth retrying when its cause was transient."""
    return isinstance(exception, EventPersistenceError) and exception.retryable


def _log_retry(retry_state: Any) -> None:
    fn_name = getattr(retry_state.fn, "__name__", "call")
    logger.warning(
        f"Retrying {fn_name} after {retry_state.outcome.exception()}"
        f" (attempt {retry_state.attempt_number})"
    )


def retry_with_backoff(
    max_attempts: int = 3,
    min_wait: float = 1,
    max_wait: float = 10,
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """
    Decorator to retry an event send with exponential backoff.

    Only ``EventPersistenceError`` flagged as retryable triggers another
    attempt; the last error is re-raised once attempts run out.

    Args:
        max_attempts: Maximum number of attempts (1 disables retrying)
        min_wait: Minimum wait time in seconds
        max_wait: Maximum wait time in seconds

    Returns:
        Decorated function with retry logic
    """
    return retry(
        retry=retry_if_exception(is_retryable_persistence_error),
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential(multiplier=1, min=min_wait, max=max_wait),
        reraise=True,
        before_sleep=_log_retry,
    )

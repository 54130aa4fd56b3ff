"""Request logging middleware with request ID tracking."""

import time
import uuid
from collections.abc import Awaitable, Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from devtrack.core.logging import (
    clear_request_id,
    get_logger,
    log_error,
    set_request_id,
)

logger = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log each request and tag its log lines with a request ID.

    The ID comes from the client's ``X-Request-ID`` header when present and
    is echoed back on the response.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        set_request_id(request_id)

        client_host = request.client.host if request.client else "unknown"
        method = request.method
        path = request.url.path
        start_time = time.time()

        logger.info(
            f"Request started: {method} {path}",
            extra={
                "event_type": "request_started",
                "method": method,
                "path": path,
                "client_ip": client_host,
            },
        )

        try:
            response = await call_next(request)

            logger.info(
                f"Request completed: {method} {path} - {response.status_code}",
                extra={
                    "event_type": "request_completed",
                    "method": method,
                    "path": path,
                    "status_code": response.status_code,
                    "duration_ms": round((time.time() - start_time) * 1000, 2),
                    "client_ip": client_host,
                },
            )

            response.headers[REQUEST_ID_HEADER] = request_id
            return response

        except Exception as e:
            log_error(
                logger,
                f"Request failed: {method} {path}",
                error=e,
                extra={
                    "event_type": "request_failed",
                    "method": method,
                    "path": path,
                    "duration_ms": round((time.time() - start_time) * 1000, 2),
                    "client_ip": client_host,
                },
            )
            raise

        finally:
            clear_request_id()

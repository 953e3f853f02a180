"""
Logging middleware for the Search Sync service.

This module provides middleware for logging requests and responses.
"""

import time
import uuid
from typing import Callable

import structlog
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from search_sync.utils.metrics import HTTP_REQUESTS

logger = structlog.get_logger(__name__)


class LoggingMiddleware(BaseHTTPMiddleware):
    """
    Middleware for logging requests and responses.

    Binds a request id into the structlog context for the duration of the
    request, logs completion with timing and counts the request.
    """

    async def dispatch(
            self, request: Request, call_next: Callable[[Request], Response]
    ) -> Response:
        """
        Process a request and log information about it.

        Args:
            request: The incoming request
            call_next: The next middleware or route handler

        Returns:
            The response from the next middleware or route handler
        """
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())

        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
        )

        start_time = time.time()

        try:
            response = await call_next(request)

            process_time = time.time() - start_time
            response.headers["X-Request-ID"] = request_id

            HTTP_REQUESTS.labels(
                method=request.method,
                endpoint=request.url.path,
                status=response.status_code,
            ).inc()

            logger.debug(
                "Request completed",
                status_code=response.status_code,
                process_time=f"{process_time:.4f}s",
            )

            return response

        except Exception as e:
            process_time = time.time() - start_time

            logger.exception(
                "Request failed",
                exc_info=e,
                process_time=f"{process_time:.4f}s",
            )
            raise

        finally:
            structlog.contextvars.clear_contextvars()

"""Request-scoped middleware."""

from __future__ import annotations

import logging
import time
from uuid import uuid4

from fastapi import FastAPI, Request
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

from .logging import bind_request_context, clear_request_context, log_context

_REQUEST_LOGGER = logging.getLogger("role_engine.request")

REQUEST_ID_HEADER = "X-Request-ID"
ACTOR_HEADER = "X-Actor"


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Bind the request id as the log correlation id and log one line per request.

    Mutating requests also log the caller from ``X-Actor`` so access lines
    can be matched against the role audit trail.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        correlation_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid4())
        request.state.correlation_id = correlation_id
        bind_request_context(correlation_id)

        actor = None
        if request.method not in {"GET", "HEAD", "OPTIONS"}:
            actor = (request.headers.get(ACTOR_HEADER) or "").strip() or None

        start = time.perf_counter()
        response: Response | None = None
        try:
            response = await call_next(request)
        finally:
            extra = log_context(
                actor=actor,
                path=request.url.path,
                method=request.method,
                duration_ms=round((time.perf_counter() - start) * 1000.0, 2),
                status_code=response.status_code if response is not None else None,
            )
            if response is not None:
                _REQUEST_LOGGER.info("request.complete", extra=extra)
            else:
                # Stack trace is logged by the unhandled exception handler.
                _REQUEST_LOGGER.error("request.error", extra=extra)
            clear_request_context()

        response.headers[REQUEST_ID_HEADER] = correlation_id
        return response


def register_middleware(app: FastAPI) -> None:
    app.add_middleware(RequestContextMiddleware)


__all__ = [
    "ACTOR_HEADER",
    "REQUEST_ID_HEADER",
    "RequestContextMiddleware",
    "register_middleware",
]

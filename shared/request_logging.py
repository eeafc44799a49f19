"""
Request logging middleware.

Every request gets a request id bound into structlog's contextvars, so any
log line emitted while handling it carries the id. Completion is logged with
status and timing, and the id is echoed back as X-Request-ID.
"""

from __future__ import annotations

import time

import structlog
from fastapi import FastAPI, Request

from shared.generators import generate_request_id
from shared.logging import get_logger

log = get_logger("redsource.request")

REQUEST_ID_HEADER = "X-Request-ID"


def register_request_logging(app: FastAPI) -> None:
    @app.middleware("http")
    async def request_context(request: Request, call_next):
        started = time.perf_counter()
        request_id = generate_request_id()

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
        )

        response = await call_next(request)

        duration_ms = int((time.perf_counter() - started) * 1000)
        if response.status_code >= 500:
            log_fn = log.error
        elif response.status_code >= 400:
            log_fn = log.warning
        else:
            log_fn = log.info
        log_fn(
            "request_completed",
            status_code=response.status_code,
            duration_ms=duration_ms,
        )

        response.headers[REQUEST_ID_HEADER] = request_id
        return response

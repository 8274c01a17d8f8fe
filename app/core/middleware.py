"""Request correlation middleware.

Every response carries the request id (caller-supplied or a fresh UUID) and
the time spent serving it. The id is kept in a contextvar for the duration
of the request so gateway, limiter and downstream logs can be joined.
"""

from __future__ import annotations

import time
import uuid

from fastapi import Request, Response

from app.core.logging import clear_request_id, set_request_id

DEFAULT_REQUEST_ID_HEADER = "X-Request-ID"
DURATION_HEADER = "X-Request-Duration-ms"


def _request_id_header(request: Request) -> str:
    app_settings = getattr(request.app.state, "settings", None)
    if app_settings is None:
        return DEFAULT_REQUEST_ID_HEADER
    return app_settings.log.request_id_header


async def request_id_middleware(request: Request, call_next) -> Response:
    """Tag the request with a correlation id and time it."""

    header_name = _request_id_header(request)
    request_id = request.headers.get(header_name) or uuid.uuid4().hex
    set_request_id(request_id)

    started = time.perf_counter()
    try:
        response: Response = await call_next(request)
    finally:
        clear_request_id()

    elapsed_ms = (time.perf_counter() - started) * 1000
    response.headers[header_name] = request_id
    response.headers.setdefault(DURATION_HEADER, f"{elapsed_ms:.2f}")
    return response

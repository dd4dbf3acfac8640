"""HTTP middleware binding a correlation id to every request.

The id comes from the incoming header named by ``LOG_REQUEST_ID_HEADER`` when
it looks sane, otherwise a fresh UUID4 is minted. It is stamped on every log
line emitted while serving the request and echoed back on the response along
with the handling time.

Usage:
    app.middleware("http")(request_id_middleware)
"""

from __future__ import annotations

import logging
import re
import time
import uuid

from fastapi import Request, Response

from quest_api.core.config import settings
from quest_api.core.logging import clear_request_id, set_request_id

logger = logging.getLogger(__name__)

_SAFE_REQUEST_ID = re.compile(r"^[A-Za-z0-9._:-]{1,128}$")


def resolve_request_id(incoming: str | None) -> str:
    """Reuse a caller supplied id only if it is short and log-safe."""
    if incoming and _SAFE_REQUEST_ID.match(incoming):
        return incoming
    return str(uuid.uuid4())


async def request_id_middleware(request: Request, call_next) -> Response:
    header_name = settings.log.request_id_header
    request_id = resolve_request_id(request.headers.get(header_name))
    set_request_id(request_id)
    # The server error handler runs after the context var below is cleared.
    request.state.request_id = request_id
    started = time.perf_counter()
    try:
        response: Response = await call_next(request)
    except Exception:
        logger.exception(
            "request.failed",
            extra={"method": request.method, "route": request.url.path},
        )
        raise
    else:
        elapsed_ms = (time.perf_counter() - started) * 1000
        logger.info(
            "request.completed",
            extra={
                "method": request.method,
                "route": request.url.path,
                "status": response.status_code,
                "duration_ms": round(elapsed_ms, 2),
            },
        )
    finally:
        clear_request_id()

    response.headers[header_name] = request_id
    response.headers["X-Request-Duration-ms"] = f"{elapsed_ms:.2f}"
    return response

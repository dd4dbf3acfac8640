"""Size-bounded JSON body parsing for protected handlers."""

from __future__ import annotations

import json
import logging
from typing import Any

from fastapi import Request

from quest_api.core.config import settings
from quest_api.core.errors import MalformedInputError, PayloadTooLargeError

logger = logging.getLogger(__name__)


async def read_json_body(request: Request, *, max_bytes: int | None = None) -> Any:
    """Read and parse the request body as JSON, enforcing a size limit.

    Uses ``Content-Length`` when present to reject early, then enforces the
    limit again while streaming the body.

    Args:
        request: Incoming request.
        max_bytes: Size limit; defaults to ``APP_MAX_BODY_BYTES``.

    Returns:
        The parsed JSON value (not necessarily an object; the validator
        checks the root type).

    Raises:
        PayloadTooLargeError: If the body exceeds the limit.
        MalformedInputError: If the body is empty or not valid JSON.
    """
    limit = max_bytes or settings.app.max_body_bytes

    declared = request.headers.get("content-length")
    if declared and declared.isdigit() and int(declared) > limit:
        logger.warning(
            "request_body.rejected_by_header",
            extra={"content_length": int(declared), "max_bytes": limit},
        )
        raise PayloadTooLargeError(
            code="payload_too_large",
            message="Request body too large",
            details={"max_bytes": limit},
        )

    size = 0
    chunks: list[bytes] = []
    async for chunk in request.stream():
        size += len(chunk)
        if size > limit:
            logger.warning(
                "request_body.rejected_by_stream",
                extra={"size": size, "max_bytes": limit},
            )
            raise PayloadTooLargeError(
                code="payload_too_large",
                message="Request body too large",
                details={"max_bytes": limit},
            )
        chunks.append(chunk)

    raw = b"".join(chunks)
    try:
        return json.loads(raw)
    except (UnicodeDecodeError, json.JSONDecodeError, RecursionError) as exc:
        logger.info("request_body.invalid_json", extra={"size": size, "error_type": type(exc).__name__})
        raise MalformedInputError(code="invalid_json", message="Invalid JSON") from exc

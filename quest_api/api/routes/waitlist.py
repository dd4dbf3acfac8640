from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Request

from quest_api.adapters.waitlist.base import AbstractWaitlistRepository, WaitlistEntry
from quest_api.api.dependencies import get_waitlist_repository
from quest_api.core.config import settings
from quest_api.core.logging import mask_email
from quest_api.core.rate_limit import ip_rate_limit
from quest_api.core.request_body import read_json_body
from quest_api.schemas.waitlist import WaitlistResponse
from quest_api.validation import ValidationSchema, schema, validate_or_raise

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Waitlist"])

WAITLIST_SCHEMA = ValidationSchema(
    firstName=schema.required_string(min_length=1, max_length=100),
    lastName=schema.required_string(min_length=1, max_length=100),
    email=schema.required_email(),
    role=schema.required_enum(["student", "teacher"]),
    organization=schema.string(min_length=0, max_length=255),
)


@router.post(
    "/waitlist",
    response_model=WaitlistResponse,
    dependencies=[Depends(ip_rate_limit("waitlist_ip_max_requests"))],
)
async def add_to_waitlist(
    request: Request,
    repository: Annotated[AbstractWaitlistRepository, Depends(get_waitlist_repository)],
) -> WaitlistResponse:
    """Public waitlist signup.

    Rate limited per IP, then the body is validated against a strict
    whitelist schema before anything is stored.

    Raises:
        ThrottledError: 429 when the caller's IP bucket is exhausted.
        ValidationAppError: 400 for malformed JSON or schema violations.
    """
    body = await read_json_body(request)
    data = validate_or_raise(
        body,
        WAITLIST_SCHEMA,
        reject_unknown_fields=settings.app.reject_unknown_fields,
    )

    entry = WaitlistEntry(
        first_name=data["firstName"],
        last_name=data["lastName"],
        email=data["email"],
        role=data["role"],
        organization=data.get("organization") or "",
    )
    created = await repository.add(entry)

    logger.info(
        "waitlist.created" if created else "waitlist.duplicate",
        extra={"role": entry.role, "email_masked": mask_email(entry.email)},
    )
    return WaitlistResponse(success=True)

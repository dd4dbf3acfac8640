from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Request

from quest_api.adapters.identity.base import AuthenticatedUser
from quest_api.api.dependencies import PaymentGatewayProvider, get_payment_gateway_provider
from quest_api.core.auth import get_current_user
from quest_api.core.config import settings
from quest_api.core.errors import AuthenticationAppError, AuthorizationAppError
from quest_api.core.logging import mask_email
from quest_api.core.rate_limit import (
    RateLimiter,
    configured_rule,
    enforce_combined_rate_limit,
    get_rate_limiter,
)
from quest_api.core.request_body import read_json_body
from quest_api.schemas.checkout import CheckoutResponse
from quest_api.validation import ValidationSchema, schema, validate_or_raise

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Billing"])

CHECKOUT_SCHEMA = ValidationSchema(
    priceId=schema.required_string(min_length=1, max_length=255),
    successUrl=schema.required_url(),
    cancelUrl=schema.required_url(),
)


@router.post("/checkout", response_model=CheckoutResponse)
async def create_checkout(
    request: Request,
    user: Annotated[AuthenticatedUser | None, Depends(get_current_user)],
    limiter: Annotated[RateLimiter, Depends(get_rate_limiter)],
    gateway_provider: Annotated[PaymentGatewayProvider, Depends(get_payment_gateway_provider)],
) -> CheckoutResponse:
    """Create a premium subscription checkout session for a teacher.

    Order matters: the combined IP + user limit is consumed before the
    caller's identity and role are checked, and the body is validated
    before the payment provider is called.

    Raises:
        ThrottledError: 429 when either bucket is exhausted.
        AuthenticationAppError: 401 for anonymous callers.
        AuthorizationAppError: 403 for non-teacher accounts.
        ValidationAppError: 400 for malformed JSON or schema violations.
        PaymentAppError: 502 when the provider call fails.
    """
    enforce_combined_rate_limit(
        limiter,
        request,
        user.id if user else None,
        ip_rule=configured_rule(settings.app.checkout_ip_max_requests),
        user_rule=configured_rule(settings.app.checkout_user_max_requests),
    )

    if user is None:
        raise AuthenticationAppError(code="unauthorized", message="Unauthorized")
    if not user.is_teacher:
        logger.warning("checkout.forbidden", extra={"user_id": user.id, "account_type": user.account_type})
        raise AuthorizationAppError(
            code="forbidden",
            message="Only teachers can subscribe to premium",
        )

    body = await read_json_body(request)
    data = validate_or_raise(
        body,
        CHECKOUT_SCHEMA,
        reject_unknown_fields=settings.app.reject_unknown_fields,
    )

    logger.info(
        "checkout.requested",
        extra={"user_id": user.id, "email_masked": mask_email(user.email)},
    )
    gateway = gateway_provider()
    session = await gateway.create_subscription_checkout(
        user=user,
        price_id=data["priceId"],
        success_url=data["successUrl"],
        cancel_url=data["cancelUrl"],
    )
    return CheckoutResponse(url=session.url)

"""Stripe Checkout adapter."""

from __future__ import annotations

import logging
from typing import Any

import stripe

from quest_api.adapters.identity.base import AuthenticatedUser
from quest_api.adapters.payments.base import AbstractPaymentGateway, CheckoutSession
from quest_api.core.errors import PaymentAppError

logger = logging.getLogger(__name__)


class StripeCheckoutClient(AbstractPaymentGateway):
    """Create subscription Checkout sessions through the Stripe SDK.

    Uses ``StripeClient`` with its httpx transport so the calls stay async.
    """

    def __init__(
        self,
        api_key: str,
        *,
        base_url: str = "https://api.stripe.com",
        timeout_seconds: float = 20.0,
        trial_period_days: int = 30,
        app_id: str | None = None,
    ) -> None:
        """Initialize the Stripe client.

        Args:
            api_key: Stripe secret key.
            base_url: API base URL (overridable for stripe-mock).
            timeout_seconds: Timeout for requests in seconds.
            trial_period_days: Free trial granted on new subscriptions.
            app_id: Application id attached to session metadata.
        """
        self.client = stripe.StripeClient(
            api_key,
            base_addresses={"api": base_url.rstrip("/")},
            http_client=stripe.HTTPXClient(timeout=timeout_seconds),
            max_network_retries=0,
        )
        self.trial_period_days = trial_period_days
        self.app_id = app_id

    def build_session_params(
        self,
        *,
        user: AuthenticatedUser,
        price_id: str,
        success_url: str,
        cancel_url: str,
    ) -> dict[str, Any]:
        """Parameters for ``checkout.sessions.create``."""
        metadata = {"user_id": user.id, "user_email": user.email}
        if self.app_id:
            metadata["app_id"] = self.app_id

        return {
            "mode": "subscription",
            "payment_method_types": ["card"],
            "line_items": [{"price": price_id, "quantity": 1}],
            "success_url": success_url,
            "cancel_url": cancel_url,
            "customer_email": user.email,
            "allow_promotion_codes": True,
            "subscription_data": {
                "trial_period_days": self.trial_period_days,
                "metadata": {"user_id": user.id, "user_email": user.email},
            },
            "metadata": metadata,
        }

    async def create_subscription_checkout(
        self,
        *,
        user: AuthenticatedUser,
        price_id: str,
        success_url: str,
        cancel_url: str,
    ) -> CheckoutSession:
        params = self.build_session_params(
            user=user,
            price_id=price_id,
            success_url=success_url,
            cancel_url=cancel_url,
        )

        try:
            session = await self.client.checkout.sessions.create_async(params=params)
        except stripe.APIConnectionError as exc:
            logger.error(
                "payments.request_failed",
                extra={"provider": "stripe", "error_type": type(exc).__name__},
            )
            raise PaymentAppError(
                code="payment_provider_unavailable",
                message="Failed to create checkout session",
                details={"provider": "stripe"},
            ) from exc
        except stripe.StripeError as exc:
            logger.error(
                "payments.provider_error",
                extra={
                    "provider": "stripe",
                    "http_status": exc.http_status,
                    "provider_error_type": type(exc).__name__,
                },
            )
            raise PaymentAppError(
                code="payment_provider_error",
                message="Failed to create checkout session",
                details={"provider": "stripe", "http_status": exc.http_status},
            ) from exc

        logger.info("checkout.session_created", extra={"provider": "stripe", "session_id": session.id})
        return CheckoutSession(id=session.id, url=session.url)

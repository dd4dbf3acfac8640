"""Factory for creating the configured payment gateway."""

from quest_api.adapters.payments.base import AbstractPaymentGateway
from quest_api.adapters.payments.stripe_client import StripeCheckoutClient
from quest_api.core.config import settings
from quest_api.core.errors import PaymentAppError


def create_payment_gateway() -> AbstractPaymentGateway:
    """Instantiate the payment gateway named by ``PAYMENTS_PROVIDER``.

    Returns:
        AbstractPaymentGateway: Configured gateway.

    Raises:
        PaymentAppError: If the provider is unknown or its key is missing.
    """
    provider = settings.payments.provider.lower()

    if provider == "stripe":
        if not settings.payments.api_key:
            raise PaymentAppError(
                code="payments_missing_api_key",
                message="Stripe provider requires PAYMENTS_API_KEY environment variable",
            )
        return StripeCheckoutClient(
            settings.payments.api_key,
            base_url=settings.payments.base_url,
            timeout_seconds=settings.payments.timeout_seconds,
            trial_period_days=settings.payments.trial_period_days,
            app_id=settings.payments.app_id,
        )

    raise PaymentAppError(
        code="payments_unknown_provider",
        message=f"Unknown payment provider: '{provider}'. Supported providers: stripe",
    )

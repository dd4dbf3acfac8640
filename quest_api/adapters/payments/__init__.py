"""Payment adapters - abstracts over the checkout provider."""

from quest_api.adapters.payments.base import AbstractPaymentGateway, CheckoutSession
from quest_api.adapters.payments.factory import create_payment_gateway
from quest_api.adapters.payments.stripe_client import StripeCheckoutClient

__all__ = [
    "AbstractPaymentGateway",
    "CheckoutSession",
    "StripeCheckoutClient",
    "create_payment_gateway",
]

"""Shared FastAPI dependencies injected into route handlers.

Collaborators are built lazily and cached per process. Tests replace them
through ``app.dependency_overrides``.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Callable

from quest_api.adapters.payments.base import AbstractPaymentGateway
from quest_api.adapters.payments.factory import create_payment_gateway
from quest_api.adapters.waitlist.base import AbstractWaitlistRepository
from quest_api.adapters.waitlist.in_memory import InMemoryWaitlistRepository


@lru_cache(maxsize=1)
def get_waitlist_repository() -> AbstractWaitlistRepository:
    """Retrieve the process-wide waitlist repository."""
    return InMemoryWaitlistRepository()


@lru_cache(maxsize=1)
def get_payment_gateway() -> AbstractPaymentGateway:
    """Retrieve the configured payment gateway.

    Raises:
        PaymentAppError: If payments are not configured.
    """
    return create_payment_gateway()


PaymentGatewayProvider = Callable[[], AbstractPaymentGateway]


def get_payment_gateway_provider() -> PaymentGatewayProvider:
    """Defer gateway construction until a handler actually needs it.

    Checkout must run its rate limit and role checks before a misconfigured
    provider can surface as a 502.
    """
    return get_payment_gateway

"""Abstract payment gateway interface."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass

from quest_api.adapters.identity.base import AuthenticatedUser


@dataclass(frozen=True)
class CheckoutSession:
    id: str
    url: str


class AbstractPaymentGateway(ABC):
    """Interface for payment providers creating hosted checkout pages."""

    @abstractmethod
    async def create_subscription_checkout(
        self,
        *,
        user: AuthenticatedUser,
        price_id: str,
        success_url: str,
        cancel_url: str,
    ) -> CheckoutSession:
        """Create a subscription checkout session for ``user``.

        Args:
            user: Paying user; its id and email are attached as metadata.
            price_id: Provider price identifier.
            success_url: Redirect target after payment.
            cancel_url: Redirect target when the user abandons checkout.

        Returns:
            CheckoutSession: Provider session id and hosted page URL.

        Raises:
            PaymentAppError: If the provider call fails.
        """
        raise NotImplementedError

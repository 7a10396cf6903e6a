"""
Interface for payment providers.

Abstracts payment processing away from specific platforms (Stripe, PayPal, etc.)
"""

from abc import ABC, abstractmethod
from typing import Optional

from packages.billing.models.domain.stripe_webhooks import StripeSubscriptionData


class PaymentProviderInterface(ABC):
    """Abstract interface for payment providers."""

    @abstractmethod
    def is_configured(self) -> bool:
        """True when API credentials are present."""
        pass

    @abstractmethod
    async def create_customer(
        self,
        user_id: int,
        email: Optional[str] = None,
        name: Optional[str] = None,
    ) -> str:
        """
        Create a customer in the payment provider.

        Args:
            user_id: Internal user ID, stored in customer metadata
            email: Customer email
            name: Customer display name

        Returns:
            customer_id: Payment provider customer ID
        """
        pass

    @abstractmethod
    async def create_checkout_session(
        self,
        customer_id: str,
        price_id: str,
        success_url: str,
        cancel_url: str,
        metadata: dict[str, str],
        subscription_metadata: dict[str, str],
    ) -> str:
        """
        Create a subscription checkout session.

        Args:
            customer_id: Payment provider customer ID
            price_id: Price to subscribe to
            success_url: URL to redirect on success
            cancel_url: URL to redirect on cancel
            metadata: Metadata attached to the session
            subscription_metadata: Metadata copied onto the created subscription

        Returns:
            checkout_url: Redirect URL for the hosted checkout page
        """
        pass

    @abstractmethod
    async def create_customer_portal_session(
        self,
        customer_id: str,
        return_url: str,
    ) -> str:
        """
        Create a customer portal session for managing billing details.

        Returns:
            portal_url: URL to customer portal
        """
        pass

    @abstractmethod
    async def retrieve_subscription(
        self, subscription_id: str
    ) -> StripeSubscriptionData:
        """Fetch the processor's authoritative view of a subscription."""
        pass

    @abstractmethod
    async def change_subscription_price(
        self,
        subscription_id: str,
        price_id: str,
        metadata: dict[str, str],
    ) -> StripeSubscriptionData:
        """
        Swap the subscription's price immediately, with proration.

        Args:
            subscription_id: Payment provider subscription ID
            price_id: New price
            metadata: Metadata merged onto the subscription
        """
        pass

    @abstractmethod
    async def set_cancel_at_period_end(
        self, subscription_id: str, cancel_at_period_end: bool = True
    ) -> StripeSubscriptionData:
        """Flag (or unflag) the subscription to end when the current period ends."""
        pass

    @abstractmethod
    async def cancel_subscription(self, subscription_id: str) -> None:
        """Cancel a subscription immediately."""
        pass

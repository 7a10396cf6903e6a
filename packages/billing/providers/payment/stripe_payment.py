"""
Stripe implementation of payment provider.
"""

from typing import Optional
import stripe

from common.core.config import settings
from common.core.exceptions import PaymentProviderError
from common.core.telemetry import trace_span, get_logger
from packages.billing.models.domain.stripe_webhooks import StripeSubscriptionData
from packages.billing.providers.payment.interface import PaymentProviderInterface

logger = get_logger(__name__)


def _to_subscription_data(subscription) -> StripeSubscriptionData:
    if hasattr(subscription, "to_dict_recursive"):
        data = subscription.to_dict_recursive()
    elif hasattr(subscription, "to_dict"):
        data = subscription.to_dict()
    else:
        data = dict(subscription)
    return StripeSubscriptionData.model_validate(data)


class StripePaymentProvider(PaymentProviderInterface):
    """Stripe-based payment implementation."""

    def __init__(self):
        """Initialize Stripe with API credentials."""
        stripe.api_key = settings.stripe_secret_key

    def is_configured(self) -> bool:
        return bool(settings.stripe_secret_key)

    @trace_span
    async def create_customer(
        self,
        user_id: int,
        email: Optional[str] = None,
        name: Optional[str] = None,
    ) -> str:
        """Create a Stripe customer."""
        try:
            customer = stripe.Customer.create(
                email=email,
                name=name,
                metadata={"user_id": str(user_id)},
            )

            logger.info(
                "Created Stripe customer",
                extra={"user_id": user_id, "customer_id": customer.id},
            )

            return customer.id

        except stripe.StripeError as e:
            logger.error(
                f"Failed to create Stripe customer: {str(e)}",
                extra={"user_id": user_id, "error": str(e)},
            )
            raise PaymentProviderError(str(e)) from e

    @trace_span
    async def create_checkout_session(
        self,
        customer_id: str,
        price_id: str,
        success_url: str,
        cancel_url: str,
        metadata: dict[str, str],
        subscription_metadata: dict[str, str],
    ) -> str:
        """Create Stripe checkout session in subscription mode."""
        try:
            session = stripe.checkout.Session.create(
                customer=customer_id,
                payment_method_types=["card"],
                line_items=[
                    {
                        "price": price_id,
                        "quantity": 1,
                    }
                ],
                mode="subscription",
                success_url=success_url,
                cancel_url=cancel_url,
                metadata=metadata,
                subscription_data={"metadata": subscription_metadata},
            )

            logger.info(
                "Created Stripe checkout session",
                extra={
                    "customer_id": customer_id,
                    "price_id": price_id,
                    "session_id": session.id,
                },
            )

            return session.url

        except stripe.StripeError as e:
            logger.error(
                f"Failed to create checkout session: {str(e)}",
                extra={"customer_id": customer_id, "error": str(e)},
            )
            raise PaymentProviderError(str(e)) from e

    @trace_span
    async def create_customer_portal_session(
        self,
        customer_id: str,
        return_url: str,
    ) -> str:
        """Create Stripe customer portal session."""
        try:
            session = stripe.billing_portal.Session.create(
                customer=customer_id,
                return_url=return_url,
            )

            logger.info(
                "Created Stripe portal session", extra={"customer_id": customer_id}
            )

            return session.url

        except stripe.StripeError as e:
            logger.error(
                f"Failed to create portal session: {str(e)}",
                extra={"customer_id": customer_id, "error": str(e)},
            )
            raise PaymentProviderError(str(e)) from e

    @trace_span
    async def retrieve_subscription(
        self, subscription_id: str
    ) -> StripeSubscriptionData:
        try:
            subscription = stripe.Subscription.retrieve(subscription_id)
            return _to_subscription_data(subscription)
        except stripe.StripeError as e:
            logger.error(
                f"Failed to retrieve subscription: {str(e)}",
                extra={"subscription_id": subscription_id, "error": str(e)},
            )
            raise PaymentProviderError(str(e)) from e

    @trace_span
    async def change_subscription_price(
        self,
        subscription_id: str,
        price_id: str,
        metadata: dict[str, str],
    ) -> StripeSubscriptionData:
        """
        Move the subscription's single item to a new price.

        Stripe prorates the difference on the next invoice.
        """
        try:
            subscription = stripe.Subscription.retrieve(subscription_id)
            item_id = subscription["items"]["data"][0]["id"]

            updated = stripe.Subscription.modify(
                subscription_id,
                items=[
                    {
                        "id": item_id,
                        "price": price_id,
                    }
                ],
                metadata=metadata,
                proration_behavior="create_prorations",
                cancel_at_period_end=False,
            )

            logger.info(
                "Updated Stripe subscription price",
                extra={"subscription_id": subscription_id, "price_id": price_id},
            )

            return _to_subscription_data(updated)

        except stripe.StripeError as e:
            logger.error(
                f"Failed to update subscription price: {str(e)}",
                extra={"subscription_id": subscription_id, "error": str(e)},
            )
            raise PaymentProviderError(str(e)) from e

    @trace_span
    async def set_cancel_at_period_end(
        self, subscription_id: str, cancel_at_period_end: bool = True
    ) -> StripeSubscriptionData:
        try:
            updated = stripe.Subscription.modify(
                subscription_id, cancel_at_period_end=cancel_at_period_end
            )

            logger.info(
                "Set Stripe subscription cancel_at_period_end",
                extra={
                    "subscription_id": subscription_id,
                    "cancel_at_period_end": cancel_at_period_end,
                },
            )

            return _to_subscription_data(updated)

        except stripe.StripeError as e:
            logger.error(
                f"Failed to schedule subscription cancellation: {str(e)}",
                extra={"subscription_id": subscription_id, "error": str(e)},
            )
            raise PaymentProviderError(str(e)) from e

    @trace_span
    async def cancel_subscription(self, subscription_id: str) -> None:
        """Cancel Stripe subscription."""
        try:
            stripe.Subscription.cancel(subscription_id)

            logger.info(
                "Cancelled Stripe subscription",
                extra={"subscription_id": subscription_id},
            )

        except stripe.StripeError as e:
            logger.error(
                f"Failed to cancel subscription: {str(e)}",
                extra={"subscription_id": subscription_id, "error": str(e)},
            )
            raise PaymentProviderError(str(e)) from e

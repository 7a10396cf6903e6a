"""
Service for managing subscriptions.

User-initiated lifecycle operations (checkout, plan change, cancellation,
billing portal). Processor-initiated transitions live in
packages.billing.webhooks.stripe_webhook.
"""

from typing import Optional
from fastapi import HTTPException, status

from common.core.config import settings
from common.core.exceptions import PaymentProviderError
from common.core.telemetry import trace_span, get_logger
from common.db.base import utcnow
from common.providers.caching import cache, invalidate
from packages.billing.cache_keys import subscription_by_owner_key
from packages.billing.repositories.subscription_repository import SubscriptionRepository
from packages.billing.models.domain.subscription import (
    Subscription,
    SubscriptionDetails,
    SubscriptionSnapshot,
    SubscriptionUpdateModel,
)
from packages.billing.models.domain.enums import (
    BillingInterval,
    SubscriptionStatus,
    SubscriptionTier,
)
from packages.billing.providers.payment.factory import get_payment_provider
from packages.billing.services.plans_service import PlansService
from packages.notifications.models.domain.notification import NotificationType
from packages.notifications.services.notification_service import NotificationService
from packages.users.repositories.user_repository import UserRepository

logger = get_logger(__name__)


class SubscriptionService:
    """Service for subscription management."""

    def __init__(self):
        self.subscription_repo = SubscriptionRepository()
        self.user_repo = UserRepository()
        self.plans = PlansService()
        self.payment = get_payment_provider()
        self.notifications = NotificationService()

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    @trace_span
    @cache(
        model_type=Subscription,
        ttl=settings.subscription_cache_ttl_seconds,
        key_generator=subscription_by_owner_key,
    )
    async def get_by_owner(self, user_id: int) -> Optional[Subscription]:
        """Get the user's subscription row. Cached; every mutation invalidates."""
        return await self.subscription_repo.get_by_owner(user_id)

    @trace_span
    async def get_effective_tier(self, user_id: int) -> SubscriptionTier:
        """Subscribed tier while ACTIVE; FREE for any other status or no row."""
        subscription = await self.get_by_owner(user_id)
        if subscription is None:
            return SubscriptionTier.FREE
        return subscription.effective_tier()

    @trace_span
    async def get_subscription_details(self, user_id: int) -> SubscriptionDetails:
        if not await self.user_repo.exists(user_id):
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND, detail="User not found"
            )

        subscription = await self.get_by_owner(user_id)
        current_tier = (
            subscription.effective_tier() if subscription else SubscriptionTier.FREE
        )
        plans = await self.plans.get_all_plans(current_tier=current_tier)

        snapshot = None
        if subscription is not None:
            snapshot = SubscriptionSnapshot(
                status=subscription.status,
                tier=subscription.tier,
                billing_interval=subscription.billing_interval,
                current_period_start=subscription.current_period_start,
                current_period_end=subscription.current_period_end,
                cancel_at_period_end=subscription.cancel_at_period_end,
            )

        return SubscriptionDetails(
            current_tier=current_tier,
            status=subscription.status if subscription else SubscriptionStatus.NONE,
            subscription=snapshot,
            pricing=plans.plans,
        )

    # ------------------------------------------------------------------
    # Checkout / portal
    # ------------------------------------------------------------------

    def _require_payment_configured(self) -> None:
        if not self.payment.is_configured():
            logger.error("Stripe secret key not configured")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Payment system not configured",
            )

    @trace_span
    async def create_checkout(
        self,
        user_id: int,
        tier: SubscriptionTier,
        interval: BillingInterval,
        success_url: str,
        cancel_url: str,
    ) -> str:
        """
        Start a hosted checkout for a paid tier and return its redirect URL.

        Nothing is written locally until checkout.session.completed arrives.
        """
        self._require_payment_configured()

        user = await self.user_repo.get(user_id)
        if not user:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND, detail="User not found"
            )

        existing = await self.subscription_repo.get_by_owner(user_id)
        if existing and existing.status == SubscriptionStatus.ACTIVE:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="User already has an active subscription",
            )

        if tier == SubscriptionTier.FREE:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Invalid subscription tier",
            )

        price_id = self.plans.get_price_id(tier, interval)
        if not price_id:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Price not configured for this tier",
            )

        try:
            customer_id = existing.stripe_customer_id if existing else None
            if not customer_id:
                customer_id = await self.payment.create_customer(
                    user_id=user.id, email=user.email, name=user.full_name
                )
                if existing:
                    await self.subscription_repo.update(
                        existing.id,
                        SubscriptionUpdateModel(stripe_customer_id=customer_id),
                    )
                    await invalidate(subscription_by_owner_key(user_id))
            else:
                logger.info(
                    "Reusing existing Stripe customer",
                    extra={"user_id": user_id, "customer_id": customer_id},
                )

            checkout_url = await self.payment.create_checkout_session(
                customer_id=customer_id,
                price_id=price_id,
                success_url=success_url,
                cancel_url=cancel_url,
                metadata={
                    "user_id": str(user_id),
                    "tier": tier.value,
                    "interval": interval.value,
                },
                subscription_metadata={"user_id": str(user_id), "tier": tier.value},
            )
        except PaymentProviderError as e:
            logger.error(
                f"Failed to create checkout session for user {user_id}: {e}",
                extra={"user_id": user_id, "tier": tier.value},
            )
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Failed to create payment session",
            )

        logger.info(
            f"Checkout session created for user {user_id}",
            extra={"user_id": user_id, "tier": tier.value, "interval": interval.value},
        )
        return checkout_url

    @trace_span
    async def create_billing_portal_session(self, user_id: int, return_url: str) -> str:
        self._require_payment_configured()

        subscription = await self.subscription_repo.get_by_owner(user_id)
        if not subscription or not subscription.stripe_customer_id:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="No billing information found",
            )

        try:
            portal_url = await self.payment.create_customer_portal_session(
                customer_id=subscription.stripe_customer_id, return_url=return_url
            )
        except PaymentProviderError:
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Failed to create billing portal session",
            )

        logger.info(
            f"Created portal session for user {user_id}", extra={"user_id": user_id}
        )
        return portal_url

    # ------------------------------------------------------------------
    # Plan changes
    # ------------------------------------------------------------------

    async def _get_active_subscription(self, user_id: int, action: str) -> Subscription:
        subscription = await self.subscription_repo.get_by_owner(user_id)
        if not subscription:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND, detail="Subscription not found"
            )
        if subscription.status != SubscriptionStatus.ACTIVE:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"No active subscription to {action}",
            )
        if not subscription.stripe_subscription_id:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="No Stripe subscription found",
            )
        return subscription

    @trace_span
    async def update_subscription(
        self,
        user_id: int,
        new_tier: SubscriptionTier,
        new_interval: Optional[BillingInterval] = None,
    ) -> Subscription:
        """
        Change plan. FREE schedules cancellation at period end with no
        proration; a paid tier swaps the price immediately with proration.
        """
        self._require_payment_configured()
        subscription = await self._get_active_subscription(user_id, "update")

        if new_tier == SubscriptionTier.FREE:
            return await self._schedule_cancellation(subscription)

        try:
            remote = await self.payment.retrieve_subscription(
                subscription.stripe_subscription_id
            )
            interval = new_interval or BillingInterval.from_processor(
                remote.price_interval()
            )

            if new_tier == subscription.tier and interval == subscription.billing_interval:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail="Subscription is already on this plan",
                )

            price_id = self.plans.get_price_id(new_tier, interval)
            if not price_id:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail="Price not configured for this tier",
                )

            await self.payment.change_subscription_price(
                subscription.stripe_subscription_id,
                price_id=price_id,
                metadata={"user_id": str(user_id), "tier": new_tier.value},
            )
        except PaymentProviderError as e:
            logger.error(
                f"Failed to update subscription for user {user_id}: {e}",
                extra={"user_id": user_id, "new_tier": new_tier.value},
            )
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Failed to update subscription",
            )

        updated = await self.subscription_repo.update(
            subscription.id,
            SubscriptionUpdateModel(
                tier=new_tier, billing_interval=interval, cancel_at_period_end=False
            ),
        )
        await invalidate(subscription_by_owner_key(user_id))

        await self.notifications.send(
            user_id,
            NotificationType.SUBSCRIPTION_UPDATE,
            title="Subscription Updated",
            content=f"Your subscription has been updated to {self.plans.get_plan_name(new_tier)}",
            metadata={"tier": new_tier.value},
        )

        logger.info(
            f"Updated subscription {subscription.id} from {subscription.tier.value} to {new_tier.value}",
            extra={
                "subscription_id": subscription.id,
                "user_id": user_id,
                "old_tier": subscription.tier.value,
                "new_tier": new_tier.value,
                "interval": interval.value,
            },
        )
        return updated

    @trace_span
    async def cancel_subscription(
        self, user_id: int, immediately: bool = False
    ) -> Subscription:
        """Cancel at period end by default; `immediately` ends it now."""
        self._require_payment_configured()
        subscription = await self._get_active_subscription(user_id, "cancel")

        if not immediately:
            return await self._schedule_cancellation(subscription)

        try:
            await self.payment.cancel_subscription(subscription.stripe_subscription_id)
        except PaymentProviderError:
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Failed to cancel subscription",
            )

        updated = await self.subscription_repo.update(
            subscription.id,
            SubscriptionUpdateModel(
                status=SubscriptionStatus.CANCELLED,
                cancel_at_period_end=False,
                cancelled_at=utcnow(),
            ),
        )
        await invalidate(subscription_by_owner_key(user_id))

        await self.notifications.send(
            user_id,
            NotificationType.SUBSCRIPTION_UPDATE,
            title="Subscription Cancelled",
            content="Your subscription has been cancelled. You have been moved to the Free plan.",
            metadata={"cancelled_at": updated.cancelled_at.isoformat()},
        )

        logger.info(
            f"Cancelled subscription {subscription.id} immediately",
            extra={"subscription_id": subscription.id, "user_id": user_id},
        )
        return updated

    async def _schedule_cancellation(self, subscription: Subscription) -> Subscription:
        if subscription.cancel_at_period_end:
            return subscription

        try:
            await self.payment.set_cancel_at_period_end(
                subscription.stripe_subscription_id, True
            )
        except PaymentProviderError:
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Failed to cancel subscription",
            )

        updated = await self.subscription_repo.update(
            subscription.id, SubscriptionUpdateModel(cancel_at_period_end=True)
        )
        await invalidate(subscription_by_owner_key(subscription.owner_user_id))

        period_end = updated.current_period_end
        await self.notifications.send(
            subscription.owner_user_id,
            NotificationType.SUBSCRIPTION_UPDATE,
            title="Subscription Cancelled",
            content="Your subscription will end at the end of the current billing period",
            metadata={"access_until": period_end.isoformat() if period_end else None},
        )

        logger.info(
            f"Scheduled cancellation of subscription {subscription.id} at period end",
            extra={
                "subscription_id": subscription.id,
                "user_id": subscription.owner_user_id,
            },
        )
        return updated

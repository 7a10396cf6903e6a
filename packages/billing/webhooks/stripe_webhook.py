"""
Stripe webhook handler for subscription lifecycle events.

The signature is verified before the payload is interpreted. Handlers are
idempotent and keyed by the Stripe subscription id, so duplicate and
out-of-order deliveries converge on the same row state. Notifications go out
only when a handler actually changed state.
"""

from datetime import datetime, timezone
from typing import Awaitable, Callable, Mapping, Optional
from types import MappingProxyType

import stripe
from fastapi import Request, HTTPException, status
from pydantic import ValidationError
from sqlalchemy.exc import InterfaceError, OperationalError

from common.core.config import settings
from common.core.exceptions import PaymentProviderError
from common.core.telemetry import get_logger
from common.db.base import utcnow
from common.db.scoped import transaction
from common.providers.caching import invalidate
from packages.billing.cache_keys import subscription_by_owner_key
from packages.billing.models.domain.enums import (
    BillingInterval,
    SubscriptionStatus,
    SubscriptionTier,
)
from packages.billing.models.domain.subscription import (
    Subscription,
    SubscriptionCreateModel,
    SubscriptionUpdateModel,
)
from packages.billing.models.domain.stripe_webhooks import (
    StripeWebhookPayload,
    StripeWebhookType,
    StripeCheckoutSessionData,
    StripeSubscriptionData,
    StripeSubscriptionStatus,
    StripeInvoiceData,
)
from packages.billing.providers.payment.factory import get_payment_provider
from packages.billing.repositories.subscription_repository import SubscriptionRepository
from packages.billing.services.plans_service import PlansService
from packages.notifications.models.domain.notification import NotificationType
from packages.notifications.services.notification_service import NotificationService
from packages.users.repositories.user_repository import UserRepository

logger = get_logger(__name__)

# Storage and processor outages the processor should redeliver through
TRANSIENT_ERRORS = (OperationalError, InterfaceError, PaymentProviderError)


async def handle_stripe_webhook(request: Request) -> dict[str, str]:
    """
    Handle incoming webhook from Stripe.

    Validates webhook signature and routes to appropriate handler.
    """
    payload_bytes = await request.body()
    sig_header = request.headers.get("stripe-signature")
    return await process_stripe_event(payload_bytes, sig_header)


async def process_stripe_event(
    payload_bytes: bytes, sig_header: Optional[str]
) -> dict[str, str]:
    if not settings.stripe_webhook_secret:
        logger.error("Stripe webhook secret not configured")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Webhook secret not configured",
        )

    if not sig_header:
        logger.warning("Stripe webhook received without signature header")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing stripe-signature header",
        )

    try:
        stripe.Webhook.construct_event(
            payload_bytes, sig_header, settings.stripe_webhook_secret
        )
    except stripe.SignatureVerificationError as e:
        logger.warning(f"Stripe webhook signature verification failed: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid webhook signature"
        )
    except ValueError as e:
        logger.warning(f"Stripe webhook body is not valid JSON: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid webhook payload"
        )

    try:
        payload = StripeWebhookPayload.model_validate_json(payload_bytes)
    except ValidationError as e:
        logger.warning(
            "Invalid Stripe webhook payload",
            extra={"validation_errors": str(e.errors())},
        )
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid webhook payload"
        )

    event_type = StripeWebhookType.parse(payload.type)
    log_context = {"event_id": payload.id, "event_type": payload.type}

    if event_type is None:
        logger.info(f"Unhandled Stripe webhook type: {payload.type}", extra=log_context)
        return {"status": "success"}

    logger.info(
        f"Received Stripe webhook: {event_type.value}",
        extra={**log_context, "livemode": payload.livemode},
    )

    try:
        await WEBHOOK_HANDLERS[event_type](payload.data.object)
    except TRANSIENT_ERRORS as e:
        logger.error(
            f"Transient failure processing Stripe webhook: {str(e)}",
            extra={**log_context, "error": str(e)},
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Webhook processing failed",
        )
    except Exception as e:
        # Acknowledged anyway: redelivery would fail the same way
        logger.error(
            f"Failed to process Stripe webhook: {str(e)}",
            extra={**log_context, "error": str(e)},
        )

    return {"status": "success"}


# ----------------------------------------------------------------------------
# Handlers
# ----------------------------------------------------------------------------


async def _handle_checkout_completed(data: dict) -> None:
    """
    Handle checkout.session.completed: NONE -> ACTIVE.

    The row is upserted by owner with the tier from session metadata and the
    status and period bounds of the processor's subscription as retrieved now.
    A session whose subscription is already recorded in that state is a replay
    and changes nothing.
    """
    session = StripeCheckoutSessionData.model_validate(data)

    if session.mode and session.mode != "subscription":
        logger.info(f"Ignoring non-subscription checkout session {session.id}")
        return

    user_id = _parse_user_id(session.metadata.user_id)
    tier = _parse_tier(session.metadata.tier)
    if user_id is None or tier is None or tier == SubscriptionTier.FREE:
        logger.error(
            "Missing metadata in checkout session", extra={"session_id": session.id}
        )
        return

    if not session.subscription:
        logger.error(
            "Missing subscription ID in checkout session",
            extra={"session_id": session.id},
        )
        return

    remote = await get_payment_provider().retrieve_subscription(session.subscription)
    new_status = map_stripe_status(remote.status)
    period_start, period_end = remote.period_bounds()
    interval = _parse_interval(session.metadata.interval)
    if interval is None:
        interval = BillingInterval.from_processor(remote.price_interval())

    subscription_repo = SubscriptionRepository()
    async with transaction():
        if not await UserRepository().exists(user_id):
            logger.warning(
                f"Checkout completed for unknown user {user_id}",
                extra={"user_id": user_id, "session_id": session.id},
            )
            return

        existing = await subscription_repo.get_by_owner(user_id)
        if (
            existing
            and existing.stripe_subscription_id == session.subscription
            and existing.status == new_status
        ):
            logger.info(
                f"Checkout for subscription {session.subscription} already recorded",
                extra={"user_id": user_id, "subscription_status": existing.status.value},
            )
            return

        activated = new_status == SubscriptionStatus.ACTIVE and not _was_live(
            existing, session.subscription
        )
        await subscription_repo.upsert_for_owner(
            user_id,
            SubscriptionCreateModel(
                owner_user_id=user_id,
                tier=tier,
                status=new_status,
                billing_interval=interval,
                stripe_customer_id=session.customer,
                stripe_subscription_id=session.subscription,
                current_period_start=_from_timestamp(period_start),
                current_period_end=_from_timestamp(period_end),
                cancel_at_period_end=remote.cancel_at_period_end,
                cancelled_at=_terminal_cancelled_at(remote),
            ),
        )

    await invalidate(subscription_by_owner_key(user_id))

    if activated:
        await _notify_activated(user_id, tier)

    logger.info(
        f"Checkout recorded for user {user_id}",
        extra={
            "user_id": user_id,
            "tier": tier.value,
            "subscription_id": session.subscription,
            "our_status": new_status.value,
        },
    )


async def _handle_subscription_updated(data: dict) -> None:
    """
    Handle customer.subscription.updated.

    Refreshes status, period bounds and cancel_at_period_end from the
    processor. The tier changes only when the event metadata carries one.
    """
    remote = StripeSubscriptionData.model_validate(data)
    new_status = map_stripe_status(remote.status)
    period_start, period_end = remote.period_bounds()
    metadata_tier = _parse_tier(remote.metadata.tier)
    activated_tier = None

    subscription_repo = SubscriptionRepository()
    async with transaction():
        existing = await subscription_repo.get_by_stripe_subscription_id(remote.id)

        if existing is None:
            # Arrived before checkout.session.completed; upsert by owner
            user_id = _parse_user_id(remote.metadata.user_id)
            if user_id is None or not await UserRepository().exists(user_id):
                logger.info(
                    f"No subscription row for Stripe subscription {remote.id}",
                    extra={"subscription_id": remote.id},
                )
                return

            owner_row = await subscription_repo.get_by_owner(user_id)
            if (
                owner_row
                and owner_row.stripe_subscription_id
                and owner_row.status == SubscriptionStatus.ACTIVE
            ):
                logger.info(
                    f"Ignoring update for superseded Stripe subscription {remote.id}",
                    extra={"user_id": user_id, "subscription_id": remote.id},
                )
                return

            tier = metadata_tier or (owner_row.tier if owner_row else None)
            if tier is None:
                logger.warning(
                    f"Cannot create subscription {remote.id} without a tier",
                    extra={"user_id": user_id, "subscription_id": remote.id},
                )
                return

            await subscription_repo.upsert_for_owner(
                user_id,
                SubscriptionCreateModel(
                    owner_user_id=user_id,
                    tier=tier,
                    status=new_status,
                    billing_interval=BillingInterval.from_processor(
                        remote.price_interval()
                    ),
                    stripe_customer_id=remote.customer,
                    stripe_subscription_id=remote.id,
                    current_period_start=_from_timestamp(period_start),
                    current_period_end=_from_timestamp(period_end),
                    cancel_at_period_end=remote.cancel_at_period_end,
                    cancelled_at=_terminal_cancelled_at(remote),
                ),
            )
            owner_id = user_id
            if new_status == SubscriptionStatus.ACTIVE:
                activated_tier = tier
        else:
            owner_id = existing.owner_user_id

            # Stripe never reactivates a canceled subscription; a non-canceled
            # status after a real cancellation is an older event delivered late.
            if (
                existing.cancelled_at is not None
                and new_status != SubscriptionStatus.CANCELLED
            ):
                logger.info(
                    f"Ignoring stale update for cancelled subscription {remote.id}",
                    extra={"user_id": owner_id, "subscription_id": remote.id},
                )
                return

            changes = {}
            if existing.status != new_status:
                changes["status"] = new_status
            start = _from_timestamp(period_start)
            end = _from_timestamp(period_end)
            if start and start != existing.current_period_start:
                changes["current_period_start"] = start
            if end and end != existing.current_period_end:
                changes["current_period_end"] = end
            if remote.cancel_at_period_end != existing.cancel_at_period_end:
                changes["cancel_at_period_end"] = remote.cancel_at_period_end
            if metadata_tier and metadata_tier != existing.tier:
                changes["tier"] = metadata_tier
            interval = remote.price_interval()
            if interval:
                billing_interval = BillingInterval.from_processor(interval)
                if billing_interval != existing.billing_interval:
                    changes["billing_interval"] = billing_interval
            cancelled_at = _terminal_cancelled_at(remote)
            if cancelled_at and not existing.cancelled_at:
                changes["cancelled_at"] = cancelled_at

            if not changes:
                return

            await subscription_repo.update(
                existing.id, SubscriptionUpdateModel(**changes)
            )
            if new_status == SubscriptionStatus.ACTIVE and not _was_live(
                existing, remote.id
            ):
                activated_tier = metadata_tier or existing.tier

    await invalidate(subscription_by_owner_key(owner_id))

    if activated_tier is not None:
        await _notify_activated(owner_id, activated_tier)

    logger.info(
        f"Stripe subscription updated: {remote.id}",
        extra={
            "subscription_id": remote.id,
            "user_id": owner_id,
            "stripe_status": remote.status,
            "our_status": new_status.value,
        },
    )


async def _handle_subscription_deleted(data: dict) -> None:
    """Handle customer.subscription.deleted: -> CANCELLED, owner back on FREE."""
    remote = StripeSubscriptionData.model_validate(data)

    subscription_repo = SubscriptionRepository()
    async with transaction():
        existing = await subscription_repo.get_by_stripe_subscription_id(remote.id)
        if existing is None:
            logger.info(
                f"Deleted Stripe subscription {remote.id} has no local row",
                extra={"subscription_id": remote.id},
            )
            return

        cancelled_at = _from_timestamp(remote.ended_at or remote.canceled_at) or utcnow()
        if existing.status == SubscriptionStatus.CANCELLED:
            # Already demoted; only record that the cancellation is final
            if existing.cancelled_at is None:
                await subscription_repo.update(
                    existing.id, SubscriptionUpdateModel(cancelled_at=cancelled_at)
                )
            return

        await subscription_repo.update(
            existing.id,
            SubscriptionUpdateModel(
                status=SubscriptionStatus.CANCELLED,
                cancel_at_period_end=False,
                cancelled_at=cancelled_at,
            ),
        )

    await invalidate(subscription_by_owner_key(existing.owner_user_id))

    await NotificationService().send(
        existing.owner_user_id,
        NotificationType.SUBSCRIPTION_UPDATE,
        title="Subscription Ended",
        content="Your subscription has ended. You have been moved to the Free plan.",
    )

    logger.info(
        f"Subscription ended for user {existing.owner_user_id}",
        extra={"user_id": existing.owner_user_id, "subscription_id": remote.id},
    )


async def _handle_invoice_payment_failed(data: dict) -> None:
    """
    Handle invoice.payment_failed: -> PAST_DUE (grace period).

    The tier is left alone. Cancelled rows stay cancelled.
    """
    invoice = StripeInvoiceData.model_validate(data)

    subscription_repo = SubscriptionRepository()
    async with transaction():
        existing = None
        if invoice.subscription:
            existing = await subscription_repo.get_by_stripe_subscription_id(
                invoice.subscription
            )
        if existing is None and invoice.customer:
            existing = await subscription_repo.get_by_stripe_customer_id(
                invoice.customer
            )
        if existing is None:
            logger.info(
                f"Payment failure for unknown subscription on invoice {invoice.id}",
                extra={"invoice_id": invoice.id, "customer_id": invoice.customer},
            )
            return

        if existing.status in (SubscriptionStatus.PAST_DUE, SubscriptionStatus.CANCELLED):
            return

        await subscription_repo.update(
            existing.id, SubscriptionUpdateModel(status=SubscriptionStatus.PAST_DUE)
        )

    await invalidate(subscription_by_owner_key(existing.owner_user_id))

    await NotificationService().send(
        existing.owner_user_id,
        NotificationType.SUBSCRIPTION_UPDATE,
        title="Payment Failed",
        content="We were unable to process your payment. Please update your payment method.",
        metadata={"invoice_url": invoice.hosted_invoice_url},
    )

    logger.warning(
        f"Stripe invoice payment failed: {invoice.id}",
        extra={
            "invoice_id": invoice.id,
            "user_id": existing.owner_user_id,
            "amount_due": invoice.amount_due,
        },
    )


WEBHOOK_HANDLERS: Mapping[
    StripeWebhookType, Callable[[dict], Awaitable[None]]
] = MappingProxyType(
    {
        StripeWebhookType.CHECKOUT_SESSION_COMPLETED: _handle_checkout_completed,
        StripeWebhookType.SUBSCRIPTION_UPDATED: _handle_subscription_updated,
        StripeWebhookType.SUBSCRIPTION_DELETED: _handle_subscription_deleted,
        StripeWebhookType.INVOICE_PAYMENT_FAILED: _handle_invoice_payment_failed,
    }
)


# ----------------------------------------------------------------------------
# Helpers
# ----------------------------------------------------------------------------


_STRIPE_STATUS_MAP = {
    StripeSubscriptionStatus.ACTIVE: SubscriptionStatus.ACTIVE,
    StripeSubscriptionStatus.TRIALING: SubscriptionStatus.ACTIVE,
    StripeSubscriptionStatus.PAST_DUE: SubscriptionStatus.PAST_DUE,
    StripeSubscriptionStatus.UNPAID: SubscriptionStatus.UNPAID,
    StripeSubscriptionStatus.CANCELED: SubscriptionStatus.CANCELLED,
    StripeSubscriptionStatus.INCOMPLETE: SubscriptionStatus.CANCELLED,
    StripeSubscriptionStatus.INCOMPLETE_EXPIRED: SubscriptionStatus.CANCELLED,
    StripeSubscriptionStatus.PAUSED: SubscriptionStatus.CANCELLED,
}


def map_stripe_status(stripe_status: str) -> SubscriptionStatus:
    """Map Stripe subscription status to our subscription status."""
    try:
        return _STRIPE_STATUS_MAP[StripeSubscriptionStatus(stripe_status)]
    except ValueError:
        return SubscriptionStatus.CANCELLED


def _parse_user_id(value: Optional[str]) -> Optional[int]:
    try:
        return int(value) if value else None
    except ValueError:
        return None


def _parse_tier(value: Optional[str]) -> Optional[SubscriptionTier]:
    try:
        return SubscriptionTier(value.upper()) if value else None
    except ValueError:
        return None


def _parse_interval(value: Optional[str]) -> Optional[BillingInterval]:
    try:
        return BillingInterval(value) if value else None
    except ValueError:
        return None


def _from_timestamp(value: Optional[int]) -> Optional[datetime]:
    return datetime.fromtimestamp(value, tz=timezone.utc) if value else None


def _terminal_cancelled_at(remote: StripeSubscriptionData) -> Optional[datetime]:
    """Cancellation time when Stripe has actually canceled the subscription.

    Statuses such as incomplete also map to CANCELLED but can still become
    active, so they leave no stamp.
    """
    if remote.status != StripeSubscriptionStatus.CANCELED.value and not remote.ended_at:
        return None
    return _from_timestamp(remote.ended_at or remote.canceled_at) or utcnow()


def _was_live(existing: Optional[Subscription], subscription_id: str) -> bool:
    return (
        existing is not None
        and existing.stripe_subscription_id == subscription_id
        and existing.status
        in (
            SubscriptionStatus.ACTIVE,
            SubscriptionStatus.PAST_DUE,
            SubscriptionStatus.UNPAID,
        )
    )


async def _notify_activated(user_id: int, tier: SubscriptionTier) -> None:
    await NotificationService().send(
        user_id,
        NotificationType.SUBSCRIPTION_UPDATE,
        title=f"Welcome to {PlansService().get_plan_name(tier)}!",
        content="Your subscription is now active. Enjoy all the features!",
        metadata={"tier": tier.value},
    )

"""
API schemas for billing operations.

Request and response models for billing endpoints.
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field, HttpUrl

from packages.billing.models.domain.enums import (
    BillingInterval,
    SubscriptionStatus,
    SubscriptionTier,
)
from packages.billing.models.domain.subscription import Subscription


# ============================================================================
# Checkout Schemas
# ============================================================================


class CheckoutSessionRequest(BaseModel):
    """Request to create a checkout session."""

    tier: SubscriptionTier
    interval: BillingInterval = BillingInterval.MONTHLY
    success_url: HttpUrl
    cancel_url: HttpUrl


class CheckoutSessionResponse(BaseModel):
    """Response with checkout URL."""

    checkout_url: str = Field(..., description="Stripe checkout session URL")


# ============================================================================
# Portal Schemas
# ============================================================================


class PortalSessionRequest(BaseModel):
    """Request to create a customer portal session."""

    return_url: HttpUrl


class PortalSessionResponse(BaseModel):
    """Response with portal URL."""

    portal_url: str = Field(..., description="Stripe customer portal URL")


# ============================================================================
# Plan Change Schemas
# ============================================================================


class UpdateSubscriptionRequest(BaseModel):
    """Request to move an active subscription to another plan."""

    tier: SubscriptionTier
    interval: Optional[BillingInterval] = Field(
        default=None,
        description="Billing interval; keeps the current interval when omitted",
    )


class CancelSubscriptionRequest(BaseModel):
    immediately: bool = Field(
        default=False,
        description="End the subscription now instead of at period end",
    )


class SubscriptionResponse(BaseModel):
    """Subscription state after a plan change or cancellation."""

    success: bool = True
    message: str
    tier: SubscriptionTier
    status: SubscriptionStatus
    cancel_at_period_end: bool
    current_period_end: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None

    @classmethod
    def from_subscription(cls, subscription: Subscription, message: str):
        return cls(
            message=message,
            tier=subscription.tier,
            status=subscription.status,
            cancel_at_period_end=subscription.cancel_at_period_end,
            current_period_end=subscription.current_period_end,
            cancelled_at=subscription.cancelled_at,
        )

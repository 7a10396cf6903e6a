"""
Domain models for subscriptions.
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator

from packages.billing.models.domain.enums import (
    BillingInterval,
    SubscriptionStatus,
    SubscriptionTier,
    PaymentProvider,
)
from packages.billing.models.domain.plans import PlanInfo


class Subscription(BaseModel):
    """
    User subscription domain model.

    One row per user that ever completed a checkout. The row is reused across
    re-subscriptions and never deleted; a cancelled subscription keeps its row
    with status CANCELLED.
    """

    model_config = ConfigDict(from_attributes=True)

    id: int
    owner_user_id: int

    tier: SubscriptionTier
    status: SubscriptionStatus
    billing_interval: Optional[BillingInterval] = None

    # Processor references, resolved server-side and never taken from callers
    stripe_customer_id: Optional[str] = None
    stripe_subscription_id: Optional[str] = None
    payment_provider: PaymentProvider = PaymentProvider.STRIPE

    current_period_start: Optional[datetime] = None
    current_period_end: Optional[datetime] = None
    cancel_at_period_end: bool = False
    cancelled_at: Optional[datetime] = None

    created_at: datetime
    updated_at: datetime

    def has_access(self) -> bool:
        return self.status.has_access()

    def effective_tier(self) -> SubscriptionTier:
        """Subscribed tier while ACTIVE, FREE otherwise."""
        return self.tier if self.has_access() else SubscriptionTier.FREE


class SubscriptionCreateModel(BaseModel):
    """Model for creating a new subscription."""

    model_config = ConfigDict(use_enum_values=True)

    owner_user_id: int
    tier: SubscriptionTier = SubscriptionTier.FREE
    status: SubscriptionStatus
    billing_interval: Optional[BillingInterval] = None
    stripe_customer_id: Optional[str] = None
    stripe_subscription_id: Optional[str] = None
    current_period_start: Optional[datetime] = None
    current_period_end: Optional[datetime] = None
    cancel_at_period_end: bool = False
    cancelled_at: Optional[datetime] = None

    @field_validator("status")
    @classmethod
    def validate_status(cls, v):
        if v == SubscriptionStatus.NONE:
            raise ValueError("NONE is not a persistable subscription status")
        return v


class SubscriptionUpdateModel(BaseModel):
    """Model for updating a subscription. Only fields that are set are written."""

    tier: Optional[str] = None
    status: Optional[str] = None
    billing_interval: Optional[str] = None

    stripe_customer_id: Optional[str] = None
    stripe_subscription_id: Optional[str] = None

    current_period_start: Optional[datetime] = None
    current_period_end: Optional[datetime] = None
    cancel_at_period_end: Optional[bool] = None
    cancelled_at: Optional[datetime] = None

    @field_validator("tier", "status", "billing_interval", mode="before")
    @classmethod
    def validate_enum(cls, v):
        if isinstance(v, SubscriptionStatus) and v is SubscriptionStatus.NONE:
            raise ValueError("NONE is not a persistable subscription status")
        if isinstance(
            v, (SubscriptionTier, SubscriptionStatus, BillingInterval)
        ):
            return v.value
        return v


class SubscriptionSnapshot(BaseModel):
    """Caller-facing view of a subscription row, without processor ids."""

    status: SubscriptionStatus
    tier: SubscriptionTier
    billing_interval: Optional[BillingInterval] = None
    current_period_start: Optional[datetime] = None
    current_period_end: Optional[datetime] = None
    cancel_at_period_end: bool = False


class SubscriptionDetails(BaseModel):
    """Status projection returned by get_subscription_details."""

    current_tier: SubscriptionTier
    status: SubscriptionStatus
    subscription: Optional[SubscriptionSnapshot] = None
    pricing: list[PlanInfo] = Field(default_factory=list)

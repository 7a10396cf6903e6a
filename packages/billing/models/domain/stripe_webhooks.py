"""
Domain models for Stripe webhook payloads.

Strongly-typed Pydantic models for the Stripe objects the lifecycle handlers
read. Unknown fields are ignored so API version bumps don't break intake.
"""

from typing import Optional, Any
from enum import Enum
from pydantic import BaseModel, ConfigDict, Field


class StripeWebhookType(str, Enum):
    """Stripe webhook event types the lifecycle acts on."""

    CHECKOUT_SESSION_COMPLETED = "checkout.session.completed"
    SUBSCRIPTION_UPDATED = "customer.subscription.updated"
    SUBSCRIPTION_DELETED = "customer.subscription.deleted"
    INVOICE_PAYMENT_FAILED = "invoice.payment_failed"

    @classmethod
    def parse(cls, value: str) -> Optional["StripeWebhookType"]:
        """Known event type, or None for anything we acknowledge and ignore."""
        try:
            return cls(value)
        except ValueError:
            return None


class StripeSubscriptionStatus(str, Enum):
    """Stripe subscription status values."""

    INCOMPLETE = "incomplete"
    INCOMPLETE_EXPIRED = "incomplete_expired"
    TRIALING = "trialing"
    ACTIVE = "active"
    PAST_DUE = "past_due"
    CANCELED = "canceled"
    UNPAID = "unpaid"
    PAUSED = "paused"


class StripeMetadata(BaseModel):
    """Stripe metadata; user_id and tier are written by our checkout sessions."""

    model_config = ConfigDict(extra="ignore")

    user_id: Optional[str] = None
    tier: Optional[str] = None
    interval: Optional[str] = None


class StripeRecurring(BaseModel):
    interval: Optional[str] = None


class StripePrice(BaseModel):
    id: str
    recurring: Optional[StripeRecurring] = None


class StripeSubscriptionItem(BaseModel):
    id: str
    price: Optional[StripePrice] = None
    current_period_start: Optional[int] = None
    current_period_end: Optional[int] = None


class StripeSubscriptionItems(BaseModel):
    data: list[StripeSubscriptionItem] = Field(default_factory=list)


class StripeSubscriptionData(BaseModel):
    """Stripe subscription object."""

    model_config = ConfigDict(extra="ignore")

    id: str
    customer: Optional[str] = None
    status: str
    # Older API versions carry the period on the subscription, newer ones on items
    current_period_start: Optional[int] = None
    current_period_end: Optional[int] = None
    cancel_at_period_end: bool = False
    canceled_at: Optional[int] = None
    ended_at: Optional[int] = None
    metadata: StripeMetadata = Field(default_factory=StripeMetadata)
    items: StripeSubscriptionItems = Field(default_factory=StripeSubscriptionItems)

    def period_bounds(self) -> tuple[Optional[int], Optional[int]]:
        if self.current_period_start and self.current_period_end:
            return self.current_period_start, self.current_period_end
        for item in self.items.data:
            if item.current_period_start and item.current_period_end:
                return item.current_period_start, item.current_period_end
        return None, None

    def price_interval(self) -> Optional[str]:
        for item in self.items.data:
            if item.price and item.price.recurring and item.price.recurring.interval:
                return item.price.recurring.interval
        return None


class StripeInvoiceData(BaseModel):
    """Stripe invoice object."""

    model_config = ConfigDict(extra="ignore")

    id: str
    customer: Optional[str] = None
    subscription: Optional[str] = None
    status: Optional[str] = None
    amount_due: int = 0
    currency: Optional[str] = None
    hosted_invoice_url: Optional[str] = None


class StripeCheckoutSessionData(BaseModel):
    """Stripe checkout session object."""

    model_config = ConfigDict(extra="ignore")

    id: str
    customer: Optional[str] = None
    subscription: Optional[str] = None
    mode: Optional[str] = None
    payment_status: Optional[str] = None
    status: Optional[str] = None
    metadata: StripeMetadata = Field(default_factory=StripeMetadata)


class StripeEventData(BaseModel):
    """Stripe event data wrapper."""

    object: dict[str, Any]


class StripeWebhookPayload(BaseModel):
    """Complete Stripe webhook payload. `type` stays a plain string so unknown
    event types still parse and can be acknowledged."""

    model_config = ConfigDict(extra="ignore")

    id: str
    type: str
    data: StripeEventData
    created: Optional[int] = None
    livemode: bool = False

"""Domain models for billing."""

from packages.billing.models.domain.enums import (
    ActorType,
    BillingInterval,
    PaymentProvider,
    QuotaDimension,
    SubscriptionStatus,
    SubscriptionTier,
    UsageAction,
)
from packages.billing.models.domain.quota import (
    ACTION_DIMENSIONS,
    QUOTA_TABLE,
    UNLIMITED,
    Quota,
    get_quota,
)
from packages.billing.models.domain.subscription import (
    Subscription,
    SubscriptionCreateModel,
    SubscriptionDetails,
    SubscriptionUpdateModel,
)
from packages.billing.models.domain.usage import (
    ActorRef,
    QuotaDecision,
    UsageLogEntry,
    UsageLogEntryCreateModel,
    UsageStats,
    UsageSummary,
)

__all__ = [
    # Enums
    "ActorType",
    "BillingInterval",
    "PaymentProvider",
    "QuotaDimension",
    "SubscriptionStatus",
    "SubscriptionTier",
    "UsageAction",
    # Quota table
    "ACTION_DIMENSIONS",
    "QUOTA_TABLE",
    "UNLIMITED",
    "Quota",
    "get_quota",
    # Subscription
    "Subscription",
    "SubscriptionCreateModel",
    "SubscriptionDetails",
    "SubscriptionUpdateModel",
    # Usage
    "ActorRef",
    "QuotaDecision",
    "UsageLogEntry",
    "UsageLogEntryCreateModel",
    "UsageStats",
    "UsageSummary",
]

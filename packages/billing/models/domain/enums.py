"""
Billing enums - strongly typed enumerations for subscription and usage states.
"""

from enum import Enum


class SubscriptionStatus(str, Enum):
    """
    Subscription status lifecycle.

    Flow: none -> active -> past_due|cancelled -> active|cancelled, with unpaid
    reachable from active and past_due. NONE is a projection for users without a
    subscription row and is never persisted.
    """

    NONE = "none"
    ACTIVE = "active"  # Paid up, tier entitlements apply
    PAST_DUE = "past_due"  # Payment failed, grace period
    CANCELLED = "cancelled"  # Ended; row kept for audit
    UNPAID = "unpaid"  # Processor gave up retrying

    def has_access(self) -> bool:
        """Only ACTIVE grants the subscribed tier; everything else is FREE."""
        return self is SubscriptionStatus.ACTIVE


class SubscriptionTier(str, Enum):
    """
    Subscription pricing tiers, declared in order of increasing entitlement.
    """

    FREE = "FREE"
    STARTER = "STARTER"
    PROFESSIONAL = "PROFESSIONAL"
    ENTERPRISE = "ENTERPRISE"

    @property
    def rank(self) -> int:
        return list(SubscriptionTier).index(self)

    def __lt__(self, other):
        if isinstance(other, SubscriptionTier):
            return self.rank < other.rank
        return NotImplemented

    def __le__(self, other):
        if isinstance(other, SubscriptionTier):
            return self.rank <= other.rank
        return NotImplemented

    def __gt__(self, other):
        if isinstance(other, SubscriptionTier):
            return self.rank > other.rank
        return NotImplemented

    def __ge__(self, other):
        if isinstance(other, SubscriptionTier):
            return self.rank >= other.rank
        return NotImplemented

    def is_purchasable(self) -> bool:
        """FREE needs no checkout and ENTERPRISE is sold by contract."""
        return self in (SubscriptionTier.STARTER, SubscriptionTier.PROFESSIONAL)


class BillingInterval(str, Enum):
    MONTHLY = "monthly"
    YEARLY = "yearly"

    @classmethod
    def from_processor(cls, value) -> "BillingInterval":
        """Map a processor recurring interval ("month" | "year")."""
        return cls.YEARLY if value == "year" else cls.MONTHLY


class UsageAction(str, Enum):
    """Metered action kinds written to the usage ledger."""

    SPEC_GENERATED = "spec_generated"
    AI_GENERATION = "ai_generation"
    VIEW_GENERATED = "view_generated"
    VECTOR_STORED = "vector_stored"
    VECTOR_SEARCH = "vector_search"
    API_CALL = "api_call"
    FILE_UPLOADED = "file_uploaded"
    TEAM_MEMBER_ADDED = "team_member_added"


class QuotaDimension(str, Enum):
    """Named limits of a tier's quota."""

    SPECIFICATIONS = "specifications"
    AI_GENERATIONS = "ai_generations"
    TEAM_MEMBERS = "team_members"
    STORAGE_MB = "storage_mb"
    API_CALLS = "api_calls"


class ActorType(str, Enum):
    USER = "user"
    TEAM = "team"


class PaymentProvider(str, Enum):
    """Supported payment providers."""

    STRIPE = "stripe"

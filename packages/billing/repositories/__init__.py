"""Billing repositories."""

from packages.billing.repositories.subscription_repository import SubscriptionRepository
from packages.billing.repositories.usage_repository import UsageLogRepository

__all__ = [
    "SubscriptionRepository",
    "UsageLogRepository",
]

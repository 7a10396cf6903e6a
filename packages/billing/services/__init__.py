"""Billing services."""

from packages.billing.services.subscription_service import SubscriptionService
from packages.billing.services.usage_service import UsageService
from packages.billing.services.quota_service import QuotaService
from packages.billing.services.plans_service import PlansService
from packages.billing.services.maintenance_service import MaintenanceService

__all__ = [
    "SubscriptionService",
    "UsageService",
    "QuotaService",
    "PlansService",
    "MaintenanceService",
]

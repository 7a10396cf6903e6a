"""Service for retrieving billing plan information."""

from dataclasses import dataclass
from typing import Optional

from common.core.config import settings
from common.core.telemetry import trace_span, get_logger
from packages.billing.models.domain.enums import BillingInterval, SubscriptionTier
from packages.billing.models.domain.plans import PlanInfo, PlanPrice, PlansResponse
from packages.billing.models.domain.quota import get_quota

logger = get_logger(__name__)

CUSTOM_PRICE = -1


@dataclass(frozen=True)
class PlanCatalogEntry:
    name: str
    description: str
    monthly_price: int
    yearly_price: int
    features: tuple[str, ...]


PLAN_CATALOG = {
    SubscriptionTier.FREE: PlanCatalogEntry(
        name="Free",
        description="Perfect for individuals getting started",
        monthly_price=0,
        yearly_price=0,
        features=(
            "5 specifications per month",
            "20 AI generations",
            "Basic templates",
            "Community support",
        ),
    ),
    SubscriptionTier.STARTER: PlanCatalogEntry(
        name="Starter",
        description="Great for small teams",
        monthly_price=29,
        yearly_price=290,
        features=(
            "50 specifications per month",
            "200 AI generations",
            "Team collaboration (up to 10 members)",
            "Advanced templates",
            "Email support",
            "API access",
        ),
    ),
    SubscriptionTier.PROFESSIONAL: PlanCatalogEntry(
        name="Professional",
        description="For growing teams and businesses",
        monthly_price=99,
        yearly_price=990,
        features=(
            "500 specifications per month",
            "2000 AI generations",
            "Team collaboration (up to 50 members)",
            "Premium templates",
            "Priority support",
            "Advanced analytics",
            "Custom integrations",
        ),
    ),
    SubscriptionTier.ENTERPRISE: PlanCatalogEntry(
        name="Enterprise",
        description="Custom solutions for large organizations",
        monthly_price=CUSTOM_PRICE,
        yearly_price=CUSTOM_PRICE,
        features=(
            "Unlimited specifications",
            "Unlimited AI generations",
            "Unlimited team members",
            "Custom templates",
            "Dedicated support",
            "SLA guarantee",
            "On-premise deployment option",
            "Custom AI models",
        ),
    ),
}


class PlansService:
    """Pricing catalog and price id lookup."""

    def __init__(self):
        self._price_ids = {
            (SubscriptionTier.STARTER, BillingInterval.MONTHLY): settings.stripe_price_starter_monthly,
            (SubscriptionTier.STARTER, BillingInterval.YEARLY): settings.stripe_price_starter_yearly,
            (SubscriptionTier.PROFESSIONAL, BillingInterval.MONTHLY): settings.stripe_price_pro_monthly,
            (SubscriptionTier.PROFESSIONAL, BillingInterval.YEARLY): settings.stripe_price_pro_yearly,
        }

    def get_plan_name(self, tier: SubscriptionTier) -> str:
        return PLAN_CATALOG[tier].name

    def get_price_id(
        self, tier: SubscriptionTier, interval: BillingInterval
    ) -> Optional[str]:
        """Configured processor price id, or None when the pair isn't sold."""
        return self._price_ids.get((tier, interval)) or None

    def interval_for_price(self, price_id: str) -> Optional[BillingInterval]:
        for (_, interval), configured in self._price_ids.items():
            if configured and configured == price_id:
                return interval
        return None

    @trace_span
    async def get_all_plans(
        self, current_tier: Optional[SubscriptionTier] = None
    ) -> PlansResponse:
        """Get all plans with pricing and limits, flagging the caller's tier."""
        return PlansResponse(
            plans=[self._build_plan_info(tier, current_tier) for tier in SubscriptionTier]
        )

    def _build_plan_info(
        self, tier: SubscriptionTier, current_tier: Optional[SubscriptionTier]
    ) -> PlanInfo:
        entry = PLAN_CATALOG[tier]
        return PlanInfo(
            tier=tier,
            name=entry.name,
            description=entry.description,
            price=PlanPrice(monthly=entry.monthly_price, yearly=entry.yearly_price),
            features=list(entry.features),
            limits=get_quota(tier),
            monthly_price_id=self.get_price_id(tier, BillingInterval.MONTHLY),
            yearly_price_id=self.get_price_id(tier, BillingInterval.YEARLY),
            purchasable=tier.is_purchasable(),
            current=current_tier == tier,
        )

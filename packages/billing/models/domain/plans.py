"""Domain models for billing plans."""

from typing import Optional
from pydantic import BaseModel

from packages.billing.models.domain.enums import SubscriptionTier
from packages.billing.models.domain.quota import Quota


class PlanPrice(BaseModel):
    """Prices in whole currency units; -1 marks custom (contract) pricing."""

    monthly: int
    yearly: int


class PlanInfo(BaseModel):
    """Complete plan information combining pricing and limits."""

    tier: SubscriptionTier
    name: str
    description: str
    price: PlanPrice
    features: list[str]
    limits: Quota
    monthly_price_id: Optional[str] = None
    yearly_price_id: Optional[str] = None
    purchasable: bool = False
    current: bool = False


class PlansResponse(BaseModel):
    """Response model for plans endpoint."""

    plans: list[PlanInfo]
